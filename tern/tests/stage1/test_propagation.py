# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

from tern.ternc.checker import check_program, collect_module
from tern.ternc.core.contexts import context_for_path, module_id_for_path
from tern.ternc.core.diagnostics import DiagnosticKind
from tern.ternc.parser import ast as A
from tern.ternc.parser import parse_module
from tern.ternc.stage1 import propagate_module

NOT_FOUND = """
type NotFound = { message: str, id: int }
find(id: int): result<int, NotFound> {
	if id < 0 {
		return err({ message: "missing", id: id })
	}
	return id
}
"""


def _lower(src: str, path: str = "main.server.tn"):
	tree = parse_module(src, path)
	info = collect_module(module_id_for_path(path), path, context_for_path(path), tree)
	cm = check_program([info])[module_id_for_path(path)]
	return propagate_module(cm)


def _fn(lowered, name: str) -> A.FunctionDecl:
	for item in lowered.ast.items:
		inner = A.unwrap_item(item)
		if isinstance(inner, A.FunctionDecl) and inner.name == name:
			return inner
	raise AssertionError(f"no function {name}")


def test_propagating_call_is_hoisted_and_checked() -> None:
	src = NOT_FOUND + """
twice(id: int): result<int, NotFound> {
	n = find(id)
	return n * 2
}
"""
	lowered = _lower(src)
	assert lowered.diagnostics == []
	temp, check, decl, ret = _fn(lowered, "twice").body.statements

	assert isinstance(temp, A.ResultTemp)
	assert temp.name == "__r1"
	assert isinstance(temp.value, A.Call)

	assert isinstance(check, A.IfStmt)
	assert isinstance(check.cond, A.ResultIsErr)
	(early,) = check.then_block.statements
	assert isinstance(early, A.ReturnStmt)
	# Same error type: the callee's result goes back unchanged.
	assert isinstance(early.value, A.Name) and early.value.ident == "__r1"

	assert isinstance(decl, A.VariableDecl)
	assert isinstance(decl.value, A.ResultValue)
	assert isinstance(ret.value, A.WrapOk)
	assert isinstance(ret.value.value, A.Binary)


def test_error_widens_into_error() -> None:
	src = NOT_FOUND + """
lookup(id: int): result<int, error> {
	return find(id) + 1
}
"""
	lowered = _lower(src)
	assert lowered.diagnostics == []
	_, check, _ = _fn(lowered, "lookup").body.statements
	(early,) = check.then_block.statements
	assert isinstance(early.value, A.WrapErr)
	assert isinstance(early.value.value, A.WidenError)
	assert isinstance(early.value.value.value, A.ResultError)


def test_incompatible_error_types_are_reported() -> None:
	src = NOT_FOUND + """
type Other = { message: str }
other(id: int): result<int, Other> {
	n = find(id)
	return n
}
"""
	lowered = _lower(src)
	assert [d.code for d in lowered.diagnostics] == ["E-PROPAGATE"]
	diag = lowered.diagnostics[0]
	assert diag.kind is DiagnosticKind.PROPAGATION
	assert diag.phase == "propagate"
	assert diag.message.startswith("error type NotFound of 'find' does not match the error type Other of 'other'")


def test_error_returns_are_wrapped() -> None:
	lowered = _lower(NOT_FOUND)
	check, ret = _fn(lowered, "find").body.statements
	(early,) = check.then_block.statements
	assert isinstance(early.value, A.Call)
	assert isinstance(ret.value, A.WrapOk)


def test_unhandled_call_is_unwrapped() -> None:
	src = NOT_FOUND + """
main() {
	print(find(1))
}
"""
	lowered = _lower(src)
	(stmt,) = _fn(lowered, "main").body.statements
	(arg,) = stmt.expr.args
	assert isinstance(arg, A.Unwrap)


def test_destructure_declares_both_names() -> None:
	src = NOT_FOUND + """
main() {
	v, e = find(1)
	print(v)
}
"""
	lowered = _lower(src)
	temp, value_decl, err_decl, branch, _ = _fn(lowered, "main").body.statements
	assert isinstance(temp, A.ResultTemp)
	assert (value_decl.name, err_decl.name) == ("v", "e")
	assert isinstance(branch, A.IfStmt)
	assert isinstance(branch.cond, A.ResultIsErr)
	assert isinstance(branch.then_block.statements[0].value, A.ResultError)
	assert isinstance(branch.else_block.statements[0].value, A.ResultValue)


def test_input_tree_is_not_modified() -> None:
	src = NOT_FOUND + """
twice(id: int): result<int, NotFound> {
	n = find(id)
	return n * 2
}
"""
	tree = parse_module(src, "main.server.tn")
	info = collect_module("main.server", "main.server.tn", context_for_path("main.server.tn"), tree)
	cm = check_program([info])["main.server"]
	propagate_module(cm)
	twice = [i for i in tree.items if isinstance(i, A.FunctionDecl) and i.name == "twice"][0]
	assert [type(s).__name__ for s in twice.body.statements] == ["VariableDecl", "ReturnStmt"]


def test_propagation_inside_lambda_returns_from_the_lambda() -> None:
	src = NOT_FOUND + """
main() {
	step = (n: int): result<int, NotFound> => {
		v = find(n)
		return v + 1
	}
	print(1)
}
"""
	lowered = _lower(src)
	assert lowered.diagnostics == []
	# The enclosing function gains no early return of its own.
	decl, stmt = _fn(lowered, "main").body.statements
	assert isinstance(decl, A.VariableDecl)
	assert isinstance(stmt, A.ExprStmt)

	temp, check, value, ret = decl.value.body.statements
	assert isinstance(temp, A.ResultTemp)
	(early,) = check.then_block.statements
	assert isinstance(early, A.ReturnStmt)
	assert isinstance(early.value, A.Name) and early.value.ident == temp.name
	assert isinstance(value.value, A.ResultValue)
	assert isinstance(ret.value, A.WrapOk)
