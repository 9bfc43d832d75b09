from __future__ import annotations

from tern.ternc.checker import ResultMode, check_program, collect_module
from tern.ternc.core.contexts import context_for_path, module_id_for_path
from tern.ternc.parser import ast as A
from tern.ternc.parser import parse_module

LOAD = """
load(id: int): result<int, error> {
	if id < 0 {
		return err(error("negative id"))
	}
	return id
}
"""


def _check(src: str, path: str = "main.server.tn"):
	tree = parse_module(src, path)
	info = collect_module(module_id_for_path(path), path, context_for_path(path), tree)
	cm = check_program([info])[module_id_for_path(path)]
	return cm, list(info.diagnostics) + cm.diagnostics


def _calls_to(cm, name: str) -> list:
	return [rc for rc in cm.result_calls.values() if rc.callee == name]


def test_result_function_checks_cleanly():
	cm, diags = _check(LOAD)
	assert diags == []
	fn = cm.ast.items[0]
	result = cm.fn_results[fn.node_id]
	assert result.ok.render() == "int"
	assert result.err.render() == "error"


def test_unhandled_result_outside_result_function_warns():
	src = LOAD + """
main() {
	n = load(1)
	print(n)
}
"""
	cm, diags = _check(src)
	assert [(d.code, d.severity) for d in diags] == [("W-UNHANDLED-RESULT", "warning")]
	assert diags[0].message.startswith("unhandled error from 'load'")
	(rc,) = _calls_to(cm, "load")
	assert rc.mode is ResultMode.UNWRAP


def test_destructured_result_is_handled():
	src = LOAD + """
main() {
	v, e = load(1)
	print(v)
}
"""
	cm, diags = _check(src)
	assert diags == []
	(rc,) = _calls_to(cm, "load")
	assert rc.mode is ResultMode.DESTRUCTURE


def test_call_inside_result_function_propagates():
	src = LOAD + """
double(id: int): result<int, error> {
	n = load(id)
	return n * 2
}
"""
	cm, diags = _check(src)
	assert diags == []
	(rc,) = _calls_to(cm, "load")
	assert rc.mode is ResultMode.PROPAGATE
	assert rc.hidden is False


def test_error_type_must_carry_a_message():
	src = """
type Bad = { code: int }
fail(): result<int, Bad> = 1
"""
	_, diags = _check(src)
	assert diags
	assert all(d.phase == "typecheck" for d in diags)


def test_record_with_message_is_an_error_type():
	src = """
type NotFound = { message: str, id: int }
find(id: int): result<int, NotFound> {
	if id < 0 {
		return err({ message: "missing", id: id })
	}
	return id
}
"""
	cm, diags = _check(src)
	assert diags == []
	fn = cm.ast.items[1]
	assert isinstance(fn, A.FunctionDecl)
	assert cm.fn_results[fn.node_id].err.render() == "NotFound"


def test_validate_is_a_hidden_result_call():
	src = """
type User = { id: int, name: str }
load(text: str): result<str, error> {
	u = parse(text).validate(User)
	return u.name
}
"""
	cm, diags = _check(src)
	assert diags == []
	(rc,) = _calls_to(cm, "validate(User)")
	assert rc.mode is ResultMode.PROPAGATE
	assert rc.hidden is True
	assert rc.ok.render() == "User"


def test_unknown_value_must_be_validated():
	_, diags = _check("n = parse(\"1\") + 1\n")
	assert "value of type 'unknown' must be validated before use (call .validate(T))" in [d.message for d in diags]
