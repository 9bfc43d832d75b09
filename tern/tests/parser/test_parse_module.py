# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

import pytest

from tern.ternc.parser import ParseError, parse_module
from tern.ternc.parser import ast as A


def _items(src: str) -> tuple:
	return parse_module(src, "m.tn").items


def test_import_with_alias() -> None:
	(imp,) = _items('import { a, B as C } from "./x.server"\n')
	assert isinstance(imp, A.ImportDecl)
	assert imp.source == "./x.server"
	assert [(s.name, s.alias, s.local_name) for s in imp.names] == [("a", None, "a"), ("B", "C", "C")]


def test_type_enum_and_expose_declarations() -> None:
	src = (
		"type User = { id: int, name: str }\n"
		'export enum Role { Admin = "admin", Guest }\n'
		"expose getUser(id: int): User? = null\n"
	)
	type_decl, export, expose = _items(src)

	assert isinstance(type_decl, A.TypeDecl)
	assert type_decl.name == "User"
	assert isinstance(type_decl.type_expr, A.RecordTypeExpr)
	assert [f.name for f in type_decl.type_expr.fields] == ["id", "name"]

	assert isinstance(export, A.ExportDecl)
	enum = export.decl
	assert isinstance(enum, A.EnumDecl)
	assert [v.name for v in enum.variants] == ["Admin", "Guest"]
	assert enum.variants[0].backing.value == "admin"
	assert enum.variants[1].backing is None

	assert isinstance(expose, A.ExposeDecl)
	assert expose.fn.name == "getUser"
	assert [p.name for p in expose.fn.params] == ["id"]
	assert isinstance(expose.fn.ret_type, A.NullableTypeExpr)
	assert expose.fn.ret_type.inner.name == "User"


def test_assignment_forms_in_function_body() -> None:
	src = """
main() {
	count = 0
	count.mut += 1
	total += 2
	xs[0] = 5
	a, b = pair()
	for i, x in xs {
		print(x)
	}
}
"""
	(fn,) = _items(src)
	assert isinstance(fn, A.FunctionDecl)
	decl, mut, bare, index, destructure, loop = fn.body.statements

	assert isinstance(decl, A.VariableDecl) and decl.name == "count"
	assert isinstance(mut, A.MutationStmt)
	assert (mut.target, mut.op, mut.accessor) == ("count", "+=", True)
	assert isinstance(bare, A.MutationStmt)
	assert (bare.target, bare.accessor) == ("total", False)
	assert isinstance(index, A.IndexAssign)
	assert isinstance(destructure, A.DestructureStmt)
	assert destructure.names == ("a", "b")
	assert isinstance(loop, A.ForStmt)
	assert (loop.index_name, loop.item_name) == ("i", "x")
	(call_stmt,) = loop.body.statements
	assert isinstance(call_stmt, A.ExprStmt)
	assert isinstance(call_stmt.expr, A.Call)


def test_match_lambda_string_and_markup_expressions() -> None:
	src = """
label(n: int) = match n {
	0 = "zero"
	_ = "many"
}
inc = (x: int): int => x + 1
msg = "n = {n}"
view = <div class="a" @click={go}>{msg}</div>
"""
	label, inc, msg, view = _items(src)

	match = label.body
	assert isinstance(match, A.MatchExpr)
	assert isinstance(match.subject, A.Name)
	assert [arm.is_wildcard for arm in match.arms] == [False, True]
	assert match.arms[0].pattern.value == 0

	lam = inc.value
	assert isinstance(lam, A.Lambda)
	assert [p.name for p in lam.params] == ["x"]
	assert lam.ret_type.name == "int"
	assert isinstance(lam.body, A.Binary)

	istr = msg.value
	assert isinstance(istr, A.InterpolatedString)
	assert istr.parts[0] == "n = "
	assert isinstance(istr.parts[1], A.Name)

	el = view.value
	assert isinstance(el, A.MarkupElement)
	assert el.tag == "div"
	assert [(a.name, a.event) for a in el.attrs] == [("class", False), ("click", True)]
	assert el.attrs[0].value.value == "a"
	assert isinstance(el.children[0], A.Name)


def test_else_if_chain() -> None:
	src = """
if a {
	x = 1
} else if b {
	x = 2
} else {
	x = 3
}
"""
	(stmt,) = _items(src)
	assert isinstance(stmt, A.IfStmt)
	assert isinstance(stmt.else_block, A.IfStmt)
	assert isinstance(stmt.else_block.else_block, A.Block)


def test_spans_carry_the_file_name() -> None:
	(decl,) = _items("x = 1\n")
	assert decl.loc.file == "m.tn"
	assert decl.loc.line == 1


def test_unexpected_token_reports_position() -> None:
	with pytest.raises(ParseError) as exc:
		parse_module("x = = 1\n", "bad.tn")
	assert str(exc.value).startswith("unexpected '='")
	assert (exc.value.loc.file, exc.value.loc.line, exc.value.loc.column) == ("bad.tn", 1, 5)


def test_invalid_character_is_a_parse_error() -> None:
	with pytest.raises(ParseError, match="unrecognized character '#'"):
		parse_module("x = #\n")


def test_mismatched_closing_tag() -> None:
	with pytest.raises(ParseError, match=r"mismatched closing tag </span>, expected </div>"):
		parse_module("v = <div></span>\n")


def test_cannot_bind_wildcard() -> None:
	with pytest.raises(ParseError, match="cannot bind to '_'"):
		parse_module("_ = 1\n")
