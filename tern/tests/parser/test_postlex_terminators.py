from __future__ import annotations

from tern.ternc.parser import tokenize_for_parser


def _kinds(src: str) -> list[str]:
	return [t.kind for t in tokenize_for_parser(src)]


def test_newlines_become_terminators_after_values():
	assert _kinds("a = 1\nb = 2\n") == ["NAME", "_EQUAL", "INT", "_TERM", "NAME", "_EQUAL", "INT", "_TERM"]


def test_no_terminators_inside_parentheses():
	assert _kinds("f(1,\n2)\n") == ["NAME", "_LPAR", "INT", "_COMMA", "INT", "_RPAR", "_TERM"]


def test_leading_dot_continues_previous_line():
	assert _kinds("x = a\n  .b\n") == ["NAME", "_EQUAL", "NAME", "_DOT", "NAME", "_TERM"]


def test_else_on_next_line_continues_if():
	kinds = _kinds("if a {\n}\nelse {\n}\n")
	assert kinds == ["_IF", "NAME", "_LBRACE", "_RBRACE", "_ELSE", "_LBRACE", "_RBRACE", "_TERM"]


def test_semicolons_collapse():
	assert _kinds("a;; b;") == ["NAME", "_TERM", "NAME", "_TERM"]


def test_function_heads_are_marked_at_statement_start():
	toks = tokenize_for_parser("add(a, b) = a + b\nadd(1, 2)\n")
	assert toks[0].kind == "FN_NAME"
	second = toks[[t.kind for t in toks].index("_TERM") + 1]
	assert second.kind == "NAME"
	assert second.text == "add"


def test_function_head_after_export():
	assert _kinds("export f(): int { return 1 }")[:2] == ["EXPORT", "FN_NAME"]


def test_lambda_parameter_lists():
	assert _kinds("g = (x) => x")[2] == "_LAMBDA_LPAR"
	assert _kinds("h = (x)")[2] == "_LPAR"
	assert _kinds("k = (x: int): int => x")[2] == "_LAMBDA_LPAR"


def test_generic_return_type_brace_opens_body():
	kinds = _kinds("f(): list<int> {\n}\n")
	assert kinds == ["FN_NAME", "_LPAR", "_RPAR", "_COLON", "NAME", "LT", "NAME", "GT", "_LBRACE", "_RBRACE", "_TERM"]
