# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

from tern.ternc.parser import TokenCategory, tokenize


def _kinds(source: str) -> list[str]:
	return [t.kind for t in tokenize(source) if t.kind != "NEWLINE"]


def test_numbers_strip_separators_and_detect_floats() -> None:
	toks = tokenize("x = 1_000 + 3.14 * 1e3")
	assert [t.kind for t in toks] == ["NAME", "_EQUAL", "INT", "PLUS", "FLOAT", "STAR", "FLOAT"]
	assert toks[2].value == "1000"
	assert toks[4].value == "3.14"


def test_keywords_and_keyword_members() -> None:
	assert _kinds("if x { return }") == ["_IF", "NAME", "_LBRACE", "RETURN", "_RBRACE"]
	# A keyword after '.' is an ordinary member name.
	assert _kinds("a.match") == ["NAME", "_DOT", "NAME"]
	# ... and so is a keyword in key position of an object literal.
	assert _kinds("{ type: 1 }") == ["_LOBJ", "NAME", "_COLON", "INT", "_RBRACE"]


def test_mut_accessor_stays_a_keyword() -> None:
	assert _kinds("count.mut = 1") == ["NAME", "_DOT", "_MUT", "_EQUAL", "INT"]


def test_brace_after_value_opens_block_after_operator_opens_object() -> None:
	assert _kinds("while go {")[-1] == "_LBRACE"
	assert _kinds("p = {")[-1] == "_LOBJ"
	assert _kinds("f({")[-1] == "_LOBJ"


def test_plain_strings_are_single_tokens_with_decoded_value() -> None:
	toks = tokenize('"a\\tb"')
	assert [t.kind for t in toks] == ["STRING"]
	assert toks[0].value == "a\tb"
	assert toks[0].lexeme == '"a\\tb"'


def test_single_quoted_and_raw_strings_never_interpolate() -> None:
	single = tokenize("'no {hole}'")
	assert [t.kind for t in single] == ["STRING"]
	assert single[0].value == "no {hole}"

	raw = tokenize('r"C:\\new {x}"')
	assert [t.kind for t in raw] == ["STRING"]
	assert raw[0].value == "C:\\new {x}"


def test_interpolated_string_token_sequence() -> None:
	toks = tokenize('"hi {name}!"')
	assert [t.kind for t in toks] == [
		"_ISTR_START",
		"STR_FRAG",
		"_INTERP_OPEN",
		"NAME",
		"_INTERP_CLOSE",
		"STR_FRAG",
		"_ISTR_END",
	]
	assert toks[1].value == "hi "
	assert toks[5].value == "!"
	assert toks[0].category is TokenCategory.INTERPOLATION


def test_escaped_brace_is_literal_text() -> None:
	toks = tokenize('"a \\{b}"')
	assert [t.kind for t in toks] == ["STRING"]
	assert toks[0].value == "a {b}"


def test_less_than_after_value_is_comparison() -> None:
	assert _kinds("a < b") == ["NAME", "LT", "NAME"]


def test_markup_element_with_attributes_events_and_holes() -> None:
	toks = [t for t in tokenize('v = <div class="box" @click={go}>{n}</div>') if t.kind != "NEWLINE"]
	assert [t.kind for t in toks] == [
		"NAME",
		"_EQUAL",
		"TAG_OPEN",
		"ATTR_NAME",
		"_EQUAL",
		"STRING",
		"EVENT_ATTR",
		"_EQUAL",
		"_HOLE_OPEN",
		"NAME",
		"_HOLE_CLOSE",
		"_TAG_END",
		"_HOLE_OPEN",
		"NAME",
		"_HOLE_CLOSE",
		"TAG_CLOSE",
	]
	assert toks[2].value == "div"
	assert toks[6].value == "click"
	assert toks[-1].value == "div"
	assert toks[2].category is TokenCategory.MARKUP


def test_markup_text_and_self_closing_tags() -> None:
	toks = tokenize("<p>Hello <br/>world</p>")
	assert [t.kind for t in toks] == [
		"TAG_OPEN",
		"_TAG_END",
		"MARKUP_TEXT",
		"TAG_OPEN",
		"_TAG_SELF_CLOSE",
		"MARKUP_TEXT",
		"TAG_CLOSE",
	]
	assert toks[2].value == "Hello "
	assert toks[5].value == "world"


def test_multiline_markup_text_collapses_whitespace() -> None:
	toks = tokenize("<p>\n\tone\n\ttwo\n</p>")
	text = [t for t in toks if t.kind == "MARKUP_TEXT"]
	assert [t.value for t in text] == ["one two"]


def test_comments_are_skipped() -> None:
	assert _kinds("a // note\n/* block\ncomment */ b") == ["NAME", "NAME"]


def test_invalid_tokens_carry_messages() -> None:
	bad = [t for t in tokenize("x = #") if t.kind == "INVALID"]
	assert [t.value for t in bad] == ["unrecognized character '#'"]
	assert bad[0].category is TokenCategory.INVALID

	assert [t.value for t in tokenize('"abc') if t.kind == "INVALID"] == ["unterminated string literal"]
	assert [t.value for t in tokenize("/* abc") if t.kind == "INVALID"] == ["unterminated block comment"]
	assert [t.value for t in tokenize('r"abc\n') if t.kind == "INVALID"] == ["unterminated raw string literal"]


def test_unterminated_string_stops_at_end_of_line() -> None:
	toks = tokenize('s = "abc\ny = 1')
	kinds = [t.kind for t in toks]
	assert "INVALID" in kinds
	# Lexing resumes on the next line.
	assert kinds[-3:] == ["NAME", "_EQUAL", "INT"]


def test_spans_are_one_based_with_exclusive_end() -> None:
	toks = [t for t in tokenize("ab\n  cd", "f.tn") if t.kind == "NAME"]
	span = toks[1].span
	assert (span.file, span.line, span.column, span.end_line, span.end_column) == ("f.tn", 2, 3, 2, 5)


def test_token_categories() -> None:
	toks = {t.kind: t for t in tokenize("f(x) + 1, y = true\n")}
	assert toks["NAME"].category is TokenCategory.IDENTIFIER
	assert toks["INT"].category is TokenCategory.LITERAL
	assert toks["TRUE"].category is TokenCategory.LITERAL
	assert toks["PLUS"].category is TokenCategory.OPERATOR
	assert toks["_EQUAL"].category is TokenCategory.OPERATOR
	assert toks["_LPAR"].category is TokenCategory.PUNCTUATION
	assert toks["_COMMA"].category is TokenCategory.PUNCTUATION
	assert toks["NEWLINE"].category is TokenCategory.NEWLINE


def test_unicode_escapes() -> None:
	(tok,) = tokenize('"\\u0041\\u{1F600}"')
	assert tok.value == "A\U0001F600"

	bad = [t for t in tokenize('x = "\\u{110000}"') if t.kind == "INVALID"]
	assert [t.value for t in bad] == ["invalid unicode escape: U+110000 is not a unicode scalar value"]
	assert bad[0].span.column == 6
	surrogate = [t.value for t in tokenize('"\\uD800"') if t.kind == "INVALID"]
	assert surrogate == ["invalid unicode escape: U+D800 is not a unicode scalar value"]
