# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Hand-written lexer for Tern source text.

The lexer is a small mode machine driven by a frame stack:

* `code`: ordinary tokens (the root frame, and the inside of `{...}` holes
  in strings and markup),
* `string`: the body of a quoted or triple-quoted string (interpolation
  holes push a `code` frame),
* `tag`: inside `<tag ...>` (attributes),
* `children`: between `<tag>` and `</tag>` (text, nested elements, holes).

It never raises: anything it cannot make sense of becomes an `INVALID` token
whose `value` is a human-readable message, so the parser can report one
coherent SyntaxError at the right place.

Token kinds are the terminal names used by `grammar.lark`; kinds starting with
an underscore are punctuation that lark filters out of the parse tree.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from ..core.span import Span


class TokenCategory(str, Enum):
	IDENTIFIER = "identifier"
	KEYWORD = "keyword"
	LITERAL = "literal"
	OPERATOR = "operator"
	PUNCTUATION = "punctuation"
	MARKUP = "markup-delimiter"
	INTERPOLATION = "interpolation-boundary"
	NEWLINE = "newline"
	INVALID = "invalid"


@dataclass(frozen=True)
class Token:
	"""One lexed token. `value` holds decoded text for literals/markup, or the error message for INVALID."""

	kind: str
	lexeme: str
	span: Span
	value: Optional[str] = None

	@property
	def text(self) -> str:
		return self.lexeme if self.value is None else self.value

	@property
	def category(self) -> TokenCategory:
		return _category_of(self.kind)


KEYWORDS = {
	"import": "_IMPORT",
	"from": "_FROM",
	"export": "EXPORT",
	"expose": "EXPOSE",
	"type": "_TYPE",
	"enum": "_ENUM",
	"match": "MATCH",
	"if": "_IF",
	"else": "_ELSE",
	"for": "_FOR",
	"in": "_IN",
	"while": "_WHILE",
	"return": "RETURN",
	"break": "BREAK",
	"continue": "CONTINUE",
	"true": "TRUE",
	"false": "FALSE",
	"null": "NULL",
	"mut": "_MUT",
	"as": "_AS",
}

# Longest operators first.
OPERATORS = [
	("+=", "AUG_ASSIGN"),
	("-=", "AUG_ASSIGN"),
	("*=", "AUG_ASSIGN"),
	("/=", "AUG_ASSIGN"),
	("%=", "AUG_ASSIGN"),
	("=>", "_ARROW"),
	("->", "_THIN_ARROW"),
	("==", "EQ"),
	("!=", "NE"),
	("<=", "LE"),
	(">=", "GE"),
	("&&", "AND"),
	("||", "OR"),
	("?:", "ELVIS"),
	("??", "COALESCE"),
	("?.", "QDOT"),
	("+", "PLUS"),
	("-", "MINUS"),
	("*", "STAR"),
	("/", "SLASH"),
	("%", "PERCENT"),
	("<", "LT"),
	(">", "GT"),
	("=", "_EQUAL"),
	("!", "NOT"),
	("?", "QMARK"),
	("|", "_PIPE"),
	(".", "_DOT"),
	(",", "_COMMA"),
	(":", "_COLON"),
	(";", "SEMI"),
	("(", "_LPAR"),
	(")", "_RPAR"),
	("[", "_LSQB"),
	("]", "_RSQB"),
]

# Tokens after which an expression has ended; `<` following one of these is
# a comparison, never markup.
VALUE_END = {
	"NAME",
	"INT",
	"FLOAT",
	"STRING",
	"_ISTR_END",
	"TRUE",
	"FALSE",
	"NULL",
	"_RPAR",
	"_RSQB",
	"_RBRACE",
	"TAG_CLOSE",
	"_TAG_SELF_CLOSE",
	"QMARK",
}

# Tokens after which `{` opens an object literal / record type rather than a block.
OBJECT_PRECEDERS = {
	"_IMPORT",
	"_EQUAL",
	"_LPAR",
	"_LSQB",
	"_COMMA",
	"_COLON",
	"RETURN",
	"PLUS",
	"MINUS",
	"STAR",
	"SLASH",
	"PERCENT",
	"EQ",
	"NE",
	"LT",
	"GT",
	"LE",
	"GE",
	"AND",
	"OR",
	"NOT",
	"ELVIS",
	"COALESCE",
	"AUG_ASSIGN",
	"_PIPE",
	"_THIN_ARROW",
	"_HOLE_OPEN",
	"_INTERP_OPEN",
	"_LOBJ",
}

_MARKUP_KINDS = {"TAG_OPEN", "TAG_CLOSE", "_TAG_END", "_TAG_SELF_CLOSE", "ATTR_NAME", "EVENT_ATTR", "MARKUP_TEXT", "_HOLE_OPEN", "_HOLE_CLOSE"}
_INTERP_KINDS = {"_ISTR_START", "_ISTR_END", "STR_FRAG", "_INTERP_OPEN", "_INTERP_CLOSE"}
_LITERAL_KINDS = {"INT", "FLOAT", "STRING", "TRUE", "FALSE", "NULL"}
_OPERATOR_KINDS = {k for _, k in OPERATORS if not k.startswith("_")} - {"SEMI"}


def _category_of(kind: str) -> TokenCategory:
	if kind in ("NAME", "FN_NAME"):
		return TokenCategory.IDENTIFIER
	if kind in _LITERAL_KINDS:
		return TokenCategory.LITERAL
	if kind in _MARKUP_KINDS:
		return TokenCategory.MARKUP
	if kind in _INTERP_KINDS:
		return TokenCategory.INTERPOLATION
	if kind == "INVALID":
		return TokenCategory.INVALID
	if kind == "NEWLINE":
		return TokenCategory.NEWLINE
	if kind in KEYWORDS.values():
		return TokenCategory.KEYWORD
	if kind in _OPERATOR_KINDS or kind in ("_ARROW", "_THIN_ARROW", "_EQUAL", "_PIPE"):
		return TokenCategory.OPERATOR
	return TokenCategory.PUNCTUATION


_HEX_DIGITS = frozenset("0123456789abcdefABCDEF")

_SIMPLE_ESCAPES = {
	"n": "\n",
	"t": "\t",
	"r": "\r",
	"0": "\0",
	"\\": "\\",
	'"': '"',
	"'": "'",
	"{": "{",
	"}": "}",
}


@dataclass
class _Frame:
	kind: str  # "code" | "interp" | "hole" | "string" | "tag" | "children"
	start: Span = field(default_factory=Span)
	depth: int = 0
	# string frames
	quote: str = ""
	buf: List[str] = field(default_factory=list)
	buf_start: Optional[tuple[int, int, int]] = None
	has_holes: bool = False
	# children frames
	tag: str = ""


class Lexer:
	"""Tokenise one source file. Use `tokenize()`; the lexer is single-use."""

	def __init__(self, source: str, file: Optional[str] = None) -> None:
		self.src = source
		self.file = file
		self.pos = 0
		self.line = 1
		self.col = 1
		self.tokens: List[Token] = []
		self._stack: List[_Frame] = [_Frame(kind="code")]
		self._last_kind: Optional[str] = None

	# Public entry point -------------------------------------------------

	def tokenize(self) -> List[Token]:
		while self.pos < len(self.src):
			frame = self._stack[-1]
			if frame.kind == "string":
				self._lex_string_part(frame)
			elif frame.kind == "tag":
				self._lex_tag_part(frame)
			elif frame.kind == "children":
				self._lex_children_part(frame)
			else:
				self._lex_code_token(frame)
		self._close_dangling_frames()
		return self.tokens

	# Position helpers ----------------------------------------------------

	def _peek(self, offset: int = 0) -> str:
		idx = self.pos + offset
		return self.src[idx] if idx < len(self.src) else ""

	def _mark(self) -> tuple[int, int, int]:
		return (self.pos, self.line, self.col)

	def _advance(self, n: int = 1) -> str:
		out = self.src[self.pos : self.pos + n]
		for ch in out:
			if ch == "\n":
				self.line += 1
				self.col = 1
			else:
				self.col += 1
		self.pos += len(out)
		return out

	def _span_from(self, mark: tuple[int, int, int]) -> Span:
		return Span(self.file, mark[1], mark[2], self.line, self.col)

	def _emit(self, kind: str, mark: tuple[int, int, int], value: Optional[str] = None) -> Token:
		tok = Token(kind, self.src[mark[0] : self.pos], self._span_from(mark), value)
		self.tokens.append(tok)
		if kind != "NEWLINE":
			self._last_kind = kind
		return tok

	def _invalid(self, mark: tuple[int, int, int], message: str) -> None:
		self._emit("INVALID", mark, message)

	# Code mode -----------------------------------------------------------

	def _lex_code_token(self, frame: _Frame) -> None:
		ch = self._peek()
		if ch in " \t\r":
			self._advance()
			return
		if ch == "\n":
			mark = self._mark()
			self._advance()
			self._emit("NEWLINE", mark)
			return
		if ch == "/" and self._peek(1) == "/":
			while self.pos < len(self.src) and self._peek() != "\n":
				self._advance()
			return
		if ch == "/" and self._peek(1) == "*":
			mark = self._mark()
			end = self.src.find("*/", self.pos + 2)
			if end < 0:
				self._advance(len(self.src) - self.pos)
				self._invalid(mark, "unterminated block comment")
				return
			self._advance(end + 2 - self.pos)
			return
		if ch == "r" and self._peek(1) == '"':
			self._lex_raw_string()
			return
		if ch.isalpha() or ch == "_":
			self._lex_word()
			return
		if ch.isdigit():
			self._lex_number()
			return
		if ch == '"':
			mark = self._mark()
			quote = '"""' if self.src.startswith('"""', self.pos) else '"'
			self._advance(len(quote))
			self._stack.append(_Frame(kind="string", start=self._span_from(mark), quote=quote, buf_start=mark))
			return
		if ch == "'":
			self._lex_single_quoted()
			return
		if ch == "{":
			mark = self._mark()
			self._advance()
			if frame.kind != "code":
				frame.depth += 1
			kind = "_LOBJ" if self._last_kind is None or self._last_kind in OBJECT_PRECEDERS else "_LBRACE"
			self._emit(kind, mark)
			return
		if ch == "}":
			mark = self._mark()
			self._advance()
			if frame.kind in ("interp", "hole") and frame.depth == 0:
				self._stack.pop()
				self._emit("_INTERP_CLOSE" if frame.kind == "interp" else "_HOLE_CLOSE", mark)
				return
			if frame.depth:
				frame.depth -= 1
			self._emit("_RBRACE", mark)
			return
		if ch == "<" and self._starts_markup():
			self._lex_tag_open()
			return
		for text, kind in OPERATORS:
			if self.src.startswith(text, self.pos):
				mark = self._mark()
				self._advance(len(text))
				self._emit(kind, mark, text if not kind.startswith("_") else None)
				return
		mark = self._mark()
		self._advance()
		self._invalid(mark, f"unrecognized character {ch!r}")

	def _lex_word(self) -> None:
		mark = self._mark()
		while self._peek() and (self._peek().isalnum() or self._peek() == "_"):
			self._advance()
		word = self.src[mark[0] : self.pos]
		kind = KEYWORDS.get(word, "NAME")
		if kind != "NAME" and word != "mut" and self._keyword_used_as_name():
			kind = "NAME"
		self._emit(kind, mark, word if kind == "NAME" else None)

	def _keyword_used_as_name(self) -> bool:
		"""Keywords after `.`/`?.` and in `key:` position inside objects are plain names."""
		if self._last_kind in ("_DOT", "QDOT"):
			return True
		if self._last_kind in ("_LOBJ", "_COMMA"):
			idx = self.pos
			while idx < len(self.src) and self.src[idx] in " \t":
				idx += 1
			return idx < len(self.src) and self.src[idx] == ":" and not self.src.startswith("::", idx)
		return False

	def _lex_number(self) -> None:
		mark = self._mark()
		kind = "INT"
		while self._peek().isdigit() or (self._peek() == "_" and self._peek(1).isdigit()):
			self._advance()
		if self._peek() == "." and self._peek(1).isdigit():
			kind = "FLOAT"
			self._advance()
			while self._peek().isdigit() or (self._peek() == "_" and self._peek(1).isdigit()):
				self._advance()
		if self._peek() in ("e", "E") and (
			self._peek(1).isdigit() or (self._peek(1) in "+-" and self._peek(2).isdigit())
		):
			kind = "FLOAT"
			self._advance(2)
			while self._peek().isdigit():
				self._advance()
		text = self.src[mark[0] : self.pos].replace("_", "")
		self._emit(kind, mark, text)

	def _starts_markup(self) -> bool:
		if self._last_kind in VALUE_END:
			return False
		nxt = self._peek(1)
		return nxt.isalpha() or nxt == ">"

	# Strings -------------------------------------------------------------

	def _read_escape(self) -> str:
		"""
		Consume a backslash escape (the backslash is at `pos`) and return its text.

		Unicode escapes outside the scalar value range (above U+10FFFF, or a
		surrogate) become an INVALID token and contribute no text.
		"""
		mark = self._mark()
		self._advance()  # backslash
		ch = self._peek()
		if ch == "":
			return "\\"
		if ch in _SIMPLE_ESCAPES:
			self._advance()
			return _SIMPLE_ESCAPES[ch]
		if ch == "u":
			if self._peek(1) == "{":
				end = self.src.find("}", self.pos)
				digits = self.src[self.pos + 2 : end] if end > 0 else ""
				if digits and all(c in _HEX_DIGITS for c in digits):
					self._advance(end + 1 - self.pos)
					return self._code_point(mark, digits)
			digits = self.src[self.pos + 1 : self.pos + 5]
			if len(digits) == 4 and all(c in _HEX_DIGITS for c in digits):
				self._advance(5)
				return self._code_point(mark, digits)
		# Unknown escapes are kept verbatim.
		self._advance()
		return "\\" + ch

	def _code_point(self, mark: tuple[int, int, int], digits: str) -> str:
		value = int(digits, 16)
		if value > 0x10FFFF or 0xD800 <= value <= 0xDFFF:
			self._invalid(mark, f"invalid unicode escape: U+{digits.upper()} is not a unicode scalar value")
			return ""
		return chr(value)

	def _lex_string_part(self, frame: _Frame) -> None:
		ch = self._peek()
		if self.src.startswith(frame.quote, self.pos):
			self._flush_fragment(frame)
			mark = self._mark()
			self._advance(len(frame.quote))
			self._stack.pop()
			if frame.has_holes:
				self._emit("_ISTR_END", mark)
			else:
				start = frame.buf_start or mark
				tok = Token("STRING", self.src[start[0] : self.pos], Span(self.file, start[1], start[2], self.line, self.col), "".join(frame.buf))
				self.tokens.append(tok)
				self._last_kind = "STRING"
			return
		if ch == "\n" and frame.quote == '"':
			start = frame.buf_start or self._mark()
			self._stack.pop()
			self._invalid(start, "unterminated string literal")
			return
		if frame.buf_start is None:
			frame.buf_start = self._mark()
		if ch == "\\":
			frame.buf.append(self._read_escape())
			return
		if ch == "{":
			if not frame.has_holes:
				# The string turns out to be interpolated: open it at its start.
				start = frame.buf_start
				opening = Token("_ISTR_START", frame.quote, Span(self.file, frame.start.line, frame.start.column, frame.start.line, (frame.start.column or 0) + len(frame.quote)))
				self.tokens.append(opening)
				frame.has_holes = True
				frame.buf_start = start
			self._flush_fragment(frame)
			mark = self._mark()
			self._advance()
			self._emit("_INTERP_OPEN", mark)
			self._stack.append(_Frame(kind="interp", start=self._span_from(mark)))
			return
		frame.buf.append(self._advance())

	def _flush_fragment(self, frame: _Frame) -> None:
		if not frame.has_holes:
			return
		if frame.buf:
			start = frame.buf_start or self._mark()
			self.tokens.append(
				Token("STR_FRAG", self.src[start[0] : self.pos], Span(self.file, start[1], start[2], self.line, self.col), "".join(frame.buf))
			)
		frame.buf = []
		frame.buf_start = None

	def _lex_raw_string(self) -> None:
		mark = self._mark()
		self._advance(2)
		start = self.pos
		while self.pos < len(self.src) and self._peek() not in ('"', "\n"):
			self._advance()
		if self._peek() != '"':
			self._invalid(mark, "unterminated raw string literal")
			return
		text = self.src[start : self.pos]
		self._advance()
		self._emit("STRING", mark, text)

	def _lex_single_quoted(self) -> None:
		mark = self._mark()
		self._advance()
		buf: List[str] = []
		while self.pos < len(self.src) and self._peek() not in ("'", "\n"):
			if self._peek() == "\\":
				buf.append(self._read_escape())
			else:
				buf.append(self._advance())
		if self._peek() != "'":
			self._invalid(mark, "unterminated string literal")
			return
		self._advance()
		self._emit("STRING", mark, "".join(buf))

	# Markup --------------------------------------------------------------

	def _read_tag_name(self) -> str:
		start = self.pos
		while self._peek() and (self._peek().isalnum() or self._peek() in "_-."):
			self._advance()
		return self.src[start : self.pos]

	def _lex_tag_open(self) -> None:
		mark = self._mark()
		self._advance()  # '<'
		name = self._read_tag_name()
		self._emit("TAG_OPEN", mark, name)
		self._stack.append(_Frame(kind="tag", start=self._span_from(mark), tag=name))

	def _lex_tag_part(self, frame: _Frame) -> None:
		ch = self._peek()
		if ch in " \t\r\n":
			self._advance()
			return
		mark = self._mark()
		if ch == "/" and self._peek(1) == ">":
			self._advance(2)
			self._stack.pop()
			self._emit("_TAG_SELF_CLOSE", mark)
			return
		if ch == ">":
			self._advance()
			self._stack[-1] = _Frame(kind="children", start=frame.start, tag=frame.tag)
			self._emit("_TAG_END", mark)
			return
		if ch == "{":
			self._advance()
			self._emit("_HOLE_OPEN", mark)
			self._stack.append(_Frame(kind="hole", start=self._span_from(mark)))
			return
		if ch == "=":
			self._advance()
			self._emit("_EQUAL", mark)
			return
		if ch == '"':
			self._advance()
			self._stack.append(_Frame(kind="string", start=self._span_from(mark), quote='"', buf_start=mark))
			return
		if ch == "'":
			self._lex_single_quoted()
			return
		if ch == "@" and (self._peek(1).isalpha()):
			self._advance()
			name = self._read_tag_name()
			self._emit("EVENT_ATTR", mark, name)
			return
		if ch.isalpha() or ch == "_":
			name = self._read_tag_name()
			self._emit("ATTR_NAME", mark, name)
			return
		self._advance()
		self._invalid(mark, f"unexpected character {ch!r} in markup tag <{frame.tag}>")

	def _lex_children_part(self, frame: _Frame) -> None:
		ch = self._peek()
		mark = self._mark()
		if ch == "<" and self._peek(1) == "/":
			self._advance(2)
			name = self._read_tag_name()
			while self._peek() in (" ", "\t"):
				self._advance()
			if self._peek() != ">":
				self._invalid(mark, f"malformed closing tag for <{frame.tag}>")
				self._stack.pop()
				return
			self._advance()
			self._stack.pop()
			self._emit("TAG_CLOSE", mark, name)
			return
		if ch == "<" and (self._peek(1).isalpha() or self._peek(1) == ">"):
			self._lex_tag_open()
			return
		if ch == "{":
			self._advance()
			self._emit("_HOLE_OPEN", mark)
			self._stack.append(_Frame(kind="hole", start=self._span_from(mark)))
			return
		start = self.pos
		while self.pos < len(self.src) and self._peek() not in ("<", "{"):
			self._advance()
		if self.pos == start:
			# A lone '<' that does not start a tag.
			self._advance()
		text = _normalize_markup_text(self.src[start : self.pos])
		if text:
			self._emit("MARKUP_TEXT", mark, text)

	def _close_dangling_frames(self) -> None:
		while len(self._stack) > 1:
			frame = self._stack.pop()
			mark = self._mark()
			if frame.kind == "string":
				self._invalid(mark, "unterminated string literal")
			elif frame.kind == "interp":
				self._invalid(mark, "unterminated interpolation in string literal")
			elif frame.kind == "hole":
				self._invalid(mark, "unterminated '{' expression in markup")
			elif frame.kind in ("tag", "children"):
				self._invalid(mark, f"unterminated markup element <{frame.tag}>")


def _normalize_markup_text(text: str) -> str:
	"""
	Collapse markup text the way JSX does: lines are trimmed, blank lines
	dropped, remaining lines joined with one space. Text on a single line keeps
	its inner spacing.
	"""
	if "\n" not in text:
		return text
	lines = [ln.strip() for ln in text.split("\n")]
	parts = [ln for ln in lines if ln]
	if not parts:
		return ""
	out = " ".join(parts)
	# Keep a leading/trailing space when the text touched an expression on the same line.
	if text[:1] in (" ", "\t") and not text.split("\n", 1)[0].strip() == "":
		out = " " + out
	if text[-1:] in (" ", "\t") and not text.rsplit("\n", 1)[-1].strip() == "":
		out = out + " "
	return out


def tokenize(source: str, file: Optional[str] = None) -> List[Token]:
	"""Convenience wrapper: lex `source` into raw tokens (newlines included)."""
	return Lexer(source, file).tokenize()


__all__ = ["KEYWORDS", "Lexer", "Token", "TokenCategory", "tokenize"]
