# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Token-stream post-processing between the lexer and the LALR parser.

Two jobs, both pure functions of the token list (no backtracking):

* statement terminators: raw `NEWLINE`/`SEMI` tokens become `_TERM` only where
  a statement can actually end;
* lookahead predicates that the LALR(1) grammar cannot express on its own:
  a function-declaration head (`name(...)` followed by `:`, `=` or `{` at
  statement start) becomes `FN_NAME`, and a parenthesised lambda parameter
  list (`(...)` followed by `=>`) opens with `_LAMBDA_LPAR`.
"""

from __future__ import annotations

from typing import List, Optional

from .lexer import VALUE_END, Token


class TerminatorInserter:
	TERMINABLE = {
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
		"RETURN",
		"BREAK",
		"CONTINUE",
		"TAG_CLOSE",
		"_TAG_SELF_CLOSE",
		"QMARK",
		"GT",
	}

	# A newline before one of these continues the previous line.
	CONTINUATION = {
		"_ELSE",
		"_DOT",
		"QDOT",
		"ELVIS",
		"COALESCE",
		"AND",
		"OR",
	}

	# Openers that suppress newlines until they close.
	_NESTING = {
		"_LPAR": "paren",
		"_LAMBDA_LPAR": "paren",
		"_LSQB": "paren",
		"_LOBJ": "obj",
		"_LBRACE": "block",
		"_HOLE_OPEN": "paren",
		"_INTERP_OPEN": "paren",
	}
	_CLOSERS = {"_RPAR", "_RSQB", "_RBRACE", "_HOLE_CLOSE", "_INTERP_CLOSE"}

	def process(self, tokens: List[Token]) -> List[Token]:
		"""
		Return a new token list with terminators inserted and newlines removed.

		A newline terminates a statement only when:
		- the innermost open bracket is a block (or there is none),
		- the previous significant token can end an expression, and
		- the next significant token is not a continuation (`else`, `.`, `&&` ...).

		Explicit `;` always terminates, but runs of terminators collapse and a
		terminator never opens a block.
		"""
		out: List[Token] = []
		stack: List[str] = []
		pending_match = False
		# Inside `name(...): type` before the body; `>{` there opens the body block.
		in_fn_head = False

		for idx, tok in enumerate(tokens):
			kind = tok.kind
			if kind == "NEWLINE":
				if self._at_block_level(stack) and out and out[-1].kind in self.TERMINABLE:
					nxt = _next_significant(tokens, idx + 1)
					if nxt is None or nxt.kind not in self.CONTINUATION:
						out.append(Token("_TERM", tok.lexeme, tok.span))
				continue
			if kind == "SEMI":
				if out and out[-1].kind not in ("_TERM", "_LBRACE"):
					out.append(Token("_TERM", tok.lexeme, tok.span))
				continue

			if kind == "NAME" and self._at_statement_start(out, stack) and _is_function_head(tokens, idx):
				tok = Token("FN_NAME", tok.lexeme, tok.span, tok.value)
			elif kind == "_LPAR" and (not out or out[-1].kind not in VALUE_END) and _is_lambda_params(tokens, idx):
				tok = Token("_LAMBDA_LPAR", tok.lexeme, tok.span)
			elif kind == "_LOBJ" and in_fn_head and out and out[-1].kind == "GT":
				tok = Token("_LBRACE", tok.lexeme, tok.span)
			kind = tok.kind
			if kind == "FN_NAME":
				in_fn_head = True
			elif kind in ("_LBRACE", "_EQUAL") and in_fn_head and not (stack and stack[-1] == "obj"):
				in_fn_head = False

			if kind == "MATCH":
				pending_match = True
			if kind in self._NESTING:
				nesting = self._NESTING[kind]
				if kind == "_LBRACE" and pending_match:
					nesting = "match"
					pending_match = False
				stack.append(nesting)
			elif kind in self._CLOSERS and stack:
				stack.pop()
			out.append(tok)
		return out

	@staticmethod
	def _at_block_level(stack: List[str]) -> bool:
		return not stack or stack[-1] in ("block", "match")

	@staticmethod
	def _at_statement_start(out: List[Token], stack: List[str]) -> bool:
		if stack and stack[-1] != "block":
			return False
		if not out:
			return True
		return out[-1].kind in ("_TERM", "_LBRACE", "EXPORT", "EXPOSE")


def _next_significant(tokens: List[Token], start: int) -> Optional[Token]:
	for tok in tokens[start:]:
		if tok.kind != "NEWLINE":
			return tok
	return None


def _matching_close(tokens: List[Token], open_idx: int) -> Optional[int]:
	"""Index of the `)` matching the `(` at `open_idx`, or None."""
	depth = 0
	for idx in range(open_idx, len(tokens)):
		kind = tokens[idx].kind
		if kind in ("_LPAR", "_LSQB", "_LOBJ", "_LBRACE", "_HOLE_OPEN", "_INTERP_OPEN"):
			depth += 1
		elif kind in ("_RPAR", "_RSQB", "_RBRACE", "_HOLE_CLOSE", "_INTERP_CLOSE"):
			depth -= 1
			if depth == 0:
				return idx if kind == "_RPAR" else None
	return None


def _is_function_head(tokens: List[Token], name_idx: int) -> bool:
	"""`name(` ... `)` followed directly by `:`, `=` or `{`."""
	if name_idx + 1 >= len(tokens) or tokens[name_idx + 1].kind != "_LPAR":
		return False
	close = _matching_close(tokens, name_idx + 1)
	if close is None or close + 1 >= len(tokens):
		return False
	return tokens[close + 1].kind in ("_COLON", "_EQUAL", "_LBRACE")


# Tokens that may appear in a lambda's return-type annotation.
_TYPE_TOKENS = {
	"NAME",
	"NULL",
	"LT",
	"GT",
	"QMARK",
	"_PIPE",
	"_COMMA",
	"_COLON",
	"_LPAR",
	"_RPAR",
	"_LOBJ",
	"_RBRACE",
	"_THIN_ARROW",
}


def _is_lambda_params(tokens: List[Token], open_idx: int) -> bool:
	"""`(` ... `)` followed by `=>`, or by `: <type> =>`."""
	close = _matching_close(tokens, open_idx)
	if close is None or close + 1 >= len(tokens):
		return False
	nxt = tokens[close + 1].kind
	if nxt == "_ARROW":
		return True
	if nxt != "_COLON":
		return False
	depth = 0
	for tok in tokens[close + 2 :]:
		if tok.kind == "_ARROW" and depth == 0:
			return True
		if tok.kind not in _TYPE_TOKENS:
			return False
		if tok.kind in ("_LPAR", "_LOBJ"):
			depth += 1
		elif tok.kind in ("_RPAR", "_RBRACE"):
			depth -= 1
			if depth < 0:
				return False
	return False


__all__ = ["TerminatorInserter"]
