# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Tern parser: token stream -> lark LALR parse tree -> AST.

The grammar lives in `grammar.lark` and declares every terminal; tokens come
from our own lexer (`lexer.py`) after terminator insertion (`postlex.py`) and
are fed to lark's interactive LALR parser one at a time. lark never sees
source text.

Parsing stops at the first malformed construct with a `ParseError` carrying
the offending span; the driver turns it into a `SyntaxError` diagnostic.
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional

from lark import Lark, Token as LarkToken, Tree
from lark.exceptions import UnexpectedInput, UnexpectedToken
from lark.lexer import Lexer

from ..core.span import Span
from .ast import (
	Binary,
	Block,
	BreakStmt,
	Call,
	ContinueStmt,
	DestructureStmt,
	EnumDecl,
	EnumVariant,
	ExportDecl,
	ExposeDecl,
	Expr,
	ExprStmt,
	ForStmt,
	FunctionDecl,
	FunctionTypeExpr,
	IfStmt,
	ImportDecl,
	ImportSpec,
	Index,
	IndexAssign,
	InterpolatedString,
	Lambda,
	ListLiteral,
	Literal,
	MarkupAttr,
	MarkupElement,
	MarkupText,
	MatchArm,
	MatchExpr,
	Member,
	Module,
	MutAccess,
	MutationStmt,
	Name,
	Node,
	NullableTypeExpr,
	ObjectEntry,
	ObjectLiteral,
	Param,
	RecordFieldExpr,
	RecordTypeExpr,
	ReturnStmt,
	TupleLiteral,
	TupleTypeExpr,
	TypeDecl,
	TypeExpr,
	TypeRef,
	Unary,
	UnionTypeExpr,
	VariableDecl,
	WhileStmt,
)
from .lexer import Token, tokenize
from .postlex import TerminatorInserter

_GRAMMAR_PATH = Path(__file__).with_name("grammar.lark")
_GRAMMAR_SRC = _GRAMMAR_PATH.read_text()


class ParseError(ValueError):
	"""
	User-facing syntax error.

	A `ValueError` subclass like the other front-end errors; it carries the
	span of the offending token so the driver can pin a diagnostic instead of
	crashing.
	"""

	def __init__(self, message: str, *, loc: Span) -> None:
		super().__init__(message)
		self.loc = loc


class _FedTokens(Lexer):
	"""
	Stand-in lexer for lark.

	lark requires a lexer class; ours never runs because tokens are pushed
	through `parse_interactive()` instead of being pulled from text.
	"""

	def __init__(self, lexer_conf) -> None:
		self.lexer_conf = lexer_conf

	def lex(self, data):  # pragma: no cover - tokens are always fed
		raise NotImplementedError("tokens are fed through the interactive parser")


_PARSER = Lark(
	_GRAMMAR_SRC,
	parser="lalr",
	lexer=_FedTokens,
	start="module",
	propagate_positions=True,
	maybe_placeholders=False,
)

# Friendly names for punctuation in error messages.
_TOKEN_NAMES = {
	"$END": "end of input",
	"_TERM": "end of statement",
	"_LPAR": "'('",
	"_LAMBDA_LPAR": "'('",
	"_RPAR": "')'",
	"_LSQB": "'['",
	"_RSQB": "']'",
	"_LBRACE": "'{'",
	"_LOBJ": "'{'",
	"_RBRACE": "'}'",
	"_COMMA": "','",
	"_COLON": "':'",
	"_EQUAL": "'='",
	"_DOT": "'.'",
	"_ARROW": "'=>'",
	"NAME": "identifier",
	"FN_NAME": "function name",
	"INT": "integer literal",
	"FLOAT": "float literal",
	"STRING": "string literal",
}


def _lark_token(tok: Token) -> LarkToken:
	span = tok.span
	return LarkToken(
		tok.kind,
		tok.text,
		None,
		span.line,
		span.column,
		span.end_line,
		span.end_column,
		None,
	)


def _describe(tok: LarkToken) -> str:
	if tok.type == "$END":
		return "end of input"
	if tok.type == "_TERM":
		return "end of statement"
	text = str(tok)
	return f"'{text}'" if text else _TOKEN_NAMES.get(tok.type, tok.type)


def _expected_summary(expected) -> str:
	names = sorted({_TOKEN_NAMES.get(e, e.lstrip("_").lower()) for e in expected or ()})
	if not names or len(names) > 6:
		return ""
	return " (expected " + ", ".join(names) + ")"


def tokenize_for_parser(source: str, file: Optional[str] = None) -> List[Token]:
	"""Lex and post-process `source` into the token list the grammar consumes."""
	return TerminatorInserter().process(tokenize(source, file))


def parse_tree(source: str, file: Optional[str] = None) -> Tree:
	"""Parse `source` into a raw lark tree (used by tests and `parse_module`)."""
	raw = tokenize(source, file)
	for tok in raw:
		if tok.kind == "INVALID":
			raise ParseError(tok.value or "invalid token", loc=tok.span)
	tokens = TerminatorInserter().process(raw)
	interactive = _PARSER.parse_interactive()
	last: Optional[LarkToken] = None
	try:
		for tok in tokens:
			last = _lark_token(tok)
			interactive.feed_token(last)
		if last is not None:
			end = LarkToken.new_borrow_pos("$END", "", last)
		else:
			end = LarkToken("$END", "", 0, 1, 1, 1, 1, 0)
		return interactive.feed_token(end)
	except UnexpectedToken as exc:
		tok = exc.token
		loc = Span(file, getattr(tok, "line", None), getattr(tok, "column", None), getattr(tok, "end_line", None), getattr(tok, "end_column", None))
		raise ParseError(f"unexpected {_describe(tok)}{_expected_summary(exc.expected)}", loc=loc) from None
	except UnexpectedInput as exc:
		raise ParseError(f"syntax error: {exc}", loc=Span(file, getattr(exc, "line", None), getattr(exc, "column", None))) from None


def parse_module(source: str, file: Optional[str] = None) -> Module:
	"""Parse one source file into a `Module` AST."""
	tree = parse_tree(source, file)
	return _AstBuilder(file).build_module(tree)


class _AstBuilder:
	"""Walks a lark tree into AST nodes, stamping every span with `file`."""

	def __init__(self, file: Optional[str]) -> None:
		self.file = file

	# Locations -----------------------------------------------------------

	def _loc(self, node) -> Span:
		if isinstance(node, LarkToken):
			return Span(self.file, node.line, node.column, node.end_line, node.end_column)
		meta = node.meta
		if not getattr(meta, "empty", True):
			return Span(self.file, meta.line, meta.column, meta.end_line, meta.end_column)
		for child in node.children:
			if isinstance(child, (LarkToken, Tree)):
				return self._loc(child)
		return Span(self.file)

	# Module and declarations ---------------------------------------------

	def build_module(self, tree: Tree) -> Module:
		items = [self._build_item(child) for child in tree.children if isinstance(child, Tree)]
		return Module(self._loc(tree), tuple(items))

	def _build_item(self, tree: Tree) -> Node:
		kind = _name(tree)
		if kind == "import_decl":
			return self._build_import(tree)
		if kind == "type_decl":
			return self._build_type_decl(tree)
		if kind == "enum_decl":
			return self._build_enum_decl(tree)
		if kind == "export_decl":
			inner = next(c for c in tree.children if isinstance(c, Tree))
			if _name(inner) == "export_binding":
				decl: Node = self._build_export_binding(inner)
			else:
				decl = self._build_item(inner)
			return ExportDecl(self._loc(tree), decl)
		if kind == "expose_decl":
			fn_tree = next(c for c in tree.children if isinstance(c, Tree))
			return ExposeDecl(self._loc(tree), self._build_fn_decl(fn_tree))
		return self._build_stmt(tree)

	def _build_import(self, tree: Tree) -> ImportDecl:
		specs = []
		source = ""
		for child in tree.children:
			if isinstance(child, Tree):
				names = [t for t in child.children if isinstance(t, LarkToken)]
				alias = str(names[1]) if len(names) > 1 else None
				specs.append(ImportSpec(self._loc(child), str(names[0]), alias))
			elif child.type == "STRING":
				source = str(child)
		return ImportDecl(self._loc(tree), tuple(specs), source)

	def _build_type_decl(self, tree: Tree) -> TypeDecl:
		name_tok, type_tree = tree.children
		return TypeDecl(self._loc(tree), str(name_tok), self._build_type(type_tree))

	def _build_enum_decl(self, tree: Tree) -> EnumDecl:
		name_tok = tree.children[0]
		variants = []
		for child in tree.children[1:]:
			vname = child.children[0]
			backing = None
			if len(child.children) > 1:
				backing = self._build_enum_backing(child.children[1])
			variants.append(EnumVariant(self._loc(child), str(vname), backing))
		return EnumDecl(self._loc(tree), str(name_tok), tuple(variants))

	def _build_enum_backing(self, tree: Tree) -> Literal:
		toks = [t for t in tree.children if isinstance(t, LarkToken)]
		negative = toks[0].type == "MINUS"
		tok = toks[-1]
		if tok.type == "STRING":
			return Literal(self._loc(tree), str(tok), "str")
		if tok.type == "INT":
			value: object = int(str(tok))
			kind = "int"
		else:
			value = float(str(tok))
			kind = "float"
		return Literal(self._loc(tree), -value if negative else value, kind)  # type: ignore[operator]

	def _build_export_binding(self, tree: Tree) -> VariableDecl:
		name_tok = tree.children[0]
		rest = tree.children[1:]
		type_expr = self._build_type(rest[0]) if len(rest) == 2 else None
		return VariableDecl(self._loc(tree), str(name_tok), type_expr, self._build_expr(rest[-1]))

	def _build_fn_decl(self, tree: Tree) -> FunctionDecl:
		name_tok = tree.children[0]
		params: tuple[Param, ...] = ()
		ret_type: Optional[TypeExpr] = None
		body_tree = tree.children[-1]
		for child in tree.children[1:-1]:
			if _name(child) == "params":
				params = self._build_params(child)
			else:
				ret_type = self._build_type(child)
		if _name(body_tree) == "block":
			body: Block | Expr = self._build_block(body_tree)
		else:
			body = self._build_expr(body_tree.children[0])
		return FunctionDecl(self._loc(tree), str(name_tok), params, ret_type, body)

	def _build_params(self, tree: Tree) -> tuple[Param, ...]:
		out = []
		for child in tree.children:
			name_tok = child.children[0]
			type_expr = self._build_type(child.children[1]) if len(child.children) > 1 else None
			out.append(Param(self._loc(child), str(name_tok), type_expr))
		return tuple(out)

	# Statements ----------------------------------------------------------

	def _build_block(self, tree: Tree) -> Block:
		return Block(self._loc(tree), tuple(self._build_stmt(c) for c in tree.children if isinstance(c, Tree)))

	def _build_stmt(self, tree: Tree):
		kind = _name(tree)
		loc = self._loc(tree)
		if kind == "fn_decl":
			return self._build_fn_decl(tree)
		if kind == "typed_binding":
			name_tok, type_tree, value = tree.children
			return VariableDecl(loc, str(name_tok), self._build_type(type_tree), self._build_expr(value))
		if kind == "destructure":
			names = tuple(str(t) for t in tree.children[:-1])
			return DestructureStmt(loc, names, self._build_expr(tree.children[-1]))
		if kind == "assign":
			return self._build_assign(tree, "=")
		if kind == "aug_assign":
			return self._build_assign(tree, str(tree.children[1]))
		if kind == "if_stmt":
			return self._build_if(tree)
		if kind == "while_stmt":
			cond, body = tree.children
			return WhileStmt(loc, self._build_expr(cond), self._build_block(body))
		if kind == "for_stmt":
			names = [str(t) for t in tree.children if isinstance(t, LarkToken)]
			trees = [t for t in tree.children if isinstance(t, Tree)]
			iterable, body = trees
			if len(names) == 2:
				return ForStmt(loc, names[1], self._build_expr(iterable), self._build_block(body), index_name=names[0])
			return ForStmt(loc, names[0], self._build_expr(iterable), self._build_block(body))
		if kind == "return_stmt":
			value = tree.children[1] if len(tree.children) > 1 else None
			return ReturnStmt(loc, self._build_expr(value) if value is not None else None)
		if kind == "break_stmt":
			return BreakStmt(loc)
		if kind == "continue_stmt":
			return ContinueStmt(loc)
		if kind == "expr_stmt":
			return ExprStmt(loc, self._build_expr(tree.children[0]))
		if kind in ("import_decl", "type_decl", "enum_decl", "export_decl", "expose_decl"):
			raise ParseError(f"{kind.split('_')[0]} declarations are only allowed at module level", loc=loc)
		raise ParseError(f"unsupported statement '{kind}'", loc=loc)

	def _build_assign(self, tree: Tree, op: str):
		loc = self._loc(tree)
		target_tree = tree.children[0]
		value = self._build_expr(tree.children[-1])
		target = self._build_expr(target_tree)
		if isinstance(target, Name) and op == "=":
			if target.is_wildcard:
				raise ParseError("cannot bind to '_'", loc=target.loc)
			return VariableDecl(loc, target.ident, None, value)
		if isinstance(target, MutAccess):
			if not isinstance(target.target, Name):
				raise ParseError("'.mut' applies to a variable name, e.g. 'count.mut = 1'", loc=target.loc)
			return MutationStmt(loc, target.target.ident, op, value)
		if isinstance(target, Name):
			# `x += 1` without the accessor; the checker reports the mutability error.
			return MutationStmt(loc, target.ident, op, value, accessor=False)
		if isinstance(target, Index):
			return IndexAssign(loc, target, op, value)
		raise ParseError("invalid assignment target", loc=target.loc)

	def _build_if(self, tree: Tree) -> IfStmt:
		cond = self._build_expr(tree.children[0])
		then_block = self._build_block(tree.children[1])
		else_block = None
		if len(tree.children) > 2:
			other = tree.children[2]
			else_block = self._build_if(other) if _name(other) == "if_stmt" else self._build_block(other)
		return IfStmt(self._loc(tree), cond, then_block, else_block)

	# Expressions ---------------------------------------------------------

	def _build_expr(self, node) -> Expr:
		if isinstance(node, LarkToken):
			raise ParseError(f"unexpected token '{node}'", loc=self._loc(node))
		kind = _name(node)
		loc = self._loc(node)
		ch = node.children
		if kind == "int_lit":
			return Literal(loc, int(str(ch[0])), "int")
		if kind == "float_lit":
			return Literal(loc, float(str(ch[0])), "float")
		if kind == "str_lit":
			return Literal(loc, str(ch[0]), "str")
		if kind == "true_lit":
			return Literal(loc, True, "bool")
		if kind == "false_lit":
			return Literal(loc, False, "bool")
		if kind == "null_lit":
			return Literal(loc, None, "null")
		if kind == "name":
			return Name(loc, str(ch[0]))
		if kind == "binary":
			left, op, right = ch
			return Binary(loc, str(op), self._build_expr(left), self._build_expr(right))
		if kind == "unary":
			op, operand = ch
			return Unary(loc, str(op), self._build_expr(operand))
		if kind == "call":
			args: tuple[Expr, ...] = ()
			if len(ch) > 1:
				args = tuple(self._build_expr(a) for a in ch[1].children)
			return Call(loc, self._build_expr(ch[0]), args)
		if kind == "member":
			return Member(loc, self._build_expr(ch[0]), str(ch[1]))
		if kind == "opt_member":
			return Member(loc, self._build_expr(ch[0]), str(ch[-1]), optional=True)
		if kind == "index":
			return Index(loc, self._build_expr(ch[0]), self._build_expr(ch[1]))
		if kind == "mut_access":
			return MutAccess(loc, self._build_expr(ch[0]))
		if kind == "tuple_lit":
			return TupleLiteral(loc, tuple(self._build_expr(c) for c in ch))
		if kind == "list_lit":
			items: tuple[Expr, ...] = ()
			if ch:
				items = tuple(self._build_expr(a) for a in ch[0].children)
			return ListLiteral(loc, items)
		if kind == "object_lit":
			return ObjectLiteral(loc, tuple(self._build_entry(e) for e in ch))
		if kind == "istr":
			parts: list = []
			for part in ch:
				if isinstance(part, LarkToken):
					parts.append(str(part))
				else:
					parts.append(self._build_expr(part))
			return InterpolatedString(loc, tuple(parts))
		if kind == "lambda":
			return self._build_lambda(node)
		if kind == "match_expr":
			return self._build_match(node)
		if kind == "markup":
			return self._build_markup(node)
		raise ParseError(f"unsupported expression '{kind}'", loc=loc)

	def _build_entry(self, tree: Tree) -> ObjectEntry:
		key_tok, value = tree.children
		return ObjectEntry(self._loc(tree), str(key_tok), self._build_expr(value), quoted=key_tok.type == "STRING")

	def _build_lambda(self, tree: Tree) -> Lambda:
		params: tuple[Param, ...] = ()
		ret_type: Optional[TypeExpr] = None
		body_tree = tree.children[-1]
		for child in tree.children[:-1]:
			if _name(child) == "params":
				params = self._build_params(child)
			else:
				ret_type = self._build_type(child)
		if _name(body_tree) == "block":
			body: Block | Expr = self._build_block(body_tree)
		else:
			body = self._build_expr(body_tree)
		return Lambda(self._loc(tree), params, ret_type, body)

	def _build_match(self, tree: Tree) -> MatchExpr:
		subject = None
		arms = []
		for child in tree.children[1:]:
			if _name(child) == "match_arm":
				pattern, value = child.children
				arms.append(MatchArm(self._loc(child), self._build_expr(pattern), self._build_expr(value)))
			else:
				subject = self._build_expr(child)
		return MatchExpr(self._loc(tree), subject, tuple(arms))

	def _build_markup(self, tree: Tree) -> MarkupElement:
		open_tok = tree.children[0]
		tag = str(open_tok)
		attrs = []
		children: list = []
		for child in tree.children[1:]:
			if isinstance(child, LarkToken):
				if child.type == "TAG_CLOSE":
					if str(child) != tag:
						expected = f"</{tag}>" if tag else "</>"
						raise ParseError(f"mismatched closing tag </{child}>, expected {expected}", loc=self._loc(child))
				elif child.type == "MARKUP_TEXT":
					children.append(MarkupText(self._loc(child), str(child)))
				continue
			kind = _name(child)
			if kind == "markup_attr":
				name_tok = child.children[0]
				value = self._build_expr(child.children[1]) if len(child.children) > 1 else None
				attrs.append(MarkupAttr(self._loc(child), str(name_tok), value))
			elif kind == "event_attr":
				name_tok, handler = child.children
				attrs.append(MarkupAttr(self._loc(child), str(name_tok), self._build_expr(handler), event=True))
			else:
				children.append(self._build_expr(child))
		return MarkupElement(self._loc(tree), tag, tuple(attrs), tuple(children))

	# Types ---------------------------------------------------------------

	def _build_type(self, tree: Tree) -> TypeExpr:
		kind = _name(tree)
		loc = self._loc(tree)
		ch = tree.children
		if kind == "named_type":
			return TypeRef(loc, str(ch[0]))
		if kind == "null_type":
			return TypeRef(loc, "null")
		if kind == "generic_type":
			args_tree = next(c for c in ch if isinstance(c, Tree))
			return TypeRef(loc, str(ch[0]), tuple(self._build_type(a) for a in args_tree.children))
		if kind == "nullable_type":
			return NullableTypeExpr(loc, self._build_type(ch[0]))
		if kind == "union_type":
			return UnionTypeExpr(loc, tuple(self._build_type(c) for c in ch))
		if kind == "fn_type":
			params: tuple[TypeExpr, ...] = ()
			if len(ch) == 2:
				params = tuple(self._build_type(a) for a in ch[0].children)
			return FunctionTypeExpr(loc, params, self._build_type(ch[-1]))
		if kind == "tuple_type":
			elems = tuple(self._build_type(a) for a in ch[0].children)
			return elems[0] if len(elems) == 1 else TupleTypeExpr(loc, elems)
		if kind == "record_type":
			fields = []
			for field_tree in ch:
				name_tok, ftype = field_tree.children
				fields.append(RecordFieldExpr(self._loc(field_tree), str(name_tok), self._build_type(ftype)))
			return RecordTypeExpr(loc, tuple(fields))
		raise ParseError(f"unsupported type syntax '{kind}'", loc=loc)


def _name(node: Tree | LarkToken) -> str:
	if isinstance(node, Tree):
		data = node.data
		if isinstance(data, LarkToken):
			return data.value
		return data
	if isinstance(node, LarkToken):
		return node.type
	return str(node)


__all__ = ["ParseError", "parse_module", "parse_tree", "tokenize_for_parser"]
