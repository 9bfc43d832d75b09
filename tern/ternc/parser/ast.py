# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Tern surface AST.

Nodes are frozen dataclasses compared by identity. Every node receives a
process-unique `node_id` on construction; later passes never mutate nodes and
instead record what they learn in side tables keyed by `node_id` (expression
types, binding mutability, call resolutions). Passes that rewrite the tree
(propagation) build new nodes.

Child sequences are tuples so a finished tree cannot be edited in place.
"""

from __future__ import annotations

import itertools
from dataclasses import dataclass, field, fields
from typing import Iterator, Optional, Tuple, Union

from ..core.span import Span

_NODE_IDS = itertools.count(1)


@dataclass(frozen=True, eq=False)
class Node:
	loc: Span
	node_id: int = field(init=False, repr=False)

	def __post_init__(self) -> None:
		object.__setattr__(self, "node_id", next(_NODE_IDS))


# --------------------------------------------------------------------- types


class TypeExpr(Node):
	"""Base class for type expressions as written in source."""


@dataclass(frozen=True, eq=False)
class TypeRef(TypeExpr):
	"""`int`, `User`, `list<int>`, `result<T, E>`."""

	name: str
	args: Tuple[TypeExpr, ...] = ()


@dataclass(frozen=True, eq=False)
class NullableTypeExpr(TypeExpr):
	inner: TypeExpr


@dataclass(frozen=True, eq=False)
class UnionTypeExpr(TypeExpr):
	members: Tuple[TypeExpr, ...]


@dataclass(frozen=True, eq=False)
class TupleTypeExpr(TypeExpr):
	elems: Tuple[TypeExpr, ...]


@dataclass(frozen=True, eq=False)
class FunctionTypeExpr(TypeExpr):
	params: Tuple[TypeExpr, ...]
	ret: TypeExpr


@dataclass(frozen=True, eq=False)
class RecordFieldExpr(Node):
	name: str
	type_expr: TypeExpr


@dataclass(frozen=True, eq=False)
class RecordTypeExpr(TypeExpr):
	fields: Tuple[RecordFieldExpr, ...]


# --------------------------------------------------------------- expressions


class Expr(Node):
	"""Base class for expressions."""


@dataclass(frozen=True, eq=False)
class Literal(Expr):
	"""Scalar literal. `kind` is one of int, float, str, bool, null."""

	value: object
	kind: str


@dataclass(frozen=True, eq=False)
class Name(Expr):
	ident: str

	@property
	def is_wildcard(self) -> bool:
		return self.ident == "_"


@dataclass(frozen=True, eq=False)
class Binary(Expr):
	op: str
	left: Expr
	right: Expr


@dataclass(frozen=True, eq=False)
class Unary(Expr):
	op: str
	operand: Expr


@dataclass(frozen=True, eq=False)
class Call(Expr):
	callee: Expr
	args: Tuple[Expr, ...] = ()


@dataclass(frozen=True, eq=False)
class Member(Expr):
	obj: Expr
	name: str
	optional: bool = False


@dataclass(frozen=True, eq=False)
class Index(Expr):
	obj: Expr
	index: Expr


@dataclass(frozen=True, eq=False)
class MutAccess(Expr):
	"""The mutation accessor `x.mut`; only valid as an assignment target."""

	target: Expr


@dataclass(frozen=True, eq=False)
class ListLiteral(Expr):
	items: Tuple[Expr, ...] = ()


@dataclass(frozen=True, eq=False)
class TupleLiteral(Expr):
	items: Tuple[Expr, ...] = ()


@dataclass(frozen=True, eq=False)
class ObjectEntry(Node):
	key: str
	value: Expr
	# `{ "k": v }` builds a map; `{ k: v }` builds a record.
	quoted: bool = False


@dataclass(frozen=True, eq=False)
class ObjectLiteral(Expr):
	entries: Tuple[ObjectEntry, ...] = ()

	@property
	def is_map(self) -> bool:
		return bool(self.entries) and all(e.quoted for e in self.entries)


@dataclass(frozen=True, eq=False)
class InterpolatedString(Expr):
	"""`"a {x} b"`: text fragments interleaved with expressions."""

	parts: Tuple[Union[str, Expr], ...] = ()


@dataclass(frozen=True, eq=False)
class Param(Node):
	name: str
	type_expr: Optional[TypeExpr] = None


@dataclass(frozen=True, eq=False)
class Lambda(Expr):
	params: Tuple[Param, ...]
	ret_type: Optional[TypeExpr]
	body: Union["Block", Expr]


@dataclass(frozen=True, eq=False)
class MatchArm(Node):
	pattern: Expr
	value: Expr

	@property
	def is_wildcard(self) -> bool:
		return isinstance(self.pattern, Name) and self.pattern.is_wildcard


@dataclass(frozen=True, eq=False)
class MatchExpr(Expr):
	"""Value match (`subject` set) or guard match (`subject` is None)."""

	subject: Optional[Expr]
	arms: Tuple[MatchArm, ...] = ()


@dataclass(frozen=True, eq=False)
class MarkupAttr(Node):
	name: str
	value: Optional[Expr] = None
	# `@click={handler}` binds an event handler rather than a data value.
	event: bool = False


@dataclass(frozen=True, eq=False)
class MarkupText(Node):
	text: str


MarkupChild = Union["MarkupElement", MarkupText, Expr]


@dataclass(frozen=True, eq=False)
class MarkupElement(Expr):
	"""`<tag ...>children</tag>`; `tag == ""` for a fragment."""

	tag: str
	attrs: Tuple[MarkupAttr, ...] = ()
	children: Tuple[MarkupChild, ...] = ()

	@property
	def is_component(self) -> bool:
		return bool(self.tag) and self.tag[0].isupper()


# ---------------------------------------------------------------- statements


class Stmt(Node):
	"""Base class for statements."""


@dataclass(frozen=True, eq=False)
class Block(Node):
	statements: Tuple[Stmt, ...] = ()


@dataclass(frozen=True, eq=False)
class ExprStmt(Stmt):
	expr: Expr


@dataclass(frozen=True, eq=False)
class VariableDecl(Stmt):
	"""`x = e` / `x: T = e`: introduces an immutable binding."""

	name: str
	type_expr: Optional[TypeExpr]
	value: Expr


@dataclass(frozen=True, eq=False)
class MutationStmt(Stmt):
	"""`x.mut = e` / `x.mut += e`. `op` is `=` or a compound operator."""

	target: str
	op: str
	value: Expr
	# False for `x += 1` written without the accessor (a mutability error).
	accessor: bool = True


@dataclass(frozen=True, eq=False)
class IndexAssign(Stmt):
	"""`xs[i] = e`: in-place collection update (no accessor needed)."""

	target: Index
	op: str
	value: Expr


@dataclass(frozen=True, eq=False)
class DestructureStmt(Stmt):
	names: Tuple[str, ...]
	value: Expr


@dataclass(frozen=True, eq=False)
class IfStmt(Stmt):
	cond: Expr
	then_block: Block
	else_block: Optional[Union[Block, "IfStmt"]] = None


@dataclass(frozen=True, eq=False)
class WhileStmt(Stmt):
	cond: Expr
	body: Block


@dataclass(frozen=True, eq=False)
class ForStmt(Stmt):
	"""`for item in xs` or `for i, item in xs` (`index_name` set)."""

	item_name: str
	iterable: Expr
	body: Block
	index_name: Optional[str] = None


@dataclass(frozen=True, eq=False)
class ReturnStmt(Stmt):
	value: Optional[Expr] = None


@dataclass(frozen=True, eq=False)
class BreakStmt(Stmt):
	pass


@dataclass(frozen=True, eq=False)
class ContinueStmt(Stmt):
	pass


@dataclass(frozen=True, eq=False)
class FunctionDecl(Stmt):
	name: str
	params: Tuple[Param, ...]
	ret_type: Optional[TypeExpr]
	# A Block, or an Expr for `name(...) = expr`.
	body: Union[Block, Expr]


# -------------------------------------------------------------- declarations


class Decl(Node):
	"""Base class for module-level declarations."""


@dataclass(frozen=True, eq=False)
class TypeDecl(Decl):
	name: str
	type_expr: TypeExpr


@dataclass(frozen=True, eq=False)
class EnumVariant(Node):
	name: str
	backing: Optional[Literal] = None


@dataclass(frozen=True, eq=False)
class EnumDecl(Decl):
	name: str
	variants: Tuple[EnumVariant, ...] = ()


@dataclass(frozen=True, eq=False)
class ImportSpec(Node):
	name: str
	alias: Optional[str] = None

	@property
	def local_name(self) -> str:
		return self.alias or self.name


@dataclass(frozen=True, eq=False)
class ImportDecl(Decl):
	names: Tuple[ImportSpec, ...]
	source: str


@dataclass(frozen=True, eq=False)
class ExportDecl(Decl):
	"""`export <decl>`: wraps a FunctionDecl, TypeDecl, EnumDecl or VariableDecl."""

	decl: Node


@dataclass(frozen=True, eq=False)
class ExposeDecl(Decl):
	"""`expose name(...)`: a network-callable function (implies export)."""

	fn: FunctionDecl


@dataclass(frozen=True, eq=False)
class Module(Node):
	items: Tuple[Node, ...] = ()

	def imports(self) -> Iterator[ImportDecl]:
		for item in self.items:
			if isinstance(item, ImportDecl):
				yield item

	def declarations(self) -> Iterator[Tuple[Node, bool, bool]]:
		"""Yield `(decl, exported, exposed)` for every top-level declaration."""
		for item in self.items:
			if isinstance(item, ExposeDecl):
				yield item.fn, True, True
			elif isinstance(item, ExportDecl):
				yield item.decl, True, False
			elif isinstance(item, (FunctionDecl, TypeDecl, EnumDecl, VariableDecl)):
				yield item, False, False


def unwrap_item(item: Node) -> Node:
	"""Strip `export`/`expose` wrappers from a top-level item."""
	if isinstance(item, ExposeDecl):
		return item.fn
	if isinstance(item, ExportDecl):
		return item.decl
	return item


# ------------------------------------------------------------ synthetic nodes
#
# Produced by the propagation transformer; never by the parser.


@dataclass(frozen=True, eq=False)
class DeclareStmt(Stmt):
	"""Declare a binding without initialising it (`let name;`)."""

	name: str
	init: Optional[Expr] = None


@dataclass(frozen=True, eq=False)
class ResultTemp(Stmt):
	"""Bind an expression (usually a result object) to a fresh `const` temporary."""

	name: str
	value: Expr


@dataclass(frozen=True, eq=False)
class ResultIsErr(Expr):
	operand: Expr


@dataclass(frozen=True, eq=False)
class ResultValue(Expr):
	operand: Expr


@dataclass(frozen=True, eq=False)
class ResultError(Expr):
	operand: Expr


@dataclass(frozen=True, eq=False)
class WrapOk(Expr):
	value: Optional[Expr] = None


@dataclass(frozen=True, eq=False)
class WrapErr(Expr):
	value: Expr


@dataclass(frozen=True, eq=False)
class WidenError(Expr):
	"""Convert an error value to the caller's wider `error` type."""

	value: Expr


@dataclass(frozen=True, eq=False)
class Unwrap(Expr):
	"""Unhandled result outside a result-returning function: throw on error."""

	operand: Expr



def iter_children(node: Node) -> Iterator[Node]:
	"""Yield the direct child nodes of `node` in field order."""
	for f in fields(node):
		if f.name in ("loc", "node_id"):
			continue
		value = getattr(node, f.name)
		if isinstance(value, Node):
			yield value
		elif isinstance(value, tuple):
			for item in value:
				if isinstance(item, Node):
					yield item


def walk(node: Node) -> Iterator[Node]:
	"""Pre-order traversal of `node` and all its descendants."""
	yield node
	for child in iter_children(node):
		yield from walk(child)
