# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Type representation shared by the checker, transformer, linker and codegen.

Types are immutable values. Structural types compare structurally; `Named`
types compare by declaration identity (`decl_id`), never by shape. Named types
carry a mutable `NamedInfo` (excluded from equality) so that recursive type
declarations can be resolved after the Named handle exists.

Normalising constructors (`nullable`, `union`) enforce the representation
invariants: a Nullable never wraps another Nullable and a Union never
contains a nested Union.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Optional, Sequence, Tuple


class Type:
	"""Base class for all types."""

	def render(self) -> str:  # pragma: no cover - overridden
		raise NotImplementedError

	def __str__(self) -> str:
		return self.render()


@dataclass(frozen=True)
class Primitive(Type):
	name: str

	def render(self) -> str:
		return self.name


@dataclass(frozen=True)
class Unknown(Type):
	"""Failed or deferred inference. Compatible with everything to stop cascades."""

	def render(self) -> str:
		return "<unknown>"


@dataclass(frozen=True)
class Collection(Type):
	kind: str  # "list" | "map" | "set"
	elems: Tuple[Type, ...]

	def render(self) -> str:
		return f"{self.kind}<{', '.join(e.render() for e in self.elems)}>"

	@property
	def elem(self) -> Type:
		return self.elems[-1]


@dataclass(frozen=True)
class TupleType(Type):
	elems: Tuple[Type, ...]

	def render(self) -> str:
		return "(" + ", ".join(e.render() for e in self.elems) + ")"


@dataclass(frozen=True)
class Record(Type):
	"""Structural record (`{ a: int }`). Field order is declaration order."""

	fields: Tuple[Tuple[str, Type], ...]

	def render(self) -> str:
		return "{ " + ", ".join(f"{n}: {t.render()}" for n, t in self.fields) + " }"

	def field_type(self, name: str) -> Optional[Type]:
		for n, t in self.fields:
			if n == name:
				return t
		return None


@dataclass
class NamedInfo:
	"""Resolved payload of a Named type; filled in by the checker."""

	kind: str  # "record" | "enum" | "resource" | "error"
	module: Optional[str] = None
	body: Optional[Record] = None
	variants: list[tuple[str, object]] = field(default_factory=list)
	backing: Optional[Primitive] = None
	serializable: bool = True


@dataclass(frozen=True)
class Named(Type):
	name: str
	decl_id: str
	info: NamedInfo = field(compare=False, hash=False, repr=False, default_factory=lambda: NamedInfo(kind="record"))

	def render(self) -> str:
		return self.name

	@property
	def is_enum(self) -> bool:
		return self.info.kind == "enum"

	@property
	def is_record(self) -> bool:
		return self.info.kind in ("record", "error")


@dataclass(frozen=True)
class Nullable(Type):
	inner: Type

	def render(self) -> str:
		inner = self.inner.render()
		if isinstance(self.inner, (Union, Function)):
			inner = f"({inner})"
		return f"{inner}?"


@dataclass(frozen=True)
class Union(Type):
	members: Tuple[Type, ...]

	def render(self) -> str:
		return " | ".join(m.render() for m in self.members)


@dataclass(frozen=True)
class Result(Type):
	ok: Type
	err: Type

	def render(self) -> str:
		return f"result<{self.ok.render()}, {self.err.render()}>"


@dataclass(frozen=True)
class Option(Type):
	inner: Type

	def render(self) -> str:
		return f"option<{self.inner.render()}>"


@dataclass(frozen=True)
class Function(Type):
	params: Tuple[Type, ...]
	ret: Type

	def render(self) -> str:
		return "(" + ", ".join(p.render() for p in self.params) + f") -> {self.ret.render()}"


INT = Primitive("int")
FLOAT = Primitive("float")
STR = Primitive("str")
BOOL = Primitive("bool")
NULL = Primitive("null")
VOID = Primitive("void")
DYNAMIC = Primitive("unknown")
UNKNOWN = Unknown()

PRIMITIVES = {p.name: p for p in (INT, FLOAT, STR, BOOL, NULL, VOID, DYNAMIC)}

ERROR = Named(
	"error",
	"builtin:error",
	NamedInfo(kind="error", body=Record((("message", STR),))),
)

# Falsy-capable primitives for `?:` (0, 0.0, "", false).
FALSY_CAPABLE = (INT, FLOAT, STR, BOOL)


# Normalising constructors ----------------------------------------------------


def nullable(t: Type) -> Type:
	"""Wrap `t` in Nullable, collapsing nested nullability."""
	if isinstance(t, (Nullable, Unknown)) or t == NULL or t == DYNAMIC:
		return t
	if isinstance(t, Option):
		return t
	if isinstance(t, Union):
		members = tuple(m for m in t.members if m != NULL)
		return Nullable(union(*members))
	return Nullable(t)


def union(*members: Type) -> Type:
	"""Build a flattened, de-duplicated union (a single member collapses)."""
	flat: list[Type] = []
	has_null = False
	for m in members:
		parts: Iterable[Type]
		if isinstance(m, Union):
			parts = m.members
		elif isinstance(m, Nullable):
			has_null = True
			parts = m.inner.members if isinstance(m.inner, Union) else (m.inner,)
		else:
			parts = (m,)
		for p in parts:
			if p == NULL:
				has_null = True
				continue
			if isinstance(p, Unknown):
				return UNKNOWN
			if p not in flat:
				flat.append(p)
	if not flat:
		return NULL if has_null else UNKNOWN
	flat.sort(key=lambda t: t.render())
	core: Type = flat[0] if len(flat) == 1 else Union(tuple(flat))
	return nullable(core) if has_null else core


def strip_null(t: Type) -> Type:
	"""Non-null narrowing of `t`."""
	if isinstance(t, Nullable):
		return t.inner
	if isinstance(t, Option):
		return t.inner
	if isinstance(t, Union):
		return union(*(m for m in t.members if m != NULL))
	return t


def is_nullable(t: Type) -> bool:
	return isinstance(t, (Nullable, Option, Unknown)) or t == NULL or t == DYNAMIC


def is_numeric(t: Type) -> bool:
	return t in (INT, FLOAT)


def lub(types: Sequence[Type]) -> Type:
	"""Least upper bound used for literal inference and match arms."""
	if not types:
		return UNKNOWN
	if any(isinstance(t, Unknown) for t in types):
		return UNKNOWN
	first = types[0]
	if all(t == first for t in types):
		return first
	non_null = [t for t in types if t != NULL]
	if non_null and all(is_numeric(strip_null(t)) for t in non_null):
		base: Type = FLOAT if any(strip_null(t) == FLOAT for t in non_null) else INT
		if len(non_null) != len(types) or any(isinstance(t, Nullable) for t in non_null):
			return nullable(base)
		return base
	return union(*types)


def is_assignable(src: Type, dst: Type) -> bool:
	"""Whether a value of type `src` may flow into a slot of type `dst`."""
	if isinstance(src, Unknown) or isinstance(dst, Unknown):
		return True
	if src == dst:
		return True
	if dst == DYNAMIC:
		return True
	if src == NULL:
		return is_nullable(dst)
	if isinstance(dst, (Nullable, Option)):
		inner = dst.inner
		if isinstance(src, (Nullable, Option)):
			return is_assignable(src.inner, inner)
		return is_assignable(src, inner)
	if isinstance(src, Union):
		return all(is_assignable(m, dst) for m in src.members)
	if isinstance(dst, Union):
		return any(is_assignable(src, m) for m in dst.members)
	if isinstance(src, Collection) and isinstance(dst, Collection):
		return (
			src.kind == dst.kind
			and len(src.elems) == len(dst.elems)
			and all(is_assignable(s, d) for s, d in zip(src.elems, dst.elems))
		)
	if isinstance(src, TupleType) and isinstance(dst, TupleType):
		return len(src.elems) == len(dst.elems) and all(
			is_assignable(s, d) for s, d in zip(src.elems, dst.elems)
		)
	if isinstance(src, Record):
		target = dst.info.body if isinstance(dst, Named) and dst.is_record else dst
		if isinstance(target, Record):
			return record_fits(src, target)
		return False
	if isinstance(src, Result) and isinstance(dst, Result):
		return is_assignable(src.ok, dst.ok) and is_assignable(src.err, dst.err)
	if isinstance(src, Function) and isinstance(dst, Function):
		return (
			len(src.params) == len(dst.params)
			and all(is_assignable(d, s) for s, d in zip(src.params, dst.params))
			and (dst.ret == VOID or is_assignable(src.ret, dst.ret))
		)
	return False


def record_fits(src: Record, dst: Record) -> bool:
	"""Structural check: every dst field present in src (or nullable) and assignable."""
	src_names = {n for n, _ in src.fields}
	for name, ty in dst.fields:
		if name not in src_names:
			if not is_nullable(ty):
				return False
			continue
		if not is_assignable(src.field_type(name), ty):  # type: ignore[arg-type]
			return False
	return src_names <= {n for n, _ in dst.fields}


def comparable(a: Type, b: Type) -> bool:
	"""
	Whether `a == b` can ever be true at runtime.

	Identical types compare; nullability is ignored on either side (so `x == null`
	and `maybe_int == 5` compare); the dynamic and unknown types compare with
	anything.
	"""
	if isinstance(a, Unknown) or isinstance(b, Unknown) or a == DYNAMIC or b == DYNAMIC:
		return True
	if a == b:
		return True
	if a == NULL:
		return is_nullable(b)
	if b == NULL:
		return is_nullable(a)
	sa, sb = strip_null(a), strip_null(b)
	if sa == sb:
		return True
	if isinstance(sa, Union):
		return any(comparable(m, sb) for m in sa.members)
	if isinstance(sb, Union):
		return any(comparable(sa, m) for m in sb.members)
	if isinstance(sa, Record) and isinstance(sb, Record):
		return record_fits(sa, sb) and record_fits(sb, sa)
	if isinstance(sa, Record) and isinstance(sb, Named) and sb.is_record:
		return record_fits(sa, sb.info.body) if sb.info.body else False
	if isinstance(sb, Record) and isinstance(sa, Named) and sa.is_record:
		return record_fits(sb, sa.info.body) if sa.info.body else False
	return False


def error_widens_to(src: Type, dst: Type) -> bool:
	"""`error` is the documented supertype of every error type."""
	if isinstance(src, Unknown) or isinstance(dst, Unknown):
		return True
	return src == dst or dst == ERROR


def contains_function(t: Type) -> bool:
	if isinstance(t, Function):
		return True
	for child in children_of(t):
		if contains_function(child):
			return True
	return False


def children_of(t: Type) -> Tuple[Type, ...]:
	"""Immediate structural children (Named bodies are not traversed)."""
	if isinstance(t, (Collection, TupleType)):
		return t.elems
	if isinstance(t, Record):
		return tuple(ft for _, ft in t.fields)
	if isinstance(t, (Nullable, Option)):
		return (t.inner,)
	if isinstance(t, Union):
		return t.members
	if isinstance(t, Result):
		return (t.ok, t.err)
	if isinstance(t, Function):
		return t.params + (t.ret,)
	return ()


__all__ = [
	"BOOL",
	"Collection",
	"DYNAMIC",
	"ERROR",
	"FALSY_CAPABLE",
	"FLOAT",
	"Function",
	"INT",
	"NULL",
	"Named",
	"NamedInfo",
	"Nullable",
	"Option",
	"PRIMITIVES",
	"Primitive",
	"Record",
	"Result",
	"STR",
	"TupleType",
	"Type",
	"UNKNOWN",
	"Union",
	"Unknown",
	"VOID",
	"children_of",
	"comparable",
	"contains_function",
	"error_widens_to",
	"is_assignable",
	"is_nullable",
	"is_numeric",
	"lub",
	"nullable",
	"record_fits",
	"strip_null",
	"union",
]
