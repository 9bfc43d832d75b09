# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""TypeScript renderings of Tern types (TS target only)."""

from __future__ import annotations

from typing import Dict, FrozenSet

from ..core.types_core import (
	Collection,
	Function,
	Named,
	Nullable,
	Option,
	Primitive,
	Record,
	Result,
	TupleType,
	Type,
	Union,
	Unknown,
	is_nullable,
)

_PRIMITIVES = {
	"int": "number",
	"float": "number",
	"str": "string",
	"bool": "boolean",
	"null": "null",
	"void": "void",
	"unknown": "unknown",
}

ENUM_VALUE_SHAPE = "{ readonly __enum: string; readonly index: number; readonly value: {backing}; readonly name: string }"


class TypeNamer:
	"""
	Renders types for one module.

	`names` maps Named declaration ids to the identifier that names them in
	the module (its own declarations and imports, aliases included); Named
	types not in scope are spelled out structurally.
	"""

	def __init__(self, names: Dict[str, str]) -> None:
		self.names = names

	def render(self, t: Type, _path: FrozenSet[str] = frozenset()) -> str:
		if isinstance(t, Unknown):
			return "any"
		if isinstance(t, Primitive):
			return _PRIMITIVES.get(t.name, "any")
		if isinstance(t, Collection):
			if t.kind == "list":
				return f"Array<{self.render(t.elem, _path)}>"
			if t.kind == "set":
				return f"Set<{self.render(t.elem, _path)}>"
			return f"Map<{self.render(t.elems[0], _path)}, {self.render(t.elems[1], _path)}>"
		if isinstance(t, TupleType):
			return "[" + ", ".join(self.render(e, _path) for e in t.elems) + "]"
		if isinstance(t, (Nullable, Option)):
			return f"{self._member(t.inner, _path)} | null"
		if isinstance(t, Union):
			return " | ".join(self._member(m, _path) for m in t.members)
		if isinstance(t, Result):
			return self.result(t, _path)
		if isinstance(t, Function):
			params = ", ".join(f"a{i}: {self.render(p, _path)}" for i, p in enumerate(t.params))
			return f"({params}) => {self.render(t.ret, _path)}"
		if isinstance(t, Record):
			return self.record(t, _path)
		if isinstance(t, Named):
			return self._named(t, _path)
		return "any"

	def result(self, t: Result, _path: FrozenSet[str] = frozenset()) -> str:
		ok = self.render(t.ok, _path) if t.ok.render() != "void" else "null"
		return f"{{ ok: true; value: {ok} }} | {{ ok: false; error: {self.render(t.err, _path)} }}"

	def record(self, body: Record, _path: FrozenSet[str] = frozenset()) -> str:
		if not body.fields:
			return "{}"
		parts = []
		for name, ft in body.fields:
			optional = "?" if is_nullable(ft) and not isinstance(ft, Unknown) else ""
			parts.append(f"{name}{optional}: {self.render(ft, _path)}")
		return "{ " + "; ".join(parts) + " }"

	def enum_value(self, t: Named) -> str:
		backing = "number" if t.info.backing is not None and t.info.backing.name == "int" else "string"
		return ENUM_VALUE_SHAPE.replace("{backing}", backing)

	def _named(self, t: Named, path: FrozenSet[str]) -> str:
		local = self.names.get(t.decl_id)
		if local is not None:
			return local
		if t.is_enum:
			return self.enum_value(t)
		if t.is_record and t.info.body is not None:
			if t.decl_id in path:
				return "any"
			return self.record(t.info.body, path | {t.decl_id})
		return "any"

	def _member(self, t: Type, path: FrozenSet[str]) -> str:
		text = self.render(t, path)
		if isinstance(t, (Function, Union, Result)):
			return f"({text})"
		return text


__all__ = ["TypeNamer"]
