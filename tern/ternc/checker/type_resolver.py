# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Resolve parser type expressions into checker `Type` values.

Name lookup is delegated to a callback so the same resolver serves module
scope (user types, imported types) and the std modules.
"""

from __future__ import annotations

from typing import Callable, List, Optional

from ..core.diagnostics import Diagnostic, DiagnosticKind
from ..core.types_core import (
	ERROR,
	PRIMITIVES,
	STR,
	UNKNOWN,
	Collection,
	Function,
	Named,
	Option,
	Record,
	Result,
	TupleType,
	Type,
	nullable,
	union,
)
from ..parser import ast as A

TypeLookup = Callable[[str], Optional[Type]]

_GENERIC_ARITY = {"list": 1, "set": 1, "map": 2, "result": 2, "option": 1}


class TypeResolver:
	def __init__(self, lookup: TypeLookup, diagnostics: List[Diagnostic]) -> None:
		self._lookup = lookup
		self._diagnostics = diagnostics

	def _error(self, message: str, node: A.Node) -> Type:
		self._diagnostics.append(
			Diagnostic(message, kind=DiagnosticKind.TYPE, code="E-TYPE", phase="typecheck", span=node.loc)
		)
		return UNKNOWN

	def resolve(self, texpr: Optional[A.TypeExpr]) -> Type:
		if texpr is None:
			return UNKNOWN
		if isinstance(texpr, A.TypeRef):
			return self._resolve_ref(texpr)
		if isinstance(texpr, A.NullableTypeExpr):
			return nullable(self.resolve(texpr.inner))
		if isinstance(texpr, A.UnionTypeExpr):
			return union(*(self.resolve(m) for m in texpr.members))
		if isinstance(texpr, A.TupleTypeExpr):
			return TupleType(tuple(self.resolve(e) for e in texpr.elems))
		if isinstance(texpr, A.FunctionTypeExpr):
			return Function(tuple(self.resolve(p) for p in texpr.params), self.resolve(texpr.ret))
		if isinstance(texpr, A.RecordTypeExpr):
			seen = set()
			fields = []
			for f in texpr.fields:
				if f.name in seen:
					self._error(f"duplicate field '{f.name}' in record type", f)
					continue
				seen.add(f.name)
				fields.append((f.name, self.resolve(f.type_expr)))
			return Record(tuple(fields))
		return self._error("unsupported type expression", texpr)

	def _resolve_ref(self, ref: A.TypeRef) -> Type:
		name = ref.name
		if name in _GENERIC_ARITY:
			arity = _GENERIC_ARITY[name]
			if len(ref.args) != arity:
				return self._error(f"'{name}' takes {arity} type argument{'s' if arity > 1 else ''}, got {len(ref.args)}", ref)
			args = [self.resolve(a) for a in ref.args]
			if name == "result":
				ok, err = args
				if not is_valid_error_type(err):
					self._error(
						f"error type '{err.render()}' must be 'error' or a record type with a 'message: str' field",
						ref.args[1],
					)
				return Result(ok, err)
			if name == "option":
				return Option(args[0])
			return Collection(name, tuple(args))
		if ref.args:
			return self._error(f"type '{name}' does not take type arguments", ref)
		if name in PRIMITIVES:
			return PRIMITIVES[name]
		if name == "error":
			return ERROR
		found = self._lookup(name)
		if found is None:
			return self._error(f"unknown type '{name}'", ref)
		return found


def is_valid_error_type(t: Type) -> bool:
	"""`error`, or a named record carrying `message: str`."""
	if t == ERROR or t == UNKNOWN:
		return True
	if isinstance(t, Named) and t.is_record:
		# Bodies of forward-referenced types are checked once resolved.
		return t.info.body is None or t.info.body.field_type("message") == STR
	return False


__all__ = ["TypeResolver", "is_valid_error_type"]
