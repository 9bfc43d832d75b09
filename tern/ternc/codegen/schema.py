# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Wire schemas.

A schema is plain JSON data describing how a value of some Tern type crosses
the network or is checked by `validate(T)`; the runtime interprets it. The
same data appears in generated code (as a JS literal) and in `routes.json`.
Recursive named records are cut with `{"kind": "ref", "id": ...}` pointing at
the enclosing definition.
"""

from __future__ import annotations

import json
from typing import Dict, FrozenSet, List

from ..core.types_core import (
	ERROR,
	VOID,
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
)
from ..linker.routes import RouteDescriptor

Schema = Dict[str, object]


def schema_of(t: Type, _path: FrozenSet[str] = frozenset()) -> Schema:
	if isinstance(t, Primitive):
		if t == VOID:
			return {"kind": "null"}
		return {"kind": t.name}
	if isinstance(t, Collection):
		if t.kind == "map":
			return {"kind": "map", "key": schema_of(t.elems[0], _path), "value": schema_of(t.elems[1], _path)}
		return {"kind": t.kind, "elem": schema_of(t.elem, _path)}
	if isinstance(t, TupleType):
		return {"kind": "tuple", "elems": [schema_of(e, _path) for e in t.elems]}
	if isinstance(t, (Nullable, Option)):
		return {"kind": "nullable", "inner": schema_of(t.inner, _path)}
	if isinstance(t, Union):
		return {"kind": "union", "members": [schema_of(m, _path) for m in t.members]}
	if isinstance(t, Result):
		return {"kind": "result", "ok": schema_of(t.ok, _path), "err": schema_of(t.err, _path)}
	if isinstance(t, Record):
		return {"kind": "record", "id": None, "name": "record", "fields": _fields(t, _path)}
	if isinstance(t, Named):
		if t.is_enum:
			return {
				"kind": "enum",
				"id": t.decl_id,
				"name": t.name,
				"variants": [[name, value] for name, value in t.info.variants],
			}
		if t.is_record and t.info.body is not None:
			if t.decl_id in _path:
				return {"kind": "ref", "id": t.decl_id}
			inner = _path | {t.decl_id}
			return {"kind": "record", "id": t.decl_id, "name": t.name, "fields": _fields(t.info.body, inner)}
		return {"kind": "unknown"}
	if isinstance(t, Function):
		return {"kind": "unknown"}
	return {"kind": "unknown"}


def _fields(body: Record, path: FrozenSet[str]) -> List[list]:
	return [[name, schema_of(ft, path)] for name, ft in body.fields]


def response_type(route: RouteDescriptor) -> Result:
	"""Wire shape of a route response: always a result, whatever the function returns."""
	if isinstance(route.response, Result):
		return route.response
	return Result(route.response, ERROR)


def route_param_schemas(route: RouteDescriptor) -> List[Schema]:
	return [schema_of(t) for _, t in route.params]


def route_response_schema(route: RouteDescriptor) -> Schema:
	return schema_of(response_type(route))


def js_literal(schema) -> str:
	"""Compact, deterministic JS rendering of schema data (JSON is valid JS)."""
	return json.dumps(schema, separators=(", ", ": "), ensure_ascii=False)


__all__ = [
	"Schema",
	"js_literal",
	"response_type",
	"route_param_schemas",
	"route_response_schema",
	"schema_of",
]
