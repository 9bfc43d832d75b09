# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Builtin functions, collection/string methods and standard-library modules.

The compiler only knows declared signatures here; the implementations live in
the runtime module (builtins, methods) or in external `@tern/std/*` packages
(std modules).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

from ..core.contexts import ExecutionContext
from ..core.types_core import (
	BOOL,
	DYNAMIC,
	ERROR,
	INT,
	STR,
	UNKNOWN,
	VOID,
	Collection,
	Function,
	Named,
	NamedInfo,
	Result,
	Type,
	nullable,
)

# Value produced by markup expressions.
ELEMENT = Named("Element", "builtin:Element", NamedInfo(kind="resource", serializable=False))

# Builtin callables; their typing rules live in the checker (most are generic).
BUILTIN_FUNCTIONS = frozenset({"print", "len", "str", "int", "float", "parse", "ok", "err", "error", "some"})

# Builtin values.
BUILTIN_VALUES = frozenset({"none"})

# Calls whose static type is the payload of an internal `result<T, error>`.
HIDDEN_RESULT_BUILTINS = frozenset({"int", "float", "validate"})


@dataclass(frozen=True)
class StdModule:
	module_id: str
	# None: importable from every context.
	context: Optional[ExecutionContext]
	functions: Dict[str, Function] = field(default_factory=dict)
	types: Dict[str, Type] = field(default_factory=dict)


DATABASE = Named(
	"Database",
	"std/db:Database",
	NamedInfo(kind="resource", module="std/db", serializable=False),
)

STD_MODULES: Dict[str, StdModule] = {
	"std/db": StdModule(
		"std/db",
		ExecutionContext.SERVER_ONLY,
		functions={
			"connect": Function((STR,), Result(DATABASE, ERROR)),
			"query": Function((DATABASE, STR), Result(Collection("list", (DYNAMIC,)), ERROR)),
			"execute": Function((DATABASE, STR), Result(INT, ERROR)),
		},
		types={"Database": DATABASE},
	),
	"std/http": StdModule(
		"std/http",
		None,
		functions={
			"get": Function((STR,), Result(DYNAMIC, ERROR)),
			"post": Function((STR, DYNAMIC), Result(DYNAMIC, ERROR)),
		},
	),
	"std/json": StdModule(
		"std/json",
		None,
		functions={"stringify": Function((DYNAMIC,), STR)},
	),
}

STD_IMPORT_PREFIX = "@tern/"


@dataclass(frozen=True)
class MethodSig:
	"""
	Signature of a collection or string method.

	`params`/`ret` are concrete types for the receiver; `returns_mapped` marks
	`list.map`, whose element type is the callback's return type.
	"""

	receiver: str
	name: str
	params: Tuple[Type, ...]
	ret: Type
	returns_mapped: bool = False


def method_signature(receiver: Type, name: str) -> Optional[MethodSig]:
	"""Look up `name` on `receiver` (list, map, set or str); None when absent."""
	if receiver == STR:
		table = {
			"len": ((), INT),
			"upper": ((), STR),
			"lower": ((), STR),
			"trim": ((), STR),
			"split": ((STR,), Collection("list", (STR,))),
			"contains": ((STR,), BOOL),
		}
		if name in table:
			params, ret = table[name]
			return MethodSig("str", name, params, ret)
		return None
	if not isinstance(receiver, Collection):
		return None
	if receiver.kind == "list":
		elem = receiver.elem
		if name == "add":
			return MethodSig("list", name, (elem,), VOID)
		if name == "get":
			return MethodSig("list", name, (INT,), nullable(elem))
		if name == "set":
			return MethodSig("list", name, (INT, elem), VOID)
		if name == "delete":
			return MethodSig("list", name, (INT,), VOID)
		if name == "contains":
			return MethodSig("list", name, (elem,), BOOL)
		if name == "len":
			return MethodSig("list", name, (), INT)
		if name == "map":
			return MethodSig("list", name, (Function((elem,), UNKNOWN),), UNKNOWN, returns_mapped=True)
		if name == "filter":
			return MethodSig("list", name, (Function((elem,), BOOL),), receiver)
		return None
	if receiver.kind == "map":
		key, value = receiver.elems
		table = {
			"get": ((key,), nullable(value)),
			"set": ((key, value), VOID),
			"delete": ((key,), VOID),
			"has": ((key,), BOOL),
			"keys": ((), Collection("list", (key,))),
			"values": ((), Collection("list", (value,))),
			"len": ((), INT),
		}
		if name in table:
			params, ret = table[name]
			return MethodSig("map", name, params, ret)
		return None
	if receiver.kind == "set":
		elem = receiver.elem
		table = {
			"add": ((elem,), VOID),
			"delete": ((elem,), VOID),
			"has": ((elem,), BOOL),
			"len": ((), INT),
		}
		if name in table:
			params, ret = table[name]
			return MethodSig("set", name, params, ret)
	return None


__all__ = [
	"BUILTIN_FUNCTIONS",
	"BUILTIN_VALUES",
	"DATABASE",
	"ELEMENT",
	"HIDDEN_RESULT_BUILTINS",
	"MethodSig",
	"STD_IMPORT_PREFIX",
	"STD_MODULES",
	"StdModule",
	"method_signature",
]
