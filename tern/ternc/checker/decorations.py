# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Checker output: the decorated module.

The AST itself is never modified; everything the checker learns is recorded
here in tables keyed by `node_id`. Later passes (propagation, linking, code
generation) consume these tables verbatim and never re-derive types or call
targets.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Set, Tuple

from ..core.contexts import ExecutionContext
from ..core.diagnostics import Diagnostic
from ..core.types_core import Function, Named, Result, Type
from ..parser import ast as A
from .symbols import ModuleInfo, Symbol


class CallKind(str, Enum):
	BUILTIN = "builtin"  # print, len, str, int, float, parse, ok, err, error, some
	METHOD = "method"  # list/map/set/str methods
	VALIDATE = "validate"  # unknown.validate(T)
	ENUM_FROM = "enum_from"
	ENUM_VALUES = "enum_values"
	FUNCTION = "function"  # module-level function (local or imported)
	VALUE = "value"  # calling a function-typed value


@dataclass(frozen=True)
class CallTarget:
	"""
	What a call site invokes.

	For `FUNCTION` calls, `module`/`name` identify the declaring module and
	function (after following imports); the context linker decides whether
	the call binds directly or through a network stub.
	"""

	kind: CallKind
	name: str = ""
	module: Optional[str] = None
	receiver: Optional[str] = None
	type_arg: Optional[Type] = None


class ResultMode(str, Enum):
	PROPAGATE = "propagate"  # inside a result-returning function/lambda
	DESTRUCTURE = "destructure"  # `value, err = call()`
	UNWRAP = "unwrap"  # unhandled: throws on error at runtime


@dataclass(frozen=True)
class ResultCall:
	"""A call whose runtime value is a result object (explicit or hidden)."""

	ok: Type
	err: Type
	hidden: bool
	mode: ResultMode
	callee: str


class MemberKind(str, Enum):
	FIELD = "field"
	ENUM_VARIANT = "enum_variant"
	ENUM_VALUE = "enum_value"
	ENUM_NAME = "enum_name"
	TUPLE_ELEM = "tuple_elem"


class ReturnWrap(str, Enum):
	OK = "ok"
	ERR = "err"
	RAW = "raw"  # already a result (`return ok(x)` / `return err(e)`)


@dataclass
class CheckedModule:
	module_id: str
	path: str
	context: Optional[ExecutionContext]
	ast: A.Module
	info: ModuleInfo
	# Expression types, plus binding types of VariableDecl and target types of MutationStmt.
	types: Dict[int, Type] = field(default_factory=dict)
	# (declaring node_id, name) of bindings that are mutated via `.mut`.
	mutated: Set[Tuple[int, str]] = field(default_factory=set)
	# Name node -> symbol it resolves to.
	name_symbols: Dict[int, Symbol] = field(default_factory=dict)
	call_targets: Dict[int, CallTarget] = field(default_factory=dict)
	member_kinds: Dict[int, MemberKind] = field(default_factory=dict)
	result_calls: Dict[int, ResultCall] = field(default_factory=dict)
	return_wraps: Dict[int, ReturnWrap] = field(default_factory=dict)
	# FunctionDecl/Lambda node id -> declared result type (result-returning only).
	fn_results: Dict[int, Result] = field(default_factory=dict)
	fn_types: Dict[int, Function] = field(default_factory=dict)
	match_exhaustive: Dict[int, bool] = field(default_factory=dict)
	# Binary `==`/`!=` node id -> constant outcome for statically incomparable operands.
	const_equality: Dict[int, bool] = field(default_factory=dict)
	# Named types declared by this module, in declaration order.
	named_types: Dict[str, Named] = field(default_factory=dict)
	diagnostics: List[Diagnostic] = field(default_factory=list)

	def type_of(self, node: A.Node) -> Optional[Type]:
		return self.types.get(node.node_id)

	def is_mutated(self, node_id: int, name: str) -> bool:
		return (node_id, name) in self.mutated


__all__ = [
	"CallKind",
	"CallTarget",
	"CheckedModule",
	"MemberKind",
	"ResultCall",
	"ResultMode",
	"ReturnWrap",
]
