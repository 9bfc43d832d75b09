# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Context linker.

Runs single-threaded over every lowered module once checking is complete:

1. validates each import edge against the execution-context rules;
2. validates `expose` declarations and builds the route table;
3. resolves every cross-module function call site to a direct reference or a
   network stub (code generation never makes that decision itself);
4. infers which functions become asynchronous because they (transitively)
   await a stub.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Set, Tuple

from ..checker.decorations import CallKind
from ..checker.stdlib import STD_MODULES
from ..checker.symbols import Symbol, SymbolKind
from ..core.contexts import ExecutionContext, route_base_for_module
from ..core.diagnostics import Diagnostic, DiagnosticKind
from ..core.types_core import Function
from ..parser import ast as A
from ..stage1.propagate import LoweredModule
from .routes import RouteDescriptor, build_route, unserializable_part

logger = logging.getLogger(__name__)

SO = ExecutionContext.SERVER_ONLY
SSR = ExecutionContext.SERVER_RENDERED
CO = ExecutionContext.CLIENT_ONLY

DEFAULT_RPC_PREFIX = "/rpc"


class CallStrategy(str, Enum):
	DIRECT = "direct"
	STUB = "stub"


@dataclass(frozen=True)
class CallResolution:
	"""How one call site reaches a module-level function."""

	strategy: CallStrategy
	module: str
	name: str
	route: Optional[RouteDescriptor] = None


@dataclass(frozen=True)
class StubSpec:
	"""A client-side stand-in for an imported exposed function."""

	local_name: str
	route: RouteDescriptor


@dataclass
class LinkedModule:
	lowered: LoweredModule
	# Keyed by `lowered.key(call)`.
	calls: Dict[int, CallResolution] = field(default_factory=dict)
	stubs: List[StubSpec] = field(default_factory=list)
	# Shared across the program: keys of async FunctionDecl/Lambda nodes and awaited calls.
	async_owners: Set[int] = field(default_factory=set)
	awaited_calls: Set[int] = field(default_factory=set)

	@property
	def module_id(self) -> str:
		return self.lowered.module_id

	@property
	def context(self) -> Optional[ExecutionContext]:
		return self.lowered.checked.context

	def stub_names(self) -> Set[str]:
		return {s.local_name for s in self.stubs}

	def is_async(self, node: A.Node) -> bool:
		return self.lowered.key(node) in self.async_owners

	def is_awaited(self, call: A.Call) -> bool:
		return self.lowered.key(call) in self.awaited_calls


@dataclass
class LinkResult:
	modules: Dict[str, LinkedModule]
	routes: List[RouteDescriptor]
	diagnostics: List[Diagnostic] = field(default_factory=list)


def _context_name(ctx: Optional[ExecutionContext]) -> str:
	return {SO: "server-only", SSR: "server-rendered", CO: "client-only"}.get(ctx, "unknown")  # type: ignore[arg-type]


class ContextLinker:
	def __init__(self, modules: Dict[str, LoweredModule], *, rpc_prefix: str = DEFAULT_RPC_PREFIX) -> None:
		self.lowered = modules
		self.rpc_prefix = rpc_prefix
		self.diagnostics: List[Diagnostic] = []
		self.routes: List[RouteDescriptor] = []
		self._routes_by_fn: Dict[Tuple[str, str], RouteDescriptor] = {}
		self._async_owners: Set[int] = set()
		self._awaited: Set[int] = set()
		self.linked: Dict[str, LinkedModule] = {
			mid: LinkedModule(lm, async_owners=self._async_owners, awaited_calls=self._awaited)
			for mid, lm in sorted(modules.items())
		}

	def _violation(self, message: str, span, notes: Optional[List[str]] = None) -> None:
		self.diagnostics.append(
			Diagnostic(
				message,
				kind=DiagnosticKind.BOUNDARY,
				code="E-BOUNDARY",
				phase="link",
				span=span,
				notes=list(notes or []),
			)
		)

	def _module_context(self, module_id: str) -> Optional[ExecutionContext]:
		if module_id in STD_MODULES:
			return STD_MODULES[module_id].context
		lm = self.lowered.get(module_id)
		return lm.checked.context if lm is not None else None

	# Public entry point ---------------------------------------------------

	def link(self) -> LinkResult:
		for lm in self.linked.values():
			self._check_imports(lm)
		for lm in self.linked.values():
			self._collect_routes(lm)
		for lm in self.linked.values():
			self._collect_stubs(lm)
		edges = []
		for lm in self.linked.values():
			edges.extend(self._resolve_calls(lm))
		self._infer_async(edges)
		logger.info("linked %d modules, %d routes", len(self.linked), len(self.routes))
		return LinkResult(self.linked, list(self.routes), self.diagnostics)

	# Imports ----------------------------------------------------------------

	def _check_imports(self, lm: LinkedModule) -> None:
		importer = lm.context
		if importer is None:
			return
		info = lm.lowered.checked.info
		for binding in info.imports:
			local = info.symbols.get(binding.spec.local_name)
			if local is None or local.decl is not binding.spec or local.origin is None:
				continue
			target = local.target
			reason = self._import_violation(importer, target)
			if reason is None:
				continue
			self._violation(
				f"module '{lm.module_id}' ({_context_name(importer)}) cannot import '{binding.spec.name}' "
				f"from '{target.module}' ({_context_name(self._module_context(target.module))}): {reason}",
				binding.spec.loc,
			)

	def _import_violation(self, importer: ExecutionContext, target: Symbol) -> Optional[str]:
		if target.kind in (SymbolKind.TYPE, SymbolKind.ENUM):
			# Types and enums are context-free.
			return None
		source = self._module_context(target.module)
		if source is None:
			return None
		if importer is SO:
			if source is SO:
				return None
			return "server-only modules may import only from server-only modules"
		if source is SO:
			if target.kind is SymbolKind.FUNCTION and target.exposed:
				return None
			if target.module in STD_MODULES:
				return "this standard module is available to server-only modules only"
			return "only 'expose'd functions are visible outside server-only modules"
		if importer is CO and source is SSR:
			return "client-only modules may import only types and enums from server-rendered modules"
		return None

	# Routes -----------------------------------------------------------------

	def _collect_routes(self, lm: LinkedModule) -> None:
		checked = lm.lowered.checked
		for item in checked.ast.items:
			if not isinstance(item, A.ExposeDecl):
				continue
			fn = item.fn
			if lm.context is not SO:
				self._violation(
					f"'expose {fn.name}' is only allowed in server-only modules (*.server.tn); "
					f"'{lm.module_id}' is {_context_name(lm.context)}",
					item.loc,
				)
				continue
			sym = checked.info.symbols.get(fn.name)
			fn_t = sym.type if sym is not None else None
			if not isinstance(fn_t, Function):
				continue
			ok = True
			for param, pt in zip(fn.params, fn_t.params):
				bad = unserializable_part(pt)
				if bad is not None:
					ok = False
					self._violation(
						f"exposed function '{fn.name}' has non-serializable parameter '{param.name}' ({bad.render()})",
						param.loc,
					)
			bad = unserializable_part(fn_t.ret)
			if bad is not None:
				ok = False
				self._violation(
					f"exposed function '{fn.name}' has a non-serializable return type ({bad.render()})",
					fn.loc,
				)
			if not ok:
				continue
			route = build_route(
				route_base_for_module(lm.module_id),
				self.rpc_prefix,
				lm.module_id,
				fn.name,
				fn_t,
				[p.name for p in fn.params],
			)
			self.routes.append(route)
			self._routes_by_fn[(lm.module_id, fn.name)] = route

	def _collect_stubs(self, lm: LinkedModule) -> None:
		if lm.context is not CO:
			return
		info = lm.lowered.checked.info
		for binding in info.imports:
			local = info.symbols.get(binding.spec.local_name)
			if local is None or local.origin is None:
				continue
			target = local.target
			route = self._routes_by_fn.get((target.module, target.name))
			if route is not None:
				lm.stubs.append(StubSpec(binding.spec.local_name, route))

	# Call sites -------------------------------------------------------------

	def _resolve_calls(self, lm: LinkedModule) -> List[Tuple[int, Optional[int], Optional[int]]]:
		"""
		Resolve call sites; return `(call key, owner key, callee decl key)` edges
		for direct calls to user functions.
		"""
		checked = lm.lowered.checked
		edges = []
		for call, owner in _calls_with_owner(lm.lowered):
			key = lm.lowered.key(call)
			target = checked.call_targets.get(key)
			if target is None:
				continue
			callee_decl = None
			if target.kind is CallKind.FUNCTION and target.module is not None:
				res = self._resolve_function_call(lm, target.module, target.name)
				lm.calls[key] = res
				if res.strategy is CallStrategy.STUB:
					self._awaited.add(key)
					if owner is not None:
						self._async_owners.add(owner)
					continue
				callee_decl = self._decl_key(target.module, target.name)
			elif target.kind is CallKind.VALUE and isinstance(call.callee, A.Name):
				sym = checked.name_symbols.get(lm.lowered.key(call.callee))
				if sym is not None and sym.kind is SymbolKind.FUNCTION and isinstance(sym.decl, A.FunctionDecl):
					callee_decl = sym.decl.node_id
			if callee_decl is not None:
				edges.append((key, owner, callee_decl))
		return edges

	def _resolve_function_call(self, lm: LinkedModule, module: str, name: str) -> CallResolution:
		route = self._routes_by_fn.get((module, name))
		if route is not None and lm.context is CO and module != lm.module_id:
			return CallResolution(CallStrategy.STUB, module, name, route)
		return CallResolution(CallStrategy.DIRECT, module, name, route)

	def _decl_key(self, module: str, name: str) -> Optional[int]:
		lm = self.lowered.get(module)
		if lm is None:
			return None
		sym = lm.checked.info.symbols.get(name)
		if sym is None or not isinstance(sym.decl, A.FunctionDecl):
			return None
		return sym.decl.node_id

	def _infer_async(self, edges) -> None:
		"""Callers of async functions await them and become async themselves."""
		changed = True
		while changed:
			changed = False
			for call_key, owner, callee in edges:
				if callee in self._async_owners and call_key not in self._awaited:
					self._awaited.add(call_key)
					changed = True
					if owner is not None:
						self._async_owners.add(owner)


def _calls_with_owner(lm: LoweredModule):
	"""Yield `(call, owner key)`; the owner is the innermost enclosing function or lambda."""
	stack = [(lm.ast, None)]
	while stack:
		node, owner = stack.pop()
		if isinstance(node, A.Call):
			yield node, owner
		if isinstance(node, (A.FunctionDecl, A.Lambda)):
			owner = lm.key(node)
		children = list(A.iter_children(node))
		for child in reversed(children):
			stack.append((child, owner))


def link_program(modules: Dict[str, LoweredModule], *, rpc_prefix: str = DEFAULT_RPC_PREFIX) -> LinkResult:
	return ContextLinker(modules, rpc_prefix=rpc_prefix).link()


__all__ = [
	"CallResolution",
	"CallStrategy",
	"ContextLinker",
	"DEFAULT_RPC_PREFIX",
	"LinkResult",
	"LinkedModule",
	"StubSpec",
	"link_program",
]
