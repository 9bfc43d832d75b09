# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Type & mutability checker.

Two phases:

* `collect_module` (parallel, per module): top-level declarations and
  imports, duplicate detection.
* `Checker` (single-threaded, after the barrier): resolves imports against
  the aggregated `SymbolTable`, resolves type and enum declarations, then
  checks every module body, producing one `CheckedModule` per module.
"""

from __future__ import annotations

import logging
from typing import Dict, Optional

from ..core.diagnostics import Diagnostic, DiagnosticKind
from ..core.types_core import UNKNOWN, Type
from .decorations import (
	CallKind,
	CallTarget,
	CheckedModule,
	MemberKind,
	ResultCall,
	ResultMode,
	ReturnWrap,
)
from .module_checker import ModuleChecker
from .stdlib import BUILTIN_FUNCTIONS, BUILTIN_VALUES, STD_MODULES
from .symbols import (
	ImportBinding,
	ModuleInfo,
	Scope,
	Symbol,
	SymbolKind,
	SymbolTable,
	collect_module,
	resolve_import_source,
)

logger = logging.getLogger(__name__)


def _builtin_scope() -> Scope:
	scope = Scope(None, "builtin")
	for name in sorted(BUILTIN_FUNCTIONS | BUILTIN_VALUES):
		scope.define(Symbol(name, SymbolKind.BUILTIN, "builtin", resolved=True))
	return scope


class Checker:
	"""Cross-module checking over an aggregated symbol table."""

	def __init__(self, table: SymbolTable) -> None:
		self.table = table
		self.builtins = _builtin_scope()
		self.modules: Dict[str, ModuleChecker] = {
			mid: ModuleChecker(self, table.modules[mid], self.builtins) for mid in table.module_ids()
		}
		self._std_symbols: Dict[tuple, Symbol] = {}

	# Symbol typing -----------------------------------------------------------

	def symbol_type(self, sym: Symbol) -> Type:
		"""Type of `sym` (following imports), resolving lazily declared symbols."""
		target = sym.target
		if target.kind is SymbolKind.IMPORT:
			return UNKNOWN
		if target.resolved or target.kind in (SymbolKind.PARAM, SymbolKind.BUILTIN):
			return target.type
		owner = self.modules.get(target.module)
		if owner is None:
			return target.type
		return owner.resolve_symbol(target)

	def is_module_level(self, sym: Symbol) -> bool:
		if sym.module in STD_MODULES:
			return True
		info = self.table.get(sym.module)
		return info is not None and info.symbols.get(sym.name) is sym

	# Imports -----------------------------------------------------------------

	def _std_symbol(self, module_id: str, name: str) -> Optional[Symbol]:
		key = (module_id, name)
		if key in self._std_symbols:
			return self._std_symbols[key]
		std = STD_MODULES[module_id]
		if name in std.functions:
			sym = Symbol(name, SymbolKind.FUNCTION, module_id, type=std.functions[name], exported=True, resolved=True)
		elif name in std.types:
			sym = Symbol(name, SymbolKind.TYPE, module_id, type=std.types[name], exported=True, resolved=True)
		else:
			return None
		self._std_symbols[key] = sym
		return sym

	def _resolve_import(self, mc: ModuleChecker, binding: ImportBinding) -> None:
		spec = binding.spec
		local = mc.info.symbols.get(spec.local_name)
		if local is None or local.decl is not spec:
			return

		def fail(message: str) -> None:
			mc.checked.diagnostics.append(
				Diagnostic(message, kind=DiagnosticKind.TYPE, code="E-IMPORT", phase="typecheck", span=spec.loc)
			)

		source = binding.source_module or ""
		if source in STD_MODULES:
			target = self._std_symbol(source, spec.name)
			if target is None:
				fail(f"module '{source}' has no export '{spec.name}'")
				return
			local.origin = target
			return
		if source.startswith("std/"):
			fail(f"unknown standard module '{source}'")
			return
		info = self.table.get(source)
		if info is None:
			fail(f"cannot find module '{binding.decl.source}' (resolved to '{source}')")
			return
		target = info.symbols.get(spec.name)
		if target is None or target.kind is SymbolKind.IMPORT:
			fail(f"module '{source}' has no export '{spec.name}'")
			return
		if not target.exported:
			fail(f"'{spec.name}' is not exported by module '{source}'")
			return
		local.origin = target

	# Driver ------------------------------------------------------------------

	def check_all(self) -> Dict[str, CheckedModule]:
		for mid, mc in self.modules.items():
			for binding in mc.info.imports:
				self._resolve_import(mc, binding)
		for mc in self.modules.values():
			mc.declare_types()
		out = {}
		for mid, mc in self.modules.items():
			out[mid] = mc.check_module()
			logger.debug("%s: %d diagnostics", mid, len(out[mid].diagnostics))
		return out


def check_program(infos) -> Dict[str, CheckedModule]:
	"""Aggregate per-module infos into a symbol table and check all modules."""
	table = SymbolTable()
	for info in infos:
		table.add(info)
	return Checker(table).check_all()


__all__ = [
	"CallKind",
	"CallTarget",
	"CheckedModule",
	"Checker",
	"ImportBinding",
	"MemberKind",
	"ModuleInfo",
	"ResultCall",
	"ResultMode",
	"ReturnWrap",
	"Scope",
	"Symbol",
	"SymbolKind",
	"SymbolTable",
	"check_program",
	"collect_module",
	"resolve_import_source",
]
