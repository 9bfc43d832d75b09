# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Bindings, lexical scopes and the cross-module symbol table.

Per-module symbol collection (`collect_module`) is pure and runs in the
parallel phase. The `SymbolTable` aggregates every module after the barrier;
only the single-threaded cross-module phase touches it.
"""

from __future__ import annotations

import posixpath
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterator, List, Optional, Tuple

from ..core.contexts import ExecutionContext
from ..core.diagnostics import Diagnostic, DiagnosticKind
from ..core.span import Span
from ..core.types_core import UNKNOWN, Type
from ..parser import ast as A
from .stdlib import STD_MODULES


class SymbolKind(str, Enum):
	FUNCTION = "function"
	VARIABLE = "variable"
	PARAM = "parameter"
	TYPE = "type"
	ENUM = "enum"
	IMPORT = "import"
	BUILTIN = "builtin"


@dataclass(eq=False)
class Symbol:
	"""
	A named binding.

	Variables and parameters are immutable until the first `name.mut = ...`
	opts them in; `key` identifies the introducing declaration so code
	generation can pick `let` for exactly those bindings.
	"""

	name: str
	kind: SymbolKind
	module: str
	decl: Optional[A.Node] = None
	type: Type = UNKNOWN
	exported: bool = False
	exposed: bool = False
	# Imports: the symbol in the exporting module (set during import resolution).
	origin: Optional["Symbol"] = None
	key: Optional[Tuple[int, str]] = None
	span: Span = field(default_factory=Span)
	# Lazy typing state for module-level functions/variables.
	resolved: bool = False
	resolving: bool = False

	@property
	def target(self) -> "Symbol":
		sym = self
		while sym.origin is not None:
			sym = sym.origin
		return sym

	@property
	def is_value(self) -> bool:
		return self.target.kind in (SymbolKind.FUNCTION, SymbolKind.VARIABLE, SymbolKind.PARAM, SymbolKind.BUILTIN)

	@property
	def is_type_like(self) -> bool:
		return self.target.kind in (SymbolKind.TYPE, SymbolKind.ENUM)


class Scope:
	"""Lexical scope chain; `kind` is module, function or block."""

	def __init__(self, parent: Optional["Scope"] = None, kind: str = "block") -> None:
		self.parent = parent
		self.kind = kind
		self.names: Dict[str, Symbol] = {}
		# Flow-sensitive non-null types (`if x != null { ... }`).
		self.narrowings: Dict[str, Type] = {}

	def define(self, sym: Symbol) -> None:
		self.names[sym.name] = sym

	def lookup_local(self, name: str) -> Optional[Symbol]:
		return self.names.get(name)

	def lookup(self, name: str) -> Optional[Symbol]:
		scope: Optional[Scope] = self
		while scope is not None:
			sym = scope.names.get(name)
			if sym is not None:
				return sym
			scope = scope.parent
		return None

	def child(self, kind: str = "block") -> "Scope":
		return Scope(self, kind)


@dataclass(frozen=True)
class ImportBinding:
	"""One imported name: `local` in the importer refers to `name` in `source_module`."""

	spec: A.ImportSpec
	decl: A.ImportDecl
	source_module: Optional[str]


@dataclass
class ModuleInfo:
	"""Everything the parallel phase learns about one module."""

	module_id: str
	path: str
	context: Optional[ExecutionContext]
	ast: A.Module
	symbols: Dict[str, Symbol] = field(default_factory=dict)
	imports: List[ImportBinding] = field(default_factory=list)
	diagnostics: List[Diagnostic] = field(default_factory=list)

	def exported(self) -> Iterator[Symbol]:
		for sym in self.symbols.values():
			if sym.exported:
				yield sym


def resolve_import_source(importer: str, source: str) -> str:
	"""
	Map an import string to a module id.

	`std/...` names a standard-library module; anything else is a path relative
	to the importing module (`./users.server`, `../shared/types.ssr`). A
	trailing `.tn` is accepted.
	"""
	if source in STD_MODULES or source.startswith("std/"):
		return source
	if source.endswith(".tn"):
		source = source[:-3]
	base = posixpath.dirname(importer)
	return posixpath.normpath(posixpath.join(base, source))


def collect_module(
	module_id: str,
	path: str,
	context: Optional[ExecutionContext],
	tree: A.Module,
) -> ModuleInfo:
	"""
	Collect top-level declarations and imports of one module.

	Reports duplicate names; everything needing other modules waits for the
	cross-module phase.
	"""
	info = ModuleInfo(module_id, path, context, tree)

	def diag(message: str, span: Span) -> None:
		info.diagnostics.append(
			Diagnostic(message, kind=DiagnosticKind.TYPE, code="E-DUPLICATE", phase="typecheck", span=span)
		)

	def add(sym: Symbol) -> None:
		existing = info.symbols.get(sym.name)
		if existing is not None:
			if existing.kind is SymbolKind.VARIABLE and sym.kind is SymbolKind.VARIABLE:
				# Rebinding; the checker reports it as a mutability error.
				return
			diag(f"duplicate declaration of '{sym.name}' (first declared at {existing.span.short()})", sym.span)
			return
		info.symbols[sym.name] = sym

	for item in tree.items:
		if isinstance(item, A.ImportDecl):
			source_module = resolve_import_source(module_id, item.source)
			for spec in item.names:
				info.imports.append(ImportBinding(spec, item, source_module))
				add(Symbol(spec.local_name, SymbolKind.IMPORT, module_id, decl=spec, span=spec.loc))
			continue
		for decl, exported, exposed in _declarations_of(item):
			if isinstance(decl, A.FunctionDecl):
				kind = SymbolKind.FUNCTION
			elif isinstance(decl, A.TypeDecl):
				kind = SymbolKind.TYPE
			elif isinstance(decl, A.EnumDecl):
				kind = SymbolKind.ENUM
			else:
				kind = SymbolKind.VARIABLE
			name = decl.name  # type: ignore[attr-defined]
			key = (decl.node_id, name) if kind is SymbolKind.VARIABLE else None
			add(
				Symbol(
					name,
					kind,
					module_id,
					decl=decl,
					exported=exported,
					exposed=exposed,
					key=key,
					span=decl.loc,
				)
			)
	return info


def _declarations_of(item: A.Node) -> Iterator[Tuple[A.Node, bool, bool]]:
	if isinstance(item, A.ExposeDecl):
		yield item.fn, True, True
	elif isinstance(item, A.ExportDecl):
		yield item.decl, True, False
	elif isinstance(item, (A.FunctionDecl, A.TypeDecl, A.EnumDecl, A.VariableDecl)):
		yield item, False, False


class SymbolTable:
	"""Aggregated cross-module registry, filled after the parallel barrier."""

	def __init__(self) -> None:
		self.modules: Dict[str, ModuleInfo] = {}

	def add(self, info: ModuleInfo) -> None:
		self.modules[info.module_id] = info

	def get(self, module_id: str) -> Optional[ModuleInfo]:
		return self.modules.get(module_id)

	def module_ids(self) -> List[str]:
		return sorted(self.modules)

	def importers_of(self, module_id: str) -> List[str]:
		out = []
		for mid in self.module_ids():
			if any(b.source_module == module_id for b in self.modules[mid].imports):
				out.append(mid)
		return out


__all__ = [
	"ImportBinding",
	"ModuleInfo",
	"Scope",
	"Symbol",
	"SymbolKind",
	"SymbolTable",
	"collect_module",
	"resolve_import_source",
]
