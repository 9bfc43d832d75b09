# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Whole-program pipeline over in-memory sources.

	read/lex/parse/collect (thread pool, per module)
	   -> barrier
	   -> check_program (cross-module, single-threaded)
	   -> propagate_module (per module)
	   -> link_program
	   -> generate_program (driver decides which modules to emit)

Sources are keyed by their path relative to the source root (posix
separators); the file name's context tag (`.server.tn`, `.ssr.tn`,
`.client.tn`) is the only source of context truth.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Set, Tuple

from .checker import check_program
from .checker.decorations import CheckedModule
from .checker.symbols import ModuleInfo, collect_module
from .codegen import EmitOptions, generate_program
from .core.contexts import context_for_path, module_id_for_path
from .core.diagnostics import Diagnostic, DiagnosticKind, has_errors, sort_diagnostics
from .core.span import Span
from .linker import DEFAULT_RPC_PREFIX, LinkResult, link_program
from .parser import ParseError, parse_module
from .stage1 import LoweredModule, propagate_module

logger = logging.getLogger(__name__)


@dataclass
class ProgramResult:
	"""Outcome of compiling one source root (everything but file output)."""

	paths: Dict[str, str] = field(default_factory=dict)  # module id -> relative path
	infos: Dict[str, ModuleInfo] = field(default_factory=dict)
	checked: Dict[str, CheckedModule] = field(default_factory=dict)
	link: Optional[LinkResult] = None
	# Diagnostics attributed to a module, and those that are not (global).
	module_diagnostics: Dict[str, List[Diagnostic]] = field(default_factory=dict)
	global_diagnostics: List[Diagnostic] = field(default_factory=list)

	@property
	def diagnostics(self) -> List[Diagnostic]:
		out = list(self.global_diagnostics)
		for diags in self.module_diagnostics.values():
			out.extend(diags)
		return sort_diagnostics(out)

	@property
	def failed_modules(self) -> Set[str]:
		return {mid for mid, diags in self.module_diagnostics.items() if has_errors(diags)}

	@property
	def has_errors(self) -> bool:
		return has_errors(self.global_diagnostics) or bool(self.failed_modules)

	def importers(self) -> Dict[str, Set[str]]:
		"""Module id -> ids of modules importing it directly."""
		out: Dict[str, Set[str]] = {}
		for mid, info in self.infos.items():
			for binding in info.imports:
				if binding.source_module is not None:
					out.setdefault(binding.source_module, set()).add(mid)
		return out


def parse_and_collect(rel_path: str, text: str) -> Tuple[Optional[ModuleInfo], List[Diagnostic]]:
	"""Per-module front half; safe to run on worker threads."""
	module_id = module_id_for_path(rel_path)
	context = context_for_path(rel_path)
	if context is None:
		message = (
			f"cannot determine the execution context of '{rel_path}' "
			"(expected <name>.server.tn, <name>.ssr.tn or <name>.client.tn)"
		)
		diag = Diagnostic(message, kind=DiagnosticKind.BOUNDARY, code="E-CONTEXT", phase="link", span=Span(rel_path))
		return None, [diag]
	try:
		tree = parse_module(text, rel_path)
	except ParseError as err:
		span = Span.from_loc(err.loc, file=rel_path)
		diag = Diagnostic(str(err), kind=DiagnosticKind.SYNTAX, code="E-SYNTAX", phase="parser", span=span)
		return None, [diag]
	info = collect_module(module_id, rel_path, context, tree)
	logger.debug("parsed %s (%d items)", rel_path, len(tree.items))
	return info, list(info.diagnostics)


def compile_program(
	sources: Mapping[str, str],
	*,
	rpc_prefix: str = DEFAULT_RPC_PREFIX,
	jobs: int = 1,
) -> ProgramResult:
	result = ProgramResult()
	ordered = sorted(sources.items())
	for rel_path, _ in ordered:
		result.paths[module_id_for_path(rel_path)] = rel_path
	with ThreadPoolExecutor(max_workers=max(1, jobs)) as pool:
		collected = list(pool.map(lambda item: parse_and_collect(*item), ordered))
	for (rel_path, _), (info, diags) in zip(ordered, collected):
		module_id = module_id_for_path(rel_path)
		result.module_diagnostics[module_id] = list(diags)
		if info is not None:
			result.infos[module_id] = info

	# Barrier: everything below sees the whole program.
	result.checked = check_program(list(result.infos.values()))
	lowered: Dict[str, LoweredModule] = {}
	for module_id, cm in result.checked.items():
		diags = result.module_diagnostics.setdefault(module_id, [])
		diags.extend(cm.diagnostics)
		if has_errors(cm.diagnostics):
			# Not rewritten; still linked so boundary violations are reported.
			lowered[module_id] = LoweredModule(cm, cm.ast)
			continue
		lm = propagate_module(cm)
		diags.extend(lm.diagnostics)
		lowered[module_id] = lm

	result.link = link_program(lowered, rpc_prefix=rpc_prefix)
	by_path = {path: mid for mid, path in result.paths.items()}
	for diag in result.link.diagnostics:
		module_id = by_path.get(diag.span.file or "")
		if module_id is None:
			result.global_diagnostics.append(diag)
		else:
			result.module_diagnostics.setdefault(module_id, []).append(diag)
	logger.info(
		"compiled %d modules: %d with errors, %d routes",
		len(result.paths),
		len(result.failed_modules),
		len(result.link.routes),
	)
	return result


def emit_program(
	result: ProgramResult,
	options: EmitOptions,
	only: Optional[Iterable[str]] = None,
) -> Dict[str, str]:
	"""
	Generated files for the modules of `result` that compiled cleanly
	(restricted to `only` when given). Program-level outputs (runtime and
	route tables) are included only when the whole program is error-free.
	"""
	if result.link is None:
		return {}
	failed = result.failed_modules
	selected = [mid for mid in (only if only is not None else result.link.modules) if mid not in failed]
	files = generate_program(result.link, options, only=selected)
	if result.has_errors:
		module_files = {f"{mid}.{options.extension}" for mid in selected}
		files = {path: text for path, text in files.items() if path in module_files}
	return files


def compile_sources(
	sources: Mapping[str, str],
	options: Optional[EmitOptions] = None,
	*,
	rpc_prefix: str = DEFAULT_RPC_PREFIX,
) -> Tuple[Dict[str, str], List[Diagnostic]]:
	"""Compile in-memory sources; returns (generated files, diagnostics)."""
	result = compile_program(sources, rpc_prefix=rpc_prefix)
	files = emit_program(result, options or EmitOptions())
	return files, result.diagnostics


__all__ = [
	"ProgramResult",
	"compile_program",
	"compile_sources",
	"emit_program",
	"parse_and_collect",
]
