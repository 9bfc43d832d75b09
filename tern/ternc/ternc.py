# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
ternc command line.

	ternc [SRC] [-o OUT] [--target ts|js] [--rpc-prefix P] [-j N]
	      [--config tern.json] [--check] [--json] [--no-cache] [-v]

Compiles every `*.tn` file under the source root. With `--check` nothing is
written and every diagnostic is reported. With `--json`, prints
`{"exit_code": N, "diagnostics": [...]}` on stdout; otherwise diagnostics go
to stderr as `file:line:col: severity: [Kind] message`. Exit status is 1 when
any error was reported.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from .. import __version__
from .codegen import EmitOptions, program_outputs
from .codegen.naming import output_path
from .config import TARGETS, CompilerConfig, ConfigError, find_config, load_config
from .core.contexts import SOURCE_SUFFIX, module_id_for_path
from .core.diagnostics import Diagnostic, DiagnosticKind, has_errors, sort_diagnostics
from .core.span import Span
from .incremental import CACHE_FILE, BuildCache, dirty_modules, options_fingerprint, source_hash
from .pipeline import compile_program, emit_program
from .writer import remove_outputs, write_outputs

logger = logging.getLogger(__name__)


@dataclass
class BuildReport:
	diagnostics: List[Diagnostic] = field(default_factory=list)
	written: List[str] = field(default_factory=list)
	up_to_date: List[str] = field(default_factory=list)

	@property
	def exit_code(self) -> int:
		return 1 if has_errors(self.diagnostics) else 0


def _io_error(message: str, file: str) -> Diagnostic:
	return Diagnostic(message, kind=DiagnosticKind.IO, code="E-IO", phase="io", span=Span(file))


def discover_sources(src: Path) -> Tuple[Dict[str, str], List[Diagnostic]]:
	"""Read every source file under `src`, keyed by posix path relative to it."""
	if not src.is_dir():
		return {}, [_io_error(f"source root not found: {src}", str(src))]
	sources: Dict[str, str] = {}
	diags: List[Diagnostic] = []
	for path in sorted(src.rglob("*" + SOURCE_SUFFIX)):
		if not path.is_file():
			continue
		rel = path.relative_to(src).as_posix()
		try:
			sources[rel] = path.read_text(encoding="utf-8")
		except (OSError, UnicodeDecodeError) as err:
			diags.append(_io_error(f"cannot read {rel}: {err}", rel))
	logger.info("found %d source files under %s", len(sources), src)
	return sources, diags


def build(config: CompilerConfig, *, check_only: bool = False, use_cache: bool = True) -> BuildReport:
	report = BuildReport()
	sources, io_diags = discover_sources(config.src)
	report.diagnostics.extend(io_diags)
	result = compile_program(sources, rpc_prefix=config.rpc_prefix, jobs=config.workers)
	report.diagnostics.extend(result.diagnostics)
	if check_only:
		return report

	options = EmitOptions(target=config.target, runtime_module=config.runtime_module)
	cache_path = config.out / CACHE_FILE
	cache = BuildCache.load(cache_path) if use_cache else BuildCache()
	hashes = {module_id_for_path(rel): source_hash(text) for rel, text in sources.items()}
	fingerprint = options_fingerprint(__version__, config.target, config.rpc_prefix, config.runtime_module)
	dirty = dirty_modules(cache, hashes, result.importers(), fingerprint)
	for module_id in hashes:
		if not (config.out / output_path(module_id, options.extension)).exists():
			dirty.add(module_id)
	report.up_to_date = sorted(set(hashes) - dirty)

	files = emit_program(result, options, only=sorted(dirty))
	written, write_diags = write_outputs(config.out, files)
	report.written = written
	report.diagnostics.extend(write_diags)
	failed = result.failed_modules
	stale = [output_path(mid, options.extension) for mid in cache.modules if mid not in hashes]
	# Failed modules, and the program-level files of a failing program, keep
	# nothing from an earlier build.
	stale += [output_path(mid, options.extension) for mid in sorted(failed)]
	if result.has_errors:
		stale += program_outputs(options)
	remove_outputs(config.out, stale)

	written_set = set(written)
	new_cache = BuildCache(fingerprint=fingerprint)
	for module_id, digest in hashes.items():
		if module_id in failed:
			continue
		emitted = output_path(module_id, options.extension) in written_set
		if emitted or (module_id not in dirty and cache.modules.get(module_id) == digest):
			new_cache.modules[module_id] = digest
	try:
		new_cache.save(cache_path)
	except OSError as err:
		report.diagnostics.append(_io_error(f"cannot write {cache_path}: {err}", str(cache_path)))
	logger.info("wrote %d files, %d modules up to date", len(written), len(report.up_to_date))
	return report


def _build_parser() -> argparse.ArgumentParser:
	p = argparse.ArgumentParser(prog="ternc", description="Compile Tern sources to TypeScript or JavaScript")
	p.add_argument("src", type=Path, nargs="?", help="Source root (default: from tern.json, else ./src)")
	p.add_argument("-o", "--out", type=Path, help="Output directory (default: from tern.json, else ./dist)")
	p.add_argument("--target", choices=TARGETS, help="Output language (default: ts)")
	p.add_argument("--rpc-prefix", help="Path prefix of generated routes (default: /rpc)")
	p.add_argument("-j", "--jobs", type=int, help="Parser threads (default: one per CPU)")
	p.add_argument("--runtime-module", help="Name of the emitted runtime module (default: tern_runtime)")
	p.add_argument("--config", type=Path, help="Path to tern.json (default: nearest one upwards)")
	p.add_argument("--check", action="store_true", help="Report diagnostics without writing any output")
	p.add_argument("--json", action="store_true", help="Emit diagnostics as JSON on stdout")
	p.add_argument("--no-cache", action="store_true", help="Ignore .tern-cache.json and rebuild every module")
	p.add_argument("-v", "--verbose", action="count", default=0, help="Log progress (-vv for debug output)")
	p.add_argument("--version", action="version", version=f"ternc {__version__}")
	return p


def resolve_config(args: argparse.Namespace) -> CompilerConfig:
	if args.config is not None:
		config = load_config(args.config)
	else:
		found = find_config(args.src if args.src is not None else Path.cwd())
		config = load_config(found) if found is not None else CompilerConfig()
	return config.with_overrides(
		src=args.src,
		out=args.out,
		target=args.target,
		rpc_prefix=args.rpc_prefix,
		jobs=args.jobs,
		runtime_module=args.runtime_module,
	)


def _print_diagnostics(diags: List[Diagnostic], exit_code: int, as_json: bool) -> None:
	ordered = sort_diagnostics(diags)
	if as_json:
		print(json.dumps({"exit_code": exit_code, "diagnostics": [d.to_json() for d in ordered]}))
		return
	for diag in ordered:
		print(diag.render(), file=sys.stderr)
		for note in diag.notes:
			print(f"  note: {note}", file=sys.stderr)


def main(argv: Optional[List[str]] = None) -> int:
	args = _build_parser().parse_args(argv)
	level = logging.WARNING
	if args.verbose >= 2:
		level = logging.DEBUG
	elif args.verbose == 1:
		level = logging.INFO
	logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")

	try:
		config = resolve_config(args)
	except ConfigError as err:
		_print_diagnostics([_io_error(str(err), str(args.config or "tern.json"))], 1, args.json)
		return 1
	report = build(config, check_only=args.check, use_cache=not args.no_cache)
	_print_diagnostics(report.diagnostics, report.exit_code, args.json)
	return report.exit_code


if __name__ == "__main__":
	sys.exit(main())
