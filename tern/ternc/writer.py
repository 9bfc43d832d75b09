# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""Atomic output writing: a reader never sees a half-written file."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import List, Mapping, Tuple

from .core.diagnostics import Diagnostic, DiagnosticKind
from .core.span import Span

logger = logging.getLogger(__name__)


def write_atomic(path: Path, text: str) -> None:
	path.parent.mkdir(parents=True, exist_ok=True)
	tmp = path.with_name(path.name + f".tmp.{os.getpid()}")
	try:
		tmp.write_text(text, encoding="utf-8")
		os.replace(tmp, path)
	except (OSError, UnicodeError):
		if tmp.exists():
			tmp.unlink()
		raise


def write_outputs(out_dir: Path, files: Mapping[str, str]) -> Tuple[List[str], List[Diagnostic]]:
	"""
	Write `files` (output-relative posix paths) under `out_dir`.

	A failed write aborts that file only and becomes an `IOError` diagnostic.
	Returns the paths written and the diagnostics.
	"""
	written: List[str] = []
	diags: List[Diagnostic] = []
	for rel, text in sorted(files.items()):
		target = out_dir.joinpath(*rel.split("/"))
		try:
			write_atomic(target, text)
		except (OSError, UnicodeError) as err:
			diags.append(
				Diagnostic(
					f"cannot write {target}: {getattr(err, 'strerror', None) or err}",
					kind=DiagnosticKind.IO,
					code="E-IO",
					phase="io",
					span=Span(str(target)),
				)
			)
			continue
		written.append(rel)
		logger.debug("wrote %s", target)
	return written, diags


def remove_outputs(out_dir: Path, rels: List[str]) -> None:
	"""Delete stale outputs (removed or failed modules, program-level files of a failing build)."""
	for rel in rels:
		target = out_dir.joinpath(*rel.split("/"))
		try:
			target.unlink()
		except FileNotFoundError:
			continue
		logger.info("removed stale output %s", target)


__all__ = ["remove_outputs", "write_atomic", "write_outputs"]
