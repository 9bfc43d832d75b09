# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Common diagnostic structure for all compiler passes.

Every checked error carries a kind from the fixed taxonomy below plus a span.
Passes collect diagnostics into lists and keep going; only the parser stops
early (one `SyntaxError` per file).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from .span import Span


class DiagnosticKind(str, Enum):
	"""Diagnostic taxonomy. Values are the user-visible kind names."""

	SYNTAX = "SyntaxError"
	TYPE = "TypeError"
	MUTABILITY = "MutabilityError"
	BOUNDARY = "BoundaryViolation"
	PROPAGATION = "PropagationError"
	IO = "IOError"


@dataclass
class Diagnostic:
	"""Represents a compiler diagnostic (error/warning)."""

	message: str
	kind: DiagnosticKind = DiagnosticKind.TYPE
	code: str | None = None
	# Pipeline phase that produced the diagnostic (parser, typecheck, propagate,
	# link, codegen, io). Used by JSON output and test expectations.
	phase: str | None = None
	severity: str = "error"
	span: Span = field(default_factory=Span)
	notes: list[str] = field(default_factory=list)

	def __post_init__(self) -> None:
		if self.span is None:  # type: ignore[unreachable]
			self.span = Span()

	@property
	def is_error(self) -> bool:
		return self.severity == "error"

	def render(self, fallback_file: str | None = None) -> str:
		"""Human-readable one-line rendering (`file:line:col: severity: [Kind] msg`)."""
		file = self.span.file or fallback_file or "<unknown>"
		return f"{file}:{self.span.short()}: {self.severity}: [{self.kind.value}] {self.message}"

	def to_json(self, fallback_file: str | None = None) -> dict:
		"""Render to a structured JSON-friendly dict."""
		return {
			"kind": self.kind.value,
			"code": self.code,
			"phase": self.phase,
			"message": self.message,
			"severity": self.severity,
			"file": self.span.file or fallback_file,
			"line": self.span.line,
			"column": self.span.column,
			"end_line": self.span.end_line,
			"end_column": self.span.end_column,
			"notes": list(self.notes),
		}


def has_errors(diags: list[Diagnostic]) -> bool:
	return any(d.is_error for d in diags)


def sort_diagnostics(diags: list[Diagnostic]) -> list[Diagnostic]:
	"""Stable ordering for output: by file, then position."""
	return sorted(
		diags,
		key=lambda d: (d.span.file or "", d.span.line or 0, d.span.column or 0),
	)


__all__ = ["Diagnostic", "DiagnosticKind", "has_errors", "sort_diagnostics"]
