# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Source span representation shared by tokens, AST nodes and diagnostics.

Lines and columns are 1-based. `end_line`/`end_column` point one past the
last character of the span (the same convention lark uses for tokens), so a
single-character token at column 5 has `end_column == 6`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional


@dataclass(frozen=True)
class Span:
	"""Represents a source span (best-effort file/line/column)."""

	file: Optional[str] = None
	line: Optional[int] = None
	column: Optional[int] = None
	end_line: Optional[int] = None
	end_column: Optional[int] = None

	@classmethod
	def from_loc(cls, loc: Any, *, file: Optional[str] = None) -> "Span":
		"""
		Construct a Span from a parser/location object.

		Accepts an existing Span (returned unchanged unless `file` fills a gap),
		a lark Token, or a lark tree `meta` object.
		"""
		if loc is None:
			return cls(file=file)
		if isinstance(loc, cls):
			if loc.file is None and file is not None:
				return cls(file, loc.line, loc.column, loc.end_line, loc.end_column)
			return loc
		if getattr(loc, "empty", False):
			return cls(file=file)
		return cls(
			file=file or getattr(loc, "file", None),
			line=getattr(loc, "line", None),
			column=getattr(loc, "column", None),
			end_line=getattr(loc, "end_line", None),
			end_column=getattr(loc, "end_column", None),
		)

	def merge(self, other: "Span") -> "Span":
		"""Return the smallest span covering `self` and `other`."""
		if self.line is None:
			return other
		if other.line is None:
			return self
		start = min((self.line, self.column or 0), (other.line, other.column or 0))
		end = max(
			(self.end_line or self.line, self.end_column or 0),
			(other.end_line or other.line, other.end_column or 0),
		)
		return Span(self.file or other.file, start[0], start[1], end[0], end[1])

	def short(self) -> str:
		"""Render `line:column` (or `?:?` when unknown)."""
		line = "?" if self.line is None else str(self.line)
		col = "?" if self.column is None else str(self.column)
		return f"{line}:{col}"


__all__ = ["Span"]
