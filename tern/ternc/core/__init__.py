# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""Core data shared by every ternc pass: spans, diagnostics, types, contexts."""

from .contexts import ExecutionContext, context_for_path, module_id_for_path, route_base_for_module
from .diagnostics import Diagnostic, DiagnosticKind, has_errors, sort_diagnostics
from .span import Span

__all__ = [
	"Diagnostic",
	"DiagnosticKind",
	"ExecutionContext",
	"Span",
	"context_for_path",
	"has_errors",
	"module_id_for_path",
	"route_base_for_module",
	"sort_diagnostics",
]
