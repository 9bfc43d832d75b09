# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Code generator: linked modules -> TypeScript or JavaScript files.

`generate_program` returns a mapping of output-relative paths to file text;
writing them (and deciding which modules are skipped because of errors) is
the driver's job.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional

from ...tern_core.runtime import runtime_text
from ..linker.context_linker import LinkResult
from .emitter import EmitOptions, ModuleEmitter, emit_module
from .naming import js_name, output_path
from .routes_table import ROUTES_MODULE, routes_json, routes_module
from .schema import schema_of

logger = logging.getLogger(__name__)


def program_outputs(options: EmitOptions) -> List[str]:
	"""Output paths that belong to the whole program rather than to one module."""
	ext = options.extension
	return [output_path(options.runtime_module, ext), output_path(ROUTES_MODULE, ext), "routes.json"]


def generate_program(
	link: LinkResult,
	options: EmitOptions,
	only: Optional[Iterable[str]] = None,
) -> Dict[str, str]:
	"""
	Emit every module of `link` (or just the module ids in `only`), the
	runtime support module and the route tables.
	"""
	selected = set(only) if only is not None else None
	ext = options.extension
	files: Dict[str, str] = {}
	for module_id in sorted(link.modules):
		if selected is not None and module_id not in selected:
			continue
		files[output_path(module_id, ext)] = emit_module(link.modules[module_id], link.modules, options)
	files[output_path(options.runtime_module, ext)] = runtime_text(options.target)
	files[output_path(ROUTES_MODULE, ext)] = routes_module(
		link.routes, typed=options.typed, runtime_module=options.runtime_module
	)
	files["routes.json"] = routes_json(link.routes)
	logger.debug("generated %d files", len(files))
	return files


__all__ = [
	"EmitOptions",
	"ModuleEmitter",
	"emit_module",
	"generate_program",
	"js_name",
	"program_outputs",
	"routes_json",
	"routes_module",
	"schema_of",
]
