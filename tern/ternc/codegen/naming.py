# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""Identifier mangling and output/import paths for generated modules."""

from __future__ import annotations

import posixpath

from ..checker.stdlib import STD_IMPORT_PREFIX, STD_MODULES

# Words Tern accepts as identifiers but JS/TS reserve (or shadow badly).
JS_RESERVED = frozenset(
	{
		"arguments",
		"await",
		"case",
		"catch",
		"class",
		"const",
		"debugger",
		"default",
		"delete",
		"do",
		"eval",
		"extends",
		"finally",
		"function",
		"implements",
		"instanceof",
		"interface",
		"let",
		"new",
		"package",
		"private",
		"protected",
		"public",
		"static",
		"super",
		"switch",
		"this",
		"throw",
		"try",
		"typeof",
		"undefined",
		"var",
		"void",
		"with",
		"yield",
		"enum",
		"NaN",
		"Infinity",
	}
)


def js_name(ident: str) -> str:
	if ident in JS_RESERVED:
		return ident + "_"
	return ident


def output_path(module_id: str, ext: str) -> str:
	"""`api/users.server` -> `api/users.server.ts`."""
	return f"{module_id}.{ext}"


def import_specifier(importer: str, target: str) -> str:
	"""
	Relative ES module specifier from module `importer` to `target`.

	Standard modules map to their `@tern/std/*` packages. Specifiers always
	end in `.js`: TypeScript resolves that to the emitted `.ts` sibling.
	"""
	if target in STD_MODULES:
		return STD_IMPORT_PREFIX + target
	rel = posixpath.relpath(target, posixpath.dirname(importer) or ".")
	if not rel.startswith("."):
		rel = "./" + rel
	return rel + ".js"


def runtime_specifier(importer: str, runtime_module: str) -> str:
	return import_specifier(importer, runtime_module)


__all__ = ["JS_RESERVED", "import_specifier", "js_name", "output_path", "runtime_specifier"]
