# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

from tern.ternc.core.diagnostics import DiagnosticKind
from tern.ternc.pipeline import compile_program, parse_and_collect

LIB = "export add(a: int, b: int): int = a + b\n"
MAIN = 'import { add } from "./lib.server"\ntotal = add(1, 2)\n'


def test_clean_program() -> None:
	result = compile_program({"lib.server.tn": LIB, "main.server.tn": MAIN})
	assert result.diagnostics == []
	assert not result.has_errors
	assert sorted(result.link.modules) == ["lib.server", "main.server"]
	assert result.importers() == {"lib.server": {"main.server"}}


def test_syntax_error_is_a_diagnostic() -> None:
	info, diags = parse_and_collect("bad.server.tn", "x = = 1\n")
	assert info is None
	(diag,) = diags
	assert diag.kind is DiagnosticKind.SYNTAX
	assert diag.code == "E-SYNTAX"
	assert diag.phase == "parser"
	assert diag.span.file == "bad.server.tn"
	assert diag.span.line == 1


def test_file_without_context_tag() -> None:
	result = compile_program({"util.tn": "x = 1\n"})
	(diag,) = result.diagnostics
	assert diag.code == "E-CONTEXT"
	assert diag.message.startswith("cannot determine the execution context of 'util.tn'")
	assert result.failed_modules == {"util"}


def test_one_bad_module_does_not_stop_the_others() -> None:
	result = compile_program({"a.server.tn": "x = = 1\n", "b.server.tn": "y: int = 1\n"})
	assert result.failed_modules == {"a.server"}
	assert "b.server" in result.link.modules


def test_diagnostics_are_sorted_by_file_and_position() -> None:
	result = compile_program(
		{
			"b.server.tn": 'x: int = "s"\n',
			"a.server.tn": 'p: int = "s"\nq: str = 1\n',
		}
	)
	keys = [(d.span.file, d.span.line) for d in result.diagnostics]
	assert keys == [("a.server.tn", 1), ("a.server.tn", 2), ("b.server.tn", 1)]


def test_parallel_parsing_gives_the_same_result() -> None:
	sources = {f"m{i}.server.tn": f"v{i}: int = {i}\n" for i in range(8)}
	sources["bad.server.tn"] = 'w: int = "s"\n'
	serial = compile_program(sources, jobs=1)
	parallel = compile_program(sources, jobs=4)
	assert [d.to_json() for d in serial.diagnostics] == [d.to_json() for d in parallel.diagnostics]
	assert sorted(serial.link.modules) == sorted(parallel.link.modules)


def test_bad_unicode_escape_is_reported_with_sibling_diagnostics() -> None:
	result = compile_program({"a.server.tn": 'x = "\\u{110000}"\n', "b.server.tn": "y = 1\ny = 2\n"})
	codes = sorted((d.span.file, d.code) for d in result.diagnostics)
	assert codes == [("a.server.tn", "E-SYNTAX"), ("b.server.tn", "E-MUT")]
	assert "invalid unicode escape" in result.diagnostics[0].message
