# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

from pathlib import Path

from tern.ternc.core.diagnostics import DiagnosticKind
from tern.ternc.writer import remove_outputs, write_atomic, write_outputs


def test_write_atomic_creates_parents(tmp_path: Path) -> None:
	target = tmp_path / "a" / "b" / "c.ts"
	write_atomic(target, "x\n")
	assert target.read_text(encoding="utf-8") == "x\n"
	assert [p.name for p in target.parent.iterdir()] == ["c.ts"]


def test_write_outputs_reports_each_file(tmp_path: Path) -> None:
	written, diags = write_outputs(tmp_path, {"api/users.server.ts": "u\n", "main.server.ts": "m\n"})
	assert diags == []
	assert written == ["api/users.server.ts", "main.server.ts"]
	assert (tmp_path / "api" / "users.server.ts").read_text(encoding="utf-8") == "u\n"


def test_failed_write_becomes_io_diagnostic(tmp_path: Path) -> None:
	# A regular file where a directory is needed.
	(tmp_path / "api").write_text("", encoding="utf-8")
	written, diags = write_outputs(tmp_path, {"api/users.server.ts": "u\n", "main.server.ts": "m\n"})
	assert written == ["main.server.ts"]
	(diag,) = diags
	assert diag.kind is DiagnosticKind.IO
	assert diag.code == "E-IO"
	assert diag.phase == "io"
	assert diag.message.startswith("cannot write ")


def test_remove_outputs_ignores_missing(tmp_path: Path) -> None:
	(tmp_path / "old.server.ts").write_text("", encoding="utf-8")
	remove_outputs(tmp_path, ["old.server.ts", "never.server.ts"])
	assert list(tmp_path.iterdir()) == []


def test_unencodable_text_becomes_io_diagnostic(tmp_path: Path) -> None:
	written, diags = write_outputs(tmp_path, {"a.server.ts": "\ud800\n", "b.server.ts": "b\n"})
	assert written == ["b.server.ts"]
	(diag,) = diags
	assert diag.code == "E-IO"
	assert sorted(p.name for p in tmp_path.iterdir()) == ["b.server.ts"]
