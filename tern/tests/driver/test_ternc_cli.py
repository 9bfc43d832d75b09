# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

import json
from pathlib import Path

from tern.ternc.config import CompilerConfig
from tern.ternc.ternc import build, discover_sources, main

LIB = "export add(a: int, b: int): int = a + b\n"
MAIN = 'import { add } from "./lib.server"\ntotal = add(1, 2)\n'
OTHER = "name = \"x\"\n"


def _project(tmp_path: Path, files: dict) -> Path:
	src = tmp_path / "src"
	for rel, text in files.items():
		path = src / rel
		path.parent.mkdir(parents=True, exist_ok=True)
		path.write_text(text, encoding="utf-8")
	return src


def _config(tmp_path: Path, **kw) -> CompilerConfig:
	return CompilerConfig(src=tmp_path / "src", out=tmp_path / "dist", jobs=1, **kw)


def test_discover_sources(tmp_path: Path) -> None:
	src = _project(tmp_path, {"api/users.server.tn": "x = 1\n", "notes.txt": "skip"})
	sources, diags = discover_sources(src)
	assert diags == []
	assert list(sources) == ["api/users.server.tn"]


def test_missing_source_root(tmp_path: Path) -> None:
	sources, diags = discover_sources(tmp_path / "nope")
	assert sources == {}
	(diag,) = diags
	assert diag.code == "E-IO"
	assert diag.message == f"source root not found: {tmp_path / 'nope'}"


def test_build_writes_modules_runtime_and_routes(tmp_path: Path) -> None:
	_project(tmp_path, {"lib.server.tn": LIB, "main.server.tn": MAIN})
	report = build(_config(tmp_path))
	assert report.exit_code == 0
	assert sorted(report.written) == [
		"lib.server.ts",
		"main.server.ts",
		"routes.json",
		"routes.ts",
		"tern_runtime.ts",
	]
	out = tmp_path / "dist"
	assert (out / "main.server.ts").read_text(encoding="utf-8").startswith("// Generated by ternc from main.server.tn")
	cache = json.loads((out / ".tern-cache.json").read_text(encoding="utf-8"))
	assert sorted(cache["modules"]) == ["lib.server", "main.server"]


def test_unchanged_modules_are_not_rewritten(tmp_path: Path) -> None:
	src = _project(tmp_path, {"lib.server.tn": LIB, "main.server.tn": MAIN, "other.server.tn": OTHER})
	build(_config(tmp_path))

	second = build(_config(tmp_path))
	assert second.up_to_date == ["lib.server", "main.server", "other.server"]
	assert not any(path.endswith(".server.ts") for path in second.written)

	# Touching lib rebuilds its importer too, but not unrelated modules.
	(src / "lib.server.tn").write_text(LIB + "export sub(a: int, b: int): int = a - b\n", encoding="utf-8")
	third = build(_config(tmp_path))
	assert sorted(p for p in third.written if p.endswith(".server.ts")) == ["lib.server.ts", "main.server.ts"]
	assert third.up_to_date == ["other.server"]


def test_target_change_rebuilds_everything(tmp_path: Path) -> None:
	_project(tmp_path, {"main.server.tn": OTHER})
	build(_config(tmp_path))
	report = build(_config(tmp_path, target="js"))
	assert "main.server.js" in report.written
	assert report.up_to_date == []


def test_check_only_writes_nothing(tmp_path: Path) -> None:
	_project(tmp_path, {"main.server.tn": OTHER})
	report = build(_config(tmp_path), check_only=True)
	assert report.exit_code == 0
	assert report.written == []
	assert not (tmp_path / "dist").exists()


def test_main_json_output(tmp_path: Path, capsys) -> None:
	src = _project(tmp_path, {"main.server.tn": 'x: int = "s"\n', "ok.server.tn": OTHER})
	out = tmp_path / "dist"
	code = main([str(src), "-o", str(out), "--json"])
	assert code == 1
	data = json.loads(capsys.readouterr().out)
	assert data["exit_code"] == 1
	(diag,) = data["diagnostics"]
	assert diag["kind"] == "TypeError"
	assert diag["phase"] == "typecheck"
	assert diag["file"] == "main.server.tn"
	assert diag["line"] == 1
	assert diag["message"] == "type mismatch for 'x': expected int, found str"
	# The clean module is still emitted; the broken one is not.
	assert (out / "ok.server.ts").exists()
	assert not (out / "main.server.ts").exists()
	assert not (out / "routes.json").exists()


def test_main_human_output(tmp_path: Path, capsys) -> None:
	src = _project(tmp_path, {"main.server.tn": 'x: int = "s"\n'})
	code = main([str(src), "--check"])
	assert code == 1
	err = capsys.readouterr().err
	assert err.startswith("main.server.tn:1:")
	assert ": error: [TypeError] type mismatch for 'x'" in err


def test_main_reads_config_file(tmp_path: Path, capsys) -> None:
	_project(tmp_path, {"main.server.tn": OTHER})
	(tmp_path / "tern.json").write_text('{"src": "src", "out": "build", "target": "js"}', encoding="utf-8")
	code = main(["--config", str(tmp_path / "tern.json"), "--no-cache"])
	assert code == 0
	assert (tmp_path / "build" / "main.server.js").exists()


def test_main_reports_bad_config(tmp_path: Path, capsys) -> None:
	(tmp_path / "tern.json").write_text('{"target": "wasm"}', encoding="utf-8")
	code = main(["--config", str(tmp_path / "tern.json"), "--json"])
	assert code == 1
	data = json.loads(capsys.readouterr().out)
	assert data["diagnostics"][0]["code"] == "E-IO"
	assert "target must be one of ts, js" in data["diagnostics"][0]["message"]


def test_failed_module_loses_its_previous_output(tmp_path: Path) -> None:
	src = _project(tmp_path, {"lib.server.tn": LIB, "other.server.tn": OTHER})
	build(_config(tmp_path))
	out = tmp_path / "dist"
	assert (out / "lib.server.ts").exists()
	assert (out / "routes.json").exists()

	(src / "lib.server.tn").write_text('export add(a: int, b: int): int = "s"\n', encoding="utf-8")
	report = build(_config(tmp_path))
	assert report.exit_code == 1
	assert not (out / "lib.server.ts").exists()
	for name in ("routes.json", "routes.ts", "tern_runtime.ts"):
		assert not (out / name).exists()
	# Modules that still compile keep their output.
	assert (out / "other.server.ts").exists()

	# Fixing the module brings everything back.
	(src / "lib.server.tn").write_text(LIB, encoding="utf-8")
	fixed = build(_config(tmp_path))
	assert fixed.exit_code == 0
	assert "lib.server.ts" in fixed.written
	assert (out / "routes.json").exists()
