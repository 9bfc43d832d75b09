# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""Compile small programs to JavaScript and run them under node."""

from __future__ import annotations

import shutil
import subprocess
from pathlib import Path

import pytest

from tern.ternc.config import CompilerConfig
from tern.ternc.ternc import build

NODE = shutil.which("node")

pytestmark = pytest.mark.skipif(NODE is None, reason="node is not installed")


def _run(tmp_path: Path, files: dict, entry: str) -> subprocess.CompletedProcess:
	src = tmp_path / "src"
	for rel, text in files.items():
		path = src / rel
		path.parent.mkdir(parents=True, exist_ok=True)
		path.write_text(text, encoding="utf-8")
	out = tmp_path / "dist"
	report = build(CompilerConfig(src=src, out=out, target="js", jobs=1))
	assert [d.render() for d in report.diagnostics if d.is_error] == []
	(out / "package.json").write_text('{"type": "module"}\n', encoding="utf-8")
	return subprocess.run(
		[NODE, str(out / entry)],
		capture_output=True,
		text=True,
		timeout=30,
	)


def test_interpolation_and_calls(tmp_path: Path) -> None:
	src = """
add(a: int, b: int): int = a + b
print("sum {add(2, 3)}")
"""
	proc = _run(tmp_path, {"main.server.tn": src}, "main.server.js")
	assert proc.returncode == 0, proc.stderr
	assert proc.stdout == "sum 5\n"


def test_integer_division_and_propagation(tmp_path: Path) -> None:
	src = """
half(n: int): result<int, error> {
	if n < 0 {
		return err(error("negative"))
	}
	return n / 2
}
quarter(n: int): result<int, error> {
	h = half(n)
	return h / 2
}
print(quarter(9))
"""
	proc = _run(tmp_path, {"main.server.tn": src}, "main.server.js")
	assert proc.returncode == 0, proc.stderr
	assert proc.stdout == "2\n"


def test_cross_module_import(tmp_path: Path) -> None:
	files = {
		"lib/math.server.tn": "export double(n: int): int = n * 2\n",
		"main.server.tn": 'import { double } from "./lib/math.server"\nprint(double(21))\n',
	}
	proc = _run(tmp_path, files, "main.server.js")
	assert proc.returncode == 0, proc.stderr
	assert proc.stdout == "42\n"


def test_mutation_through_accessor(tmp_path: Path) -> None:
	src = """
bump(): int {
	x = 5
	x.mut = 6
	x.mut += 1
	return x
}
print(bump())
"""
	proc = _run(tmp_path, {"main.server.tn": src}, "main.server.js")
	assert proc.returncode == 0, proc.stderr
	assert proc.stdout == "7\n"


def test_enum_from_backing_value(tmp_path: Path) -> None:
	src = """
enum Role { Admin = "admin", Guest = "guest" }
for v in Role.values() {
	print(Role.from(v.value)?.name)
}
print(Role.from("nobody")?.name)
"""
	proc = _run(tmp_path, {"main.server.tn": src}, "main.server.js")
	assert proc.returncode == 0, proc.stderr
	assert proc.stdout.splitlines() == ["Admin", "Guest", "null"]


def test_guard_match_takes_first_true_arm(tmp_path: Path) -> None:
	src = """
size(x: int): str = match {
	x > 5 = "big"
	x > 0 = "pos"
	_ = "other"
}
print(size(10))
print(size(-1))
"""
	proc = _run(tmp_path, {"main.server.tn": src}, "main.server.js")
	assert proc.returncode == 0, proc.stderr
	assert proc.stdout.splitlines() == ["big", "other"]


def test_validate_parsed_json(tmp_path: Path) -> None:
	src = r"""
type User = { id: int, name: str }
show(text: str) {
	u, e = parse(text).validate(User)
	print(u?.name)
	print(e != null)
}
show("\{\"id\": 1, \"name\": \"ann\"}")
show("\{\"id\": 2}")
"""
	proc = _run(tmp_path, {"main.server.tn": src}, "main.server.js")
	assert proc.returncode == 0, proc.stderr
	assert proc.stdout.splitlines() == ["ann", "false", "null", "true"]


def test_strict_equality(tmp_path: Path) -> None:
	src = """
x: int? = null
print(1 == "1")
print(null == null)
print(x == null)
print(1 != 1.0)
"""
	proc = _run(tmp_path, {"main.server.tn": src}, "main.server.js")
	assert proc.returncode == 0, proc.stderr
	assert proc.stdout.splitlines() == ["false", "true", "true", "true"]
