# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

from tern.ternc.codegen import EmitOptions
from tern.ternc.pipeline import compile_sources

USERS = """
export type User = { id: int, name: str }
expose getUser(id: int): User = { id: id, name: "ann" }
"""

APP = """
import { getUser, User } from "./api/users.server"
show(id: int): str {
	u = getUser(id)
	return u.name
}
main() {
	print(show(1))
}
"""


def _compile(sources: dict, target: str = "ts") -> dict:
	files, diags = compile_sources(sources, EmitOptions(target=target))
	assert [d for d in diags if d.is_error] == []
	return files


def _lines(text: str) -> list[str]:
	return [ln.strip() for ln in text.splitlines()]


def test_program_outputs_for_typescript() -> None:
	files = _compile({"api/users.server.tn": USERS, "app.client.tn": APP})
	assert sorted(files) == [
		"api/users.server.ts",
		"app.client.ts",
		"routes.json",
		"routes.ts",
		"tern_runtime.ts",
	]
	assert files["tern_runtime.ts"].startswith("// @ts-nocheck\n")


def test_module_header_and_runtime_import() -> None:
	files = _compile({"api/users.server.tn": USERS})
	lines = files["api/users.server.ts"].splitlines()
	assert lines[0] == "// Generated by ternc from api/users.server.tn (ServerOnly). Do not edit."
	assert lines[1] == 'import * as __tern from "../tern_runtime.js";'
	assert "export function getUser(id: number): User {" in _lines(files["api/users.server.ts"])


def test_client_stub_and_awaited_calls() -> None:
	files = _compile({"api/users.server.tn": USERS, "app.client.tn": APP})
	client = _lines(files["app.client.ts"])
	assert 'import * as __tern from "./tern_runtime.js";' in client
	assert 'import type { User } from "./api/users.server.js";' in client
	# The server module itself is never imported by value.
	assert not any(ln.startswith("import { getUser") for ln in client)

	assert "// network stub for api/users.getUser" in client
	assert "async function getUser(id: number): Promise<User> {" in client
	rpc = [ln for ln in client if ln.startswith("return __tern.rpc(")]
	assert len(rpc) == 1
	assert rpc[0].startswith('return __tern.rpc("/rpc/api/users/getUser", [id], [{"kind": "int"}], ')
	assert rpc[0].endswith(", false);")

	assert "async function show(id: number): Promise<string> {" in client
	assert "const u = (await getUser(id));" in client
	assert "__tern.print((await show(1)));" in client


def test_javascript_target_drops_types() -> None:
	files = _compile({"api/users.server.tn": USERS, "app.client.tn": APP}, target="js")
	assert "app.client.js" in files
	assert "tern_runtime.js" in files
	assert not files["tern_runtime.js"].startswith("// @ts-nocheck")
	client = _lines(files["app.client.js"])
	assert "async function getUser(id) {" in client
	assert not any(ln.startswith("import type") for ln in client)


def test_mutated_bindings_use_let() -> None:
	src = """
main() {
	count = 0
	count.mut += 1
	fixed = 2
	print(count + fixed)
}
"""
	lines = _lines(_compile({"main.server.tn": src})["main.server.ts"])
	assert "let count: number = 0;" in lines
	assert "count += 1;" in lines
	assert "const fixed = 2;" in lines


def test_interpolation_converts_non_strings() -> None:
	src = """
greet(name: str, n: int): str = "hi {name} n{n}"
"""
	lines = _lines(_compile({"main.server.tn": src})["main.server.ts"])
	assert "return `hi ${name} n${__tern.str(n)}`;" in lines


def test_propagation_lowers_to_result_checks() -> None:
	src = """
load(id: int): result<int, error> {
	if id < 0 {
		return err(error("negative"))
	}
	return id
}
twice(id: int): result<int, error> {
	n = load(id)
	return n * 2
}
"""
	lines = _lines(_compile({"main.server.tn": src})["main.server.ts"])
	assert "const __r1 = load(id);" in lines
	assert "if (!__r1.ok) {" in lines
	assert "return __r1;" in lines
	assert "const n = __r1.value;" in lines
	assert "return __tern.ok(n * 2);" in lines
	assert 'return __tern.err(__tern.error("negative"));' in lines


def test_else_if_chain_is_flat() -> None:
	src = """
sign(n: int): int {
	if n < 0 {
		return -1
	} else if n == 0 {
		return 0
	} else {
		return 1
	}
}
"""
	lines = _lines(_compile({"main.server.tn": src})["main.server.ts"])
	assert "if (n < 0) {" in lines
	assert "} else if (n === 0) {" in lines
	assert "} else {" in lines


def test_modules_with_errors_are_not_emitted() -> None:
	files, diags = compile_sources(
		{"a.server.tn": 'x: int = "s"\n', "b.server.tn": "y = 1\n"},
		EmitOptions(),
	)
	assert any(d.is_error for d in diags)
	# Program-level outputs wait for an error-free program.
	assert sorted(files) == ["b.server.ts"]


def test_generation_is_repeatable() -> None:
	sources = {"api/users.server.tn": USERS, "app.client.tn": APP}
	assert _compile(sources) == _compile(sources)
	assert _compile(sources, target="js") == _compile(sources, target="js")
