# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

from tern.ternc.core.diagnostics import DiagnosticKind
from tern.ternc.linker import CallStrategy
from tern.ternc.parser import ast as A
from tern.ternc.pipeline import compile_program

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


def _boundary(result) -> list[str]:
	return [d.message for d in result.diagnostics if d.code == "E-BOUNDARY"]


def _errors(result) -> list:
	return [d for d in result.diagnostics if d.is_error]


def _function(linked, name: str) -> A.FunctionDecl:
	for item in linked.lowered.ast.items:
		inner = A.unwrap_item(item)
		if isinstance(inner, A.FunctionDecl) and inner.name == name:
			return inner
	raise AssertionError(f"no function {name}")


def test_client_cannot_import_unexposed_server_function() -> None:
	result = compile_program(
		{
			"api/users.server.tn": "export secret(): int = 1\n",
			"app.client.tn": 'import { secret } from "./api/users.server"\nx = secret()\n',
		}
	)
	assert _boundary(result) == [
		"module 'app.client' (client-only) cannot import 'secret' from 'api/users.server' (server-only): "
		"only 'expose'd functions are visible outside server-only modules"
	]
	diag = [d for d in result.diagnostics if d.code == "E-BOUNDARY"][0]
	assert diag.kind is DiagnosticKind.BOUNDARY
	assert diag.phase == "link"
	assert diag.span.file == "app.client.tn"
	assert "app.client" in result.failed_modules


def test_exposed_function_gets_a_route() -> None:
	result = compile_program({"api/users.server.tn": USERS})
	assert _errors(result) == []
	(route,) = result.link.routes
	assert route.id == "api/users.getUser"
	assert route.path == "/rpc/api/users/getUser"
	assert route.method == "POST"
	assert (route.module, route.function) == ("api/users.server", "getUser")
	assert [name for name, _ in route.params] == ["id"]
	assert route.returns_result is False


def test_rpc_prefix_is_configurable() -> None:
	result = compile_program({"api/users.server.tn": USERS}, rpc_prefix="/api/v1/")
	assert result.link.routes[0].path == "/api/v1/api/users/getUser"


def test_client_calls_go_through_stubs_and_become_async() -> None:
	result = compile_program({"api/users.server.tn": USERS, "app.client.tn": APP})
	assert _errors(result) == []
	linked = result.link.modules["app.client"]
	assert [s.local_name for s in linked.stubs] == ["getUser"]
	assert linked.stubs[0].route.id == "api/users.getUser"

	show = _function(linked, "show")
	main = _function(linked, "main")
	assert linked.is_async(show)
	# Callers of async functions become async too.
	assert linked.is_async(main)

	strategies = {res.name: res.strategy for res in linked.calls.values()}
	assert strategies == {"getUser": CallStrategy.STUB, "show": CallStrategy.DIRECT}


def test_server_calls_bind_directly() -> None:
	server = USERS + "\nfirst(): User = getUser(1)\n"
	result = compile_program({"api/users.server.tn": server})
	linked = result.link.modules["api/users.server"]
	assert linked.stubs == []
	assert [res.strategy for res in linked.calls.values()] == [CallStrategy.DIRECT]
	assert not linked.is_async(_function(linked, "first"))


def test_expose_outside_server_module() -> None:
	result = compile_program({"page.ssr.tn": "expose f(): int = 1\n"})
	assert _boundary(result) == [
		"'expose f' is only allowed in server-only modules (*.server.tn); 'page.ssr' is server-rendered"
	]
	assert result.link.routes == []


def test_exposed_function_parameters_must_serialize() -> None:
	result = compile_program({"api.server.tn": "expose apply(f: (int) -> int): int = f(1)\n"})
	(message,) = _boundary(result)
	assert message.startswith("exposed function 'apply' has non-serializable parameter 'f'")
	assert result.link.routes == []


def test_server_standard_module_from_rendered_module() -> None:
	result = compile_program({"page.ssr.tn": 'import { connect } from "std/db"\n'})
	assert _boundary(result) == [
		"module 'page.ssr' (server-rendered) cannot import 'connect' from 'std/db' (server-only): "
		"this standard module is available to server-only modules only"
	]


def test_client_may_not_import_rendered_functions() -> None:
	result = compile_program(
		{
			"view.ssr.tn": 'export title(): str = "t"\n',
			"app.client.tn": 'import { title } from "./view.ssr"\n',
		}
	)
	(message,) = _boundary(result)
	assert message.endswith("client-only modules may import only types and enums from server-rendered modules")


def test_server_may_not_import_rendered_functions() -> None:
	result = compile_program(
		{
			"view.ssr.tn": 'export title(): str = "t"\n',
			"db.server.tn": 'import { title } from "./view.ssr"\n',
		}
	)
	(message,) = _boundary(result)
	assert message.endswith("server-only modules may import only from server-only modules")


def test_types_cross_every_boundary() -> None:
	result = compile_program(
		{
			"api/users.server.tn": USERS,
			"view.client.tn": 'import { User } from "./api/users.server"\nname(u: User): str = u.name\n',
		}
	)
	assert _errors(result) == []
