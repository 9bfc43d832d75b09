# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

import json

from tern.ternc.codegen import EmitOptions, schema_of
from tern.ternc.codegen.schema import js_literal
from tern.ternc.core.types_core import ERROR, INT, STR, Collection, Nullable, Result, TupleType
from tern.ternc.pipeline import compile_sources

USERS = """
export type User = { id: int, name: str }
enum Role { Admin = "admin", Guest = "guest" }
expose getUser(id: int): User = { id: id, name: "ann" }
expose role(name: str): result<Role, error> {
	if name == "root" {
		return Role.Admin
	}
	return err(error("unknown user"))
}
"""


def _routes(prefix: str = "/rpc") -> list:
	files, diags = compile_sources({"api/users.server.tn": USERS}, EmitOptions(target="js"), rpc_prefix=prefix)
	assert [d for d in diags if d.is_error] == []
	return json.loads(files["routes.json"])["routes"]


def test_primitive_and_collection_schemas():
	assert schema_of(INT) == {"kind": "int"}
	assert schema_of(Collection("list", (STR,))) == {"kind": "list", "elem": {"kind": "str"}}
	assert schema_of(Nullable(INT)) == {"kind": "nullable", "inner": {"kind": "int"}}
	assert schema_of(TupleType((INT, STR))) == {"kind": "tuple", "elems": [{"kind": "int"}, {"kind": "str"}]}


def test_result_schema_nests_both_sides():
	schema = schema_of(Result(INT, ERROR))
	assert schema["kind"] == "result"
	assert schema["ok"] == {"kind": "int"}


def test_js_literal_is_deterministic():
	assert js_literal([{"kind": "int"}]) == '[{"kind": "int"}]'


def test_routes_json_describes_every_exposed_function():
	get_user, role = _routes()
	assert get_user["id"] == "api/users.getUser"
	assert get_user["path"] == "/rpc/api/users/getUser"
	assert get_user["method"] == "POST"
	assert get_user["module"] == "api/users.server"
	assert get_user["function"] == "getUser"
	assert get_user["params"] == [{"name": "id", "schema": {"kind": "int"}}]
	assert get_user["returns_result"] is False

	# Responses always travel as results.
	response = get_user["response"]
	assert response["kind"] == "result"
	assert response["ok"]["kind"] == "record"
	assert response["ok"]["name"] == "User"
	assert response["ok"]["fields"] == [["id", {"kind": "int"}], ["name", {"kind": "str"}]]

	assert role["returns_result"] is True
	assert role["response"]["ok"]["kind"] == "enum"
	assert role["response"]["ok"]["variants"] == [["Admin", "admin"], ["Guest", "guest"]]


def test_routes_follow_the_rpc_prefix():
	paths = [route["path"] for route in _routes(prefix="/api/")]
	assert paths == ["/api/api/users/getUser", "/api/api/users/role"]


def test_routes_module_registers_handlers():
	files, _ = compile_sources({"api/users.server.tn": USERS}, EmitOptions(target="js"))
	text = files["routes.js"]
	assert text.startswith("// Generated by ternc. Do not edit.\n")
	assert 'import * as __tern from "./tern_runtime.js";' in text
	assert 'import { getUser as __api_users_server__getUser, role as __api_users_server__role } from "./api/users.server.js";' in text
	assert "export const routes = [" in text
	assert '__tern.makeHandler(__api_users_server__getUser, [{"kind": "int"}], ' in text


def test_routes_are_emitted_without_exposed_functions():
	files, _ = compile_sources({"main.server.tn": "x = 1\n"}, EmitOptions())
	assert json.loads(files["routes.json"]) == {"routes": []}
	assert "export const routes: Array<" in files["routes.ts"]
