# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Route table outputs.

`routes.ts`/`routes.js` imports every exposed handler and wraps it with the
runtime's request decoder; `routes.json` carries the same descriptors as
data for servers that do their own dispatch. Both are emitted even when no
function is exposed.
"""

from __future__ import annotations

import json
import re
from typing import Dict, List, Sequence

from ..linker.routes import RouteDescriptor
from .naming import import_specifier, js_name, runtime_specifier
from .schema import js_literal, route_param_schemas, route_response_schema, schema_of

ROUTES_MODULE = "routes"


def _alias(route: RouteDescriptor) -> str:
	return "__" + re.sub(r"\W", "_", route.module) + "__" + route.function


def routes_module(routes: Sequence[RouteDescriptor], *, typed: bool, runtime_module: str) -> str:
	lines = [
		"// Generated by ternc. Do not edit.",
		f'import * as __tern from "{runtime_specifier(ROUTES_MODULE, runtime_module)}";',
	]
	by_module: Dict[str, List[str]] = {}
	for route in routes:
		by_module.setdefault(route.module, []).append(f"{js_name(route.function)} as {_alias(route)}")
	for module, names in by_module.items():
		lines.append(f'import {{ {", ".join(names)} }} from "{import_specifier(ROUTES_MODULE, module)}";')
	lines.append("")
	if typed:
		lines.append("export type RouteHandler = (body: unknown) => Promise<unknown>;")
		lines.append(
			"export const routes: Array<{ id: string; method: string; path: string; "
			"params: unknown; response: unknown; handler: RouteHandler }> = ["
		)
	else:
		lines.append("export const routes = [")
	for route in routes:
		params = js_literal([[name, schema_of(t)] for name, t in route.params])
		handler = (
			f"__tern.makeHandler({_alias(route)}, {js_literal(route_param_schemas(route))}, "
			f"{js_literal(route_response_schema(route))}, {'true' if route.returns_result else 'false'})"
		)
		lines.extend(
			[
				"\t{",
				f"\t\tid: {json.dumps(route.id)},",
				f"\t\tmethod: {json.dumps(route.method)},",
				f"\t\tpath: {json.dumps(route.path)},",
				f"\t\tparams: {params},",
				f"\t\tresponse: {js_literal(route_response_schema(route))},",
				f"\t\thandler: {handler},",
				"\t},",
			]
		)
	lines.append("];")
	return "\n".join(lines) + "\n"


def routes_json(routes: Sequence[RouteDescriptor]) -> str:
	data = {
		"routes": [
			{
				"id": route.id,
				"method": route.method,
				"path": route.path,
				"module": route.module,
				"function": route.function,
				"params": [{"name": name, "schema": schema_of(t)} for name, t in route.params],
				"response": route_response_schema(route),
				"returns_result": route.returns_result,
			}
			for route in routes
		]
	}
	return json.dumps(data, indent=2, ensure_ascii=False) + "\n"


__all__ = ["ROUTES_MODULE", "routes_json", "routes_module"]
