# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Execution contexts and the file-extension mapping that assigns them.

The extension is the only source of context truth: nothing inside a file can
change the context its declarations run in.
"""

from __future__ import annotations

from enum import Enum
from pathlib import PurePosixPath
from typing import Optional


class ExecutionContext(str, Enum):
	SERVER_ONLY = "ServerOnly"
	SERVER_RENDERED = "ServerRendered"
	CLIENT_ONLY = "ClientOnly"

	@property
	def runs_on_server(self) -> bool:
		return self is not ExecutionContext.CLIENT_ONLY


SOURCE_SUFFIX = ".tn"

CONTEXT_TAGS: dict[str, ExecutionContext] = {
	"server": ExecutionContext.SERVER_ONLY,
	"ssr": ExecutionContext.SERVER_RENDERED,
	"client": ExecutionContext.CLIENT_ONLY,
}


def context_for_path(path: str) -> Optional[ExecutionContext]:
	"""
	Return the context encoded in a source file name, or None when the name
	does not follow the `<name>.<tag>.tn` convention.
	"""
	name = PurePosixPath(path).name
	if not name.endswith(SOURCE_SUFFIX):
		return None
	stem = name[: -len(SOURCE_SUFFIX)]
	if "." not in stem:
		return None
	tag = stem.rsplit(".", 1)[1]
	return CONTEXT_TAGS.get(tag)


def module_id_for_path(rel_path: str) -> str:
	"""`api/users.server.tn` -> `api/users.server`."""
	rel = PurePosixPath(rel_path).as_posix()
	if rel.endswith(SOURCE_SUFFIX):
		rel = rel[: -len(SOURCE_SUFFIX)]
	return rel


def route_base_for_module(module_id: str) -> str:
	"""`api/users.server` -> `api/users` (module id without its context tag)."""
	head, _, tag = module_id.rpartition(".")
	if head and tag in CONTEXT_TAGS:
		return head
	return module_id


__all__ = [
	"CONTEXT_TAGS",
	"ExecutionContext",
	"SOURCE_SUFFIX",
	"context_for_path",
	"module_id_for_path",
	"route_base_for_module",
]
