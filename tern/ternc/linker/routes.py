# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""Route descriptors for exposed functions and the serializability rules they obey."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Set, Tuple

from ..core.types_core import Function, Named, Result, Type, Unknown, children_of


@dataclass(frozen=True)
class RouteDescriptor:
	"""
	One network-callable function.

	`id` is `<route base>.<fn>` (e.g. `api/users.getUser`); `path` is
	`<rpc prefix>/<route base>/<fn>`. `params` keeps declaration order; the
	request body carries arguments positionally in that order.
	"""

	id: str
	method: str
	path: str
	module: str
	function: str
	params: Tuple[Tuple[str, Type], ...]
	response: Type

	@property
	def returns_result(self) -> bool:
		return isinstance(self.response, Result)


def build_route(route_base: str, rpc_prefix: str, module: str, fn_name: str, fn_type: Function, param_names) -> RouteDescriptor:
	prefix = "/" + rpc_prefix.strip("/") if rpc_prefix.strip("/") else ""
	return RouteDescriptor(
		id=f"{route_base}.{fn_name}",
		method="POST",
		path=f"{prefix}/{route_base}/{fn_name}",
		module=module,
		function=fn_name,
		params=tuple(zip(param_names, fn_type.params)),
		response=fn_type.ret,
	)


def unserializable_part(t: Type, seen: Optional[Set[str]] = None) -> Optional[Type]:
	"""
	First component of `t` that cannot cross the network, or None.

	Functions and resource handles (`Database`, markup elements) never
	serialize; named records are checked through their bodies once.
	"""
	seen = seen if seen is not None else set()
	if isinstance(t, Unknown):
		return None
	if isinstance(t, Function):
		return t
	if isinstance(t, Named):
		if not t.info.serializable or t.info.kind == "resource":
			return t
		if t.decl_id in seen:
			return None
		seen.add(t.decl_id)
		if t.info.body is not None:
			return unserializable_part(t.info.body, seen)
		return None
	for child in children_of(t):
		bad = unserializable_part(child, seen)
		if bad is not None:
			return bad
	return None


__all__ = ["RouteDescriptor", "build_route", "unserializable_part"]
