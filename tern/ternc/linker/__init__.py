# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""Context linker: import boundaries, routes, stubs and call-site resolution."""

from .context_linker import (
	DEFAULT_RPC_PREFIX,
	CallResolution,
	CallStrategy,
	ContextLinker,
	LinkedModule,
	LinkResult,
	StubSpec,
	link_program,
)
from .routes import RouteDescriptor, build_route, unserializable_part

__all__ = [
	"CallResolution",
	"CallStrategy",
	"ContextLinker",
	"DEFAULT_RPC_PREFIX",
	"LinkResult",
	"LinkedModule",
	"RouteDescriptor",
	"StubSpec",
	"build_route",
	"link_program",
	"unserializable_part",
]
