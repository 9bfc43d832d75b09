# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""Stage1: AST-to-AST rewrites between checking and linking."""

from .propagate import LoweredModule, PropagationRewriter, propagate_module

__all__ = ["LoweredModule", "PropagationRewriter", "propagate_module"]
