# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""Runtime support shipped with the compiler."""
