# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
# Helpers locating the runtime support module copied next to generated code.
from pathlib import Path

RUNTIME_SOURCE = Path(__file__).with_name("tern_runtime.js")

# Prepended when the runtime is emitted as TypeScript; the module is untyped JS.
TS_HEADER = "// @ts-nocheck\n"


def runtime_text(target: str) -> str:
	"""Runtime module source for `target` ("ts" or "js")."""
	text = RUNTIME_SOURCE.read_text(encoding="utf-8")
	if target == "ts":
		return TS_HEADER + text
	return text


__all__ = ["RUNTIME_SOURCE", "runtime_text"]
