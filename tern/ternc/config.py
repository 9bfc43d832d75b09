# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Project configuration (`tern.json`).

All keys are optional:

	{
		"src": "src",
		"out": "dist",
		"target": "ts",
		"rpc_prefix": "/rpc",
		"jobs": 4,
		"runtime_module": "tern_runtime"
	}

Relative `src`/`out` paths are resolved against the directory holding the
file. Command-line flags override file values.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Mapping, Optional

from .linker.context_linker import DEFAULT_RPC_PREFIX

CONFIG_FILE = "tern.json"
TARGETS = ("ts", "js")

_ALLOWED_KEYS = {"src", "out", "target", "rpc_prefix", "jobs", "runtime_module"}


class ConfigError(ValueError):
	"""Raised for an unreadable or malformed `tern.json`."""


@dataclass(frozen=True)
class CompilerConfig:
	src: Path = Path("src")
	out: Path = Path("dist")
	target: str = "ts"
	rpc_prefix: str = DEFAULT_RPC_PREFIX
	jobs: int = 0
	runtime_module: str = "tern_runtime"

	@property
	def workers(self) -> int:
		"""Thread pool size; `jobs <= 0` means one per CPU."""
		if self.jobs > 0:
			return self.jobs
		return os.cpu_count() or 1

	def with_overrides(self, **overrides: Any) -> "CompilerConfig":
		"""Return a copy with every non-None override applied."""
		changes = {k: v for k, v in overrides.items() if v is not None}
		cfg = replace(self, **changes)
		_validate(cfg)
		return cfg


def _validate(cfg: CompilerConfig) -> None:
	if cfg.target not in TARGETS:
		raise ConfigError(f"target must be one of {', '.join(TARGETS)}, got {cfg.target!r}")
	if not cfg.runtime_module or "/" in cfg.runtime_module:
		raise ConfigError("runtime_module must be a plain module name")


def config_from_mapping(data: Mapping[str, Any], base: Path) -> CompilerConfig:
	unknown = sorted(set(data) - _ALLOWED_KEYS)
	if unknown:
		raise ConfigError(f"{CONFIG_FILE} has unknown keys: {', '.join(unknown)}")
	kwargs: dict[str, Any] = {}
	for key in ("src", "out"):
		if key in data:
			if not isinstance(data[key], str):
				raise ConfigError(f"'{key}' must be a string")
			kwargs[key] = base / data[key]
	for key in ("target", "rpc_prefix", "runtime_module"):
		if key in data:
			if not isinstance(data[key], str):
				raise ConfigError(f"'{key}' must be a string")
			kwargs[key] = data[key]
	if "jobs" in data:
		jobs = data["jobs"]
		if not isinstance(jobs, int) or isinstance(jobs, bool) or jobs < 0:
			raise ConfigError("'jobs' must be a non-negative integer")
		kwargs["jobs"] = jobs
	kwargs.setdefault("src", base / "src")
	kwargs.setdefault("out", base / "dist")
	cfg = CompilerConfig(**kwargs)
	_validate(cfg)
	return cfg


def load_config(path: Path) -> CompilerConfig:
	try:
		data = json.loads(path.read_text(encoding="utf-8"))
	except OSError as err:
		raise ConfigError(f"cannot read {path}: {err}") from err
	except json.JSONDecodeError as err:
		raise ConfigError(f"{path}: invalid JSON: {err}") from err
	if not isinstance(data, dict):
		raise ConfigError(f"{path}: configuration must be a JSON object")
	return config_from_mapping(data, path.parent)


def find_config(start: Path) -> Optional[Path]:
	"""Nearest `tern.json` in `start` or one of its parents."""
	start = start.resolve()
	for directory in (start, *start.parents):
		candidate = directory / CONFIG_FILE
		if candidate.is_file():
			return candidate
	return None


__all__ = [
	"CONFIG_FILE",
	"CompilerConfig",
	"ConfigError",
	"DEFAULT_RPC_PREFIX",
	"TARGETS",
	"config_from_mapping",
	"find_config",
	"load_config",
]
