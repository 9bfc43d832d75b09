# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

import json
from pathlib import Path

import pytest

from tern.ternc.config import CompilerConfig, ConfigError, config_from_mapping, find_config, load_config


def _write(path: Path, data) -> Path:
	path.write_text(json.dumps(data), encoding="utf-8")
	return path


def test_defaults() -> None:
	cfg = CompilerConfig()
	assert cfg.src == Path("src")
	assert cfg.out == Path("dist")
	assert cfg.target == "ts"
	assert cfg.rpc_prefix == "/rpc"
	assert cfg.runtime_module == "tern_runtime"
	assert cfg.workers >= 1


def test_paths_resolve_against_config_directory(tmp_path: Path) -> None:
	cfg = load_config(_write(tmp_path / "tern.json", {"src": "app", "target": "js", "jobs": 2}))
	assert cfg.src == tmp_path / "app"
	assert cfg.out == tmp_path / "dist"
	assert cfg.target == "js"
	assert cfg.workers == 2


def test_overrides_skip_none() -> None:
	cfg = CompilerConfig().with_overrides(target="js", out=None, rpc_prefix="/api")
	assert cfg.target == "js"
	assert cfg.out == Path("dist")
	assert cfg.rpc_prefix == "/api"


def test_unknown_keys_are_rejected(tmp_path: Path) -> None:
	with pytest.raises(ConfigError, match="unknown keys: colour"):
		config_from_mapping({"colour": "red"}, tmp_path)


def test_bad_values_are_rejected(tmp_path: Path) -> None:
	with pytest.raises(ConfigError, match="target must be one of ts, js"):
		config_from_mapping({"target": "wasm"}, tmp_path)
	with pytest.raises(ConfigError, match="'jobs' must be a non-negative integer"):
		config_from_mapping({"jobs": True}, tmp_path)
	with pytest.raises(ConfigError, match="runtime_module must be a plain module name"):
		CompilerConfig().with_overrides(runtime_module="lib/rt")


def test_invalid_json(tmp_path: Path) -> None:
	path = tmp_path / "tern.json"
	path.write_text("{", encoding="utf-8")
	with pytest.raises(ConfigError, match="invalid JSON"):
		load_config(path)
	_write(path, [1, 2])
	with pytest.raises(ConfigError, match="must be a JSON object"):
		load_config(path)


def test_find_config_walks_upwards(tmp_path: Path) -> None:
	_write(tmp_path / "tern.json", {})
	nested = tmp_path / "src" / "api"
	nested.mkdir(parents=True)
	assert find_config(nested) == (tmp_path / "tern.json").resolve()
