# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

from pathlib import Path

from tern.ternc.incremental import BuildCache, dirty_modules, source_hash


def test_source_hash_is_prefixed_sha256() -> None:
	digest = source_hash("x = 1\n")
	assert digest.startswith("sha256:")
	assert len(digest) == len("sha256:") + 64
	assert digest == source_hash("x = 1\n")


def test_changed_modules_and_their_importers_are_dirty() -> None:
	cache = BuildCache(fingerprint="f", modules={"a": "1", "b": "2", "c": "3", "d": "4"})
	hashes = {"a": "1x", "b": "2", "c": "3", "d": "4"}
	# c imports b, b imports a; d is unrelated.
	importers = {"a": {"b"}, "b": {"c"}}
	assert dirty_modules(cache, hashes, importers, "f") == {"a", "b", "c"}


def test_new_modules_are_dirty() -> None:
	cache = BuildCache(fingerprint="f", modules={"a": "1"})
	assert dirty_modules(cache, {"a": "1", "b": "2"}, {}, "f") == {"b"}


def test_fingerprint_change_rebuilds_everything() -> None:
	cache = BuildCache(fingerprint="old", modules={"a": "1", "b": "2"})
	assert dirty_modules(cache, {"a": "1", "b": "2"}, {}, "new") == {"a", "b"}


def test_cache_file_round_trip(tmp_path: Path) -> None:
	path = tmp_path / "out" / ".tern-cache.json"
	BuildCache(fingerprint="f", modules={"b": "2", "a": "1"}).save(path)
	loaded = BuildCache.load(path)
	assert loaded.fingerprint == "f"
	assert loaded.modules == {"a": "1", "b": "2"}


def test_unreadable_cache_is_empty(tmp_path: Path) -> None:
	assert BuildCache.load(tmp_path / "missing.json").modules == {}
	bad = tmp_path / "bad.json"
	bad.write_text("not json", encoding="utf-8")
	assert BuildCache.load(bad).modules == {}
	other = tmp_path / "other.json"
	other.write_text('{"format": "something-else", "version": 1, "modules": {"a": "1"}}', encoding="utf-8")
	assert BuildCache.load(other).modules == {}
