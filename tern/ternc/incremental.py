# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Incremental builds.

`.tern-cache.json` in the output directory records a sha256 of every module
source that was last emitted successfully, plus a fingerprint of the options
that shape the output. A module is rebuilt when its hash changed, when it
has no cache entry, or when anything it imports (transitively) is rebuilt.
A fingerprint change rebuilds everything.
"""

from __future__ import annotations

import hashlib
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, Mapping, Set

from .writer import write_atomic

logger = logging.getLogger(__name__)

CACHE_FILE = ".tern-cache.json"
CACHE_FORMAT = "tern-cache"
CACHE_VERSION = 1


def source_hash(text: str) -> str:
	return "sha256:" + hashlib.sha256(text.encode("utf-8")).hexdigest()


@dataclass
class BuildCache:
	fingerprint: str = ""
	modules: Dict[str, str] = field(default_factory=dict)

	@classmethod
	def load(cls, path: Path) -> "BuildCache":
		"""Read a cache file; a missing or unreadable cache is an empty one."""
		try:
			data = json.loads(path.read_text(encoding="utf-8"))
		except FileNotFoundError:
			return cls()
		except (OSError, json.JSONDecodeError) as err:
			logger.info("ignoring unreadable build cache %s: %s", path, err)
			return cls()
		if not isinstance(data, dict) or data.get("format") != CACHE_FORMAT or data.get("version") != CACHE_VERSION:
			logger.info("ignoring build cache %s with unknown format", path)
			return cls()
		modules = data.get("modules")
		if not isinstance(modules, dict):
			return cls()
		return cls(
			fingerprint=str(data.get("fingerprint", "")),
			modules={str(k): str(v) for k, v in modules.items()},
		)

	def to_json(self) -> str:
		data = {
			"format": CACHE_FORMAT,
			"version": CACHE_VERSION,
			"fingerprint": self.fingerprint,
			"modules": dict(sorted(self.modules.items())),
		}
		return json.dumps(data, indent=2) + "\n"

	def save(self, path: Path) -> None:
		write_atomic(path, self.to_json())


def options_fingerprint(*parts: object) -> str:
	return source_hash("|".join(str(p) for p in parts))


def dirty_modules(
	cache: BuildCache,
	hashes: Mapping[str, str],
	importers: Mapping[str, Iterable[str]],
	fingerprint: str,
) -> Set[str]:
	"""Modules to re-emit: changed ones plus everything that imports them, transitively."""
	if cache.fingerprint != fingerprint:
		return set(hashes)
	dirty = {mid for mid, digest in hashes.items() if cache.modules.get(mid) != digest}
	work = list(dirty)
	while work:
		mid = work.pop()
		for importer in importers.get(mid, ()):
			if importer in hashes and importer not in dirty:
				dirty.add(importer)
				work.append(importer)
	return dirty


__all__ = [
	"BuildCache",
	"CACHE_FILE",
	"dirty_modules",
	"options_fingerprint",
	"source_hash",
]
