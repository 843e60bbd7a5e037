"""
Translation cache storage.

The cache is a single slot holding a JSON mapping of language code to
translated dictionary. Callers always read, modify and write the whole
snapshot; there are no per-key operations.

Absent or unreadable data is an empty cache, never an error. Failing to
persist only loses durability, so save() logs and carries on.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

# language code -> {string key -> translated text}
Cache = dict[str, dict[str, str]]


def decode_cache(raw: str | None) -> Cache:
    """Parse a persisted snapshot, treating anything malformed as empty."""
    if not raw:
        return {}
    try:
        data: Any = json.loads(raw)
    except (ValueError, TypeError):
        logger.warning("Translation cache is corrupt, starting empty")
        return {}

    if not isinstance(data, dict):
        logger.warning("Translation cache is not a mapping, starting empty")
        return {}

    cache: Cache = {}
    for code, entries in data.items():
        if not isinstance(entries, dict):
            continue
        if not all(isinstance(k, str) and isinstance(v, str) for k, v in entries.items()):
            continue
        cache[code] = dict(entries)
    return cache


def encode_cache(cache: Cache) -> str:
    return json.dumps(cache, ensure_ascii=False)


# =============================================================================
# Interface
# =============================================================================


class CacheStore(ABC):
    """
    Persistent mapping of language code to translated dictionary.

    Local Implementation: JSON file
    Test Implementation: In-memory slot
    """

    @abstractmethod
    async def load(self) -> Cache:
        """Return the persisted cache, or {} if absent or corrupt."""
        pass

    @abstractmethod
    async def save(self, cache: Cache) -> None:
        """Persist the full snapshot. Never raises."""
        pass

    @abstractmethod
    async def clear(self) -> None:
        """Delete every persisted entry."""
        pass


# =============================================================================
# Local File Cache
# =============================================================================


class JsonFileCacheStore(CacheStore):
    """Store the cache as one JSON file on the local filesystem."""

    def __init__(self, path: str | Path = "./data/translation_cache.json"):
        self.path = Path(path)

    async def load(self) -> Cache:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(f"Could not read translation cache {self.path}: {e}")
            return {}
        return decode_cache(raw)

    async def save(self, cache: Cache) -> None:
        try:
            payload = encode_cache(cache)
            self.path.parent.mkdir(parents=True, exist_ok=True)
            # Write-then-rename so readers never see a half-written file
            fd, tmp_path = tempfile.mkstemp(
                dir=self.path.parent, prefix=".xlat-", suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(payload)
                os.replace(tmp_path, self.path)
            except BaseException:
                Path(tmp_path).unlink(missing_ok=True)
                raise
        except (OSError, TypeError, ValueError) as e:
            logger.warning(f"Could not persist translation cache {self.path}: {e}")

    async def clear(self) -> None:
        try:
            self.path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning(f"Could not delete translation cache {self.path}: {e}")


# =============================================================================
# In-Memory Cache
# =============================================================================


class InMemoryCacheStore(CacheStore):
    """
    In-memory cache slot for tests and ephemeral processes.

    Keeps the serialized form, like the file store, so snapshots handed
    out by load() never alias stored state.
    """

    def __init__(self, raw: str | None = None):
        self.raw = raw
        self.save_count = 0

    async def load(self) -> Cache:
        return decode_cache(self.raw)

    async def save(self, cache: Cache) -> None:
        try:
            self.raw = encode_cache(cache)
            self.save_count += 1
        except (TypeError, ValueError) as e:
            logger.warning(f"Could not persist translation cache: {e}")

    async def clear(self) -> None:
        self.raw = None


def create_cache_store(path: str | Path | None = None) -> CacheStore:
    """Create a file-backed store, or an in-memory one when no path is given."""
    if path:
        return JsonFileCacheStore(path)
    return InMemoryCacheStore()
