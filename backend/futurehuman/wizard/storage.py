"""Key-value draft storage backends.

All backends are synchronous string stores with `get`, `set` and `remove`.
Failures are raised as DraftStorageError; the wizard store decides to
swallow them.
"""

import logging
import os
import re
import tempfile
from pathlib import Path
from typing import Optional, Protocol

import redis

from futurehuman.config import settings

logger = logging.getLogger(__name__)

DRAFT_KEY = "fh:wizard:draft:v2"


def draft_key(entity_id: Optional[int] = None) -> str:
    """Storage key for a new agent's draft, or for an existing agent's."""
    if entity_id is None:
        return DRAFT_KEY
    return f"{DRAFT_KEY}:agent:{entity_id}"


class DraftStorageError(Exception):
    """Raised when a draft cannot be read, written or removed."""


class DraftStorage(Protocol):
    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...


class MemoryDraftStorage:
    """Process-local storage (tests, one-shot scripts)."""

    def __init__(self):
        self._data: dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def __contains__(self, key: str) -> bool:
        return key in self._data


class FileDraftStorage:
    """One JSON file per key under `directory`, replaced atomically."""

    def __init__(self, directory: str | os.PathLike):
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        return self.directory / (re.sub(r"[^A-Za-z0-9_.-]", "_", key) + ".json")

    def get(self, key: str) -> Optional[str]:
        path = self._path(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            raise DraftStorageError(f"Cannot read draft {path}: {e}") from e

    def set(self, key: str, value: str) -> None:
        path = self._path(key)
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(dir=self.directory, suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(value)
            os.replace(tmp, path)
        except OSError as e:
            raise DraftStorageError(f"Cannot write draft {path}: {e}") from e

    def remove(self, key: str) -> None:
        try:
            self._path(key).unlink(missing_ok=True)
        except OSError as e:
            raise DraftStorageError(f"Cannot remove draft {key}: {e}") from e


class RedisDraftStorage:
    """Drafts kept in Redis, shared between processes of one user."""

    def __init__(self, url: Optional[str] = None, ttl_seconds: Optional[int] = None):
        self._client = redis.Redis.from_url(url or settings.redis_url, decode_responses=True)
        self._ttl = ttl_seconds

    def get(self, key: str) -> Optional[str]:
        try:
            return self._client.get(key)
        except redis.RedisError as e:
            raise DraftStorageError(f"Redis get failed for {key}: {e}") from e

    def set(self, key: str, value: str) -> None:
        try:
            if self._ttl:
                self._client.setex(key, self._ttl, value)
            else:
                self._client.set(key, value)
        except redis.RedisError as e:
            raise DraftStorageError(f"Redis set failed for {key}: {e}") from e

    def remove(self, key: str) -> None:
        try:
            self._client.delete(key)
        except redis.RedisError as e:
            raise DraftStorageError(f"Redis delete failed for {key}: {e}") from e


def draft_storage_from_settings() -> DraftStorage:
    backend = settings.draft_backend
    if backend == "memory":
        return MemoryDraftStorage()
    if backend == "redis":
        return RedisDraftStorage(settings.redis_url)
    if backend == "file":
        return FileDraftStorage(settings.draft_dir)
    raise ValueError(f"Unknown draft backend: {backend!r}")
