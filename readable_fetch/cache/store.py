"""
Key/value stores backing the article cache.

The cache logic only needs ``get`` and ``set`` on bytes. Expiry is the
store's business: entries older than the store's TTL read as missing.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
import hashlib
from pathlib import Path
import time
from typing import Callable


class CacheStore(ABC):
    """Minimal byte store interface."""

    @abstractmethod
    def get(self, key: str) -> bytes | None:
        """Return the stored value, or None when missing or expired."""

    @abstractmethod
    def set(self, key: str, value: bytes) -> None:
        """Store value under key, replacing any previous value."""


class MemoryStore(CacheStore):
    """Process-local store, mainly for tests and one-off CLI runs.

    Attributes:
        ttl_seconds: Optional entry lifetime; None keeps entries forever
    """

    def __init__(self, ttl_seconds: float | None = None, clock: Callable[[], float] = time.time):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._data: dict[str, tuple[float, bytes]] = {}

    def get(self, key: str) -> bytes | None:
        item = self._data.get(key)
        if item is None:
            return None
        written, value = item
        if self.ttl_seconds is not None and self._clock() - written > self.ttl_seconds:
            del self._data[key]
            return None
        return value

    def set(self, key: str, value: bytes) -> None:
        self._data[key] = (self._clock(), value)

    def keys(self) -> list[str]:
        return list(self._data)


class FileStore(CacheStore):
    """One file per key in a directory, named by the SHA256 of the key.

    Expiry uses the file's modification time, so rewriting an entry renews it.

    Attributes:
        directory: Where entry files live (created on first write)
        ttl_days: Optional entry lifetime in days; None keeps entries forever
    """

    def __init__(self, directory: Path | str, ttl_days: int | None = None):
        self.directory = Path(directory)
        self.ttl_days = ttl_days

    def path_for(self, key: str) -> Path:
        digest = hashlib.sha256(key.encode("utf-8")).hexdigest()
        return self.directory / f"{digest}.bin"

    def get(self, key: str) -> bytes | None:
        path = self.path_for(key)
        if not path.exists():
            return None
        if not self._is_fresh(path):
            return None
        return path.read_bytes()

    def set(self, key: str, value: bytes) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self.path_for(key)
        tmp = path.with_suffix(".tmp")
        tmp.write_bytes(value)
        tmp.replace(path)

    def _is_fresh(self, path: Path) -> bool:
        if self.ttl_days is None:
            return True
        age_seconds = time.time() - path.stat().st_mtime
        return age_seconds <= self.ttl_days * 86400
