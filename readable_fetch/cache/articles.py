"""
Article cache: wire format, read gate and merge policy.

Each article lives under ``<source>:<canonical url>`` as zlib-compressed
JSON, with an uncompressed metadata record under ``meta:<key>``. Writes go
through resolve_merge, so a stored article is only ever replaced by one that
is at least as complete. Store failures are logged and never reach the
caller: a failed read is a miss, a failed write is a no-op.
"""

from __future__ import annotations

import json
import logging
import zlib

from pydantic import ValidationError as SchemaValidationError

from ..config import CacheConfig
from ..core.types import ArticleMetadata, ArticleRecord
from ..core.urls import meta_key
from ..utils.logging import get_logger, log_event
from .store import CacheStore

KEEP_EXISTING = "existing_kept"
HTML_COMPLETENESS = "html_completeness"
LONGER_CONTENT = "longer_content"


class CorruptEntry(Exception):
    """A cached value could not be decompressed, decoded or validated."""


def compress_record(record: ArticleRecord) -> bytes:
    return zlib.compress(json.dumps(record.to_wire(), ensure_ascii=False).encode("utf-8"))


def decompress_record(raw: bytes) -> ArticleRecord:
    """Decode a stored article.

    Raises:
        CorruptEntry: The bytes are not a valid compressed ArticleRecord
    """
    try:
        payload = json.loads(zlib.decompress(raw).decode("utf-8"))
        return ArticleRecord.model_validate(payload)
    except (zlib.error, UnicodeDecodeError, ValueError, SchemaValidationError) as exc:
        raise CorruptEntry(f"{type(exc).__name__}: {exc}") from exc


def resolve_merge(existing: ArticleRecord, incoming: ArticleRecord) -> tuple[ArticleRecord, str]:
    """Choose which whole record to keep.

    1. HTML completeness: a record with htmlContent beats one without,
       whatever the lengths
    2. incoming is strictly longer: incoming
    3. otherwise: existing

    Returns:
        (winner, reason)
    """
    if existing.is_degraded and not incoming.is_degraded:
        return incoming, HTML_COMPLETENESS
    if incoming.is_degraded and not existing.is_degraded:
        return existing, HTML_COMPLETENESS
    if incoming.length > existing.length:
        return incoming, LONGER_CONTENT
    return existing, KEEP_EXISTING


def is_servable(record: ArticleRecord, min_length: int) -> bool:
    """Read gate: substantial length and raw HTML present."""
    return record.length > min_length and not record.is_degraded


class ArticleCache:
    """Article reads and merge-writes over a CacheStore.

    Attributes:
        store: Backing byte store (shared between concurrent requests)
        cfg: Cache configuration (enabled flag, read-gate thresholds)
    """

    def __init__(self, store: CacheStore, cfg: CacheConfig, logger: logging.Logger | None = None):
        self.store = store
        self.cfg = cfg
        self.logger = logger or get_logger("cache")

    def read(self, key: str) -> ArticleRecord | None:
        """Return the stored record, or None for a miss, a corrupt entry or a store failure."""
        if not self.cfg.enabled:
            return None
        raw = self._get(key)
        if raw is None:
            return None
        try:
            return decompress_record(raw)
        except CorruptEntry as exc:
            log_event(
                self.logger,
                "Cached article is invalid, treating as miss",
                level=logging.WARNING,
                event="cache_invalid",
                key=key,
                error=str(exc),
            )
            return None

    def lookup(self, key: str, min_length: int | None = None) -> ArticleRecord | None:
        """Return the stored record only if it passes the read gate."""
        threshold = self.cfg.min_length if min_length is None else min_length
        record = self.read(key)
        if record is None:
            log_event(self.logger, "Cache miss", level=logging.DEBUG, event="cache_miss", key=key)
            return None
        if not is_servable(record, threshold):
            log_event(
                self.logger,
                "Cached article below read gate, refetching",
                level=logging.DEBUG,
                event="cache_stale",
                key=key,
                length=record.length,
                has_html=not record.is_degraded,
                min_length=threshold,
            )
            return None
        log_event(self.logger, "Cache hit", level=logging.DEBUG, event="cache_hit", key=key, length=record.length)
        return record

    def merge(self, key: str, incoming: ArticleRecord) -> ArticleRecord:
        """Store incoming unless the existing record is better; return the kept record."""
        if not self.cfg.enabled:
            return incoming
        try:
            incoming = ArticleRecord.model_validate(incoming.to_wire())
        except SchemaValidationError as exc:
            log_event(
                self.logger,
                "Incoming article failed validation, not caching",
                level=logging.WARNING,
                event="cache_skip_invalid",
                key=key,
                error=str(exc),
            )
            return incoming

        existing = self.read(key)
        if existing is None:
            winner, reason = incoming, "miss"
        else:
            winner, reason = resolve_merge(existing, incoming)

        log_event(
            self.logger,
            "Cache merge decision",
            level=logging.DEBUG,
            event="cache_merge",
            key=key,
            reason=reason,
            existing_length=existing.length if existing else None,
            incoming_length=incoming.length,
        )
        if winner is incoming:
            self._write(key, incoming)
        return winner

    def read_metadata(self, key: str) -> ArticleMetadata | None:
        if not self.cfg.enabled:
            return None
        raw = self._get(meta_key(key))
        if raw is None:
            return None
        try:
            return ArticleMetadata.model_validate_json(raw)
        except SchemaValidationError as exc:
            log_event(
                self.logger,
                "Cached metadata is invalid",
                level=logging.WARNING,
                event="cache_meta_invalid",
                key=key,
                error=str(exc),
            )
            return None

    def _get(self, key: str) -> bytes | None:
        try:
            return self.store.get(key)
        except Exception as exc:  # noqa: BLE001
            log_event(
                self.logger,
                "Cache read failed",
                level=logging.WARNING,
                event="cache_read_error",
                key=key,
                error=f"{type(exc).__name__}: {exc}",
            )
            return None

    def _write(self, key: str, record: ArticleRecord) -> None:
        try:
            self.store.set(key, compress_record(record))
            self.store.set(meta_key(key), record.metadata().model_dump_json(by_alias=True).encode("utf-8"))
        except Exception as exc:  # noqa: BLE001
            log_event(
                self.logger,
                "Cache write failed",
                level=logging.WARNING,
                event="cache_write_error",
                key=key,
                error=f"{type(exc).__name__}: {exc}",
            )
            return
        log_event(self.logger, "Article cached", event="cache_write", key=key, length=record.length)
