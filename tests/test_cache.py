"""Tests for the article cache: merge policy, read gate and store failures."""

from __future__ import annotations

import json
import os
import time
import zlib

import pytest

from readable_fetch.cache import ArticleCache, CacheStore, FileStore, MemoryStore, resolve_merge
from readable_fetch.cache.articles import CorruptEntry, compress_record, decompress_record
from readable_fetch.config import CacheConfig
from readable_fetch.core.types import ArticleRecord

KEY = "fetch-fast:https://example.com/a"


def _record(length: int, html: bool = True, title: str = "Story") -> ArticleRecord:
    return ArticleRecord(
        title=title,
        content="<p>story</p>",
        text_content="x" * length,
        length=length,
        site_name="example.com",
        byline="A. Writer",
        html_content="<html><body>story</body></html>" if html else None,
    )


class _BrokenStore(CacheStore):
    def get(self, key):  # noqa: ANN001
        raise ConnectionError("store unavailable")

    def set(self, key, value):  # noqa: ANN001
        raise ConnectionError("store unavailable")


class _WriteFailStore(MemoryStore):
    def set(self, key, value):  # noqa: ANN001
        raise ConnectionError("read-only replica")


def test_html_completeness_beats_length():
    existing = _record(300, html=True)
    incoming = _record(900, html=False)
    winner, _ = resolve_merge(existing, incoming)
    assert winner is existing


def test_incoming_html_replaces_degraded_existing():
    existing = _record(300, html=False)
    incoming = _record(100, html=True)
    winner, reason = resolve_merge(existing, incoming)
    assert winner is incoming
    assert reason == "html_completeness"


def test_longer_incoming_wins_when_both_have_html():
    existing = _record(300)
    incoming = _record(301)
    assert resolve_merge(existing, incoming)[0] is incoming
    assert resolve_merge(incoming, existing)[0] is incoming


def test_equal_length_keeps_existing():
    existing = _record(300, title="old")
    incoming = _record(300, title="new")
    assert resolve_merge(existing, incoming)[0] is existing


def test_merge_stores_on_miss_with_metadata():
    store = MemoryStore()
    cache = ArticleCache(store, CacheConfig())
    incoming = _record(1200)

    result = cache.merge(KEY, incoming)

    assert result.length == 1200
    assert cache.read(KEY) == incoming
    meta = json.loads(store.get("meta:" + KEY))
    assert meta["siteName"] == "example.com"
    assert meta["length"] == 1200
    assert meta["byline"] == "A. Writer"
    assert cache.read_metadata(KEY).title == "Story"


def test_merge_never_regresses_stored_record():
    cache = ArticleCache(MemoryStore(), CacheConfig())
    cache.merge(KEY, _record(2000, title="long"))

    result = cache.merge(KEY, _record(1000, title="short"))

    assert result.title == "long"
    assert cache.read(KEY).title == "long"


def test_merge_is_idempotent():
    cache = ArticleCache(MemoryStore(), CacheConfig())
    record = _record(1500)
    first = cache.merge(KEY, record)
    second = cache.merge(KEY, record)
    assert first == second == cache.read(KEY)


def test_invalid_existing_entry_is_overwritten():
    store = MemoryStore()
    store.set(KEY, b"not compressed json")
    cache = ArticleCache(store, CacheConfig())

    assert cache.read(KEY) is None
    result = cache.merge(KEY, _record(50, html=False))

    assert result.length == 50
    assert cache.read(KEY).length == 50


def test_entry_failing_schema_is_treated_as_absent():
    store = MemoryStore()
    bad = {"title": "t", "content": "c", "textContent": "abc", "length": 99, "siteName": "example.com"}
    store.set(KEY, zlib.compress(json.dumps(bad).encode("utf-8")))
    cache = ArticleCache(store, CacheConfig())

    assert cache.read(KEY) is None
    assert cache.merge(KEY, _record(10)).length == 10


def test_decompress_rejects_garbage():
    with pytest.raises(CorruptEntry):
        decompress_record(b"\x00\x01garbage")
    record = _record(5)
    assert decompress_record(compress_record(record)) == record


def test_read_gate_requires_length_above_threshold_and_html():
    cache = ArticleCache(MemoryStore(), CacheConfig(min_length=900))

    cache.merge("a", _record(900))
    cache.merge("b", _record(901))
    cache.merge("c", _record(5000, html=False))

    assert cache.lookup("a") is None
    assert cache.lookup("b").length == 901
    assert cache.lookup("c") is None
    assert cache.read("c").length == 5000


def test_read_gate_accepts_custom_threshold():
    cache = ArticleCache(MemoryStore(), CacheConfig())
    cache.merge(KEY, _record(3000))
    assert cache.lookup(KEY) is not None
    assert cache.lookup(KEY, min_length=4000) is None


def test_store_failures_are_swallowed():
    cache = ArticleCache(_BrokenStore(), CacheConfig())
    incoming = _record(1000)

    assert cache.lookup(KEY) is None
    assert cache.merge(KEY, incoming) == incoming
    assert cache.read_metadata(KEY) is None


def test_write_failure_returns_incoming():
    cache = ArticleCache(_WriteFailStore(), CacheConfig())
    incoming = _record(1000)
    assert cache.merge(KEY, incoming) == incoming
    assert cache.read(KEY) is None


def test_disabled_cache_never_touches_store():
    store = MemoryStore()
    cache = ArticleCache(store, CacheConfig(enabled=False))
    cache.merge(KEY, _record(1000))
    assert store.keys() == []
    assert cache.lookup(KEY) is None


def test_file_store_round_trip_and_ttl(tmp_path):
    store = FileStore(tmp_path / "cache", ttl_days=1)
    store.set(KEY, b"payload")
    assert store.get(KEY) == b"payload"
    assert store.path_for(KEY).name.endswith(".bin")

    two_days_ago = time.time() - 2 * 86400
    os.utime(store.path_for(KEY), (two_days_ago, two_days_ago))
    assert store.get(KEY) is None

    assert FileStore(tmp_path / "cache").get(KEY) == b"payload"
    assert store.get("missing") is None


def test_memory_store_ttl_uses_clock():
    now = [1000.0]
    store = MemoryStore(ttl_seconds=60, clock=lambda: now[0])
    store.set(KEY, b"v")
    now[0] += 30
    assert store.get(KEY) == b"v"
    now[0] += 31
    assert store.get(KEY) is None
