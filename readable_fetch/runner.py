"""
Request orchestration for readable-fetch.

This module implements the public read contract:
1. Validate the URL and source kind
2. Serve a qualifying cache hit without touching the network
3. Otherwise route to the source's fetch pipeline under a deadline
4. Merge the result into the cache
5. Answer with a success or error envelope

Independent requests run concurrently; each has its own cookie jar and
the cache store is the only shared state.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
import logging
from typing import Any, Iterable

import httpx

from .cache import ArticleCache, CacheStore, FileStore, MemoryStore
from .config import AppConfig, CacheConfig
from .core.errors import FetchError, FetchTimeoutError, ValidationError
from .core.types import (
    SOURCE_FETCH_FAST,
    SOURCE_FETCH_SLOW,
    SOURCE_KINDS,
    SOURCE_READER,
    SOURCE_WAYBACK,
    ArticleRecord,
)
from .core.urls import cache_key, parse_request_url
from .fetch.archive import archive_url, fetch_archive
from .fetch.controller import EscalationController
from .fetch.extractor import Extractor, extract_article
from .fetch.fetcher import StrategyExecutor
from .fetch.reader import fetch_reader_article, reader_url
from .fetch.remote import fetch_remote_article
from .utils.logging import get_logger, log_event, scrub_url


@dataclass
class FetchStats:
    """Counters for the requests handled by one ArticleService.

    Attributes:
        total: Requests received
        cache_hits: Requests answered from cache
        fetched: Requests answered from a fresh fetch
        failed: Requests answered with an error envelope
    """
    total: int = 0
    cache_hits: int = 0
    fetched: int = 0
    failed: int = 0


@dataclass
class ServiceResponse:
    """An envelope plus the HTTP-style status it maps to."""
    status_code: int
    body: dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status_code == 200


def build_store(cfg: CacheConfig) -> CacheStore:
    """Create the store named by cfg.backend ("file" or "memory")."""
    if cfg.backend == "memory":
        ttl_seconds = cfg.ttl_days * 86400 if cfg.ttl_days is not None else None
        return MemoryStore(ttl_seconds=ttl_seconds)
    if cfg.backend == "file":
        return FileStore(cfg.directory, ttl_days=cfg.ttl_days)
    raise ValueError(f"Unknown cache backend: {cfg.backend}")


def success_envelope(source: str, cache_url: str, article: ArticleRecord) -> dict[str, Any]:
    return {
        "source": source,
        "cacheURL": cache_url,
        "article": article.to_wire(),
        "status": "success",
    }


def error_envelope(error: FetchError) -> dict[str, Any]:
    body: dict[str, Any] = {"error": error.message, "type": error.type}
    if error.details:
        body["details"] = error.details
    return body


class ArticleService:
    """Serves articles by (url, source kind).

    Attributes:
        cfg: Application configuration
        cache: Article cache over the configured (or injected) store
        stats: Request counters
    """

    def __init__(
        self,
        cfg: AppConfig,
        store: CacheStore | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        extractor: Extractor | None = None,
        logger: logging.Logger | None = None,
    ):
        self.cfg = cfg
        self.logger = logger or get_logger("service")
        self.transport = transport
        self.extractor = extractor or extract_article
        self.cache = ArticleCache(store if store is not None else build_store(cfg.cache), cfg.cache)
        self.executor = StrategyExecutor(cfg.fetch, transport=transport)
        self.controller = EscalationController(self.executor, cfg.fetch, extractor=self.extractor)
        self.stats = FetchStats()

    async def get_article(self, url: str, source: str = SOURCE_FETCH_FAST) -> ServiceResponse:
        """Return the article envelope for url fetched through source."""
        self.stats.total += 1
        try:
            if source not in SOURCE_KINDS:
                raise ValidationError(
                    f"Unknown source: {source}",
                    details={"allowed": list(SOURCE_KINDS)},
                )
            article_url = parse_request_url(url)
            key = cache_key(source, article_url)
        except ValidationError as exc:
            log_event(
                self.logger,
                "Rejected article request",
                level=logging.WARNING,
                event="request_invalid",
                source=source,
                error=exc.message,
            )
            return self._failure(exc)

        cache_url = self._cache_url(source, article_url)
        cached = self.cache.lookup(key, self._min_length(source))
        if cached is not None:
            self.stats.cache_hits += 1
            log_event(self.logger, "Served article from cache", event="article_cached", key=key, length=cached.length)
            return ServiceResponse(200, success_envelope(source, cache_url, cached))

        try:
            result = await asyncio.wait_for(
                self._fetch(source, article_url), timeout=self.cfg.fetch.deadline_seconds
            )
        except asyncio.TimeoutError:
            result = FetchTimeoutError(
                f"Request exceeded the {self.cfg.fetch.deadline_seconds:.0f}s deadline",
                details={"source": source},
            )

        if isinstance(result, FetchError):
            log_event(
                self.logger,
                "Article fetch failed",
                level=logging.ERROR,
                event="article_failed",
                source=source,
                url=scrub_url(article_url),
                error_type=result.type,
                status=result.status_code,
                error=result.message,
            )
            return self._failure(result)

        article = self.cache.merge(key, result)
        self.stats.fetched += 1
        log_event(
            self.logger,
            "Served fresh article",
            event="article_fetched",
            source=source,
            key=key,
            length=article.length,
        )
        return ServiceResponse(200, success_envelope(source, cache_url, article))

    async def get_articles(self, requests: Iterable[tuple[str, str]]) -> list[ServiceResponse]:
        """Serve several (url, source) requests concurrently, in input order."""
        return await asyncio.gather(*(self.get_article(url, source) for url, source in requests))

    async def _fetch(self, source: str, url: str) -> ArticleRecord | FetchError:
        if source == SOURCE_FETCH_FAST:
            return await self.controller.fetch_best(url)
        if source == SOURCE_WAYBACK:
            return await fetch_archive(
                url, self.executor, self.cfg.archive, self.extractor, fetch_cfg=self.cfg.fetch
            )
        if source == SOURCE_FETCH_SLOW:
            return await fetch_remote_article(url, self.cfg.remote, transport=self.transport)
        return await fetch_reader_article(url, self.cfg.reader, transport=self.transport)

    def _cache_url(self, source: str, url: str) -> str:
        if source == SOURCE_WAYBACK:
            return archive_url(url, self.cfg.archive)
        if source == SOURCE_READER:
            return reader_url(url, self.cfg.reader)
        return url

    def _min_length(self, source: str) -> int:
        if source == SOURCE_READER:
            return self.cfg.cache.reader_min_length
        return self.cfg.cache.min_length

    def _failure(self, error: FetchError) -> ServiceResponse:
        self.stats.failed += 1
        return ServiceResponse(error.status_code, error_envelope(error))
