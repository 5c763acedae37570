"""Tests for the escalation controller and the archive path."""

from __future__ import annotations

import asyncio
import re

import httpx

from readable_fetch.config import ArchiveConfig, FetchConfig
from readable_fetch.core.errors import (
    BlockedError,
    FetchTimeoutError,
    NetworkError,
    ParseError,
    RateLimitError,
)
from readable_fetch.core.types import ArticleRecord
from readable_fetch.fetch.archive import archive_url, fetch_archive
from readable_fetch.fetch.controller import EscalationController
from readable_fetch.fetch.extractor import ExtractedContent
from readable_fetch.fetch.fetcher import StrategyExecutor

URL = "https://example.com/story"


def _fake_extract(html: str, base_url: str) -> ExtractedContent | None:
    text = " ".join(re.sub(r"<[^>]+>", " ", html).split())
    if not text:
        return None
    return ExtractedContent(title="Story", html=f"<p>{text}</p>", text=text)


def _page(chars: int) -> str:
    return "<html><body><p>" + "x" * chars + "</p></body></html>"


def _is_crawler(request: httpx.Request) -> bool:
    return "Googlebot" in request.headers["user-agent"]


class _DrippingStream(httpx.AsyncByteStream):
    async def __aiter__(self):
        yield b"<html>"
        await asyncio.sleep(10)


class _RecordingExecutor(StrategyExecutor):
    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.calls = []

    async def attempt(self, url, identity, cookie_jar, body_timeout=None, request_timeout=None):  # noqa: ANN001
        self.calls.append({"identity": identity, "body_timeout": body_timeout, "cookie": cookie_jar.header()})
        return await super().attempt(url, identity, cookie_jar, body_timeout, request_timeout)


def _cfg(**overrides) -> FetchConfig:
    values = {
        "request_timeout_seconds": 1.0,
        "body_timeout_seconds": 0.2,
        "tarpit_retry_body_timeout_seconds": 0.1,
        "crawler_delay_range": [0.0, 0.0],
        "cookie_retry_delay_range": [0.0, 0.0],
        "seed": 11,
    }
    values.update(overrides)
    return FetchConfig(**values)


def _controller(handler, **overrides):
    cfg = _cfg(**overrides)
    executor = _RecordingExecutor(cfg, transport=httpx.MockTransport(handler))
    return EscalationController(executor, cfg, extractor=_fake_extract), executor


def test_blocked_browser_escalates_to_crawler_with_harvested_cookie():
    seen_cookies = []

    def handler(request):
        if _is_crawler(request):
            seen_cookies.append(request.headers.get("cookie"))
            return httpx.Response(200, text=_page(2500))
        return httpx.Response(403, headers={"Set-Cookie": "datadome=challenge; Path=/"})

    controller, executor = _controller(handler)
    result = asyncio.run(controller.fetch_best(URL))

    assert isinstance(result, ArticleRecord)
    assert result.length == 2500
    assert seen_cookies == ["datadome=challenge"]
    # the jar held a cookie, so the browser retry ran too
    assert [call["identity"] for call in executor.calls] == ["browser", "crawler", "browser"]
    assert executor.calls[2]["cookie"] == "datadome=challenge"


def test_high_quality_first_attempt_returns_early():
    controller, executor = _controller(lambda request: httpx.Response(200, text=_page(3500)))
    result = asyncio.run(controller.fetch_best(URL))

    assert result.length == 3500
    assert len(executor.calls) == 1


def test_threshold_is_strictly_greater():
    controller, executor = _controller(lambda request: httpx.Response(200, text=_page(3000)))
    asyncio.run(controller.fetch_best(URL))
    assert len(executor.calls) == 2


def test_best_candidate_wins_across_attempts():
    def handler(request):
        return httpx.Response(200, text=_page(2000 if _is_crawler(request) else 1000))

    controller, executor = _controller(handler)
    result = asyncio.run(controller.fetch_best(URL))

    assert result.length == 2000
    assert [call["identity"] for call in executor.calls] == ["browser", "crawler"]


def test_cookie_retry_skipped_without_cookies():
    controller, executor = _controller(lambda request: httpx.Response(403))
    result = asyncio.run(controller.fetch_best(URL))

    assert isinstance(result, NetworkError)
    assert result.status_code == 500
    assert result.message.startswith("All fetch strategies failed")
    assert result.details["attempts"] == 2
    assert result.details["cookies"] == 0
    assert len(executor.calls) == 2


def test_exhausted_error_reports_cookie_count():
    def handler(request):
        return httpx.Response(403, headers={"Set-Cookie": "__cf_bm=b; Path=/"})

    controller, executor = _controller(handler)
    result = asyncio.run(controller.fetch_best(URL))

    assert isinstance(result, NetworkError)
    assert result.details["attempts"] == 3
    assert result.details["cookies"] == 1
    assert "HTTP 403" in result.message


def test_all_timeouts_map_to_timeout_error():
    async def handler(request):
        await asyncio.sleep(5)
        return httpx.Response(200)

    controller, _ = _controller(handler, request_timeout_seconds=0.05)
    result = asyncio.run(controller.fetch_best(URL))

    assert isinstance(result, FetchTimeoutError)
    assert result.status_code == 504


def test_tarpit_triggers_escalation_like_a_block():
    def handler(request):
        if _is_crawler(request):
            return httpx.Response(200, text=_page(1500))
        return httpx.Response(200, stream=_DrippingStream())

    controller, executor = _controller(handler, body_timeout_seconds=0.05)
    result = asyncio.run(controller.fetch_best(URL))

    assert isinstance(result, ArticleRecord)
    assert result.length == 1500
    assert executor.calls[0]["body_timeout"] is None
    assert executor.calls[1]["body_timeout"] == 0.1


def test_short_html_counts_as_parse_failure():
    def handler(request):
        return httpx.Response(200, text=_page(1500) if _is_crawler(request) else "<p>hi</p>")

    controller, _ = _controller(handler)
    result = asyncio.run(controller.fetch_best(URL))
    assert result.length == 1500


def test_extraction_failure_everywhere_reports_parse_error_message():
    cfg = _cfg()
    executor = StrategyExecutor(cfg, transport=httpx.MockTransport(lambda request: httpx.Response(200, text=_page(500))))
    controller = EscalationController(executor, cfg, extractor=lambda html, base_url: None)

    result = asyncio.run(controller.fetch_best(URL))

    assert isinstance(result, NetworkError)
    assert "No article content" in result.message


def test_archive_url_shape():
    assert archive_url(URL) == "https://web.archive.org/web/2/https://example.com/story"


def test_archive_parses_against_original_url():
    seen = {}

    def handler(request):
        seen["host"] = request.url.host
        return httpx.Response(200, text=_page(1200))

    def extract(html, base_url):
        seen["base_url"] = base_url
        return _fake_extract(html, base_url)

    executor = StrategyExecutor(_cfg(), transport=httpx.MockTransport(handler))
    result = asyncio.run(fetch_archive(URL, executor, ArchiveConfig(), extract))

    assert isinstance(result, ArticleRecord)
    assert seen == {"host": "web.archive.org", "base_url": URL}
    assert result.site_name == "example.com"


def test_archive_rate_limit_surfaces_retry_after():
    executor = StrategyExecutor(
        _cfg(),
        transport=httpx.MockTransport(lambda request: httpx.Response(429, headers={"Retry-After": "120"})),
    )
    result = asyncio.run(fetch_archive(URL, executor, ArchiveConfig(), _fake_extract))

    assert isinstance(result, RateLimitError)
    assert result.retry_after == "120"
    assert result.status_code == 429
    assert result.details["retryAfter"] == "120"


def test_archive_error_classification():
    def run(status):
        executor = StrategyExecutor(_cfg(), transport=httpx.MockTransport(lambda request: httpx.Response(status)))
        return asyncio.run(fetch_archive(URL, executor, ArchiveConfig(), _fake_extract))

    assert isinstance(run(403), BlockedError)
    not_found = run(404)
    assert isinstance(not_found, NetworkError)
    assert not_found.status_code == 404


def test_archive_empty_body_is_parse_error():
    executor = StrategyExecutor(_cfg(), transport=httpx.MockTransport(lambda request: httpx.Response(200, text="")))
    result = asyncio.run(fetch_archive(URL, executor, ArchiveConfig(), _fake_extract))
    assert isinstance(result, ParseError)
