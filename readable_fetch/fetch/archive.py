"""
Archive mirror fetch: a single, slower, non-escalating attempt.

Archives are slow but not adversarial, so there is no identity rotation.
A 429 is reported as a rate limit with the Retry-After hint, and the page
is parsed against the original article URL rather than the mirror URL.
"""

from __future__ import annotations

import logging

from ..config import ArchiveConfig, FetchConfig
from ..core.errors import (
    BlockedError,
    FetchError,
    FetchTimeoutError,
    NetworkError,
    RateLimitError,
)
from ..core.types import ArticleRecord
from ..utils.logging import get_logger, log_event, scrub_url
from .controller import parse_html
from .extractor import Extractor, extract_article
from .fetcher import Blocked, Failed, StrategyExecutor, Success, Timeout
from .identities import BROWSER


def archive_url(original_url: str, cfg: ArchiveConfig | None = None) -> str:
    """Mirror URL for an article, e.g. ``https://web.archive.org/web/2/<url>``."""
    base = (cfg or ArchiveConfig()).base_url
    return f"{base}{original_url}"


async def fetch_archive(
    original_url: str,
    executor: StrategyExecutor,
    cfg: ArchiveConfig,
    extractor: Extractor = extract_article,
    fetch_cfg: FetchConfig | None = None,
    logger: logging.Logger | None = None,
) -> ArticleRecord | FetchError:
    """Fetch the archived copy of original_url once and extract it.

    Args:
        original_url: Canonical article URL (not the mirror URL)
        executor: Executor used for the single browser-identity attempt
        cfg: Archive endpoint and timeout
        extractor: Extraction capability
        fetch_cfg: Supplies the minimum HTML length; defaults apply if omitted
        logger: Optional logger

    Returns:
        The record (siteName is the original host), or a FetchError
    """
    logger = logger or get_logger("archive")
    target = archive_url(original_url, cfg)
    min_html_length = (fetch_cfg or FetchConfig()).min_html_length

    log_event(
        logger,
        "Fetching article from archive mirror",
        event="archive_fetch",
        archive_url=scrub_url(target),
        timeout=cfg.timeout_seconds,
    )
    result = await executor.attempt(
        target,
        BROWSER,
        executor.new_cookie_jar(),
        body_timeout=cfg.timeout_seconds,
        request_timeout=cfg.timeout_seconds,
    )

    if isinstance(result, Success):
        if not result.html:
            log_event(logger, "Archive returned an empty body", level=logging.WARNING, event="archive_empty")
        return await parse_html(result.html, original_url, original_url, extractor, min_html_length)

    error = _archive_error(result, target)
    log_event(
        logger,
        "Archive fetch failed",
        level=logging.ERROR,
        event="archive_failed",
        archive_url=scrub_url(target),
        error_type=error.type,
        status=error.status_code,
        **({"retry_after": error.retry_after} if isinstance(error, RateLimitError) else {}),
    )
    return error


def _archive_error(result: Blocked | Failed | Timeout, target: str) -> FetchError:
    details = {"archiveUrl": target}
    if isinstance(result, Timeout):
        return FetchTimeoutError("Connection timed out when fetching from the archive", details=details)
    if isinstance(result, Blocked):
        if result.status == 429:
            return RateLimitError(
                "Archive rate limit exceeded. Please try again later or use a different source.",
                retry_after=_header(result.headers, "retry-after"),
                details=details,
            )
        if result.tarpit:
            return FetchTimeoutError("Archive response body timed out", details=details)
        return BlockedError(f"HTTP {result.status} error when fetching from the archive", status_code=result.status, details=details)
    if result.status is None:
        return NetworkError(f"Failed to fetch article from the archive: {result.error}", details=details)
    return NetworkError(
        f"HTTP {result.status} error when fetching from the archive",
        status_code=result.status,
        details=details,
    )


def _header(headers: dict[str, str], name: str) -> str | None:
    for key, value in headers.items():
        if key.lower() == name:
            return value
    return None
