"""
Escalating direct fetch for one article.

One run of EscalationController.fetch_best makes up to three sequential
attempts that share a single cookie jar:
1. browser identity, no delay; a high-quality result returns at once
2. crawler identity after a short random delay
3. browser identity again after a longer delay, only when attempts 1-2
   left anti-bot cookies in the jar

Every attempt that yields an article joins the candidate pool, and the
pool is handed to the arbitrator. Failures come back as FetchError values.
"""

from __future__ import annotations

import asyncio
import logging
import random

from ..config import FetchConfig
from ..core.errors import (
    BlockedError,
    FetchError,
    FetchTimeoutError,
    NetworkError,
    ParseError,
)
from ..core.quality import Candidate, pick
from ..core.types import ArticleRecord
from ..utils.logging import get_logger, log_event, scrub_url
from .cookies import CookieJar
from .extractor import Extractor, build_record, extract_article
from .fetcher import (
    Blocked,
    FetchAttemptResult,
    StrategyExecutor,
    Success,
    Timeout,
    describe,
)
from .identities import BROWSER, CRAWLER


class EscalationController:
    """Drives the browser -> crawler -> browser-with-cookies escalation.

    Attributes:
        executor: Performs the individual attempts
        cfg: Fetch configuration (threshold, delays, timeouts)
        extractor: Extraction capability, ``(html, base_url) -> ExtractedContent | None``
    """

    def __init__(
        self,
        executor: StrategyExecutor,
        cfg: FetchConfig,
        extractor: Extractor = extract_article,
        logger: logging.Logger | None = None,
    ):
        self.executor = executor
        self.cfg = cfg
        self.extractor = extractor
        self.logger = logger or get_logger("escalation")
        self._rng = random.Random(cfg.seed)

    async def fetch_best(self, url: str) -> ArticleRecord | FetchError:
        """Fetch url with escalation and return the best extraction or an error."""
        jar = self.executor.new_cookie_jar()
        candidates: list[Candidate] = []
        errors: list[FetchError] = []
        body_timeout: float | None = None
        attempts = 0

        for number, identity, delay_range in self._plan():
            if number == 3 and len(jar) == 0:
                break
            if delay_range:
                await asyncio.sleep(self._delay(delay_range))

            attempts += 1
            log_event(
                self.logger,
                "Fetch attempt",
                level=logging.DEBUG,
                event="fetch_attempt",
                attempt=number,
                strategy=identity,
                url=scrub_url(url),
                cookies=jar.names(),
            )
            result = await self.executor.attempt(url, identity, jar, body_timeout=body_timeout)
            if isinstance(result, Blocked) and result.tarpit:
                body_timeout = self.cfg.tarpit_retry_body_timeout_seconds

            outcome = await self._to_record(result, url)
            if isinstance(outcome, FetchError):
                errors.append(outcome)
                continue

            candidate = Candidate(record=outcome, strategy=identity, attempt=number)
            candidates.append(candidate)
            if number == 1 and candidate.score > self.cfg.high_quality_threshold:
                log_event(
                    self.logger,
                    "High quality result on first attempt, skipping escalation",
                    event="early_return",
                    strategy=identity,
                    quality=candidate.score,
                )
                return outcome

        if candidates:
            return pick(candidates, self.logger).record
        return self._exhausted(url, errors, attempts, jar)

    def _plan(self):
        return (
            (1, BROWSER, None),
            (2, CRAWLER, self.cfg.crawler_delay_range),
            (3, BROWSER, self.cfg.cookie_retry_delay_range),
        )

    def _delay(self, delay_range) -> float:
        low, high = delay_range
        return self._rng.uniform(low, high)

    async def _to_record(self, result: FetchAttemptResult, url: str) -> ArticleRecord | FetchError:
        if not isinstance(result, Success):
            return attempt_error(result)
        return await parse_html(result.html, url, url, self.extractor, self.cfg.min_html_length)

    def _exhausted(self, url: str, errors: list[FetchError], attempts: int, jar: CookieJar) -> FetchError:
        details = {
            "attempts": attempts,
            "cookies": len(jar),
            "errors": [error.message for error in errors],
        }
        if errors and all(isinstance(error, FetchTimeoutError) for error in errors):
            error: FetchError = FetchTimeoutError(
                f"All {attempts} fetch attempts timed out", details=details
            )
        else:
            last = errors[-1].message if errors else "no attempt was made"
            error = NetworkError(f"All fetch strategies failed: {last}", status_code=500, details=details)
        log_event(
            self.logger,
            "All fetch strategies failed",
            level=logging.ERROR,
            event="fetch_exhausted",
            url=scrub_url(url),
            error_type=error.type,
            **details,
        )
        return error


def attempt_error(result: FetchAttemptResult) -> FetchError | None:
    """Map a non-success attempt outcome to its FetchError, or None for Success."""
    if isinstance(result, Success):
        return None
    message = describe(result)
    if isinstance(result, Blocked):
        return BlockedError(message, status_code=result.status, details={"strategy": result.strategy})
    if isinstance(result, Timeout):
        return FetchTimeoutError(message, details={"strategy": result.strategy})
    return NetworkError(message, details={"strategy": result.strategy, "status": result.status})


async def parse_html(
    html: str,
    base_url: str,
    record_url: str,
    extractor: Extractor,
    min_html_length: int = 100,
) -> ArticleRecord | ParseError:
    """Run the extractor over html and build a record, or a ParseError.

    base_url is what relative links resolve against; record_url supplies the
    record's siteName. They differ for archive fetches.
    """
    if not html or len(html) < min_html_length:
        return ParseError("Response body too short to contain an article", details={"htmlLength": len(html or "")})
    extracted = await asyncio.to_thread(extractor, html, base_url)
    record = build_record(extracted, record_url, html)
    if record is None:
        return ParseError("No article content could be extracted")
    return record
