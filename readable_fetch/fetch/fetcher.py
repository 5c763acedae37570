"""
Single HTTP fetch attempt under a named identity.

The executor performs exactly one GET and classifies the outcome. Two
timeouts apply: one bounding time-to-headers, and a separate one for the
body read that only starts once headers have arrived. Origins that answer
promptly but drip the body ("tarpitting") are classified as blocked, not
as timeouts, so the escalation controller treats them like a 403.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
import logging
import random
import time
from typing import Union

import httpx

from ..config import FetchConfig
from ..utils.logging import get_logger, log_event, scrub_url
from .cookies import CookieJar
from .identities import build_headers

BLOCKED_STATUSES = frozenset({401, 403, 429})
TARPIT_STATUS = 408


@dataclass
class Success:
    """The origin returned a 2xx body in time."""
    html: str
    strategy: str
    status: int = 200
    headers: dict[str, str] = field(default_factory=dict)


@dataclass
class Blocked:
    """The origin refused us (401/403/429) or tarpitted the body.

    Headers are kept so challenge cookies can still be inspected.
    """
    status: int
    strategy: str
    headers: dict[str, str] = field(default_factory=dict)
    tarpit: bool = False


@dataclass
class Failed:
    """Any other non-2xx response, or a transport error (status None)."""
    status: int | None
    strategy: str
    headers: dict[str, str] = field(default_factory=dict)
    error: str | None = None


@dataclass
class Timeout:
    """No response headers within the request timeout."""
    strategy: str
    elapsed: float
    error: str | None = None


FetchAttemptResult = Union[Success, Blocked, Failed, Timeout]


def describe(result: FetchAttemptResult) -> str:
    """Short human readable summary of an attempt outcome."""
    if isinstance(result, Success):
        return f"HTTP {result.status}"
    if isinstance(result, Blocked):
        if result.tarpit:
            return "Tarpit detected: body read timed out"
        return f"HTTP {result.status} (blocked)"
    if isinstance(result, Failed):
        if result.status is None:
            return result.error or "Transport error"
        return f"HTTP {result.status}"
    return f"Timed out after {result.elapsed:.1f}s"


class StrategyExecutor:
    """Performs one fetch attempt per call.

    Configuration (timeouts, cookie allow-list, proxy behaviour) is passed in
    at construction. A fresh httpx client is used per attempt so that
    cookies only travel through the explicit CookieJar.

    Attributes:
        cfg: Fetch configuration
        transport: Optional httpx transport (tests use httpx.MockTransport)
    """

    def __init__(
        self,
        cfg: FetchConfig,
        transport: httpx.AsyncBaseTransport | None = None,
        logger: logging.Logger | None = None,
    ):
        self.cfg = cfg
        self.transport = transport
        self.logger = logger or get_logger("fetch")
        self._rng = random.Random(cfg.seed) if cfg.seed is not None else None

    def new_cookie_jar(self) -> CookieJar:
        return CookieJar(self.cfg.cookie_allowlist)

    async def attempt(
        self,
        url: str,
        identity: str,
        cookie_jar: CookieJar,
        body_timeout: float | None = None,
        request_timeout: float | None = None,
    ) -> FetchAttemptResult:
        """Fetch url once under identity and classify the result.

        Allow-listed cookies from every response in the redirect chain are
        harvested into cookie_jar before classification, so a blocked attempt
        still hands its challenge cookies to the next one.
        """
        request_timeout = request_timeout or self.cfg.request_timeout_seconds
        body_timeout = body_timeout or self.cfg.body_timeout_seconds
        headers = build_headers(identity, cookie_jar, seed=self._next_seed())
        started = time.monotonic()

        async with httpx.AsyncClient(
            transport=self.transport,
            follow_redirects=True,
            trust_env=self.cfg.trust_env,
            timeout=httpx.Timeout(request_timeout),
        ) as client:
            request = client.build_request("GET", url, headers=headers)
            try:
                response = await asyncio.wait_for(
                    client.send(request, stream=True), timeout=request_timeout
                )
            except (asyncio.TimeoutError, httpx.TimeoutException) as exc:
                elapsed = time.monotonic() - started
                log_event(
                    self.logger,
                    "Fetch request timed out",
                    level=logging.WARNING,
                    event="fetch_timeout",
                    strategy=identity,
                    url=scrub_url(url),
                    duration=round(elapsed, 3),
                )
                return Timeout(strategy=identity, elapsed=elapsed, error=f"{type(exc).__name__}: {exc}")
            except httpx.HTTPError as exc:
                log_event(
                    self.logger,
                    "Fetch transport error",
                    level=logging.WARNING,
                    event="fetch_transport_error",
                    strategy=identity,
                    url=scrub_url(url),
                    error=f"{type(exc).__name__}: {exc}",
                )
                return Failed(status=None, strategy=identity, error=f"{type(exc).__name__}: {exc}")

            try:
                return await self._classify(url, identity, cookie_jar, response, body_timeout, started)
            finally:
                await response.aclose()

    async def _classify(
        self,
        url: str,
        identity: str,
        cookie_jar: CookieJar,
        response: httpx.Response,
        body_timeout: float,
        started: float,
    ) -> FetchAttemptResult:
        headers_latency = time.monotonic() - started
        response_headers = dict(response.headers)

        for hop in [*response.history, response]:
            new_cookies = cookie_jar.harvest(hop.cookies)
            if new_cookies:
                log_event(
                    self.logger,
                    "Accumulated cookies from response",
                    level=logging.DEBUG,
                    event="cookies_harvested",
                    strategy=identity,
                    new_cookies=new_cookies,
                    total_cookies=len(cookie_jar),
                )

        if response.status_code in BLOCKED_STATUSES:
            log_event(
                self.logger,
                "Request blocked by target site",
                level=logging.WARNING,
                event="fetch_blocked",
                strategy=identity,
                status=response.status_code,
                url=scrub_url(url),
            )
            return Blocked(status=response.status_code, strategy=identity, headers=response_headers)

        if not response.is_success:
            log_event(
                self.logger,
                "Request failed (non-blocked)",
                level=logging.WARNING,
                event="fetch_failed",
                strategy=identity,
                status=response.status_code,
                url=scrub_url(url),
            )
            return Failed(status=response.status_code, strategy=identity, headers=response_headers)

        try:
            await asyncio.wait_for(response.aread(), timeout=body_timeout)
        except (asyncio.TimeoutError, httpx.TimeoutException):
            log_event(
                self.logger,
                "Tarpit detected: body read timed out, aborting early",
                level=logging.WARNING,
                event="fetch_tarpit",
                strategy=identity,
                url=scrub_url(url),
                headers_latency=round(headers_latency, 3),
                body_timeout=body_timeout,
            )
            return Blocked(status=TARPIT_STATUS, strategy=identity, headers=response_headers, tarpit=True)
        except httpx.HTTPError as exc:
            return Failed(
                status=response.status_code,
                strategy=identity,
                headers=response_headers,
                error=f"{type(exc).__name__}: {exc}",
            )

        html = response.text
        log_event(
            self.logger,
            "Fetch completed successfully",
            level=logging.DEBUG,
            event="fetch_success",
            strategy=identity,
            headers_latency=round(headers_latency, 3),
            duration=round(time.monotonic() - started, 3),
            html_length=len(html),
        )
        return Success(html=html, strategy=identity, status=response.status_code, headers=response_headers)

    def _next_seed(self) -> int | None:
        if self._rng is None:
            return None
        return self._rng.randrange(2**32)
