"""
Per-request cookie jar for anti-bot challenge cookies.

A jar lives for exactly one escalation run. Only allow-listed cookie names
(bot-challenge cookies such as DataDome or Cloudflare clearance) are kept;
everything else the origin sets is ignored.
"""

from __future__ import annotations

from typing import Iterable

import httpx

DEFAULT_COOKIE_ALLOWLIST = ("datadome", "cf_clearance", "__cf_bm")


class CookieJar:
    """Allow-listed cookie name -> value mapping.

    Attributes:
        allowlist: Cookie names this jar will retain
    """

    def __init__(self, allowlist: Iterable[str] = DEFAULT_COOKIE_ALLOWLIST):
        self.allowlist = frozenset(allowlist)
        self._cookies: dict[str, str] = {}

    def __len__(self) -> int:
        return len(self._cookies)

    def __contains__(self, name: object) -> bool:
        return name in self._cookies

    def get(self, name: str) -> str | None:
        return self._cookies.get(name)

    def names(self) -> list[str]:
        return list(self._cookies)

    def harvest(self, cookies: httpx.Cookies) -> list[str]:
        """Store the allow-listed cookies httpx parsed from a response.

        Returns:
            Names of the cookies that were stored or updated
        """
        stored: list[str] = []
        for cookie in cookies.jar:
            if cookie.name not in self.allowlist or cookie.value is None:
                continue
            self._cookies[cookie.name] = cookie.value
            stored.append(cookie.name)
        return stored

    def header(self) -> str | None:
        """Render the jar as a ``Cookie`` header value, or None when empty."""
        if not self._cookies:
            return None
        return "; ".join(f"{name}={value}" for name, value in self._cookies.items())
