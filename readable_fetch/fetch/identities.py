"""
Request identities used to disguise fetch attempts.

Two identities are defined:
1. browser: a full desktop Chrome header set with client hints
2. crawler: a search-engine indexing bot, which many sites let through
   their paywall for SEO reasons

The user-agent pools are immutable; selection is a pure function of an
optional seed, so there is no shared rotation state between requests.
"""

from __future__ import annotations

from dataclasses import dataclass
import random
from typing import Sequence, TypeVar

from .cookies import CookieJar

BROWSER = "browser"
CRAWLER = "crawler"
IDENTITIES = (BROWSER, CRAWLER)

T = TypeVar("T")


@dataclass(frozen=True)
class BrowserProfile:
    """A browser user agent and the client-hint platform that matches it."""
    user_agent: str
    platform: str


BROWSER_PROFILES: tuple[BrowserProfile, ...] = (
    BrowserProfile(
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36",
        '"Windows"',
    ),
    BrowserProfile(
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36",
        '"macOS"',
    ),
    BrowserProfile(
        "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36",
        '"Linux"',
    ),
)

CRAWLER_USER_AGENTS: tuple[str, ...] = (
    "Mozilla/5.0 (compatible; Googlebot/2.1; +http://www.google.com/bot.html)",
    "Mozilla/5.0 (Linux; Android 6.0.1; Nexus 5X Build/MMB29P) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/131.0.0.0 Mobile Safari/537.36 "
    "(compatible; Googlebot/2.1; +http://www.google.com/bot.html)",
)

CLIENT_HINT_BRANDS = '"Google Chrome";v="131", "Chromium";v="131", "Not_A Brand";v="24"'


def pick_random(pool: Sequence[T], seed: int | None = None) -> T:
    """Pick one element of pool; the same seed always picks the same element."""
    if not pool:
        raise ValueError("cannot pick from an empty pool")
    return random.Random(seed).choice(pool)


def build_headers(
    identity: str,
    cookie_jar: CookieJar | None = None,
    seed: int | None = None,
) -> dict[str, str]:
    """Build request headers for an identity, attaching jar cookies if any.

    Raises:
        ValueError: If identity is not "browser" or "crawler"
    """
    if identity == CRAWLER:
        headers = {
            "User-Agent": pick_random(CRAWLER_USER_AGENTS, seed),
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            "Accept-Language": "en-US,en;q=0.5",
            "Accept-Encoding": "gzip, deflate",
            "Connection": "keep-alive",
        }
    elif identity == BROWSER:
        profile = pick_random(BROWSER_PROFILES, seed)
        headers = {
            "User-Agent": profile.user_agent,
            "Accept": (
                "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,"
                "image/webp,image/apng,*/*;q=0.8,application/signed-exchange;v=b3;q=0.7"
            ),
            "Accept-Language": "en-US,en;q=0.9",
            "Accept-Encoding": "gzip, deflate",
            "Connection": "keep-alive",
            "DNT": "1",
            "Sec-Fetch-Dest": "document",
            "Sec-Fetch-Mode": "navigate",
            "Sec-Fetch-Site": "none",
            "Sec-Fetch-User": "?1",
            "Sec-CH-UA": CLIENT_HINT_BRANDS,
            "Sec-CH-UA-Mobile": "?0",
            "Sec-CH-UA-Platform": profile.platform,
            "Upgrade-Insecure-Requests": "1",
            "Cache-Control": "max-age=0",
        }
    else:
        raise ValueError(f"Unknown identity: {identity}")

    cookie_header = cookie_jar.header() if cookie_jar is not None else None
    if cookie_header:
        headers["Cookie"] = cookie_header
    return headers
