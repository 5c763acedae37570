"""
Remote reader service (the jina.ai source).

The reader returns the article as markdown with a small header block:

    Title: <title>

    URL Source: <url>

    Published Time: <timestamp>

    Markdown Content:
    <body>

The header lines are optional. Without an API key the public
``GET <base_url><url>`` form is used; with one, an authenticated POST.
"""

from __future__ import annotations

import html as html_lib
import logging
import re

import httpx

from ..config import ReaderConfig, get_reader_api_key
from ..core.errors import FetchError, FetchTimeoutError, NetworkError, ParseError, error_for_status
from ..core.types import ArticleRecord
from ..utils.logging import get_logger, log_event, scrub_url
from .extractor import ExtractedContent, build_record

_HEADER_SCAN_LINES = 10
_PARAGRAPH_SPLIT_RE = re.compile(r"\n{2,}")


def reader_url(url: str, cfg: ReaderConfig | None = None) -> str:
    return f"{(cfg or ReaderConfig()).base_url}{url}"


def parse_reader_markdown(markdown: str, url: str, min_content_chars: int = 100) -> ExtractedContent | ParseError:
    """Split a reader response into its header fields and body.

    Returns:
        ExtractedContent whose site_name is the "URL Source" value (or url),
        or ParseError when the body is shorter than min_content_chars
    """
    lines = markdown.split("\n")
    title = lines[0].replace("Title: ", "", 1).strip() if lines else ""
    source = ""
    published_time = None
    start = 4

    for i in range(min(_HEADER_SCAN_LINES, len(lines))):
        if not lines[i].startswith("URL Source:"):
            continue
        source = lines[i].replace("URL Source:", "", 1).strip()
        start = i + 2
        if i + 2 < len(lines) and lines[i + 2].startswith("Published Time:"):
            published_time = lines[i + 2].replace("Published Time:", "", 1).strip() or None
            start = i + 4
        if start < len(lines) and "Markdown Content:" in lines[start]:
            start += 1
        break

    body = "\n".join(lines[start:]).strip()
    if len(body) < min_content_chars:
        return ParseError("Reader service returned insufficient content", details={"length": len(body)})

    return ExtractedContent(
        title=title or "Untitled",
        html=markdown_to_html(body),
        text=body,
        site_name=source or url,
        published_time=published_time,
    )


def markdown_to_html(markdown: str) -> str:
    """Escape markdown and wrap each blank-line separated block in a paragraph."""
    escaped = html_lib.escape(markdown, quote=False)
    return "".join(
        f"<p>{chunk.strip().replace(chr(10), '<br />')}</p>"
        for chunk in _PARAGRAPH_SPLIT_RE.split(escaped)
        if chunk.strip()
    )


async def fetch_reader_article(
    url: str,
    cfg: ReaderConfig,
    transport: httpx.AsyncBaseTransport | None = None,
    logger: logging.Logger | None = None,
) -> ArticleRecord | FetchError:
    """Fetch url through the reader service and build a record from the markdown."""
    logger = logger or get_logger("reader")
    api_key = get_reader_api_key(cfg)

    log_event(
        logger,
        "Fetching article from reader service",
        event="reader_fetch",
        url=scrub_url(url),
        authenticated=bool(api_key),
    )
    try:
        async with httpx.AsyncClient(transport=transport, timeout=cfg.timeout_seconds) as client:
            if api_key:
                response = await client.post(
                    cfg.base_url,
                    json={"url": url},
                    headers={
                        "Authorization": f"Bearer {api_key}",
                        "X-Engine": "cf-browser-rendering",
                        "X-Timeout": "20",
                    },
                )
            else:
                response = await client.get(reader_url(url, cfg))
    except httpx.TimeoutException:
        return FetchTimeoutError(f"Request timed out after {cfg.timeout_seconds:.0f} seconds")
    except httpx.HTTPError as exc:
        return NetworkError(f"Failed to fetch from reader service: {type(exc).__name__}: {exc}")

    if not response.is_success:
        log_event(
            logger,
            "Reader service HTTP error",
            level=logging.ERROR,
            event="reader_failed",
            status=response.status_code,
        )
        return error_for_status(
            response.status_code,
            f"Reader service returned HTTP {response.status_code}",
            retry_after=response.headers.get("retry-after"),
        )

    parsed = parse_reader_markdown(response.text, url, cfg.min_content_chars)
    if isinstance(parsed, ParseError):
        return parsed
    # siteName is the host of the "URL Source" header, which may differ after redirects
    record = build_record(parsed, parsed.site_name or url, parsed.html)
    if record is None:
        return ParseError("Reader service returned an empty article")
    return record
