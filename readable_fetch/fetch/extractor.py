"""
HTML article extraction and record building.

This module is the boundary between raw HTML and ArticleRecord:
1. extract_article: readability finds the main content; BeautifulSoup reads
   the page metadata (lang, publication date, lead image, byline);
   trafilatura fills in whatever metadata the page markup did not expose
   and supplies the text when readability finds nothing
2. build_record: sanitizes the extraction and turns it into an
   ArticleRecord, computing siteName and writing direction

Any callable with the signature of extract_article can be injected into the
fetch pipelines instead.
"""

from __future__ import annotations

from dataclasses import dataclass
import html as html_lib
import logging
from typing import Callable
from urllib.parse import urlsplit

from bs4 import BeautifulSoup
from pydantic import ValidationError as SchemaValidationError
import trafilatura
from readability import Document

from ..core.types import ArticleRecord
from ..utils.direction import get_text_direction
from ..utils.logging import get_logger, log_event, scrub_url, truncate_text
from ..utils.sanitize import sanitize_html, sanitize_text

logger = get_logger("extract")

_DATE_META = (
    ("property", "article:published_time"),
    ("property", "og:published_time"),
    ("name", "article:published_time"),
    ("name", "pubdate"),
    ("name", "publishdate"),
    ("name", "parsely-pub-date"),
    ("name", "sailthru.date"),
    ("name", "dc.date"),
    ("name", "date"),
    ("itemprop", "datePublished"),
)
_IMAGE_META = (
    ("property", "og:image"),
    ("name", "twitter:image"),
    ("name", "twitter:image:src"),
    ("itemprop", "image"),
)
_AUTHOR_META = (
    ("name", "author"),
    ("property", "article:author"),
    ("name", "parsely-author"),
    ("name", "sailthru.author"),
)


@dataclass
class ExtractedContent:
    """What an extraction capability hands back for one HTML document.

    Attributes:
        title: Article title
        html: Main-content HTML
        text: Main-content plain text; empty means extraction failed
        lang: Language hint from the page, if any
        site_name: Publication name supplied by the page, if any
        byline: Author line, if any
        published_time: Publication timestamp string, if any
        image: Lead image URL, if any
    """
    title: str
    html: str
    text: str
    lang: str | None = None
    site_name: str | None = None
    byline: str | None = None
    published_time: str | None = None
    image: str | None = None


Extractor = Callable[[str, str], "ExtractedContent | None"]


def extract_article(html: str, base_url: str) -> ExtractedContent | None:
    """Extract the readable article from a page.

    Args:
        html: Full page HTML
        base_url: URL the page belongs to; relative links resolve against it

    Returns:
        ExtractedContent, or None when no main content could be found
    """
    if not html or not html.strip():
        return None

    page = BeautifulSoup(html, "html.parser")
    content_html, title = _extract_readability(html, base_url)
    text = _html_to_text(content_html) if content_html else None

    if not text:
        fallback = trafilatura.extract(html, url=base_url)
        if not fallback or not fallback.strip():
            return None
        text = fallback.strip()
        content_html = "".join(
            f"<p>{html_lib.escape(chunk)}</p>" for chunk in text.split("\n") if chunk.strip()
        )

    meta = _trafilatura_metadata(html, base_url)
    page_title = page.title.get_text(strip=True) if page.title else ""

    return ExtractedContent(
        title=title or page_title or getattr(meta, "title", None) or "Untitled",
        html=content_html,
        text=text,
        lang=_page_lang(page),
        site_name=_meta_content(page, (("property", "og:site_name"),)) or getattr(meta, "sitename", None),
        byline=_find_byline(page) or getattr(meta, "author", None),
        published_time=_find_published_time(page) or getattr(meta, "date", None),
        image=_meta_content(page, _IMAGE_META) or _link_href(page, "image_src") or getattr(meta, "image", None),
    )


def build_record(extracted: ExtractedContent | None, url: str, html: str | None) -> ArticleRecord | None:
    """Turn an extraction into a validated ArticleRecord.

    Args:
        extracted: Output of an extraction capability (None means failure)
        url: URL whose host becomes the record's siteName
        html: Raw page HTML, kept as htmlContent

    Returns:
        The record, or None when the extraction is empty or invalid
    """
    if extracted is None or not extracted.text or not extracted.text.strip():
        return None

    text = sanitize_text(extracted.text)
    if not text:
        return None

    try:
        return ArticleRecord(
            title=extracted.title or "Untitled",
            content=sanitize_html(extracted.html),
            text_content=text,
            length=len(text),
            site_name=site_name_for(url, extracted.site_name),
            byline=extracted.byline or None,
            published_time=extracted.published_time or None,
            image=extracted.image or None,
            html_content=html or None,
            lang=extracted.lang or None,
            dir=get_text_direction(extracted.lang, text),
        )
    except SchemaValidationError as exc:
        log_event(
            logger,
            "Extracted article failed validation",
            level=logging.WARNING,
            event="record_invalid",
            url=scrub_url(url),
            error=truncate_text(str(exc), 500),
        )
        return None


def site_name_for(url: str, fallback: str | None = None) -> str:
    """Host name of url, or the extractor-supplied name if the URL has no host."""
    try:
        host = urlsplit(url).hostname
    except ValueError:
        host = None
    return host or fallback or "unknown"


def _extract_readability(html: str, base_url: str) -> tuple[str | None, str | None]:
    try:
        doc = Document(html, url=base_url)
        return doc.summary(html_partial=True), doc.short_title()
    except Exception as exc:  # noqa: BLE001
        log_event(
            logger,
            "Readability extraction failed",
            level=logging.DEBUG,
            event="readability_failed",
            url=scrub_url(base_url),
            error=f"{type(exc).__name__}: {exc}",
        )
        return None, None


def _html_to_text(content_html: str) -> str | None:
    soup = BeautifulSoup(content_html, "html.parser")
    for tag in soup(["script", "style", "noscript"]):
        tag.decompose()
    text = soup.get_text(separator="\n")
    cleaned = "\n".join([line.strip() for line in text.splitlines() if line.strip()])
    return cleaned if cleaned else None


def _trafilatura_metadata(html: str, base_url: str):
    try:
        return trafilatura.extract_metadata(html, default_url=base_url)
    except Exception:  # noqa: BLE001
        return None


def _page_lang(page: BeautifulSoup) -> str | None:
    root = page.find("html")
    if root is None:
        return None
    lang = root.get("lang") or root.get("xml:lang")
    return lang.strip() if lang and lang.strip() else None


def _meta_content(page: BeautifulSoup, keys) -> str | None:
    for attr, value in keys:
        tag = page.find("meta", attrs={attr: value})
        if tag is not None and tag.get("content"):
            return tag["content"].strip()
    return None


def _link_href(page: BeautifulSoup, rel: str) -> str | None:
    tag = page.find("link", rel=rel)
    if tag is not None and tag.get("href"):
        return tag["href"].strip()
    return None


def _find_published_time(page: BeautifulSoup) -> str | None:
    found = _meta_content(page, _DATE_META)
    if found:
        return found
    tag = page.find(attrs={"itemprop": "datePublished"})
    if tag is not None and (tag.get("datetime") or tag.get("content")):
        return (tag.get("datetime") or tag.get("content")).strip()
    time_tag = page.find("time", attrs={"datetime": True})
    if time_tag is not None:
        return time_tag["datetime"].strip()
    return None


def _find_byline(page: BeautifulSoup) -> str | None:
    found = _meta_content(page, _AUTHOR_META)
    if found:
        return found
    for selector in ('[rel="author"]', '[itemprop="author"]', ".byline", ".author"):
        tag = page.select_one(selector)
        if tag is not None:
            text = tag.get_text(" ", strip=True)
            if text:
                return text
    return None
