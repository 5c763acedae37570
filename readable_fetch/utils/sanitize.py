"""
Removal of isolated advertisement markers from article content.

Only elements or lines whose entire content is an ad keyword are removed;
the same words inside a sentence are left alone.
"""

from __future__ import annotations

import re

AD_KEYWORDS = (
    # Portuguese
    "publicidade",
    "patrocinado",
    "anúncio",
    "propaganda",
    # English
    "advertisement",
    "sponsored",
    "sponsored content",
    "ads",
    "ad",
    "advertising",
    "skip advertisement",
    "skip ad",
    # Spanish
    "publicidad",
    "anuncio",
    # German
    "werbung",
    "anzeige",
    "gesponsert",
    # French
    "publicité",
    "sponsorisé",
    "annonce",
    # Italian
    "pubblicità",
    "sponsorizzato",
    # Dutch
    "advertentie",
    "gesponsord",
)

AD_HTML_PATTERNS = (
    '<p><a href="#after-top">SKIP ADVERTISEMENT</a></p>',
    "<p><span>Continua após publicidade</span></p>",
)

# Longest first so "sponsored content" wins over "sponsored"
_KEYWORDS = "|".join(re.escape(k) for k in sorted(set(AD_KEYWORDS), key=len, reverse=True))

_NESTED_RE = re.compile(
    r"<(div|aside|section|figure)[^>]*>\s*<(p|span|small|strong|em|b|i)[^>]*>\s*"
    rf"(?:{_KEYWORDS})\s*</\2>\s*</\1>",
    re.IGNORECASE,
)
_SIMPLE_RE = re.compile(
    r"<(p|div|span|aside|section|figure|figcaption|li|small|strong|em|b|i)[^>]*>\s*"
    rf"(?:{_KEYWORDS})\s*</\1>",
    re.IGNORECASE,
)
_EMPTY_WRAPPER_RE = re.compile(r"<(div|aside|section|figure)[^>]*>\s*</\1>", re.IGNORECASE)
_LINE_RE = re.compile(rf"^[ \t]*(?:{_KEYWORDS})[ \t]*$", re.IGNORECASE | re.MULTILINE)
_BLANK_RUN_RE = re.compile(r"\n{3,}")


def sanitize_html(html: str) -> str:
    """Remove ad-only elements from article HTML.

    Example:
        >>> sanitize_html("<p>Publicidade</p><p>Body text about publicidade.</p>")
        '<p>Body text about publicidade.</p>'
    """
    if not html:
        return html
    result = html
    for pattern in AD_HTML_PATTERNS:
        result = re.sub(re.escape(pattern), "", result, flags=re.IGNORECASE)
    result = _NESTED_RE.sub("", result)
    result = _SIMPLE_RE.sub("", result)
    return _EMPTY_WRAPPER_RE.sub("", result)


def sanitize_text(text: str) -> str:
    """Remove ad-only lines from plain text and tidy blank lines."""
    if not text:
        return text
    result = _LINE_RE.sub("", text)
    result = _BLANK_RUN_RE.sub("\n\n", result)
    return result.strip()
