"""
URL normalization and cache-key derivation.

Three layers, from strict to forgiving:
1. normalize_url: repairs and validates a single URL, and refuses hosts on
   loopback, private or link-local networks
2. extract_article_url: normalize_url plus removal of the query parameters
   the reader UI injects, and trailing-slash collapsing; this is the cache
   identity of an article
3. parse_request_url: request front-end that also accepts a URL buried in
   pasted text
"""

from __future__ import annotations

import ipaddress
import re
from urllib.parse import quote, unquote, urlsplit, urlunsplit

from .errors import PrivateNetworkError, ValidationError

MAX_URL_LENGTH = 1000

# Query parameters added by the reader UI for view state, never by the article itself
APP_QUERY_PARAMS = frozenset({"source", "view", "sidebar"})

_PROTOCOL_RE = re.compile(r"^[a-zA-Z][a-zA-Z\d+\-.]*://")
_COLLAPSED_PROTOCOL_RE = re.compile(r"^([a-zA-Z][a-zA-Z\d+\-.]*):/(?!/)")
_UNSAFE_CHARS_RE = re.compile(r"[\s\"<>`{}|\\^]")
_PERCENT_ESCAPE_RE = re.compile(r"%[0-9A-Fa-f]{2}")
_LABEL_RE = re.compile(r"^(?!-)[a-z0-9_\-]{1,63}(?<!-)$")
_TLD_RE = re.compile(r"^(?:[a-z]{2,63}|xn--[a-z0-9\-]{2,59})$")

_FIRST_URL_RE = re.compile(
    r"(?:https?://|www\.)[^\s\"<>]+?(?=(?:https?://|www\.)|[\s\"<>)]|$)",
    re.IGNORECASE,
)
_GLUED_PROTOCOL_RE = re.compile(r"(?:https?://|www\.)", re.IGNORECASE)
_TRAILING_PUNCTUATION_RE = re.compile(r"[.,;!?)]+$")

_PRIVATE_NETWORKS = tuple(
    ipaddress.ip_network(net)
    for net in (
        "127.0.0.0/8",
        "10.0.0.0/8",
        "172.16.0.0/12",
        "192.168.0.0/16",
        "169.254.0.0/16",
        "0.0.0.0/32",
        "::1/128",
        "fc00::/7",
        "fe80::/10",
    )
)

PRIVATE_NETWORK_MESSAGE = "Access to private or local networks is restricted."


def safe_decode_url(value: str) -> str:
    """Percent-decode once; return the input unchanged if it is not valid UTF-8."""
    try:
        return unquote(value, errors="strict")
    except UnicodeDecodeError:
        return value


def repair_protocol(url: str) -> str:
    """Turn a collapsed ``https:/host`` into ``https://host``."""
    return _COLLAPSED_PROTOCOL_RE.sub(r"\1://", url, count=1)


def is_private_host(hostname: str) -> bool:
    """Return True for localhost, ``*.local`` and loopback/private/link-local IPs.

    Domain names are not resolved; only literal addresses are checked.
    """
    host = hostname.strip().lower().rstrip(".")
    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
    if host == "localhost" or host.endswith(".localhost") or host.endswith(".local"):
        return True
    try:
        address = ipaddress.ip_address(host)
    except ValueError:
        return False
    if isinstance(address, ipaddress.IPv6Address) and address.ipv4_mapped is not None:
        address = address.ipv4_mapped
    return any(address in network for network in _PRIVATE_NETWORKS if network.version == address.version)


def normalize_url(raw: str) -> str:
    """Normalize a user-supplied URL.

    Steps: trim, percent-decode once (skipped when decoding exposes another
    escape), repair a collapsed protocol, default to https, refuse private
    hosts, then validate the result as an http(s) URL with a real host.

    Raises:
        PrivateNetworkError: The host is loopback, private or link-local
        ValidationError: The input is empty or not a well-formed http(s) URL
    """
    trimmed = (raw or "").strip()
    if not trimmed:
        raise ValidationError("Please enter a URL.")

    decoded = safe_decode_url(trimmed)
    # A double-encoded URL stays encoded so a second pass cannot decode it again
    if _PERCENT_ESCAPE_RE.search(decoded):
        decoded = trimmed
    repaired = repair_protocol(decoded)
    candidate = repaired if _PROTOCOL_RE.match(repaired) else f"https://{repaired}"
    # Re-escape characters decoding may have exposed (spaces, quotes, ...)
    candidate = _UNSAFE_CHARS_RE.sub(lambda m: quote(m.group(0), safe=""), candidate)

    try:
        parts = urlsplit(candidate)
        hostname = parts.hostname or ""
        parts.port  # noqa: B018 - raises ValueError on a malformed port
    except ValueError as exc:
        raise ValidationError(_invalid_url_message(), details={"reason": str(exc)}) from exc

    # Checked before strict validation so localhost gets the specific message
    if hostname and is_private_host(hostname):
        raise PrivateNetworkError(PRIVATE_NETWORK_MESSAGE, details={"hostname": hostname})

    if parts.scheme.lower() not in ("http", "https"):
        raise ValidationError(_invalid_url_message(), details={"reason": "unsupported scheme"})
    if not hostname or not _is_valid_host(hostname):
        raise ValidationError(_invalid_url_message(), details={"reason": "invalid host"})

    return candidate


def is_valid_url(raw: str) -> bool:
    try:
        normalize_url(raw)
    except ValidationError:
        return False
    return True


def extract_article_url(raw: str) -> str:
    """Return the canonical article URL used for cache identity.

    Applies normalize_url, drops the app-injected query parameters (all other
    parameters keep their original order and encoding), strips trailing
    slashes from non-root paths and lowercases scheme and host.

    Example:
        >>> extract_article_url("https://example.com/article/?id=123&source=fetch-fast")
        'https://example.com/article?id=123'
    """
    normalized = normalize_url(raw)
    parts = urlsplit(normalized)

    kept = [
        pair
        for pair in parts.query.split("&")
        if pair and pair.split("=", 1)[0] not in APP_QUERY_PARAMS
    ]
    query = "&".join(kept)

    path = parts.path.rstrip("/") or "/"

    netloc = parts.netloc if "@" in parts.netloc else parts.netloc.lower()
    return urlunsplit((parts.scheme.lower(), netloc, path, query, parts.fragment))


def cache_key(source: str, url: str) -> str:
    """Cache key for an article: ``<source>:<canonical url>``."""
    return f"{source}:{extract_article_url(url)}"


def meta_key(key: str) -> str:
    return f"meta:{key}"


def extract_first_url(text: str) -> str | None:
    """Find the first plausible URL inside a block of pasted text.

    Handles URLs inside sentences (trailing punctuation is dropped), inside
    HTML attributes, and "glued" URLs such as ``a.comhttps://b.com``.
    """
    if not text:
        return None
    match = _FIRST_URL_RE.search(text)
    if not match:
        return None
    candidate = _TRAILING_PUNCTUATION_RE.sub("", match.group(0))
    return candidate or None


def parse_request_url(raw: str) -> str:
    """Normalize the ``url`` argument of an article request.

    Clean inputs are normalized directly; anything else (a sentence, an HTML
    fragment, two glued URLs) goes through extract_first_url first.

    Raises:
        ValidationError: Nothing usable was found, or the input is too long
    """
    value = (raw or "").strip()
    if len(value) > MAX_URL_LENGTH:
        raise ValidationError(f"URL must be {MAX_URL_LENGTH} characters or less")

    has_glued_protocol = bool(_GLUED_PROTOCOL_RE.search(value[1:]))
    if not has_glued_protocol and is_valid_url(value):
        return normalize_url(value)

    extracted = extract_first_url(value)
    if extracted:
        try:
            return normalize_url(extracted)
        except ValidationError:
            pass

    # Re-run on the original input so the caller sees its specific error
    return normalize_url(value)


def _is_valid_host(hostname: str) -> bool:
    host = hostname.rstrip(".")
    try:
        ipaddress.ip_address(host)
        return True
    except ValueError:
        pass
    try:
        ascii_host = host.encode("idna").decode("ascii").lower()
    except UnicodeError:
        return False
    labels = ascii_host.split(".")
    if len(labels) < 2:
        return False
    if not all(_LABEL_RE.match(label) for label in labels):
        return False
    return bool(_TLD_RE.match(labels[-1]))


def _invalid_url_message() -> str:
    return "Please enter a valid URL (e.g. example.com or https://example.com)."
