"""Tests for URL normalization and cache-key derivation."""

from __future__ import annotations

import pytest

from readable_fetch.core.errors import PrivateNetworkError, ValidationError
from readable_fetch.core.urls import (
    MAX_URL_LENGTH,
    cache_key,
    extract_article_url,
    extract_first_url,
    is_private_host,
    meta_key,
    normalize_url,
    parse_request_url,
)


def test_normalize_adds_https_scheme():
    assert normalize_url("example.com/story") == "https://example.com/story"


def test_normalize_repairs_collapsed_protocol():
    assert normalize_url("https:/example.com/a") == "https://example.com/a"


def test_normalize_decodes_percent_encoded_url_once():
    assert normalize_url("https%3A%2F%2Fexample.com%2Fnews") == "https://example.com/news"


def test_normalize_keeps_public_ip_unchanged():
    assert normalize_url("http://8.8.8.8") == "http://8.8.8.8"


@pytest.mark.parametrize(
    "raw",
    [
        "https://example.com/a/",
        "example.com/news/story?id=7",
        "http://www.example.co.uk/path/to/page.html#section",
        "https://example.com/a?x=1&source=s",
        "https://example.com/a//",
        "https://example.com/a%2541",
        "https://example.com/a%20b",
    ],
)
def test_normalize_is_idempotent(raw):
    once = normalize_url(raw)
    assert normalize_url(once) == once
    canonical = extract_article_url(raw)
    assert extract_article_url(canonical) == canonical


@pytest.mark.parametrize(
    "raw",
    [
        "http://127.0.0.1/x",
        "http://localhost",
        "http://192.168.1.1",
        "http://10.0.0.5/admin",
        "http://172.16.3.4",
        "http://0.0.0.0",
        "http://printer.local/status",
        "http://[::1]/",
        "http://[fd00::1]/",
        "http://[fe80::1]/",
        "localhost:3000/x",
    ],
)
def test_normalize_rejects_private_hosts(raw):
    with pytest.raises(PrivateNetworkError):
        normalize_url(raw)


@pytest.mark.parametrize("raw", ["", "   ", "not a url", "ftp://example.com/file", "https://nohost"])
def test_normalize_rejects_invalid_input(raw):
    with pytest.raises(ValidationError) as excinfo:
        normalize_url(raw)
    assert not isinstance(excinfo.value, PrivateNetworkError)
    assert excinfo.value.status_code == 400


def test_private_error_is_distinguishable_validation_error():
    with pytest.raises(ValidationError) as excinfo:
        normalize_url("http://127.0.0.1:8080/")
    assert isinstance(excinfo.value, PrivateNetworkError)
    assert excinfo.value.type == "VALIDATION_ERROR"


def test_is_private_host_ranges():
    assert is_private_host("10.1.2.3")
    assert is_private_host("172.31.255.255")
    assert not is_private_host("172.32.0.1")
    assert is_private_host("169.254.169.254")
    assert is_private_host("::ffff:127.0.0.1")
    assert is_private_host("api.localhost")
    assert not is_private_host("example.com")
    assert not is_private_host("1.1.1.1")


def test_trailing_slash_collapses_to_same_key():
    assert extract_article_url("https://ex.com/a/") == extract_article_url("https://ex.com/a")


def test_root_slash_is_kept():
    assert extract_article_url("https://ex.com") == "https://ex.com/"
    assert extract_article_url("https://ex.com/") == "https://ex.com/"


def test_app_params_stripped_and_others_kept_in_order():
    assert extract_article_url("https://ex.com/a?x=1&source=s") == extract_article_url("https://ex.com/a?x=1")
    assert (
        extract_article_url("https://ex.com/a?b=2&view=reader&a=1&sidebar=open")
        == "https://ex.com/a?b=2&a=1"
    )


def test_host_is_lowercased_but_path_is_not():
    assert extract_article_url("HTTPS://Example.COM/News/Story") == "https://example.com/News/Story"


def test_cache_key_converges_for_equivalent_urls():
    keys = {
        cache_key("fetch-fast", "https://example.com/a"),
        cache_key("fetch-fast", "https://example.com/a/"),
        cache_key("fetch-fast", "https://example.com/a?source=x"),
        cache_key("fetch-fast", "example.com/a"),
    }
    assert keys == {"fetch-fast:https://example.com/a"}


def test_cache_key_differs_per_source():
    assert cache_key("wayback", "https://example.com/a") != cache_key("fetch-fast", "https://example.com/a")
    assert meta_key("wayback:https://example.com/a") == "meta:wayback:https://example.com/a"


def test_extract_first_url_strips_trailing_punctuation():
    assert extract_first_url("Read this: https://example.com/story.") == "https://example.com/story"
    assert extract_first_url("(see https://example.com/a)") == "https://example.com/a"


def test_extract_first_url_splits_glued_urls():
    assert extract_first_url("https://a.com/xhttps://b.com/y") == "https://a.com/x"


def test_extract_first_url_handles_html_and_www():
    assert extract_first_url('<a href="https://example.com/p">link</a>') == "https://example.com/p"
    assert extract_first_url("go to www.example.com now") == "www.example.com"
    assert extract_first_url("no links here") is None


def test_parse_request_url_accepts_clean_input():
    assert parse_request_url("  example.com/a  ") == "https://example.com/a"


def test_parse_request_url_extracts_from_text():
    assert parse_request_url("worth reading https://example.com/a/ today") == "https://example.com/a/"


def test_parse_request_url_reports_private_error():
    with pytest.raises(PrivateNetworkError):
        parse_request_url("http://localhost:3000/x")


def test_parse_request_url_enforces_max_length():
    with pytest.raises(ValidationError):
        parse_request_url("https://example.com/" + "a" * MAX_URL_LENGTH)


def test_double_encoded_url_is_not_decoded_twice():
    assert normalize_url("https://example.com/a%2541") == "https://example.com/a%2541"


def test_canonical_url_strips_every_trailing_slash():
    assert extract_article_url("https://example.com/a//") == "https://example.com/a"
    assert extract_article_url("https://example.com//") == "https://example.com/"
