"""
Article fetching and extraction.

This package handles direct fetch attempts and their escalation, the
archive mirror, the remote extraction and reader services, and HTML
extraction.
"""

from .archive import archive_url, fetch_archive
from .controller import EscalationController
from .extractor import ExtractedContent, build_record, extract_article
from .fetcher import StrategyExecutor
from .reader import fetch_reader_article, reader_url
from .remote import fetch_remote_article

__all__ = [
    "EscalationController",
    "ExtractedContent",
    "StrategyExecutor",
    "archive_url",
    "build_record",
    "extract_article",
    "fetch_archive",
    "fetch_reader_article",
    "fetch_remote_article",
    "reader_url",
]
