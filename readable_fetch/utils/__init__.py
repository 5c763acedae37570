"""
Shared utility functions.

This package contains logging helpers and the text post-processing
used across the fetch pipelines.
"""

from .direction import get_text_direction
from .logging import JsonlFormatter, get_logger, log_event, scrub_url, setup_logging, truncate_text
from .sanitize import sanitize_html, sanitize_text

__all__ = [
    "setup_logging",
    "get_logger",
    "log_event",
    "scrub_url",
    "truncate_text",
    "JsonlFormatter",
    "get_text_direction",
    "sanitize_html",
    "sanitize_text",
]
