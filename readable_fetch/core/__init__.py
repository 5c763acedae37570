"""
Core domain models and policies.

This package contains the article record, the error taxonomy, URL
normalization and quality scoring, independent of any fetch backend.
"""

from .errors import FetchError, ValidationError
from .quality import Candidate, pick, quality_score
from .types import ArticleMetadata, ArticleRecord, SOURCE_KINDS
from .urls import cache_key, extract_article_url, normalize_url

__all__ = [
    "ArticleMetadata",
    "ArticleRecord",
    "Candidate",
    "FetchError",
    "SOURCE_KINDS",
    "ValidationError",
    "cache_key",
    "extract_article_url",
    "normalize_url",
    "pick",
    "quality_score",
]
