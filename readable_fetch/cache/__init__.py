"""
Article cache.

This package holds the byte stores and the merge policy that decides
which extraction of an article is kept.
"""

from .articles import ArticleCache, compress_record, decompress_record, resolve_merge
from .store import CacheStore, FileStore, MemoryStore

__all__ = [
    "ArticleCache",
    "CacheStore",
    "FileStore",
    "MemoryStore",
    "compress_record",
    "decompress_record",
    "resolve_merge",
]
