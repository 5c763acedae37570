"""
readable-fetch - readable article acquisition with cache-aware arbitration.

This package fetches the readable content of a web article from one of
several sources (direct fetch with escalation, a remote extraction
service, an archive mirror, a reader service), picks the most complete
extraction and caches it under a canonical URL key.

Main entry points are ArticleService and the `readable-fetch` CLI.

Example:
    $ readable-fetch get https://example.com/news/story --source wayback
"""

__all__ = ["__version__", "ArticleService", "ServiceResponse", "load_config"]
__version__ = "0.1.0"

from .config import load_config
from .runner import ArticleService, ServiceResponse
