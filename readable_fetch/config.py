"""
Configuration management using YAML files and dataclasses.

This module defines all configuration dataclasses and provides loading
from YAML files with defaults. Configuration sections:
- FetchConfig: Direct fetch timeouts, escalation thresholds and delays
- ArchiveConfig: Archive mirror endpoint and timeout
- RemoteConfig: Remote high-fidelity extraction service
- ReaderConfig: Remote reader (markdown) service
- CacheConfig: Store backend, TTL and read-gate thresholds
- LoggingConfig: Logging behavior
- AppConfig: Root configuration container
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
import os
from typing import Any

import yaml


@dataclass
class FetchConfig:
    """Configuration for direct fetch attempts and escalation.

    Attributes:
        request_timeout_seconds: Upper bound on time-to-headers for one attempt
        body_timeout_seconds: Upper bound on the body read, started once headers arrive
        tarpit_retry_body_timeout_seconds: Body timeout for attempts made after a tarpit
        deadline_seconds: Overall budget for one article request (all attempts)
        high_quality_threshold: Quality score above which attempt 1 returns immediately
        crawler_delay_range: Random delay (seconds) before the crawler attempt
        cookie_retry_delay_range: Random delay (seconds) before the cookie retry
        cookie_allowlist: Anti-bot cookie names carried between attempts
        min_html_length: Shorter bodies are treated as failed parses
        trust_env: Whether to respect system proxy settings
        seed: Optional seed for user-agent selection and delays (tests)
    """

    request_timeout_seconds: float = 15.0
    body_timeout_seconds: float = 10.0
    tarpit_retry_body_timeout_seconds: float = 5.0
    deadline_seconds: float = 45.0
    high_quality_threshold: int = 3000
    crawler_delay_range: list[float] = field(default_factory=lambda: [0.2, 0.3])
    cookie_retry_delay_range: list[float] = field(default_factory=lambda: [0.5, 0.7])
    cookie_allowlist: list[str] = field(
        default_factory=lambda: ["datadome", "cf_clearance", "__cf_bm"]
    )
    min_html_length: int = 100
    trust_env: bool = True
    seed: int | None = None


@dataclass
class ArchiveConfig:
    """Configuration for the archive mirror source.

    Attributes:
        base_url: Prefix the original URL is appended to
        timeout_seconds: Timeout for the single archive attempt
    """

    base_url: str = "https://web.archive.org/web/2/"
    timeout_seconds: float = 20.0


@dataclass
class RemoteConfig:
    """Configuration for the remote extraction service (fetch-slow).

    Attributes:
        api_url: Article extraction endpoint
        api_key: Optional inline API token (overrides env var)
        api_key_env: Environment variable holding the API token
        timeout_seconds: Request timeout
    """

    api_url: str = "https://api.diffbot.com/v3/article"
    api_key: str | None = None
    api_key_env: str = "DIFFBOT_API_KEY"
    timeout_seconds: float = 45.0


@dataclass
class ReaderConfig:
    """Configuration for the remote reader service (jina.ai).

    Attributes:
        base_url: Reader endpoint
        api_key: Optional inline API key (overrides env var)
        api_key_env: Environment variable holding the API key
        timeout_seconds: Request timeout
        min_content_chars: Shorter markdown bodies are treated as failures
    """

    base_url: str = "https://r.jina.ai/"
    api_key: str | None = None
    api_key_env: str = "JINA_API_KEY"
    timeout_seconds: float = 75.0
    min_content_chars: int = 100


@dataclass
class CacheConfig:
    """Configuration for the article cache.

    Attributes:
        enabled: Whether to read and write the cache at all
        backend: "file" for a directory store, "memory" for a process-local store
        directory: Directory for the file store
        ttl_days: Optional time-to-live for cache entries in days
        min_length: Cached articles must be longer than this to be served
        reader_min_length: Same threshold for the reader service source
    """

    enabled: bool = True
    backend: str = "file"
    directory: str = ".cache/articles"
    ttl_days: int | None = None
    min_length: int = 900
    reader_min_length: int = 4000


@dataclass
class LoggingConfig:
    """Configuration for logging behavior.

    Attributes:
        level: Logging level ("DEBUG", "INFO", "WARNING", "ERROR")
        console: Whether to log to console
        file: Whether to log to file
        format: Log file format ("jsonl" or "plain")
        filename: Name of the log file
        directory: Directory for the log file
    """

    level: str = "INFO"
    console: bool = True
    file: bool = False
    format: str = "jsonl"
    filename: str = "readable-fetch.jsonl"
    directory: str | None = None


@dataclass
class AppConfig:
    """Root configuration container aggregating all config sections."""

    fetch: FetchConfig = field(default_factory=FetchConfig)
    archive: ArchiveConfig = field(default_factory=ArchiveConfig)
    remote: RemoteConfig = field(default_factory=RemoteConfig)
    reader: ReaderConfig = field(default_factory=ReaderConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def load_config(path: str | None) -> AppConfig:
    """Load configuration from a YAML file with defaults."""
    if not path:
        return AppConfig()

    with open(path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}

    return _merge_config(AppConfig(), raw)


def _merge_config(base: AppConfig, raw: dict[str, Any]) -> AppConfig:
    """Merge raw YAML config into base AppConfig, ignoring unknown keys."""
    data = asdict(base)
    for key, value in raw.items():
        if key not in data:
            continue
        if isinstance(value, dict) and isinstance(data[key], dict):
            data[key].update({k: v for k, v in value.items() if k in data[key]})
        else:
            data[key] = value
    return _fromdict(data)


def _fromdict(data: dict[str, Any]) -> AppConfig:
    """Reconstruct AppConfig from nested dictionary."""
    return AppConfig(
        fetch=FetchConfig(**data["fetch"]),
        archive=ArchiveConfig(**data["archive"]),
        remote=RemoteConfig(**data["remote"]),
        reader=ReaderConfig(**data["reader"]),
        cache=CacheConfig(**data["cache"]),
        logging=LoggingConfig(**data["logging"]),
    )


def get_remote_api_key(cfg: RemoteConfig) -> str | None:
    """Get the extraction service token from inline config or environment variable."""
    if cfg.api_key:
        return cfg.api_key
    return os.getenv(cfg.api_key_env)


def get_reader_api_key(cfg: ReaderConfig) -> str | None:
    """Get the reader service key from inline config or environment variable."""
    if cfg.api_key:
        return cfg.api_key
    return os.getenv(cfg.api_key_env)
