"""
Remote high-fidelity extraction service (the fetch-slow source).

The service renders and extracts the page on its side and answers with a
Diffbot-style article payload. The payload is validated before use; a
payload that does not match the expected shape is a ValidationError, never
a crash.
"""

from __future__ import annotations

import logging

import httpx
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as SchemaValidationError

from ..config import RemoteConfig, get_remote_api_key
from ..core.errors import (
    FetchError,
    FetchTimeoutError,
    NetworkError,
    ParseError,
    ValidationError,
    error_for_status,
)
from ..core.types import ArticleRecord
from ..utils.logging import get_logger, log_event, scrub_url, truncate_text
from .extractor import ExtractedContent, build_record

BAD_GATEWAY = 502
SERVICE_UNAVAILABLE = 503


class RemoteImage(BaseModel):
    model_config = ConfigDict(extra="ignore")

    url: str
    primary: bool = False


class RemoteArticle(BaseModel):
    """One extracted article object from the service response."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    title: str = ""
    text: str
    html: str = ""
    site_name: str | None = Field(default=None, alias="siteName")
    author: str | None = None
    date: str | None = None
    images: list[RemoteImage] = Field(default_factory=list)
    human_language: str | None = Field(default=None, alias="humanLanguage")

    def lead_image(self) -> str | None:
        for image in self.images:
            if image.primary:
                return image.url
        return self.images[0].url if self.images else None


class RemoteResponse(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    objects: list[RemoteArticle] = Field(default_factory=list)
    error: str | None = None
    error_code: int | None = Field(default=None, alias="errorCode")


async def fetch_remote_article(
    url: str,
    cfg: RemoteConfig,
    transport: httpx.AsyncBaseTransport | None = None,
    logger: logging.Logger | None = None,
) -> ArticleRecord | FetchError:
    """Ask the remote extraction service for url.

    Returns:
        The record, or a FetchError: NetworkError (503) without a token,
        ValidationError (502) for a malformed payload, ParseError when the
        service found no article
    """
    logger = logger or get_logger("remote")
    token = get_remote_api_key(cfg)
    if not token:
        return NetworkError(
            "Remote extraction service is not configured",
            status_code=SERVICE_UNAVAILABLE,
            details={"env": cfg.api_key_env},
        )

    log_event(logger, "Fetching article from extraction service", event="remote_fetch", url=scrub_url(url))
    try:
        async with httpx.AsyncClient(transport=transport, timeout=cfg.timeout_seconds) as client:
            response = await client.get(cfg.api_url, params={"token": token, "url": url})
    except httpx.TimeoutException as exc:
        return FetchTimeoutError(
            f"Extraction service timed out after {cfg.timeout_seconds:.0f}s",
            details={"error": f"{type(exc).__name__}: {exc}"},
        )
    except httpx.HTTPError as exc:
        return NetworkError(f"Extraction service request failed: {type(exc).__name__}: {exc}")

    if not response.is_success:
        log_event(
            logger,
            "Extraction service HTTP error",
            level=logging.ERROR,
            event="remote_failed",
            status=response.status_code,
        )
        return error_for_status(
            response.status_code,
            f"Extraction service returned HTTP {response.status_code}",
            retry_after=response.headers.get("retry-after"),
        )

    try:
        payload = RemoteResponse.model_validate(response.json())
    except (ValueError, SchemaValidationError) as exc:
        log_event(
            logger,
            "Extraction service response validation failed",
            level=logging.ERROR,
            event="remote_invalid",
            error=truncate_text(str(exc), 500),
        )
        return ValidationError(
            "Invalid response from extraction service",
            status_code=BAD_GATEWAY,
            details={"reason": str(exc)},
        )

    if payload.error:
        return NetworkError(
            f"Extraction service error: {payload.error}",
            status_code=BAD_GATEWAY,
            details={"errorCode": payload.error_code},
        )
    if not payload.objects:
        return ParseError("Extraction service found no article")

    article = payload.objects[0]
    extracted = ExtractedContent(
        title=article.title,
        html=article.html,
        text=article.text,
        lang=article.human_language,
        site_name=article.site_name,
        byline=article.author,
        published_time=article.date,
        image=article.lead_image(),
    )
    record = build_record(extracted, url, article.html)
    if record is None:
        return ParseError("Extraction service returned an empty article")
    return record
