"""
Core data types for readable-fetch.

This module defines the records that flow through the pipeline and into
the cache:
- ArticleRecord: A normalized, sanitized article (the cached value)
- ArticleMetadata: Lightweight listing record stored beside each article
- SOURCE_KINDS: The fetch pipelines a caller can request

Both models serialize with camelCase keys, which is the cache wire format.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

SOURCE_FETCH_FAST = "fetch-fast"
SOURCE_FETCH_SLOW = "fetch-slow"
SOURCE_WAYBACK = "wayback"
SOURCE_READER = "jina.ai"

SOURCE_KINDS = (SOURCE_FETCH_FAST, SOURCE_FETCH_SLOW, SOURCE_WAYBACK, SOURCE_READER)


class ArticleMetadata(BaseModel):
    """Cheap-to-read summary of a cached article, stored uncompressed."""

    model_config = ConfigDict(populate_by_name=True)

    title: str
    site_name: str = Field(alias="siteName")
    length: int
    byline: str | None = None
    published_time: str | None = Field(default=None, alias="publishedTime")
    image: str | None = None


class ArticleRecord(BaseModel):
    """A readable article extracted from one fetch.

    Attributes:
        title: Article headline
        content: Sanitized article HTML
        text_content: Sanitized plain text
        length: Number of characters in text_content (always > 0)
        site_name: Host name of the article URL
        byline: Optional author line
        published_time: Optional publication timestamp as found in the page
        image: Optional lead image URL
        html_content: Raw page HTML, kept for re-extraction; records without
            it are considered degraded
        lang: Optional language hint from the page
        dir: Writing direction, "rtl" or "ltr"
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    title: str
    content: str
    text_content: str = Field(alias="textContent")
    length: int = Field(gt=0)
    site_name: str = Field(alias="siteName")
    byline: str | None = None
    published_time: str | None = Field(default=None, alias="publishedTime")
    image: str | None = None
    html_content: str | None = Field(default=None, alias="htmlContent")
    lang: str | None = None
    dir: Literal["rtl", "ltr"] | None = None

    @model_validator(mode="after")
    def _length_matches_text(self) -> "ArticleRecord":
        if self.length != len(self.text_content):
            raise ValueError(
                f"length {self.length} does not match textContent length {len(self.text_content)}"
            )
        return self

    @property
    def is_degraded(self) -> bool:
        return not self.html_content

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)

    def metadata(self) -> ArticleMetadata:
        return ArticleMetadata(
            title=self.title,
            site_name=self.site_name,
            length=self.length,
            byline=self.byline,
            published_time=self.published_time,
            image=self.image,
        )
