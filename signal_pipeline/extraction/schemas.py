"""Data models shared by the extraction strategies."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class SourceKind(str, Enum):
    """Content category a source belongs to; selects the extraction strategy."""

    SOCIAL_POST = "social_post"
    FORUM = "forum"
    ARTICLE = "article"


class ExtractionMethod(str, Enum):
    """How a stored item's text was obtained.

    The first three are the article fallback tiers in order; PLATFORM covers
    the dedicated social-post and forum services.
    """

    PRIMARY = "primary"
    SECONDARY = "secondary"
    LOCAL_FALLBACK = "local-fallback"
    PLATFORM = "platform"


@dataclass
class ContentItem:
    """One unit of extracted text ready to be offered to the ingestion store."""

    content: str
    url: str
    word_count: int
    method: ExtractionMethod
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class PageExtraction:
    """Per-URL result returned by an extraction service."""

    url: str
    success: bool
    content: str = ""
    word_count: int = 0
    error: str | None = None

    @classmethod
    def failure(cls, url: str, error: str) -> "PageExtraction":
        return cls(url=url, success=False, error=error)


def count_words(text: str) -> int:
    """Count whitespace-separated words."""
    return len(text.split())
