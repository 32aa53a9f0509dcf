"""
Strategy interface and source classification.

Every source resolves to exactly one SourceKind, and every kind has exactly
one ExtractionStrategy. Classification is a pure function of the declared
source type and the URL so it can be decided once per source up front.
"""

from abc import ABC, abstractmethod
from urllib.parse import urlparse

from signal_pipeline.extraction.schemas import ContentItem, SourceKind
from signal_pipeline.sources.schemas import Source

_DECLARED_KINDS: dict[str, SourceKind] = {
    "social_post": SourceKind.SOCIAL_POST,
    "twitter": SourceKind.SOCIAL_POST,
    "x_twitter": SourceKind.SOCIAL_POST,
    "x": SourceKind.SOCIAL_POST,
    "forum": SourceKind.FORUM,
    "reddit": SourceKind.FORUM,
    "article": SourceKind.ARTICLE,
    "news": SourceKind.ARTICLE,
    "generic": SourceKind.ARTICLE,
    "rss": SourceKind.ARTICLE,
    "blog": SourceKind.ARTICLE,
}

_SOCIAL_HOSTS = ("twitter.com", "x.com")
_FORUM_HOSTS = ("reddit.com",)


def _host_matches(host: str, domains: tuple[str, ...]) -> bool:
    return any(host == d or host.endswith("." + d) for d in domains)


def classify_source(source_type: str | None, url: str) -> SourceKind:
    """
    Resolve a source to its content category.

    A recognised declared type wins; otherwise the URL host decides, and
    anything unrecognised is treated as a generic article.

    Args:
        source_type: Declared type label (e.g. "twitter", "reddit", "news")
        url: Source URL

    Returns:
        The SourceKind whose strategy should handle the source
    """
    declared = (source_type or "").strip().lower()
    if declared in _DECLARED_KINDS:
        return _DECLARED_KINDS[declared]

    host = (urlparse(url).hostname or "").lower()
    if _host_matches(host, _SOCIAL_HOSTS):
        return SourceKind.SOCIAL_POST
    if _host_matches(host, _FORUM_HOSTS):
        return SourceKind.FORUM
    return SourceKind.ARTICLE


class ExtractionStrategy(ABC):
    """Fetches content items for one kind of source."""

    kind: SourceKind

    @abstractmethod
    async def extract(self, source: Source) -> list[ContentItem]:
        """
        Extract content items for a source.

        Raises:
            Exception: Any failure that leaves the source with no content;
                the orchestrator records it on the execution log.
        """


def first_text(record: dict, *keys: str) -> str:
    """Return the first non-empty string value among ``keys``."""
    for key in keys:
        value = record.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return ""
