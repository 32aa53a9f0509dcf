"""Social-post and forum strategies backed by platform scraping actors."""

import logging
from typing import Any
from urllib.parse import parse_qs, urljoin, urlparse

from signal_pipeline.extraction.base import ExtractionStrategy, first_text
from signal_pipeline.extraction.clients import ApifyClient
from signal_pipeline.extraction.config import ExtractionConfig
from signal_pipeline.extraction.schemas import (
    ContentItem,
    ExtractionMethod,
    SourceKind,
    count_words,
)
from signal_pipeline.sources.schemas import Source

logger = logging.getLogger(__name__)


def search_term_from_url(url: str) -> str | None:
    """Return the ``q`` query parameter if the URL encodes a search."""
    values = parse_qs(urlparse(url).query).get("q")
    if values and values[0].strip():
        return values[0].strip()
    return None


class SocialPostStrategy(ExtractionStrategy):
    """Posts from a profile, post URL or search URL."""

    kind = SourceKind.SOCIAL_POST

    def __init__(self, apify: ApifyClient, config: ExtractionConfig | None = None):
        self._apify = apify
        self._config = config or ExtractionConfig()

    def build_input(self, url: str) -> dict[str, Any]:
        limit = self._config.max_social_posts
        term = search_term_from_url(url)
        if term:
            return {"searchTerms": [term], "maxTweets": limit}
        return {"startUrls": [{"url": url}], "maxTweets": limit}

    def normalize(self, record: dict[str, Any], source: Source) -> ContentItem | None:
        text = first_text(record, "text", "fullText", "content")
        url = first_text(record, "url", "tweetUrl", "link")
        if not text and not url:
            return None

        metadata: dict[str, Any] = {}
        author = record.get("author")
        if isinstance(author, dict) and author.get("userName"):
            metadata["author"] = author["userName"]
        if record.get("createdAt"):
            metadata["posted_at"] = record["createdAt"]

        return ContentItem(
            content=text,
            url=url or source.url,
            word_count=count_words(text),
            method=ExtractionMethod.PLATFORM,
            metadata=metadata,
        )

    async def extract(self, source: Source) -> list[ContentItem]:
        records = await self._apify.run_actor(
            self._config.social_actor, self.build_input(source.url)
        )
        items = [
            item for item in (self.normalize(r, source) for r in records) if item
        ]
        return items[: self._config.max_social_posts]


class ForumStrategy(ExtractionStrategy):
    """Threads from a forum listing or thread URL."""

    kind = SourceKind.FORUM

    def __init__(self, apify: ApifyClient, config: ExtractionConfig | None = None):
        self._apify = apify
        self._config = config or ExtractionConfig()

    def build_input(self, url: str) -> dict[str, Any]:
        return {"startUrls": [{"url": url}], "maxPosts": self._config.max_forum_posts}

    def normalize(self, record: dict[str, Any], source: Source) -> ContentItem | None:
        title = first_text(record, "title", "headline")
        body = first_text(record, "body", "selftext", "content")
        text = "\n".join(part for part in (title, body) if part)
        url = first_text(record, "url", "permalink", "link")
        if not text and not url:
            return None

        # Permalinks come back site-relative
        if url.startswith("/"):
            url = urljoin(source.url, url)

        metadata: dict[str, Any] = {}
        for key in ("communityName", "subreddit", "upVotes", "numberOfComments"):
            if record.get(key) is not None:
                metadata[key] = record[key]

        return ContentItem(
            content=text,
            url=url or source.url,
            word_count=count_words(text),
            method=ExtractionMethod.PLATFORM,
            metadata=metadata,
        )

    async def extract(self, source: Source) -> list[ContentItem]:
        records = await self._apify.run_actor(
            self._config.forum_actor, self.build_input(source.url)
        )
        items = [
            item for item in (self.normalize(r, source) for r in records) if item
        ]
        return items[: self._config.max_forum_posts]
