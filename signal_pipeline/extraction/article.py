"""
Three-tier extraction for generic article and news sources.

Tiers are tried in order and the first acceptable result wins:

1. primary: batch extraction service, prefetched for up to 20 sources
2. secondary: per-URL page actor
3. local-fallback: in-process fetch and boilerplate stripping

A tier result is acceptable only if it succeeded and has at least
``min_article_words`` words. When every tier fails the source fails with
all tier errors joined together.
"""

import logging
from collections.abc import Awaitable, Callable, Sequence

from signal_pipeline.extraction.base import ExtractionStrategy, first_text
from signal_pipeline.extraction.clients import ApifyClient, TavilyClient
from signal_pipeline.extraction.config import ExtractionConfig
from signal_pipeline.extraction.errors import ExtractionExhaustedError
from signal_pipeline.extraction.readability import ReadabilityExtractor
from signal_pipeline.extraction.schemas import (
    ContentItem,
    ExtractionMethod,
    PageExtraction,
    SourceKind,
    count_words,
)
from signal_pipeline.observability.metrics import get_metrics
from signal_pipeline.sources.schemas import Source

logger = logging.getLogger(__name__)


class ArticleStrategy(ExtractionStrategy):
    """Tiered fallback chain for generic article sources."""

    kind = SourceKind.ARTICLE

    def __init__(
        self,
        tavily: TavilyClient,
        apify: ApifyClient,
        local: ReadabilityExtractor,
        config: ExtractionConfig | None = None,
    ):
        self._tavily = tavily
        self._apify = apify
        self._local = local
        self._config = config or ExtractionConfig()

    async def prefetch(self, urls: Sequence[str]) -> dict[str, PageExtraction]:
        """
        Run the primary tier for a group of URLs.

        Never raises: an unconfigured service or a failed batch call turns
        into a per-URL failure carrying that error.
        """
        urls = list(dict.fromkeys(urls))
        if not self._tavily.is_configured:
            return {
                u: PageExtraction.failure(u, "primary extraction service not configured")
                for u in urls
            }

        results: dict[str, PageExtraction] = {}
        size = self._config.batch_size
        for start in range(0, len(urls), size):
            chunk = urls[start:start + size]
            try:
                results.update(await self._tavily.extract_batch(chunk))
            except Exception as e:
                logger.warning(f"Primary batch extraction failed for {len(chunk)} URLs: {e}")
                for url in chunk:
                    results[url] = PageExtraction.failure(url, str(e) or type(e).__name__)
        return results

    async def extract(
        self, source: Source, primary: PageExtraction | None = None
    ) -> list[ContentItem]:
        """
        Extract one article source, starting from a prefetched tier 1 result.

        Args:
            source: Article source
            primary: Tier 1 result from prefetch(); fetched on demand if None

        Returns:
            A single content item

        Raises:
            ExtractionExhaustedError: All three tiers failed
        """
        url = source.url
        if primary is None:
            primary = (await self.prefetch([url]))[url]

        errors: dict[str, str] = {}
        tiers: list[tuple[str, ExtractionMethod, Callable[[str], Awaitable[PageExtraction]] | None]] = [
            ("primary", ExtractionMethod.PRIMARY, None),
            ("secondary", ExtractionMethod.SECONDARY, self._secondary),
            ("local-fallback", ExtractionMethod.LOCAL_FALLBACK, self._local.extract),
        ]

        for tier, method, fetch in tiers:
            if fetch is None:
                result = primary
            else:
                try:
                    result = await fetch(url)
                except Exception as e:
                    result = PageExtraction.failure(url, str(e) or type(e).__name__)

            rejection = self._rejection(result)
            get_metrics().record_tier(tier, rejection is None)
            if rejection is None:
                if errors:
                    logger.info(f"Extracted {url} via {tier} after: {errors}")
                return [self._to_item(result, method, errors)]

            errors[tier] = rejection
            logger.debug(f"Tier {tier} failed for {url}: {rejection}")

        raise ExtractionExhaustedError(url, errors)

    def _rejection(self, result: PageExtraction) -> str | None:
        """Reason a tier result is unusable, or None if it is acceptable."""
        if not result.success:
            return result.error or "Extraction failed"
        if result.word_count < self._config.min_article_words:
            return f"Content too short ({result.word_count} words)"
        return None

    async def _secondary(self, url: str) -> PageExtraction:
        records = await self._apify.run_actor(
            self._config.page_actor,
            {"startUrls": [{"url": url}], "maxCrawlPages": 1, "maxCrawlDepth": 0},
        )
        for record in records:
            text = first_text(record, "text", "markdown", "content")
            if text:
                return PageExtraction(
                    url=url, success=True, content=text, word_count=count_words(text)
                )
        return PageExtraction.failure(url, "No content returned")

    @staticmethod
    def _to_item(
        result: PageExtraction, method: ExtractionMethod, errors: dict[str, str]
    ) -> ContentItem:
        metadata = {}
        if "primary" in errors:
            metadata["primary_error"] = errors["primary"]
        if "secondary" in errors:
            metadata["secondary_error"] = errors["secondary"]
        return ContentItem(
            content=result.content,
            url=result.url,
            word_count=result.word_count,
            method=method,
            metadata=metadata,
        )
