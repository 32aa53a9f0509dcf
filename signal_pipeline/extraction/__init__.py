"""Extraction strategy layer: per-kind content fetchers and the retry wrapper."""

from signal_pipeline.extraction.article import ArticleStrategy
from signal_pipeline.extraction.base import ExtractionStrategy, classify_source
from signal_pipeline.extraction.clients import ApifyClient, TavilyClient
from signal_pipeline.extraction.config import ExtractionConfig
from signal_pipeline.extraction.errors import (
    ExternalServiceError,
    ExtractionExhaustedError,
    RateLimitError,
    ServiceNotConfiguredError,
)
from signal_pipeline.extraction.platforms import ForumStrategy, SocialPostStrategy
from signal_pipeline.extraction.readability import ReadabilityExtractor
from signal_pipeline.extraction.retry import RetryPolicy, is_retryable_error, with_retry
from signal_pipeline.extraction.schemas import (
    ContentItem,
    ExtractionMethod,
    PageExtraction,
    SourceKind,
    count_words,
)

__all__ = [
    "ApifyClient",
    "ArticleStrategy",
    "ContentItem",
    "ExternalServiceError",
    "ExtractionConfig",
    "ExtractionExhaustedError",
    "ExtractionMethod",
    "ExtractionStrategy",
    "ForumStrategy",
    "PageExtraction",
    "RateLimitError",
    "ReadabilityExtractor",
    "RetryPolicy",
    "ServiceNotConfiguredError",
    "SocialPostStrategy",
    "SourceKind",
    "TavilyClient",
    "classify_source",
    "count_words",
    "is_retryable_error",
    "with_retry",
]
