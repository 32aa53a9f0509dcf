"""Configuration for the extraction strategy layer.

All settings can be overridden via EXTRACTION_* environment variables.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ExtractionConfig(BaseSettings):
    """Batching, caps and service identifiers for content extraction.

    Example:
        EXTRACTION_BATCH_SIZE=10
        EXTRACTION_MIN_ARTICLE_WORDS=150
    """

    model_config = SettingsConfigDict(
        env_prefix="EXTRACTION_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Primary tier batching
    batch_size: int = Field(
        default=20,
        ge=1,
        le=20,
        description="URLs per primary extraction call (service maximum is 20)",
    )
    primary_extract_depth: str = Field(
        default="advanced",
        description="Tavily extract depth: basic or advanced",
    )
    primary_timeout_seconds: float = Field(default=30.0, ge=1.0, le=120.0)

    # Article quality gate
    min_article_words: int = Field(
        default=100,
        ge=1,
        description="Tier results under this many words count as failures",
    )

    # Platform services
    max_social_posts: int = Field(default=20, ge=1, le=200)
    max_forum_posts: int = Field(default=50, ge=1, le=500)
    social_actor: str = Field(default="apify/twitter-scraper")
    forum_actor: str = Field(default="apify/reddit-scraper")
    page_actor: str = Field(
        default="apify/website-content-crawler",
        description="Actor used for the secondary article tier",
    )
    actor_timeout_seconds: float = Field(default=120.0, ge=5.0, le=600.0)

    # Local fallback
    local_timeout_seconds: float = Field(default=20.0, ge=1.0, le=120.0)
    user_agent: str = Field(
        default="Mozilla/5.0 (compatible; signal-pipeline/0.1)",
    )
