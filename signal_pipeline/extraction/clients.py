"""
Clients for the remote extraction services.

- TavilyClient: batch-capable primary article extraction
- ApifyClient: synchronous actor runs (social posts, forum threads and the
  secondary article tier)
"""

import logging
from typing import Any

from signal_pipeline.config.settings import Settings, get_settings
from signal_pipeline.extraction.errors import ExternalServiceError, ServiceNotConfiguredError
from signal_pipeline.extraction.http_client import HTTPClient
from signal_pipeline.extraction.retry import RetryPolicy
from signal_pipeline.extraction.schemas import PageExtraction, count_words

logger = logging.getLogger(__name__)

# Tavily rejects larger batches
TAVILY_MAX_BATCH = 20


class TavilyClient:
    """
    Primary extraction tier backed by the Tavily extract API.

    Usage:
        async with TavilyClient() as tavily:
            results = await tavily.extract_batch(urls)
    """

    service = "tavily"

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        extract_depth: str = "advanced",
        timeout: float = 30.0,
        retry_policy: RetryPolicy | None = None,
        settings: Settings | None = None,
    ):
        settings = settings or get_settings()
        if api_key is None and settings.tavily_api_key is not None:
            api_key = settings.tavily_api_key.get_secret_value()

        self._api_key = api_key
        self._base_url = (base_url or settings.tavily_base_url).rstrip("/")
        self._extract_depth = extract_depth
        self._timeout = timeout
        self._http = HTTPClient(
            service=self.service,
            retry_policy=retry_policy or RetryPolicy.from_settings(settings),
            # Leave headroom over the server-side extraction timeout
            timeout=timeout + 15.0,
        )

    @property
    def is_configured(self) -> bool:
        return bool(self._api_key)

    async def __aenter__(self) -> "TavilyClient":
        await self._http.__aenter__()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self._http.__aexit__(exc_type, exc_val, exc_tb)

    async def extract_batch(self, urls: list[str]) -> dict[str, PageExtraction]:
        """
        Extract up to 20 URLs in one call.

        Args:
            urls: Page URLs; anything past the 20th is ignored

        Returns:
            Mapping of URL to per-URL extraction result. URLs the service
            did not mention come back as failures.

        Raises:
            ServiceNotConfiguredError: No API key
            ExternalServiceError: The batch call itself failed
        """
        if not self.is_configured:
            raise ServiceNotConfiguredError(self.service)

        batch = urls[:TAVILY_MAX_BATCH]
        if not batch:
            return {}

        data = await self._http.post_json(
            f"{self._base_url}/extract",
            json_body={
                "urls": batch,
                "extract_depth": self._extract_depth,
                "format": "markdown",
                "timeout": self._timeout,
            },
            headers={"Authorization": f"Bearer {self._api_key}"},
        )
        if not isinstance(data, dict):
            raise ExternalServiceError(
                "Unexpected Tavily response shape", service=self.service
            )

        results: dict[str, PageExtraction] = {}
        for item in data.get("results") or []:
            url = item.get("url")
            if not url:
                continue
            content = (item.get("raw_content") or "").strip()
            results[url] = PageExtraction(
                url=url,
                success=bool(content),
                content=content,
                word_count=count_words(content),
                error=None if content else "Empty content",
            )

        for item in data.get("failed_results") or []:
            url = item.get("url")
            if url and url not in results:
                results[url] = PageExtraction.failure(
                    url, item.get("error") or "Extraction failed"
                )

        for url in batch:
            results.setdefault(url, PageExtraction.failure(url, "No result returned"))

        logger.info(
            f"Tavily batch extracted {sum(r.success for r in results.values())}"
            f"/{len(batch)} URLs"
        )
        return results


class ApifyClient:
    """
    Runs Apify actors synchronously and returns their dataset items.

    Usage:
        async with ApifyClient() as apify:
            items = await apify.run_actor("apify/reddit-scraper", {...})
    """

    service = "apify"

    def __init__(
        self,
        api_token: str | None = None,
        base_url: str | None = None,
        timeout: float = 120.0,
        retry_policy: RetryPolicy | None = None,
        settings: Settings | None = None,
    ):
        settings = settings or get_settings()
        if api_token is None and settings.apify_api_token is not None:
            api_token = settings.apify_api_token.get_secret_value()

        self._token = api_token
        self._base_url = (base_url or settings.apify_base_url).rstrip("/")
        self._timeout = timeout
        self._http = HTTPClient(
            service=self.service,
            retry_policy=retry_policy or RetryPolicy.from_settings(settings),
            timeout=timeout + 10.0,
        )

    @property
    def is_configured(self) -> bool:
        return bool(self._token)

    async def __aenter__(self) -> "ApifyClient":
        await self._http.__aenter__()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self._http.__aexit__(exc_type, exc_val, exc_tb)

    async def run_actor(self, actor: str, run_input: dict[str, Any]) -> list[dict[str, Any]]:
        """
        Run an actor and wait for its dataset.

        Args:
            actor: Actor name, e.g. "apify/twitter-scraper"
            run_input: Actor input document

        Returns:
            Dataset items (dicts); non-dict entries are dropped
        """
        if not self.is_configured:
            raise ServiceNotConfiguredError(self.service)

        # The REST API addresses "user/actor" as "user~actor"
        actor_id = actor.replace("/", "~")
        data = await self._http.post_json(
            f"{self._base_url}/v2/acts/{actor_id}/run-sync-get-dataset-items",
            json_body=run_input,
            params={"token": self._token, "timeout": int(self._timeout)},
        )
        if not isinstance(data, list):
            raise ExternalServiceError(
                f"Unexpected dataset shape from actor {actor}", service=self.service
            )
        return [item for item in data if isinstance(item, dict)]
