"""
HTTP layer shared by the extraction service clients.

Each request is a single attempt that maps HTTP failures onto
ExternalServiceError; retries are applied around it with ``with_retry`` so
the backoff policy lives in one place for HTTP and AI calls alike.
"""

import logging
import time
from functools import partial
from typing import Any

import httpx

from signal_pipeline.extraction.errors import ExternalServiceError, RateLimitError
from signal_pipeline.extraction.retry import RetryPolicy, with_retry
from signal_pipeline.observability.metrics import get_metrics

logger = logging.getLogger(__name__)

# Keep error messages readable in execution logs
_MAX_BODY_IN_ERROR = 300


class HTTPClient:
    """
    Async HTTP client with policy-driven retries.

    Example:
        async with HTTPClient(service="tavily", timeout=30.0) as client:
            data = await client.post_json(url, json_body={"urls": [...]})
    """

    def __init__(
        self,
        service: str,
        retry_policy: RetryPolicy | None = None,
        timeout: float = 30.0,
        headers: dict[str, str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize HTTP client.

        Args:
            service: Name used in errors, logs and latency metrics
            retry_policy: Retry behaviour; None means RetryPolicy defaults
            timeout: Request timeout in seconds
            headers: Headers sent with every request
            transport: Optional httpx transport (tests)
        """
        self.service = service
        self.retry_policy = retry_policy or RetryPolicy()
        self.timeout = timeout
        self._headers = headers or {}
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "HTTPClient":
        self._client = httpx.AsyncClient(
            timeout=self.timeout,
            headers=self._headers,
            follow_redirects=True,
            transport=self._transport,
        )
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def post_json(
        self,
        url: str,
        json_body: Any,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        timeout: float | None = None,
    ) -> Any:
        """POST a JSON body and return the decoded JSON response."""
        response = await with_retry(
            partial(
                self._send, "POST", url,
                params=params, headers=headers, json_body=json_body, timeout=timeout,
            ),
            self.retry_policy,
            operation=f"{self.service} POST",
        )
        try:
            return response.json()
        except ValueError as e:
            raise ExternalServiceError(
                f"Invalid JSON from {self.service}: {e}", service=self.service
            ) from e

    async def get_text(
        self,
        url: str,
        headers: dict[str, str] | None = None,
        retry: bool = True,
    ) -> str:
        """GET a URL and return the response body as text."""
        call = partial(self._send, "GET", url, headers=headers)
        if not retry:
            response = await call()
        else:
            response = await with_retry(
                call, self.retry_policy, operation=f"{self.service} GET"
            )
        return response.text

    async def _send(
        self,
        method: str,
        url: str,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        json_body: Any = None,
        timeout: float | None = None,
    ) -> httpx.Response:
        """Perform one request attempt."""
        if not self._client:
            raise RuntimeError("HTTPClient must be used as async context manager")

        start = time.perf_counter()
        try:
            response = await self._client.request(
                method,
                url,
                params=params,
                headers=headers,
                json=json_body,
                timeout=timeout if timeout is not None else httpx.USE_CLIENT_DEFAULT,
            )
        except httpx.TimeoutException as e:
            raise ExternalServiceError(
                f"timeout after {timeout or self.timeout:.0f}s",
                service=self.service,
                retryable=True,
            ) from e
        except httpx.TransportError as e:
            raise ExternalServiceError(
                f"{type(e).__name__}: {e}", service=self.service, retryable=True
            ) from e
        finally:
            get_metrics().record_external_latency(self.service, time.perf_counter() - start)

        if response.status_code == 429:
            raise RateLimitError(
                f"{self.service} rate limited (429)",
                service=self.service,
                response_body=response.text[:_MAX_BODY_IN_ERROR],
            )

        if response.status_code >= 400:
            raise ExternalServiceError(
                f"{self.service} returned {response.status_code}",
                status_code=response.status_code,
                service=self.service,
                response_body=response.text[:_MAX_BODY_IN_ERROR],
            )

        return response
