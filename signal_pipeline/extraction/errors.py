"""Exceptions raised by extraction and AI service clients."""


class ExternalServiceError(Exception):
    """A call to an external service failed.

    Carries enough context for the retry predicate to classify the failure.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        service: str | None = None,
        retryable: bool = False,
        response_body: str | None = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.service = service
        self.retryable = retryable
        self.response_body = response_body


class RateLimitError(ExternalServiceError):
    """The service answered with a rate-limit signal."""

    def __init__(self, message: str, service: str | None = None, response_body: str | None = None):
        super().__init__(
            message,
            status_code=429,
            service=service,
            retryable=True,
            response_body=response_body,
        )


class ServiceNotConfiguredError(ExternalServiceError):
    """The service has no credentials configured."""

    def __init__(self, service: str):
        super().__init__(f"{service} is not configured", service=service)


class ExtractionExhaustedError(Exception):
    """Every extraction tier failed for a URL.

    ``errors`` maps tier name to the error that tier reported, in the order
    the tiers were tried.
    """

    def __init__(self, url: str, errors: dict[str, str]):
        self.url = url
        self.errors = dict(errors)
        message = " | ".join(f"{tier}: {err}" for tier, err in self.errors.items())
        super().__init__(message or "All extraction methods failed")
