"""
wallquery Errors

Every error the query core can raise. Validation errors (UnsupportedURL, InvalidDescription,
DuplicateQuery, NotFound) describe input a user can correct and are always surfaced to the
caller unmodified. Network errors carry enough detail (status code, response headers) for a
caller to decide on its own retry or backoff policy; the core never retries.
"""

from typing import Mapping, Optional


class WallqueryError(Exception):
    """Base class for all wallquery errors."""

    pass


class UnsupportedURL(WallqueryError):
    """Raised when a URL does not match any pattern registered for a provider."""

    def __init__(self, url: str, reason: str = "entered URL is currently not supported"):
        self.url = url
        self.reason = reason
        super().__init__(f"{reason}: {url}")


class InvalidDescription(WallqueryError):
    """Raised when a query description is too short, too long or contains control characters."""

    pass


class DuplicateQuery(WallqueryError):
    """Raised when a query with the same identity is already saved."""

    def __init__(self, identity: str, message: str = "this URL already exists"):
        self.identity = identity
        super().__init__(f"duplicate query {identity[:12]}: {message}")


class NotFound(WallqueryError):
    """Raised when no saved query has the requested identity."""

    def __init__(self, identity: str):
        self.identity = identity
        super().__init__(f"query with ID {identity} not found")


class PersistenceError(WallqueryError):
    """
    Raised when the saved query collection cannot be read from or written to the
    configuration store. The in-memory collection is not rolled back.
    """

    pass


class ProviderError(WallqueryError):
    """
    Raised when a provider API answers with a non-2xx status, or when the request never
    produced a response (status is None in that case). Response headers are kept so callers
    can read rate limit metadata.
    """

    def __init__(
        self,
        provider: str,
        status: Optional[int],
        message: str = "",
        headers: Optional[Mapping[str, str]] = None,
    ):
        self.provider = provider
        self.status = status
        self.headers = dict(headers or {})

        if status is None:
            text = f"{provider} request failed: {message}"
        else:
            text = f"{provider} API returned status {status}"
            if message:
                text = f"{text}: {message}"

        super().__init__(text)

    @property
    def is_unauthorized(self) -> bool:
        return self.status in (401, 403)

    @property
    def is_rate_limited(self) -> bool:
        return self.status == 429

    @property
    def is_server_error(self) -> bool:
        return self.status is not None and self.status >= 500

    @property
    def retry_after(self) -> Optional[float]:
        """Seconds to wait before retrying, from the Retry-After header when it holds a number."""

        for key, value in self.headers.items():
            if key.lower() == "retry-after":
                try:
                    return float(value)
                except ValueError:
                    return None
        return None


class DecodeError(WallqueryError):
    """Raised when a 2xx provider response body is not in the expected format."""

    pass


class Canceled(WallqueryError):
    """Raised when a network operation is cancelled or runs past its deadline."""

    pass


class InvalidAPIKey(WallqueryError):
    """Raised when an API key does not have the format a provider expects, or is rejected by it."""

    pass
