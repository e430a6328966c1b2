"""
HTTP Transport

Thin layer over an injected requests.Session. The session is owned by the caller, so
connection pooling, proxies and adapters are configured once outside the core and shared by
every provider. The transport adds two things on top of requests: per-call cancellation through
a FetchContext, and a plain HttpResponse value that carries everything a provider needs from a
response (status, headers, body) once the connection has been released.
"""

import logging
from dataclasses import dataclass, field
from typing import Mapping, Optional

import requests

from wallquery.context import FetchContext
from wallquery.errors import Canceled

logger = logging.getLogger(__name__)

USER_AGENT = "wallquery/0.1.0"
CHUNK_SIZE = 64 * 1024


class TransportError(Exception):
    """Raised when a request fails without a response (connection refused, DNS, TLS, ...)."""

    pass


@dataclass(frozen=True)
class HttpResponse:
    """A fully read HTTP response."""

    status: int
    body: bytes
    url: str = ""
    headers: Mapping[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    def text(self, limit: int = 200) -> str:
        """The start of the body as text, for log and error messages."""

        return self.body[:limit].decode("utf-8", errors="replace")


class HttpTransport:
    """Issue requests through a caller-owned session, honouring a FetchContext."""

    def __init__(self, session: requests.Session, timeout: float = 30.0):
        self.session = session
        self.timeout = timeout

    def request(
        self,
        ctx: FetchContext,
        method: str,
        url: str,
        headers: Optional[Mapping[str, str]] = None,
    ) -> HttpResponse:
        """
        Send a request and read the whole body. Raise Canceled if ctx is cancelled or its
        deadline passes before the body has been read, TransportError for any other failure
        to get a response, including a timeout of the transport itself.
        """

        ctx.check()

        request_headers = {"User-Agent": USER_AGENT}
        request_headers.update(headers or {})

        timeout = self.timeout
        remaining = ctx.remaining()
        if remaining is not None:
            timeout = min(timeout, remaining) if timeout else remaining

        try:
            response = self.session.request(
                method,
                url,
                headers=request_headers,
                timeout=timeout,
                stream=True,
            )

        except requests.exceptions.Timeout as error:
            raise self._timed_out(ctx, error) from error

        except requests.exceptions.RequestException as error:
            if ctx.cancelled:
                raise Canceled("operation was cancelled") from error
            raise TransportError(str(error)) from error

        try:
            with ctx.track(response):
                body = self._read_body(ctx, response)
        finally:
            response.close()

        return HttpResponse(
            status=response.status_code,
            body=body,
            url=response.url or url,
            headers=dict(response.headers),
        )

    def get(
        self, ctx: FetchContext, url: str, headers: Optional[Mapping[str, str]] = None
    ) -> HttpResponse:
        return self.request(ctx, "GET", url, headers=headers)

    def _read_body(self, ctx: FetchContext, response: requests.Response) -> bytes:
        chunks = []

        try:
            for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                ctx.check()
                chunks.append(chunk)

        except Canceled:
            raise

        except requests.exceptions.Timeout as error:
            raise self._timed_out(ctx, error) from error

        except Exception as error:
            # a response closed by cancel() fails mid-read with whatever urllib3 raises
            if ctx.cancelled:
                raise Canceled("operation was cancelled") from error
            if isinstance(error, (requests.exceptions.RequestException, OSError)):
                raise TransportError(str(error)) from error
            raise

        if ctx.cancelled:
            raise Canceled("operation was cancelled")

        return b"".join(chunks)

    @staticmethod
    def _timed_out(ctx: FetchContext, error: Exception) -> Exception:
        """
        A requests timeout is a cancellation only when ctx was cancelled or its deadline has
        passed. A slow server under a live context is an ordinary transport failure.
        """

        if ctx.cancelled:
            return Canceled("operation was cancelled")
        if ctx.expired:
            return Canceled("operation deadline exceeded")
        return TransportError(f"request timed out: {error}")
