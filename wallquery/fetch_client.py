"""
Provider Fetch Client

Fetch one page of results for a saved query and turn them into NormalizedImage values. The
client is the same for every provider. The provider it is built with decides how to
authenticate, how to paginate and how to decode the response body.

A fetch either returns images or raises:

- ProviderError when the API answers with a non-2xx status (status and headers attached, so
  a scheduler can tell 401 from 429 from 5xx) or when no response arrives at all (status None)
- DecodeError when a 2xx body is not the JSON document the provider promises
- Canceled when the FetchContext is cancelled or its deadline passes

There are no retries in here. Backoff is the caller's decision.
"""

import json
import logging
from dataclasses import dataclass
from typing import Callable, Optional

from wallquery.context import FetchContext
from wallquery.errors import DecodeError
from wallquery.errors import ProviderError
from wallquery.transport import HttpResponse
from wallquery.transport import HttpTransport
from wallquery.transport import TransportError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NormalizedImage:
    """An image from any provider, in one shape."""

    id: str
    path: str
    view_url: str = ""
    attribution: str = ""
    provider: str = ""
    file_type: str = ""
    download_location: str = ""


def decode_json(provider: str, response: HttpResponse):
    """Parse a response body as JSON, raising DecodeError when it is not."""

    try:
        return json.loads(response.body)
    except (ValueError, UnicodeDecodeError) as error:
        raise DecodeError(
            f"{provider} returned a malformed body from {response.url}: {error}"
        ) from error


def send(transport: HttpTransport, ctx: FetchContext, provider: str, url: str, headers=None) -> HttpResponse:
    """GET url and return the response, raising ProviderError for anything but a 2xx answer."""

    try:
        response = transport.get(ctx, url, headers=headers)
    except TransportError as error:
        raise ProviderError(provider, None, str(error)) from error

    if not response.ok:
        raise ProviderError(
            provider, response.status, response.text(), headers=response.headers
        )

    return response


class FetchClient:
    """
    Fetch pages of images for one provider.

    dimensions is the optional desktop dimension hook: a callable returning (width, height).
    When given, the provider may add a default minimum resolution to queries that carry no
    resolution constraint of their own.
    """

    def __init__(
        self,
        provider,
        transport: HttpTransport,
        dimensions: Optional[Callable[[], tuple]] = None,
    ):
        self.provider = provider
        self.transport = transport
        self.dimensions = dimensions

    def fetch(self, ctx: FetchContext, normalized_query: str, page: int = 1) -> list:
        """Return the images on one page of results for normalized_query."""

        if page < 1:
            raise ValueError(f"page numbers start at 1, got {page}")

        api_url = normalized_query
        if self.dimensions is not None:
            width, height = self.dimensions()
            api_url = self.provider.with_resolution(api_url, width, height)

        url, headers = self.provider.build_fetch_request(api_url, page)
        logger.debug("Fetching %s images from: %s", self.provider.name, api_url)

        response = send(self.transport, ctx, self.provider.name, url, headers)
        payload = decode_json(self.provider.name, response)

        try:
            images = self.provider.decode_images(api_url, payload)
        except (KeyError, TypeError, ValueError) as error:
            raise DecodeError(
                f"{self.provider.name} response did not match the expected format: {error!r}"
            ) from error

        if not images:
            logger.info("%s query returned 0 images for URL: %s", self.provider.name, api_url)
        else:
            logger.debug("Found %d images from %s", len(images), self.provider.name)

        return images
