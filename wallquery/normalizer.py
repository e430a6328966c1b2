"""
URL Normalizer

Turn a URL a user copied from a photo service's website into the canonical API query that is
saved and later fetched. The normalized form carries no API key, no page number and no
fragment, and its query parameters are sorted by key, so that two URLs for the same search or
collection always normalize to the same string and normalizing a normalized query changes
nothing.

The normalizer knows nothing about any particular provider. Everything provider specific lives
in the ProviderPatternTable it is handed.
"""

import logging
from typing import Mapping, Optional
from urllib.parse import parse_qsl, urldefrag, urlencode, urlsplit, urlunsplit

from wallquery.errors import UnsupportedURL
from wallquery.patterns import ProviderPatternTable

logger = logging.getLogger(__name__)


def normalize(
    table: ProviderPatternTable,
    raw_url: str,
    url_params: Optional[Mapping[str, str]] = None,
) -> str:
    """
    Classify raw_url against the patterns of table (first match wins), rewrite it into the
    provider's canonical API query and strip volatile parameters.

    url_params supplies values a template needs that cannot be read off the URL, such as the
    username for a user's own favorites. Raise UnsupportedURL when nothing matches or when a
    needed URL parameter is missing.
    """

    trimmed, _ = urldefrag(str(raw_url).strip())

    for pattern in table:
        match = pattern.match(trimmed)
        if match is None:
            continue

        try:
            api_url = pattern.rewrite(match, url_params)
        except KeyError as error:
            raise UnsupportedURL(
                trimmed,
                f"{table.provider} {pattern.name} URLs need the {error.args[0]} setting",
            )

        logger.debug("%s URL matched '%s': %s", table.provider, pattern.name, api_url)
        return strip_volatile(api_url, table.volatile_params)

    raise UnsupportedURL(trimmed)


def strip_volatile(api_url: str, volatile_params) -> str:
    """
    Delete per-fetch parameters from api_url and re-serialize the query with parameters
    sorted by key. Repeated keys keep their relative order. An empty query leaves no "?".
    """

    parts = urlsplit(api_url)
    if not parts.scheme or not parts.netloc:
        raise UnsupportedURL(api_url, "internal error parsing transformed URL")

    pairs = [
        (key, value)
        for key, value in parse_qsl(parts.query, keep_blank_values=True)
        if key not in volatile_params
    ]
    pairs.sort(key=lambda pair: pair[0])

    return urlunsplit((parts.scheme, parts.netloc, parts.path, urlencode(pairs), ""))


def is_supported(table: ProviderPatternTable, raw_url: str) -> bool:
    """Return True if some pattern of table recognizes raw_url."""

    trimmed, _ = urldefrag(str(raw_url).strip())
    return any(pattern.match(trimmed) for pattern in table)
