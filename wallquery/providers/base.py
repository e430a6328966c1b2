"""
Provider Base

A Provider bundles everything that differs between photo services: the pattern table its
URLs are normalized with, where its API key is kept, how a fetch request is authenticated and
paginated, how its response documents decode into NormalizedImage values and, optionally,
where to look up a single image for enrichment.

Response documents decode into small fixed schema dataclasses per provider. A document that
does not have the expected shape raises KeyError, TypeError or ValueError from the from_json
constructors, which the fetch client reports as DecodeError.
"""

import re
from typing import Optional
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from wallquery import normalizer
from wallquery.context import FetchContext
from wallquery.errors import InvalidAPIKey
from wallquery.fetch_client import NormalizedImage
from wallquery.patterns import ProviderPatternTable


def expect_object(data, what: str) -> dict:
    """Return data if it is a JSON object, raise TypeError naming what was expected otherwise."""

    if not isinstance(data, dict):
        raise TypeError(f"expected {what} to be an object, got {type(data).__name__}")
    return data


def expect_list(data, what: str) -> list:
    """Return data if it is a JSON array. null counts as an empty array."""

    if data is None:
        return []
    if not isinstance(data, list):
        raise TypeError(f"expected {what} to be a list, got {type(data).__name__}")
    return data


def text_of(data: dict, key: str) -> str:
    """Read an optional string field, treating null and missing as empty."""

    value = data.get(key)
    return "" if value is None else str(value)


class Provider:
    """
    Base class for photo service providers. Subclasses set the class attributes and
    implement authenticate and decode_images.
    """

    name: str = ""
    home_url: str = ""
    table: ProviderPatternTable = None

    api_key_pref_key: str = ""
    api_key_regexp: Optional[re.Pattern] = None
    api_key_hint: str = ""

    # extra query parameters added to every fetch, as (key, value) pairs
    fetch_params: tuple = ()

    def __init__(self, config, api_key: Optional[str] = None):
        """
        config is the configuration provider (get_string / set_string). api_key overrides
        the configured key, for tests and one-off runs.
        """

        self.config = config
        self._api_key_override = api_key

    def __repr__(self):
        return f"{type(self).__name__}()"

    @property
    def queries_pref_key(self) -> str:
        """Preference key of this provider's serialized query collection."""

        return f"{self.name.lower()}_image_queries"

    # --- API key ---

    def api_key(self) -> str:
        if self._api_key_override:
            return self._api_key_override
        return self.config.get_string(self.api_key_pref_key, "")

    def validate_api_key(self, key: str) -> str:
        """Return key stripped of whitespace, raise InvalidAPIKey if it has the wrong format."""

        key = key.strip()
        if self.api_key_regexp is not None and not self.api_key_regexp.fullmatch(key):
            raise InvalidAPIKey(f"invalid {self.name} API key: {self.api_key_hint}")
        return key

    def set_api_key(self, key: str) -> None:
        """Validate and store the API key. An empty key clears it."""

        if key.strip():
            key = self.validate_api_key(key)
        self.config.set_string(self.api_key_pref_key, key.strip())

    def check_api_key(self, ctx: FetchContext, transport, key: str) -> bool:
        """
        Ask the provider whether key is accepted. Return False if the provider offers no way to
        check, True if the key works, and raise InvalidAPIKey if it is rejected.
        """

        return False

    # --- normalization ---

    def url_params(self) -> dict:
        """Values templates may need that are not part of the URL, e.g. a configured username."""

        return {}

    def normalize(self, raw_url: str) -> str:
        return normalizer.normalize(self.table, raw_url, self.url_params())

    def is_supported(self, raw_url: str) -> bool:
        return normalizer.is_supported(self.table, raw_url)

    def with_resolution(self, api_url: str, width: int, height: int) -> str:
        """Add a default resolution constraint to api_url if it has none. Default: unchanged."""

        return api_url

    # --- fetching ---

    def build_fetch_request(self, api_url: str, page: int) -> tuple:
        """Return (url, headers) for fetching page of api_url, with authentication applied."""

        parts = urlsplit(api_url)
        fetch_keys = {key for key, _ in self.fetch_params}

        # repeated keys of the saved query are all sent, in order
        params = [
            (key, value)
            for key, value in parse_qsl(parts.query, keep_blank_values=True)
            if key not in self.table.volatile_params and key not in fetch_keys
        ]
        params.extend(self.fetch_params)
        params.append(("page", str(page)))

        headers = {}
        self.authenticate(params, headers)

        url = urlunsplit((parts.scheme, parts.netloc, parts.path, urlencode(params), ""))
        return url, headers

    def authenticate(self, params: list, headers: dict) -> None:
        """Append credentials to the (key, value) query pairs or add them to the headers."""

        raise NotImplementedError

    def decode_images(self, api_url: str, payload) -> list:
        """Map a decoded JSON response for api_url to a list of NormalizedImage."""

        raise NotImplementedError

    # --- enrichment ---

    def enrichment_request(self, image: NormalizedImage) -> Optional[tuple]:
        """(url, headers) of the per-image lookup, or None if the provider has none."""

        return None

    def decode_enrichment(self, image: NormalizedImage, payload) -> NormalizedImage:
        """Return image updated with details from a per-image lookup."""

        return image
