"""
Provider Pattern Tables

A provider describes the web URLs it understands as plain data: an ordered table of
ProviderPattern entries, each pairing a regular expression over the raw URL with a template for
the canonical API URL it rewrites to. Patterns use named groups. The optional group named
"query" captures the query string (leading "?" included) of the raw URL.

Adding a provider means adding a table. The normalizer never changes.
"""

import re
from dataclasses import dataclass
from typing import Mapping, Optional
from urllib.parse import parse_qsl, unquote_plus, urlencode


# parameters that change per fetch and never take part in a query's identity
VOLATILE_PARAMS = frozenset({"apikey", "page"})


@dataclass(frozen=True)
class ProviderPattern:
    """
    One recognizer for one URL shape.

    template is formatted with the pattern's named groups plus any provider URL parameters,
    e.g. "https://wallhaven.cc/api/v1/collections/{user}/{id}". When keep_query is set the
    query string of the raw URL is carried over, filtered by allowed_params if given.
    path_params lifts captured path segments into query parameters, as (param, group) pairs.
    """

    name: str
    regex: re.Pattern
    template: str
    keep_query: bool = True
    allowed_params: Optional[frozenset] = None
    path_params: tuple = ()

    def match(self, url: str) -> Optional[re.Match]:
        return self.regex.match(url)

    def rewrite(self, match: re.Match, url_params: Optional[Mapping[str, str]] = None) -> str:
        """
        Build the API URL for a match. Raises KeyError when the template needs a URL parameter
        that was not supplied.
        """

        groups = {
            name: value
            for name, value in match.groupdict().items()
            if value is not None and name != "query"
        }
        base = self.template.format(**{**(url_params or {}), **groups})

        pairs = []
        query = match.groupdict().get("query")
        if self.keep_query and query:
            pairs = parse_qsl(query.lstrip("?"), keep_blank_values=True)

            if self.allowed_params is not None:
                pairs = [(k, v) for k, v in pairs if k in self.allowed_params]

        for param, group in self.path_params:
            pairs = [(k, v) for k, v in pairs if k != param]
            pairs.append((param, unquote_plus(groups[group])))

        if not pairs:
            return base

        return f"{base}?{urlencode(pairs)}"


@dataclass(frozen=True)
class ProviderPatternTable:
    """The patterns of one provider, in priority order, and the parameters it strips."""

    provider: str
    patterns: tuple
    volatile_params: frozenset = VOLATILE_PARAMS

    def __post_init__(self):
        # apikey and page are stripped for every provider
        object.__setattr__(
            self, "volatile_params", frozenset(self.volatile_params) | VOLATILE_PARAMS
        )

    def __iter__(self):
        return iter(self.patterns)