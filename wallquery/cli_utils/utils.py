"""
wallquery CLI Utilities

State and helpers shared by the wallquery commands: the WallqueryData object the command
group builds once per invocation, lookups of saved queries by identity prefix, and parsing of
"WIDTHxHEIGHT" options.
"""

from dataclasses import dataclass, field
from typing import Optional

import click
import requests

from wallquery.config import WallqueryConfig
from wallquery.query_store import QueryStore
from wallquery.registry import ProviderRegistry
from wallquery.transport import HttpTransport


@dataclass
class WallqueryData:
    """
    Application data passed to every subcommand: the configuration, the provider registry,
    the HTTP session shared by all requests of this invocation and the provider selected with
    --provider, if any. Query stores are opened on first use.
    """

    config: WallqueryConfig
    registry: ProviderRegistry
    session: requests.Session
    provider_name: Optional[str] = None
    stores: dict = field(default_factory=dict)

    def transport(self) -> HttpTransport:
        return HttpTransport(self.session, timeout=self.config.REQUEST_TIMEOUT)

    def selected_providers(self) -> list:
        if self.provider_name:
            return [self.registry.get(self.provider_name)]
        return list(self.registry)

    def provider_for(self, url: Optional[str] = None):
        """The --provider choice, or the provider recognizing url."""

        if self.provider_name:
            return self.registry.get(self.provider_name)

        if url is None:
            raise click.UsageError("this command needs --provider")

        return self.registry.provider_for(url)

    def store(self, provider) -> QueryStore:
        if provider.name not in self.stores:
            self.stores[provider.name] = QueryStore(provider, self.config)
        return self.stores[provider.name]

    def find_query(self, prefix: str) -> tuple:
        """
        Return (store, saved query) for the query whose identity starts with prefix,
        searching the selected providers.
        """

        prefix = prefix.strip().lower()
        if not prefix:
            raise click.BadParameter("query ID must not be empty", param_hint="QUERY_ID")

        matches = [
            (store, query)
            for store in (self.store(provider) for provider in self.selected_providers())
            for query in store.list_queries()
            if query.identity.startswith(prefix)
        ]

        if not matches:
            raise click.BadParameter(f"no saved query with ID {prefix}", param_hint="QUERY_ID")

        if len(matches) > 1:
            raise click.BadParameter(
                f"ID {prefix} matches {len(matches)} queries, use more characters",
                param_hint="QUERY_ID",
            )

        return matches[0]


def parse_dimensions(ctx, param, value) -> Optional[tuple]:
    """click callback turning "1920x1080" into (1920, 1080)."""

    if value is None:
        return None

    try:
        width, height = (int(part) for part in value.lower().split("x"))
    except ValueError:
        raise click.BadParameter("expected WIDTHxHEIGHT, e.g. 1920x1080")

    if width <= 0 or height <= 0:
        raise click.BadParameter("width and height must be positive")

    return width, height
