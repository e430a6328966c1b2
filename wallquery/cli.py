"""
wallquery

Curate the searches and collections your wallpapers come from.

This module defines the entry point to the wallquery CLI: a 'wallquery' command group that
loads the configuration and the provider registry, and one subcommand per operation on saved
queries. Subcommands find their shared state in the WallqueryData object the group stores on
the click context.
"""

from pathlib import Path

import click
import requests
from rich.table import Table

from wallquery.config import init
from wallquery.context import FetchContext
from wallquery.enricher import Enricher
from wallquery.fetch_client import FetchClient
from wallquery.identity import query_identity
from wallquery.providers.wallhaven import USERNAME_PREF_KEY
from wallquery.registry import PROVIDER_CLASSES
from wallquery.registry import build_registry

from wallquery.cli_utils.decorators import catch_errors
from wallquery.cli_utils.decorators import pass_data
from wallquery.cli_utils.utils import WallqueryData
from wallquery.cli_utils.utils import parse_dimensions
from wallquery.console import confirm_success
from wallquery.console import console
from wallquery.console import describe
from wallquery.console import setup_logging
from wallquery.console import warn


@click.group()
@click.option(
    "--provider",
    "-p",
    "provider_name",
    type=click.Choice([cls.name for cls in PROVIDER_CLASSES], case_sensitive=False),
    help="Photo service to work with. Detected from the URL where possible.",
)
@click.option(
    "--config-dir",
    type=click.Path(file_okay=False, path_type=Path),
    envvar="WALLQUERY_CONFIG_DIR",
    help="Directory holding config.json (default: ~/.config/wallquery).",
)
@click.option(
    "--verbose",
    "verbosity",
    flag_value="verbose",
    default=True,
    help="Print progress messages.",
)
@click.option(
    "--quiet",
    "verbosity",
    flag_value="quiet",
    help="Only print errors.",
)
@click.option(
    "--debug",
    "verbosity",
    flag_value="debug",
    help="Print debug logging.",
)
@click.version_option(package_name="wallquery")
@click.pass_context
@catch_errors
def cli(ctx: click.Context, provider_name, config_dir, verbosity):
    """
    wallquery

    Save searches and collections from Wallhaven, Unsplash and Pexels, and fetch wallpapers
    from them.

    Examples:

    1) Save a Wallhaven search

        $ wallquery add "https://wallhaven.cc/search?q=mountains&categories=100" -d "Mountains"

    2) Show saved queries

        $ wallquery list

    3) Fetch the second page of a saved query, with uploader names

        $ wallquery fetch 3f2a9c --page 2 --enrich
    """

    setup_logging(verbosity)

    config = init(config_dir)
    session = requests.Session()
    ctx.call_on_close(session.close)

    ctx.obj = WallqueryData(
        config=config,
        registry=build_registry(config),
        session=session,
        provider_name=provider_name,
    )


@cli.command()
@click.argument("url")
@pass_data
@catch_errors
def normalize(data: WallqueryData, url: str):
    """Show the API query and ID a URL would be saved as."""

    provider = data.provider_for(url)
    normalized = provider.normalize(url)

    describe(f"[bold]{provider.name}[/]")
    describe(normalized, markup=False)
    describe(f"ID {query_identity(normalized)}")


@cli.command()
@click.argument("url")
@click.option(
    "--desc",
    "-d",
    "description",
    required=True,
    help="Description shown in listings, 5 to 150 characters.",
)
@click.option(
    "--inactive",
    is_flag=True,
    default=False,
    help="Save the query without using it for wallpapers yet.",
)
@pass_data
@catch_errors
def add(data: WallqueryData, url: str, description: str, inactive: bool):
    """Save a search or collection URL as a query."""

    provider = data.provider_for(url)
    identity = data.store(provider).add_query(description, url, active=not inactive)

    confirm_success(f"saved {provider.name} query '{description}' as {identity[:12]}")


@cli.command(name="list")
@pass_data
@catch_errors
def list_queries(data: WallqueryData):
    """List saved queries, newest first."""

    table = Table("ID", "Provider", "Active", "Description", "URL")
    count = 0

    for provider in data.selected_providers():
        for query in data.store(provider).list_queries():
            table.add_row(
                query.identity[:12],
                provider.name,
                "yes" if query.active else "no",
                query.description,
                query.url,
            )
            count += 1

    if count == 0:
        describe("no saved queries. add one with 'wallquery add URL -d DESCRIPTION'")
        return

    console.print(table)


@cli.command()
@click.argument("query_id")
@pass_data
@catch_errors
def enable(data: WallqueryData, query_id: str):
    """Use a saved query for wallpapers."""

    store, query = data.find_query(query_id)
    store.enable_query(query.identity)
    confirm_success(f"enabled '{query.description}'")


@cli.command()
@click.argument("query_id")
@pass_data
@catch_errors
def disable(data: WallqueryData, query_id: str):
    """Stop using a saved query for wallpapers, without removing it."""

    store, query = data.find_query(query_id)
    store.disable_query(query.identity)
    confirm_success(f"disabled '{query.description}'")


@cli.command()
@click.argument("query_id")
@pass_data
@catch_errors
def remove(data: WallqueryData, query_id: str):
    """Delete a saved query."""

    store, query = data.find_query(query_id)
    store.remove_query(query.identity)
    confirm_success(f"removed '{query.description}'")


@cli.command()
@click.argument("query_id")
@click.option("--page", type=click.IntRange(min=1), default=1, show_default=True)
@click.option(
    "--enrich",
    is_flag=True,
    default=False,
    help="Look up missing uploader names, one request per image.",
)
@click.option(
    "--atleast",
    callback=parse_dimensions,
    help="Minimum resolution as WIDTHxHEIGHT for queries that set none.",
)
@click.option(
    "--timeout",
    type=click.FloatRange(min=0, min_open=True),
    default=60.0,
    show_default=True,
    help="Seconds before giving up.",
)
@pass_data
@catch_errors
def fetch(data: WallqueryData, query_id: str, page: int, enrich: bool, atleast, timeout: float):
    """Fetch one page of images for a saved query."""

    store, query = data.find_query(query_id)
    provider = store.provider
    transport = data.transport()

    if not query.active:
        warn(f"'{query.description}' is disabled, fetching anyway")

    dimensions = (lambda: atleast) if atleast else None
    client = FetchClient(provider, transport, dimensions=dimensions)
    ctx = FetchContext(timeout=timeout)

    images = client.fetch(ctx, query.url, page=page)
    if enrich:
        images = Enricher(provider, transport).enrich_all(ctx, images)

    table = Table("ID", "By", "Type", "Download")
    for image in images:
        table.add_row(image.id, image.attribution or "-", image.file_type, image.path)

    console.print(table)
    describe(f"{len(images)} images from '{query.description}', page {page}")


@cli.command(name="set-key")
@click.argument("key")
@click.option(
    "--check/--no-check",
    default=False,
    help="Ask the provider whether the key works before saving it.",
)
@pass_data
@catch_errors
def set_key(data: WallqueryData, key: str, check: bool):
    """Save the API key for the provider chosen with --provider. An empty KEY clears it."""

    provider = data.provider_for()

    if check and key.strip():
        ctx = FetchContext(timeout=data.config.REQUEST_TIMEOUT)
        if not provider.check_api_key(ctx, data.transport(), key):
            warn(f"{provider.name} offers no way to check a key, saving it unchecked")

    provider.set_api_key(key)
    confirm_success(f"{provider.name} API key {'saved' if key.strip() else 'cleared'}")


@cli.command(name="set-username")
@click.argument("username")
@pass_data
@catch_errors
def set_username(data: WallqueryData, username: str):
    """Save your Wallhaven username, needed for https://wallhaven.cc/favorites/... URLs."""

    data.config.set_string(USERNAME_PREF_KEY, username.strip())
    confirm_success(f"Wallhaven username set to '{username.strip()}'")
