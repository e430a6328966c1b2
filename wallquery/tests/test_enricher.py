"""
Test enricher

Looking up the uploader of images that were fetched without one. Lookups that fail at the
provider leave the image as it was; malformed answers and cancellation surface.

*** Fixtures ***
- wallhaven, session, transport, ctx (defined in conftest.py)
- enricher: an Enricher for Wallhaven over the mock session
"""

import pytest
import requests

from wallquery.conftest import WALLHAVEN_TEST_KEY
from wallquery.conftest import build_response
from wallquery.errors import Canceled
from wallquery.errors import DecodeError
from wallquery.fetch_client import NormalizedImage

# following entities are tested in this module:
from wallquery.enricher import Enricher


IMAGE = NormalizedImage(
    id="94x38z",
    path="https://w.wallhaven.cc/full/94/wallhaven-94x38z.jpg",
    view_url="https://whvn.cc/94x38z",
    provider="Wallhaven",
    file_type="image/jpeg",
)

WALLPAPER_RESPONSE = {
    "data": {
        "id": "94x38z",
        "path": "https://w.wallhaven.cc/full/94/wallhaven-94x38z.jpg",
        "uploader": {"username": "alice", "group": "User"},
    }
}


@pytest.fixture
def enricher(wallhaven, transport) -> Enricher:
    return Enricher(wallhaven, transport)


def test_enrich(session, enricher, ctx):
    session.request.return_value = build_response(200, WALLPAPER_RESPONSE)

    enriched = enricher.enrich(ctx, IMAGE)

    assert enriched.attribution == "alice"
    assert enriched.id == IMAGE.id
    assert enriched.path == IMAGE.path
    assert (
        session.request.call_args.args[1]
        == f"https://wallhaven.cc/api/v1/w/94x38z?apikey={WALLHAVEN_TEST_KEY}"
    )


def test_enrich_skips_attributed_images(session, enricher, ctx):
    image = NormalizedImage(id="94x38z", path=IMAGE.path, attribution="bob")

    assert enricher.enrich(ctx, image) is image
    session.request.assert_not_called()


def test_enrich_without_uploader(session, enricher, ctx):
    session.request.return_value = build_response(
        200, {"data": {"id": "94x38z", "path": IMAGE.path, "uploader": None}}
    )

    assert enricher.enrich(ctx, IMAGE) == IMAGE


@pytest.mark.parametrize("status", [401, 404, 429, 500])
def test_enrich_provider_error_keeps_image(session, enricher, ctx, status):
    session.request.return_value = build_response(status, b"nope")

    assert enricher.enrich(ctx, IMAGE) is IMAGE


def test_enrich_connection_error_keeps_image(session, enricher, ctx):
    session.request.side_effect = requests.exceptions.ConnectionError("connection refused")

    assert enricher.enrich(ctx, IMAGE) is IMAGE


@pytest.mark.parametrize(
    "body",
    [b"not json", {"data": None}, {"data": {"id": "94x38z"}}, {"error": "gone"}],
)
def test_enrich_malformed_body(session, enricher, ctx, body):
    session.request.return_value = build_response(200, body)

    with pytest.raises(DecodeError):
        enricher.enrich(ctx, IMAGE)


def test_enrich_cancelled(session, enricher, ctx):
    ctx.cancel()

    with pytest.raises(Canceled):
        enricher.enrich(ctx, IMAGE)


def test_enrich_timeout_keeps_image(session, enricher, ctx):
    session.request.side_effect = requests.exceptions.ReadTimeout("read timed out")

    assert enricher.enrich(ctx, IMAGE) is IMAGE


def test_enrich_timeout_after_cancel(session, enricher, ctx):
    def cancel_and_time_out(*args, **kwargs):
        ctx.cancel()
        raise requests.exceptions.ReadTimeout("read timed out")

    session.request.side_effect = cancel_and_time_out

    with pytest.raises(Canceled):
        enricher.enrich(ctx, IMAGE)


def test_enrich_all(session, enricher, ctx):
    attributed = NormalizedImage(
        id="k7q9ex", path="https://w.wallhaven.cc/full/k7/k7q9ex.jpg", attribution="bob"
    )
    broken = NormalizedImage(id="1kq2w3", path="https://w.wallhaven.cc/full/1k/1kq2w3.jpg")

    session.request.side_effect = [
        build_response(200, WALLPAPER_RESPONSE),
        build_response(200, b"<html>"),
    ]

    images = enricher.enrich_all(ctx, [IMAGE, attributed, broken])

    assert [image.attribution for image in images] == ["alice", "bob", ""]
    assert images[2] is broken
    assert session.request.call_count == 2


def test_enrich_all_cancelled(session, enricher, ctx):
    ctx.cancel()

    with pytest.raises(Canceled):
        enricher.enrich_all(ctx, [IMAGE])


def test_enrich_provider_without_lookup(unsplash, session, transport, ctx):
    """A provider with no per-image endpoint leaves images untouched."""

    class NoLookup(type(unsplash)):
        def enrichment_request(self, image):
            return None

    enricher = Enricher(NoLookup(unsplash.config), transport)

    assert enricher.enrich(ctx, IMAGE) is IMAGE
    session.request.assert_not_called()
