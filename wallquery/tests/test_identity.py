"""
Test query identity

Identities must be stable across runs, differ for different queries, and agree for any two
raw URLs that normalize to the same query.
"""

import hashlib

import pytest

# following entities are tested in this module:
from wallquery.identity import query_identity


def test_query_identity_is_sha256_hex():
    normalized = "https://wallhaven.cc/api/v1/search?q=cats"

    identity = query_identity(normalized)

    assert identity == hashlib.sha256(normalized.encode("utf-8")).hexdigest()
    assert len(identity) == 64
    assert identity == identity.lower()


def test_query_identity_is_deterministic():
    normalized = "https://wallhaven.cc/api/v1/collections/Alice/42"

    assert query_identity(normalized) == query_identity(normalized)


def test_query_identity_differs_for_different_queries():
    assert query_identity("https://wallhaven.cc/api/v1/search?q=cats") != query_identity(
        "https://wallhaven.cc/api/v1/search?q=dogs"
    )


@pytest.mark.parametrize(
    "first, second",
    [
        (
            "https://wallhaven.cc/search?q=cats&categories=110",
            "https://wallhaven.cc/api/v1/search?categories=110&q=cats&apikey=XYZ&page=7",
        ),
        (
            "https://wallhaven.cc/user/Alice/favorites/42",
            "https://wallhaven.cc/api/v1/collections/Alice/42/",
        ),
        ("https://wallhaven.cc/search#top", "  https://wallhaven.cc/search/  "),
    ],
)
def test_equivalent_urls_share_identity(wallhaven, first, second):
    assert query_identity(wallhaven.normalize(first)) == query_identity(
        wallhaven.normalize(second)
    )


def test_non_ascii_query(wallhaven):
    normalized = wallhaven.normalize("https://wallhaven.cc/search?q=%E6%A1%9C")

    assert query_identity(normalized) == hashlib.sha256(normalized.encode("utf-8")).hexdigest()
