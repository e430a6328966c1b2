"""
Query Identity

A saved query is keyed by a digest of its normalized URL. The digest is content addressed, so
it is the same on every run and on every machine, and two queries share an identity exactly
when their normalized URLs are equal.
"""

import hashlib


def query_identity(normalized_query: str) -> str:
    """Return the lowercase hex SHA-256 digest of a normalized query."""

    return hashlib.sha256(normalized_query.encode("utf-8")).hexdigest()
