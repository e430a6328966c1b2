"""
Query Store

The saved queries of one provider: an ordered collection (newest first) of SavedQuery records
keyed by their identity. The store is the only writer of its persisted form. Every mutation
re-encodes the whole collection and hands it to the configuration provider under the
provider's "<name>_image_queries" key:

    {"queries": [{"description": "...", "url": "...", "active": true}, ...]}

Identities are not written out. They are recomputed on load by normalizing each stored URL
again, so normalization stays the single definition of when two queries are the same.

All operations hold one lock, which makes a store safe to share between a UI thread and a
rotation scheduler. A failed write raises PersistenceError but leaves the in-memory change in
place, so the caller can retry or warn the user.
"""

import json
import logging
import re
import threading
from dataclasses import dataclass, replace
from typing import Callable, Optional

from wallquery.errors import DuplicateQuery
from wallquery.errors import InvalidDescription
from wallquery.errors import NotFound
from wallquery.errors import PersistenceError
from wallquery.errors import UnsupportedURL
from wallquery.errors import WallqueryError
from wallquery.identity import query_identity

logger = logging.getLogger(__name__)

# 5 to 150 characters, no ASCII control characters
DESCRIPTION_REGEXP = re.compile(r"[^\x00-\x1F\x7F]{5,150}")


@dataclass(frozen=True)
class SavedQuery:
    identity: str
    description: str
    url: str
    active: bool = True

    def to_json(self) -> dict:
        return {"description": self.description, "url": self.url, "active": self.active}


def validate_description(description: str) -> str:
    """Return description if it is 5 to 150 printable characters, raise InvalidDescription otherwise."""

    if not isinstance(description, str) or not DESCRIPTION_REGEXP.fullmatch(description):
        raise InvalidDescription(
            "description must be 5 to 150 characters long and contain no control characters"
        )
    return description


class QueryStore:
    """
    Saved queries for one provider.

    provider supplies normalize() and the preference key; config supplies get_string and
    set_string. on_remove, if given, is called with the identity of every removed query after
    the removal has been persisted (or has failed to persist).
    """

    def __init__(self, provider, config, on_remove: Optional[Callable[[str], None]] = None):
        self.provider = provider
        self.config = config
        self.on_remove = on_remove

        self._lock = threading.RLock()
        self._queries = []

        self._hydrate()

    @property
    def pref_key(self) -> str:
        return self.provider.queries_pref_key

    def __len__(self) -> int:
        with self._lock:
            return len(self._queries)

    def __contains__(self, identity) -> bool:
        with self._lock:
            return self._find_index(identity) is not None

    def __iter__(self):
        return iter(self.list_queries())

    # --- reads ---

    def list_queries(self) -> list:
        """Snapshot of all saved queries, newest first."""

        with self._lock:
            return list(self._queries)

    def get_query(self, identity: str) -> Optional[SavedQuery]:
        with self._lock:
            index = self._find_index(identity)
            return None if index is None else self._queries[index]

    def active_queries(self) -> list:
        with self._lock:
            return [query for query in self._queries if query.active]

    def active_identities(self) -> set:
        with self._lock:
            return {query.identity for query in self._queries if query.active}

    # --- mutations ---

    def add_query(self, description: str, raw_url: str, active: bool = True) -> str:
        """
        Normalize raw_url and save it as a new query at the front of the collection.
        Return the new query's identity.
        """

        normalized = self.provider.normalize(raw_url)
        identity = query_identity(normalized)

        with self._lock:
            index = self._find_index(identity)
            if index is not None:
                existing = self._queries[index]
                if existing.url != normalized:
                    raise DuplicateQuery(
                        identity,
                        f"identity collides with saved query '{existing.description}'",
                    )
                raise DuplicateQuery(identity)

            validate_description(description)

            self._queries.insert(
                0,
                SavedQuery(
                    identity=identity,
                    description=description,
                    url=normalized,
                    active=bool(active),
                ),
            )
            logger.info("Added %s query '%s' (%s)", self.provider.name, description, identity[:12])

            self._flush()

        return identity

    def remove_query(self, identity: str) -> None:
        with self._lock:
            index = self._require_index(identity)
            removed = self._queries.pop(index)
            logger.info("Removed %s query '%s'", self.provider.name, removed.description)

            try:
                self._flush()
            finally:
                if self.on_remove is not None:
                    self.on_remove(identity)

    def enable_query(self, identity: str) -> None:
        self._set_active(identity, True)

    def disable_query(self, identity: str) -> None:
        self._set_active(identity, False)

    def _set_active(self, identity: str, active: bool) -> None:
        with self._lock:
            index = self._require_index(identity)
            self._queries[index] = replace(self._queries[index], active=active)
            self._flush()

    # --- persistence ---

    def _hydrate(self) -> None:
        """Load the persisted collection, skipping entries that no longer normalize or repeat."""

        blob = self.config.get_string(self.pref_key, "")
        if not blob.strip():
            return

        try:
            document = json.loads(blob)
            entries = document["queries"]
            if not isinstance(entries, list):
                raise TypeError("queries must be a list")
        except (ValueError, KeyError, TypeError) as error:
            raise PersistenceError(
                f"saved {self.provider.name} queries could not be read: {error}"
            ) from error

        seen = set()
        for entry in entries:
            try:
                description = str(entry["description"])
                normalized = self.provider.normalize(entry["url"])
                active = bool(entry.get("active", True))
            except (KeyError, TypeError, AttributeError, UnsupportedURL) as error:
                logger.warning("Skipping saved %s query %r: %s", self.provider.name, entry, error)
                continue

            identity = query_identity(normalized)
            if identity in seen:
                logger.warning(
                    "Skipping duplicate saved %s query '%s'", self.provider.name, description
                )
                continue

            seen.add(identity)
            self._queries.append(
                SavedQuery(identity=identity, description=description, url=normalized, active=active)
            )

        logger.debug("Loaded %d %s queries", len(self._queries), self.provider.name)

    def _flush(self) -> None:
        """Write the whole collection. Callers hold the lock."""

        blob = json.dumps(
            {"queries": [query.to_json() for query in self._queries]}, indent=2
        )

        try:
            self.config.set_string(self.pref_key, blob)
        except (WallqueryError, OSError) as error:
            raise PersistenceError(
                f"could not save {self.provider.name} queries: {error}"
            ) from error

    def _find_index(self, identity: str) -> Optional[int]:
        for index, query in enumerate(self._queries):
            if query.identity == identity:
                return index
        return None

    def _require_index(self, identity: str) -> int:
        index = self._find_index(identity)
        if index is None:
            raise NotFound(identity)
        return index
