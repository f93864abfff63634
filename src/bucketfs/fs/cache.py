"""ListingCache — coarse, eagerly invalidated cache of prefix queries."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, NamedTuple

if TYPE_CHECKING:
    from .types import ObjectMetadata

logger = logging.getLogger(__name__)


class QueryKey(NamedTuple):
    """Identity of one listing query."""

    prefix: str
    recursive: bool
    include_files: bool
    include_dirs: bool


class ListingCache:
    """Process-lifetime cache of listing results.

    Shared by reference between the Catalog that fills it and the
    Operations that invalidate it.  Entries have no TTL: any mutation
    drops the whole cache and bumps ``version``, so a read issued after a
    write never observes a listing taken before it.

    Not thread-safe; one instance belongs to one driver.
    """

    def __init__(self) -> None:
        self._entries: dict[QueryKey, tuple[ObjectMetadata, ...]] = {}
        self._version = 0

    @property
    def version(self) -> int:
        """Number of times the cache has been cleared."""
        return self._version

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def get(self, key: QueryKey) -> tuple[ObjectMetadata, ...] | None:
        listing = self._entries.get(key)
        if listing is not None:
            logger.debug("Listing cache hit for %r", key)
        return listing

    def put(self, key: QueryKey, listing: tuple[ObjectMetadata, ...]) -> None:
        self._entries[key] = tuple(listing)

    def clear(self) -> None:
        """Drop every entry.  Must run before a mutating call returns."""
        self._entries.clear()
        self._version += 1
        logger.debug("Listing cache cleared (version %d)", self._version)
