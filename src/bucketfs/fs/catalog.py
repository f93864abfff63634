"""Catalog — existence checks, metadata lookup and listings over prefix queries."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from .cache import QueryKey
from .exceptions import PathNotFoundError, StorageError
from .types import ObjectMetadata
from .utils import DIR_DELIMITER, normalize_file_name, normalize_folder_name

if TYPE_CHECKING:
    from .cache import ListingCache
    from .protocol import ObjectStore

logger = logging.getLogger(__name__)

SORT_BY_NAME = "name"
SORT_BY_MTIME = ("mtime", "tstamp")

_EPOCH = datetime.min.replace(tzinfo=UTC)


def _is_direct_child(prefix: str, key: str) -> bool:
    rest = key[len(prefix):]
    if not rest:
        return False
    depth = rest.rstrip(DIR_DELIMITER).count(DIR_DELIMITER)
    return depth == 0


def _implied_folders(prefix: str, key: str) -> list[str]:
    """Folder keys between *prefix* and *key* that *key* implies exist."""
    rest = key[len(prefix):]
    parts = rest.split(DIR_DELIMITER)[:-1]
    folders: list[str] = []
    current = prefix
    for part in parts:
        current = f"{current}{part}{DIR_DELIMITER}"
        folders.append(current)
    return folders


class Catalog:
    """Read-only query engine over an ``ObjectStore``.

    Every listing goes through ``get_objects``, which consults the shared
    ``ListingCache`` before issuing a prefix query.  Listing is best
    effort: a store failure while paging ends the listing with whatever
    was gathered so far.
    """

    def __init__(self, store: ObjectStore, cache: ListingCache) -> None:
        self._store = store
        self._cache = cache

    # ------------------------------------------------------------------
    # Existence
    # ------------------------------------------------------------------

    def file_exists(self, path: str) -> bool:
        key = normalize_file_name(path)
        if not key:
            return False
        try:
            return self._store.exists(key)
        except StorageError:
            logger.warning("Existence check failed for %s", key, exc_info=True)
            return False

    def folder_exists(self, path: str) -> bool:
        """True for root, a stored marker, or any key under the folder prefix.

        Answered from a cached recursive listing when one exists, otherwise
        from the first page of a prefix query.  Nothing is cached.
        """
        prefix = normalize_folder_name(path)
        if not prefix:
            return True

        cached = self._cache.get(QueryKey(prefix, True, True, True))
        if cached is not None:
            return len(cached) > 0

        try:
            for page in self._store.iter_pages(prefix):
                if page:
                    return True
        except StorageError:
            logger.warning("Existence check failed for %s", prefix, exc_info=True)
        return False

    def is_folder(self, path: str) -> bool:
        return self.folder_exists(path)

    def is_bucket_root_folder(self, path: str) -> bool:
        return normalize_folder_name(path) == ""

    # ------------------------------------------------------------------
    # Metadata
    # ------------------------------------------------------------------

    def get_object(self, path: str) -> ObjectMetadata:
        key = normalize_file_name(path)
        meta = self._store.stat(key) if key else None
        if meta is None:
            raise PathNotFoundError(f"File not found: {key}")
        return meta

    def get_folder_object(self, path: str) -> ObjectMetadata | None:
        """Marker object of a folder, or ``None`` when only descendants exist."""
        key = normalize_folder_name(path)
        if not key:
            return None
        return self._store.stat(key)

    # ------------------------------------------------------------------
    # Listings
    # ------------------------------------------------------------------

    def _fetch(self, prefix: str) -> tuple[list[ObjectMetadata], bool]:
        """All objects under *prefix*; the flag is False on a partial result."""
        objects: list[ObjectMetadata] = []
        try:
            for page in self._store.iter_pages(prefix):
                objects.extend(page)
        except StorageError:
            logger.warning(
                "Listing %r failed after %d objects; returning partial result",
                prefix,
                len(objects),
                exc_info=True,
            )
            return objects, False
        return objects, True

    def get_objects(
        self,
        prefix: str,
        recursive: bool = False,
        include_files: bool = True,
        include_dirs: bool = True,
        exclude_self: bool = False,
    ) -> list[ObjectMetadata]:
        """Objects under *prefix* in key order.

        Non-recursive listings keep direct children only.  When
        *include_dirs* is set, folders implied by deeper keys are
        synthesized as ``implied`` entries.
        """
        query = QueryKey(prefix, recursive, include_files, include_dirs)
        cached = self._cache.get(query)
        if cached is None:
            objects, complete = self._fetch(prefix)
            listing = tuple(self._select(prefix, objects, query))
            if complete:
                self._cache.put(query, listing)
        else:
            listing = cached

        if exclude_self:
            return [o for o in listing if o.key != prefix]
        return list(listing)

    @staticmethod
    def _select(
        prefix: str,
        objects: list[ObjectMetadata],
        query: QueryKey,
    ) -> list[ObjectMetadata]:
        stored = {o.key for o in objects}
        by_key: dict[str, ObjectMetadata] = {}

        for obj in objects:
            if query.include_dirs:
                for folder in _implied_folders(prefix, obj.key):
                    if folder not in stored and folder not in by_key:
                        by_key[folder] = ObjectMetadata(key=folder, implied=True)
            if obj.is_folder and not query.include_dirs:
                continue
            if not obj.is_folder and not query.include_files:
                continue
            by_key[obj.key] = obj

        selected = sorted(by_key.values(), key=lambda o: o.key)
        if not query.recursive:
            selected = [o for o in selected if o.key == prefix or _is_direct_child(prefix, o.key)]
        return selected

    def retrieve_file_and_folders_in_path(
        self,
        prefix: str,
        recursive: bool = False,
        include_files: bool = True,
        include_dirs: bool = True,
        sort: str = "",
        sort_rev: bool = False,
    ) -> list[ObjectMetadata]:
        """Children of *prefix* (never the prefix itself), sorted.

        ``sort`` is ``""`` for key order, ``"name"`` for case-insensitive
        basename order, or ``"mtime"``/``"tstamp"`` for modification time.
        """
        objects = self.get_objects(prefix, recursive, include_files, include_dirs, exclude_self=True)

        if sort == SORT_BY_NAME:
            objects.sort(key=lambda o: (o.name.casefold(), o.key))
        elif sort in SORT_BY_MTIME:
            objects.sort(key=lambda o: (o.updated_at or _EPOCH, o.key))

        if sort_rev:
            objects.reverse()
        return objects
