"""ObjectStorageDriver — folder semantics composed from Catalog and Operations.

Identifiers handed to and returned from the driver are root-relative
strings (``/docs/a.txt``, ``/docs/``).  Internally everything is
normalized to flat object keys (``docs/a.txt``, ``docs/``) before it
reaches the Catalog or Operations.
"""

from __future__ import annotations

import contextlib
import hashlib
import logging
import os
import shutil
import tempfile
from contextlib import contextmanager
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any, BinaryIO

from .cache import ListingCache
from .catalog import Catalog
from .exceptions import (
    BucketFSError,
    FilterError,
    FolderDoesNotExistError,
    InvalidPropertyError,
    LocalIOError,
    PathNotFoundError,
    StorageError,
)
from .filters import DirectoryItem, FilterOutcome, FilterResult
from .operations import Operations
from .types import TransferResult
from .utils import (
    DIR_DELIMITER,
    ROOT_LEVEL_FOLDER,
    FolderRole,
    basename,
    extension,
    folder_name_for_role,
    get_role,
    guess_mime_type,
    hash_identifier,
    normalize_file_name,
    normalize_folder_name,
    parent_folder,
    to_identifier,
    validate_path,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator, Sequence

    from .filters import ItemFilter
    from .protocol import ObjectStore
    from .types import ObjectMetadata

logger = logging.getLogger(__name__)

DEFAULT_FILE_PROPERTIES = (
    "size", "atime", "mtime", "ctime", "mimetype", "name", "extension",
    "identifier", "identifier_hash", "storage", "folder_hash",
)

RECYCLE_TIMESTAMP_FORMAT = "%Y%m%d%H%M%S%f"
DEFAULT_FOLDER = "/user_upload/"


def _timestamp(value: datetime | None) -> int:
    return int((value or datetime.now(UTC)).timestamp())


class ObjectStorageDriver:
    """Hierarchical filesystem over a flat ``ObjectStore``.

    Owns one ``ListingCache`` shared between its ``Catalog`` (reads) and
    ``Operations`` (writes).  Folder-level behaviour that the store
    cannot express in one call lives here: recycle-bin redirection,
    subtree move/copy, containment checks and filtered listings.

    Not thread-safe.  Temporary files handed out by
    ``get_file_for_local_processing`` are removed by ``close()``; use the
    driver as a context manager or prefer ``local_copy``.

    Usage::

        with ObjectStorageDriver(store) as driver:
            driver.create_folder("docs")
            driver.set_file_contents("/docs/a.txt", b"hello")
            driver.get_files_in_folder("/docs/")
    """

    def __init__(
        self,
        store: ObjectStore,
        *,
        storage_id: str = "",
        public_base_uri: str = "",
        temp_dir: str | Path | None = None,
    ) -> None:
        self._store = store
        self.storage_id = storage_id
        self.public_base_uri = public_base_uri
        self._temp_dir = str(temp_dir) if temp_dir is not None else None
        self._temporary_paths: list[str] = []

        self.cache = ListingCache()
        self.catalog = Catalog(store, self.cache)
        self.operations = Operations(store, self.catalog, self.cache)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Remove every temporary file handed out by this driver."""
        for path in self._temporary_paths:
            with contextlib.suppress(OSError):
                Path(path).unlink()
        self._temporary_paths.clear()

    def __enter__(self) -> ObjectStorageDriver:
        return self

    def __exit__(self, exc_type: object, exc_val: object, exc_tb: object) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Identifiers
    # ------------------------------------------------------------------

    def get_root_level_folder(self) -> str:
        return ROOT_LEVEL_FOLDER

    def get_role(self, folder_identifier: str) -> FolderRole:
        return get_role(folder_identifier)

    def sanitize_file_name(self, file_name: str) -> str:
        return normalize_file_name(file_name)

    def get_file_in_folder(self, file_name: str, folder_identifier: str) -> str:
        return to_identifier(normalize_folder_name(folder_identifier) + normalize_file_name(file_name))

    def get_folder_in_folder(self, folder_name: str, folder_identifier: str) -> str:
        return to_identifier(
            normalize_folder_name(normalize_folder_name(folder_identifier) + folder_name)
        )

    def get_parent_folder_identifier_of_identifier(self, identifier: str) -> str:
        return to_identifier(parent_folder(identifier))

    def is_within(self, folder_identifier: Any, identifier: Any) -> bool:
        """Pure string containment: does *identifier* start with the folder?"""
        if not isinstance(folder_identifier, str) or not isinstance(identifier, str):
            return False
        ancestor = to_identifier(normalize_folder_name(folder_identifier))
        search = ROOT_LEVEL_FOLDER + identifier.lstrip(DIR_DELIMITER)
        return search.startswith(ancestor)

    def hash(self, file_identifier: str, hash_algorithm: str = "sha1") -> str:
        """Digest of the identifier (not the content) with *hash_algorithm*."""
        identifier = to_identifier(normalize_file_name(file_identifier))
        return hashlib.new(hash_algorithm, identifier.encode()).hexdigest()

    def get_public_url(self, identifier: str) -> str:
        if not self.file_exists(identifier):
            return ""
        return self.public_base_uri + normalize_file_name(identifier)

    def get_permissions(self, identifier: str) -> dict[str, bool]:
        return {"r": True, "w": self._store.is_writable()}

    # ------------------------------------------------------------------
    # Existence
    # ------------------------------------------------------------------

    def file_exists(self, file_identifier: str) -> bool:
        return self.catalog.file_exists(file_identifier)

    def folder_exists(self, folder_identifier: str) -> bool:
        return self.catalog.folder_exists(folder_identifier)

    def file_exists_in_folder(self, file_name: str, folder_identifier: str) -> bool:
        return self.catalog.file_exists(normalize_folder_name(folder_identifier) + file_name)

    def folder_exists_in_folder(self, folder_name: str, folder_identifier: str) -> bool:
        return self.catalog.folder_exists(
            normalize_folder_name(folder_identifier) + normalize_folder_name(folder_name)
        )

    def is_folder_empty(self, folder_identifier: str) -> bool:
        folder = normalize_folder_name(folder_identifier)
        if not self.catalog.folder_exists(folder):
            return False
        return not self.catalog.get_objects(folder, True, True, True, exclude_self=True)

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def create_file(self, file_name: str, parent_folder_identifier: str) -> str:
        key = normalize_file_name(normalize_folder_name(parent_folder_identifier) + file_name)
        self._validate(key)
        self.operations.create_empty_file(key)
        return to_identifier(key)

    def create_folder(
        self,
        new_folder_name: str,
        parent_folder_identifier: str = "",
        recursive: bool = False,
    ) -> str:
        """Write the folder marker.  Parents must exist unless *recursive*."""
        parent = normalize_folder_name(parent_folder_identifier)
        key = normalize_folder_name(parent + normalize_folder_name(new_folder_name))
        if not key:
            raise ValueError("The root folder cannot be created")
        self._validate(key)

        parent_key = parent_folder(key)
        if not recursive and not self.catalog.folder_exists(parent_key):
            raise FolderDoesNotExistError(
                f"Parent folder does not exist: {to_identifier(parent_key)}"
            )
        self.operations.mkdir(key)
        return to_identifier(key)

    def get_default_folder(self) -> str:
        if not self.folder_exists(DEFAULT_FOLDER):
            self.create_folder(DEFAULT_FOLDER)
        return DEFAULT_FOLDER

    @staticmethod
    def _validate(key: str) -> None:
        valid, error = validate_path(key)
        if not valid:
            raise ValueError(error)

    # ------------------------------------------------------------------
    # Content
    # ------------------------------------------------------------------

    def add_file(
        self,
        local_file_path: str | Path,
        target_folder_identifier: str,
        new_file_name: str = "",
        remove_original: bool = True,
    ) -> str:
        """Upload a local file into *target_folder_identifier*."""
        local = Path(local_file_path)
        name = new_file_name or local.name
        key = normalize_folder_name(target_folder_identifier) + normalize_file_name(name)
        self._validate(key)

        try:
            size = local.stat().st_size
            stream = local.open("rb")
        except OSError as e:
            raise LocalIOError(f"Cannot read local file {local}: {e}") from e

        with stream:
            self.operations.upload(key, stream, size, guess_mime_type(name))

        if remove_original:
            with contextlib.suppress(OSError):
                local.unlink()
        return to_identifier(key)

    def replace_file(self, file_identifier: str, local_file_path: str | Path) -> bool:
        """Overwrite an existing file with the contents of a local file."""
        key = normalize_file_name(file_identifier)
        self.add_file(local_file_path, parent_folder(key), basename(key))
        return True

    def get_file_contents(self, file_identifier: str) -> bytes:
        return self._store.get(normalize_file_name(file_identifier))

    def set_file_contents(self, file_identifier: str, contents: bytes | str) -> int:
        data = contents.encode() if isinstance(contents, str) else contents
        self.operations.put_contents(file_identifier, data)
        return len(data)

    def dump_file_contents(self, identifier: str, output: BinaryIO) -> None:
        """Stream an object to *output*; failures are logged, not raised."""
        try:
            with self._store.get_stream(normalize_file_name(identifier)) as stream:
                shutil.copyfileobj(stream, output)
        except BucketFSError:
            logger.warning("Could not dump contents of %s", identifier, exc_info=True)

    def get_file_for_local_processing(self, file_identifier: str, writable: bool = True) -> str:
        """Download an object to a temporary file and return its path.

        Returns an empty string when the object does not exist.  The file
        is removed when the driver is closed.
        """
        key = normalize_file_name(file_identifier)
        if not self.catalog.file_exists(key):
            return ""

        fd, temporary_path = tempfile.mkstemp(
            prefix="bucketfs_",
            suffix=f".{extension(key)}" if extension(key) else "",
            dir=self._temp_dir,
        )
        os.close(fd)
        self._temporary_paths.append(temporary_path)

        self._store.download_to_file(key, temporary_path)
        if not writable:
            Path(temporary_path).chmod(0o444)
        return temporary_path

    @contextmanager
    def local_copy(self, file_identifier: str, writable: bool = True) -> Iterator[str]:
        """Scoped local copy of an object, removed on every exit path."""
        path = self.get_file_for_local_processing(file_identifier, writable)
        if not path:
            raise PathNotFoundError(f"File not found: {normalize_file_name(file_identifier)}")
        try:
            yield path
        finally:
            with contextlib.suppress(OSError):
                Path(path).unlink()
            with contextlib.suppress(ValueError):
                self._temporary_paths.remove(path)

    # ------------------------------------------------------------------
    # Information
    # ------------------------------------------------------------------

    def get_file_info_by_identifier(
        self,
        file_identifier: str,
        properties_to_extract: Sequence[str] = (),
    ) -> dict[str, Any]:
        """Metadata record for a file; empty for folders and missing files."""
        if self.catalog.is_folder(file_identifier) or not self.file_exists(file_identifier):
            return {}

        key = normalize_file_name(file_identifier)
        meta = self.catalog.get_object(key)
        return {
            prop: self.get_specific_file_information(key, meta, prop)
            for prop in (properties_to_extract or DEFAULT_FILE_PROPERTIES)
        }

    def get_specific_file_information(
        self,
        file_identifier: str,
        meta: ObjectMetadata,
        prop: str,
    ) -> Any:
        key = normalize_file_name(file_identifier)
        if prop == "size":
            return meta.size
        if prop in ("mtime", "atime"):
            return _timestamp(meta.updated_at)
        if prop == "ctime":
            return _timestamp(meta.created_at)
        if prop == "name":
            return basename(key)
        if prop == "extension":
            return extension(key)
        if prop == "mimetype":
            return meta.content_type or ""
        if prop == "identifier":
            return to_identifier(key)
        if prop == "storage":
            return self.storage_id
        if prop == "identifier_hash":
            return hash_identifier(to_identifier(key))
        if prop == "folder_hash":
            return hash_identifier(self.get_parent_folder_identifier_of_identifier(key))
        raise InvalidPropertyError(f'The information "{prop}" is not available.')

    def get_folder_info_by_identifier(self, folder_identifier: str) -> dict[str, Any]:
        """Metadata record for a folder.

        Folders implied only by their descendants have no marker; their
        timestamps fall back to the current time.
        """
        key = normalize_folder_name(folder_identifier)
        if self.catalog.is_bucket_root_folder(key):
            now = _timestamp(None)
            return {
                "identifier": ROOT_LEVEL_FOLDER,
                "name": "",
                "mtime": now,
                "ctime": now,
                "storage": self.storage_id,
            }

        if not self.catalog.folder_exists(key):
            raise FolderDoesNotExistError(f'Folder "{key}" does not exist.')

        marker = self.catalog.get_folder_object(key)
        return {
            "identifier": to_identifier(key),
            "name": basename(key),
            "mtime": _timestamp(marker.updated_at if marker else None),
            "ctime": _timestamp(marker.created_at if marker else None),
            "storage": self.storage_id,
        }

    # ------------------------------------------------------------------
    # Listings
    # ------------------------------------------------------------------

    def get_files_in_folder(
        self,
        folder_identifier: str,
        start: int = 0,
        number_of_items: int = 0,
        recursive: bool = False,
        filename_filter_callbacks: Sequence[ItemFilter] = (),
        sort: str = "",
        sort_rev: bool = False,
    ) -> list[str]:
        return self.get_directory_item_list(
            folder_identifier, start, number_of_items, filename_filter_callbacks,
            True, False, recursive, sort, sort_rev,
        )

    def get_folders_in_folder(
        self,
        folder_identifier: str,
        start: int = 0,
        number_of_items: int = 0,
        recursive: bool = False,
        folder_name_filter_callbacks: Sequence[ItemFilter] = (),
        sort: str = "",
        sort_rev: bool = False,
    ) -> list[str]:
        return self.get_directory_item_list(
            folder_identifier, start, number_of_items, folder_name_filter_callbacks,
            False, True, recursive, sort, sort_rev,
        )

    def count_files_in_folder(
        self,
        folder_identifier: str,
        recursive: bool = False,
        filename_filter_callbacks: Sequence[ItemFilter] = (),
    ) -> int:
        return len(self.get_files_in_folder(
            folder_identifier, 0, 0, recursive, filename_filter_callbacks,
        ))

    def count_folders_in_folder(
        self,
        folder_identifier: str,
        recursive: bool = False,
        folder_name_filter_callbacks: Sequence[ItemFilter] = (),
    ) -> int:
        return len(self.get_folders_in_folder(
            folder_identifier, 0, 0, recursive, folder_name_filter_callbacks,
        ))

    def get_directory_item_list(
        self,
        folder_identifier: str,
        start: int = 0,
        limit: int = 0,
        filters: Sequence[ItemFilter] = (),
        include_files: bool = True,
        include_dirs: bool = True,
        recursive: bool = False,
        sort: str = "",
        sort_rev: bool = False,
    ) -> list[str]:
        """Identifiers in a folder after filtering, skipping and limiting.

        *start* items that pass the filters are skipped, then at most
        *limit* are returned (``0`` means unlimited).  A filter failure
        raises ``FilterError``; a store failure returns what was built.
        """
        items: list[str] = []
        try:
            prefix = normalize_folder_name(folder_identifier)
            candidates = self.catalog.retrieve_file_and_folders_in_path(
                prefix, recursive, include_files, include_dirs, sort, sort_rev,
            )

            to_skip = max(0, start)
            for obj in candidates:
                if limit > 0 and len(items) >= limit:
                    break

                identifier = to_identifier(obj.key)
                item = DirectoryItem(
                    name=obj.name,
                    identifier=identifier,
                    parent_identifier=to_identifier(parent_folder(obj.key)),
                )
                if not self._apply_filters(filters, item):
                    continue

                if to_skip > 0:
                    to_skip -= 1
                    continue

                items.append(identifier)
        except StorageError:
            logger.warning(
                "Listing %s failed after %d items", folder_identifier, len(items), exc_info=True,
            )
        return items

    @staticmethod
    def _apply_filters(filters: Sequence[ItemFilter], item: DirectoryItem) -> bool:
        for item_filter in filters:
            result = item_filter(item)
            if not isinstance(result, FilterResult):
                raise FilterError(
                    f"Filter {item_filter!r} returned {result!r} for {item.identifier}"
                )
            if result.outcome is FilterOutcome.EXCLUDE:
                return False
            if result.outcome is FilterOutcome.FAILURE:
                raise FilterError(
                    f"Could not apply filter {item_filter!r} to {item.identifier}: {result.reason}"
                )
        return True

    # ------------------------------------------------------------------
    # Delete & recycle
    # ------------------------------------------------------------------

    def delete_file(self, file_identifier: str, permanent: bool = False) -> bool:
        """Delete a file, moving it to the nearest recycler unless *permanent*."""
        key = normalize_file_name(file_identifier)
        if not permanent:
            recycle_directory = self.get_recycle_directory(key)
            if recycle_directory and not self.is_within(recycle_directory, key):
                return len(self.recycle_file_or_folder(key, recycle_directory)) > 0

        self.operations.delete(key)
        return True

    def delete_folder(self, folder_identifier: str, delete_recursively: bool = False) -> bool:
        """Delete a folder, redirecting into the nearest recycler when one exists.

        Without a recycler, the folder is removed when *delete_recursively*
        is set or it is empty; a non-empty folder is otherwise left intact
        and ``False`` returned.
        """
        source = normalize_folder_name(folder_identifier)

        recycle_directory = self.get_recycle_directory(source)
        if (
            recycle_directory
            and source != recycle_directory
            and not self.is_within(recycle_directory, source)
        ):
            return len(self.recycle_file_or_folder(source, recycle_directory)) > 0

        if delete_recursively or self.is_folder_empty(source):
            self.operations.delete(source, is_folder=True)
            return True
        return False

    def get_recycle_directory(self, path: str) -> str:
        """Nearest existing recycler folder for *path*, deepest ancestor first.

        ``dir/subdir/file`` yields the candidates ``dir/subdir/_recycler_/``,
        ``dir/_recycler_/`` and ``_recycler_/``.  Returns ``""`` when none
        exists or when *path* itself is a recycler.
        """
        recycler = folder_name_for_role(FolderRole.RECYCLER)
        trimmed = normalize_file_name(path)
        if recycler is None or not trimmed:
            return ""
        if get_role(trimmed) is FolderRole.RECYCLER:
            return ""

        candidates: list[str] = []
        built = ""
        for part in trimmed.split(DIR_DELIMITER):
            candidates.append(f"{built}{recycler}{DIR_DELIMITER}")
            built += f"{part}{DIR_DELIMITER}"
        candidates.sort(key=len, reverse=True)

        for candidate in candidates:
            if self.catalog.folder_exists(candidate):
                return candidate
        return ""

    def recycle_file_or_folder(self, source_path: str, recycle_directory: str) -> dict[str, str]:
        """Move a file or folder into *recycle_directory*.

        The recycled entry keeps its name unless that name is taken, in
        which case it is prefixed with a microsecond timestamp.  Returns
        the old → new identifier map; empty when nothing was moved.
        A *source_path* ending in ``/`` is recycled as a folder, anything
        else as a file.
        """
        recycle_directory = normalize_folder_name(recycle_directory)
        if self.is_within(recycle_directory, source_path):
            return {}

        # A file "x" and a folder "x/" can coexist; the trailing delimiter decides
        is_folder = source_path.endswith(DIR_DELIMITER)
        exists = self.catalog.folder_exists if is_folder else self.catalog.file_exists
        if not exists(source_path):
            return {}

        name = basename(source_path)
        if exists(recycle_directory + name):
            name = f"{datetime.now(UTC).strftime(RECYCLE_TIMESTAMP_FORMAT)}_{name}"

        if is_folder:
            result = self.move_folder_within_storage(source_path, recycle_directory, name)
            if not result.success:
                raise StorageError(result.message)
            return result.mapping

        old = to_identifier(normalize_file_name(source_path))
        new = self.move_file_within_storage(source_path, recycle_directory, name)
        return {old: new}

    # ------------------------------------------------------------------
    # Rename, move & copy
    # ------------------------------------------------------------------

    def rename_file(self, file_identifier: str, new_name: str) -> str:
        key = normalize_file_name(file_identifier)
        target = parent_folder(key) + normalize_file_name(new_name)
        self._validate(target)
        self.operations.rename(key, target)
        return to_identifier(target)

    def rename_folder(self, folder_identifier: str, new_name: str) -> TransferResult:
        source = normalize_folder_name(folder_identifier)
        return self.move_folder_within_storage(source, parent_folder(source), new_name)

    def move_file_within_storage(
        self,
        file_identifier: str,
        target_folder_identifier: str,
        new_file_name: str,
    ) -> str:
        target = normalize_folder_name(target_folder_identifier) + normalize_file_name(new_file_name)
        self._validate(target)
        self.operations.rename(normalize_file_name(file_identifier), target)
        return to_identifier(target)

    def copy_file_within_storage(
        self,
        file_identifier: str,
        target_folder_identifier: str,
        file_name: str,
    ) -> str:
        target = normalize_file_name(
            normalize_folder_name(target_folder_identifier) + file_name
        )
        self._validate(target)
        self.operations.copy_from_to(normalize_file_name(file_identifier), target)
        return to_identifier(target)

    def move_folder_within_storage(
        self,
        source_folder_identifier: str,
        target_folder_identifier: str,
        new_folder_name: str,
    ) -> TransferResult:
        """Move a folder by renaming every stored object beneath it."""
        return self._transfer_folder(
            source_folder_identifier,
            target_folder_identifier,
            new_folder_name,
            self.operations.rename,
            "Moved",
        )

    def copy_folder_within_storage(
        self,
        source_folder_identifier: str,
        target_folder_identifier: str,
        new_folder_name: str,
    ) -> TransferResult:
        """Copy a folder by copying every stored object beneath it."""
        return self._transfer_folder(
            source_folder_identifier,
            target_folder_identifier,
            new_folder_name,
            self.operations.copy_from_to,
            "Copied",
        )

    def _transfer_folder(
        self,
        source_folder_identifier: str,
        target_folder_identifier: str,
        new_folder_name: str,
        transfer: Callable[[str, str], str],
        verb: str,
    ) -> TransferResult:
        source = normalize_folder_name(source_folder_identifier)
        destination = normalize_folder_name(
            normalize_folder_name(target_folder_identifier)
            + normalize_folder_name(new_folder_name)
        )
        self._validate(destination)

        if source == destination:
            return TransferResult(
                success=True,
                message="Source and destination are the same",
            )
        if self.is_within(source, destination):
            return TransferResult(
                success=False,
                message=f"Cannot transfer folder into itself: {destination} is inside {source}",
            )
        if not self.catalog.folder_exists(source):
            return TransferResult(success=False, message=f"Folder not found: {source}")

        objects = [o for o in self.catalog.get_objects(source, True, True, True) if not o.implied]

        mapping: dict[str, str] = {}
        for obj in objects:
            new_key = destination + obj.key[len(source):]
            try:
                transfer(obj.key, new_key)
            except BucketFSError as e:
                logger.warning("%s %d objects of %s, failed at %s", verb, len(mapping), source, obj.key)
                return TransferResult(
                    success=False,
                    message=f"Failed at {obj.key} after {len(mapping)} objects: {e}",
                    mapping=mapping,
                    failed_path=to_identifier(obj.key),
                )
            mapping[to_identifier(obj.key)] = to_identifier(new_key)

        logger.info("%s %s to %s (%d objects)", verb, source, destination, len(mapping))
        return TransferResult(
            success=True,
            message=f"{verb} {to_identifier(source)} to {to_identifier(destination)}",
            mapping=mapping,
        )
