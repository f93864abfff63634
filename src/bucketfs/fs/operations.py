"""Operations — mutations decomposed into flat object store calls.

Every public method clears the shared listing cache before returning,
whether the mutation succeeded or raised.  There is no partial
invalidation: correctness over cache hit rate.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, BinaryIO

from .exceptions import StorageError, TransientUploadError
from .utils import guess_mime_type, normalize_file_name, normalize_folder_name

if TYPE_CHECKING:
    from .cache import ListingCache
    from .catalog import Catalog
    from .protocol import ObjectStore, ResumableUpload
    from .types import ObjectMetadata

logger = logging.getLogger(__name__)


class Operations:
    """Mutation engine over an ``ObjectStore``.

    Folder-level moves are not done here: ``rename`` handles exactly one
    object, and the driver enumerates descendants and calls it per key.
    """

    def __init__(self, store: ObjectStore, catalog: Catalog, cache: ListingCache) -> None:
        self._store = store
        self._catalog = catalog
        self._cache = cache

    def create_empty_file(self, path: str) -> str:
        key = self._require_key(normalize_file_name(path))
        try:
            self._store.put(key, b"", content_type=guess_mime_type(key))
        finally:
            self._cache.clear()
        logger.debug("Created empty file %s", key)
        return key

    def mkdir(self, folder_path: str) -> str:
        """Write the zero-byte marker object for a folder."""
        key = self._require_key(normalize_folder_name(folder_path))
        try:
            self._store.put(key, b"")
        finally:
            self._cache.clear()
        logger.debug("Created folder marker %s", key)
        return key

    def delete(self, path: str, is_folder: bool = False) -> int:
        """Delete one object, or every stored object under a folder prefix.

        Folder deletes run in listing order and stop at the first failure;
        objects already deleted stay deleted.  Returns the number of
        delete calls issued.
        """
        try:
            if not is_folder:
                key = normalize_file_name(path)
                self._store.delete(key)
                logger.debug("Deleted %s", key)
                return 1

            prefix = normalize_folder_name(path)
            objects = [
                o for o in self._catalog.get_objects(prefix, True, True, True)
                if not o.implied
            ]
            for obj in objects:
                self._store.delete(obj.key)
            logger.info("Deleted %d objects under %r", len(objects), prefix)
            return len(objects)
        finally:
            self._cache.clear()

    def copy_from_to(self, source_path: str, dest_path: str) -> str:
        source = self._object_key(source_path)
        dest = self._object_key(dest_path)
        try:
            self._store.copy(source, dest)
        finally:
            self._cache.clear()
        logger.debug("Copied %s to %s", source, dest)
        return dest

    def rename(self, old_path: str, new_path: str) -> str:
        """Copy one object to its new key, then delete the old key.

        The two steps are not atomic: if the delete fails, the object
        exists under both keys.
        """
        old = self._object_key(old_path)
        new = self._object_key(new_path)
        if old == new:
            return new
        try:
            self._store.copy(old, new)
            self._store.delete(old)
        finally:
            self._cache.clear()
        logger.debug("Renamed %s to %s", old, new)
        return new

    def put_contents(self, path: str, data: bytes, content_type: str | None = None) -> ObjectMetadata:
        """Plain, non-resumable write of a whole payload."""
        key = self._require_key(normalize_file_name(path))
        try:
            return self._store.put(key, data, content_type=content_type or guess_mime_type(key))
        finally:
            self._cache.clear()

    def upload(
        self,
        path: str,
        stream: BinaryIO,
        size: int,
        content_type: str | None = None,
    ) -> ObjectMetadata:
        """Upload *stream* to *path*.

        Zero-byte payloads use a plain put, since a resumable session
        cannot represent an empty stream.  A transient failure gets
        exactly one resume attempt.  A second failure discards the upload
        session and propagates.
        """
        key = self._require_key(normalize_file_name(path))
        content_type = content_type or guess_mime_type(key)
        try:
            if size == 0:
                return self._store.put(key, b"", content_type=content_type)

            uploader = self._store.resumable_upload(key, stream, content_type=content_type)
            try:
                meta = uploader.upload()
            except TransientUploadError as e:
                token = e.resume_token or uploader.resume_token
                logger.warning("Upload of %s interrupted, resuming: %s", key, e)
                try:
                    meta = uploader.resume(token)
                except TransientUploadError:
                    self._discard(uploader, token, key)
                    raise
            logger.info("Uploaded %s (%d bytes)", key, size)
            return meta
        finally:
            self._cache.clear()

    @staticmethod
    def _discard(uploader: ResumableUpload, token: str, key: str) -> None:
        try:
            uploader.abort(token)
        except StorageError:
            logger.warning("Could not discard upload session of %s", key, exc_info=True)

    @staticmethod
    def _require_key(key: str) -> str:
        if not key:
            raise ValueError("The bucket root is not an object key")
        return key

    @staticmethod
    def _object_key(path: str) -> str:
        # Folder markers keep their trailing delimiter
        if path.endswith("/"):
            return normalize_folder_name(path)
        return normalize_file_name(path)
