"""ObjectStore protocol — the flat object capabilities the core relies on.

The store is a flat key → bytes namespace.  It knows nothing about
folders: a folder is a key ending with ``/`` or a shared key prefix, and
everything hierarchical is synthesized by the Catalog and the driver.

Any SDK offering these primitives can be adapted.  Implementations
raise ``StorageError`` for transport failures and ``PathNotFoundError``
when reading a key that does not exist.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, BinaryIO, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path

    from .types import ObjectMetadata


@runtime_checkable
class ResumableUpload(Protocol):
    """A chunked transfer that can continue after an interruption."""

    @property
    def resume_token(self) -> str:
        """Token identifying the server-side upload session."""
        ...

    def upload(self) -> ObjectMetadata:
        """Transfer the stream and commit the object.

        Raises ``TransientUploadError`` when interrupted mid-transfer.
        """
        ...

    def resume(self, resume_token: str) -> ObjectMetadata:
        """Continue the session identified by *resume_token* and commit."""
        ...

    def abort(self, resume_token: str) -> None:
        """Discard the session and any bytes received for it."""
        ...


@runtime_checkable
class ObjectStore(Protocol):
    """Core interface every object store backend must implement."""

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def exists(self, key: str) -> bool: ...

    def stat(self, key: str) -> ObjectMetadata | None: ...

    def get(self, key: str) -> bytes: ...

    def get_stream(self, key: str) -> BinaryIO: ...

    def download_to_file(self, key: str, local_path: str | Path) -> None: ...

    def iter_pages(self, prefix: str) -> Iterator[list[ObjectMetadata]]:
        """Yield pages of objects whose key starts with *prefix*, in key order."""
        ...

    def is_writable(self) -> bool: ...

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    def put(
        self,
        key: str,
        data: bytes,
        *,
        content_type: str | None = None,
    ) -> ObjectMetadata:
        """Plain, non-resumable write of the whole payload."""
        ...

    def resumable_upload(
        self,
        key: str,
        stream: BinaryIO,
        *,
        content_type: str | None = None,
    ) -> ResumableUpload: ...

    def copy(self, source_key: str, dest_key: str) -> ObjectMetadata: ...

    def delete(self, key: str) -> None:
        """Delete *key*.  Deleting a missing key is a no-op."""
        ...
