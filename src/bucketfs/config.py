"""StorageConfig — settings for one configured bucket."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from bucketfs.fs.database_store import DEFAULT_CHUNK_SIZE, DEFAULT_PAGE_SIZE
from bucketfs.fs.exceptions import ConfigurationError
from bucketfs.fs.permissions import Permission

if TYPE_CHECKING:
    from collections.abc import Mapping


@dataclass
class StorageConfig:
    """Configuration for a single bucket and the driver on top of it."""

    bucket_name: str
    """Name scoping every object key in the store."""

    database_url: str = "sqlite://"
    """SQLAlchemy URL of the database holding the object table."""

    public_base_uri: str = ""
    """Base URL prepended to keys by ``get_public_url``.  Empty = not public."""

    permission: Permission = Permission.READ_WRITE
    """Whether the bucket accepts writes."""

    page_size: int = DEFAULT_PAGE_SIZE
    """Objects fetched per listing page."""

    chunk_size: int = DEFAULT_CHUNK_SIZE
    """Bytes sent per resumable upload chunk."""

    temp_dir: str | None = None
    """Directory for local processing copies.  ``None`` = system default."""

    echo: bool = False
    """Log emitted SQL."""

    def __post_init__(self) -> None:
        self.bucket_name = self.bucket_name.strip()
        if not self.bucket_name:
            raise ConfigurationError("bucket_name is required")
        if self.page_size < 1:
            raise ConfigurationError(f"page_size must be positive, got {self.page_size}")
        if self.chunk_size < 1:
            raise ConfigurationError(f"chunk_size must be positive, got {self.chunk_size}")
        if not isinstance(self.permission, Permission):
            try:
                self.permission = Permission(self.permission)
            except ValueError:
                raise ConfigurationError(f"Unknown permission: {self.permission!r}") from None

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> StorageConfig:
        """Build a config from host-style camelCase keys.

        Recognized keys: ``bucketName``, ``databaseUrl``, ``publicBaseUri``,
        ``permission``, ``pageSize``, ``chunkSize``, ``tempDir``, ``echo``.
        """
        try:
            return cls(
                bucket_name=str(values.get("bucketName") or ""),
                database_url=str(values.get("databaseUrl") or "sqlite://"),
                public_base_uri=str(values.get("publicBaseUri") or ""),
                permission=values.get("permission", Permission.READ_WRITE),
                page_size=int(values.get("pageSize", DEFAULT_PAGE_SIZE)),
                chunk_size=int(values.get("chunkSize", DEFAULT_CHUNK_SIZE)),
                temp_dir=values.get("tempDir"),
                echo=bool(values.get("echo", False)),
            )
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid storage configuration: {e}") from e
