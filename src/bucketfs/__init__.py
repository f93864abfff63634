"""bucketfs: a hierarchical filesystem emulated on a flat object store.

Folders, recycle bins, folder moves and filtered listings on top of a
backend that only knows keys, prefixes and whole-object operations.
"""

__version__ = "0.1.0"

from bucketfs._factory import create_driver, create_engine_for
from bucketfs.config import StorageConfig
from bucketfs.fs.database_store import DatabaseObjectStore
from bucketfs.fs.driver import ObjectStorageDriver
from bucketfs.fs.exceptions import (
    BucketFSError,
    ConfigurationError,
    FilterError,
    FolderDoesNotExistError,
    InvalidPropertyError,
    LocalIOError,
    PathNotFoundError,
    StorageError,
    TransientUploadError,
)
from bucketfs.fs.filters import EXCLUDE, INCLUDE, DirectoryItem, FilterResult
from bucketfs.fs.permissions import Permission
from bucketfs.fs.protocol import ObjectStore
from bucketfs.fs.types import ObjectMetadata, TransferResult

__all__ = [
    "EXCLUDE",
    "INCLUDE",
    "BucketFSError",
    "ConfigurationError",
    "DatabaseObjectStore",
    "DirectoryItem",
    "FilterError",
    "FilterResult",
    "FolderDoesNotExistError",
    "InvalidPropertyError",
    "LocalIOError",
    "ObjectMetadata",
    "ObjectStorageDriver",
    "ObjectStore",
    "PathNotFoundError",
    "Permission",
    "StorageConfig",
    "StorageError",
    "TransferResult",
    "TransientUploadError",
    "__version__",
    "create_driver",
    "create_engine_for",
]
