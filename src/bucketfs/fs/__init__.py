"""Filesystem layer — naming, cache, catalog, operations and the driver."""

from bucketfs.fs.cache import ListingCache, QueryKey
from bucketfs.fs.catalog import Catalog
from bucketfs.fs.database_store import DatabaseObjectStore, DatabaseResumableUpload
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
from bucketfs.fs.filters import (
    EXCLUDE,
    INCLUDE,
    DirectoryItem,
    FilterOutcome,
    FilterResult,
    exclude_hidden,
    exclude_names,
    include_names,
)
from bucketfs.fs.operations import Operations
from bucketfs.fs.permissions import Permission
from bucketfs.fs.protocol import ObjectStore, ResumableUpload
from bucketfs.fs.types import ObjectMetadata, TransferResult
from bucketfs.fs.utils import (
    FolderRole,
    get_dir_delimiter,
    normalize_file_name,
    normalize_folder_name,
)

__all__ = [
    "EXCLUDE",
    "INCLUDE",
    "BucketFSError",
    "Catalog",
    "ConfigurationError",
    "DatabaseObjectStore",
    "DatabaseResumableUpload",
    "DirectoryItem",
    "FilterError",
    "FilterOutcome",
    "FilterResult",
    "FolderDoesNotExistError",
    "FolderRole",
    "InvalidPropertyError",
    "ListingCache",
    "LocalIOError",
    "ObjectMetadata",
    "ObjectStorageDriver",
    "ObjectStore",
    "Operations",
    "PathNotFoundError",
    "Permission",
    "QueryKey",
    "ResumableUpload",
    "StorageError",
    "TransferResult",
    "TransientUploadError",
    "exclude_hidden",
    "exclude_names",
    "get_dir_delimiter",
    "include_names",
    "normalize_file_name",
    "normalize_folder_name",
]
