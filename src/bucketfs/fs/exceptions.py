"""Custom exception hierarchy for the bucketfs filesystem layer."""


class BucketFSError(Exception):
    """Base exception for all bucketfs errors."""


class PathNotFoundError(BucketFSError):
    """Raised when a file or folder key does not exist."""


class FolderDoesNotExistError(PathNotFoundError):
    """Raised when folder metadata is requested for a missing folder."""


class StorageError(BucketFSError):
    """Raised on object store failures (DB connection, transport, etc.)."""


class TransientUploadError(StorageError):
    """Raised when a resumable upload is interrupted mid-transfer.

    ``resume_token`` identifies the upload session to continue from.
    """

    def __init__(self, message: str, resume_token: str | None = None) -> None:
        super().__init__(message)
        self.resume_token = resume_token


class InvalidPropertyError(BucketFSError):
    """Raised when an unknown file information property is requested."""


class FilterError(BucketFSError):
    """Raised when a listing filter signals an unrecoverable failure."""


class LocalIOError(BucketFSError):
    """Raised when a downloaded object cannot be written to local storage."""


class ConfigurationError(BucketFSError):
    """Raised when driver configuration is missing or malformed."""
