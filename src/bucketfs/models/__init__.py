"""SQLModel database models for bucketfs."""

from bucketfs.models.objects import (
    StoredObject,
    StoredObjectBase,
    UploadSession,
    UploadSessionBase,
)

__all__ = [
    "StoredObject",
    "StoredObjectBase",
    "UploadSession",
    "UploadSessionBase",
]
