"""Stored object and resumable upload session models.

Provides ``StoredObjectBase`` and ``UploadSessionBase`` non-table base
classes.  Subclass with ``table=True`` and a custom ``__tablename__`` to
use a different table name per deployment.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime

from sqlalchemy import DateTime, LargeBinary, UniqueConstraint
from sqlmodel import Field, SQLModel


class StoredObjectBase(SQLModel):
    """One object in a flat bucket namespace. Subclass with ``table=True``."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    bucket: str = Field(index=True)
    key: str = Field(index=True)
    content: bytes = Field(default=b"", sa_type=LargeBinary)  # type: ignore[invalid-argument-type]
    size: int = Field(default=0)
    content_type: str = Field(default="application/octet-stream")
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_type=DateTime(timezone=True),  # type: ignore[invalid-argument-type]
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_type=DateTime(timezone=True),  # type: ignore[invalid-argument-type]
    )


class StoredObject(StoredObjectBase, table=True):
    """Default object table — ``bucketfs_objects``."""

    __tablename__ = "bucketfs_objects"
    __table_args__ = (UniqueConstraint("bucket", "key", name="uq_bucketfs_objects_bucket_key"),)


class UploadSessionBase(SQLModel):
    """Server-tracked state of a resumable upload.

    ``id`` doubles as the resume token.  ``offset`` is the number of
    bytes durably received so far; an interrupted transfer continues
    from there.
    """

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    bucket: str = Field(index=True)
    key: str
    content_type: str = Field(default="application/octet-stream")
    content: bytes = Field(default=b"", sa_type=LargeBinary)  # type: ignore[invalid-argument-type]
    offset: int = Field(default=0)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_type=DateTime(timezone=True),  # type: ignore[invalid-argument-type]
    )


class UploadSession(UploadSessionBase, table=True):
    """Default upload session table — ``bucketfs_upload_sessions``."""

    __tablename__ = "bucketfs_upload_sessions"
