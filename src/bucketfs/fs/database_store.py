"""DatabaseObjectStore — a flat object bucket persisted through SQLModel."""

from __future__ import annotations

import io
import logging
import uuid
from contextlib import contextmanager
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING, BinaryIO

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, SQLModel, select

from .exceptions import LocalIOError, PathNotFoundError, StorageError, TransientUploadError
from .permissions import Permission
from .types import ObjectMetadata

if TYPE_CHECKING:
    from collections.abc import Iterator

    from sqlalchemy import Engine

    from bucketfs.models.objects import StoredObjectBase, UploadSessionBase

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 1000
DEFAULT_CHUNK_SIZE = 256 * 1024  # 256KB
DEFAULT_CONTENT_TYPE = "application/octet-stream"


def _as_utc(value: datetime | None) -> datetime | None:
    # SQLite hands back naive datetimes even for timezone-aware columns
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


class DatabaseObjectStore:
    """Object store backed by a SQL table — one row per object key.

    Several buckets can share a table; every query is scoped to
    ``bucket_name``.  Sessions are opened per call, so the store holds
    only configuration and is cheap to construct.

    Implements the ``ObjectStore`` protocol, including resumable uploads
    tracked in an upload session table.
    """

    def __init__(
        self,
        engine: Engine,
        bucket_name: str,
        *,
        object_model: type[StoredObjectBase] | None = None,
        upload_model: type[UploadSessionBase] | None = None,
        permission: Permission = Permission.READ_WRITE,
        page_size: int = DEFAULT_PAGE_SIZE,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> None:
        from bucketfs.models.objects import StoredObject, UploadSession

        self._engine = engine
        self.bucket_name = bucket_name
        self._object_model: type[StoredObjectBase] = object_model or StoredObject  # type: ignore[assignment]
        self._upload_model: type[UploadSessionBase] = upload_model or UploadSession  # type: ignore[assignment]
        self.permission = permission
        self.page_size = max(1, page_size)
        self.chunk_size = max(1, chunk_size)

    def create_tables(self) -> None:
        """Create the object and upload session tables if missing."""
        SQLModel.metadata.create_all(self._engine)

    # ------------------------------------------------------------------
    # Session helpers
    # ------------------------------------------------------------------

    @contextmanager
    def _session(self) -> Iterator[Session]:
        with Session(self._engine, expire_on_commit=False) as session:
            try:
                yield session
            except SQLAlchemyError as e:
                session.rollback()
                raise StorageError(f"Bucket {self.bucket_name}: {e}") from e

    def _require_writable(self) -> None:
        if not self.permission.writable:
            raise StorageError(f"Bucket is read-only: {self.bucket_name}")

    def _get_record(self, session: Session, key: str) -> StoredObjectBase | None:
        model = self._object_model
        return session.exec(
            select(model).where(
                model.bucket == self.bucket_name,
                model.key == key,
            )
        ).first()

    def _write_record(
        self,
        session: Session,
        key: str,
        data: bytes,
        content_type: str | None,
    ) -> StoredObjectBase:
        now = datetime.now(UTC)
        record = self._get_record(session, key)
        if record is None:
            record = self._object_model(
                bucket=self.bucket_name,
                key=key,
                created_at=now,
            )
        record.content = data
        record.size = len(data)
        record.content_type = content_type or DEFAULT_CONTENT_TYPE
        record.updated_at = now
        session.add(record)
        return record

    @staticmethod
    def _to_metadata(record: StoredObjectBase) -> ObjectMetadata:
        return ObjectMetadata(
            key=record.key,
            size=record.size,
            content_type=record.content_type,
            created_at=_as_utc(record.created_at),
            updated_at=_as_utc(record.updated_at),
        )

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def exists(self, key: str) -> bool:
        with self._session() as session:
            return self._get_record(session, key) is not None

    def stat(self, key: str) -> ObjectMetadata | None:
        with self._session() as session:
            record = self._get_record(session, key)
            return self._to_metadata(record) if record else None

    def get(self, key: str) -> bytes:
        with self._session() as session:
            record = self._get_record(session, key)
            if record is None:
                raise PathNotFoundError(f"Object not found: {key}")
            return bytes(record.content)

    def get_stream(self, key: str) -> BinaryIO:
        return io.BytesIO(self.get(key))

    def download_to_file(self, key: str, local_path: str | Path) -> None:
        data = self.get(key)
        try:
            Path(local_path).write_bytes(data)
        except OSError as e:
            raise LocalIOError(f"Cannot write {key} to {local_path}: {e}") from e

    def iter_pages(self, prefix: str) -> Iterator[list[ObjectMetadata]]:
        """Yield objects under *prefix* in key order, ``page_size`` at a time."""
        model = self._object_model
        last_key: str | None = None
        while True:
            with self._session() as session:
                query = select(model).where(
                    model.bucket == self.bucket_name,
                    model.key.startswith(prefix, autoescape=True),  # type: ignore[union-attr]
                )
                if last_key is not None:
                    query = query.where(model.key > last_key)
                query = query.order_by(model.key).limit(self.page_size)  # type: ignore[arg-type]
                records = session.exec(query).all()
            if not records:
                return
            # LIKE is case-insensitive on some backends
            page = [self._to_metadata(r) for r in records if r.key.startswith(prefix)]
            if page:
                yield page
            if len(records) < self.page_size:
                return
            last_key = records[-1].key

    def is_writable(self) -> bool:
        return self.permission.writable

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
        self._require_writable()
        with self._session() as session:
            record = self._write_record(session, key, data, content_type)
            session.commit()
            return self._to_metadata(record)

    def copy(self, source_key: str, dest_key: str) -> ObjectMetadata:
        self._require_writable()
        with self._session() as session:
            source = self._get_record(session, source_key)
            if source is None:
                raise PathNotFoundError(f"Object not found: {source_key}")
            record = self._write_record(
                session, dest_key, bytes(source.content), source.content_type,
            )
            session.commit()
            return self._to_metadata(record)

    def delete(self, key: str) -> None:
        self._require_writable()
        with self._session() as session:
            record = self._get_record(session, key)
            if record is None:
                return
            session.delete(record)
            session.commit()

    # ------------------------------------------------------------------
    # Resumable uploads
    # ------------------------------------------------------------------

    def resumable_upload(
        self,
        key: str,
        stream: BinaryIO,
        *,
        content_type: str | None = None,
    ) -> DatabaseResumableUpload:
        self._require_writable()
        return DatabaseResumableUpload(self, key, stream, content_type or DEFAULT_CONTENT_TYPE)

    def _open_upload_session(self, token: str, key: str, content_type: str) -> None:
        with self._session() as session:
            session.add(
                self._upload_model(
                    id=token,
                    bucket=self.bucket_name,
                    key=key,
                    content_type=content_type,
                )
            )
            session.commit()

    def _upload_offset(self, token: str) -> int:
        with self._session() as session:
            upload = session.get(self._upload_model, token)
            if upload is None:
                raise StorageError(f"Unknown upload session: {token}")
            return upload.offset

    def _append_chunk(self, token: str, chunk: bytes) -> int:
        with self._session() as session:
            upload = session.get(self._upload_model, token)
            if upload is None:
                raise StorageError(f"Unknown upload session: {token}")
            upload.content = bytes(upload.content) + chunk
            upload.offset += len(chunk)
            session.add(upload)
            session.commit()
            return upload.offset

    def _finish_upload(self, token: str) -> ObjectMetadata:
        with self._session() as session:
            upload = session.get(self._upload_model, token)
            if upload is None:
                raise StorageError(f"Unknown upload session: {token}")
            record = self._write_record(
                session, upload.key, bytes(upload.content), upload.content_type,
            )
            session.delete(upload)
            session.commit()
            return self._to_metadata(record)

    def _discard_upload(self, token: str) -> None:
        with self._session() as session:
            upload = session.get(self._upload_model, token)
            if upload is None:
                return
            session.delete(upload)
            session.commit()
        logger.debug("Discarded upload session %s", token)


class DatabaseResumableUpload:
    """Chunked upload whose progress is committed after every chunk.

    An interruption (stream read error or store failure) raises
    ``TransientUploadError`` carrying the resume token; ``resume()``
    seeks the stream to the last committed offset and continues.
    ``abort()`` drops the session together with the bytes received.
    """

    def __init__(
        self,
        store: DatabaseObjectStore,
        key: str,
        stream: BinaryIO,
        content_type: str,
    ) -> None:
        self._store = store
        self._key = key
        self._stream = stream
        self._content_type = content_type
        self._resume_token = str(uuid.uuid4())

    @property
    def resume_token(self) -> str:
        return self._resume_token

    def upload(self) -> ObjectMetadata:
        self._store._open_upload_session(self._resume_token, self._key, self._content_type)
        return self._transfer(self._resume_token, 0)

    def resume(self, resume_token: str) -> ObjectMetadata:
        offset = self._store._upload_offset(resume_token)
        try:
            self._stream.seek(offset)
        except (OSError, ValueError) as e:
            raise StorageError(f"Cannot resume upload of {self._key}: stream not seekable") from e
        logger.debug("Resuming upload of %s at byte %d", self._key, offset)
        return self._transfer(resume_token, offset)

    def abort(self, resume_token: str) -> None:
        self._store._discard_upload(resume_token)

    def _transfer(self, token: str, offset: int) -> ObjectMetadata:
        while True:
            try:
                chunk = self._stream.read(self._store.chunk_size)
            except OSError as e:
                raise TransientUploadError(
                    f"Upload of {self._key} interrupted at byte {offset}: {e}", token,
                ) from e
            if not chunk:
                break
            try:
                offset = self._store._append_chunk(token, chunk)
            except StorageError as e:
                raise TransientUploadError(
                    f"Upload of {self._key} interrupted at byte {offset}: {e}", token,
                ) from e
        return self._store._finish_upload(token)
