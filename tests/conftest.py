"""Shared fixtures for bucketfs tests."""

from __future__ import annotations

import io
from typing import TYPE_CHECKING

import pytest
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, create_engine

import bucketfs.models  # noqa: F401  (registers tables on SQLModel.metadata)
from bucketfs.fs.database_store import DatabaseObjectStore
from bucketfs.fs.driver import ObjectStorageDriver
from bucketfs.fs.exceptions import StorageError

if TYPE_CHECKING:
    from collections.abc import Iterator

    from sqlalchemy import Engine

    from bucketfs.fs.types import ObjectMetadata

BUCKET = "test-bucket"


# ---------------------------------------------------------------------------
# Test doubles
# ---------------------------------------------------------------------------


class FlakyStream(io.BytesIO):
    """BytesIO whose n-th ``read`` calls raise ``OSError``."""

    def __init__(self, data: bytes, fail_reads: tuple[int, ...] = (2,)) -> None:
        super().__init__(data)
        self.reads = 0
        self._fail_reads = set(fail_reads)

    def read(self, size: int | None = -1) -> bytes:
        self.reads += 1
        if self.reads in self._fail_reads:
            raise OSError("connection reset by peer")
        return super().read(size)


class BrokenListingStore(DatabaseObjectStore):
    """Store whose listings fail after the first page."""

    def iter_pages(self, prefix: str) -> Iterator[list[ObjectMetadata]]:
        for page in super().iter_pages(prefix):
            yield page
            raise StorageError("listing interrupted")


class FailingCopyStore(DatabaseObjectStore):
    """Store whose server-side copy fails for keys listed in ``fail_on``."""

    fail_on: frozenset[str] = frozenset()

    def copy(self, source_key: str, dest_key: str) -> ObjectMetadata:
        if source_key in self.fail_on:
            raise StorageError(f"copy of {source_key} failed")
        return super().copy(source_key, dest_key)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def engine() -> Iterator[Engine]:
    """In-memory SQLite engine with all tables created, one shared connection."""
    eng = create_engine(
        "sqlite://",
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    SQLModel.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def store(engine: Engine) -> DatabaseObjectStore:
    """Store with tiny pages and chunks so paging and chunking are exercised."""
    return DatabaseObjectStore(engine, BUCKET, page_size=2, chunk_size=4)


@pytest.fixture
def driver(store: DatabaseObjectStore, tmp_path) -> Iterator[ObjectStorageDriver]:
    with ObjectStorageDriver(
        store,
        storage_id=BUCKET,
        public_base_uri="https://cdn.example.com/",
        temp_dir=tmp_path,
    ) as d:
        yield d


@pytest.fixture
def populate(store: DatabaseObjectStore):
    """Write raw objects straight into the store, bypassing the driver."""

    def _populate(*keys: str) -> None:
        for key in keys:
            data = b"" if key.endswith("/") else f"content of {key}".encode()
            store.put(key, data)

    return _populate
