"""Driver construction from a StorageConfig."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from sqlalchemy.engine import make_url
from sqlalchemy.pool import StaticPool
from sqlmodel import create_engine

from bucketfs.fs.database_store import DatabaseObjectStore
from bucketfs.fs.driver import ObjectStorageDriver

if TYPE_CHECKING:
    from sqlalchemy import Engine

    from bucketfs.config import StorageConfig

logger = logging.getLogger(__name__)


def create_engine_for(config: StorageConfig) -> Engine:
    """Engine for ``config.database_url``.

    In-memory SQLite gets a single shared connection, otherwise every
    session would see its own empty database.
    """
    url = make_url(config.database_url)
    kwargs: dict[str, Any] = {"echo": config.echo}
    if url.get_backend_name() == "sqlite" and url.database in (None, "", ":memory:"):
        kwargs["poolclass"] = StaticPool
        kwargs["connect_args"] = {"check_same_thread": False}
    return create_engine(config.database_url, **kwargs)


def create_driver(config: StorageConfig, engine: Engine | None = None) -> ObjectStorageDriver:
    """Wire engine, tables, store and driver for one bucket."""
    engine = engine or create_engine_for(config)
    store = DatabaseObjectStore(
        engine,
        config.bucket_name,
        permission=config.permission,
        page_size=config.page_size,
        chunk_size=config.chunk_size,
    )
    store.create_tables()
    logger.info("Opened bucket %s on %s", config.bucket_name, engine.url.render_as_string())
    return ObjectStorageDriver(
        store,
        storage_id=config.bucket_name,
        public_base_uri=config.public_base_uri,
        temp_dir=config.temp_dir,
    )
