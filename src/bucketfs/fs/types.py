"""Result and metadata types: ObjectMetadata, TransferResult."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from datetime import datetime


@dataclass(frozen=True, slots=True)
class ObjectMetadata:
    """Snapshot of one stored object as returned by a prefix query.

    Attributes:
        key: Flat object key (folder keys end with ``/``).
        size: Content length in bytes.
        content_type: MIME type recorded at upload time.
        created_at: Creation timestamp, ``None`` for implied folders.
        updated_at: Last write timestamp, ``None`` for implied folders.
        implied: True for folder entries derived from descendant keys
            rather than a stored marker object.
    """

    key: str
    size: int = 0
    content_type: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    implied: bool = False

    @property
    def is_folder(self) -> bool:
        return self.key.endswith("/")

    @property
    def name(self) -> str:
        """Last path segment without the trailing delimiter."""
        return self.key.rstrip("/").rsplit("/", 1)[-1]


@dataclass
class TransferResult:
    """Result of a folder-level move or copy.

    ``mapping`` holds every object that was transferred, keyed by its old
    identifier.  When a per-object step fails the transfer stops there;
    ``failed_path`` names the object that could not be transferred and the
    mapping reports what already happened.
    """

    success: bool
    message: str
    mapping: dict[str, str] = field(default_factory=dict)
    failed_path: str | None = None
