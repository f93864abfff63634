"""Permission enum for a configured bucket."""

from __future__ import annotations

from enum import Enum


class Permission(str, Enum):
    """Access level granted on a bucket."""

    READ_WRITE = "read_write"
    READ_ONLY = "read_only"

    @property
    def writable(self) -> bool:
        return self is Permission.READ_WRITE
