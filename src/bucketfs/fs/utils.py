"""Key naming: canonical folder/file forms, identifiers, folder roles."""

from __future__ import annotations

import hashlib
import mimetypes
import posixpath
import re
from enum import Enum

DIR_DELIMITER = "/"
ROOT_LEVEL_FOLDER = "/"

_DELIMITER_RUN = re.compile(r"/{2,}")

MAX_PATH_LENGTH = 1024
MAX_NAME_LENGTH = 255


# =============================================================================
# Folder Roles
# =============================================================================


class FolderRole(str, Enum):
    """Special meaning a folder carries by virtue of its name."""

    DEFAULT = "default"
    RECYCLER = "recycler"
    TEMPORARY = "temporary"
    USER_UPLOAD = "user_upload"


FOLDER_ROLES: dict[str, FolderRole] = {
    "_recycler_": FolderRole.RECYCLER,
    "_temp_": FolderRole.TEMPORARY,
    "user_upload": FolderRole.USER_UPLOAD,
}


def folder_name_for_role(role: FolderRole) -> str | None:
    """Return the folder name mapped to *role*, if any."""
    for name, mapped in FOLDER_ROLES.items():
        if mapped is role:
            return name
    return None


def get_role(path: str) -> FolderRole:
    """Role of the folder whose basename is the last segment of *path*."""
    return FOLDER_ROLES.get(basename(path), FolderRole.DEFAULT)


# =============================================================================
# Key Normalization
# =============================================================================


def get_dir_delimiter() -> str:
    return DIR_DELIMITER


def _collapse(path: str) -> str:
    return _DELIMITER_RUN.sub(DIR_DELIMITER, path).lstrip(DIR_DELIMITER)


def normalize_folder_name(path: str) -> str:
    """Normalize *path* to a folder key.

    - Strips leading ``/``
    - Collapses runs of ``/``
    - Ends with exactly one ``/`` (root stays the empty key)

    Examples:
        normalize_folder_name("/a//b") -> "a/b/"
        normalize_folder_name("a/") -> "a/"
        normalize_folder_name("/") -> ""
    """
    path = _collapse(path)
    if not path:
        return ""
    if not path.endswith(DIR_DELIMITER):
        path += DIR_DELIMITER
    return path


def normalize_file_name(path: str) -> str:
    """Normalize *path* to a file key: no leading or trailing ``/``.

    Examples:
        normalize_file_name("/a//b.txt") -> "a/b.txt"
        normalize_file_name("a/b/") -> "a/b"
    """
    return _collapse(path).rstrip(DIR_DELIMITER)


def to_identifier(key: str) -> str:
    """Prefix a key with the root-level folder: ``a/b.txt`` -> ``/a/b.txt``."""
    return ROOT_LEVEL_FOLDER + key.lstrip(DIR_DELIMITER)


def basename(path: str) -> str:
    """Last segment of *path*, ignoring trailing delimiters."""
    return path.rstrip(DIR_DELIMITER).rsplit(DIR_DELIMITER, 1)[-1]


def parent_folder(path: str) -> str:
    """Folder key of the parent of *path* (empty for root-level entries)."""
    trimmed = normalize_file_name(path)
    if DIR_DELIMITER not in trimmed:
        return ""
    return normalize_folder_name(trimmed.rsplit(DIR_DELIMITER, 1)[0])


def extension(path: str) -> str:
    """File extension without the dot, or empty string."""
    return posixpath.splitext(basename(path))[1].lstrip(".")


def hash_identifier(identifier: str) -> str:
    """Stable sha1 hex digest of an identifier."""
    return hashlib.sha1(identifier.encode()).hexdigest()  # noqa: S324


def guess_mime_type(filename: str) -> str:
    """Guess the MIME type of a file based on its name."""
    mime_type, _ = mimetypes.guess_type(filename)
    return mime_type or "application/octet-stream"


# =============================================================================
# Validation
# =============================================================================


def validate_path(path: str) -> tuple[bool, str]:
    """Validate a user-supplied path before it becomes an object key.

    Returns:
        (is_valid, error_message) - error_message is empty if valid
    """
    if "\x00" in path:
        return False, "Path contains null bytes"

    for ch in path:
        code = ord(ch)
        if 0x01 <= code <= 0x1F:
            return False, f"Path contains control character: 0x{code:02x}"

    if len(path) > MAX_PATH_LENGTH:
        return False, f"Path too long (max {MAX_PATH_LENGTH} characters)"

    name = basename(path)
    if len(name) > MAX_NAME_LENGTH:
        return False, f"Name too long (max {MAX_NAME_LENGTH} characters)"

    return True, ""
