"""Directory listing filters — three-way results and stock filters."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from fnmatch import fnmatchcase

# ------------------------------------------------------------------
# Result type
# ------------------------------------------------------------------


class FilterOutcome(Enum):
    """What a filter decided about one directory item."""

    INCLUDE = "include"
    EXCLUDE = "exclude"
    FAILURE = "failure"


@dataclass(frozen=True, slots=True)
class FilterResult:
    """Decision returned by a listing filter.

    ``FAILURE`` aborts the whole listing with ``FilterError``;
    ``EXCLUDE`` skips only the current item.
    """

    outcome: FilterOutcome
    reason: str = ""

    @classmethod
    def failure(cls, reason: str) -> FilterResult:
        return cls(FilterOutcome.FAILURE, reason)


INCLUDE = FilterResult(FilterOutcome.INCLUDE)
EXCLUDE = FilterResult(FilterOutcome.EXCLUDE)


@dataclass(frozen=True, slots=True)
class DirectoryItem:
    """A listing candidate as presented to filters.

    Attributes:
        name: Basename of the item.
        identifier: Root-relative identifier, e.g. ``/docs/a.txt``.
        parent_identifier: Root-relative identifier of the parent folder.
    """

    name: str
    identifier: str
    parent_identifier: str


ItemFilter = Callable[[DirectoryItem], FilterResult]


# ------------------------------------------------------------------
# Stock filters
# ------------------------------------------------------------------


def exclude_hidden(item: DirectoryItem) -> FilterResult:
    """Skip dot-files and dot-folders."""
    return EXCLUDE if item.name.startswith(".") else INCLUDE


def exclude_names(*patterns: str) -> ItemFilter:
    """Skip items whose name matches any glob pattern."""

    def _filter(item: DirectoryItem) -> FilterResult:
        if any(fnmatchcase(item.name, p) for p in patterns):
            return EXCLUDE
        return INCLUDE

    return _filter


def include_names(*patterns: str) -> ItemFilter:
    """Keep only items whose name matches at least one glob pattern."""

    def _filter(item: DirectoryItem) -> FilterResult:
        if any(fnmatchcase(item.name, p) for p in patterns):
            return INCLUDE
        return EXCLUDE

    return _filter
