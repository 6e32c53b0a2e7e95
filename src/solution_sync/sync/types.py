"""Data types shared by the change detector and the sync engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum


class ChangeKind(StrEnum):
    CREATED = "created"
    MODIFIED = "modified"
    DELETED = "deleted"
    RENAMED = "renamed"

    @property
    def is_structural(self) -> bool:
        """Created/deleted/renamed can change module membership."""
        return self is not ChangeKind.MODIFIED


@dataclass(frozen=True, slots=True)
class TrackedFile:
    """Last known state of a tracked file."""

    path: str  # absolute
    size: int
    mtime_ns: int
    digest: str  # sha256 hex


@dataclass(frozen=True, slots=True)
class ChangeBatch:
    """Resolved changes drained in one flush cycle. One entry per path."""

    changes: dict[str, ChangeKind] = field(default_factory=dict)

    def __bool__(self) -> bool:
        return bool(self.changes)

    def __len__(self) -> int:
        return len(self.changes)

    def __iter__(self):
        return iter(sorted(self.changes.items()))

    @property
    def paths(self) -> list[str]:
        return sorted(self.changes)

    @property
    def is_structural(self) -> bool:
        return any(kind.is_structural for kind in self.changes.values())

    def filter(self, predicate) -> ChangeBatch:
        """Sub-batch of the paths matching *predicate*."""
        return ChangeBatch({p: k for p, k in self.changes.items() if predicate(p)})


def merge_kind(pending: ChangeKind | None, incoming: ChangeKind) -> ChangeKind:
    """Coalesce a new event for a path into its pending kind.

    A modification never downgrades a pending created/deleted; the latest
    structural kind wins.
    """
    if pending is None:
        return incoming
    if incoming is ChangeKind.MODIFIED and pending.is_structural:
        return pending
    return incoming
