"""HashStore -- content fingerprints per tracked path."""

from __future__ import annotations

import hashlib
import os

from solution_sync.sync.types import TrackedFile

_CHUNK_SIZE = 64 * 1024


def fingerprint(path: str) -> str | None:
    """SHA-256 hex digest of *path*, streamed in chunks.

    Returns None when the file cannot be read right now (vanished between
    notification and read, locked, permission denied, is a directory).
    Editors that write-temp-then-rename produce this routinely.
    """
    digest = hashlib.sha256()
    try:
        with open(path, "rb") as f:
            while chunk := f.read(_CHUNK_SIZE):
                digest.update(chunk)
    except OSError:
        return None
    return digest.hexdigest()


def snapshot(path: str) -> TrackedFile | None:
    """Fingerprint plus size/mtime, or None if unreadable."""
    try:
        stat = os.stat(path)
    except OSError:
        return None
    digest = fingerprint(path)
    if digest is None:
        return None
    return TrackedFile(path=path, size=stat.st_size, mtime_ns=stat.st_mtime_ns, digest=digest)


class HashStore:
    """Fingerprint cache keyed by absolute path.

    Not thread-safe on its own; the ChangeDetector guards it with its lock.
    """

    def __init__(self) -> None:
        self._files: dict[str, TrackedFile] = {}

    def get(self, path: str) -> TrackedFile | None:
        return self._files.get(path)

    def put(self, tracked: TrackedFile) -> None:
        self._files[tracked.path] = tracked

    def pop(self, path: str) -> TrackedFile | None:
        return self._files.pop(path, None)

    def clear(self) -> None:
        self._files.clear()

    def paths(self) -> set[str]:
        return set(self._files)

    def __contains__(self, path: object) -> bool:
        return path in self._files

    def __len__(self) -> int:
        return len(self._files)
