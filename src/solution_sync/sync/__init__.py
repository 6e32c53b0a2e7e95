"""Incremental sync -- watch sources, regenerate project artifacts.

Public API:
    SyncEngine(config, enumerator=None, *, on_changes=None, on_generated=None)
        .initialize() / .shutdown() / .force_sync() / .generate_all()
        .notify_file_changed(path, kind, old_path=None)
    ChangeDetector, HashStore -- lower-level building blocks
"""

from __future__ import annotations

from solution_sync.sync.detector import ChangeDetector
from solution_sync.sync.engine import SyncEngine
from solution_sync.sync.hashing import HashStore, fingerprint
from solution_sync.sync.types import ChangeBatch, ChangeKind, TrackedFile

__all__ = [
    "ChangeBatch",
    "ChangeDetector",
    "ChangeKind",
    "HashStore",
    "SyncEngine",
    "TrackedFile",
    "fingerprint",
]
