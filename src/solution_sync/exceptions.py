"""Error taxonomy for the sync engine.

Unreadable files are not exceptions: the hash store reports them as a
``None`` fingerprint. Watcher loss is handled inside the change detector.
"""

from __future__ import annotations

from pathlib import Path


class SyncError(Exception):
    """Base class for solution-sync errors."""


class ConfigError(SyncError):
    """Configuration value could not be parsed or is out of range."""


class ModuleDefinitionError(SyncError):
    """A module definition file is malformed."""

    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"{path}: {reason}")


class UnattributedChangeError(SyncError):
    """A changed path is not a source file of any known module.

    Callers fall back to a full regeneration.
    """

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"No module owns {path}")


class ArtifactWriteError(SyncError):
    """A generated artifact could not be written. The previous file is left in place."""

    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to write {path}: {reason}")
