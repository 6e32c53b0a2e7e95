"""All-or-nothing artifact writes."""

from __future__ import annotations

import contextlib
import os
import tempfile
from enum import StrEnum
from pathlib import Path

from solution_sync.exceptions import ArtifactWriteError


class WriteResult(StrEnum):
    WRITTEN = "written"
    UNCHANGED = "unchanged"


def write_artifact(path: Path, content: str) -> WriteResult:
    """Write *content* to *path* via a sibling temp file and ``os.replace``.

    Skips the write when the file already holds identical bytes, so hosts
    watching the artifacts are not poked for no-op regenerations. On any
    error the temp file is removed, the existing file is left untouched and
    ArtifactWriteError is raised.
    """
    data = content.encode("utf-8")
    try:
        if path.read_bytes() == data:
            return WriteResult.UNCHANGED
    except OSError:
        pass

    tmp_name: str | None = None
    try:
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, path)
    except OSError as e:
        if tmp_name is not None:
            with contextlib.suppress(OSError):
                os.unlink(tmp_name)
        raise ArtifactWriteError(path, str(e)) from e
    return WriteResult.WRITTEN
