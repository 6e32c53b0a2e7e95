"""ChangeDetector -- watch a source tree, coalesce events, flush on a timer.

Watcher callbacks only record ``path -> ChangeKind`` in the pending set and
return. All file reads happen in ``flush()``, which the debounce thread calls
once per interval:

    watchdog thread ──handle_event──▶ pending {path: kind}   (under lock)
    debounce thread ──flush──▶ swap pending ─▶ fingerprint ─▶ ChangeBatch ─▶ on_flush

Resolution against the HashStore turns the coalesced hint into the real
change, so duplicate notifications that carry no content change never reach
``on_flush``.
"""

from __future__ import annotations

import logging
import os
import threading
from collections.abc import Callable, Iterable
from pathlib import Path

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from solution_sync.config import MIN_SYNC_INTERVAL, normalize_extensions
from solution_sync.sync.hashing import HashStore, snapshot
from solution_sync.sync.types import ChangeBatch, ChangeKind, merge_kind

logger = logging.getLogger(__name__)

_JOIN_TIMEOUT_S = 5.0


class _WatchHandler(FileSystemEventHandler):
    """Forward watchdog file events to the detector. Directory events are ignored."""

    def __init__(self, detector: ChangeDetector) -> None:
        super().__init__()
        self._detector = detector

    def on_created(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._detector.handle_event(ChangeKind.CREATED, os.fsdecode(event.src_path))

    def on_modified(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._detector.handle_event(ChangeKind.MODIFIED, os.fsdecode(event.src_path))

    def on_deleted(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._detector.handle_event(ChangeKind.DELETED, os.fsdecode(event.src_path))

    def on_moved(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._detector.handle_event(
                ChangeKind.RENAMED,
                os.fsdecode(event.dest_path),
                old_path=os.fsdecode(event.src_path),
            )


class ChangeDetector:
    """Track files under *root* with an allowed extension and batch their changes."""

    def __init__(
        self,
        root: Path | str,
        extensions: Iterable[str],
        on_flush: Callable[[ChangeBatch], None],
        *,
        interval: float = 1.0,
        excluded_dirs: Iterable[str] = (),
        observer_factory: Callable[[], object] = Observer,
        on_restart: Callable[[], None] | None = None,
    ) -> None:
        self.root = Path(os.path.abspath(root))
        self.extensions = normalize_extensions(extensions)
        self.interval = max(MIN_SYNC_INTERVAL, float(interval))
        self.excluded_dirs = frozenset(excluded_dirs)
        self._on_flush = on_flush
        self._on_restart = on_restart
        self._observer_factory = observer_factory

        self._lock = threading.Lock()
        self._store = HashStore()
        self._pending: dict[str, ChangeKind] = {}

        self._observer = None
        self._watcher_failed = False
        self._stop_event = threading.Event()
        self._timer: threading.Thread | None = None
        self._running = False

    # -----------------------------------------------------------------------
    # Lifecycle
    # -----------------------------------------------------------------------
    def start(self) -> None:
        """Scan, start the watcher and the debounce timer. Idempotent."""
        if self._running:
            return
        self.scan(reset=True)
        self._start_observer()
        self._stop_event.clear()
        self._timer = threading.Thread(
            target=self._run_timer,
            name="solution-sync-debounce",
            daemon=True,
        )
        self._timer.start()
        self._running = True
        logger.info("Tracking %d files under %s", self.tracked_count, self.root)

    def stop(self) -> None:
        """Stop timer and watcher, drop all tracked and pending state. Safe to repeat."""
        self._stop_event.set()
        timer, self._timer = self._timer, None
        if timer is not None and timer is not threading.current_thread():
            timer.join(timeout=_JOIN_TIMEOUT_S)
        self._stop_observer()
        with self._lock:
            self._store.clear()
            self._pending.clear()
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def tracked_count(self) -> int:
        with self._lock:
            return len(self._store)

    @property
    def pending_count(self) -> int:
        with self._lock:
            return len(self._pending)

    def tracked_paths(self) -> set[str]:
        with self._lock:
            return self._store.paths()

    # -----------------------------------------------------------------------
    # Scanning
    # -----------------------------------------------------------------------
    def accepts(self, path: str) -> bool:
        """True for paths under the root with an allow-listed extension.

        Paths inside hidden or excluded directories are rejected, the same
        directories a scan skips.
        """
        candidate = Path(path)
        if candidate.suffix.lower() not in self.extensions:
            return False
        if not candidate.is_relative_to(self.root):
            return False
        directories = candidate.relative_to(self.root).parts[:-1]
        return not any(d.startswith(".") or d in self.excluded_dirs for d in directories)

    def _walk(self) -> list[str]:
        if not self.root.is_dir():
            logger.warning("Watched root %s not found", self.root)
            return []
        found: list[str] = []
        for dirpath, dirnames, filenames in os.walk(self.root):
            dirnames[:] = [
                d for d in dirnames if not d.startswith(".") and d not in self.excluded_dirs
            ]
            for filename in filenames:
                path = os.path.join(dirpath, filename)
                if Path(filename).suffix.lower() in self.extensions:
                    found.append(path)
        found.sort()
        return found

    def scan(self, *, reset: bool = False) -> set[str]:
        """Synchronous full scan. Returns paths that differ from the cache.

        With reset=True every fingerprint is discarded first, so every
        readable file counts as changed.
        """
        found = self._walk()
        snapshots = {path: snapshot(path) for path in found}
        changed: set[str] = set()
        with self._lock:
            if reset:
                self._store.clear()
            for path in self._store.paths() - snapshots.keys():
                self._store.pop(path)
                changed.add(path)
            for path, tracked in snapshots.items():
                if tracked is None:
                    logger.debug("Skipping unreadable file %s", path)
                    continue
                previous = self._store.get(path)
                if previous is None or previous.digest != tracked.digest:
                    changed.add(path)
                self._store.put(tracked)
        return changed

    def discard_pending(self) -> int:
        """Drop queued events without processing them. Returns how many were dropped."""
        with self._lock:
            count = len(self._pending)
            self._pending.clear()
        return count

    # -----------------------------------------------------------------------
    # Events
    # -----------------------------------------------------------------------
    def handle_event(
        self,
        kind: ChangeKind | str,
        path: str,
        old_path: str | None = None,
    ) -> bool:
        """Record one filesystem event. Returns False if the event was filtered out.

        Renames become deleted(old) + created(new); a rename where neither side
        is tracked is ignored entirely.
        """
        kind = ChangeKind(kind)
        path = os.path.abspath(path)

        if kind is ChangeKind.RENAMED:
            if old_path is None:
                msg = "A renamed event needs old_path"
                raise ValueError(msg)
            old_path = os.path.abspath(old_path)
            old_tracked = self.accepts(old_path)
            new_tracked = self.accepts(path)
            if not (old_tracked or new_tracked):
                return False
            with self._lock:
                if old_tracked:
                    self._enqueue(old_path, ChangeKind.DELETED)
                if new_tracked:
                    self._enqueue(path, ChangeKind.CREATED)
            logger.debug("Renamed: %s -> %s", old_path, path)
            return True

        if not self.accepts(path):
            return False
        with self._lock:
            self._enqueue(path, kind)
        logger.debug("%s: %s", kind.value.capitalize(), path)
        return True

    def _enqueue(self, path: str, kind: ChangeKind) -> None:
        """Caller holds the lock."""
        self._pending[path] = merge_kind(self._pending.get(path), kind)

    # -----------------------------------------------------------------------
    # Flush
    # -----------------------------------------------------------------------
    def flush(self) -> ChangeBatch:
        """Drain the pending set, resolve it against the HashStore, hand it to on_flush.

        Returns the resolved batch; an empty batch means nothing real changed
        and on_flush was not called.
        """
        with self._lock:
            pending, self._pending = self._pending, {}
        if not pending:
            return ChangeBatch()

        resolved: dict[str, ChangeKind] = {}
        for path, hint in pending.items():
            kind = self._resolve(path, hint)
            if kind is not None:
                resolved[path] = kind

        batch = ChangeBatch(resolved)
        suppressed = len(pending) - len(batch)
        if suppressed:
            logger.debug("Suppressed %d change(s) with no content difference", suppressed)
        if not batch:
            return batch

        logger.info("Processing %d file change(s)", len(batch))
        try:
            self._on_flush(batch)
        except Exception:
            logger.exception("Flush handler failed for %d change(s)", len(batch))
        return batch

    def _resolve(self, path: str, hint: ChangeKind) -> ChangeKind | None:
        """Compare disk state with the cache. None means suppress."""
        tracked = snapshot(path)
        exists = tracked is not None or os.path.lexists(path)
        with self._lock:
            previous = self._store.get(path)
            if tracked is None:
                if exists:
                    # Present but unreadable right now; the next event retries.
                    return None
                self._store.pop(path)
                if previous is None and hint is not ChangeKind.DELETED:
                    return None
                return ChangeKind.DELETED
            self._store.put(tracked)
            if previous is None:
                return ChangeKind.CREATED
            if previous.digest == tracked.digest:
                return None
            return ChangeKind.MODIFIED

    # -----------------------------------------------------------------------
    # Timer + watcher health
    # -----------------------------------------------------------------------
    def _run_timer(self) -> None:
        while not self._stop_event.wait(self.interval):
            self.tick()

    def tick(self) -> None:
        """One debounce cycle: check the watcher, then flush."""
        try:
            self._check_watcher()
            self.flush()
        except Exception:
            logger.exception("Sync tick failed")

    def _start_observer(self) -> None:
        if not self.root.is_dir():
            logger.warning("Watched root %s not found. File watching disabled.", self.root)
            return
        observer = self._observer_factory()
        try:
            observer.schedule(_WatchHandler(self), str(self.root), recursive=True)
            observer.start()
        except OSError as e:
            logger.warning("File watcher failed to start: %s", e)
            self._watcher_failed = True
            return
        self._observer = observer
        self._watcher_failed = False

    def _stop_observer(self) -> None:
        observer, self._observer = self._observer, None
        if observer is None:
            return
        observer.stop()
        if observer.is_alive():
            observer.join(timeout=_JOIN_TIMEOUT_S)

    def _check_watcher(self) -> None:
        """Replace a dead watcher and queue a from-scratch rescan."""
        if not self._running:
            return
        observer = self._observer
        if observer is None and not self._watcher_failed and not self.root.is_dir():
            # Root still missing; start watching once it appears.
            return
        lost = self._watcher_failed or observer is None or not observer.is_alive()
        if not lost:
            return
        logger.warning("File watcher lost; re-establishing and rescanning %s", self.root)
        self._stop_observer()
        self._start_observer()
        self._enqueue_rescan()
        if self._on_restart is not None:
            self._on_restart()

    def _enqueue_rescan(self) -> None:
        """Queue every file on disk and every vanished tracked file for resolution."""
        found = set(self._walk())
        with self._lock:
            for path in found:
                self._enqueue(path, ChangeKind.MODIFIED)
            for path in self._store.paths() - found:
                self._enqueue(path, ChangeKind.DELETED)
