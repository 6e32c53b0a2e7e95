"""SyncEngine -- the host-facing orchestrator.

One explicitly constructed instance per project. The host owns its lifecycle:

    engine = SyncEngine(Config.load(project_dir))
    engine.initialize()        # scan + watch
    engine.generate_all()      # first full pass
    ...
    engine.shutdown()

Each flush from the ChangeDetector is turned into the cheapest generation
pass that keeps the artifacts correct: a targeted pass for edits inside known
modules, a full pass whenever a change cannot be attributed to a module.
"""

from __future__ import annotations

import logging
import os
import threading
from collections.abc import Callable
from contextlib import nullcontext
from pathlib import Path

from watchdog.observers import Observer

from solution_sync.config import Config
from solution_sync.exceptions import UnattributedChangeError
from solution_sync.generation.identifiers import IdentifierRegistry
from solution_sync.generation.project import GenerationReport, ProjectGenerator
from solution_sync.graph.enumerator import DefinitionEnumerator, ModuleEnumerator
from solution_sync.graph.models import DependencyGraph
from solution_sync.graph.provider import GraphProvider
from solution_sync.logging.logger import SyncLogger
from solution_sync.sync.detector import ChangeDetector
from solution_sync.sync.types import ChangeBatch, ChangeKind

logger = logging.getLogger(__name__)


class SyncEngine:
    """Keep descriptors and the manifest in step with the watched source tree."""

    def __init__(
        self,
        config: Config,
        enumerator: ModuleEnumerator | None = None,
        *,
        on_changes: Callable[[ChangeBatch], None] | None = None,
        on_generated: Callable[[GenerationReport], None] | None = None,
        observer_factory: Callable[[], object] = Observer,
    ) -> None:
        self.config = config
        self.graph = GraphProvider(enumerator or DefinitionEnumerator(config))
        self.generator = ProjectGenerator(config)
        self.detector = ChangeDetector(
            config.source_root,
            config.tracked_extensions,
            self._on_flush,
            interval=config.sync_interval,
            excluded_dirs=config.excluded_dirs,
            observer_factory=observer_factory,
            on_restart=self._on_watcher_restart,
        )
        self._on_changes = on_changes
        self._on_generated = on_generated
        self._generation_lock = threading.RLock()
        self._initialized = False
        self._event_log: SyncLogger | None = None
        if config.enable_logging:
            config.ensure_dirs()
            self._event_log = SyncLogger(config.log_dir)

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    @property
    def registry(self) -> IdentifierRegistry:
        return self.generator.registry

    # -----------------------------------------------------------------------
    # Public operations
    # -----------------------------------------------------------------------
    def initialize(self) -> bool:
        """Scan the source tree and start watching. Idempotent.

        Returns False (and does nothing) when sync is disabled in the config.
        """
        if not self.config.enable_sync:
            logger.info("Sync disabled for %s", self.config.project_dir)
            return False
        if self._initialized:
            return True
        self.detector.start()
        self._initialized = True
        logger.info("Sync initialized for %s", self.config.project_dir)
        return True

    def shutdown(self) -> None:
        """Stop watching and release cached state. Safe to call when not initialized."""
        self.detector.stop()
        self.graph.invalidate()
        if self._initialized:
            logger.info("Sync stopped for %s", self.config.project_dir)
        self._initialized = False

    def force_sync(self) -> GenerationReport:
        """Rescan from scratch, drop queued changes, regenerate everything."""
        self.detector.scan(reset=True)
        dropped = self.detector.discard_pending()
        if dropped:
            logger.debug("Dropped %d pending change(s) before full sync", dropped)
        return self.generate_all()

    def generate_all(self) -> GenerationReport:
        """Refresh the graph and regenerate every artifact. Never raises."""
        with self._generation_lock, self._timed("generate.all") as ctx:
            try:
                graph = self.graph.refresh()
            except Exception as e:
                logger.exception("Module enumeration failed")
                report = GenerationReport(failed={"<modules>": str(e)})
            else:
                report = self.generator.generate_all(graph)
            ctx.update(_report_summary(report))
        self._notify_generated(report)
        return report

    def notify_file_changed(
        self,
        path: str | Path,
        kind: ChangeKind | str,
        old_path: str | Path | None = None,
    ) -> bool:
        """Feed a host-observed change into the pending set.

        Relative paths are taken relative to the project directory. Returns
        False when the path is outside the watched root or not tracked.
        """
        resolved = self._absolute(path)
        resolved_old = self._absolute(old_path) if old_path is not None else None
        return self.detector.handle_event(kind, resolved, resolved_old)

    def flush(self) -> ChangeBatch:
        """Run one flush cycle now instead of waiting for the timer."""
        return self.detector.flush()

    # -----------------------------------------------------------------------
    # Flush handling
    # -----------------------------------------------------------------------
    def _on_flush(self, batch: ChangeBatch) -> None:
        relevant = batch.filter(
            lambda p: self.config.is_source_file(p) or self.config.is_definition_file(p)
        )
        try:
            if relevant:
                with self._generation_lock, self._timed("sync.flush", changes=len(relevant)) as ctx:
                    ctx["mode"] = self._apply(relevant)
        finally:
            if self._on_changes is not None:
                self._on_changes(batch)

    def _apply(self, batch: ChangeBatch) -> str:
        """Regenerate for one batch. Returns the pass used: ``full`` or ``targeted``."""
        if any(self.config.is_definition_file(p) for p in batch.paths):
            logger.info("Module definitions changed; regenerating all artifacts")
            self.generate_all()
            return "full"

        previous = self.graph.current()
        if previous is None:
            self.generate_all()
            return "full"

        try:
            names = {self.generator.owner_of(path, previous).name for path in batch.paths}
        except UnattributedChangeError as e:
            logger.info("%s; regenerating all artifacts", e)
            self.generate_all()
            return "full"

        if not batch.is_structural:
            self._regenerate(names, previous, manifest=False)
            return "targeted"

        try:
            graph = self.graph.refresh()
        except Exception:
            logger.exception("Module enumeration failed; regenerating all artifacts")
            self.generate_all()
            return "full"
        missing = names - graph.module_names
        if missing:
            logger.info("Modules %s disappeared; regenerating all artifacts", sorted(missing))
            self.generate_all()
            return "full"
        self._regenerate(names, graph, manifest=True)
        return "targeted"

    def _regenerate(self, names: set[str], graph: DependencyGraph, *, manifest: bool) -> None:
        with self._timed("generate.targeted", modules=sorted(names)) as ctx:
            report = self.generator.regenerate(names, graph, manifest=manifest)
            ctx.update(_report_summary(report))
        self._notify_generated(report)

    def _on_watcher_restart(self) -> None:
        if self._event_log is not None:
            self._event_log.log("watcher.restart", {"root": str(self.detector.root)})

    def _notify_generated(self, report: GenerationReport) -> None:
        if self._on_generated is not None:
            self._on_generated(report)

    # -----------------------------------------------------------------------
    # Helpers
    # -----------------------------------------------------------------------
    def _timed(self, event_type: str, **data):
        if self._event_log is None:
            return nullcontext({})
        return self._event_log.timed(event_type, **data)

    def _absolute(self, path: str | Path) -> str:
        candidate = Path(path)
        if not candidate.is_absolute():
            candidate = self.config.project_dir / candidate
        return os.path.abspath(candidate)


def _report_summary(report: GenerationReport) -> dict:
    return {
        "written": len(report.written),
        "unchanged": len(report.unchanged),
        "failed": len(report.failed),
    }
