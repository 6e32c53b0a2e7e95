"""Artifact generation over a module graph: full and targeted passes."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field

from solution_sync.exceptions import ArtifactWriteError, UnattributedChangeError
from solution_sync.generation.descriptor import DescriptorGenerator, find_analyzers
from solution_sync.generation.identifiers import IdentifierRegistry
from solution_sync.generation.manifest import ManifestGenerator
from solution_sync.generation.writer import WriteResult

if TYPE_CHECKING:
    from pathlib import Path

    from solution_sync.config import Config
    from solution_sync.graph.models import DependencyGraph, Module
    from solution_sync.sync.types import ChangeKind

logger = logging.getLogger(__name__)


class GenerationReport(BaseModel):
    """Outcome of one generation pass. Paths are artifact file names."""

    written: list[str] = Field(default_factory=list)
    unchanged: list[str] = Field(default_factory=list)
    failed: dict[str, str] = Field(default_factory=dict)
    modules: int = 0

    @property
    def ok(self) -> bool:
        return not self.failed

    def record(self, path: Path, result: WriteResult) -> None:
        target = self.written if result is WriteResult.WRITTEN else self.unchanged
        target.append(path.name)


class ProjectGenerator:
    """Write descriptors and the manifest, honoring the generation toggles.

    Individual artifact failures never abort a pass: they are logged and
    collected in ``GenerationReport.failed`` while the rest are still written.
    """

    def __init__(self, config: Config, registry: IdentifierRegistry | None = None) -> None:
        self.config = config
        self.registry = registry or IdentifierRegistry()
        self.descriptors = DescriptorGenerator(config)
        self.manifest = ManifestGenerator(config)

    def generate_all(self, graph: DependencyGraph) -> GenerationReport:
        """Every descriptor plus the manifest."""
        report = GenerationReport(modules=len(graph))
        # Assign ids up front so references render against a complete registry.
        for module in graph:
            self.registry.id_for(module.name)

        if self.config.generate_descriptors:
            analyzers = self._analyzers()
            for module in graph:
                self._write_descriptor(module, graph, analyzers, report)
        if self.config.generate_manifest:
            self._write_manifest(graph, report)

        logger.info(
            "Generated %d modules: %d written, %d unchanged, %d failed",
            len(graph),
            len(report.written),
            len(report.unchanged),
            len(report.failed),
        )
        return report

    def owner_of(self, path: str, graph: DependencyGraph) -> Module:
        """Module listing *path* as a source file. Raises UnattributedChangeError."""
        module = graph.owner_of(path)
        if module is None:
            raise UnattributedChangeError(path)
        return module

    def sync_file(self, path: str, kind: ChangeKind, graph: DependencyGraph) -> GenerationReport:
        """Regenerate only the descriptor of the module owning *path*.

        *graph* must be a snapshot in which *path* is listed, so for a deleted
        file pass the snapshot taken before the deletion.
        """
        module = self.owner_of(path, graph)
        logger.debug("%s %s -> %s", kind, path, module.name)
        return self.regenerate([module.name], graph, manifest=False)

    def regenerate(self, names, graph: DependencyGraph, *, manifest: bool) -> GenerationReport:
        """Descriptors for *names* (each once), then optionally the manifest."""
        report = GenerationReport(modules=len(graph))
        wanted = sorted(set(names))
        for module in graph:
            self.registry.id_for(module.name)

        if self.config.generate_descriptors and wanted:
            analyzers = self._analyzers()
            for name in wanted:
                module = graph.get(name)
                if module is None:
                    logger.warning("Module %s is not in the current graph; skipping", name)
                    continue
                self._write_descriptor(module, graph, analyzers, report)
        if manifest and self.config.generate_manifest:
            self._write_manifest(graph, report)
        return report

    def _analyzers(self) -> list[Path]:
        if not self.config.include_analyzers:
            return []
        return find_analyzers(self.config.project_dir, self.config.excluded_dirs)

    def _write_descriptor(
        self,
        module: Module,
        graph: DependencyGraph,
        analyzers: list[Path],
        report: GenerationReport,
    ) -> None:
        try:
            result = self.descriptors.generate(module, graph, self.registry, analyzers)
        except ArtifactWriteError as e:
            logger.error("%s", e)
            report.failed[e.path.name] = e.reason
            return
        report.record(self.descriptors.path_for(module), result)

    def _write_manifest(self, graph: DependencyGraph, report: GenerationReport) -> None:
        try:
            result = self.manifest.generate(graph, self.registry)
        except ArtifactWriteError as e:
            logger.error("%s", e)
            report.failed[e.path.name] = e.reason
            return
        report.record(self.manifest.path, result)
