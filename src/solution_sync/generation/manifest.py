"""Solution manifest (``<project>.sln``) generation."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from solution_sync.generation.identifiers import format_id
from solution_sync.generation.writer import WriteResult, write_artifact

if TYPE_CHECKING:
    from solution_sync.config import Config
    from solution_sync.generation.identifiers import IdentifierRegistry
    from solution_sync.graph.models import DependencyGraph

logger = logging.getLogger(__name__)

# Project type id for C# projects.
CSHARP_PROJECT_TYPE = "FAE04EC0-301F-11D3-BF4B-00C04F79EFBC"

CONFIGURATIONS = ("Debug|Any CPU", "Release|Any CPU")

_MANIFEST_HEADER = """\
Microsoft Visual Studio Solution File, Format Version 12.00
# Visual Studio Version 17
VisualStudioVersion = 17.0.31903.59
MinimumVisualStudioVersion = 10.0.40219.1
"""


class ManifestGenerator:
    """Render and write the single solution manifest listing every module."""

    def __init__(self, config: Config) -> None:
        self.config = config

    @property
    def path(self) -> Path:
        return self.config.manifest_path

    def render(self, graph: DependencyGraph, registry: IdentifierRegistry) -> str:
        lines = [_MANIFEST_HEADER]
        for module in graph:
            guid = format_id(registry.id_for(module.name))
            descriptor = self.config.descriptor_path(module.name).name
            lines.append(
                f'Project("{{{CSHARP_PROJECT_TYPE}}}") = '
                f'"{module.name}", "{descriptor}", "{{{guid}}}"\n'
            )
            lines.append("EndProject\n")

        lines.append("Global\n")
        lines.append("\tGlobalSection(SolutionConfigurationPlatforms) = preSolution\n")
        lines.extend(f"\t\t{cfg} = {cfg}\n" for cfg in CONFIGURATIONS)
        lines.append("\tEndGlobalSection\n")
        lines.append("\tGlobalSection(ProjectConfigurationPlatforms) = postSolution\n")
        for module in graph:
            guid = format_id(registry.id_for(module.name))
            for cfg in CONFIGURATIONS:
                lines.append(f"\t\t{{{guid}}}.{cfg}.ActiveCfg = {cfg}\n")
                lines.append(f"\t\t{{{guid}}}.{cfg}.Build.0 = {cfg}\n")
        lines.append("\tEndGlobalSection\n")
        lines.append("EndGlobal\n")
        return "".join(lines)

    def generate(self, graph: DependencyGraph, registry: IdentifierRegistry) -> WriteResult:
        """Render and write. Raises ArtifactWriteError; the old file stays intact."""
        result = write_artifact(self.path, self.render(graph, registry))
        logger.debug("Manifest %s: %s", self.path.name, result.value)
        return result
