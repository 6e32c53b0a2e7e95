"""Per-module project descriptor (``<Module>.csproj``) generation."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import TYPE_CHECKING

from solution_sync.generation.identifiers import format_id
from solution_sync.generation.writer import WriteResult, write_artifact

if TYPE_CHECKING:
    from solution_sync.config import Config
    from solution_sync.generation.identifiers import IdentifierRegistry
    from solution_sync.graph.models import DependencyGraph, Module

logger = logging.getLogger(__name__)

_DESCRIPTOR_TEMPLATE = """\
<?xml version="1.0" encoding="utf-8"?>
<Project ToolsVersion="4.0" DefaultTargets="Build" \
xmlns="http://schemas.microsoft.com/developer/msbuild/2003">
  <PropertyGroup>
    <LangVersion>{lang_version}</LangVersion>
    <_TargetFrameworkDirectories>non_empty_path_generated_by_unity</_TargetFrameworkDirectories>
    <_FullFrameworkReferenceAssemblyPaths>non_empty_path_generated_by_unity</_FullFrameworkReferenceAssemblyPaths>
    <DisableHandlePackageFileConflicts>true</DisableHandlePackageFileConflicts>
    <Configuration Condition=" '$(Configuration)' == '' ">Debug</Configuration>
    <Platform Condition=" '$(Platform)' == '' ">AnyCPU</Platform>
    <ProductVersion>10.0.20506</ProductVersion>
    <SchemaVersion>2.0</SchemaVersion>
    <ProjectGuid>{{{project_guid}}}</ProjectGuid>
    <OutputType>Library</OutputType>
    <AppDesignerFolder>Properties</AppDesignerFolder>
    <RootNamespace>{name}</RootNamespace>
    <AssemblyName>{name}</AssemblyName>
    <TargetFrameworkVersion>{target_framework}</TargetFrameworkVersion>
    <FileAlignment>512</FileAlignment>
    <BaseDirectory>{base_directory}</BaseDirectory>
    <Nullable>enable</Nullable>
    <ImplicitUsings>disable</ImplicitUsings>
  </PropertyGroup>
  <PropertyGroup Condition=" '$(Configuration)|$(Platform)' == 'Debug|AnyCPU' ">
    <DebugSymbols>true</DebugSymbols>
    <DebugType>full</DebugType>
    <Optimize>false</Optimize>
    <OutputPath>Temp\\bin\\Debug\\</OutputPath>
    <DefineConstants>{defines}</DefineConstants>
    <ErrorReport>prompt</ErrorReport>
    <WarningLevel>4</WarningLevel>
    <NoWarn>0169;CS0649</NoWarn>
    <AllowUnsafeBlocks>{allow_unsafe}</AllowUnsafeBlocks>
  </PropertyGroup>
  <PropertyGroup Condition=" '$(Configuration)|$(Platform)' == 'Release|AnyCPU' ">
    <DebugType>pdbonly</DebugType>
    <Optimize>true</Optimize>
    <OutputPath>Temp\\bin\\Release\\</OutputPath>
    <DefineConstants>{defines}</DefineConstants>
    <ErrorReport>prompt</ErrorReport>
    <WarningLevel>4</WarningLevel>
    <NoWarn>0169;CS0649</NoWarn>
    <AllowUnsafeBlocks>{allow_unsafe}</AllowUnsafeBlocks>
  </PropertyGroup>
  <ItemGroup>
{compile_items}  </ItemGroup>
  <ItemGroup>
{reference_items}  </ItemGroup>
  <ItemGroup>
{project_reference_items}  </ItemGroup>
{analyzer_section}  <Import Project="$(MSBuildToolsPath)\\Microsoft.CSharp.targets" />
</Project>
"""


def escape_xml(text: str) -> str:
    """Escape the five XML special characters."""
    return (
        text.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
        .replace("'", "&apos;")
    )


def relative_path(path: str | Path, project_dir: Path) -> str:
    """Project-root-relative POSIX path; paths outside the project stay absolute."""
    full = Path(os.path.abspath(path))
    try:
        return full.relative_to(project_dir).as_posix()
    except ValueError:
        return full.as_posix()


def find_analyzers(project_dir: Path, excluded_dirs=()) -> list[Path]:
    """``*.dll`` files with ``analyzers`` in their directory path or file name, sorted."""
    excluded = frozenset(excluded_dirs)
    found: list[Path] = []
    for dirpath, dirnames, filenames in os.walk(project_dir):
        dirnames[:] = [d for d in dirnames if not d.startswith(".") and d not in excluded]
        directory = Path(dirpath)
        in_analyzers = any(
            part.lower() == "analyzers" for part in directory.relative_to(project_dir).parts
        )
        for filename in filenames:
            lowered = filename.lower()
            if lowered.endswith(".dll") and (in_analyzers or "analyzers" in lowered):
                found.append(directory / filename)
    return sorted(found)


class DescriptorGenerator:
    """Render and write one project descriptor per module."""

    def __init__(self, config: Config) -> None:
        self.config = config

    def path_for(self, module: Module) -> Path:
        return self.config.descriptor_path(module.name)

    def render(
        self,
        module: Module,
        graph: DependencyGraph,
        registry: IdentifierRegistry,
        analyzers: list[Path] | tuple[Path, ...] = (),
    ) -> str:
        """Full descriptor text. Identical inputs give identical output."""
        project_dir = self.config.project_dir
        return _DESCRIPTOR_TEMPLATE.format(
            lang_version=escape_xml(self.config.lang_version),
            project_guid=format_id(registry.id_for(module.name)),
            name=escape_xml(module.name),
            target_framework=escape_xml(self.config.target_framework),
            base_directory=escape_xml(project_dir.as_posix()),
            defines=escape_xml(";".join(module.compile_defines)),
            allow_unsafe="true" if module.allow_unsafe else "false",
            compile_items=self._compile_items(module),
            reference_items=self._reference_items(module, graph),
            project_reference_items=self._project_reference_items(module, graph, registry),
            analyzer_section=self._analyzer_section(analyzers),
        )

    def generate(
        self,
        module: Module,
        graph: DependencyGraph,
        registry: IdentifierRegistry,
        analyzers: list[Path] | tuple[Path, ...] = (),
    ) -> WriteResult:
        """Render and write. Raises ArtifactWriteError; the old file stays intact."""
        path = self.path_for(module)
        result = write_artifact(path, self.render(module, graph, registry, analyzers))
        logger.debug("Descriptor %s: %s", path.name, result.value)
        return result

    def _compile_items(self, module: Module) -> str:
        project_dir = self.config.project_dir
        return "".join(
            f'    <Compile Include="{escape_xml(relative_path(src, project_dir))}" />\n'
            for src in module.source_files
        )

    def _reference_items(self, module: Module, graph: DependencyGraph) -> str:
        lines: list[str] = []
        for reference in sorted(module.external_references):
            name = Path(reference).stem
            # In-graph modules are expressed as project references instead.
            if name in graph:
                continue
            hint = relative_path(reference, self.config.project_dir)
            lines.append(f'    <Reference Include="{escape_xml(name)}">\n')
            lines.append(f"      <HintPath>{escape_xml(hint)}</HintPath>\n")
            lines.append("    </Reference>\n")
        return "".join(lines)

    def _project_reference_items(
        self,
        module: Module,
        graph: DependencyGraph,
        registry: IdentifierRegistry,
    ) -> str:
        lines: list[str] = []
        for name in sorted(module.module_references):
            if name not in graph:
                logger.debug("Module %s references unknown module %s", module.name, name)
                continue
            guid = format_id(registry.id_for(name))
            lines.append(f'    <ProjectReference Include="{escape_xml(name)}.csproj">\n')
            lines.append(f"      <Project>{{{guid}}}</Project>\n")
            lines.append(f"      <Name>{escape_xml(name)}</Name>\n")
            lines.append("    </ProjectReference>\n")
        return "".join(lines)

    def _analyzer_section(self, analyzers) -> str:
        if not analyzers:
            return ""
        project_dir = self.config.project_dir
        items = "".join(
            f'    <Analyzer Include="{escape_xml(relative_path(path, project_dir))}" />\n'
            for path in analyzers
        )
        return f"  <ItemGroup>\n{items}  </ItemGroup>\n"
