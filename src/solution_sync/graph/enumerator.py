"""Module enumeration -- the collaborator that tells the engine which modules exist.

Hosts with their own compilation model pass a StaticEnumerator (or any object
with ``enumerate_modules()``). DefinitionEnumerator derives modules from
``*.asmdef`` definition files in the source tree:

    Assets/
      Core/Core.asmdef          -> module "Core" owns Assets/Core/**
      Core/Editor/Editor.asmdef -> module "Editor" (nearest definition wins)
      Extra/Extra.asmref        -> Assets/Extra/** also belongs to the referenced module
      Scripts/Player.cs         -> default module (no definition above it)
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from solution_sync.exceptions import ModuleDefinitionError
from solution_sync.graph.models import Module

if TYPE_CHECKING:
    from solution_sync.config import Config

logger = logging.getLogger(__name__)

DEFINITION_SUFFIX = ".asmdef"
REFERENCE_SUFFIX = ".asmref"
PRECOMPILED_SUFFIX = ".dll"
GUID_REFERENCE_PREFIX = "GUID:"


class ModuleEnumerator(Protocol):
    def enumerate_modules(self) -> list[Module]: ...


class StaticEnumerator:
    """Serve a host-supplied module list. Reassign ``modules`` to change it."""

    def __init__(self, modules=()) -> None:
        self.modules: list[Module] = list(modules)

    def enumerate_modules(self) -> list[Module]:
        return list(self.modules)


class ModuleDefinition(BaseModel):
    """Contents of a ``.asmdef`` file."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: str = Field(min_length=1, pattern=r'^[^"\r\n]+$')
    references: list[str] = Field(default_factory=list)
    defines: list[str] = Field(default_factory=list)
    allow_unsafe: bool = Field(default=False, alias="allowUnsafeCode")
    precompiled_references: list[str] = Field(default_factory=list, alias="precompiledReferences")
    auto_referenced: bool = Field(default=True, alias="autoReferenced")


class ModuleReferenceFile(BaseModel):
    """Contents of a ``.asmref`` file."""

    model_config = ConfigDict(extra="ignore")

    reference: str = Field(min_length=1)


def load_definition(path: Path) -> ModuleDefinition:
    """Parse a definition file. Raises ModuleDefinitionError."""
    try:
        return ModuleDefinition.model_validate_json(path.read_text(encoding="utf-8-sig"))
    except (OSError, ValidationError) as e:
        raise ModuleDefinitionError(path, str(e)) from e


def load_reference(path: Path) -> ModuleReferenceFile:
    """Parse a reference file. Raises ModuleDefinitionError."""
    try:
        return ModuleReferenceFile.model_validate_json(path.read_text(encoding="utf-8-sig"))
    except (OSError, ValidationError) as e:
        raise ModuleDefinitionError(path, str(e)) from e


class DefinitionEnumerator:
    """Build modules from definition files found under ``config.source_root``."""

    def __init__(self, config: Config) -> None:
        self.config = config

    def enumerate_modules(self) -> list[Module]:
        root = self.config.source_root
        if not root.is_dir():
            logger.warning("Source root %s not found; no modules", root)
            return []

        definitions: dict[Path, ModuleDefinition] = {}
        redirects: dict[Path, str] = {}
        sources: list[Path] = []
        precompiled: dict[str, Path] = {}

        for dirpath, dirnames, filenames in os.walk(root):
            dirnames[:] = sorted(
                d
                for d in dirnames
                if not d.startswith(".") and d not in self.config.excluded_dirs
            )
            directory = Path(dirpath)
            for filename in sorted(filenames):
                path = directory / filename
                suffix = path.suffix.lower()
                if suffix == DEFINITION_SUFFIX:
                    self._add_definition(path, definitions)
                elif suffix == REFERENCE_SUFFIX:
                    self._add_redirect(path, redirects)
                elif suffix in self.config.source_extensions:
                    sources.append(path)
                elif suffix == PRECOMPILED_SUFFIX:
                    precompiled.setdefault(filename.lower(), path)

        module_dirs = self._module_dirs(definitions, redirects)
        owned: dict[str, list[str]] = {}
        for source in sorted(sources):
            owner = self._owner(source.parent, module_dirs, root) or self.config.default_module
            owned.setdefault(owner, []).append(str(source))

        modules: list[Module] = []
        for definition in definitions.values():
            modules.append(
                Module(
                    name=definition.name,
                    source_files=owned.get(definition.name, ()),
                    external_references=self._resolve_precompiled(definition, precompiled),
                    module_references=[
                        ref
                        for ref in definition.references
                        if not ref.startswith(GUID_REFERENCE_PREFIX)
                    ],
                    compile_defines=[*self.config.defines, *definition.defines],
                    allow_unsafe=definition.allow_unsafe,
                )
            )

        default_sources = owned.get(self.config.default_module)
        if default_sources and self.config.default_module not in module_dirs.values():
            modules.append(
                Module(
                    name=self.config.default_module,
                    source_files=default_sources,
                    module_references=[d.name for d in definitions.values() if d.auto_referenced],
                    compile_defines=self.config.defines,
                )
            )

        modules.sort(key=lambda m: m.name)
        logger.debug("Enumerated %d modules under %s", len(modules), root)
        return modules

    def _add_definition(self, path: Path, definitions: dict[Path, ModuleDefinition]) -> None:
        try:
            definition = load_definition(path)
        except ModuleDefinitionError as e:
            logger.warning("Skipping module definition: %s", e)
            return
        if path.parent in definitions:
            logger.warning("Ignoring %s: directory already has a module definition", path)
            return
        if any(d.name == definition.name for d in definitions.values()):
            logger.warning("Ignoring %s: duplicate module name %r", path, definition.name)
            return
        definitions[path.parent] = definition

    def _add_redirect(self, path: Path, redirects: dict[Path, str]) -> None:
        try:
            redirects.setdefault(path.parent, load_reference(path).reference)
        except ModuleDefinitionError as e:
            logger.warning("Skipping module reference: %s", e)

    def _module_dirs(
        self,
        definitions: dict[Path, ModuleDefinition],
        redirects: dict[Path, str],
    ) -> dict[Path, str]:
        """Directory -> owning module name for every definition and valid reference."""
        module_dirs = {directory: d.name for directory, d in definitions.items()}
        known = set(module_dirs.values())
        for directory, target in redirects.items():
            if directory in module_dirs:
                continue
            if target not in known:
                logger.warning("%s references unknown module %r", directory, target)
                continue
            module_dirs[directory] = target
        return module_dirs

    @staticmethod
    def _owner(directory: Path, module_dirs: dict[Path, str], root: Path) -> str | None:
        """Walk up from *directory* to *root*; nearest definition wins."""
        current = directory
        while True:
            name = module_dirs.get(current)
            if name is not None:
                return name
            if current == root or current.parent == current:
                return None
            current = current.parent

    @staticmethod
    def _resolve_precompiled(
        definition: ModuleDefinition,
        precompiled: dict[str, Path],
    ) -> list[str]:
        resolved: list[str] = []
        for name in definition.precompiled_references:
            path = precompiled.get(name.lower())
            if path is None:
                logger.warning(
                    "Module %s: precompiled reference %s not found", definition.name, name
                )
                continue
            resolved.append(str(path))
        return resolved
