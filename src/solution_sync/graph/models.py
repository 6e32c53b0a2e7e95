"""Module graph snapshot types.

Modules come fresh from a ModuleEnumerator on every refresh and are never
mutated by the sync engine.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field

# Characters that would break a quoted manifest line.
_FORBIDDEN_NAME_CHARS = frozenset('"\r\n')


def _dedupe(values) -> tuple[str, ...]:
    seen: dict[str, None] = {}
    for value in values:
        seen.setdefault(value, None)
    return tuple(seen)


@dataclass(frozen=True, slots=True)
class Module:
    """A compilable unit: its own source list, references and compile flags."""

    name: str
    source_files: tuple[str, ...] = ()  # absolute paths, order preserved
    external_references: frozenset[str] = field(default_factory=frozenset)  # dll paths
    module_references: frozenset[str] = field(default_factory=frozenset)  # module names
    compile_defines: tuple[str, ...] = ()  # de-duplicated, first-seen order
    allow_unsafe: bool = False

    def __post_init__(self) -> None:
        # Normalize collection types so callers can pass lists/sets.
        object.__setattr__(
            self, "source_files", tuple(os.path.abspath(p) for p in self.source_files)
        )
        object.__setattr__(self, "external_references", frozenset(self.external_references))
        object.__setattr__(self, "module_references", frozenset(self.module_references))
        object.__setattr__(self, "compile_defines", _dedupe(self.compile_defines))

    def owns(self, path: str) -> bool:
        """True if *path* is one of this module's source files."""
        target = os.path.normcase(os.path.abspath(path))
        return any(os.path.normcase(p) == target for p in self.source_files)


class DependencyGraph:
    """Immutable snapshot of modules, in enumeration order."""

    def __init__(self, modules) -> None:
        self._modules: tuple[Module, ...] = tuple(modules)
        self._by_name: dict[str, Module] = {}
        for module in self._modules:
            if _FORBIDDEN_NAME_CHARS.intersection(module.name):
                msg = f"Invalid module name: {module.name!r}"
                raise ValueError(msg)
            if module.name in self._by_name:
                msg = f"Duplicate module name: {module.name}"
                raise ValueError(msg)
            self._by_name[module.name] = module

    @property
    def modules(self) -> tuple[Module, ...]:
        return self._modules

    @property
    def module_names(self) -> frozenset[str]:
        return frozenset(self._by_name)

    def get(self, name: str) -> Module | None:
        return self._by_name.get(name)

    def owner_of(self, path: str) -> Module | None:
        """First module listing *path* as a source file, or None."""
        for module in self._modules:
            if module.owns(path):
                return module
        return None

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    def __iter__(self):
        return iter(self._modules)

    def __len__(self) -> int:
        return len(self._modules)
