"""Configuration management for solution-sync."""

from __future__ import annotations

import logging
import tomllib
from dataclasses import dataclass, field, fields
from pathlib import Path

from solution_sync.exceptions import ConfigError

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = "solution-sync.toml"
MIN_SYNC_INTERVAL = 0.1

TRACKED_EXTENSIONS: tuple[str, ...] = (
    ".cs",
    ".shader",
    ".compute",
    ".hlsl",
    ".cginc",
    ".uss",
    ".uxml",
    ".json",
    ".xml",
    ".txt",
    ".md",
    ".asmdef",
    ".asmref",
)


def normalize_extensions(values) -> tuple[str, ...]:
    """Lower-case, dot-prefixed, de-duplicated extensions in first-seen order."""
    normalized: list[str] = []
    for raw in values or ():
        token = str(raw).strip().lower()
        if not token or token == ".":
            continue
        if not token.startswith("."):
            token = f".{token}"
        if token not in normalized:
            normalized.append(token)
    return tuple(normalized)


@dataclass
class Config:
    """Central configuration: watched tree, generation toggles, artifact paths."""

    project_dir: Path = field(default_factory=Path.cwd)
    source_dir: str = "Assets"

    # Sync toggles
    enable_sync: bool = True
    sync_interval: float = 1.0
    enable_logging: bool = False

    # Generation toggles
    generate_descriptors: bool = True
    generate_manifest: bool = True
    include_analyzers: bool = True

    # File classification
    tracked_extensions: tuple[str, ...] = TRACKED_EXTENSIONS
    source_extensions: tuple[str, ...] = (".cs",)
    definition_extensions: tuple[str, ...] = (".asmdef", ".asmref")
    excluded_dirs: tuple[str, ...] = (".git", "Library", "Temp", "Logs", "obj")

    # Descriptor content
    default_module: str = "Assembly-CSharp"
    defines: tuple[str, ...] = ()
    lang_version: str = "9.0"
    target_framework: str = "v4.7.1"

    def __post_init__(self) -> None:
        self.project_dir = Path(self.project_dir).expanduser().resolve()
        self.sync_interval = max(MIN_SYNC_INTERVAL, float(self.sync_interval))
        self.tracked_extensions = normalize_extensions(self.tracked_extensions)
        self.source_extensions = normalize_extensions(self.source_extensions)
        self.definition_extensions = normalize_extensions(self.definition_extensions)
        self.excluded_dirs = tuple(self.excluded_dirs)
        self.defines = tuple(self.defines)

    @property
    def source_root(self) -> Path:
        return self.project_dir / self.source_dir

    @property
    def project_name(self) -> str:
        return self.project_dir.name

    @property
    def manifest_path(self) -> Path:
        return self.project_dir / f"{self.project_name}.sln"

    def descriptor_path(self, module_name: str) -> Path:
        return self.project_dir / f"{module_name}.csproj"

    @property
    def state_dir(self) -> Path:
        return self.project_dir / ".solution-sync"

    @property
    def log_dir(self) -> Path:
        return self.state_dir / "logs"

    def ensure_dirs(self) -> None:
        """Create state directories if they don't exist."""
        self.state_dir.mkdir(parents=True, exist_ok=True)
        self.log_dir.mkdir(parents=True, exist_ok=True)

    def is_source_file(self, path: str | Path) -> bool:
        return Path(path).suffix.lower() in self.source_extensions

    def is_definition_file(self, path: str | Path) -> bool:
        return Path(path).suffix.lower() in self.definition_extensions

    @classmethod
    def load(cls, project_dir: Path | str) -> Config:
        """Build a Config for *project_dir*, applying ``solution-sync.toml`` if present.

        Unknown keys are ignored with a warning. Values of the wrong type
        raise ConfigError.
        """
        project_dir = Path(project_dir).expanduser().resolve()
        config_file = project_dir / CONFIG_FILE_NAME
        if not config_file.exists():
            return cls(project_dir=project_dir)

        try:
            raw = tomllib.loads(config_file.read_text(encoding="utf-8"))
        except (OSError, tomllib.TOMLDecodeError) as e:
            msg = f"Cannot read {config_file}: {e}"
            raise ConfigError(msg) from e

        known = {f.name: f for f in fields(cls)}
        kwargs: dict[str, object] = {"project_dir": project_dir}
        for key, value in raw.items():
            name = key.replace("-", "_")
            if name == "project_dir" or name not in known:
                logger.warning("Ignoring unknown config key %r in %s", key, config_file)
                continue
            kwargs[name] = _coerce(name, value, cls.__dataclass_fields__[name].default)
        return cls(**kwargs)


def _coerce(name: str, value: object, default: object) -> object:
    """Coerce a TOML value to the type of the field default."""
    if isinstance(default, bool):
        if isinstance(value, bool):
            return value
    elif isinstance(default, float):
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return float(value)
    elif isinstance(default, str):
        if isinstance(value, str) and value.strip():
            return value.strip()
    elif isinstance(default, tuple):
        if isinstance(value, list) and all(isinstance(v, str) for v in value):
            return tuple(value)
    msg = f"Invalid value for {name!r}: {value!r}"
    raise ConfigError(msg)
