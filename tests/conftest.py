"""Shared fixtures for all test modules."""

import json

import pytest

from solution_sync.config import Config
from solution_sync.graph.models import Module
from solution_sync.logging.logger import SyncLogger


class FakeObserver:
    """Stand-in for watchdog's Observer: records scheduling, never watches."""

    def __init__(self):
        self.scheduled = []
        self.started = False
        self.stopped = False
        self.alive = False

    def schedule(self, handler, path, recursive=False):
        self.scheduled.append((handler, path, recursive))

    def start(self):
        self.started = True
        self.alive = True

    def stop(self):
        self.stopped = True
        self.alive = False

    def is_alive(self):
        return self.alive

    def join(self, timeout=None):
        pass


@pytest.fixture
def observers():
    """List collecting every FakeObserver created through ``observer_factory``."""
    return []


@pytest.fixture
def observer_factory(observers):
    def factory():
        observer = FakeObserver()
        observers.append(observer)
        return observer

    return factory


def write(path, text=""):
    """Create *path* (and parents) with *text*."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


def write_definition(directory, name, **fields):
    """Write ``<directory>/<name>.asmdef`` with the given JSON fields."""
    return write(directory / f"{name}.asmdef", json.dumps({"name": name, **fields}))


@pytest.fixture
def project_dir(tmp_path):
    """Empty project root with an Assets/ source directory."""
    root = tmp_path / "Game"
    (root / "Assets").mkdir(parents=True)
    return root.resolve()


@pytest.fixture
def tmp_config(project_dir):
    """Config for the temp project. The long interval keeps the debounce thread out of the way."""
    return Config(project_dir=project_dir, sync_interval=60)


@pytest.fixture
def assets(tmp_config):
    return tmp_config.source_root


@pytest.fixture
def core_sources(assets):
    """Assets/Core/{A,B}.cs on disk."""
    a = write(assets / "Core" / "A.cs", "class A {}\n")
    b = write(assets / "Core" / "B.cs", "class B {}\n")
    return a, b


@pytest.fixture
def core_modules(core_sources, assets):
    """Core owns A and B; Gameplay references Core and owns Player."""
    a, b = core_sources
    player = write(assets / "Gameplay" / "Player.cs", "class Player {}\n")
    return [
        Module(name="Core", source_files=[str(a), str(b)]),
        Module(name="Gameplay", source_files=[str(player)], module_references={"Core"}),
    ]


@pytest.fixture
def definition_project(assets):
    """Assets tree described by definition files instead of a static module list."""
    write_definition(assets / "Core", "Core", defines=["CORE_ENABLED"])
    write(assets / "Core" / "A.cs", "class A {}\n")
    write(assets / "Core" / "B.cs", "class B {}\n")
    write_definition(assets / "Gameplay", "Gameplay", references=["Core"], allowUnsafeCode=True)
    write(assets / "Gameplay" / "Player.cs", "class Player {}\n")
    write(assets / "Scripts" / "Main.cs", "class Main {}\n")
    return assets


@pytest.fixture
def sync_logger(tmp_config):
    """SyncLogger writing to the temp project's log dir."""
    return SyncLogger(tmp_config.log_dir)
