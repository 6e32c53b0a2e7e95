"""Tests for Config."""

import pytest

from solution_sync.config import TRACKED_EXTENSIONS, Config, normalize_extensions
from solution_sync.exceptions import ConfigError


class TestConfig:
    def test_default_paths(self, project_dir):
        """Derived paths hang off project_dir."""
        config = Config(project_dir=project_dir)
        assert config.source_root == project_dir / "Assets"
        assert config.project_name == "Game"
        assert config.manifest_path == project_dir / "Game.sln"
        assert config.descriptor_path("Core") == project_dir / "Core.csproj"
        assert config.state_dir == project_dir / ".solution-sync"
        assert config.log_dir == config.state_dir / "logs"

    def test_defaults(self, project_dir):
        """Toggles default on, logging off, full extension allow-list."""
        config = Config(project_dir=project_dir)
        assert config.enable_sync
        assert config.generate_descriptors
        assert config.generate_manifest
        assert config.include_analyzers
        assert not config.enable_logging
        assert config.sync_interval == 1.0
        assert config.tracked_extensions == TRACKED_EXTENSIONS
        assert config.default_module == "Assembly-CSharp"

    def test_interval_clamped(self, project_dir):
        """Intervals below 0.1 s are raised to 0.1 s."""
        assert Config(project_dir=project_dir, sync_interval=0).sync_interval == 0.1
        assert Config(project_dir=project_dir, sync_interval=0.05).sync_interval == 0.1
        assert Config(project_dir=project_dir, sync_interval=2).sync_interval == 2.0

    def test_extensions_normalized(self, project_dir):
        """Extensions get a leading dot and lower case."""
        config = Config(project_dir=project_dir, tracked_extensions=["CS", ".Shader", "cs"])
        assert config.tracked_extensions == (".cs", ".shader")

    def test_ensure_dirs_creates_structure(self, project_dir):
        """ensure_dirs creates the state and log directories."""
        config = Config(project_dir=project_dir)
        assert not config.state_dir.exists()
        config.ensure_dirs()
        assert config.log_dir.is_dir()

    def test_file_classification(self, tmp_config):
        assert tmp_config.is_source_file("Assets/A.CS")
        assert not tmp_config.is_source_file("Assets/readme.md")
        assert tmp_config.is_definition_file("Assets/Core/Core.asmdef")
        assert tmp_config.is_definition_file("Assets/Extra/Extra.asmref")


class TestNormalizeExtensions:
    def test_skips_empty_tokens(self):
        assert normalize_extensions(["", ".", " txt "]) == (".txt",)

    def test_none(self):
        assert normalize_extensions(None) == ()


class TestConfigLoad:
    def test_missing_file_uses_defaults(self, project_dir):
        config = Config.load(project_dir)
        assert config.project_dir == project_dir
        assert config.source_dir == "Assets"

    def test_reads_toml(self, project_dir):
        """Values from solution-sync.toml override the defaults."""
        (project_dir / "solution-sync.toml").write_text(
            'source-dir = "Code"\n'
            "sync_interval = 0.5\n"
            "include_analyzers = false\n"
            'defines = ["UNITY_EDITOR", "DEBUG"]\n',
            encoding="utf-8",
        )
        config = Config.load(project_dir)
        assert config.source_root == project_dir / "Code"
        assert config.sync_interval == 0.5
        assert config.include_analyzers is False
        assert config.defines == ("UNITY_EDITOR", "DEBUG")

    def test_integer_interval_accepted(self, project_dir):
        (project_dir / "solution-sync.toml").write_text("sync_interval = 3\n", encoding="utf-8")
        assert Config.load(project_dir).sync_interval == 3.0

    def test_unknown_keys_ignored(self, project_dir, caplog):
        """Unknown keys log a warning and do not fail loading."""
        (project_dir / "solution-sync.toml").write_text("colour = 'blue'\n", encoding="utf-8")
        config = Config.load(project_dir)
        assert config.source_dir == "Assets"
        assert "colour" in caplog.text

    def test_project_dir_key_ignored(self, project_dir):
        (project_dir / "solution-sync.toml").write_text("project_dir = '/elsewhere'\n")
        assert Config.load(project_dir).project_dir == project_dir

    def test_wrong_type_raises(self, project_dir):
        (project_dir / "solution-sync.toml").write_text("enable_sync = 'yes'\n", encoding="utf-8")
        with pytest.raises(ConfigError, match="enable_sync"):
            Config.load(project_dir)

    def test_malformed_toml_raises(self, project_dir):
        (project_dir / "solution-sync.toml").write_text("enable_sync = \n", encoding="utf-8")
        with pytest.raises(ConfigError, match="Cannot read"):
            Config.load(project_dir)
