"""Tests for the solution-sync CLI."""

from __future__ import annotations

from unittest.mock import patch

from typer.testing import CliRunner

from solution_sync.cli.main import app

runner = CliRunner()


class TestGenerate:
    def test_generates_artifacts(self, project_dir, definition_project):
        result = runner.invoke(app, ["generate", "--project", str(project_dir)])
        assert result.exit_code == 0, result.output
        assert "3 modules" in result.output
        assert (project_dir / "Core.csproj").exists()
        assert (project_dir / "Game.sln").exists()

    def test_second_run_reports_unchanged(self, project_dir, definition_project):
        runner.invoke(app, ["generate", "--project", str(project_dir)])
        result = runner.invoke(app, ["generate", "-p", str(project_dir)])
        assert result.exit_code == 0
        assert "0 written" in result.output
        assert "4 unchanged" in result.output

    def test_write_failure_exits_nonzero(self, project_dir, definition_project):
        from solution_sync.exceptions import ArtifactWriteError

        def fail(path, content):
            raise ArtifactWriteError(path, "read-only")

        with patch("solution_sync.generation.descriptor.write_artifact", side_effect=fail):
            result = runner.invoke(app, ["generate", "--project", str(project_dir)])
        assert result.exit_code == 1
        assert "read-only" in result.output

    def test_bad_config_exits_nonzero(self, project_dir):
        (project_dir / "solution-sync.toml").write_text("sync_interval = 'fast'\n")
        result = runner.invoke(app, ["generate", "--project", str(project_dir)])
        assert result.exit_code == 1
        assert "Config error" in result.output


class TestSync:
    def test_force_sync(self, project_dir, definition_project):
        result = runner.invoke(app, ["sync", "--project", str(project_dir)])
        assert result.exit_code == 0, result.output
        assert (project_dir / "Gameplay.csproj").exists()


class TestStatus:
    def test_lists_modules(self, project_dir, definition_project):
        runner.invoke(app, ["generate", "--project", str(project_dir)])
        result = runner.invoke(app, ["status", "--project", str(project_dir)])
        assert result.exit_code == 0, result.output
        assert "Modules" in result.output
        assert "Core" in result.output
        assert "(present)" in result.output

    def test_missing_source_dir(self, tmp_path):
        result = runner.invoke(app, ["status", "--project", str(tmp_path)])
        assert result.exit_code == 1
        assert "not found" in result.output

    def test_no_modules(self, project_dir):
        result = runner.invoke(app, ["status", "--project", str(project_dir)])
        assert result.exit_code == 0
        assert "No modules" in result.output


class TestWatch:
    def test_disabled_sync_exits(self, project_dir):
        (project_dir / "solution-sync.toml").write_text("enable_sync = false\n")
        result = runner.invoke(app, ["watch", "--project", str(project_dir)])
        assert result.exit_code == 1
        assert "disabled" in result.output

    def test_runs_until_interrupted(self, project_dir, definition_project):
        with patch("solution_sync.cli.watch_cmd._wait_for_interrupt", side_effect=KeyboardInterrupt):
            result = runner.invoke(app, ["watch", "--project", str(project_dir)])
        assert result.exit_code == 0, result.output
        assert "Watching" in result.output
        assert (project_dir / "Core.csproj").exists()
