"""Tests for module enumeration from definition files."""

import pytest
from conftest import write, write_definition

from solution_sync.config import Config
from solution_sync.exceptions import ModuleDefinitionError
from solution_sync.graph.enumerator import (
    DefinitionEnumerator,
    StaticEnumerator,
    load_definition,
)
from solution_sync.graph.models import DependencyGraph, Module
from solution_sync.graph.provider import GraphProvider


def _graph(config):
    return DependencyGraph(DefinitionEnumerator(config).enumerate_modules())


class TestDefinitionEnumerator:
    def test_modules_from_definitions(self, tmp_config, definition_project):
        graph = _graph(tmp_config)
        assert [m.name for m in graph] == ["Assembly-CSharp", "Core", "Gameplay"]
        core = graph.get("Core")
        assert [p.rsplit("/", 1)[-1] for p in core.source_files] == ["A.cs", "B.cs"]
        assert core.compile_defines == ("CORE_ENABLED",)

    def test_references_and_flags(self, tmp_config, definition_project):
        gameplay = _graph(tmp_config).get("Gameplay")
        assert gameplay.module_references == {"Core"}
        assert gameplay.allow_unsafe is True

    def test_default_module_gets_loose_files(self, tmp_config, definition_project):
        """Files outside any definition land in the default module, which sees every module."""
        default = _graph(tmp_config).get("Assembly-CSharp")
        assert [p.rsplit("/", 1)[-1] for p in default.source_files] == ["Main.cs"]
        assert default.module_references == {"Core", "Gameplay"}

    def test_no_default_module_without_loose_files(self, tmp_config, assets):
        write_definition(assets / "Core", "Core")
        write(assets / "Core" / "A.cs")
        assert [m.name for m in _graph(tmp_config)] == ["Core"]

    def test_auto_referenced_false_excluded_from_default(self, tmp_config, assets):
        write_definition(assets / "Editor", "EditorTools", autoReferenced=False)
        write(assets / "Editor" / "Tool.cs")
        write(assets / "Main.cs")
        assert _graph(tmp_config).get("Assembly-CSharp").module_references == frozenset()

    def test_nearest_definition_wins(self, tmp_config, assets):
        write_definition(assets / "Core", "Core")
        write_definition(assets / "Core" / "Editor", "CoreEditor")
        write(assets / "Core" / "A.cs")
        write(assets / "Core" / "Editor" / "Inspector.cs")
        write(assets / "Core" / "Editor" / "Sub" / "Deep.cs")
        graph = _graph(tmp_config)
        assert len(graph.get("Core").source_files) == 1
        assert len(graph.get("CoreEditor").source_files) == 2

    def test_reference_file_redirects_directory(self, tmp_config, assets):
        write_definition(assets / "Core", "Core")
        write(assets / "Core" / "A.cs")
        write(assets / "Extensions" / "Ext.asmref", '{"reference": "Core"}')
        ext = write(assets / "Extensions" / "Ext.cs")
        assert _graph(tmp_config).owner_of(str(ext)).name == "Core"

    def test_reference_to_unknown_module_ignored(self, tmp_config, assets, caplog):
        write(assets / "Extensions" / "Ext.asmref", '{"reference": "Ghost"}')
        write(assets / "Extensions" / "Ext.cs")
        assert _graph(tmp_config).get("Assembly-CSharp") is not None
        assert "Ghost" in caplog.text

    def test_guid_references_dropped(self, tmp_config, assets):
        write_definition(assets / "Core", "Core", references=["GUID:0123abcd", "Other"])
        write(assets / "Core" / "A.cs")
        assert _graph(tmp_config).get("Core").module_references == {"Other"}

    def test_precompiled_references_resolved(self, tmp_config, assets):
        dll = write(assets / "Plugins" / "Newtonsoft.Json.dll")
        write_definition(
            assets / "Core", "Core", precompiledReferences=["Newtonsoft.Json.dll", "Missing.dll"]
        )
        write(assets / "Core" / "A.cs")
        assert _graph(tmp_config).get("Core").external_references == {str(dll)}

    def test_malformed_definition_skipped(self, tmp_config, assets, caplog):
        """A broken definition is logged; its files fall through to the default module."""
        write(assets / "Broken" / "Broken.asmdef", "{not json")
        write(assets / "Broken" / "A.cs")
        graph = _graph(tmp_config)
        assert [m.name for m in graph] == ["Assembly-CSharp"]
        assert "Skipping module definition" in caplog.text

    def test_duplicate_names_keep_first(self, tmp_config, assets):
        write_definition(assets / "A", "Core")
        write_definition(assets / "B", "Core")
        write(assets / "A" / "One.cs")
        write(assets / "B" / "Two.cs")
        graph = _graph(tmp_config)
        assert len(graph.get("Core").source_files) == 1

    def test_project_defines_prefixed(self, project_dir, definition_project):
        config = Config(project_dir=project_dir, defines=("UNITY_EDITOR", "CORE_ENABLED"))
        graph = _graph(config)
        assert graph.get("Core").compile_defines == ("UNITY_EDITOR", "CORE_ENABLED")
        assert graph.get("Assembly-CSharp").compile_defines == ("UNITY_EDITOR", "CORE_ENABLED")

    def test_excluded_and_hidden_dirs_skipped(self, tmp_config, assets):
        write(assets / "obj" / "Gen.cs")
        write(assets / ".trash" / "Old.cs")
        assert len(_graph(tmp_config)) == 0

    def test_missing_source_root(self, project_dir):
        config = Config(project_dir=project_dir, source_dir="Nope")
        assert DefinitionEnumerator(config).enumerate_modules() == []

    def test_load_definition_bom(self, tmp_path):
        path = tmp_path / "Core.asmdef"
        path.write_bytes(b'\xef\xbb\xbf{"name": "Core", "allowUnsafeCode": true}')
        definition = load_definition(path)
        assert definition.name == "Core"
        assert definition.allow_unsafe is True

    def test_load_definition_requires_name(self, tmp_path):
        path = write(tmp_path / "Bad.asmdef", '{"references": []}')
        with pytest.raises(ModuleDefinitionError):
            load_definition(path)

    def test_load_definition_rejects_quoted_name(self, tmp_path):
        path = write_definition(tmp_path, 'Core" Evil')
        with pytest.raises(ModuleDefinitionError):
            load_definition(path)


class TestGraph:
    def test_duplicate_module_names_rejected(self):
        with pytest.raises(ValueError, match="Duplicate"):
            DependencyGraph([Module(name="Core"), Module(name="Core")])

    def test_names_that_break_manifest_lines_rejected(self):
        for name in ('Core"', "Core\nEndProject"):
            with pytest.raises(ValueError, match="Invalid module name"):
                DependencyGraph([Module(name=name)])

    def test_owner_of(self, core_modules, core_sources):
        graph = DependencyGraph(core_modules)
        assert graph.owner_of(str(core_sources[1])).name == "Core"
        assert graph.owner_of("/nowhere/X.cs") is None

    def test_module_normalizes_collections(self):
        module = Module(name="M", module_references=["A", "A"], compile_defines=["X", "Y", "X"])
        assert module.module_references == frozenset({"A"})
        assert module.compile_defines == ("X", "Y")


class TestGraphProvider:
    def test_snapshot_cached_until_refresh(self, core_modules):
        enumerator = StaticEnumerator(core_modules)
        provider = GraphProvider(enumerator)
        assert provider.current() is None
        first = provider.refresh()
        enumerator.modules = core_modules[:1]
        assert provider.current() is first
        assert len(provider.refresh()) == 1
        assert provider.current() is not first

    def test_invalidate(self, core_modules):
        provider = GraphProvider(StaticEnumerator(core_modules))
        provider.refresh()
        provider.invalidate()
        assert provider.current() is None
