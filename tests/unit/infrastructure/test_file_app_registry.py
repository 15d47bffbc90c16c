"""
Unit Tests for FileAppRegistry
"""

import pytest

from agent_engine.core.domain.app_config import AppConfig, ModelConfig
from agent_engine.core.domain.errors import AppNotFoundError
from agent_engine.infrastructure.persistence.file_app_registry import FileAppRegistry


@pytest.fixture
def registry(tmp_path):
    return FileAppRegistry(
        apps_dir=str(tmp_path / "apps"),
        api_tools_dir=str(tmp_path / "api_tools"),
        workflows_dir=str(tmp_path / "workflows"),
    )


class TestFileAppRegistry:
    def test_missing_app(self, registry):
        with pytest.raises(AppNotFoundError):
            registry.get_app("ghost")

    def test_partial_config_uses_defaults(self, registry, tmp_path):
        apps_dir = tmp_path / "apps"
        apps_dir.mkdir()
        (apps_dir / "mini.yaml").write_text(
            "name: mini\nmodel_config:\n  provider: deepseek\n  model: deepseek-chat\n",
            encoding="utf-8",
        )

        app = registry.get_app("mini")

        assert app.id == "mini"
        assert app.llm.provider == "deepseek"
        assert app.llm.parameters["max_tokens"] == 8192
        assert app.dialog_round == 3
        assert app.max_iteration_count == 5
        assert app.review_config.enable is False

    def test_corrupt_yaml_is_not_found(self, registry, tmp_path):
        apps_dir = tmp_path / "apps"
        apps_dir.mkdir()
        (apps_dir / "bad.yaml").write_text("name: [unclosed\n", encoding="utf-8")
        (apps_dir / "list.yaml").write_text("- a\n- b\n", encoding="utf-8")

        with pytest.raises(AppNotFoundError):
            registry.get_app("bad")
        with pytest.raises(AppNotFoundError):
            registry.get_app("list")

    def test_save_list_delete(self, registry):
        app = AppConfig(
            id="helper",
            name="Helper",
            llm=ModelConfig(model="gpt-4o"),
            preset_prompt="Be kind.",
        )

        registry.save_app(app)
        loaded = registry.get_app("helper")

        assert loaded.llm.model == "gpt-4o"
        assert loaded.preset_prompt == "Be kind."
        assert [a.id for a in registry.list_apps()] == ["helper"]

        registry.delete_app("helper")
        assert registry.list_apps() == []
        with pytest.raises(AppNotFoundError):
            registry.delete_app("helper")

    def test_saved_yaml_uses_model_config_key(self, registry, tmp_path):
        registry.save_app(AppConfig(id="keyed"))

        content = (tmp_path / "apps" / "keyed.yaml").read_text(encoding="utf-8")

        assert "model_config:" in content
        assert "llm:" not in content

    def test_save_requires_id(self, registry):
        with pytest.raises(ValueError):
            registry.save_app(AppConfig())

    def test_provider_and_workflow_lookup(self, registry, tmp_path):
        (tmp_path / "api_tools").mkdir()
        (tmp_path / "api_tools" / "weather.yaml").write_text(
            "openapi_schema:\n  server: http://x\n", encoding="utf-8"
        )
        (tmp_path / "workflows").mkdir()
        (tmp_path / "workflows" / "wf.yaml").write_text(
            "tool_call_name: wf\nstatus: published\n", encoding="utf-8"
        )

        assert registry.get_api_provider("weather")["id"] == "weather"
        assert registry.get_workflow("wf")["status"] == "published"
        assert registry.get_api_provider("missing") is None
        assert registry.get_workflow("missing") is None

    def test_platform_defaults_apply_under_app(self, tmp_path):
        apps_dir = tmp_path / "apps"
        apps_dir.mkdir()
        (apps_dir / "a.yaml").write_text("dialog_round: 7\n", encoding="utf-8")
        registry = FileAppRegistry(
            apps_dir=str(apps_dir), defaults={"dialog_round": 1, "max_iteration_count": 9}
        )

        app = registry.get_app("a")

        assert app.dialog_round == 7
        assert app.max_iteration_count == 9
