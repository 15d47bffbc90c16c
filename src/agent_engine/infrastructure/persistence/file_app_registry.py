"""
File-Based App Registry
=======================

Loads and stores agent application configs as YAML files.

Directory structure:
    <apps_dir>/<app_id>.yaml       - Application configs
    <api_tools_dir>/<id>.yaml      - API tool providers (OpenAPI-style)
    <workflows_dir>/<id>.yaml      - Workflow tool definitions
"""

import os
import tempfile
from pathlib import Path
from typing import Any

import structlog
import yaml
from pydantic import ValidationError

from agent_engine.core.domain.app_config import AppConfig
from agent_engine.core.domain.errors import AppNotFoundError

logger = structlog.get_logger()


class FileAppRegistry:
    """
    File-based application registry with YAML persistence.

    Thread Safety:
        Not thread-safe. Use appropriate locking if concurrent access needed.
    """

    def __init__(
        self,
        apps_dir: str = "configs/apps",
        api_tools_dir: str = "configs/api_tools",
        workflows_dir: str = "configs/workflows",
        defaults: dict[str, Any] | None = None,
    ):
        """
        Args:
            apps_dir: Directory of application YAML files
            api_tools_dir: Directory of API tool provider YAML files
            workflows_dir: Directory of workflow YAML files
            defaults: Platform defaults applied under every application config
        """
        self.apps_dir = Path(apps_dir)
        self.api_tools_dir = Path(api_tools_dir)
        self.workflows_dir = Path(workflows_dir)
        self.defaults = dict(defaults or {})
        self.logger = logger.bind(component="file_app_registry")

    def _get_app_path(self, app_id: str) -> Path:
        return self.apps_dir / f"{app_id}.yaml"

    def _read_yaml(self, path: Path) -> dict[str, Any] | None:
        if not path.exists():
            return None
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            self.logger.warning("yaml.corrupt", path=str(path), error=str(e))
            return None
        if not isinstance(data, dict):
            self.logger.warning("yaml.corrupt", path=str(path), error="not a mapping")
            return None
        return data

    def _atomic_write_yaml(self, path: Path, data: dict[str, Any]) -> None:
        """
        Write YAML atomically using temp file + rename.

        Raises:
            OSError: If file operations fail
        """
        path.parent.mkdir(parents=True, exist_ok=True)
        temp_fd, temp_path = tempfile.mkstemp(dir=path.parent, suffix=".tmp", prefix=".app_")
        try:
            with os.fdopen(temp_fd, "w", encoding="utf-8") as f:
                yaml.safe_dump(
                    data,
                    f,
                    default_flow_style=False,
                    allow_unicode=True,
                    sort_keys=False,
                )
            os.replace(temp_path, path)
            self.logger.debug("app.yaml.written", app_file=str(path), atomic=True)
        except Exception:
            if Path(temp_path).exists():
                Path(temp_path).unlink()
            raise

    def get_app(self, app_id: str) -> AppConfig:
        """
        Load an application config merged onto the defaults.

        Raises:
            AppNotFoundError: No valid config exists for app_id
        """
        data = self._read_yaml(self._get_app_path(app_id))
        if data is None:
            raise AppNotFoundError(app_id)
        try:
            app = AppConfig.model_validate({**self.defaults, **data, "id": app_id})
        except ValidationError as e:
            self.logger.warning("app.yaml.invalid", app_id=app_id, error=str(e))
            raise AppNotFoundError(app_id) from e
        return app

    def list_apps(self) -> list[AppConfig]:
        if not self.apps_dir.exists():
            return []
        apps = []
        for path in sorted(self.apps_dir.glob("*.yaml")):
            try:
                apps.append(self.get_app(path.stem))
            except AppNotFoundError:
                continue
        return apps

    def save_app(self, app: AppConfig) -> AppConfig:
        """Persist an application config under its id."""
        if not app.id:
            raise ValueError("app id is required")
        data = app.model_dump(by_alias=True, exclude={"id"})
        self._atomic_write_yaml(self._get_app_path(app.id), data)
        self.logger.info("app.saved", app_id=app.id)
        return app

    def delete_app(self, app_id: str) -> None:
        path = self._get_app_path(app_id)
        if not path.exists():
            raise AppNotFoundError(app_id)
        path.unlink()
        self.logger.info("app.deleted", app_id=app_id)

    def get_api_provider(self, provider_id: str) -> dict[str, Any] | None:
        """Load an API tool provider definition."""
        data = self._read_yaml(self.api_tools_dir / f"{provider_id}.yaml")
        if data is not None:
            data.setdefault("id", provider_id)
        return data

    def get_workflow(self, workflow_id: str) -> dict[str, Any] | None:
        """Load a workflow tool definition."""
        data = self._read_yaml(self.workflows_dir / f"{workflow_id}.yaml")
        if data is not None:
            data.setdefault("id", workflow_id)
        return data
