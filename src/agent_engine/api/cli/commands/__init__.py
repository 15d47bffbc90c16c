"""CLI commands."""

from pathlib import Path

from agent_engine.application.settings import EngineSettings


def load_settings(config: str | None) -> EngineSettings:
    """Settings from a YAML file when given, else from the environment."""
    if config:
        return EngineSettings.load_from_file(Path(config))
    return EngineSettings()
