"""
Engine configuration.
"""

from pathlib import Path

import yaml
from pydantic import Field
from pydantic_settings import BaseSettings


class EngineSettings(BaseSettings):
    """Engine settings with environment variable support (AGENT_ENGINE_*)."""

    # Task queue
    queue_capacity: int = Field(default=1000, description="Undelivered events per task")
    ping_interval: float = Field(default=10.0, description="Seconds between ping events")
    stop_poll_interval: float = Field(default=1.0, description="Seconds between stop-key polls")
    listen_timeout: float = Field(default=600.0, description="Wall-clock budget of a task")
    task_belong_ttl: float = Field(default=1800.0, description="TTL of the ownership key")
    task_stop_ttl: float = Field(default=600.0, description="TTL of the stop key")

    # Agent
    default_max_iteration_count: int = Field(default=5, description="Tool-calling LLM steps")
    history_max_token_limit: int = Field(default=2000, description="Token budget of history")
    default_dialog_round: int = Field(default=3, description="Turns kept in history")

    # Config locations
    llm_config_path: str = Field(default="configs/llm_config.yaml", description="LLM config")
    apps_dir: str = Field(default="configs/apps", description="Application configs")
    api_tools_dir: str = Field(default="configs/api_tools", description="API tool providers")
    workflows_dir: str = Field(default="configs/workflows", description="Workflow tools")

    # Debug settings
    log_level: str = Field(default="INFO", description="Logging level")
    log_json: bool = Field(default=False, description="Render logs as JSON")

    model_config = {
        "env_file": ".env",
        "env_prefix": "AGENT_ENGINE_",
        "case_sensitive": False,
        "extra": "ignore",
    }

    @classmethod
    def load_from_file(cls, config_path: Path) -> "EngineSettings":
        """Load settings from a YAML configuration file."""
        if not config_path.exists():
            return cls()

        with open(config_path, "r", encoding="utf-8") as f:
            config_data = yaml.safe_load(f) or {}

        return cls(**config_data)
