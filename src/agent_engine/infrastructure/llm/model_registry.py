"""
Model Registry

Loads configs/llm_config.yaml and hands out chat model handles for the
model_config section of an application:

    model_config:
      provider: openai
      model: gpt-4o-mini
      parameters: {temperature: 0.5, max_tokens: 8192}

Model names may be aliases defined in the `models` section. Per-model
features and pricing are looked up by exact name first, then by prefix
(so "gpt-4o" entries also cover "gpt-4o-2024-08-06"; the longest
matching prefix wins).
"""

import os
from pathlib import Path
from typing import Any

import structlog
import yaml

from agent_engine.infrastructure.llm.litellm_chat_model import LiteLLMChatModel, RetryPolicy


class ModelRegistry:
    """Resolve application model configs to LiteLLMChatModel instances."""

    def __init__(self, config_path: str = "configs/llm_config.yaml"):
        """
        Args:
            config_path: Path to YAML configuration file

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If config is invalid
        """
        self.logger = structlog.get_logger().bind(component="model_registry")
        self._load_config(config_path)
        self._check_provider_keys()

        self.logger.info(
            "model_registry_initialized",
            default_model=self.default_model,
            model_aliases=list(self.models.keys()),
        )

    def _load_config(self, config_path: str) -> None:
        config_file = Path(config_path)
        if not config_file.exists():
            raise FileNotFoundError(f"LLM config not found: {config_path}")

        with open(config_file, "r", encoding="utf-8") as f:
            config = yaml.safe_load(f)

        if config is None:
            raise ValueError(f"Config file is empty or invalid: {config_path}")

        self.default_model = config.get("default_model", "main")
        self.models: dict[str, str] = config.get("models", {})
        self.model_features: dict[str, list[str]] = config.get("model_features", {})
        self.model_pricing: dict[str, dict[str, float]] = config.get("model_pricing", {})
        self.default_params: dict[str, Any] = config.get("default_params", {})
        self.provider_config: dict[str, dict[str, Any]] = config.get("providers", {})

        if not self.models:
            raise ValueError("Config must define at least one model in 'models' section")

        retry_config = config.get("retry_policy", {})
        self.retry_policy = RetryPolicy(
            max_attempts=retry_config.get("max_attempts", 3),
            backoff_multiplier=retry_config.get("backoff_multiplier", 2.0),
            timeout=retry_config.get("timeout", 30),
            retry_on_errors=retry_config.get("retry_on_errors", []),
        )

    def _check_provider_keys(self) -> None:
        for provider, settings in self.provider_config.items():
            api_key_env = (settings or {}).get("api_key_env")
            if api_key_env and not os.getenv(api_key_env):
                self.logger.warning(
                    "provider_api_key_missing",
                    provider=provider,
                    env_var=api_key_env,
                    hint="Set environment variable for API access",
                )

    def resolve_model(self, provider: str | None, model: str | None) -> str:
        """Resolve an alias and add the LiteLLM provider prefix."""
        name = self.models.get(model or self.default_model, model or self.default_model)
        if not provider or provider == "openai" or "/" in name:
            return name
        return f"{provider}/{name}"

    def _lookup(self, table: dict[str, Any], model: str) -> Any:
        bare = model.split("/", 1)[-1]
        for candidate in (model, bare):
            if candidate in table:
                return table[candidate]
        # Longest prefix wins ("gpt-4o-mini-..." must not match "gpt-4o")
        matches = [key for key in table if bare.startswith(key)]
        if matches:
            return table[max(matches, key=len)]
        return None

    def features(self, model: str) -> list[str]:
        return list(self._lookup(self.model_features, model) or [])

    def pricing(self, model: str) -> tuple[float, float, float]:
        price = self._lookup(self.model_pricing, model) or {}
        return (
            float(price.get("input", 0.0)),
            float(price.get("output", 0.0)),
            float(price.get("unit", 0.0)),
        )

    def get_model(self, model_config: dict[str, Any] | None = None) -> LiteLLMChatModel:
        """
        Create a chat model handle for an application model_config.

        Args:
            model_config: {"provider", "model", "parameters"}; None uses the default model
        """
        model_config = model_config or {}
        name = self.resolve_model(model_config.get("provider"), model_config.get("model"))
        parameters = {**self.default_params, **(model_config.get("parameters") or {})}

        self.logger.debug("model_resolved", model=name)
        return LiteLLMChatModel(
            model=name,
            parameters=parameters,
            features=self.features(name),
            pricing=self.pricing(name),
            retry_policy=self.retry_policy,
        )
