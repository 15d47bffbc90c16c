"""
Application Config

The stored configuration of a published agent application. Missing keys
fall back to the platform defaults below.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from agent_engine.core.domain.models import DEFAULT_MAX_ITERATION_COUNT


def _default_parameters() -> dict[str, Any]:
    return {
        "temperature": 0.5,
        "top_p": 0.85,
        "frequency_penalty": 0.2,
        "presence_penalty": 0.2,
        "max_tokens": 8192,
    }


class ModelConfig(BaseModel):
    provider: str = "openai"
    model: str = "gpt-4o-mini"
    parameters: dict[str, Any] = Field(default_factory=_default_parameters)


class ToolReference(BaseModel):
    """A tool bound to an application (builtin_tool or api_tool)."""

    type: str = "builtin_tool"
    provider_id: str
    tool_id: str
    params: dict[str, Any] = Field(default_factory=dict)


class RetrievalConfig(BaseModel):
    retrieval_strategy: str = "semantic"
    k: int = 10
    score: float = 0.5


class LongTermMemoryConfig(BaseModel):
    enable: bool = False


class ReviewInputsConfig(BaseModel):
    enable: bool = False
    preset_response: str = ""


class ReviewOutputsConfig(BaseModel):
    enable: bool = False


class ReviewSettings(BaseModel):
    enable: bool = False
    keywords: list[str] = Field(default_factory=list)
    inputs_config: ReviewInputsConfig = Field(default_factory=ReviewInputsConfig)
    outputs_config: ReviewOutputsConfig = Field(default_factory=ReviewOutputsConfig)


class AppConfig(BaseModel):
    """
    Agent application configuration.

    `llm` is stored under the key "model_config" in YAML.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str = ""
    name: str = ""
    llm: ModelConfig = Field(default_factory=ModelConfig, alias="model_config")
    dialog_round: int = 3
    preset_prompt: str = ""
    tools: list[ToolReference] = Field(default_factory=list)
    workflows: list[str] = Field(default_factory=list)
    datasets: list[str] = Field(default_factory=list)
    retrieval_config: RetrievalConfig = Field(default_factory=RetrievalConfig)
    long_term_memory: LongTermMemoryConfig = Field(default_factory=LongTermMemoryConfig)
    review_config: ReviewSettings = Field(default_factory=ReviewSettings)
    max_iteration_count: int = DEFAULT_MAX_ITERATION_COUNT
