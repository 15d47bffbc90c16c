"""
Core Domain Models

This module defines the inputs and the mutable loop state of an agent run:
- TurnContext: immutable per-turn inputs assembled from an application config
- AgentState: mutable state owned by one driver for one task
- ReviewConfig: keyword based content review policy
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from agent_engine.core.interfaces.llm import ChatModelProtocol
from agent_engine.core.interfaces.tools import ToolProtocol

DEFAULT_MAX_ITERATION_COUNT = 5
DATASET_RETRIEVAL_TOOL_NAME = "dataset_retrieval"


class InvokeFrom(str, Enum):
    """Where a turn originated."""

    DEBUGGER = "debugger"
    WEB_APP = "web_app"
    SERVICE_API = "service_api"
    ASSISTANT_AGENT = "assistant_agent"
    WECHAT = "wechat"
    END_USER = "end_user"

    @property
    def user_class(self) -> str:
        """Ownership class used in the task_belong key."""
        return "end-user" if self is InvokeFrom.END_USER else "account"


@dataclass(frozen=True)
class ReviewConfig:
    """
    Content-safety policy.

    Attributes:
        enable: Master switch
        keywords: Sensitive keywords, matched case-insensitively
        inputs_enable: Block queries containing a keyword
        preset_response: Canned answer for blocked queries
        outputs_enable: Mask keywords in emitted answers with "**"
    """

    enable: bool = False
    keywords: tuple[str, ...] = ()
    inputs_enable: bool = False
    preset_response: str = ""
    outputs_enable: bool = False

    @property
    def reviews_inputs(self) -> bool:
        return self.enable and self.inputs_enable

    @property
    def reviews_outputs(self) -> bool:
        return self.enable and self.outputs_enable

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "ReviewConfig":
        """Build from the application review_config section."""
        if not data:
            return cls()
        inputs = data.get("inputs_config") or {}
        outputs = data.get("outputs_config") or {}
        return cls(
            enable=bool(data.get("enable", False)),
            keywords=tuple(k for k in data.get("keywords", []) if k),
            inputs_enable=bool(inputs.get("enable", False)),
            preset_response=inputs.get("preset_response", ""),
            outputs_enable=bool(outputs.get("enable", False)),
        )


@dataclass(frozen=True)
class TurnContext:
    """
    Immutable inputs of one user turn.

    Built by the TurnAssembler and never mutated by the driver.

    Attributes:
        user_id: Account or end-user identifier
        invoke_from: Origin of the turn (decides the ownership class)
        llm: Chat model handle
        query: The incoming user query
        image_urls: Images attached to the query
        tools: Tools the model may call
        preset_prompt: Application preset prompt
        enable_long_term_memory: Whether memory is injected
        long_term_memory: Running conversation summary
        history: Short-term user/assistant messages (even length)
        max_iteration_count: Upper bound of tool-calling LLM steps
        review_config: Content review policy
    """

    user_id: str
    invoke_from: InvokeFrom
    llm: ChatModelProtocol
    query: str
    image_urls: tuple[str, ...] = ()
    tools: tuple[ToolProtocol, ...] = ()
    preset_prompt: str = ""
    enable_long_term_memory: bool = False
    long_term_memory: str = ""
    history: tuple[dict[str, Any], ...] = ()
    max_iteration_count: int = DEFAULT_MAX_ITERATION_COUNT
    review_config: ReviewConfig = field(default_factory=ReviewConfig)

    @property
    def supports_tool_call(self) -> bool:
        return bool(getattr(self.llm, "supports_tool_call", False))


@dataclass
class AgentState:
    """
    Mutable loop state of one agent run.

    Attributes:
        task_id: Routing key of the run
        iteration_count: Number of LLM steps that produced tool calls
        messages: Prompt built so far (messages[0] is the system prompt)
        history: Frozen copy of the short-term history
        long_term_memory: Memory snapshot used for this run
    """

    task_id: str
    iteration_count: int = 0
    messages: list[dict[str, Any]] = field(default_factory=list)
    history: list[dict[str, Any]] = field(default_factory=list)
    long_term_memory: str = ""
