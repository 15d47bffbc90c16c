"""
Chat Model Protocol

Defines the contract between the agent drivers and a chat model. Messages
are OpenAI-format dicts; tool calls use the OpenAI function-call shape:

    {"id": "call_1", "type": "function",
     "function": {"name": "echo", "arguments": "{\"x\": \"42\"}"}}
"""

from collections.abc import AsyncIterator
from typing import Any, Protocol


class ChatModelProtocol(Protocol):
    """
    Protocol for chat model handles.

    complete() returns a dict:
        {"success": True, "content": str | None, "tool_calls": list | None,
         "usage": {"prompt_tokens": int, "completion_tokens": int, ...}}
    or on failure:
        {"success": False, "error": str, "error_type": str}

    complete_stream() yields chunks:
        {"type": "token", "content": str}
        {"type": "done", "usage": dict}
        {"type": "error", "message": str}
    """

    @property
    def supports_tool_call(self) -> bool:
        """Whether the model accepts native function-call schemas."""
        ...

    @property
    def supports_image_input(self) -> bool:
        """Whether user messages may carry image parts."""
        ...

    @property
    def pricing(self) -> tuple[float, float, float]:
        """Return (input_price, output_price, unit)."""
        ...

    async def complete(self, messages: list[dict[str, Any]]) -> dict[str, Any]:
        """Non-streaming completion."""
        ...

    def complete_stream(
        self, messages: list[dict[str, Any]]
    ) -> AsyncIterator[dict[str, Any]]:
        """Streaming completion."""
        ...

    def bind_tools(self, tools: list[dict[str, Any]]) -> "ChatModelProtocol":
        """Return a model handle that sends the given tool schemas on every call."""
        ...
