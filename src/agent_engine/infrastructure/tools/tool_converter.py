"""
Tool Converter - OpenAI function calling format conversion.

This module provides utilities for converting tools to the function-call
schema sent to chat models, for building the tool-related prompt messages,
and for describing tools inside the ReACT system prompt.
"""

import json
import uuid
from collections.abc import Iterable
from typing import Any

from agent_engine.core.interfaces.tools import ToolProtocol


def tools_to_openai_format(tools: Iterable[ToolProtocol]) -> list[dict[str, Any]]:
    """
    Convert tools to OpenAI function calling format.

    Args:
        tools: Tools to expose to the model

    Returns:
        List of tool definitions in OpenAI format:
        [
            {
                "type": "function",
                "function": {
                    "name": "tool_name",
                    "description": "Tool description",
                    "parameters": { JSON Schema }
                }
            },
            ...
        ]
    """
    openai_tools = []

    for tool in tools:
        openai_tool = {
            "type": "function",
            "function": {
                "name": tool.name,
                "description": tool.description,
                "parameters": tool.parameters_schema,
            },
        }
        openai_tools.append(openai_tool)

    return openai_tools


def tools_to_description(tools: Iterable[ToolProtocol]) -> str:
    """
    Render the tool listing embedded in the ReACT system prompt.

    One line per tool: "<name> - <description>, args: <parameters JSON>".
    """
    lines = []
    for tool in tools:
        properties = tool.parameters_schema.get("properties", {})
        args = json.dumps(properties, ensure_ascii=False)
        lines.append(f"{tool.name} - {tool.description}, args: {args}")
    return "\n".join(lines)


def new_tool_call(name: str, arguments: str) -> dict[str, Any]:
    """Build a tool call with a fresh call id."""
    return {
        "id": f"call_{uuid.uuid4().hex}",
        "type": "function",
        "function": {"name": name, "arguments": arguments},
    }


def tool_result_to_message(tool_call_id: str, tool_name: str, observation: str) -> dict[str, Any]:
    """
    Convert a tool observation to an OpenAI tool message.

    The observation is passed through unchanged.

    Returns:
        {
            "role": "tool",
            "tool_call_id": "...",
            "name": "tool_name",
            "content": "observation"
        }
    """
    return {
        "role": "tool",
        "tool_call_id": tool_call_id,
        "name": tool_name,
        "content": observation,
    }


def assistant_tool_calls_to_message(
    tool_calls: list[dict[str, Any]],
    content: str | None = None,
) -> dict[str, Any]:
    """
    Create an assistant message with tool calls for message history.

    Returns:
        {
            "role": "assistant",
            "content": content,
            "tool_calls": [...]
        }
    """
    return {
        "role": "assistant",
        "content": content,
        "tool_calls": tool_calls,
    }
