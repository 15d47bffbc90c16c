"""
Prompt message helpers.

Messages are OpenAI-format dicts. User messages may carry image parts:

    {"role": "user", "content": [
        {"type": "text", "text": "what is this?"},
        {"type": "image_url", "image_url": {"url": "https://..."}},
    ]}
"""

import json
import math
from typing import Any

# Additive token estimate for each tool call inside a message
TOOL_CALL_TOKEN_OVERHEAD = 8


def system_message(content: str) -> dict[str, Any]:
    return {"role": "system", "content": content}


def user_message(
    content: str, image_urls: list[str] | tuple[str, ...] | None = None
) -> dict[str, Any]:
    """Build a user message, with image parts when image_urls is non-empty."""
    if not image_urls:
        return {"role": "user", "content": content}
    parts: list[dict[str, Any]] = [{"type": "text", "text": content}]
    for url in image_urls:
        parts.append({"type": "image_url", "image_url": {"url": url}})
    return {"role": "user", "content": parts}


def assistant_message(
    content: str | None, tool_calls: list[dict[str, Any]] | None = None
) -> dict[str, Any]:
    message: dict[str, Any] = {"role": "assistant", "content": content}
    if tool_calls:
        message["tool_calls"] = tool_calls
    return message


def message_text(message: dict[str, Any]) -> str:
    """Return the textual content of a message, ignoring image parts."""
    content = message.get("content")
    if content is None:
        return ""
    if isinstance(content, str):
        return content
    texts = [
        part.get("text", "")
        for part in content
        if isinstance(part, dict) and part.get("type") == "text"
    ]
    return "".join(texts)


def estimate_tokens(messages: list[dict[str, Any]]) -> int:
    """
    Estimate the token count of a list of messages.

    Uses ceil(chars / 4) over the text content plus a small overhead per
    tool call (its name and arguments are counted as text as well).
    """
    total = 0
    for message in messages:
        chars = len(message_text(message))
        for tool_call in message.get("tool_calls") or []:
            function = tool_call.get("function", {})
            chars += len(function.get("name", "")) + len(function.get("arguments", ""))
            total += TOOL_CALL_TOKEN_OVERHEAD
        total += math.ceil(chars / 4)
    return total


def estimate_text_tokens(text: str) -> int:
    return math.ceil(len(text) / 4)


def tool_calls_to_text(tool_calls: list[dict[str, Any]]) -> str:
    """Stringify a tool-call list for the agent_thought event."""
    return json.dumps(tool_calls, ensure_ascii=False)
