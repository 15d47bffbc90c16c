"""
Event serialization for SSE consumers.

Every event becomes a JSON object with the keys id, conversation_id,
message_id, task_id, event, thought, answer, observation, tool,
tool_input and latency, plus total_token_count and total_price when the
event carries accounting figures. An SSE frame names the event kind:

    event: agent_message
    data: {"id": "...", "event": "agent_message", "answer": "hel", ...}

"""

import json
from typing import Any

from agent_engine.core.domain.events import AgentResult, AgentThought, QueueEvent


def event_to_dict(
    event: AgentThought,
    conversation_id: str | None = None,
    message_id: str | None = None,
) -> dict[str, Any]:
    data: dict[str, Any] = {
        "id": event.id,
        "conversation_id": conversation_id or "",
        "message_id": message_id or "",
        "task_id": event.task_id,
        "event": event.event.value,
        "thought": event.thought,
        "answer": event.answer,
        "observation": event.observation,
        "tool": event.tool,
        "tool_input": event.tool_input,
        "latency": event.latency,
    }
    if event.total_token_count:
        data["total_token_count"] = event.total_token_count
        data["total_price"] = event.total_price
    return data


def sse_frame(
    event: AgentThought,
    conversation_id: str | None = None,
    message_id: str | None = None,
) -> str:
    """Render one event as an SSE frame."""
    if event.event == QueueEvent.PING:
        return "event: ping\ndata: {}\n\n"
    data = json.dumps(event_to_dict(event, conversation_id, message_id), ensure_ascii=False)
    return f"event: {event.event.value}\ndata: {data}\n\n"


def result_to_dict(
    result: AgentResult,
    conversation_id: str | None = None,
    message_id: str | None = None,
) -> dict[str, Any]:
    """Block-mode response body."""
    return {
        "conversation_id": conversation_id or "",
        "message_id": message_id or "",
        "query": result.query,
        "image_urls": result.image_urls,
        "answer": result.answer,
        "status": result.status.value,
        "error": result.error,
        "latency": result.latency,
        "total_token_count": sum(t.total_token_count for t in result.agent_thoughts),
        "total_price": sum(t.total_price for t in result.agent_thoughts),
        "agent_thoughts": [
            event_to_dict(thought, conversation_id, message_id)
            for thought in result.agent_thoughts
        ],
    }
