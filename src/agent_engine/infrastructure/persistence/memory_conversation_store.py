"""
In-memory conversation store.

Keeps finished turns per conversation for the history window and a
running summary used as long-term memory.
"""

import asyncio
import time
from typing import Any


class InMemoryConversationStore:
    """Implements ConversationStoreProtocol in process memory."""

    def __init__(self):
        self._messages: dict[str, list[dict[str, Any]]] = {}
        self._summaries: dict[str, str] = {}
        self._lock = asyncio.Lock()

    async def list_messages(
        self, conversation_id: str, limit: int
    ) -> list[dict[str, Any]]:
        async with self._lock:
            messages = self._messages.get(conversation_id, [])
            return [dict(message) for message in reversed(messages[-limit:])] if limit > 0 else []

    async def add_message(self, conversation_id: str, message: dict[str, Any]) -> None:
        message = {"status": "normal", "created_at": time.time(), **message}
        async with self._lock:
            self._messages.setdefault(conversation_id, []).append(message)

    async def get_summary(self, conversation_id: str) -> str:
        async with self._lock:
            return self._summaries.get(conversation_id, "")

    async def set_summary(self, conversation_id: str, summary: str) -> None:
        async with self._lock:
            self._summaries[conversation_id] = summary
