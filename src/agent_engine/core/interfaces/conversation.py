"""
Conversation Store Protocol

Source of stored turns for the short-term history window. A stored turn is
a dict with at least "query", "answer", "status" and "created_at" keys.
"""

from typing import Any, Protocol


class ConversationStoreProtocol(Protocol):
    """Protocol for reading and appending conversation turns."""

    async def list_messages(
        self, conversation_id: str, limit: int
    ) -> list[dict[str, Any]]:
        """Return up to `limit` most recent turns, newest first."""
        ...

    async def add_message(self, conversation_id: str, message: dict[str, Any]) -> None:
        """Append a finished turn."""
        ...

    async def get_summary(self, conversation_id: str) -> str:
        """Return the long-term memory summary ("" when none)."""
        ...
