"""
Token Buffer Memory

Builds the short-term history window of a conversation from its stored
turns. Each finished turn (non-empty answer, status normal/stop/timeout)
becomes a user/assistant message pair. The window keeps the most recent
turns that fit the token budget and always starts with a user message and
ends with an assistant message.
"""

from typing import Any

import structlog

from agent_engine.core.domain.messages import estimate_tokens, user_message
from agent_engine.core.interfaces.conversation import ConversationStoreProtocol

HISTORY_STATUSES = ("normal", "stop", "timeout")


class TokenBufferMemory:
    """History provider bound to a conversation store."""

    def __init__(
        self,
        conversation_store: ConversationStoreProtocol,
        supports_image_input: bool = False,
    ):
        self.conversation_store = conversation_store
        self.supports_image_input = supports_image_input
        self.logger = structlog.get_logger().bind(component="token_buffer_memory")

    async def get_history_prompt_messages(
        self,
        conversation_id: str | None,
        max_token_limit: int = 2000,
        message_limit: int = 10,
    ) -> list[dict[str, Any]]:
        """
        Return the history window as OpenAI-format messages.

        Args:
            conversation_id: Conversation to read (None yields no history)
            max_token_limit: Token budget of the window
            message_limit: Maximum number of turns (dialog rounds) considered
        """
        if not conversation_id or message_limit <= 0:
            return []

        turns = await self.conversation_store.list_messages(conversation_id, message_limit)
        turns = [
            turn
            for turn in turns
            if turn.get("answer") and turn.get("status", "normal") in HISTORY_STATUSES
        ]
        # Stores return newest first
        turns.reverse()

        messages: list[dict[str, Any]] = []
        for turn in turns:
            image_urls = turn.get("image_urls") if self.supports_image_input else None
            messages.append(user_message(turn.get("query", ""), image_urls))
            messages.append({"role": "assistant", "content": turn["answer"]})

        trimmed = trim_messages(messages, max_token_limit)
        self.logger.debug(
            "history_loaded",
            conversation_id=conversation_id,
            turns=len(turns),
            messages=len(trimmed),
        )
        return trimmed


def trim_messages(messages: list[dict[str, Any]], max_tokens: int) -> list[dict[str, Any]]:
    """Keep the most recent messages within max_tokens, then fix the boundaries."""
    if estimate_tokens(messages) <= max_tokens:
        return messages

    kept: list[dict[str, Any]] = []
    used = 0
    for message in reversed(messages):
        tokens = estimate_tokens([message])
        if used + tokens > max_tokens:
            break
        kept.insert(0, message)
        used += tokens

    return ensure_message_order(kept)


def ensure_message_order(messages: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Drop leading messages before the first user and trailing ones after the last assistant."""
    start = next(
        (i for i, message in enumerate(messages) if message["role"] == "user"), None
    )
    end = next(
        (
            i
            for i in range(len(messages) - 1, -1, -1)
            if messages[i]["role"] == "assistant"
        ),
        None,
    )
    if start is None or end is None or start > end:
        return []
    return messages[start : end + 1]
