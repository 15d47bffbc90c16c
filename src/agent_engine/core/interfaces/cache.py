"""
Task Cache Protocol

Shared key-value store with TTL used for the task ownership and stop keys.
It is the only cross-process synchronization medium of the engine.
"""

from typing import Protocol


class TaskCacheProtocol(Protocol):
    """Protocol for the task key-value store."""

    async def get(self, key: str) -> str | None:
        """Return the value or None when missing or expired."""
        ...

    async def set(self, key: str, value: str, ttl: float) -> None:
        """Set a value with a time-to-live in seconds."""
        ...

    async def set_if_absent(self, key: str, value: str, ttl: float) -> bool:
        """Atomically set the value unless the key exists. Return True if set."""
        ...
