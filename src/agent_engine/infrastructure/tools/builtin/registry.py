"""
Built-in tool registry.

Maps provider_id -> tool_id -> factory. Applications reference built-in
tools as {type: builtin_tool, provider_id, tool_id, params}; params are
passed to the factory as keyword arguments.
"""

from collections.abc import Callable
from typing import Any

import structlog

from agent_engine.core.tools.base_tool import Tool
from agent_engine.infrastructure.tools.builtin.current_time import CurrentTimeTool

ToolFactory = Callable[..., Tool]

BUILTIN_PROVIDERS: dict[str, dict[str, ToolFactory]] = {
    "time": {"current_time": CurrentTimeTool},
}


class BuiltinToolRegistry:
    """Lookup of built-in tool factories."""

    def __init__(self, providers: dict[str, dict[str, ToolFactory]] | None = None):
        self.providers = providers if providers is not None else dict(BUILTIN_PROVIDERS)
        self.logger = structlog.get_logger().bind(component="builtin_tool_registry")

    def register(self, provider_id: str, tool_id: str, factory: ToolFactory) -> None:
        self.providers.setdefault(provider_id, {})[tool_id] = factory

    def get_tool(
        self, provider_id: str, tool_id: str, params: dict[str, Any] | None = None
    ) -> Tool | None:
        """Instantiate a built-in tool, or return None if it is unknown."""
        factory = self.providers.get(provider_id, {}).get(tool_id)
        if factory is None:
            self.logger.warning("builtin_tool_unknown", provider_id=provider_id, tool_id=tool_id)
            return None
        return factory(**(params or {}))
