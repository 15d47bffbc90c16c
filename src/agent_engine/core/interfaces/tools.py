"""
Tool Protocol

Every tool the agent can call (built-in, HTTP API, dataset retrieval and
workflow tools) collapses to this contract. The driver only ever calls
invoke() with the raw arguments JSON produced by the model and receives a
plain string observation.
"""

from typing import Any, Protocol


class ToolProtocol(Protocol):
    """Protocol for invocable tools."""

    @property
    def name(self) -> str:
        """Unique tool name used by the model."""
        ...

    @property
    def description(self) -> str:
        """Human readable description shown to the model."""
        ...

    @property
    def parameters_schema(self) -> dict[str, Any]:
        """JSON schema of the tool arguments."""
        ...

    async def invoke(self, args_json: str) -> str:
        """
        Run the tool.

        Args:
            args_json: Arguments as a JSON object string

        Returns:
            Observation string handed back to the model

        Raises:
            Exception: Any failure; the driver folds it into the observation
        """
        ...
