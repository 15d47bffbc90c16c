"""Workflow Runner Protocol used by workflow-as-tool entries."""

from typing import Any, Protocol


class WorkflowRunnerProtocol(Protocol):
    """Protocol for running a published workflow."""

    async def run(self, workflow_id: str, inputs: dict[str, Any]) -> Any:
        """Run the workflow and return its JSON-serializable result."""
        ...
