# ============================================
# WORKFLOW TOOL
# ============================================

import json
from typing import Any

from agent_engine.core.interfaces.workflow import WorkflowRunnerProtocol
from agent_engine.core.tools.base_tool import Tool

_TYPE_MAP = {"string": "string", "int": "integer", "float": "number", "boolean": "boolean"}


class WorkflowTool(Tool):
    """
    Expose a published workflow as a tool.

    Args:
        workflow: {"id", "tool_call_name", "description", "inputs": [{name, type, description, required}]}
        runner: Executes the workflow
    """

    def __init__(self, workflow: dict[str, Any], runner: WorkflowRunnerProtocol):
        self.workflow = workflow
        self.runner = runner

    @property
    def name(self) -> str:
        return self.workflow["tool_call_name"]

    @property
    def description(self) -> str:
        return self.workflow.get("description", "")

    @property
    def parameters_schema(self) -> dict[str, Any]:
        properties = {}
        required = []
        for variable in self.workflow.get("inputs", []):
            properties[variable["name"]] = {
                "type": _TYPE_MAP.get(variable.get("type", "string"), "string"),
                "description": variable.get("description", ""),
            }
            if variable.get("required", True):
                required.append(variable["name"])
        return {"type": "object", "properties": properties, "required": required}

    async def execute(self, **kwargs) -> str:
        result = await self.runner.run(self.workflow["id"], kwargs)
        return json.dumps(result, ensure_ascii=False, default=str)
