# ============================================
# BASE TOOL INTERFACE
# ============================================

import inspect
import json
from abc import ABC, abstractmethod
from typing import Any


class Tool(ABC):
    """
    Base class for tools invoked by the agent.

    Subclasses implement execute(**kwargs). The agent calls invoke() with the
    raw arguments JSON from the model; invoke() parses and validates the
    arguments, runs execute() and turns the result into an observation string.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    @property
    @abstractmethod
    def description(self) -> str:
        pass

    @property
    def parameters_schema(self) -> dict[str, Any]:
        """Override to provide a custom parameter schema for function calling"""
        return self._generate_schema_from_signature()

    def _generate_schema_from_signature(self) -> dict[str, Any]:
        """Auto-generate parameter schema from execute method signature"""
        sig = inspect.signature(self.execute)
        properties = {}
        required = []

        for param_name, param in sig.parameters.items():
            if param_name in ["self", "kwargs"]:
                continue

            param_type = "string"
            if param.annotation is int:
                param_type = "integer"
            elif param.annotation is bool:
                param_type = "boolean"
            elif param.annotation is float:
                param_type = "number"
            elif param.annotation is dict:
                param_type = "object"
            elif param.annotation is list:
                param_type = "array"

            properties[param_name] = {
                "type": param_type,
                "description": f"Parameter {param_name}",
            }

            if param.default is inspect.Parameter.empty:
                required.append(param_name)

        return {"type": "object", "properties": properties, "required": required}

    @abstractmethod
    async def execute(self, **kwargs) -> Any:
        pass

    def validate_params(self, **kwargs) -> tuple[bool, str | None]:
        """Check that every required schema parameter is present"""
        for param_name in self.parameters_schema.get("required", []):
            if param_name not in kwargs:
                return False, f"Missing required parameter: {param_name}"
        return True, None

    async def invoke(self, args_json: str) -> str:
        """
        Parse the arguments JSON, validate and execute.

        Raises:
            ValueError: Arguments are not a JSON object or fail validation
        """
        kwargs = json.loads(args_json) if args_json and args_json.strip() else {}
        if not isinstance(kwargs, dict):
            raise ValueError("tool arguments must be a JSON object")

        valid, error = self.validate_params(**kwargs)
        if not valid:
            raise ValueError(error)

        result = await self.execute(**kwargs)
        if isinstance(result, str):
            return result
        return json.dumps(result, ensure_ascii=False, default=str)
