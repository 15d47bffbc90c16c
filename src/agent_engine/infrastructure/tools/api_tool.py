# ============================================
# API TOOLS
# ============================================
"""
HTTP tools generated from an OpenAPI-style provider definition.

A provider YAML (configs/api_tools/<provider_id>.yaml) looks like:

    id: weather
    name: Weather
    headers:
      - {key: Authorization, value: "Bearer ..."}
    openapi_schema:
      server: https://api.example.com
      description: Weather API
      paths:
        /forecast/{city}:
          get:
            operationId: forecast
            description: Get the forecast of a city
            parameters:
              - {name: city, in: path, type: str, required: true, description: City name}
              - {name: days, in: query, type: int, required: false, description: Days}

Every operation becomes one tool named "<provider_id>_<operationId>". Each
argument is routed to its declared location (path, query, header, cookie
or request_body, default query).
"""

import json
from dataclasses import dataclass, field
from typing import Any

import aiohttp
import structlog

from agent_engine.core.tools.base_tool import Tool

PARAMETER_LOCATIONS = ("path", "query", "header", "cookie", "request_body")

_TYPE_MAP = {"str": "string", "int": "integer", "float": "number", "bool": "boolean"}


@dataclass
class ApiToolEntity:
    """One HTTP operation of an API provider."""

    id: str
    name: str
    url: str
    method: str
    description: str = ""
    headers: list[dict[str, str]] = field(default_factory=list)
    parameters: list[dict[str, Any]] = field(default_factory=list)


def entities_from_provider(provider: dict[str, Any]) -> list[ApiToolEntity]:
    """
    Build one ApiToolEntity per operation of a provider definition.

    Raises:
        ValueError: The provider has no id or no openapi_schema.server
    """
    provider_id = provider.get("id")
    schema = provider.get("openapi_schema") or {}
    server = schema.get("server")
    if not provider_id or not server:
        raise ValueError("API provider requires 'id' and 'openapi_schema.server'")

    entities = []
    for path, item in (schema.get("paths") or {}).items():
        for method in ("get", "post"):
            operation = (item or {}).get(method)
            if not operation:
                continue
            entities.append(
                ApiToolEntity(
                    id=provider_id,
                    name=operation.get("operationId") or operation.get("operation_id", ""),
                    url=server.rstrip("/") + path,
                    method=method,
                    description=operation.get("description", ""),
                    headers=list(provider.get("headers") or []),
                    parameters=list(operation.get("parameters") or []),
                )
            )
    return entities


class ApiTool(Tool):
    """Tool that performs one HTTP request and returns the response body."""

    def __init__(self, entity: ApiToolEntity, timeout: float = 30.0):
        self.entity = entity
        self.timeout = timeout
        self.logger = structlog.get_logger().bind(component="api_tool", tool=self.name)

    @property
    def name(self) -> str:
        return f"{self.entity.id}_{self.entity.name}"

    @property
    def description(self) -> str:
        return self.entity.description

    @property
    def parameters_schema(self) -> dict[str, Any]:
        properties = {}
        required = []
        for parameter in self.entity.parameters:
            name = parameter.get("name")
            if not name:
                continue
            properties[name] = {
                "type": _TYPE_MAP.get(parameter.get("type", "str"), "string"),
                "description": parameter.get("description", ""),
            }
            if parameter.get("required", True):
                required.append(name)

        schema: dict[str, Any] = {"type": "object", "properties": properties}
        if required:
            schema["required"] = required
        return schema

    def _route_arguments(self, kwargs: dict[str, Any]) -> dict[str, dict[str, Any]]:
        routed: dict[str, dict[str, Any]] = {location: {} for location in PARAMETER_LOCATIONS}
        declared = {p["name"]: p for p in self.entity.parameters if p.get("name")}
        for key, value in kwargs.items():
            parameter = declared.get(key)
            if parameter is None:
                continue
            location = parameter.get("in") or "query"
            routed.setdefault(location, {})[key] = value
        return routed

    async def execute(self, **kwargs) -> str:
        routed = self._route_arguments(kwargs)

        url = self.entity.url
        for key, value in routed["path"].items():
            url = url.replace(f"{{{key}}}", str(value))

        headers = {header["key"]: header["value"] for header in self.entity.headers}
        headers.update({key: str(value) for key, value in routed["header"].items()})
        if routed["cookie"]:
            headers["Cookie"] = "; ".join(
                f"{key}={value}" for key, value in routed["cookie"].items()
            )

        body = None
        if routed["request_body"]:
            body = json.dumps(routed["request_body"], ensure_ascii=False)
            headers["Content-Type"] = "application/json"

        self.logger.info("api_tool_request", method=self.entity.method.upper(), url=url)
        async with aiohttp.ClientSession(
            timeout=aiohttp.ClientTimeout(total=self.timeout)
        ) as session:
            async with session.request(
                self.entity.method.upper(),
                url,
                params={key: str(value) for key, value in routed["query"].items()},
                headers=headers,
                data=body,
            ) as response:
                return await response.text()
