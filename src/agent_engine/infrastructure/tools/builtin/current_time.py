# ============================================
# CURRENT TIME TOOL
# ============================================

from datetime import datetime, timezone
from typing import Any

from agent_engine.core.tools.base_tool import Tool


class CurrentTimeTool(Tool):
    """Return the current time, formatted with strftime"""

    def __init__(self, fmt: str = "%Y-%m-%d %H:%M:%S %Z", utc: bool = False):
        self.fmt = fmt
        self.utc = utc

    @property
    def name(self) -> str:
        return "current_time"

    @property
    def description(self) -> str:
        return "一个用于获取当前时间的工具"

    @property
    def parameters_schema(self) -> dict[str, Any]:
        return {"type": "object", "properties": {}}

    async def execute(self, **kwargs) -> str:
        now = datetime.now(timezone.utc) if self.utc else datetime.now().astimezone()
        return now.strftime(self.fmt)
