# ============================================
# DATASET RETRIEVAL TOOL
# ============================================

from typing import Any

import structlog

from agent_engine.core.domain.models import DATASET_RETRIEVAL_TOOL_NAME
from agent_engine.core.interfaces.retrieval import RetrieverProtocol
from agent_engine.core.tools.base_tool import Tool

NO_RESULT_RESPONSE = "知识库内没有检索到对应内容"


class DatasetRetrievalTool(Tool):
    """Search the knowledge bases bound to an application."""

    def __init__(
        self,
        retriever: RetrieverProtocol,
        dataset_ids: list[str],
        retrieval_strategy: str = "semantic",
        k: int = 4,
        score: float = 0.0,
    ):
        self.retriever = retriever
        self.dataset_ids = list(dataset_ids)
        self.retrieval_strategy = retrieval_strategy
        self.k = k
        self.score = score
        self.logger = structlog.get_logger().bind(component="dataset_retrieval_tool")

    @property
    def name(self) -> str:
        return DATASET_RETRIEVAL_TOOL_NAME

    @property
    def description(self) -> str:
        return "如果需要搜索扩展的知识库内容，当你觉得用户的提问超过你的知识范围时，可以尝试调用该工具，输入为搜索query语句，返回数据为检索内容字符串"

    @property
    def parameters_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "query": {"type": "string", "description": "知识库搜索query语句，类型为字符串"}
            },
            "required": ["query"],
        }

    async def execute(self, query: str, **kwargs) -> str:
        documents = await self.retriever.search(
            self.dataset_ids,
            query,
            retrieval_strategy=self.retrieval_strategy,
            k=self.k,
            score=self.score,
        )
        self.logger.info("dataset_retrieval", query=query, hits=len(documents))
        if not documents:
            return NO_RESULT_RESPONSE
        return "\n\n".join(document.get("content", "") for document in documents)
