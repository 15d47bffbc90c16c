"""
Turn Assembler

Builds the immutable TurnContext of one user turn from a stored
application config: chat model, tools, preset prompt, long-term memory,
the short-term history window, iteration budget and review policy.
"""

from typing import Any

import structlog

from agent_engine.core.domain.app_config import AppConfig
from agent_engine.core.domain.models import InvokeFrom, ReviewConfig, TurnContext
from agent_engine.core.interfaces.conversation import ConversationStoreProtocol
from agent_engine.core.interfaces.llm import ChatModelProtocol
from agent_engine.core.interfaces.retrieval import RetrieverProtocol
from agent_engine.core.interfaces.tools import ToolProtocol
from agent_engine.core.interfaces.workflow import WorkflowRunnerProtocol
from agent_engine.infrastructure.memory.token_buffer_memory import TokenBufferMemory
from agent_engine.infrastructure.persistence.file_app_registry import FileAppRegistry
from agent_engine.infrastructure.tools.api_tool import ApiTool, entities_from_provider
from agent_engine.infrastructure.tools.builtin.registry import BuiltinToolRegistry
from agent_engine.infrastructure.tools.dataset_retrieval import DatasetRetrievalTool
from agent_engine.infrastructure.tools.workflow_tool import WorkflowTool

logger = structlog.get_logger()


class TurnAssembler:
    """
    Assemble TurnContexts from application configs.

    Args:
        model_registry: Object with get_model(model_config: dict) -> ChatModelProtocol
        app_registry: Source of API tool providers and workflow definitions
        conversation_store: Source of history turns and long-term memory
        builtin_tools: Built-in tool lookup
        retriever: Backs the dataset_retrieval tool (datasets are skipped when None)
        workflow_runner: Runs workflow tools (workflows are skipped when None)
        history_max_token_limit: Token budget of the history window
    """

    def __init__(
        self,
        model_registry: Any,
        app_registry: FileAppRegistry,
        conversation_store: ConversationStoreProtocol,
        builtin_tools: BuiltinToolRegistry | None = None,
        retriever: RetrieverProtocol | None = None,
        workflow_runner: WorkflowRunnerProtocol | None = None,
        history_max_token_limit: int = 2000,
    ):
        self.model_registry = model_registry
        self.app_registry = app_registry
        self.conversation_store = conversation_store
        self.builtin_tools = builtin_tools or BuiltinToolRegistry()
        self.retriever = retriever
        self.workflow_runner = workflow_runner
        self.history_max_token_limit = history_max_token_limit
        self.logger = logger.bind(component="turn_assembler")

    async def assemble(
        self,
        app: AppConfig,
        user_id: str,
        query: str,
        image_urls: list[str] | None = None,
        invoke_from: InvokeFrom = InvokeFrom.DEBUGGER,
        conversation_id: str | None = None,
    ) -> TurnContext:
        llm: ChatModelProtocol = self.model_registry.get_model(app.llm.model_dump())
        memory = TokenBufferMemory(
            self.conversation_store, supports_image_input=llm.supports_image_input
        )
        history = await memory.get_history_prompt_messages(
            conversation_id,
            max_token_limit=self.history_max_token_limit,
            message_limit=app.dialog_round,
        )

        long_term_memory = ""
        if app.long_term_memory.enable and conversation_id:
            long_term_memory = await self.conversation_store.get_summary(conversation_id)

        tools = self.build_tools(app)
        context = TurnContext(
            user_id=user_id,
            invoke_from=invoke_from,
            llm=llm,
            query=query,
            image_urls=tuple(image_urls or ()),
            tools=tuple(tools),
            preset_prompt=app.preset_prompt,
            enable_long_term_memory=app.long_term_memory.enable,
            long_term_memory=long_term_memory,
            history=tuple(history),
            max_iteration_count=app.max_iteration_count,
            review_config=ReviewConfig.from_dict(app.review_config.model_dump()),
        )

        self.logger.info(
            "turn.assembled",
            app_id=app.id,
            tools=[tool.name for tool in tools],
            history_messages=len(history),
            supports_tool_call=llm.supports_tool_call,
        )
        return context

    def build_tools(self, app: AppConfig) -> list[ToolProtocol]:
        """Instantiate every tool bound to the app. Later names replace earlier ones."""
        tools: dict[str, ToolProtocol] = {}

        for ref in app.tools:
            tool = self._build_tool_reference(ref.type, ref.provider_id, ref.tool_id, ref.params)
            if tool is not None:
                tools[tool.name] = tool

        if app.datasets:
            if self.retriever is None:
                self.logger.warning("datasets_skipped", app_id=app.id, reason="no retriever")
            else:
                retrieval = app.retrieval_config
                tool = DatasetRetrievalTool(
                    self.retriever,
                    app.datasets,
                    retrieval_strategy=retrieval.retrieval_strategy,
                    k=retrieval.k,
                    score=retrieval.score,
                )
                tools[tool.name] = tool

        for workflow_id in app.workflows:
            tool = self._build_workflow_tool(workflow_id)
            if tool is not None:
                tools[tool.name] = tool

        return list(tools.values())

    def _build_tool_reference(
        self, tool_type: str, provider_id: str, tool_id: str, params: dict[str, Any]
    ) -> ToolProtocol | None:
        if tool_type == "builtin_tool":
            return self.builtin_tools.get_tool(provider_id, tool_id, params)

        if tool_type == "api_tool":
            provider = self.app_registry.get_api_provider(provider_id)
            if provider is None:
                self.logger.warning("api_provider_missing", provider_id=provider_id)
                return None
            for entity in entities_from_provider(provider):
                if entity.name == tool_id:
                    return ApiTool(entity)
            self.logger.warning("api_tool_missing", provider_id=provider_id, tool_id=tool_id)
            return None

        self.logger.warning("tool_type_unknown", tool_type=tool_type, tool_id=tool_id)
        return None

    def _build_workflow_tool(self, workflow_id: str) -> ToolProtocol | None:
        if self.workflow_runner is None:
            self.logger.warning("workflow_skipped", workflow_id=workflow_id, reason="no runner")
            return None
        workflow = self.app_registry.get_workflow(workflow_id)
        if workflow is None or workflow.get("status") != "published":
            self.logger.warning("workflow_unpublished", workflow_id=workflow_id)
            return None
        return WorkflowTool(workflow, self.workflow_runner)
