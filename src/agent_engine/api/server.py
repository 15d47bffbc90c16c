from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from agent_engine import __version__
from agent_engine.api.routes import chat, health
from agent_engine.application.executor import AgentExecutor
from agent_engine.application.settings import EngineSettings

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for FastAPI startup/shutdown events."""
    await logger.ainfo("fastapi.startup", message="Agent engine API starting...")
    yield
    await app.state.executor.queue_manager.close()
    await logger.ainfo("fastapi.shutdown", message="Agent engine API shutting down...")


def create_app(executor: AgentExecutor | None = None) -> FastAPI:
    """Create and configure FastAPI application.

    Args:
        executor: Executor serving the routes (built from EngineSettings when omitted)
    """
    app = FastAPI(
        title="Agent Engine API",
        description="Streaming agent execution engine for agent applications",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.executor = executor or AgentExecutor.from_settings(EngineSettings())

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(chat.router, prefix="/api/v1", tags=["chat"])
    app.include_router(health.router, tags=["health"])

    return app


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(create_app(), host="0.0.0.0", port=8070)
