"""Serve command - run the FastAPI server."""

import typer
import uvicorn

from agent_engine.api.cli.commands import load_settings
from agent_engine.api.server import create_app
from agent_engine.application.executor import AgentExecutor
from agent_engine.application.logging_config import configure_logging


def serve(
    ctx: typer.Context,
    host: str = typer.Option("0.0.0.0", "--host", help="Bind address"),
    port: int = typer.Option(8070, "--port", help="Bind port"),
):
    """Run the HTTP API server.

    Examples:
        agent-engine serve --port 8070
        agent-engine --config engine.yaml serve
    """
    global_opts = ctx.obj or {}
    settings = load_settings(global_opts.get("config"))
    level = "DEBUG" if global_opts.get("verbose") else settings.log_level
    configure_logging(level, json_output=settings.log_json)

    app = create_app(AgentExecutor.from_settings(settings))
    uvicorn.run(app, host=host, port=port)
