"""Agent engine CLI entry point."""

import typer
from rich.console import Console

from agent_engine.api.cli.commands import chat, serve

app = typer.Typer(
    name="agent-engine",
    help="Agent engine - streaming LLM + tool agent runs",
    add_completion=True,
    no_args_is_help=True,
    rich_markup_mode="rich",
)

console = Console()

app.command("chat", help="Interactive chat with an application")(chat.chat)
app.command("serve", help="Run the HTTP API server")(serve.serve)


@app.callback()
def main(
    ctx: typer.Context,
    config: str = typer.Option(None, "--config", "-c", help="Engine settings YAML file"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose output"),
):
    """Agent engine CLI."""
    ctx.obj = {"config": config, "verbose": verbose}


@app.command()
def version():
    """Show agent engine version."""
    from agent_engine import __version__

    console.print(f"[bold blue]Agent Engine[/bold blue] version [cyan]{__version__}[/cyan]")


if __name__ == "__main__":
    app()
