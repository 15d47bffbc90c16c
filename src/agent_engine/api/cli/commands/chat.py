"""Chat command - Interactive chat mode with an application."""

import asyncio
import uuid

import typer
from rich.console import Console
from rich.panel import Panel

from agent_engine.api.cli.commands import load_settings
from agent_engine.application.executor import AgentExecutor
from agent_engine.application.logging_config import configure_logging
from agent_engine.core.domain.events import QueueEvent


def chat(
    ctx: typer.Context,
    app_id: str = typer.Argument(..., help="Application id (configs/apps/<app_id>.yaml)"),
    user_id: str = typer.Option("cli-user", "--user-id", help="User identifier"),
    debug: bool = typer.Option(False, "--debug", help="Show thoughts, actions and pings"),
):
    """Start an interactive chat session with an application.

    Examples:
        agent-engine chat demo
        agent-engine chat demo --debug
    """
    global_opts = ctx.obj or {}
    settings = load_settings(global_opts.get("config"))
    verbose = debug or global_opts.get("verbose", False)
    configure_logging("DEBUG" if verbose else "WARNING")

    console = Console()
    conversation_id = str(uuid.uuid4())
    console.print(
        Panel(
            f"[bold]App:[/bold] {app_id}\n[bold]Conversation:[/bold] {conversation_id}",
            title="[bold blue]Agent Engine Chat[/bold blue]",
            border_style="blue",
        )
    )
    console.print("[dim]Type 'exit', 'quit', or press Ctrl+C to end session[/dim]")

    async def run_chat_loop():
        executor = AgentExecutor.from_settings(settings)

        while True:
            try:
                query = console.input("[bold green]You[/bold green] > ")
            except (KeyboardInterrupt, EOFError):
                console.print("\n[dim]Goodbye![/dim]")
                break

            if query.lower().strip() in ["exit", "quit", "bye"]:
                console.print("[dim]Goodbye![/dim]")
                break
            if not query.strip():
                continue

            events = await executor.stream_app(
                app_id, user_id, query, conversation_id=conversation_id
            )
            console.print("[bold blue]Agent[/bold blue] > ", end="")
            async for event in events:
                if event.event == QueueEvent.AGENT_MESSAGE:
                    console.print(event.answer, end="", markup=False, highlight=False)
                elif event.event == QueueEvent.AGENT_THOUGHT and debug:
                    console.print(f"\n[dim]thought: {event.thought}[/dim]")
                elif event.event in (QueueEvent.AGENT_ACTION, QueueEvent.DATASET_RETRIEVAL) and debug:
                    console.print(f"[dim]{event.tool} -> {event.observation[:200]}[/dim]")
                elif event.event == QueueEvent.LONG_TERM_MEMORY_RECALL and debug:
                    console.print(f"[dim]memory: {event.observation}[/dim]")
                elif event.event == QueueEvent.ERROR:
                    console.print(f"\n[bold red]Error:[/bold red] {event.observation}")
                elif event.event in (QueueEvent.STOP, QueueEvent.TIMEOUT):
                    console.print(f"\n[yellow]{event.event.value}[/yellow]")
            console.print()

    asyncio.run(run_chat_loop())
