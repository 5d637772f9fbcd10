"""Main CLI application using Typer."""
import asyncio

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ..errors import ThreadlineError
from ..session import SessionBinder, VisibilityPoller
from ..tree import Message, MessageRole, MessageTree, branch_jump_points, compute_branch_insights
from .providers import configure_logging, get_backend, get_config

# Load environment variables
load_dotenv()

# Create Typer app
app = typer.Typer(
    name="threadline",
    help="Inspect branching chat sessions: active paths, branches and background jobs",
    no_args_is_help=True,
    add_completion=True,
)

# Console for rich output
console = Console()

PREVIEW_LENGTH = 500  # Characters of message content shown per panel


@app.callback()
def main_callback(
    log_level: str = typer.Option(
        None,
        "--log-level",
        "-l",
        help="Log level (default: THREADLINE_LOG_LEVEL or WARNING)"
    )
):
    """Configure logging before any command runs."""
    configure_logging(log_level or get_config().log_level)


def _render_message(message: Message, is_head: bool) -> Panel:
    text = message.content
    if len(text) > PREVIEW_LENGTH:
        text = text[:PREVIEW_LENGTH] + "..."
    style = "cyan" if message.role is MessageRole.USER else "green"
    title = f"{message.role.value} [dim]{message.id}[/dim]"
    if message.queued:
        title += " [yellow](queued)[/yellow]"
    if is_head:
        title += " [bold](head)[/bold]"
    return Panel(text or "[dim](empty)[/dim]", title=title, border_style="red" if message.error else style)


@app.command()
def sessions():
    """List sessions from both backend sources, newest first."""
    async def _sessions():
        backend = get_backend()
        try:
            await backend.connect()
            binder = SessionBinder(backend, MessageTree())
            summaries = await binder.refresh_sessions()

            if not summaries:
                console.print("[dim]No sessions found.[/dim]")
                return

            table = Table(show_header=True, header_style="bold cyan")
            table.add_column("ID", style="dim")
            table.add_column("Title")
            table.add_column("Workspace", style="yellow")
            table.add_column("Source", width=9)

            for summary in summaries:
                table.add_row(
                    summary.id,
                    summary.title or "[dim]untitled[/dim]",
                    summary.workspace or "",
                    "core" if summary.is_core else "persisted",
                )

            console.print(table)
        except ThreadlineError as e:
            console.print(f"[red]Error: {e}[/red]")
            raise typer.Exit(code=1)
        finally:
            await backend.disconnect()

    asyncio.run(_sessions())


@app.command()
def show(
    session_id: str = typer.Argument(..., help="Session to load"),
    head: str = typer.Option(None, "--head", help="Show the branch ending at this message instead"),
    insights: bool = typer.Option(False, "--insights", "-i", help="Show branch statistics")
):
    """Print the active path of a session."""
    async def _show():
        backend = get_backend()
        tree = MessageTree()
        try:
            await backend.connect()
            binder = SessionBinder(backend, tree)
            await binder.select_session(session_id)

            if head:
                tree.set_head(head)

            path = tree.messages
            if not path:
                console.print("[dim]Session has no messages.[/dim]")
            for message in path:
                console.print(_render_message(message, message.id == tree.head_id))

            if insights:
                stats = compute_branch_insights(tree.store, tree.head_id)
                table = Table(show_header=False, box=None)
                table.add_column("Metric", style="bold cyan", width=15)
                table.add_column("Value")
                table.add_row("Messages", str(stats.node_count))
                table.add_row("Leaves", str(stats.leaf_count))
                table.add_row("Branch Points", str(len(stats.branch_point_ids)))
                table.add_row("Max Depth", str(stats.max_depth))
                table.add_row("Active Depth", str(stats.active_depth))
                console.print(table)

                for message in branch_jump_points(stats, tree.store):
                    console.print(f"[yellow]fork[/yellow] {message.id}: {message.content[:80]}")

        except (KeyError, ThreadlineError) as e:
            console.print(f"[red]Error: {e}[/red]")
            raise typer.Exit(code=1)
        finally:
            await backend.disconnect()

    asyncio.run(_show())


@app.command()
def watch(
    session_id: str = typer.Argument(..., help="Session to follow"),
    interval: float = typer.Option(None, "--interval", help="Seconds between job polls")
):
    """Follow a session's background job, reloading while it runs."""
    async def _watch():
        config = get_config()
        backend = get_backend(config)
        tree = MessageTree()
        poller = None
        try:
            await backend.connect()
            binder = SessionBinder(backend, tree)
            await binder.select_session(session_id)
            console.print(f"[dim]Loaded {len(tree.messages)} messages; polling for background jobs...[/dim]")

            tree.subscribe(lambda t: console.print(
                f"[green]Reloaded:[/green] {len(t.messages)} messages on active path"
            ))
            poller = VisibilityPoller(binder, backend, interval or config.poll_interval)
            poller.set_hidden()
            await asyncio.Event().wait()

        except ThreadlineError as e:
            console.print(f"[red]Error: {e}[/red]")
            raise typer.Exit(code=1)
        finally:
            if poller:
                await poller.close()
            await backend.disconnect()

    try:
        asyncio.run(_watch())
    except KeyboardInterrupt:
        console.print("[dim]Stopped.[/dim]")


@app.command()
def delete(
    session_id: str = typer.Argument(..., help="Session to delete"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation")
):
    """Delete a session on the backend."""
    if not yes and not typer.confirm(f"Delete session {session_id}?"):
        console.print("[dim]Aborted.[/dim]")
        return

    async def _delete():
        backend = get_backend()
        try:
            await backend.connect()
            binder = SessionBinder(backend, MessageTree())
            await binder.delete_session(session_id)
            console.print(f"[green]Deleted session {session_id}[/green]")
        except ThreadlineError as e:
            console.print(f"[red]Error: {e}[/red]")
            raise typer.Exit(code=1)
        finally:
            await backend.disconnect()

    asyncio.run(_delete())


def main():
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
