"""context-continue CLI - session context tracking for AI coding agents."""

from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.markdown import Markdown
from rich.table import Table

from context_continue import __version__
from context_continue.config import CONFIG_FILE, README_FILE, context_dir, init_project
from context_continue.logging import configure_logging

app = typer.Typer(
    name="context-continue",
    help="Track AI session context and restore it in new conversations.",
    no_args_is_help=True,
)
mcp_app = typer.Typer(help="MCP server configuration.")

app.add_typer(mcp_app, name="mcp")

console = Console()


def version_callback(value: bool) -> None:
    if value:
        console.print(f"context-continue {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        Optional[bool],
        typer.Option("--version", "-v", callback=version_callback, is_eager=True),
    ] = None,
    log_level: Annotated[
        Optional[str],
        typer.Option("--log-level", help="DEBUG, INFO, WARNING or ERROR"),
    ] = None,
) -> None:
    """context-continue - keep conversation context across AI sessions."""
    configure_logging(log_level)


@app.command("serve")
def serve() -> None:
    """Start the MCP server (stdio transport)."""
    from context_continue.mcp.server import mcp

    configure_logging(use_rich=True)
    mcp.run()


@app.command("init")
def init(
    project_path: Annotated[Path, typer.Argument(help="Project directory to initialize")] = Path("."),
    name: Annotated[Optional[str], typer.Option("--name", "-n", help="Project name")] = None,
) -> None:
    """Initialize context management in a project directory."""
    project_path = project_path.resolve()
    if not project_path.is_dir():
        console.print(f"[red]Error:[/red] {project_path} is not a directory")
        raise typer.Exit(1)

    config = init_project(project_path, name)
    root = context_dir(project_path)

    console.print("[green]Context management initialized![/green]")
    console.print(f"  Project: {config.project_name}")
    console.print(f"  Config:  {root / CONFIG_FILE}")
    console.print(f"  Guide:   {root / README_FILE}")
    console.print("\n[bold]Next steps:[/bold]")
    console.print("  1. context-continue mcp init --path " + str(project_path))
    console.print("  2. Use the context_* tools from your AI client")


@app.command("status")
def status(
    project_path: Annotated[Path, typer.Option("--path", "-p", help="Project path")] = Path("."),
) -> None:
    """Show context management status for a project."""
    from context_continue.context.manager import ContextManager

    project_path = project_path.resolve()
    if not context_dir(project_path).is_dir():
        console.print("[yellow]Context management not initialized in this project.[/yellow]")
        console.print(f"Run: context-continue init {project_path}")
        raise typer.Exit(1)

    manager = ContextManager()
    summary = manager.get_project_summary(project_path)

    table = Table(title=f"Context Status: {summary.name}", show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("Path", str(project_path))
    table.add_row("Sessions", str(summary.total_sessions))
    table.add_row("Total tokens", str(summary.total_tokens))
    table.add_row("Milestones", str(len(manager.ledger.get_milestones(project_path))))
    table.add_row("Decisions", str(len(manager.ledger.get_decisions(project_path))))
    table.add_row("Current phase", summary.current_phase or "[dim]not set[/dim]")
    table.add_row("Config", str(context_dir(project_path) / CONFIG_FILE))
    console.print(table)


@app.command("restore")
def restore(
    project_path: Annotated[Path, typer.Option("--path", "-p", help="Project path")] = Path("."),
    raw: Annotated[bool, typer.Option("--raw", help="Print plain markdown")] = False,
) -> None:
    """Print the restoration prompt for a project."""
    from context_continue.context.manager import ContextManager

    prompt = ContextManager().generate_restoration_prompt(project_path.resolve())
    if raw:
        typer.echo(prompt.full_prompt)
    else:
        console.print(Markdown(prompt.full_prompt))


@mcp_app.command("init")
def mcp_init(
    project_path: Annotated[Path, typer.Option("--path", "-p", help="Project path")] = Path("."),
) -> None:
    """Register the MCP server in the project's .mcp.json."""
    from context_continue.mcp.installer import install_mcp_project

    project_path = project_path.resolve()
    results = install_mcp_project(project_path)

    for name, success in results.items():
        icon = "[green]✓[/green]" if success else "[red]✗[/red]"
        console.print(f"  {icon} {project_path / name}")

    if not any(results.values()):
        console.print("[red]Failed to write MCP config.[/red]")
        raise typer.Exit(1)
    console.print("\n[dim]Restart your AI agent to pick up the new MCP server.[/dim]")


@mcp_app.command("remove")
def mcp_remove(
    project_path: Annotated[Path, typer.Option("--path", "-p", help="Project path")] = Path("."),
) -> None:
    """Remove the MCP server entry from the project's .mcp.json."""
    from context_continue.mcp.installer import remove_mcp_project

    project_path = project_path.resolve()
    results = remove_mcp_project(project_path)

    for name, removed in results.items():
        if removed:
            console.print(f"  [green]✓[/green] removed from {project_path / name}")
        else:
            console.print(f"  [dim]-[/dim] not configured in {project_path / name}")
