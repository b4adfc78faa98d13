"""Command groups for the ``kg`` CLI.

  kg config   — Inspect and edit ``config.toml``
"""

from __future__ import annotations

from typing import List, Optional

import typer
from rich.console import Console
from rich.table import Table

from . import config_manager
from .filters import StatusFilter, TypeFilter
from .sources import SOURCE_KINDS

console = Console()

# ── Configuration group ──────────────────────────────────────
config_grp = typer.Typer(
    help="⚙️  Configuration — default sources and navigator filters.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


@config_grp.command("show")
def show_config():
    """Show the effective configuration and where it is stored."""
    ui = config_manager.load_ui_config()
    sources = config_manager.load_sources_config()

    table = Table(title="kgraph configuration", show_lines=False)
    table.add_column("Section", style="magenta", width=10)
    table.add_column("Key", style="cyan")
    table.add_column("Value", style="green")
    for key, value in ui.items():
        table.add_row("ui", key, str(value))
    for key, value in sources.items():
        shown = ", ".join(value) if isinstance(value, list) else str(value)
        table.add_row("sources", key, shown)

    console.print(table)
    path = config_manager.config_file()
    suffix = "" if path.exists() else " (not created yet)"
    console.print(f"[dim]Config file: {path}{suffix}[/dim]")


@config_grp.command("set-default-source")
def set_default_source(
    sources: List[str] = typer.Argument(..., help="Source kinds: mock, file, git, files."),
):
    """Choose the sources `kg browse` loads when --source is not given."""
    unknown = [s for s in sources if s not in SOURCE_KINDS]
    if unknown:
        raise typer.BadParameter(
            f"Unknown source(s): {', '.join(unknown)}. Choose from: {', '.join(SOURCE_KINDS)}"
        )
    if not config_manager.save_default_sources(sources):
        console.print("[red]Could not write the config file.[/red]")
        raise typer.Exit(code=1)
    console.print(f"[green]✓[/green] Default sources: {', '.join(sources)}")


@config_grp.command("set-filter")
def set_filter(
    type_filter: Optional[str] = typer.Option(
        None, "--type", "-t", help="All, ProjectsAndWork, Issues, PRs, Files or Commits."
    ),
    status_filter: Optional[str] = typer.Option(
        None, "--status", "-s", help="All, Active, NotDone or Done."
    ),
):
    """Set the filters the navigator starts with."""
    if type_filter is None and status_filter is None:
        raise typer.BadParameter("Pass --type and/or --status.")
    try:
        type_value = TypeFilter.parse(type_filter).value if type_filter else ""
        status_value = StatusFilter.parse(status_filter).value if status_filter else ""
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc

    if not config_manager.save_ui_config(type_filter=type_value, status_filter=status_value):
        console.print("[red]Could not write the config file.[/red]")
        raise typer.Exit(code=1)
    if type_value:
        console.print(f"[green]✓[/green] Type filter: {type_value}")
    if status_value:
        console.print(f"[green]✓[/green] Status filter: {status_value}")
