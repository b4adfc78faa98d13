"""Typer-based CLI for the kgraph knowledge-graph navigator."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from . import __version__, config
from .cli_groups import config_grp
from .filters import FilterSpec, StatusFilter, TypeFilter, apply_filter
from .graph_export import export_dot, export_json
from .models import GraphSnapshot
from .render import render_forest
from .sources import SOURCE_KINDS, Loader, build_sources
from .tree import build_forest

logger = logging.getLogger(__name__)
console = Console()

app = typer.Typer(
    help="🧭 kgraph — navigate projects, issues, PRs, commits and files as a tree.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

# Register configuration commands
app.add_typer(config_grp, name="config")


def version_callback(value: bool):
    """Print version and exit."""
    if value:
        typer.echo(f"kgraph CLI v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(False, "--verbose", help="Log debug output."),
):
    """kgraph: keyboard-driven knowledge-graph navigator for the terminal."""
    ctx.obj = {"verbose": verbose}
    config.setup_logging(verbose)


# ------------------------------------------------------------------
# Shared option helpers
# ------------------------------------------------------------------

SOURCE_OPTION_HELP = "Source kind (repeatable): mock, file, git, files."


def _filter_spec(type_filter: Optional[str], status_filter: Optional[str], search: str = "") -> FilterSpec:
    try:
        return FilterSpec(
            type_filter=TypeFilter.parse(type_filter or config.DEFAULT_TYPE_FILTER),
            status_filter=StatusFilter.parse(status_filter or config.DEFAULT_STATUS_FILTER),
            search=search,
        )
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc


def _make_loader(source: Optional[List[str]], path: Optional[Path]) -> Loader:
    kinds = source or config.DEFAULT_SOURCES
    try:
        sources = build_sources(
            kinds, path, max_commits=config.MAX_COMMITS, max_files=config.MAX_FILES
        )
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc
    return Loader(sources)


def _load_or_exit(source: Optional[List[str]], path: Optional[Path]) -> GraphSnapshot:
    snapshot, errors = _make_loader(source, path).load_all()
    if errors:
        for error in errors:
            console.print(f"[red]Error loading {escape(error)}[/red]")
        raise typer.Exit(code=1)
    return snapshot


def _collapse_set(collapse: Optional[List[str]]) -> frozenset:
    return frozenset(collapse or ())


# ------------------------------------------------------------------
# Commands
# ------------------------------------------------------------------

@app.command("browse")
def browse(
    ctx: typer.Context,
    source: Optional[List[str]] = typer.Option(None, "--source", "-s", help=SOURCE_OPTION_HELP),
    path: Optional[Path] = typer.Option(None, "--path", "-p", help="Repository, directory or snapshot file."),
    type_filter: Optional[str] = typer.Option(None, "--type", "-t", help="Initial type filter."),
    status_filter: Optional[str] = typer.Option(None, "--status", help="Initial status filter."),
):
    """Open the full-screen navigator."""
    from .cli_tui import run_navigator

    loader = _make_loader(source, path)
    spec = _filter_spec(type_filter, status_filter)
    config.ensure_base_dirs()
    config.setup_logging(bool(ctx.obj and ctx.obj.get("verbose")), log_file=config.LOG_FILE)
    logger.info("Starting navigator with %d source(s)", len(loader.sources))
    run_navigator(loader, filter_spec=spec, padding=config.VIEWPORT_PADDING)


@app.command("tree")
def tree(
    source: Optional[List[str]] = typer.Option(None, "--source", "-s", help=SOURCE_OPTION_HELP),
    path: Optional[Path] = typer.Option(None, "--path", "-p", help="Repository, directory or snapshot file."),
    type_filter: Optional[str] = typer.Option(None, "--type", "-t", help="Type filter."),
    status_filter: Optional[str] = typer.Option(None, "--status", help="Status filter."),
    search: str = typer.Option("", "--search", "-q", help="Case-insensitive title substring."),
    width: int = typer.Option(100, "--width", "-w", min=20, help="Maximum line width."),
    collapse: Optional[List[str]] = typer.Option(None, "--collapse", "-c", help="Node id to collapse (repeatable)."),
):
    """Print the filtered forest once, without the interactive screen."""
    spec = _filter_spec(type_filter, status_filter, search)
    snapshot = _load_or_exit(source, path)
    nodes, edges = apply_filter(snapshot.nodes, snapshot.edges, spec)
    forest = build_forest(nodes, edges)
    rendered = render_forest(forest, _collapse_set(collapse), None, width)

    console.print(
        f"[bold]Filter: {spec.type_filter.label}[/bold] "
        f"[dim]({len(nodes)} of {len(snapshot.nodes)} nodes)[/dim]"
    )
    for line in rendered.lines:
        console.print(line, soft_wrap=True)


@app.command("export")
def export(
    source: Optional[List[str]] = typer.Option(None, "--source", "-s", help=SOURCE_OPTION_HELP),
    path: Optional[Path] = typer.Option(None, "--path", "-p", help="Repository, directory or snapshot file."),
    fmt: str = typer.Option("json", "--format", "-f", help="Export format: json or dot."),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Output file path."),
    focus: str = typer.Option("", "--focus", help="Only export nodes matching this text and their neighbours."),
):
    """Export the loaded graph as a JSON snapshot or Graphviz DOT."""
    fmt = fmt.lower()
    if fmt not in {"json", "dot"}:
        raise typer.BadParameter("Format must be one of: json, dot")

    snapshot = _load_or_exit(source, path)
    if output is None:
        output = Path.cwd() / f"kgraph.{fmt}"

    if fmt == "json":
        export_json(snapshot, output, focus=focus)
    else:
        export_dot(snapshot, output, focus=focus)

    typer.echo(f"Exported {fmt.upper()} graph to {output}")


@app.command("sources")
def list_sources():
    """List the source kinds `--source` accepts."""
    table = Table(title="Sources", show_lines=False)
    table.add_column("Kind", style="cyan", width=8)
    table.add_column("Description")
    table.add_column("Default", justify="center", style="green", width=8)
    for kind, description in SOURCE_KINDS.items():
        table.add_row(kind, description, "✓" if kind in config.DEFAULT_SOURCES else "")
    console.print(table)


if __name__ == "__main__":
    app()
