import dataclasses
import logging
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel

from jqviz._ast import Query, format_query
from jqviz._config import JqvizConfig, get_config
from jqviz._d2 import to_d2
from jqviz._errors import ConfigError, QuerySyntaxError, ScriptSavedError, UnsupportedFormatError
from jqviz._ir import Graph, build_graph
from jqviz._labels import Shape
from jqviz._parser import parse_query
from jqviz._render import render as render_script

from .graph_query import get_container_tree, get_node_detail, list_nodes, summarize_graph
from .graph_render import render_node_detail, render_node_table, render_summary_table, render_tree

app = typer.Typer()

logger = logging.getLogger(__name__)
# Console for stderr (info/errors)
err_console = Console(stderr=True)
# Console for stdout (results)
out_console = Console()

QueryArgument = Annotated[str, typer.Argument(help="jq query to draw, e.g. '.[0:3] | map(.name)'")]
ExpandOption = Annotated[
    bool | None,
    typer.Option(
        "--expand-subqueries/--no-expand-subqueries",
        help="Draw parenthesized queries as containers instead of opaque 'Query' nodes",
    ),
]
TitleOption = Annotated[str | None, typer.Option("--title", help="Diagram title")]


@app.callback()
def callback(
    *,
    verbose: bool = typer.Option(default=False, help="Enable verbose output"),
) -> None:
    """Draw jq queries as flow diagrams."""
    log_level = logging.DEBUG if verbose else logging.INFO

    # Configure rich logging handler to output to stderr
    logging.basicConfig(
        level=log_level,
        format="%(message)s",
        handlers=[
            RichHandler(
                console=err_console,
                show_time=False,
                show_path=verbose,
                rich_tracebacks=True,
            ),
        ],
    )


def _load_config(**overrides: object) -> JqvizConfig:
    """Read [tool.jqviz] config and apply command-line overrides that were given."""
    try:
        config = get_config()
    except ConfigError as e:
        err_console.print(f"[red]✗ {escape(str(e))}[/red]")
        raise typer.Exit(code=1) from e
    given = {key: value for key, value in overrides.items() if value is not None}
    if config.project_root is not None:
        logger.debug(f"Using config from {config.project_root / 'pyproject.toml'}")
    return dataclasses.replace(config, **given)


def _parse_or_exit(text: str) -> Query:
    try:
        return parse_query(text)
    except QuerySyntaxError as e:
        err_console.print(f"[red]✗ {escape(str(e))}[/red]")
        raise typer.Exit(code=1) from e


def _build(text: str, config: JqvizConfig) -> Graph:
    query = _parse_or_exit(text)
    logger.debug(f"Normalized query: {format_query(query)}")
    return build_graph(query, expand_subqueries=config.expand_subqueries)


@app.command()
def render(  # noqa: PLR0913
    query: QueryArgument,
    *,
    output: Annotated[
        Path,
        typer.Option("-o", "--output", help="Output file (.svg, .png, .pdf or .d2)"),
    ],
    renderer: Annotated[
        str | None,
        typer.Option("--renderer", help="D2 executable to run"),
    ] = None,
    layout: Annotated[
        str | None,
        typer.Option("--layout", help="D2 layout engine"),
    ] = None,
    timeout: Annotated[
        float | None,
        typer.Option("--timeout", help="Seconds to wait for the renderer"),
    ] = None,
    title: TitleOption = None,
    expand_subqueries: ExpandOption = None,
) -> None:
    """Render the flow diagram of a query to an image."""
    config = _load_config(
        renderer=renderer,
        layout=layout,
        timeout=timeout,
        title=title,
        expand_subqueries=expand_subqueries,
    )
    err_console.print()

    graph = _build(query, config)
    script = to_d2(graph, title=config.title)

    err_console.print(f"[cyan]Rendering to:[/cyan] {output}")
    try:
        result = render_script(
            script,
            output,
            renderer=config.renderer,
            layout=config.layout,
            timeout=config.timeout,
        )
    except UnsupportedFormatError as e:
        err_console.print(f"[red]✗ {escape(str(e))}[/red]")
        raise typer.Exit(code=2) from e
    except ScriptSavedError as e:
        err_console.print(Panel(escape(str(e)), title="[bold red]Rendering failed[/bold red]", border_style="red"))
        err_console.print(f"[yellow]D2 script saved to:[/yellow] {e.script_path}")
        raise typer.Exit(code=1) from e

    if result.renderer_output.strip():
        logger.debug(result.renderer_output.strip())
    err_console.print()
    err_console.print(f"[green]✓ Diagram written to {result.output_path}[/green]")
    err_console.print()


@app.command()
def script(
    query: QueryArgument,
    *,
    output: Annotated[
        Path | None,
        typer.Option("-o", "--output", help="Write the D2 script to this file instead of stdout"),
    ] = None,
    title: TitleOption = None,
    expand_subqueries: ExpandOption = None,
) -> None:
    """Print the D2 script of a query."""
    config = _load_config(title=title, expand_subqueries=expand_subqueries)
    graph = _build(query, config)
    text = to_d2(graph, title=config.title)

    if output is None:
        # Labels may contain rich markup characters, so write the script untouched
        typer.echo(text, nl=False)
        return

    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(text, encoding="utf-8")
    err_console.print(f"[green]✓ D2 script written to {output}[/green]")


@app.command()
def check(query: QueryArgument) -> None:
    """Check that a query parses and summarize its diagram."""
    config = _load_config()
    err_console.print()
    err_console.print("[cyan]Parsing query...[/cyan]")
    graph = _build(query, config)
    err_console.print()

    summary = summarize_graph(graph)
    err_console.print(
        Panel(
            escape(query),
            title="[bold]Query[/bold]",
            border_style="cyan",
        ),
    )
    render_summary_table(summary, err_console)
    err_console.print()
    err_console.print("[green]✓ Query is valid[/green]")
    err_console.print()


@app.command()
def inspect(
    query: QueryArgument,
    *,
    node: Annotated[
        str | None,
        typer.Option("--node", help="Show details of one node id (e.g. node_3)"),
    ] = None,
    shape: Annotated[
        list[Shape] | None,
        typer.Option("--shape", help="Only list elements with this shape (repeatable)"),
    ] = None,
    tree: Annotated[
        bool,
        typer.Option("--tree", help="Show the container nesting instead of the node table"),
    ] = False,
    expand_subqueries: ExpandOption = None,
) -> None:
    """List the nodes and containers a query is drawn with."""
    config = _load_config(expand_subqueries=expand_subqueries)
    graph = _build(query, config)

    if node is not None:
        try:
            detail = get_node_detail(graph, node)
        except KeyError as e:
            err_console.print(f"[red]✗ Node not found: {escape(node)}[/red]")
            raise typer.Exit(code=1) from e
        render_node_detail(detail, out_console)
        return

    if tree:
        render_tree(get_container_tree(graph), out_console)
        return

    render_node_table(list_nodes(graph, shapes=shape), out_console)


def main() -> None:
    app()
