"""Rich rendering utilities for graph inspection commands."""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.markup import escape
from rich.table import Table
from rich.tree import Tree

from jqviz._labels import Shape

if TYPE_CHECKING:
    from rich.console import Console

    from .graph_query import GraphSummary, NodeDetail, NodeInfo, TreeNode


def render_summary_table(summary: GraphSummary, console: Console) -> None:
    """Render graph counts as a Rich table.

    Args:
        summary: GraphSummary to render.
        console: Rich Console to output to.

    """
    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Nodes", justify="right")
    table.add_column("Containers", justify="right")
    table.add_column("Edges", justify="right")
    table.add_column("Nesting", justify="right")
    table.add_row(
        str(summary.node_count),
        str(summary.container_count),
        str(summary.edge_count),
        str(summary.max_depth),
    )
    console.print(table)


def render_node_table(nodes: list[NodeInfo], console: Console) -> None:
    """Render element list as a Rich table.

    Args:
        nodes: List of NodeInfo to render.
        console: Rich Console to output to.

    """
    if not nodes:
        console.print("[dim]No nodes match the given filters[/dim]")
        return

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Path", style="dim")
    table.add_column("Label")
    table.add_column("Shape")
    table.add_column("Out", justify="right")

    for node in nodes:
        path_str = node.path
        # Truncate long paths
        if len(path_str) > 60:
            path_str = "..." + path_str[-57:]

        shape_style = _get_shape_style(node.shape)
        table.add_row(
            path_str,
            escape(node.label),
            f"[{shape_style}]{node.shape.upper()}[/{shape_style}]",
            str(node.out_degree),
        )

    console.print(table)
    console.print(f"\n[dim]Total: {len(nodes)} nodes[/dim]")


def render_node_detail(detail: NodeDetail, console: Console) -> None:
    """Render detailed element information.

    Args:
        detail: NodeDetail to render.
        console: Rich Console to output to.

    """
    console.print(f"[bold]Node:[/bold] {detail.path}")
    console.print()

    shape_style = _get_shape_style(detail.shape)
    console.print(f"[cyan]Label:[/cyan]   {escape(detail.label)}")
    console.print(f"[cyan]Shape:[/cyan]   [{shape_style}]{detail.shape.upper()}[/{shape_style}]")
    if detail.detail:
        console.print(f"[cyan]Detail:[/cyan]  {escape(detail.detail)}")
    console.print()

    for title, ids in (("Incoming", detail.predecessors), ("Outgoing", detail.successors)):
        if ids:
            console.print(f"[cyan]{title} ({len(ids)}):[/cyan]")
            for element_id in ids:
                console.print(f"  {element_id}")
        else:
            console.print(f"[cyan]{title}:[/cyan] [dim]None[/dim]")


def render_tree(tree_node: TreeNode, console: Console) -> None:
    """Render the container nesting using Rich Tree.

    Args:
        tree_node: TreeNode root to render.
        console: Rich Console to output to.

    """
    rich_tree = Tree(f"[bold]{escape(tree_node.label)}[/bold]")
    _add_tree_children(rich_tree, tree_node.children)
    console.print(rich_tree)


def _add_tree_children(parent: Tree, children: list[TreeNode]) -> None:
    """Recursively add children to a Rich Tree.

    Args:
        parent: Parent Tree node to add children to.
        children: List of TreeNode children.

    """
    for child in children:
        child_tree = parent.add(f"{escape(child.label)} [dim]({child.id})[/dim]")
        _add_tree_children(child_tree, child.children)


def _get_shape_style(shape: Shape) -> str:
    """Get Rich style string for a shape.

    Args:
        shape: The Shape.

    Returns:
        Rich style string.

    """
    match shape:
        case Shape.CIRCLE:
            return "magenta"
        case Shape.RECTANGLE:
            return "green"
        case Shape.CONTAINER:
            return "blue"
