"""Graph query functions for CLI commands.

This module provides pure functions for inspecting a built graph.
These are the functional core - no I/O, no Rich rendering.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from jqviz._ir import Container
from jqviz._labels import Shape

if TYPE_CHECKING:
    from jqviz._ir import Element, Graph


@dataclass(frozen=True, slots=True)
class GraphSummary:
    """Counts describing a graph."""

    node_count: int
    container_count: int
    edge_count: int
    max_depth: int


@dataclass(frozen=True, slots=True)
class NodeInfo:
    """Basic information about an element for listing."""

    id: str
    path: str
    label: str
    shape: Shape
    out_degree: int


@dataclass(frozen=True, slots=True)
class NodeDetail:
    """Detailed information about an element."""

    id: str
    path: str
    label: str
    shape: Shape
    detail: str | None
    predecessors: tuple[str, ...]
    successors: tuple[str, ...]


@dataclass(slots=True)
class TreeNode:
    """A node in the container tree for rendering."""

    id: str
    label: str
    children: list[TreeNode]


def summarize_graph(graph: Graph) -> GraphSummary:
    """Count the plain nodes, containers and edges of a graph.

    Args:
        graph: The Graph to analyze.

    Returns:
        GraphSummary for the graph. ``max_depth`` is the deepest container
        nesting (0 when nothing is nested).

    """
    nodes = 0
    containers = 0
    depth = 0
    for ancestors, element in graph.iter_elements():
        if isinstance(element, Container):
            containers += 1
        else:
            nodes += 1
        depth = max(depth, len(ancestors))
    return GraphSummary(
        node_count=nodes,
        container_count=containers,
        edge_count=len(graph.edges),
        max_depth=depth,
    )


def list_nodes(graph: Graph, *, shapes: list[Shape] | None = None) -> list[NodeInfo]:
    """List elements in declaration order with optional filtering.

    Args:
        graph: The Graph to analyze.
        shapes: Only include elements with one of these shapes.

    Returns:
        List of NodeInfo matching the filter.

    """
    out_degree: dict[str, int] = {}
    for edge in graph.edges:
        out_degree[edge.source] = out_degree.get(edge.source, 0) + 1

    infos: list[NodeInfo] = []
    for ancestors, element in graph.iter_elements():
        if shapes and element.shape not in shapes:
            continue
        infos.append(
            NodeInfo(
                id=element.id,
                path=".".join((*ancestors, element.id)),
                label=element.label,
                shape=element.shape,
                out_degree=out_degree.get(element.id, 0),
            ),
        )
    return infos


def get_node_detail(graph: Graph, element_id: str) -> NodeDetail:
    """Get detailed information about a specific element.

    Args:
        graph: The Graph containing the element.
        element_id: The element id.

    Returns:
        NodeDetail with the element's edges in both directions.

    Raises:
        KeyError: If the element is not found.

    """
    element = graph.get(element_id)
    return NodeDetail(
        id=element.id,
        path=graph.path_of(element_id),
        label=element.label,
        shape=element.shape,
        detail=element.detail,
        predecessors=tuple(edge.source for edge in graph.edges if edge.target == element_id),
        successors=tuple(edge.target for edge in graph.edges if edge.source == element_id),
    )


def get_container_tree(graph: Graph) -> TreeNode:
    """Build the nesting tree of a graph, rooted at a synthetic ``graph`` node."""

    def build_tree(element: Element) -> TreeNode:
        children = [build_tree(child) for child in element.children] if isinstance(element, Container) else []
        return TreeNode(id=element.id, label=element.label, children=children)

    return TreeNode(id="graph", label="graph", children=[build_tree(element) for element in graph.elements])
