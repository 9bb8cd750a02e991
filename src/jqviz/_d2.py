"""Serialize a flow graph to a D2 diagram script."""

from __future__ import annotations

from typing import TYPE_CHECKING

from ._ir import Container

if TYPE_CHECKING:
    from ._ir import Element, Graph

DEFAULT_TITLE = "jq query flow"
INDENT = "  "


def quote_label(text: str) -> str:
    """Quote a label as a D2 string.

    Double quotes are used unless the text contains a ``${`` sequence, which
    D2 would treat as a variable substitution; those labels are single-quoted.
    """
    if "${" in text:
        flat = text.replace("\n", " ").replace("'", "\\'")
        return f"'{flat}'"
    escaped = text.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")
    return f'"{escaped}"'


def _emit_element(element: Element, lines: list[str], depth: int) -> None:
    pad = INDENT * depth
    inner = INDENT * (depth + 1)
    lines.append(f"{pad}{element.id}: {{")
    lines.append(f"{inner}label: {quote_label(element.label)}")
    if element.detail and element.detail != element.label:
        lines.append(f"{inner}tooltip: {quote_label(element.detail)}")
    if isinstance(element, Container):
        for child in element.children:
            _emit_element(child, lines, depth + 1)
    else:
        lines.append(f"{inner}shape: {element.shape}")
    lines.append(f"{pad}}}")


def to_d2(graph: Graph, *, title: str = DEFAULT_TITLE, direction: str = "down") -> str:
    """Render a graph as D2 source.

    The output is a title block, one declaration block per element (nested
    for containers), then one line per edge using dotted paths. Edges with an inferred
    output type carry it as their label.

    Args:
        graph: The graph to serialize.
        title: Text of the diagram title.
        direction: D2 layout direction.

    Returns:
        The D2 script, ending in a newline.

    """
    lines = [
        "title: {",
        f"{INDENT}label: {quote_label(title)}",
        f"{INDENT}near: top-center",
        f"{INDENT}shape: text",
        f"{INDENT}style.font-size: 24",
        "}",
        f"direction: {direction}",
        "",
    ]
    for element in graph.elements:
        _emit_element(element, lines, 0)
    lines.append("")

    paths = graph.paths()
    for edge in graph.edges:
        line = f"{paths[edge.source]} -> {paths[edge.target]}"
        if edge.label:
            line += f": {quote_label(edge.label)}"
        lines.append(line)
    return "\n".join(lines) + "\n"
