"""Draw jq queries as flow diagrams."""

__all__ = [
    "ConfigError",
    "Container",
    "DiagramResponse",
    "Edge",
    "Graph",
    "GraphNode",
    "JqvizConfig",
    "JqvizError",
    "NodeLabel",
    "Operation",
    "Operator",
    "Query",
    "QuerySyntaxError",
    "RenderFailedError",
    "RenderResult",
    "RendererNotFoundError",
    "ScriptSavedError",
    "Shape",
    "TermKind",
    "UnsupportedFormatError",
    "ValidationResponse",
    "build_graph",
    "create_diagram",
    "format_query",
    "label_of",
    "output_type",
    "parse_query",
    "render",
    "to_d2",
    "validate_query",
]

from ._ast import Operation, Operator, Query, TermKind, format_query
from ._config import JqvizConfig
from ._d2 import to_d2
from ._errors import (
    ConfigError,
    JqvizError,
    QuerySyntaxError,
    RendererNotFoundError,
    RenderFailedError,
    ScriptSavedError,
    UnsupportedFormatError,
)
from ._ir import Container, Edge, Graph, GraphNode, build_graph
from ._labels import NodeLabel, Shape, label_of, output_type
from ._parser import parse_query
from ._render import RenderResult, render
from ._service import DiagramResponse, ValidationResponse, create_diagram, validate_query
