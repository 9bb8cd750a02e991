"""Intermediate Representation (IR) module for jqviz.

This module provides the graph model a query is compiled into, independent
of the diagram language it is later serialized to.

Key types:
- GraphNode: A single drawn node (start/end circles and operation boxes)
- Container: A grouping of nested elements (function arguments, object keys)
- Edge: A directed connection between two elements
- Graph: Ordered declarations plus edges for one query
- build_graph: Function to build the graph from a query AST
"""

from ._builder import build_graph
from ._graph import START_ID, Container, Edge, Element, Graph, GraphNode

__all__ = ["START_ID", "Container", "Edge", "Element", "Graph", "GraphNode", "build_graph"]
