"""Build a flow graph from a query AST."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from jqviz._ast import (
    ArrayConstruct,
    Bind,
    FuncCall,
    ObjectConstruct,
    Operation,
    Operator,
    SubQuery,
    Unary,
)
from jqviz._labels import Shape, function_title, label_of, object_key_title, output_type

from ._graph import END_LABEL, START_ID, START_LABEL, Container, Edge, Element, Graph, GraphNode

if TYPE_CHECKING:
    from jqviz._ast import Query

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class _Scope:
    """Elements collected for the container currently being filled."""

    container_id: str | None
    label: str = ""
    detail: str | None = None
    elements: list[Element] = field(default_factory=list)


@dataclass(slots=True)
class _BuildContext:
    """State owned by one ``build_graph`` call.

    Attributes:
        counter: Next free value for node ids; never reused.
        cursor: Id of the most recently visited element.
        expand_subqueries: Draw parenthesized queries as containers.
        types: Inferred output type of each element, by id.
        branching: The cursor was just reset to the head of a branch, so
            the next edge leaves a container or operator rather than
            carrying its output.

    """

    expand_subqueries: bool = False
    counter: int = 0
    cursor: str = START_ID
    edges: list[Edge] = field(default_factory=list)
    seen_edges: set[tuple[str, str]] = field(default_factory=set)
    scopes: list[_Scope] = field(default_factory=lambda: [_Scope(container_id=None)])
    types: dict[str, str] = field(default_factory=dict)
    branching: bool = False

    def next_id(self, prefix: str = "node") -> str:
        node_id = f"{prefix}_{self.counter}"
        self.counter += 1
        return node_id

    def connect(self, source: str, target: str) -> None:
        """Add an edge unless it is a self-loop or already present.

        The edge is labelled with the output type of ``source`` unless it
        starts a branch.
        """
        label = None if self.branching else self.types.get(source)
        self.branching = False
        if source == target or (source, target) in self.seen_edges:
            return
        self.seen_edges.add((source, target))
        self.edges.append(Edge(source, target, label))

    def start_branch(self, seed: str) -> None:
        self.cursor = seed
        self.branching = True

    def _record_type(self, node_id: str, node: Query | None) -> None:
        if node is not None and (kind := output_type(node)) is not None:
            self.types[node_id] = kind

    def add_node(self, label: str, detail: str | None = None, *, source: Query | None = None) -> str:
        """Declare a node in the current scope and advance the cursor to it.

        ``source`` is the AST node drawn, used to type the outgoing edges.
        """
        node_id = self.next_id()
        self._record_type(node_id, source)
        self.scopes[-1].elements.append(GraphNode(node_id, label, Shape.RECTANGLE, detail))
        logger.debug(f"Allocated {node_id}: {label}")
        self.connect(self.cursor, node_id)
        self.cursor = node_id
        return node_id

    def open_container(self, label: str, detail: str | None = None, *, source: Query | None = None) -> str:
        """Start a container; following declarations are nested inside it."""
        node_id = self.next_id()
        self._record_type(node_id, source)
        logger.debug(f"Allocated container {node_id}: {label}")
        self.connect(self.cursor, node_id)
        self.cursor = node_id
        self.scopes.append(_Scope(container_id=node_id, label=label, detail=detail))
        return node_id

    def close_container(self) -> None:
        scope = self.scopes.pop()
        if scope.container_id is None:
            msg = "Cannot close the top-level scope"
            raise RuntimeError(msg)
        self.scopes[-1].elements.append(
            Container(scope.container_id, scope.label, tuple(scope.elements), scope.detail),
        )
        self.cursor = scope.container_id

    def visit_branch(self, seed: str, node: Query) -> None:
        """Visit ``node`` with a fresh cursor starting at ``seed``."""
        self.start_branch(seed)
        _visit(self, node)


def _pipe_operands(node: Query) -> list[Query]:
    """Flatten a (possibly nested) pipe into its operands, left to right."""
    operands: list[Query] = []
    stack: list[Query] = [node]
    while stack:
        current = stack.pop()
        if isinstance(current, Operation) and current.op is Operator.PIPE:
            if current.right is not None:
                stack.append(current.right)
            if current.left is not None:
                stack.append(current.left)
        else:
            operands.append(current)
    return operands


def _unwrap(node: Query) -> Query:
    """Drop the parentheses around a function argument or object value.

    The enclosing container already groups the expression, so it is drawn
    in full rather than as an opaque ``Query`` node.
    """
    if isinstance(node, SubQuery):
        return node.query
    return node


def _visit_operator(ctx: _BuildContext, node: Query, label: str, operands: tuple[Query | None, ...]) -> None:
    """Operator node with each operand feeding back into it."""
    op_id = ctx.add_node(label, source=node)
    for operand in operands:
        if operand is None:
            continue
        ctx.visit_branch(op_id, operand)
        ctx.connect(ctx.cursor, op_id)
        ctx.cursor = op_id


def _visit(ctx: _BuildContext, node: Query) -> None:
    label = label_of(node)
    match node:
        case Operation(op=Operator.PIPE):
            for operand in _pipe_operands(node):
                _visit(ctx, operand)
        case Operation(left=left, right=right):
            _visit_operator(ctx, node, label.text, (left, right))
        case Unary(operand=operand):
            _visit_operator(ctx, node, label.text, (operand,))
        case FuncCall(name=name, args=args):
            func_id = ctx.open_container(function_title(name), detail=label.text, source=node)
            for arg in args:
                ctx.visit_branch(func_id, _unwrap(arg))
            ctx.close_container()
        case ArrayConstruct(query=query):
            array_id = ctx.open_container(label.text, source=node)
            if query is not None:
                ctx.visit_branch(array_id, query)
            ctx.close_container()
        case ObjectConstruct(entries=entries):
            object_id = ctx.open_container(label.text, source=node)
            for entry in entries:
                ctx.start_branch(object_id)
                key_id = ctx.open_container(object_key_title(entry.key))
                ctx.visit_branch(key_id, _unwrap(entry.value))
                ctx.close_container()
            ctx.close_container()
        case Bind(source=source, body=body):
            _visit(ctx, source)
            ctx.add_node(label.text, source=node)
            _visit(ctx, body)
        case SubQuery(query=query) if ctx.expand_subqueries:
            query_id = ctx.open_container(label.text)
            ctx.visit_branch(query_id, query)
            ctx.close_container()
        case _:
            ctx.add_node(label.text, source=node)


def build_graph(query: Query | None, *, expand_subqueries: bool = False) -> Graph:
    """Build the flow graph of a query.

    Pipes add no nodes of their own: their operands are chained one after
    another. Every other operator gets a node that its operands branch out
    of and converge back into. Function calls, arrays and objects become
    containers whose nested expressions start from the container itself, so
    siblings are never linked to each other.

    Args:
        query: Root of the query AST. None yields a graph with only the
            start and end nodes.
        expand_subqueries: Draw ``(query)`` as a container holding the inner
            expression instead of an opaque ``Query`` node.

    Returns:
        The graph, with the start node first and the end node last.

    """
    ctx = _BuildContext(expand_subqueries=expand_subqueries)
    top = ctx.scopes[0]
    top.elements.append(GraphNode(START_ID, START_LABEL, Shape.CIRCLE))

    if query is not None:
        _visit(ctx, query)

    end_id = f"end_{ctx.counter}"
    top.elements.append(GraphNode(end_id, END_LABEL, Shape.CIRCLE))
    if ctx.cursor != START_ID:
        ctx.connect(ctx.cursor, end_id)

    logger.debug(f"Built graph with {ctx.counter} ids and {len(ctx.edges)} edges")
    return Graph(elements=tuple(top.elements), edges=tuple(ctx.edges), end_id=end_id)
