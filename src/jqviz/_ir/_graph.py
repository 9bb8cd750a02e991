"""Graph model produced from a query AST."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from jqviz._labels import Shape

if TYPE_CHECKING:
    from collections.abc import Iterator

START_ID = "start"
START_LABEL = "Start"
END_LABEL = "End"


@dataclass(frozen=True, slots=True)
class GraphNode:
    """A single drawn node.

    Attributes:
        id: Identifier unique within the graph.
        label: Text drawn inside the node.
        shape: CIRCLE for the synthetic start/end nodes, RECTANGLE otherwise.
        detail: Optional longer description (rendered as a tooltip).

    """

    id: str
    label: str
    shape: Shape = Shape.RECTANGLE
    detail: str | None = None


@dataclass(frozen=True, slots=True)
class Container:
    """A named grouping of nested nodes and containers."""

    id: str
    label: str
    children: tuple[Element, ...] = ()
    detail: str | None = None

    @property
    def shape(self) -> Shape:
        return Shape.CONTAINER


Element = GraphNode | Container


@dataclass(frozen=True, slots=True)
class Edge:
    """A directed connection between two declared elements.

    Attributes:
        source: Id of the element the data leaves.
        target: Id of the element the data enters.
        label: Type of the values carried, when it can be inferred.

    """

    source: str
    target: str
    label: str | None = None


@dataclass(frozen=True, slots=True)
class Graph:
    """The flow graph of one query.

    ``elements`` holds the top-level declarations in order, starting with the
    start node and ending with the end node. Edges address elements by id;
    nested elements are reached through ``path_of``.

    Example:
        >>> graph = build_graph(parse_query("."))
        >>> [element.label for element in graph.elements]
        ['Start', 'Identity (.)', 'End']
        >>> graph.edge_pairs()
        [('start', 'node_0'), ('node_0', 'end_1')]

    """

    elements: tuple[Element, ...]
    edges: tuple[Edge, ...]
    end_id: str
    start_id: str = START_ID

    def iter_elements(self) -> Iterator[tuple[tuple[str, ...], Element]]:
        """Yield every element depth-first together with its ancestor ids."""
        stack: list[tuple[tuple[str, ...], Element]] = [((), element) for element in reversed(self.elements)]
        while stack:
            ancestors, element = stack.pop()
            yield ancestors, element
            if isinstance(element, Container):
                inner = (*ancestors, element.id)
                stack.extend((inner, child) for child in reversed(element.children))

    def iter_nodes(self) -> Iterator[Element]:
        """Yield every node and container, depth-first in declaration order."""
        for _, element in self.iter_elements():
            yield element

    def paths(self) -> dict[str, str]:
        """Map each element id to its dotted path from the top level."""
        return {element.id: ".".join((*ancestors, element.id)) for ancestors, element in self.iter_elements()}

    def path_of(self, element_id: str) -> str:
        """Get the dotted path of an element.

        Raises:
            KeyError: If no element has the given id.

        """
        return self.paths()[element_id]

    def get(self, element_id: str) -> Element:
        """Get an element by id.

        Raises:
            KeyError: If no element has the given id.

        """
        for element in self.iter_nodes():
            if element.id == element_id:
                return element
        raise KeyError(element_id)

    def labels(self) -> list[str]:
        """Labels of all elements in declaration order."""
        return [element.label for element in self.iter_nodes()]

    def edge_pairs(self) -> list[tuple[str, str]]:
        return [(edge.source, edge.target) for edge in self.edges]

    def containers(self) -> list[Container]:
        return [element for element in self.iter_nodes() if isinstance(element, Container)]

    def undeclared_endpoints(self) -> set[str]:
        """Ids referenced by an edge without a matching declaration."""
        declared = {element.id for element in self.iter_nodes()}
        referenced = {end for edge in self.edges for end in (edge.source, edge.target)}
        return referenced - declared

    def __len__(self) -> int:
        """Return the number of declared nodes and containers."""
        return sum(1 for _ in self.iter_nodes())

    def __contains__(self, element_id: object) -> bool:
        return any(element.id == element_id for element in self.iter_nodes())
