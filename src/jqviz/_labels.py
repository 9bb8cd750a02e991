"""Human-readable labels for query AST nodes."""

from enum import StrEnum, auto
from typing import NamedTuple

from ._ast import (
    OPERATOR_SYMBOLS,
    ArrayConstruct,
    Bind,
    Break,
    FalseLiteral,
    Foreach,
    Format,
    FuncCall,
    Identity,
    If,
    Index,
    Label,
    NullLiteral,
    NumberLiteral,
    ObjectConstruct,
    Operation,
    Operator,
    Query,
    Recurse,
    Reduce,
    Slice,
    StringLiteral,
    SubQuery,
    TrueLiteral,
    Try,
    Unary,
    Variable,
    format_query,
    quote_string,
)


class Shape(StrEnum):
    """How a graph element is drawn."""

    CIRCLE = auto()
    RECTANGLE = auto()
    CONTAINER = auto()


class NodeLabel(NamedTuple):
    text: str
    shape: Shape


_OPERATOR_NAMES: dict[Operator, str] = {
    Operator.PIPE: "Pipe",
    Operator.COMMA: "Comma",
    Operator.ADD: "Add",
    Operator.SUB: "Subtract",
    Operator.MUL: "Multiply",
    Operator.DIV: "Divide",
    Operator.MOD: "Modulo",
    Operator.EQ: "Equal",
    Operator.NE: "Not Equal",
    Operator.GT: "Greater Than",
    Operator.LT: "Less Than",
    Operator.GE: "Greater or Equal",
    Operator.LE: "Less or Equal",
    Operator.AND: "And",
    Operator.OR: "Or",
    Operator.ALT: "Alternative",
    Operator.ASSIGN: "Assign",
    Operator.MODIFY: "Modify",
    Operator.UPDATE_ADD: "Update Add",
    Operator.UPDATE_SUB: "Update Subtract",
    Operator.UPDATE_MUL: "Update Multiply",
    Operator.UPDATE_DIV: "Update Divide",
    Operator.UPDATE_MOD: "Update Modulo",
    Operator.UPDATE_ALT: "Update Alternative",
}

OPERATOR_LABELS: dict[Operator, str] = {
    op: f"{name} ({OPERATOR_SYMBOLS[op]})" for op, name in _OPERATOR_NAMES.items()
} | {Operator.NOOP: "Query"}

_CONTAINER_TERMS = (FuncCall, ArrayConstruct, ObjectConstruct)


def operator_label(op: Operator) -> str:
    """Return the display label for an operator, ``Op(<tag>)`` if unknown."""
    try:
        return OPERATOR_LABELS[op]
    except KeyError:
        return f"Op({op})"


def variable_label(name: str) -> str:
    """Return the display form of a variable; used everywhere a variable is shown."""
    return f"${name}"


def slice_bound(bound: Query | None) -> str:
    """Render one slice bound the way it is written in the query."""
    match bound:
        case None:
            return ""
        case NumberLiteral(text=text) if text:
            return text
        case _:
            return format_query(bound)


def term_label(term: Query) -> str:  # noqa: C901, PLR0911, PLR0912
    """Return the label text for a term node.

    Unknown term types fall back to ``Term(<kind>)``.
    """
    match term:
        case Identity():
            return "Identity (.)"
        case Recurse():
            return "Recurse (..)"
        case NullLiteral():
            return "null"
        case TrueLiteral():
            return "true"
        case FalseLiteral():
            return "false"
        case Slice(start=start, end=end):
            return f"Slice [{slice_bound(start)}:{slice_bound(end)}]"
        case Index(name=str() as name) if name:
            return f"Index: {name}"
        case Index(key=str() as key) | Index(expr=StringLiteral(text=key)):
            return f"Index: {quote_string(key)}"
        case Index():
            return "Index"
        case FuncCall(name=name):
            return f"Function: {name}"
        case ArrayConstruct():
            return "Array"
        case ObjectConstruct():
            return "Object"
        case NumberLiteral(text=text) if text:
            return f"Number: {text}"
        case NumberLiteral():
            return "Number"
        case Unary(op=op):
            return f"Unary: {op}"
        case Format(name=name):
            return f"Format: {name}"
        case StringLiteral(text=text):
            return f"String: {quote_string(text)}"
        case If():
            return "If"
        case Try():
            return "Try"
        case Reduce():
            return "Reduce"
        case Foreach():
            return "Foreach"
        case Label():
            return "Label"
        case Break():
            return "Break"
        case SubQuery():
            return "Query"
        case Variable(name=name):
            return variable_label(name)
        case Bind(name=name):
            return f"Bind: {variable_label(name)}"
    kind = getattr(term, "kind", type(term).__name__)
    return f"Term({kind})"


def label_of(node: Query) -> NodeLabel:
    """Map one AST node to its label text and shape.

    Operations are labelled from the operator table. Terms are labelled from
    their own contents; a term whose label comes out empty falls back to the
    ``NOOP`` operator label.
    """
    if isinstance(node, Operation):
        return NodeLabel(operator_label(node.op), Shape.RECTANGLE)
    text = term_label(node)
    if not text:
        return NodeLabel(operator_label(Operator.NOOP), Shape.RECTANGLE)
    if isinstance(node, _CONTAINER_TERMS):
        return NodeLabel(text, Shape.CONTAINER)
    return NodeLabel(text, Shape.RECTANGLE)


def function_title(name: str) -> str:
    """Title of the container drawn for a function call."""
    return f"{name}()"


def object_key_title(key: str) -> str:
    """Title of the container drawn for one key of an object construction."""
    return f"{key} {{"


_STRING_FUNCTIONS = frozenset({"cat", "tee", "sh", "md5"})
_STRING_FUNCTION_PREFIXES = ("base", "hex", "sha")
_STRING_FUNCTION_SUFFIXES = ("_encode", "_decode")
_NUMBER_FUNCTIONS = frozenset({"length", "utf8bytelength"})
_ARRAY_FUNCTIONS = frozenset({"keys", "keys_unsorted"})
_NUMBER_OPERATORS = frozenset({Operator.ADD, Operator.SUB, Operator.MUL, Operator.DIV, Operator.MOD})
_BOOLEAN_OPERATORS = frozenset(
    {Operator.EQ, Operator.NE, Operator.GT, Operator.LT, Operator.GE, Operator.LE, Operator.AND, Operator.OR},
)


def function_output_type(name: str) -> str | None:
    """Guess the output type of a function call from its name alone."""
    if (
        name in _STRING_FUNCTIONS
        or name.startswith(_STRING_FUNCTION_PREFIXES)
        or name.endswith(_STRING_FUNCTION_SUFFIXES)
    ):
        return "string"
    if name in _NUMBER_FUNCTIONS:
        return "number"
    if name in _ARRAY_FUNCTIONS:
        return "array"
    return None


def output_type(node: Query) -> str | None:  # noqa: PLR0911
    """Best-effort type of the values a node produces.

    Only literals, constructions, a few well-known functions and the
    arithmetic, comparison and logical operators are recognized; anything
    else returns None.
    """
    match node:
        case StringLiteral() | Format():
            return "string"
        case NumberLiteral():
            return "number"
        case TrueLiteral() | FalseLiteral():
            return "boolean"
        case NullLiteral():
            return "null"
        case ArrayConstruct():
            return "array"
        case ObjectConstruct():
            return "object"
        case FuncCall(name=name):
            return function_output_type(name)
        case Operation(op=op) if op in _NUMBER_OPERATORS:
            return "number"
        case Operation(op=op) if op in _BOOLEAN_OPERATORS:
            return "boolean"
    return None
