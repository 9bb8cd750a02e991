"""Query AST for the jq language.

The AST is a closed sum type: a node is either an ``Operation`` (an operator
applied to a left and right sub-query) or one of the term dataclasses below.
Every node is immutable; consumers dispatch on the concrete class with
``match`` statements.

Key types:
- Operator: Enum of binary operators (plus the ``NOOP`` sentinel)
- TermKind: Enum tagging each term variant
- Operation: Operator application
- Term: Union of all term variants
- Query: ``Operation | Term``
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from enum import StrEnum, auto
from typing import ClassVar


class Operator(StrEnum):
    """Binary operators of the query language."""

    NOOP = auto()  # Sentinel for an operation without an operator
    PIPE = auto()
    COMMA = auto()
    ADD = auto()
    SUB = auto()
    MUL = auto()
    DIV = auto()
    MOD = auto()
    EQ = auto()
    NE = auto()
    GT = auto()
    LT = auto()
    GE = auto()
    LE = auto()
    AND = auto()
    OR = auto()
    ALT = auto()
    ASSIGN = auto()
    MODIFY = auto()
    UPDATE_ADD = auto()
    UPDATE_SUB = auto()
    UPDATE_MUL = auto()
    UPDATE_DIV = auto()
    UPDATE_MOD = auto()
    UPDATE_ALT = auto()


OPERATOR_SYMBOLS: dict[Operator, str] = {
    Operator.PIPE: "|",
    Operator.COMMA: ",",
    Operator.ADD: "+",
    Operator.SUB: "-",
    Operator.MUL: "*",
    Operator.DIV: "/",
    Operator.MOD: "%",
    Operator.EQ: "==",
    Operator.NE: "!=",
    Operator.GT: ">",
    Operator.LT: "<",
    Operator.GE: ">=",
    Operator.LE: "<=",
    Operator.AND: "and",
    Operator.OR: "or",
    Operator.ALT: "//",
    Operator.ASSIGN: "=",
    Operator.MODIFY: "|=",
    Operator.UPDATE_ADD: "+=",
    Operator.UPDATE_SUB: "-=",
    Operator.UPDATE_MUL: "*=",
    Operator.UPDATE_DIV: "/=",
    Operator.UPDATE_MOD: "%=",
    Operator.UPDATE_ALT: "//=",
}


class TermKind(StrEnum):
    """The kind of a term node."""

    IDENTITY = auto()
    RECURSE = auto()
    NULL = auto()
    TRUE = auto()
    FALSE = auto()
    NUMBER = auto()
    STRING = auto()
    FORMAT = auto()
    INDEX = auto()
    SLICE = auto()
    FUNC = auto()
    ARRAY = auto()
    OBJECT = auto()
    UNARY = auto()
    IF = auto()
    TRY = auto()
    REDUCE = auto()
    FOREACH = auto()
    LABEL = auto()
    BREAK = auto()
    VARIABLE = auto()
    BIND = auto()
    QUERY = auto()


@dataclass(frozen=True, slots=True)
class Operation:
    """An operator applied to up to two sub-queries."""

    op: Operator
    left: Query | None = None
    right: Query | None = None


@dataclass(frozen=True, slots=True)
class Identity:
    kind: ClassVar[TermKind] = TermKind.IDENTITY


@dataclass(frozen=True, slots=True)
class Recurse:
    kind: ClassVar[TermKind] = TermKind.RECURSE


@dataclass(frozen=True, slots=True)
class NullLiteral:
    kind: ClassVar[TermKind] = TermKind.NULL


@dataclass(frozen=True, slots=True)
class TrueLiteral:
    kind: ClassVar[TermKind] = TermKind.TRUE


@dataclass(frozen=True, slots=True)
class FalseLiteral:
    kind: ClassVar[TermKind] = TermKind.FALSE


@dataclass(frozen=True, slots=True)
class NumberLiteral:
    """A number, kept as the literal source text (``"3"``, ``"1.5e3"``)."""

    text: str = ""
    kind: ClassVar[TermKind] = TermKind.NUMBER


@dataclass(frozen=True, slots=True)
class StringLiteral:
    """A string literal with escapes already decoded."""

    text: str
    kind: ClassVar[TermKind] = TermKind.STRING


@dataclass(frozen=True, slots=True)
class Format:
    """A format conversion such as ``@base64``, optionally applied to a string."""

    name: str
    text: str | None = None
    kind: ClassVar[TermKind] = TermKind.FORMAT


@dataclass(frozen=True, slots=True)
class Index:
    """Field or element access.

    Exactly one of the attributes is normally set: ``name`` for ``.foo``,
    ``key`` for ``."foo"``, ``expr`` for ``.[expr]``. None of them set means
    iteration (``.[]``).
    """

    name: str | None = None
    key: str | None = None
    expr: Query | None = None
    kind: ClassVar[TermKind] = TermKind.INDEX


@dataclass(frozen=True, slots=True)
class Slice:
    """Array slice ``.[start:end]``; an absent bound is open on that side."""

    start: Query | None = None
    end: Query | None = None
    kind: ClassVar[TermKind] = TermKind.SLICE


@dataclass(frozen=True, slots=True)
class FuncCall:
    name: str
    args: tuple[Query, ...] = ()
    kind: ClassVar[TermKind] = TermKind.FUNC


@dataclass(frozen=True, slots=True)
class ArrayConstruct:
    """``[query]``; ``query`` is None for the empty array."""

    query: Query | None = None
    kind: ClassVar[TermKind] = TermKind.ARRAY


@dataclass(frozen=True, slots=True)
class ObjectEntry:
    """One ``key: value`` pair of an object construction.

    ``key`` is the display text of the key. For computed keys (``(expr): v``)
    ``key_expr`` holds the expression and ``key`` its source text.
    """

    key: str
    value: Query
    key_expr: Query | None = None


@dataclass(frozen=True, slots=True)
class ObjectConstruct:
    entries: tuple[ObjectEntry, ...] = ()
    kind: ClassVar[TermKind] = TermKind.OBJECT


@dataclass(frozen=True, slots=True)
class Unary:
    """A prefix operator (``-``) applied to an operand."""

    op: str
    operand: Query
    kind: ClassVar[TermKind] = TermKind.UNARY


@dataclass(frozen=True, slots=True)
class If:
    cond: Query
    then: Query
    elifs: tuple[tuple[Query, Query], ...] = ()
    otherwise: Query | None = None
    kind: ClassVar[TermKind] = TermKind.IF


@dataclass(frozen=True, slots=True)
class Try:
    body: Query
    catch: Query | None = None
    kind: ClassVar[TermKind] = TermKind.TRY


@dataclass(frozen=True, slots=True)
class Reduce:
    source: Query
    name: str
    init: Query
    update: Query
    kind: ClassVar[TermKind] = TermKind.REDUCE


@dataclass(frozen=True, slots=True)
class Foreach:
    source: Query
    name: str
    init: Query
    update: Query
    extract: Query | None = None
    kind: ClassVar[TermKind] = TermKind.FOREACH


@dataclass(frozen=True, slots=True)
class Label:
    name: str
    body: Query
    kind: ClassVar[TermKind] = TermKind.LABEL


@dataclass(frozen=True, slots=True)
class Break:
    name: str
    kind: ClassVar[TermKind] = TermKind.BREAK


@dataclass(frozen=True, slots=True)
class Variable:
    """A variable reference; ``name`` excludes the ``$`` sigil."""

    name: str
    kind: ClassVar[TermKind] = TermKind.VARIABLE


@dataclass(frozen=True, slots=True)
class Bind:
    """``source as $name | body``."""

    source: Query
    name: str
    body: Query
    kind: ClassVar[TermKind] = TermKind.BIND


@dataclass(frozen=True, slots=True)
class SubQuery:
    """A parenthesized query ``(query)``."""

    query: Query
    kind: ClassVar[TermKind] = TermKind.QUERY


Term = (
    Identity
    | Recurse
    | NullLiteral
    | TrueLiteral
    | FalseLiteral
    | NumberLiteral
    | StringLiteral
    | Format
    | Index
    | Slice
    | FuncCall
    | ArrayConstruct
    | ObjectConstruct
    | Unary
    | If
    | Try
    | Reduce
    | Foreach
    | Label
    | Break
    | Variable
    | Bind
    | SubQuery
)

Query = Operation | Term


# Binding strength of each operator, loosest first.
_PRECEDENCE: dict[Operator, int] = {
    Operator.PIPE: 1,
    Operator.COMMA: 2,
    Operator.ALT: 3,
    Operator.ASSIGN: 4,
    Operator.MODIFY: 4,
    Operator.UPDATE_ADD: 4,
    Operator.UPDATE_SUB: 4,
    Operator.UPDATE_MUL: 4,
    Operator.UPDATE_DIV: 4,
    Operator.UPDATE_MOD: 4,
    Operator.UPDATE_ALT: 4,
    Operator.OR: 5,
    Operator.AND: 6,
    Operator.EQ: 7,
    Operator.NE: 7,
    Operator.GT: 7,
    Operator.LT: 7,
    Operator.GE: 7,
    Operator.LE: 7,
    Operator.ADD: 8,
    Operator.SUB: 8,
    Operator.MUL: 9,
    Operator.DIV: 9,
    Operator.MOD: 9,
}
_RIGHT_ASSOCIATIVE = frozenset({Operator.PIPE, Operator.ALT})

_IDENT_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")


def quote_string(text: str) -> str:
    """Quote ``text`` as a double-quoted string literal."""
    return json.dumps(text, ensure_ascii=False)


def _operand(node: Query | None, parent: Operator, *, is_left: bool) -> str:
    if node is None:
        return ""
    text = format_query(node)
    if not isinstance(node, Operation) or node.op is Operator.NOOP:
        return text
    outer = _PRECEDENCE.get(parent, 0)
    inner = _PRECEDENCE.get(node.op, 0)
    if inner < outer:
        return f"({text})"
    if inner == outer and is_left == (parent in _RIGHT_ASSOCIATIVE):
        return f"({text})"
    return text


def _key_text(entry: ObjectEntry) -> str:
    if entry.key_expr is not None:
        return f"({format_query(entry.key_expr)})"
    if _IDENT_RE.fullmatch(entry.key):
        return entry.key
    return quote_string(entry.key)


def format_query(node: Query | None) -> str:  # noqa: C901, PLR0911, PLR0912
    """Render an AST back to query source text.

    The output parses back to an equivalent AST; it is not guaranteed to
    match how the input was spelled (whitespace, suffix chains).
    """
    match node:
        case None:
            return ""
        case Operation(op=Operator.NOOP, left=left, right=right):
            return " ".join(part for part in (format_query(left), format_query(right)) if part)
        case Operation(op=op, left=left, right=right):
            left_text = _operand(left, op, is_left=True)
            right_text = _operand(right, op, is_left=False)
            if op is Operator.COMMA:
                return f"{left_text}, {right_text}"
            return f"{left_text} {OPERATOR_SYMBOLS[op]} {right_text}"
        case Identity():
            return "."
        case Recurse():
            return ".."
        case NullLiteral():
            return "null"
        case TrueLiteral():
            return "true"
        case FalseLiteral():
            return "false"
        case NumberLiteral(text=text):
            return text
        case StringLiteral(text=text):
            return quote_string(text)
        case Format(name=name, text=None):
            return name
        case Format(name=name, text=text):
            return f"{name} {quote_string(text)}"
        case Index(name=str() as name):
            return f".{name}"
        case Index(key=str() as key):
            return f".{quote_string(key)}"
        case Index(expr=None):
            return ".[]"
        case Index(expr=expr):
            return f".[{format_query(expr)}]"
        case Slice(start=start, end=end):
            return f".[{format_query(start)}:{format_query(end)}]"
        case FuncCall(name=name, args=()):
            return name
        case FuncCall(name=name, args=args):
            return f"{name}({'; '.join(format_query(arg) for arg in args)})"
        case ArrayConstruct(query=query):
            return f"[{format_query(query)}]"
        case ObjectConstruct(entries=entries):
            pairs = ", ".join(f"{_key_text(entry)}: {_wrap(entry.value)}" for entry in entries)
            return f"{{{pairs}}}"
        case Unary(op=op, operand=operand):
            return f"{op}{_wrap(operand)}"
        case If(cond=cond, then=then, elifs=elifs, otherwise=otherwise):
            text = f"if {format_query(cond)} then {format_query(then)}"
            for elif_cond, elif_then in elifs:
                text += f" elif {format_query(elif_cond)} then {format_query(elif_then)}"
            if otherwise is not None:
                text += f" else {format_query(otherwise)}"
            return text + " end"
        case Try(body=body, catch=None):
            return f"try {_wrap(body)}"
        case Try(body=body, catch=catch):
            return f"try {_wrap(body)} catch {_wrap(catch)}"
        case Reduce(source=source, name=name, init=init, update=update):
            return f"reduce {_wrap(source)} as ${name} ({format_query(init)}; {format_query(update)})"
        case Foreach(source=source, name=name, init=init, update=update, extract=extract):
            parts = [format_query(init), format_query(update)]
            if extract is not None:
                parts.append(format_query(extract))
            return f"foreach {_wrap(source)} as ${name} ({'; '.join(parts)})"
        case Label(name=name, body=body):
            return f"label ${name} | {format_query(body)}"
        case Break(name=name):
            return f"break ${name}"
        case Variable(name=name):
            return f"${name}"
        case Bind(source=source, name=name, body=body):
            return f"{_wrap(source)} as ${name} | {format_query(body)}"
        case SubQuery(query=query):
            return f"({format_query(query)})"
    msg = f"Cannot format AST node of type {type(node).__name__}"
    raise TypeError(msg)


def _wrap(node: Query | None) -> str:
    """Format ``node``, parenthesizing anything that is not a single term."""
    text = format_query(node)
    if isinstance(node, Operation | Bind | Label):
        return f"({text})"
    return text
