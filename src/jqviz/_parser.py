"""Parser for jq query strings.

The grammar covers the expression language used in filters: operators with
jq's precedence, postfix suffix chains, literals, constructors, function
calls, variable binding and the control constructs. Function definitions
(``def``), destructuring patterns and string interpolation are not parsed.

Suffix chains are desugared into pipes, so ``.a.b[0:2]`` becomes
``.a | .b | .[0:2]``; a trailing ``?`` wraps its subject in ``Try``.
"""

import logging
import re
from functools import cache

from lark import Lark, Token, Transformer, v_args
from lark.exceptions import UnexpectedInput

from ._ast import (
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
    ObjectEntry,
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
)
from ._errors import QuerySyntaxError

logger = logging.getLogger(__name__)

JQ_GRAMMAR = r"""
?start: pipe

?pipe: comma
     | comma "|" pipe                          -> pipe_op
     | postfix "as" VARIABLE "|" pipe          -> bind
     | "label" VARIABLE "|" pipe               -> label

?comma: alt
      | comma "," alt                          -> comma_op

?alt: assign
    | assign "//" alt                          -> alt_op

?assign: or_expr
       | or_expr assign_sym or_expr            -> binary_op

?or_expr: and_expr
        | or_expr "or" and_expr                -> or_op

?and_expr: compare
         | and_expr "and" compare              -> and_op

?compare: additive
        | additive cmp_sym additive            -> binary_op

?additive: multiplicative
         | additive add_sym multiplicative     -> binary_op

?multiplicative: unary
               | multiplicative mul_sym unary  -> binary_op

?unary: postfix
      | "-" postfix                            -> negate

!assign_sym: "=" | "|=" | "+=" | "-=" | "*=" | "/=" | "%=" | "//="
!cmp_sym: "==" | "!=" | "<" | "<=" | ">" | ">="
!add_sym: "+" | "-"
!mul_sym: "*" | "/" | "%"

?postfix: primary
        | postfix FIELD                        -> suffix_field
        | postfix "." STRING                   -> suffix_key
        | postfix "[" "]"                      -> suffix_iter
        | postfix "[" pipe "]"                 -> suffix_index
        | postfix "[" [pipe] ":" [pipe] "]"    -> suffix_slice
        | postfix "?"                          -> suffix_try

?primary: "."                                  -> identity
        | ".."                                 -> recurse
        | FIELD                                -> field
        | "." STRING                           -> key_index
        | NUMBER                               -> number
        | STRING                               -> string
        | FORMAT                               -> format
        | FORMAT STRING                        -> format
        | VARIABLE                             -> variable
        | "(" pipe ")"                         -> subquery
        | "[" "]"                              -> array
        | "[" pipe "]"                         -> array
        | object
        | IDENT                                -> func_call
        | IDENT "(" pipe (";" pipe)* ")"       -> func_call
        | "if" pipe "then" pipe elif_clause* ["else" pipe] "end" -> if_term
        | "try" primary ["catch" primary]      -> try_term
        | "reduce" postfix "as" VARIABLE "(" pipe ";" pipe ")" -> reduce_term
        | "foreach" postfix "as" VARIABLE "(" pipe ";" pipe [";" pipe] ")" -> foreach_term
        | "break" VARIABLE                     -> break_term

elif_clause: "elif" pipe "then" pipe

object: "{" "}"
      | "{" entry ("," entry)* "}"

entry: IDENT ":" obj_value                     -> entry_pair
     | STRING ":" obj_value                    -> entry_pair
     | "(" pipe ")" ":" obj_value              -> entry_expr_pair
     | IDENT                                   -> entry_field
     | STRING                                  -> entry_key
     | VARIABLE                                -> entry_variable

?obj_value: unary
          | obj_value "|" unary                -> pipe_op

FIELD: /\.[A-Za-z_][A-Za-z0-9_]*/
VARIABLE: /\$[A-Za-z_][A-Za-z0-9_]*/
FORMAT: /@[A-Za-z0-9_]+/
IDENT: /[A-Za-z_][A-Za-z0-9_]*(::[A-Za-z_][A-Za-z0-9_]*)*/
NUMBER: /\d+(\.\d+)?([eE][+-]?\d+)?/
STRING: /"(?:[^"\\]|\\.)*"/
COMMENT: /#[^\n]*/

%import common.WS
%ignore WS
%ignore COMMENT
"""

_ASSIGN_OPS = {
    "=": Operator.ASSIGN,
    "|=": Operator.MODIFY,
    "+=": Operator.UPDATE_ADD,
    "-=": Operator.UPDATE_SUB,
    "*=": Operator.UPDATE_MUL,
    "/=": Operator.UPDATE_DIV,
    "%=": Operator.UPDATE_MOD,
    "//=": Operator.UPDATE_ALT,
}
_COMPARE_OPS = {
    "==": Operator.EQ,
    "!=": Operator.NE,
    "<": Operator.LT,
    "<=": Operator.LE,
    ">": Operator.GT,
    ">=": Operator.GE,
}
_ARITHMETIC_OPS = {
    "+": Operator.ADD,
    "-": Operator.SUB,
    "*": Operator.MUL,
    "/": Operator.DIV,
    "%": Operator.MOD,
}
_KEYWORD_LITERALS = {
    "null": NullLiteral,
    "true": TrueLiteral,
    "false": FalseLiteral,
}

_ESCAPE_RE = re.compile(r"\\(u[0-9a-fA-F]{4}|.)", re.DOTALL)
_SIMPLE_ESCAPES = {
    '"': '"',
    "\\": "\\",
    "/": "/",
    "b": "\b",
    "f": "\f",
    "n": "\n",
    "r": "\r",
    "t": "\t",
}


def _decode_string(token: Token) -> str:
    """Decode a quoted string token; unknown escapes are kept verbatim."""

    def replace(match: re.Match[str]) -> str:
        escape = match.group(1)
        if escape.startswith("u") and len(escape) == 5:  # noqa: PLR2004
            return chr(int(escape[1:], 16))
        return _SIMPLE_ESCAPES.get(escape, match.group(0))

    return _ESCAPE_RE.sub(replace, str(token)[1:-1])


def _chain(subject: Query, suffix: Query) -> Query:
    """Attach a suffix to its subject; suffixes on ``.`` stand alone."""
    if isinstance(subject, Identity):
        return suffix
    return Operation(Operator.PIPE, subject, suffix)


@v_args(inline=True)
class JqTransformer(Transformer):
    """Turn a lark parse tree into the query AST."""

    def pipe_op(self, left: Query, right: Query) -> Query:
        return Operation(Operator.PIPE, left, right)

    def comma_op(self, left: Query, right: Query) -> Query:
        return Operation(Operator.COMMA, left, right)

    def alt_op(self, left: Query, right: Query) -> Query:
        return Operation(Operator.ALT, left, right)

    def or_op(self, left: Query, right: Query) -> Query:
        return Operation(Operator.OR, left, right)

    def and_op(self, left: Query, right: Query) -> Query:
        return Operation(Operator.AND, left, right)

    def binary_op(self, left: Query, op: Operator, right: Query) -> Query:
        return Operation(op, left, right)

    def assign_sym(self, token: Token) -> Operator:
        return _ASSIGN_OPS[str(token)]

    def cmp_sym(self, token: Token) -> Operator:
        return _COMPARE_OPS[str(token)]

    def add_sym(self, token: Token) -> Operator:
        return _ARITHMETIC_OPS[str(token)]

    def mul_sym(self, token: Token) -> Operator:
        return _ARITHMETIC_OPS[str(token)]

    def negate(self, operand: Query) -> Query:
        return Unary("-", operand)

    def bind(self, source: Query, variable: Token, body: Query) -> Query:
        return Bind(source, str(variable)[1:], body)

    def label(self, variable: Token, body: Query) -> Query:
        return Label(str(variable)[1:], body)

    # Suffixes

    def suffix_field(self, subject: Query, field: Token) -> Query:
        return _chain(subject, Index(name=str(field)[1:]))

    def suffix_key(self, subject: Query, key: Token) -> Query:
        return _chain(subject, Index(key=_decode_string(key)))

    def suffix_iter(self, subject: Query) -> Query:
        return _chain(subject, Index())

    def suffix_index(self, subject: Query, expr: Query) -> Query:
        return _chain(subject, Index(expr=expr))

    def suffix_slice(self, subject: Query, start: Query | None, end: Query | None) -> Query:
        return _chain(subject, Slice(start, end))

    def suffix_try(self, subject: Query) -> Query:
        return Try(subject)

    # Terms

    def identity(self) -> Query:
        return Identity()

    def recurse(self) -> Query:
        return Recurse()

    def field(self, field: Token) -> Query:
        return Index(name=str(field)[1:])

    def key_index(self, key: Token) -> Query:
        return Index(key=_decode_string(key))

    def number(self, token: Token) -> Query:
        return NumberLiteral(str(token))

    def string(self, token: Token) -> Query:
        return StringLiteral(_decode_string(token))

    def format(self, name: Token, text: Token | None = None) -> Query:
        return Format(str(name), None if text is None else _decode_string(text))

    def variable(self, token: Token) -> Query:
        return Variable(str(token)[1:])

    def subquery(self, query: Query) -> Query:
        return SubQuery(query)

    def array(self, query: Query | None = None) -> Query:
        return ArrayConstruct(query)

    def func_call(self, name: Token, *args: Query) -> Query:
        literal = _KEYWORD_LITERALS.get(str(name))
        if literal is not None and not args:
            return literal()
        return FuncCall(str(name), tuple(args))

    def elif_clause(self, cond: Query, then: Query) -> tuple[Query, Query]:
        return (cond, then)

    def if_term(self, cond: Query, then: Query, *rest: tuple[Query, Query] | Query | None) -> Query:
        *elifs, otherwise = rest
        return If(cond, then, tuple(elifs), otherwise)  # type: ignore[arg-type]

    def try_term(self, body: Query, catch: Query | None) -> Query:
        return Try(body, catch)

    def reduce_term(self, source: Query, variable: Token, init: Query, update: Query) -> Query:
        return Reduce(source, str(variable)[1:], init, update)

    def foreach_term(
        self,
        source: Query,
        variable: Token,
        init: Query,
        update: Query,
        extract: Query | None,
    ) -> Query:
        return Foreach(source, str(variable)[1:], init, update, extract)

    def break_term(self, variable: Token) -> Query:
        return Break(str(variable)[1:])

    # Objects

    def object(self, *entries: ObjectEntry) -> Query:
        return ObjectConstruct(tuple(entries))

    def entry_pair(self, key: Token, value: Query) -> ObjectEntry:
        if key.type == "STRING":
            return ObjectEntry(_decode_string(key), value)
        return ObjectEntry(str(key), value)

    def entry_expr_pair(self, key_expr: Query, value: Query) -> ObjectEntry:
        return ObjectEntry(format_query(key_expr), value, key_expr=key_expr)

    def entry_field(self, name: Token) -> ObjectEntry:
        return ObjectEntry(str(name), Index(name=str(name)))

    def entry_key(self, key: Token) -> ObjectEntry:
        text = _decode_string(key)
        return ObjectEntry(text, Index(key=text))

    def entry_variable(self, variable: Token) -> ObjectEntry:
        name = str(variable)[1:]
        return ObjectEntry(name, Variable(name))


@cache
def _lark() -> Lark:
    return Lark(JQ_GRAMMAR, parser="lalr", maybe_placeholders=True)


def parse_query(text: str) -> Query:
    """Parse a jq query string into an AST.

    Args:
        text: The query source.

    Returns:
        The root of the query AST.

    Raises:
        QuerySyntaxError: If the query is empty or not valid syntax.

    """
    if not text.strip():
        msg = "query string cannot be empty"
        raise QuerySyntaxError(msg)
    try:
        tree = _lark().parse(text)
    except UnexpectedInput as e:
        msg = f"invalid query: {e}"
        raise QuerySyntaxError(msg) from e
    query = JqTransformer().transform(tree)
    logger.debug(f"Parsed query {text!r}")
    return query
