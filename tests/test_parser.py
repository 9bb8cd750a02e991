"""Tests for parsing jq query strings into the AST."""

import pytest

from jqviz import Operation, Operator, QuerySyntaxError, parse_query
from jqviz._ast import (
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
    Recurse,
    Reduce,
    Slice,
    StringLiteral,
    SubQuery,
    TrueLiteral,
    Try,
    Unary,
    Variable,
)


class TestTerms:
    """Tests for single-term queries."""

    def test_identity(self) -> None:
        assert parse_query(".") == Identity()

    def test_recurse(self) -> None:
        assert parse_query("..") == Recurse()

    def test_field(self) -> None:
        assert parse_query("._val") == Index(name="_val")

    def test_quoted_key(self) -> None:
        assert parse_query('."foo bar"') == Index(key="foo bar")

    def test_iterate(self) -> None:
        assert parse_query(".[]") == Index()

    def test_computed_index(self) -> None:
        assert parse_query(".[0]") == Index(expr=NumberLiteral("0"))

    def test_slice(self) -> None:
        assert parse_query(".[0:3]") == Slice(NumberLiteral("0"), NumberLiteral("3"))

    def test_open_slices(self) -> None:
        assert parse_query(".[:2]") == Slice(None, NumberLiteral("2"))
        assert parse_query(".[1:]") == Slice(NumberLiteral("1"), None)

    def test_keyword_literals(self) -> None:
        assert parse_query("null") == NullLiteral()
        assert parse_query("true") == TrueLiteral()
        assert parse_query("false") == FalseLiteral()

    def test_number_keeps_source_text(self) -> None:
        assert parse_query("1.50") == NumberLiteral("1.50")

    def test_string_escapes_are_decoded(self) -> None:
        assert parse_query(r'"a\"b\né"') == StringLiteral('a"b\né')

    def test_format(self) -> None:
        assert parse_query("@base64") == Format("@base64")
        assert parse_query('@csv "x"') == Format("@csv", "x")

    def test_variable(self) -> None:
        assert parse_query("$item") == Variable("item")

    def test_negation(self) -> None:
        assert parse_query("-1") == Unary("-", NumberLiteral("1"))

    def test_comments_are_ignored(self) -> None:
        assert parse_query(". # keep everything") == Identity()


class TestSuffixChains:
    """Suffix chains become pipes."""

    def test_field_chain(self) -> None:
        assert parse_query(".a.b") == Operation(Operator.PIPE, Index(name="a"), Index(name="b"))

    def test_field_then_slice(self) -> None:
        assert parse_query(".a[0:2]") == Operation(
            Operator.PIPE,
            Index(name="a"),
            Slice(NumberLiteral("0"), NumberLiteral("2")),
        )

    def test_optional_suffix_wraps_in_try(self) -> None:
        assert parse_query(".a?") == Try(Index(name="a"))


class TestOperators:
    """Operator precedence and associativity."""

    def test_pipe_of_function_and_field(self) -> None:
        assert parse_query("md5 | ._val") == Operation(
            Operator.PIPE,
            FuncCall("md5"),
            Index(name="_val"),
        )

    def test_pipe_is_right_associative(self) -> None:
        query = parse_query(".a | .b | .c")
        assert query == Operation(
            Operator.PIPE,
            Index(name="a"),
            Operation(Operator.PIPE, Index(name="b"), Index(name="c")),
        )

    def test_multiplication_binds_tighter_than_addition(self) -> None:
        query = parse_query("1 + 2 * 3")
        assert query == Operation(
            Operator.ADD,
            NumberLiteral("1"),
            Operation(Operator.MUL, NumberLiteral("2"), NumberLiteral("3")),
        )

    def test_subtraction_is_left_associative(self) -> None:
        query = parse_query("1 - 2 - 3")
        assert query == Operation(
            Operator.SUB,
            Operation(Operator.SUB, NumberLiteral("1"), NumberLiteral("2")),
            NumberLiteral("3"),
        )

    def test_comparison_and_logic(self) -> None:
        query = parse_query(".a > 1 and .b != null or .c")
        assert isinstance(query, Operation)
        assert query.op is Operator.OR
        assert isinstance(query.left, Operation)
        assert query.left.op is Operator.AND

    def test_comma_binds_looser_than_alternative(self) -> None:
        query = parse_query('.a // "x", .b')
        assert isinstance(query, Operation)
        assert query.op is Operator.COMMA
        assert query.left == Operation(Operator.ALT, Index(name="a"), StringLiteral("x"))

    @pytest.mark.parametrize(
        ("text", "op"),
        [
            (".a = 1", Operator.ASSIGN),
            (".a |= 1", Operator.MODIFY),
            (".a += 1", Operator.UPDATE_ADD),
            (".a -= 1", Operator.UPDATE_SUB),
            (".a *= 1", Operator.UPDATE_MUL),
            (".a /= 1", Operator.UPDATE_DIV),
            (".a %= 1", Operator.UPDATE_MOD),
            (".a //= 1", Operator.UPDATE_ALT),
        ],
    )
    def test_update_operators(self, text: str, op: Operator) -> None:
        assert parse_query(text) == Operation(op, Index(name="a"), NumberLiteral("1"))


class TestConstructs:
    """Compound terms."""

    def test_function_arguments(self) -> None:
        query = parse_query("sub(.a; .b)")
        assert query == FuncCall("sub", (Index(name="a"), Index(name="b")))

    def test_namespaced_function(self) -> None:
        assert parse_query("mod::fn") == FuncCall("mod::fn")

    def test_array(self) -> None:
        assert parse_query("[]") == ArrayConstruct()
        assert parse_query("[.a]") == ArrayConstruct(Index(name="a"))

    def test_object(self) -> None:
        query = parse_query('{file: "test", md5: (md5 | ._val)}')
        assert query == ObjectConstruct(
            (
                ObjectEntry("file", StringLiteral("test")),
                ObjectEntry(
                    "md5",
                    SubQuery(Operation(Operator.PIPE, FuncCall("md5"), Index(name="_val"))),
                ),
            ),
        )

    def test_object_shorthand_entries(self) -> None:
        query = parse_query('{name, "key", $v}')
        assert query == ObjectConstruct(
            (
                ObjectEntry("name", Index(name="name")),
                ObjectEntry("key", Index(key="key")),
                ObjectEntry("v", Variable("v")),
            ),
        )

    def test_object_computed_key(self) -> None:
        query = parse_query("{(.k): 1}")
        assert isinstance(query, ObjectConstruct)
        (entry,) = query.entries
        assert entry.key == ".k"
        assert entry.key_expr == Index(name="k")

    def test_if_elif_else(self) -> None:
        query = parse_query("if .a then 1 elif .b then 2 else 3 end")
        assert query == If(
            Index(name="a"),
            NumberLiteral("1"),
            ((Index(name="b"), NumberLiteral("2")),),
            NumberLiteral("3"),
        )

    def test_if_without_else(self) -> None:
        assert parse_query("if . then 1 end") == If(Identity(), NumberLiteral("1"))

    def test_try_catch(self) -> None:
        assert parse_query('try .a catch "x"') == Try(Index(name="a"), StringLiteral("x"))

    def test_reduce(self) -> None:
        query = parse_query("reduce .[] as $x (0; . + $x)")
        assert query == Reduce(
            Index(),
            "x",
            NumberLiteral("0"),
            Operation(Operator.ADD, Identity(), Variable("x")),
        )

    def test_foreach_with_extract(self) -> None:
        query = parse_query("foreach .[] as $x (0; . + 1; [$x, .])")
        assert isinstance(query, Foreach)
        assert query.name == "x"
        assert query.extract == ArrayConstruct(Operation(Operator.COMMA, Variable("x"), Identity()))

    def test_label_and_break(self) -> None:
        assert parse_query("label $out | break $out") == Label("out", Break("out"))

    def test_bind(self) -> None:
        query = parse_query(".[] as $x | $x * 2")
        assert query == Bind(
            Index(),
            "x",
            Operation(Operator.MUL, Variable("x"), NumberLiteral("2")),
        )


class TestErrors:
    """Tests for rejected input."""

    @pytest.mark.parametrize("text", ["", "   ", "\n"])
    def test_empty_query(self, text: str) -> None:
        with pytest.raises(QuerySyntaxError, match="query string cannot be empty"):
            parse_query(text)

    @pytest.mark.parametrize("text", [".[", "| .a", "{a:", "if . then 1"])
    def test_invalid_query(self, text: str) -> None:
        with pytest.raises(QuerySyntaxError, match="invalid query"):
            parse_query(text)
