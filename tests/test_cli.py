"""Tests for the jqviz command line."""

import sys
from pathlib import Path

import pytest
from typer.testing import CliRunner

from jqviz import build_graph, parse_query
from jqviz._cli.graph_query import (
    GraphSummary,
    NodeInfo,
    get_container_tree,
    get_node_detail,
    list_nodes,
    summarize_graph,
)
from jqviz._cli.main import app
from jqviz._labels import Shape

runner = CliRunner()

FAKE_RENDERER = """#!/bin/sh
for last; do :; done
echo '<svg xmlns="http://www.w3.org/2000/svg"></svg>' > "$last"
"""


@pytest.fixture(autouse=True)
def isolated_cwd(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Run every command outside any project so no [tool.jqviz] is picked up."""
    monkeypatch.chdir(tmp_path)
    return tmp_path


# --- graph_query tests ---


class TestSummarizeGraph:
    def test_counts(self) -> None:
        graph = build_graph(parse_query('{file: "test", md5: (md5 | ._val)}'))

        assert summarize_graph(graph) == GraphSummary(
            node_count=4,
            container_count=4,
            edge_count=7,
            max_depth=2,
        )

    def test_flat_graph(self) -> None:
        summary = summarize_graph(build_graph(parse_query(".a | .b")))

        assert summary.container_count == 0
        assert summary.max_depth == 0


class TestListNodes:
    def test_declaration_order(self) -> None:
        graph = build_graph(parse_query("map(.a)"))

        nodes = list_nodes(graph)

        assert [node.id for node in nodes] == ["start", "node_0", "node_1", "end_2"]
        assert nodes[2] == NodeInfo(
            id="node_1",
            path="node_0.node_1",
            label="Index: a",
            shape=Shape.RECTANGLE,
            out_degree=0,
        )
        assert nodes[1].out_degree == 2

    def test_filter_by_shape(self) -> None:
        graph = build_graph(parse_query("map(.a)"))

        nodes = list_nodes(graph, shapes=[Shape.CIRCLE])

        assert [node.label for node in nodes] == ["Start", "End"]


class TestNodeDetail:
    def test_edges_in_both_directions(self) -> None:
        graph = build_graph(parse_query(".a + .b"))

        detail = get_node_detail(graph, "node_0")

        assert detail.label == "Add (+)"
        assert detail.predecessors == ("start", "node_1", "node_2")
        assert detail.successors == ("node_1", "node_2", "end_3")

    def test_unknown_node(self) -> None:
        graph = build_graph(parse_query("."))

        with pytest.raises(KeyError):
            get_node_detail(graph, "node_42")


def test_container_tree() -> None:
    graph = build_graph(parse_query("{a: [1]}"))

    tree = get_container_tree(graph)

    assert tree.id == "graph"
    obj = tree.children[1]
    assert obj.label == "Object"
    assert obj.children[0].label == "a {"
    assert obj.children[0].children[0].label == "Array"


# --- command tests ---


class TestScriptCommand:
    def test_prints_script(self) -> None:
        result = runner.invoke(app, ["script", "md5 | ._val"])

        assert result.exit_code == 0
        assert "start -> node_0" in result.output
        assert 'label: "md5()"' in result.output

    def test_writes_script(self, isolated_cwd: Path) -> None:
        output = isolated_cwd / "flows" / "q.d2"

        result = runner.invoke(app, ["script", ".[0:3] | .[0:2]", "-o", str(output), "--title", "Slices"])

        assert result.exit_code == 0
        text = output.read_text(encoding="utf-8")
        assert text.count("Slice [0:3]") == 1
        assert 'label: "Slices"' in text

    def test_expand_subqueries_flag(self) -> None:
        result = runner.invoke(app, ["script", "(.a | .b)", "--expand-subqueries"])

        assert result.exit_code == 0
        assert "Index: a" in result.output

    def test_config_is_used(self, isolated_cwd: Path) -> None:
        (isolated_cwd / "pyproject.toml").write_text('[tool.jqviz]\ntitle = "From config"\n')

        result = runner.invoke(app, ["script", "."])

        assert result.exit_code == 0
        assert 'label: "From config"' in result.output

    def test_invalid_config(self, isolated_cwd: Path) -> None:
        (isolated_cwd / "pyproject.toml").write_text("[tool.jqviz]\ntimeout = -1\n")

        result = runner.invoke(app, ["script", "."])

        assert result.exit_code == 1
        assert "timeout" in result.output

    def test_invalid_query(self) -> None:
        result = runner.invoke(app, ["script", ".["])

        assert result.exit_code == 1
        assert "invalid query" in result.output


class TestRenderCommand:
    def test_unsupported_format(self, isolated_cwd: Path) -> None:
        result = runner.invoke(app, ["render", ".", "-o", "out.gif"])

        assert result.exit_code == 2
        assert "unsupported output format" in result.output
        assert list(isolated_cwd.iterdir()) == []

    def test_missing_renderer(self, isolated_cwd: Path) -> None:
        result = runner.invoke(
            app,
            ["render", "md5 | ._val", "-o", "flow.svg", "--renderer", "jqviz-no-such-renderer"],
        )

        assert result.exit_code == 1
        assert "D2 script saved to" in result.output
        assert (isolated_cwd / "flow.d2").exists()
        assert not (isolated_cwd / "flow.svg").exists()

    def test_d2_output(self, isolated_cwd: Path) -> None:
        result = runner.invoke(app, ["render", ".", "-o", "flow.d2"])

        assert result.exit_code == 0
        assert (isolated_cwd / "flow.d2").read_text(encoding="utf-8").startswith("title: {")

    def test_missing_output_directory_is_created(self, isolated_cwd: Path) -> None:
        result = runner.invoke(
            app,
            ["render", "md5 | ._val", "-o", "out/diagrams/flow.svg", "--renderer", "jqviz-no-such-renderer"],
        )

        assert result.exit_code == 1
        assert "D2 script saved to" in result.output
        assert (isolated_cwd / "out" / "diagrams" / "flow.d2").exists()

    @pytest.mark.skipif(sys.platform == "win32", reason="fake renderer is a POSIX shell script")
    def test_renders_with_configured_renderer(self, isolated_cwd: Path) -> None:
        renderer = isolated_cwd / "fake-d2"
        renderer.write_text(FAKE_RENDERER)
        renderer.chmod(0o755)
        (isolated_cwd / "pyproject.toml").write_text(f'[tool.jqviz]\nrenderer = "{renderer}"\n')

        result = runner.invoke(app, ["render", ".a", "-o", "flow.svg"])

        assert result.exit_code == 0
        assert "<svg" in (isolated_cwd / "flow.svg").read_text()
        assert not (isolated_cwd / "flow.d2").exists()


class TestCheckCommand:
    def test_valid_query(self) -> None:
        result = runner.invoke(app, ["check", '{file: "test"}'])

        assert result.exit_code == 0
        assert "Query is valid" in result.output

    def test_invalid_query(self) -> None:
        result = runner.invoke(app, ["check", ""])

        assert result.exit_code == 1
        assert "query string cannot be empty" in result.output


class TestInspectCommand:
    def test_node_table(self) -> None:
        result = runner.invoke(app, ["inspect", ".a + .b"])

        assert result.exit_code == 0
        assert "Add (+)" in result.output
        assert "Total: 5 nodes" in result.output

    def test_shape_filter(self) -> None:
        result = runner.invoke(app, ["inspect", "map(.a)", "--shape", "container"])

        assert result.exit_code == 0
        assert "map()" in result.output
        assert "Index: a" not in result.output

    def test_tree(self) -> None:
        result = runner.invoke(app, ["inspect", "{a: 1}", "--tree"])

        assert result.exit_code == 0
        assert "a {" in result.output
        assert "Object" in result.output

    def test_node_detail(self) -> None:
        result = runner.invoke(app, ["inspect", ".a + .b", "--node", "node_0"])

        assert result.exit_code == 0
        assert "Add (+)" in result.output
        assert "Incoming (3)" in result.output

    def test_unknown_node(self) -> None:
        result = runner.invoke(app, ["inspect", ".", "--node", "node_9"])

        assert result.exit_code == 1
        assert "Node not found" in result.output
