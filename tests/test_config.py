"""Tests for the configuration module."""

from pathlib import Path

import pytest

from jqviz._config import (
    ConfigError,
    JqvizConfig,
    find_pyproject_toml,
    get_config,
    load_config,
)


class TestFindPyprojectToml:
    """Tests for find_pyproject_toml function."""

    def test_finds_in_current_directory(self, tmp_path: Path) -> None:
        """Should find pyproject.toml in current directory."""
        pyproject = tmp_path / "pyproject.toml"
        pyproject.write_text("[project]\nname = 'test'\n")

        result = find_pyproject_toml(tmp_path)

        assert result == pyproject

    def test_finds_in_parent_directory(self, tmp_path: Path) -> None:
        """Should find pyproject.toml in parent directory."""
        pyproject = tmp_path / "pyproject.toml"
        pyproject.write_text("[project]\nname = 'test'\n")

        subdir = tmp_path / "queries" / "nested"
        subdir.mkdir(parents=True)

        result = find_pyproject_toml(subdir)

        assert result == pyproject

    def test_returns_none_when_not_found(self, tmp_path: Path) -> None:
        """Should return None when no pyproject.toml is found."""
        result = find_pyproject_toml(tmp_path)

        assert result is None


class TestLoadConfig:
    """Tests for reading [tool.jqviz]."""

    def test_full_section(self, tmp_path: Path) -> None:
        """Should read every supported key."""
        pyproject = tmp_path / "pyproject.toml"
        pyproject.write_text(
            """
[tool.jqviz]
renderer = "/opt/d2/bin/d2"
layout = "dagre"
title = "Pipeline"
timeout = 30
expand_subqueries = true
""",
        )

        config = load_config(pyproject)

        assert config == JqvizConfig(
            renderer="/opt/d2/bin/d2",
            layout="dagre",
            title="Pipeline",
            timeout=30.0,
            expand_subqueries=True,
            project_root=tmp_path,
        )

    def test_missing_section_uses_defaults(self, tmp_path: Path) -> None:
        """Should return defaults when [tool.jqviz] is absent."""
        pyproject = tmp_path / "pyproject.toml"
        pyproject.write_text("[project]\nname = 'test'\n")

        config = load_config(pyproject)

        assert config == JqvizConfig(project_root=tmp_path)
        assert config.renderer == "d2"
        assert config.layout == "elk"
        assert config.timeout is None

    def test_partial_section_keeps_other_defaults(self, tmp_path: Path) -> None:
        """Should only override keys that are present."""
        pyproject = tmp_path / "pyproject.toml"
        pyproject.write_text('[tool.jqviz]\ntitle = "Flow"\n')

        config = load_config(pyproject)

        assert config.title == "Flow"
        assert config.renderer == "d2"
        assert config.expand_subqueries is False

    def test_empty_layout_means_renderer_default(self, tmp_path: Path) -> None:
        """Should map an empty layout to None."""
        pyproject = tmp_path / "pyproject.toml"
        pyproject.write_text('[tool.jqviz]\nlayout = ""\n')

        assert load_config(pyproject).layout is None

    @pytest.mark.parametrize(
        ("body", "message"),
        [
            ("renderer = 1", "renderer"),
            ('renderer = ""', "renderer"),
            ("title = []", "title"),
            ("timeout = 0", "timeout"),
            ("timeout = -5", "timeout"),
            ("timeout = true", "timeout"),
            ('timeout = "10"', "timeout"),
            ('expand_subqueries = "yes"', "expand_subqueries"),
        ],
    )
    def test_invalid_values(self, tmp_path: Path, body: str, message: str) -> None:
        """Should raise ConfigError naming the offending key."""
        pyproject = tmp_path / "pyproject.toml"
        pyproject.write_text(f"[tool.jqviz]\n{body}\n")

        with pytest.raises(ConfigError, match=message):
            load_config(pyproject)

    def test_section_must_be_a_table(self, tmp_path: Path) -> None:
        """Should reject a non-table tool.jqviz value."""
        pyproject = tmp_path / "pyproject.toml"
        pyproject.write_text('[tool]\njqviz = "d2"\n')

        with pytest.raises(ConfigError, match="expected a table"):
            load_config(pyproject)

    def test_invalid_toml(self, tmp_path: Path) -> None:
        """Should raise ConfigError for unparseable TOML."""
        pyproject = tmp_path / "pyproject.toml"
        pyproject.write_text("[tool.jqviz\n")

        with pytest.raises(ConfigError, match="Invalid TOML"):
            load_config(pyproject)


class TestGetConfig:
    """Tests for get_config function."""

    def test_defaults_without_pyproject(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Should return defaults when no pyproject.toml exists."""
        monkeypatch.chdir(tmp_path)

        assert get_config() == JqvizConfig()

    def test_reads_from_parent(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Should pick up the nearest pyproject.toml above the CWD."""
        (tmp_path / "pyproject.toml").write_text('[tool.jqviz]\nrenderer = "d2-custom"\n')
        subdir = tmp_path / "work"
        subdir.mkdir()
        monkeypatch.chdir(subdir)

        config = get_config()

        assert config.renderer == "d2-custom"
        assert config.project_root == tmp_path.resolve()
