"""Configuration loading from pyproject.toml."""

import tomllib
from dataclasses import dataclass
from pathlib import Path

from ._d2 import DEFAULT_TITLE
from ._errors import ConfigError
from ._render import DEFAULT_LAYOUT, DEFAULT_RENDERER


@dataclass(slots=True, frozen=True)
class JqvizConfig:
    """Configuration loaded from the ``[tool.jqviz]`` table of pyproject.toml.

    Attributes:
        renderer: Name or path of the D2 executable.
        layout: D2 layout engine; None lets the renderer choose.
        title: Diagram title.
        timeout: Seconds to wait for the renderer; None waits forever.
        expand_subqueries: Draw parenthesized queries as containers.
        project_root: Directory containing the pyproject.toml, if one was found.

    """

    renderer: str = DEFAULT_RENDERER
    layout: str | None = DEFAULT_LAYOUT
    title: str = DEFAULT_TITLE
    timeout: float | None = None
    expand_subqueries: bool = False
    project_root: Path | None = None


def find_pyproject_toml(start_dir: Path | None = None) -> Path | None:
    """Find pyproject.toml by walking up from start_dir.

    Args:
        start_dir: Starting directory. Defaults to current working directory.

    Returns:
        Path to pyproject.toml if found, None otherwise.

    """
    if start_dir is None:
        start_dir = Path.cwd()

    current = start_dir.resolve()

    while True:
        candidate = current / "pyproject.toml"
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            # Reached filesystem root
            return None
        current = parent


def _get_str(section: dict[str, object], key: str, *, allow_empty: bool = False) -> str | None:
    if key not in section:
        return None
    value = section[key]
    if not isinstance(value, str) or (not value and not allow_empty):
        msg = f"Invalid [tool.jqviz].{key}: expected non-empty string"
        raise ConfigError(msg)
    return value


def _get_timeout(section: dict[str, object]) -> float | None:
    if "timeout" not in section:
        return None
    value = section["timeout"]
    # bool is an int subclass
    if isinstance(value, bool) or not isinstance(value, int | float) or value <= 0:
        msg = "Invalid [tool.jqviz].timeout: expected positive number of seconds"
        raise ConfigError(msg)
    return float(value)


def load_config(pyproject_path: Path) -> JqvizConfig:
    """Load and validate [tool.jqviz] config from pyproject.toml.

    Args:
        pyproject_path: Path to pyproject.toml

    Returns:
        Parsed JqvizConfig

    Raises:
        ConfigError: If the configuration is invalid

    """
    project_root = pyproject_path.parent

    with pyproject_path.open("rb") as f:
        try:
            data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            msg = f"Invalid TOML in {pyproject_path}: {e}"
            raise ConfigError(msg) from e

    section = data.get("tool", {}).get("jqviz", {})
    if not isinstance(section, dict):
        msg = "Invalid [tool.jqviz]: expected a table"
        raise ConfigError(msg)

    if not section:
        return JqvizConfig(project_root=project_root)

    defaults = JqvizConfig()

    # An empty layout string means "let the renderer choose"
    layout = _get_str(section, "layout", allow_empty=True)
    if layout is None:
        layout = defaults.layout
    elif not layout:
        layout = None

    expand = section.get("expand_subqueries", defaults.expand_subqueries)
    if not isinstance(expand, bool):
        msg = "Invalid [tool.jqviz].expand_subqueries: expected boolean"
        raise ConfigError(msg)

    return JqvizConfig(
        renderer=_get_str(section, "renderer") or defaults.renderer,
        layout=layout,
        title=_get_str(section, "title") or defaults.title,
        timeout=_get_timeout(section),
        expand_subqueries=expand,
        project_root=project_root,
    )


def get_config() -> JqvizConfig:
    """Get config from pyproject.toml in current directory or parents.

    Returns:
        JqvizConfig (defaults if no pyproject.toml or no [tool.jqviz] section)

    """
    pyproject_path = find_pyproject_toml()
    if pyproject_path is None:
        return JqvizConfig()
    return load_config(pyproject_path)
