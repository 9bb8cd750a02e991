"""Error types raised by jqviz."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pathlib import Path


class JqvizError(Exception):
    """Base class for all jqviz errors."""


class QuerySyntaxError(JqvizError):
    """Raised when a query string cannot be parsed."""


class UnsupportedFormatError(JqvizError):
    """Raised when the requested output path has an extension no renderer supports."""

    def __init__(self, suffix: str, supported: frozenset[str]) -> None:
        self.suffix = suffix
        self.supported = supported
        choices = ", ".join(sorted(supported))
        shown = suffix or "(none)"
        super().__init__(f"unsupported output format '{shown}' (expected one of: {choices})")


class ScriptSavedError(JqvizError):
    """A rendering step failed after the diagram script was persisted for manual use.

    The diagram itself was computed successfully; ``script_path`` points at a
    file the user can hand to the renderer later.
    """

    def __init__(self, message: str, script_path: Path) -> None:
        self.script_path = script_path
        super().__init__(message)


class RendererNotFoundError(ScriptSavedError):
    """Raised when the external renderer executable is not on PATH."""

    def __init__(self, renderer: str, script_path: Path, output_path: Path) -> None:
        self.renderer = renderer
        msg = (
            f"renderer '{renderer}' not found on PATH\n"
            f"D2 script saved to: {script_path}\n"
            f"Install D2 (https://d2lang.com) and render manually with:\n"
            f"  {renderer} {script_path} {output_path}"
        )
        super().__init__(msg, script_path)


class RenderFailedError(ScriptSavedError):
    """Raised when the external renderer runs but does not succeed."""

    def __init__(self, renderer: str, returncode: int | None, output: str, script_path: Path) -> None:
        self.renderer = renderer
        self.returncode = returncode
        self.output = output
        status = "timed out" if returncode is None else f"exited with status {returncode}"
        msg = f"renderer '{renderer}' {status}\n{output.rstrip()}\nD2 script saved to: {script_path}"
        super().__init__(msg, script_path)


class ConfigError(JqvizError):
    """Error in jqviz configuration."""
