"""Render D2 scripts to image files with the external ``d2`` tool."""

import logging
import shutil
import subprocess
import tempfile
from dataclasses import dataclass
from pathlib import Path

from ._errors import RendererNotFoundError, RenderFailedError, UnsupportedFormatError

logger = logging.getLogger(__name__)

SCRIPT_SUFFIX = ".d2"
IMAGE_SUFFIXES = frozenset({".svg", ".png", ".pdf"})
SUPPORTED_SUFFIXES = IMAGE_SUFFIXES | {SCRIPT_SUFFIX}

DEFAULT_RENDERER = "d2"
DEFAULT_LAYOUT = "elk"


@dataclass(frozen=True, slots=True)
class RenderResult:
    """Outcome of a successful render.

    Attributes:
        output_path: Absolute path of the written file.
        script_path: Where the D2 script was kept, if anywhere. Only set when
            the output itself is a ``.d2`` script.
        renderer_output: Combined stdout/stderr of the renderer.

    """

    output_path: Path
    script_path: Path | None = None
    renderer_output: str = ""


def check_output_format(output_path: Path) -> str:
    """Validate the output extension.

    Returns:
        The lower-cased suffix.

    Raises:
        UnsupportedFormatError: If the suffix is not supported.

    """
    suffix = output_path.suffix.lower()
    if suffix not in SUPPORTED_SUFFIXES:
        raise UnsupportedFormatError(suffix, SUPPORTED_SUFFIXES)
    return suffix


def script_path_for(output_path: Path) -> Path:
    """Path of the script kept next to ``output_path`` (same stem, ``.d2``)."""
    return output_path.with_suffix(SCRIPT_SUFFIX)


def save_script(script: str, output_path: Path) -> Path:
    """Write ``script`` next to ``output_path`` and return where it went."""
    path = script_path_for(output_path)
    path.write_text(script, encoding="utf-8")
    logger.debug(f"Saved D2 script to {path}")
    return path


def _build_command(executable: str, layout: str | None, script: Path, output: Path) -> list[str]:
    command = [executable]
    if layout:
        command += ["--layout", layout]
    command += [str(script), str(output)]
    return command


def render(
    script: str,
    output_path: Path | str,
    *,
    renderer: str = DEFAULT_RENDERER,
    layout: str | None = DEFAULT_LAYOUT,
    timeout: float | None = None,
) -> RenderResult:
    """Render a D2 script to ``output_path``.

    A ``.d2`` output is written directly. Other formats are produced by
    running ``renderer`` on a temporary copy of the script. When the
    renderer is missing or fails, the script is saved next to the requested
    output so it can be rendered by hand.

    Args:
        script: D2 source.
        output_path: Destination file; its extension selects the format.
            Missing parent directories are created.
        renderer: Name or path of the D2 executable.
        layout: Layout engine passed as ``--layout``; None to omit.
        timeout: Seconds to wait for the renderer; None waits forever.

    Returns:
        The RenderResult.

    Raises:
        UnsupportedFormatError: If the extension is not supported. Nothing
            is written.
        RendererNotFoundError: If ``renderer`` is not on PATH.
        RenderFailedError: If the renderer exits non-zero or times out.

    """
    output_path = Path(output_path)
    suffix = check_output_format(output_path)
    output_path = output_path.resolve()
    # The saved script on failure goes to the same directory as the output
    output_path.parent.mkdir(parents=True, exist_ok=True)

    if suffix == SCRIPT_SUFFIX:
        output_path.write_text(script, encoding="utf-8")
        logger.debug(f"Wrote D2 script to {output_path}")
        return RenderResult(output_path=output_path, script_path=output_path)

    executable = shutil.which(renderer)
    if executable is None:
        saved = save_script(script, output_path)
        logger.warning(f"Renderer '{renderer}' not found; script saved to {saved}")
        raise RendererNotFoundError(renderer, saved, output_path)

    with tempfile.NamedTemporaryFile("w", suffix=SCRIPT_SUFFIX, delete=False, encoding="utf-8") as handle:
        handle.write(script)
        transient = Path(handle.name)

    try:
        command = _build_command(executable, layout, transient, output_path)
        logger.debug(f"Running: {' '.join(command)}")
        try:
            completed = subprocess.run(  # noqa: S603
                command,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                timeout=timeout,
                check=False,
            )
        except subprocess.TimeoutExpired as e:
            saved = save_script(script, output_path)
            output = f"no result after {timeout} seconds"
            raise RenderFailedError(renderer, None, output, saved) from e

        if completed.returncode != 0:
            saved = save_script(script, output_path)
            raise RenderFailedError(renderer, completed.returncode, completed.stdout or "", saved)
    finally:
        transient.unlink(missing_ok=True)

    logger.debug(f"Rendered {output_path}")
    return RenderResult(output_path=output_path, renderer_output=completed.stdout or "")
