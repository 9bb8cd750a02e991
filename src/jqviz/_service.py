"""Call/response operations for embedding jqviz behind a request boundary.

These functions never raise for bad input; every failure is reported in the
``err`` field of the response so the result can be serialized as-is.
"""

import logging
import tempfile
from pathlib import Path
from typing import Literal

from pydantic import BaseModel

from ._config import JqvizConfig
from ._d2 import to_d2
from ._errors import JqvizError, QuerySyntaxError, ScriptSavedError
from ._ir import build_graph
from ._parser import parse_query
from ._render import render

logger = logging.getLogger(__name__)

EMPTY_QUERY_MESSAGE = "query string cannot be empty"


class ValidationResponse(BaseModel):
    """Result of validating a query string."""

    ok: bool
    err: str = ""


class DiagramResponse(BaseModel):
    """Result of rendering a query.

    ``content`` holds SVG markup when ``kind`` is ``"svg"``. When rendering
    failed after the diagram was built, ``kind`` is ``"d2"``, ``content`` is
    the D2 script and ``err`` explains what went wrong.
    """

    content: str = ""
    kind: Literal["svg", "d2", ""] = ""
    err: str = ""


def validate_query(text: str) -> ValidationResponse:
    """Check whether ``text`` is a parseable query."""
    try:
        parse_query(text)
    except QuerySyntaxError as e:
        return ValidationResponse(ok=False, err=str(e))
    return ValidationResponse(ok=True)


def create_diagram(text: str, *, config: JqvizConfig | None = None) -> DiagramResponse:
    """Parse ``text`` and render its flow diagram as SVG.

    The renderer writes into a private temporary directory that is removed
    before returning, so no file outlives the call.
    """
    if config is None:
        config = JqvizConfig()

    if not text.strip():
        return DiagramResponse(err=EMPTY_QUERY_MESSAGE)
    try:
        query = parse_query(text)
    except QuerySyntaxError as e:
        return DiagramResponse(err=f"failed to parse query: {e}")

    graph = build_graph(query, expand_subqueries=config.expand_subqueries)
    script = to_d2(graph, title=config.title)

    with tempfile.TemporaryDirectory(prefix="jqviz-") as tmp:
        output = Path(tmp) / "diagram.svg"
        try:
            render(
                script,
                output,
                renderer=config.renderer,
                layout=config.layout,
                timeout=config.timeout,
            )
        except ScriptSavedError as e:
            # The saved copy lives in the temporary directory; hand back the text
            reason = str(e).splitlines()[0]
            logger.info(f"Returning D2 script instead of SVG: {reason}")
            return DiagramResponse(content=script, kind="d2", err=reason)
        except JqvizError as e:
            return DiagramResponse(err=str(e))
        return DiagramResponse(content=output.read_text(encoding="utf-8"), kind="svg")
