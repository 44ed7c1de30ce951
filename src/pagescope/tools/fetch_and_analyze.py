"""Tool handler for fetch_and_analyze.

Receives AppState, validates input and delegates to the PageAnalyzer. Returns
the analysis as a JSON-ready dict. No MCP or FastMCP imports; server.py
handles the MCP wiring.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog
from pydantic import ValidationError

from pagescope.errors import InvalidInputError
from pagescope.models.tools import FetchAndAnalyzeInput

if TYPE_CHECKING:
    from pagescope.state import AppState


async def handle(
    url: str,
    question: str | None,
    use_cache: bool,
    state: AppState,
) -> dict:
    """Handle a fetch_and_analyze tool call."""
    log = structlog.get_logger().bind(tool="fetch_and_analyze", url=url)
    log.info("handler_called", has_question=bool(question), use_cache=use_cache)

    try:
        validated = FetchAndAnalyzeInput(url=url, question=question, use_cache=use_cache)
    except ValidationError as exc:
        message = "; ".join(error["msg"] for error in exc.errors())
        raise InvalidInputError(message) from exc

    if state.analyzer is None:
        raise RuntimeError("PageAnalyzer not initialized")

    analysis = await state.analyzer.fetch_and_analyze(
        validated.url,
        question=validated.question,
        use_cache=validated.use_cache,
    )
    log.info(
        "handler_complete",
        word_count=analysis.word_count,
        passages=len(analysis.relevant_passages),
    )
    return analysis.model_dump(mode="json")
