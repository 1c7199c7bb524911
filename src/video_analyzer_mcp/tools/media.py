"""Media analysis tools — 4 tools on a FastMCP sub-server.

All tools share one process-wide ``AnalysisWorkflow``; the MCP host is
the presentation layer and renders the returned state.
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastmcp import FastMCP
from mcp.types import ToolAnnotations
from pydantic import Field

from .. import timecodec
from ..acquisition import load_local_file
from ..errors import ValidationError, WorkflowBusyError, make_tool_error
from ..models.workflow import FileSource, Phase, UrlSource, WorkflowState
from ..schemas import get_schema
from ..tracing import trace
from ..types import MediaFilePath, MediaUrl, SchemaVariant, TimestampParam
from ..workflow import AnalysisWorkflow

logger = logging.getLogger(__name__)
media_server = FastMCP("media")

_workflow: AnalysisWorkflow | None = None


def get_workflow() -> AnalysisWorkflow:
    """Return the shared workflow, creating it on first use."""
    global _workflow
    if _workflow is None:
        _workflow = AnalysisWorkflow()
    return _workflow


def _state_payload(state: WorkflowState, *, include_thumbnails: bool = True) -> dict:
    """Serialise a state snapshot for the MCP host."""
    exclude = None
    if not include_thumbnails and state.result is not None:
        exclude = {"result": {"chapters": {"__all__": {"thumbnail"}}}}
    payload = state.model_dump(mode="json", exclude=exclude)
    payload["phase_history"] = [p.value for p in get_workflow().phase_history]
    if state.result is not None:
        payload["hashtags_display"] = state.result.display_hashtags()
    return payload


@media_server.tool(
    annotations=ToolAnnotations(
        readOnlyHint=False,
        destructiveHint=False,
        idempotentHint=False,
        openWorldHint=True,
    )
)
@trace(name="media_analyze", span_type="TOOL")
async def media_analyze(
    file_path: MediaFilePath | None = None,
    url: MediaUrl | None = None,
    variant: Annotated[SchemaVariant | None, Field(
        description='Result sections to request: "chapters" (chapters + thumbnails), '
        '"full" (summary, chapters, hashtags, transcript, cast), "brand" (full + brand '
        'exposure) or "evaluation" (full + scores). Defaults to ANALYZER_SCHEMA_VARIANT.',
    )] = None,
    include_thumbnails: Annotated[bool, Field(
        description="Return chapter thumbnails as JPEG data URIs (large payload)",
    )] = True,
) -> dict:
    """Analyze a video or audio file with Gemini and return the structured result.

    Provide exactly one of file_path or url. The file is uploaded to the
    Gemini Files API, processed, and analyzed against the selected schema
    variant; the chapters variant also captures one thumbnail per chapter.

    Args:
        file_path: Path to a local video or audio file.
        url: URL of a video or audio file.
        variant: Schema variant selecting the result sections.
        include_thumbnails: Whether to include thumbnail data URIs.

    Returns:
        Dict with the terminal workflow state (phase, result, error,
        playback_uri, phase_history), or a tool error dict on failure.
    """
    if file_path and url:
        return make_tool_error(ValidationError("Provide either file_path or url, not both."))

    workflow = get_workflow()
    source: FileSource | UrlSource | None = None
    try:
        schema = get_schema(variant) if variant else None
        if file_path:
            source = load_local_file(file_path)
        elif url is not None:
            source = UrlSource(location=url)
        state = await workflow.run(source, schema)
    except (WorkflowBusyError, OSError, ValueError) as exc:
        return make_tool_error(exc)

    payload = _state_payload(state, include_thumbnails=include_thumbnails)
    if state.error and workflow.last_error is not None:
        payload.update(make_tool_error(workflow.last_error))
        payload["error"] = state.error
    return payload


@media_server.tool(annotations=ToolAnnotations(readOnlyHint=True, openWorldHint=False))
async def media_status(
    include_thumbnails: Annotated[bool, Field(
        description="Return chapter thumbnails as JPEG data URIs (large payload)",
    )] = False,
) -> dict:
    """Return the current analysis state — phase, progress, elapsed time, result.

    Returns:
        Dict with the workflow state snapshot and a running flag.
    """
    workflow = get_workflow()
    payload = _state_payload(workflow.state, include_thumbnails=include_thumbnails)
    payload["running"] = workflow.is_running
    return payload


@media_server.tool(
    annotations=ToolAnnotations(
        readOnlyHint=False,
        destructiveHint=True,
        idempotentHint=True,
        openWorldHint=False,
    )
)
async def media_reset() -> dict:
    """Clear the last result and error and release the local playable copy.

    Returns:
        Dict with the IDLE state, or a tool error while a run is in flight.
    """
    try:
        state = get_workflow().reset()
    except WorkflowBusyError as exc:
        return make_tool_error(exc)
    return _state_payload(state)


@media_server.tool(annotations=ToolAnnotations(readOnlyHint=True, openWorldHint=False))
async def media_seek(timestamp: TimestampParam) -> dict:
    """Convert a result timestamp into the player offset to seek to.

    Malformed timestamps resolve to offset 0.

    Args:
        timestamp: Timestamp from a chapter, transcript line, dialogue or mention.

    Returns:
        Dict with seconds, the canonical display form, and the playable URI
        of the analyzed video (None for audio or when nothing is loaded).
    """
    state = get_workflow().state
    seconds = timecodec.seek_offset(timestamp)
    return {
        "timestamp": timestamp,
        "seconds": seconds,
        "display": timecodec.format(seconds),
        "playback_uri": state.playback_uri if state.phase is not Phase.FAILED else None,
    }
