"""Workflow data types — run inputs, the acquired blob, remote asset, run state.

All inputs are frozen once built; ``WorkflowState`` is owned by
``AnalysisWorkflow`` and handed to observers as copies.
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from .analysis import AnalysisResult


class FileSource(BaseModel):
    """A locally selected file whose bytes are already in memory."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["file"] = "file"
    data: bytes = Field(repr=False)
    name: str
    mime_type: str


class UrlSource(BaseModel):
    """A remote media location to fetch through the retrieval proxy."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["url"] = "url"
    location: str


SourceInput = Annotated[Union[FileSource, UrlSource], Field(discriminator="kind")]


class MediaBlob(BaseModel):
    """The binary handed to the Files API, whatever its origin."""

    model_config = ConfigDict(frozen=True)

    data: bytes = Field(repr=False)
    name: str
    mime_type: str

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def is_video(self) -> bool:
        return self.mime_type.lower().startswith("video/")


class AssetState(str, Enum):
    """Files API processing states the client acts on."""

    PROCESSING = "PROCESSING"
    ACTIVE = "ACTIVE"
    FAILED = "FAILED"


class RemoteAsset(BaseModel):
    """Service-side handle to an uploaded file.

    ``state`` keeps unrecognised SDK values as plain strings so they can be
    reported verbatim in the error.
    """

    asset_id: str
    mime_type: str = ""
    uri: str = ""
    state: AssetState | str = AssetState.PROCESSING


class Phase(str, Enum):
    """Stages of one analysis run."""

    IDLE = "IDLE"
    ACQUIRING = "ACQUIRING"
    UPLOADING = "UPLOADING"
    WAITING_REMOTE = "WAITING_REMOTE"
    GENERATING = "GENERATING"
    EXTRACTING_THUMBNAILS = "EXTRACTING_THUMBNAILS"
    DONE = "DONE"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        return self in (Phase.DONE, Phase.FAILED)

    @property
    def is_running(self) -> bool:
        return not self.is_terminal and self is not Phase.IDLE


class WorkflowState(BaseModel):
    """Observable state of the analysis workflow."""

    phase: Phase = Phase.IDLE
    progress_message: str = ""
    elapsed_seconds: int = 0
    result: AnalysisResult | None = None
    error: str | None = None
    playback_uri: str | None = None
