"""Shared type aliases for tool parameters."""

from __future__ import annotations

from typing import Annotated, Literal

from pydantic import Field

# ── Literal enums ────────────────────────────────────────────────────────────

SchemaVariant = Literal["chapters", "full", "brand", "evaluation"]

# ── Annotated aliases ────────────────────────────────────────────────────────

MediaFilePath = Annotated[str, Field(
    min_length=1,
    description="Path to a local video or audio file (mp4, webm, mov, mkv, mp3, wav, m4a, ...)",
)]
MediaUrl = Annotated[str, Field(
    description="URL of a video or audio file, fetched through the retrieval proxy",
)]
TimestampParam = Annotated[str, Field(
    description="Timestamp in HH:MM:SS or MM:SS format",
)]
