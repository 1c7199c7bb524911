"""Analysis result models — the structured output Gemini is asked to fill.

Field names follow the JSON keys requested from the model (snake_case),
so a response validates straight into these classes. Which top-level
fields are requested and required depends on the schema variant, see
``video_analyzer_mcp.schemas``.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from .. import timecodec

_TIME_HINT = "Start time in HH:MM:SS or MM:SS format"


class Summary(BaseModel):
    """Three differently styled summaries of the whole media."""

    engaging: str = Field(
        description="Catchy YouTube-description style intro with a witty title and emoji",
    )
    serious: str = Field(description="Objective, professional, fact-based summary")
    content_focused: str = Field(description="Concise summary of the core content and information")


class ChapterMarker(BaseModel):
    """A titled timeline marker as requested from the model."""

    timestamp: str = Field(description=_TIME_HINT)
    title: str = Field(description="Concise title summarizing this chapter")

    @property
    def seconds(self) -> int:
        return timecodec.parse(self.timestamp)


class Chapter(ChapterMarker):
    """A chapter marker, optionally illustrated by a captured frame."""

    thumbnail: str | None = Field(
        default=None,
        description="JPEG data URI captured locally at the chapter start",
    )


class TranscriptSegment(BaseModel):
    """One transcript paragraph; ``timestamp`` is absent in paragraph-only variants."""

    timestamp: str | None = Field(default=None, description=_TIME_HINT)
    text: str = Field(description="Transcript text spoken from this point")


class TimedTranscriptSegment(TranscriptSegment):
    """Transcript paragraph whose start time is mandatory."""

    timestamp: str = Field(description=_TIME_HINT)


class Dialogue(BaseModel):
    timestamp: str = Field(description="Time the caption appears, HH:MM:SS or MM:SS")
    text: str = Field(description="The caption text exactly as shown")


class CastMember(BaseModel):
    """A speaker identified from on-screen captions with their main lines."""

    speaker: str = Field(
        description="Full caption text naming the speaker, including affiliation or role",
    )
    dialogues: list[Dialogue]


class Appearance(BaseModel):
    timestamp: str = Field(description="Time of the mention, HH:MM:SS or MM:SS")
    context: str = Field(description="How the brand appears or is mentioned at this moment")


class BrandMention(BaseModel):
    """A company or brand detected in the media and every place it shows up."""

    company_name: str
    appearances: list[Appearance]


class Score(BaseModel):
    category: str
    details: str
    score: int = Field(ge=0, le=10, description="Integer score from 0 to 10")


class Evaluation(BaseModel):
    """Content quality evaluation with per-category scores."""

    scores: list[Score]
    positive_feedback: str = Field(description="What the content does well")
    improvement_points: str = Field(description="Concrete suggestions for improvement")


class AnalysisResult(BaseModel):
    """Parsed analysis result. Every section is optional at this level."""

    summary: Summary | None = None
    chapters: list[Chapter] = Field(default_factory=list)
    hashtags: list[str] = Field(default_factory=list)
    transcript: list[TranscriptSegment] = Field(default_factory=list)
    cast: list[CastMember] = Field(default_factory=list)
    brand_exposure: list[BrandMention] = Field(default_factory=list)
    evaluation: Evaluation | None = None

    def display_hashtags(self) -> list[str]:
        """Hashtags trimmed and prefixed with exactly one ``#``; blanks dropped."""
        tags = []
        for tag in self.hashtags:
            cleaned = tag.strip().lstrip("#").strip()
            if cleaned:
                tags.append(f"#{cleaned}")
        return tags

    def has_thumbnails(self) -> bool:
        return bool(self.chapters) and all(c.thumbnail for c in self.chapters)
