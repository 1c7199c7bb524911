"""Analysis schema variants — which result sections a run asks Gemini for.

A variant is configuration, not a code path: it selects the top-level
fields of ``AnalysisResult`` to request (all of them required), whether
transcript paragraphs carry timestamps, and whether chapter thumbnails
are captured afterwards. The request model is generated with
``pydantic.create_model`` and its JSON schema is sent as
``response_json_schema``; the same model validates the answer.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Any

from pydantic import BaseModel, Field, create_model
from pydantic import ValidationError as PydanticValidationError

from .errors import ResponseFormatError
from .models.analysis import (
    AnalysisResult,
    BrandMention,
    CastMember,
    ChapterMarker,
    Evaluation,
    Summary,
    TimedTranscriptSegment,
)
from .prompts.analysis import build_instruction

logger = logging.getLogger(__name__)


class TranscriptParagraph(BaseModel):
    """Transcript paragraph requested without a start time."""

    text: str = Field(description="Transcript text of this paragraph")


_FIELD_TYPES: dict[str, Any] = {
    "summary": Summary,
    "chapters": list[ChapterMarker],
    "hashtags": list[str],
    "cast": list[CastMember],
    "brand_exposure": list[BrandMention],
    "evaluation": Evaluation,
}

_FIELD_DESCRIPTIONS: dict[str, str] = {
    "summary": "Three styled summaries of the media",
    "chapters": "Chapters generated from the media timeline",
    "hashtags": "10 relevant hashtags summarizing the core content",
    "transcript": "Full transcript of the media",
    "cast": "Main lines per speaker named in the on-screen captions",
    "brand_exposure": "Companies and brands that appear, with every appearance",
    "evaluation": "Quality evaluation with scores from 0 to 10",
}


@lru_cache(maxsize=None)
def _request_model(name: str, fields: tuple[str, ...], timed_transcript: bool) -> type[BaseModel]:
    definitions: dict[str, Any] = {}
    for field in fields:
        if field == "transcript":
            annotation: Any = list[TimedTranscriptSegment] if timed_transcript else list[TranscriptParagraph]
        else:
            annotation = _FIELD_TYPES[field]
        definitions[field] = (annotation, Field(description=_FIELD_DESCRIPTIONS[field]))
    return create_model(f"{name.title()}Analysis", **definitions)


@dataclass(frozen=True)
class AnalysisSchema:
    """A request configuration selecting the result sections to generate."""

    name: str
    fields: tuple[str, ...]
    transcript_timestamps: bool = True
    thumbnails: bool = False

    @property
    def required(self) -> tuple[str, ...]:
        return self.fields

    def request_model(self) -> type[BaseModel]:
        return _request_model(self.name, self.fields, self.transcript_timestamps)

    def json_schema(self) -> dict:
        """JSON schema dict passed as ``response_json_schema``."""
        return self.request_model().model_json_schema()

    def instruction(self, language: str = "Korean") -> str:
        return build_instruction(
            self.fields, timed_transcript=self.transcript_timestamps, language=language,
        )

    def parse(self, raw: str | None) -> AnalysisResult:
        """Strictly parse a response payload into an ``AnalysisResult``.

        Raises:
            ResponseFormatError: If the text is empty, not JSON, or does not
                match this variant's schema. No lenient recovery is attempted.
        """
        text = (raw or "").strip()
        if not text:
            raise ResponseFormatError("The AI returned an empty response.")
        try:
            payload = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ResponseFormatError(f"The AI response is not valid JSON: {exc}") from exc
        try:
            validated = self.request_model().model_validate(payload)
        except PydanticValidationError as exc:
            logger.warning("Schema '%s' rejected response: %d error(s)", self.name, exc.error_count())
            raise ResponseFormatError(
                f"The AI response does not match the '{self.name}' schema: {exc}"
            ) from exc
        return AnalysisResult.model_validate(validated.model_dump())


_FULL_FIELDS = ("summary", "chapters", "hashtags", "transcript", "cast")

SCHEMA_VARIANTS: dict[str, AnalysisSchema] = {
    "chapters": AnalysisSchema(
        name="chapters",
        fields=("chapters",),
        thumbnails=True,
    ),
    "full": AnalysisSchema(name="full", fields=_FULL_FIELDS),
    "brand": AnalysisSchema(name="brand", fields=_FULL_FIELDS + ("brand_exposure",)),
    "evaluation": AnalysisSchema(
        name="evaluation",
        fields=_FULL_FIELDS + ("evaluation",),
        transcript_timestamps=False,
    ),
}


def get_schema(name: str) -> AnalysisSchema:
    """Look up a schema variant by name.

    Raises:
        ValueError: If the variant is unknown.
    """
    key = name.strip().lower()
    if key not in SCHEMA_VARIANTS:
        allowed = ", ".join(sorted(SCHEMA_VARIANTS))
        raise ValueError(f"Unknown schema variant '{name}'. Available: {allowed}")
    return SCHEMA_VARIANTS[key]
