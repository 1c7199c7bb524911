"""Analysis prompt templates — one instruction fragment per requested section.

``build_instruction`` joins the fragments for the sections a schema
variant requests, in a fixed order, and closes with the language and
JSON requirements.
Variables: {language} in LANGUAGE_RULE.
"""

from __future__ import annotations

CHAPTERS = (
    "Analyze this video/audio file and split it into chapters by main topic. "
    "Each chapter must have a start time (HH:MM:SS or MM:SS format) and a concise "
    "chapter title. Follow the flow of the content to find logical sections, and "
    "generate timestamps that match the timeline of the file."
)

SUMMARY = (
    "In addition, write three summaries of the content in different styles. "
    "First, under the 'engaging' key, write an attractive YouTube-description style "
    "introduction that sparks viewers' interest, using a witty title and emoji. "
    "Second, under the 'serious' key, write an objective, professional, fact-based "
    "summary. Third, under the 'content_focused' key, write a concise summary that "
    "conveys the core content and information."
)

HASHTAGS = "Generate 10 highly relevant hashtags that represent the core content."

TRANSCRIPT_TIMED = (
    "Write a transcript of the entire file, split by time. Each transcript line must "
    "include its start time (HH:MM:SS or MM:SS format) and its content."
)

TRANSCRIPT_PARAGRAPHS = (
    "Write a transcript of the entire file, split into paragraphs in speaking order. "
    "Each paragraph contains only its text."
)

CAST = (
    "Extract the cast from the on-screen captions. For each person named in the "
    "captions, list their main lines. The 'speaker' field must reproduce the caption "
    "text exactly, including name, affiliation and role (e.g. \"Host (Lee Kwang-seop)\", "
    "\"Researcher Jung Da-un\"); do not use generic labels such as 'host' or 'speaker 1'. "
    "Each line must include the exact time the caption appears (HH:MM:SS or MM:SS "
    "format) and the actual caption text."
)

BRAND_EXPOSURE = (
    "Detect every company or brand that appears or is mentioned (logos, products, "
    "spoken names, captions). For each one give 'company_name' and a list of "
    "appearances, each with its time (HH:MM:SS or MM:SS format) and a short 'context' "
    "describing how it appears."
)

EVALUATION = (
    "Finally, evaluate the content as a reviewer would. Give 'scores' for categories "
    "such as structure, delivery, information value and production quality, each with "
    "'details' and an integer 'score' from 0 to 10, then write 'positive_feedback' "
    "and 'improvement_points'."
)

LANGUAGE_RULE = "Write every text field in {language}."

JSON_RULE = "The result must be JSON."

SECTION_PROMPTS: dict[str, str] = {
    "chapters": CHAPTERS,
    "summary": SUMMARY,
    "hashtags": HASHTAGS,
    "cast": CAST,
    "brand_exposure": BRAND_EXPOSURE,
    "evaluation": EVALUATION,
}

_ORDER = ("chapters", "summary", "hashtags", "transcript", "cast", "brand_exposure", "evaluation")


def build_instruction(fields: tuple[str, ...], *, timed_transcript: bool, language: str) -> str:
    """Assemble the instruction text for the requested ``fields``."""
    parts = []
    for name in _ORDER:
        if name not in fields:
            continue
        if name == "transcript":
            parts.append(TRANSCRIPT_TIMED if timed_transcript else TRANSCRIPT_PARAGRAPHS)
        else:
            parts.append(SECTION_PROMPTS[name])
    parts.append(LANGUAGE_RULE.format(language=language))
    parts.append(JSON_RULE)
    return " ".join(parts)
