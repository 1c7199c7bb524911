"""Timestamp conversion between ``HH:MM:SS`` / ``MM:SS`` strings and seconds.

Both directions are total: malformed input maps to offset 0 (or
``"00:00"``) instead of raising.
"""

from __future__ import annotations

import math
import re
from typing import Any

_PART_RE = re.compile(r"[0-9]+(?:\.[0-9]+)?")


def _part_value(part: str) -> float | None:
    """Parse one ``:``-separated component, or None when not plain digits."""
    part = part.strip()
    if not _PART_RE.fullmatch(part):
        return None
    return float(part)


def parse(ts: Any) -> int:
    """Convert ``HH:MM:SS`` or ``MM:SS`` into whole seconds.

    Returns 0 for anything else: non-strings, empty strings, a wrong number
    of parts, or any non-numeric or negative part.
    """
    if not isinstance(ts, str) or not ts.strip():
        return 0
    values = [_part_value(p) for p in ts.strip().split(":")]
    if any(v is None for v in values):
        return 0
    if len(values) == 3:
        hours, minutes, seconds = values
        return int(hours * 3600 + minutes * 60 + seconds)
    if len(values) == 2:
        minutes, seconds = values
        return int(minutes * 60 + seconds)
    return 0


def format(total_seconds: float) -> str:  # noqa: A001
    """Render seconds as ``MM:SS``, or ``HH:MM:SS`` once hours are non-zero."""
    try:
        value = float(total_seconds)
    except (TypeError, ValueError):
        return "00:00"
    if not math.isfinite(value) or value < 0:
        return "00:00"
    whole = int(value)
    hours, rem = divmod(whole, 3600)
    minutes, seconds = divmod(rem, 60)
    if hours > 0:
        return f"{hours:02d}:{minutes:02d}:{seconds:02d}"
    return f"{minutes:02d}:{seconds:02d}"


def seek_offset(ts: Any) -> int:
    """Seconds the player should jump to when a timestamp is clicked."""
    return parse(ts)


def canonical(ts: Any) -> str:
    """Zero-padded display form of a timestamp (``"1:05"`` → ``"01:05"``)."""
    return format(parse(ts))
