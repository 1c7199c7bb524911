"""Auto-load environment variables from ``.env`` files.

Looks in the working directory first, then in
``~/.config/video-analyzer-mcp/.env``. A variable already set in the
process environment is never overwritten; the first file that defines a
variable wins over later files. No external dependencies.
"""

from __future__ import annotations

import os
from pathlib import Path

DEFAULT_ENV_PATH = Path.home() / ".config" / "video-analyzer-mcp" / ".env"
LOCAL_ENV_NAME = ".env"


def _strip_quotes(value: str) -> tuple[str, bool]:
    """Remove one pair of matching quotes. Returns (value, was_quoted)."""
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ('"', "'"):
        return value[1:-1], True
    return value, False


def _is_unset(key: str, value: str | None) -> bool:
    """Return True when the current env value should be treated as unset.

    Blank values and unresolved self-placeholders (``${GEMINI_API_KEY}``)
    that MCP hosts pass through unchanged both count as unset.
    """
    if value is None:
        return True
    normalized, _ = _strip_quotes(value.strip())
    normalized = normalized.strip()
    if not normalized:
        return True
    if normalized in {f"${key}", f"${{{key}}}"}:
        return True
    return normalized.startswith(f"${{{key}:-") and normalized.endswith("}")


def parse_dotenv(path: Path) -> dict[str, str]:
    """Parse a ``.env`` file into a dict of key-value pairs.

    Supports ``KEY=VALUE``, quoted values, ``export KEY=VALUE``, blank
    lines, full-line ``#`` comments and trailing `` # comment`` on unquoted
    values. No variable expansion.
    """
    result: dict[str, str] = {}
    if not path.is_file():
        return result

    for raw_line in path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if line.startswith("export "):
            line = line[len("export "):].lstrip()
        key, sep, value = line.partition("=")
        key = key.strip()
        if not sep or not key:
            continue
        value, quoted = _strip_quotes(value.strip())
        if not quoted and " #" in value:
            value = value.split(" #", 1)[0].rstrip()
        result[key] = value
    return result


def candidate_paths(path: Path | None = None) -> list[Path]:
    """Return the ``.env`` files to consult, highest priority first."""
    if path is not None:
        return [path]
    return [Path.cwd() / LOCAL_ENV_NAME, DEFAULT_ENV_PATH]


def load_dotenv(path: Path | None = None) -> dict[str, str]:
    """Load vars into ``os.environ`` where the existing value is unset.

    Args:
        path: A single ``.env`` file to load. Defaults to the working
              directory ``.env`` followed by :data:`DEFAULT_ENV_PATH`.

    Returns:
        Dict of vars that were actually injected.
    """
    injected: dict[str, str] = {}
    for env_path in candidate_paths(path):
        for key, value in parse_dotenv(env_path).items():
            if key in injected:
                continue
            if _is_unset(key, os.environ.get(key)):
                os.environ[key] = value
                injected[key] = value
    return injected
