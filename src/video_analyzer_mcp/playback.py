"""Local playable media handles — the process-wide player source.

The player needs a local URI for the analyzed video. Each handle is a
temp file holding the blob; at most one handle is live per registry and
``create`` releases the previous one first. ``temporary_media_file`` is
the scoped variant for one-off local decoding.
"""

from __future__ import annotations

import logging
import mimetypes
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from .models.workflow import MediaBlob

logger = logging.getLogger(__name__)

_PREFIX = "video-analyzer-"


def _suffix_for(blob: MediaBlob) -> str:
    suffix = Path(blob.name).suffix
    if suffix:
        return suffix.lower()
    return mimetypes.guess_extension(blob.mime_type) or ".bin"


def _write_temp(blob: MediaBlob) -> Path:
    with tempfile.NamedTemporaryFile(
        prefix=_PREFIX, suffix=_suffix_for(blob), delete=False,
    ) as f:
        f.write(blob.data)
        return Path(f.name)


class PlaybackRegistry:
    """Owns the single live playable handle."""

    def __init__(self) -> None:
        self._path: Path | None = None

    @property
    def uri(self) -> str | None:
        return self._path.as_uri() if self._path is not None else None

    @property
    def path(self) -> Path | None:
        return self._path

    @property
    def live_count(self) -> int:
        return 0 if self._path is None else 1

    def create(self, blob: MediaBlob) -> str:
        """Materialise *blob* as the current playable handle and return its URI."""
        self.release()
        self._path = _write_temp(blob)
        logger.debug("Playable handle created: %s (%d bytes)", self._path, blob.size)
        return self._path.as_uri()

    def release(self) -> bool:
        """Drop the current handle. Returns True when one was live."""
        if self._path is None:
            return False
        path, self._path = self._path, None
        try:
            path.unlink(missing_ok=True)
        except OSError:
            logger.warning("Could not delete playable handle %s", path, exc_info=True)
        logger.debug("Playable handle released: %s", path)
        return True


playback_registry = PlaybackRegistry()


@contextmanager
def temporary_media_file(blob: MediaBlob) -> Iterator[Path]:
    """Yield a temp file holding *blob*; it is removed on every exit path."""
    path = _write_temp(blob)
    try:
        yield path
    finally:
        path.unlink(missing_ok=True)
