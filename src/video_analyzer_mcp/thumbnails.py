"""Chapter thumbnails — seek-and-capture one frame per chapter start.

One ``cv2.VideoCapture`` is opened on a scoped temp copy of the media and
reused for every chapter, so captures run strictly one after another in
chapter order: each seek+read is awaited in a worker thread before the
next one is issued. Output frames are scaled to a fixed width (480 px by
default) keeping the source aspect ratio, JPEG-encoded and stored on the
chapter as a ``data:image/jpeg;base64,...`` URI.

Any decode, seek or encode failure fails the whole stage; thumbnails are
only attached once every chapter has one.
"""

from __future__ import annotations

import asyncio
import base64
import logging
from collections.abc import Callable
from pathlib import Path
from typing import Protocol

import cv2
import numpy as np

from .config import get_config
from .errors import ThumbnailError
from .models.analysis import AnalysisResult
from .models.workflow import MediaBlob
from .playback import temporary_media_file

logger = logging.getLogger(__name__)

JPEG_QUALITY = 85


class FrameGrabber(Protocol):
    """Seek-and-capture seam over a single decoder instance."""

    def capture(self, seconds: float) -> str:
        """Return a JPEG data URI of the frame shown at *seconds*."""
        ...

    def close(self) -> None: ...


def output_size(width: int, height: int, target_width: int) -> tuple[int, int]:
    """Scale (width, height) to *target_width*, preserving the aspect ratio."""
    if width <= 0 or height <= 0:
        raise ThumbnailError("The video has no frame size; thumbnails cannot be generated.")
    return target_width, max(1, round(target_width * height / width))


def encode_data_uri(frame: np.ndarray, size: tuple[int, int]) -> str:
    """Resize a BGR frame and encode it as a JPEG data URI."""
    resized = cv2.resize(frame, size, interpolation=cv2.INTER_AREA)
    ok, buffer = cv2.imencode(".jpg", resized, [cv2.IMWRITE_JPEG_QUALITY, JPEG_QUALITY])
    if not ok:
        raise ThumbnailError("Failed to encode a thumbnail image.")
    return "data:image/jpeg;base64," + base64.b64encode(buffer.tobytes()).decode("ascii")


class Cv2FrameGrabber:
    """FrameGrabber backed by OpenCV. Not safe for concurrent use."""

    def __init__(self, path: Path, target_width: int) -> None:
        self._cap = cv2.VideoCapture(str(path))
        if not self._cap.isOpened():
            self._cap.release()
            raise ThumbnailError("Could not decode the video to generate thumbnails.")
        width = int(self._cap.get(cv2.CAP_PROP_FRAME_WIDTH))
        height = int(self._cap.get(cv2.CAP_PROP_FRAME_HEIGHT))
        try:
            self.size = output_size(width, height, target_width)
        except ThumbnailError:
            self._cap.release()
            raise
        fps = self._cap.get(cv2.CAP_PROP_FPS) or 0.0
        frames = self._cap.get(cv2.CAP_PROP_FRAME_COUNT) or 0.0
        # Last seekable offset; seeks past the end show the final frame
        self.duration = (frames - 1) / fps if fps > 0 and frames > 1 else None

    def _read_at(self, seconds: float) -> np.ndarray | None:
        self._cap.set(cv2.CAP_PROP_POS_MSEC, seconds * 1000.0)
        ok, frame = self._cap.read()
        return frame if ok and frame is not None else None

    def capture(self, seconds: float) -> str:
        target = max(0.0, seconds)
        if self.duration is not None:
            target = min(target, self.duration)
        try:
            frame = self._read_at(target)
            if frame is None and self.duration is not None and target > 0:
                frame = self._read_at(self.duration)
            if frame is None:
                raise ThumbnailError(f"Could not read a video frame at {seconds:.0f}s.")
            return encode_data_uri(frame, self.size)
        except cv2.error as exc:
            raise ThumbnailError(f"Frame capture failed at {seconds:.0f}s: {exc}") from exc

    def close(self) -> None:
        self._cap.release()


GrabberFactory = Callable[[Path, int], FrameGrabber]


async def extract_thumbnails(
    result: AnalysisResult,
    blob: MediaBlob,
    *,
    on_progress: Callable[[int, int], None] | None = None,
    grabber_factory: GrabberFactory = Cv2FrameGrabber,
    width: int | None = None,
) -> AnalysisResult:
    """Attach a thumbnail to every chapter of *result*.

    Args:
        result: Parsed analysis; its chapter order is the capture order.
        blob: The original media bytes.
        on_progress: Called with (done, total) before the first capture and
            after each one.
        grabber_factory: Builds the decoder for the temp file path and width.
        width: Output width in pixels (defaults to config's thumbnail_width).

    Returns:
        A copy of *result* with thumbnails set, or *result* itself when it
        has no chapters.

    Raises:
        ThumbnailError: If the media cannot be decoded or any capture fails.
    """
    chapters = result.chapters
    if not chapters:
        return result

    target_width = width or get_config().thumbnail_width
    total = len(chapters)
    captured: list[str] = []

    with temporary_media_file(blob) as path:
        grabber = await asyncio.to_thread(grabber_factory, path, target_width)
        try:
            if on_progress is not None:
                on_progress(0, total)
            for chapter in chapters:
                captured.append(await asyncio.to_thread(grabber.capture, chapter.seconds))
                if on_progress is not None:
                    on_progress(len(captured), total)
        finally:
            grabber.close()

    logger.info("Captured %d thumbnail(s) for %s", len(captured), blob.name)
    updated = [c.model_copy(update={"thumbnail": uri}) for c, uri in zip(chapters, captured)]
    return result.model_copy(update={"chapters": updated})
