"""Tests for chapter thumbnail capture."""

from __future__ import annotations

import base64
from pathlib import Path

import cv2
import numpy as np
import pytest

from video_analyzer_mcp.errors import ThumbnailError
from video_analyzer_mcp.models.analysis import AnalysisResult, Chapter
from video_analyzer_mcp.models.workflow import MediaBlob
from video_analyzer_mcp.thumbnails import (
    Cv2FrameGrabber,
    encode_data_uri,
    extract_thumbnails,
    output_size,
)


class FakeGrabber:
    """Records seeks; optionally fails on a given call."""

    def __init__(self, path: Path, width: int, fail_at: int | None = None):
        self.path = path
        self.width = width
        self.fail_at = fail_at
        self.seeks: list[float] = []
        self.closed = False

    def capture(self, seconds: float) -> str:
        self.seeks.append(seconds)
        if self.fail_at is not None and len(self.seeks) == self.fail_at:
            raise ThumbnailError("Could not read a video frame.")
        return f"data:image/jpeg;base64,frame-{seconds:g}"

    def close(self) -> None:
        self.closed = True


def _result(*timestamps: str) -> AnalysisResult:
    return AnalysisResult(
        chapters=[Chapter(timestamp=ts, title=f"Chapter {i}") for i, ts in enumerate(timestamps)],
    )


def _factory(store: list, **kwargs):
    def _make(path: Path, width: int) -> FakeGrabber:
        grabber = FakeGrabber(path, width, **kwargs)
        store.append(grabber)
        return grabber

    return _make


class TestOutputSize:
    def test_preserves_aspect(self):
        assert output_size(1920, 1080, 480) == (480, 270)
        assert output_size(1080, 1920, 480) == (480, 853)

    @pytest.mark.parametrize("w, h", [(0, 1080), (1920, 0), (-1, -1)])
    def test_rejects_empty_frames(self, w, h):
        with pytest.raises(ThumbnailError):
            output_size(w, h, 480)


class TestEncode:
    def test_jpeg_data_uri(self):
        frame = np.zeros((90, 160, 3), dtype=np.uint8)
        uri = encode_data_uri(frame, (48, 27))
        assert uri.startswith("data:image/jpeg;base64,")
        raw = base64.b64decode(uri.split(",", 1)[1])
        decoded = cv2.imdecode(np.frombuffer(raw, dtype=np.uint8), cv2.IMREAD_COLOR)
        assert decoded.shape[:2] == (27, 48)


class TestExtractThumbnails:
    async def test_seeks_in_chapter_order(self, video_blob):
        grabbers: list[FakeGrabber] = []
        progress: list[tuple[int, int]] = []
        result = await extract_thumbnails(
            _result("00:05", "01:30", "10:00"),
            video_blob,
            on_progress=lambda d, t: progress.append((d, t)),
            grabber_factory=_factory(grabbers),
        )

        assert len(grabbers) == 1
        assert grabbers[0].seeks == [5, 90, 600]
        assert grabbers[0].width == 480
        assert progress == [(0, 3), (1, 3), (2, 3), (3, 3)]
        assert [c.thumbnail for c in result.chapters] == [
            "data:image/jpeg;base64,frame-5",
            "data:image/jpeg;base64,frame-90",
            "data:image/jpeg;base64,frame-600",
        ]
        assert grabbers[0].closed
        assert not grabbers[0].path.exists()

    async def test_input_result_untouched(self, video_blob):
        original = _result("00:05")
        await extract_thumbnails(original, video_blob, grabber_factory=_factory([]))
        assert original.chapters[0].thumbnail is None

    async def test_malformed_timestamp_seeks_zero(self, video_blob):
        grabbers: list[FakeGrabber] = []
        await extract_thumbnails(_result("later"), video_blob, grabber_factory=_factory(grabbers))
        assert grabbers[0].seeks == [0]

    async def test_no_chapters_is_noop(self, video_blob):
        grabbers: list[FakeGrabber] = []
        progress: list = []
        original = AnalysisResult()
        result = await extract_thumbnails(
            original, video_blob,
            on_progress=lambda d, t: progress.append((d, t)),
            grabber_factory=_factory(grabbers),
        )
        assert result is original
        assert grabbers == []
        assert progress == []

    async def test_failure_is_all_or_nothing(self, video_blob):
        grabbers: list[FakeGrabber] = []
        original = _result("00:05", "01:30", "10:00")
        with pytest.raises(ThumbnailError):
            await extract_thumbnails(original, video_blob, grabber_factory=_factory(grabbers, fail_at=2))
        assert grabbers[0].seeks == [5, 90]
        assert grabbers[0].closed
        assert not grabbers[0].path.exists()
        assert all(c.thumbnail is None for c in original.chapters)

    async def test_custom_width(self, video_blob):
        grabbers: list[FakeGrabber] = []
        await extract_thumbnails(_result("00:01"), video_blob, grabber_factory=_factory(grabbers), width=320)
        assert grabbers[0].width == 320


class TestCv2FrameGrabber:
    def test_undecodable_file(self, tmp_path):
        bogus = tmp_path / "bogus.mp4"
        bogus.write_bytes(b"this is not a video" * 10)
        with pytest.raises(ThumbnailError, match="Could not decode"):
            Cv2FrameGrabber(bogus, 480)

    async def test_real_video(self, tmp_path):
        path = tmp_path / "sample.avi"
        writer = cv2.VideoWriter(str(path), cv2.VideoWriter_fourcc(*"MJPG"), 10.0, (640, 360))
        if not writer.isOpened():
            pytest.skip("OpenCV build cannot write MJPG/AVI")
        for i in range(30):
            frame = np.full((360, 640, 3), i * 8, dtype=np.uint8)
            writer.write(frame)
        writer.release()

        blob = MediaBlob(data=path.read_bytes(), name="sample.avi", mime_type="video/x-msvideo")
        result = await extract_thumbnails(_result("00:00", "00:01", "00:02"), blob)

        for chapter in result.chapters:
            raw = base64.b64decode(chapter.thumbnail.split(",", 1)[1])
            decoded = cv2.imdecode(np.frombuffer(raw, dtype=np.uint8), cv2.IMREAD_COLOR)
            assert decoded.shape[:2] == (270, 480)
