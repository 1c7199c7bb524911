"""Tests for media acquisition (local files and proxied URL fetch)."""

from __future__ import annotations

from urllib.parse import quote

import httpx
import pytest

from video_analyzer_mcp.acquisition import (
    DEFAULT_FILENAME,
    acquire,
    fetch_url,
    filename_from_url,
    load_local_file,
    proxied_url,
)
from video_analyzer_mcp.config import update_config
from video_analyzer_mcp.errors import AcquisitionError, ErrorCategory
from video_analyzer_mcp.models.workflow import MediaBlob, UrlSource


def _transport(handler, seen: list | None = None):
    def _wrapped(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        return handler(request)

    return httpx.MockTransport(_wrapped)


class TestLoadLocalFile:
    def test_reads_video(self, tmp_path):
        f = tmp_path / "Clip.MP4"
        f.write_bytes(b"abc")
        src = load_local_file(str(f))
        assert src.data == b"abc"
        assert src.name == "Clip.MP4"
        assert src.mime_type == "video/mp4"

    def test_reads_audio(self, tmp_path):
        f = tmp_path / "talk.mp3"
        f.write_bytes(b"id3")
        assert load_local_file(str(f)).mime_type == "audio/mpeg"

    def test_missing(self, tmp_path):
        with pytest.raises(FileNotFoundError, match="Media file not found"):
            load_local_file(str(tmp_path / "nope.mp4"))

    def test_directory(self, tmp_path):
        with pytest.raises(ValueError, match="Not a file"):
            load_local_file(str(tmp_path))

    def test_unsupported_extension(self, tmp_path):
        f = tmp_path / "notes.txt"
        f.write_text("hi")
        with pytest.raises(ValueError, match="Unsupported media extension"):
            load_local_file(str(f))


class TestUrlHelpers:
    @pytest.mark.parametrize("url, expected", [
        ("https://cdn.example.com/videos/talk.mp4", "talk.mp4"),
        ("https://cdn.example.com/videos/talk.mp4?sig=abc#t=5", "talk.mp4"),
        ("https://cdn.example.com/", DEFAULT_FILENAME),
        ("https://cdn.example.com", DEFAULT_FILENAME),
    ])
    def test_filename_from_url(self, url, expected):
        assert filename_from_url(url) == expected

    def test_proxied_url_encodes_target(self):
        target = "https://cdn.example.com/a b.mp4?x=1&y=2"
        got = proxied_url(target, proxy_base="https://proxy.test/raw")
        assert got == f"https://proxy.test/raw?url={quote(target, safe='')}"
        assert "&y=2" not in got

    def test_proxied_url_defaults_to_config(self):
        update_config(proxy_base="https://relay.test/get")
        assert proxied_url("https://x.test/a.mp4").startswith("https://relay.test/get?url=")

    def test_empty_proxy_base_is_direct(self):
        assert proxied_url(" https://x.test/a.mp4 ", proxy_base="") == "https://x.test/a.mp4"


class TestFetchUrl:
    async def test_success_through_proxy(self):
        update_config(proxy_base="https://proxy.test/raw")
        seen: list[httpx.Request] = []
        transport = _transport(
            lambda r: httpx.Response(200, content=b"video-bytes", headers={"content-type": "video/mp4; codecs=avc1"}),
            seen,
        )
        blob = await fetch_url(UrlSource(location="https://cdn.test/path/clip.mp4"), transport=transport)
        assert blob.data == b"video-bytes"
        assert blob.name == "clip.mp4"
        assert blob.mime_type == "video/mp4"
        assert len(seen) == 1
        assert seen[0].url.host == "proxy.test"
        assert seen[0].url.params["url"] == "https://cdn.test/path/clip.mp4"

    async def test_guesses_type_without_header(self):
        update_config(proxy_base="")
        transport = _transport(lambda r: httpx.Response(200, content=b"x"))
        blob = await fetch_url(UrlSource(location="https://cdn.test/a/song.mp3"), transport=transport)
        assert blob.mime_type == "audio/mpeg"

    async def test_unknown_type_falls_back(self):
        update_config(proxy_base="")
        transport = _transport(lambda r: httpx.Response(200, content=b"x"))
        blob = await fetch_url(UrlSource(location="https://cdn.test/"), transport=transport)
        assert blob.name == DEFAULT_FILENAME
        assert blob.mime_type == "application/octet-stream"

    async def test_non_success_status(self):
        transport = _transport(lambda r: httpx.Response(404))
        with pytest.raises(AcquisitionError, match="HTTP 404") as exc_info:
            await fetch_url(UrlSource(location="https://cdn.test/missing.mp4"), transport=transport)
        assert exc_info.value.category is ErrorCategory.ACQUISITION_FAILED

    async def test_transport_failure(self):
        def _boom(request):
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(AcquisitionError, match="Failed to fetch the file"):
            await fetch_url(UrlSource(location="https://cdn.test/a.mp4"), transport=_transport(_boom))

    async def test_single_attempt_only(self):
        seen: list[httpx.Request] = []
        transport = _transport(lambda r: httpx.Response(503), seen)
        with pytest.raises(AcquisitionError):
            await fetch_url(UrlSource(location="https://cdn.test/a.mp4"), transport=transport)
        assert len(seen) == 1


class TestAcquire:
    async def test_file_source_passes_through(self, video_source):
        blob = await acquire(video_source)
        assert isinstance(blob, MediaBlob)
        assert blob.data == video_source.data
        assert blob.mime_type == "video/mp4"

    async def test_url_source_fetches(self):
        update_config(proxy_base="")
        transport = _transport(lambda r: httpx.Response(200, content=b"1", headers={"content-type": "video/webm"}))
        blob = await acquire(UrlSource(location="https://cdn.test/v.webm"), transport=transport)
        assert blob.is_video
