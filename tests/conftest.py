"""Shared test fixtures for video-analyzer-mcp."""

from __future__ import annotations

import json
from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from video_analyzer_mcp.models.workflow import FileSource, MediaBlob


def unwrap_tool(tool: Any) -> Any:
    """Extract the raw coroutine from a FastMCP FunctionTool, if wrapped.

    FastMCP 2.x wraps @server.tool functions in FunctionTool (not callable).
    FastMCP 3.x preserves the original function. This helper works with both.
    """
    return getattr(tool, "fn", tool)


def make_file_info(
    name: str = "files/abc123",
    state: str = "PROCESSING",
    uri: str = "https://generativelanguage.googleapis.com/v1beta/files/abc123",
    mime_type: str = "video/mp4",
) -> MagicMock:
    """Mock of a google.genai File with the attributes the client reads."""
    info = MagicMock()
    info.name = name
    info.state = state
    info.uri = uri
    info.mime_type = mime_type
    return info


FULL_PAYLOAD: dict = {
    "summary": {
        "engaging": "🎬 The future of batteries, in 5 minutes!",
        "serious": "An overview of solid-state battery research.",
        "content_focused": "Solid-state cells, costs, and timelines.",
    },
    "chapters": [
        {"timestamp": "00:00", "title": "Intro"},
        {"timestamp": "01:30", "title": "Chemistry"},
        {"timestamp": "1:02:03", "title": "Outlook"},
    ],
    "hashtags": ["#battery", "  energy ", "##EV"],
    "transcript": [
        {"timestamp": "00:00", "text": "Welcome."},
        {"timestamp": "00:05", "text": "Today we talk about batteries."},
    ],
    "cast": [
        {
            "speaker": "Host (Lee Kwang-seop)",
            "dialogues": [{"timestamp": "00:01", "text": "Welcome to the show."}],
        },
    ],
}


@pytest.fixture()
def full_payload() -> dict:
    return json.loads(json.dumps(FULL_PAYLOAD))


@pytest.fixture()
def video_source() -> FileSource:
    return FileSource(data=b"\x00\x00\x00\x18ftypmp42" + b"\x00" * 64, name="clip.mp4", mime_type="video/mp4")


@pytest.fixture()
def audio_source() -> FileSource:
    return FileSource(data=b"ID3" + b"\x00" * 64, name="talk.mp3", mime_type="audio/mpeg")


@pytest.fixture()
def video_blob(video_source) -> MediaBlob:
    return MediaBlob(data=video_source.data, name=video_source.name, mime_type=video_source.mime_type)


@pytest.fixture(autouse=True)
def _set_dummy_api_key(monkeypatch):
    """Ensure tests never hit real Gemini API."""
    monkeypatch.setenv("GEMINI_API_KEY", "test-key-not-real")


@pytest.fixture(autouse=True)
def _disable_tracing(monkeypatch):
    """Disable MLflow tracing in all tests to avoid real tracking-server calls."""
    monkeypatch.setenv("GEMINI_TRACING_ENABLED", "false")


@pytest.fixture(autouse=True)
def _isolate_dotenv(tmp_path, monkeypatch):
    """Prevent tests from loading a real ./.env or ~/.config/video-analyzer-mcp/.env."""
    monkeypatch.setattr(
        "video_analyzer_mcp.dotenv.DEFAULT_ENV_PATH",
        tmp_path / "nonexistent.env",
    )
    workdir = tmp_path / "cwd"
    workdir.mkdir()
    monkeypatch.chdir(workdir)


@pytest.fixture(autouse=True)
def clean_config():
    """Reset the config singleton between tests."""
    import video_analyzer_mcp.config as cfg_mod

    cfg_mod._config = None
    yield
    cfg_mod._config = None


@pytest.fixture(autouse=True)
def _release_playback():
    """Never leak the process-wide playable handle across tests."""
    from video_analyzer_mcp.playback import playback_registry

    yield
    playback_registry.release()


@pytest.fixture()
def mock_gemini_client():
    """Patch GeminiClient.get() and .generate() for unit tests.

    The returned ``client`` mock has ``aio.files.upload`` / ``aio.files.get``
    preset to an upload that becomes ACTIVE on the first status check.
    """
    with (
        patch("video_analyzer_mcp.client.GeminiClient.get") as mock_get,
        patch(
            "video_analyzer_mcp.client.GeminiClient.generate", new_callable=AsyncMock
        ) as mock_gen,
    ):
        client = MagicMock()
        client.aio.files.upload = AsyncMock(return_value=make_file_info())
        client.aio.files.get = AsyncMock(return_value=make_file_info(state="ACTIVE"))
        mock_get.return_value = client
        yield {
            "get": mock_get,
            "generate": mock_gen,
            "client": client,
        }
