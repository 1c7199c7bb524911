"""Main FastMCP server — mounts the media analysis sub-server."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastmcp import FastMCP

from . import tracing
from .client import GeminiClient
from .config import get_config
from .playback import playback_registry
from .tools.media import media_server

logger = logging.getLogger(__name__)


@asynccontextmanager
async def _lifespan(server: FastMCP):
    """Startup/shutdown hook — tracing, playable handle and Gemini clients."""
    tracing.setup()
    yield {}
    playback_registry.release()
    closed = await GeminiClient.close_all()
    tracing.shutdown()
    logger.info("Lifespan shutdown: closed %d client(s)", closed)


app = FastMCP(
    "video-analyzer",
    instructions=(
        "AI video/audio analyzer — chapters, three summary styles, hashtags, "
        "transcript, cast dialogue, brand mentions and evaluation scores from one "
        "file, powered by Gemini structured output."
    ),
    lifespan=_lifespan,
)

app.mount(media_server)


def configure_logging(level: str | None = None) -> None:
    """Configure root logging; MCP stdio owns stdout, so logs go to stderr."""
    logging.basicConfig(
        level=(level or get_config().log_level).upper(),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )


def main() -> None:
    """Entry-point for ``video-analyzer-mcp`` console script."""
    configure_logging()
    app.run()


if __name__ == "__main__":
    main()
