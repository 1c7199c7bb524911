"""Media acquisition — turn a file or URL source into one uploadable blob.

URL sources go through a retrieval intermediary
(``<proxy_base>?url=<target>``) by default; an empty ``proxy_base``
fetches the target directly. Nothing is retried: the caller surfaces
the first failure.
"""

from __future__ import annotations

import logging
import mimetypes
from pathlib import Path
from urllib.parse import quote, urlparse

import httpx

from .config import get_config
from .errors import AcquisitionError
from .models.workflow import FileSource, MediaBlob, UrlSource

logger = logging.getLogger(__name__)

DEFAULT_FILENAME = "downloaded_file"
FALLBACK_MIME_TYPE = "application/octet-stream"

SUPPORTED_MEDIA_EXTENSIONS: dict[str, str] = {
    ".mp4": "video/mp4",
    ".webm": "video/webm",
    ".mov": "video/quicktime",
    ".avi": "video/x-msvideo",
    ".mkv": "video/x-matroska",
    ".mpeg": "video/mpeg",
    ".mpg": "video/mpeg",
    ".wmv": "video/x-ms-wmv",
    ".flv": "video/x-flv",
    ".3gp": "video/3gpp",
    ".3gpp": "video/3gpp",
    ".mp3": "audio/mpeg",
    ".wav": "audio/wav",
    ".m4a": "audio/mp4",
    ".aac": "audio/aac",
    ".ogg": "audio/ogg",
    ".flac": "audio/flac",
    ".aiff": "audio/aiff",
}


def _media_mime_type(path: Path) -> str:
    """Return MIME type for a media file, or raise ValueError if unsupported."""
    ext = path.suffix.lower()
    mime = SUPPORTED_MEDIA_EXTENSIONS.get(ext)
    if not mime:
        allowed = ", ".join(sorted(SUPPORTED_MEDIA_EXTENSIONS))
        raise ValueError(f"Unsupported media extension '{ext}'. Supported: {allowed}")
    return mime


def load_local_file(file_path: str) -> FileSource:
    """Read a local audio/video file into a ``FileSource``.

    Raises:
        FileNotFoundError: If the path does not exist.
        ValueError: If it is not a file or the extension is unsupported.
    """
    p = Path(file_path).expanduser().resolve()
    if not p.exists():
        raise FileNotFoundError(f"Media file not found: {file_path}")
    if not p.is_file():
        raise ValueError(f"Not a file: {file_path}")
    mime = _media_mime_type(p)
    return FileSource(data=p.read_bytes(), name=p.name, mime_type=mime)


def filename_from_url(url: str) -> str:
    """Last path segment of *url* without query, or ``downloaded_file``."""
    path = urlparse(url.strip()).path
    name = path.rsplit("/", 1)[-1]
    return name or DEFAULT_FILENAME


def proxied_url(url: str, proxy_base: str | None = None) -> str:
    """URL actually requested for *url* (through the intermediary when configured)."""
    base = get_config().proxy_base if proxy_base is None else proxy_base
    target = url.strip()
    if not base:
        return target
    return f"{base}?url={quote(target, safe='')}"


def _content_type(response: httpx.Response, filename: str) -> str:
    declared = response.headers.get("content-type", "").split(";", 1)[0].strip().lower()
    if declared:
        return declared
    guessed, _ = mimetypes.guess_type(filename)
    return guessed or FALLBACK_MIME_TYPE


async def fetch_url(
    source: UrlSource,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> MediaBlob:
    """Download a URL source through the retrieval intermediary.

    Raises:
        AcquisitionError: On transport failure or a non-2xx response.
    """
    cfg = get_config()
    request_url = proxied_url(source.location)
    filename = filename_from_url(source.location)

    try:
        async with httpx.AsyncClient(
            follow_redirects=True, timeout=cfg.fetch_timeout, transport=transport,
        ) as client:
            response = await client.get(request_url)
    except httpx.HTTPError as exc:
        logger.warning("Fetching %s failed: %s", source.location, exc)
        raise AcquisitionError(
            "Failed to fetch the file from the URL. Check that the link is valid, "
            "or upload the file directly."
        ) from exc

    if not response.is_success:
        logger.warning("Fetching %s returned HTTP %d", source.location, response.status_code)
        raise AcquisitionError(
            f"Could not get the file from the URL (HTTP {response.status_code}). "
            "Check that the link is correct."
        )

    blob = MediaBlob(
        data=response.content,
        name=filename,
        mime_type=_content_type(response, filename),
    )
    logger.info("Fetched %s (%d bytes, %s)", source.location, blob.size, blob.mime_type)
    return blob


async def acquire(
    source: FileSource | UrlSource,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> MediaBlob:
    """Resolve *source* into a ``MediaBlob``; file sources pass through."""
    if isinstance(source, FileSource):
        return MediaBlob(data=source.data, name=source.name, mime_type=source.mime_type)
    return await fetch_url(source, transport=transport)
