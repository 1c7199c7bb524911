"""Remote analysis client — Files API upload, readiness polling, structured generation.

Three sequential phases, each failing with its own error type:

1. ``upload``  → ``UploadError``
2. ``wait_until_active`` → ``ProcessingError`` on FAILED, an unexpected state
   or a failed status request
3. ``generate`` → ``GenerationError`` (call failed) or ``ResponseFormatError``
   (answer not valid for the schema)

Polling waits as long as the asset stays PROCESSING unless a
``poll_timeout`` is configured.
"""

from __future__ import annotations

import asyncio
import io
import logging
from collections.abc import Callable
from typing import Any

from google.genai import types

from .client import GeminiClient
from .config import get_config
from .errors import GenerationError, ProcessingError, ResponseFormatError, UploadError
from .models.analysis import AnalysisResult
from .models.workflow import AssetState, MediaBlob, RemoteAsset
from .schemas import AnalysisSchema

logger = logging.getLogger(__name__)


def _state_value(state: Any) -> AssetState | str:
    """Normalise an SDK FileState (enum or str) into ``AssetState`` when known."""
    raw = getattr(state, "value", state)
    raw = "" if raw is None else str(raw).upper()
    if raw.startswith("STATE_"):
        raw = raw[len("STATE_"):]
    try:
        return AssetState(raw)
    except ValueError:
        return raw or "STATE_UNSPECIFIED"


def _to_asset(file_info: Any, fallback_mime: str = "") -> RemoteAsset:
    return RemoteAsset(
        asset_id=file_info.name,
        mime_type=getattr(file_info, "mime_type", None) or fallback_mime,
        uri=getattr(file_info, "uri", None) or "",
        state=_state_value(getattr(file_info, "state", None)),
    )


def build_contents(asset: RemoteAsset, instruction: str) -> list[types.Part]:
    """Instruction text followed by a reference to the active remote asset."""
    return [
        types.Part(text=instruction),
        types.Part(file_data=types.FileData(file_uri=asset.uri, mime_type=asset.mime_type)),
    ]


class RemoteAnalysisClient:
    """Drives one file through upload, processing and analysis."""

    def __init__(
        self,
        *,
        poll_interval: float | None = None,
        poll_timeout: float | None = None,
        model: str | None = None,
        language: str | None = None,
    ) -> None:
        cfg = get_config()
        self.poll_interval = cfg.poll_interval if poll_interval is None else poll_interval
        self.poll_timeout = cfg.poll_timeout if poll_timeout is None else poll_timeout
        self.model = model or cfg.default_model
        self.language = language or cfg.output_language

    async def upload(self, blob: MediaBlob) -> RemoteAsset:
        """Upload *blob* to the Files API and return the new asset handle."""
        try:
            client = GeminiClient.get()
            uploaded = await client.aio.files.upload(
                file=io.BytesIO(blob.data),
                config=types.UploadFileConfig(mime_type=blob.mime_type, display_name=blob.name),
            )
        except Exception as exc:
            logger.warning("Upload of %s failed: %s", blob.name, exc)
            raise UploadError(f"Failed to upload the file: {exc}") from exc
        asset = _to_asset(uploaded, fallback_mime=blob.mime_type)
        logger.info("Uploaded %s → %s (state=%s)", blob.name, asset.asset_id, asset.state)
        return asset

    async def get_status(self, asset_id: str) -> RemoteAsset:
        """Fetch the current state of *asset_id*.

        Raises:
            ProcessingError: If the status request itself fails.
        """
        try:
            client = GeminiClient.get()
            file_info = await client.aio.files.get(name=asset_id)
        except Exception as exc:
            logger.warning("Status check for %s failed: %s", asset_id, exc)
            raise ProcessingError(f"Could not check the file status: {exc}") from exc
        return _to_asset(file_info)

    async def wait_until_active(
        self,
        asset: RemoteAsset,
        *,
        on_poll: Callable[[RemoteAsset], None] | None = None,
    ) -> RemoteAsset:
        """Poll the asset until it leaves PROCESSING.

        Fetches the status once immediately, then once per ``poll_interval``
        while it is still PROCESSING.

        Raises:
            ProcessingError: If the asset FAILED, reached any state other than
                ACTIVE, or ``poll_timeout`` (when > 0) elapsed first.
        """
        loop = asyncio.get_running_loop()
        start = loop.time()
        current = await self.get_status(asset.asset_id)
        polls = 0
        while current.state == AssetState.PROCESSING:
            if self.poll_timeout and loop.time() - start > self.poll_timeout:
                raise ProcessingError(
                    f"The file was not ready after {self.poll_timeout:.0f}s (state: PROCESSING)."
                )
            await asyncio.sleep(self.poll_interval)
            current = await self.get_status(current.asset_id)
            polls += 1
            if on_poll is not None:
                on_poll(current)

        if current.state == AssetState.FAILED:
            raise ProcessingError("Failed to process the file. Try uploading a different file.")
        if current.state != AssetState.ACTIVE:
            raise ProcessingError(f"The file is not ready yet. (state: {current.state})")

        logger.info(
            "Asset %s active after %d re-poll(s), %.1fs",
            current.asset_id, polls, loop.time() - start,
        )
        return current

    async def generate(self, asset: RemoteAsset, schema: AnalysisSchema) -> AnalysisResult:
        """Run the structured-generation request for *schema* against *asset*."""
        contents = build_contents(asset, schema.instruction(self.language))
        try:
            raw = await GeminiClient.generate(
                contents,
                model=self.model,
                response_schema=schema.json_schema(),
            )
        except Exception as exc:
            logger.warning("Generation for %s failed: %s", asset.asset_id, exc)
            raise GenerationError(f"The AI analysis request failed: {exc}") from exc
        try:
            return schema.parse(raw)
        except ResponseFormatError:
            logger.warning("Unparseable response for %s: %r", asset.asset_id, (raw or "")[:200])
            raise
