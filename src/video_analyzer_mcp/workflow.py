"""Analysis workflow — the state machine behind one end-to-end run.

    IDLE → ACQUIRING → UPLOADING → WAITING_REMOTE → GENERATING
         → [EXTRACTING_THUMBNAILS] → DONE

Any running phase may move to FAILED. DONE and FAILED end a run and a
new ``run()`` starts over from either of them or from IDLE. Input is
validated before ACQUIRING; a validation failure leaves the phase at
IDLE and touches nothing else.

Stage errors are caught here and only here, turned into one user-facing
message and never retried. The playable handle of the previous run is
released when a run starts, and the current one when a run fails. An
elapsed-seconds counter ticks once per second while a run is active and
is reset to 0 when it ends.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Awaitable, Callable

from .acquisition import acquire
from .config import get_config
from .errors import AnalyzerError, ValidationError, WorkflowBusyError
from .models.analysis import AnalysisResult
from .models.workflow import FileSource, MediaBlob, Phase, UrlSource, WorkflowState
from .playback import PlaybackRegistry, playback_registry
from .remote import RemoteAnalysisClient
from .schemas import AnalysisSchema, get_schema
from .thumbnails import extract_thumbnails
from .tracing import stage_span

logger = logging.getLogger(__name__)

MSG_NO_FILE = "Select a video or audio file to analyze."
MSG_NO_URL = "Enter the URL of the file to analyze."
MSG_FETCHING = "Fetching the file from the URL... 📥"
MSG_UPLOADING = "Uploading the file. Large files take a little longer... 🚀"
MSG_WAITING = "The AI is reading the file. Please wait... 🤖"
MSG_GENERATING = "The AI is analyzing the media. Almost there! ⏳"
MSG_THUMBNAILS = "Generating thumbnails... ({done}/{total})"
MSG_UNEXPECTED = "An unexpected problem occurred."
MSG_CANCELLED = "The analysis was cancelled."
RETRY_SUFFIX = "Please try again shortly."

StateListener = Callable[[WorkflowState], None]
Acquirer = Callable[[FileSource | UrlSource], Awaitable[MediaBlob]]
ThumbnailStage = Callable[..., Awaitable[AnalysisResult]]


def failure_message(message: str) -> str:
    """User-facing failure text: the stage message plus the retry suffix."""
    message = message.strip() or MSG_UNEXPECTED
    return f"{message} {RETRY_SUFFIX}"


class AnalysisWorkflow:
    """Sequences acquisition, upload, polling, generation and thumbnails.

    Overlapping runs are refused with ``WorkflowBusyError``; there is no
    cancellation of an in-flight run.
    """

    def __init__(
        self,
        *,
        remote: RemoteAnalysisClient | None = None,
        playback: PlaybackRegistry | None = None,
        schema: AnalysisSchema | None = None,
        acquirer: Acquirer = acquire,
        thumbnail_stage: ThumbnailStage = extract_thumbnails,
        tick_interval: float = 1.0,
    ) -> None:
        self._remote = remote
        self._playback = playback if playback is not None else playback_registry
        self._schema = schema
        self._acquire = acquirer
        self._thumbnail_stage = thumbnail_stage
        self._tick_interval = tick_interval
        self._state = WorkflowState()
        self._listeners: list[StateListener] = []
        self._running = False
        self.phase_history: list[Phase] = []
        self.last_error: Exception | None = None

    # ── observation ──────────────────────────────────────────────────────────

    @property
    def state(self) -> WorkflowState:
        return self._state.model_copy(deep=True)

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def remote(self) -> RemoteAnalysisClient:
        if self._remote is None:
            self._remote = RemoteAnalysisClient()
        return self._remote

    @property
    def schema(self) -> AnalysisSchema:
        return self._schema or get_schema(get_config().schema_variant)

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Register *listener* for state changes. Returns an unsubscribe callable."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _publish(self, **changes: object) -> None:
        self._state = self._state.model_copy(update=changes)
        snapshot = self.state
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.warning("State listener %r failed", listener, exc_info=True)

    def _enter(self, phase: Phase, message: str = "") -> None:
        self.phase_history.append(phase)
        logger.debug("Phase → %s", phase.value)
        self._publish(phase=phase, progress_message=message)

    # ── transitions ──────────────────────────────────────────────────────────

    @staticmethod
    def validate(source: FileSource | UrlSource | None) -> FileSource | UrlSource:
        """Check the precondition for leaving IDLE.

        Raises:
            ValidationError: If no file is selected or the URL is blank.
        """
        if isinstance(source, UrlSource):
            if not source.location.strip():
                raise ValidationError(MSG_NO_URL)
            return source
        if isinstance(source, FileSource) and source.data:
            return source
        raise ValidationError(MSG_NO_FILE)

    def reset(self) -> WorkflowState:
        """Return to IDLE, dropping result, error and the playable handle.

        Raises:
            WorkflowBusyError: If a run is in flight.
        """
        if self._running:
            raise WorkflowBusyError("An analysis is already running.")
        self._playback.release()
        self.phase_history = []
        self.last_error = None
        self._publish(**WorkflowState().model_dump())
        return self.state

    async def run(
        self,
        source: FileSource | UrlSource | None,
        schema: AnalysisSchema | None = None,
    ) -> WorkflowState:
        """Execute one analysis run and return the terminal state.

        Returns the IDLE state carrying the validation message when the
        input is missing.

        Raises:
            WorkflowBusyError: If another run is still in flight.
        """
        if self._running:
            raise WorkflowBusyError("An analysis is already running.")
        try:
            source = self.validate(source)
        except ValidationError as exc:
            logger.info("Run rejected: %s", exc)
            self.last_error = exc
            self._publish(error=str(exc))
            return self.state

        resolved_schema = schema or self.schema
        self._running = True
        self.phase_history = []
        self.last_error = None
        self._playback.release()
        self._publish(result=None, error=None, playback_uri=None, elapsed_seconds=0)
        ticker = asyncio.create_task(self._tick())
        try:
            result = await self._execute(source, resolved_schema)
        except AnalyzerError as exc:
            await self._stop_ticker(ticker)
            self.last_error = exc
            logger.warning("Run failed in %s: %s", self._state.phase.value, exc)
            self._fail(str(exc))
        except asyncio.CancelledError:
            await self._stop_ticker(ticker)
            self._fail(MSG_CANCELLED)
            raise
        except Exception as exc:
            await self._stop_ticker(ticker)
            self.last_error = exc
            logger.exception("Unexpected failure in %s", self._state.phase.value)
            self._fail(str(exc))
        else:
            await self._stop_ticker(ticker)
            self._finish(result)
        finally:
            self._running = False
        return self.state

    async def _execute(self, source: FileSource | UrlSource, schema: AnalysisSchema) -> AnalysisResult:
        self._enter(Phase.ACQUIRING, MSG_FETCHING if isinstance(source, UrlSource) else "")
        with stage_span("acquire", kind=source.kind):
            blob = await self._acquire(source)
        if blob.is_video:
            self._publish(playback_uri=self._playback.create(blob))

        self._enter(Phase.UPLOADING, MSG_UPLOADING)
        with stage_span("upload", mime_type=blob.mime_type, size=blob.size):
            asset = await self.remote.upload(blob)

        self._enter(Phase.WAITING_REMOTE, MSG_WAITING)
        with stage_span("wait_remote", asset_id=asset.asset_id):
            asset = await self.remote.wait_until_active(asset)

        self._enter(Phase.GENERATING, MSG_GENERATING)
        with stage_span("generate", variant=schema.name):
            result = await self.remote.generate(asset, schema)

        if schema.thumbnails and result.chapters and blob.is_video:
            self._enter(Phase.EXTRACTING_THUMBNAILS)
            with stage_span("thumbnails", chapters=len(result.chapters)):
                result = await self._thumbnail_stage(
                    result, blob, on_progress=self._thumbnail_progress,
                )
        return result

    def _thumbnail_progress(self, done: int, total: int) -> None:
        self._publish(progress_message=MSG_THUMBNAILS.format(done=done, total=total))

    def _fail(self, message: str) -> None:
        self._playback.release()
        self.phase_history.append(Phase.FAILED)
        self._publish(
            phase=Phase.FAILED,
            progress_message="",
            elapsed_seconds=0,
            result=None,
            error=failure_message(message),
            playback_uri=None,
        )

    def _finish(self, result: AnalysisResult) -> None:
        self.phase_history.append(Phase.DONE)
        logger.info("Run done (%d chapter(s))", len(result.chapters))
        self._publish(
            phase=Phase.DONE,
            progress_message="",
            elapsed_seconds=0,
            result=result,
            error=None,
        )

    # ── elapsed counter ──────────────────────────────────────────────────────

    async def _tick(self) -> None:
        while True:
            await asyncio.sleep(self._tick_interval)
            self._publish(elapsed_seconds=self._state.elapsed_seconds + 1)

    @staticmethod
    async def _stop_ticker(ticker: asyncio.Task) -> None:
        ticker.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await ticker
