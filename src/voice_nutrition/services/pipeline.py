"""Voice-to-nutrition pipeline state machine."""

import asyncio
import logging
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path
from typing import Protocol

from voice_nutrition.adapters.openai_transcription_client import TranscriptionClient
from voice_nutrition.domain.audio import TARGET_FORMAT, AudioFormat, RecordingSession
from voice_nutrition.errors import (
    DeviceError,
    EmptyTranscriptError,
    NoFoodItemsDetectedError,
    PermissionDeniedError,
    PipelineError,
    RecordingSaveError,
)
from voice_nutrition.services.extraction import NutritionExtractionService
from voice_nutrition.services.records import RecordStore, commit_items

CANCELLED_MESSAGE = "Processing was cancelled."

_logger = logging.getLogger(__name__)


class PipelineState(StrEnum):
    """States of one recording's trip through the pipeline."""

    IDLE = "idle"
    RECORDING = "recording"
    FINALIZING = "finalizing"
    TRANSCRIBING = "transcribing"
    ANALYZING = "analyzing"
    COMMITTING = "committing"


@dataclass(frozen=True)
class PipelineSuccess:
    """Reported after all parsed items were committed."""

    items_committed: int
    total_calories: int
    message: str
    transcript: str


@dataclass(frozen=True)
class PipelineFailure:
    """Reported when a stage fails; ``stage`` is where it happened."""

    stage: PipelineState
    message: str
    error: Exception | None = None


PipelineOutcome = PipelineSuccess | PipelineFailure


class Recorder(Protocol):
    """Audio capture as seen by the pipeline."""

    @property
    def level(self) -> float:
        """Return the latest loudness in [0, 1]."""

    @property
    def session(self) -> RecordingSession | None:
        """Return the open session, if any."""

    async def request_permission(self) -> bool:
        """Return whether audio input may be used."""

    def start(self, target_sample_rate: int, channels: int) -> RecordingSession:
        """Open a recording session."""

    def stop(self) -> Path | None:
        """Finalize the session and return its file, if any."""


class PipelineListener(Protocol):
    """Receives every outcome the pipeline reports."""

    def on_outcome(self, outcome: PipelineOutcome) -> None:
        """Handle a success or failure report."""


@dataclass
class VoicePipeline:
    """Sequences capture, transcription, extraction and commit.

    Only one session may be open at a time, and the recording file is
    deleted before the pipeline returns to IDLE on every path.
    """

    recorder: Recorder
    transcription_client: TranscriptionClient
    extraction_service: NutritionExtractionService
    record_store: RecordStore
    target_format: AudioFormat = TARGET_FORMAT
    listener: PipelineListener | None = None
    state: PipelineState = field(default=PipelineState.IDLE, init=False)
    last_outcome: PipelineOutcome | None = field(default=None, init=False)
    _task: "asyncio.Task[PipelineOutcome] | None" = field(
        default=None, init=False, repr=False
    )

    @property
    def level(self) -> float:
        """Return the live input level while recording, else 0."""
        if self.state is not PipelineState.RECORDING:
            return 0.0
        return self.recorder.level

    async def start(self) -> RecordingSession | PipelineFailure | None:
        """Start a recording.

        Returns the new session, a failure when permission or the device is
        unavailable, or None when a session is already active.
        """
        if self.state is not PipelineState.IDLE:
            _logger.info("Start ignored: pipeline is %s", self.state)
            return None
        granted = await self.recorder.request_permission()
        if self.state is not PipelineState.IDLE:
            return None
        if not granted:
            return self._report(
                _failure(PipelineState.IDLE, PermissionDeniedError())
            )
        try:
            session = self.recorder.start(
                self.target_format.sample_rate, self.target_format.channels
            )
        except DeviceError as exc:
            return self._report(_failure(PipelineState.IDLE, exc))
        self._enter(PipelineState.RECORDING)
        return session

    async def stop_and_process(self) -> PipelineOutcome | None:
        """Stop recording and run the file through every stage.

        Returns None when no recording is active.
        """
        if self.state is not PipelineState.RECORDING:
            return None
        self._enter(PipelineState.FINALIZING)
        session = self.recorder.session
        try:
            path = await asyncio.to_thread(self.recorder.stop)
        except Exception as exc:
            self.state = PipelineState.IDLE
            if session is not None:
                _remove_recording(session.path)
            error = (
                exc
                if isinstance(exc, RecordingSaveError)
                else RecordingSaveError(str(exc))
            )
            return self._report(_failure(PipelineState.FINALIZING, error))
        if path is None:
            self.state = PipelineState.IDLE
            return self._report(
                _failure(PipelineState.FINALIZING, RecordingSaveError())
            )

        self._task = asyncio.create_task(self._process(path))
        try:
            return await self._task
        except asyncio.CancelledError:
            current = asyncio.current_task()
            if current is not None and current.cancelling():
                raise
            return self.last_outcome
        finally:
            self._task = None

    def cancel(self) -> bool:
        """Abort the active recording or in-flight processing.

        Returns True when there was something to cancel.
        """
        if self._task is not None and not self._task.done():
            self._task.cancel()
            return True
        if self.state is PipelineState.RECORDING:
            session = self.recorder.session
            self._enter(PipelineState.FINALIZING)
            try:
                path = self.recorder.stop()
            except PipelineError:
                path = session.path if session is not None else None
            finally:
                self.state = PipelineState.IDLE
            if path is not None:
                _remove_recording(path)
            self._report(PipelineFailure(PipelineState.RECORDING, CANCELLED_MESSAGE))
            return True
        return False

    async def _process(self, path: Path) -> PipelineOutcome:
        try:
            outcome = await self._run_stages(path)
        except asyncio.CancelledError:
            self._report(PipelineFailure(self.state, CANCELLED_MESSAGE))
            raise
        finally:
            _remove_recording(path)
            self.state = PipelineState.IDLE
        return self._report(outcome)

    async def _run_stages(self, path: Path) -> PipelineOutcome:
        try:
            self._enter(PipelineState.TRANSCRIBING)
            transcript = await self.transcription_client.transcribe(path)
            _logger.info("Transcript received: %s chars", len(transcript))
            if not transcript.strip():
                raise EmptyTranscriptError()

            self._enter(PipelineState.ANALYZING)
            custom_foods = self.record_store.lookup_custom_foods()
            analysis = await self.extraction_service.analyze(transcript, custom_foods)
            if not analysis.foods:
                raise NoFoodItemsDetectedError(transcript)

            self._enter(PipelineState.COMMITTING)
            entries = commit_items(self.record_store, analysis.foods)
        except PipelineError as exc:
            return _failure(self.state, exc)
        except Exception as exc:
            _logger.exception("Unexpected failure while %s", self.state)
            return PipelineFailure(
                stage=self.state,
                message=f"Failed to process audio: {exc}",
                error=exc,
            )

        total_calories = analysis.total.calories_int
        return PipelineSuccess(
            items_committed=len(entries),
            total_calories=total_calories,
            message=success_message(len(entries), total_calories),
            transcript=transcript,
        )

    def _enter(self, state: PipelineState) -> None:
        _logger.info("Pipeline %s -> %s", self.state, state)
        self.state = state

    def _report(self, outcome: PipelineOutcome) -> PipelineOutcome:
        self.last_outcome = outcome
        if isinstance(outcome, PipelineFailure):
            _logger.warning("Pipeline failed at %s: %s", outcome.stage, outcome.message)
        else:
            _logger.info("Pipeline succeeded: %s", outcome.message)
        if self.listener is not None:
            self.listener.on_outcome(outcome)
        return outcome


def success_message(count: int, total_calories: int) -> str:
    """Return the summary shown after a successful commit."""
    noun = "item" if count == 1 else "items"
    return f"Added {count} food {noun} ({total_calories} cal)"


def _failure(stage: PipelineState, error: PipelineError) -> PipelineFailure:
    return PipelineFailure(stage=stage, message=error.user_message, error=error)


def _remove_recording(path: Path) -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError:
        _logger.warning("Failed to delete recording %s", path, exc_info=True)
