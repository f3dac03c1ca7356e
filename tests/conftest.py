"""Shared test fixtures."""

import json
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

import numpy as np
import pytest

from voice_nutrition.adapters.memory_record_store import InMemoryRecordStore
from voice_nutrition.adapters.openai_transcription_client import TranscriptionClient
from voice_nutrition.config import Settings
from voice_nutrition.containers import AppContainer
from voice_nutrition.domain.audio import AudioFormat
from voice_nutrition.domain.nutrition import ParsedFoodItem
from voice_nutrition.errors import DeviceError, StorageError
from voice_nutrition.services.capture import AudioCapture, InputStream, Microphone
from voice_nutrition.services.dashboard import DashboardService
from voice_nutrition.services.extraction import ChatClient, NutritionExtractionService
from voice_nutrition.services.pipeline import PipelineOutcome, VoicePipeline

CHICKEN_AND_RICE = {
    "foods": [
        {
            "name": "chicken breast",
            "quantity": 200,
            "unit": "g",
            "calories": 330,
            "protein": 62,
            "fat": 7.2,
            "carbs": 0,
        },
        {
            "name": "rice",
            "quantity": 1,
            "unit": "cup",
            "calories": 130,
            "protein": 2.7,
            "fat": 0.3,
            "carbs": 28,
        },
    ],
    "total": {"calories": 460, "protein": 64.7, "fat": 7.5, "carbs": 28},
}


@dataclass
class FakeStream(InputStream):
    """Input stream that records lifecycle calls."""

    stopped: bool = False
    closed: bool = False

    def stop(self) -> None:
        self.stopped = True

    def close(self) -> None:
        self.closed = True


@dataclass
class FakeMicrophone(Microphone):
    """Microphone whose buffers are pushed by the test via ``emit``."""

    sample_rate: int = 48000
    channels: int = 1
    available: bool = True
    fail_open: bool = False
    streams: list[FakeStream] = field(default_factory=list)
    callback: Callable[[np.ndarray], None] | None = None

    def has_input_device(self) -> bool:
        return self.available

    def input_format(self) -> AudioFormat:
        return AudioFormat(
            sample_rate=self.sample_rate, channels=self.channels, sample_width_bytes=4
        )

    def open_stream(
        self,
        input_format: AudioFormat,
        block_size: int,
        callback: Callable[[np.ndarray], None],
    ) -> InputStream:
        if self.fail_open:
            raise DeviceError("Cannot open input stream: device busy")
        self.callback = callback
        stream = FakeStream()
        self.streams.append(stream)
        return stream

    def emit(self, samples: np.ndarray) -> None:
        assert self.callback is not None
        self.callback(samples)

    def emit_tone(self, seconds: float, amplitude: float = 0.5) -> None:
        frames = int(self.sample_rate * seconds)
        t = np.arange(frames) / self.sample_rate
        tone = amplitude * np.sin(2 * np.pi * 440.0 * t)
        samples = np.repeat(tone[:, np.newaxis], self.channels, axis=1)
        self.emit(samples.astype(np.float32))


@dataclass
class FakeTranscriptionClient(TranscriptionClient):
    """Transcription client returning a canned transcript."""

    transcript: str = "200 grams of chicken breast and a cup of rice"
    error: Exception | None = None
    received: list[Path] = field(default_factory=list)
    received_bytes: list[int] = field(default_factory=list)

    async def transcribe(self, audio_path: Path) -> str:
        self.received.append(audio_path)
        self.received_bytes.append(audio_path.stat().st_size)
        if self.error is not None:
            raise self.error
        return self.transcript


@dataclass
class FakeChatClient(ChatClient):
    """Chat client returning a canned JSON payload."""

    payload: object = field(default_factory=lambda: CHICKEN_AND_RICE)
    error: Exception | None = None
    calls: list[dict[str, object]] = field(default_factory=list)

    async def complete_json(
        self,
        *,
        model: str,
        messages: list[dict[str, str]],
        temperature: float,
    ) -> str:
        self.calls.append(
            {"model": model, "messages": messages, "temperature": temperature}
        )
        if self.error is not None:
            raise self.error
        if isinstance(self.payload, str):
            return self.payload
        return json.dumps(self.payload)


@dataclass
class FlakyRecordStore(InMemoryRecordStore):
    """In-memory store that fails after a number of commits."""

    fail_after: int = 1

    def commit_entry(self, item: ParsedFoodItem):  # type: ignore[no-untyped-def]
        if len(self.entries) >= self.fail_after:
            raise StorageError(f"Cannot save {item.name}: disk full")
        return super().commit_entry(item)


@dataclass
class RecordingListener:
    """Pipeline listener collecting every outcome."""

    outcomes: list[PipelineOutcome] = field(default_factory=list)

    def on_outcome(self, outcome: PipelineOutcome) -> None:
        self.outcomes.append(outcome)


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        openai_api_key="openai-key",
        recordings_dir=tmp_path / "recordings",
        supabase_url=None,
        supabase_service_key=None,
    )


@pytest.fixture
def microphone() -> FakeMicrophone:
    return FakeMicrophone()


@pytest.fixture
def audio_capture(microphone: FakeMicrophone, tmp_path: Path) -> AudioCapture:
    return AudioCapture(microphone=microphone, recordings_dir=tmp_path)


@pytest.fixture
def transcription_client() -> FakeTranscriptionClient:
    return FakeTranscriptionClient()


@pytest.fixture
def chat_client() -> FakeChatClient:
    return FakeChatClient()


@pytest.fixture
def record_store() -> InMemoryRecordStore:
    return InMemoryRecordStore()


@pytest.fixture
def listener() -> RecordingListener:
    return RecordingListener()


@pytest.fixture
def pipeline(
    audio_capture: AudioCapture,
    transcription_client: FakeTranscriptionClient,
    chat_client: FakeChatClient,
    record_store: InMemoryRecordStore,
    listener: RecordingListener,
) -> VoicePipeline:
    return VoicePipeline(
        recorder=audio_capture,
        transcription_client=transcription_client,
        extraction_service=NutritionExtractionService(
            client=chat_client, model="gpt-4o-mini"
        ),
        record_store=record_store,
        listener=listener,
    )


@pytest.fixture
def container(
    settings: Settings,
    audio_capture: AudioCapture,
    transcription_client: FakeTranscriptionClient,
    pipeline: VoicePipeline,
    record_store: InMemoryRecordStore,
) -> AppContainer:
    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        audio_capture=audio_capture,
        transcription_client=transcription_client,
        extraction_service=pipeline.extraction_service,
        record_store=record_store,
        pipeline=pipeline,
        dashboard_service=DashboardService(record_store),
        close_resources=close_resources,
    )
