"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import create_client

from voice_nutrition.adapters.memory_record_store import InMemoryRecordStore
from voice_nutrition.adapters.openai_chat_client import OpenAIChatClient
from voice_nutrition.adapters.openai_transcription_client import (
    HttpxTranscriptionClient,
    TranscriptionClient,
)
from voice_nutrition.adapters.sounddevice_microphone import SoundDeviceMicrophone
from voice_nutrition.adapters.supabase_record_store import SupabaseRecordStore
from voice_nutrition.config import Settings, parse_input_device
from voice_nutrition.domain.audio import AudioFormat
from voice_nutrition.services.capture import AudioCapture
from voice_nutrition.services.dashboard import DashboardService
from voice_nutrition.services.extraction import NutritionExtractionService
from voice_nutrition.services.pipeline import VoicePipeline
from voice_nutrition.services.records import RecordStore


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    audio_capture: AudioCapture
    transcription_client: TranscriptionClient
    extraction_service: NutritionExtractionService
    record_store: RecordStore
    pipeline: VoicePipeline
    dashboard_service: DashboardService
    close_resources: Callable[[], Awaitable[None]]


def build_record_store(settings: Settings) -> RecordStore:
    """Return the Supabase store when configured, else an in-memory one."""
    if settings.uses_supabase:
        supabase_client = create_client(
            settings.supabase_url, settings.supabase_service_key
        )
        return SupabaseRecordStore(supabase_client, timezone_name=settings.timezone)
    return InMemoryRecordStore(timezone_name=settings.timezone)


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    record_store = build_record_store(resolved_settings)
    audio_capture = AudioCapture(
        microphone=SoundDeviceMicrophone(
            device=parse_input_device(resolved_settings.input_device)
        ),
        recordings_dir=resolved_settings.recordings_dir,
        block_size=resolved_settings.capture_block_size,
        queue_size=resolved_settings.capture_queue_size,
        level_gain=resolved_settings.level_gain,
    )
    transcription_client = HttpxTranscriptionClient.create(
        api_key=resolved_settings.openai_api_key,
        base_url=resolved_settings.openai_base_url,
        model=resolved_settings.transcription_model,
        timeout=resolved_settings.request_timeout_seconds,
    )
    chat_client = OpenAIChatClient.create(
        api_key=resolved_settings.openai_api_key,
        base_url=resolved_settings.openai_base_url,
        timeout=resolved_settings.request_timeout_seconds,
    )
    extraction_service = NutritionExtractionService(
        client=chat_client,
        model=resolved_settings.analysis_model,
        temperature=resolved_settings.analysis_temperature,
    )
    pipeline = VoicePipeline(
        recorder=audio_capture,
        transcription_client=transcription_client,
        extraction_service=extraction_service,
        record_store=record_store,
        target_format=AudioFormat(
            sample_rate=resolved_settings.target_sample_rate,
            channels=resolved_settings.target_channels,
        ),
    )
    dashboard_service = DashboardService(
        record_store, timezone_name=resolved_settings.timezone
    )

    async def close_resources() -> None:
        pipeline.cancel()
        await transcription_client.close()
        await chat_client.close()

    return AppContainer(
        settings=resolved_settings,
        audio_capture=audio_capture,
        transcription_client=transcription_client,
        extraction_service=extraction_service,
        record_store=record_store,
        pipeline=pipeline,
        dashboard_service=dashboard_service,
        close_resources=close_resources,
    )
