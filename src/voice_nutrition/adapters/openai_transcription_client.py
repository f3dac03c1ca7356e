"""Speech-to-text client for the OpenAI audio transcription endpoint."""

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

import httpx

from voice_nutrition.errors import ApiError, InvalidResponseError, NetworkError

_logger = logging.getLogger(__name__)


class TranscriptionClient(Protocol):
    """Interface for remote speech recognition."""

    async def transcribe(self, audio_path: Path) -> str:
        """Upload a finalized audio file and return its transcript."""


@dataclass
class HttpxTranscriptionClient(TranscriptionClient):
    """Transcription client uploading multipart audio with httpx."""

    api_key: str
    base_url: str
    model: str
    http_client: httpx.AsyncClient
    timeout: float = 60.0

    @classmethod
    def create(
        cls, api_key: str, base_url: str, model: str, timeout: float = 60.0
    ) -> "HttpxTranscriptionClient":
        """Create a transcription client with a managed httpx session."""
        return cls(
            api_key=api_key,
            base_url=base_url,
            model=model,
            http_client=httpx.AsyncClient(),
            timeout=timeout,
        )

    async def transcribe(self, audio_path: Path) -> str:
        """Send the file as a single multipart upload; no retries."""
        url = f"{self.base_url.rstrip('/')}/audio/transcriptions"
        audio_bytes = await asyncio.to_thread(audio_path.read_bytes)
        try:
            response = await self.http_client.post(
                url,
                headers={"Authorization": f"Bearer {self.api_key}"},
                data={"model": self.model},
                files={"file": (audio_path.name, audio_bytes, "audio/wav")},
                timeout=self.timeout,
            )
        except httpx.TransportError as exc:
            raise NetworkError(str(exc) or type(exc).__name__) from exc

        if not response.is_success:
            message = _error_message(response)
            _logger.warning(
                "Transcription failed: status=%s message=%s",
                response.status_code,
                message,
            )
            raise ApiError(message)

        try:
            payload = response.json()
        except ValueError as exc:
            raise InvalidResponseError("Transcription response is not JSON") from exc
        text = payload.get("text") if isinstance(payload, dict) else None
        if not isinstance(text, str):
            raise InvalidResponseError("Transcription response has no text field")
        return text

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()


def _error_message(response: httpx.Response) -> str:
    """Extract ``error.message`` from an error body, if it decodes."""
    try:
        payload = response.json()
        message = payload["error"]["message"]
    except (ValueError, KeyError, TypeError):
        return ApiError.default_detail
    if not isinstance(message, str) or not message:
        return ApiError.default_detail
    return message
