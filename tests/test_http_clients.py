"""Tests for the remote speech and chat adapters."""

import asyncio
import json
from pathlib import Path
from types import SimpleNamespace

import httpx
import openai
import pytest

from voice_nutrition.adapters.openai_chat_client import OpenAIChatClient
from voice_nutrition.adapters.openai_transcription_client import (
    HttpxTranscriptionClient,
)
from voice_nutrition.errors import ApiError, InvalidResponseError, NetworkError

_CHAT_URL = "https://api.openai.com/v1/chat/completions"


def _audio_file(tmp_path: Path) -> Path:
    path = tmp_path / "voice.wav"
    path.write_bytes(b"RIFF....WAVEfmt ")
    return path


def _transcription_client(handler) -> HttpxTranscriptionClient:  # type: ignore[no-untyped-def]
    return HttpxTranscriptionClient(
        api_key="openai-key",
        base_url="https://api.openai.com/v1/",
        model="whisper-1",
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )


def test_transcription_client_uploads_multipart(tmp_path: Path) -> None:
    seen: dict[str, object] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["auth"] = request.headers["Authorization"]
        seen["content_type"] = request.headers["Content-Type"]
        seen["body"] = request.content
        return httpx.Response(200, json={"text": "two eggs and toast"})

    client = _transcription_client(handler)

    transcript = asyncio.run(client.transcribe(_audio_file(tmp_path)))

    assert transcript == "two eggs and toast"
    assert seen["path"] == "/v1/audio/transcriptions"
    assert seen["auth"] == "Bearer openai-key"
    assert str(seen["content_type"]).startswith("multipart/form-data")
    body = seen["body"]
    assert isinstance(body, bytes)
    assert b'name="model"' in body
    assert b"whisper-1" in body
    assert b'filename="voice.wav"' in body
    assert b"Content-Type: audio/wav" in body


def test_transcription_client_reports_api_error_message(tmp_path: Path) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            401, json={"error": {"message": "Incorrect API key provided"}}
        )

    client = _transcription_client(handler)

    with pytest.raises(ApiError) as exc_info:
        asyncio.run(client.transcribe(_audio_file(tmp_path)))

    assert exc_info.value.message == "Incorrect API key provided"


def test_transcription_client_unknown_api_error(tmp_path: Path) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(502, text="<html>Bad gateway</html>")

    client = _transcription_client(handler)

    with pytest.raises(ApiError) as exc_info:
        asyncio.run(client.transcribe(_audio_file(tmp_path)))

    assert exc_info.value.message == "Unknown API error"


def test_transcription_client_rejects_missing_text(tmp_path: Path) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"transcript": "hello"})

    client = _transcription_client(handler)

    with pytest.raises(InvalidResponseError):
        asyncio.run(client.transcribe(_audio_file(tmp_path)))


def test_transcription_client_rejects_non_json(tmp_path: Path) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="hello")

    client = _transcription_client(handler)

    with pytest.raises(InvalidResponseError):
        asyncio.run(client.transcribe(_audio_file(tmp_path)))


def test_transcription_client_maps_transport_errors(tmp_path: Path) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = _transcription_client(handler)

    with pytest.raises(NetworkError, match="connection refused"):
        asyncio.run(client.transcribe(_audio_file(tmp_path)))


def test_transcription_client_returns_empty_text(tmp_path: Path) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"text": ""})

    client = _transcription_client(handler)

    assert asyncio.run(client.transcribe(_audio_file(tmp_path))) == ""


class _FakeCompletions:
    def __init__(self, result: object) -> None:
        self.result = result
        self.last_payload: dict[str, object] | None = None

    async def create(self, **kwargs):  # type: ignore[no-untyped-def]
        self.last_payload = kwargs
        if isinstance(self.result, Exception):
            raise self.result
        return self.result


class _FakeOpenAI:
    def __init__(self, result: object) -> None:
        self.chat = SimpleNamespace(completions=_FakeCompletions(result))


def _completion(content: str | None) -> SimpleNamespace:
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=content))]
    )


def _status_error(status_code: int, body: object) -> openai.APIStatusError:
    request = httpx.Request("POST", _CHAT_URL)
    response = httpx.Response(status_code, request=request)
    return openai.APIStatusError(
        f"Error code: {status_code}", response=response, body=body
    )


def _complete(client: OpenAIChatClient) -> str:
    return asyncio.run(
        client.complete_json(
            model="gpt-4o-mini",
            messages=[{"role": "user", "content": "an apple"}],
            temperature=0.3,
        )
    )


def test_chat_client_requests_json_object() -> None:
    content = json.dumps({"foods": [], "total": {}})
    fake = _FakeOpenAI(_completion(content))
    client = OpenAIChatClient(client=fake)  # type: ignore[arg-type]

    assert _complete(client) == content
    payload = fake.chat.completions.last_payload
    assert payload is not None
    assert payload["model"] == "gpt-4o-mini"
    assert payload["temperature"] == 0.3
    assert payload["response_format"] == {"type": "json_object"}


def test_chat_client_maps_connection_error() -> None:
    error = openai.APIConnectionError(request=httpx.Request("POST", _CHAT_URL))
    client = OpenAIChatClient(client=_FakeOpenAI(error))  # type: ignore[arg-type]

    with pytest.raises(NetworkError):
        _complete(client)


def test_chat_client_maps_status_error_message() -> None:
    error = _status_error(429, {"message": "Rate limit reached", "type": "requests"})
    client = OpenAIChatClient(client=_FakeOpenAI(error))  # type: ignore[arg-type]

    with pytest.raises(ApiError) as exc_info:
        _complete(client)

    assert exc_info.value.message == "Rate limit reached"


def test_chat_client_status_error_without_message() -> None:
    client = OpenAIChatClient(
        client=_FakeOpenAI(_status_error(500, None))  # type: ignore[arg-type]
    )

    with pytest.raises(ApiError) as exc_info:
        _complete(client)

    assert exc_info.value.message == "Unknown API error"


def test_chat_client_rejects_missing_content() -> None:
    empty_choices = OpenAIChatClient(
        client=_FakeOpenAI(SimpleNamespace(choices=[]))  # type: ignore[arg-type]
    )
    null_content = OpenAIChatClient(
        client=_FakeOpenAI(_completion(None))  # type: ignore[arg-type]
    )

    with pytest.raises(InvalidResponseError):
        _complete(empty_choices)
    with pytest.raises(InvalidResponseError):
        _complete(null_content)


def test_chat_client_create_disables_retries() -> None:
    client = OpenAIChatClient.create(
        api_key="openai-key", base_url="https://api.openai.com/v1", timeout=5.0
    )

    assert client.client.max_retries == 0
    asyncio.run(client.close())
