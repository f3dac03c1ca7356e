"""OpenAI Chat Completions client for JSON-mode extraction."""

import logging
from dataclasses import dataclass

import httpx
import openai
from openai import AsyncOpenAI

from voice_nutrition.errors import ApiError, InvalidResponseError, NetworkError
from voice_nutrition.services.extraction import ChatClient

_logger = logging.getLogger(__name__)


@dataclass
class OpenAIChatClient(ChatClient):
    """Chat client backed by the OpenAI SDK with retries disabled."""

    client: AsyncOpenAI

    @classmethod
    def create(
        cls, api_key: str, base_url: str, timeout: float = 60.0
    ) -> "OpenAIChatClient":
        """Create an OpenAI chat client."""
        return cls(
            client=AsyncOpenAI(
                api_key=api_key,
                base_url=base_url,
                timeout=httpx.Timeout(timeout),
                max_retries=0,
            )
        )

    async def complete_json(
        self,
        *,
        model: str,
        messages: list[dict[str, str]],
        temperature: float,
    ) -> str:
        """Request a JSON object response and return the message content."""
        try:
            response = await self.client.chat.completions.create(
                model=model,
                messages=messages,
                temperature=temperature,
                response_format={"type": "json_object"},
            )
        except openai.APIConnectionError as exc:
            raise NetworkError(str(exc)) from exc
        except openai.APIStatusError as exc:
            message = _status_error_message(exc)
            _logger.warning(
                "Chat completion failed: status=%s message=%s",
                exc.status_code,
                message,
            )
            raise ApiError(message) from exc
        except openai.APIError as exc:
            raise InvalidResponseError(str(exc)) from exc

        choices = getattr(response, "choices", None) or []
        if not choices:
            raise InvalidResponseError("Chat completion returned no choices")
        content = getattr(choices[0].message, "content", None)
        if not isinstance(content, str) or not content:
            raise InvalidResponseError("Chat completion returned no content")
        return content

    async def close(self) -> None:
        """Close the underlying SDK client."""
        await self.client.close()


def _status_error_message(exc: openai.APIStatusError) -> str:
    """Return ``error.message`` from the error body, if present."""
    body = exc.body
    if isinstance(body, dict) and isinstance(body.get("error"), dict):
        body = body["error"]
    if isinstance(body, dict):
        message = body.get("message")
        if isinstance(message, str) and message:
            return message
    return ApiError.default_detail
