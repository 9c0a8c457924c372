"""HTTP client for the nutrition chat server."""

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Protocol

import httpx
from pydantic import ValidationError as PydanticValidationError

from nutrition_chat.domain.chat import ChatMessage
from nutrition_chat.domain.nutrition import ImageAnalysisResult, NutritionData
from nutrition_chat.errors import (
    ApiError,
    NetworkError,
    UpstreamFormatError,
    UpstreamTimeoutError,
)

DEFAULT_API_URL = "http://localhost:3000/api"


class ChatApi(Protocol):
    """Interface for the two server operations a session needs."""

    async def analyze_image(
        self, content: bytes, filename: str, content_type: str
    ) -> ImageAnalysisResult:
        """Upload an image and return its analysis."""

    async def chat(
        self,
        message: str,
        nutrition_context: NutritionData | None = None,
        conversation_history: Sequence[ChatMessage] | None = None,
    ) -> str:
        """Send a chat message and return the assistant reply."""


@dataclass
class HttpxChatApi(ChatApi):
    """Nutrition chat API client using httpx."""

    base_url: str
    http_client: httpx.AsyncClient
    timeout_seconds: float = 60.0

    @classmethod
    def create(
        cls, base_url: str = DEFAULT_API_URL, timeout_seconds: float = 60.0
    ) -> "HttpxChatApi":
        """Create an API client with a managed httpx session."""
        return cls(
            base_url=base_url.rstrip("/"),
            http_client=httpx.AsyncClient(),
            timeout_seconds=timeout_seconds,
        )

    async def analyze_image(
        self, content: bytes, filename: str, content_type: str
    ) -> ImageAnalysisResult:
        """Post the image as multipart field ``file``."""
        response = await self._post(
            "/openai/analyze-image",
            fallback_message="Failed to analyze image",
            files={"file": (filename, content, content_type)},
        )
        try:
            return ImageAnalysisResult.model_validate(response.json()["data"])
        except (KeyError, TypeError, ValueError, PydanticValidationError) as exc:
            raise UpstreamFormatError("Malformed analysis response") from exc

    async def chat(
        self,
        message: str,
        nutrition_context: NutritionData | None = None,
        conversation_history: Sequence[ChatMessage] | None = None,
    ) -> str:
        """Post a chat message with optional context and history."""
        payload: dict[str, object] = {"message": message}
        if nutrition_context is not None:
            payload["nutritionContext"] = nutrition_context.to_wire()
        if conversation_history is not None:
            payload["conversationHistory"] = [
                turn.to_wire() for turn in conversation_history
            ]
        response = await self._post(
            "/openai/chat",
            fallback_message="Failed to get chat response",
            json=payload,
        )
        try:
            return str(response.json()["response"])
        except (KeyError, TypeError, ValueError) as exc:
            raise UpstreamFormatError("Malformed chat response") from exc

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()

    async def _post(
        self, path: str, fallback_message: str, **kwargs: object
    ) -> httpx.Response:
        try:
            response = await self.http_client.post(
                f"{self.base_url}{path}", timeout=self.timeout_seconds, **kwargs
            )
        except httpx.TimeoutException as exc:
            raise UpstreamTimeoutError("Request timed out") from exc
        except httpx.TransportError as exc:
            raise NetworkError(f"Could not reach the server: {exc}") from exc

        if response.is_success:
            return response
        raise ApiError(
            _error_message(response) or fallback_message,
            status_code=response.status_code,
        )


def _error_message(response: httpx.Response) -> str | None:
    """Extract ``message`` from an error envelope, if there is one."""
    try:
        payload = response.json()
    except ValueError:
        return None
    if not isinstance(payload, dict):
        return None
    message = payload.get("message")
    if isinstance(message, list):
        return "; ".join(str(part) for part in message) or None
    return str(message) if message else None
