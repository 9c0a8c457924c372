"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from nutrition_chat.adapters.openai_completion_client import OpenAICompletionClient
from nutrition_chat.config import Settings
from nutrition_chat.services.chat import ChatService
from nutrition_chat.services.images import ImagePreprocessor
from nutrition_chat.services.vision import VisionService


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    image_preprocessor: ImagePreprocessor
    vision_service: VisionService
    chat_service: ChatService
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    completion_client = OpenAICompletionClient.create(
        api_key=resolved_settings.openai_api_key,
        timeout_seconds=resolved_settings.openai_timeout_seconds,
    )
    vision_service = VisionService(
        client=completion_client,
        model=resolved_settings.openai_model_vision,
    )
    chat_service = ChatService(
        client=completion_client,
        model=resolved_settings.openai_model_chat,
    )

    async def close_resources() -> None:
        await completion_client.close()

    return AppContainer(
        settings=resolved_settings,
        image_preprocessor=ImagePreprocessor(),
        vision_service=vision_service,
        chat_service=chat_service,
        close_resources=close_resources,
    )
