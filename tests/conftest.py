"""Shared test fixtures."""

import io
import json
from collections.abc import Sequence
from dataclasses import dataclass, field

import pytest
from PIL import Image

from nutrition_chat.client.storage import SessionStorage
from nutrition_chat.client.transport import ChatApi
from nutrition_chat.config import Settings
from nutrition_chat.containers import AppContainer
from nutrition_chat.domain.chat import ChatMessage, ChatSession
from nutrition_chat.domain.nutrition import ImageAnalysisResult, NutritionData
from nutrition_chat.services.chat import ChatService
from nutrition_chat.services.completions import CompletionClient
from nutrition_chat.services.images import ImagePreprocessor
from nutrition_chat.services.vision import VisionService

LABEL_REPLY = json.dumps(
    {
        "isNutritionLabel": True,
        "ocrText": "Nutrition Facts Calories 200",
        "nutritionData": {"servingSize": "1 cup (228g)", "calories": 200},
        "foodRecognition": "Granola cereal",
    }
)


@dataclass
class FakeCompletionClient(CompletionClient):
    """Fake completion client that records requests and returns a fixed reply."""

    reply: str | None = LABEL_REPLY
    error: Exception | None = None
    calls: list[dict[str, object]] = field(default_factory=list)

    async def complete(
        self,
        *,
        model: str,
        messages: list[dict[str, object]],
        max_tokens: int,
        temperature: float,
    ) -> str | None:
        self.calls.append(
            {
                "model": model,
                "messages": messages,
                "max_tokens": max_tokens,
                "temperature": temperature,
            }
        )
        if self.error is not None:
            raise self.error
        return self.reply


@dataclass
class FakeChatApi(ChatApi):
    """Fake server API with scripted results."""

    analysis: ImageAnalysisResult = field(
        default_factory=lambda: ImageAnalysisResult(
            is_nutrition_label=True,
            ocr_text="Nutrition Facts",
            nutrition_data=NutritionData(calories=150, protein="5g"),
            food_recognition="Protein bar",
        )
    )
    reply: str = "It has 5g of protein."
    analyze_error: Exception | None = None
    chat_error: Exception | None = None
    analyze_calls: int = 0
    chat_calls: list[dict[str, object]] = field(default_factory=list)

    async def analyze_image(
        self, content: bytes, filename: str, content_type: str
    ) -> ImageAnalysisResult:
        self.analyze_calls += 1
        if self.analyze_error is not None:
            raise self.analyze_error
        return self.analysis

    async def chat(
        self,
        message: str,
        nutrition_context: NutritionData | None = None,
        conversation_history: Sequence[ChatMessage] | None = None,
    ) -> str:
        self.chat_calls.append(
            {
                "message": message,
                "nutrition_context": nutrition_context,
                "conversation_history": list(conversation_history or ()),
            }
        )
        if self.chat_error is not None:
            raise self.chat_error
        return self.reply


@dataclass
class InMemorySessionStorage(SessionStorage):
    """In-memory session storage for tests."""

    stored: ChatSession | None = None
    saves: int = 0

    def load(self) -> ChatSession | None:
        return self.stored

    def save(self, session: ChatSession) -> None:
        self.stored = session
        self.saves += 1

    def clear(self) -> None:
        self.stored = None


@dataclass
class TickingClock:
    """Deterministic millisecond clock."""

    current: int = 1_700_000_000_000

    def __call__(self) -> int:
        self.current += 1
        return self.current


def make_image_bytes(
    size: tuple[int, int], image_format: str = "PNG", mode: str = "RGB"
) -> bytes:
    color = (200, 30, 30, 128) if mode == "RGBA" else (200, 30, 30)
    buffer = io.BytesIO()
    Image.new(mode, size, color).save(buffer, format=image_format)
    return buffer.getvalue()


@pytest.fixture
def settings() -> Settings:
    return Settings(openai_api_key="openai-key", node_env="test")


@pytest.fixture
def completion_client() -> FakeCompletionClient:
    return FakeCompletionClient()


@pytest.fixture
def container(
    settings: Settings, completion_client: FakeCompletionClient
) -> AppContainer:
    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        image_preprocessor=ImagePreprocessor(),
        vision_service=VisionService(
            client=completion_client, model=settings.openai_model_vision
        ),
        chat_service=ChatService(
            client=completion_client, model=settings.openai_model_chat
        ),
        close_resources=close_resources,
    )
