"""Request models for the nutrition chat API."""

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from nutrition_chat.domain.chat import ChatMessage
from nutrition_chat.domain.nutrition import NutritionData


class ChatRequest(BaseModel):
    """Body of ``POST /api/openai/chat``."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
    )

    message: str = Field(min_length=1)
    nutrition_context: NutritionData | None = None
    conversation_history: list[ChatMessage] | None = None

    @field_validator("conversation_history")
    @classmethod
    def _reject_system_turns(
        cls, value: list[ChatMessage] | None
    ) -> list[ChatMessage] | None:
        if value and any(turn.role == "system" for turn in value):
            raise ValueError("may only contain user and assistant messages")
        return value
