"""Models for chat messages and client-held sessions."""

from typing import Literal

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from nutrition_chat.domain.nutrition import ImageAnalysisResult, NutritionData

Role = Literal["user", "assistant", "system"]


class ChatMessage(BaseModel):
    """Single conversation turn."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        frozen=True,
    )

    role: Role
    content: str
    timestamp: int | None = None

    def to_wire(self) -> dict[str, object]:
        """Return the payload sent over HTTP."""
        return self.model_dump(exclude_none=True)


class ChatSession(BaseModel):
    """One analyzed image plus the conversation that followed it."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        frozen=True,
    )

    id: str
    nutrition_data: NutritionData | None = None
    image_analysis: ImageAnalysisResult | None = None
    messages: tuple[ChatMessage, ...] = ()
    created_at: int
    updated_at: int

    def with_message(self, message: ChatMessage, updated_at: int) -> "ChatSession":
        """Return a copy of the session with one more message appended."""
        return self.model_copy(
            update={
                "messages": (*self.messages, message),
                "updated_at": updated_at,
            }
        )
