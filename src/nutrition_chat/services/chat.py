"""Conversational follow-up grounded in extracted nutrition data."""

import json
import logging
from collections.abc import Sequence
from dataclasses import dataclass

from nutrition_chat.domain.chat import ChatMessage
from nutrition_chat.domain.nutrition import NutritionData
from nutrition_chat.errors import UpstreamEmptyError
from nutrition_chat.services.completions import CompletionClient

logger = logging.getLogger(__name__)

CHAT_MAX_TOKENS = 800
CHAT_TEMPERATURE = 0.7

FDA_LABEL_GUIDE_URL = (
    "https://www.fda.gov/food/nutrition-facts-label/"
    "how-understand-and-use-nutrition-facts-label"
)


@dataclass
class ChatService:
    """Answers questions about the nutrition data of the current session."""

    client: CompletionClient
    model: str

    async def reply(
        self,
        message: str,
        nutrition_context: NutritionData | None = None,
        conversation_history: Sequence[ChatMessage] | None = None,
    ) -> str:
        """Return the assistant reply to ``message``."""
        logger.info(
            "Processing chat message",
            extra={
                "has_context": nutrition_context is not None,
                "history_length": len(conversation_history or ()),
            },
        )
        reply = await self.client.complete(
            model=self.model,
            messages=build_chat_messages(
                message, nutrition_context, conversation_history
            ),
            max_tokens=CHAT_MAX_TOKENS,
            temperature=CHAT_TEMPERATURE,
        )
        if not reply:
            raise UpstreamEmptyError("No reply in OpenAI response")
        return reply


def build_system_prompt(nutrition_context: NutritionData | None) -> str:
    """Build the persona prompt, embedding nutrition data when available."""
    context_block = ""
    if nutrition_context is not None:
        serialized = json.dumps(nutrition_context.to_wire(), indent=2)
        context_block = f"Current Nutrition Data Available:\n{serialized}\n"

    return f"""You are a nutrition expert assistant helping users understand nutrition facts labels according to FDA standards ({FDA_LABEL_GUIDE_URL}).

{context_block}
Your responsibilities:
- Provide accurate, helpful answers about nutritional content
- Explain nutrition facts in simple terms
- Reference the FDA Nutrition Facts Label guidelines
- Explain % Daily Values (based on 2,000 calorie diet)
- Offer healthy eating advice when appropriate
- Be concise but informative

When nutrition data is available, always reference it in your answers."""  # noqa: E501


def build_chat_messages(
    message: str,
    nutrition_context: NutritionData | None = None,
    conversation_history: Sequence[ChatMessage] | None = None,
) -> list[dict[str, object]]:
    """Build system prompt, prior turns in order, then the new user turn."""
    messages: list[dict[str, object]] = [
        {"role": "system", "content": build_system_prompt(nutrition_context)}
    ]
    messages.extend(
        {"role": turn.role, "content": turn.content}
        for turn in conversation_history or ()
    )
    messages.append({"role": "user", "content": message})
    return messages
