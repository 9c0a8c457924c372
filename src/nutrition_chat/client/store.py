"""Client-side state machine for a single nutrition chat session.

The store holds at most one session. It moves between four states::

    EMPTY -> ANALYZING -> READY <-> SENDING
      ^________________________________|  (clear_session)

Only the session itself is persisted; the in-flight flags and the error
message always start idle after a reload.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from uuid import uuid4

from nutrition_chat.client.storage import SessionStorage
from nutrition_chat.client.transport import ChatApi
from nutrition_chat.domain.chat import ChatMessage, ChatSession
from nutrition_chat.domain.nutrition import ImageAnalysisResult
from nutrition_chat.errors import NutritionChatError

logger = logging.getLogger(__name__)

NO_SESSION_MESSAGE = "No active session. Please upload an image first."
ANALYSIS_IN_PROGRESS_MESSAGE = "An image is already being analyzed."
SEND_IN_PROGRESS_MESSAGE = "A message is already being sent."


class SessionState(StrEnum):
    """Observable state of the store."""

    EMPTY = "empty"
    ANALYZING = "analyzing"
    READY = "ready"
    SENDING = "sending"


def now_ms() -> int:
    """Return the current time as epoch milliseconds."""
    return int(datetime.now(tz=UTC).timestamp() * 1000)


@dataclass
class NutritionChatStore:
    """Owns the current session and the operations that change it."""

    api: ChatApi
    storage: SessionStorage
    clock: Callable[[], int] = now_ms
    session: ChatSession | None = field(init=False, default=None)
    is_analyzing: bool = field(init=False, default=False)
    is_sending: bool = field(init=False, default=False)
    error: str | None = field(init=False, default=None)
    _generation: int = field(init=False, default=0, repr=False)

    def __post_init__(self) -> None:
        self.session = self.storage.load()

    @property
    def state(self) -> SessionState:
        if self.is_analyzing:
            return SessionState.ANALYZING
        if self.session is None:
            return SessionState.EMPTY
        if self.is_sending:
            return SessionState.SENDING
        return SessionState.READY

    async def upload_and_analyze_image(
        self, content: bytes, filename: str, content_type: str
    ) -> None:
        """Analyze an image and start a new session from the result.

        A second upload while one is in flight is rejected without a network
        call. On failure the error is recorded and the exception re-raised;
        no session is created.
        """
        if self.is_analyzing:
            self.error = ANALYSIS_IN_PROGRESS_MESSAGE
            return

        generation = self._generation
        self.is_analyzing = True
        self.error = None
        try:
            result = await self.api.analyze_image(content, filename, content_type)
        except Exception as exc:
            if generation == self._generation:
                self.is_analyzing = False
                self.error = _error_message(exc, "Failed to analyze image")
            raise

        if generation != self._generation:
            logger.info("Discarding analysis finished after session was cleared")
            return

        now = self.clock()
        self._set_session(
            ChatSession(
                id=f"session-{now}-{uuid4().hex[:8]}",
                nutrition_data=result.nutrition_data,
                image_analysis=result,
                messages=(
                    ChatMessage(
                        role="assistant",
                        content=_analysis_greeting(result),
                        timestamp=now,
                    ),
                ),
                created_at=now,
                updated_at=now,
            )
        )
        self.is_analyzing = False

    async def send_message(self, message: str) -> None:
        """Append ``message`` immediately, then append the assistant reply.

        The user message stays in the history even when the request fails.
        """
        session = self.session
        if session is None:
            self.error = NO_SESSION_MESSAGE
            return
        if self.is_sending:
            self.error = SEND_IN_PROGRESS_MESSAGE
            return

        history = session.messages
        sent_at = self.clock()
        self._set_session(
            session.with_message(
                ChatMessage(role="user", content=message, timestamp=sent_at),
                sent_at,
            )
        )
        self.is_sending = True
        self.error = None

        generation = self._generation
        try:
            reply = await self.api.chat(message, session.nutrition_data, history)
        except Exception as exc:
            if generation == self._generation:
                self.is_sending = False
                self.error = _error_message(exc, "Failed to send message")
            raise

        if generation != self._generation:
            return
        self.is_sending = False
        current = self.session
        if current is None or current.id != session.id:
            logger.info("Dropping reply for a session that was replaced")
            return

        replied_at = self.clock()
        self._set_session(
            current.with_message(
                ChatMessage(role="assistant", content=reply, timestamp=replied_at),
                replied_at,
            )
        )

    def clear_session(self) -> None:
        """Discard the session and reset every flag."""
        self._generation += 1
        self.session = None
        self.error = None
        self.is_analyzing = False
        self.is_sending = False
        self.storage.clear()

    def clear_error(self) -> None:
        self.error = None

    def _set_session(self, session: ChatSession) -> None:
        self.session = session
        self.storage.save(session)


def _analysis_greeting(result: ImageAnalysisResult) -> str:
    """Build the first assistant message for a fresh analysis."""
    if result.is_nutrition_label:
        summary = result.food_recognition or "Ready to answer your questions!"
        return f"I've analyzed the nutrition label. {summary}"
    return (
        f"I've identified this as: {result.food_recognition}. "
        "I can provide estimated nutritional information. "
        "What would you like to know?"
    )


def _error_message(exc: Exception, fallback: str) -> str:
    if isinstance(exc, NutritionChatError):
        return exc.message
    return str(exc) or fallback
