"""Client-local persistence for the current chat session."""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from nutrition_chat.domain.chat import ChatSession

logger = logging.getLogger(__name__)

STORAGE_NAMESPACE = "nutrition-chat-storage"


class SessionStorage(Protocol):
    """Persistence interface for the single current session."""

    def load(self) -> ChatSession | None:
        """Return the stored session, if any."""

    def save(self, session: ChatSession) -> None:
        """Replace the stored session."""

    def clear(self) -> None:
        """Remove the stored session."""


@dataclass
class JsonFileSessionStorage(SessionStorage):
    """Stores the session as JSON in ``<directory>/<namespace>.json``."""

    directory: Path
    namespace: str = STORAGE_NAMESPACE

    @property
    def path(self) -> Path:
        return self.directory / f"{self.namespace}.json"

    def load(self) -> ChatSession | None:
        """Read the stored session; unreadable content loads as nothing."""
        if not self.path.exists():
            return None
        try:
            payload = json.loads(self.path.read_text(encoding="utf-8"))
            raw_session = payload.get("session") if isinstance(payload, dict) else None
            if raw_session is None:
                return None
            return ChatSession.model_validate(raw_session)
        except (OSError, ValueError):
            logger.warning(
                "Ignoring unreadable stored session", extra={"path": str(self.path)}
            )
            return None

    def save(self, session: ChatSession) -> None:
        """Write the session, replacing any previous one."""
        self.directory.mkdir(parents=True, exist_ok=True)
        payload = {"session": session.model_dump(by_alias=True, mode="json")}
        self.path.write_text(json.dumps(payload), encoding="utf-8")

    def clear(self) -> None:
        """Delete the stored session file."""
        self.path.unlink(missing_ok=True)
