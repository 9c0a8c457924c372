"""Interface for the external chat completion provider."""

from typing import Protocol


class CompletionClient(Protocol):
    """Send a list of chat messages and receive the reply text."""

    async def complete(
        self,
        *,
        model: str,
        messages: list[dict[str, object]],
        max_tokens: int,
        temperature: float,
    ) -> str | None:
        """Return the first choice's content, or None when there is none."""
