"""OpenAI Chat Completions client for vision and chat requests."""

from dataclasses import dataclass

import openai
from openai import AsyncOpenAI

from nutrition_chat.errors import NetworkError, UpstreamError, UpstreamTimeoutError
from nutrition_chat.services.completions import CompletionClient


@dataclass
class OpenAICompletionClient(CompletionClient):
    """Completion client backed by the OpenAI Chat Completions API."""

    client: AsyncOpenAI

    @classmethod
    def create(cls, api_key: str, timeout_seconds: float) -> "OpenAICompletionClient":
        """Create a client with an explicit timeout and no automatic retries."""
        return cls(
            client=AsyncOpenAI(
                api_key=api_key, timeout=timeout_seconds, max_retries=0
            )
        )

    async def complete(
        self,
        *,
        model: str,
        messages: list[dict[str, object]],
        max_tokens: int,
        temperature: float,
    ) -> str | None:
        """Call Chat Completions and return the first choice's content."""
        try:
            response = await self.client.chat.completions.create(
                model=model,
                messages=messages,
                max_tokens=max_tokens,
                temperature=temperature,
            )
        except openai.APITimeoutError as exc:
            raise UpstreamTimeoutError("OpenAI request timed out") from exc
        except openai.APIConnectionError as exc:
            raise NetworkError(f"Could not reach OpenAI: {exc}") from exc
        except openai.APIError as exc:
            raise UpstreamError(exc.message) from exc

        if not response.choices:
            return None
        return response.choices[0].message.content

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.client.close()
