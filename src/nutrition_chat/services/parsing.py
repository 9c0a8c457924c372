"""Best-effort recovery of a JSON object from free-form model output.

Vision replies are prose that should contain one JSON object, sometimes
wrapped in markdown fences or followed by commentary. Extraction is a
heuristic over text, not a real parser, so it sits behind
:class:`ResponseParser` and can be swapped for a provider mode that returns
structured output natively.
"""

import json
from dataclasses import dataclass
from typing import Protocol

from nutrition_chat.errors import UpstreamFormatError

PARSE_FAILURE_MESSAGE = "Failed to parse JSON from OpenAI response"


class ResponseParser(Protocol):
    """Turn raw model text into a JSON object."""

    def parse(self, text: str) -> dict[str, object]:
        """Return the decoded object or raise UpstreamFormatError."""


@dataclass(frozen=True)
class BraceSpanParser(ResponseParser):
    """Decode the first balanced ``{...}`` span found in the text."""

    def parse(self, text: str) -> dict[str, object]:
        """Locate the first balanced object span and decode it."""
        span = find_object_span(text)
        if span is None:
            raise UpstreamFormatError(PARSE_FAILURE_MESSAGE)
        try:
            payload = json.loads(span)
        except json.JSONDecodeError as exc:
            raise UpstreamFormatError(PARSE_FAILURE_MESSAGE) from exc
        if not isinstance(payload, dict):
            raise UpstreamFormatError(PARSE_FAILURE_MESSAGE)
        return payload


def find_object_span(text: str) -> str | None:
    """Return the first balanced brace span in ``text``, if any.

    Braces inside JSON string literals are skipped so values such as
    ``"ocrText": "{see label}"`` do not end the span early.
    """
    start = text.find("{")
    if start == -1:
        return None

    depth = 0
    in_string = False
    escaped = False
    for index in range(start, len(text)):
        char = text[index]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"':
            in_string = True
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return text[start : index + 1]
    return None
