"""Tolerant extraction of the classification JSON from model output.

Models are asked for raw JSON but regularly wrap it in ```json fences or
a sentence of prose. Each strategy below takes the raw text and returns a
dict or None; parse_classification tries them in order and the first dict
wins.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Callable, Optional

logger = logging.getLogger(__name__)

ParseStrategy = Callable[[str], Optional[dict]]

_FENCE_RE = re.compile(r"```(?:json|JSON)?")


def _load_object(text: str) -> dict | None:
    try:
        value = json.loads(text)
    except (json.JSONDecodeError, TypeError):
        return None
    return value if isinstance(value, dict) else None


def parse_whole(raw: str) -> dict | None:
    """The content is already a bare JSON object."""
    return _load_object(raw.strip())


def parse_braced(raw: str) -> dict | None:
    """Drop code fences, then take everything from the first '{' to the last '}'."""
    cleaned = _FENCE_RE.sub("", raw)
    start = cleaned.find("{")
    end = cleaned.rfind("}")
    if start == -1 or end <= start:
        return None
    return _load_object(cleaned[start : end + 1])


STRATEGIES: tuple[ParseStrategy, ...] = (parse_whole, parse_braced)


def parse_classification(raw: str | None, strategies: tuple[ParseStrategy, ...] = STRATEGIES) -> dict | None:
    if not raw or not raw.strip():
        return None
    for strategy in strategies:
        result = strategy(raw)
        if result is not None:
            return result
    logger.debug("No parse strategy matched response: %s", raw[:200])
    return None


def extract_message_content(body: str) -> str:
    """Pull the assistant message out of an OpenAI-style chat completion envelope.

    Falls back to the body itself when it is not such an envelope; some
    endpoints answer with the bare model text.
    """
    try:
        envelope = json.loads(body)
    except (json.JSONDecodeError, TypeError):
        return body or ""
    if not isinstance(envelope, dict) or not envelope.get("choices"):
        return body
    choices = envelope["choices"]
    choice = choices[0] if isinstance(choices, list) else None
    if not isinstance(choice, dict):
        return body
    message = choice.get("message")
    if not isinstance(message, dict):
        message = {}
    content = message.get("content") or choice.get("text") or ""
    return content if isinstance(content, str) else json.dumps(content)
