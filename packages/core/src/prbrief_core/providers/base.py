"""Base summarizer implementing the Template Method pattern.

All providers share the same classification algorithm:
    summarize() → _build_system_prompt() + diff text
                → _call_with_retry() → _call_api()   ← only this differs per provider
                → parse_classification() → ClassificationRecord

Subclasses implement two things only:
  - __init__: validate and store the client, then call super().__init__
  - _call_api: make one raw API call and return the model's text

Retries are driven by *parse* success, not just transport success: an
answer we cannot read is as useless as a timeout, so both consume one
attempt and both are followed by the same fixed delay.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod

from prbrief_cache.models import ClassificationRecord
from prbrief_core.providers.parsing import parse_classification

logger = logging.getLogger(__name__)

# Shared defaults — overridable per instance from config.
_MAX_ATTEMPTS = 4
_RETRY_DELAY = 20
_MAX_TOKENS = 1024

SYSTEM_PROMPT = """You are a senior developer reviewing a pull request diff.
Reply ONLY with raw JSON. No Markdown, no code fences, no text before or after.

Produce one JSON object with exactly these keys:
  "summary": string — two to four sentences describing what the change does,
  "breaking_change": boolean — true if the change breaks an API, schema or config contract,
  "risk": "low" | "medium" | "high",
  "notes": string — anything a reviewer should double-check, or an empty string.
Nothing else."""


class BaseSummarizer(ABC):
    MAX_TOKENS: int = _MAX_TOKENS

    def __init__(self, max_attempts: int = _MAX_ATTEMPTS, retry_delay: float = _RETRY_DELAY):
        self.max_attempts = max_attempts
        self.retry_delay = retry_delay

    # ------------------------------------------------------------------ #
    # Public interface                                                     #
    # ------------------------------------------------------------------ #

    def summarize(self, diff_text: str) -> ClassificationRecord | None:
        """Classify one diff, or return None when no attempt produced usable JSON.

        None is the signal for the caller to fall back to heuristics.
        """
        payload = self._call_with_retry(self._build_system_prompt(), diff_text)
        if payload is None:
            return None
        return ClassificationRecord.from_dict(payload)

    # ------------------------------------------------------------------ #
    # Abstract — implement in each provider                               #
    # ------------------------------------------------------------------ #

    @abstractmethod
    def _call_api(self, system_prompt: str, user_prompt: str) -> str:
        """Make a single API call and return the model's raw text.

        Should raise on transport failure; _call_with_retry turns that into
        an empty answer and moves on to the next attempt.
        """

    # ------------------------------------------------------------------ #
    # Shared implementations                                               #
    # ------------------------------------------------------------------ #

    def _call_with_retry(self, system_prompt: str, user_prompt: str) -> dict | None:
        name = self.__class__.__name__
        for attempt in range(1, self.max_attempts + 1):
            logger.info("%s attempt %d/%d", name, attempt, self.max_attempts)
            try:
                raw = self._call_api(system_prompt, user_prompt)
            except Exception as e:
                logger.warning("%s API error (attempt %d/%d): %s", name, attempt, self.max_attempts, e)
                raw = ""

            payload = parse_classification(raw)
            if payload is not None:
                return payload

            if attempt < self.max_attempts:
                logger.warning("%s: no valid JSON yet. Waiting %ss...", name, self.retry_delay)
                time.sleep(self.retry_delay)

        logger.error("%s returned no usable response after %d attempts", name, self.max_attempts)
        return None

    def _build_system_prompt(self) -> str:
        return SYSTEM_PROMPT
