from __future__ import annotations

import requests

from prbrief_core.providers.base import BaseSummarizer
from prbrief_core.providers.parsing import extract_message_content

POLLINATIONS_URL = "https://text.pollinations.ai/openai"


class PollinationsSummarizer(BaseSummarizer):
    """Pollinations' free OpenAI-compatible text endpoint. No API key; the
    referrer query parameter attributes the traffic and selects the rate tier."""

    MODEL = "openai"
    TEMPERATURE = 0.4
    REASONING_EFFORT = "medium"

    def __init__(
        self,
        referrer: str,
        endpoint: str = POLLINATIONS_URL,
        timeout: float = 120,
        session: requests.Session | None = None,
        **retry_options,
    ):
        super().__init__(**retry_options)
        self.referrer = referrer
        self.endpoint = endpoint
        self.timeout = timeout
        self.session = session or requests.Session()

    def _call_api(self, system_prompt: str, user_prompt: str) -> str:
        response = self.session.post(
            self.endpoint,
            params={"referrer": self.referrer},
            json={
                "model": self.MODEL,
                "temperature": self.TEMPERATURE,
                "reasoning_effort": self.REASONING_EFFORT,
                "messages": [
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
            },
            timeout=self.timeout,
        )
        response.raise_for_status()
        return extract_message_content(response.text)
