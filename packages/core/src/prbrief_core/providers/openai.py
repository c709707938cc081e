from __future__ import annotations

try:
    from openai import OpenAI as _OpenAI
except ImportError:
    _OpenAI = None  # type: ignore[assignment,misc]

from prbrief_core.providers.base import BaseSummarizer


class OpenAISummarizer(BaseSummarizer):
    MODEL = "gpt-4o-mini"
    # Low temperature keeps the JSON shape stable across runs.
    TEMPERATURE = 0.2

    def __init__(self, api_key: str, timeout: float = 120, **retry_options):
        if _OpenAI is None:
            raise ImportError("OpenAISummarizer needs the openai SDK: pip install 'prbrief[openai]'")
        super().__init__(**retry_options)
        self.client = _OpenAI(api_key=api_key, timeout=timeout)

    def _call_api(self, system_prompt: str, user_prompt: str) -> str:
        response = self.client.chat.completions.create(
            model=self.MODEL,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            temperature=self.TEMPERATURE,
            max_tokens=self.MAX_TOKENS,
            response_format={"type": "json_object"},
        )
        return response.choices[0].message.content or ""
