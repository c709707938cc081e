from __future__ import annotations

from prbrief_core.providers.base import BaseSummarizer

# Prefilled start of the assistant turn; Claude continues the JSON object
# instead of opening with prose.
_PREFILL = "{"


class AnthropicSummarizer(BaseSummarizer):
    MODEL = "claude-3-5-haiku-latest"
    TEMPERATURE = 0.3

    def __init__(self, api_key: str, timeout: float = 120, **retry_options):
        try:
            import anthropic
        except ImportError:
            raise ImportError(
                "AnthropicSummarizer needs the anthropic SDK: pip install 'prbrief[anthropic]'"
            )
        super().__init__(**retry_options)
        self.client = anthropic.Anthropic(api_key=api_key, timeout=timeout)

    def _call_api(self, system_prompt: str, user_prompt: str) -> str:
        message = self.client.messages.create(
            model=self.MODEL,
            max_tokens=self.MAX_TOKENS,
            temperature=self.TEMPERATURE,
            system=system_prompt,
            messages=[
                {"role": "user", "content": user_prompt},
                {"role": "assistant", "content": _PREFILL},
            ],
        )
        text = "".join(getattr(block, "text", "") for block in message.content if block.type == "text")
        return _PREFILL + text if text else ""
