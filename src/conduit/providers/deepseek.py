"""DeepSeek provider: OpenAI-compatible API on DeepSeek's endpoint."""

from __future__ import annotations

import re

from conduit.providers.openai import OpenAIProvider

_CODE_FENCE = re.compile(r"```json\n?|\n?```")


class DeepSeekProvider(OpenAIProvider):
    """DeepSeek chat provider.

    The model is pinned to ``deepseek-chat`` regardless of the requested id,
    and Markdown JSON fences are stripped from replies.
    """

    name = "deepseek"
    default_model = "deepseek-chat"
    models = ("deepseek-chat",)
    base_url = "https://api.deepseek.com/v1"

    def resolve_model(self, requested: str | None) -> str:
        _ = requested
        return self.default_model

    def _clean_text(self, text: str) -> str:
        if not text:
            return text
        return _CODE_FENCE.sub("", text).strip()
