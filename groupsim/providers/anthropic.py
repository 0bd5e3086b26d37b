"""Anthropic Claude provider using anthropic SDK with native async."""

import anthropic as anthropic_sdk

from config.config_loader import ModelConfig
from groupsim.providers.base import AIProvider, require_api_key


class AnthropicProvider(AIProvider):
    """Anthropic Claude provider via anthropic SDK."""

    def __init__(self, config: ModelConfig) -> None:
        super().__init__(config)
        self._client = anthropic_sdk.AsyncAnthropic(api_key=require_api_key(config))

    async def _complete(self, prompt: str, temperature: float) -> tuple[str | None, int | None]:
        response = await self._client.messages.create(
            model=self._config.model,
            max_tokens=self._config.max_tokens,
            temperature=temperature,
            messages=[{"role": "user", "content": prompt}],
        )
        text = "\n".join(b.text for b in response.content or [] if b.type == "text")
        token_count = None
        if response.usage:
            token_count = response.usage.input_tokens + response.usage.output_tokens
        return text, token_count
