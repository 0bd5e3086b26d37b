"""OpenAI-compatible chat provider (OpenAI, DeepSeek) using the openai SDK."""

from openai import AsyncOpenAI

from config.config_loader import ModelConfig
from groupsim.providers.base import AIProvider, require_api_key


class OpenAIProvider(AIProvider):
    """Chat completions via AsyncOpenAI; base_url selects DeepSeek or another compatible host."""

    def __init__(self, config: ModelConfig) -> None:
        super().__init__(config)
        api_key = require_api_key(config)
        if config.base_url:
            self._client = AsyncOpenAI(api_key=api_key, base_url=config.base_url)
        else:
            self._client = AsyncOpenAI(api_key=api_key)

    async def _complete(self, prompt: str, temperature: float) -> tuple[str | None, int | None]:
        response = await self._client.chat.completions.create(
            model=self._config.model,
            messages=[{"role": "user", "content": prompt}],
            max_tokens=self._config.max_tokens,
            temperature=temperature,
            stream=False,
        )
        choice = response.choices[0] if response.choices else None
        token_count = response.usage.total_tokens if response.usage else None
        return (choice.message.content if choice else None), token_count
