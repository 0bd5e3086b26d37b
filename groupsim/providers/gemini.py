"""Gemini provider using google-genai SDK with native async."""

from google import genai
from google.genai import types as genai_types

from config.config_loader import ModelConfig
from groupsim.providers.base import AIProvider, require_api_key


class GeminiProvider(AIProvider):
    """Google Gemini provider via google-genai SDK."""

    def __init__(self, config: ModelConfig) -> None:
        super().__init__(config)
        self._client = genai.Client(api_key=require_api_key(config))

    async def _complete(self, prompt: str, temperature: float) -> tuple[str | None, int | None]:
        response = await self._client.aio.models.generate_content(
            model=self._config.model,
            contents=prompt,
            config=genai_types.GenerateContentConfig(
                max_output_tokens=self._config.max_tokens,
                temperature=temperature,
            ),
        )
        usage = response.usage_metadata
        return response.text, (usage.total_token_count if usage else None)
