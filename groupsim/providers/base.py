"""Abstract base for the LLM text-completion services that voice personas.

Subclasses only send the request. Timeouts, error wrapping, empty-reply
checks and the Completion record are handled here for every SDK.
"""

import asyncio
import logging
import os
import time
from abc import ABC, abstractmethod

from config.config_loader import ModelConfig
from groupsim.models import Completion

logger = logging.getLogger(__name__)


class ProviderError(Exception):
    """Raised when a provider call fails."""

    def __init__(self, provider_name: str, message: str) -> None:
        self.provider_name = provider_name
        super().__init__(f"[{provider_name}] {message}")


def require_api_key(config: ModelConfig) -> str:
    """Read the provider's API key from the environment.

    Raises:
        ProviderError: If the variable is unset or blank.
    """
    api_key = os.environ.get(config.api_key_env, "").strip()
    if not api_key:
        raise ProviderError(config.name, f"Missing API key: {config.api_key_env}")
    return api_key


class AIProvider(ABC):
    """Prompt text in, reply text out, or ProviderError."""

    def __init__(self, config: ModelConfig) -> None:
        self._config = config

    def name(self) -> str:
        """Return the configured provider name (e.g. 'deepseek', 'gemini')."""
        return self._config.name

    def model_string(self) -> str:
        """Return the actual model identifier string."""
        return self._config.model

    @abstractmethod
    async def _complete(self, prompt: str, temperature: float) -> tuple[str | None, int | None]:
        """Send one request. Returns the raw reply text and total token count."""
        ...

    async def generate(self, prompt: str, temperature: float | None = None) -> Completion:
        """Complete the given prompt.

        Args:
            prompt: The full prompt text to send.
            temperature: Sampling temperature; None uses the configured default.

        Returns:
            Completion with the stripped reply text and call metadata.

        Raises:
            ProviderError: On API failure, timeout, or empty reply.
        """
        cfg = self._config
        start = time.monotonic()
        try:
            text, token_count = await asyncio.wait_for(
                self._complete(prompt, cfg.temperature if temperature is None else temperature),
                timeout=cfg.timeout_sec,
            )
        except ProviderError:
            raise
        except TimeoutError as exc:
            raise ProviderError(cfg.name, f"Request timed out after {cfg.timeout_sec}s") from exc
        except Exception as exc:
            raise ProviderError(cfg.name, f"API call failed: {exc}") from exc

        latency = time.monotonic() - start
        content = (text or "").strip()
        if not content:
            raise ProviderError(cfg.name, "Empty response content")

        logger.debug("%s completion: %.2fs, %s tokens", cfg.name, latency, token_count)

        return Completion(
            provider=cfg.name,
            model=cfg.model,
            content=content,
            latency_sec=latency,
            token_count=token_count,
        )
