"""Provider health checks: ping each API before a discussion starts."""

import asyncio
import logging

from groupsim.providers.base import AIProvider

logger = logging.getLogger(__name__)

_PING_PROMPT = "Reply with the word OK only."
_TIMEOUT_SEC = 15.0


async def _check_one(name: str, provider: AIProvider) -> tuple[str, bool, str]:
    try:
        await asyncio.wait_for(provider.generate(_PING_PROMPT, temperature=0.0), timeout=_TIMEOUT_SEC)
        return name, True, ""
    except Exception as exc:
        logger.debug("Health check failed for %s: %s", name, exc)
        return name, False, str(exc) or type(exc).__name__


async def run_health_checks(providers: dict[str, AIProvider]) -> dict[str, tuple[bool, str]]:
    """Ping the generator and evaluator providers in parallel.

    Returns:
        Dict mapping provider name -> (ok, error_message), "" when ok.
    """
    results = await asyncio.gather(*(_check_one(n, p) for n, p in providers.items()))
    return {name: (ok, err) for name, ok, err in results}
