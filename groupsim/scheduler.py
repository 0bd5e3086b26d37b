"""Speaker selection with a fairness-shuffled pool, and simulated speaking times."""

import logging
import random
from collections.abc import Mapping, Sequence

from config.config_loader import TimingConfig
from groupsim.heuristics import is_long_form_summary
from groupsim.models import Persona

logger = logging.getLogger(__name__)


class SpeakerScheduler:
    """Deals personas out of a shuffled pool, refilling it when exhausted.

    Every persona speaks once per pool before anyone speaks twice, and the same
    persona is never dealt twice in a row while another choice remains.
    """

    def __init__(self, personas: Sequence[Persona], rng: random.Random | None = None) -> None:
        if not personas:
            raise ValueError("SpeakerScheduler needs at least one persona")
        self._personas = {p.id: p for p in personas}
        self._rng = rng or random.Random()
        self._pool: list[str] = []
        self._last: str | None = None

    @property
    def pool(self) -> tuple[str, ...]:
        return tuple(self._pool)

    def _refill(self) -> None:
        self._pool = list(self._personas)
        self._rng.shuffle(self._pool)
        logger.debug("Speaker pool refilled: %s", self._pool)

    def next_speaker(self, exclude_id: str | None = None) -> Persona:
        if not self._pool:
            self._refill()

        avoid = {exclude_id, self._last}
        index = 0
        if len(self._pool) > 1:
            index = next((i for i, pid in enumerate(self._pool) if pid not in avoid), 0)

        persona_id = self._pool.pop(index)
        self._last = persona_id
        logger.debug("Next speaker %s (excluded %s)", persona_id, exclude_id)
        return self._personas[persona_id]

    def random_persona(self) -> Persona:
        """Uniform pick outside the pool rotation, used for the idle-start turn."""
        persona = self._rng.choice(list(self._personas.values()))
        self._last = persona.id
        return persona


def speaking_duration_ms(text: str, timing: TimingConfig, summary_volunteered: bool = False) -> int:
    """Simulated time to say text aloud, clamped to the configured range.

    Once someone has volunteered to summarize, long or summary-shaped turns
    are stretched by summary_multiplier after clamping.
    """
    raw_ms = len(text) / timing.chars_per_second * 1000
    duration = min(max(raw_ms, timing.min_speaking_ms), timing.max_speaking_ms)
    if summary_volunteered and is_long_form_summary(text):
        duration *= timing.summary_multiplier
    return int(round(duration))


def random_delay_ms(window: tuple[int, int], rng: random.Random) -> float:
    low, high = window
    return rng.uniform(low, high)


def pick_reply_count(weights: Mapping[int, float], rng: random.Random) -> int:
    """Sample how many AI replies follow one human turn."""
    counts = sorted(weights)
    return rng.choices(counts, weights=[weights[c] for c in counts], k=1)[0]
