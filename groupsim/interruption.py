"""Detects human input that talks over a persona mid-delivery."""

import logging
import time
from collections.abc import Callable

from groupsim.models import InterruptionEvent

logger = logging.getLogger(__name__)

DEFAULT_DISPLAY_MS = 2500

TRIGGER_SUBMIT = "submit"
TRIGGER_MICROPHONE = "microphone"


class InterruptionDetector:
    """Raises an InterruptionEvent when a human acts while a persona is speaking.

    Both typed submission and microphone activation count. The event is purely
    observational and expires after display_ms.
    """

    def __init__(
        self,
        display_ms: int = DEFAULT_DISPLAY_MS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._display_sec = display_ms / 1000.0
        self._clock = clock
        self._event: InterruptionEvent | None = None
        self.count = 0

    def check(self, active_persona_id: str | None, trigger: str) -> InterruptionEvent | None:
        if active_persona_id is None:
            return None
        now = self._clock()
        self._event = InterruptionEvent(
            persona_id=active_persona_id,
            trigger=trigger,
            raised_at=now,
            expires_at=now + self._display_sec,
        )
        self.count += 1
        logger.info("Interruption: human %s while %s was speaking", trigger, active_persona_id)
        return self._event

    @property
    def current(self) -> InterruptionEvent | None:
        """The live event, or None once its display time has passed."""
        if self._event is not None and self._clock() >= self._event.expires_at:
            self._event = None
        return self._event
