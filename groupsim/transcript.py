"""Append-only transcript log with turn observers."""

import itertools
import logging
import time
from collections.abc import Callable

from groupsim.models import Turn, TurnKind

logger = logging.getLogger(__name__)

TurnObserver = Callable[[Turn], None]


class TranscriptFrozenError(RuntimeError):
    """Raised when appending to a transcript after the session finished."""


class TranscriptStore:
    """Ordered log of turns. Insertion order is chronological and causal order.

    Observers run synchronously after each append, in subscription order.
    """

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._turns: list[Turn] = []
        self._ids = itertools.count(1)
        self._clock = clock
        self._observers: list[TurnObserver] = []
        self._frozen = False

    def subscribe(self, observer: TurnObserver) -> None:
        self._observers.append(observer)

    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> None:
        self._frozen = True

    def append(
        self,
        speaker_id: str,
        speaker_name: str,
        text: str,
        kind: TurnKind = TurnKind.SPOKEN,
    ) -> Turn:
        if self._frozen:
            raise TranscriptFrozenError("Transcript is frozen; the session has finished")
        turn = Turn(
            id=next(self._ids),
            speaker_id=speaker_id,
            speaker_name=speaker_name,
            text=text,
            created_at=self._clock(),
            kind=kind,
        )
        self._turns.append(turn)
        logger.debug("Turn %d appended (%s, %d chars)", turn.id, speaker_id, len(text))
        for observer in self._observers:
            observer(turn)
        return turn

    def all(self) -> tuple[Turn, ...]:
        return tuple(self._turns)

    def spoken(self) -> list[Turn]:
        """Turns said by a participant, without system notices."""
        return [t for t in self._turns if t.kind is TurnKind.SPOKEN]

    def last(self) -> Turn | None:
        return self._turns[-1] if self._turns else None

    def __len__(self) -> int:
        return len(self._turns)
