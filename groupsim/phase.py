"""Forward-only discussion phase progression inferred from the transcript."""

import logging
from collections.abc import Callable, Mapping, Sequence

from groupsim.heuristics import is_structured_summary, is_substantive, solicits_summary, volunteers_summary
from groupsim.models import DiscussionPhase, Turn, TurnKind

logger = logging.getLogger(__name__)

RECENT_WINDOW = 8
MIN_TURNS_TO_DEEPEN = 3
MIN_TURNS_TO_GUIDE = 10
MIN_SPEAKERS_TO_GUIDE = 3

# (recent spoken turns, all spoken turns, all key points discussed) -> fire?
PhaseRule = Callable[[Sequence[Turn], Sequence[Turn], bool], bool]
PhaseListener = Callable[[DiscussionPhase, DiscussionPhase], None]


def opening_to_deepening(recent: Sequence[Turn], history: Sequence[Turn], points_done: bool) -> bool:
    return len(history) >= MIN_TURNS_TO_DEEPEN and any(is_substantive(t.text) for t in recent)


def deepening_to_guiding(recent: Sequence[Turn], history: Sequence[Turn], points_done: bool) -> bool:
    if any(solicits_summary(t.text) or volunteers_summary(t.text) for t in history):
        return True
    speakers = {t.speaker_id for t in history}
    return len(history) >= MIN_TURNS_TO_GUIDE and len(speakers) >= MIN_SPEAKERS_TO_GUIDE and points_done


def guiding_to_final(recent: Sequence[Turn], history: Sequence[Turn], points_done: bool) -> bool:
    return any(is_structured_summary(t.text) for t in history)


DEFAULT_RULES: dict[DiscussionPhase, PhaseRule] = {
    DiscussionPhase.OPENING: opening_to_deepening,
    DiscussionPhase.DEEPENING: deepening_to_guiding,
    DiscussionPhase.GUIDING_SUMMARY: guiding_to_final,
}


def phase_label(phase: DiscussionPhase, labels: Mapping[str, str]) -> str:
    """Display name for a phase from the configured labels, falling back to the enum name."""
    return labels.get(phase.name, phase.name)


class PhaseTracker:
    """Holds the current phase and moves it forward after each append.

    A rule keyed by a phase decides whether to leave that phase. Several rules
    may fire in sequence on one recompute; FINAL_WRAP_UP has no rule.
    """

    def __init__(
        self,
        points_done: Callable[[], bool] = lambda: True,
        rules: Mapping[DiscussionPhase, PhaseRule] | None = None,
        on_change: PhaseListener | None = None,
    ) -> None:
        self._phase = DiscussionPhase.OPENING
        self._points_done = points_done
        self._rules = dict(DEFAULT_RULES if rules is None else rules)
        self._on_change = on_change

    @property
    def phase(self) -> DiscussionPhase:
        return self._phase

    def recompute(self, turns: Sequence[Turn]) -> DiscussionPhase:
        history = [t for t in turns if t.kind is TurnKind.SPOKEN]
        if not turns:
            self._phase = DiscussionPhase.OPENING
            return self._phase

        recent = history[-RECENT_WINDOW:]
        points_done = self._points_done()
        start = self._phase
        while True:
            rule = self._rules.get(self._phase)
            if rule is None or not rule(recent, history, points_done):
                break
            self._phase = DiscussionPhase(self._phase + 1)

        if self._phase != start:
            logger.info("Phase %s -> %s after %d turns", start.name, self._phase.name, len(history))
            if self._on_change:
                self._on_change(start, self._phase)
        return self._phase
