"""The per-session state aggregate and its wiring."""

import logging
import random
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

from config.config_loader import DiscussionConfig, TimingConfig
from groupsim.interruption import InterruptionDetector
from groupsim.keypoints import KeyPointTracker, extract_key_points
from groupsim.models import (
    DiscussionPhase,
    Persona,
    SessionStatus,
    SummaryFlowState,
    Turn,
    TurnKind,
    TurnStage,
)
from groupsim.phase import PhaseListener, PhaseTracker
from groupsim.scheduler import SpeakerScheduler
from groupsim.transcript import TranscriptStore

logger = logging.getLogger(__name__)


@dataclass
class SessionState:
    """Everything one discussion owns. Created at session start, dropped at teardown."""

    topic: str
    job_title: str
    personas: tuple[Persona, ...]
    transcript: TranscriptStore
    key_points: KeyPointTracker
    phase: PhaseTracker
    speakers: SpeakerScheduler
    interruptions: InterruptionDetector
    company: str = ""
    summary: SummaryFlowState = field(default_factory=SummaryFlowState)
    round: int = 0
    active_persona_id: str | None = None
    turn_stage: TurnStage = TurnStage.IDLE
    human_acted: bool = False
    voice_draft: str = ""
    status: SessionStatus = SessionStatus.DISCUSSING
    round_limit_noted: bool = False
    phase_history: list[DiscussionPhase] = field(default_factory=list)

    def persona(self, persona_id: str) -> Persona:
        return next(p for p in self.personas if p.id == persona_id)

    def latest_human_turn(self) -> Turn | None:
        return next((t for t in reversed(self.transcript.spoken()) if t.is_human), None)


def new_session_state(
    topic: str,
    job_title: str,
    personas: Sequence[Persona],
    discussion: DiscussionConfig,
    timing: TimingConfig,
    *,
    company: str = "",
    rng: random.Random | None = None,
    clock: Callable[[], float] = time.time,
    monotonic: Callable[[], float] = time.monotonic,
    on_phase_change: PhaseListener | None = None,
) -> SessionState:
    """Build a fresh state and subscribe the trackers to the transcript.

    Key points update before the phase so count-based phase rules see
    current coverage.
    """
    points = extract_key_points(topic)
    if points:
        logger.info("Extracted %d key points from topic", len(points))
    else:
        logger.info("No key-point section found in topic; key-point gating disabled")

    key_points = KeyPointTracker(points, touch_limit=discussion.key_point_touch_limit)
    transcript = TranscriptStore(clock=clock)
    phase = PhaseTracker(points_done=lambda: key_points.all_discussed, on_change=on_phase_change)

    state = SessionState(
        topic=topic,
        job_title=job_title,
        company=company,
        personas=tuple(personas),
        transcript=transcript,
        key_points=key_points,
        phase=phase,
        speakers=SpeakerScheduler(personas, rng),
        interruptions=InterruptionDetector(timing.interruption_display_ms, clock=monotonic),
    )

    def _observe(turn: Turn) -> None:
        if turn.kind is TurnKind.SPOKEN:
            key_points.advance_if_needed(turn.text)
        state.phase_history.append(phase.recompute(transcript.all()))

    transcript.subscribe(_observe)
    return state
