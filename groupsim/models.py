"""Pure dataclasses and enums for the group discussion simulator. No logic, no deps."""

from dataclasses import dataclass, field
from enum import Enum, IntEnum

HUMAN_SPEAKER_ID = "user"
HUMAN_DISPLAY_NAME = "你"


class BehaviorRole(str, Enum):
    AGGRESSIVE = "AGGRESSIVE"
    STRUCTURED = "STRUCTURED"
    DETAIL = "DETAIL"
    DISTRACTOR = "DISTRACTOR"


class TurnKind(str, Enum):
    SYSTEM = "system"
    SPOKEN = "spoken"


class DiscussionPhase(IntEnum):
    """Ordered discussion stages. Comparisons follow discussion order."""

    OPENING = 0
    DEEPENING = 1
    GUIDING_SUMMARY = 2
    FINAL_WRAP_UP = 3


class TurnStage(str, Enum):
    """Lifecycle of the single in-flight AI turn."""

    IDLE = "idle"
    SELECTED = "selected"
    AWAITING_GENERATION = "awaiting_generation"
    SPEAKING = "speaking"
    COMMITTED = "committed"


class SessionStatus(str, Enum):
    DISCUSSING = "DISCUSSING"
    FINISHED = "FINISHED"
    CLOSED = "CLOSED"


@dataclass(frozen=True)
class Persona:
    id: str
    display_name: str
    role: BehaviorRole
    personality: str
    avatar: str = ""
    color: str = ""


@dataclass(frozen=True)
class Turn:
    id: int                # monotonically increasing within a transcript
    speaker_id: str        # HUMAN_SPEAKER_ID or Persona.id
    speaker_name: str
    text: str
    created_at: float      # epoch seconds
    kind: TurnKind = TurnKind.SPOKEN

    @property
    def is_human(self) -> bool:
        return self.speaker_id == HUMAN_SPEAKER_ID


@dataclass
class SummaryFlowState:
    guided: bool = False       # a structured persona invited someone to summarize
    volunteered: bool = False  # someone claimed the summary role
    completed: bool = False    # a long summary turn was posted after volunteering


@dataclass
class KeyPointCursor:
    current_index: int = 0
    touch_count: int = 0


@dataclass(frozen=True)
class InterruptionEvent:
    persona_id: str
    trigger: str           # "submit" or "microphone"
    raised_at: float
    expires_at: float


@dataclass
class Completion:
    provider: str
    model: str
    content: str
    latency_sec: float
    token_count: int | None


@dataclass
class FeedbackReport:
    timing: str
    voice_share: int       # 0-100, always computed locally
    structural_contribution: str
    interruption_handling: str
    overall_score: int
    suggestions: list[str] = field(default_factory=list)
    is_fallback: bool = False


@dataclass
class Evaluation:
    topic: str
    job_title: str
    turns: tuple[Turn, ...]
    voice_share: int
    final_phase: DiscussionPhase
    key_points: tuple[str, ...]
    key_points_done: int
    report: FeedbackReport | None = None
    company: str = ""
