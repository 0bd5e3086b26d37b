"""Tests for groupsim/phase.py."""

from groupsim.models import HUMAN_SPEAKER_ID, DiscussionPhase, Turn, TurnKind
from groupsim.phase import PhaseTracker
from tests.conftest import LONG_SUMMARY
from tests.conftest import SUBSTANTIVE_TEXT as SUBSTANTIVE

SPEAKERS = ["char1", "char2", "char3", HUMAN_SPEAKER_ID]


def _turns(*texts: str, kind: TurnKind = TurnKind.SPOKEN) -> list[Turn]:
    return [
        Turn(i + 1, SPEAKERS[i % len(SPEAKERS)], "name", text, float(i), kind)
        for i, text in enumerate(texts)
    ]


def test_starts_in_opening():
    assert PhaseTracker().phase is DiscussionPhase.OPENING


def test_opening_needs_three_turns_and_substance():
    tracker = PhaseTracker()
    assert tracker.recompute(_turns("大家好", SUBSTANTIVE)) is DiscussionPhase.OPENING
    assert tracker.recompute(_turns("大家好", "我同意", "好的")) is DiscussionPhase.OPENING
    assert tracker.recompute(_turns("大家好", SUBSTANTIVE, "好的")) is DiscussionPhase.DEEPENING


def test_system_turns_do_not_count():
    tracker = PhaseTracker()
    assert tracker.recompute(_turns(SUBSTANTIVE, SUBSTANTIVE, SUBSTANTIVE, kind=TurnKind.SYSTEM)) is DiscussionPhase.OPENING


def test_solicitation_moves_to_guiding_summary():
    tracker = PhaseTracker(points_done=lambda: False)
    turns = _turns("大家好", SUBSTANTIVE, "好的", "时间差不多了，谁来做个总结？")
    # Several rules may fire on one recompute
    assert tracker.recompute(turns) is DiscussionPhase.GUIDING_SUMMARY


def test_turn_count_rule_waits_for_key_points():
    turns = _turns(*["我补充一点看法"] * 9, SUBSTANTIVE)
    assert PhaseTracker(points_done=lambda: False).recompute(turns) is DiscussionPhase.DEEPENING
    assert PhaseTracker(points_done=lambda: True).recompute(turns) is DiscussionPhase.GUIDING_SUMMARY


def test_structured_summary_moves_to_final():
    tracker = PhaseTracker()
    turns = _turns("大家好", SUBSTANTIVE, "好的", "谁来总结汇报一下？", LONG_SUMMARY)
    assert tracker.recompute(turns) is DiscussionPhase.FINAL_WRAP_UP


def test_phase_never_regresses():
    tracker = PhaseTracker()
    tracker.recompute(_turns("大家好", SUBSTANTIVE, "好的"))
    assert tracker.phase is DiscussionPhase.DEEPENING
    assert tracker.recompute(_turns("大家好")) is DiscussionPhase.DEEPENING


def test_empty_transcript_resets_to_opening():
    tracker = PhaseTracker()
    tracker.recompute(_turns("大家好", SUBSTANTIVE, "好的"))
    assert tracker.recompute([]) is DiscussionPhase.OPENING


def test_on_change_reports_transitions():
    changes = []
    tracker = PhaseTracker(on_change=lambda old, new: changes.append((old, new)))
    tracker.recompute(_turns("大家好"))
    tracker.recompute(_turns("大家好", SUBSTANTIVE, "好的"))
    assert changes == [(DiscussionPhase.OPENING, DiscussionPhase.DEEPENING)]


def test_custom_rules_replace_defaults():
    tracker = PhaseTracker(rules={DiscussionPhase.OPENING: lambda recent, history, done: True})
    assert tracker.recompute(_turns("hi")) is DiscussionPhase.DEEPENING


def test_report_mention_does_not_start_summary():
    tracker = PhaseTracker()
    tracker.recompute(_turns("大家好", SUBSTANTIVE, "我同意"))
    assert tracker.phase is DiscussionPhase.DEEPENING
    for line in ("The quarterly report shows churn rising.", "我们先看一下上季度的数据汇报"):
        assert tracker.recompute(_turns("大家好", SUBSTANTIVE, "我同意", line)) is DiscussionPhase.DEEPENING
