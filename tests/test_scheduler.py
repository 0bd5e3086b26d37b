"""Tests for groupsim/scheduler.py."""

import random

import pytest

from config.config_loader import TimingConfig
from groupsim.models import BehaviorRole, Persona
from groupsim.scheduler import SpeakerScheduler, pick_reply_count, random_delay_ms, speaking_duration_ms


def test_every_persona_speaks_once_per_pool(sample_personas, rng):
    scheduler = SpeakerScheduler(sample_personas, rng)
    picks = [scheduler.next_speaker().id for _ in sample_personas]
    assert sorted(picks) == sorted(p.id for p in sample_personas)
    assert scheduler.pool == ()


def test_pool_refills_when_exhausted(sample_personas, rng):
    scheduler = SpeakerScheduler(sample_personas, rng)
    for _ in sample_personas:
        scheduler.next_speaker()
    scheduler.next_speaker()
    assert len(scheduler.pool) == len(sample_personas) - 1


def test_excluded_and_previous_speaker_are_avoided(sample_personas):
    scheduler = SpeakerScheduler(sample_personas, random.Random(7))
    previous = None
    for _ in range(40):
        persona = scheduler.next_speaker(exclude_id=previous)
        assert persona.id != previous
        previous = persona.id


def test_single_persona_is_always_chosen():
    solo = Persona("char1", "张强", BehaviorRole.AGGRESSIVE, "")
    scheduler = SpeakerScheduler([solo], random.Random(0))
    assert scheduler.next_speaker(exclude_id="char1") is solo
    assert scheduler.next_speaker(exclude_id="char1") is solo


def test_scheduler_needs_personas():
    with pytest.raises(ValueError):
        SpeakerScheduler([])


def test_random_persona_is_a_member(sample_personas, rng):
    scheduler = SpeakerScheduler(sample_personas, rng)
    assert scheduler.random_persona() in sample_personas


@pytest.mark.parametrize(
    "text, expected",
    [
        ("", 800),
        ("一二三四五六七", 2500),
        ("一二三四五六七八九十一二三四", 5000),
        ("长" * 100, 5000),
    ],
)
def test_speaking_duration_is_clamped(text, expected):
    assert speaking_duration_ms(text, TimingConfig()) == expected


def test_speaking_duration_stretches_summaries_after_volunteering():
    timing = TimingConfig()
    assert speaking_duration_ms("长" * 101, timing, summary_volunteered=True) == 7500
    assert speaking_duration_ms("我来总结", timing, summary_volunteered=True) == 2143
    assert speaking_duration_ms("好的", timing, summary_volunteered=True) == 800
    assert speaking_duration_ms("长" * 101, timing, summary_volunteered=False) == 5000


def test_random_delay_within_window(rng):
    for _ in range(50):
        assert 1200 <= random_delay_ms((1200, 3000), rng) <= 3000


def test_pick_reply_count(rng):
    assert pick_reply_count({2: 1.0}, rng) == 2
    counts = {pick_reply_count({1: 0.7, 2: 0.3}, rng) for _ in range(200)}
    assert counts == {1, 2}
