"""Tests for groupsim/heuristics.py."""

import pytest

from groupsim.heuristics import (
    LONG_TURN_CHARS,
    has_enumeration,
    invites_summary,
    is_forward_guidance,
    is_long_form_summary,
    is_structured_summary,
    is_substantive,
    solicits_summary,
    volunteers_summary,
)
from tests.conftest import LONG_SUMMARY, SUBSTANTIVE_TEXT


def test_substantive_needs_length_and_keyword():
    assert is_substantive(SUBSTANTIVE_TEXT)
    assert not is_substantive("我同意，数据很重要。")
    assert not is_substantive("好的好的" * 15)


@pytest.mark.parametrize(
    "text, expected",
    [
        ("时间差不多了，谁来做个总结？", True),
        ("Who wants to summarize for the group?", True),
        ("我们总结一下", False),
        ("我们继续讨论预算", False),
        ("我们先看一下上季度的数据汇报", False),
        ("The quarterly report shows churn rising.", False),
        ("谁来汇报一下？", False),
    ],
)
def test_solicits_summary(text, expected):
    assert solicits_summary(text) is expected


@pytest.mark.parametrize(
    "text, expected",
    [
        ("那我来总结一下吧", True),
        ("OK, I'll summarize our points.", True),
        ("我来吧，我汇报", True),
        ("你来总结吧", False),
    ],
)
def test_volunteers_summary(text, expected):
    assert volunteers_summary(text) is expected


def test_invites_summary_accepts_wrap_up_cue():
    assert invites_summary("时间差不多了，我们收拢一下做个总结")
    assert invites_summary("谁来总结汇报一下？")
    assert not invites_summary("我们先看一下上季度的数据汇报")
    assert not invites_summary("我们继续讨论预算")


def test_structured_summary_requires_enumeration_and_length():
    assert len(LONG_SUMMARY) > LONG_TURN_CHARS
    assert has_enumeration(LONG_SUMMARY)
    assert is_structured_summary(LONG_SUMMARY)
    assert not is_structured_summary("总结" + "啊" * 120)
    assert not is_structured_summary("总结：首先第一")


def test_long_form_summary():
    assert is_long_form_summary("总结一下")
    assert is_long_form_summary("哈" * (LONG_TURN_CHARS + 1))
    assert not is_long_form_summary("好的")


@pytest.mark.parametrize(
    "text, expected",
    [
        ("好，接下来我们讨论第二个问题", True),
        ("Let's move on to the next point", True),
        ("接下来呢", False),
        ("我同意这个问题", False),
    ],
)
def test_forward_guidance(text, expected):
    assert is_forward_guidance(text) is expected
