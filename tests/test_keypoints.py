"""Tests for groupsim/keypoints.py."""

from groupsim.keypoints import KeyPointTracker, extract_key_points
from tests.conftest import SAMPLE_TOPIC


def test_extract_from_task_section():
    assert extract_key_points(SAMPLE_TOPIC) == [
        "分析增长放缓的原因",
        "提出三个月内的拉新方案",
        "设计衡量效果的指标",
    ]


def test_extract_inline_items_with_ideographic_comma():
    text = "【背景】略\n【核心问题】1、降低成本 2、提升效率 3、保证质量\n【要求】无"
    assert extract_key_points(text) == ["降低成本", "提升效率", "保证质量"]


def test_extract_circled_numbers():
    assert extract_key_points("【讨论要点】①用户 ②渠道 ③预算") == ["用户", "渠道", "预算"]


def test_extract_latin_header():
    text = "Background: a retail chain.\nCore points:\n1. Pricing\n2. Channels\nRequirements:\nFinish in 20 minutes."
    assert extract_key_points(text) == ["Pricing", "Channels"]


def test_decimal_numbers_are_not_item_markers():
    text = "【任务】1. 预算控制在1.5万以内 2. 选择渠道"
    assert extract_key_points(text) == ["预算控制在1.5万以内", "选择渠道"]


def test_no_section_yields_no_points():
    assert extract_key_points("讨论一下如何提升用户留存。") == []
    assert extract_key_points("【任务】讨论如何提升留存") == []
    assert extract_key_points("") == []


def test_tracker_advances_on_touch_limit():
    tracker = KeyPointTracker(["a", "b"], touch_limit=3)
    assert not tracker.advance_if_needed("我同意")
    assert not tracker.advance_if_needed("我补充一点")
    assert tracker.advance_if_needed("还有一个细节")
    assert tracker.cursor.current_index == 1
    assert tracker.cursor.touch_count == 0
    assert tracker.current == "b"


def test_tracker_advances_on_forward_guidance():
    tracker = KeyPointTracker(["a", "b"], touch_limit=10)
    assert tracker.advance_if_needed("好，接下来我们讨论第二个问题")
    assert tracker.current == "b"


def test_tracker_stops_after_last_point():
    tracker = KeyPointTracker(["a"], touch_limit=1)
    assert tracker.advance_if_needed("说完了")
    assert tracker.all_discussed
    assert tracker.current is None
    assert not tracker.advance_if_needed("接下来我们讨论下一个问题")
    assert tracker.cursor.current_index == 1


def test_tracker_without_points_is_done():
    tracker = KeyPointTracker([])
    assert tracker.all_discussed
    assert tracker.context() == ""
    assert not tracker.advance_if_needed("接下来讨论下一个问题")


def test_tracker_context():
    tracker = KeyPointTracker(["拉新", "留存"], touch_limit=1)
    assert "（1/2）" in tracker.context()
    assert "拉新" in tracker.context()
    tracker.advance_if_needed("x")
    tracker.advance_if_needed("y")
    assert "均已覆盖" in tracker.context()
