"""Keyword heuristics over turn text.

Every predicate takes plain text and returns a bool so phase rules, summary-flow
updates and key-point advancement can share them and be tested in isolation.
Vocabularies are bilingual; matching is case-insensitive for Latin text.
"""

SUBSTANTIVE_MIN_CHARS = 40
LONG_TURN_CHARS = 100

SUBSTANTIVE_KEYWORDS = (
    "方案", "计划", "规划", "策略", "分析", "数据", "挑战", "风险", "问题",
    "建议", "预算", "执行", "落地", "指标", "优先级",
    "plan", "strategy", "analysis", "analyze", "data", "challenge", "risk",
    "suggest", "proposal", "budget", "priority",
)

SUMMARY_KEYWORDS = (
    "总结", "汇报", "陈述", "综上", "归纳",
    "summary", "summarize", "summarise", "report", "recap",
)

SUMMARIZE_WORDS = (
    "总结", "归纳", "综上",
    "summarize", "summarise", "sum up", "recap",
)

SOLICIT_PARTNERS = (
    "汇报", "谁来", "谁愿意", "谁想", "谁可以", "哪位",
    "report", "who will", "who wants to", "anyone want",
)

VOLUNTEER_PHRASES = (
    "我来总结", "我来做总结", "我来做个总结", "我来汇报", "我来陈述", "我来吧", "我来试试",
    "i'll summarize", "i'll summarise", "i will summarize", "i'll report",
    "i will report", "i'll go", "let me summarize", "let me sum up",
)

WRAP_UP_CUES = ("时间差不多", "时间不多", "快到时间", "收个尾", "running out of time", "wrap up")

ENUMERATION_MARKERS = (
    "首先", "其次", "再次", "第一", "第二", "第三", "最后", "综上", "总的来说", "方面",
    "firstly", "secondly", "first,", "second,", "finally", "in summary",
    "to sum up", "aspects", "overall",
)

TRANSITION_VERBS = (
    "接下来", "下一个", "下一步", "然后讨论", "再来看", "我们再看", "再讨论", "转到", "进入", "过渡到",
    "next", "move on", "moving on", "let's turn", "switch to",
)

DISCUSSION_NOUNS = (
    "问题", "要点", "点", "方面", "议题", "环节", "话题", "部分",
    "point", "topic", "issue", "aspect", "question", "item",
)


def _contains_any(text: str, vocabulary: tuple[str, ...]) -> bool:
    lowered = text.lower()
    return any(word in lowered for word in vocabulary)


def mentions_summary(text: str) -> bool:
    return _contains_any(text, SUMMARY_KEYWORDS)


def is_substantive(text: str) -> bool:
    """A planning/analysis contribution long enough to move past the opening."""
    return len(text) > SUBSTANTIVE_MIN_CHARS and _contains_any(text, SUBSTANTIVE_KEYWORDS)


def solicits_summary(text: str) -> bool:
    """Asks the group who will summarize or report.

    Needs a summarize word proper; "report" on its own is ordinary discussion.
    """
    return _contains_any(text, SUMMARIZE_WORDS) and _contains_any(text, SOLICIT_PARTNERS)


def volunteers_summary(text: str) -> bool:
    """The speaker claims the summary role."""
    return _contains_any(text, VOLUNTEER_PHRASES)


def invites_summary(text: str) -> bool:
    """Guidance toward the summary: an explicit solicitation or a wrap-up cue paired with summary talk."""
    if solicits_summary(text):
        return True
    return mentions_summary(text) and _contains_any(text, WRAP_UP_CUES)


def has_enumeration(text: str) -> bool:
    return _contains_any(text, ENUMERATION_MARKERS)


def is_structured_summary(text: str) -> bool:
    """A delivered summary: summary wording, long, and enumerated."""
    return len(text) > LONG_TURN_CHARS and mentions_summary(text) and has_enumeration(text)


def is_long_form_summary(text: str) -> bool:
    """Used to stretch speaking time once someone has volunteered."""
    return len(text) > LONG_TURN_CHARS or mentions_summary(text)


def is_forward_guidance(text: str) -> bool:
    """Moves the group on to the next sub-topic."""
    return _contains_any(text, TRANSITION_VERBS) and _contains_any(text, DISCUSSION_NOUNS)
