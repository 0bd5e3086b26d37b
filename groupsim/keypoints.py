"""Key-point extraction from the discussion prompt and coverage tracking."""

import logging
import re
from collections.abc import Sequence

from groupsim.heuristics import is_forward_guidance
from groupsim.models import KeyPointCursor

logger = logging.getLogger(__name__)

DEFAULT_TOUCH_LIMIT = 10

_SECTION_LABELS = ("核心要点", "讨论要点", "核心问题", "要点", "问题", "任务")
_BRACKET_HEADER = re.compile(r"【([^】]+)】")
_LATIN_HEADER = re.compile(r"^[ \t]*(?:core points|key points|problems?|tasks?)[ \t]*[:：]", re.IGNORECASE | re.MULTILINE)
_LATIN_NEXT_HEADER = re.compile(r"^[ \t]*[A-Za-z][A-Za-z ]{0,30}[:：][ \t]*$", re.MULTILINE)
_ITEM_MARKER = re.compile(
    r"(?:^|(?<=\s)|(?<=[。；;:：]))"
    r"(?:\d{1,2}[.、)）](?!\d)|[（(]\d{1,2}[)）]|[①②③④⑤⑥⑦⑧⑨⑩])",
    re.MULTILINE,
)
_ITEM_STRIP = " \t\r\n；;，,。"


def _find_section(prompt_text: str) -> str | None:
    for match in _BRACKET_HEADER.finditer(prompt_text):
        label = match.group(1).strip()
        if any(name in label for name in _SECTION_LABELS):
            body_start = match.end()
            next_header = prompt_text.find("【", body_start)
            return prompt_text[body_start:] if next_header == -1 else prompt_text[body_start:next_header]

    match = _LATIN_HEADER.search(prompt_text)
    if match:
        body = prompt_text[match.end():]
        cut = len(body)
        next_header = _LATIN_NEXT_HEADER.search(body)
        if next_header:
            cut = next_header.start()
        bracket = body.find("【")
        if bracket != -1:
            cut = min(cut, bracket)
        return body[:cut]
    return None


def extract_key_points(prompt_text: str) -> list[str]:
    """Return the numbered items of the prompt's core-points/problem section.

    Returns an empty list when no labelled section with a numbered list exists.
    """
    section = _find_section(prompt_text or "")
    if section is None:
        return []

    markers = list(_ITEM_MARKER.finditer(section))
    points: list[str] = []
    for i, marker in enumerate(markers):
        end = markers[i + 1].start() if i + 1 < len(markers) else len(section)
        item = section[marker.end():end].strip(_ITEM_STRIP)
        if item:
            points.append(item)
    return points


class KeyPointTracker:
    """Tracks which extracted key point the discussion is on.

    current_index only moves forward and stops at len(points), which means
    every point has been discussed. With no points the tracker starts done.
    """

    def __init__(self, points: Sequence[str], touch_limit: int = DEFAULT_TOUCH_LIMIT) -> None:
        self._points = tuple(points)
        self._touch_limit = touch_limit
        self.cursor = KeyPointCursor()

    @property
    def points(self) -> tuple[str, ...]:
        return self._points

    @property
    def current(self) -> str | None:
        if self.cursor.current_index < len(self._points):
            return self._points[self.cursor.current_index]
        return None

    @property
    def all_discussed(self) -> bool:
        return self.cursor.current_index >= len(self._points)

    def advance_if_needed(self, turn_text: str) -> bool:
        """Count a touch on the current point and advance on the ceiling or forward guidance.

        Returns True when the cursor moved.
        """
        if self.current is None:
            return False

        self.cursor.touch_count += 1
        if self.cursor.touch_count < self._touch_limit and not is_forward_guidance(turn_text):
            return False

        finished = self.current
        self.cursor.current_index += 1
        self.cursor.touch_count = 0
        logger.info(
            "Key point %d/%d covered: %s",
            self.cursor.current_index,
            len(self._points),
            finished,
        )
        if self.all_discussed:
            logger.info("All key points discussed")
        return True

    def context(self) -> str:
        """One-line description of coverage for generation prompts."""
        if not self._points:
            return ""
        if self.all_discussed:
            return "讨论要点均已覆盖，可以推动总结。"
        return (
            f"当前讨论要点（{self.cursor.current_index + 1}/{len(self._points)}）：{self.current}"
        )
