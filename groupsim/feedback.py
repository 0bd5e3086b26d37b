"""Final evaluation: voice share and the evaluator's structured report."""

import json
import logging
import re
from collections.abc import Sequence

from config.config_loader import PromptsConfig
from groupsim.models import FeedbackReport, Turn, TurnKind
from groupsim.providers.base import AIProvider, ProviderError

logger = logging.getLogger(__name__)

FEEDBACK_TEMPERATURE = 0.3
FALLBACK_SCORE = 60
CANDIDATE_LABEL = "考生"

_FENCE_OPEN = re.compile(r"^```(?:json)?\s*", re.IGNORECASE)
_FENCE_CLOSE = re.compile(r"\s*```$")


def voice_share(turns: Sequence[Turn]) -> int:
    """Percentage of spoken turns that came from the human, 0 for an empty discussion."""
    spoken = [t for t in turns if t.kind is TurnKind.SPOKEN]
    if not spoken:
        return 0
    human = sum(1 for t in spoken if t.is_human)
    return round(100 * human / len(spoken))


def format_transcript(turns: Sequence[Turn]) -> str:
    """Spoken turns as 'name: text' lines, with the human labelled as the candidate."""
    return "\n".join(
        f"{CANDIDATE_LABEL if t.is_human else t.speaker_name}: {t.text}"
        for t in turns
        if t.kind is TurnKind.SPOKEN
    )


def fallback_report(share: int) -> FeedbackReport:
    return FeedbackReport(
        timing="评估过程中未能获取到分析结果。",
        voice_share=share,
        structural_contribution="无法评价结构化贡献。",
        interruption_handling="无法评价抗压表现。",
        overall_score=FALLBACK_SCORE,
        suggestions=["建议再次提交评估或检查网络连接。"],
        is_fallback=True,
    )


def _field(data: dict, snake: str, camel: str):
    return data[snake] if snake in data else data.get(camel)


def parse_feedback_json(raw: str, share: int) -> FeedbackReport:
    """Parse the evaluator's JSON reply. voice_share always comes from share.

    Raises:
        ValueError: If the reply is not JSON or a field has the wrong type.
    """
    cleaned = _FENCE_CLOSE.sub("", _FENCE_OPEN.sub("", raw.strip()))
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Evaluator reply is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise ValueError("Evaluator reply is not a JSON object")

    timing = _field(data, "timing", "timing")
    structural = _field(data, "structural_contribution", "structuralContribution")
    interruption = _field(data, "interruption_handling", "interruptionHandling")
    score = _field(data, "overall_score", "overallScore")
    suggestions = _field(data, "suggestions", "suggestions")

    if not all(isinstance(v, str) for v in (timing, structural, interruption)):
        raise ValueError("timing, structural_contribution and interruption_handling must be strings")
    if isinstance(score, bool) or not isinstance(score, (int, float)):
        raise ValueError("overall_score must be a number")
    if not isinstance(suggestions, list) or not all(isinstance(s, str) for s in suggestions):
        raise ValueError("suggestions must be a list of strings")

    return FeedbackReport(
        timing=timing,
        voice_share=share,
        structural_contribution=structural,
        interruption_handling=interruption,
        overall_score=int(round(min(max(score, 0), 100))),
        suggestions=suggestions,
    )


async def generate_feedback(
    provider: AIProvider,
    prompts: PromptsConfig,
    topic: str,
    job_title: str,
    turns: Sequence[Turn],
) -> FeedbackReport:
    """Ask the evaluator for a report on the human's performance.

    Never raises: provider failures and unusable replies produce the
    fallback report, still carrying the locally computed voice share.
    """
    share = voice_share(turns)
    prompt = prompts.feedback.format(
        job_title=job_title,
        topic=topic,
        transcript=format_transcript(turns),
    )

    logger.info("Requesting feedback via %s", provider.name())
    try:
        completion = await provider.generate(prompt, temperature=FEEDBACK_TEMPERATURE)
        return parse_feedback_json(completion.content, share)
    except ProviderError as exc:
        logger.warning("Feedback generation failed: %s", exc)
    except ValueError as exc:
        logger.warning("Feedback reply unusable: %s", exc)
    return fallback_report(share)
