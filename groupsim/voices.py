"""Persona reply generation: prompt assembly around the external completion call."""

import logging
import re
from collections.abc import Sequence
from dataclasses import dataclass

from config.config_loader import PromptsConfig
from groupsim.models import DiscussionPhase, Persona, SummaryFlowState, Turn
from groupsim.phase import phase_label
from groupsim.providers.base import AIProvider, ProviderError

logger = logging.getLogger(__name__)

_MARKDOWN_CHARS = re.compile(r"[*#`>]")


@dataclass
class GenerationContext:
    persona: Persona
    topic: str
    job_title: str
    transcript_tail: Sequence[Turn]
    phase: DiscussionPhase
    summary: SummaryFlowState
    key_point_context: str = ""


def _summary_context(summary: SummaryFlowState) -> str:
    if summary.completed:
        return "已经有人完成了总结陈词，请简短认同或补充一个小遗漏。"
    if summary.volunteered:
        return "已经有人自荐做总结，不要再邀请别人总结，也不要重复自荐。"
    if summary.guided:
        return "已有人邀请大家做总结，如果合适你可以自荐总结。"
    return ""


def build_reply_prompt(ctx: GenerationContext, prompts: PromptsConfig) -> str:
    history = "\n".join(f"{t.speaker_name}: {t.text}" for t in ctx.transcript_tail)
    return prompts.reply.format(
        job_title=ctx.job_title,
        topic=ctx.topic,
        phase=phase_label(ctx.phase, prompts.phase_labels),
        persona_name=ctx.persona.display_name,
        persona_role=ctx.persona.role.value,
        persona_personality=ctx.persona.personality,
        key_point_context=ctx.key_point_context,
        summary_context=_summary_context(ctx.summary),
        history=history or "（还没有人发言，由你开场）",
    )


def clean_reply(text: str, persona: Persona) -> str:
    """Drop markdown characters and a leading 'Name:' the model sometimes echoes."""
    cleaned = _MARKDOWN_CHARS.sub("", text).strip()
    for sep in (":", "："):
        prefix = f"{persona.display_name}{sep}"
        if cleaned.startswith(prefix):
            cleaned = cleaned[len(prefix):].strip()
    return cleaned


async def generate_reply(provider: AIProvider, prompts: PromptsConfig, ctx: GenerationContext) -> str:
    """Return the persona's next line.

    Raises:
        ProviderError: On provider failure or a reply that is empty after cleaning.
    """
    prompt = build_reply_prompt(ctx, prompts)
    logger.debug("Reply prompt for %s: %d chars", ctx.persona.id, len(prompt))
    completion = await provider.generate(prompt)
    text = clean_reply(completion.content, ctx.persona)
    if not text:
        raise ProviderError(provider.name(), "Reply empty after cleaning")
    return text
