"""Discussion topics: generated by the LLM or read from a markdown file."""

import logging
import re
from dataclasses import dataclass
from pathlib import Path

import frontmatter

from config.config_loader import PromptsConfig
from groupsim.providers.base import AIProvider, ProviderError

logger = logging.getLogger(__name__)

TOPIC_TEMPERATURE = 0.7
TOPIC_FALLBACK = "题目生成失败，请手动输入。"

_MARKDOWN_CHARS = re.compile(r"[*#`>]")


@dataclass
class TopicFile:
    text: str
    job_title: str | None = None
    company: str | None = None


async def generate_topic(provider: AIProvider, prompts: PromptsConfig, company: str, job_title: str) -> str:
    """Ask the LLM for a sectioned group-interview prompt for company and job_title.

    Returns TOPIC_FALLBACK when the call fails or produces nothing usable.
    """
    prompt = prompts.topic.format(company=company, job_title=job_title)
    try:
        completion = await provider.generate(prompt, temperature=TOPIC_TEMPERATURE)
    except ProviderError as exc:
        logger.warning("Topic generation failed: %s", exc)
        return TOPIC_FALLBACK
    text = _MARKDOWN_CHARS.sub("", completion.content).strip()
    return text or TOPIC_FALLBACK


def parse_topic_file(file_path: Path) -> TopicFile:
    """Parse a markdown topic with optional YAML front matter.

    Recognised front matter keys: job_title, company.
    """
    post = frontmatter.load(str(file_path))
    meta = dict(post.metadata)
    job_title = meta.get("job_title")
    company = meta.get("company")
    return TopicFile(
        text=post.content.strip(),
        job_title=str(job_title) if job_title else None,
        company=str(company) if company else None,
    )
