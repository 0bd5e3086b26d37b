"""Shared pytest fixtures."""

import asyncio
import random
from collections.abc import Callable
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from config.config_loader import (
    AppConfig,
    DefaultsConfig,
    DiscussionConfig,
    ModelConfig,
    PromptsConfig,
    TimingConfig,
)
from groupsim.models import BehaviorRole, Completion, Persona
from groupsim.providers.base import AIProvider

SAMPLE_TOPIC = """【背景】某社区团购平台用户增长放缓。
【任务】
1. 分析增长放缓的原因
2. 提出三个月内的拉新方案
3. 设计衡量效果的指标
【要求】30分钟内给出统一结论。"""

SUBSTANTIVE_TEXT = "我觉得我们可以从用户数据和竞争风险两个角度来分析这个问题，先明确目标用户群体，再看预算怎么分配比较合理。"

LONG_SUMMARY = (
    "我来总结一下大家的观点。首先，"
    + "我们认为增长放缓主要来自拉新渠道单一和留存活动不足，" * 3
    + "其次，方案上优先投入社群运营。最后，用次月留存率衡量效果。"
)


@pytest.fixture
def sample_model_config() -> ModelConfig:
    return ModelConfig(
        name="test_model",
        sdk="test",
        model="test-model-1",
        api_key_env="TEST_API_KEY",
        timeout_sec=30,
        max_tokens=1024,
        base_url=None,
    )


@pytest.fixture
def sample_prompts_config() -> PromptsConfig:
    return PromptsConfig(
        reply="[{phase}] {job_title} / {topic}\n{persona_name}: {persona_personality}\n{key_point_context}\n{summary_context}\n{history}",
        topic="Write a prompt for {company} {job_title}",
        feedback="Evaluate {job_title} on {topic}:\n{transcript}",
        phase_labels={
            "OPENING": "开局框架",
            "DEEPENING": "深入讨论",
            "GUIDING_SUMMARY": "总结引导",
            "FINAL_WRAP_UP": "收尾补充",
        },
    )


@pytest.fixture
def sample_personas() -> list[Persona]:
    return [
        Persona("char1", "张强", BehaviorRole.AGGRESSIVE, "强势控场", color="red"),
        Persona("char2", "李雅", BehaviorRole.STRUCTURED, "逻辑枢纽", color="blue"),
        Persona("char3", "王敏", BehaviorRole.DETAIL, "务实执行", color="green"),
        Persona("char4", "赵磊", BehaviorRole.DISTRACTOR, "发散跑题", color="yellow"),
    ]


@pytest.fixture
def fast_timing() -> TimingConfig:
    """Real timings scaled down a thousandfold: a 5s speech takes 5ms."""
    return TimingConfig(time_scale=0.001)


@pytest.fixture
def quiet_discussion() -> DiscussionConfig:
    """No probabilistic chaining and exactly one reply per human turn."""
    return DiscussionConfig(chain_probability=0.0, human_reply_weights={1: 1.0})


@pytest.fixture
def sample_defaults_config(tmp_path: Path) -> DefaultsConfig:
    return DefaultsConfig(generator="mock", evaluator="mock", output_dir=tmp_path / "output")


@pytest.fixture
def sample_app_config(
    sample_defaults_config: DefaultsConfig,
    sample_prompts_config: PromptsConfig,
    sample_personas: list[Persona],
    quiet_discussion: DiscussionConfig,
    fast_timing: TimingConfig,
) -> AppConfig:
    model_cfg = ModelConfig(
        name="deepseek",
        sdk="openai",
        model="deepseek-chat",
        api_key_env="DEEPSEEK_API_KEY",
        timeout_sec=60,
        max_tokens=1024,
        base_url="https://api.deepseek.com/v1",
    )
    return AppConfig(
        defaults=sample_defaults_config,
        models={"deepseek": model_cfg},
        prompts=sample_prompts_config,
        personas=sample_personas,
        discussion=quiet_discussion,
        timing=fast_timing,
        available_providers={"deepseek"},
    )


@pytest.fixture
def rng() -> random.Random:
    return random.Random(1234)


def make_completion(content: str, provider_name: str = "mock") -> Completion:
    return Completion(
        provider=provider_name,
        model="mock-model",
        content=content,
        latency_sec=0.01,
        token_count=10,
    )


class MockProvider(AIProvider):
    """Test double AIProvider.

    Returns the queued replies in order, then response_content for every
    further call.
    """

    def __init__(
        self,
        provider_name: str = "mock",
        response_content: str = "我同意刚才的观点，我们可以再细化一下执行方案。",
        replies: list[str] | None = None,
    ) -> None:
        super().__init__(
            ModelConfig(
                name=provider_name,
                sdk="mock",
                model="mock-model",
                api_key_env="MOCK_API_KEY",
                timeout_sec=5,
                max_tokens=256,
            )
        )
        self._response_content = response_content
        self._replies = list(replies or [])
        # Shadow generate with an AsyncMock that still runs the real base pipeline,
        # so tests can both assert on calls and replace the behavior.
        self.generate = AsyncMock(side_effect=super().generate)  # type: ignore[assignment]

    async def _complete(self, prompt: str, temperature: float) -> tuple[str | None, int | None]:
        content = self._replies.pop(0) if self._replies else self._response_content
        return content, 10


@pytest.fixture
def mock_provider() -> MockProvider:
    return MockProvider()


async def wait_until(predicate: Callable[[], bool], timeout: float = 2.0, interval: float = 0.002) -> None:
    """Poll predicate on the running loop until it holds or timeout passes."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("Condition not met within %.1fs" % timeout)
        await asyncio.sleep(interval)
