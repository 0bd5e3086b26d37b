"""Load settings.yaml into typed dataclasses. Reports API key availability at startup."""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from groupsim.models import BehaviorRole, Persona

logger = logging.getLogger(__name__)

_SETTINGS_PATH = Path(__file__).parent / "settings.yaml"


@dataclass
class ModelConfig:
    name: str
    sdk: str
    model: str
    api_key_env: str
    timeout_sec: int
    max_tokens: int
    base_url: str | None = None
    temperature: float = 0.8


@dataclass
class PromptsConfig:
    reply: str
    topic: str
    feedback: str
    phase_labels: dict[str, str] = field(default_factory=dict)


@dataclass
class DiscussionConfig:
    max_rounds: int = 25
    chain_probability: float = 0.4
    max_ai_chain: int = 3
    human_reply_weights: dict[int, float] = field(default_factory=lambda: {1: 0.7, 2: 0.3})
    key_point_touch_limit: int = 10
    history_tail: int = 6
    failure_fallback: str | None = None


@dataclass
class TimingConfig:
    """Durations in milliseconds. time_scale multiplies every real sleep."""

    idle_grace_ms: int = 2500
    chain_delay_ms: tuple[int, int] = (1200, 3000)
    guided_chain_delay_ms: tuple[int, int] = (1500, 2500)
    volunteer_pause_ms: int = 2000
    interruption_display_ms: int = 2500
    chars_per_second: float = 2.8
    min_speaking_ms: int = 800
    max_speaking_ms: int = 5000
    summary_multiplier: float = 1.5
    time_scale: float = 1.0

    def seconds(self, ms: float) -> float:
        """Convert a configured duration to a real sleep in seconds."""
        return ms / 1000.0 * self.time_scale


@dataclass
class DefaultsConfig:
    generator: str
    evaluator: str
    output_dir: Path


@dataclass
class AppConfig:
    defaults: DefaultsConfig
    models: dict[str, ModelConfig]
    prompts: PromptsConfig
    personas: list[Persona]
    discussion: DiscussionConfig = field(default_factory=DiscussionConfig)
    timing: TimingConfig = field(default_factory=TimingConfig)
    available_providers: set[str] = field(default_factory=set)


def _range(raw: list | tuple, default: tuple[int, int]) -> tuple[int, int]:
    if not raw:
        return default
    low, high = int(raw[0]), int(raw[1])
    if low > high:
        raise ValueError(f"Invalid delay range: {raw}")
    return low, high


def _load_personas(raw: list[dict]) -> list[Persona]:
    personas: list[Persona] = []
    for entry in raw:
        role_name = str(entry["role"]).upper()
        try:
            role = BehaviorRole(role_name)
        except ValueError as exc:
            raise ValueError(f"Persona {entry.get('id')!r} has unknown role {role_name!r}") from exc
        personas.append(
            Persona(
                id=str(entry["id"]),
                display_name=str(entry["name"]),
                role=role,
                personality=str(entry.get("personality", "")).strip(),
                avatar=str(entry.get("avatar", "")),
                color=str(entry.get("color", "")),
            )
        )
    if len({p.id for p in personas}) != len(personas):
        raise ValueError("Persona ids must be unique")
    return personas


def _load_discussion(raw: dict) -> DiscussionConfig:
    defaults = DiscussionConfig()
    weights_raw = raw.get("human_reply_weights") or defaults.human_reply_weights
    fallback = raw.get("failure_fallback")
    return DiscussionConfig(
        max_rounds=int(raw.get("max_rounds", defaults.max_rounds)),
        chain_probability=float(raw.get("chain_probability", defaults.chain_probability)),
        max_ai_chain=int(raw.get("max_ai_chain", defaults.max_ai_chain)),
        human_reply_weights={int(k): float(v) for k, v in weights_raw.items()},
        key_point_touch_limit=int(raw.get("key_point_touch_limit", defaults.key_point_touch_limit)),
        history_tail=int(raw.get("history_tail", defaults.history_tail)),
        failure_fallback=str(fallback) if fallback else None,
    )


def _load_timing(raw: dict) -> TimingConfig:
    defaults = TimingConfig()
    return TimingConfig(
        idle_grace_ms=int(raw.get("idle_grace_ms", defaults.idle_grace_ms)),
        chain_delay_ms=_range(raw.get("chain_delay_ms"), defaults.chain_delay_ms),
        guided_chain_delay_ms=_range(raw.get("guided_chain_delay_ms"), defaults.guided_chain_delay_ms),
        volunteer_pause_ms=int(raw.get("volunteer_pause_ms", defaults.volunteer_pause_ms)),
        interruption_display_ms=int(raw.get("interruption_display_ms", defaults.interruption_display_ms)),
        chars_per_second=float(raw.get("chars_per_second", defaults.chars_per_second)),
        min_speaking_ms=int(raw.get("min_speaking_ms", defaults.min_speaking_ms)),
        max_speaking_ms=int(raw.get("max_speaking_ms", defaults.max_speaking_ms)),
        summary_multiplier=float(raw.get("summary_multiplier", defaults.summary_multiplier)),
        time_scale=float(raw.get("time_scale", defaults.time_scale)),
    )


def load_config(settings_path: Path = _SETTINGS_PATH) -> AppConfig:
    """Load and validate configuration from settings.yaml.

    Raises FileNotFoundError if settings file missing, ValueError on a bad
    persona or delay range. Logs missing API keys but does not raise; callers
    check available_providers.
    """
    if not settings_path.exists():
        raise FileNotFoundError(f"Settings file not found: {settings_path}")

    with settings_path.open("r", encoding="utf-8") as f:
        raw = yaml.safe_load(f)

    defaults_raw = raw["defaults"]
    defaults = DefaultsConfig(
        generator=str(defaults_raw["generator"]),
        evaluator=str(defaults_raw.get("evaluator", defaults_raw["generator"])),
        output_dir=Path(defaults_raw["output_dir"]),
    )

    prompts_raw = raw["prompts"]
    prompts = PromptsConfig(
        reply=prompts_raw["reply"],
        topic=prompts_raw["topic"],
        feedback=prompts_raw["feedback"],
        phase_labels={str(k): str(v) for k, v in prompts_raw.get("phase_labels", {}).items()},
    )

    personas = _load_personas(raw.get("personas", []))
    if not personas:
        raise ValueError("At least one persona must be configured")

    models: dict[str, ModelConfig] = {}
    available_providers: set[str] = set()

    for provider_name, model_raw in raw["models"].items():
        model_cfg = ModelConfig(
            name=provider_name,
            sdk=model_raw["sdk"],
            model=model_raw["model"],
            api_key_env=model_raw["api_key_env"],
            timeout_sec=int(model_raw["timeout_sec"]),
            max_tokens=int(model_raw["max_tokens"]),
            base_url=model_raw.get("base_url"),
            temperature=float(model_raw.get("temperature", 0.8)),
        )
        models[provider_name] = model_cfg

        api_key = os.environ.get(model_raw["api_key_env"], "").strip()
        if api_key:
            available_providers.add(provider_name)
            logger.info("Provider available: %s", provider_name)
        else:
            logger.info(
                "Provider skipped (no API key): %s, set %s in .env",
                provider_name,
                model_raw["api_key_env"],
            )

    return AppConfig(
        defaults=defaults,
        models=models,
        prompts=prompts,
        personas=personas,
        discussion=_load_discussion(raw.get("discussion") or {}),
        timing=_load_timing(raw.get("timing") or {}),
        available_providers=available_providers,
    )
