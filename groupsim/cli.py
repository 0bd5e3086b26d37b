"""Click CLI: config loading, provider selection, topic setup and the interactive discussion."""

import asyncio
import logging
import random
import sys
from pathlib import Path

import click
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from config.config_loader import AppConfig, load_config
from groupsim.healthcheck import run_health_checks
from groupsim.models import DiscussionPhase, InterruptionEvent, Persona, Turn
from groupsim.output import (
    print_feedback,
    print_interruption,
    print_phase_change,
    print_session_header,
    print_speaking,
    print_turn,
    save_to_file,
)
from groupsim.providers.anthropic import AnthropicProvider
from groupsim.providers.base import AIProvider, ProviderError
from groupsim.providers.gemini import GeminiProvider
from groupsim.providers.openai_provider import OpenAIProvider
from groupsim.session import DiscussionSession, SessionListener, start_session
from groupsim.topics import TOPIC_FALLBACK, generate_topic, parse_topic_file

logger = logging.getLogger(__name__)

console = Console(legacy_windows=False)

PROVIDER_CLASSES: dict[str, type[AIProvider]] = {
    "openai": OpenAIProvider,
    "google-genai": GeminiProvider,
    "anthropic": AnthropicProvider,
}


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False, console=console)],
    )


def _build_provider(config: AppConfig, name: str) -> AIProvider:
    """Instantiate the configured provider called name.

    Raises:
        ProviderError: If the name is unknown, its SDK unsupported, or its API key missing.
    """
    if name not in config.models:
        raise ProviderError(name, "Not configured in settings.yaml")
    model_cfg = config.models[name]
    provider_cls = PROVIDER_CLASSES.get(model_cfg.sdk)
    if provider_cls is None:
        raise ProviderError(name, f"Unsupported sdk '{model_cfg.sdk}'")
    return provider_cls(model_cfg)


def _check_providers(providers: dict[str, AIProvider]) -> None:
    """Ping providers and exit if any fails, unless the user wants to go on anyway."""
    console.print("\n[bold]Checking providers...[/bold]")
    results = asyncio.run(run_health_checks(providers))
    failed = []
    for name in sorted(results):
        ok, err = results[name]
        if ok:
            console.print(f"  [green]OK  [/green] {name}")
        else:
            short_err = err.splitlines()[0][:120] if err else "unknown error"
            console.print(f"  [red]FAIL[/red] {name}: {escape(short_err)}")
            failed.append(name)
    if failed and not click.confirm("Continue anyway? Failed turns will be skipped.", default=False):
        sys.exit(1)
    console.print()


class ConsoleListener(SessionListener):
    """Renders session events as they happen."""

    def __init__(self, personas: list[Persona], phase_labels: dict[str, str]) -> None:
        self._personas = {p.id: p for p in personas}
        self._phase_labels = phase_labels

    def on_turn(self, turn: Turn) -> None:
        if not turn.is_human:
            print_turn(turn, self._personas)

    def on_speaking(self, persona: Persona | None) -> None:
        if persona is not None:
            print_speaking(persona)

    def on_phase_change(self, old: DiscussionPhase, new: DiscussionPhase) -> None:
        print_phase_change(new, self._phase_labels)

    def on_interruption(self, event: InterruptionEvent) -> None:
        print_interruption(event, self._personas.get(event.persona_id))


async def _read_line(prompt: str) -> str | None:
    try:
        return await asyncio.to_thread(console.input, prompt)
    except EOFError:
        return None


async def _discuss(session: DiscussionSession) -> bool:
    """Feed console input to the session. Returns True when the user asked for evaluation."""
    while True:
        line = await _read_line("[bold]> [/bold]")
        if line is None or line.strip() == "/quit":
            return False
        command, _, rest = line.strip().partition(" ")
        if command == "/done":
            return True
        if command == "/mic":
            session.activate_microphone()
        elif command == "/voice":
            session.activate_microphone()
            session.add_voice_fragment(rest)
        elif command == "/send":
            session.submit_human_turn()
        else:
            session.submit_human_turn(line)


async def _run_session(
    config: AppConfig,
    generator: AIProvider,
    evaluator: AIProvider,
    topic: str,
    job_title: str,
    company: str,
    output_dir: Path,
    seed: int | None,
) -> Path | None:
    listener = ConsoleListener(config.personas, config.prompts.phase_labels)
    session = start_session(
        topic,
        job_title,
        config,
        generator,
        company=company,
        rng=random.Random(seed),
        listener=listener,
    )
    print_session_header(job_title, company, topic, session.state.key_points.points, config.personas)

    try:
        wants_evaluation = await _discuss(session)
    except (KeyboardInterrupt, asyncio.CancelledError):
        wants_evaluation = False

    if not wants_evaluation:
        await session.close()
        console.print("[dim]Discussion ended without evaluation.[/dim]")
        return None

    with console.status("面试官正在整理评估报告..."):
        evaluation = await session.request_final_evaluation(evaluator)
    print_feedback(evaluation, config.prompts.phase_labels)
    return save_to_file(evaluation, output_dir, config.prompts.phase_labels)


@click.command()
@click.option("--job-title", default=None, help="Job title the group interview is for")
@click.option("--company", default="", help="Company name, used for topic generation")
@click.option("--topic", "topic_text", default=None, help="Discussion prompt text")
@click.option("--file", "topic_file", type=click.Path(exists=True), help="Read the prompt from a .md file")
@click.option("--generate-topic", "generate_topic_flag", is_flag=True, help="Let the generator write a prompt for --company/--job-title")
@click.option("--generator", default=None, help="Provider voicing the personas (default: from config)")
@click.option("--evaluator", default=None, help="Provider writing the feedback report (default: from config)")
@click.option("--output", "output_path", default=None, help="Output directory (default: from config)")
@click.option("--seed", default=None, type=int, help="Seed for speaker order and chaining")
@click.option("--verbose", is_flag=True, help="Enable DEBUG-level logging")
@click.option("--skip-health-check", is_flag=True, default=False, help="Skip the API connectivity check at startup")
def main(
    job_title: str | None,
    company: str,
    topic_text: str | None,
    topic_file: str | None,
    generate_topic_flag: bool,
    generator: str | None,
    evaluator: str | None,
    output_path: str | None,
    seed: int | None,
    verbose: bool,
    skip_health_check: bool,
) -> None:
    """Group interview simulator -- practise an unstructured group discussion with AI peers.

    \b
    Examples:
      groupsim --job-title 产品经理 --topic "【任务】1. 用户增长 2. 留存 3. 变现"
      groupsim --file topic.md
      groupsim --company 字节跳动 --job-title 产品经理 --generate-topic
    """
    if sys.platform == "win32":
        if hasattr(sys.stdout, "reconfigure"):
            sys.stdout.reconfigure(encoding="utf-8", errors="replace")
        if hasattr(sys.stderr, "reconfigure"):
            sys.stderr.reconfigure(encoding="utf-8", errors="replace")

    load_dotenv()
    _setup_logging(verbose)

    try:
        config = load_config()
    except (FileNotFoundError, ValueError) as exc:
        console.print(f"[bold red]Config error:[/bold red] {escape(str(exc))}")
        sys.exit(1)

    generator_name = generator or config.defaults.generator
    evaluator_name = evaluator or config.defaults.evaluator
    output_dir = Path(output_path) if output_path else config.defaults.output_dir

    try:
        providers = {name: _build_provider(config, name) for name in {generator_name, evaluator_name}}
    except ProviderError as exc:
        console.print(f"[bold red]Error:[/bold red] {escape(str(exc))}")
        sys.exit(1)

    if not skip_health_check:
        _check_providers(providers)

    topic = topic_text
    if topic_file:
        parsed = parse_topic_file(Path(topic_file))
        topic = parsed.text
        job_title = job_title or parsed.job_title
        company = company or parsed.company or ""

    if not job_title:
        console.print("[bold red]Error:[/bold red] Provide --job-title (or job_title in the topic file).")
        sys.exit(1)

    if generate_topic_flag:
        if not company:
            console.print("[bold red]Error:[/bold red] --generate-topic needs --company.")
            sys.exit(1)
        with console.status("Generating topic..."):
            topic = asyncio.run(generate_topic(providers[generator_name], config.prompts, company, job_title))
        if topic == TOPIC_FALLBACK:
            console.print(f"[bold red]Error:[/bold red] {TOPIC_FALLBACK}")
            sys.exit(1)

    if not topic:
        console.print("[bold red]Error:[/bold red] Provide --topic, --file, or --generate-topic.")
        sys.exit(1)

    saved = asyncio.run(
        _run_session(
            config,
            providers[generator_name],
            providers[evaluator_name],
            topic,
            job_title,
            company,
            output_dir,
            seed,
        )
    )
    if saved is not None:
        console.print(f"\n[dim]Saved to: {saved}[/dim]")


if __name__ == "__main__":
    main()
