"""Rich console output and markdown export for discussion sessions."""

import logging
import re
from collections.abc import Mapping, Sequence
from datetime import datetime
from pathlib import Path

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.rule import Rule
from rich.table import Table
from rich.text import Text

from groupsim.models import BehaviorRole, DiscussionPhase, Evaluation, InterruptionEvent, Persona, Turn, TurnKind
from groupsim.phase import phase_label

logger = logging.getLogger(__name__)

console = Console(legacy_windows=False)

ROLE_BADGES = {
    BehaviorRole.AGGRESSIVE: "核心",
    BehaviorRole.STRUCTURED: "枢纽",
    BehaviorRole.DETAIL: "补位",
    BehaviorRole.DISTRACTOR: "发散",
}

def _slug(text: str, max_len: int = 40) -> str:
    """Convert text to a filename-safe slug. CJK characters are kept."""
    slug = re.sub(r"[^\w\s-]", "", text.lower())
    slug = re.sub(r"[\s_-]+", "-", slug).strip("-")
    return slug[:max_len] or "discussion"


def print_session_header(
    job_title: str,
    company: str,
    topic: str,
    key_points: Sequence[str],
    personas: Sequence[Persona],
) -> None:
    console.print(Rule(f"[bold cyan]群面模拟 · {company + ' ' if company else ''}{job_title}[/bold cyan]"))
    console.print(Panel(Text(topic), title="题目材料", border_style="dim"))
    if key_points:
        for i, point in enumerate(key_points, 1):
            console.print(f"  [bold]{i}.[/bold] {escape(point)}")
    names = ", ".join(f"[{p.color or 'white'}]{p.display_name}[/]（{ROLE_BADGES[p.role]}）" for p in personas)
    console.print(f"参与者：{names}, 你")
    console.print("[dim]直接输入发言；/mic 开麦，/voice 文本 追加语音，/send 发送语音，/done 提交评估，/quit 退出[/dim]\n")


def print_turn(turn: Turn, personas: dict[str, Persona]) -> None:
    if turn.kind is TurnKind.SYSTEM:
        console.print(Text(turn.text, style="dim italic"))
        return
    if turn.is_human:
        console.print(Panel(Text(turn.text), title="[bold]你[/bold]", title_align="right", border_style="white"))
        return
    persona = personas.get(turn.speaker_id)
    color = persona.color if persona and persona.color else "cyan"
    badge = f" · {ROLE_BADGES[persona.role]}" if persona else ""
    console.print(
        Panel(Text(turn.text), title=f"[bold {color}]{turn.speaker_name}[/bold {color}]{badge}", title_align="left", border_style=color)
    )


def print_speaking(persona: Persona) -> None:
    console.print(Text(f"{persona.display_name} 正在思考发言...", style="dim"))


def print_phase_change(phase: DiscussionPhase, phase_labels: Mapping[str, str]) -> None:
    console.print(Rule(f"[bold magenta]进入阶段：{escape(phase_label(phase, phase_labels))}[/bold magenta]"))


def print_interruption(event: InterruptionEvent, persona: Persona | None) -> None:
    who = persona.display_name if persona else event.persona_id
    console.print(Text(f"检测到抢话！（{who} 正在发言）", style="bold white on red"))


def print_feedback(evaluation: Evaluation, phase_labels: Mapping[str, str]) -> None:
    """Print the evaluation summary and, when present, the evaluator's report."""
    console.print(Rule("[bold green]面试评估[/bold green]"))
    table = Table(show_header=False, box=None)
    table.add_row("发言占比", f"{evaluation.voice_share}%")
    table.add_row("发言轮次", str(sum(1 for t in evaluation.turns if t.is_human)))
    table.add_row("讨论阶段", escape(phase_label(evaluation.final_phase, phase_labels)))
    if evaluation.key_points:
        table.add_row("要点覆盖", f"{evaluation.key_points_done}/{len(evaluation.key_points)}")
    report = evaluation.report
    if report is not None:
        table.add_row("综合得分", str(report.overall_score))
        table.add_row("时机掌握", escape(report.timing))
        table.add_row("结构贡献", escape(report.structural_contribution))
        table.add_row("抗压表现", escape(report.interruption_handling))
    console.print(table)
    if report is not None and report.suggestions:
        console.print("[bold]改进建议[/bold]")
        for suggestion in report.suggestions:
            console.print(f"  - {escape(suggestion)}")


def save_to_file(
    evaluation: Evaluation,
    output_dir: Path,
    phase_labels: Mapping[str, str],
    slug_override: str | None = None,
) -> Path:
    """Save the transcript and evaluation as a markdown file.

    Args:
        evaluation: The finished session's evaluation.
        output_dir: Directory to save the file in.
        phase_labels: Configured display names keyed by phase name.
        slug_override: Filename stem to use instead of one derived from the job title.

    Returns:
        Path to the saved file.
    """
    output_dir.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    slug = slug_override if slug_override is not None else _slug(evaluation.job_title)
    filepath = output_dir / f"{timestamp}_{slug}.md"

    lines: list[str] = [
        f"# 群面记录：{evaluation.job_title}",
        "",
        f"**Date:** {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}",
    ]
    if evaluation.company:
        lines.append(f"**Company:** {evaluation.company}")
    lines += [
        f"**Turns:** {sum(1 for t in evaluation.turns if t.kind is TurnKind.SPOKEN)}",
        f"**Voice share:** {evaluation.voice_share}%",
        f"**Final phase:** {phase_label(evaluation.final_phase, phase_labels)}",
        "",
        "## 题目",
        "",
        evaluation.topic,
        "",
    ]

    if evaluation.key_points:
        lines += ["## 讨论要点", ""]
        for i, point in enumerate(evaluation.key_points):
            mark = "x" if i < evaluation.key_points_done else " "
            lines.append(f"- [{mark}] {point}")
        lines.append("")

    lines += ["## 讨论记录", ""]
    for turn in evaluation.turns:
        stamp = datetime.fromtimestamp(turn.created_at).strftime("%H:%M:%S")
        if turn.kind is TurnKind.SYSTEM:
            lines.append(f"*{stamp} {turn.text}*")
        else:
            lines.append(f"**{turn.speaker_name}** ({stamp}): {turn.text}")
        lines.append("")

    report = evaluation.report
    if report is not None:
        lines += [
            "## 评估报告",
            "",
            f"- **综合得分:** {report.overall_score}",
            f"- **时机掌握:** {report.timing}",
            f"- **结构贡献:** {report.structural_contribution}",
            f"- **抗压表现:** {report.interruption_handling}",
            "",
            "### 改进建议",
            "",
        ]
        lines += [f"- {s}" for s in report.suggestions]
        lines.append("")

    filepath.write_text("\n".join(lines), encoding="utf-8")
    logger.info("Discussion saved to: %s", filepath)
    return filepath
