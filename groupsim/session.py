"""Discussion orchestration: turn control, human input, chaining and teardown.

A DiscussionSession owns one SessionState and one ActionTimeline. Every AI
turn runs inside a timeline action, so turns never overlap; human input is
applied immediately from the caller's coroutine and may land while a persona
is still speaking.
"""

import asyncio
import logging
import random
from dataclasses import dataclass

from config.config_loader import AppConfig, DiscussionConfig, PromptsConfig, TimingConfig
from groupsim.feedback import generate_feedback, voice_share
from groupsim.heuristics import LONG_TURN_CHARS, invites_summary, volunteers_summary
from groupsim.interruption import TRIGGER_MICROPHONE, TRIGGER_SUBMIT
from groupsim.models import (
    HUMAN_DISPLAY_NAME,
    HUMAN_SPEAKER_ID,
    BehaviorRole,
    DiscussionPhase,
    Evaluation,
    InterruptionEvent,
    Persona,
    SessionStatus,
    Turn,
    TurnKind,
    TurnStage,
)
from groupsim.providers.base import AIProvider
from groupsim.scheduler import pick_reply_count, random_delay_ms, speaking_duration_ms
from groupsim.state import SessionState, new_session_state
from groupsim.timeline import ActionTimeline
from groupsim.voices import GenerationContext, generate_reply

logger = logging.getLogger(__name__)

IDLE_START = "idle-start"
AUTO_CHAIN = "chain"
HUMAN_REPLY = "reply"

ROUND_LIMIT_NOTICE = "讨论轮次已达上限（{max_rounds}），请做最后发言或提交评估。"


@dataclass(frozen=True)
class ReplyChain:
    """Budget for consecutive AI turns.

    marker is the id of the human turn the chain answers (None before the
    human has spoken); cap bounds AI turns committed after that marker.
    """

    marker: int | None
    cap: int
    spawned_by_human: bool = False


class SessionListener:
    """Hooks for a UI layer. All methods are no-ops by default."""

    def on_turn(self, turn: Turn) -> None:
        pass

    def on_speaking(self, persona: Persona | None) -> None:
        pass

    def on_phase_change(self, old: DiscussionPhase, new: DiscussionPhase) -> None:
        pass

    def on_interruption(self, event: InterruptionEvent) -> None:
        pass


class DiscussionSession:
    def __init__(
        self,
        state: SessionState,
        provider: AIProvider,
        prompts: PromptsConfig,
        discussion: DiscussionConfig,
        timing: TimingConfig,
        rng: random.Random | None = None,
        listener: SessionListener | None = None,
    ) -> None:
        self.state = state
        self.timeline = ActionTimeline()
        self._provider = provider
        self._prompts = prompts
        self._discussion = discussion
        self._timing = timing
        self._rng = rng or random.Random()
        self._listener = listener or SessionListener()
        self._evaluation: Evaluation | None = None

    @property
    def live(self) -> bool:
        return self.state.status is SessionStatus.DISCUSSING and not self.timeline.closed

    # --- Lifecycle ---

    def start(self) -> None:
        """Start the timeline and arm the idle-start fallback."""
        self.timeline.start()
        self.timeline.schedule(self._timing.seconds(self._timing.idle_grace_ms), IDLE_START, self._idle_start)
        logger.info(
            "Session started: %s, %d personas, %d key points",
            self.state.job_title,
            len(self.state.personas),
            len(self.state.key_points.points),
        )

    async def close(self) -> None:
        """Tear down without evaluation. Pending timers and an in-flight turn are dropped."""
        if self.state.status is SessionStatus.DISCUSSING:
            self.state.status = SessionStatus.CLOSED
        await self.timeline.close()
        self._clear_active()
        logger.info("Session closed after %d turns", len(self.state.transcript))

    async def request_final_evaluation(self, feedback_provider: AIProvider | None = None) -> Evaluation:
        """Freeze the session and evaluate the human's share of the discussion.

        Calling again returns the first evaluation.
        """
        if self._evaluation is not None:
            return self._evaluation

        state = self.state
        state.status = SessionStatus.FINISHED
        await self.timeline.close()
        self._clear_active()
        state.transcript.freeze()

        turns = state.transcript.all()
        share = voice_share(turns)
        report = None
        if feedback_provider is not None:
            report = await generate_feedback(feedback_provider, self._prompts, state.topic, state.job_title, turns)

        self._evaluation = Evaluation(
            topic=state.topic,
            job_title=state.job_title,
            company=state.company,
            turns=turns,
            voice_share=share,
            final_phase=state.phase.phase,
            key_points=state.key_points.points,
            key_points_done=state.key_points.cursor.current_index,
            report=report,
        )
        logger.info("Session finished: %d turns, voice share %d%%", len(turns), share)
        return self._evaluation

    # --- Human input gateway ---

    def activate_microphone(self) -> InterruptionEvent | None:
        """The human started speaking. Counts as engagement and may interrupt."""
        if not self.live:
            return None
        return self._note_human_action(TRIGGER_MICROPHONE)

    def add_voice_fragment(self, text: str) -> None:
        """Append a final speech-recognition result to the pending draft."""
        if self.live and text:
            self.state.voice_draft += text

    def submit_human_turn(self, text: str | None = None) -> Turn | None:
        """Append the human's turn and schedule the AI replies to it.

        With text None the voice draft is submitted. Blank input is ignored
        and returns None.
        """
        if not self.live:
            return None
        state = self.state
        content = (state.voice_draft if text is None else text).strip()
        if not content:
            return None
        state.voice_draft = ""

        self._note_human_action(TRIGGER_SUBMIT)
        turn = state.transcript.append(HUMAN_SPEAKER_ID, HUMAN_DISPLAY_NAME, content)
        self._listener.on_turn(turn)

        volunteering = volunteers_summary(content)
        self._update_summary_flow(turn, None)

        delay_ms = speaking_duration_ms(content, self._timing, state.summary.volunteered)
        if volunteering:
            delay_ms += self._timing.volunteer_pause_ms

        # The human took the floor: earlier chains give way to this one.
        self.timeline.cancel_label(AUTO_CHAIN)
        self.timeline.cancel_label(HUMAN_REPLY)

        chain = ReplyChain(
            marker=turn.id,
            cap=pick_reply_count(self._discussion.human_reply_weights, self._rng),
            spawned_by_human=True,
        )
        self._schedule_next(HUMAN_REPLY, delay_ms, HUMAN_SPEAKER_ID, chain)
        logger.info("Human turn %d, %d AI replies in %.0fms", turn.id, chain.cap, delay_ms)
        return turn

    def _note_human_action(self, trigger: str) -> InterruptionEvent | None:
        state = self.state
        state.human_acted = True
        self.timeline.cancel_label(IDLE_START)
        event = state.interruptions.check(state.active_persona_id, trigger)
        if event is not None:
            self._listener.on_interruption(event)
        return event

    # --- Turn controller ---

    async def _idle_start(self) -> None:
        if self.state.human_acted or self.state.transcript.spoken():
            return
        persona = self.state.speakers.random_persona()
        logger.info("No human action within the grace window, %s opens", persona.id)
        await self.trigger_turn(persona)

    def _schedule_next(self, label: str, delay_ms: float, exclude_id: str, chain: ReplyChain) -> None:
        async def _run() -> None:
            persona = self.state.speakers.next_speaker(exclude_id)
            await self.trigger_turn(persona, chain)

        self.timeline.schedule(self._timing.seconds(delay_ms), label, _run)

    async def trigger_turn(self, persona: Persona, chain: ReplyChain | None = None) -> Turn | None:
        """Run one AI turn: generate, speak, commit, then decide whether to chain.

        A no-op once the round limit is reached or while another persona is
        mid-turn. Generation failures are logged and abandon the turn.
        """
        state = self.state
        if not self.live or state.round >= self._discussion.max_rounds:
            return None
        if state.active_persona_id is not None:
            logger.debug("Skipping %s, %s is still speaking", persona.id, state.active_persona_id)
            return None

        if chain is None:
            latest = state.latest_human_turn()
            chain = ReplyChain(marker=latest.id if latest else None, cap=self._discussion.max_ai_chain)

        state.round += 1
        state.active_persona_id = persona.id
        state.turn_stage = TurnStage.SELECTED
        self._listener.on_speaking(persona)

        ctx = GenerationContext(
            persona=persona,
            topic=state.topic,
            job_title=state.job_title,
            transcript_tail=state.transcript.spoken()[-self._discussion.history_tail:],
            phase=state.phase.phase,
            summary=state.summary,
            key_point_context=state.key_points.context(),
        )
        state.turn_stage = TurnStage.AWAITING_GENERATION
        try:
            text = await generate_reply(self._provider, self._prompts, ctx)
        except Exception as exc:
            logger.warning("Generation failed for %s in round %d: %s", persona.id, state.round, exc)
            if not self._discussion.failure_fallback:
                self._clear_active()
                self._check_round_limit()
                return None
            text = self._discussion.failure_fallback

        if not self.live:
            return None

        state.turn_stage = TurnStage.SPEAKING
        duration_ms = speaking_duration_ms(text, self._timing, state.summary.volunteered)
        await asyncio.sleep(self._timing.seconds(duration_ms))
        if not self.live:
            return None

        turn = state.transcript.append(persona.id, persona.display_name, text)
        state.turn_stage = TurnStage.COMMITTED
        self._clear_active()
        self._update_summary_flow(turn, persona)
        self._listener.on_turn(turn)
        logger.info("Round %d: %s spoke (%d chars, %dms)", state.round, persona.id, len(text), duration_ms)

        if not self._check_round_limit():
            self._decide_chain(persona, chain)
        return turn

    def _decide_chain(self, speaker: Persona, chain: ReplyChain) -> None:
        state = self.state
        spoken = state.transcript.spoken()
        replies = sum(
            1 for t in spoken if not t.is_human and (chain.marker is None or t.id > chain.marker)
        )
        if replies >= chain.cap:
            logger.debug("Chain for human turn %s reached its cap of %d", chain.marker, chain.cap)
            return

        latest = state.latest_human_turn()
        if (latest.id if latest else None) != chain.marker:
            logger.debug("Human spoke during the chain; its own replies take over")
            return

        if chain.spawned_by_human:
            self._schedule_next(AUTO_CHAIN, random_delay_ms(self._timing.chain_delay_ms, self._rng), speaker.id, chain)
        elif state.summary.guided and not state.summary.volunteered:
            delay_ms = random_delay_ms(self._timing.guided_chain_delay_ms, self._rng)
            self._schedule_next(AUTO_CHAIN, delay_ms, speaker.id, chain)
        elif self._rng.random() < self._discussion.chain_probability:
            self._schedule_next(AUTO_CHAIN, random_delay_ms(self._timing.chain_delay_ms, self._rng), speaker.id, chain)

    def _update_summary_flow(self, turn: Turn, persona: Persona | None) -> None:
        summary = self.state.summary
        already_volunteered = summary.volunteered

        if (
            not summary.guided
            and persona is not None
            and persona.role is BehaviorRole.STRUCTURED
            and self.state.phase.phase >= DiscussionPhase.GUIDING_SUMMARY
            and invites_summary(turn.text)
        ):
            summary.guided = True
            logger.info("%s invited the group to summarize", turn.speaker_id)

        if not summary.volunteered and volunteers_summary(turn.text):
            summary.volunteered = True
            logger.info("%s volunteered to summarize", turn.speaker_id)

        if not summary.completed and already_volunteered and len(turn.text) > LONG_TURN_CHARS:
            summary.completed = True
            logger.info("Summary delivered by %s", turn.speaker_id)

    def _check_round_limit(self) -> bool:
        state = self.state
        if state.round < self._discussion.max_rounds:
            return False
        if not state.round_limit_noted:
            state.round_limit_noted = True
            self.timeline.cancel_label(AUTO_CHAIN)
            notice = ROUND_LIMIT_NOTICE.format(max_rounds=self._discussion.max_rounds)
            turn = state.transcript.append("system", "系统", notice, kind=TurnKind.SYSTEM)
            self._listener.on_turn(turn)
            logger.info("Round limit %d reached, automatic turns stop", self._discussion.max_rounds)
        return True

    def _clear_active(self) -> None:
        if self.state.active_persona_id is not None:
            self.state.active_persona_id = None
            self._listener.on_speaking(None)
        self.state.turn_stage = TurnStage.IDLE


def start_session(
    topic: str,
    job_title: str,
    config: AppConfig,
    provider: AIProvider,
    *,
    company: str = "",
    rng: random.Random | None = None,
    listener: SessionListener | None = None,
) -> DiscussionSession:
    """Create a session for topic and start it. Must be called from a running event loop."""
    rng = rng or random.Random()
    listener = listener or SessionListener()
    state = new_session_state(
        topic,
        job_title,
        config.personas,
        config.discussion,
        config.timing,
        company=company,
        rng=rng,
        on_phase_change=listener.on_phase_change,
    )
    session = DiscussionSession(
        state,
        provider,
        config.prompts,
        config.discussion,
        config.timing,
        rng=rng,
        listener=listener,
    )
    session.start()
    return session
