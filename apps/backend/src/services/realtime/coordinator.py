"""Realtime session coordinator: one instance per conversation room."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

from pydantic_ai import Agent
from pydantic_ai.messages import ModelMessage

from schemas.realtime import (
    ConfirmTasksMessage,
    UserTranscriptMessage,
    agent_reply_event,
    error_event,
    transcript_event,
)
from services.ai.heuristics import NO_TASKS_MESSAGE
from services.ai.interfaces import (
    DataChannelProtocol,
    TaskExtractionService,
    TaskPersistenceProtocol,
)
from services.ai.models import ClarificationNeeded, DraftsOutcome, ExtractionOutcome
from services.confirmation import reject
from services.realtime.actions import ActionDispatcher
from services.realtime.agent import SessionAgentDeps, get_session_agent, make_deps
from services.realtime.state import SessionPhase, SessionState


logger = logging.getLogger(__name__)

CONFIRM_UTTERANCE = "Yes, those task details look good. Please create them now."
REJECT_UTTERANCE = "No, those details are not correct yet."
AGENT_FAILURE_MESSAGE = "Sorry, I ran into a problem. Could you say that again?"

InboundEvent = UserTranscriptMessage | ConfirmTasksMessage


def build_extraction_prompt(text: str, outcome: ExtractionOutcome) -> str:
    """Hand one extraction outcome to the conversational model."""
    said = f'The user said: "{text}"\n\n'
    match outcome:
        case ClarificationNeeded(question=question):
            return (
                said + "The task extractor needs more detail. Ask the user exactly "
                f'this question: "{question}"'
            )
        case DraftsOutcome(drafts=drafts, summary=summary) if not drafts:
            return (
                said + "The task extractor found no tasks: "
                f"{summary or NO_TASKS_MESSAGE} Explain this briefly."
            )
        case DraftsOutcome(drafts=drafts, fallback=fallback):
            tasks = json.dumps([d.to_wire() for d in drafts], indent=2)
            note = (
                "\nThe extractor was unavailable, so this is a rough draft of "
                "the whole utterance. Check the details with the user."
                if fallback
                else ""
            )
            return (
                said + f"The task extractor found these tasks:\n{tasks}\n{note}\n"
                "Call present_drafts with them, read a short summary and ask the "
                "user to confirm."
            )


class SessionCoordinator:
    """Owns one room's state and serializes every event through one loop.

    Inbound events are queued by ``submit`` and handled one at a time by
    ``run``; the model's tool calls reach the state only through the action
    dispatcher.
    """

    def __init__(
        self,
        room_name: str,
        channel: DataChannelProtocol,
        orchestrator: TaskExtractionService,
        persistence: TaskPersistenceProtocol,
        metadata: str | dict[str, Any] | None = None,
        agent: Agent[SessionAgentDeps, str] | None = None,
    ) -> None:
        self.state = SessionState.open(room_name, metadata)
        self.channel = channel
        self.orchestrator = orchestrator
        self.dispatcher = ActionDispatcher(self, channel, persistence)
        self._agent = agent
        self._message_history: list[ModelMessage] = []
        self._queue: asyncio.Queue[InboundEvent | None] = asyncio.Queue()

    @property
    def room_name(self) -> str:
        return self.state.room_name

    def _get_agent(self) -> Agent[SessionAgentDeps, str]:
        if self._agent is None:
            self._agent = get_session_agent()
        return self._agent

    async def submit(self, event: InboundEvent) -> None:
        await self._queue.put(event)

    async def stop(self) -> None:
        """Ask the dispatch loop to exit after the events already queued."""
        await self._queue.put(None)

    async def run(self) -> None:
        logger.info(
            "Session started for room %s (user %s)", self.room_name, self.state.user_id
        )
        while True:
            event = await self._queue.get()
            if event is None:
                break
            try:
                await self.handle(event)
            except Exception:
                logger.exception("Failed to handle %s in room %s", event.type, self.room_name)
                await self.channel.publish(error_event(AGENT_FAILURE_MESSAGE))
        self.close()

    def close(self) -> None:
        """Drop the session; pending drafts are discarded, never persisted."""
        if self.state.pending is not None:
            reject(self.state.pending)
        self.state = self.state.discard_pending()
        logger.info("Session closed for room %s", self.room_name)

    async def handle(self, event: InboundEvent) -> None:
        match event:
            case UserTranscriptMessage():
                await self.handle_transcript(event)
            case ConfirmTasksMessage():
                await self.handle_confirmation(event)

    async def handle_transcript(self, event: UserTranscriptMessage) -> None:
        await self.channel.publish(transcript_event(event.text, event.is_final))
        text = event.text.strip()
        if not event.is_final or not text:
            return

        awaiting = self.state.awaiting_confirmation
        history = self.state.context
        self.state = self.state.with_user_turn(text)

        if awaiting:
            # A reply to the presented drafts: the model judges yes / no / edits
            await self._reply(text)
            return

        self.state = self.state.begin_extraction()
        outcome = await self.orchestrator.extract(text, history)
        if isinstance(outcome, ClarificationNeeded) or not outcome.drafts:
            self.state = self.state.back_to_listening()

        await self._reply(build_extraction_prompt(text, outcome))

        if self.state.phase is SessionPhase.EXTRACTING:
            logger.info("Model did not present drafts in room %s", self.room_name)
            self.state = self.state.back_to_listening()

    async def handle_confirmation(self, event: ConfirmTasksMessage) -> None:
        if event.confirmed:
            self.state = self.state.affirm()
            utterance = CONFIRM_UTTERANCE
        else:
            report = reject(self.state.pending)
            logger.info(
                "User rejected drafts in room %s (%d discarded)",
                self.room_name,
                report.discarded,
            )
            self.state = self.state.discard_pending()
            utterance = REJECT_UTTERANCE

        self.state = self.state.with_user_turn(utterance)
        await self._reply(utterance)

    async def _reply(self, prompt: str) -> str:
        try:
            result = await self._get_agent().run(
                prompt,
                deps=make_deps(self.dispatcher),
                message_history=self._message_history,
            )
        except Exception:
            logger.exception("Session model turn failed in room %s", self.room_name)
            await self.channel.publish(error_event(AGENT_FAILURE_MESSAGE))
            return ""

        self._message_history = result.all_messages()
        text = result.output.strip() if isinstance(result.output, str) else ""
        self.state = self.state.with_assistant_turn(text)
        if text:
            await self.channel.publish(agent_reply_event(text))
        return text
