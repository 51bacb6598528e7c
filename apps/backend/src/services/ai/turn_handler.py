"""Stateless request/response handler for typed task extraction.

Every call is independent: the client owns the conversation history and
resubmits it with each turn, so a clarification loop is simply the next
request carrying the question and its answer.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from schemas.ai import ExtractTasksResponse
from schemas.tasks import ConversationTurn
from services.ai.exceptions import EmptyTranscript
from services.ai.interfaces import TaskExtractionService
from services.ai.models import ClarificationNeeded, DraftsOutcome
from services.ai.orchestrator import ensure_transcript


logger = logging.getLogger(__name__)

TRANSCRIPT_REQUIRED_MESSAGE = "Transcript is required"
EXTRACTION_FAILED_MESSAGE = "Failed to extract tasks"


def success_message(count: int) -> str:
    return f"Successfully extracted {count} task(s)"


class TurnHandler:
    """Maps one extraction turn onto the wire response shape."""

    def __init__(self, orchestrator: TaskExtractionService) -> None:
        self.orchestrator = orchestrator

    async def handle(
        self,
        transcript: str | None,
        history: Sequence[ConversationTurn] = (),
    ) -> ExtractTasksResponse:
        try:
            cleaned = ensure_transcript(transcript)
        except EmptyTranscript as exc:
            return ExtractTasksResponse(success=False, message=exc.message, tasks=[])

        try:
            outcome = await self.orchestrator.extract(cleaned, tuple(history))
        except Exception as exc:  # noqa: BLE001 - never raise past the boundary
            logger.exception("Task extraction turn failed")
            return ExtractTasksResponse(
                success=False,
                message=EXTRACTION_FAILED_MESSAGE,
                tasks=[],
                error=str(exc) or type(exc).__name__,
            )

        match outcome:
            case ClarificationNeeded(question=question):
                return ExtractTasksResponse(
                    success=True,
                    message=question,
                    tasks=[],
                    needs_clarification=True,
                    clarification_question=question,
                )
            case DraftsOutcome(drafts=drafts, summary=summary):
                message = (
                    success_message(len(drafts))
                    if drafts
                    else summary or success_message(0)
                )
                return ExtractTasksResponse(
                    success=True, message=message, tasks=list(drafts)
                )
