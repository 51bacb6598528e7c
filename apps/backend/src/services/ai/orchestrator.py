"""Task extraction orchestrator."""

from __future__ import annotations

import logging
from functools import lru_cache

from core.config import get_settings
from schemas.tasks import ConversationContext
from services.ai.exceptions import EmptyTranscript, TaskExtractionError
from services.ai.extraction_client import ExtractionClient
from services.ai.heuristics import (
    create_fallback_outcome,
    filter_irrelevant_drafts,
    sanitize_history,
    sanitize_transcript,
)
from services.ai.interfaces import ExtractionClientProtocol, TaskExtractionService
from services.ai.models import (
    ClarificationNeeded,
    DraftsOutcome,
    ExtractionFailed,
    ExtractionOutcome,
    InternalOutcome,
)
from services.ai.normalizer import parse_oracle_output
from services.ai.prompts import build_task_extraction_prompt


logger = logging.getLogger(__name__)

EMPTY_INPUT_QUESTION = "What task would you like me to create?"


class ExtractionOrchestrator(TaskExtractionService):
    """Concrete extraction orchestrator.

    Accepts an optional client implementation to make testing and DI easier.
    Holds no per-request state, so one instance is shared by every caller.
    """

    def __init__(
        self,
        client: ExtractionClientProtocol | None = None,
        timeout: float | None = None,
    ) -> None:
        super().__init__(client or ExtractionClient())
        self.timeout = (
            timeout if timeout is not None else get_settings().EXTRACTION_TIMEOUT_SECONDS
        )

    async def _call_oracle(
        self, transcript: str, history: ConversationContext
    ) -> InternalOutcome:
        prompt = build_task_extraction_prompt(transcript, history)
        try:
            raw = await self.client.complete(prompt, self.timeout)
            return parse_oracle_output(raw)
        except TaskExtractionError as exc:
            return ExtractionFailed(reason=exc.message, error_code=exc.error_code)
        except Exception as exc:  # noqa: BLE001 - the oracle is opaque
            logger.exception("Unexpected extraction oracle failure")
            return ExtractionFailed(reason=str(exc) or type(exc).__name__)

    async def extract(
        self, transcript: str, history: ConversationContext = ()
    ) -> ExtractionOutcome:
        verbatim = (transcript or "").strip()
        cleaned = sanitize_transcript(transcript)
        if not cleaned:
            # Callers validate input first; still answer rather than raise.
            logger.info("extract() called with empty transcript")
            return ClarificationNeeded(question=EMPTY_INPUT_QUESTION)

        outcome = await self._call_oracle(cleaned, sanitize_history(history))

        match outcome:
            case ExtractionFailed(reason=reason, error_code=error_code):
                logger.warning(
                    "Extraction failed (%s): %s; using heuristic fallback",
                    error_code,
                    reason,
                )
                return create_fallback_outcome(verbatim)
            case ClarificationNeeded():
                logger.info("Oracle requested clarification")
                return outcome
            case DraftsOutcome():
                filtered = filter_irrelevant_drafts(cleaned, outcome)
                logger.info(
                    "Extracted %d draft(s) (%d before relevance filter)",
                    len(filtered.drafts),
                    len(outcome.drafts),
                )
                return filtered


def ensure_transcript(transcript: str | None) -> str:
    """Return the trimmed transcript or raise ``EmptyTranscript``."""
    trimmed = (transcript or "").strip()
    if not trimmed:
        raise EmptyTranscript()
    return trimmed


# FastAPI DI provider (used by API layer and realtime router via Depends)
@lru_cache
def get_extraction_orchestrator() -> TaskExtractionService:
    return ExtractionOrchestrator()
