"""Turn-based task extraction and confirmation endpoints."""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends

from dependencies.auth import CurrentUserDep
from schemas.ai import (
    ConfirmTasksRequest,
    ConfirmTasksResponse,
    DraftFailure,
    ExtractTasksRequest,
    ExtractTasksResponse,
)
from services.ai.interfaces import TaskExtractionService, TaskPersistenceProtocol
from services.ai.normalizer import normalize_draft
from services.ai.orchestrator import get_extraction_orchestrator
from services.ai.turn_handler import TurnHandler
from services.confirmation import (
    PendingConfirmation,
    PersistReport,
    confirm_and_persist,
    reject,
)
from services.tasks_client import get_tasks_client


__all__ = [
    "confirm_tasks",
    "extract_tasks",
]


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/ai", tags=["ai"])


def get_turn_handler(
    orchestrator: Annotated[
        TaskExtractionService, Depends(get_extraction_orchestrator)
    ],
) -> TurnHandler:
    return TurnHandler(orchestrator)


@router.post(
    "/extract-tasks",
    response_model=ExtractTasksResponse,
    response_model_exclude_none=True,
    summary="Extract task drafts from a transcript",
)
async def extract_tasks(
    payload: ExtractTasksRequest,
    handler: Annotated[TurnHandler, Depends(get_turn_handler)],
) -> ExtractTasksResponse:
    """Turn typed or dictated text into task drafts or a clarification question.

    Nothing is persisted here. The client shows the drafts, and after the user
    confirms, sends them to ``/ai/confirm-tasks``.
    """
    return await handler.handle(payload.transcript, payload.conversation_history)


def _to_response(report: PersistReport, total: int) -> ConfirmTasksResponse:
    failed = [
        DraftFailure(
            index=r.index,
            title=r.draft.title,
            error_code=r.error.error_code if r.error else "unknown",
            message=r.error.message if r.error else "Task was not created",
            retryable=r.retryable,
        )
        for r in report.failed
    ]
    created = len(report.succeeded)
    return ConfirmTasksResponse(
        success=report.all_succeeded,
        message=f"Created {created} of {total} task(s)",
        created=report.created,
        failed=failed,
    )


@router.post(
    "/confirm-tasks",
    response_model=ConfirmTasksResponse,
    summary="Confirm or reject presented task drafts",
)
async def confirm_tasks(
    payload: ConfirmTasksRequest,
    current_user: CurrentUserDep,
    persistence: Annotated[TaskPersistenceProtocol, Depends(get_tasks_client)],
) -> ConfirmTasksResponse:
    """Persist the drafts the user confirmed, one task API call per draft.

    A rejection discards the drafts without contacting the task API. Failures
    are reported per draft; resubmitting only the failed drafts retries them.
    """
    pending = PendingConfirmation.present(
        (normalize_draft(d) for d in payload.tasks), turn=0
    )

    if not payload.confirmed:
        report = reject(pending)
        return ConfirmTasksResponse(
            success=True,
            message=f"Discarded {report.discarded} task(s)",
            discarded=report.discarded,
        )

    if not pending.drafts:
        return ConfirmTasksResponse(success=False, message="No tasks to create")

    _, report = await confirm_and_persist(
        pending.affirm(), persistence, current_user.token
    )
    logger.info(
        "User %s confirmed %d draft(s): %d created, %d failed",
        current_user.id,
        len(pending.drafts),
        len(report.succeeded),
        len(report.failed),
    )
    return _to_response(report, len(pending.drafts))
