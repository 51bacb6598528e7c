"""Model-callable session actions and their single dispatcher.

The conversational model can only affect a session through two actions:

* ``PresentDrafts``: show a draft set to the user and make it the pending
  confirmation (replacing any earlier set).
* ``PersistDraft``: store one draft of the pending set through the task API.

The persist gate is deterministic and does not trust the model: it needs a
bound credential, a draft that belongs to the set currently shown, and a user
turn or UI confirmation after that set was presented. Every refusal comes
back to the model as an explicit ``{"status": "error"}`` result.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Protocol, assert_never

from schemas.realtime import task_created_event, tasks_extracted_event
from schemas.tasks import TaskDraft
from services.ai.exceptions import (
    ConfirmationMissing,
    DraftNotPresented,
    TaskPersistenceError,
    Unauthenticated,
)
from services.ai.interfaces import DataChannelProtocol, TaskPersistenceProtocol
from services.ai.normalizer import normalize_draft
from services.confirmation import PendingConfirmation, persist_one
from services.realtime.state import SessionState


logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class PresentDrafts:
    drafts: tuple[TaskDraft, ...]
    summary: str | None = None


@dataclass(frozen=True, slots=True)
class PersistDraft:
    draft: TaskDraft


SessionAction = PresentDrafts | PersistDraft


class SessionStateHolder(Protocol):
    """Anything exposing the current, replaceable session state."""

    state: SessionState


def _error(exc: TaskPersistenceError, **extra: Any) -> dict[str, Any]:
    return {
        "status": "error",
        "error_code": exc.error_code,
        "message": exc.message,
        **extra,
    }


def _same_set(a: PendingConfirmation | None, b: PendingConfirmation) -> bool:
    return (
        a is not None
        and a.presented_at_turn == b.presented_at_turn
        and a.drafts == b.drafts
    )


class ActionDispatcher:
    """Executes session actions against one room's state and data channel."""

    def __init__(
        self,
        session: SessionStateHolder,
        channel: DataChannelProtocol,
        persistence: TaskPersistenceProtocol,
    ) -> None:
        self.session = session
        self.channel = channel
        self.persistence = persistence

    async def dispatch(self, action: SessionAction) -> dict[str, Any]:
        match action:
            case PresentDrafts():
                return await self._present(action)
            case PersistDraft():
                return await self._persist(action)
            case _:
                assert_never(action)

    async def _present(self, action: PresentDrafts) -> dict[str, Any]:
        drafts = tuple(normalize_draft(d) for d in action.drafts)
        if not drafts:
            return {
                "status": "error",
                "error_code": "no_drafts",
                "message": "At least one task is required to present.",
            }

        self.session.state = self.session.state.present(drafts, action.summary)
        await self.channel.publish(tasks_extracted_event(drafts, action.summary))
        logger.info(
            "Presented %d draft(s) in room %s",
            len(drafts),
            self.session.state.room_name,
        )
        return {"status": "ok", "acknowledged": True, "taskCount": len(drafts)}

    async def _persist(self, action: PersistDraft) -> dict[str, Any]:
        state = self.session.state
        if not state.is_authenticated:
            return _error(Unauthenticated())

        pending = state.pending
        index = pending.index_of(action.draft) if pending is not None else None
        if pending is None or index is None:
            return _error(
                DraftNotPresented(
                    f"'{action.draft.title}' is not among the tasks shown to the "
                    "user. Present it with present_drafts and ask for confirmation."
                )
            )
        if not state.confirmation_signalled:
            return _error(ConfirmationMissing())

        if index in pending.persisted_indices:
            done = next(r for r in pending.results if r.index == index)
            return {
                "status": "ok",
                "message": "Task was already created.",
                "task": done.created,
            }

        result = await persist_one(
            pending, index, self.persistence, state.auth_token or ""
        )

        # The set may have been replaced while the call was in flight
        current = self.session.state
        if _same_set(current.pending, pending):
            self.session.state = current.record_result(result)

        if result.error is not None:
            return _error(
                result.error,
                title=result.draft.title,
                retryable=result.retryable,
            )

        created = result.created or {}
        await self.channel.publish(task_created_event(created))
        remaining = (
            len(self.session.state.pending.remaining_indices)
            if self.session.state.pending is not None
            else 0
        )
        return {
            "status": "ok",
            "title": result.draft.title,
            "taskId": created.get("_id") or created.get("id"),
            "remaining": remaining,
        }
