"""Confirmation gate between presented drafts and the external task API.

A ``PendingConfirmation`` is the immutable record of the draft set currently
shown to the user. Nothing is persisted unless that exact set was affirmed.
Persisting issues one call per draft; each outcome is recorded against the
draft's index so a failure never rolls back or hides a success, and a later
confirmation retries only the drafts that are still unpersisted.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from dataclasses import dataclass, field, replace
from typing import Any

from schemas.tasks import TaskDraft
from services.ai.exceptions import (
    ConfirmationMissing,
    PersistenceRejected,
    TaskPersistenceError,
    Unauthenticated,
)
from services.ai.interfaces import TaskPersistenceProtocol


logger = logging.getLogger(__name__)


def _title_key(title: str) -> str:
    return " ".join(title.split()).casefold()


@dataclass(frozen=True, slots=True)
class DraftResult:
    """Outcome of persisting one draft of the pending set."""

    index: int
    draft: TaskDraft
    created: dict[str, Any] | None = None
    error: TaskPersistenceError | None = None

    @property
    def succeeded(self) -> bool:
        return self.error is None and self.created is not None

    @property
    def retryable(self) -> bool:
        return isinstance(self.error, PersistenceRejected) and self.error.retryable


@dataclass(frozen=True, slots=True)
class PendingConfirmation:
    drafts: tuple[TaskDraft, ...]
    presented_at_turn: int
    summary: str | None = None
    affirmed: bool = False
    results: tuple[DraftResult, ...] = field(default=())

    @classmethod
    def present(
        cls, drafts: Iterable[TaskDraft], turn: int, summary: str | None = None
    ) -> PendingConfirmation:
        return cls(drafts=tuple(drafts), presented_at_turn=turn, summary=summary)

    def affirm(self) -> PendingConfirmation:
        return replace(self, affirmed=True)

    @property
    def persisted_indices(self) -> frozenset[int]:
        return frozenset(r.index for r in self.results if r.succeeded)

    @property
    def remaining_indices(self) -> tuple[int, ...]:
        done = self.persisted_indices
        return tuple(i for i in range(len(self.drafts)) if i not in done)

    @property
    def is_complete(self) -> bool:
        return bool(self.drafts) and not self.remaining_indices

    def index_of(self, draft: TaskDraft) -> int | None:
        """Locate a draft of this set by title, preferring unpersisted ones."""
        key = _title_key(draft.title)
        matches = [i for i, d in enumerate(self.drafts) if _title_key(d.title) == key]
        if not matches:
            return None
        done = self.persisted_indices
        for index in matches:
            if index not in done:
                return index
        return matches[0]

    def record(self, result: DraftResult) -> PendingConfirmation:
        """Replace the stored result for ``result.index`` (last write wins)."""
        others = tuple(r for r in self.results if r.index != result.index)
        ordered = tuple(sorted((*others, result), key=lambda r: r.index))
        return replace(self, results=ordered)


@dataclass(frozen=True, slots=True)
class PersistReport:
    """Per-draft report of one confirmation step."""

    succeeded: tuple[DraftResult, ...] = ()
    failed: tuple[DraftResult, ...] = ()
    discarded: int = 0

    @property
    def created(self) -> list[dict[str, Any]]:
        return [r.created for r in self.succeeded if r.created is not None]

    @property
    def all_succeeded(self) -> bool:
        return not self.failed


async def persist_one(
    pending: PendingConfirmation,
    index: int,
    persistence: TaskPersistenceProtocol,
    auth_token: str,
) -> DraftResult:
    """Persist a single draft of an affirmed set.

    Collaborator failures come back inside the result instead of raising, so
    callers can report them per draft.
    """
    draft = pending.drafts[index]
    try:
        created = await persistence.create_task(draft, auth_token)
    except TaskPersistenceError as exc:
        logger.warning(
            "Persisting draft %d (%r) failed: %s", index, draft.title, exc.error_code
        )
        return DraftResult(index=index, draft=draft, error=exc)
    logger.info("Persisted draft %d (%r)", index, draft.title)
    return DraftResult(index=index, draft=draft, created=created)


async def confirm_and_persist(
    pending: PendingConfirmation,
    persistence: TaskPersistenceProtocol,
    auth_token: str | None,
) -> tuple[PendingConfirmation, PersistReport]:
    """Persist every still-unpersisted draft of an affirmed set.

    Raises:
        ConfirmationMissing: the set was never affirmed.
        Unauthenticated: no credential is bound.
    """
    if not pending.affirmed:
        raise ConfirmationMissing()
    if not auth_token:
        raise Unauthenticated()

    results = await asyncio.gather(
        *(
            persist_one(pending, index, persistence, auth_token)
            for index in pending.remaining_indices
        )
    )
    updated = pending
    for result in results:
        updated = updated.record(result)

    report = PersistReport(
        succeeded=tuple(r for r in results if r.succeeded),
        failed=tuple(r for r in results if not r.succeeded),
    )
    return updated, report


def reject(pending: PendingConfirmation | None) -> PersistReport:
    """Discard the pending set without any external call."""
    if pending is None:
        return PersistReport()
    discarded = len(pending.remaining_indices)
    logger.info("Discarding %d unconfirmed draft(s)", discarded)
    return PersistReport(discarded=discarded)
