"""Tests for the confirmation gate and per-draft persistence."""

from __future__ import annotations

import pytest
from fakes import FakeTaskApi, make_draft

from services.ai.exceptions import (
    ConfirmationMissing,
    PersistenceRejected,
    Unauthenticated,
)
from services.confirmation import (
    PendingConfirmation,
    confirm_and_persist,
    persist_one,
    reject,
)


def _three() -> PendingConfirmation:
    return PendingConfirmation.present(
        [make_draft("Draft one"), make_draft("Draft two"), make_draft("Draft three")],
        turn=1,
    )


@pytest.mark.asyncio
async def test_nothing_is_persisted_without_affirmation():
    api = FakeTaskApi()

    with pytest.raises(ConfirmationMissing):
        await confirm_and_persist(_three(), api, "token")
    assert api.calls == 0


@pytest.mark.asyncio
async def test_nothing_is_persisted_without_credential():
    api = FakeTaskApi()

    with pytest.raises(Unauthenticated):
        await confirm_and_persist(_three().affirm(), api, None)
    assert api.calls == 0


@pytest.mark.asyncio
async def test_one_failure_does_not_hide_other_successes():
    api = FakeTaskApi(fail_titles={"Draft two": PersistenceRejected("down")})

    pending, report = await confirm_and_persist(_three().affirm(), api, "token")

    assert [r.index for r in report.succeeded] == [0, 2]
    assert [r.index for r in report.failed] == [1]
    assert report.failed[0].retryable is True
    assert report.all_succeeded is False
    assert len(report.created) == 2
    assert pending.persisted_indices == frozenset({0, 2})
    assert pending.remaining_indices == (1,)
    assert not pending.is_complete


@pytest.mark.asyncio
async def test_retry_persists_only_the_failed_draft():
    api = FakeTaskApi(fail_titles={"Draft two": PersistenceRejected("down")})
    pending, _ = await confirm_and_persist(_three().affirm(), api, "token")

    api.fail_titles.clear()
    pending, report = await confirm_and_persist(pending, api, "token")

    assert [r.draft.title for r in report.succeeded] == ["Draft two"]
    assert [d.title for d, _ in api.created] == ["Draft one", "Draft three", "Draft two"]
    assert pending.is_complete


@pytest.mark.asyncio
async def test_reject_after_partial_persist_leaves_created_tasks_alone():
    api = FakeTaskApi(fail_titles={"Draft two": PersistenceRejected("down")})
    pending, _ = await confirm_and_persist(_three().affirm(), api, "token")
    calls_before = api.calls

    report = reject(pending)

    assert report.discarded == 1
    assert api.calls == calls_before
    assert len(api.created) == 2


def test_reject_without_pending_set():
    assert reject(None).discarded == 0


@pytest.mark.asyncio
async def test_persist_one_reports_error_in_result():
    api = FakeTaskApi(
        fail_titles={"Draft one": PersistenceRejected("bad", "validation_rejected")}
    )

    result = await persist_one(_three().affirm(), 0, api, "token")

    assert not result.succeeded
    assert result.error is not None
    assert result.error.error_code == "validation_rejected"
    assert result.retryable is False


def test_index_of_matches_title_case_insensitively():
    pending = _three()

    assert pending.index_of(make_draft("  draft  TWO ")) == 1
    assert pending.index_of(make_draft("Draft four")) is None


@pytest.mark.asyncio
async def test_index_of_prefers_unpersisted_duplicate():
    pending = PendingConfirmation.present(
        [make_draft("Deploy api"), make_draft("Deploy api")], turn=0
    ).affirm()
    result = await persist_one(pending, 0, FakeTaskApi(), "token")

    pending = pending.record(result)

    assert pending.index_of(make_draft("Deploy api")) == 1


def test_empty_set_is_never_complete():
    assert not PendingConfirmation.present([], turn=0).is_complete
