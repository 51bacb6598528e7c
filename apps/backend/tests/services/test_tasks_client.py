"""Tests for the external task API client using httpx.MockTransport."""

from __future__ import annotations

import json

import httpx
import pytest

from schemas.tasks import TaskDraft, TaskPriority
from services.ai.exceptions import PersistenceRejected, Unauthenticated
from services.tasks_client import TasksApiClient, build_task_payload, classify_status


def _client(handler) -> TasksApiClient:
    return TasksApiClient(
        base_url="http://tasks.test/api/",
        timeout=5,
        transport=httpx.MockTransport(handler),
    )


def test_build_task_payload_drops_empty_optionals():
    payload = build_task_payload(TaskDraft(title="Fix login bug"))

    assert payload == {
        "title": "Fix login bug",
        "description": "Fix login bug",
        "priority": "medium",
        "tags": ["general"],
        "status": "todo",
    }


def test_build_task_payload_keeps_due_date_and_project():
    payload = build_task_payload(
        TaskDraft(title="Ship", due_date="2025-11-30", project_name="Payments")
    )
    assert payload["dueDate"] == "2025-11-30"
    assert payload["projectName"] == "Payments"


@pytest.mark.parametrize(
    ("status_code", "expected"),
    [
        (401, "auth_rejected"),
        (403, "auth_rejected"),
        (400, "validation_rejected"),
        (422, "validation_rejected"),
        (500, "transient"),
        (503, "transient"),
    ],
)
def test_classify_status(status_code, expected):
    assert classify_status(status_code) == expected


@pytest.mark.asyncio
async def test_create_task_posts_payload_with_bearer_token():
    seen: dict = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(201, json={"_id": "t-1", **seen["body"]})

    client = _client(handler)
    draft = TaskDraft(title="Fix login bug", priority=TaskPriority.URGENT)

    created = await client.create_task(draft, "user-token")

    assert seen["url"] == "http://tasks.test/api/tasks"
    assert seen["auth"] == "Bearer user-token"
    assert seen["body"]["priority"] == "urgent"
    assert created["_id"] == "t-1"


@pytest.mark.asyncio
async def test_create_task_without_token_makes_no_request():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(201, json={})

    with pytest.raises(Unauthenticated):
        await _client(handler).create_task(TaskDraft(title="Fix"), "")
    assert calls == []


@pytest.mark.asyncio
async def test_validation_rejection_uses_api_message():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            400, json={"message": ["title must be shorter", "priority invalid"]}
        )

    with pytest.raises(PersistenceRejected) as exc_info:
        await _client(handler).create_task(TaskDraft(title="Fix"), "token")

    exc = exc_info.value
    assert exc.error_code == "validation_rejected"
    assert exc.message == "title must be shorter; priority invalid"
    assert exc.retryable is False


@pytest.mark.asyncio
async def test_auth_rejection_is_not_retryable():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, text="nope")

    with pytest.raises(PersistenceRejected) as exc_info:
        await _client(handler).create_task(TaskDraft(title="Fix"), "expired")

    assert exc_info.value.error_code == "auth_rejected"
    assert "401" in exc_info.value.message
    assert exc_info.value.retryable is False


@pytest.mark.asyncio
async def test_network_failure_is_transient():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(PersistenceRejected) as exc_info:
        await _client(handler).create_task(TaskDraft(title="Fix"), "token")

    assert exc_info.value.error_code == "transient"
    assert exc_info.value.retryable is True


@pytest.mark.asyncio
async def test_non_object_body_returns_sent_payload():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(201, text="created")

    created = await _client(handler).create_task(TaskDraft(title="Fix api"), "token")

    assert created["title"] == "Fix api"
