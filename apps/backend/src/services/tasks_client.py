"""HTTP client for the external task API that stores confirmed drafts."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from core.config import get_settings
from schemas.tasks import TaskDraft
from services.ai.exceptions import PersistenceRejected, Unauthenticated
from services.ai.interfaces import TaskPersistenceProtocol


logger = logging.getLogger(__name__)

_AUTH_STATUSES = {401, 403}
_VALIDATION_STATUSES = {400, 422}


def build_task_payload(draft: TaskDraft) -> dict[str, Any]:
    """Serialize a draft for the task API, dropping empty optional fields."""
    payload = draft.to_wire()
    for key in ("dueDate", "projectName"):
        if not payload.get(key):
            payload.pop(key, None)
    if not payload.get("tags"):
        payload.pop("tags", None)
    return payload


def _error_reason(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        message = body.get("message")
        if isinstance(message, list):
            message = "; ".join(str(m) for m in message)
        if message:
            return str(message)
    return f"Task API responded with {response.status_code} {response.reason_phrase}"


def classify_status(status_code: int) -> str:
    if status_code in _AUTH_STATUSES:
        return "auth_rejected"
    if status_code in _VALIDATION_STATUSES:
        return "validation_rejected"
    return "transient"


class TasksApiClient(TaskPersistenceProtocol):
    """Creates tasks through ``POST {TASKS_API_BASE_URL}/tasks``.

    ``transport`` is injectable so tests can use ``httpx.MockTransport``.
    """

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        settings = get_settings()
        self.base_url = (base_url or settings.TASKS_API_BASE_URL).rstrip("/")
        self.timeout = (
            timeout if timeout is not None else settings.PERSISTENCE_TIMEOUT_SECONDS
        )
        self._transport = transport

    async def create_task(self, draft: TaskDraft, auth_token: str) -> dict[str, Any]:
        if not auth_token:
            raise Unauthenticated()

        url = f"{self.base_url}/tasks"
        headers = {"Authorization": f"Bearer {auth_token}"}
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                response = await client.post(
                    url, json=build_task_payload(draft), headers=headers
                )
                response.raise_for_status()
        except httpx.HTTPStatusError as e:
            code = classify_status(e.response.status_code)
            reason = _error_reason(e.response)
            logger.warning(
                "Task API rejected draft %r (%s): %s", draft.title, code, reason
            )
            raise PersistenceRejected(reason, error_code=code) from e
        except httpx.TimeoutException as e:
            raise PersistenceRejected(
                f"Task API timed out after {self.timeout:.0f}s"
            ) from e
        except httpx.RequestError as e:
            raise PersistenceRejected(f"Network error: {e}") from e

        try:
            created = response.json()
        except ValueError:
            created = None
        if isinstance(created, dict):
            return created
        return build_task_payload(draft)


def get_tasks_client() -> TaskPersistenceProtocol:
    return TasksApiClient()
