"""Data channel messages and room provisioning schemas for realtime sessions."""

from __future__ import annotations

from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from .tasks import TaskDraft


# ---------------------------------------------------------------------------
# Inbound (client UI / speech pipeline -> session)
# ---------------------------------------------------------------------------


class UserTranscriptMessage(BaseModel):
    """Speech-to-text output for one utterance (partial or final)."""

    type: Literal["user_transcript"] = "user_transcript"
    text: str = ""
    is_final: bool = Field(default=True, alias="isFinal")

    model_config = ConfigDict(populate_by_name=True)


class ConfirmTasksMessage(BaseModel):
    """Confirm or reject button pressed in the client UI."""

    type: Literal["confirm_tasks"] = "confirm_tasks"
    confirmed: bool


InboundMessage = Annotated[
    UserTranscriptMessage | ConfirmTasksMessage, Field(discriminator="type")
]

inbound_adapter: TypeAdapter[UserTranscriptMessage | ConfirmTasksMessage] = TypeAdapter(
    InboundMessage
)


# ---------------------------------------------------------------------------
# Outbound (session -> client UI / speech pipeline)
# ---------------------------------------------------------------------------


def transcript_event(text: str, is_final: bool) -> dict[str, Any]:
    return {"type": "transcript", "text": text, "isFinal": is_final}


def tasks_extracted_event(
    drafts: list[TaskDraft] | tuple[TaskDraft, ...], summary: str | None = None
) -> dict[str, Any]:
    event: dict[str, Any] = {
        "type": "tasks_extracted",
        "tasks": [draft.to_wire() for draft in drafts],
    }
    if summary:
        event["summary"] = summary
    return event


def task_created_event(task: dict[str, Any]) -> dict[str, Any]:
    return {"type": "task_created", "task": task}


def agent_reply_event(text: str) -> dict[str, Any]:
    """Assistant text for the external text-to-speech pipeline."""
    return {"type": "agent_reply", "text": text}


def error_event(message: str) -> dict[str, Any]:
    return {"type": "error", "message": message}


# ---------------------------------------------------------------------------
# Room provisioning
# ---------------------------------------------------------------------------


class CreateRoomRequest(BaseModel):
    room_name: str | None = Field(
        default=None,
        alias="roomName",
        min_length=1,
        max_length=128,
        pattern=r"^[A-Za-z0-9_\-]+$",
    )

    model_config = ConfigDict(populate_by_name=True, extra="forbid")


class RoomAccess(BaseModel):
    room_name: str = Field(alias="roomName")
    token: str
    ws_url: str = Field(alias="wsUrl")
    expires_in: int = Field(alias="expiresIn", description="Seconds until expiry")

    model_config = ConfigDict(populate_by_name=True)
