"""Request/response schemas for the turn-based task extraction endpoints."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from .tasks import ConversationTurn, TaskDraft


class ExtractTasksRequest(BaseModel):
    """Typed or dictated transcript plus the caller-held conversation."""

    transcript: str | None = Field(
        default=None, description="Raw text to extract tasks from"
    )
    conversation_history: list[ConversationTurn] = Field(
        default_factory=list,
        alias="conversationHistory",
        description="Earlier turns, oldest first, for clarification loops",
    )

    model_config = ConfigDict(populate_by_name=True, extra="forbid")


class ExtractTasksResponse(BaseModel):
    """Outcome of one extraction turn; never carries persisted tasks."""

    success: bool
    message: str
    tasks: list[TaskDraft] = Field(default_factory=list)
    needs_clarification: bool | None = Field(
        default=None, alias="needsClarification"
    )
    clarification_question: str | None = Field(
        default=None, alias="clarificationQuestion"
    )
    error: str | None = None

    model_config = ConfigDict(populate_by_name=True)


class ConfirmTasksRequest(BaseModel):
    """The caller's confirmation of the drafts currently shown to the user."""

    confirmed: bool
    tasks: list[TaskDraft] = Field(default_factory=list)

    model_config = ConfigDict(extra="forbid")


class DraftFailure(BaseModel):
    """A draft that could not be persisted, with the reason."""

    index: int
    title: str
    error_code: str = Field(alias="errorCode")
    message: str
    retryable: bool

    model_config = ConfigDict(populate_by_name=True)


class ConfirmTasksResponse(BaseModel):
    """Per-draft persistence report."""

    success: bool
    message: str
    created: list[dict] = Field(
        default_factory=list, description="Records returned by the task API"
    )
    failed: list[DraftFailure] = Field(default_factory=list)
    discarded: int = 0
