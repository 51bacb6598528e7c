"""Task draft and conversation schemas shared by both transports.

Field names follow the mobile client's camelCase wire format through aliases
(``dueDate``, ``projectName``); Python code uses snake_case attributes.
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


DEFAULT_TAG = "general"
TITLE_MAX_CHARS = 60


class TaskPriority(str, Enum):
    """Priority of a task."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class TaskStatus(str, Enum):
    """Workflow status of a task."""

    TODO = "todo"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"


class ConversationRole(str, Enum):
    """Speaker of a conversation turn."""

    USER = "user"
    ASSISTANT = "assistant"


class TaskDraft(BaseModel):
    """Candidate task extracted from an utterance, not yet persisted."""

    title: Annotated[
        str, Field(min_length=1, description="Concise, action-oriented title")
    ]
    description: str = Field(
        default="", description="One or two sentence summary of the task"
    )
    priority: TaskPriority = Field(
        default=TaskPriority.MEDIUM,
        description="low | medium | high | urgent. Default to medium when unstated",
    )
    tags: list[str] = Field(
        default_factory=lambda: [DEFAULT_TAG],
        description="Short lowercase tags such as bug, api, authentication",
    )
    due_date: str | None = Field(
        default=None,
        alias="dueDate",
        description="ISO 8601 date (YYYY-MM-DD). Convert natural language first",
    )
    status: TaskStatus = Field(
        default=TaskStatus.TODO,
        description="Default to todo unless the user says otherwise",
    )
    project_name: str | None = Field(
        default=None, alias="projectName", description="Project, when mentioned"
    )

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    @field_validator("title")
    @classmethod
    def _strip_title(cls, v: str) -> str:
        stripped = v.strip()
        if not stripped:
            raise ValueError("title must not be blank")
        return stripped

    @field_validator("tags", mode="before")
    @classmethod
    def _non_empty_tags(cls, v: Any) -> list[str]:
        if v is None:
            return [DEFAULT_TAG]
        if isinstance(v, str):
            v = [v]
        cleaned: list[str] = []
        for item in v:
            if not isinstance(item, str):
                continue
            tag = item.strip()
            if tag and tag not in cleaned:
                cleaned.append(tag)
        return cleaned or [DEFAULT_TAG]

    @field_validator("description", mode="before")
    @classmethod
    def _description_text(cls, v: Any) -> Any:
        return "" if v is None else v

    @field_validator("due_date", "project_name", mode="before")
    @classmethod
    def _blank_to_none(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    def model_post_init(self, __context: Any) -> None:
        if not self.description.strip():
            self.description = self.title

    def to_wire(self) -> dict[str, Any]:
        """Serialize with camelCase keys and enum values, as the client expects."""
        return self.model_dump(mode="json", by_alias=True)


class ConversationTurn(BaseModel):
    """One exchange in a conversation; ``ai`` is accepted for ``assistant``."""

    role: ConversationRole
    content: str

    model_config = ConfigDict(frozen=True)

    @field_validator("role", mode="before")
    @classmethod
    def _map_ai_role(cls, v: Any) -> Any:
        if isinstance(v, str) and v.lower() == "ai":
            return ConversationRole.ASSISTANT
        return v


# Chronological, append-only sequence of turns.
ConversationContext = tuple[ConversationTurn, ...]
