"""Parse and validate raw oracle text into well-formed task drafts.

Pure functions only. Nothing that leaves this module carries raw oracle
values: priorities and statuses are coerced into their enums, tags into a
flat non-empty list, and missing titles/descriptions are defaulted.
"""

from __future__ import annotations

import json
import re
from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from schemas.tasks import TaskDraft, TaskPriority, TaskStatus
from services.ai.exceptions import MalformedOracleOutput
from services.ai.models import ClarificationNeeded, DraftsOutcome


UNTITLED_TASK = "Untitled Task"

_FENCE = re.compile(r"```(?:json)?\s*", re.IGNORECASE)


def strip_code_fences(raw: str) -> str:
    """Remove markdown code-fence wrappers the oracle sometimes emits."""
    return _FENCE.sub("", raw.strip()).strip()


def coerce_priority(value: Any) -> TaskPriority:
    if isinstance(value, TaskPriority):
        return value
    if isinstance(value, str):
        try:
            return TaskPriority(value.strip().lower())
        except ValueError:
            pass
    return TaskPriority.MEDIUM


def coerce_status(value: Any) -> TaskStatus:
    if isinstance(value, TaskStatus):
        return value
    if isinstance(value, str):
        candidate = value.strip().lower().replace("_", "-").replace(" ", "-")
        try:
            return TaskStatus(candidate)
        except ValueError:
            pass
    return TaskStatus.TODO


def coerce_tags(value: Any) -> list[str]:
    if isinstance(value, str):
        value = value.split(",")
    if not isinstance(value, list | tuple):
        return []
    return [str(tag).strip() for tag in value if str(tag).strip()]


def _text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def normalize_task(item: Mapping[str, Any]) -> TaskDraft:
    """Coerce one oracle task object into a valid draft."""
    title = _text(item.get("title")) or UNTITLED_TASK
    description = _text(item.get("description")) or title
    due_date = item.get("dueDate", item.get("due_date"))
    project_name = item.get("projectName", item.get("project_name"))
    return TaskDraft(
        title=title,
        description=description,
        priority=coerce_priority(item.get("priority")),
        tags=coerce_tags(item.get("tags")),
        due_date=due_date if isinstance(due_date, str) else None,
        status=coerce_status(item.get("status")),
        project_name=project_name if isinstance(project_name, str) else None,
    )


def normalize_draft(draft: TaskDraft) -> TaskDraft:
    """Re-run normalization on an existing draft (idempotent)."""
    return normalize_task(draft.model_dump(mode="json", by_alias=True))


def parse_oracle_output(raw: str) -> DraftsOutcome | ClarificationNeeded:
    """Turn raw oracle text into an outcome or raise ``MalformedOracleOutput``."""
    cleaned = strip_code_fences(raw or "")
    if not cleaned:
        raise MalformedOracleOutput("Oracle returned an empty response")
    try:
        parsed = json.loads(cleaned)
    except json.JSONDecodeError as exc:
        raise MalformedOracleOutput(f"Oracle output is not JSON: {exc.msg}") from exc

    if not isinstance(parsed, dict):
        raise MalformedOracleOutput("Oracle output is not a JSON object")

    question = parsed.get("clarificationQuestion")
    if parsed.get("needsClarification") and isinstance(question, str) and question.strip():
        return ClarificationNeeded(question=question.strip())

    tasks = parsed.get("tasks")
    if not isinstance(tasks, list):
        raise MalformedOracleOutput("Oracle output has no 'tasks' array")

    try:
        drafts = tuple(
            normalize_task(item) for item in tasks if isinstance(item, Mapping)
        )
    except ValidationError as exc:
        raise MalformedOracleOutput(f"Task failed validation: {exc}") from exc

    summary = parsed.get("message") or parsed.get("reason")
    return DraftsOutcome(
        drafts=drafts, summary=summary if isinstance(summary, str) else None
    )
