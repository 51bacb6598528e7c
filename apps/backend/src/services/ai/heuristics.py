"""Deterministic, model-free text helpers used around the extraction oracle.

Includes transcript sanitation (speech-to-text cleanup), the keyword based
fallback draft used whenever the oracle is unusable, and the relevance filter
that drops drafts with no engineering content.
"""

from __future__ import annotations

import logging
import re

from schemas.tasks import (
    DEFAULT_TAG,
    TITLE_MAX_CHARS,
    ConversationContext,
    ConversationRole,
    ConversationTurn,
    TaskDraft,
    TaskPriority,
)
from services.ai.models import DraftsOutcome


logger = logging.getLogger(__name__)


# Recurring speech-to-text misrecognitions observed on dictated tickets.
_TRANSCRIPT_REPLACEMENTS: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"\bon reverse\b", re.IGNORECASE), "on driver service"),
    (re.compile(r"\breverse\b", re.IGNORECASE), "driver service"),
    (re.compile(r"\bwider(?=\s+(transaction|wallet))", re.IGNORECASE), "user"),
    (re.compile(r"\bE3\b", re.IGNORECASE), "it"),
)
_WHITESPACE = re.compile(r"\s+")

# keyword (substring of the lowercased text) -> tag; insertion order is kept
FALLBACK_TAG_KEYWORDS: dict[str, str] = {
    "implement": "implement",
    "fix": "fix",
    "bug": "bug",
    "design": "design",
    "feature": "feature",
    "wallet": "wallet",
    "auth": "authentication",
    "login": "authentication",
    "dashboard": "dashboard",
    "api": "api",
    "database": "database",
    "test": "testing",
    "deploy": "deployment",
    "trip": "trip",
    "driver": "driver",
    "service": "service",
    "payment": "payment",
    "transaction": "transaction",
}

ENGINEERING_KEYWORDS: tuple[str, ...] = (
    "bug", "deploy", "api", "endpoint", "feature", "issue", "ticket", "code",
    "refactor", "frontend", "backend", "database", "query", "ui", "ux",
    "android", "ios", "expo", "react", "nest", "server", "integration",
    "authentication", "login", "task", "sprint", "release", "test", "coverage",
    "unit test", "service", "trip", "driver", "wallet", "payment", "booking",
    "dispatch", "microservice", "workflow",
)  # fmt: skip

RELEVANT_TASK_KEYWORDS: tuple[str, ...] = (
    "bug", "fix", "implement", "build", "document", "deploy", "api", "ui", "ux",
    "android", "ios", "feature", "tests", "refactor", "optimize", "auth",
    "database", "server", "component", "design", "integration",
)  # fmt: skip

_ACTION_VERBS: tuple[str, ...] = (
    "create", "add", "update", "cancel", "accept", "implement", "build",
    "enable", "support", "optimize", "schedule", "assign",
)  # fmt: skip
_DOMAIN_NOUNS: tuple[str, ...] = (
    "service", "trip", "driver", "rider", "wallet", "payment", "transaction",
    "report", "notification", "workflow",
)  # fmt: skip

NO_TASKS_MESSAGE = (
    "No actionable software tasks detected. Please describe a bug, feature, "
    "or engineering change."
)


def sanitize_transcript(text: str | None) -> str:
    """Apply known misrecognition rewrites and collapse whitespace."""
    if not text:
        return ""
    cleaned = text
    for pattern, replacement in _TRANSCRIPT_REPLACEMENTS:
        cleaned = pattern.sub(replacement, cleaned)
    return _WHITESPACE.sub(" ", cleaned).strip()


def sanitize_history(history: ConversationContext) -> ConversationContext:
    """Sanitize user turns; assistant turns are our own text and stay as-is."""
    return tuple(
        ConversationTurn(role=turn.role, content=sanitize_transcript(turn.content))
        if turn.role is ConversationRole.USER
        else turn
        for turn in history
    )


def extract_basic_tags(text: str) -> list[str]:
    lower_text = text.lower()
    tags: list[str] = []
    for keyword, tag in FALLBACK_TAG_KEYWORDS.items():
        if keyword in lower_text and tag not in tags:
            tags.append(tag)
    return tags or [DEFAULT_TAG]


def truncate_title(text: str, limit: int = TITLE_MAX_CHARS) -> str:
    if len(text) <= limit:
        return text
    return text[:limit] + "..."


def create_fallback_outcome(transcript: str) -> DraftsOutcome:
    """Build the single heuristic draft used when the oracle is unusable.

    The description is the transcript verbatim so no user intent is lost.
    """
    logger.info("Creating fallback task draft from raw transcript")
    draft = TaskDraft(
        title=truncate_title(transcript) or "Untitled Task",
        description=transcript,
        priority=TaskPriority.MEDIUM,
        tags=extract_basic_tags(transcript),
    )
    return DraftsOutcome(drafts=(draft,), fallback=True)


def contains_engineering_keywords(text: str) -> bool:
    normalized = text.lower()
    return any(keyword in normalized for keyword in ENGINEERING_KEYWORDS)


def has_actionable_language(text: str) -> bool:
    normalized = text.lower()
    has_verb = any(f"{verb} " in normalized for verb in _ACTION_VERBS)
    has_domain_word = any(noun in normalized for noun in _DOMAIN_NOUNS)
    return has_verb and has_domain_word


def is_task_relevant(draft: TaskDraft) -> bool:
    text = f"{draft.title} {draft.description} {' '.join(draft.tags)}".lower()
    if not text.strip():
        return False
    return any(keyword in text for keyword in RELEVANT_TASK_KEYWORDS)


def filter_irrelevant_drafts(transcript: str, outcome: DraftsOutcome) -> DraftsOutcome:
    """Drop drafts with no engineering content.

    When nothing relevant remains and the transcript itself has no
    engineering context, return an empty outcome with an explanation. When the
    transcript does have context, keep the oracle's drafts unfiltered.
    """
    relevant = tuple(d for d in outcome.drafts if is_task_relevant(d))
    if relevant:
        return DraftsOutcome(drafts=relevant, summary=outcome.summary)

    transcript_has_context = contains_engineering_keywords(
        transcript
    ) or has_actionable_language(transcript)
    if not transcript_has_context:
        return DraftsOutcome(drafts=(), summary=outcome.summary or NO_TASKS_MESSAGE)
    return outcome
