"""Conversational agent that drives a realtime task capture session."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from functools import lru_cache
from typing import Annotated, Any

from httpx import AsyncClient, HTTPStatusError
from pydantic import Field
from pydantic_ai import Agent, RunContext
from pydantic_ai.models import Model
from pydantic_ai.retries import AsyncTenacityTransport, RetryConfig, wait_retry_after
from tenacity import retry_if_exception_type, stop_after_attempt, wait_exponential

from schemas.tasks import TaskDraft
from services.ai.model_factory import get_chat_model
from services.realtime.actions import ActionDispatcher, PersistDraft, PresentDrafts
from services.realtime.state import SessionState


logger = logging.getLogger(__name__)


# pydantic-ai tool-call retries (argument validation / ModelRetry), distinct
# from HTTP transport retries.
_TOOL_CALL_RETRIES = 2


SESSION_SYSTEM_PROMPT = """
You are TaskMate, a friendly AI that helps busy professionals capture tasks
accurately by voice.

Workflow:
1. Listen for the user to describe what they need to do. Let them speak
   naturally. Each of their utterances is first run through a task extractor
   and you receive its result together with what the user said.
2. When the extractor returns tasks, call present_drafts with the tasks
   (adjusted if the user gave extra details). This also sends the list to the
   mobile app UI, so read a short summary naturally and then ask for
   confirmation.
3. When the extractor asks a clarification question, ask the user exactly
   that question. When it found no tasks, explain why briefly.
4. Wait for explicit confirmation ("yes", "looks good", or the UI confirm
   button which sends you a text message). Only after a clear confirmation
   call persist_draft once for each presented task.
5. After saving, acknowledge success and ask if the user wants to capture
   more work.

Guidelines:
- Be conversational, short, and confident. Your replies are spoken aloud.
- Rephrase unclear details instead of asking many rapid-fire questions.
- Never create a task unless it was confirmed in step 4.
- If the user rejects your summary, adjust the tasks and call present_drafts
  again before saving.
- If persist_draft returns an error, tell the user what went wrong. Retry
  only when the error is marked retryable.
"""


@dataclass(frozen=True)
class SessionAgentDeps:
    """Dependencies injected into the session agent context."""

    dispatcher: ActionDispatcher
    current_datetime: datetime

    @property
    def state(self) -> SessionState:
        return self.dispatcher.session.state


# ---------------------------------------------------------------------------
# Tools
# ---------------------------------------------------------------------------


async def tool_present_drafts(
    ctx: RunContext[SessionAgentDeps],
    tasks: Annotated[list[TaskDraft], Field(min_length=1)],
    summary: str | None = None,
) -> dict[str, Any]:
    """Show the tasks to the user before saving them.

    Use this to restate everything that will be created. Calling it again
    replaces the list the user is looking at and requires a new confirmation.

    Args:
        tasks: The complete list of tasks to show.
        summary: Short natural language recap you will read back to the user.
    """
    return await ctx.deps.dispatcher.dispatch(
        PresentDrafts(drafts=tuple(tasks), summary=summary)
    )


async def tool_persist_draft(
    ctx: RunContext[SessionAgentDeps],
    task: TaskDraft,
) -> dict[str, Any]:
    """Save one confirmed task to the user's task list.

    Only call this after the user explicitly agreed to the presented tasks.
    The task must be one of the tasks shown with present_drafts.

    Args:
        task: The presented task to save.
    """
    return await ctx.deps.dispatcher.dispatch(PersistDraft(draft=task))


# ---------------------------------------------------------------------------
# Agent construction
# ---------------------------------------------------------------------------


def build_session_context_instructions(state: SessionState, now: datetime) -> str:
    """Describe today's date and the pending confirmation for the model."""
    lines = [
        "\n\nCURRENT DATE:",
        f"Today (ISO): {now.date().isoformat()}. Convert relative due dates "
        "such as 'tomorrow' into YYYY-MM-DD.",
    ]
    pending = state.pending
    if pending is None:
        lines.append("\nNo tasks are waiting for confirmation.")
    else:
        lines.append("\nTASKS SHOWN TO THE USER, WAITING FOR CONFIRMATION:")
        done = pending.persisted_indices
        for index, draft in enumerate(pending.drafts):
            marker = "saved" if index in done else "not saved"
            lines.append(f"- {draft.title} ({draft.priority.value}, {marker})")
    if not state.is_authenticated:
        lines.append(
            "\nThe user is not signed in: tasks cannot be saved in this session."
        )
    return "\n".join(lines)


def _create_resilient_http_client() -> AsyncClient:
    """Create an HTTP client with exponential backoff retries for transient errors.

    Handles API overload (503), rate limits (429), and gateway errors.
    """

    def should_retry_status(response: Any) -> None:
        if response.status_code in (429, 502, 503, 504):
            response.raise_for_status()

    transport = AsyncTenacityTransport(
        config=RetryConfig(
            retry=retry_if_exception_type(HTTPStatusError),
            wait=wait_retry_after(
                fallback_strategy=wait_exponential(multiplier=1, min=1, max=8),
                max_wait=15,
            ),
            stop=stop_after_attempt(3),
            reraise=True,
        ),
        validate_response=should_retry_status,
    )
    return AsyncClient(transport=transport, timeout=60)


def _create_model() -> Model:
    return get_chat_model(http_client=_create_resilient_http_client())


def build_session_agent(model: Model | str) -> Agent[SessionAgentDeps, str]:
    """Build the session agent around any pydantic-ai model (tests pass TestModel)."""
    agent: Agent[SessionAgentDeps, str] = Agent(
        model,
        instructions=SESSION_SYSTEM_PROMPT,
        deps_type=SessionAgentDeps,
        output_type=str,
        name="TaskMate",
        retries=2,
    )

    @agent.instructions
    def add_session_context(ctx: RunContext[SessionAgentDeps]) -> str:
        return build_session_context_instructions(
            ctx.deps.state, ctx.deps.current_datetime
        )

    agent.tool(name="present_drafts", retries=_TOOL_CALL_RETRIES)(tool_present_drafts)
    agent.tool(name="persist_draft", retries=_TOOL_CALL_RETRIES)(tool_persist_draft)
    return agent


@lru_cache
def get_session_agent() -> Agent[SessionAgentDeps, str]:
    """Create and cache the realtime session agent.

    Uses the centralized model factory with a retrying HTTP client, so
    transient provider errors (503 overload, 429) are retried with backoff.
    """
    return build_session_agent(_create_model())


def make_deps(dispatcher: ActionDispatcher) -> SessionAgentDeps:
    return SessionAgentDeps(dispatcher=dispatcher, current_datetime=datetime.now(UTC))
