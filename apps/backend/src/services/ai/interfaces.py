"""Service interfaces for task extraction and confirmation.

This module defines protocols that keep the orchestrator, the confirmation
bridge and the realtime coordinator independent from concrete LLM providers,
HTTP clients and transports, so tests can inject plain fakes.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Protocol

from schemas.tasks import ConversationContext, TaskDraft
from services.ai.models import ExtractionOutcome


class ExtractionClientProtocol(Protocol):
    """Protocol for the text-completion oracle."""

    async def complete(self, prompt: str, timeout: float) -> str:
        """Return raw oracle text or raise a ``TaskExtractionError``."""
        ...


class TaskPersistenceProtocol(Protocol):
    """Protocol for the external task API."""

    async def create_task(self, draft: TaskDraft, auth_token: str) -> dict[str, Any]:
        """Persist one draft, returning the created task as reported by the API.

        Raises ``PersistenceRejected`` on failure.
        """
        ...


class DataChannelProtocol(Protocol):
    """Protocol for the per-room outbound data channel."""

    async def publish(self, message: dict[str, Any]) -> None:
        """Send one JSON message to the client UI."""
        ...

    async def close(self, code: int = 1000) -> None:
        """Close the channel; later publishes are dropped."""
        ...


class TaskExtractionService(ABC):
    """Abstract base class for task extraction orchestration.

    Implementations coordinate sanitization, prompt construction, the oracle
    call, normalization and the fallback policy, and never raise for oracle
    failures.
    """

    def __init__(self, client: ExtractionClientProtocol) -> None:
        self.client = client

    @abstractmethod
    async def extract(
        self, transcript: str, history: ConversationContext = ()
    ) -> ExtractionOutcome:
        """Extract drafts or a clarification question from one utterance."""
        ...
