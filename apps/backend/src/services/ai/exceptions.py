"""Domain exceptions for task extraction and draft persistence.

Extraction errors (``TaskExtractionError`` subclasses) are raised by the
extraction client and normalizer and are absorbed by the orchestrator, which
converts them into a heuristic fallback. Persistence errors
(``TaskPersistenceError`` subclasses) are surfaced to the caller or the
conversational model, because they need user action. Each exception carries
a stable ``error_code`` for logging and for tool results.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class TaskExtractionError(Exception):
    """Base class for extraction domain errors."""

    message: str
    error_code: str

    def __str__(self) -> str:  # pragma: no cover - trivial
        return f"{self.error_code}: {self.message}"


class OracleTimeout(TaskExtractionError):
    def __init__(self, message: str = "Extraction oracle timed out") -> None:
        super().__init__(message=message, error_code="oracle_timeout")


class OracleUnavailable(TaskExtractionError):
    def __init__(self, message: str = "Extraction oracle call failed") -> None:
        super().__init__(message=message, error_code="oracle_error")


class MalformedOracleOutput(TaskExtractionError):
    def __init__(self, message: str = "Oracle output is not valid task JSON") -> None:
        super().__init__(message=message, error_code="malformed_output")


class EmptyTranscript(TaskExtractionError):
    def __init__(self, message: str = "Transcript is required") -> None:
        super().__init__(message=message, error_code="empty_transcript")


@dataclass(slots=True)
class TaskPersistenceError(Exception):
    """Base class for errors raised while persisting confirmed drafts."""

    message: str
    error_code: str

    def __str__(self) -> str:  # pragma: no cover - trivial
        return f"{self.error_code}: {self.message}"


class Unauthenticated(TaskPersistenceError):
    def __init__(
        self,
        message: str = "Cannot create tasks without an authenticated user token.",
    ) -> None:
        super().__init__(message=message, error_code="unauthenticated")


class DraftNotPresented(TaskPersistenceError):
    def __init__(
        self, message: str = "Task was not presented to the user for confirmation."
    ) -> None:
        super().__init__(message=message, error_code="not_presented")


class ConfirmationMissing(TaskPersistenceError):
    def __init__(
        self, message: str = "The user has not confirmed the presented tasks yet."
    ) -> None:
        super().__init__(message=message, error_code="not_confirmed")


class PersistenceRejected(TaskPersistenceError):
    """The task API rejected or failed the request.

    ``error_code`` is one of ``auth_rejected``, ``validation_rejected`` or
    ``transient``; only the last one is worth retrying unchanged.
    """

    def __init__(self, message: str, error_code: str = "transient") -> None:
        super().__init__(message=message, error_code=error_code)

    @property
    def retryable(self) -> bool:
        return self.error_code == "transient"
