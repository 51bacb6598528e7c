"""Outcome types returned by the extraction orchestrator.

``ExtractionOutcome`` is a closed union; exactly one case is active:

* DraftsOutcome        - zero or more normalized drafts (``fallback`` marks a
  heuristic result produced because the oracle was unusable).
* ClarificationNeeded  - the oracle asked a follow-up question instead.
* ExtractionFailed     - internal only; the orchestrator converts it into a
  fallback ``DraftsOutcome`` before returning, so callers never see it.

Callers branch with ``match`` or ``isinstance`` instead of probing dict keys.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from schemas.tasks import TaskDraft


@dataclass(slots=True, frozen=True)
class DraftsOutcome:
    drafts: tuple[TaskDraft, ...]
    summary: str | None = None
    fallback: bool = False


@dataclass(slots=True, frozen=True)
class ClarificationNeeded:
    question: str


@dataclass(slots=True, frozen=True)
class ExtractionFailed:
    reason: str
    error_code: str = field(default="oracle_error")


ExtractionOutcome = DraftsOutcome | ClarificationNeeded
InternalOutcome = DraftsOutcome | ClarificationNeeded | ExtractionFailed
