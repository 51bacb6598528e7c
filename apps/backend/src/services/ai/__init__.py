"""Task extraction services: oracle client, normalizer and orchestrator."""

from .models import ClarificationNeeded, DraftsOutcome, ExtractionOutcome
from .orchestrator import ExtractionOrchestrator, get_extraction_orchestrator


__all__ = [
    "ClarificationNeeded",
    "DraftsOutcome",
    "ExtractionOrchestrator",
    "ExtractionOutcome",
    "get_extraction_orchestrator",
]
