"""Per-room session state for realtime task capture.

``SessionState`` is immutable; every event produces a new value through one
of the transition methods below, and the coordinator swaps it in. Phases:

    LISTENING -> EXTRACTING -> AWAITING_CONFIRMATION -> LISTENING
    EXTRACTING -> LISTENING   (clarification asked, or no tasks found)
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any

from schemas.tasks import (
    ConversationContext,
    ConversationRole,
    ConversationTurn,
    TaskDraft,
)
from services.confirmation import DraftResult, PendingConfirmation


logger = logging.getLogger(__name__)

PLACEHOLDER_USER_ID = "pending-user"


class SessionPhase(str, Enum):
    LISTENING = "listening"
    EXTRACTING = "extracting"
    AWAITING_CONFIRMATION = "awaiting_confirmation"


@dataclass(frozen=True, slots=True)
class ParticipantIdentity:
    user_id: str = PLACEHOLDER_USER_ID
    auth_token: str | None = None


def parse_participant_metadata(metadata: str | dict[str, Any] | None) -> ParticipantIdentity:
    """Read ``{userId, authToken}`` from connection metadata.

    Anything unparseable leaves the placeholder identity with no credential.
    """
    if not metadata:
        return ParticipantIdentity()
    if isinstance(metadata, str):
        try:
            parsed = json.loads(metadata)
        except json.JSONDecodeError:
            logger.warning("Ignoring unparseable participant metadata")
            return ParticipantIdentity()
    else:
        parsed = metadata
    if not isinstance(parsed, dict):
        return ParticipantIdentity()

    user_id = parsed.get("userId")
    auth_token = parsed.get("authToken")
    return ParticipantIdentity(
        user_id=user_id if isinstance(user_id, str) and user_id else PLACEHOLDER_USER_ID,
        auth_token=auth_token if isinstance(auth_token, str) and auth_token else None,
    )


@dataclass(frozen=True, slots=True)
class SessionState:
    room_name: str
    user_id: str = PLACEHOLDER_USER_ID
    auth_token: str | None = None
    phase: SessionPhase = SessionPhase.LISTENING
    context: ConversationContext = ()
    pending: PendingConfirmation | None = None
    turn: int = 0

    @classmethod
    def open(
        cls, room_name: str, metadata: str | dict[str, Any] | None = None
    ) -> SessionState:
        identity = parse_participant_metadata(metadata)
        return cls(
            room_name=room_name,
            user_id=identity.user_id,
            auth_token=identity.auth_token,
        )

    @property
    def is_authenticated(self) -> bool:
        return bool(self.auth_token)

    @property
    def awaiting_confirmation(self) -> bool:
        return self.phase is SessionPhase.AWAITING_CONFIRMATION and self.pending is not None

    @property
    def confirmation_signalled(self) -> bool:
        """True once the user spoke, or pressed confirm, after presentation."""
        if self.pending is None:
            return False
        return self.pending.affirmed or self.turn > self.pending.presented_at_turn

    def with_user_turn(self, text: str) -> SessionState:
        turn = ConversationTurn(role=ConversationRole.USER, content=text)
        return replace(self, context=(*self.context, turn), turn=self.turn + 1)

    def with_assistant_turn(self, text: str) -> SessionState:
        if not text.strip():
            return self
        turn = ConversationTurn(role=ConversationRole.ASSISTANT, content=text)
        return replace(self, context=(*self.context, turn))

    def begin_extraction(self) -> SessionState:
        return replace(self, phase=SessionPhase.EXTRACTING)

    def back_to_listening(self) -> SessionState:
        return replace(self, phase=SessionPhase.LISTENING)

    def present(self, drafts: Iterable[TaskDraft], summary: str | None = None) -> SessionState:
        """Show a (new or edited) draft set; any earlier set and its signal is dropped."""
        pending = PendingConfirmation.present(drafts, turn=self.turn, summary=summary)
        return replace(self, pending=pending, phase=SessionPhase.AWAITING_CONFIRMATION)

    def affirm(self) -> SessionState:
        if self.pending is None:
            return self
        return replace(self, pending=self.pending.affirm())

    def discard_pending(self) -> SessionState:
        return replace(self, pending=None, phase=SessionPhase.LISTENING)

    def record_result(self, result: DraftResult) -> SessionState:
        """Store one draft's outcome; a fully persisted set ends the confirmation."""
        if self.pending is None:
            return self
        pending = self.pending.record(result)
        if pending.is_complete:
            return replace(self, pending=None, phase=SessionPhase.LISTENING)
        return replace(self, pending=pending)
