"""Realtime task capture sessions (one coordinator per conversation room)."""

from services.realtime.coordinator import SessionCoordinator
from services.realtime.registry import RoomRegistry, get_room_registry
from services.realtime.state import SessionPhase, SessionState


__all__ = [
    "RoomRegistry",
    "SessionCoordinator",
    "SessionPhase",
    "SessionState",
    "get_room_registry",
]
