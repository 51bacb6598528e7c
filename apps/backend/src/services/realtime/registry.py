"""Process-local registry of active realtime sessions."""

from __future__ import annotations

import logging
from functools import lru_cache

from core.exceptions import RoomAlreadyActiveError
from services.realtime.coordinator import SessionCoordinator


logger = logging.getLogger(__name__)


class RoomRegistry:
    """Maps room names to their single live coordinator."""

    def __init__(self) -> None:
        self._sessions: dict[str, SessionCoordinator] = {}

    def __contains__(self, room_name: object) -> bool:
        return room_name in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)

    def register(self, coordinator: SessionCoordinator) -> SessionCoordinator:
        room_name = coordinator.room_name
        if room_name in self._sessions:
            raise RoomAlreadyActiveError(f"Room {room_name} already has a session")
        self._sessions[room_name] = coordinator
        logger.debug("Registered session for room %s", room_name)
        return coordinator

    def get(self, room_name: str) -> SessionCoordinator | None:
        return self._sessions.get(room_name)

    def unregister(self, room_name: str) -> SessionCoordinator | None:
        return self._sessions.pop(room_name, None)

    def rooms_for_user(self, user_id: str) -> list[str]:
        return sorted(
            name
            for name, session in self._sessions.items()
            if session.state.user_id == user_id
        )


@lru_cache
def get_room_registry() -> RoomRegistry:
    return RoomRegistry()
