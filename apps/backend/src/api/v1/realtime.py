"""Realtime session provisioning and the per-room WebSocket."""

from __future__ import annotations

import asyncio
import json
import logging
import time
from contextlib import suppress
from typing import Annotated

from fastapi import (
    APIRouter,
    Depends,
    HTTPException,
    Query,
    Response,
    WebSocket,
    WebSocketDisconnect,
    status,
)
from pydantic_ai import Agent

from core.config import get_settings
from core.exceptions import InvalidRoomTokenError, RoomAlreadyActiveError
from core.security import create_room_token, decode_room_token
from dependencies.auth import CurrentUserDep
from schemas.api import ApiResponse
from schemas.realtime import CreateRoomRequest, RoomAccess
from services.ai.interfaces import TaskExtractionService, TaskPersistenceProtocol
from services.ai.orchestrator import get_extraction_orchestrator
from services.realtime.agent import SessionAgentDeps, get_session_agent
from services.realtime.coordinator import SessionCoordinator
from services.realtime.registry import RoomRegistry, get_room_registry
from services.realtime.transport import WebSocketChannel, parse_inbound
from services.tasks_client import get_tasks_client


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/realtime", tags=["realtime"])
ws_router = APIRouter(prefix="/realtime", tags=["realtime"])

RegistryDep = Annotated[RoomRegistry, Depends(get_room_registry)]


def default_room_name(user_id: str) -> str:
    return f"task-conversation-{user_id}-{int(time.time() * 1000)}"


def _owned_session_or_404(
    registry: RoomRegistry, room_name: str, user_id: str
) -> SessionCoordinator:
    session = registry.get(room_name)
    if session is None or session.state.user_id != user_id:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Room not found"
        )
    return session


@router.post(
    "/rooms",
    response_model=ApiResponse[RoomAccess],
    status_code=status.HTTP_201_CREATED,
)
async def create_room(
    current_user: CurrentUserDep,
    registry: RegistryDep,
    payload: CreateRoomRequest | None = None,
) -> ApiResponse[RoomAccess]:
    """Issue a room and a signed token to join its session socket.

    The token carries the caller's id and bearer credential as participant
    metadata, so the session can persist confirmed tasks on their behalf.
    """
    room_name = (payload.room_name if payload else None) or default_room_name(
        current_user.id
    )
    if room_name in registry:
        raise RoomAlreadyActiveError(f"Room {room_name} already has a session")

    settings = get_settings()
    metadata = json.dumps({"userId": current_user.id, "authToken": current_user.token})
    token = create_room_token(room_name, f"user-{current_user.id}", metadata)
    access = RoomAccess(
        room_name=room_name,
        token=token,
        ws_url=f"{settings.REALTIME_WS_URL.rstrip('/')}/{room_name}/ws",
        expires_in=settings.ROOM_TOKEN_EXPIRE_MINUTES * 60,
    )
    logger.info("Issued room %s for user %s", room_name, current_user.id)
    return ApiResponse(success=True, data=access, message="Room created")


@router.get("/rooms", response_model=ApiResponse[list[str]])
async def list_rooms(
    current_user: CurrentUserDep, registry: RegistryDep
) -> ApiResponse[list[str]]:
    """List the caller's rooms that currently have a live session."""
    rooms = registry.rooms_for_user(current_user.id)
    return ApiResponse(success=True, data=rooms, message=f"{len(rooms)} active room(s)")


@router.delete("/rooms/{room_name}", status_code=status.HTTP_204_NO_CONTENT)
async def close_room(
    room_name: str, current_user: CurrentUserDep, registry: RegistryDep
) -> Response:
    """End the caller's live session; unconfirmed drafts are discarded."""
    session = _owned_session_or_404(registry, room_name, current_user.id)
    await session.stop()
    await session.channel.close()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@ws_router.websocket("/rooms/{room_name}/ws")
async def session_socket(
    websocket: WebSocket,
    room_name: str,
    registry: RegistryDep,
    orchestrator: Annotated[
        TaskExtractionService, Depends(get_extraction_orchestrator)
    ],
    persistence: Annotated[TaskPersistenceProtocol, Depends(get_tasks_client)],
    agent: Annotated[Agent[SessionAgentDeps, str], Depends(get_session_agent)],
    token: Annotated[str, Query()] = "",
) -> None:
    """Join a room: one coordinator per room, one dispatch loop per session."""
    try:
        claims = decode_room_token(token, room_name)
    except InvalidRoomTokenError as exc:
        logger.info("Rejected socket for room %s: %s", room_name, exc)
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    coordinator = SessionCoordinator(
        room_name,
        WebSocketChannel(websocket),
        orchestrator,
        persistence,
        metadata=claims.metadata,
        agent=agent,
    )
    # Claim the room before the first await so concurrent joins cannot both pass
    try:
        registry.register(coordinator)
    except RoomAlreadyActiveError:
        logger.info("Rejected second socket for active room %s", room_name)
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    loop_task: asyncio.Task[None] | None = None
    try:
        await websocket.accept()
        loop_task = asyncio.create_task(coordinator.run())
        while True:
            event = parse_inbound(await websocket.receive_text())
            if event is not None:
                await coordinator.submit(event)
    except (WebSocketDisconnect, RuntimeError):
        # RuntimeError: the socket was closed from our side (room closed)
        logger.info("Participant left room %s", room_name)
    finally:
        if registry.get(room_name) is coordinator:
            registry.unregister(room_name)
        if loop_task is not None:
            loop_task.cancel()
            with suppress(asyncio.CancelledError):
                await loop_task
        coordinator.close()
