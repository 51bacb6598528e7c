"""WebSocket data channel for realtime sessions."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import WebSocket, WebSocketDisconnect
from pydantic import ValidationError
from starlette.websockets import WebSocketState

from schemas.realtime import ConfirmTasksMessage, UserTranscriptMessage, inbound_adapter
from services.ai.interfaces import DataChannelProtocol


logger = logging.getLogger(__name__)


def parse_inbound(raw: str | bytes) -> UserTranscriptMessage | ConfirmTasksMessage | None:
    """Parse one inbound frame; unknown or malformed messages yield None."""
    try:
        return inbound_adapter.validate_json(raw)
    except ValidationError as exc:
        logger.info("Ignoring unrecognised data channel message: %s", exc.errors()[:1])
        return None


class WebSocketChannel(DataChannelProtocol):
    """Publishes JSON events to the participant's socket.

    Publishing after the peer went away is logged and dropped; the receive
    loop notices the disconnect and tears the session down.
    """

    def __init__(self, websocket: WebSocket) -> None:
        self.websocket = websocket

    @property
    def is_open(self) -> bool:
        return (
            self.websocket.client_state is WebSocketState.CONNECTED
            and self.websocket.application_state is WebSocketState.CONNECTED
        )

    async def publish(self, message: dict[str, Any]) -> None:
        if not self.is_open:
            logger.debug("Dropping %s event for closed socket", message.get("type"))
            return
        try:
            await self.websocket.send_json(message)
        except (WebSocketDisconnect, RuntimeError) as exc:
            logger.warning("Failed to publish %s event: %s", message.get("type"), exc)

    async def close(self, code: int = 1000) -> None:
        if self.is_open:
            await self.websocket.close(code=code)
