"""Tests for inbound message parsing and the WebSocket data channel."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import WebSocketDisconnect
from starlette.websockets import WebSocketState

from schemas.realtime import ConfirmTasksMessage, UserTranscriptMessage
from services.realtime.transport import WebSocketChannel, parse_inbound


def _socket(state: WebSocketState = WebSocketState.CONNECTED) -> MagicMock:
    ws = MagicMock()
    ws.client_state = state
    ws.application_state = state
    ws.send_json = AsyncMock()
    ws.close = AsyncMock()
    return ws


def test_parse_inbound_transcript_defaults_to_final():
    event = parse_inbound('{"type": "user_transcript", "text": "fix it"}')
    assert event == UserTranscriptMessage(text="fix it", is_final=True)


def test_parse_inbound_partial_transcript():
    event = parse_inbound(b'{"type": "user_transcript", "text": "fi", "isFinal": false}')
    assert isinstance(event, UserTranscriptMessage)
    assert event.is_final is False


def test_parse_inbound_confirmation():
    assert parse_inbound('{"type": "confirm_tasks", "confirmed": true}') == (
        ConfirmTasksMessage(confirmed=True)
    )


@pytest.mark.parametrize(
    "raw",
    ["not json", '{"type": "ping"}', '{"type": "confirm_tasks"}', "[]"],
)
def test_parse_inbound_ignores_unknown_messages(raw):
    assert parse_inbound(raw) is None


@pytest.mark.asyncio
async def test_publish_sends_json_when_connected():
    ws = _socket()
    await WebSocketChannel(ws).publish({"type": "agent_reply", "text": "hi"})
    ws.send_json.assert_awaited_once_with({"type": "agent_reply", "text": "hi"})


@pytest.mark.asyncio
async def test_publish_after_disconnect_is_dropped():
    ws = _socket(WebSocketState.DISCONNECTED)
    channel = WebSocketChannel(ws)

    await channel.publish({"type": "agent_reply", "text": "hi"})
    await channel.close()

    ws.send_json.assert_not_awaited()
    ws.close.assert_not_awaited()


@pytest.mark.asyncio
async def test_publish_swallows_disconnect_race():
    ws = _socket()
    ws.send_json.side_effect = WebSocketDisconnect(code=1001)

    await WebSocketChannel(ws).publish({"type": "error", "message": "x"})

    ws.send_json.assert_awaited_once()


@pytest.mark.asyncio
async def test_close_uses_given_code():
    ws = _socket()
    await WebSocketChannel(ws).close(code=1008)
    ws.close.assert_awaited_once_with(code=1008)
