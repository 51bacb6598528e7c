"""Focused unit tests for global exception handling behaviors.

These tests exercise the public contract via FastAPI test app using the installed
exception handler and ExceptionNormalizationMiddleware.
"""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from fastapi import FastAPI, HTTPException, status
from fastapi.exceptions import RequestValidationError
from fastapi.testclient import TestClient
from pydantic import BaseModel, Field

from core.error_handler import (
    ExceptionNormalizationMiddleware,
    global_exception_handler,
)
from core.exceptions import DomainError, InvalidRoomTokenError, RoomAlreadyActiveError
from core.middleware import CorrelationIdMiddleware


class Item(BaseModel):
    name: str = Field(min_length=3)
    qty: int = Field(ge=1)


def build_test_app() -> FastAPI:
    app = FastAPI()
    app.add_middleware(CorrelationIdMiddleware)
    app.add_middleware(ExceptionNormalizationMiddleware)
    app.add_exception_handler(Exception, global_exception_handler)
    app.add_exception_handler(HTTPException, global_exception_handler)
    app.add_exception_handler(RequestValidationError, global_exception_handler)
    app.add_exception_handler(DomainError, global_exception_handler)

    @app.post("/items")
    async def create_item(item: Item):  # pragma: no cover - executed via client
        return {"ok": True, "item": item.model_dump()}

    @app.get("/domain-room-token")
    async def domain_room_token():
        raise InvalidRoomTokenError("Room token is not valid for this room")

    @app.get("/domain-room-active")
    async def domain_room_active():
        raise RoomAlreadyActiveError("Room standup already has a session")

    @app.get("/domain-generic")
    async def domain_generic():
        raise DomainError("Something domain specific")

    @app.get("/boom")
    async def boom():
        raise RuntimeError("Exploded with secret=should_not_leak")

    @app.get("/unauthorized")
    async def unauthorized():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    @app.get("/forbidden")
    async def forbidden():
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied",
        )

    return app


@pytest.fixture
def make_client(monkeypatch: pytest.MonkeyPatch):
    """Build the test app with the error handler seeing the given environment."""

    def _make(env: str) -> TestClient:
        settings = MagicMock()
        settings.ENVIRONMENT = env
        monkeypatch.setattr("core.error_handler.get_settings", lambda: settings)
        return TestClient(build_test_app())

    return _make


def test_validation_error_production(make_client):
    client = make_client("production")
    resp = client.post("/items", json={"name": "ab", "qty": 0})
    assert resp.status_code == 422
    data = resp.json()
    assert data["error"]["type"] == "validation_error"
    # production should not include validation_errors
    assert "validation_errors" not in data["error"]


def test_validation_error_development(make_client):
    client = make_client("development")
    resp = client.post("/items", json={"name": "ab", "qty": 0})
    assert resp.status_code == 422
    data = resp.json()
    assert "validation_errors" in data["error"]


def test_invalid_room_token_production(make_client):
    client = make_client("production")
    resp = client.get("/domain-room-token")
    assert resp.status_code == 401
    data = resp.json()
    assert data["error"]["type"] == "domain_error"
    assert data["message"] == "The room token is invalid or expired"
    assert "details" not in data["error"]


def test_room_already_active_development(make_client):
    client = make_client("development")
    resp = client.get("/domain-room-active")
    assert resp.status_code == 409
    data = resp.json()
    assert data["error"]["type"] == "domain_error"
    assert data["error"]["details"]["detail"] == "Room standup already has a session"


def test_unmapped_domain_error_is_bad_request(make_client):
    client = make_client("production")
    resp = client.get("/domain-generic")
    assert resp.status_code == 400
    assert resp.json()["error"]["type"] == "domain_error"


def test_generic_exception_production(make_client):
    client = make_client("production")
    resp = client.get("/boom")
    assert resp.status_code == 500
    body = resp.json()
    assert body["error"]["type"] == "internal_server_error"
    assert "traceback" not in body["error"]
    assert "secret=should_not_leak" not in str(body)


def test_generic_exception_development(make_client):
    client = make_client("development")
    resp = client.get("/boom")
    assert resp.status_code == 500
    body = resp.json()
    assert body["error"]["type"] == "internal_server_error"
    assert "traceback" in body["error"]


def test_unauthorized_error_production(make_client):
    """401 keeps its WWW-Authenticate header and hides details in production."""
    client = make_client("production")
    resp = client.get("/unauthorized")
    assert resp.status_code == 401
    assert resp.headers["WWW-Authenticate"] == "Bearer"
    body = resp.json()
    assert body["error"]["type"] == "http_error"
    assert body["error"]["correlation_id"]
    assert body["success"] is False
    assert "details" not in body["error"]


def test_unauthorized_error_development(make_client):
    """Test that 401 HTTPException includes details in development."""
    client = make_client("development")
    resp = client.get("/unauthorized")
    assert resp.status_code == 401
    body = resp.json()
    assert body["error"]["details"]["detail"] == "Could not validate credentials"


def test_forbidden_error_development(make_client):
    client = make_client("development")
    resp = client.get("/forbidden")
    assert resp.status_code == 403
    body = resp.json()
    assert body["error"]["type"] == "http_error"
    assert body["error"]["details"]["detail"] == "Access denied"
