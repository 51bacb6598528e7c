import logging
from datetime import UTC, datetime, timedelta
from typing import Any

from fastapi import HTTPException, status
from jose import JWTError, jwt

from core.config import Settings, get_settings
from core.exceptions import InvalidRoomTokenError
from schemas.auth import RoomTokenClaims, TokenData


def _settings() -> Settings:  # lazy accessor to allow tests to set env first
    return get_settings()


# Module logger for security helpers
_logger = logging.getLogger(__name__)

ROOM_TOKEN_TYPE = "room"


def decode_token(token: str) -> TokenData:
    """Decode and validate a JWT, returning TokenData or raising 401.

    Expects a `sub` claim (user identifier). Also supports optional `scopes`.
    """
    try:
        s = _settings()
        payload = jwt.decode(
            token,
            s.SECRET_KEY,
            algorithms=[s.ALGORITHM],
            options={"verify_aud": False},
        )
    except JWTError as err:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        ) from err

    sub = payload.get("sub")
    scopes = payload.get("scopes", [])
    if sub is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token missing subject",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return TokenData(
        sub=str(sub),
        scopes=list(scopes) if isinstance(scopes, list) else [],
    )


def create_room_token(
    room_name: str,
    identity: str,
    metadata: str,
    exp_delta: timedelta | None = None,
) -> str:
    """Create a signed JWT granting one participant access to one room.

    Args:
        room_name: The room the token is bound to
        identity: Participant identity (e.g. ``user-<id>``)
        metadata: JSON participant metadata (``{userId, authToken}``)
        exp_delta: Optional expiration delta, defaults to ROOM_TOKEN_EXPIRE_MINUTES

    Returns:
        Signed JWT token containing room, sub, metadata and expiration
    """
    s = _settings()
    if exp_delta is None:
        exp_delta = timedelta(minutes=s.ROOM_TOKEN_EXPIRE_MINUTES)

    payload = {
        "room": room_name,
        "sub": identity,
        "metadata": metadata,
        "type": ROOM_TOKEN_TYPE,
        "exp": datetime.now(UTC) + exp_delta,
    }
    return jwt.encode(payload, s.SECRET_KEY, algorithm=s.ALGORITHM)


def decode_room_token(token: str, room_name: str) -> RoomTokenClaims:
    """Decode a room token and check it is bound to ``room_name``.

    Raises:
        InvalidRoomTokenError: if the token is invalid, expired, malformed or
            issued for a different room
    """
    try:
        s = _settings()
        payload = jwt.decode(
            token,
            s.SECRET_KEY,
            algorithms=[s.ALGORITHM],
            options={"verify_aud": False},
        )
    except JWTError as err:
        raise InvalidRoomTokenError("Invalid or expired room token") from err

    if payload.get("type") != ROOM_TOKEN_TYPE or not payload.get("sub"):
        raise InvalidRoomTokenError("Malformed room token")
    if payload.get("room") != room_name:
        _logger.warning("Room token presented for the wrong room")
        raise InvalidRoomTokenError("Room token is not valid for this room")

    return RoomTokenClaims(
        room=payload["room"],
        sub=str(payload["sub"]),
        metadata=str(payload.get("metadata") or ""),
    )
