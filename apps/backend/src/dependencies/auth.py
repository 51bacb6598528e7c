from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer

from core.security import decode_token


# --------------------------------------------------------------------------- #
# Common constants / helpers
# --------------------------------------------------------------------------- #
LOGGER = logging.getLogger(__name__)
BEARER = "Bearer"


def unauthorized(detail: str = "Could not validate credentials") -> HTTPException:
    """Return the canonical 401 response."""
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": BEARER},
    )


# Tokens are issued by the external auth service; tokenUrl only documents it
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login")


@dataclass(frozen=True, slots=True)
class CurrentUser:
    """Authenticated caller: the token subject plus the raw bearer token.

    The raw token is forwarded to the task API when confirmed drafts are
    persisted on the caller's behalf.
    """

    id: str
    token: str


# --------------------------------------------------------------------------- #
# The dependency
# --------------------------------------------------------------------------- #
async def get_current_user(
    token: Annotated[str, Depends(oauth2_scheme)],
) -> CurrentUser:
    """
    Resolve the currently authenticated user from a JWT.

    Raises
    ------
    HTTPException(401)
        If the token is missing, malformed, expired, or has no subject.
    """

    # `decode_token` raises HTTPException(401) on failure; let it surface.
    token_data = decode_token(token)

    sub = getattr(token_data, "sub", None)
    if not sub:
        LOGGER.debug("Token missing 'sub' claim")
        raise unauthorized()

    return CurrentUser(id=sub, token=token)


CurrentUserDep = Annotated[CurrentUser, Depends(get_current_user)]
