from pydantic import BaseModel, Field


class TokenData(BaseModel):
    sub: str | None = Field(
        default=None,
        description="Subject (user identifier) of the token",
    )
    scopes: list[str] = Field(
        default_factory=list,
        description="Scopes/permissions associated with the token",
    )


class RoomTokenClaims(BaseModel):
    """Claims of a realtime room token."""

    room: str = Field(..., description="Room the token grants access to")
    sub: str = Field(..., description="Participant identity")
    metadata: str = Field(
        default="",
        description="JSON participant metadata, e.g. {userId, authToken}",
    )
