class DomainError(Exception):
    """Base class for domain-specific errors."""

    pass


class InvalidRoomTokenError(DomainError):
    """Raised when a realtime room token is missing, expired, or for another room."""

    pass


class RoomAlreadyActiveError(DomainError):
    """Raised when a second session tries to join a room that already has one."""

    pass
