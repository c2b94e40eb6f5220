"""Error taxonomy shared by the coordinator, the routers and the fan-out layer."""
from __future__ import annotations


class CoordinatorError(Exception):
    """Base class for every failure the coordinator reports to its callers."""


class NotFoundError(CoordinatorError):
    """The room (or the player inside it) does not exist."""


class InvalidStateError(CoordinatorError):
    """The operation is not legal for the room's current game/round state."""


class ValidationError(CoordinatorError):
    """Malformed input, e.g. an empty player name."""


class TransportError(CoordinatorError):
    """A send on one specific connection failed. Never fatal to the room."""

    def __init__(self, player_id: str | None, message: str) -> None:
        super().__init__(message)
        self.player_id = player_id


__all__ = [
    "CoordinatorError",
    "NotFoundError",
    "InvalidStateError",
    "ValidationError",
    "TransportError",
]
