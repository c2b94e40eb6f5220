from __future__ import annotations

import asyncio
import logging
from typing import Dict, List, Optional, Protocol

from starlette.websockets import WebSocketState

from .constants import DEFAULT_SEND_TIMEOUT_SEC, GAME_NOT_STARTED, ROUND_NOT_STARTED
from .errors import InvalidStateError, TransportError
from .messages import serialize_message
from .schemas import CamelModel, Player, RoomState, RoundData

logger = logging.getLogger(__name__)

# NOTE: round rules live in ``boxcount.game_logic``; ``Room`` only holds state
# and the connection registry.


class Connection(Protocol):
    """The slice of :class:`starlette.websockets.WebSocket` the room relies on."""

    client_state: WebSocketState
    application_state: WebSocketState

    async def send_text(self, data: str) -> None: ...

    async def close(self, code: int = 1000, reason: Optional[str] = None) -> None: ...


def is_open(connection: Connection) -> bool:
    return (
        connection.client_state == WebSocketState.CONNECTED
        and connection.application_state == WebSocketState.CONNECTED
    )


async def send_raw(
    connection: Connection,
    data: str,
    player_id: Optional[str] = None,
    timeout: float = DEFAULT_SEND_TIMEOUT_SEC,
) -> None:
    """Write one serialized frame; any failure surfaces as :class:`TransportError`.

    A peer that stops reading makes ``send_text`` wait on backpressure, so the
    write is bounded by *timeout* seconds.
    """
    if not is_open(connection):
        raise TransportError(player_id, "connection is not open")
    try:
        await asyncio.wait_for(connection.send_text(data), timeout)
    except asyncio.TimeoutError as exc:
        raise TransportError(player_id, f"send timed out after {timeout}s") from exc
    except Exception as exc:
        raise TransportError(player_id, f"send failed: {exc!r}") from exc


async def send_message(
    connection: Connection, message: CamelModel, player_id: Optional[str] = None
) -> bool:
    """Best-effort send of a single message. Returns whether it was written."""
    try:
        await send_raw(connection, serialize_message(message), player_id)
    except TransportError as exc:
        logger.warning("Dropped %s for player %s: %s", _message_type(message), player_id, exc)
        return False
    return True


def _message_type(message: CamelModel) -> str:
    return getattr(message, "type", type(message).__name__)


class Room:
    """Encapsulates runtime state and active socket connections for one game."""

    def __init__(self, room_id: str, now: int, send_timeout: float = DEFAULT_SEND_TIMEOUT_SEC):
        self.room_id = room_id
        self.send_timeout = send_timeout
        # Insertion order is join order.
        self.players: Dict[str, Player] = {}
        self.scores: Dict[str, int] = {}
        self.current_round: int = 0
        self.game_state: str = GAME_NOT_STARTED
        self.round_state: str = ROUND_NOT_STARTED
        self.round_data: RoundData = RoundData()
        # Answers submitted for the current round: player_id -> count
        self.answers: Dict[str, int] = {}
        # active socket connections: player_id -> websocket
        self.connections: Dict[str, Connection] = {}
        self.created_at: int = now
        self.last_activity: int = now

        # Pending timer driving the current round phase, if any
        self.round_task: Optional[asyncio.Task] = None

    # -------------------- Player management -------------------- #

    def add_player(self, player: Player) -> None:
        if self.game_state != GAME_NOT_STARTED:
            raise InvalidStateError("Game has already started")
        self.players[player.id] = player
        self.scores[player.id] = player.score

    def remove_player(self, player_id: str) -> Optional[Player]:
        self.scores.pop(player_id, None)
        self.answers.pop(player_id, None)
        self.connections.pop(player_id, None)
        return self.players.pop(player_id, None)

    def add_points(self, player_id: str, points: int) -> int:
        total = self.scores.get(player_id, 0) + points
        self.scores[player_id] = total
        self.players[player_id].score = total
        return total

    def active_players(self) -> List[Player]:
        return [p for p in self.players.values() if p.active]

    @property
    def is_empty(self) -> bool:
        return not self.players

    # -------------------- Timers -------------------- #

    def set_round_task(self, task: Optional[asyncio.Task]) -> None:
        self.cancel_round_task()
        self.round_task = task

    def cancel_round_task(self) -> None:
        task, self.round_task = self.round_task, None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()

    # -------------------- Serialization -------------------- #

    def to_state(self) -> RoomState:
        """Snapshot for the wire: ordered lists / plain dicts, never connections."""
        return RoomState(
            room_id=self.room_id,
            players=[p.model_copy() for p in self.players.values()],
            current_round=self.current_round,
            game_state=self.game_state,
            round_state=self.round_state,
            round_data=self.round_data.model_copy(deep=True),
            scores=dict(self.scores),
            created_at=self.created_at,
            last_activity=self.last_activity,
        )

    # -------------------- Broadcasting helpers -------------------- #

    async def broadcast(self, message: CamelModel) -> int:
        """Send *message* to every open connection in the room.

        The frame is serialized once up front so every recipient sees the same
        snapshot. All writes run concurrently, each bounded by
        ``send_timeout``, so a stuck or failing connection is logged and
        skipped without holding up the others. Returns the number of
        connections the frame was written to.
        """
        data = serialize_message(message)
        targets = list(self.connections.items())
        results = await asyncio.gather(
            *(send_raw(ws, data, player_id, self.send_timeout) for player_id, ws in targets),
            return_exceptions=True,
        )
        delivered = 0
        for (player_id, _), result in zip(targets, results):
            if isinstance(result, Exception):
                logger.warning(
                    "Room %s: dropped %s for player %s: %s",
                    self.room_id,
                    _message_type(message),
                    player_id,
                    result,
                )
                continue
            delivered += 1
        return delivered


__all__ = ["Connection", "Room", "is_open", "send_raw", "send_message"]
