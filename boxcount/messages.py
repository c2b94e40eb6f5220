"""Socket wire protocol.

Every frame is one JSON object ``{"type": ..., "payload": {...}}``. Client and
server messages are closed sets of variants tagged by ``type``; anything that
does not validate against a known variant is rejected as a whole before it
reaches a handler.
"""
from __future__ import annotations

import json
import logging
from typing import Annotated, Any, List, Literal, Optional, Union

from pydantic import Field, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from .schemas import Box, CamelModel, FinalScore, Player, RoundScore

logger = logging.getLogger(__name__)


class EmptyPayload(CamelModel):
    pass


# ============================================================================
# CLIENT -> SERVER
# ============================================================================

class JoinPayload(CamelModel):
    room_id: str
    player_id: str


class AnswerPayload(CamelModel):
    round: int
    count: int
    timestamp: float


class JoinMessage(CamelModel):
    type: Literal["join"] = "join"
    payload: JoinPayload


class AnswerMessage(CamelModel):
    type: Literal["answer"] = "answer"
    payload: AnswerPayload


class ReadyMessage(CamelModel):
    type: Literal["ready"] = "ready"
    payload: EmptyPayload = Field(default_factory=EmptyPayload)


class PingMessage(CamelModel):
    type: Literal["ping"] = "ping"
    payload: EmptyPayload = Field(default_factory=EmptyPayload)


ClientMessage = Annotated[
    Union[JoinMessage, AnswerMessage, ReadyMessage, PingMessage],
    Field(discriminator="type"),
]

CLIENT_MESSAGE_TYPES = frozenset({"join", "answer", "ready", "ping"})


# ============================================================================
# SERVER -> CLIENT
# ============================================================================

class PlayerJoinedPayload(CamelModel):
    player_id: str
    player_name: str
    total_players: int


class PlayerLeftPayload(CamelModel):
    player_id: str
    total_players: int


class GameStartingPayload(CamelModel):
    round_count: int


class RoundStartPayload(CamelModel):
    round: int
    boxes: List[Box]


class BoxesHiddenPayload(CamelModel):
    round: int


class RoundResultsPayload(CamelModel):
    round: int
    correct_count: int
    scores: List[RoundScore]


class GameFinishedPayload(CamelModel):
    winner: Optional[Player]
    final_scores: List[FinalScore]


class ErrorPayload(CamelModel):
    message: str


class PlayerJoinedMessage(CamelModel):
    type: Literal["playerJoined"] = "playerJoined"
    payload: PlayerJoinedPayload


class PlayerLeftMessage(CamelModel):
    type: Literal["playerLeft"] = "playerLeft"
    payload: PlayerLeftPayload


class GameStartingMessage(CamelModel):
    type: Literal["gameStarting"] = "gameStarting"
    payload: GameStartingPayload


class RoundStartMessage(CamelModel):
    type: Literal["roundStart"] = "roundStart"
    payload: RoundStartPayload


class BoxesHiddenMessage(CamelModel):
    type: Literal["boxesHidden"] = "boxesHidden"
    payload: BoxesHiddenPayload


class RoundResultsMessage(CamelModel):
    type: Literal["roundResults"] = "roundResults"
    payload: RoundResultsPayload


class GameFinishedMessage(CamelModel):
    type: Literal["gameFinished"] = "gameFinished"
    payload: GameFinishedPayload


class ErrorMessage(CamelModel):
    type: Literal["error"] = "error"
    payload: ErrorPayload


class PongMessage(CamelModel):
    type: Literal["pong"] = "pong"
    payload: EmptyPayload = Field(default_factory=EmptyPayload)


ServerMessage = Annotated[
    Union[
        PlayerJoinedMessage,
        PlayerLeftMessage,
        GameStartingMessage,
        RoundStartMessage,
        BoxesHiddenMessage,
        RoundResultsMessage,
        GameFinishedMessage,
        ErrorMessage,
        PongMessage,
    ],
    Field(discriminator="type"),
]

SERVER_MESSAGE_TYPES = frozenset(
    {
        "playerJoined",
        "playerLeft",
        "gameStarting",
        "roundStart",
        "boxesHidden",
        "roundResults",
        "gameFinished",
        "error",
        "pong",
    }
)

_client_adapter: TypeAdapter = TypeAdapter(ClientMessage)
_server_adapter: TypeAdapter = TypeAdapter(ServerMessage)


# ============================================================================
# Builders
# ============================================================================

def player_joined(player: Player, total_players: int) -> PlayerJoinedMessage:
    return PlayerJoinedMessage(
        payload=PlayerJoinedPayload(
            player_id=player.id, player_name=player.name, total_players=total_players
        )
    )


def player_left(player_id: str, total_players: int) -> PlayerLeftMessage:
    return PlayerLeftMessage(
        payload=PlayerLeftPayload(player_id=player_id, total_players=total_players)
    )


def game_starting(round_count: int) -> GameStartingMessage:
    return GameStartingMessage(payload=GameStartingPayload(round_count=round_count))


def round_start(round_number: int, boxes: List[Box]) -> RoundStartMessage:
    return RoundStartMessage(payload=RoundStartPayload(round=round_number, boxes=list(boxes)))


def boxes_hidden(round_number: int) -> BoxesHiddenMessage:
    return BoxesHiddenMessage(payload=BoxesHiddenPayload(round=round_number))


def round_results(
    round_number: int, correct_count: int, scores: List[RoundScore]
) -> RoundResultsMessage:
    return RoundResultsMessage(
        payload=RoundResultsPayload(
            round=round_number, correct_count=correct_count, scores=scores
        )
    )


def game_finished(winner: Optional[Player], final_scores: List[FinalScore]) -> GameFinishedMessage:
    winner_copy = winner.model_copy() if winner is not None else None
    return GameFinishedMessage(
        payload=GameFinishedPayload(winner=winner_copy, final_scores=final_scores)
    )


def error(message: str) -> ErrorMessage:
    return ErrorMessage(payload=ErrorPayload(message=message))


def pong() -> PongMessage:
    return PongMessage()


# ============================================================================
# Parse / serialize
# ============================================================================

def _looks_like_message(data: Any, valid_types: frozenset) -> bool:
    if not isinstance(data, dict):
        return False
    msg_type = data.get("type")
    if not isinstance(msg_type, str) or msg_type not in valid_types:
        return False
    return "payload" in data


def parse_client_message(raw: str) -> Optional[Union[JoinMessage, AnswerMessage, ReadyMessage, PingMessage]]:
    """Return the validated client message, or ``None`` if *raw* is not one."""
    try:
        data = json.loads(raw)
    except (TypeError, ValueError):
        return None
    if not _looks_like_message(data, CLIENT_MESSAGE_TYPES):
        return None
    try:
        return _client_adapter.validate_python(data)
    except PydanticValidationError as exc:
        logger.debug("Rejected %s message: %s", data.get("type"), exc.errors())
        return None


def parse_server_message(raw: str):
    try:
        data = json.loads(raw)
    except (TypeError, ValueError):
        return None
    if not _looks_like_message(data, SERVER_MESSAGE_TYPES):
        return None
    try:
        return _server_adapter.validate_python(data)
    except PydanticValidationError:
        return None


def serialize_message(message: CamelModel) -> str:
    return message.model_dump_json(by_alias=True)


__all__ = [
    "ClientMessage",
    "ServerMessage",
    "CLIENT_MESSAGE_TYPES",
    "SERVER_MESSAGE_TYPES",
    "JoinMessage",
    "AnswerMessage",
    "ReadyMessage",
    "PingMessage",
    "PlayerJoinedMessage",
    "PlayerLeftMessage",
    "GameStartingMessage",
    "RoundStartMessage",
    "BoxesHiddenMessage",
    "RoundResultsMessage",
    "GameFinishedMessage",
    "ErrorMessage",
    "PongMessage",
    "player_joined",
    "player_left",
    "game_starting",
    "round_start",
    "boxes_hidden",
    "round_results",
    "game_finished",
    "error",
    "pong",
    "parse_client_message",
    "parse_server_message",
    "serialize_message",
]
