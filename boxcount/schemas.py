"""Pydantic data schemas used across the coordinator.

This module centralises all models so that other packages can import
from a single location. Every model serialises with camelCase keys, which
is what the browser client reads both over REST and over the socket.
"""
from __future__ import annotations

from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .constants import DEFAULT_VISIBLE_DURATION_MS

GameState = Literal["notStarted", "started", "finished"]
RoundState = Literal["notStarted", "showingBoxes", "answering", "showResults"]
AnimationType = Literal["static", "slide", "stagger", "fade"]
SlideDirection = Literal["left", "right", "up", "down", "forward", "backward"]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# -----------------------------
# Round payload
# -----------------------------

class Box(CamelModel):
    x: float
    y: float
    z: float
    size: float
    color: str


class AnimationConfig(CamelModel):
    """Pattern specific knobs; each pattern only fills the ones it uses."""

    direction: Optional[SlideDirection] = None
    speed: Optional[float] = None
    stagger_delay: Optional[int] = None  # ms between two boxes appearing
    fade_duration: Optional[int] = None  # ms


class BoxAnimation(CamelModel):
    type: AnimationType = "static"
    visible_duration: int = DEFAULT_VISIBLE_DURATION_MS  # ms the boxes stay on screen
    config: Optional[AnimationConfig] = None


class RoundPayload(CamelModel):
    """What the pattern generator hands back for one round."""

    boxes: List[Box]
    correct_count: int
    animation: BoxAnimation


class RoundData(CamelModel):
    boxes: List[Box] = Field(default_factory=list)
    correct_count: int = 0
    started_at: int = 0  # 0 until the round actually starts
    animation: BoxAnimation = Field(default_factory=BoxAnimation)


# -----------------------------
# Runtime & room snapshot
# -----------------------------

class Player(CamelModel):
    """Represents a participant inside a room at runtime."""

    id: str
    name: str
    score: int = 0
    # Only flips to False when the socket drops after the game started.
    active: bool = True


class RoomState(CamelModel):
    room_id: str
    players: List[Player]
    current_round: int = 0
    game_state: GameState = "notStarted"
    round_state: RoundState = "notStarted"
    round_data: RoundData
    scores: Dict[str, int] = {}
    created_at: int
    last_activity: int


class RoundScore(CamelModel):
    player_id: str
    player_name: str
    answer: Optional[int]
    points: int
    total_score: int


class FinalScore(CamelModel):
    player_id: str
    player_name: str
    score: int


# -----------------------------
# REST request / response models
# -----------------------------

class CreateRoomRequest(CamelModel):
    player_name: str = ""


class JoinRoomRequest(CamelModel):
    player_name: str = ""


class CreateRoomResponse(CamelModel):
    room_id: str
    player_id: str


class JoinRoomResponse(CamelModel):
    player_id: str
    room_state: RoomState


class StatusResponse(CamelModel):
    room_state: RoomState


class StartResponse(CamelModel):
    success: bool


class HealthResponse(CamelModel):
    status: str = "ok"
    rooms: int = 0


__all__ = [
    "GameState",
    "RoundState",
    "AnimationType",
    "CamelModel",
    "Box",
    "AnimationConfig",
    "BoxAnimation",
    "RoundPayload",
    "RoundData",
    "Player",
    "RoomState",
    "RoundScore",
    "FinalScore",
    "CreateRoomRequest",
    "JoinRoomRequest",
    "CreateRoomResponse",
    "JoinRoomResponse",
    "StatusResponse",
    "StartResponse",
    "HealthResponse",
]
