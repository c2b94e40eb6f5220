"""Core round mechanics.

This module implements the rules of the counting game while remaining
completely framework-agnostic. All functions operate only on in-memory
:class:`boxcount.room.Room` instances and never touch sockets; the
coordinator calls them and decides what to broadcast.
"""
from __future__ import annotations

from typing import List, Optional

from .constants import (
    DEFAULT_MIN_PLAYERS,
    DEFAULT_TOTAL_ROUNDS,
    GAME_FINISHED,
    GAME_NOT_STARTED,
    GAME_STARTED,
    PROXIMITY_POINTS,
    ROUND_ANSWERING,
    ROUND_NOT_STARTED,
    ROUND_SHOW_RESULTS,
    ROUND_SHOWING_BOXES,
)
from .errors import InvalidStateError, NotFoundError, ValidationError
from .patterns import RoundPayloadGenerator
from .room import Room
from .schemas import FinalScore, Player, RoundData, RoundScore

# ---------------------------------------------------------------------------
# Game lifecycle
# ---------------------------------------------------------------------------

def can_start_game(room: Room, min_players: int = DEFAULT_MIN_PLAYERS) -> bool:
    return room.game_state == GAME_NOT_STARTED and len(room.players) >= min_players


def start_game(room: Room) -> None:
    """Flip the room into the started state. Callers check :func:`can_start_game` first."""
    room.game_state = GAME_STARTED
    room.current_round = 0


def finish_game(room: Room) -> None:
    room.game_state = GAME_FINISHED
    room.round_state = ROUND_NOT_STARTED
    room.answers = {}


def is_last_round(room: Room, total_rounds: int = DEFAULT_TOTAL_ROUNDS) -> bool:
    return room.current_round >= total_rounds


# ---------------------------------------------------------------------------
# Round flow
# ---------------------------------------------------------------------------

def start_round(room: Room, generator: RoundPayloadGenerator, now: int) -> RoundData:
    """Advance to the next round and install a freshly generated payload."""
    if room.game_state != GAME_STARTED:
        raise InvalidStateError("Game is not in progress")
    room.current_round += 1
    payload = generator(room.current_round)
    room.round_data = RoundData(
        boxes=list(payload.boxes),
        correct_count=payload.correct_count,
        started_at=now,
        animation=payload.animation.model_copy(deep=True),
    )
    room.answers = {}
    room.round_state = ROUND_SHOWING_BOXES
    return room.round_data


def boxes_hidden_at(room: Room) -> int:
    return room.round_data.started_at + room.round_data.animation.visible_duration


def hide_boxes(room: Room) -> None:
    if room.round_state != ROUND_SHOWING_BOXES:
        raise InvalidStateError("Boxes are not being shown")
    room.round_state = ROUND_ANSWERING


def record_answer(room: Room, player_id: str, round_number: int, count: int) -> None:
    """Store *player_id*'s count for the current round. First answer wins."""
    player = room.players.get(player_id)
    if player is None:
        raise NotFoundError("Player not found in room")
    if room.game_state != GAME_STARTED or room.round_state != ROUND_ANSWERING:
        raise InvalidStateError("Not accepting answers right now")
    if round_number != room.current_round:
        raise InvalidStateError(f"Answer is for round {round_number}, current round is {room.current_round}")
    if not player.active:
        raise InvalidStateError("Inactive players cannot answer")
    if player_id in room.answers:
        raise InvalidStateError("Answer already submitted for this round")
    if count < 0:
        raise ValidationError("Count must be zero or more")
    room.answers[player_id] = count


def all_answered(room: Room) -> bool:
    active = room.active_players()
    return bool(active) and all(p.id in room.answers for p in active)


def score_answer(answer: Optional[int], correct_count: int) -> int:
    if answer is None:
        return 0
    return PROXIMITY_POINTS.get(abs(answer - correct_count), 0)


def score_round(room: Room) -> List[RoundScore]:
    """Close the answering window, award points and return the per-player rows."""
    if room.round_state != ROUND_ANSWERING:
        raise InvalidStateError("Round is not in the answering phase")
    correct = room.round_data.correct_count
    rows: List[RoundScore] = []
    for player_id, player in room.players.items():
        answer = room.answers.get(player_id)
        points = score_answer(answer, correct)
        total = room.add_points(player_id, points)
        rows.append(
            RoundScore(
                player_id=player_id,
                player_name=player.name,
                answer=answer,
                points=points,
                total_score=total,
            )
        )
    room.round_state = ROUND_SHOW_RESULTS
    return rows


# ---------------------------------------------------------------------------
# Standings
# ---------------------------------------------------------------------------

def final_scores(room: Room) -> List[FinalScore]:
    """Highest score first; ties keep join order (``sorted`` is stable)."""
    ordered = sorted(room.players.values(), key=lambda p: room.scores.get(p.id, 0), reverse=True)
    return [
        FinalScore(player_id=p.id, player_name=p.name, score=room.scores.get(p.id, 0))
        for p in ordered
    ]


def winner(room: Room) -> Optional[Player]:
    standings = final_scores(room)
    if not standings:
        return None
    return room.players[standings[0].player_id]


__all__ = [
    "can_start_game",
    "start_game",
    "finish_game",
    "is_last_round",
    "start_round",
    "boxes_hidden_at",
    "hide_boxes",
    "record_answer",
    "all_answered",
    "score_answer",
    "score_round",
    "final_scores",
    "winner",
]
