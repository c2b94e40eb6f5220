"""Unit tests for boxcount/messages.py and the room fan-out in boxcount/room.py"""

import asyncio
import json

import pytest
from starlette.websockets import WebSocketState

from boxcount import messages
from boxcount.errors import TransportError
from boxcount.room import Room, send_message, send_raw
from boxcount.schemas import Box, FinalScore, Player, RoundScore


# --- PARSING CLIENT MESSAGES ----
def test_parse_join() -> None:
    msg = messages.parse_client_message(
        json.dumps({"type": "join", "payload": {"roomId": "ABC123", "playerId": "p1"}})
    )
    assert isinstance(msg, messages.JoinMessage)
    assert msg.payload.room_id == "ABC123"
    assert msg.payload.player_id == "p1"


def test_parse_answer() -> None:
    msg = messages.parse_client_message(
        json.dumps({"type": "answer", "payload": {"round": 2, "count": 7, "timestamp": 1700000000000}})
    )
    assert isinstance(msg, messages.AnswerMessage)
    assert (msg.payload.round, msg.payload.count) == (2, 7)


@pytest.mark.parametrize("msg_type, cls", [("ping", messages.PingMessage), ("ready", messages.ReadyMessage)])
def test_parse_empty_payload_messages(msg_type, cls) -> None:
    assert isinstance(messages.parse_client_message(json.dumps({"type": msg_type, "payload": {}})), cls)


@pytest.mark.parametrize(
    "raw",
    [
        "not json",
        "",
        "[]",
        "42",
        json.dumps({"payload": {}}),
        json.dumps({"type": "ping"}),
        json.dumps({"type": "dance", "payload": {}}),
        json.dumps({"type": "pong", "payload": {}}),
        json.dumps({"type": 5, "payload": {}}),
        json.dumps({"type": "join", "payload": {"roomId": "ABC123"}}),
        json.dumps({"type": "answer", "payload": {"round": "first", "count": 1, "timestamp": 0}}),
        json.dumps({"type": "ping", "payload": None}),
    ],
)
def test_parse_rejects_malformed_frames(raw) -> None:
    assert messages.parse_client_message(raw) is None


# --- BUILDING / SERIALIZING SERVER MESSAGES ----
def test_player_joined_wire_shape() -> None:
    msg = messages.player_joined(Player(id="p1", name="Alice"), total_players=2)
    assert json.loads(messages.serialize_message(msg)) == {
        "type": "playerJoined",
        "payload": {"playerId": "p1", "playerName": "Alice", "totalPlayers": 2},
    }


def test_round_results_wire_shape() -> None:
    row = RoundScore(player_id="p1", player_name="Alice", answer=None, points=0, total_score=50)
    data = json.loads(messages.serialize_message(messages.round_results(3, 9, [row])))
    assert data == {
        "type": "roundResults",
        "payload": {
            "round": 3,
            "correctCount": 9,
            "scores": [
                {"playerId": "p1", "playerName": "Alice", "answer": None, "points": 0, "totalScore": 50}
            ],
        },
    }


def test_game_finished_wire_shape() -> None:
    winner = Player(id="p1", name="Alice", score=300)
    msg = messages.game_finished(winner, [FinalScore(player_id="p1", player_name="Alice", score=300)])
    data = json.loads(messages.serialize_message(msg))
    assert data["type"] == "gameFinished"
    assert data["payload"]["winner"] == {"id": "p1", "name": "Alice", "score": 300, "active": True}
    assert data["payload"]["finalScores"] == [{"playerId": "p1", "playerName": "Alice", "score": 300}]


def test_server_messages_parse_back() -> None:
    built = [
        messages.player_left("p1", 1),
        messages.game_starting(10),
        messages.round_start(1, [Box(x=0, y=0, z=0, size=1, color="#60a5fa")]),
        messages.boxes_hidden(1),
        messages.error("nope"),
        messages.pong(),
    ]
    for msg in built:
        parsed = messages.parse_server_message(messages.serialize_message(msg))
        assert parsed == msg


def test_pong_is_empty_object() -> None:
    assert json.loads(messages.serialize_message(messages.pong())) == {"type": "pong", "payload": {}}


# --- FAN-OUT ----
@pytest.mark.anyio
async def test_broadcast_reaches_every_open_connection(make_connection) -> None:
    room = Room("ROOM01", now=0)
    first, second = make_connection(), make_connection()
    room.connections = {"p1": first, "p2": second}

    delivered = await room.broadcast(messages.game_starting(10))

    assert delivered == 2
    assert first.types() == second.types() == ["gameStarting"]


@pytest.mark.anyio
async def test_broadcast_survives_broken_and_closed_connections(make_connection) -> None:
    room = Room("ROOM01", now=0)
    broken = make_connection(fail=True)
    closed = make_connection()
    await closed.close()
    healthy = make_connection()
    room.connections = {"p1": broken, "p2": closed, "p3": healthy}

    delivered = await room.broadcast(messages.boxes_hidden(1))

    assert delivered == 1
    assert healthy.last() == {"type": "boxesHidden", "payload": {"round": 1}}
    assert closed.sent == []
    # Failures are not retried and do not unregister the connection.
    assert set(room.connections) == {"p1", "p2", "p3"}


class StuckConnection:
    """Open socket whose peer never drains: ``send_text`` never completes."""

    def __init__(self) -> None:
        self.client_state = WebSocketState.CONNECTED
        self.application_state = WebSocketState.CONNECTED

    async def send_text(self, data: str) -> None:
        await asyncio.Event().wait()

    async def close(self, code: int = 1000, reason=None) -> None:
        pass


@pytest.mark.anyio
async def test_broadcast_is_not_held_up_by_a_stuck_connection(make_connection) -> None:
    room = Room("ROOM01", now=0, send_timeout=0.05)
    healthy = make_connection()
    room.connections = {"p1": StuckConnection(), "p2": healthy}

    delivered = await asyncio.wait_for(room.broadcast(messages.boxes_hidden(1)), timeout=1.0)

    assert delivered == 1
    assert healthy.last() == {"type": "boxesHidden", "payload": {"round": 1}}
    assert set(room.connections) == {"p1", "p2"}


@pytest.mark.anyio
async def test_send_raw_times_out_as_transport_error() -> None:
    with pytest.raises(TransportError, match="timed out"):
        await send_raw(StuckConnection(), "{}", "p1", timeout=0.05)


@pytest.mark.anyio
async def test_send_message_reports_dropped_frame(make_connection) -> None:
    assert await send_message(make_connection(fail=True), messages.pong(), "p1") is False
    ws = make_connection()
    assert await send_message(ws, messages.pong(), "p1") is True
    assert ws.types() == ["pong"]


def test_room_state_never_exposes_connections(make_connection) -> None:
    room = Room("ROOM01", now=5)
    room.add_player(Player(id="p1", name="Alice"))
    room.connections["p1"] = make_connection()

    state = room.to_state().model_dump(by_alias=True)

    assert set(state) == {
        "roomId",
        "players",
        "currentRound",
        "gameState",
        "roundState",
        "roundData",
        "scores",
        "createdAt",
        "lastActivity",
    }
    assert state["players"] == [{"id": "p1", "name": "Alice", "score": 0, "active": True}]
    assert state["scores"] == {"p1": 0}
    assert state["roundData"]["correctCount"] == 0
    assert state["roundData"]["animation"]["visibleDuration"] == 3000
