"""Session coordinator: the single entry point the HTTP and socket layers call.

Every command looks the room up in the injected :class:`RoomStore`, applies
the round rules from :mod:`boxcount.game_logic` and then fans the resulting
events out to the room. All room mutations of one command happen before its
first ``await``, so under the single event loop no two commands interleave
mid-mutation.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, List, Optional

from . import game_logic
from . import messages
from .config import Settings
from .constants import (
    GAME_NOT_STARTED,
    GAME_STARTED,
    MAX_PLAYER_NAME_LENGTH,
    ROUND_ANSWERING,
    ROUND_SHOW_RESULTS,
    ROUND_SHOWING_BOXES,
)
from .errors import CoordinatorError, InvalidStateError, NotFoundError, ValidationError
from .identifiers import generate_player_id, normalize_room_id
from .patterns import RoundPayloadGenerator, generate_round_payload
from .room import Connection, Room, send_message
from .schemas import (
    CreateRoomResponse,
    JoinRoomResponse,
    Player,
    StartResponse,
    StatusResponse,
)
from .store import RoomStore

logger = logging.getLogger(__name__)

Transition = Callable[[str, int], Awaitable[bool]]


class PlayerSession:
    """One socket connection to ``/ws/{room_id}``, bound to a player after ``join``."""

    def __init__(self, room_id: str, connection: Connection) -> None:
        self.room_id = normalize_room_id(room_id)
        self.connection = connection
        self.player_id: Optional[str] = None
        self.closed = False

    @property
    def joined(self) -> bool:
        return self.player_id is not None


def _clean_name(player_name: Optional[str]) -> str:
    name = (player_name or "").strip()
    if not name:
        raise ValidationError("Player name is required")
    if len(name) > MAX_PLAYER_NAME_LENGTH:
        raise ValidationError(f"Player name must be at most {MAX_PLAYER_NAME_LENGTH} characters")
    return name


class SessionCoordinator:
    def __init__(
        self,
        store: RoomStore,
        settings: Optional[Settings] = None,
        generator: RoundPayloadGenerator = generate_round_payload,
    ) -> None:
        self.store = store
        self.settings = settings or Settings()
        self.generator = generator

    # ------------------------------------------------------------------
    # Room query / command surface
    # ------------------------------------------------------------------

    def create(self, player_name: str) -> CreateRoomResponse:
        name = _clean_name(player_name)
        room_id = self.store.create_room()
        room = self._require_room(room_id)

        player = Player(id=generate_player_id(), name=name)
        room.add_player(player)
        self.store.update_last_activity(room_id)
        logger.info("Room %s created by %s (%s)", room_id, name, player.id)
        return CreateRoomResponse(room_id=room_id, player_id=player.id)

    def join(self, room_id: str, player_name: str) -> JoinRoomResponse:
        room = self._require_room(room_id)
        if room.game_state != GAME_NOT_STARTED:
            raise InvalidStateError("Game has already started")
        name = _clean_name(player_name)

        player = Player(id=generate_player_id(), name=name)
        room.add_player(player)
        self.store.update_last_activity(room.room_id)
        logger.info("%s (%s) joined room %s", name, player.id, room.room_id)
        return JoinRoomResponse(player_id=player.id, room_state=room.to_state())

    def status(self, room_id: str) -> StatusResponse:
        room = self._require_room(room_id)
        # Viewing a room counts as activity.
        self.store.update_last_activity(room.room_id)
        return StatusResponse(room_state=room.to_state())

    async def start(self, room_id: str) -> StartResponse:
        room = self._require_room(room_id)
        if room.game_state != GAME_NOT_STARTED:
            raise InvalidStateError("Game has already started")
        if not game_logic.can_start_game(room, self.settings.min_players):
            raise InvalidStateError(
                f"At least {self.settings.min_players} players are required to start"
            )

        game_logic.start_game(room)
        round_data = game_logic.start_round(room, self.generator, now=self.store.clock())
        self.store.update_last_activity(room.room_id)
        logger.info("Room %s: game started with %d players", room.room_id, len(room.players))

        starting = messages.game_starting(self.settings.total_rounds)
        first_round = messages.round_start(room.current_round, round_data.boxes)
        self._schedule_hide(room)
        await room.broadcast(starting)
        await room.broadcast(first_round)
        return StartResponse(success=True)

    def cleanup(self) -> List[str]:
        removed = self.store.cleanup_rooms()
        if removed:
            logger.info("Evicted %d idle room(s): %s", len(removed), ", ".join(removed))
        return removed

    def shutdown(self) -> None:
        for room in self.store:
            room.cancel_round_task()

    # ------------------------------------------------------------------
    # Socket lifecycle
    # ------------------------------------------------------------------

    def connect(self, room_id: str, connection: Connection) -> PlayerSession:
        return PlayerSession(room_id, connection)

    async def handle_message(self, session: PlayerSession, raw: Optional[str]) -> None:
        message = messages.parse_client_message(raw) if raw is not None else None
        if message is None:
            logger.debug("Room %s: rejected malformed frame", session.room_id)
            await self._send_error(session, "Invalid message format")
            return

        if isinstance(message, messages.JoinMessage):
            await self._handle_join(session, message)
            return

        if not session.joined:
            await self._send_error(session, "Must join room first")
            return

        room = self.store.get_room(session.room_id)
        if room is None:
            await self._send_error(session, "Room not found")
            await self._close(session)
            return

        if isinstance(message, messages.PingMessage):
            await send_message(session.connection, messages.pong(), session.player_id)
        elif isinstance(message, messages.ReadyMessage):
            self.store.update_last_activity(room.room_id)
        elif isinstance(message, messages.AnswerMessage):
            await self._handle_answer(session, room, message)

    async def disconnect(self, session: PlayerSession) -> None:
        session.closed = True
        player_id = session.player_id
        if player_id is None:
            return
        room = self.store.get_room(session.room_id)
        if room is None:
            return
        # A newer connection for the same player has taken over.
        if room.connections.get(player_id) is not session.connection:
            return
        room.connections.pop(player_id, None)

        player = room.players.get(player_id)
        if player is None:
            return

        if room.game_state == GAME_NOT_STARTED:
            room.remove_player(player_id)
            left = messages.player_left(player_id, len(room.players))
            if room.is_empty:
                self.store.delete_room(room.room_id)
            else:
                self.store.update_last_activity(room.room_id)
            logger.info("%s left room %s before start", player.name, room.room_id)
            await room.broadcast(left)
            return

        # Game in progress: keep the player (and their score) but mark inactive
        player.active = False
        self.store.update_last_activity(room.room_id)
        logger.info("%s disconnected from running game in room %s", player.name, room.room_id)
        left = messages.player_left(player_id, len(room.players))
        finish_early = (
            room.game_state == GAME_STARTED
            and room.round_state == ROUND_ANSWERING
            and game_logic.all_answered(room)
        )
        await room.broadcast(left)
        if finish_early:
            await self.end_answering(room.room_id, room.current_round)

    async def _handle_join(self, session: PlayerSession, message: messages.JoinMessage) -> None:
        if session.joined:
            await self._send_error(session, "Already joined")
            return

        payload = message.payload
        if normalize_room_id(payload.room_id) != session.room_id:
            await self._send_error(session, "Room mismatch")
            await self._close(session)
            return

        room = self.store.get_room(session.room_id)
        if room is None:
            await self._send_error(session, "Room not found")
            await self._close(session)
            return

        player = room.players.get(payload.player_id)
        if player is None:
            await self._send_error(session, "Player not found in room")
            await self._close(session)
            return

        previous = room.connections.get(player.id)
        room.connections[player.id] = session.connection
        player.active = True
        session.player_id = player.id
        self.store.update_last_activity(room.room_id)
        joined = messages.player_joined(player, len(room.players))

        if previous is not None and previous is not session.connection:
            await send_message(previous, messages.error("Connected from another session"), player.id)
            try:
                await previous.close(code=4003)
            except Exception:
                logger.debug("Previous connection of %s already gone", player.id)

        await room.broadcast(joined)

    async def _handle_answer(
        self, session: PlayerSession, room: Room, message: messages.AnswerMessage
    ) -> None:
        payload = message.payload
        try:
            game_logic.record_answer(room, session.player_id, payload.round, payload.count)
        except CoordinatorError as exc:
            self.store.update_last_activity(room.room_id)
            await self._send_error(session, str(exc))
            return
        self.store.update_last_activity(room.room_id)
        if game_logic.all_answered(room):
            await self.end_answering(room.room_id, room.current_round)

    # ------------------------------------------------------------------
    # Round progression
    # ------------------------------------------------------------------

    async def hide_boxes(self, room_id: str, round_number: int) -> bool:
        """``showingBoxes -> answering``. Returns False when *round_number* is stale."""
        room = self._room_in_phase(room_id, round_number, ROUND_SHOWING_BOXES)
        if room is None:
            return False
        game_logic.hide_boxes(room)
        self.store.update_last_activity(room.room_id)
        logger.info("Room %s: round %d answering", room.room_id, round_number)
        self._schedule(room, self.settings.answer_duration_ms, self.end_answering)
        await room.broadcast(messages.boxes_hidden(round_number))
        return True

    async def end_answering(self, room_id: str, round_number: int) -> bool:
        """``answering -> showResults``: score the round and publish the results."""
        room = self._room_in_phase(room_id, round_number, ROUND_ANSWERING)
        if room is None:
            return False
        rows = game_logic.score_round(room)
        self.store.update_last_activity(room.room_id)
        logger.info("Room %s: round %d scored", room.room_id, round_number)
        results = messages.round_results(round_number, room.round_data.correct_count, rows)
        self._schedule(room, self.settings.results_duration_ms, self.advance_round)
        await room.broadcast(results)
        return True

    async def advance_round(self, room_id: str, round_number: int) -> bool:
        """After results: start the next round, or finish after the last one."""
        room = self._room_in_phase(room_id, round_number, ROUND_SHOW_RESULTS)
        if room is None:
            return False

        if game_logic.is_last_round(room, self.settings.total_rounds):
            game_logic.finish_game(room)
            room.cancel_round_task()
            self.store.update_last_activity(room.room_id)
            finished = messages.game_finished(game_logic.winner(room), game_logic.final_scores(room))
            logger.info("Room %s: game finished after round %d", room.room_id, round_number)
            await room.broadcast(finished)
            return True

        round_data = game_logic.start_round(room, self.generator, now=self.store.clock())
        self.store.update_last_activity(room.room_id)
        logger.info("Room %s: round %d started", room.room_id, room.current_round)
        next_round = messages.round_start(room.current_round, round_data.boxes)
        self._schedule_hide(room)
        await room.broadcast(next_round)
        return True

    def _schedule_hide(self, room: Room) -> None:
        delay = max(0, game_logic.boxes_hidden_at(room) - self.store.clock())
        self._schedule(room, delay, self.hide_boxes)

    def _schedule(self, room: Room, delay_ms: int, transition: Transition) -> None:
        if not self.settings.auto_advance:
            return
        task = asyncio.create_task(
            self._run_after(delay_ms, transition, room.room_id, room.current_round)
        )
        room.set_round_task(task)

    async def _run_after(
        self, delay_ms: int, transition: Transition, room_id: str, round_number: int
    ) -> None:
        try:
            await asyncio.sleep(delay_ms / 1000)
            await transition(room_id, round_number)
        except asyncio.CancelledError:
            pass
        except Exception:
            logger.exception("Room %s: round %d transition failed", room_id, round_number)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _require_room(self, room_id: str) -> Room:
        room = self.store.get_room(room_id)
        if room is None:
            raise NotFoundError("Room not found")
        return room

    def _room_in_phase(self, room_id: str, round_number: int, round_state: str) -> Optional[Room]:
        room = self.store.get_room(room_id)
        if room is None:
            return None
        if (
            room.game_state != GAME_STARTED
            or room.current_round != round_number
            or room.round_state != round_state
        ):
            logger.debug(
                "Room %s: skipping stale transition (round %d, %s)", room_id, round_number, round_state
            )
            return None
        return room

    async def _send_error(self, session: PlayerSession, text: str) -> None:
        await send_message(session.connection, messages.error(text), session.player_id)

    async def _close(self, session: PlayerSession) -> None:
        session.closed = True
        try:
            await session.connection.close()
        except Exception:
            logger.debug("Connection for room %s already closed", session.room_id)


__all__ = ["SessionCoordinator", "PlayerSession"]
