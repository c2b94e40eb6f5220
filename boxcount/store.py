"""Authoritative in-memory table of live rooms.

One instance is owned by the application (see ``boxcount.app``) and handed to
every handler; nothing here is a module-level singleton, so tests build their
own stores.
"""
from __future__ import annotations

import logging
import time
from typing import Callable, Dict, Iterator, List, Optional

from .constants import DEFAULT_SEND_TIMEOUT_SEC
from .identifiers import generate_room_id, normalize_room_id
from .room import Room

logger = logging.getLogger(__name__)

Clock = Callable[[], int]

DEFAULT_ROOM_TTL_MS = 5 * 60 * 1000
DEFAULT_LAZY_ROOM_TTL_MS = 30 * 60 * 1000


def now_ms() -> int:
    return int(time.time() * 1000)


class RoomStore:
    def __init__(
        self,
        room_ttl_ms: int = DEFAULT_ROOM_TTL_MS,
        lazy_room_ttl_ms: int = DEFAULT_LAZY_ROOM_TTL_MS,
        clock: Clock = now_ms,
        id_generator: Callable[[], str] = generate_room_id,
        send_timeout: float = DEFAULT_SEND_TIMEOUT_SEC,
    ) -> None:
        self.room_ttl_ms = room_ttl_ms
        self.lazy_room_ttl_ms = lazy_room_ttl_ms
        self.clock = clock
        self._generate_id = id_generator
        self.send_timeout = send_timeout
        self._rooms: Dict[str, Room] = {}

    def __len__(self) -> int:
        return len(self._rooms)

    def __iter__(self) -> Iterator[Room]:
        return iter(list(self._rooms.values()))

    def create_room(self) -> str:
        room_id = self._generate_id()
        while room_id in self._rooms:
            room_id = self._generate_id()

        self._rooms[room_id] = Room(room_id, now=self.clock(), send_timeout=self.send_timeout)
        logger.info("Created room %s (%d live)", room_id, len(self._rooms))
        return room_id

    def get_room(self, room_id: str) -> Optional[Room]:
        """Look a room up, evicting it first if it has been idle too long."""
        room_id = normalize_room_id(room_id)
        room = self._rooms.get(room_id)
        if room is not None and self.clock() - room.last_activity > self.lazy_room_ttl_ms:
            logger.info("Evicting stale room %s on access", room_id)
            self.delete_room(room_id)
            return None
        return room

    def delete_room(self, room_id: str) -> bool:
        room = self._rooms.pop(normalize_room_id(room_id), None)
        if room is None:
            return False
        room.cancel_round_task()
        logger.info("Deleted room %s (%d live)", room.room_id, len(self._rooms))
        return True

    def room_exists(self, room_id: str) -> bool:
        return normalize_room_id(room_id) in self._rooms

    def update_last_activity(self, room_id: str) -> None:
        room = self._rooms.get(normalize_room_id(room_id))
        if room is not None:
            room.last_activity = max(room.last_activity, self.clock())

    def cleanup_rooms(self) -> List[str]:
        """Delete every room idle longer than ``room_ttl_ms``; return their ids."""
        now = self.clock()
        stale = [
            room_id
            for room_id, room in self._rooms.items()
            if now - room.last_activity > self.room_ttl_ms
        ]
        for room_id in stale:
            self.delete_room(room_id)
        return stale


__all__ = ["RoomStore", "Clock", "now_ms"]
