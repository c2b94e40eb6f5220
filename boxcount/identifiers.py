"""Short shareable room codes and opaque player ids."""
from __future__ import annotations

import random
import uuid

from .constants import ROOM_ID_ALPHABET, ROOM_ID_LENGTH


def generate_room_id() -> str:
    """Return a 6-character uppercase alphanumeric code.

    Not unique on its own; :class:`boxcount.store.RoomStore` retries on
    collision with live rooms.
    """
    return "".join(random.choices(ROOM_ID_ALPHABET, k=ROOM_ID_LENGTH))


def generate_player_id() -> str:
    return uuid.uuid4().hex


def normalize_room_id(room_id: str) -> str:
    return room_id.strip().upper()


__all__ = ["generate_room_id", "generate_player_id", "normalize_room_id"]
