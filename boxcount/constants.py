import string

ROOM_ID_LENGTH = 6
ROOM_ID_ALPHABET = string.ascii_uppercase + string.digits

MAX_PLAYER_NAME_LENGTH = 32

# Game lifecycle
GAME_NOT_STARTED = "notStarted"
GAME_STARTED = "started"
GAME_FINISHED = "finished"

# Phases of a single round
ROUND_NOT_STARTED = "notStarted"
ROUND_SHOWING_BOXES = "showingBoxes"
ROUND_ANSWERING = "answering"
ROUND_SHOW_RESULTS = "showResults"

DEFAULT_MIN_PLAYERS = 2
DEFAULT_TOTAL_ROUNDS = 10

DEFAULT_VISIBLE_DURATION_MS = 3000

# Upper bound on a single socket write before the peer is treated as stuck.
DEFAULT_SEND_TIMEOUT_SEC = 2.0

# Points awarded by distance between the submitted count and the correct one.
# Anything further away (or no answer at all) earns nothing.
PROXIMITY_POINTS: dict[int, int] = {
    0: 100,
    1: 50,
    2: 25,
}

__all__ = [
    "ROOM_ID_LENGTH",
    "ROOM_ID_ALPHABET",
    "MAX_PLAYER_NAME_LENGTH",
    "GAME_NOT_STARTED",
    "GAME_STARTED",
    "GAME_FINISHED",
    "ROUND_NOT_STARTED",
    "ROUND_SHOWING_BOXES",
    "ROUND_ANSWERING",
    "ROUND_SHOW_RESULTS",
    "DEFAULT_MIN_PLAYERS",
    "DEFAULT_TOTAL_ROUNDS",
    "DEFAULT_VISIBLE_DURATION_MS",
    "DEFAULT_SEND_TIMEOUT_SEC",
    "PROXIMITY_POINTS",
]
