"""Runtime configuration read from ``BOXCOUNT_*`` environment variables."""
from __future__ import annotations

import os
from typing import List

from pydantic import BaseModel, Field

from .constants import DEFAULT_MIN_PLAYERS, DEFAULT_SEND_TIMEOUT_SEC, DEFAULT_TOTAL_ROUNDS

ENV_PREFIX = "BOXCOUNT_"


def _env(name: str, default: str) -> str:
    return os.environ.get(ENV_PREFIX + name, default)


class Settings(BaseModel):
    host: str = "0.0.0.0"
    port: int = 8000
    log_level: str = "INFO"
    cors_origins: List[str] = Field(default_factory=lambda: ["*"])

    # Rooms idle longer than this are removed by the periodic sweep.
    room_ttl_ms: int = 5 * 60 * 1000
    # Checked on every lookup so rooms are bounded even without sweeps.
    lazy_room_ttl_ms: int = 30 * 60 * 1000
    cleanup_interval_sec: float = 60.0
    # Per-connection write bound used by the fan-out.
    send_timeout_sec: float = Field(default=DEFAULT_SEND_TIMEOUT_SEC, gt=0)

    min_players: int = Field(default=DEFAULT_MIN_PLAYERS, ge=1)
    total_rounds: int = Field(default=DEFAULT_TOTAL_ROUNDS, ge=1)
    answer_duration_ms: int = 10_000
    results_duration_ms: int = 5_000
    # Drive round transitions with timers. Tests turn this off and call the
    # transitions directly.
    auto_advance: bool = True

    @classmethod
    def from_env(cls) -> "Settings":
        origins = [o.strip() for o in _env("CORS_ORIGINS", "*").split(",") if o.strip()]
        return cls(
            host=_env("HOST", "0.0.0.0"),
            port=int(_env("PORT", "8000")),
            log_level=_env("LOG_LEVEL", "INFO").upper(),
            cors_origins=origins or ["*"],
            room_ttl_ms=int(_env("ROOM_TTL_MS", str(5 * 60 * 1000))),
            lazy_room_ttl_ms=int(_env("LAZY_ROOM_TTL_MS", str(30 * 60 * 1000))),
            cleanup_interval_sec=float(_env("CLEANUP_INTERVAL_SEC", "60")),
            send_timeout_sec=float(_env("SEND_TIMEOUT_SEC", str(DEFAULT_SEND_TIMEOUT_SEC))),
            min_players=int(_env("MIN_PLAYERS", str(DEFAULT_MIN_PLAYERS))),
            total_rounds=int(_env("TOTAL_ROUNDS", str(DEFAULT_TOTAL_ROUNDS))),
            answer_duration_ms=int(_env("ANSWER_DURATION_MS", "10000")),
            results_duration_ms=int(_env("RESULTS_DURATION_MS", "5000")),
            auto_advance=_env("AUTO_ADVANCE", "1").lower() in ("1", "true", "yes"),
        )


__all__ = ["Settings", "ENV_PREFIX"]
