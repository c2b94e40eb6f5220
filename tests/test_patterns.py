"""Unit tests for boxcount/patterns.py and boxcount/config.py"""

import pytest

from boxcount import patterns
from boxcount.config import Settings


@pytest.mark.parametrize(
    "round_number, expected",
    [
        (1, patterns.simple_static),
        (3, patterns.simple_static),
        (4, patterns.sliding_plane),
        (5, patterns.simple_static),
        (6, patterns.sliding_plane),
        (7, patterns.simple_static),
        (8, patterns.sliding_plane),
        (9, patterns.snake_staggered),
        (10, patterns.simple_static),
    ],
)
def test_select_pattern_by_round(round_number, expected) -> None:
    assert patterns.select_pattern(round_number) is expected


@pytest.mark.parametrize(
    "generator, count, animation",
    [
        (patterns.simple_static, 4, "static"),
        (patterns.sliding_plane, 5, "slide"),
        (patterns.snake_staggered, 9, "stagger"),
    ],
)
def test_correct_count_matches_boxes(generator, count, animation) -> None:
    payload = generator()
    assert payload.correct_count == len(payload.boxes) == count
    assert payload.animation.type == animation
    assert payload.animation.visible_duration > 0


def test_generated_payloads_are_independent() -> None:
    first = patterns.generate_round_payload(1)
    first.boxes.clear()
    assert len(patterns.generate_round_payload(1).boxes) == 4


# --- SETTINGS ----
def test_settings_defaults(monkeypatch) -> None:
    for name in ("TOTAL_ROUNDS", "MIN_PLAYERS", "AUTO_ADVANCE", "CORS_ORIGINS", "ROOM_TTL_MS"):
        monkeypatch.delenv(f"BOXCOUNT_{name}", raising=False)

    settings = Settings.from_env()

    assert settings.total_rounds == 10
    assert settings.min_players == 2
    assert settings.auto_advance is True
    assert settings.cors_origins == ["*"]
    assert settings.room_ttl_ms == 300_000


def test_settings_from_env(monkeypatch) -> None:
    monkeypatch.setenv("BOXCOUNT_TOTAL_ROUNDS", "5")
    monkeypatch.setenv("BOXCOUNT_AUTO_ADVANCE", "false")
    monkeypatch.setenv("BOXCOUNT_CORS_ORIGINS", "http://a.test, http://b.test")
    monkeypatch.setenv("BOXCOUNT_LOG_LEVEL", "debug")
    monkeypatch.setenv("BOXCOUNT_SEND_TIMEOUT_SEC", "0.5")

    settings = Settings.from_env()

    assert settings.total_rounds == 5
    assert settings.auto_advance is False
    assert settings.cors_origins == ["http://a.test", "http://b.test"]
    assert settings.log_level == "DEBUG"
    assert settings.send_timeout_sec == 0.5
