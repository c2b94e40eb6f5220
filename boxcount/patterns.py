"""Default round payload generator.

The coordinator only needs a callable ``round_number -> RoundPayload``; this
module is the one shipped with the service. Difficulty grows with the round
number by moving from static grids to moving and staggered layouts.
"""
from __future__ import annotations

from typing import Callable, List

from .schemas import AnimationConfig, Box, BoxAnimation, RoundPayload

PatternGenerator = Callable[[], RoundPayload]
RoundPayloadGenerator = Callable[[int], RoundPayload]


def simple_static() -> RoundPayload:
    """Four boxes in a 2x2 grid, no movement, visible for 3 seconds."""
    size = 1
    spacing = 2
    color = "#60a5fa"
    boxes = [
        Box(x=-spacing, y=0, z=-spacing, size=size, color=color),
        Box(x=spacing, y=0, z=-spacing, size=size, color=color),
        Box(x=-spacing, y=0, z=spacing, size=size, color=color),
        Box(x=spacing, y=0, z=spacing, size=size, color=color),
    ]
    return RoundPayload(
        boxes=boxes,
        correct_count=len(boxes),
        animation=BoxAnimation(type="static", visible_duration=3000),
    )


def sliding_plane() -> RoundPayload:
    """Five boxes in a row sliding right, visible for 2 seconds."""
    size = 1
    spacing = 1.5
    color = "#34d399"
    boxes = [Box(x=spacing * i, y=0, z=0, size=size, color=color) for i in range(-2, 3)]
    return RoundPayload(
        boxes=boxes,
        correct_count=len(boxes),
        animation=BoxAnimation(
            type="slide",
            visible_duration=2000,
            config=AnimationConfig(direction="right", speed=2),
        ),
    )


def snake_staggered() -> RoundPayload:
    """L-shaped snake of nine boxes appearing one after another."""
    size = 1
    spacing = 1.5
    color = "#f472b6"
    horizontal = [Box(x=spacing * i, y=0, z=0, size=size, color=color) for i in range(-2, 3)]
    vertical = [
        Box(x=spacing * 2, y=spacing * i, z=0, size=size, color=color) for i in range(1, 5)
    ]
    boxes = horizontal + vertical
    return RoundPayload(
        boxes=boxes,
        correct_count=len(boxes),
        animation=BoxAnimation(
            type="stagger",
            visible_duration=1500,
            config=AnimationConfig(stagger_delay=100),
        ),
    )


LATE_ROUND_PATTERNS: List[PatternGenerator] = [simple_static, sliding_plane, snake_staggered]


def select_pattern(round_number: int) -> PatternGenerator:
    if round_number <= 3:
        return simple_static
    if round_number <= 6:
        return sliding_plane if round_number % 2 == 0 else simple_static
    return LATE_ROUND_PATTERNS[(round_number - 7) % len(LATE_ROUND_PATTERNS)]


def generate_round_payload(round_number: int) -> RoundPayload:
    return select_pattern(round_number)()


__all__ = [
    "PatternGenerator",
    "RoundPayloadGenerator",
    "simple_static",
    "sliding_plane",
    "snake_staggered",
    "select_pattern",
    "generate_round_payload",
]
