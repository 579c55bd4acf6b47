# src/linebreaker/game/core/types.py
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Optional, Tuple

import numpy as np


class Gravity(Enum):
    DOWN = "down"
    UP = "up"

    @property
    def step(self) -> int:
        """Row delta of one cell of fall."""
        return 1 if self is Gravity.DOWN else -1

    def flipped(self) -> "Gravity":
        return Gravity.UP if self is Gravity.DOWN else Gravity.DOWN


class BlockKind(IntEnum):
    NORMAL = 0
    BOMB = 1


class Phase(Enum):
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    REVEALING = "revealing"
    OVER = "over"


@dataclass
class Piece:
    """
    The falling piece.

    shape is a (H,W) uint8 mask, x/y is the top-left anchor in grid coordinates.
    color is the board id written into the grid on lock (1..K).
    """

    kind: str
    shape: np.ndarray
    color: int
    x: int
    y: int
    has_bomb: bool = False

    @property
    def height(self) -> int:
        return int(self.shape.shape[0])

    @property
    def width(self) -> int:
        return int(self.shape.shape[1])

    def cells(self) -> list[tuple[int, int]]:
        """Absolute (row, col) of every set cell."""
        ys, xs = np.nonzero(self.shape)
        return [(int(self.y + r), int(self.x + c)) for r, c in zip(ys, xs)]

    def copy(self) -> "Piece":
        return Piece(
            kind=self.kind,
            shape=self.shape.copy(),
            color=self.color,
            x=self.x,
            y=self.y,
            has_bomb=self.has_bomb,
        )


@dataclass(frozen=True)
class State:
    """
    Render-facing snapshot.

    grid / kinds are read-only COPIES of the locked board (no active overlay).
    The active piece is provided separately; rendering overlays it.
    """

    grid: np.ndarray
    kinds: np.ndarray
    score: int
    lines: int
    level: int
    drop_interval_ms: int
    gravity: Gravity
    phase: Phase

    active: Optional[Piece]
    next_piece: Optional[Piece]

    flash_rows: Tuple[int, ...]
    flash_cols: Tuple[int, ...]
    flash_highlight: bool

    in_danger: bool
    high_score: int
    sound_enabled: bool
    music_enabled: bool

    @property
    def game_over(self) -> bool:
        return self.phase in (Phase.REVEALING, Phase.OVER)

    @property
    def paused(self) -> bool:
        return self.phase is Phase.PAUSED
