# src/linebreaker/game/core/controller.py
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Optional, Tuple

from linebreaker.game.core.grid import Grid
from linebreaker.game.core.piece_rules import PieceFactory, spawn_position
from linebreaker.game.core.rotation import collides, try_rotate
from linebreaker.game.core.types import BlockKind, Gravity, Piece

logger = logging.getLogger(__name__)


def bomb_cell(piece: Piece) -> Tuple[int, int]:
    """
    Absolute (row, col) of the bomb for a bomb piece: the rounded centroid of its
    set cells (halves round up). If the centroid lands on an unset mask cell, the
    nearest set cell wins (ties broken by row-major order).
    """
    cells = piece.cells()
    n = len(cells)
    cr = math.floor(sum(r for r, _ in cells) / n + 0.5)
    cc = math.floor(sum(c for _, c in cells) / n + 0.5)
    if (cr, cc) in cells:
        return int(cr), int(cc)
    return min(cells, key=lambda rc: ((rc[0] - cr) ** 2 + (rc[1] - cc) ** 2, rc[0], rc[1]))


@dataclass(frozen=True)
class LockResult:
    cells: Tuple[Tuple[int, int], ...]
    bomb: Optional[Tuple[int, int]]


class PieceController:
    """
    Active/next piece handling on top of a shared Grid.

    Contracts:
      - grid is the LOCKED board; the active piece is never written into it before lock().
      - every rejected request leaves the piece untouched and returns False.
      - gravity is set by the owner (GameSession / GravityController).
    """

    def __init__(self, *, grid: Grid, factory: PieceFactory, gravity: Gravity = Gravity.DOWN) -> None:
        self.grid = grid
        self.factory = factory
        self.gravity = gravity
        self.active: Optional[Piece] = None
        self.next_piece: Optional[Piece] = None

    def reset(self, *, grid: Grid, gravity: Gravity) -> None:
        self.grid = grid
        self.gravity = gravity
        self.active = None
        self.next_piece = self.factory.create(gravity)

    def spawn(self) -> bool:
        """
        Promote next -> active and draw a new next piece.

        Returns False when the spawn position collides (game over); the colliding
        piece stays as `active` so renderers can show it.
        """
        if self.next_piece is None:
            self.next_piece = self.factory.create(self.gravity)

        piece = self.next_piece
        self.next_piece = self.factory.create(self.gravity)

        # The preview was created under whatever gravity held at the time.
        piece.x, piece.y = spawn_position(
            shape=piece.shape, rows=self.grid.h, cols=self.grid.w, gravity=self.gravity
        )
        self.active = piece

        if collides(grid=self.grid, shape=piece.shape, px=piece.x, py=piece.y):
            logger.debug("spawn blocked: kind=%s at x=%d y=%d", piece.kind, piece.x, piece.y)
            return False
        logger.debug("spawned kind=%s x=%d y=%d bomb=%s", piece.kind, piece.x, piece.y, piece.has_bomb)
        return True

    def fits(self, *, x: int, y: int, shape=None) -> bool:
        p = self.active
        if p is None:
            return False
        s = p.shape if shape is None else shape
        return not collides(grid=self.grid, shape=s, px=x, py=y)

    def move(self, direction: int) -> bool:
        d = int(direction)
        if d not in (-1, 1):
            raise ValueError(f"direction must be -1 or +1, got {direction!r}")
        p = self.active
        if p is None or not self.fits(x=p.x + d, y=p.y):
            return False
        p.x += d
        return True

    def rotate(self) -> bool:
        p = self.active
        if p is None:
            return False
        rotated = try_rotate(grid=self.grid, shape=p.shape, px=p.x, py=p.y)
        if rotated is None:
            return False
        p.shape = rotated
        return True

    def step(self) -> bool:
        """One cell along gravity; False means the piece rests and must lock."""
        p = self.active
        if p is None:
            return False
        ny = p.y + self.gravity.step
        if not self.fits(x=p.x, y=ny):
            return False
        p.y = ny
        return True

    def hard_drop(self) -> int:
        """Step until contact; returns the number of cells travelled."""
        n = 0
        while self.step():
            n += 1
        return n

    def lock(self) -> LockResult:
        """
        Write the active piece into the grid and discard it.
        """
        p = self.active
        if p is None:
            raise RuntimeError("lock() called without an active piece")

        bomb = bomb_cell(p) if p.has_bomb else None
        cells = p.cells()
        for r, c in cells:
            kind = BlockKind.BOMB if (r, c) == bomb else BlockKind.NORMAL
            self.grid.set_cell(r, c, p.color, kind)

        self.active = None
        logger.debug("locked kind=%s cells=%s bomb=%s", p.kind, cells, bomb)
        return LockResult(cells=tuple(cells), bomb=bomb)
