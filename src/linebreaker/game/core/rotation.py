# src/linebreaker/game/core/rotation.py
from __future__ import annotations

import numpy as np

from linebreaker.game.core.grid import Grid


def collides(*, grid: Grid, shape: np.ndarray, px: int, py: int) -> bool:
    h, w = shape.shape
    for yy in range(h):
        for xx in range(w):
            if shape[yy, xx] == 0:
                continue
            x = px + xx
            y = py + yy
            if x < 0 or x >= grid.w or y < 0 or y >= grid.h:
                return True
            if grid.cells[y, x] != 0:
                return True
    return False


def rotate_cw(shape: np.ndarray) -> np.ndarray:
    """
    90 degree clockwise rotation: rotated[c][r] = shape[rows-1-r][c].
    """
    m = np.asarray(shape)
    return np.ascontiguousarray(m[::-1].T)


def try_rotate(*, grid: Grid, shape: np.ndarray, px: int, py: int) -> np.ndarray | None:
    """
    Minimal rotation rule: no wall kicks.

    Returns the rotated mask, or None if it does not fit at (px, py).
    """
    rotated = rotate_cw(shape)
    if collides(grid=grid, shape=rotated, px=px, py=py):
        return None
    return rotated
