# src/linebreaker/game/core/metrics.py
from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from linebreaker.game.core.constants import EMPTY_CELL
from linebreaker.game.core.types import Gravity


@dataclass(frozen=True)
class BoardSnapshotMetrics:
    """
    Metrics of the LOCKED board only (no active-piece overlay), measured toward the
    current floor.

    holes:
      empty cells with at least one occupied cell between them and the spawn edge
    bumpiness:
      sum(abs(h[i+1] - h[i])) over column heights
    max_height:
      max column height
    agg_height:
      sum of column heights
    """
    holes: int
    bumpiness: int
    max_height: int
    agg_height: int


def board_snapshot_metrics_from_grid(grid: np.ndarray, gravity: Gravity = Gravity.DOWN) -> BoardSnapshotMetrics:
    """
    Compute board metrics from a LOCKED cell grid (EMPTY_CELL = empty).

    Under UP gravity the grid is viewed upside down, so "height" always grows away
    from the floor.
    """
    _ensure_2d_grid(grid)

    occ = np.not_equal(grid, EMPTY_CELL)
    if gravity is Gravity.UP:
        occ = occ[::-1]
    heights = _column_heights_from_occ(occ)

    holes = _count_holes_from_occ(occ)
    bump = _bumpiness_from_heights(heights)
    max_h = int(heights.max()) if heights.size > 0 else 0
    agg_h = int(heights.sum()) if heights.size > 0 else 0

    return BoardSnapshotMetrics(
        holes=int(holes),
        bumpiness=int(bump),
        max_height=int(max_h),
        agg_height=int(agg_h),
    )


# -----------------------------------------------------------------------------
# Internals
# -----------------------------------------------------------------------------
def _ensure_2d_grid(grid: np.ndarray) -> None:
    if not isinstance(grid, np.ndarray):
        raise TypeError(f"grid must be np.ndarray, got {type(grid).__name__}")
    if grid.ndim != 2:
        raise ValueError(f"grid must be 2D, got shape={getattr(grid, 'shape', None)}")


def _column_heights_from_occ(occ: np.ndarray) -> np.ndarray:
    h, _w = occ.shape
    any_filled = occ.any(axis=0)

    # argmax returns 0 when all-false; mask those to 0 height
    first_filled = np.argmax(occ, axis=0)
    heights = np.where(any_filled, h - first_filled, 0).astype(np.int64, copy=False)
    return heights


def _count_holes_from_occ(occ: np.ndarray) -> int:
    # filled_seen[y,x] True if any filled cell exists at or above y in that column
    filled_seen = np.maximum.accumulate(occ, axis=0)
    holes = np.sum((~occ) & filled_seen)
    return int(holes)


def _bumpiness_from_heights(heights: np.ndarray) -> int:
    if heights.size <= 1:
        return 0
    return int(np.abs(np.diff(heights)).sum())
