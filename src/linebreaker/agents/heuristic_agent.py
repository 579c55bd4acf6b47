# src/linebreaker/agents/heuristic_agent.py
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Tuple

import numpy as np

from linebreaker.game.core.grid import Grid
from linebreaker.game.core.metrics import board_snapshot_metrics_from_grid
from linebreaker.game.core.rotation import collides, rotate_cw
from linebreaker.game.core.types import Gravity, Piece


@dataclass(frozen=True)
class HeuristicWeights:
    # CodemyRoad: a*agg_height + b*complete_lines + c*holes + d*bumpiness
    a_agg_height: float = -0.510066
    b_lines: float = 0.760666
    c_holes: float = -0.35663
    d_bumpiness: float = -0.184483


@dataclass(frozen=True)
class Placement:
    rotations: int
    x: int
    phi: float


class HeuristicAgent:
    """
    CodemyRoad-style placement agent, immediate evaluation only (no lookahead).

    For every distinct rotation and column it drops the piece straight along
    gravity from its current row, scores the resulting board and returns the best
    Placement. Complete rows and columns both count as lines.
    """

    def __init__(self, *, weights: HeuristicWeights = HeuristicWeights()) -> None:
        self.w = weights

    def _phi(self, *, cells: np.ndarray, gravity: Gravity) -> float:
        occ = cells != 0
        lines = int(np.all(occ, axis=1).sum()) + int(np.all(occ, axis=0).sum())
        m = board_snapshot_metrics_from_grid(cells, gravity)
        return (
                self.w.a_agg_height * float(m.agg_height)
                + self.w.b_lines * float(lines)
                + self.w.c_holes * float(m.holes)
                + self.w.d_bumpiness * float(m.bumpiness)
        )

    @staticmethod
    def _distinct_rotations(shape: np.ndarray) -> List[Tuple[int, np.ndarray]]:
        """(clockwise turns, mask) for each distinct orientation."""
        out: List[Tuple[int, np.ndarray]] = []
        s = shape
        for rot in range(4):
            if not any(o.shape == s.shape and np.array_equal(o, s) for _, o in out):
                out.append((rot, s))
            s = rotate_cw(s)
        return out

    def best_placement(self, *, grid: Grid, piece: Piece, gravity: Gravity) -> Optional[Placement]:
        best: Optional[Placement] = None
        for rot, shape in self._distinct_rotations(piece.shape):
            h, w = shape.shape
            y0 = min(max(0, piece.y), grid.h - h)
            for x in range(0, grid.w - w + 1):
                if collides(grid=grid, shape=shape, px=x, py=y0):
                    continue
                y = y0
                while not collides(grid=grid, shape=shape, px=x, py=y + gravity.step):
                    y += gravity.step
                cells = grid.cells.copy()
                ys, xs = np.nonzero(shape)
                cells[ys + y, xs + x] = piece.color
                phi = self._phi(cells=cells, gravity=gravity)
                if best is None or phi > best.phi:
                    best = Placement(rotations=rot, x=x, phi=phi)
        return best
