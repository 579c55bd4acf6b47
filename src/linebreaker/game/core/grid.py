# src/linebreaker/game/core/grid.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

import numpy as np

from linebreaker.game.core.constants import BOMB_RADIUS, EMPTY_CELL
from linebreaker.game.core.types import BlockKind, Gravity


@dataclass
class Grid:
    """
    Locked blocks only.

      cells: (h,w) uint8, 0=empty, 1..K color ids
      kinds: (h,w) uint8 BlockKind, meaningful only where cells != 0

    Every mutation keeps the two arrays in lockstep: an empty cell is always NORMAL.
    """

    h: int
    w: int
    cells: np.ndarray
    kinds: np.ndarray

    @classmethod
    def empty(cls, *, h: int, w: int) -> "Grid":
        if int(h) <= 0 or int(w) <= 0:
            raise ValueError(f"grid dims must be positive, got h={h} w={w}")
        return cls(
            h=int(h),
            w=int(w),
            cells=np.zeros((h, w), dtype=np.uint8),
            kinds=np.full((h, w), int(BlockKind.NORMAL), dtype=np.uint8),
        )

    def copy(self) -> "Grid":
        return Grid(h=self.h, w=self.w, cells=self.cells.copy(), kinds=self.kinds.copy())

    def is_occupied(self, row: int, col: int) -> bool:
        return bool(self.cells[row, col] != EMPTY_CELL)

    def kind_at(self, row: int, col: int) -> BlockKind:
        return BlockKind(int(self.kinds[row, col]))

    def set_cell(self, row: int, col: int, color: int, kind: BlockKind = BlockKind.NORMAL) -> None:
        if int(color) == EMPTY_CELL:
            raise ValueError("use clear_cell() to empty a cell")
        self.cells[row, col] = int(color)
        self.kinds[row, col] = int(kind)

    def clear_cell(self, row: int, col: int) -> None:
        self.cells[row, col] = EMPTY_CELL
        self.kinds[row, col] = int(BlockKind.NORMAL)

    # ---- line scans ---------------------------------------------------------------

    def full_rows(self) -> list[int]:
        full = np.all(self.cells != EMPTY_CELL, axis=1)
        return [int(r) for r in np.flatnonzero(full)]

    def full_cols(self) -> list[int]:
        full = np.all(self.cells != EMPTY_CELL, axis=0)
        return [int(c) for c in np.flatnonzero(full)]

    def bombs_in(self, coords: Iterable[tuple[int, int]]) -> list[tuple[int, int]]:
        """Occupied BOMB cells among coords, deduplicated, in first-seen order."""
        out: list[tuple[int, int]] = []
        seen: set[tuple[int, int]] = set()
        for r, c in coords:
            key = (int(r), int(c))
            if key in seen:
                continue
            seen.add(key)
            if self.is_occupied(*key) and self.kind_at(*key) is BlockKind.BOMB:
                out.append(key)
        return out

    # ---- mutation -----------------------------------------------------------------

    def remove_rows(self, rows: Iterable[int], gravity: Gravity) -> int:
        """
        Delete the given rows and insert the same number of empty rows at the edge
        gravity pulls new rows from (top for DOWN, bottom for UP).

        Relative order of the surviving rows is preserved and h is unchanged.
        """
        idx = sorted({int(r) for r in rows})
        if not idx:
            return 0
        keep = np.ones(self.h, dtype=bool)
        keep[idx] = False

        n = len(idx)
        fresh_cells = np.zeros((n, self.w), dtype=np.uint8)
        fresh_kinds = np.full((n, self.w), int(BlockKind.NORMAL), dtype=np.uint8)

        if gravity is Gravity.DOWN:
            self.cells = np.vstack([fresh_cells, self.cells[keep]])
            self.kinds = np.vstack([fresh_kinds, self.kinds[keep]])
        else:
            self.cells = np.vstack([self.cells[keep], fresh_cells])
            self.kinds = np.vstack([self.kinds[keep], fresh_kinds])
        return n

    def clear_column(self, col: int) -> None:
        self.cells[:, col] = EMPTY_CELL
        self.kinds[:, col] = int(BlockKind.NORMAL)

    def compact_column(self, col: int, gravity: Gravity) -> None:
        """
        Slide every occupied cell of the column toward the floor, preserving order.
        """
        column = self.cells[:, col]
        occ = np.flatnonzero(column != EMPTY_CELL)
        n = int(occ.size)
        colors = column[occ].copy()
        kinds = self.kinds[occ, col].copy()

        self.clear_column(col)
        if n == 0:
            return
        if gravity is Gravity.DOWN:
            self.cells[self.h - n:, col] = colors
            self.kinds[self.h - n:, col] = kinds
        else:
            self.cells[:n, col] = colors
            self.kinds[:n, col] = kinds

    def explode(
            self,
            row: int,
            col: int,
            radius: int = BOMB_RADIUS,
            *,
            include_centre: bool = False,
    ) -> tuple[int, list[int]]:
        """
        Clear the clipped (2r+1)x(2r+1) neighbourhood around (row, col).

        Returns:
          (occupied_cells_cleared, affected_columns)

        The centre is counted only with include_centre=True, i.e. when the bomb
        is no longer there and the centre holds a block that slid into it.
        """
        r0, r1 = max(0, row - radius), min(self.h - 1, row + radius)
        c0, c1 = max(0, col - radius), min(self.w - 1, col + radius)

        cleared = 0
        for r in range(r0, r1 + 1):
            for c in range(c0, c1 + 1):
                if (include_centre or (r, c) != (row, col)) and self.is_occupied(r, c):
                    cleared += 1
                self.clear_cell(r, c)
        return int(cleared), list(range(c0, c1 + 1))

    def invert(self) -> None:
        """Reverse the row order; cell contents are preserved."""
        self.cells = self.cells[::-1].copy()
        self.kinds = self.kinds[::-1].copy()


def in_danger_zone(grid: Grid, gravity: Gravity, rows: int) -> bool:
    """
    True if any cell in the `rows` rows nearest the spawn edge is occupied.

    The spawn edge is the top for DOWN and the bottom for UP.
    """
    n = max(0, min(int(rows), grid.h))
    if n == 0:
        return False
    band = grid.cells[:n] if gravity is Gravity.DOWN else grid.cells[grid.h - n:]
    return bool(np.any(band != EMPTY_CELL))
