# src/linebreaker/game/core/line_clear.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from linebreaker.game.core.grid import Grid
from linebreaker.game.core.timeline import Scheduled, Timeline
from linebreaker.game.core.types import Gravity

logger = logging.getLogger(__name__)

FLASH_TICK = "flash.tick"
FLASH_DONE = "flash.done"
FLASH_KEYS = frozenset({FLASH_TICK, FLASH_DONE})


@dataclass
class FlashState:
    rows: Tuple[int, ...] = ()
    cols: Tuple[int, ...] = ()
    ticks: int = 0
    highlight: bool = False
    active: bool = False


@dataclass(frozen=True)
class Explosion:
    row: int
    col: int
    cells_cleared: int


@dataclass(frozen=True)
class ClearOutcome:
    rows: Tuple[int, ...]
    cols: Tuple[int, ...]
    explosions: Tuple[Explosion, ...] = field(default_factory=tuple)

    @property
    def lines(self) -> int:
        return len(self.rows) + len(self.cols)


class LineClearEngine:
    """
    Idle -> Flashing -> Idle.

    detect() snapshots full rows and columns right after a lock. If anything is
    full, the engine flashes for `flash_duration_ms` split into `flash_ticks`
    highlight toggles (timeline entries), then resolve() removes everything in
    the snapshot in one go. Completions created by the removal itself are not
    chased in the same cycle.
    """

    def __init__(
            self,
            *,
            timeline: Timeline,
            flash_duration_ms: int = 300,
            flash_ticks: int = 6,
            bomb_cell_bonus: int = 50,
    ) -> None:
        if int(flash_duration_ms) < 0:
            raise ValueError(f"flash_duration_ms must be >= 0, got {flash_duration_ms}")
        if int(flash_ticks) <= 0:
            raise ValueError(f"flash_ticks must be >= 1, got {flash_ticks}")
        self.timeline = timeline
        self.flash_duration_ms = int(flash_duration_ms)
        self.flash_ticks = int(flash_ticks)
        self.bomb_cell_bonus = int(bomb_cell_bonus)
        self.flash = FlashState()

    @property
    def flashing(self) -> bool:
        return bool(self.flash.active)

    def is_pending(self, row: int, col: int) -> bool:
        """True if (row, col) lies in a row or column waiting to be removed."""
        f = self.flash
        return bool(f.active and (row in f.rows or col in f.cols))

    def reset(self) -> None:
        self.timeline.cancel(FLASH_TICK)
        self.timeline.cancel(FLASH_DONE)
        self.flash = FlashState()

    def detect(self, grid: Grid, *, now_ms: int) -> Optional[FlashState]:
        """
        Scan after a lock; start flashing if any row or column is full.
        """
        if self.flash.active:
            raise RuntimeError("detect() while a flash is pending")

        rows = tuple(grid.full_rows())
        cols = tuple(grid.full_cols())
        if not rows and not cols:
            return None

        self.flash = FlashState(rows=rows, cols=cols, ticks=0, highlight=True, active=True)

        step = self.flash_duration_ms / self.flash_ticks
        for i in range(1, self.flash_ticks):
            self.timeline.schedule(int(now_ms) + int(round(i * step)), FLASH_TICK)
        self.timeline.schedule(int(now_ms) + self.flash_duration_ms, FLASH_DONE)

        logger.debug("flashing rows=%s cols=%s", rows, cols)
        return self.flash

    def handle(self, entry: Scheduled, grid: Grid, gravity: Gravity) -> Optional[ClearOutcome]:
        """
        Consume one due flash entry. Returns the outcome once the flash completes.
        """
        if not self.flash.active:
            return None
        self.flash.ticks += 1
        if entry.key == FLASH_TICK:
            self.flash.highlight = not self.flash.highlight
            return None
        if entry.key == FLASH_DONE:
            return self.resolve(grid, gravity)
        raise ValueError(f"not a flash entry: {entry.key!r}")

    def resolve(self, grid: Grid, gravity: Gravity) -> ClearOutcome:
        rows, cols = self.flash.rows, self.flash.cols

        cleared = [(r, c) for r in rows for c in range(grid.w)]
        cleared += [(r, c) for c in cols for r in range(grid.h)]
        bombs = grid.bombs_in(cleared)

        grid.remove_rows(rows, gravity)
        for c in cols:
            grid.clear_column(c)
            grid.compact_column(c, gravity)

        explosions: List[Explosion] = []
        for r, c in bombs:
            # The bomb went with its row or column, so whatever sits at (r, c) now was a neighbour.
            n, affected = grid.explode(r, c, include_centre=True)
            for col in affected:
                grid.compact_column(col, gravity)
            explosions.append(Explosion(row=r, col=c, cells_cleared=n))
            logger.debug("bomb at (%d,%d) cleared %d cells", r, c, n)

        self.reset()
        return ClearOutcome(rows=rows, cols=cols, explosions=tuple(explosions))

    def bomb_bonus(self, outcome: ClearOutcome) -> int:
        return sum(e.cells_cleared for e in outcome.explosions) * self.bomb_cell_bonus

    def invert(self, rows: int) -> None:
        """Mirror pending row indices after the grid was inverted."""
        if not self.flash.active:
            return
        self.flash.rows = tuple(sorted(int(rows) - 1 - r for r in self.flash.rows))
