# src/linebreaker/game/core/gravity.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from linebreaker.game.core.controller import PieceController
from linebreaker.game.core.timeline import Scheduled, Timeline
from linebreaker.game.core.types import Gravity

logger = logging.getLogger(__name__)

GRAVITY_WARN = "gravity.warn"
GRAVITY_SHIFT = "gravity.shift"
GRAVITY_KEYS = frozenset({GRAVITY_WARN, GRAVITY_SHIFT})


def floor_distance(*, y: int, height: int, rows: int, gravity: Gravity) -> int:
    """Free rows between the piece and the floor gravity pulls it toward."""
    if gravity is Gravity.DOWN:
        return int(rows) - int(y) - int(height)
    return int(y)


def y_for_floor_distance(*, d: int, height: int, rows: int, gravity: Gravity) -> int:
    if gravity is Gravity.DOWN:
        return int(rows) - int(d) - int(height)
    return int(d)


@dataclass(frozen=True)
class ShiftOutcome:
    direction: Gravity
    piece_fits: bool


class GravityController:
    """
    Periodic gravity inversion.

    Every `interval_ms` the direction flips, the grid rows are reversed, and the
    falling piece keeps its distance to the floor. A warning entry fires
    `warning_ms` before each shift.

    A reprojected piece that collides is reported, not moved; the owner puts it
    back on the spawn edge like any other spawn.
    """

    def __init__(self, *, timeline: Timeline, interval_ms: int = 30_000, warning_ms: int = 3_000) -> None:
        if int(interval_ms) <= 0:
            raise ValueError(f"gravity interval_ms must be positive, got {interval_ms}")
        if not 0 <= int(warning_ms) <= int(interval_ms):
            raise ValueError(f"warning_ms must be in [0, interval_ms], got {warning_ms}")
        self.timeline = timeline
        self.interval_ms = int(interval_ms)
        self.warning_ms = int(warning_ms)
        self.direction = Gravity.DOWN

    def reset(self) -> None:
        self.timeline.cancel(GRAVITY_WARN)
        self.timeline.cancel(GRAVITY_SHIFT)
        self.direction = Gravity.DOWN

    @property
    def next_shift_ms(self) -> Optional[int]:
        return self.timeline.next_at(GRAVITY_SHIFT)

    def arm(self, now_ms: int) -> None:
        shift_at = int(now_ms) + self.interval_ms
        self.timeline.schedule(shift_at - self.warning_ms, GRAVITY_WARN)
        self.timeline.schedule(shift_at, GRAVITY_SHIFT)

    def shift(self, controller: PieceController) -> ShiftOutcome:
        """
        Flip direction and grid, reproject the falling piece by floor distance.
        """
        grid = controller.grid
        old = self.direction
        new = old.flipped()

        grid.invert()
        self.direction = new
        controller.gravity = new

        p = controller.active
        fits = True
        if p is not None:
            d = floor_distance(y=p.y, height=p.height, rows=grid.h, gravity=old)
            p.y = y_for_floor_distance(d=d, height=p.height, rows=grid.h, gravity=new)
            fits = controller.fits(x=p.x, y=p.y)

        logger.debug("gravity %s -> %s (piece fits=%s)", old.value, new.value, fits)
        return ShiftOutcome(direction=new, piece_fits=fits)

    def handle(self, entry: Scheduled, controller: PieceController) -> Optional[ShiftOutcome]:
        """
        Consume one due gravity entry. Warnings return None; shifts re-arm the
        next interval from the scheduled shift time.
        """
        if entry.key == GRAVITY_WARN:
            return None
        if entry.key == GRAVITY_SHIFT:
            outcome = self.shift(controller)
            self.arm(entry.at_ms)
            return outcome
        raise ValueError(f"not a gravity entry: {entry.key!r}")
