# src/linebreaker/game/core/session.py
from __future__ import annotations

import logging
from typing import Optional

import numpy as np

from linebreaker.config.game import GameConfig
from linebreaker.game.core.controller import PieceController
from linebreaker.game.core.events import (
    BombExploded,
    EventBus,
    GameOver,
    GameStarted,
    GravityShifted,
    GravityShiftWarning,
    HighScoreBeaten,
    LevelUp,
    LinesCleared,
    LinesFlashing,
    Listener,
    PauseToggled,
    PieceLocked,
    PieceMoved,
    PieceRotated,
    PieceSpawned,
    RevealFinished,
    RevealProgress,
)
from linebreaker.game.core.gravity import GRAVITY_KEYS, GRAVITY_SHIFT, GravityController
from linebreaker.game.core.grid import Grid, in_danger_zone
from linebreaker.game.core.line_clear import FLASH_KEYS, ClearOutcome, LineClearEngine
from linebreaker.game.core.piece_rules import PieceFactory, PieceRule, make_piece_rule, spawn_position
from linebreaker.game.core.pieceset import PieceSet
from linebreaker.game.core.rules import ScoreEngine
from linebreaker.game.core.timeline import Timeline
from linebreaker.game.core.types import Phase, Piece, State
from linebreaker.game.preferences import InMemoryPreferenceStore, PreferenceStore, Preferences

logger = logging.getLogger(__name__)

REVEAL_STEP = "reveal.step"


class GameSession:
    """
    The single owner of board, pieces, counters and timers.

    Contracts:

      - exactly one mutator: commands and tick() run synchronously on the caller's thread.
      - tick(ts) order: gravity entries, then flash entries, then the drop timer.
      - the first tick after start_game() anchors every timer; timestamps are ms and
        must be non-decreasing.
      - commands return True when they changed the game, False when rejected.
        Rejections emit nothing.
      - while lines are flashing the drop timer and soft/hard drops are suspended;
        move/rotate still act on the freshly spawned piece.
      - game over (spawn collision only) freezes the board; the reveal sequence then
        runs on tick() and cannot be interrupted.
    """

    def __init__(
            self,
            cfg: Optional[GameConfig] = None,
            *,
            pieces: Optional[PieceSet] = None,
            piece_rule: Optional[PieceRule] = None,
            rng: Optional[np.random.Generator] = None,
            store: Optional[PreferenceStore] = None,
    ) -> None:
        self.cfg = cfg or GameConfig()
        self.pieces = pieces or PieceSet.default()
        if not self.pieces.kinds():
            raise ValueError("PieceSet has no kinds (empty pieceset is invalid).")

        # Caller-owned RNG wins; otherwise seed from config (None => entropy).
        self._rng: np.random.Generator = rng if rng is not None else np.random.default_rng(self.cfg.seed)

        self.events = EventBus()
        self.timeline = Timeline()
        self.grid = Grid.empty(h=self.cfg.rows, w=self.cfg.cols)

        self.factory = PieceFactory(
            pieces=self.pieces,
            rule=piece_rule or make_piece_rule(self.cfg.piece_rule),
            rows=self.cfg.rows,
            cols=self.cfg.cols,
            bomb_chance=self.cfg.bomb_chance,
        )
        self.controller = PieceController(grid=self.grid, factory=self.factory)
        self.clears = LineClearEngine(
            timeline=self.timeline,
            flash_duration_ms=self.cfg.timing.flash_duration_ms,
            flash_ticks=self.cfg.timing.flash_ticks,
            bomb_cell_bonus=self.cfg.scoring.bomb_cell_bonus,
        )
        self.gravity = GravityController(
            timeline=self.timeline,
            interval_ms=self.cfg.timing.gravity_interval_ms,
            warning_ms=self.cfg.timing.gravity_warning_ms,
        )
        self.scorer = ScoreEngine(
            score_cfg=self.cfg.scoring.to_score_config(),
            speed_cfg=self.cfg.speed.to_speed_config(),
        )
        self.preferences = Preferences.load(store if store is not None else InMemoryPreferenceStore())

        self.phase = Phase.IDLE
        self._now_ms: Optional[int] = None
        self._anchored = False
        self._last_drop_ms = 0
        self._paused_at_ms: Optional[int] = None
        self._resume_pending = False
        self._reveal_rows = 0
        self._held_piece: Optional[Piece] = None

    # ---- collaborators -------------------------------------------------------------

    def subscribe(self, listener: Listener):
        return self.events.subscribe(listener)

    # ---- lifecycle -----------------------------------------------------------------

    def start_game(self) -> bool:
        if self.phase is Phase.REVEALING:
            logger.debug("start ignored: game-over reveal still running")
            return False

        self.timeline.clear()
        self.grid = Grid.empty(h=self.cfg.rows, w=self.cfg.cols)
        self.scorer.reset()
        self.clears.reset()
        self.gravity.reset()
        self.factory.reset(self._rng)
        self.controller.reset(grid=self.grid, gravity=self.gravity.direction)

        self.phase = Phase.RUNNING
        self._anchored = False
        self._paused_at_ms = None
        self._resume_pending = False
        self._reveal_rows = 0
        self._held_piece = None

        logger.info("game started (%dx%d, rule=%s)", self.grid.h, self.grid.w, self.cfg.piece_rule)
        self.events.emit(GameStarted())
        self._spawn()
        return True

    def restart_game(self) -> bool:
        return self.start_game()

    def toggle_pause(self) -> bool:
        if self.phase is Phase.RUNNING:
            self.phase = Phase.PAUSED
            self._paused_at_ms = self._now_ms
        elif self.phase is Phase.PAUSED:
            self.phase = Phase.RUNNING
            self._resume_pending = True
        else:
            return False
        self.events.emit(PauseToggled(paused=self.phase is Phase.PAUSED))
        return True

    def toggle_sound(self) -> bool:
        """Flip and persist the sound preference; allowed in any phase."""
        return self.preferences.toggle_sound()

    def toggle_music(self) -> bool:
        return self.preferences.toggle_music()

    # ---- commands ------------------------------------------------------------------

    def _accepting(self) -> bool:
        return self.phase is Phase.RUNNING and self.controller.active is not None

    def move_piece(self, direction: int) -> bool:
        if not self._accepting():
            return False
        if not self.controller.move(direction):
            return False
        p = self.controller.active
        self.events.emit(PieceMoved(x=p.x, y=p.y))
        return True

    def rotate_piece(self) -> bool:
        if not self._accepting():
            return False
        if not self.controller.rotate():
            return False
        self.events.emit(PieceRotated())
        return True

    def soft_drop(self) -> bool:
        if not self._accepting() or self.clears.flashing:
            return False
        self._drop_step()
        return True

    def hard_drop(self) -> bool:
        if not self._accepting() or self.clears.flashing:
            return False
        n = self.controller.hard_drop()
        if n > 0:
            self.scorer.add_points(n * self.cfg.scoring.hard_drop_points)
            p = self.controller.active
            self.events.emit(PieceMoved(x=p.x, y=p.y))
        self._lock(hard_drop=True)
        return True

    # ---- frame loop ----------------------------------------------------------------

    def tick(self, timestamp_ms: int) -> None:
        now = int(timestamp_ms)
        if self._now_ms is not None and now < self._now_ms:
            raise ValueError(f"timestamps must be non-decreasing (got {now} after {self._now_ms})")

        if self.phase is Phase.REVEALING:
            self._now_ms = now
            self._advance_reveal(now)
            return
        if self.phase is not Phase.RUNNING:
            self._now_ms = now
            return

        if not self._anchored:
            self._anchored = True
            self._last_drop_ms = now
            self.gravity.arm(now)
        elif self._resume_pending and self._paused_at_ms is not None:
            delta = now - self._paused_at_ms
            self.timeline.shift(delta)
            self._last_drop_ms += delta
        self._resume_pending = False
        self._paused_at_ms = None
        self._now_ms = now

        for entry in self.timeline.pop_due(now, keys=set(GRAVITY_KEYS)):
            if entry.key != GRAVITY_SHIFT:
                self.events.emit(GravityShiftWarning(shift_at_ms=entry.at_ms + self.gravity.warning_ms))
                continue
            outcome = self.gravity.handle(entry, self.controller)
            self.clears.invert(self.grid.h)
            self.events.emit(GravityShifted(direction=outcome.direction))
            if not outcome.piece_fits:
                self._respawn(self.controller.active)
                if self.phase is not Phase.RUNNING:
                    return

        for entry in self.timeline.pop_due(now, keys=set(FLASH_KEYS)):
            outcome = self.clears.handle(entry, self.grid, self.gravity.direction)
            if outcome is not None:
                self._apply_clear(outcome)
                self._last_drop_ms = now
                if self.phase is not Phase.RUNNING:
                    return

        if self.clears.flashing:
            self._last_drop_ms = now
            return

        if now - self._last_drop_ms > self.scorer.drop_interval_ms:
            self._last_drop_ms = now
            self._drop_step()

    # ---- internals -----------------------------------------------------------------

    def _clock(self) -> int:
        return int(self._now_ms) if self._now_ms is not None else 0

    def _spawn(self) -> None:
        if not self.controller.spawn():
            p = self.controller.active
            if self.clears.flashing and self._blocked_only_by_pending(p):
                # Pending removal frees the spawn area; decide once the flash resolves.
                self._held_piece = p
                self.controller.active = None
                return
            self._game_over()
            return
        p = self.controller.active
        self.events.emit(PieceSpawned(kind=p.kind, x=p.x, y=p.y, has_bomb=p.has_bomb))

    def _blocked_only_by_pending(self, p: Piece) -> bool:
        for r, c in p.cells():
            if not (0 <= r < self.grid.h and 0 <= c < self.grid.w):
                return False
            if self.grid.is_occupied(r, c) and not self.clears.is_pending(r, c):
                return False
        return True

    def _respawn(self, p: Piece) -> None:
        """
        Put an existing piece back on the spawn edge of the current gravity.

        Same rule as a fresh spawn: a blocked spawn edge ends the game.
        """
        p.x, p.y = spawn_position(shape=p.shape, rows=self.grid.h, cols=self.grid.w, gravity=self.gravity.direction)
        self.controller.active = p
        if not self.controller.fits(x=p.x, y=p.y):
            self._game_over()
            return
        self.events.emit(PieceSpawned(kind=p.kind, x=p.x, y=p.y, has_bomb=p.has_bomb))

    def _drop_step(self) -> None:
        if self.controller.step():
            p = self.controller.active
            self.events.emit(PieceMoved(x=p.x, y=p.y))
            return
        self._lock(hard_drop=False)

    def _lock(self, *, hard_drop: bool) -> None:
        res = self.controller.lock()
        self.events.emit(PieceLocked(cells=res.cells, hard_drop=bool(hard_drop)))

        flash = self.clears.detect(self.grid, now_ms=self._clock())
        if flash is not None:
            self.events.emit(LinesFlashing(rows=flash.rows, cols=flash.cols))

        self._spawn()

    def _apply_clear(self, outcome: ClearOutcome) -> None:
        res = self.scorer.apply_clear(outcome.lines)
        self.events.emit(LinesCleared(count=outcome.lines, score_delta=res.score_delta))

        for e in outcome.explosions:
            self.events.emit(BombExploded(row=e.row, col=e.col, cells_cleared=e.cells_cleared))
        self.scorer.add_points(self.clears.bomb_bonus(outcome))

        if res.leveled_up:
            logger.debug("level up -> %d (interval=%dms)", res.level, res.drop_interval_ms)
            self.events.emit(LevelUp(level=res.level))

        if self._held_piece is not None:
            p, self._held_piece = self._held_piece, None
            self._respawn(p)
            return

        # Removal shifted blocks under the piece that spawned during the flash.
        p = self.controller.active
        if p is not None and not self.controller.fits(x=p.x, y=p.y):
            self._respawn(p)

    def _game_over(self) -> None:
        self.phase = Phase.REVEALING
        self.timeline.clear()
        self.clears.reset()

        score, level = int(self.scorer.score), int(self.scorer.level)
        logger.info("game over: score=%d level=%d lines=%d", score, level, self.scorer.lines)
        self.events.emit(GameOver(final_score=score, final_level=level))
        if self.preferences.submit_score(score):
            self.events.emit(HighScoreBeaten(high_score=score))

        self._reveal_rows = 0
        step = int(self.cfg.timing.reveal_step_ms)
        if step <= 0:
            self._reveal_rows = self.grid.h
            self._finish_reveal()
            return
        self.timeline.schedule(self._clock() + step, REVEAL_STEP)

    def _advance_reveal(self, now: int) -> None:
        step = int(self.cfg.timing.reveal_step_ms)
        while self.phase is Phase.REVEALING:
            due = self.timeline.pop_due(now, keys={REVEAL_STEP})
            if not due:
                return
            for entry in due:
                self._reveal_rows += 1
                self.events.emit(RevealProgress(rows=self._reveal_rows))
                if self._reveal_rows >= self.grid.h:
                    self._finish_reveal()
                    return
                self.timeline.schedule(entry.at_ms + step, REVEAL_STEP)

    def _finish_reveal(self) -> None:
        self.phase = Phase.OVER
        self.timeline.clear()
        self.events.emit(RevealFinished())

    # ---- snapshot ------------------------------------------------------------------

    @property
    def game_over(self) -> bool:
        return self.phase in (Phase.REVEALING, Phase.OVER)

    def state(self) -> State:
        flash = self.clears.flash
        active = self.controller.active
        nxt = self.controller.next_piece
        return State(
            grid=self.grid.cells.copy(),
            kinds=self.grid.kinds.copy(),
            score=int(self.scorer.score),
            lines=int(self.scorer.lines),
            level=int(self.scorer.level),
            drop_interval_ms=int(self.scorer.drop_interval_ms),
            gravity=self.gravity.direction,
            phase=self.phase,
            active=active.copy() if active is not None else None,
            next_piece=nxt.copy() if nxt is not None else None,
            flash_rows=tuple(flash.rows) if flash.active else (),
            flash_cols=tuple(flash.cols) if flash.active else (),
            flash_highlight=bool(flash.active and flash.highlight),
            in_danger=in_danger_zone(self.grid, self.gravity.direction, self.cfg.danger_rows),
            high_score=int(self.preferences.high_score),
            sound_enabled=bool(self.preferences.sound_enabled),
            music_enabled=bool(self.preferences.music_enabled),
        )
