# src/linebreaker/apps/autoplay/entrypoint.py
from __future__ import annotations

import argparse
import json
import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import numpy as np

from linebreaker.agents.heuristic_agent import HeuristicAgent, Placement
from linebreaker.config.io import load_game_config
from linebreaker.game.core.events import (
    BombExploded,
    Event,
    GameOver,
    GravityShifted,
    LevelUp,
    LinesCleared,
    PieceLocked,
    RevealFinished,
)
from linebreaker.game.core.session import GameSession
from linebreaker.game.core.types import Phase, Piece
from linebreaker.utils.logging import setup_logger


@dataclass
class GameTotals:
    pieces: int = 0
    lines: int = 0
    clears: int = 0
    bombs: int = 0
    gravity_shifts: int = 0
    level_ups: int = 0
    final_score: int = 0
    final_level: int = 1
    frames: int = 0
    finished: bool = False


@dataclass
class AutoplayTotals:
    games: list[GameTotals] = field(default_factory=list)

    def current(self) -> GameTotals:
        return self.games[-1]

    def on_event(self, e: Event) -> None:
        if not self.games:
            return
        g = self.current()
        if isinstance(e, PieceLocked):
            g.pieces += 1
        elif isinstance(e, LinesCleared):
            g.clears += 1
            g.lines += int(e.count)
        elif isinstance(e, BombExploded):
            g.bombs += 1
        elif isinstance(e, GravityShifted):
            g.gravity_shifts += 1
        elif isinstance(e, LevelUp):
            g.level_ups += 1
        elif isinstance(e, GameOver):
            g.final_score = int(e.final_score)
            g.final_level = int(e.final_level)
        elif isinstance(e, RevealFinished):
            g.finished = True

    def to_dict(self) -> dict[str, Any]:
        n = max(1, len(self.games))
        return {
            "games": len(self.games),
            "avg_score": float(sum(g.final_score for g in self.games) / n),
            "best_score": int(max((g.final_score for g in self.games), default=0)),
            "avg_lines": float(sum(g.lines for g in self.games) / n),
            "avg_pieces": float(sum(g.pieces for g in self.games) / n),
            "bombs": int(sum(g.bombs for g in self.games)),
            "gravity_shifts": int(sum(g.gravity_shifts for g in self.games)),
            "max_level": int(max((g.final_level for g in self.games), default=1)),
        }


class AgentDriver:
    """
    Turns one Placement per piece into per-frame commands: rotate first, then
    shift toward the target column, then hard drop.
    """

    def __init__(self, *, session: GameSession, agent: HeuristicAgent) -> None:
        self.session = session
        self.agent = agent
        self._piece: Optional[Piece] = None
        self._plan: Optional[Placement] = None
        self._turns_left = 0

    def act(self) -> None:
        s = self.session
        p = s.controller.active
        if s.phase is not Phase.RUNNING or p is None or s.clears.flashing:
            return

        if p is not self._piece:
            self._piece = p
            self._plan = self.agent.best_placement(grid=s.grid, piece=p, gravity=s.gravity.direction)
            self._turns_left = self._plan.rotations if self._plan is not None else 0

        if self._plan is None:
            s.hard_drop()
            return
        if self._turns_left > 0:
            self._turns_left -= 1
            if s.rotate_piece():
                return
        if p.x != self._plan.x:
            if s.move_piece(1 if self._plan.x > p.x else -1):
                return
        s.hard_drop()


def _render_summary_table(*, meta: dict[str, Any], stats: dict[str, Any]) -> Any:
    from rich import box
    from rich.table import Table

    table = Table(title="[autoplay] RESULT", box=box.SIMPLE_HEAVY)
    table.add_column("Metric", style="bold")
    table.add_column("Value")

    for k, v in meta.items():
        table.add_row(str(k), str(v))
    table.add_section()
    for k, v in stats.items():
        table.add_row(str(k), f"{v:.2f}" if isinstance(v, float) else str(v))
    return table


def _emit_table(*, logger: logging.Logger, table: Any) -> None:
    console = None
    for handler in getattr(logger, "handlers", []):
        console = getattr(handler, "console", None)
        if console is not None:
            break
    if console is None:
        from rich.console import Console

        console = Console()
    console.print(table)


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    ap = argparse.ArgumentParser(description="Play LineBreaker headless with a heuristic agent.")
    ap.add_argument("--config", type=str, default=None, help="game YAML (top-level or under `game:`)")
    ap.add_argument(
        "--override",
        action="append",
        default=[],
        help="dotlist override, e.g. timing.gravity_interval_ms=10000 (repeatable)",
    )
    ap.add_argument("--games", type=int, default=3)
    ap.add_argument("--seed", type=int, default=0)
    ap.add_argument("--frame-ms", type=int, default=16, help="simulated ms per frame")
    ap.add_argument("--max-frames", type=int, default=200_000, help="per-game frame cap (0 disables)")
    ap.add_argument("--log-level", type=str, default="info")
    ap.add_argument("--no-rich", action="store_true", help="disable Rich logging")
    ap.add_argument("--json", action="store_true", help="print final stats as JSON only")
    return ap.parse_args(argv)


def run_autoplay(args: argparse.Namespace) -> int:
    logger = setup_logger(name="linebreaker", use_rich=not bool(args.no_rich), level=str(args.log_level))

    cfg = load_game_config(Path(args.config) if args.config else None, overrides=list(args.override))
    session = GameSession(cfg, rng=np.random.default_rng(int(args.seed)))
    totals = AutoplayTotals()
    session.subscribe(totals.on_event)
    driver = AgentDriver(session=session, agent=HeuristicAgent())

    frame_ms = max(1, int(args.frame_ms))
    max_frames = max(0, int(args.max_frames))
    now = 0

    t0 = time.perf_counter()
    for game_idx in range(max(1, int(args.games))):
        totals.games.append(GameTotals())
        session.start_game()

        frames = 0
        while not totals.current().finished:
            if max_frames and frames >= max_frames:
                logger.info("game %d hit the frame cap (%d)", game_idx, max_frames)
                break
            driver.act()
            session.tick(now)
            now += frame_ms
            frames += 1

        g = totals.current()
        g.frames = frames
        if not g.finished:
            s = session.state()
            g.final_score, g.final_level = s.score, s.level
        logger.info(
            "game %d: score=%d level=%d lines=%d pieces=%d bombs=%d shifts=%d",
            game_idx, g.final_score, g.final_level, g.lines, g.pieces, g.bombs, g.gravity_shifts,
        )

    elapsed = time.perf_counter() - t0
    stats = totals.to_dict()
    meta = {
        "seed": int(args.seed),
        "rule": cfg.piece_rule,
        "board": f"{cfg.rows}x{cfg.cols}",
        "elapsed_s": f"{elapsed:.3f}",
        "high_score": int(session.preferences.high_score),
    }

    if bool(args.json):
        print(json.dumps({**meta, **stats}, indent=2, sort_keys=True))
    else:
        _emit_table(logger=logger, table=_render_summary_table(meta=meta, stats=stats))
    return 0


__all__ = ["AgentDriver", "AutoplayTotals", "GameTotals", "parse_args", "run_autoplay"]
