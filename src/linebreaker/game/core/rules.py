# src/linebreaker/game/core/rules.py
from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ScoreConfig:
    single: int = 100
    double: int = 300
    triple: int = 500
    tetris: int = 800


@dataclass(frozen=True)
class SpeedConfig:
    lines_per_level: int = 10
    base_interval_ms: int = 1000
    interval_step_ms: int = 80
    min_interval_ms: int = 100


def score_for_clears(cleared: int, cfg: ScoreConfig) -> int:
    if cleared == 1:
        return cfg.single
    if cleared == 2:
        return cfg.double
    if cleared == 3:
        return cfg.triple
    if cleared >= 4:
        return cfg.tetris
    return 0


def level_for_lines(lines: int, cfg: SpeedConfig) -> int:
    return int(lines) // int(cfg.lines_per_level) + 1


def drop_interval_for_level(level: int, cfg: SpeedConfig) -> int:
    # Level 1 runs at the base interval; the linear ramp starts at the first level-up.
    lvl = int(level)
    if lvl <= 1:
        return int(cfg.base_interval_ms)
    return max(int(cfg.min_interval_ms), int(cfg.base_interval_ms) - lvl * int(cfg.interval_step_ms))


@dataclass(frozen=True)
class ClearScore:
    score_delta: int
    level: int
    leveled_up: bool
    drop_interval_ms: int


class ScoreEngine:
    """
    Score / level / speed bookkeeping.

    Owns the cumulative counters; the session reads them for snapshots.
    """

    def __init__(self, *, score_cfg: ScoreConfig | None = None, speed_cfg: SpeedConfig | None = None) -> None:
        self.score_cfg = score_cfg or ScoreConfig()
        self.speed_cfg = speed_cfg or SpeedConfig()
        if int(self.speed_cfg.lines_per_level) <= 0:
            raise ValueError(f"lines_per_level must be positive, got {self.speed_cfg.lines_per_level}")
        self.reset()

    def reset(self) -> None:
        self.score = 0
        self.lines = 0
        self.level = 1
        self.drop_interval_ms = drop_interval_for_level(1, self.speed_cfg)

    def add_points(self, points: int) -> None:
        self.score += max(0, int(points))

    def apply_clear(self, cleared: int) -> ClearScore:
        """
        Register `cleared` lines from one clear cycle.

        The level is updated first, so the delta uses the post-clear level.
        """
        n = int(cleared)
        if n <= 0:
            return ClearScore(0, self.level, False, self.drop_interval_ms)

        self.lines += n
        new_level = level_for_lines(self.lines, self.speed_cfg)
        leveled_up = new_level > self.level
        if leveled_up:
            self.level = new_level
            self.drop_interval_ms = drop_interval_for_level(new_level, self.speed_cfg)

        delta = score_for_clears(n, self.score_cfg) * self.level
        self.score += delta
        return ClearScore(int(delta), int(self.level), bool(leveled_up), int(self.drop_interval_ms))
