# src/linebreaker/config/game.py
from __future__ import annotations

from typing import Literal, Optional

from pydantic import Field, field_validator, model_validator

from linebreaker.config.base import ConfigBase
from linebreaker.game.core.constants import DEFAULT_COLS, DEFAULT_ROWS
from linebreaker.game.core.rules import ScoreConfig, SpeedConfig

PieceRuleName = Literal["weighted", "uniform", "bag7"]


def _as_int(value: object, *, where: str) -> int:
    if isinstance(value, bool):
        raise TypeError(f"{where} must be an int, got bool")
    if not isinstance(value, (int, float, str, bytes, bytearray)):
        raise TypeError(f"{where} must be an int-like value, got {type(value)!r}")
    try:
        return int(value)
    except Exception as e:
        raise TypeError(f"{where} must be an int-like value, got {type(value)!r}") from e


class ScoringConfig(ConfigBase):
    single: int = Field(default=100, ge=0)
    double: int = Field(default=300, ge=0)
    triple: int = Field(default=500, ge=0)
    tetris: int = Field(default=800, ge=0)
    hard_drop_points: int = Field(default=2, ge=0)
    bomb_cell_bonus: int = Field(default=50, ge=0)

    def to_score_config(self) -> ScoreConfig:
        return ScoreConfig(single=self.single, double=self.double, triple=self.triple, tetris=self.tetris)


class SpeedSettings(ConfigBase):
    lines_per_level: int = Field(default=10, ge=1)
    base_interval_ms: int = Field(default=1000, ge=1)
    interval_step_ms: int = Field(default=80, ge=0)
    min_interval_ms: int = Field(default=100, ge=1)

    @model_validator(mode="after")
    def _min_below_base(self) -> "SpeedSettings":
        if self.min_interval_ms > self.base_interval_ms:
            raise ValueError("speed.min_interval_ms must be <= speed.base_interval_ms")
        return self

    def to_speed_config(self) -> SpeedConfig:
        return SpeedConfig(
            lines_per_level=self.lines_per_level,
            base_interval_ms=self.base_interval_ms,
            interval_step_ms=self.interval_step_ms,
            min_interval_ms=self.min_interval_ms,
        )


class TimingConfig(ConfigBase):
    flash_duration_ms: int = Field(default=300, ge=0)
    flash_ticks: int = Field(default=6, ge=1)
    gravity_interval_ms: int = Field(default=30_000, ge=1)
    gravity_warning_ms: int = Field(default=3_000, ge=0)
    reveal_step_ms: int = Field(default=60, ge=0)

    @model_validator(mode="after")
    def _warning_inside_interval(self) -> "TimingConfig":
        if self.gravity_warning_ms > self.gravity_interval_ms:
            raise ValueError("timing.gravity_warning_ms must be <= timing.gravity_interval_ms")
        return self


class GameConfig(ConfigBase):
    """
    Engine-facing config: board geometry, piece rule, bombs, scoring, speed and timers.
    """

    rows: int = Field(default=DEFAULT_ROWS, ge=4)
    cols: int = Field(default=DEFAULT_COLS, ge=4)
    seed: Optional[int] = Field(default=None, ge=0)
    piece_rule: PieceRuleName = "weighted"
    bomb_chance: float = Field(default=0.1, ge=0.0, le=1.0)
    danger_rows: int = Field(default=3, ge=0)

    scoring: ScoringConfig = Field(default_factory=ScoringConfig)
    speed: SpeedSettings = Field(default_factory=SpeedSettings)
    timing: TimingConfig = Field(default_factory=TimingConfig)

    @field_validator("rows", "cols", mode="before")
    @classmethod
    def _dims_int(cls, v: object) -> int:
        return _as_int(v, where="game dims")

    @field_validator("seed", mode="before")
    @classmethod
    def _seed_int(cls, v: object) -> Optional[int]:
        if v is None:
            return None
        return _as_int(v, where="game.seed")

    @field_validator("piece_rule", mode="before")
    @classmethod
    def _piece_rule_lower(cls, v: object) -> str:
        return str(v).strip().lower()


__all__ = ["GameConfig", "ScoringConfig", "SpeedSettings", "TimingConfig", "PieceRuleName"]
