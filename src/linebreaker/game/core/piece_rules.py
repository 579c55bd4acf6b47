# src/linebreaker/game/core/piece_rules.py
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Sequence

import numpy as np

from linebreaker.game.core.pieceset import PieceSet
from linebreaker.game.core.types import Gravity, Piece


class PieceRule(ABC):
    """
    Piece selection rule interface.

    Lifecycle:
      - reset(rng=..., kinds=..., weights=...) is called once per game
      - next_kind() is called whenever the factory needs a new preview piece

    Rules may be stateful but never create their own RNG streams; the RNG is injected.
    """

    @abstractmethod
    def reset(self, *, rng: np.random.Generator, kinds: Sequence[str], weights: Sequence[float]) -> None:
        raise NotImplementedError

    @abstractmethod
    def next_kind(self) -> str:
        raise NotImplementedError


@dataclass
class WeightedPieceRule(PieceRule):
    """
    Weighted draw over the PieceSet's kinds (weights come from the YAML asset).
    """

    _rng: np.random.Generator | None = None
    _kinds: tuple[str, ...] = ()
    _p: np.ndarray | None = None

    def reset(self, *, rng: np.random.Generator, kinds: Sequence[str], weights: Sequence[float]) -> None:
        self._rng = rng
        self._kinds = tuple(str(k) for k in kinds)
        if not self._kinds:
            raise ValueError("WeightedPieceRule requires non-empty kinds")
        w = np.asarray(list(weights), dtype=np.float64)
        if w.shape != (len(self._kinds),):
            raise ValueError(f"expected {len(self._kinds)} weights, got {w.shape}")
        if np.any(w <= 0.0):
            raise ValueError("WeightedPieceRule weights must all be > 0")
        self._p = w / w.sum()

    def next_kind(self) -> str:
        if self._rng is None or self._p is None:
            raise RuntimeError("WeightedPieceRule.reset() must be called before next_kind()")
        i = int(self._rng.choice(len(self._kinds), p=self._p))
        return self._kinds[i]


@dataclass
class UniformPieceRule(PieceRule):
    """
    Uniform piece selection; ignores the asset weights.
    """

    _rng: np.random.Generator | None = None
    _kinds: tuple[str, ...] = ()

    def reset(self, *, rng: np.random.Generator, kinds: Sequence[str], weights: Sequence[float]) -> None:
        self._rng = rng
        self._kinds = tuple(str(k) for k in kinds)
        if not self._kinds:
            raise ValueError("UniformPieceRule requires non-empty kinds")

    def next_kind(self) -> str:
        if self._rng is None or not self._kinds:
            raise RuntimeError("UniformPieceRule.reset() must be called before next_kind()")
        i = int(self._rng.integers(0, len(self._kinds)))
        return self._kinds[i]


@dataclass
class BagPieceRule(PieceRule):
    """
    K-bag randomizer: bag_copies copies of each kind per shuffled bag.
    """

    bag_copies: int = 1

    _rng: np.random.Generator | None = None
    _kinds: tuple[str, ...] = ()
    _bag: list[str] = None  # type: ignore[assignment]

    def reset(self, *, rng: np.random.Generator, kinds: Sequence[str], weights: Sequence[float]) -> None:
        self._rng = rng
        self._kinds = tuple(str(k) for k in kinds)
        if not self._kinds:
            raise ValueError("BagPieceRule requires non-empty kinds")
        if int(self.bag_copies) <= 0:
            raise ValueError(f"BagPieceRule.bag_copies must be >= 1 (got {self.bag_copies})")
        self._bag = []
        self._refill()

    def _refill(self) -> None:
        if self._rng is None or not self._kinds:
            raise RuntimeError("BagPieceRule.reset() must be called before _refill()")
        self._bag = [k for k in self._kinds for _ in range(int(self.bag_copies))]
        self._rng.shuffle(self._bag)

    def next_kind(self) -> str:
        if self._rng is None or not self._kinds:
            raise RuntimeError("BagPieceRule.reset() must be called before next_kind()")
        if not self._bag:
            self._refill()
        return self._bag.pop()


def make_piece_rule(name: str) -> PieceRule:
    n = str(name).strip().lower()
    if n == "weighted":
        return WeightedPieceRule()
    if n == "uniform":
        return UniformPieceRule()
    if n == "bag7":
        return BagPieceRule(bag_copies=1)
    raise ValueError(f"unknown piece rule {name!r} (expected weighted|uniform|bag7)")


def spawn_position(*, shape: np.ndarray, rows: int, cols: int, gravity: Gravity) -> tuple[int, int]:
    """
    (x, y) anchor for a freshly spawned shape: horizontally centred, on the edge
    gravity pulls pieces away from.
    """
    h, w = shape.shape
    x = (int(cols) - int(w)) // 2
    y = 0 if gravity is Gravity.DOWN else int(rows) - int(h)
    return int(x), int(y)


class PieceFactory:
    """
    Builds falling pieces: kind from the piece rule, bomb flag from bomb_chance.
    """

    def __init__(
            self,
            *,
            pieces: PieceSet,
            rule: PieceRule,
            rows: int,
            cols: int,
            bomb_chance: float = 0.0,
    ) -> None:
        if not 0.0 <= float(bomb_chance) <= 1.0:
            raise ValueError(f"bomb_chance must be in [0,1], got {bomb_chance}")
        self.pieces = pieces
        self.rule = rule
        self.rows = int(rows)
        self.cols = int(cols)
        self.bomb_chance = float(bomb_chance)
        self._rng: np.random.Generator = np.random.default_rng()

    def reset(self, rng: np.random.Generator) -> None:
        self._rng = rng
        self.rule.reset(rng=rng, kinds=self.pieces.kinds(), weights=self.pieces.weights())

    def create(self, gravity: Gravity) -> Piece:
        kind = self.rule.next_kind()
        shape = self.pieces.shape(kind)
        x, y = spawn_position(shape=shape, rows=self.rows, cols=self.cols, gravity=gravity)
        has_bomb = bool(self.bomb_chance > 0.0 and float(self._rng.random()) < self.bomb_chance)
        return Piece(
            kind=kind,
            shape=shape,
            color=self.pieces.board_id(kind),
            x=x,
            y=y,
            has_bomb=has_bomb,
        )
