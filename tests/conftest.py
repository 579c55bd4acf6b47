# tests/conftest.py
from __future__ import annotations

import logging
from itertools import cycle
from typing import Sequence

import numpy as np
import pytest

from linebreaker.config.game import GameConfig, TimingConfig
from linebreaker.game.core.events import EventRecorder
from linebreaker.game.core.piece_rules import PieceRule
from linebreaker.game.core.pieceset import PieceSet
from linebreaker.game.core.session import GameSession


class FixedPieceRule(PieceRule):
    """Deals kinds from a fixed repeating sequence."""

    def __init__(self, seq: Sequence[str]) -> None:
        self.seq = tuple(seq)
        self._it = cycle(self.seq)

    def reset(self, *, rng, kinds, weights) -> None:
        unknown = set(self.seq) - set(kinds)
        if unknown:
            raise ValueError(f"unknown kinds {sorted(unknown)}")
        self._it = cycle(self.seq)

    def next_kind(self) -> str:
        return next(self._it)


@pytest.fixture(autouse=True)
def _restore_package_logger():
    # setup_logger() detaches the package logger from the root; undo that between tests.
    yield
    lg = logging.getLogger("linebreaker")
    lg.handlers.clear()
    lg.propagate = True
    lg.setLevel(logging.NOTSET)


@pytest.fixture(scope="session")
def pieces() -> PieceSet:
    return PieceSet.default()


def _make_session(
        seq: Sequence[str] = ("I",),
        *,
        gravity_interval_ms: int = 1_000_000,
        gravity_warning_ms: int = 3_000,
        reveal_step_ms: int = 60,
        store=None,
        **cfg_kwargs,
) -> tuple[GameSession, EventRecorder]:
    cfg_kwargs.setdefault("bomb_chance", 0.0)
    cfg = GameConfig(
        timing=TimingConfig(
            gravity_interval_ms=gravity_interval_ms,
            gravity_warning_ms=gravity_warning_ms,
            reveal_step_ms=reveal_step_ms,
        ),
        **cfg_kwargs,
    )
    session = GameSession(cfg, piece_rule=FixedPieceRule(seq), rng=np.random.default_rng(0), store=store)
    recorder = EventRecorder()
    session.subscribe(recorder)
    return session, recorder


@pytest.fixture
def make_session():
    return _make_session

