# tests/test_piece_rules.py
from __future__ import annotations

from collections import Counter

import numpy as np
import pytest

from linebreaker.game.core.piece_rules import (
    BagPieceRule,
    PieceFactory,
    UniformPieceRule,
    WeightedPieceRule,
    make_piece_rule,
    spawn_position,
)
from linebreaker.game.core.pieceset import PieceSet
from linebreaker.game.core.types import Gravity


def _draw(rule, n: int) -> list[str]:
    return [rule.next_kind() for _ in range(n)]


def test_make_piece_rule_names() -> None:
    assert isinstance(make_piece_rule("weighted"), WeightedPieceRule)
    assert isinstance(make_piece_rule(" Uniform "), UniformPieceRule)
    assert isinstance(make_piece_rule("bag7"), BagPieceRule)
    with pytest.raises(ValueError, match="unknown piece rule"):
        make_piece_rule("tgm")


def test_bag_deals_every_kind_once_per_bag(pieces) -> None:
    rule = BagPieceRule()
    rule.reset(rng=np.random.default_rng(5), kinds=pieces.kinds(), weights=pieces.weights())
    draws = _draw(rule, 14)
    assert sorted(draws[:7]) == sorted(pieces.kinds())
    assert Counter(draws) == {k: 2 for k in pieces.kinds()}


def test_weighted_rule_is_reproducible_for_a_seed(pieces) -> None:
    a, b = WeightedPieceRule(), WeightedPieceRule()
    a.reset(rng=np.random.default_rng(3), kinds=pieces.kinds(), weights=pieces.weights())
    b.reset(rng=np.random.default_rng(3), kinds=pieces.kinds(), weights=pieces.weights())
    assert _draw(a, 50) == _draw(b, 50)


def test_weighted_rule_follows_weights() -> None:
    rule = WeightedPieceRule()
    rule.reset(rng=np.random.default_rng(0), kinds=("A", "B"), weights=(1000.0, 0.001))
    assert set(_draw(rule, 100)) == {"A"}


def test_weighted_rule_rejects_bad_weights() -> None:
    with pytest.raises(ValueError, match="> 0"):
        WeightedPieceRule().reset(rng=np.random.default_rng(0), kinds=("A", "B"), weights=(1.0, 0.0))
    with pytest.raises(ValueError, match="expected 2 weights"):
        WeightedPieceRule().reset(rng=np.random.default_rng(0), kinds=("A", "B"), weights=(1.0,))


def test_rules_require_reset() -> None:
    with pytest.raises(RuntimeError):
        UniformPieceRule().next_kind()


def test_spawn_position_centres_on_the_spawn_edge() -> None:
    i_bar = np.ones((1, 4), dtype=np.uint8)
    t = np.ones((2, 3), dtype=np.uint8)
    assert spawn_position(shape=i_bar, rows=18, cols=10, gravity=Gravity.DOWN) == (3, 0)
    assert spawn_position(shape=i_bar, rows=18, cols=10, gravity=Gravity.UP) == (3, 17)
    assert spawn_position(shape=t, rows=18, cols=10, gravity=Gravity.UP) == (3, 16)


def _factory(pieces: PieceSet, bomb_chance: float) -> PieceFactory:
    f = PieceFactory(pieces=pieces, rule=BagPieceRule(), rows=18, cols=10, bomb_chance=bomb_chance)
    f.reset(np.random.default_rng(11))
    return f


def test_factory_bomb_chance_extremes(pieces) -> None:
    always = _factory(pieces, 1.0)
    never = _factory(pieces, 0.0)
    assert all(always.create(Gravity.DOWN).has_bomb for _ in range(20))
    assert not any(never.create(Gravity.DOWN).has_bomb for _ in range(20))


def test_factory_places_piece_for_gravity(pieces) -> None:
    f = _factory(pieces, 0.0)
    p = f.create(Gravity.UP)
    assert p.y == 18 - p.height
    assert p.color == pieces.board_id(p.kind)


def test_factory_rejects_bad_bomb_chance(pieces) -> None:
    with pytest.raises(ValueError, match="bomb_chance"):
        PieceFactory(pieces=pieces, rule=BagPieceRule(), rows=18, cols=10, bomb_chance=1.5)
