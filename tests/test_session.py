# tests/test_session.py
from __future__ import annotations

import numpy as np
import pytest

from linebreaker.config.game import SpeedSettings
from linebreaker.game.core.events import (
    BombExploded,
    GameOver,
    GameStarted,
    GravityShifted,
    GravityShiftWarning,
    HighScoreBeaten,
    LinesCleared,
    LevelUp,
    LinesFlashing,
    PauseToggled,
    PieceLocked,
    PieceSpawned,
    RevealFinished,
    RevealProgress,
)
from linebreaker.game.core.types import BlockKind, Gravity, Phase
from linebreaker.game.preferences import InMemoryPreferenceStore


def _fill_bottom_row_with_two_bars(session) -> None:
    """Prefill cols 8-9 of the bottom row, then hard-drop two I bars into cols 0-7."""
    session.grid.set_cell(17, 8, 1)
    session.grid.set_cell(17, 9, 1)
    for _ in range(3):
        assert session.move_piece(-1)
    assert session.hard_drop()
    assert session.move_piece(1)
    assert session.hard_drop()


def test_start_spawns_centred_piece(make_session) -> None:
    session, rec = make_session()
    assert session.phase is Phase.IDLE
    assert session.start_game()

    assert isinstance(rec.events[0], GameStarted)
    (spawned,) = rec.of_type(PieceSpawned)
    assert (spawned.kind, spawned.x, spawned.y) == ("I", 3, 0)
    s = session.state()
    assert s.phase is Phase.RUNNING and s.score == 0 and s.level == 1
    assert s.drop_interval_ms == 1000
    assert s.next_piece is not None


def test_single_row_clear_after_flash(make_session) -> None:
    session, rec = make_session()
    session.start_game()
    _fill_bottom_row_with_two_bars(session)

    # 17 cells each way at 2 points per cell.
    assert session.state().score == 68
    (flashing,) = rec.of_type(LinesFlashing)
    assert flashing.rows == (17,) and flashing.cols == ()

    # Drops wait for the flash; lateral control does not.
    assert not session.soft_drop()
    assert not session.hard_drop()
    assert session.move_piece(1)

    session.tick(0)
    session.tick(299)
    assert session.state().flash_rows == (17,)
    assert rec.of_type(LinesCleared) == []

    session.tick(300)
    assert rec.of_type(LinesCleared) == [LinesCleared(count=1, score_delta=100)]
    s = session.state()
    assert s.score == 168 and s.lines == 1
    assert s.flash_rows == () and not s.flash_highlight
    assert not np.any(s.grid)


def test_spawn_collision_ends_game_without_touching_grid(make_session) -> None:
    session, rec = make_session()
    session.start_game()
    for c in range(3, 7):
        session.grid.set_cell(1, c, 1)

    assert session.hard_drop()
    assert rec.of_type(PieceLocked)[-1].cells == ((0, 3), (0, 4), (0, 5), (0, 6))
    (over,) = rec.of_type(GameOver)
    assert (over.final_score, over.final_level) == (0, 1)
    assert session.phase is Phase.REVEALING and session.game_over

    before = session.grid.cells.copy()
    assert not session.move_piece(1)
    assert not session.rotate_piece()
    assert not session.hard_drop()
    session.tick(10)
    assert np.array_equal(session.grid.cells, before)
    assert len(rec.of_type(PieceSpawned)) == 1


def test_reveal_runs_row_by_row_and_blocks_restart(make_session) -> None:
    session, rec = make_session()
    session.start_game()
    session.tick(0)
    for c in range(3, 7):
        session.grid.set_cell(1, c, 1)
    session.hard_drop()
    assert session.game_over

    assert not session.start_game()
    assert not session.restart_game()

    session.tick(60)
    assert rec.of_type(RevealProgress) == [RevealProgress(rows=1)]
    session.tick(60 * 18)
    assert [e.rows for e in rec.of_type(RevealProgress)] == list(range(1, 19))
    assert len(rec.of_type(RevealFinished)) == 1
    assert session.phase is Phase.OVER

    assert session.restart_game()
    assert session.phase is Phase.RUNNING
    assert session.state().score == 0
    assert not np.any(session.grid.cells)


def test_high_score_written_on_game_over(make_session) -> None:
    store = InMemoryPreferenceStore({"high_score": 10})
    session, rec = make_session(store=store)
    assert session.state().high_score == 10

    session.start_game()
    assert session.hard_drop()
    for c in range(3, 7):
        session.grid.set_cell(1, c, 1)
    session.hard_drop()

    assert rec.of_type(GameOver)[0].final_score == 34
    assert rec.of_type(HighScoreBeaten) == [HighScoreBeaten(high_score=34)]
    assert store.data["high_score"] == 34


def test_low_score_leaves_high_score(make_session) -> None:
    store = InMemoryPreferenceStore({"high_score": 1000})
    session, rec = make_session(store=store)
    session.start_game()
    for c in range(3, 7):
        session.grid.set_cell(1, c, 1)
    session.hard_drop()
    assert rec.of_type(HighScoreBeaten) == []
    assert store.data["high_score"] == 1000


def test_spawn_blocked_by_flashing_column_waits_for_clear(make_session) -> None:
    session, rec = make_session()
    session.start_game()
    for r in range(4, 18):
        session.grid.set_cell(r, 3, 1)

    assert session.rotate_piece()
    assert session.hard_drop()
    (flashing,) = rec.of_type(LinesFlashing)
    assert flashing.cols == (3,)

    assert rec.of_type(GameOver) == []
    assert session.controller.active is None
    assert len(rec.of_type(PieceSpawned)) == 1

    session.tick(0)
    session.tick(300)
    assert rec.of_type(LinesCleared) == [LinesCleared(count=1, score_delta=100)]
    assert len(rec.of_type(PieceSpawned)) == 2
    assert session.phase is Phase.RUNNING
    assert session.controller.active is not None
    assert not np.any(session.grid.cells[:, 3])


def test_spawn_blocked_by_a_settled_block_ends_game_during_flash(make_session) -> None:
    session, rec = make_session()
    session.start_game()
    session.grid.set_cell(17, 8, 1)
    session.grid.set_cell(17, 9, 1)
    assert session.move_piece(1)
    assert session.hard_drop()
    for _ in range(3):
        assert session.move_piece(-1)
    # Sits on the spawn area but outside the row about to be removed.
    session.grid.set_cell(0, 5, 1)
    assert session.hard_drop()

    assert len(rec.of_type(LinesFlashing)) == 1
    assert len(rec.of_type(GameOver)) == 1
    assert session.phase is Phase.REVEALING
    assert rec.of_type(LinesCleared) == []
    assert np.all(session.grid.cells[17])


def test_clear_that_reaches_next_level_speeds_up_drops(make_session) -> None:
    session, rec = make_session(speed=SpeedSettings(lines_per_level=1))
    session.start_game()
    _fill_bottom_row_with_two_bars(session)
    session.tick(0)
    session.tick(300)

    # The line is scored at the level it unlocked.
    assert rec.of_type(LinesCleared) == [LinesCleared(count=1, score_delta=200)]
    assert rec.of_type(LevelUp) == [LevelUp(level=2)]
    s = session.state()
    assert (s.level, s.lines, s.score) == (2, 1, 268)
    assert s.drop_interval_ms == 840


def test_bombs_in_cleared_row_explode_and_pay_bonus(make_session) -> None:
    session, rec = make_session(bomb_chance=1.0)
    session.start_game()
    _fill_bottom_row_with_two_bars(session)
    # Each bar carries its bomb at the centroid of its four cells.
    assert [c for c in range(10) if session.grid.kind_at(17, c) is BlockKind.BOMB] == [2, 6]
    session.grid.set_cell(16, 5, 1)
    session.grid.set_cell(16, 6, 1)

    session.tick(0)
    session.tick(300)

    assert rec.of_type(LinesCleared) == [LinesCleared(count=1, score_delta=100)]
    assert rec.of_type(BombExploded) == [
        BombExploded(row=17, col=2, cells_cleared=0),
        BombExploded(row=17, col=6, cells_cleared=2),
    ]
    s = session.state()
    assert s.score == 68 + 100 + 2 * 50
    assert not np.any(s.grid)


def test_gravity_shift_during_flash_clears_the_mirrored_row(make_session) -> None:
    session, rec = make_session(gravity_interval_ms=200, gravity_warning_ms=100)
    session.start_game()
    _fill_bottom_row_with_two_bars(session)
    session.grid.set_cell(16, 0, 1)

    session.tick(0)
    session.tick(200)
    assert rec.of_type(GravityShifted) == [GravityShifted(direction=Gravity.UP)]
    assert session.state().flash_rows == (0,)
    assert rec.of_type(LinesCleared) == []

    session.tick(300)
    assert rec.of_type(LinesCleared) == [LinesCleared(count=1, score_delta=100)]
    cells = session.state().grid
    assert cells[0, 0] != 0
    assert not np.any(cells[17])
    assert int(np.count_nonzero(cells)) == 1


def test_piece_colliding_after_gravity_shift_respawns_on_new_edge(make_session) -> None:
    session, rec = make_session(("T",), gravity_interval_ms=500, gravity_warning_ms=100)
    session.start_game()
    for _ in range(3):
        assert session.move_piece(-1)
    session.grid.set_cell(0, 0, 1)

    session.tick(0)
    session.tick(500)

    assert rec.of_type(GravityShifted) == [GravityShifted(direction=Gravity.UP)]
    assert rec.of_type(PieceSpawned)[-1] == PieceSpawned(kind="T", x=3, y=16, has_bomb=False)
    assert len(rec.of_type(PieceSpawned)) == 2
    assert session.phase is Phase.RUNNING
    assert (session.controller.active.x, session.controller.active.y) == (3, 16)


def test_piece_colliding_after_gravity_shift_with_blocked_edge_ends_game(make_session) -> None:
    session, rec = make_session(("T",), gravity_interval_ms=500, gravity_warning_ms=100)
    session.start_game()
    for _ in range(3):
        assert session.move_piece(-1)
    for c in (0, 3, 4, 5):
        session.grid.set_cell(0, c, 1)

    session.tick(0)
    session.tick(500)

    assert len(rec.of_type(GameOver)) == 1
    assert len(rec.of_type(PieceSpawned)) == 1
    assert session.phase is Phase.REVEALING


def test_drop_timer_fires_after_interval(make_session) -> None:
    session, _ = make_session()
    session.start_game()
    session.tick(0)
    session.tick(1000)
    assert session.controller.active.y == 0
    session.tick(1001)
    assert session.controller.active.y == 1


def test_gravity_warning_then_shift(make_session) -> None:
    session, rec = make_session(gravity_interval_ms=10_000)
    session.start_game()
    session.tick(0)
    session.tick(6_999)
    assert rec.of_type(GravityShiftWarning) == []

    session.tick(7_000)
    assert rec.of_type(GravityShiftWarning) == [GravityShiftWarning(shift_at_ms=10_000)]

    session.tick(10_000)
    assert rec.of_type(GravityShifted) == [GravityShifted(direction=Gravity.UP)]
    s = session.state()
    assert s.gravity is Gravity.UP
    assert s.phase is Phase.RUNNING
    # Piece was 1 row below the top; it keeps 16 free rows to the new floor, then falls once.
    assert s.active.y == 15


def test_pause_freezes_timers(make_session) -> None:
    session, rec = make_session(gravity_interval_ms=10_000)
    session.start_game()
    session.tick(0)
    session.tick(1_000)

    assert session.toggle_pause()
    assert session.state().paused
    assert not session.move_piece(1)
    y = session.controller.active.y
    session.tick(5_000)
    assert session.controller.active.y == y

    assert session.toggle_pause()
    assert [e.paused for e in rec.of_type(PauseToggled)] == [True, False]
    session.tick(6_000)
    assert session.gravity.next_shift_ms == 15_000

    session.tick(11_999)
    assert rec.of_type(GravityShiftWarning) == []
    session.tick(12_000)
    assert rec.of_type(GravityShiftWarning) == [GravityShiftWarning(shift_at_ms=15_000)]


def test_toggle_pause_rejected_when_idle(make_session) -> None:
    session, rec = make_session()
    assert not session.toggle_pause()
    assert rec.events == []


def test_tick_rejects_time_going_backwards(make_session) -> None:
    session, _ = make_session()
    session.start_game()
    session.tick(100)
    with pytest.raises(ValueError, match="non-decreasing"):
        session.tick(99)


def test_state_is_a_copy(make_session) -> None:
    session, _ = make_session()
    session.start_game()
    s = session.state()
    s.grid[0, 0] = 9
    s.active.x = 0
    assert session.grid.cells[0, 0] == 0
    assert session.controller.active.x == 3


def test_failing_listener_does_not_break_the_game(make_session) -> None:
    session, rec = make_session()

    def boom(_event) -> None:
        raise RuntimeError("renderer crashed")

    session.subscribe(boom)
    assert session.start_game()
    assert session.hard_drop()
    assert len(rec.of_type(PieceLocked)) == 1
    assert session.phase is Phase.RUNNING


def test_unsubscribe_stops_delivery(make_session) -> None:
    session, rec = make_session()
    seen = []
    unsubscribe = session.subscribe(seen.append)
    unsubscribe()
    session.start_game()
    assert seen == []
    assert rec.events


def test_danger_zone_flag(make_session) -> None:
    session, _ = make_session(danger_rows=3)
    session.start_game()
    assert not session.state().in_danger
    session.grid.set_cell(2, 0, 1)
    assert session.state().in_danger


def test_sound_and_music_toggles_persist(make_session) -> None:
    store = InMemoryPreferenceStore({"music_enabled": "false"})
    session, _ = make_session(store=store)
    s = session.state()
    assert s.sound_enabled and not s.music_enabled

    assert session.toggle_sound() is False
    assert session.toggle_music() is True
    assert store.data == {"music_enabled": True, "sound_enabled": False}
    s = session.state()
    assert not s.sound_enabled and s.music_enabled
