# tests/test_autoplay.py
from __future__ import annotations

import json
import logging

from linebreaker.apps.autoplay.entrypoint import parse_args, run_autoplay
from linebreaker.utils.logging import setup_logger


def test_parse_args_defaults_and_overrides() -> None:
    args = parse_args(["--override", "rows=20", "--override", "bomb_chance=0", "--games", "2"])
    assert args.override == ["rows=20", "bomb_chance=0"]
    assert args.games == 2
    assert args.config is None
    assert args.frame_ms == 16


def test_run_autoplay_prints_json_summary(capsys) -> None:
    args = parse_args(["--games", "1", "--max-frames", "400", "--seed", "1", "--no-rich", "--json"])
    assert run_autoplay(args) == 0

    out = json.loads(capsys.readouterr().out)
    assert out["games"] == 1
    assert out["board"] == "18x10"
    assert out["rule"] == "weighted"
    assert out["avg_pieces"] > 0


def test_setup_logger_handlers() -> None:
    from rich.logging import RichHandler

    plain = setup_logger(name="linebreaker.test.plain", use_rich=False, level="debug")
    assert plain.level == logging.DEBUG
    assert [type(h) for h in plain.handlers] == [logging.StreamHandler]

    fancy = setup_logger(name="linebreaker.test.rich", use_rich=True, level="nonsense")
    assert fancy.level == logging.INFO
    assert isinstance(fancy.handlers[0], RichHandler)
