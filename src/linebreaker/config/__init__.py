from __future__ import annotations

from linebreaker.config.game import GameConfig, PieceRuleName, ScoringConfig, SpeedSettings, TimingConfig
from linebreaker.config.io import load_game_config, load_yaml, to_plain_dict

__all__ = [
    "GameConfig",
    "PieceRuleName",
    "ScoringConfig",
    "SpeedSettings",
    "TimingConfig",
    "load_game_config",
    "load_yaml",
    "to_plain_dict",
]
