from __future__ import annotations

from linebreaker.config.game import GameConfig
from linebreaker.game.core.session import GameSession
from linebreaker.game.core.types import BlockKind, Gravity, Phase, Piece, State

__version__ = "0.1.0"

__all__ = [
    "GameConfig",
    "GameSession",
    "BlockKind",
    "Gravity",
    "Phase",
    "Piece",
    "State",
]
