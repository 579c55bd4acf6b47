# src/linebreaker/game/core/constants.py
from __future__ import annotations

# Board / cell encoding
EMPTY_CELL: int = 0

# Default board geometry
DEFAULT_ROWS: int = 18
DEFAULT_COLS: int = 10

# Bomb blast radius around the bomb cell (1 => 3x3)
BOMB_RADIUS: int = 1
