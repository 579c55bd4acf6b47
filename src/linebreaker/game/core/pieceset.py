# src/linebreaker/game/core/pieceset.py
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
import yaml

from linebreaker.utils.paths import pieces_dir


def _parse_color(v: object) -> Tuple[int, int, int]:
    if not isinstance(v, (list, tuple)) or len(v) != 3:
        raise ValueError(f"color must be a 3-item list/tuple, got {v!r}")
    r, g, b = v
    for c in (r, g, b):
        if not isinstance(c, int) or not (0 <= c <= 255):
            raise ValueError(f"color components must be ints in [0,255], got {v!r}")
    return int(r), int(g), int(b)


def _parse_shape(rows: Sequence[str]) -> np.ndarray:
    if not isinstance(rows, (list, tuple)) or len(rows) == 0:
        raise ValueError("shape must be a non-empty list of strings")

    width = None
    out: List[List[int]] = []
    for r in rows:
        if not isinstance(r, str) or len(r) == 0:
            raise ValueError(f"shape rows must be non-empty strings, got {r!r}")
        if width is None:
            width = len(r)
        elif len(r) != width:
            raise ValueError(f"shape rows must have equal width, got widths {width} and {len(r)}")

        out.append([1 if ch == "#" else 0 for ch in r])

    arr = np.asarray(out, dtype=np.uint8)
    if int(arr.sum()) <= 0:
        raise ValueError("shape must have at least one filled cell ('#')")
    return arr


def _parse_weight(v: object, *, kind: str) -> float:
    if v is None:
        return 1.0
    if isinstance(v, bool) or not isinstance(v, (int, float)):
        raise TypeError(f"{kind!r}: weight must be a number, got {type(v)!r}")
    w = float(v)
    if w <= 0.0:
        raise ValueError(f"{kind!r}: weight must be > 0, got {w}")
    return w


@dataclass(frozen=True)
class PieceDef:
    kind: str
    shape: np.ndarray  # (H,W) uint8 mask 0/1 in spawn orientation
    color: Tuple[int, int, int]
    weight: float = 1.0

    def cell_count(self) -> int:
        return int(self.shape.sum())


@dataclass(frozen=True)
class PieceSet:
    """
    Pure geometry + colors + draw weights, loaded from YAML.

    Provides:
      - stable ordering of kinds
      - shape(kind) in spawn orientation
      - board_id(kind) in 1..K (0 reserved for empty)
      - color_of(kind) for renderers
    """

    pieces: Dict[str, PieceDef]
    kind_order: Tuple[str, ...]

    @staticmethod
    def default_path() -> Path:
        return pieces_dir() / "linebreaker7.yaml"

    @classmethod
    def default(cls) -> "PieceSet":
        return cls.from_yaml(cls.default_path())

    @classmethod
    def from_yaml(cls, path: Path, *, expected_cells: Optional[int] = None) -> "PieceSet":
        p = Path(path)
        data = yaml.safe_load(p.read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            raise ValueError(f"piece YAML must be a mapping at top-level, got {type(data)!r}")
        return cls.from_mapping(data, expected_cells=expected_cells)

    @classmethod
    def from_mapping(cls, data: dict, *, expected_cells: Optional[int] = None) -> "PieceSet":
        if expected_cells is None:
            v = data.get("expected_cells", None)
            if isinstance(v, bool):
                raise TypeError("expected_cells must be int, got bool")
            if isinstance(v, (int, str)):
                expected_cells = int(v)
            elif v is not None:
                raise TypeError(f"expected_cells must be int or str, got {type(v)!r}")

        pieces_node = data.get("pieces")
        if not isinstance(pieces_node, dict) or not pieces_node:
            raise ValueError("piece YAML must contain non-empty mapping 'pieces:'")

        pieces: Dict[str, PieceDef] = {}
        kind_order: List[str] = []

        for kind, entry in pieces_node.items():
            if not isinstance(kind, str) or not kind:
                raise ValueError(f"piece key must be a non-empty string, got {kind!r}")
            if not isinstance(entry, dict):
                raise ValueError(f"piece spec for {kind!r} must be a mapping, got {type(entry)!r}")

            piece = PieceDef(
                kind=kind,
                shape=_parse_shape(entry.get("shape")),
                color=_parse_color(entry.get("color")),
                weight=_parse_weight(entry.get("weight"), kind=kind),
            )
            if expected_cells is not None and piece.cell_count() != int(expected_cells):
                raise ValueError(f"{kind!r}: expected {expected_cells} filled cells, got {piece.cell_count()}")

            pieces[kind] = piece
            kind_order.append(kind)

        return cls(pieces=pieces, kind_order=tuple(kind_order))

    def kinds(self) -> Tuple[str, ...]:
        return self.kind_order

    def __contains__(self, kind: str) -> bool:
        return kind in self.pieces

    def get(self, kind: str) -> PieceDef:
        try:
            return self.pieces[kind]
        except KeyError as e:
            raise KeyError(f"unknown piece kind {kind!r}. known kinds={list(self.kind_order)!r}") from e

    def shape(self, kind: str) -> np.ndarray:
        # callers mutate the active piece's shape via rotation, so hand out a copy
        return self.get(kind).shape.copy()

    def weights(self) -> Tuple[float, ...]:
        return tuple(self.pieces[k].weight for k in self.kind_order)

    def kind_idx(self, kind: str) -> int:
        try:
            idx = self.kind_order.index(kind)
        except ValueError as e:
            raise KeyError(f"unknown piece kind {kind!r}") from e
        return int(idx)

    def board_id(self, kind: str) -> int:
        return int(self.kind_idx(kind) + 1)

    def board_id_to_kind(self, board_id: int) -> str:
        bid = int(board_id)
        if bid <= 0 or bid > len(self.kind_order):
            raise ValueError(f"board_id out of range: {bid} (valid 1..{len(self.kind_order)})")
        return self.kind_order[bid - 1]

    def color_of(self, kind: str) -> Tuple[int, int, int]:
        return self.get(kind).color
