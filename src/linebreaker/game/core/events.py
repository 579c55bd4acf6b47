# src/linebreaker/game/core/events.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, List, Tuple

from linebreaker.game.core.types import Gravity

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Event:
    """Base class; collaborators dispatch on the concrete type."""


@dataclass(frozen=True)
class GameStarted(Event):
    pass


@dataclass(frozen=True)
class PauseToggled(Event):
    paused: bool


@dataclass(frozen=True)
class PieceSpawned(Event):
    kind: str
    x: int
    y: int
    has_bomb: bool


@dataclass(frozen=True)
class PieceMoved(Event):
    x: int
    y: int


@dataclass(frozen=True)
class PieceRotated(Event):
    pass


@dataclass(frozen=True)
class PieceLocked(Event):
    cells: Tuple[Tuple[int, int], ...]
    hard_drop: bool


@dataclass(frozen=True)
class LinesFlashing(Event):
    rows: Tuple[int, ...]
    cols: Tuple[int, ...]


@dataclass(frozen=True)
class LinesCleared(Event):
    count: int
    score_delta: int


@dataclass(frozen=True)
class BombExploded(Event):
    row: int
    col: int
    cells_cleared: int


@dataclass(frozen=True)
class LevelUp(Event):
    level: int


@dataclass(frozen=True)
class GravityShiftWarning(Event):
    shift_at_ms: int


@dataclass(frozen=True)
class GravityShifted(Event):
    direction: Gravity


@dataclass(frozen=True)
class GameOver(Event):
    final_score: int
    final_level: int


@dataclass(frozen=True)
class HighScoreBeaten(Event):
    high_score: int


@dataclass(frozen=True)
class RevealProgress(Event):
    rows: int


@dataclass(frozen=True)
class RevealFinished(Event):
    pass


Listener = Callable[[Event], None]


class EventBus:
    """
    Synchronous fan-out to collaborators (renderer, audio, storage glue).

    A listener that raises is logged and skipped; the failure never reaches the
    state machine that emitted the event.
    """

    def __init__(self) -> None:
        self._listeners: List[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def emit(self, event: Event) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception("event listener %r failed on %s", listener, type(event).__name__)


class EventRecorder:
    """Listener that keeps every event; handy for headless runs and tests."""

    def __init__(self) -> None:
        self.events: List[Event] = []

    def __call__(self, event: Event) -> None:
        self.events.append(event)

    def of_type(self, cls: type) -> list:
        return [e for e in self.events if isinstance(e, cls)]

    def clear(self) -> None:
        self.events.clear()


__all__ = [
    "Event",
    "GameStarted",
    "PauseToggled",
    "PieceSpawned",
    "PieceMoved",
    "PieceRotated",
    "PieceLocked",
    "LinesFlashing",
    "LinesCleared",
    "BombExploded",
    "LevelUp",
    "GravityShiftWarning",
    "GravityShifted",
    "GameOver",
    "HighScoreBeaten",
    "RevealProgress",
    "RevealFinished",
    "Listener",
    "EventBus",
    "EventRecorder",
]
