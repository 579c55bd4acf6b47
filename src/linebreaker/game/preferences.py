# src/linebreaker/game/preferences.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol

logger = logging.getLogger(__name__)

HIGH_SCORE_KEY = "high_score"
SOUND_ENABLED_KEY = "sound_enabled"
MUSIC_ENABLED_KEY = "music_enabled"


class PreferenceStore(Protocol):
    """
    Key-value store owned by a collaborator (browser storage, a file, a registry...).

    get() returns None for missing keys.
    """

    def get(self, key: str) -> Optional[Any]:
        ...

    def set(self, key: str, value: Any) -> None:
        ...


class InMemoryPreferenceStore:
    def __init__(self, initial: Optional[Dict[str, Any]] = None) -> None:
        self.data: Dict[str, Any] = dict(initial or {})

    def get(self, key: str) -> Optional[Any]:
        return self.data.get(key)

    def set(self, key: str, value: Any) -> None:
        self.data[key] = value


def _as_bool(v: object, default: bool) -> bool:
    if v is None:
        return default
    if isinstance(v, str):
        return v.strip().lower() in {"1", "true", "yes", "on"}
    return bool(v)


def _as_score(v: object) -> int:
    # Stored values are opaque; anything unparsable counts as no high score yet.
    try:
        return max(0, int(v))  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return 0


@dataclass
class Preferences:
    """
    Typed view over the persisted keys. Writes go straight through to the store;
    a failing store is logged and never affects the game.
    """

    store: PreferenceStore
    high_score: int = 0
    sound_enabled: bool = True
    music_enabled: bool = True

    @classmethod
    def load(cls, store: PreferenceStore) -> "Preferences":
        try:
            hs = _as_score(store.get(HIGH_SCORE_KEY))
            sound = _as_bool(store.get(SOUND_ENABLED_KEY), True)
            music = _as_bool(store.get(MUSIC_ENABLED_KEY), True)
        except Exception:
            logger.exception("preference store read failed; using defaults")
            return cls(store=store)
        return cls(store=store, high_score=hs, sound_enabled=sound, music_enabled=music)

    def _write(self, key: str, value: Any) -> None:
        try:
            self.store.set(key, value)
        except Exception:
            logger.exception("preference store write failed for %r", key)

    def submit_score(self, score: int) -> bool:
        """Record score if it beats the stored high score; returns True when it did."""
        if int(score) <= self.high_score:
            return False
        self.high_score = int(score)
        self._write(HIGH_SCORE_KEY, self.high_score)
        return True

    def toggle_sound(self) -> bool:
        self.sound_enabled = not self.sound_enabled
        self._write(SOUND_ENABLED_KEY, self.sound_enabled)
        return self.sound_enabled

    def toggle_music(self) -> bool:
        self.music_enabled = not self.music_enabled
        self._write(MUSIC_ENABLED_KEY, self.music_enabled)
        return self.music_enabled
