# src/linebreaker/game/core/timeline.py
from __future__ import annotations

import heapq
import itertools
from dataclasses import dataclass, field
from typing import Any, List, Optional


@dataclass(order=True)
class Scheduled:
    at_ms: int
    seq: int
    key: str = field(compare=False)
    payload: Any = field(default=None, compare=False)


class Timeline:
    """
    Deferred callbacks as data: entries are scheduled at an absolute timestamp and
    handed back by pop_due() once tick() reaches them.

    Robust to frame jumps: every entry with at_ms <= now is returned, in
    (at_ms, insertion) order.
    """

    def __init__(self) -> None:
        self._heap: List[Scheduled] = []
        self._seq = itertools.count()

    def __len__(self) -> int:
        return len(self._heap)

    def schedule(self, at_ms: int, key: str, payload: Any = None) -> Scheduled:
        entry = Scheduled(at_ms=int(at_ms), seq=next(self._seq), key=str(key), payload=payload)
        heapq.heappush(self._heap, entry)
        return entry

    def cancel(self, key: str) -> int:
        """Drop every entry with this key; returns how many were removed."""
        before = len(self._heap)
        self._heap = [e for e in self._heap if e.key != key]
        heapq.heapify(self._heap)
        return before - len(self._heap)

    def next_at(self, key: str) -> Optional[int]:
        times = [e.at_ms for e in self._heap if e.key == key]
        return min(times) if times else None

    def pop_due(self, now_ms: int, *, keys: Optional[set[str]] = None) -> List[Scheduled]:
        """
        Pop due entries. With keys given, only entries with those keys are popped;
        others stay queued.
        """
        now = int(now_ms)
        due: List[Scheduled] = []
        rest: List[Scheduled] = []
        while self._heap and self._heap[0].at_ms <= now:
            e = heapq.heappop(self._heap)
            if keys is None or e.key in keys:
                due.append(e)
            else:
                rest.append(e)
        for e in rest:
            heapq.heappush(self._heap, e)
        return due

    def shift(self, delta_ms: int) -> None:
        """Postpone every entry (used when resuming from pause)."""
        d = int(delta_ms)
        if d == 0:
            return
        for e in self._heap:
            e.at_ms += d
        heapq.heapify(self._heap)

    def clear(self) -> None:
        self._heap.clear()
