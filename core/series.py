"""
Capacity-bounded, append-only series of emotion observations.
"""
from __future__ import annotations
import threading
from collections import deque
from typing import Deque, List, Optional

from core.models import EmotionObservation

# ~20 minutes at 1.5s intervals
MAX_SESSION_POINTS = 800


class BoundedSeries:
    """Sliding window over the most recent `capacity` observations, oldest evicted first."""

    def __init__(self, capacity: int = MAX_SESSION_POINTS):
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self.capacity = int(capacity)
        self._items: Deque[EmotionObservation] = deque(maxlen=self.capacity)
        self._lock = threading.Lock()

    def append(self, obs: EmotionObservation) -> None:
        with self._lock:
            self._items.append(obs)

    def items(self) -> List[EmotionObservation]:
        """Snapshot in insertion (temporal) order."""
        with self._lock:
            return list(self._items)

    def latest(self) -> Optional[EmotionObservation]:
        with self._lock:
            return self._items[-1] if self._items else None

    def clear(self) -> None:
        with self._lock:
            self._items.clear()

    def __len__(self) -> int:
        return len(self._items)
