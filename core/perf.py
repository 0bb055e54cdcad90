"""
Rolling call-duration windows per external service.
"""
from __future__ import annotations
import threading
from collections import deque
from typing import Deque, Dict


class PerfMonitor:
    """Keeps the last `window` durations (ms) per service; oldest dropped first."""

    def __init__(self, window: int = 50):
        self.window = int(window)
        self._samples: Dict[str, Deque[float]] = {}
        self._lock = threading.Lock()

    def track(self, service: str, duration_ms: float) -> None:
        with self._lock:
            q = self._samples.setdefault(service, deque(maxlen=self.window))
            q.append(float(duration_ms))

    def samples(self, service: str) -> list[float]:
        with self._lock:
            return list(self._samples.get(service, ()))

    def average_ms(self, service: str) -> float:
        vals = self.samples(service)
        if not vals:
            return 0.0
        return round(sum(vals) / len(vals), 0)
