"""
Per-service API key pools with round-robin rotation and a rotation cooldown.
"""
from __future__ import annotations
import logging
import threading
import time
from typing import Callable, Iterable, List

from core.errors import ConfigurationError

logger = logging.getLogger(__name__)


def _now_ms() -> float:
    return time.monotonic() * 1000.0


class CredentialPool:
    """
    Ordered set of keys for one external service.

    rotate() is gated by a cooldown so a burst of failures from one outage
    moves the cursor only once. advance() ignores the cooldown and is used by
    the summary quota sweep. Each pool owns its own lock; pools never share state.
    """

    def __init__(self, service: str, keys: Iterable[str], cooldown_ms: int = 1000,
                 clock: Callable[[], float] = _now_ms):
        self.service = service
        self._keys: List[str] = [k for k in keys if k]
        self._cursor = 0
        self._cooldown_ms = int(cooldown_ms)
        self._clock = clock
        # Start far enough in the past that the first rotation is never blocked
        self._last_rotation_at = float("-inf")
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._keys)

    @property
    def is_empty(self) -> bool:
        return not self._keys

    @property
    def cursor(self) -> int:
        return self._cursor

    @property
    def cooldown_ms(self) -> int:
        return self._cooldown_ms

    def require(self) -> None:
        """Fail fast (before any service call) when no keys are configured."""
        if self.is_empty:
            raise ConfigurationError(f"No {self.service} API keys configured")

    def current(self) -> str:
        self.require()
        with self._lock:
            return self._keys[self._cursor]

    def rotate(self) -> bool:
        """Advance to the next key unless the last rotation is within the cooldown."""
        if self.is_empty:
            return False
        with self._lock:
            now = self._clock()
            if now - self._last_rotation_at < self._cooldown_ms:
                logger.debug(f"[keys] {self.service} rotation skipped (cooldown)")
                return False
            self._last_rotation_at = now
            self._cursor = (self._cursor + 1) % len(self._keys)
            cursor = self._cursor
        logger.info(f"[keys] rotated to {self.service} key #{cursor + 1}")
        return True

    def advance(self) -> str:
        """Unconditionally move to the next key; returns the key that was current."""
        self.require()
        with self._lock:
            key = self._keys[self._cursor]
            self._cursor = (self._cursor + 1) % len(self._keys)
        return key

    def describe(self) -> str:
        if self.is_empty:
            return f"{self.service} (no keys)"
        return f"{self.service} key #{self._cursor + 1}/{len(self._keys)}"
