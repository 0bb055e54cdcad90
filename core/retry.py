"""
Retry with exponential backoff on the "no result" sentinel (None).
"""
from __future__ import annotations
import logging
from typing import Any, Callable, Dict, Optional, TypeVar

import backoff

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _log_backoff(details: Dict[str, Any]) -> None:
    logger.debug(f"[retry] attempt {details['tries']} gave no result; backing off {details['wait']:.2f}s")


def _log_giveup(details: Dict[str, Any]) -> None:
    logger.debug(f"[retry] no result after {details['tries']} attempts")


class RetryingInvoker:
    """
    Calls an operation until it returns something other than None.

    Waits base_delay * 2**n between attempts (0.5s then 1s with the
    defaults). Exceptions are not retried; they propagate from the attempt
    that raised them.
    """

    def __init__(self, base_delay: float = 0.5, max_attempts: int = 3,
                 on_backoff: Callable[[Dict[str, Any]], None] | None = None):
        self.base_delay = float(base_delay)
        self.max_attempts = int(max_attempts)
        self._handlers = [_log_backoff] + ([on_backoff] if on_backoff is not None else [])

    def invoke(self, operation: Callable[[], Optional[T]],
               max_attempts: int | None = None) -> Optional[T]:
        attempts = self.max_attempts if max_attempts is None else int(max_attempts)

        @backoff.on_predicate(
            backoff.expo,
            predicate=lambda r: r is None,
            max_tries=max(1, attempts),
            factor=self.base_delay,
            jitter=None,
            on_backoff=self._handlers,
            on_giveup=_log_giveup,
            logger=None,
        )
        def attempt() -> Optional[T]:
            return operation()

        return attempt()
