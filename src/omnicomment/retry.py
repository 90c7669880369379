from __future__ import annotations

from collections.abc import Callable
import logging
import time
from typing import TypeVar

from omnicomment.observability import log_event


LOGGER = logging.getLogger("omnicomment.retry")
T = TypeVar("T")


def retry(
    operation: Callable[[int, int], T],
    *,
    max_attempts: int,
    delay_seconds: float,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Call ``operation(attempt, max_attempts)`` until it returns without raising.

    Attempts are numbered from 0. Between failed attempts the loop waits a fixed
    ``delay_seconds``; the exception from the last attempt propagates unchanged.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be >= 1")
    if delay_seconds < 0:
        raise ValueError("delay_seconds must be >= 0")

    attempt = 0
    while True:
        try:
            return operation(attempt, max_attempts)
        except Exception as exc:
            log_event(
                LOGGER,
                "retry_attempt_failed",
                attempt=attempt + 1,
                max_attempts=max_attempts,
                error_type=type(exc).__name__,
            )
            if attempt + 1 >= max_attempts:
                raise
        sleep(delay_seconds)
        attempt += 1
