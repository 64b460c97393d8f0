"""Capped exponential backoff around a flaky call.

Used by the PDF extraction collaborator; independent of the billing engine.
The helper holds no state between calls: everything it needs (attempt cap,
base delay, retry predicate, sleep function) is passed in.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from typing import TypeVar

from .logging_setup import get_logger

T = TypeVar("T")

DEFAULT_MAX_ATTEMPTS: int = 4
DEFAULT_BASE_DELAY_SEC: float = 1.0
DEFAULT_MAX_DELAY_SEC: float = 8.0

_logger = get_logger("invoice_builder.retry")


def backoff_delay(attempt_no: int, *, base_delay: float, max_delay: float) -> float:
    """Delay before retrying after failed attempt ``attempt_no`` (1-based)."""

    return min(base_delay * (2 ** (attempt_no - 1)), max_delay)


def _always(_exc: BaseException) -> bool:
    return True


def with_backoff(
    operation: Callable[[], T],
    *,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    base_delay: float = DEFAULT_BASE_DELAY_SEC,
    max_delay: float = DEFAULT_MAX_DELAY_SEC,
    is_retryable: Callable[[BaseException], bool] = _always,
    sleep: Callable[[float], None] = time.sleep,
    label: str = "operation",
) -> T:
    """Call ``operation`` until it succeeds or ``max_attempts`` is reached.

    Delays double from ``base_delay`` and are capped at ``max_delay``.
    Non-retryable errors, and the error from the final attempt, propagate
    unchanged.
    """

    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    attempt = 1
    while True:
        try:
            return operation()
        except Exception as e:
            if attempt >= max_attempts or not is_retryable(e):
                raise
            delay = backoff_delay(attempt, base_delay=base_delay, max_delay=max_delay)
            _logger.warning(
                "%s:retry attempt=%d delay_s=%.2f error=%s",
                label,
                attempt,
                delay,
                e.__class__.__name__,
            )
            sleep(delay)
            attempt += 1


__all__ = ["backoff_delay", "with_backoff"]
