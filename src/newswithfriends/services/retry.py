"""Reusable retry helper with linear backoff, built on tenacity."""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, TypeVar

from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_incrementing,
    wait_random,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

__all__ = ["call_with_retry", "linear_backoff"]


def linear_backoff(base_delay: float, jitter: float = 0.0):
    """Wait ``attempt * base_delay`` seconds, plus up to ``jitter`` random seconds."""

    wait = wait_incrementing(start=base_delay, increment=base_delay)
    if jitter > 0:
        wait = wait + wait_random(0, jitter)
    return wait


def call_with_retry(
    func: Callable[..., T],
    *args: Any,
    attempts: int = 3,
    base_delay: float = 1.0,
    jitter: float = 0.0,
    retry_on: tuple[type[BaseException], ...] = (Exception,),
    sleep: Callable[[float], None] = time.sleep,
    **kwargs: Any,
) -> T:
    """Call ``func`` until it succeeds or ``attempts`` calls have failed.

    Only exceptions listed in ``retry_on`` are retried; the last one is
    re-raised unchanged once the attempts are used up.
    """

    retrying = Retrying(
        stop=stop_after_attempt(attempts),
        wait=linear_backoff(base_delay, jitter),
        retry=retry_if_exception_type(retry_on),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        sleep=sleep,
        reraise=True,
    )
    return retrying(func, *args, **kwargs)
