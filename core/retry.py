"""Bounded retry with exponential backoff for idempotent reads."""

import logging
import random
import threading
import time
from typing import Callable, Optional, Tuple, Type, TypeVar

from .errors import OperationCancelledError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def backoff_delay(attempt: int, base: float, max_delay: float = 5.0) -> float:
    """Equal-jitter delay for a 1-based attempt number."""

    cap = min(base * (2 ** max(attempt - 1, 0)), max_delay)
    return cap * 0.5 + random.uniform(0.0, cap * 0.5)


def check_cancelled(cancel: Optional[threading.Event]) -> None:
    if cancel is not None and cancel.is_set():
        raise OperationCancelledError("Operation cancelled by caller.")


def retry_call(
    fn: Callable[[], T],
    *,
    retries: int,
    base: float,
    exceptions: Tuple[Type[BaseException], ...],
    cancel: Optional[threading.Event] = None,
    description: str = "call",
) -> T:
    """Call ``fn`` up to ``retries + 1`` times, retrying only on ``exceptions``.

    Only use this for calls that mutate nothing; the last exception is
    re-raised unchanged once attempts are exhausted. Setting ``cancel`` stops
    the backoff wait and raises OperationCancelledError.
    """

    attempt = 0
    while True:
        check_cancelled(cancel)
        attempt += 1
        try:
            return fn()
        except exceptions as exc:
            if attempt > retries:
                raise
            delay = backoff_delay(attempt, base)
            logger.warning(
                "%s failed (attempt %d/%d): %s; retrying in %.2fs",
                description,
                attempt,
                retries + 1,
                exc,
                delay,
            )
            if cancel is not None:
                if cancel.wait(delay):
                    raise OperationCancelledError("Operation cancelled by caller.") from exc
            else:
                time.sleep(delay)
