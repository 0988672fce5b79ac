"""
Bounded exponential backoff for store I/O.

Only transient failures (lost connection, lock/pool timeouts) are
retried. Anything else propagates on the first occurrence.
"""

import logging
import time
from typing import Callable, TypeVar

from sqlalchemy.exc import OperationalError, TimeoutError as PoolTimeoutError

from ledger_reconciler.errors import TransientStoreError

logger = logging.getLogger(__name__)

T = TypeVar("T")

TRANSIENT_ERRORS = (OperationalError, PoolTimeoutError, TimeoutError, ConnectionError)


def with_retry(
    operation: Callable[[], T],
    description: str,
    attempts: int = 3,
    base_delay: float = 0.5,
    on_failure: Callable[[], None] | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """
    Run operation, retrying transient errors up to `attempts` times.

    on_failure runs after every failed attempt (e.g. session rollback)
    so the next attempt starts clean. Waits base_delay, 2x, 4x, ...
    between attempts.
    """
    attempts = max(1, attempts)
    delay = base_delay
    for attempt in range(1, attempts + 1):
        try:
            return operation()
        except TRANSIENT_ERRORS as e:
            if on_failure is not None:
                on_failure()
            if attempt == attempts:
                raise TransientStoreError(
                    f"{description} failed after {attempts} attempts: {e}"
                ) from e
            logger.warning(
                "[Retry %d/%d] %s: %s: %s",
                attempt, attempts, description, type(e).__name__, e,
            )
            sleep(delay)
            delay *= 2
    raise AssertionError("unreachable")
