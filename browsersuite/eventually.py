"""Retrying checks until they pass, with integration-test patience.

Pages served by a live test server settle asynchronously, so assertions about
them are retried for up to ``BROWSERSUITE_TIMEOUT_MS`` (15 seconds by default)
every ``BROWSERSUITE_RETRY_INTERVAL_MS`` before the last failure is reported.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import TypeVar

from browsersuite import config
from browsersuite.outcomes import CanceledError

logger = logging.getLogger("browsersuite.eventually")

T = TypeVar("T")


def eventually(
    check: Callable[[], T],
    timeout_ms: float | None = None,
    interval_ms: float | None = None,
) -> T:
    """Call ``check`` until it returns without raising.

    Args:
        check: Callable that raises (usually AssertionError) while the
            condition does not hold yet.
        timeout_ms: How long to keep retrying. Defaults to BROWSERSUITE_TIMEOUT_MS.
        interval_ms: Pause between attempts. Defaults to BROWSERSUITE_RETRY_INTERVAL_MS.

    Returns:
        Whatever ``check`` returned on the first successful attempt.

    Raises:
        Exception: The error of the last attempt once the timeout has passed.
            Cancellations and pending markers are raised at once.
    """
    timeout = (config.TIMEOUT_MS if timeout_ms is None else timeout_ms) / 1000
    interval = (config.RETRY_INTERVAL_MS if interval_ms is None else interval_ms) / 1000
    deadline = time.monotonic() + timeout
    attempts = 0
    while True:
        attempts += 1
        try:
            return check()
        except (CanceledError, NotImplementedError):
            raise
        except Exception as e:
            if time.monotonic() + interval > deadline:
                logger.debug("Giving up after %d attempts: %s", attempts, e)
                raise
            time.sleep(interval)
