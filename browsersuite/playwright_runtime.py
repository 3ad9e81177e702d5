"""Shared Playwright runtime.

The sync Playwright API allows one running instance per thread: starting a
second one while the first is alive fails. Every browser a suite launches on a
thread therefore leases the same runtime, which is stopped when the last lease
is returned.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass

from playwright.sync_api import Playwright, sync_playwright

logger = logging.getLogger("browsersuite.playwright_runtime")


@dataclass
class _Lease:
    playwright: Playwright
    holders: int = 0


class PlaywrightRuntime:
    """Reference-counted sync Playwright runtimes, one per thread."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._leases: dict[int, _Lease] = {}

    def acquire(self) -> Playwright:
        """Return this thread's runtime, starting it if no one holds it.

        Raises:
            Exception: Whatever Playwright raises when the runtime cannot start.
        """
        thread_id = threading.get_ident()
        with self._lock:
            lease = self._leases.get(thread_id)
            if lease is None:
                lease = _Lease(sync_playwright().start())
                self._leases[thread_id] = lease
                logger.debug("Started Playwright runtime for thread %d", thread_id)
            lease.holders += 1
            return lease.playwright

    def release(self, playwright: Playwright) -> None:
        """Return a lease; the last holder stops the runtime."""
        with self._lock:
            thread_id = self._find(playwright)
            # A runtime not leased from here has the caller as its only owner
            if thread_id is not None:
                lease = self._leases[thread_id]
                lease.holders -= 1
                if lease.holders > 0:
                    return
                del self._leases[thread_id]
        logger.debug("Stopping Playwright runtime")
        playwright.stop()

    def holders(self, playwright: Playwright) -> int:
        """Number of outstanding leases on ``playwright``."""
        with self._lock:
            thread_id = self._find(playwright)
            return 0 if thread_id is None else self._leases[thread_id].holders

    def _find(self, playwright: Playwright) -> int | None:
        for thread_id, lease in self._leases.items():
            if lease.playwright is playwright:
                return thread_id
        return None


SHARED_RUNTIME = PlaywrightRuntime()
