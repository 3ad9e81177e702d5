"""Completion status of a suite run.

A suite run may finish after the call that started it returns, because nested
suites can run later or on other threads. RunStatus represents that eventual
completion:

- completes exactly once
- records whether every test in the run succeeded
- invokes registered callbacks on completion, on the completing thread

wait_until_completed() returns only after every callback has run.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable

from browsersuite.exceptions import StatusError

logger = logging.getLogger("browsersuite.status")

CompletionCallback = Callable[[bool], None]


class RunStatus:
    """One-shot completion state for a suite run."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._completed = False
        self._done = threading.Event()
        self._succeeded = True
        self._callbacks: list[CompletionCallback] = []

    @property
    def completed(self) -> bool:
        """Whether the run has completed."""
        return self._completed

    @property
    def succeeded(self) -> bool:
        """Whether the run succeeded so far (final once completed)."""
        return self._succeeded

    def set_failed(self) -> None:
        """Mark the run as failed.

        Raises:
            StatusError: If the run has already completed.
        """
        with self._lock:
            if self._completed:
                raise StatusError("Cannot mark a completed run as failed")
            self._succeeded = False

    def set_completed(self) -> None:
        """Complete the run and invoke registered callbacks in order.

        Every callback is invoked even if an earlier one raises; the first
        exception is then re-raised.

        Raises:
            StatusError: If the run has already completed.
        """
        with self._lock:
            if self._completed:
                raise StatusError("Run status already completed")
            self._completed = True
            callbacks, self._callbacks = self._callbacks, []
            succeeded = self._succeeded

        first_error: BaseException | None = None
        try:
            for callback in callbacks:
                try:
                    callback(succeeded)
                except Exception as e:
                    if first_error is None:
                        first_error = e
                    else:
                        logger.error("Completion callback %r also failed: %s", callback, e)
        finally:
            self._done.set()
        if first_error is not None:
            raise first_error

    def when_completed(self, callback: CompletionCallback) -> None:
        """Register ``callback(succeeded)`` to run when the status completes.

        If the status has already completed, the callback runs immediately on
        the calling thread.
        """
        with self._lock:
            if not self._completed:
                self._callbacks.append(callback)
                return
            succeeded = self._succeeded
        callback(succeeded)

    def wait_until_completed(self, timeout: float | None = None) -> bool:
        """Block until the status completes and its callbacks have run.

        Returns:
            True if completed, False if the timeout expired first.
        """
        return self._done.wait(timeout)

    def __repr__(self) -> str:
        state = "completed" if self.completed else "running"
        return f"<{type(self).__name__} {state} succeeded={self._succeeded}>"


class CompositeStatus(RunStatus):
    """Status that completes once every child status has completed.

    Succeeds only if all children succeeded. With no children it is complete
    as soon as it is constructed.
    """

    def __init__(self, statuses: Iterable[RunStatus]) -> None:
        super().__init__()
        self._children = list(statuses)
        self._remaining = len(self._children)
        self._child_lock = threading.Lock()
        if not self._children:
            self.set_completed()
            return
        for child in self._children:
            child.when_completed(self._child_completed)

    def _child_completed(self, succeeded: bool) -> None:
        with self._child_lock:
            if not succeeded:
                self._succeeded = False
            self._remaining -= 1
            finished = self._remaining == 0
        if finished:
            self.set_completed()
