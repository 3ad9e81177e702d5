"""Outcomes of running a single test."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any


class CanceledError(Exception):
    """Raised inside a test body to cancel the test instead of failing it."""

    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.cause = cause


@dataclass(frozen=True)
class Outcome:
    """Base class for test outcomes."""

    @property
    def is_succeeded(self) -> bool:
        return isinstance(self, Succeeded)

    @property
    def is_failed(self) -> bool:
        return isinstance(self, Failed)

    @property
    def is_canceled(self) -> bool:
        return isinstance(self, Canceled)

    @property
    def is_pending(self) -> bool:
        return isinstance(self, Pending)


@dataclass(frozen=True)
class Succeeded(Outcome):
    """The test ran and passed."""


@dataclass(frozen=True)
class Failed(Outcome):
    """The test ran and raised."""

    exception: BaseException


@dataclass(frozen=True)
class Canceled(Outcome):
    """The test could not be meaningfully attempted.

    Attributes:
        message: Why the test was canceled.
        cause: The underlying error, when there is one.
    """

    message: str
    cause: BaseException | None = None

    @property
    def reason(self) -> str:
        """Message for test reports, naming the cause when there is one."""
        if self.cause is None:
            return self.message
        return f"{self.message} ({type(self.cause).__name__}: {self.cause})"


@dataclass(frozen=True)
class Pending(Outcome):
    """The test has not been written yet."""

    message: str = ""


def invoke_test(test: Callable[[], Any]) -> Outcome:
    """Run a no-argument test and classify what happened.

    This is the innermost link of a fixture chain: CanceledError becomes
    Canceled, NotImplementedError becomes Pending, and any other exception
    becomes Failed.
    """
    try:
        test()
    except CanceledError as e:
        return Canceled(e.message, e.cause)
    except NotImplementedError as e:
        return Pending(str(e))
    except Exception as e:
        return Failed(e)
    return Succeeded()
