"""Custom exception classes for browsersuite.

All exceptions inherit from BrowserSuiteError to allow catch-all handling when
needed.

Exception Hierarchy:
    BrowserSuiteError (base)
    ├── DriverUnavailableError (browser cannot be created on this host)
    ├── ServerError (test server errors)
    │   ├── ServerStartError (server failed to start, e.g. port in use)
    │   ├── ServerStateError (invalid state transition)
    │   └── ServerStopError (server failed to shut down)
    ├── TeardownError (more than one cleanup step failed)
    ├── StatusError (run status misuse)
    └── SuiteConfigError (invalid suite configuration)
"""

from typing import Any


class BrowserSuiteError(Exception):
    """Base exception for all browsersuite errors.

    Attributes:
        message: Human-readable error description.
        detail: Technical details for debugging (optional).
    """

    def __init__(self, message: str, detail: str | None = None) -> None:
        self.message = message
        self.detail = detail
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to a dictionary for JSON output."""
        result: dict[str, Any] = {
            "error": self.__class__.__name__,
            "message": self.message,
        }
        if self.detail:
            result["detail"] = self.detail
        return result


class DriverUnavailableError(BrowserSuiteError):
    """Raised by a browser factory when its browser cannot run on this host.

    Factories turn this into a NoDriver handle, so suites see it as a
    cancellation rather than a failure.
    """

    def __init__(self, message: str, kind: str | None = None) -> None:
        detail = f"browser: {kind}" if kind else None
        super().__init__(message, detail=detail)
        self.kind = kind


class ServerError(BrowserSuiteError):
    """Base exception for test server errors."""

    def __init__(self, message: str, port: int | None = None, detail: str | None = None) -> None:
        if port is not None and not detail:
            detail = f"port: {port}"
        super().__init__(message, detail=detail)
        self.port = port


class ServerStartError(ServerError):
    """Raised when the test server fails to start."""


class ServerStateError(ServerError):
    """Raised when a server is started while already running."""


class ServerStopError(ServerError):
    """Raised when the test server does not shut down cleanly."""


class TeardownError(BrowserSuiteError):
    """Raised when more than one suite cleanup step failed.

    Attributes:
        errors: The exceptions raised by each failed step, in order.
    """

    def __init__(self, errors: list[BaseException]) -> None:
        detail = "; ".join(f"{type(e).__name__}: {e}" for e in errors)
        super().__init__(f"{len(errors)} suite cleanup steps failed", detail=detail)
        self.errors = errors


class StatusError(BrowserSuiteError):
    """Raised when a run status is completed more than once."""


class SuiteConfigError(BrowserSuiteError):
    """Raised when suite configuration or a config map lookup is invalid."""

    def __init__(self, message: str, key: str | None = None) -> None:
        detail = f"key: {key}" if key else None
        super().__init__(message, detail=detail)
        self.key = key
