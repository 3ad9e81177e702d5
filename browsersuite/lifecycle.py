"""Suite lifecycle: one test server and one browser per suite.

SuiteLifecycle wraps the two entry points a test framework gives a suite:

- wrap_fixture(): runs around each test and cancels it when the suite's
  browser could not be created
- wrap_run(): runs around the whole suite, starting the test server before
  it and stopping the server and releasing the browser once the suite and
  all of its nested suites have completed

Resources are published to nested suites through the run context's config
map under APP_KEY, PORT_KEY and WEB_DRIVER_KEY.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Protocol

from browsersuite import config
from browsersuite.app import create_app
from browsersuite.context import APP_KEY, PORT_KEY, WEB_DRIVER_KEY, RunContext
from browsersuite.drivers import DriverHandle, NoDriver, WebDriver
from browsersuite.exceptions import TeardownError
from browsersuite.factories import BrowserFactory, default_browser_factory
from browsersuite.outcomes import Canceled, Outcome
from browsersuite.server import TestServer
from browsersuite.status import RunStatus

logger = logging.getLogger("browsersuite.lifecycle")


class ServerHandle(Protocol):
    """What the lifecycle needs from a test server."""

    def start(self) -> None: ...

    def stop(self) -> None: ...


ServerFactory = Callable[..., ServerHandle]
SuiteRunner = Callable[[str | None, RunContext], RunStatus]
FixtureChain = Callable[[Any], Outcome]


@dataclass
class SuiteConfig:
    """Resources for one suite.

    Attributes:
        app: Application the test server serves. Defaults to a fresh default app.
        port: Port the test server listens on. Defaults to TESTSERVER_PORT or 19001.
        driver_factory: Creates the suite's browser.
        host: Interface the test server binds.
        server_factory: Builds the server from ``(port, app, host=...)``.
        timeout_ms: Default Playwright timeout for the suite's browser
            contexts. None keeps the driver factory's timeout.
    """

    app: Any = field(default_factory=create_app)
    port: int = field(default_factory=config.default_server_port)
    driver_factory: BrowserFactory = field(default_factory=default_browser_factory)
    host: str = config.HOST
    server_factory: ServerFactory = TestServer
    timeout_ms: float | None = None


@dataclass
class SuiteRun:
    """A suite run whose body executes after the lifecycle has been entered.

    Attributes:
        status: Completes when the suite finishes; completing it cleans up.
        context: The run context handed to the suite, with published entries.
    """

    status: RunStatus
    context: RunContext

    def finish(self, succeeded: bool = True) -> None:
        """Complete the run, which stops the server and releases the browser."""
        if not succeeded:
            self.status.set_failed()
        self.status.set_completed()


class SuiteLifecycle:
    """Owns the test server and browser of a single suite."""

    def __init__(self, suite_config: SuiteConfig | None = None) -> None:
        self.config = suite_config or SuiteConfig()
        self._driver: DriverHandle | None = None
        self._driver_lock = threading.Lock()
        self._server: ServerHandle | None = None
        self._cleaned_up = False
        self._cleanup_lock = threading.Lock()

    @property
    def app(self) -> Any:
        return self.config.app

    @property
    def port(self) -> int:
        return self.config.port

    @property
    def driver(self) -> DriverHandle:
        """The suite's browser, created on first access."""
        return self.resolve_driver()

    @property
    def base_url(self) -> str:
        return f"http://{self.config.host}:{self.config.port}"

    def resolve_driver(self) -> DriverHandle:
        """Create the suite's driver once and return the same handle afterwards."""
        with self._driver_lock:
            if self._driver is None:
                self._driver = self.config.driver_factory.create_driver()
                if isinstance(self._driver, WebDriver) and self.config.timeout_ms is not None:
                    self._driver.timeout_ms = self.config.timeout_ms
                if isinstance(self._driver, NoDriver):
                    logger.info("Tests in this suite will be canceled: %s", self._driver.message)
            return self._driver

    def wrap_fixture(self, test: Any, next_fixture: FixtureChain) -> Outcome:
        """Run ``test`` through ``next_fixture`` unless the browser is unavailable.

        Returns:
            Canceled with the NoDriver message when there is no browser,
            otherwise whatever ``next_fixture`` returns.
        """
        driver = self.resolve_driver()
        if isinstance(driver, NoDriver):
            return Canceled(driver.message, driver.cause)
        return next_fixture(test)

    def wrap_run(self, test_filter: str | None, context: RunContext, run: SuiteRunner) -> RunStatus:
        """Run a suite between starting and stopping its test server.

        Args:
            test_filter: Name of a single test to run, or None for all.
            context: Inbound run context.
            run: The framework's suite entry point.

        Returns:
            The status returned by ``run``. Cleanup is attached to its
            completion, so nested suites still running keep their resources.

        Raises:
            Exception: Whatever starting the server or running the suite
                raised, after cleaning up.
        """
        server = self.config.server_factory(
            self.config.port, self.config.app, host=self.config.host
        )
        self._server = server
        try:
            driver = self.resolve_driver()
            server.start()
            config_map = context.config_map.updated(
                {
                    APP_KEY: self.config.app,
                    PORT_KEY: self.config.port,
                    WEB_DRIVER_KEY: driver,
                }
            )
            status = run(test_filter, context.with_config_map(config_map))
            status.when_completed(lambda succeeded: self.cleanup())
            return status
        except BaseException:
            try:
                self.cleanup()
            except Exception as cleanup_error:
                logger.error("Cleanup after failed suite start also failed: %s", cleanup_error)
            raise

    def begin(self, context: RunContext | None = None, test_filter: str | None = None) -> SuiteRun:
        """Enter the suite for frameworks that run the suite body later.

        The returned SuiteRun holds a pending status; finishing it triggers
        cleanup.
        """
        status = RunStatus()
        captured: list[RunContext] = []

        def run(_: str | None, run_context: RunContext) -> RunStatus:
            captured.append(run_context)
            return status

        self.wrap_run(test_filter, context or RunContext(), run)
        return SuiteRun(status=status, context=captured[0])

    def cleanup(self) -> None:
        """Stop the test server and release the browser.

        Runs at most once. Both steps are attempted even if one fails.

        Raises:
            Exception: The error of the failed step when exactly one failed.
            TeardownError: When both steps failed.
        """
        with self._cleanup_lock:
            if self._cleaned_up:
                return
            self._cleaned_up = True

        errors: list[BaseException] = []
        if self._server is not None:
            try:
                self._server.stop()
            except Exception as e:
                logger.error("Failed to stop test server on port %d: %s", self.config.port, e)
                errors.append(e)

        if self._driver is not None:
            try:
                self._driver.release()
            except Exception as e:
                logger.error("Failed to release browser %r: %s", self._driver, e)
                errors.append(e)

        if len(errors) == 1:
            raise errors[0]
        if errors:
            raise TeardownError(errors)
