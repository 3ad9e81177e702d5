"""Shared fixtures for browsersuite tests.

Provides recording fakes for the test server and browser so lifecycle tests
can check call order without launching uvicorn or a browser.
"""

from collections.abc import Callable
from typing import Any

import pytest

from browsersuite.drivers import NoDriver
from browsersuite.lifecycle import SuiteConfig
from browsersuite.server import find_free_port

pytest_plugins = ["pytester", "browsersuite.pytest_plugin"]


class FakeServer:
    """Test server stand-in that records start/stop calls."""

    def __init__(
        self,
        events: list[tuple[Any, ...]],
        port: int,
        app: Any,
        host: str | None = None,
        start_error: Exception | None = None,
        stop_error: Exception | None = None,
    ) -> None:
        self.events = events
        self.port = port
        self.app = app
        self.host = host
        self.start_error = start_error
        self.stop_error = stop_error

    def start(self) -> None:
        self.events.append(("start", self.port))
        if self.start_error:
            raise self.start_error

    def stop(self) -> None:
        self.events.append(("stop", self.port))
        if self.stop_error:
            raise self.stop_error


class FakeDriver:
    """Concrete driver stand-in that records releases."""

    available = True

    def __init__(
        self, events: list[tuple[Any, ...]], release_error: Exception | None = None
    ) -> None:
        self.events = events
        self.release_error = release_error

    def release(self) -> None:
        self.events.append(("release",))
        if self.release_error:
            raise self.release_error


class FakeFactory:
    """Browser factory stand-in returning a fixed handle."""

    def __init__(self, driver: Any) -> None:
        self.driver = driver
        self.calls = 0

    @property
    def name(self) -> str:
        return "fake"

    def create_driver(self) -> Any:
        self.calls += 1
        return self.driver


class Fakes:
    """Builds fakes sharing one ordered event log."""

    def __init__(self) -> None:
        self.events: list[tuple[Any, ...]] = []

    def server_factory(
        self,
        start_error: Exception | None = None,
        stop_error: Exception | None = None,
    ) -> Callable[..., FakeServer]:
        def build(port: int, app: Any, host: str | None = None) -> FakeServer:
            return FakeServer(self.events, port, app, host, start_error, stop_error)

        return build

    def driver(self, release_error: Exception | None = None) -> FakeDriver:
        return FakeDriver(self.events, release_error)

    def factory(self, driver: Any) -> FakeFactory:
        return FakeFactory(driver)

    def no_driver_factory(self, message: str, cause: BaseException | None = None) -> FakeFactory:
        return FakeFactory(NoDriver(cause, message))

    def suite_config(
        self,
        driver_factory: Any = None,
        port: int = 19001,
        start_error: Exception | None = None,
        stop_error: Exception | None = None,
    ) -> SuiteConfig:
        return SuiteConfig(
            app=object(),
            port=port,
            driver_factory=driver_factory or self.factory(self.driver()),
            server_factory=self.server_factory(start_error, stop_error),
        )


@pytest.fixture
def fakes() -> Fakes:
    """Fresh fakes with an empty event log."""
    return Fakes()


@pytest.fixture
def free_port() -> int:
    """A port nothing is listening on."""
    return find_free_port()
