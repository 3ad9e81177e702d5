"""Browser factories.

A factory creates the driver handle for one suite. Creation never raises:
any failure (browser not installed, unsupported platform, Playwright runtime
missing) is returned as a NoDriver carrying the error and a message, so the
suite cancels its tests instead of failing them.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any

from playwright.sync_api import Browser, BrowserType

from browsersuite import config, playwright_runtime
from browsersuite.drivers import (
    BrowserKind,
    DriverHandle,
    ExistingBrowserDriver,
    NoDriver,
    PlaywrightDriver,
)
from browsersuite.exceptions import DriverUnavailableError, SuiteConfigError
from browsersuite.playwright_runtime import PlaywrightRuntime

logger = logging.getLogger("browsersuite.factories")

# Branded browsers Playwright launches through a Chromium channel
CHROMIUM_CHANNELS = frozenset(["chrome", "chrome-beta", "msedge", "msedge-beta"])


class BrowserFactory(ABC):
    """Creates a driver handle, substituting NoDriver on failure."""

    kind: BrowserKind = BrowserKind.CHROMIUM
    timeout_ms: float | None = None

    @property
    def name(self) -> str:
        """Name used in messages and CLI output."""
        return self.kind.value

    def create_driver(self) -> DriverHandle:
        """Create the driver, or NoDriver if it cannot be created."""
        try:
            driver = self._create()
        except DriverUnavailableError as e:
            logger.warning("%s browser unavailable: %s", self.name, e.message)
            return NoDriver(e, e.message)
        except Exception as e:
            message = self.unavailable_message(e)
            logger.warning("%s", message)
            return NoDriver(e, message)
        logger.info("Created %s browser", self.name)
        return driver

    def unavailable_message(self, error: BaseException) -> str:
        """Message for the NoDriver returned when creation raises ``error``."""
        return f"Was unable to create a {self.name} browser on this platform: {error}"

    @abstractmethod
    def _create(self) -> DriverHandle:
        """Create the driver. May raise; create_driver converts errors."""


class PlaywrightBrowserFactory(BrowserFactory):
    """Launches a local browser through Playwright.

    Args:
        kind: Browser engine to launch.
        headless: Launch without a visible window.
        channel: Branded Chromium build (chrome, msedge, ...). Chromium only.
        timeout_ms: Default Playwright timeout for contexts the driver opens.
        runtime: Playwright runtime to lease. Defaults to the shared one.
        launch_options: Extra keyword arguments for ``BrowserType.launch``.
    """

    def __init__(
        self,
        kind: BrowserKind = BrowserKind.CHROMIUM,
        headless: bool | None = None,
        channel: str | None = None,
        timeout_ms: float | None = None,
        runtime: PlaywrightRuntime | None = None,
        **launch_options: Any,
    ) -> None:
        if channel and kind is not BrowserKind.CHROMIUM:
            raise SuiteConfigError(
                f"Browser channel {channel!r} requires chromium, not {kind.value}"
            )
        self.kind = kind
        self.headless = config.HEADLESS if headless is None else headless
        self.channel = channel
        self.timeout_ms = config.TIMEOUT_MS if timeout_ms is None else timeout_ms
        self.runtime = runtime or playwright_runtime.SHARED_RUNTIME
        self.launch_options = launch_options

    @property
    def name(self) -> str:
        return self.channel or self.kind.value

    def _launch(self, browser_type: BrowserType) -> Browser:
        options = dict(self.launch_options)
        if self.channel:
            options["channel"] = self.channel
        return browser_type.launch(headless=self.headless, **options)

    def _create(self) -> DriverHandle:
        playwright = self.runtime.acquire()
        try:
            browser = self._launch(getattr(playwright, self.kind.value))
        except BaseException:
            self.runtime.release(playwright)
            raise
        return PlaywrightDriver(
            self.kind, playwright, browser, runtime=self.runtime, timeout_ms=self.timeout_ms
        )

    def __repr__(self) -> str:
        return f"{type(self).__name__}(kind={self.kind.value!r}, headless={self.headless!r})"


class ChromiumFactory(PlaywrightBrowserFactory):
    def __init__(
        self, headless: bool | None = None, channel: str | None = None, **launch_options: Any
    ) -> None:
        super().__init__(BrowserKind.CHROMIUM, headless, channel, **launch_options)


class FirefoxFactory(PlaywrightBrowserFactory):
    def __init__(self, headless: bool | None = None, **launch_options: Any) -> None:
        super().__init__(BrowserKind.FIREFOX, headless, **launch_options)


class WebKitFactory(PlaywrightBrowserFactory):
    def __init__(self, headless: bool | None = None, **launch_options: Any) -> None:
        super().__init__(BrowserKind.WEBKIT, headless, **launch_options)


class RemoteBrowserFactory(PlaywrightBrowserFactory):
    """Connects to a browser server started with ``launchServer`` elsewhere.

    Args:
        ws_endpoint: WebSocket endpoint of the remote browser server.
        kind: Engine the remote server runs.
    """

    def __init__(
        self,
        ws_endpoint: str,
        kind: BrowserKind = BrowserKind.CHROMIUM,
        **connect_options: Any,
    ) -> None:
        super().__init__(kind, **connect_options)
        self.ws_endpoint = ws_endpoint

    @property
    def name(self) -> str:
        return f"remote {self.kind.value}"

    def _launch(self, browser_type: BrowserType) -> Browser:
        return browser_type.connect(self.ws_endpoint, **self.launch_options)

    def unavailable_message(self, error: BaseException) -> str:
        return (
            f"Was unable to connect to the {self.kind.value} browser at {self.ws_endpoint}: {error}"
        )


class ExistingBrowserFactory(BrowserFactory):
    """Hands out a browser that is already running and owned elsewhere."""

    def __init__(self, browser: Browser, timeout_ms: float | None = None) -> None:
        self.browser = browser
        self.kind = BrowserKind(browser.browser_type.name)
        self.timeout_ms = config.TIMEOUT_MS if timeout_ms is None else timeout_ms

    def _create(self) -> DriverHandle:
        if not self.browser.is_connected():
            raise DriverUnavailableError(
                f"The shared {self.kind.value} browser is no longer connected",
                kind=self.kind.value,
            )
        return ExistingBrowserDriver(self.browser, timeout_ms=self.timeout_ms)


class UnavailableFactory(BrowserFactory):
    """Always produces NoDriver, for disabling browsers in a suite explicitly."""

    def __init__(self, message: str = "Browser testing is disabled") -> None:
        self.message = message

    @property
    def name(self) -> str:
        return "disabled"

    def _create(self) -> DriverHandle:
        return NoDriver(None, self.message)


def factory_for(
    name: str, headless: bool | None = None, timeout_ms: float | None = None
) -> BrowserFactory:
    """Return the factory for a browser name such as ``firefox`` or ``msedge``.

    Raises:
        SuiteConfigError: If the name is not a known engine or channel.
    """
    key = name.strip().lower()
    if key in CHROMIUM_CHANNELS:
        return ChromiumFactory(headless=headless, channel=key, timeout_ms=timeout_ms)
    try:
        kind = BrowserKind(key)
    except ValueError:
        known = sorted([k.value for k in BrowserKind] + list(CHROMIUM_CHANNELS))
        raise SuiteConfigError(
            f"Unknown browser {name!r} (expected one of: {', '.join(known)})",
            key="browser",
        ) from None
    return PlaywrightBrowserFactory(kind, headless=headless, timeout_ms=timeout_ms)


def default_browser_factory() -> BrowserFactory:
    """Factory for the browser named by BROWSERSUITE_BROWSER."""
    return factory_for(config.BROWSER)
