"""Browser driver handles.

A suite resolves exactly one driver handle. It is either a WebDriver wrapping a
Playwright browser, or NoDriver when the browser could not be created on this
host. Lifecycle code releases every handle through the same call,
``release()``; each variant decides whether releasing means quitting the
browser or only closing what the handle opened.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Union

from playwright.sync_api import Browser, BrowserContext, Page, Playwright

from browsersuite.playwright_runtime import PlaywrightRuntime

logger = logging.getLogger("browsersuite.drivers")


class BrowserKind(str, Enum):
    """Browser engines Playwright can drive."""

    CHROMIUM = "chromium"
    FIREFOX = "firefox"
    WEBKIT = "webkit"


@dataclass(frozen=True)
class NoDriver:
    """Placeholder handle for a browser that could not be created.

    Attributes:
        cause: The error raised while creating the browser, if any.
        message: Human-readable explanation, used as the cancel message.
    """

    cause: BaseException | None
    message: str

    available = False

    def release(self) -> None:
        """Nothing to release."""


class WebDriver(ABC):
    """A usable browser handle.

    Subclasses implement ``close()`` and ``quit()``; ``release()`` is what suite
    cleanup calls.
    """

    available = True

    def __init__(
        self, kind: BrowserKind, browser: Browser, timeout_ms: float | None = None
    ) -> None:
        self.kind = kind
        self.browser = browser
        self.timeout_ms = timeout_ms
        self._contexts: list[BrowserContext] = []
        self._page: Page | None = None

    def new_context(self, **options: Any) -> BrowserContext:
        """Open a browser context that this handle closes on release.

        The context waits up to ``timeout_ms`` for actions and assertions when
        a timeout is set.
        """
        context = self.browser.new_context(**options)
        if self.timeout_ms is not None:
            context.set_default_timeout(self.timeout_ms)
        self._contexts.append(context)
        return context

    def new_page(self, **options: Any) -> Page:
        """Open a page in a fresh context."""
        return self.new_context(**options).new_page()

    @property
    def page(self) -> Page:
        """Default page for the suite, created on first use."""
        if self._page is None:
            self._page = self.new_page()
        return self._page

    def close(self) -> None:
        """Close every context opened through this handle."""
        contexts, self._contexts = self._contexts, []
        self._page = None
        for context in contexts:
            context.close()

    @abstractmethod
    def quit(self) -> None:
        """End the browser session entirely."""

    @abstractmethod
    def release(self) -> None:
        """Give back whatever this handle holds at the end of a suite."""

    def __repr__(self) -> str:
        return f"<{type(self).__name__} kind={self.kind.value}>"


class PlaywrightDriver(WebDriver):
    """A browser this handle launched (or connected to) and owns.

    Releasing quits: the browser is closed and the lease on the Playwright
    runtime returned. Without a runtime the handle owns ``playwright`` outright
    and stops it.
    """

    def __init__(
        self,
        kind: BrowserKind,
        playwright: Playwright,
        browser: Browser,
        runtime: PlaywrightRuntime | None = None,
        timeout_ms: float | None = None,
    ) -> None:
        super().__init__(kind, browser, timeout_ms)
        self.playwright = playwright
        self.runtime = runtime

    def quit(self) -> None:
        try:
            self.close()
            self.browser.close()
        finally:
            if self.runtime is not None:
                self.runtime.release(self.playwright)
            else:
                self.playwright.stop()
        logger.debug("Quit %s browser", self.kind.value)

    def release(self) -> None:
        self.quit()


class ExistingBrowserDriver(WebDriver):
    """Wraps a browser owned by someone else, such as a session-wide fixture.

    Releasing only closes the contexts opened through this handle; the
    browser itself stays up for its owner.
    """

    def __init__(self, browser: Browser, timeout_ms: float | None = None) -> None:
        super().__init__(BrowserKind(browser.browser_type.name), browser, timeout_ms)

    def quit(self) -> None:
        self.close()
        self.browser.close()

    def release(self) -> None:
        self.close()


DriverHandle = Union[WebDriver, NoDriver]
