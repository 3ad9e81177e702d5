"""browsersuite - one test server and one browser per integration test suite."""

from browsersuite.context import (
    APP_KEY,
    PORT_KEY,
    WEB_DRIVER_KEY,
    ConfigMap,
    RunContext,
    SuiteResources,
)
from browsersuite.drivers import (
    BrowserKind,
    DriverHandle,
    ExistingBrowserDriver,
    NoDriver,
    PlaywrightDriver,
    WebDriver,
)
from browsersuite.eventually import eventually
from browsersuite.exceptions import (
    BrowserSuiteError,
    DriverUnavailableError,
    ServerStartError,
    SuiteConfigError,
    TeardownError,
)
from browsersuite.factories import (
    BrowserFactory,
    ChromiumFactory,
    ExistingBrowserFactory,
    FirefoxFactory,
    RemoteBrowserFactory,
    UnavailableFactory,
    WebKitFactory,
    factory_for,
)
from browsersuite.lifecycle import SuiteConfig, SuiteLifecycle, SuiteRun
from browsersuite.outcomes import Canceled, CanceledError, Failed, Outcome, Pending, Succeeded
from browsersuite.playwright_runtime import PlaywrightRuntime
from browsersuite.server import TestServer, find_free_port
from browsersuite.status import CompositeStatus, RunStatus
from browsersuite.version import __version__

__all__ = [
    "__version__",
    "APP_KEY",
    "PORT_KEY",
    "WEB_DRIVER_KEY",
    "ConfigMap",
    "RunContext",
    "SuiteResources",
    "BrowserKind",
    "DriverHandle",
    "ExistingBrowserDriver",
    "NoDriver",
    "PlaywrightDriver",
    "WebDriver",
    "BrowserSuiteError",
    "DriverUnavailableError",
    "ServerStartError",
    "SuiteConfigError",
    "TeardownError",
    "BrowserFactory",
    "ChromiumFactory",
    "ExistingBrowserFactory",
    "FirefoxFactory",
    "RemoteBrowserFactory",
    "UnavailableFactory",
    "WebKitFactory",
    "factory_for",
    "eventually",
    "SuiteConfig",
    "SuiteLifecycle",
    "SuiteRun",
    "Canceled",
    "CanceledError",
    "Failed",
    "Outcome",
    "Pending",
    "Succeeded",
    "PlaywrightRuntime",
    "TestServer",
    "find_free_port",
    "CompositeStatus",
    "RunStatus",
]
