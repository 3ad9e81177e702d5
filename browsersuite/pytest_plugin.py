"""pytest plugin running marked modules and classes as browser suites.

Enable it from a conftest.py::

    pytest_plugins = ["browsersuite.pytest_plugin"]

Then mark a module, class or function::

    @pytest.mark.browser_suite(port=19002, browser="firefox")
    class TestCheckout:
        def test_title(self, suite_driver, suite_url):
            page = suite_driver.page
            page.goto(suite_url)

The suite's test server starts when its first test is set up, after any
enclosing suites have started, and stops after its last test (including nested
classes) is torn down. If the browser cannot be created, every test in the
suite is skipped with the reason.

Override the ``make_suite_config`` fixture to build suites differently; it
receives the node carrying the marker.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from functools import partial
from typing import Any

import pytest

from browsersuite import config
from browsersuite.context import ConfigMap, RunContext, SuiteResources
from browsersuite.drivers import DriverHandle
from browsersuite.exceptions import SuiteConfigError
from browsersuite.factories import factory_for
from browsersuite.lifecycle import SuiteConfig, SuiteLifecycle, SuiteRun
from browsersuite.outcomes import Canceled, Outcome, Succeeded

logger = logging.getLogger("browsersuite.pytest_plugin")

MARKER = "browser_suite"
MARKER_OPTIONS = frozenset(
    ["app", "port", "host", "browser", "driver_factory", "server_factory", "timeout_ms"]
)

REGISTRY_PLUGIN_NAME = "browsersuite-registry"

SuiteConfigBuilder = Callable[[Any], SuiteConfig]


@dataclass
class SuiteSession:
    """A running browser suite as seen by its tests."""

    owner: str
    lifecycle: SuiteLifecycle
    run: SuiteRun
    failed: bool = False

    @property
    def config_map(self) -> ConfigMap:
        return self.run.context.config_map

    @property
    def resources(self) -> SuiteResources:
        return SuiteResources.from_config_map(self.config_map)

    @property
    def app(self) -> Any:
        return self.lifecycle.app

    @property
    def port(self) -> int:
        return self.lifecycle.port

    @property
    def driver(self) -> DriverHandle:
        return self.lifecycle.driver

    @property
    def base_url(self) -> str:
        return self.lifecycle.base_url


class SuiteRegistry:
    """Tracks the suites of one pytest session, keyed by owner node id."""

    def __init__(self, root_config_map: ConfigMap | None = None) -> None:
        self.root_config_map = root_config_map or ConfigMap()
        self._sessions: dict[str, SuiteSession] = {}
        self._start_errors: dict[str, BaseException] = {}

    def get(self, owner: pytest.Item | pytest.Collector) -> SuiteSession | None:
        return self._sessions.get(owner.nodeid)

    def session_for(self, owner: Any, request: pytest.FixtureRequest) -> SuiteSession:
        """Return the owner's running suite, starting it on first use.

        Enclosing suites that have not started yet are started first,
        outermost first, so a nested suite always runs inside its parents.
        A suite that failed to start raises the same error for every test.
        """
        make_config: SuiteConfigBuilder | None = None
        for node in suite_chain(owner):
            key = node.nodeid
            if key in self._start_errors:
                raise self._start_errors[key]
            if key in self._sessions:
                continue
            if make_config is None:
                make_config = request.getfixturevalue("make_suite_config")
            self._start(node, make_config(node))
        return self._sessions[owner.nodeid]

    def _start(self, owner: Any, suite_config: SuiteConfig) -> SuiteSession:
        key = owner.nodeid
        owner.addfinalizer(partial(self._finish, key))

        lifecycle = SuiteLifecycle(suite_config)
        logger.info("Starting browser suite %s on port %d", key, suite_config.port)
        try:
            run = lifecycle.begin(RunContext(self._inbound_config_map(owner)))
        except Exception as e:
            self._start_errors[key] = e
            raise

        session = SuiteSession(owner=key, lifecycle=lifecycle, run=run)
        self._sessions[key] = session
        return session

    def _inbound_config_map(self, owner: Any) -> ConfigMap:
        # A suite nested in another suite sees the enclosing suite's entries
        for node in reversed(owner.listchain()[:-1]):
            parent = self._sessions.get(node.nodeid)
            if parent is not None:
                return parent.config_map
        return self.root_config_map

    def _finish(self, key: str) -> None:
        self._start_errors.pop(key, None)
        session = self._sessions.pop(key, None)
        if session is None:
            return
        logger.info("Finishing browser suite %s (failed=%s)", key, session.failed)
        session.run.finish(succeeded=not session.failed)

    def pytest_runtest_logreport(self, report: pytest.TestReport) -> None:
        if not report.failed:
            return
        for key, session in self._sessions.items():
            if report.nodeid == key or report.nodeid.startswith(f"{key}::"):
                session.failed = True


def is_suite_owner(node: Any) -> bool:
    return any(mark.name == MARKER for mark in node.own_markers)


def suite_owner(node: Any) -> Any | None:
    """Return the closest node (the node itself or a parent) marked browser_suite."""
    for candidate in reversed(node.listchain()):
        if is_suite_owner(candidate):
            return candidate
    return None


def suite_chain(owner: Any) -> list[Any]:
    """Return the marked nodes from the outermost suite down to ``owner``."""
    return [node for node in owner.listchain() if is_suite_owner(node)]


def marker_options(owner: Any) -> dict[str, Any]:
    """Keyword options of the browser_suite marker placed on ``owner`` itself."""
    options: dict[str, Any] = {}
    for mark in owner.own_markers:
        if mark.name == MARKER:
            options.update(mark.kwargs)
    return options


def parse_config_entries(entries: list[str]) -> ConfigMap:
    """Parse ``KEY=VALUE`` command-line entries into a config map.

    Raises:
        pytest.UsageError: If an entry has no ``=``.
    """
    parsed: dict[str, str] = {}
    for entry in entries:
        key, sep, value = entry.partition("=")
        if not sep or not key.strip():
            raise pytest.UsageError(f"--suite-config expects KEY=VALUE, got {entry!r}")
        parsed[key.strip()] = value
    return ConfigMap(parsed)


def build_suite_config(pytest_config: pytest.Config, options: dict[str, Any]) -> SuiteConfig:
    """Combine marker options with command-line options into a SuiteConfig.

    Marker options win over command-line options, which win over environment
    defaults.

    Raises:
        SuiteConfigError: If the marker has unknown options.
    """
    unknown = set(options) - MARKER_OPTIONS
    if unknown:
        raise SuiteConfigError(
            f"Unknown {MARKER} option(s): {', '.join(sorted(unknown))}",
            key=sorted(unknown)[0],
        )
    options = dict(options)

    driver_factory = options.pop("driver_factory", None)
    browser = options.pop("browser", None)
    if browser is None:
        browser = pytest_config.getoption("suite_browser")
    if driver_factory is None:
        headless = False if pytest_config.getoption("suite_headed") else None
        driver_factory = factory_for(
            config.BROWSER if browser is None else browser,
            headless=headless,
            timeout_ms=options.get("timeout_ms"),
        )

    if options.get("port") is None:
        options.pop("port", None)
        port = pytest_config.getoption("suite_port")
        if port is not None:
            options["port"] = port

    return SuiteConfig(driver_factory=driver_factory, **options)


def _proceed(test: Any) -> Outcome:
    # The rest of the chain is pytest's own call phase
    return Succeeded()


def pytest_addoption(parser: pytest.Parser) -> None:
    group = parser.getgroup("browsersuite", "browser suites")
    group.addoption(
        "--suite-browser",
        action="store",
        default=None,
        help="Browser for browser_suite tests: chromium, firefox, webkit, chrome, msedge.",
    )
    group.addoption(
        "--suite-port",
        action="store",
        type=int,
        default=None,
        help="Port for browser_suite test servers (default: TESTSERVER_PORT or 19001).",
    )
    group.addoption(
        "--suite-headed",
        action="store_true",
        default=False,
        help="Show browser windows instead of running headless.",
    )
    group.addoption(
        "--suite-config",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Entry for the config map passed to top-level browser suites (repeatable).",
    )


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line(
        "markers",
        f"{MARKER}(**options): run the marked module, class or function as a browser suite "
        "with its own test server and browser",
    )
    registry = SuiteRegistry(parse_config_entries(config.getoption("suite_config")))
    config.pluginmanager.register(registry, REGISTRY_PLUGIN_NAME)


def _registry(config: pytest.Config) -> SuiteRegistry:
    registry = config.pluginmanager.get_plugin(REGISTRY_PLUGIN_NAME)
    if not isinstance(registry, SuiteRegistry):
        raise SuiteConfigError(
            f"browsersuite plugin is not configured (no {REGISTRY_PLUGIN_NAME!r} plugin)"
        )
    return registry


@pytest.fixture
def make_suite_config(request: pytest.FixtureRequest) -> SuiteConfigBuilder:
    """Builder of the SuiteConfig for a marked node.

    Override this fixture in a conftest, module or class to customise suites.
    The builder is called once for each suite when it starts, with the node
    that carries the marker.
    """

    def make(owner: Any) -> SuiteConfig:
        return build_suite_config(request.config, marker_options(owner))

    return make


@pytest.fixture
def browser_suite(request: pytest.FixtureRequest) -> SuiteSession:
    """The running suite enclosing the current test."""
    owner = suite_owner(request.node)
    if owner is None:
        raise SuiteConfigError(f"{request.node.nodeid} is not inside a @pytest.mark.{MARKER} suite")
    return _registry(request.config).session_for(owner, request)


@pytest.fixture(autouse=True)
def _browser_suite_cancellation(request: pytest.FixtureRequest) -> None:
    if suite_owner(request.node) is None:
        return
    session: SuiteSession = request.getfixturevalue("browser_suite")
    outcome = session.lifecycle.wrap_fixture(request.node, _proceed)
    if isinstance(outcome, Canceled):
        pytest.skip(outcome.reason)


@pytest.fixture
def suite_driver(browser_suite: SuiteSession) -> DriverHandle:
    """The suite's browser driver."""
    return browser_suite.driver


@pytest.fixture
def suite_app(browser_suite: SuiteSession) -> Any:
    return browser_suite.app


@pytest.fixture
def suite_port(browser_suite: SuiteSession) -> int:
    return browser_suite.port


@pytest.fixture
def suite_url(browser_suite: SuiteSession) -> str:
    """Base URL of the suite's test server."""
    return browser_suite.base_url


@pytest.fixture
def suite_config_map(browser_suite: SuiteSession) -> ConfigMap:
    """Config map the suite published for nested suites."""
    return browser_suite.config_map
