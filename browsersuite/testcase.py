"""unittest integration: one test server and browser per TestCase class."""

from __future__ import annotations

import unittest
from typing import Any, ClassVar

from browsersuite.context import ConfigMap, RunContext
from browsersuite.drivers import DriverHandle
from browsersuite.lifecycle import SuiteConfig, SuiteLifecycle, SuiteRun
from browsersuite.outcomes import Canceled, Outcome, Succeeded


def _proceed(test: Any) -> Outcome:
    return Succeeded()


class BrowserSuiteTestCase(unittest.TestCase):
    """Base class for test cases sharing one server and browser per class.

    Set ``suite_config`` or override ``make_suite_config()`` to choose the
    app, port and browser. Tests are skipped when the browser cannot be
    created on this host.
    """

    suite_config: ClassVar[SuiteConfig | None] = None
    inbound_config_map: ClassVar[ConfigMap] = ConfigMap()

    lifecycle: ClassVar[SuiteLifecycle]
    suite_run: ClassVar[SuiteRun]

    @classmethod
    def make_suite_config(cls) -> SuiteConfig:
        return cls.suite_config or SuiteConfig()

    @classmethod
    def setUpClass(cls) -> None:
        super().setUpClass()
        cls.lifecycle = SuiteLifecycle(cls.make_suite_config())
        cls.suite_run = cls.lifecycle.begin(RunContext(cls.inbound_config_map))

    @classmethod
    def tearDownClass(cls) -> None:
        try:
            cls.suite_run.finish()
        finally:
            super().tearDownClass()

    def setUp(self) -> None:
        super().setUp()
        outcome = self.lifecycle.wrap_fixture(self, _proceed)
        if isinstance(outcome, Canceled):
            self.skipTest(outcome.reason)

    @property
    def driver(self) -> DriverHandle:
        return self.lifecycle.driver

    @property
    def app(self) -> Any:
        return self.lifecycle.app

    @property
    def port(self) -> int:
        return self.lifecycle.port

    @property
    def base_url(self) -> str:
        return self.lifecycle.base_url

    @property
    def config_map(self) -> ConfigMap:
        """Config map this suite published for nested suites."""
        return self.suite_run.context.config_map
