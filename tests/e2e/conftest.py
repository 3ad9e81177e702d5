"""Playwright E2E fixtures: real browser suites against the default app."""

from typing import Any

import pytest

from browsersuite.app import create_app
from browsersuite.lifecycle import SuiteConfig
from browsersuite.pytest_plugin import SuiteConfigBuilder, build_suite_config, marker_options
from browsersuite.server import find_free_port

E2E_TITLE = "browsersuite e2e"


@pytest.fixture
def make_suite_config(pytestconfig: pytest.Config) -> SuiteConfigBuilder:
    """Serve the default app on a free port so e2e suites never collide."""

    def make(owner: Any) -> SuiteConfig:
        options = marker_options(owner)
        options.setdefault("app", create_app(E2E_TITLE))
        options.setdefault("port", find_free_port())
        return build_suite_config(pytestconfig, options)

    return make
