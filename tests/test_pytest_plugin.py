"""Tests for the pytest plugin, run against generated test modules with pytester."""

import json
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from browsersuite import pytest_plugin
from browsersuite.drivers import BrowserKind
from browsersuite.exceptions import SuiteConfigError
from browsersuite.pytest_plugin import (
    SuiteRegistry,
    SuiteSession,
    build_suite_config,
    parse_config_entries,
)

# Conftest for the generated runs. Servers and browsers are replaced with
# recorders that append to EVENTS, which is written to events.json at the end.
CONFTEST = '''
import json
from pathlib import Path

import pytest

from browsersuite.drivers import NoDriver
from browsersuite.pytest_plugin import build_suite_config, marker_options

pytest_plugins = ["browsersuite.pytest_plugin"]

EVENTS = []


class RecordingServer:
    def __init__(self, port, app, host=None):
        self.port = port

    def start(self):
        EVENTS.append(["start", self.port])
        __START__

    def stop(self):
        EVENTS.append(["stop", self.port])


class RecordingDriver:
    available = True

    def release(self):
        EVENTS.append(["release"])


class StaticFactory:
    name = "static"

    def create_driver(self):
        EVENTS.append(["create"])
        return __DRIVER__


@pytest.fixture
def events():
    return EVENTS


@pytest.fixture
def make_suite_config(request):
    def make(owner):
        options = marker_options(owner)
        options.setdefault("port", 19001)
        options.setdefault("driver_factory", StaticFactory())
        options.setdefault("server_factory", RecordingServer)
        return build_suite_config(request.config, options)

    return make


def pytest_sessionfinish(session):
    (Path(__file__).parent / "events.json").write_text(json.dumps(EVENTS))
'''

CONCRETE_DRIVER = "RecordingDriver()"
NO_DRIVER = 'NoDriver(None, "no geckodriver found")'


def make_conftest(pytester: pytest.Pytester, driver: str = CONCRETE_DRIVER, start: str = "pass"):
    pytester.makeconftest(CONFTEST.replace("__DRIVER__", driver).replace("__START__", start))


def read_events(pytester: pytest.Pytester) -> list[list]:
    return json.loads((pytester.path / "events.json").read_text())


class TestUnavailableBrowser:
    """Tests for suites whose browser cannot be created."""

    def test_all_tests_skipped_and_server_still_managed(self, pytester: pytest.Pytester) -> None:
        """Test that every test is skipped with the reason and no body runs."""
        make_conftest(pytester, driver=NO_DRIVER)
        pytester.makepyfile(
            test_pages="""
            import pytest

            @pytest.mark.browser_suite
            class TestPages:
                def test_one(self, events):
                    events.append(["body", "one"])

                def test_two(self, suite_driver, events):
                    events.append(["body", "two"])

                def test_three(self, events):
                    events.append(["body", "three"])
            """
        )

        result = pytester.runpytest("-rs")

        result.assert_outcomes(skipped=3)
        result.stdout.fnmatch_lines(["*no geckodriver found*"])
        assert read_events(pytester) == [["create"], ["start", 19001], ["stop", 19001]]

    def test_skip_reason_names_cause(self, pytester: pytest.Pytester) -> None:
        """Test that the creation error is reported along with the message."""
        make_conftest(pytester, driver='NoDriver(OSError("libgtk missing"), "no webkit")')
        pytester.makepyfile(
            test_pages="""
            import pytest

            @pytest.mark.browser_suite
            def test_page():
                pass
            """
        )

        result = pytester.runpytest("-rs")

        result.assert_outcomes(skipped=1)
        result.stdout.fnmatch_lines(["*no webkit (OSError: libgtk missing)*"])


class TestAvailableBrowser:
    """Tests for suites with a working browser."""

    def test_results_pass_through_and_cleanup_follows_last_test(
        self, pytester: pytest.Pytester
    ) -> None:
        """Test that outcomes are unchanged and cleanup happens once at the end."""
        make_conftest(pytester)
        pytester.makepyfile(
            test_pages="""
            import pytest

            @pytest.mark.browser_suite
            class TestPages:
                def test_pass(self, suite_driver, suite_port, suite_url, events):
                    assert suite_driver.available
                    assert suite_port == 19001
                    assert suite_url == "http://127.0.0.1:19001"
                    events.append(["body", "pass"])

                def test_fail(self, events):
                    events.append(["body", "fail"])
                    assert False
            """
        )

        result = pytester.runpytest()

        result.assert_outcomes(passed=1, failed=1)
        assert read_events(pytester) == [
            ["create"],
            ["start", 19001],
            ["body", "pass"],
            ["body", "fail"],
            ["stop", 19001],
            ["release"],
        ]

    def test_nested_class_shares_suite(self, pytester: pytest.Pytester) -> None:
        """Test that an unmarked nested class runs inside the enclosing suite."""
        make_conftest(pytester)
        pytester.makepyfile(
            test_nested="""
            import pytest

            @pytest.mark.browser_suite
            class TestOuter:
                def test_outer(self, browser_suite, events):
                    events.append(["body", browser_suite.owner])

                class TestInner:
                    def test_inner(self, browser_suite, events):
                        events.append(["body", browser_suite.owner])
            """
        )

        result = pytester.runpytest()

        result.assert_outcomes(passed=2)
        assert read_events(pytester) == [
            ["create"],
            ["start", 19001],
            ["body", "test_nested.py::TestOuter"],
            ["body", "test_nested.py::TestOuter"],
            ["stop", 19001],
            ["release"],
        ]

    def test_nested_suite_inherits_config_map(self, pytester: pytest.Pytester) -> None:
        """Test that a nested suite sees the outer entries and overrides its own."""
        make_conftest(pytester)
        pytester.makepyfile(
            test_nested="""
            import pytest

            @pytest.mark.browser_suite
            class TestOuter:
                def test_outer(self, suite_config_map, events):
                    events.append(["body", suite_config_map["env"]])

                @pytest.mark.browser_suite(port=19002)
                class TestInner:
                    def test_inner(self, suite_config_map, suite_port, events):
                        events.append(
                            ["body", suite_config_map["env"], suite_config_map["browsersuite.port"]]
                        )
                        assert suite_port == 19002
            """
        )

        result = pytester.runpytest("--suite-config", "env=staging")

        result.assert_outcomes(passed=2)
        assert read_events(pytester) == [
            ["create"],
            ["start", 19001],
            ["body", "staging"],
            ["create"],
            ["start", 19002],
            ["body", "staging", 19002],
            ["stop", 19002],
            ["release"],
            ["stop", 19001],
            ["release"],
        ]

    def test_nested_suite_declared_before_outer_tests(self, pytester: pytest.Pytester) -> None:
        """Test that the enclosing suite starts before a nested suite that runs first."""
        make_conftest(pytester)
        pytester.makepyfile(
            test_nested="""
            import pytest

            @pytest.mark.browser_suite
            class TestOuter:
                @pytest.mark.browser_suite(port=19002)
                class TestInner:
                    def test_inner(self, suite_config_map, events):
                        events.append(["body", "inner", suite_config_map["env"]])

                def test_outer(self, events):
                    events.append(["body", "outer"])
            """
        )

        result = pytester.runpytest("--suite-config", "env=staging")

        result.assert_outcomes(passed=2)
        assert read_events(pytester) == [
            ["create"],
            ["start", 19001],
            ["create"],
            ["start", 19002],
            ["body", "inner", "staging"],
            ["stop", 19002],
            ["release"],
            ["body", "outer"],
            ["stop", 19001],
            ["release"],
        ]

    def test_outer_suite_with_only_nested_suite(self, pytester: pytest.Pytester) -> None:
        """Test that a suite without direct tests still wraps its nested suite."""
        make_conftest(pytester)
        pytester.makepyfile(
            test_nested="""
            import pytest

            @pytest.mark.browser_suite
            class TestOuter:
                @pytest.mark.browser_suite(port=19002)
                class TestInner:
                    def test_inner(self, suite_config_map, events):
                        events.append(["body", suite_config_map["browsersuite.port"]])
            """
        )

        result = pytester.runpytest()

        result.assert_outcomes(passed=1)
        assert read_events(pytester) == [
            ["create"],
            ["start", 19001],
            ["create"],
            ["start", 19002],
            ["body", 19002],
            ["stop", 19002],
            ["release"],
            ["stop", 19001],
            ["release"],
        ]

    def test_module_marker(self, pytester: pytest.Pytester) -> None:
        """Test that pytestmark makes the whole module one suite."""
        make_conftest(pytester)
        pytester.makepyfile(
            test_module_suite="""
            import pytest

            pytestmark = pytest.mark.browser_suite(port=19005)

            def test_a(suite_port, events):
                events.append(["body", suite_port])

            class TestGroup:
                def test_b(self, browser_suite, events):
                    events.append(["body", browser_suite.owner])
            """
        )

        result = pytester.runpytest()

        result.assert_outcomes(passed=2)
        assert read_events(pytester) == [
            ["create"],
            ["start", 19005],
            ["body", 19005],
            ["body", "test_module_suite.py"],
            ["stop", 19005],
            ["release"],
        ]


class TestSuiteErrors:
    """Tests for suites that cannot start or are misconfigured."""

    def test_start_failure_errors_each_test(self, pytester: pytest.Pytester) -> None:
        """Test that a failed start errors every test and still cleans up once."""
        make_conftest(pytester, start='raise RuntimeError("port busy")')
        pytester.makepyfile(
            test_pages="""
            import pytest

            @pytest.mark.browser_suite
            class TestPages:
                def test_one(self, events):
                    events.append(["body", "one"])

                def test_two(self, events):
                    events.append(["body", "two"])
            """
        )

        result = pytester.runpytest()

        result.assert_outcomes(errors=2)
        result.stdout.fnmatch_lines(["*RuntimeError: port busy*"])
        assert read_events(pytester) == [
            ["create"],
            ["start", 19001],
            ["stop", 19001],
            ["release"],
        ]

    def test_browser_suite_outside_suite(self, pytester: pytest.Pytester) -> None:
        make_conftest(pytester)
        pytester.makepyfile(
            test_plain="""
            def test_plain(browser_suite):
                pass

            def test_unrelated():
                pass
            """
        )

        result = pytester.runpytest()

        result.assert_outcomes(passed=1, errors=1)
        result.stdout.fnmatch_lines(["*is not inside a @pytest.mark.browser_suite suite*"])

    def test_unknown_marker_option(self, pytester: pytest.Pytester) -> None:
        make_conftest(pytester)
        pytester.makepyfile(
            test_pages="""
            import pytest

            @pytest.mark.browser_suite(colour="blue")
            def test_page():
                pass
            """
        )

        result = pytester.runpytest()

        result.assert_outcomes(errors=1)
        result.stdout.fnmatch_lines(["*Unknown browser_suite option(s): colour*"])


class TestSuiteRegistry:
    """Tests for marking suites failed from test reports."""

    def make_session(self, owner: str) -> SuiteSession:
        return SuiteSession(owner=owner, lifecycle=MagicMock(), run=MagicMock())

    def test_failed_report_marks_enclosing_suite(self) -> None:
        registry = SuiteRegistry()
        outer = self.make_session("test_x.py::TestA")
        other = self.make_session("test_x.py::TestAB")
        registry._sessions = {outer.owner: outer, other.owner: other}

        registry.pytest_runtest_logreport(
            SimpleNamespace(failed=True, nodeid="test_x.py::TestA::test_b")
        )

        assert outer.failed
        assert not other.failed

    def test_passed_report_ignored(self) -> None:
        registry = SuiteRegistry()
        session = self.make_session("test_x.py::TestA")
        registry._sessions = {session.owner: session}

        registry.pytest_runtest_logreport(
            SimpleNamespace(failed=False, nodeid="test_x.py::TestA::test_b")
        )

        assert not session.failed

    def test_finish_reports_failure_once(self) -> None:
        """Test that finishing passes the failure on and forgets the suite."""
        registry = SuiteRegistry()
        session = self.make_session("test_x.py::TestA")
        session.failed = True
        registry._sessions = {session.owner: session}

        registry._finish(session.owner)
        registry._finish(session.owner)

        session.run.finish.assert_called_once_with(succeeded=False)


class TestParseConfigEntries:
    def test_entries(self) -> None:
        config_map = parse_config_entries(["env=staging", "query=a=b", "empty="])
        assert dict(config_map) == {"env": "staging", "query": "a=b", "empty": ""}

    @pytest.mark.parametrize("entry", ["staging", "=value"])
    def test_invalid_entry(self, entry: str) -> None:
        with pytest.raises(pytest.UsageError):
            parse_config_entries([entry])


class TestBuildSuiteConfig:
    """Tests for combining marker options with defaults."""

    def test_marker_options(self, pytestconfig: pytest.Config) -> None:
        suite_config = build_suite_config(pytestconfig, {"port": 19003, "browser": "firefox"})

        assert suite_config.port == 19003
        assert suite_config.driver_factory.kind is BrowserKind.FIREFOX

    def test_explicit_factory_wins_over_browser(self, pytestconfig: pytest.Config) -> None:
        factory = MagicMock()
        suite_config = build_suite_config(
            pytestconfig, {"driver_factory": factory, "browser": "firefox"}
        )
        assert suite_config.driver_factory is factory

    def test_unknown_option(self, pytestconfig: pytest.Config) -> None:
        with pytest.raises(SuiteConfigError) as exc_info:
            build_suite_config(pytestconfig, {"colour": "blue"})
        assert exc_info.value.key == "colour"

    def test_explicit_port_zero_is_kept(self, pytestconfig: pytest.Config) -> None:
        suite_config = build_suite_config(pytestconfig, {"port": 0, "driver_factory": MagicMock()})
        assert suite_config.port == 0

    def test_timeout_reaches_factory_and_suite(self, pytestconfig: pytest.Config) -> None:
        suite_config = build_suite_config(pytestconfig, {"browser": "webkit", "timeout_ms": 45000})

        assert suite_config.timeout_ms == 45000
        assert suite_config.driver_factory.timeout_ms == 45000


class TestRegistryLookup:
    def test_missing_registry_raises_config_error(self) -> None:
        """Test that using the fixtures without pytest_configure is a config error."""
        pytest_config = MagicMock()
        pytest_config.pluginmanager.get_plugin.return_value = None

        with pytest.raises(SuiteConfigError):
            pytest_plugin._registry(pytest_config)
