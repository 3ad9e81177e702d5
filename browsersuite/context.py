"""Run context shared between a suite and its nested suites.

A suite run receives a RunContext whose ConfigMap is an immutable snapshot.
Suites that own a test server and browser add three entries to that map
before running their nested suites:

- APP_KEY: the application descriptor served by the test server
- PORT_KEY: the port the test server listens on
- WEB_DRIVER_KEY: the browser driver handle (or NoDriver)

Nested suites read them back through SuiteResources.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any

from browsersuite.exceptions import SuiteConfigError

if TYPE_CHECKING:
    from browsersuite.drivers import DriverHandle

APP_KEY = "browsersuite.app"
PORT_KEY = "browsersuite.port"
WEB_DRIVER_KEY = "browsersuite.web_driver"

PUBLISHED_KEYS = (APP_KEY, PORT_KEY, WEB_DRIVER_KEY)

_MISSING = object()


class ConfigMap(Mapping[str, Any]):
    """Immutable string-keyed map passed into a suite run."""

    __slots__ = ("_entries",)

    def __init__(self, entries: Mapping[str, Any] | None = None, **kwargs: Any) -> None:
        self._entries: dict[str, Any] = dict(entries or {}, **kwargs)

    def __getitem__(self, key: str) -> Any:
        return self._entries[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"ConfigMap({self._entries!r})"

    def updated(self, entries: Mapping[str, Any]) -> ConfigMap:
        """Return a new map with ``entries`` added.

        Entries passed here replace existing entries with the same key.
        """
        return ConfigMap({**self._entries, **dict(entries)})

    def require(self, key: str, kind: type | None = None) -> Any:
        """Look up a required entry, optionally checking its type.

        Raises:
            SuiteConfigError: If the key is missing or the value has the wrong type.
        """
        value = self._entries.get(key, _MISSING)
        if value is _MISSING:
            raise SuiteConfigError(f"Config map has no entry for {key!r}", key=key)
        return _check_kind(key, value, kind)

    def optional(self, key: str, kind: type | None = None) -> Any | None:
        """Look up an optional entry, returning None when it is missing."""
        value = self._entries.get(key, _MISSING)
        if value is _MISSING:
            return None
        return _check_kind(key, value, kind)


def _check_kind(key: str, value: Any, kind: type | None) -> Any:
    if kind is not None and not isinstance(value, kind):
        raise SuiteConfigError(
            f"Config map entry {key!r} is {type(value).__name__}, expected {kind.__name__}",
            key=key,
        )
    return value


@dataclass(frozen=True)
class RunContext:
    """Arguments for one suite run.

    Attributes:
        config_map: Inbound configuration, shared read-only with nested suites.
    """

    config_map: ConfigMap = field(default_factory=ConfigMap)

    def with_config_map(self, config_map: ConfigMap) -> RunContext:
        """Return a copy of this context carrying ``config_map``."""
        return replace(self, config_map=config_map)


@dataclass(frozen=True)
class SuiteResources:
    """The app, port and driver an enclosing suite published for nested suites."""

    app: Any
    port: int
    driver: DriverHandle

    @classmethod
    def from_config_map(cls, config_map: Mapping[str, Any]) -> SuiteResources:
        """Read the published entries back out of a config map.

        Raises:
            SuiteConfigError: If any of the three published keys is missing.
        """
        if not isinstance(config_map, ConfigMap):
            config_map = ConfigMap(config_map)
        return cls(
            app=config_map.require(APP_KEY),
            port=config_map.require(PORT_KEY, int),
            driver=config_map.require(WEB_DRIVER_KEY),
        )

    def base_url(self, host: str = "127.0.0.1") -> str:
        """Return the URL of the test server serving ``app``."""
        return f"http://{host}:{self.port}"
