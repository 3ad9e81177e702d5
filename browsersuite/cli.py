"""browsersuite CLI - check browsers and run test servers outside a test run."""

from __future__ import annotations

import importlib
import json
import threading
from typing import Any

import click

from browsersuite import config
from browsersuite.app import create_app
from browsersuite.drivers import BrowserKind, NoDriver
from browsersuite.exceptions import BrowserSuiteError
from browsersuite.factories import CHROMIUM_CHANNELS, BrowserFactory, factory_for
from browsersuite.server import TestServer
from browsersuite.version import __version__

ALL_BROWSERS = [kind.value for kind in BrowserKind]


@click.group()
@click.version_option(version=__version__, prog_name="browsersuite")
def cli() -> None:
    """browsersuite - test servers and browsers for integration test suites."""
    config.setup_logging()


def _probe(factory: BrowserFactory) -> dict[str, Any]:
    """Create and immediately release a driver, reporting whether it worked."""
    driver = factory.create_driver()
    try:
        if isinstance(driver, NoDriver):
            return {"browser": factory.name, "available": False, "message": driver.message}
        return {"browser": factory.name, "available": True, "message": ""}
    finally:
        driver.release()


def load_app(target: str) -> Any:
    """Import an application from a ``module:attribute`` string.

    Raises:
        click.BadParameter: If the string is malformed or the import fails.
    """
    module_name, sep, attribute = target.partition(":")
    if not sep or not module_name or not attribute:
        raise click.BadParameter(
            f"expected module:attribute, got {target!r}", param_hint="--app"
        )
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise click.BadParameter(f"cannot import {module_name!r}: {e}", param_hint="--app") from e
    try:
        return getattr(module, attribute)
    except AttributeError as e:
        raise click.BadParameter(
            f"module {module_name!r} has no attribute {attribute!r}", param_hint="--app"
        ) from e


@cli.command()
@click.option(
    "--browser",
    "-b",
    "browsers",
    multiple=True,
    type=click.Choice(sorted(ALL_BROWSERS + list(CHROMIUM_CHANNELS))),
    help="Browser to check (repeatable). Defaults to chromium, firefox and webkit.",
)
@click.option("--headed", is_flag=True, help="Launch with a visible window.")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
@click.option("--strict", is_flag=True, help="Exit with status 1 if any browser is unavailable.")
def browsers(browsers: tuple[str, ...], headed: bool, as_json: bool, strict: bool) -> None:
    """Check which browsers can be launched on this host."""
    names = list(browsers) or ALL_BROWSERS
    headless = False if headed else None
    results = [_probe(factory_for(name, headless=headless)) for name in names]

    if as_json:
        click.echo(json.dumps(results, indent=2))
    else:
        for result in results:
            if result["available"]:
                click.echo(f"{result['browser']}: available")
            else:
                click.echo(f"{result['browser']}: unavailable - {result['message']}")

    if strict and not all(result["available"] for result in results):
        raise SystemExit(1)


@cli.command()
@click.option(
    "--app", "app_target", default=None, help="Application to serve, as module:attribute."
)
@click.option("--host", default=config.HOST, show_default=True, help="Interface to bind.")
@click.option("--port", type=int, default=None, help="Port (default: TESTSERVER_PORT or 19001).")
def serve(app_target: str | None, host: str, port: int | None) -> None:
    """Run a test server until interrupted."""
    app = load_app(app_target) if app_target else create_app()
    server = TestServer(port or config.default_server_port(), app, host=host)
    try:
        server.start()
    except BrowserSuiteError as e:
        raise click.ClickException(e.message) from e

    click.echo(f"Serving on {server.url} (Ctrl+C to stop)")
    try:
        wait_for_interrupt()
    except KeyboardInterrupt:
        pass
    finally:
        server.stop()
        click.echo("Stopped")


def wait_for_interrupt() -> None:
    """Block until the process is interrupted."""
    threading.Event().wait()


if __name__ == "__main__":
    cli()
