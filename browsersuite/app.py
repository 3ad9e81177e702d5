"""Default application served to browser suites that do not supply their own."""

import html
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.responses import HTMLResponse, JSONResponse

from browsersuite.version import __version__

logger = logging.getLogger("browsersuite.app")

DEFAULT_TITLE = "browsersuite"

INDEX_TEMPLATE = """<!DOCTYPE html>
<html>
  <head><title>{title}</title></head>
  <body>
    <h1 id="title">{title}</h1>
    <p id="status">Test server is running.</p>
  </body>
</html>
"""


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Lifespan context manager for startup and shutdown logging."""
    logger.debug("Application %r starting", app.title)
    yield
    logger.debug("Application %r shutting down", app.title)


def create_app(title: str = DEFAULT_TITLE) -> FastAPI:
    """Create a minimal application with an index page and a health check.

    Each call returns a new, independent application.

    Args:
        title: Page title and heading of the index page.
    """
    app = FastAPI(title=title, version=__version__, lifespan=lifespan)

    @app.get("/health")
    async def health_check() -> JSONResponse:
        """Health check endpoint."""
        return JSONResponse(content={"status": "ok"})

    @app.get("/", response_class=HTMLResponse)
    async def index() -> HTMLResponse:
        """Render the index page."""
        return HTMLResponse(content=INDEX_TEMPLATE.format(title=html.escape(title)))

    return app
