"""FastAPI app entry: search options, logging, health, and graceful shutdown."""

from collections.abc import Mapping
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from catalog_search.config.logging import configure_logging, get_logger
from catalog_search.config.search.static import get_runtime_options, resolve_runtime_options
from catalog_search.config.settings import get_settings
from catalog_search.controllers.routes.search import router as search_router
from catalog_search.resources.opensearch.client import close_opensearch_client, get_opensearch_client
from catalog_search.resources.opensearch.health import ping_search_engine, wait_for_search_engine

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup: logging and search engine connection check. Shutdown: close the search client."""
    settings = get_settings()
    configure_logging()
    options = app.state.options
    logger.info(
        "Application starting",
        extra={"app_name": settings.app_name, "environment": settings.environment, "node_url": options.node_url},
    )
    connected = await wait_for_search_engine(
        get_opensearch_client(options),
        attempts=options.connection_attempts,
        interval_ms=options.connection_attempt_interval,
    )
    if not connected:
        # Don't fail startup; /ready reports the engine as down
        logger.error("Starting without a search engine connection", extra={"node_url": options.node_url})
    yield
    logger.info("Application shutting down")
    await close_opensearch_client()
    logger.info("Shutdown complete")


def create_app(user_options: Mapping[str, Any] | None = None) -> FastAPI:
    """
    Build the app. Search options are merged here, once, and kept on app.state for the
    process lifetime. Raises ConfigurationError for invalid options.
    """
    app = FastAPI(
        title="Catalog Search",
        description="Build product search queries for a search engine index",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.options = resolve_runtime_options(user_options) if user_options else get_runtime_options()
    app.include_router(search_router)

    @app.get("/health")
    async def health() -> dict[str, Any]:
        """Liveness: service is up. Does not check dependencies."""
        return {"status": "ok"}

    @app.get("/ready")
    async def ready() -> JSONResponse:
        """Readiness: service can serve traffic. Verifies search engine connectivity."""
        engine = await ping_search_engine(get_opensearch_client(app.state.options))
        ok = engine.get("ok", False)
        body = {
            "status": "ok" if ok else "degraded",
            "search_engine": {"ok": ok, "error": engine.get("error")},
        }
        return JSONResponse(content=body, status_code=200 if ok else 503)

    app.add_exception_handler(Exception, global_exception_handler)
    return app


async def global_exception_handler(_request: Request, exc: Exception):
    """Centralized error handling: connection failures and timeouts get clear, non-leaking messages."""
    exc_name = type(exc).__name__
    # Do not leak stack traces or internal details to the client
    if "Connection" in exc_name or "Timeout" in exc_name:
        logger.warning("Connection or timeout error", extra={"error": exc_name})
        return JSONResponse(
            content={"detail": "A dependency is temporarily unavailable. Please retry later."},
            status_code=503,
        )
    logger.exception("Unhandled error", extra={"error": exc_name})
    return JSONResponse(
        content={"detail": "An internal error occurred."},
        status_code=500,
    )


app = create_app()
