"""
FastAPI application entry point for the lounge proxy.

This is the composition root: it configures logging, builds the single
response cache and lounge service for the process, installs CORS and error
handling, and registers routes. Business logic lives in the service, client
and validator modules.
"""
import asyncio
import contextlib
import logging
from collections.abc import Awaitable, Callable
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .cache import ResponseCache
from .config_loader import config
from .lounge_client import LoungeClient
from .lounge_service import LoungeService
from .models import ErrorResponse
from .routes import router

# Configure logging for the application
logging.basicConfig(
    level=getattr(logging, config.log_level, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


async def sweep_expired(cache: ResponseCache, interval: float) -> None:
    """Periodically drop expired cache entries until cancelled."""
    while True:
        await asyncio.sleep(interval)
        removed = await cache.expire()
        if removed:
            logger.debug("Cache sweep removed %s expired entries", removed)


@asynccontextmanager
async def app_lifespan(app: FastAPI):
    """
    FastAPI lifespan handler.

    Logs startup/shutdown and runs the optional background cache sweep for
    the lifetime of the app.
    """
    service: LoungeService = app.state.lounge_service
    logger.info("Starting lounge proxy (%s)", config.environment)
    logger.info(f"Lounge API URL: {service.client.base_url}")
    logger.info(
        "Response cache: %s entries max, %ss default TTL",
        service.cache.max_entries,
        service.cache.default_ttl,
    )

    sweeper: asyncio.Task | None = None
    if config.cache_sweep_interval > 0:
        sweeper = asyncio.create_task(sweep_expired(service.cache, config.cache_sweep_interval))
    try:
        yield
    finally:
        if sweeper is not None:
            sweeper.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await sweeper
        logger.info("Shutting down lounge proxy")


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Render every HTTP error as ``{"error": message}`` for the dashboard."""
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(error=str(exc.detail)).model_dump(),
        headers=getattr(exc, "headers", None),
    )


async def log_requests(
    request: Request,
    call_next: Callable[[Request], Awaitable[Response]],
) -> Response:
    """Middleware that logs each request line at debug level."""
    logger.debug("%s %s %s", request.method, request.url.path, request.url.query)
    return await call_next(request)


def create_app(
    service: LoungeService | None = None,
    cache: ResponseCache | None = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    The cache and service are created once here and shared by every request
    through ``app.state``; tests pass their own to stub the upstream.
    """
    if service is None:
        cache = cache or ResponseCache(
            max_entries=config.cache_max_entries,
            default_ttl=config.cache_ttl,
        )
        service = LoungeService(cache=cache, client=LoungeClient())

    app = FastAPI(
        title="Lounge Proxy",
        version="1.0.0",
        description="Caching proxy for the Mario Kart lounge ranking API",
        lifespan=app_lifespan,
    )
    app.state.lounge_service = service

    origins = config.frontend_origins
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        # Browsers reject credentialed responses with a wildcard origin.
        allow_credentials=origins != ["*"],
        allow_methods=["GET", "OPTIONS"],
        allow_headers=["*"],
    )
    app.middleware("http")(log_requests)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)

    app.include_router(router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        app,
        host=config.server_host,
        port=config.server_port,
        log_level=config.log_level.lower(),
    )
