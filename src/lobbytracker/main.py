"""FastAPI application factory and entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from lobbytracker import __version__
from lobbytracker.config import Settings, get_settings
from lobbytracker.db.engine import dispose_engine, get_session_factory, init_db
from lobbytracker.errors import LobbyTrackerError, UpstreamUnavailable
from lobbytracker.routers import health, lobby
from lobbytracker.scheduler import LobbyScheduler
from lobbytracker.services.geoip import GeoIPLocator
from lobbytracker.services.lobby_client import LobbyClient

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings) -> None:
    """Configure root logging once, to stderr or to ``log_file``."""
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        filename=settings.log_file,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application startup and shutdown."""
    # Startup
    settings = get_settings()
    configure_logging(settings)
    logger.info("Starting lobbytracker v%s in %s mode", __version__, settings.environment)

    settings.validate_production()

    await init_db()
    logger.info("Database tables and indexes created/verified")

    lobby_client = LobbyClient.from_settings(settings)
    geo_locator = GeoIPLocator.open(settings.geoip_db_path)
    app.state.lobby_client = lobby_client
    app.state.geo_locator = geo_locator

    scheduler = None
    if settings.scheduler_enabled:
        scheduler = LobbyScheduler(get_session_factory(), lobby_client, geo_locator, settings)
        scheduler.start()

    yield

    # Shutdown
    if scheduler is not None:
        await scheduler.stop()
    await lobby_client.aclose()
    geo_locator.close()
    await dispose_engine()
    logger.info("lobbytracker shut down")


async def handle_tracker_error(request: Request, exc: LobbyTrackerError) -> JSONResponse:
    """Surface core failures as 5xx without classifying them further."""
    status_code = (
        status.HTTP_502_BAD_GATEWAY
        if isinstance(exc, UpstreamUnavailable)
        else status.HTTP_500_INTERNAL_SERVER_ERROR
    )
    logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    # Interactive docs only outside production
    docs_url = "/docs" if settings.environment == "development" else None
    redoc_url = "/redoc" if settings.environment == "development" else None
    openapi_url = "/openapi.json" if settings.environment == "development" else None

    app = FastAPI(
        title="lobbytracker API",
        description="Don't Starve Together lobby snapshots with GeoIP enrichment",
        version=__version__,
        lifespan=lifespan,
        docs_url=docs_url,
        redoc_url=redoc_url,
        openapi_url=openapi_url,
    )

    origins = [o.strip() for o in settings.cors_origins.split(",")]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=False,
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    # Security headers middleware
    @app.middleware("http")
    async def add_security_headers(request: Request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        return response

    app.add_exception_handler(LobbyTrackerError, handle_tracker_error)

    # Include routers
    app.include_router(health.router)
    app.include_router(lobby.router)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "lobbytracker.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=(settings.environment == "development"),
    )
