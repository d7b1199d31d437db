"""Main application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from dpro_gateway import __version__
from dpro_gateway.api.dependencies import app_state
from dpro_gateway.api.routes import router as api_router
from dpro_gateway.core.config import Settings, setup_logging
from dpro_gateway.core.listener import LoggingListener
from dpro_gateway.core.models import HealthResponse
from dpro_gateway.net.session import DeviceSession
from dpro_gateway.net.supervisor import SessionSupervisor
from dpro_gateway.protocol.catalog import ParameterCatalog

logger = logging.getLogger(__name__)


def load_catalog(settings: Settings) -> ParameterCatalog:
    """Load the configured parameter table, or the bundled one."""
    if settings.catalog_path is None:
        return ParameterCatalog.default()
    logger.info(f"Loading parameter table from {settings.catalog_path}")
    return ParameterCatalog.from_file(settings.catalog_path)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: startup and shutdown."""
    settings = app_state.settings or Settings()
    app_state.settings = settings

    setup_logging(settings.log_level)
    logger.info(f"Starting DPRO Gateway v{__version__}")

    app_state.session = DeviceSession(
        host=settings.host,
        port=settings.port,
        catalog=load_catalog(settings),
        listener=LoggingListener(),
        connect_timeout=settings.connect_timeout,
        message_delay=settings.message_delay,
        keepalive_interval=settings.keepalive_interval,
        max_deferrals=settings.max_deferrals,
    )

    # Supervisor makes the first attempt and retries after drops
    app_state.supervisor = SessionSupervisor(app_state.session, reconnect_delay=settings.reconnect_delay)
    await app_state.supervisor.start()

    yield

    # Shutdown
    logger.info("Shutting down...")
    if app_state.supervisor is not None:
        await app_state.supervisor.stop()
    if app_state.session is not None:
        await app_state.session.close()


app = FastAPI(
    title="DPRO Gateway",
    description="Local REST API gateway for networked audio I/O devices",
    version=__version__,
    lifespan=lifespan,
)

app.include_router(api_router)


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": "DPRO Gateway",
        "version": __version__,
        "status": "running",
    }


@app.get("/health", response_model=HealthResponse)
async def health():
    """Health check endpoint."""
    session = app_state.session

    if session is None:
        return HealthResponse(
            status="unhealthy",
            session="Disconnected",
            device_connected=False,
            cached_values=0,
            queue_length=0,
        )

    connected = session.connected
    cache = session.cache
    status = "healthy" if connected and cache.count > 0 else ("degraded" if connected else "unhealthy")

    return HealthResponse(
        status=status,
        session=session.state.label,
        device_connected=connected,
        cached_values=cache.count,
        queue_length=len(session.queue),
        run_mode=session.run_mode,
        last_update=cache.last_update,
    )


def main():
    """Run the application (for CLI entry point)."""
    import uvicorn

    settings = Settings()
    setup_logging(settings.log_level)
    app_state.settings = settings

    uvicorn.run(app, host=settings.api_host, port=settings.api_port)


if __name__ == "__main__":
    main()
