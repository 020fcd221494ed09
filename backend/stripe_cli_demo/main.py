"""FastAPI application entry point

Run with: uvicorn stripe_cli_demo.main:app --app-dir backend
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from stripe_cli_demo import __version__
from stripe_cli_demo.api import admin, monitoring, webhooks
from stripe_cli_demo.api.deps import build_components
from stripe_cli_demo.core.exceptions import StorageUnavailableError
from stripe_cli_demo.core.logging import setup_logging
from stripe_cli_demo.core.middleware import (
    access_log_middleware, register_exception_handlers, setup_cors_middleware
)
from stripe_cli_demo.core.otel import initialize_otel, instrument_app
from stripe_cli_demo.db.redis import get_redis_client

setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan event handler for startup and shutdown"""
    # Startup
    initialize_otel()

    components = build_components(get_redis_client())

    logger.info("Testing Redis connection...")
    try:
        components.store.ping()
        logger.info("Redis connection successful")
    except StorageUnavailableError as e:
        logger.error(f"Redis connection failed: {e}")
        raise

    if not components.settings_service.get_webhook_secret():
        logger.warning("No webhook secret configured - webhooks will be rejected until one is saved")

    app.state.components = components

    yield

    # Shutdown
    logger.info("Shutting down...")


# Create FastAPI app
app = FastAPI(
    title="Stripe CLI Demo",
    description="Receives Stripe webhooks forwarded by `stripe listen` and keeps a log of recent events",
    version=__version__,
    lifespan=lifespan
)

instrument_app(app)

setup_cors_middleware(app)
app.middleware("http")(access_log_middleware)
register_exception_handlers(app)

# Include routers
app.include_router(webhooks.router)
app.include_router(admin.router)
app.include_router(monitoring.router)
