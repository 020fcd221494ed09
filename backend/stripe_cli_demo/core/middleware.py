"""Middleware and exception handlers for the FastAPI application"""
import logging
import time
from fastapi import Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from stripe_cli_demo.core.config import settings
from stripe_cli_demo.core.exceptions import StorageUnavailableError, WebhookError
from stripe_cli_demo.core.security import log_api_access

logger = logging.getLogger(__name__)


def get_allowed_origins():
    """Origins allowed to call the operator API from a browser"""
    origins = [settings.FRONTEND_URL]
    if settings.ENVIRONMENT == "development":
        origins += [f"http://{host}:{port}" for host in ("localhost", "127.0.0.1") for port in (3000, 8000)]
    return list(dict.fromkeys(origins))


def setup_cors_middleware(app):
    """CORS for the operator UI

    Operator calls carry a bearer token rather than cookies. The webhook
    endpoint is called server to server and does not need CORS.
    """
    app.add_middleware(
        CORSMiddleware,
        allow_origins=get_allowed_origins(),
        allow_credentials=False,
        allow_methods=["GET", "PUT", "POST", "DELETE"],
        allow_headers=["Authorization", "Content-Type"],
    )


async def access_log_middleware(request: Request, call_next):
    """Log every request with its status and duration"""
    started = time.perf_counter()
    status_code = 500
    error = None
    try:
        response = await call_next(request)
        status_code = response.status_code
        return response
    except Exception as e:
        error = str(e)
        raise
    finally:
        log_api_access(request, status_code, (time.perf_counter() - started) * 1000, error)


async def webhook_error_handler(request: Request, exc: WebhookError):
    """Rejected webhook -> 400 with the public message"""
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.public_message}
    )


async def storage_error_handler(request: Request, exc: StorageUnavailableError):
    """Option store down -> 500; Stripe redelivers on non-2xx"""
    logger.error(f"Storage unavailable during {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.public_message}
    )


async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler"""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"error": "Internal server error"}
    )


def register_exception_handlers(app):
    app.add_exception_handler(WebhookError, webhook_error_handler)
    app.add_exception_handler(StorageUnavailableError, storage_error_handler)
    app.add_exception_handler(Exception, global_exception_handler)
