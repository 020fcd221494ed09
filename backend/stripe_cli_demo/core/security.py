"""Operator authentication and API access logging"""
import hmac
import json
import logging
from datetime import datetime, timezone
from typing import Optional
from fastapi import Header, HTTPException, Request
from stripe_cli_demo.core.config import settings

security_logger = logging.getLogger("security")
api_access_logger = logging.getLogger("api_access")


def get_client_ip(request: Request) -> str:
    client_ip = request.headers.get("X-Forwarded-For", "").split(",")[0].strip()
    if not client_ip:
        client_ip = request.client.host if request.client else "unknown"
    return client_ip


def require_operator(
    request: Request,
    authorization: Optional[str] = Header(None)
) -> str:
    """Dependency: Require the operator bearer token

    Access is refused outright while ADMIN_API_TOKEN is unset.
    """
    expected = settings.ADMIN_API_TOKEN
    if not expected:
        security_logger.warning(f"Operator API called but ADMIN_API_TOKEN is not set - Path: {request.url.path}")
        raise HTTPException(403, "Operator access is not configured")

    scheme, _, token = (authorization or "").partition(" ")
    if scheme.lower() != "bearer" or not hmac.compare_digest(token.strip().encode("utf-8"), expected.encode("utf-8")):
        security_logger.warning(
            f"Operator authentication failed - IP: {get_client_ip(request)}, "
            f"Path: {request.url.path}"
        )
        raise HTTPException(403, "Operator access required")
    return "operator"


def log_api_access(
    request: Request,
    status_code: int = 200,
    duration_ms: Optional[float] = None,
    error: Optional[str] = None
):
    """Log detailed API access information"""
    log_data = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "method": request.method,
        "path": request.url.path,
        "query": str(request.url.query) if request.url.query else None,
        "client_ip": get_client_ip(request),
        "user_agent": request.headers.get("User-Agent", "unknown"),
        "status_code": status_code,
        "duration_ms": round(duration_ms, 2) if duration_ms is not None else None,
        "error": error
    }

    if error or status_code >= 400:
        api_access_logger.warning(f"API Access: {json.dumps(log_data)}")
    else:
        api_access_logger.info(f"API Access: {json.dumps(log_data)}")
