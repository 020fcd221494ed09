"""Monitoring API routes for health checks and metrics"""
from fastapi import APIRouter, Depends, Response
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from stripe_cli_demo.api.deps import Components, get_components
from stripe_cli_demo.core.exceptions import StorageUnavailableError
from stripe_cli_demo.core.metrics import update_event_log_size_gauge

router = APIRouter(tags=["monitoring"])


@router.get("/metrics")
def metrics_endpoint(components: Components = Depends(get_components)):
    """Prometheus metrics endpoint - updates gauges before export"""
    try:
        update_event_log_size_gauge(components.event_log)
    except StorageUnavailableError:
        # export the last known value
        pass
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


@router.get("/health")
def health_check(components: Components = Depends(get_components)):
    """Health check endpoint"""
    try:
        components.store.ping()
    except StorageUnavailableError:
        return JSONResponse(status_code=503, content={"status": "unhealthy", "redis": "unavailable"})
    return {"status": "healthy"}
