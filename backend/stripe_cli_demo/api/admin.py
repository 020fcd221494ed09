"""Operator API routes - event log and Stripe settings"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from stripe_cli_demo.api.deps import get_event_log, get_settings_service
from stripe_cli_demo.core.security import require_operator
from stripe_cli_demo.schemas.events import EventListResponse
from stripe_cli_demo.schemas.settings import StripeCredentialsUpdate
from stripe_cli_demo.services.event_log import EventLog
from stripe_cli_demo.services.settings_service import SettingsService

router = APIRouter(prefix="/api/admin", tags=["admin"], dependencies=[Depends(require_operator)])
logger = logging.getLogger(__name__)


@router.get("/events", response_model=EventListResponse)
def list_events(
    limit: Optional[int] = Query(None, ge=1, le=200),
    event_type: Optional[str] = None,
    event_log: EventLog = Depends(get_event_log),
):
    """Recent webhook events, newest first (polled by the operator UI)"""
    events = event_log.list(limit=limit, event_type=event_type)
    return {"events": events, "total": len(events)}


@router.delete("/events")
def clear_events(event_log: EventLog = Depends(get_event_log)):
    """Clear the event log"""
    cleared = event_log.clear()
    logger.info(f"Operator cleared {cleared} webhook event(s)")
    return {"message": "Events cleared", "cleared": cleared}


@router.get("/settings")
def get_settings(settings_service: SettingsService = Depends(get_settings_service)):
    """Which Stripe credentials are configured (values masked)"""
    return settings_service.get_status()


@router.put("/settings")
def update_settings(
    request_data: StripeCredentialsUpdate,
    settings_service: SettingsService = Depends(get_settings_service),
):
    """Save Stripe credentials"""
    try:
        return settings_service.update_credentials(
            publishable_key=request_data.publishable_key,
            secret_key=request_data.secret_key,
            webhook_secret=request_data.webhook_secret,
        )
    except ValueError as e:
        raise HTTPException(400, str(e))


@router.post("/settings/test-connection")
def test_connection(settings_service: SettingsService = Depends(get_settings_service)):
    """Check the secret key against the Stripe API"""
    try:
        return settings_service.test_connection()
    except ValueError as e:
        raise HTTPException(400, str(e))
