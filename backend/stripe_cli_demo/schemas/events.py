"""Pydantic schemas for logged webhook events"""
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List
from uuid import uuid4

from pydantic import BaseModel, Field


class EventStatus(str, Enum):
    """Lifecycle of a logged event: received -> processed | unhandled"""
    RECEIVED = "received"
    PROCESSED = "processed"
    UNHANDLED = "unhandled"


class WebhookEvent(BaseModel):
    """A verified webhook event as kept in the event log"""
    entry_id: str = Field(default_factory=lambda: uuid4().hex)
    id: str
    type: str
    payload: Dict[str, Any] = Field(default_factory=dict)
    received_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    status: EventStatus = EventStatus.RECEIVED


class EventListResponse(BaseModel):
    """Response for the operator event listing"""
    events: List[WebhookEvent]
    total: int


class WebhookReceipt(BaseModel):
    """Response returned to the webhook sender"""
    status: str = "received"
    type: str
