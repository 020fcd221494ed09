"""Stripe webhook endpoint"""
from typing import Optional

from fastapi import APIRouter, Depends, Header, Request

from stripe_cli_demo.api.deps import get_webhook_service
from stripe_cli_demo.core.config import WEBHOOK_PATH
from stripe_cli_demo.schemas.events import WebhookReceipt
from stripe_cli_demo.services.webhook_service import WebhookService

router = APIRouter(tags=["webhooks"])


@router.post(WEBHOOK_PATH, response_model=WebhookReceipt)
async def stripe_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(None, alias="Stripe-Signature"),
    webhook_service: WebhookService = Depends(get_webhook_service),
):
    """Handle Stripe webhook events

    Must stay public: Stripe (or `stripe listen`) calls it without operator
    credentials. Verification failures are turned into 400 responses by the
    exception handlers in core.middleware.
    """
    # Raw bytes - the signature covers the exact body
    payload = await request.body()
    return webhook_service.process_webhook(payload, stripe_signature)
