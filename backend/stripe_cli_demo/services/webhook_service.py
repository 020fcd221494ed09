"""Webhook service - verify, log and classify incoming Stripe events"""
import logging
from typing import Any, Dict, Optional

from stripe_cli_demo.core.exceptions import (
    ConfigurationError,
    MalformedPayloadError,
    SignatureVerificationError,
    StorageUnavailableError,
)
from stripe_cli_demo.core.metrics import webhook_events_counter, webhook_requests_counter
from stripe_cli_demo.core.otel import tracer
from stripe_cli_demo.schemas.events import EventStatus, WebhookEvent

logger = logging.getLogger(__name__)


class WebhookService:
    """Runs one webhook request end to end

    The signature is checked before anything touches the event log, so a
    rejected or abandoned request never leaves an entry behind. The entry is
    then written with its final status in one store transaction.
    """

    def __init__(self, verifier, event_log, dispatcher, settings_service):
        self.verifier = verifier
        self.event_log = event_log
        self.dispatcher = dispatcher
        self.settings_service = settings_service

    def process_webhook(self, payload: bytes, sig_header: Optional[str]) -> Dict[str, Any]:
        """Process a Stripe webhook delivery

        Args:
            payload: Raw request body as bytes (must not be parsed by middleware)
            sig_header: Stripe-Signature header value

        Returns:
            Dict echoed back to Stripe

        Raises:
            ConfigurationError: no webhook secret configured
            SignatureVerificationError: bad header, signature or timestamp
            MalformedPayloadError: body is not a usable event
            StorageUnavailableError: the event could not be logged
        """
        logger.info("Webhook received")
        with tracer.start_as_current_span("webhook.process") as span:
            event = self._verify(payload, sig_header, span)
            span.set_attribute("stripe.event_id", event.id)
            span.set_attribute("stripe.event_type", event.type)

            try:
                status = self.event_log.record(event)
            except StorageUnavailableError as e:
                logger.error(f"Dropping webhook event {event.id} ({event.type}): storage unavailable: {e}")
                self._reject(span, "storage_error")
                raise

            event.status = status
            span.set_attribute("webhook.status", status.value)
            if status == EventStatus.UNHANDLED:
                logger.info(f"Unhandled event type - {event.type}")

            self.dispatcher.dispatch(event)

        webhook_requests_counter.labels(outcome="received").inc()
        webhook_events_counter.labels(status=status.value).inc()
        return {"status": "received", "type": event.type}

    def _verify(self, payload: bytes, sig_header: Optional[str], span) -> WebhookEvent:
        try:
            return self.verifier.verify(payload, sig_header, self.settings_service.get_webhook_secret())
        except ConfigurationError as e:
            logger.error(f"Rejecting webhook: {e.reason}")
            self._reject(span, "config_error")
            raise
        except SignatureVerificationError as e:
            logger.warning(f"Invalid webhook signature: {e.reason}")
            self._reject(span, "invalid_signature")
            raise
        except MalformedPayloadError as e:
            logger.warning(f"Invalid webhook payload: {e.reason}")
            self._reject(span, "invalid_payload")
            raise
        except StorageUnavailableError:
            # reading the secret from the option store failed
            self._reject(span, "storage_error")
            raise

    @staticmethod
    def _reject(span, outcome: str) -> None:
        span.set_attribute("webhook.outcome", outcome)
        webhook_requests_counter.labels(outcome=outcome).inc()
