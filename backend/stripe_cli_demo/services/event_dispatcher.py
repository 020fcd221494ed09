"""Listener registration for logged webhook events

Integrations (e.g. a membership plugin mirroring Stripe activity) subscribe
here instead of patching the webhook route.
"""
import logging
from collections import defaultdict
from typing import Callable, DefaultDict, List

from stripe_cli_demo.schemas.events import WebhookEvent

logger = logging.getLogger(__name__)
webhook_logger = logging.getLogger("webhook")

ALL_EVENTS = "*"

Listener = Callable[[WebhookEvent], None]


class EventDispatcher:
    """Calls registered listeners for each logged event"""

    def __init__(self):
        self._listeners: DefaultDict[str, List[Listener]] = defaultdict(list)

    def register(self, event_type: str, callback: Listener) -> Listener:
        """Subscribe ``callback`` to ``event_type`` ("*" for every type)"""
        self._listeners[event_type].append(callback)
        return callback

    def on(self, event_type: str):
        """Decorator form of register()"""
        def decorator(callback: Listener) -> Listener:
            return self.register(event_type, callback)
        return decorator

    def listeners_for(self, event_type: str) -> List[Listener]:
        return list(self._listeners.get(event_type, [])) + list(self._listeners.get(ALL_EVENTS, []))

    def dispatch(self, event: WebhookEvent) -> int:
        """Run listeners for the event, return how many succeeded

        A failing listener is logged and skipped; the webhook has already
        been accepted at this point.
        """
        succeeded = 0
        for callback in self.listeners_for(event.type):
            try:
                callback(event)
                succeeded += 1
            except Exception as e:
                logger.error(
                    f"Listener {getattr(callback, '__name__', callback)!r} failed for "
                    f"{event.type} ({event.id}): {e}",
                    exc_info=True
                )
        return succeeded


def _object_id(event: WebhookEvent) -> str:
    return str(event.payload.get("id") or "unknown")


def register_default_listeners(dispatcher: EventDispatcher) -> EventDispatcher:
    """Log a line for each event type the demo handles"""

    @dispatcher.on("checkout.session.completed")
    def log_checkout_completed(event):
        webhook_logger.info(f"Checkout completed - {_object_id(event)}")

    @dispatcher.on("payment_intent.succeeded")
    def log_payment_succeeded(event):
        webhook_logger.info(f"Payment succeeded - {_object_id(event)}")

    @dispatcher.on("payment_intent.created")
    def log_payment_intent_created(event):
        webhook_logger.info(f"Payment intent created - {_object_id(event)}")

    @dispatcher.on("charge.succeeded")
    def log_charge_succeeded(event):
        webhook_logger.info(f"Charge succeeded - {_object_id(event)}")

    @dispatcher.on("customer.created")
    def log_customer_created(event):
        webhook_logger.info(f"Customer created - {_object_id(event)}")

    return dispatcher
