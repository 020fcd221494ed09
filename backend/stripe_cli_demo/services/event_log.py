"""Bounded, newest-first log of received webhook events"""
import logging
from typing import Any, Dict, List, Optional

from stripe_cli_demo.core.config import settings
from stripe_cli_demo.schemas.events import EventStatus, WebhookEvent

logger = logging.getLogger(__name__)

EVENTS_OPTION = "webhook_events"

# Event types this demo acts on; anything else is logged as unhandled
HANDLED_EVENT_TYPES = frozenset({
    "checkout.session.completed",
    "payment_intent.succeeded",
    "payment_intent.created",
    "charge.succeeded",
    "customer.created",
})


def classify_event_type(event_type: str) -> EventStatus:
    """Map an event type to its terminal status"""
    if event_type in HANDLED_EVENT_TYPES:
        return EventStatus.PROCESSED
    return EventStatus.UNHANDLED


def _insert_at_head(record: Dict[str, Any], capacity: int):
    """Mutator: new list with ``record`` first, trimmed to capacity"""
    def mutate(entries):
        entries = [dict(record)] + (entries if isinstance(entries, list) else [])
        evicted = max(len(entries) - capacity, 0)
        return entries[:capacity], evicted
    return mutate


def _set_status(entry_id: str, status: EventStatus):
    """Mutator: set the status of one entry, report whether it was found"""
    def mutate(entries):
        entries = entries if isinstance(entries, list) else []
        for entry in entries:
            if entry.get("entry_id") == entry_id:
                entry["status"] = status.value
                return entries, True
        return entries, False
    return mutate


class EventLog:
    """Event log persisted as a single option in the option store

    Every mutation is one atomic read-modify-write on the store, so concurrent
    webhook requests can neither drop each other's entries nor update the
    wrong one. ``append`` hands back the entry's handle and ``classify``
    targets exactly that entry; ``record`` does both in one transaction.
    """

    def __init__(self, store, capacity: Optional[int] = None):
        self.store = store
        self.capacity = capacity or settings.EVENT_LOG_CAPACITY

    def _load(self) -> List[Dict[str, Any]]:
        entries = self.store.get(EVENTS_OPTION, [])
        return entries if isinstance(entries, list) else []

    def _log_evictions(self, evicted: int) -> None:
        if evicted:
            logger.debug(f"Evicted {evicted} oldest event(s) from the log")

    def append(self, event: WebhookEvent) -> str:
        """Insert at the head, evict the oldest beyond capacity, return the handle"""
        insert = _insert_at_head(event.model_dump(mode="json"), self.capacity)
        self._log_evictions(self.store.update(EVENTS_OPTION, insert, default=[]))
        logger.info(f"Logged event {event.type} ({event.id})")
        return event.entry_id

    def classify(self, entry_id: str, event_type: str) -> EventStatus:
        """Set the status of the entry identified by ``entry_id``

        Returns the status. If the entry is no longer in the log (cleared or
        evicted meanwhile) nothing is written.
        """
        status = classify_event_type(event_type)
        if not self.store.update(EVENTS_OPTION, _set_status(entry_id, status), default=[]):
            logger.warning(f"Cannot classify entry {entry_id}: no longer in the log")
        return status

    def record(self, event: WebhookEvent) -> EventStatus:
        """Append and classify in a single transaction

        Either the entry lands with its final status or the log is left
        unchanged, so a storage failure never leaves a ``received`` entry
        behind.
        """
        status = classify_event_type(event.type)
        insert = _insert_at_head(event.model_dump(mode="json"), self.capacity)
        set_status = _set_status(event.entry_id, status)

        def _record(entries):
            entries, evicted = insert(entries)
            entries, _ = set_status(entries)
            return entries, evicted

        self._log_evictions(self.store.update(EVENTS_OPTION, _record, default=[]))
        logger.info(f"Logged event {event.type} ({event.id}) as {status.value}")
        return status

    def list(self, limit: Optional[int] = None, event_type: Optional[str] = None) -> List[WebhookEvent]:
        """Retained events, newest first"""
        events = []
        for entry in self._load():
            if event_type and entry.get("type") != event_type:
                continue
            try:
                events.append(WebhookEvent.model_validate(entry))
            except ValueError as e:
                logger.error(f"Skipping unreadable log entry: {e}")
                continue
            if limit is not None and len(events) >= limit:
                break
        return events

    def count(self) -> int:
        return len(self._load())

    def clear(self) -> int:
        """Drop every entry, return how many were removed"""
        cleared = self.store.update(EVENTS_OPTION, lambda entries: ([], len(entries or [])), default=[])
        logger.info(f"Cleared {cleared} event(s) from the log")
        return cleared
