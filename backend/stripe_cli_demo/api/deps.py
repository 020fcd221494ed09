"""Component wiring and FastAPI dependencies

One instance of each component is built at startup and kept on
``app.state``; routes receive them through the getters below.
"""
from dataclasses import dataclass

from fastapi import Request

from stripe_cli_demo.core.config import settings
from stripe_cli_demo.db.redis import RedisOptionStore
from stripe_cli_demo.services.event_dispatcher import EventDispatcher, register_default_listeners
from stripe_cli_demo.services.event_log import EventLog
from stripe_cli_demo.services.settings_service import SettingsService
from stripe_cli_demo.services.signature_service import SignatureVerifier
from stripe_cli_demo.services.webhook_service import WebhookService


@dataclass
class Components:
    store: RedisOptionStore
    event_log: EventLog
    dispatcher: EventDispatcher
    settings_service: SettingsService
    webhook_service: WebhookService


def build_components(redis_client) -> Components:
    """Construct the service graph around a Redis client"""
    store = RedisOptionStore(redis_client, prefix=settings.OPTION_PREFIX)
    event_log = EventLog(store, capacity=settings.EVENT_LOG_CAPACITY)
    dispatcher = register_default_listeners(EventDispatcher())
    settings_service = SettingsService(store)
    webhook_service = WebhookService(
        verifier=SignatureVerifier(tolerance=settings.WEBHOOK_TOLERANCE_SECONDS),
        event_log=event_log,
        dispatcher=dispatcher,
        settings_service=settings_service,
    )
    return Components(
        store=store,
        event_log=event_log,
        dispatcher=dispatcher,
        settings_service=settings_service,
        webhook_service=webhook_service,
    )


def get_components(request: Request) -> Components:
    return request.app.state.components


def get_event_log(request: Request) -> EventLog:
    return get_components(request).event_log


def get_settings_service(request: Request) -> SettingsService:
    return get_components(request).settings_service


def get_webhook_service(request: Request) -> WebhookService:
    return get_components(request).webhook_service
