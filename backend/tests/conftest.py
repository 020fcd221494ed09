"""Shared pytest fixtures for test suite"""
import json
import pytest
import sys
import time
from pathlib import Path
from typing import Generator
from unittest.mock import Mock, patch
from fastapi.testclient import TestClient
import fakeredis

# Add backend directory to Python path
backend_dir = Path(__file__).parent.parent
if str(backend_dir) not in sys.path:
    sys.path.insert(0, str(backend_dir))

from stripe_cli_demo.main import app
from stripe_cli_demo.core.config import settings
from stripe_cli_demo.db.redis import RedisOptionStore
from stripe_cli_demo.services.event_log import EventLog
from stripe_cli_demo.services.signature_service import generate_signature_header


TEST_WEBHOOK_SECRET = "whsec_test_0123456789abcdef"
TEST_OPERATOR_TOKEN = "operator-test-token"


@pytest.fixture(scope="function", autouse=True)
def test_settings(monkeypatch):
    """Known settings for every test; nothing leaks in from the environment"""
    monkeypatch.setattr(settings, "STRIPE_WEBHOOK_SECRET", "")
    monkeypatch.setattr(settings, "STRIPE_SECRET_KEY", "")
    monkeypatch.setattr(settings, "STRIPE_PUBLISHABLE_KEY", "")
    monkeypatch.setattr(settings, "ADMIN_API_TOKEN", TEST_OPERATOR_TOKEN)
    monkeypatch.setattr(settings, "WEBHOOK_TOLERANCE_SECONDS", 300)
    monkeypatch.setattr(settings, "EVENT_LOG_CAPACITY", 50)
    monkeypatch.setattr(settings, "OTEL_EXPORTER_OTLP_ENDPOINT", "")
    return settings


@pytest.fixture(scope="function")
def fake_redis():
    """In-memory Redis using fakeredis"""
    client = fakeredis.FakeRedis(decode_responses=True)
    yield client
    client.flushall()


@pytest.fixture(scope="function")
def store(fake_redis) -> RedisOptionStore:
    return RedisOptionStore(fake_redis, prefix="test")


@pytest.fixture(scope="function")
def event_log(store) -> EventLog:
    return EventLog(store, capacity=50)


@pytest.fixture(scope="function")
def webhook_secret(test_settings) -> str:
    """Configure the webhook signing secret through the environment fallback"""
    test_settings.STRIPE_WEBHOOK_SECRET = TEST_WEBHOOK_SECRET
    return TEST_WEBHOOK_SECRET


@pytest.fixture(scope="function")
def client(fake_redis) -> Generator[TestClient, None, None]:
    """FastAPI test client wired to fakeredis"""
    with patch("stripe_cli_demo.main.get_redis_client", return_value=fake_redis):
        with TestClient(app) as test_client:
            yield test_client


@pytest.fixture(scope="function")
def components(client):
    """Service graph the running app was built with"""
    return client.app.state.components


@pytest.fixture(scope="function")
def operator_headers() -> dict:
    return {"Authorization": f"Bearer {TEST_OPERATOR_TOKEN}"}


@pytest.fixture(scope="function")
def mock_stripe():
    """Mock the Stripe SDK used by the settings service"""
    with patch("stripe_cli_demo.services.settings_service.stripe") as mock_stripe_module:
        mock_stripe_module.Account.retrieve = Mock(return_value={
            "id": "acct_test123",
            "settings": {"dashboard": {"display_name": "Demo Shop"}},
        })
        mock_stripe_module.StripeError = StripeTestError
        yield mock_stripe_module


class StripeTestError(Exception):
    """Stands in for stripe.StripeError while the SDK module is mocked"""

    def __init__(self, message="", user_message=None):
        super().__init__(message)
        self.user_message = user_message


def make_event(event_id="evt_test123", event_type="payment_intent.succeeded", obj=None) -> dict:
    """Minimal Stripe event body"""
    return {
        "id": event_id,
        "object": "event",
        "type": event_type,
        "data": {"object": obj if obj is not None else {"id": "pi_test123", "amount": 1000}},
    }


def signed_request(event: dict, secret: str = TEST_WEBHOOK_SECRET, timestamp=None):
    """Body bytes and headers signed the way `stripe listen` signs them"""
    body = json.dumps(event).encode("utf-8")
    if timestamp is None:
        timestamp = int(time.time())
    headers = {
        "Stripe-Signature": generate_signature_header(body, secret, timestamp),
        "Content-Type": "application/json",
    }
    return body, headers
