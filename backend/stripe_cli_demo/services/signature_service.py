"""Stripe webhook signature verification

Stripe signs each delivery with HMAC-SHA256 over ``"{timestamp}.{raw_body}"``
and sends ``Stripe-Signature: t=<timestamp>,v1=<hex>[,v1=<hex>...]``. More
than one ``v1`` digest appears while a signing secret is being rolled.
"""
import hmac
import hashlib
import json
import logging
import time
from typing import List, Optional, Tuple

import stripe

from stripe_cli_demo.core.exceptions import (
    ConfigurationError,
    MalformedHeaderError,
    MalformedPayloadError,
    SignatureMismatchError,
    StaleTimestampError,
)
from stripe_cli_demo.schemas.events import WebhookEvent

logger = logging.getLogger(__name__)

EXPECTED_SCHEME = "v1"
DEFAULT_TOLERANCE = 300  # seconds


def parse_signature_header(sig_header: Optional[str]) -> Tuple[int, List[str]]:
    """Split a signature header into its timestamp and v1 digests

    Raises:
        MalformedHeaderError: no header, no integer timestamp, or no v1 digest
    """
    if not sig_header:
        raise MalformedHeaderError("Missing signature header")

    timestamp = None
    signatures = []
    for item in sig_header.split(","):
        key, sep, value = item.strip().partition("=")
        if not sep:
            continue
        if key == "t":
            try:
                timestamp = int(value)
            except ValueError:
                raise MalformedHeaderError(f"Non-integer timestamp: {value!r}")
        elif key == EXPECTED_SCHEME and value:
            signatures.append(value)

    if timestamp is None:
        raise MalformedHeaderError("Unable to extract timestamp from header")
    if not signatures:
        raise MalformedHeaderError(f"No signatures found with expected scheme {EXPECTED_SCHEME}")
    return timestamp, signatures


def compute_signature(payload: bytes, secret: str, timestamp: int) -> str:
    """Hex HMAC-SHA256 of ``"{timestamp}.{payload}"``

    Signs test deliveries; incoming requests are checked by the Stripe SDK.
    """
    signed_payload = f"{timestamp}.".encode("utf-8") + payload
    return hmac.new(
        secret.encode("utf-8"),
        signed_payload,
        hashlib.sha256
    ).hexdigest()


def generate_signature_header(payload: bytes, secret: str, timestamp: Optional[int] = None) -> str:
    """Build a header the way Stripe (and `stripe listen`) would"""
    if timestamp is None:
        timestamp = int(time.time())
    return f"t={timestamp},{EXPECTED_SCHEME}={compute_signature(payload, secret, timestamp)}"


def parse_event(payload: bytes) -> WebhookEvent:
    """Decode a verified body into a WebhookEvent

    Raises:
        MalformedPayloadError: not a JSON object, or id/type missing
    """
    try:
        data = json.loads(payload.decode("utf-8"))
    except (UnicodeDecodeError, ValueError) as e:
        raise MalformedPayloadError(f"Body is not valid JSON: {e}")

    if not isinstance(data, dict):
        raise MalformedPayloadError("Body is not a JSON object")

    event_id = data.get("id")
    event_type = data.get("type")
    if not isinstance(event_id, str) or not event_id:
        raise MalformedPayloadError("Event has no id")
    if not isinstance(event_type, str) or not event_type:
        raise MalformedPayloadError("Event has no type")

    event_object = (data.get("data") or {})
    event_object = event_object.get("object") if isinstance(event_object, dict) else None
    return WebhookEvent(
        id=event_id,
        type=event_type,
        payload=event_object if isinstance(event_object, dict) else {},
    )


class SignatureVerifier:
    """Authenticates webhook bodies against the shared signing secret

    The HMAC comparison and the freshness window are checked by the Stripe
    SDK (``stripe.WebhookSignature.verify_header``); this class decides which
    rejection the caller sees.

    Args:
        tolerance: maximum age of the signed timestamp in seconds; 0 disables
            the check
    """

    def __init__(self, tolerance: int = DEFAULT_TOLERANCE):
        self.tolerance = tolerance

    def verify_header(self, payload: bytes, sig_header: Optional[str], secret: str) -> int:
        """Check the header against the payload, return the signed timestamp"""
        if not secret:
            raise ConfigurationError("No webhook secret configured")

        timestamp, signatures = parse_signature_header(sig_header)
        try:
            body = payload.decode("utf-8")
        except UnicodeDecodeError as e:
            # the SDK signs text; Stripe only ever sends UTF-8 JSON
            raise MalformedPayloadError(f"Body is not UTF-8: {e}")

        # Hand the SDK the header as Stripe formats it, without stray whitespace
        normalized = ",".join([f"t={timestamp}"] + [f"{EXPECTED_SCHEME}={s}" for s in signatures])
        try:
            stripe.WebhookSignature.verify_header(body, normalized, secret, tolerance=self.tolerance)
        except stripe.SignatureVerificationError as e:
            reason = str(e)
            if "tolerance zone" in reason:
                raise StaleTimestampError(reason)
            if "matching the expected signature" in reason:
                raise SignatureMismatchError(reason)
            raise MalformedHeaderError(reason)
        return timestamp

    def verify(self, payload: bytes, sig_header: Optional[str], secret: str) -> WebhookEvent:
        """Verify the signature, then decode the event

        The body is only parsed once the signature has been accepted.

        Raises:
            ConfigurationError, MalformedHeaderError, SignatureMismatchError,
            StaleTimestampError, MalformedPayloadError
        """
        self.verify_header(payload, sig_header, secret)
        return parse_event(payload)
