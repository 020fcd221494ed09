#!/usr/bin/env python3
"""
Send a signed test event to a running webhook endpoint.
Signs the body the same way `stripe listen` does, so the endpoint can be
exercised without the Stripe CLI.
"""

import argparse
import json
import os
import sys
import time
import uuid

import httpx

from stripe_cli_demo.services.event_log import HANDLED_EVENT_TYPES
from stripe_cli_demo.services.signature_service import generate_signature_header

DEFAULT_URL = "http://localhost:8000/webhook"

# Minimal data.object per handled type
SAMPLE_OBJECTS = {
    "checkout.session.completed": {"object": "checkout.session", "mode": "payment", "amount_total": 2000},
    "payment_intent.succeeded": {"object": "payment_intent", "amount": 2000, "currency": "usd"},
    "payment_intent.created": {"object": "payment_intent", "amount": 2000, "currency": "usd"},
    "charge.succeeded": {"object": "charge", "amount": 2000, "currency": "usd"},
    "customer.created": {"object": "customer", "email": "jenny.rosen@example.com"},
}

ID_PREFIXES = {
    "checkout.session": "cs_test_",
    "payment_intent": "pi_test_",
    "charge": "ch_test_",
    "customer": "cus_test_",
}


def build_event(event_type: str) -> dict:
    obj = dict(SAMPLE_OBJECTS.get(event_type, {"object": "unknown"}))
    obj["id"] = ID_PREFIXES.get(obj["object"], "obj_test_") + uuid.uuid4().hex[:14]
    return {
        "id": f"evt_test_{uuid.uuid4().hex[:24]}",
        "object": "event",
        "type": event_type,
        "created": int(time.time()),
        "livemode": False,
        "data": {"object": obj},
    }


def send_event(url: str, secret: str, event: dict, timestamp=None) -> httpx.Response:
    body = json.dumps(event).encode("utf-8")
    headers = {
        "Content-Type": "application/json",
        "Stripe-Signature": generate_signature_header(body, secret, timestamp),
    }
    return httpx.post(url, content=body, headers=headers, timeout=10.0)


def main():
    parser = argparse.ArgumentParser(description='Send a signed Stripe test event.')
    parser.add_argument('event_type', nargs='?', default='payment_intent.succeeded',
                        help=f"Event type (handled: {', '.join(sorted(HANDLED_EVENT_TYPES))})")
    parser.add_argument('--url', default=DEFAULT_URL, help='Webhook endpoint URL')
    parser.add_argument('--secret', help='Signing secret (defaults to STRIPE_WEBHOOK_SECRET)')
    parser.add_argument('--age', type=int, default=0, help='Backdate the signature by this many seconds')
    args = parser.parse_args()

    secret = args.secret or os.getenv('STRIPE_WEBHOOK_SECRET')
    if not secret:
        print("❌ No signing secret: pass --secret or set STRIPE_WEBHOOK_SECRET.")
        sys.exit(1)

    event = build_event(args.event_type)
    try:
        response = send_event(args.url, secret, event, int(time.time()) - args.age)
    except httpx.HTTPError as e:
        print(f"❌ Request failed: {e}")
        sys.exit(1)

    print(f"→ {event['type']} ({event['id']})")
    print(f"← {response.status_code} {response.text}")
    if response.status_code != 200:
        sys.exit(1)


if __name__ == '__main__':
    main()
