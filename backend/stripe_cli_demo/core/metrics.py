"""Prometheus metrics for the application"""
from prometheus_client import Counter, Gauge, REGISTRY

# Webhook metrics
try:
    webhook_requests_counter = Counter(
        'stripe_cli_demo_webhook_requests_total',
        'Webhook requests by outcome',
        ['outcome']
    )
except ValueError:
    webhook_requests_counter = REGISTRY._names_to_collectors.get('stripe_cli_demo_webhook_requests_total')

try:
    webhook_events_counter = Counter(
        'stripe_cli_demo_webhook_events_total',
        'Logged webhook events by final status',
        ['status']
    )
except ValueError:
    webhook_events_counter = REGISTRY._names_to_collectors.get('stripe_cli_demo_webhook_events_total')

# Event log metrics
try:
    event_log_size_gauge = Gauge(
        'stripe_cli_demo_event_log_size',
        'Number of events currently retained in the event log'
    )
except ValueError:
    event_log_size_gauge = REGISTRY._names_to_collectors.get('stripe_cli_demo_event_log_size')


def update_event_log_size_gauge(event_log) -> None:
    """Refresh the event log gauge before export"""
    event_log_size_gauge.set(event_log.count())
