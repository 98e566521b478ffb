"""Outbound workflow webhooks: report submission and override passcodes."""

from .webhooks import WebhookDeliveryError, send_override_code, submit_report_to_webhook

__all__ = [
    "WebhookDeliveryError",
    "send_override_code",
    "submit_report_to_webhook",
]
