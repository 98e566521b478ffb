"""Webhook delivery - report submission and override passcode channels"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional, Sequence

import httpx

from ..config import Settings, get_settings
from ..models import ExpenseEntry, ExpenseFieldSet

logger = logging.getLogger(__name__)

OTP_DELIVERY_FAILED_MESSAGE = "Failed to send OTP to the approval webhook."


class WebhookDeliveryError(Exception):
    """The remote workflow endpoint did not accept the payload."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def build_submission_payload(entries: Sequence[ExpenseEntry], currency: str) -> List[Dict[str, Any]]:
    """One record per entry, in report order."""
    return [entry.to_record(currency) for entry in entries]


def build_override_payload(
    code: str,
    fields: ExpenseFieldSet,
    project_code: str,
    currency: str,
) -> Dict[str, Any]:
    return {
        "otp": code,
        "expenseDetails": fields.to_record(project_code, currency),
    }


def _error_message(response: httpx.Response, default: str) -> str:
    """Prefer the JSON ``message``, then the raw body, then ``default``."""
    try:
        data = response.json()
    except (json.JSONDecodeError, ValueError):
        data = None
    if isinstance(data, dict) and data.get("message"):
        return str(data["message"])
    text = response.text.strip()
    return text or default


async def _post_json(
    url: str,
    payload: Any,
    *,
    timeout: float,
    client: Optional[httpx.AsyncClient],
) -> httpx.Response:
    if client is not None:
        return await client.post(url, json=payload)
    async with httpx.AsyncClient(timeout=timeout) as session:
        return await session.post(url, json=payload)


async def submit_report_to_webhook(
    entries: Sequence[ExpenseEntry],
    report_id: str,
    currency: str,
    *,
    client: Optional[httpx.AsyncClient] = None,
    settings: Optional[Settings] = None,
) -> None:
    """Submit all entries of a report as a single JSON array

    Args:
        entries: entries of the report
        report_id: report identifier, used in logs and error messages
        currency: report currency code
        client: optional shared HTTP client
        settings: configuration (webhook URL and timeout)

    Raises:
        WebhookDeliveryError: not configured, transport failure or non-2xx response
    """
    settings = settings or get_settings()
    default_message = f"Failed to submit report for trip {report_id}."
    if not settings.submission_webhook_url:
        raise WebhookDeliveryError("Submission webhook URL is not configured.")

    payload = build_submission_payload(entries, currency)
    logger.info(f"Submitting {len(payload)} entries for trip {report_id} as a single batch.")

    try:
        response = await _post_json(
            settings.submission_webhook_url,
            payload,
            timeout=settings.webhook_timeout,
            client=client,
        )
    except httpx.HTTPError as e:
        logger.error(f"Submission transport error for report {report_id}: {e}")
        raise WebhookDeliveryError(f"{default_message} ({e.__class__.__name__})") from e

    if not response.is_success:
        message = _error_message(response, default_message)
        logger.error(f"Error for report {report_id}: {message}")
        raise WebhookDeliveryError(message, status_code=response.status_code)

    logger.info(f"Successfully submitted report for trip {report_id}")


async def send_override_code(
    code: str,
    fields: ExpenseFieldSet,
    project_code: str,
    currency: str,
    *,
    client: Optional[httpx.AsyncClient] = None,
    settings: Optional[Settings] = None,
) -> None:
    """Send an override passcode and the expense context to the approver

    Raises:
        WebhookDeliveryError: not configured, transport failure or non-2xx response
    """
    settings = settings or get_settings()
    if not settings.otp_webhook_url:
        raise WebhookDeliveryError("OTP webhook URL is not configured.")

    payload = build_override_payload(code, fields, project_code, currency)
    logger.info(f"Sending override code for project {project_code} to the approval webhook.")

    try:
        response = await _post_json(
            settings.otp_webhook_url,
            payload,
            timeout=settings.webhook_timeout,
            client=client,
        )
    except httpx.HTTPError as e:
        logger.error(f"Override code transport error: {e}")
        raise WebhookDeliveryError(OTP_DELIVERY_FAILED_MESSAGE) from e

    if not response.is_success:
        logger.error(f"Approval webhook rejected the override code: {response.status_code}")
        raise WebhookDeliveryError(OTP_DELIVERY_FAILED_MESSAGE, status_code=response.status_code)

    logger.info("Successfully sent override code with context.")


__all__ = [
    "OTP_DELIVERY_FAILED_MESSAGE",
    "WebhookDeliveryError",
    "build_override_payload",
    "build_submission_payload",
    "send_override_code",
    "submit_report_to_webhook",
]
