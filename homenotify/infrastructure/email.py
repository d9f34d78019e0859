"""Transactional email transport backed by SendGrid."""

from __future__ import annotations

import json
import logging
from typing import Any

from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Mail

from homenotify.config import get_settings

logger = logging.getLogger(__name__)


class EmailDeliveryError(RuntimeError):
    """Raised when an email could not be handed over to SendGrid."""


def _extract_sendgrid_error_details(body: Any) -> str | None:
    """Return a human readable description for a SendGrid error payload."""

    if body in (None, ""):
        return None

    if isinstance(body, bytes):
        try:
            body = body.decode("utf-8")
        except UnicodeDecodeError:
            return None

    if isinstance(body, str):
        body = body.strip()
        if not body:
            return None
        try:
            parsed = json.loads(body)
        except json.JSONDecodeError:
            return body
    else:
        parsed = body

    if isinstance(parsed, dict):
        errors = parsed.get("errors")
        if isinstance(errors, list):
            messages: list[str] = []
            for item in errors:
                if not isinstance(item, dict):
                    continue
                message = item.get("message")
                field = item.get("field")
                if message and field:
                    messages.append(f"{field}: {message}")
                elif message:
                    messages.append(str(message))
            if messages:
                return "; ".join(messages)
        try:
            return json.dumps(parsed)
        except (TypeError, ValueError):
            return None

    if isinstance(parsed, list):
        return "; ".join(str(item) for item in parsed)

    return None


def _describe_exception(exc: Exception) -> str:
    status_code = getattr(exc, "status_code", None)
    details = _extract_sendgrid_error_details(getattr(exc, "body", None))

    if status_code and details:
        return f"SendGrid API request failed with status {status_code}: {details}"
    if status_code:
        return f"SendGrid API request failed with status {status_code}"
    if details:
        return f"SendGrid API request failed: {details}"
    return f"Error sending email via SendGrid: {exc}"


def _describe_unsuccessful_response(response: Any) -> str:
    status_code = getattr(response, "status_code", None)
    details = _extract_sendgrid_error_details(getattr(response, "body", None))
    if details:
        return f"SendGrid API responded with status {status_code}: {details}"
    return f"SendGrid API responded with status {status_code}"


def send_email(subject: str, html_content: str, recipient: str) -> None:
    """Send one HTML email through SendGrid.

    Raises :class:`EmailDeliveryError` carrying a readable reason when the
    transport is not configured, the request fails or SendGrid answers with
    a non-2xx status.
    """

    settings = get_settings()
    if not (settings.sendgrid_api_key and settings.sendgrid_sender):
        raise EmailDeliveryError("SendGrid configuration incomplete; email not sent")

    message = Mail(
        from_email=settings.sendgrid_sender,
        to_emails=recipient,
        subject=subject,
        html_content=html_content,
    )

    try:
        client = SendGridAPIClient(settings.sendgrid_api_key)
        response = client.send(message)
    except Exception as exc:  # python-http-client raises per-status subclasses
        reason = _describe_exception(exc)
        logger.error("%s", reason)
        raise EmailDeliveryError(reason) from exc

    status_code = getattr(response, "status_code", None)
    if not isinstance(status_code, int) or not 200 <= status_code < 300:
        reason = _describe_unsuccessful_response(response)
        logger.error("%s", reason)
        raise EmailDeliveryError(reason)

    logger.debug("SendGrid accepted email %r for %s", subject, recipient)


__all__ = ["EmailDeliveryError", "send_email"]
