"""E-mail notifier for new deadline alerts.

Sends through Brevo's transactional e-mail HTTP API. Without an API key
the notifier only logs the message and reports success, so development
setups never block on mail delivery.
"""

from html import escape
from typing import Any, Dict, Optional

import httpx

from app.core.config import NotificationConfig, settings
from app.schemas.alerts import AlertSeverity
from app.services.deadlines.contracts import AlertPayload
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)

SEVERITY_STYLES: Dict[AlertSeverity, Dict[str, str]] = {
    AlertSeverity.INFO: {"color": "#0D47A1", "label": "Información"},
    AlertSeverity.WARNING: {"color": "#E65100", "label": "Advertencia"},
    AlertSeverity.CRITICAL: {"color": "#B71C1C", "label": "¡URGENTE!"},
}


def render_alert_email(payload: AlertPayload) -> Dict[str, str]:
    """Build subject, HTML and plain-text bodies for an alert."""
    style = SEVERITY_STYLES.get(payload.severity, SEVERITY_STYLES[AlertSeverity.INFO])
    deadline = payload.deadline.strftime("%d/%m/%Y %H:%M")
    subject = f"[SGP] {style['label']} - {payload.kind.value}"
    html = (
        "<!DOCTYPE html><html><head><meta charset=\"utf-8\"></head><body>"
        f"<div style=\"background:{style['color']};color:#FFFFFF;padding:20px;text-align:center\">"
        f"<h1 style=\"margin:0;font-size:20px\">{escape(style['label'])}</h1>"
        f"<p style=\"margin:8px 0 0 0;font-size:13px\">{escape(payload.kind.value)}</p></div>"
        f"<div style=\"padding:20px\"><p>{escape(payload.message)}</p>"
        f"<p><strong>Fecha límite:</strong> {deadline}</p></div>"
        "</body></html>"
    )
    text = f"{style['label']} ({payload.kind.value}): {payload.message}. Fecha límite: {deadline}"
    return {"subject": subject, "html": html, "text": text}


class EmailNotifier:
    """Notifier that e-mails the case manager about new alerts."""

    def __init__(self, config: NotificationConfig, client: Optional[httpx.AsyncClient] = None):
        self._config = config
        self._client = client

    @property
    def config(self) -> NotificationConfig:
        return self._config

    def reconfigure(self, config: NotificationConfig) -> NotificationConfig:
        """Swap in a new configuration; the only runtime update path."""
        self._config = config
        LOGGER.info(f"Notification config updated: {config.recipient_name} <{config.recipient_email}>")
        return self._config

    async def notify(self, payload: AlertPayload) -> bool:
        """Send the alert e-mail. Never raises; returns whether delivery succeeded."""
        config = self._config
        message = render_alert_email(payload)

        if not config.api_key:
            LOGGER.info(
                f"[MAIL NOT SENT - no API key] To: {config.recipient_email} | "
                f"Subject: {message['subject']} | {message['text'][:150]}"
            )
            return True

        body: Dict[str, Any] = {
            "sender": {"email": config.sender_email, "name": config.sender_name},
            "to": [{"email": config.recipient_email, "name": config.recipient_name}],
            "subject": message["subject"],
            "htmlContent": message["html"],
            "textContent": message["text"],
        }
        headers = {"api-key": config.api_key, "accept": "application/json"}

        try:
            if self._client is not None:
                response = await self._client.post(
                    config.api_url, json=body, headers=headers, timeout=config.timeout_seconds
                )
            else:
                async with httpx.AsyncClient() as client:
                    response = await client.post(
                        config.api_url, json=body, headers=headers, timeout=config.timeout_seconds
                    )
        except httpx.HTTPError as e:
            LOGGER.error(
                f"Failed to send alert e-mail to {config.recipient_email}: {str(e)}",
                exc_info=True,
            )
            return False

        if response.status_code >= 400:
            LOGGER.error(
                f"Mail API rejected alert e-mail: {response.text}",
                extra={"status_code": response.status_code, "recipient": config.recipient_email},
            )
            return False

        LOGGER.info(f"Alert e-mail sent to {config.recipient_email}: {message['subject']}")
        return True


_notifier: Optional[EmailNotifier] = None


def get_notifier() -> EmailNotifier:
    """Process-wide notifier built from settings on first use."""
    global _notifier
    if _notifier is None:
        _notifier = EmailNotifier(settings.notification_config())
    return _notifier
