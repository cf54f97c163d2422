"""Incoming-webhook notification channels: generic JSON, Slack and Teams."""

import logging

import httpx

from orgpulse.models.alerts import Alert, AlertSeverity

logger = logging.getLogger(__name__)

SEVERITY_COLOURS = {
    AlertSeverity.CRITICAL: "#B00020",
    AlertSeverity.ERROR: "#E65100",
    AlertSeverity.WARNING: "#F9A825",
    AlertSeverity.INFO: "#1565C0",
}


class WebhookChannel:
    """Delivers an alert as a JSON POST.

    Returns a result dict instead of raising on HTTP or transport errors.
    """

    name = "webhook"

    def __init__(
        self,
        url: str,
        headers: dict[str, str] | None = None,
        dry_run: bool = False,
        timeout: float = 10.0,
    ):
        self.url = url
        self.headers = dict(headers or {})
        self.dry_run = dry_run
        self.timeout = timeout

    def send(self, alert: Alert) -> dict:
        payload = self._format_payload(alert)

        if self.dry_run:
            logger.info("DRY RUN %s payload for %s: %s", self.name, alert.id, payload)
            return {"status": "dry_run", "success": True, "payload": payload}

        try:
            response = httpx.post(self.url, json=payload, headers=self.headers, timeout=self.timeout)
            response.raise_for_status()
            return {"status": "sent", "success": True, "status_code": response.status_code}
        except httpx.HTTPStatusError as e:
            logger.error("%s HTTP error for alert %s: %s", self.name, alert.id, e)
            return {"status": "error", "success": False, "error": str(e)}
        except httpx.RequestError as e:
            logger.error("%s request error for alert %s: %s", self.name, alert.id, e)
            return {"status": "error", "success": False, "error": str(e)}

    def _format_payload(self, alert: Alert) -> dict:
        return {"event": "alert", "alert": alert.to_dict()}


class SlackChannel(WebhookChannel):
    name = "slack"

    def __init__(self, webhook_url: str, channel: str | None = None, **kwargs):
        super().__init__(webhook_url, **kwargs)
        self.channel = channel

    def _format_payload(self, alert: Alert) -> dict:
        text = f"*{alert.title}*\n{alert.message}"
        if alert.action_url:
            text += f"\n<{alert.action_url}|View insight>"
        payload = {
            "text": alert.title,
            "attachments": [
                {
                    "color": SEVERITY_COLOURS.get(alert.severity, "#607D8B"),
                    "blocks": [{"type": "section", "text": {"type": "mrkdwn", "text": text}}],
                }
            ],
        }
        if self.channel:
            payload["channel"] = self.channel
        return payload


class TeamsChannel(WebhookChannel):
    name = "teams"

    def _format_payload(self, alert: Alert) -> dict:
        card = {
            "@type": "MessageCard",
            "@context": "https://schema.org/extensions",
            "themeColor": SEVERITY_COLOURS.get(alert.severity, "#607D8B").lstrip("#"),
            "summary": alert.title,
            "title": alert.title,
            "text": alert.message.replace("\n", "<br>"),
        }
        if alert.action_url:
            card["potentialAction"] = [
                {
                    "@type": "OpenUri",
                    "name": "View insight",
                    "targets": [{"os": "default", "uri": alert.action_url}],
                }
            ]
        return card
