"""SMTP email notification channel."""

import logging
import smtplib
import ssl
from email.message import EmailMessage

from orgpulse.models.alerts import Alert

logger = logging.getLogger(__name__)


class EmailChannel:
    def __init__(
        self,
        host: str,
        port: int = 587,
        sender: str = "alerts@orgpulse.local",
        username: str | None = None,
        password: str | None = None,
        dry_run: bool = False,
        timeout: float = 10.0,
    ):
        self.host = host
        self.port = port
        self.sender = sender
        self.username = username
        self.password = password
        self.dry_run = dry_run
        self.timeout = timeout

    def build_message(self, alert: Alert, recipient: str) -> EmailMessage:
        msg = EmailMessage()
        msg["Subject"] = f"[{str(alert.severity).upper()}] {alert.title}"
        msg["From"] = self.sender
        msg["To"] = recipient
        body = alert.message
        if alert.action_url:
            body += f"\n\nView insight: {alert.action_url}"
        msg.set_content(body)
        return msg

    def send(self, alert: Alert, recipient: str) -> dict:
        msg = self.build_message(alert, recipient)

        if self.dry_run:
            logger.info("DRY RUN email to %s: %s", recipient, msg["Subject"])
            return {"status": "dry_run", "success": True}

        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
                server.starttls(context=ssl.create_default_context())
                if self.username and self.password:
                    server.login(self.username, self.password)
                server.send_message(msg)
            return {"status": "sent", "success": True}
        except (smtplib.SMTPException, OSError) as e:
            logger.error("Email to %s failed: %s", recipient, e)
            return {"status": "error", "success": False, "error": str(e)}
