"""
orgpulse — Notification Sender

Routes one (alert, subscription, channel) triple to the matching channel
handler and reports the outcome as a NotificationRecord. Misconfigured
channels raise ChannelDeliveryError; delivery failures come back as failed
records.
"""

import logging

from orgpulse import config
from orgpulse.alerts.mapping import resolve_recipient
from orgpulse.database import Database
from orgpulse.errors import ChannelDeliveryError
from orgpulse.models.alerts import (
    Alert,
    AlertSubscription,
    ChannelType,
    NotificationRecord,
    NotificationStatus,
    SubscriptionChannel,
)

from .channels import EmailChannel, InAppChannel, SlackChannel, TeamsChannel, WebhookChannel

logger = logging.getLogger(__name__)


class NotificationSender:
    def __init__(
        self,
        db: Database,
        dry_run: bool = False,
        timeout: float | None = None,
        smtp_host: str | None = None,
        smtp_port: int | None = None,
        smtp_user: str | None = None,
        smtp_password: str | None = None,
        email_from: str | None = None,
    ):
        self.db = db
        self.dry_run = dry_run
        self.timeout = timeout if timeout is not None else config.NOTIFY_TIMEOUT_SECONDS
        self.smtp_host = smtp_host or config.SMTP_HOST
        self.smtp_port = smtp_port or config.SMTP_PORT
        self.smtp_user = smtp_user or config.SMTP_USER
        self.smtp_password = smtp_password or config.SMTP_PASSWORD
        self.email_from = email_from or config.EMAIL_FROM

    def send(
        self, alert: Alert, subscription: AlertSubscription, channel: SubscriptionChannel
    ) -> NotificationRecord:
        recipient = resolve_recipient(channel, subscription)
        result = self._deliver(alert, subscription, channel)

        if result.get("success"):
            status = (
                NotificationStatus.DELIVERED
                if result.get("status") == "delivered"
                else NotificationStatus.SENT
            )
            logger.debug("Alert %s -> %s %s: %s", alert.id, channel.type, recipient, status)
            return NotificationRecord(channel=channel.type, recipient=recipient, status=status)
        return NotificationRecord(
            channel=channel.type,
            recipient=recipient,
            status=NotificationStatus.FAILED,
            error=result.get("error") or "delivery failed",
        )

    def _deliver(
        self, alert: Alert, subscription: AlertSubscription, channel: SubscriptionChannel
    ) -> dict:
        cfg = channel.config
        kind = channel.type

        if kind == ChannelType.EMAIL:
            if not cfg.email:
                raise ChannelDeliveryError(str(kind), "no email address configured")
            if not self.smtp_host and not self.dry_run:
                raise ChannelDeliveryError(str(kind), "ORGPULSE_SMTP_HOST is not set")
            handler = EmailChannel(
                host=self.smtp_host or "localhost",
                port=self.smtp_port,
                sender=self.email_from,
                username=self.smtp_user,
                password=self.smtp_password,
                dry_run=self.dry_run,
                timeout=self.timeout,
            )
            return handler.send(alert, cfg.email)

        if kind == ChannelType.SLACK:
            if not cfg.webhook_url:
                raise ChannelDeliveryError(str(kind), "no webhook_url configured")
            slack = SlackChannel(
                cfg.webhook_url, channel=cfg.channel, dry_run=self.dry_run, timeout=self.timeout
            )
            return slack.send(alert)

        if kind == ChannelType.TEAMS:
            if not cfg.teams_webhook_url:
                raise ChannelDeliveryError(str(kind), "no teams_webhook_url configured")
            return TeamsChannel(cfg.teams_webhook_url, dry_run=self.dry_run, timeout=self.timeout).send(alert)

        if kind == ChannelType.WEBHOOK:
            if not cfg.url:
                raise ChannelDeliveryError(str(kind), "no url configured")
            webhook = WebhookChannel(cfg.url, headers=cfg.headers, dry_run=self.dry_run, timeout=self.timeout)
            return webhook.send(alert)

        if kind == ChannelType.IN_APP:
            return InAppChannel(self.db, dry_run=self.dry_run).send(alert, subscription.user_id)

        raise ChannelDeliveryError(str(kind), "unsupported channel type")
