"""
orgpulse — Notifier

Delivers alert notifications over email, Slack, Teams, generic webhooks and
the in-app inbox.
"""

from .sender import NotificationSender

__all__ = ["NotificationSender"]
