"""
orgpulse — Notification Channels

Channel handlers for delivering alert notifications.
"""

from .email import EmailChannel
from .in_app import InAppChannel
from .webhook import SlackChannel, TeamsChannel, WebhookChannel

__all__ = ["EmailChannel", "InAppChannel", "SlackChannel", "TeamsChannel", "WebhookChannel"]
