"""In-app notification channel: one row per alert and user."""

import logging

from orgpulse.database import Database
from orgpulse.errors import StorageError
from orgpulse.models.alerts import Alert
from orgpulse.models.base import generate_id, now_iso

logger = logging.getLogger(__name__)


class InAppChannel:
    def __init__(self, db: Database, dry_run: bool = False):
        self.db = db
        self.dry_run = dry_run

    def send(self, alert: Alert, user_id: str | None) -> dict:
        if self.dry_run:
            logger.info("DRY RUN in-app notification for %s: %s", user_id, alert.title)
            return {"status": "dry_run", "success": True}

        notification_id = generate_id("ntf")
        try:
            self.db.execute(
                """
                INSERT INTO in_app_notifications
                    (id, organization_id, user_id, alert_id, title, message,
                     severity, action_url, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    notification_id,
                    alert.organization_id,
                    user_id,
                    alert.id,
                    alert.title,
                    alert.message,
                    str(alert.severity),
                    alert.action_url,
                    now_iso(),
                ),
            )
        except StorageError as e:
            logger.error("In-app notification for alert %s failed: %s", alert.id, e)
            return {"status": "error", "success": False, "error": str(e)}
        return {"status": "delivered", "success": True, "id": notification_id}

    def list_unread(self, organization_id: str, user_id: str) -> list[dict]:
        return self.db.fetch_all(
            """
            SELECT * FROM in_app_notifications
            WHERE organization_id = ? AND user_id = ? AND read_at IS NULL
            ORDER BY created_at DESC
            """,
            (organization_id, user_id),
        )
