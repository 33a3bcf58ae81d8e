"""Notification outbox (crm_notifications)."""

from typing import Any, Dict, List, Optional

from sqlalchemy import select, update

from repositories.postgres_repo import PostgresRepository
from repositories.schema import new_id, notifications
from utils.clock import utcnow


class NotificationRepository(PostgresRepository):
    """Queued notification intents; delivery happens elsewhere."""

    def enqueue(
        self,
        contact_id: str,
        notification_type: Optional[str],
        channel: Optional[str],
        message: Optional[str],
        trigger_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        record = {
            "id": new_id(),
            "contact_id": contact_id,
            "trigger_id": trigger_id,
            "notification_type": notification_type,
            "channel": channel,
            "message": message,
            "status": "queued",
            "created_at": utcnow(),
        }
        self.execute(notifications.insert().values(**record))
        return record

    def for_contact(self, contact_id: str) -> List[Dict[str, Any]]:
        return self.fetch_all(
            select(notifications)
            .where(notifications.c.contact_id == contact_id)
            .order_by(notifications.c.created_at)
        )

    def mark_failed(self, notification_id: str) -> None:
        """Flag an outbox row whose publish did not go through."""
        self.execute(
            update(notifications)
            .where(notifications.c.id == notification_id)
            .values(status="failed")
        )
