"""Follow-up tasks created by automation (crm_tasks)."""

from typing import Any, Dict, List

from sqlalchemy import and_, desc, select

from repositories.postgres_repo import PostgresRepository
from repositories.schema import new_id, tasks
from utils.clock import utcnow

OPEN_STATUSES = ("pending", "in_progress")


class TaskRepository(PostgresRepository):
    def create(self, contact_id: str, **fields: Any) -> Dict[str, Any]:
        values: Dict[str, Any] = {
            "id": new_id(),
            "contact_id": contact_id,
            "status": "pending",
            "created_at": utcnow(),
        }
        values.update(fields)
        self.execute(tasks.insert().values(**values))
        return values

    def open_for(self, contact_id: str, limit: int = 20) -> List[Dict[str, Any]]:
        return self.fetch_all(
            select(tasks)
            .where(and_(tasks.c.contact_id == contact_id, tasks.c.status.in_(OPEN_STATUSES)))
            .order_by(tasks.c.due_at, desc(tasks.c.created_at))
            .limit(limit)
        )

    def for_contact(self, contact_id: str) -> List[Dict[str, Any]]:
        return self.fetch_all(
            select(tasks).where(tasks.c.contact_id == contact_id).order_by(tasks.c.created_at)
        )
