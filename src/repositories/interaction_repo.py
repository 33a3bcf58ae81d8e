"""Append-only interaction log kept in the relational store."""

from typing import Any, Dict, List

from sqlalchemy import desc, func, select

from models.contact import Interaction
from repositories.postgres_repo import PostgresRepository
from repositories.schema import interactions, new_id
from utils.clock import ensure_utc, utcnow


class InteractionRepository(PostgresRepository):
    """crm_interactions; rows are never updated."""

    def append(self, contact_id: str, **fields: Any) -> Interaction:
        values: Dict[str, Any] = {
            "id": new_id(),
            "contact_id": contact_id,
            "intent_detected": [],
            "entities_extracted": {},
        }
        values.update({k: v for k, v in fields.items() if v is not None})
        values["occurred_at"] = ensure_utc(values.get("occurred_at")) or utcnow()
        self.execute(interactions.insert().values(**values))
        return Interaction.model_validate(values)

    def recent(self, contact_id: str, limit: int = 20) -> List[Interaction]:
        """Most recent interactions, newest first."""
        rows = self.fetch_all(
            select(interactions)
            .where(interactions.c.contact_id == contact_id)
            .order_by(desc(interactions.c.occurred_at))
            .limit(limit)
        )
        return [Interaction.model_validate(row) for row in rows]

    def count(self, contact_id: str) -> int:
        return self.scalar(
            select(func.count())
            .select_from(interactions)
            .where(interactions.c.contact_id == contact_id)
        ) or 0
