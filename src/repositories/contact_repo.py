"""Contact records (crm_contacts)."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import select, update

from models.contact import Contact
from repositories.postgres_repo import PostgresRepository
from repositories.schema import contacts, new_id
from utils.clock import utcnow
from utils.error_handling import NotFoundError
from utils.validators import clamp_score


class ContactRepository(PostgresRepository):
    """CRUD plus the few atomic read-modify-write updates the engine needs."""

    def get(self, contact_id: str) -> Optional[Contact]:
        row = self.fetch_one(select(contacts).where(contacts.c.id == contact_id))
        return Contact.model_validate(row) if row else None

    def require(self, contact_id: str) -> Contact:
        contact = self.get(contact_id)
        if contact is None:
            raise NotFoundError("Contact not found")
        return contact

    def find_by_phone(self, phone: str) -> Optional[Contact]:
        row = self.fetch_one(select(contacts).where(contacts.c.phone == phone).limit(1))
        return Contact.model_validate(row) if row else None

    def find_by_email(self, email: str) -> Optional[Contact]:
        row = self.fetch_one(select(contacts).where(contacts.c.email == email).limit(1))
        return Contact.model_validate(row) if row else None

    def create(self, **fields: Any) -> Contact:
        now = utcnow()
        values = {
            "id": fields.pop("id", None) or new_id(),
            "lifecycle_stage": "lead",
            "user_type": "general",
            "tags": [],
            "total_interactions": 0,
            "created_at": now,
            "updated_at": now,
        }
        values.update({k: v for k, v in fields.items() if v is not None})
        self.execute(contacts.insert().values(**values))
        return self.require(values["id"])

    def update_fields(self, contact_id: str, fields: Dict[str, Any]) -> None:
        if not fields:
            return
        result = self.execute(
            update(contacts)
            .where(contacts.c.id == contact_id)
            .values({**fields, "updated_at": utcnow()})
        )
        if result.rowcount == 0:
            raise NotFoundError("Contact not found")

    def update_scores(self, contact_id: str, score_fields: Dict[str, Any]) -> None:
        """Overwrite the five score columns."""
        self.update_fields(contact_id, score_fields)

    def add_tags(self, contact_id: str, new_tags: List[str]) -> List[str]:
        """Union tags into the contact's tag set, keeping first-seen order."""
        with self.engine.begin() as conn:
            row = conn.execute(
                select(contacts.c.tags).where(contacts.c.id == contact_id).with_for_update()
            ).fetchone()
            if row is None:
                raise NotFoundError("Contact not found")
            merged = list(row.tags or [])
            for tag in new_tags:
                if tag not in merged:
                    merged.append(tag)
            conn.execute(
                update(contacts)
                .where(contacts.c.id == contact_id)
                .values(tags=merged, updated_at=utcnow())
            )
        return merged

    def adjust_score(self, contact_id: str, column: str, operation: str, amount: float) -> int:
        """Apply set/add/subtract to one bounded score column and return the new value."""
        field = contacts.c[column]
        with self.engine.begin() as conn:
            row = conn.execute(
                select(field).where(contacts.c.id == contact_id).with_for_update()
            ).fetchone()
            if row is None:
                raise NotFoundError("Contact not found")
            current = row[0] or 0
            if operation == "add":
                target = current + amount
            elif operation == "subtract":
                target = current - amount
            else:
                target = amount
            new_value = clamp_score(target)
            conn.execute(
                update(contacts)
                .where(contacts.c.id == contact_id)
                .values({column: new_value, "updated_at": utcnow()})
            )
        return new_value

    def increment_interactions(
        self, contact_id: str, occurred_at: datetime, channel: str
    ) -> None:
        """Bump the interaction counter in SQL so concurrent ingests never lose a count."""
        self.update_fields(
            contact_id,
            {
                "total_interactions": contacts.c.total_interactions + 1,
                "last_interaction_at": occurred_at,
                "last_channel": channel,
            },
        )

    def list_ids(self, limit: int) -> List[str]:
        rows = self.fetch_all(
            select(contacts.c.id).order_by(contacts.c.created_at).limit(limit)
        )
        return [row["id"] for row in rows]
