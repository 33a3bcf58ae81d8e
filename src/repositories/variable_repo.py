"""Extracted contact variables (crm_variables)."""

from typing import Dict, List, Optional

from sqlalchemy import and_, desc, select, update
from sqlalchemy.exc import IntegrityError

from models.contact import Variable
from repositories.postgres_repo import PostgresRepository
from repositories.schema import new_id, variables
from utils.clock import utcnow
from utils.logging_config import get_logger

logger = get_logger(__name__)

SET_CURRENT_ATTEMPTS = 3


class VariableRepository(PostgresRepository):
    """Keeps at most one current value per (contact, variable name)."""

    def current(self, contact_id: str) -> List[Variable]:
        rows = self.fetch_all(
            select(variables)
            .where(and_(variables.c.contact_id == contact_id, variables.c.is_current.is_(True)))
            .order_by(desc(variables.c.created_at))
        )
        return [Variable.model_validate(row) for row in rows]

    def current_values(self, contact_id: str) -> Dict[str, str]:
        return {v.variable_name: v.variable_value for v in self.current(contact_id)}

    def set_current(
        self,
        contact_id: str,
        name: str,
        value: str,
        variable_type: str = "text",
        confidence: float = 0.8,
        source_channel: Optional[str] = None,
        source_interaction_id: Optional[str] = None,
    ) -> Variable:
        """
        Demote the current value and insert the new one in a single transaction.

        A concurrent writer that wins the race trips the partial unique index;
        the loser retries against the fresh state.
        """
        record = {
            "contact_id": contact_id,
            "variable_name": name,
            "variable_value": value,
            "variable_type": variable_type,
            "confidence": confidence,
            "source_channel": source_channel,
            "source_interaction_id": source_interaction_id,
            "is_current": True,
        }
        attempt = 0
        while True:
            attempt += 1
            record["id"] = new_id()
            record["created_at"] = utcnow()
            try:
                with self.engine.begin() as conn:
                    conn.execute(
                        update(variables)
                        .where(
                            and_(
                                variables.c.contact_id == contact_id,
                                variables.c.variable_name == name,
                                variables.c.is_current.is_(True),
                            )
                        )
                        .values(is_current=False)
                    )
                    conn.execute(variables.insert().values(**record))
                return Variable.model_validate(record)
            except IntegrityError:
                if attempt >= SET_CURRENT_ATTEMPTS:
                    raise
                logger.warning(
                    "Concurrent variable write, retrying",
                    extra={"contact_id": contact_id, "variable_name": name, "attempt": attempt},
                )
