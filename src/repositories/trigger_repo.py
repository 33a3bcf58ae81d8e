"""Trigger definitions and their execution audit."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import and_, desc, func, select

from models.trigger import Trigger
from repositories.postgres_repo import PostgresRepository
from repositories.schema import new_id, trigger_executions, triggers
from utils.clock import ensure_utc, utcnow
from utils.logging_config import get_logger

logger = get_logger(__name__)


class TriggerRepository(PostgresRepository):
    """crm_triggers is read-only here; crm_trigger_executions is append-only."""

    def active_for_event(self, trigger_event: str) -> List[Trigger]:
        rows = self.fetch_all(
            select(triggers)
            .where(and_(triggers.c.trigger_event == trigger_event, triggers.c.is_active.is_(True)))
            .order_by(desc(triggers.c.priority), triggers.c.created_at)
        )
        parsed: List[Trigger] = []
        for row in rows:
            try:
                parsed.append(Trigger.model_validate(row))
            except ValueError as exc:
                logger.warning(
                    "Skipping malformed trigger", extra={"trigger_id": row.get("id"), "error": str(exc)}
                )
        return parsed

    def has_execution_since(self, trigger_id: str, contact_id: str, since: datetime) -> bool:
        found = self.scalar(
            select(trigger_executions.c.id)
            .where(
                and_(
                    trigger_executions.c.trigger_id == trigger_id,
                    trigger_executions.c.contact_id == contact_id,
                    trigger_executions.c.executed_at >= ensure_utc(since),
                )
            )
            .limit(1)
        )
        return found is not None

    def count_executions(self, trigger_id: str, contact_id: str) -> int:
        return self.scalar(
            select(func.count())
            .select_from(trigger_executions)
            .where(
                and_(
                    trigger_executions.c.trigger_id == trigger_id,
                    trigger_executions.c.contact_id == contact_id,
                )
            )
        ) or 0

    def record_execution(
        self,
        trigger_id: str,
        contact_id: str,
        status: str,
        matched_conditions: Any = None,
        actions_executed: Optional[Dict[str, Any]] = None,
        error_message: Optional[str] = None,
    ) -> str:
        execution_id = new_id()
        self.execute(
            trigger_executions.insert().values(
                id=execution_id,
                trigger_id=trigger_id,
                contact_id=contact_id,
                execution_status=status,
                matched_conditions=matched_conditions,
                actions_executed=actions_executed,
                error_message=error_message,
                executed_at=utcnow(),
            )
        )
        return execution_id

    def executions_for(self, contact_id: str, trigger_id: Optional[str] = None) -> List[Dict[str, Any]]:
        clause = trigger_executions.c.contact_id == contact_id
        if trigger_id:
            clause = and_(clause, trigger_executions.c.trigger_id == trigger_id)
        return self.fetch_all(
            select(trigger_executions).where(clause).order_by(desc(trigger_executions.c.executed_at))
        )
