"""Score history (crm_scores)."""

from typing import Any, Dict, List, Optional

from sqlalchemy import desc, select

from repositories.postgres_repo import PostgresRepository
from repositories.schema import new_id, scores
from utils.clock import utcnow


class ScoreRepository(PostgresRepository):
    """Append-only audit of computed and overridden scores."""

    def record(
        self,
        contact_id: str,
        score_type: str,
        score_value: float,
        factors: Optional[Dict[str, Any]] = None,
        triggered_by: str = "manual",
    ) -> str:
        score_id = new_id()
        self.execute(
            scores.insert().values(
                id=score_id,
                contact_id=contact_id,
                score_type=score_type,
                score_value=score_value,
                score_factors=factors or {},
                triggered_by=triggered_by,
                computed_at=utcnow(),
            )
        )
        return score_id

    def record_many(self, contact_id: str, rows: List[Dict[str, Any]], triggered_by: str) -> None:
        if not rows:
            return
        now = utcnow()
        values = [
            {
                "id": new_id(),
                "contact_id": contact_id,
                "score_type": row["score_type"],
                "score_value": row["score_value"],
                "score_factors": row.get("score_factors") or {},
                "triggered_by": triggered_by,
                "computed_at": now,
            }
            for row in rows
        ]
        with self.engine.begin() as conn:
            conn.execute(scores.insert(), values)

    def history(self, contact_id: str, limit: int = 50) -> List[Dict[str, Any]]:
        return self.fetch_all(
            select(scores)
            .where(scores.c.contact_id == contact_id)
            .order_by(desc(scores.c.computed_at))
            .limit(limit)
        )
