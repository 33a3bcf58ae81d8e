"""
Contact 360 Service.

Aggregates the contact record, current variables, recent interactions, score
history, open tasks and allied industries into one snapshot. Snapshots are
cached briefly across warm Lambda invocations.
"""

from __future__ import annotations

from collections import Counter
from typing import Dict, List, Optional

from models.customer import (
    AlliedIndustry,
    Contact360,
    ContactScores,
    IndustryView,
    ScorePoint,
    TimelineSummary,
)
from services.store import Store
from utils.cache_service import LRUCache
from utils.error_handling import NotFoundError
from utils.logging_config import get_logger

logger = get_logger(__name__)

RECENT_INTERACTIONS = 50
SCORE_HISTORY = 50


class ContactService:
    """Builds the 360-degree contact view."""

    def __init__(self, store: Store, cache: Optional[LRUCache] = None):
        self.store = store
        self.cache = cache or store.contact_views

    def get_contact_360(self, contact_id: str) -> Contact360:
        cache_key = f"contact360:{contact_id}"
        cached = self.cache.get(cache_key)
        if cached:
            logger.info("Contact cache hit", extra={"contact_id": contact_id})
            return cached

        contact = self.store.contacts.get(contact_id)
        if contact is None:
            raise NotFoundError("Contact not found")

        variables = self.store.variables.current(contact_id)
        interactions = self.store.interactions.recent(contact_id, RECENT_INTERACTIONS)

        channels = Counter(i.channel for i in interactions)
        timeline = TimelineSummary(
            total_interactions=contact.total_interactions or len(interactions),
            channel_breakdown=dict(channels),
            first_interaction=interactions[-1].occurred_at if interactions else None,
            last_interaction=interactions[0].occurred_at if interactions else None,
        )

        history: Dict[str, List[ScorePoint]] = {}
        for row in self.store.scores.history(contact_id, SCORE_HISTORY):
            history.setdefault(row["score_type"], []).append(
                ScorePoint(value=row["score_value"], date=row["computed_at"])
            )
        scores = ContactScores(
            current={
                "intent": contact.intent_score,
                "urgency": contact.urgency_score,
                "engagement": contact.engagement_score,
                "churn_risk": contact.churn_risk,
                "ltv": contact.ltv_prediction,
            },
            history=history,
        )

        industry = IndustryView()
        if contact.primary_industry:
            industry = IndustryView(
                primary=self.store.industries.get_by_name(contact.primary_industry),
                allied=[
                    AlliedIndustry.model_validate(row)
                    for row in self.store.industries.allied_for(contact.primary_industry)
                ],
            )

        view = Contact360(
            contact=contact,
            variables=variables,
            variables_by_name={v.variable_name: v for v in variables},
            interactions=interactions,
            timeline_summary=timeline,
            scores=scores,
            tasks=self.store.tasks.open_for(contact_id),
            industry=industry,
        )
        self.cache.set(cache_key, view)
        logger.info(
            "Contact 360 built",
            extra={"contact_id": contact_id, "interactions": len(interactions)},
        )
        return view
