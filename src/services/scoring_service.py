"""
Heuristic score computation.

Five behavioral scores per contact, computed from the contact record, its
most recent interactions (newest first) and its current variables. Every
0-100 score is clamped and rounded; LTV is a non-negative whole number.
The ``compute_*`` functions are pure so they can be unit tested without a
store.
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import Callable, Dict, List, Optional, Sequence

from models.contact import Contact, Interaction, Variable
from models.scoring import ScoreBreakdown, ScoreComputation, ScoreSet, ScoreType
from services.store import Store
from utils.clock import days_between, utcnow
from utils.error_handling import NotFoundError
from utils.logging_config import get_logger
from utils.validators import clamp_score

logger = get_logger(__name__)

URGENT_TIMELINE_KEYWORDS = ("asap", "urgent", "immediately", "this week", "this month")
BUDGET_VARIABLES = ("budget", "investment_range")

USER_TYPE_MULTIPLIERS: Dict[str, float] = {
    "enterprise": 2.0,
    "investor": 1.5,
    "founder": 1.2,
    "developer": 0.8,
    "general": 1.0,
}

INDUSTRY_MULTIPLIERS: Dict[str, float] = {
    "real_estate": 1.5,
    "fintech": 1.4,
    "healthcare": 1.3,
    "saas": 1.2,
    "ecommerce": 1.1,
    "edtech": 1.0,
    "travel": 0.9,
    "automotive": 1.0,
}

_AMOUNT = re.compile(r"\d[\d,]*")


def _find_variable(variables: Sequence[Variable], *names: str) -> Optional[Variable]:
    for variable in variables:
        if variable.variable_name in names:
            return variable
    return None


def _distinct_channels(interactions: Sequence[Interaction]) -> int:
    return len({i.channel for i in interactions})


def compute_intent_score(
    interactions: Sequence[Interaction], variables: Sequence[Variable], now: datetime
) -> ScoreBreakdown:
    score = 30.0
    factors: Dict[str, object] = {}

    recent = [
        i for i in interactions if i.occurred_at and days_between(i.occurred_at, now) <= 7
    ]
    factors["recent_interactions"] = len(recent)
    score += min(len(recent) * 10, 30)

    positive = [i for i in interactions if i.sentiment == "positive"]
    factors["positive_sentiment_count"] = len(positive)
    score += min(len(positive) * 5, 15)

    purchase_signals = sum(1 for i in interactions if "purchase_intent" in i.intent_detected)
    factors["purchase_intent_signals"] = purchase_signals
    score += purchase_signals * 10

    has_budget = _find_variable(variables, *BUDGET_VARIABLES) is not None
    factors["budget_mentioned"] = has_budget
    if has_budget:
        score += 15

    has_timeline = _find_variable(variables, "timeline") is not None
    factors["timeline_mentioned"] = has_timeline
    if has_timeline:
        score += 10

    return ScoreBreakdown(score=clamp_score(score), factors=factors)


def compute_urgency_score(
    interactions: Sequence[Interaction], variables: Sequence[Variable]
) -> ScoreBreakdown:
    score = 20.0
    factors: Dict[str, object] = {}

    total = len(interactions)
    factors["total_interactions"] = total
    score += min(total * 5, 25)

    channels = _distinct_channels(interactions)
    factors["channels_used"] = channels
    score += max(0, channels - 1) * 10

    inbound = sum(1 for i in interactions if i.direction == "inbound")
    inbound_ratio = inbound / total if total else 0.0
    factors["inbound_ratio"] = round(inbound_ratio, 3)
    score += inbound_ratio * 20

    timeline = _find_variable(variables, "timeline")
    if timeline is not None:
        value = timeline.variable_value.lower()
        urgent = any(keyword in value for keyword in URGENT_TIMELINE_KEYWORDS)
        factors["urgent_timeline"] = urgent
        if urgent:
            score += 20

    return ScoreBreakdown(score=clamp_score(score), factors=factors)


def compute_engagement_score(
    contact: Contact, interactions: Sequence[Interaction], now: datetime
) -> ScoreBreakdown:
    score = 0.0
    factors: Dict[str, object] = {}

    total = contact.total_interactions or len(interactions)
    factors["total_interactions"] = total
    score += min(total * 8, 40)

    if contact.last_interaction_at:
        days = days_between(contact.last_interaction_at, now)
        factors["days_since_last_interaction"] = round(days)
        if days < 1:
            score += 30
        elif days < 7:
            score += 20
        elif days < 30:
            score += 10
        elif days < 90:
            score += 5

    outbound = sum(1 for i in interactions if i.direction == "outbound")
    inbound = sum(1 for i in interactions if i.direction == "inbound")
    if outbound:
        response_rate = inbound / outbound
        factors["response_rate"] = round(response_rate, 3)
        score += min(response_rate * 20, 20)

    channels = _distinct_channels(interactions)
    factors["channel_diversity"] = channels
    score += max(0, channels - 1) * 5

    return ScoreBreakdown(score=clamp_score(score), factors=factors)


def compute_churn_risk(
    contact: Contact, interactions: Sequence[Interaction], now: datetime
) -> ScoreBreakdown:
    score = 20.0
    factors: Dict[str, object] = {}

    if contact.last_interaction_at:
        days = days_between(contact.last_interaction_at, now)
        factors["days_since_last_interaction"] = round(days)
        if days > 90:
            score += 50
        elif days > 60:
            score += 35
        elif days > 30:
            score += 20
        elif days > 14:
            score += 10
        else:
            score -= 10

    recent_negative = sum(1 for i in interactions[:5] if i.sentiment == "negative")
    factors["recent_negative_interactions"] = recent_negative
    score += recent_negative * 15

    complaints = sum(1 for i in interactions if "complaint" in i.intent_detected)
    factors["complaint_count"] = complaints
    score += complaints * 10

    if (contact.total_interactions or 0) < 3:
        factors["low_engagement"] = True
        score += 15

    return ScoreBreakdown(score=clamp_score(score), factors=factors)


def _industry_key(industry: Optional[str]) -> str:
    return (industry or "").strip().lower().replace("-", "_")


def compute_ltv_prediction(contact: Contact, variables: Sequence[Variable]) -> ScoreBreakdown:
    """Stated budget scaled by user-type and industry multipliers; 0 without a budget."""
    factors: Dict[str, object] = {}
    value = 0.0

    budget = _find_variable(variables, *BUDGET_VARIABLES)
    if budget is not None:
        match = _AMOUNT.search(budget.variable_value)
        if match:
            stated = int(match.group(0).replace(",", ""))
            factors["stated_budget"] = stated
            value = float(stated)

    user_multiplier = USER_TYPE_MULTIPLIERS.get((contact.user_type or "").lower(), 1.0)
    factors["user_type_multiplier"] = user_multiplier
    value *= user_multiplier

    industry_multiplier = INDUSTRY_MULTIPLIERS.get(_industry_key(contact.primary_industry), 1.0)
    factors["industry_multiplier"] = industry_multiplier
    value *= industry_multiplier

    return ScoreBreakdown(score=max(0, round(value)), factors=factors)


def compute_score_set(
    contact: Contact,
    interactions: Sequence[Interaction],
    variables: Sequence[Variable],
    now: datetime,
) -> Dict[str, ScoreBreakdown]:
    """All five breakdowns keyed by score type."""
    return {
        ScoreType.INTENT.value: compute_intent_score(interactions, variables, now),
        ScoreType.URGENCY.value: compute_urgency_score(interactions, variables),
        ScoreType.ENGAGEMENT.value: compute_engagement_score(contact, interactions, now),
        ScoreType.CHURN_RISK.value: compute_churn_risk(contact, interactions, now),
        ScoreType.LTV.value: compute_ltv_prediction(contact, variables),
    }


class ScoringService:
    """Loads inputs, computes the scores and persists them with their history."""

    def __init__(self, store: Store, clock: Callable[[], datetime] = utcnow):
        self.store = store
        self.clock = clock

    def compute_scores(self, contact_id: str) -> ScoreComputation:
        with self.store.locks.hold(contact_id):
            contact = self.store.contacts.get(contact_id)
            if contact is None:
                raise NotFoundError("Contact not found")
            interactions: List[Interaction] = self.store.interactions.recent(
                contact_id, self.store.settings.interaction_window
            )
            variables = self.store.variables.current(contact_id)

            breakdowns = compute_score_set(contact, interactions, variables, self.clock())
            scores = ScoreSet(
                intent=int(breakdowns["intent"].score),
                urgency=int(breakdowns["urgency"].score),
                engagement=int(breakdowns["engagement"].score),
                churn_risk=int(breakdowns["churn_risk"].score),
                ltv=breakdowns["ltv"].score,
            )
            previous = ScoreSet(
                intent=contact.intent_score,
                urgency=contact.urgency_score,
                engagement=contact.engagement_score,
                churn_risk=contact.churn_risk,
                ltv=contact.ltv_prediction,
            )

            self.store.contacts.update_scores(contact_id, scores.as_contact_fields())
            self.store.scores.record_many(
                contact_id,
                [
                    {
                        "score_type": score_type,
                        "score_value": breakdown.score,
                        "score_factors": breakdown.factors,
                    }
                    for score_type, breakdown in breakdowns.items()
                ],
                triggered_by="score_computation",
            )
            self.store.invalidate_contact(contact_id)

        logger.info(
            "Scores computed",
            extra={"contact_id": contact_id, **scores.model_dump()},
        )
        return ScoreComputation(
            contact_id=contact_id, scores=scores, previous=previous, breakdowns=breakdowns
        )
