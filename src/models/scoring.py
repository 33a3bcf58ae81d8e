"""Score models for the heuristic score computer."""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, model_validator


class ScoreType(str, Enum):
    """Score kinds written to the score history."""

    INTENT = "intent"
    URGENCY = "urgency"
    ENGAGEMENT = "engagement"
    CHURN_RISK = "churn_risk"
    LTV = "ltv"


# Contact column backing each adjustable score.
SCORE_FIELDS: Dict[str, str] = {
    ScoreType.INTENT.value: "intent_score",
    ScoreType.URGENCY.value: "urgency_score",
    ScoreType.ENGAGEMENT.value: "engagement_score",
    ScoreType.CHURN_RISK.value: "churn_risk",
}


class ScoreBreakdown(BaseModel):
    """One score plus the factors that produced it."""

    score: float
    factors: Dict[str, Any] = Field(default_factory=dict)


class ScoreSet(BaseModel):
    """The five scores stored on a contact."""

    intent: int = Field(ge=0, le=100)
    urgency: int = Field(ge=0, le=100)
    engagement: int = Field(ge=0, le=100)
    churn_risk: int = Field(ge=0, le=100)
    ltv: float = Field(ge=0)

    def as_contact_fields(self) -> Dict[str, Any]:
        return {
            "intent_score": self.intent,
            "urgency_score": self.urgency,
            "engagement_score": self.engagement,
            "churn_risk": self.churn_risk,
            "ltv_prediction": self.ltv,
        }


class ScoreComputation(BaseModel):
    """Scores for one contact along with their audit breakdowns."""

    contact_id: str
    scores: ScoreSet
    previous: Optional[ScoreSet] = None
    breakdowns: Dict[str, ScoreBreakdown] = Field(default_factory=dict)

    def changed_scores(self) -> List[str]:
        if self.previous is None:
            return list(ScoreSet.model_fields)
        return [
            name
            for name in ScoreSet.model_fields
            if getattr(self.scores, name) != getattr(self.previous, name)
        ]

    def event_payload(self) -> Dict[str, Any]:
        """Payload handed to score_change triggers as ``event.*`` fields."""
        payload: Dict[str, Any] = dict(self.scores.as_contact_fields())
        if self.previous is not None:
            for field, value in self.previous.as_contact_fields().items():
                payload[f"previous_{field}"] = value
                payload[f"{field}_delta"] = payload[field] - value
        payload["changed_scores"] = self.changed_scores()
        return payload


class ComputeScoresRequest(BaseModel):
    """Payload of POST /scores/compute."""

    contact_id: Optional[str] = None
    compute_all: bool = False

    @model_validator(mode="after")
    def _target_present(self) -> "ComputeScoresRequest":
        if not self.contact_id and not self.compute_all:
            raise ValueError("Either contact_id or compute_all is required")
        return self


class ScoreBatchResult(BaseModel):
    """Batch envelope: counts plus per-contact errors."""

    processed: int = 0
    triggers_fired: int = 0
    tasks_created: int = 0
    errors: List[str] = Field(default_factory=list)
