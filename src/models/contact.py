"""Contact, interaction and variable models."""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from models.common import OptionalUtcDatetime


class LifecycleStage(str, Enum):
    """Pipeline position of a contact."""

    LEAD = "lead"
    QUALIFIED = "qualified"
    OPPORTUNITY = "opportunity"
    CUSTOMER = "customer"
    CHURNED = "churned"

    @classmethod
    def values(cls) -> List[str]:
        return [stage.value for stage in cls]


class Direction(str, Enum):
    INBOUND = "inbound"
    OUTBOUND = "outbound"


class Sentiment(str, Enum):
    """Sentiment labels supplied by the upstream annotator."""

    POSITIVE = "positive"
    NEUTRAL = "neutral"
    NEGATIVE = "negative"
    MIXED = "mixed"


class Contact(BaseModel):
    """The central customer/lead record."""

    id: str
    full_name: Optional[str] = None
    company_name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    user_type: Optional[str] = "general"
    primary_industry: Optional[str] = None
    lifecycle_stage: str = LifecycleStage.LEAD.value
    source: Optional[str] = None

    intent_score: int = 0
    urgency_score: int = 0
    engagement_score: int = 0
    churn_risk: int = 0
    ltv_prediction: float = 0

    total_interactions: int = 0
    last_interaction_at: OptionalUtcDatetime = None
    last_channel: Optional[str] = None
    tags: List[str] = Field(default_factory=list)

    created_at: OptionalUtcDatetime = None
    updated_at: OptionalUtcDatetime = None

    @field_validator("tags", mode="before")
    @classmethod
    def _tags_default(cls, value: Any) -> Any:
        return value or []

    @field_validator("intent_score", "urgency_score", "engagement_score", "churn_risk", mode="before")
    @classmethod
    def _score_default(cls, value: Any) -> Any:
        return 0 if value is None else value

    @field_validator("ltv_prediction", "total_interactions", mode="before")
    @classmethod
    def _counter_default(cls, value: Any) -> Any:
        return 0 if value is None else value

    def as_fields(self) -> Dict[str, Any]:
        """Flat JSON view used for condition field resolution."""
        return self.model_dump(mode="json")


class Interaction(BaseModel):
    """One immutable communication event."""

    id: str
    contact_id: str
    channel: str
    direction: str
    summary: Optional[str] = None
    raw_content: Optional[Dict[str, Any]] = None
    sentiment: Optional[str] = None
    sentiment_score: Optional[float] = None
    intent_detected: List[str] = Field(default_factory=list)
    entities_extracted: Dict[str, Any] = Field(default_factory=dict)
    duration_seconds: Optional[int] = None
    recording_url: Optional[str] = None
    source_type: Optional[str] = None
    source_id: Optional[str] = None
    occurred_at: OptionalUtcDatetime = None

    @field_validator("intent_detected", mode="before")
    @classmethod
    def _intents_default(cls, value: Any) -> Any:
        return value or []

    @field_validator("entities_extracted", mode="before")
    @classmethod
    def _entities_default(cls, value: Any) -> Any:
        return value or {}


class Variable(BaseModel):
    """A named fact extracted about a contact."""

    id: str
    contact_id: str
    variable_name: str
    variable_value: str
    variable_type: str = "text"
    confidence: float = Field(default=0.8, ge=0, le=1)
    source_channel: Optional[str] = None
    source_interaction_id: Optional[str] = None
    is_current: bool = True
    created_at: OptionalUtcDatetime = None


class ExtractedVariable(BaseModel):
    """Variable as supplied by the ingestion collaborator."""

    name: str
    value: str
    type: str = "text"
    confidence: float = Field(default=0.8, ge=0, le=1)

    @field_validator("name", "value", mode="before")
    @classmethod
    def _stringify(cls, value: Any) -> Any:
        if value is None:
            return value
        return str(value).strip()


class ContactUpdates(BaseModel):
    full_name: Optional[str] = None
    company_name: Optional[str] = None
    user_type: Optional[str] = None
    primary_industry: Optional[str] = None


class IngestInteractionRequest(BaseModel):
    """Payload of POST /interactions."""

    contact_id: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None

    channel: str
    direction: Direction
    content: str
    summary: Optional[str] = None

    sentiment: Optional[Sentiment] = None
    sentiment_score: Optional[float] = Field(default=None, ge=-1, le=1)
    intents: List[str] = Field(default_factory=list)
    entities: Dict[str, Any] = Field(default_factory=dict)

    duration_seconds: Optional[int] = None
    recording_url: Optional[str] = None
    occurred_at: OptionalUtcDatetime = None
    source_type: Optional[str] = None
    source_id: Optional[str] = None

    contact_updates: Optional[ContactUpdates] = None
    variables: List[ExtractedVariable] = Field(default_factory=list)

    @field_validator("channel", "content")
    @classmethod
    def validate_required(cls, value: str) -> str:
        cleaned = (value or "").strip()
        if not cleaned:
            raise ValueError("channel, direction, and content are required")
        return cleaned

    @model_validator(mode="after")
    def _identity_present(self) -> "IngestInteractionRequest":
        if not (self.contact_id or self.phone or self.email):
            raise ValueError("At least one of contact_id, phone, or email is required")
        return self


class IngestionResult(BaseModel):
    contact_id: str
    interaction_id: str
    is_new_contact: bool
    variables_extracted: int
    automation: Optional[Dict[str, Any]] = None
