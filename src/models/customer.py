"""Contact 360 view models."""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from models.common import OptionalUtcDatetime
from models.contact import Contact, Interaction, Variable


class TimelineSummary(BaseModel):
    total_interactions: int = 0
    channel_breakdown: Dict[str, int] = Field(default_factory=dict)
    first_interaction: OptionalUtcDatetime = None
    last_interaction: OptionalUtcDatetime = None


class ScorePoint(BaseModel):
    value: float
    date: OptionalUtcDatetime = None


class ContactScores(BaseModel):
    current: Dict[str, float]
    history: Dict[str, List[ScorePoint]] = Field(default_factory=dict)


class AlliedIndustry(BaseModel):
    id: str
    name: str
    display_name: Optional[str] = None
    relationship_type: Optional[str] = None
    relationship_strength: Optional[float] = None
    trigger_stage: Optional[str] = None


class IndustryView(BaseModel):
    primary: Optional[Dict[str, Any]] = None
    allied: List[AlliedIndustry] = Field(default_factory=list)


class Contact360(BaseModel):
    """360-degree contact snapshot."""

    contact: Contact
    variables: List[Variable] = Field(default_factory=list)
    variables_by_name: Dict[str, Variable] = Field(default_factory=dict)
    interactions: List[Interaction] = Field(default_factory=list)
    timeline_summary: TimelineSummary
    scores: ContactScores
    tasks: List[Dict[str, Any]] = Field(default_factory=list)
    industry: IndustryView = Field(default_factory=IndustryView)
