"""Trigger (declarative rule) models and the recursive condition tree."""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field, field_validator

from models.common import OptionalUtcDatetime


class TriggerEvent(str, Enum):
    """Event kinds a trigger can listen to."""

    NEW_INTERACTION = "new_interaction"
    SCORE_CHANGE = "score_change"
    LIFECYCLE_CHANGE = "lifecycle_change"
    MANUAL = "manual"


class Operator(str, Enum):
    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    GREATER_THAN = "greater_than"
    LESS_THAN = "less_than"
    GREATER_THAN_OR_EQUAL = "greater_than_or_equal"
    LESS_THAN_OR_EQUAL = "less_than_or_equal"
    CONTAINS = "contains"
    NOT_CONTAINS = "not_contains"
    IN = "in"
    NOT_IN = "not_in"
    EXISTS = "exists"
    NOT_EXISTS = "not_exists"


OPERATOR_ALIASES: Dict[str, Operator] = {
    "eq": Operator.EQUALS,
    "neq": Operator.NOT_EQUALS,
    "gt": Operator.GREATER_THAN,
    "lt": Operator.LESS_THAN,
    "gte": Operator.GREATER_THAN_OR_EQUAL,
    "lte": Operator.LESS_THAN_OR_EQUAL,
}


def normalize_operator(raw: Any) -> Optional[Operator]:
    """Map an operator name or alias onto ``Operator``; None if unknown."""
    if raw is None:
        return None
    name = str(raw).strip().lower()
    if name in OPERATOR_ALIASES:
        return OPERATOR_ALIASES[name]
    try:
        return Operator(name)
    except ValueError:
        return None


class LeafCondition(BaseModel):
    """``{field, operator, value}``; the operator stays raw so unknown ones can be reported."""

    field: str
    operator: str
    value: Any = None

    def snapshot(self) -> Dict[str, Any]:
        return {"field": self.field, "operator": self.operator, "value": self.value}


class AllCondition(BaseModel):
    """AND over children."""

    conditions: List["Condition"] = Field(default_factory=list)


class AnyCondition(BaseModel):
    """OR over children."""

    conditions: List["Condition"] = Field(default_factory=list)


class UnrecognizedCondition(BaseModel):
    """A condition blob of unknown shape; never matches."""

    raw: Any = None


Condition = Union[LeafCondition, AllCondition, AnyCondition, UnrecognizedCondition]

AllCondition.model_rebuild()
AnyCondition.model_rebuild()


def parse_condition(raw: Any) -> Optional[Condition]:
    """
    Build the condition tree from its stored JSON shape.

    Returns None for an empty/absent tree (which always matches).
    """
    if raw is None:
        return None
    if isinstance(raw, list):
        return AllCondition(conditions=[c for c in map(parse_condition, raw) if c is not None])
    if not isinstance(raw, dict):
        return UnrecognizedCondition(raw=raw)
    if not raw:
        return None
    if isinstance(raw.get("all"), list):
        return AllCondition(
            conditions=[c for c in map(parse_condition, raw["all"]) if c is not None]
        )
    if isinstance(raw.get("any"), list):
        return AnyCondition(
            conditions=[c for c in map(parse_condition, raw["any"]) if c is not None]
        )
    if raw.get("field"):
        return LeafCondition(
            field=str(raw["field"]),
            operator=str(raw.get("operator") or ""),
            value=raw.get("value"),
        )
    return UnrecognizedCondition(raw=raw)


class Trigger(BaseModel):
    """A declarative rule read from configuration."""

    id: str
    name: str
    description: Optional[str] = None
    trigger_event: str
    conditions: Optional[Any] = None
    actions: List[Dict[str, Any]] = Field(default_factory=list)
    priority: int = 0
    cooldown_minutes: int = 0
    max_executions_per_contact: Optional[int] = None
    is_active: bool = True
    created_at: OptionalUtcDatetime = None

    @field_validator("actions", mode="before")
    @classmethod
    def _wrap_single_action(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, dict):
            return [value]
        return value

    @field_validator("priority", "cooldown_minutes", mode="before")
    @classmethod
    def _int_default(cls, value: Any) -> Any:
        return 0 if value is None else value

    def condition_tree(self) -> Optional[Condition]:
        return parse_condition(self.conditions)


class TriggerExecution(BaseModel):
    """Audit record of one attempted firing."""

    id: str
    trigger_id: str
    contact_id: str
    execution_status: str
    matched_conditions: Any = None
    actions_executed: Optional[Dict[str, Any]] = None
    error_message: Optional[str] = None
    executed_at: OptionalUtcDatetime = None


class SelectedAction(BaseModel):
    """An action chosen by the evaluator, tagged with why it was chosen."""

    trigger_id: str
    trigger_name: str
    action: Dict[str, Any]
    matched_conditions: List[Dict[str, Any]] = Field(default_factory=list)


class EvaluateTriggersRequest(BaseModel):
    """Payload of POST /triggers/evaluate."""

    contact_id: str
    trigger_event: str
    event_data: Optional[Dict[str, Any]] = None


class TriggerEvaluation(BaseModel):
    contact_id: str
    trigger_event: str
    triggers_evaluated: int = 0
    actions_to_execute: List[SelectedAction] = Field(default_factory=list)
