"""
Typed action vocabulary shared by triggers and flows.

Stored actions are loose JSON (``{"type": ..., "config": {...}, ...}``);
``parse_action`` normalises them into one member of the ``Action`` union.
"""

from __future__ import annotations

from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, TypeAdapter, field_validator
from pydantic import ValidationError as PydanticValidationError

from models.common import OptionalUtcDatetime
from utils.error_handling import UnknownActionError, ValidationError

# Older flow configs used different names for the same action.
ACTION_TYPE_ALIASES: Dict[str, str] = {
    "add_tag": "tag_contact",
}


class _ActionBase(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class CreateTaskAction(_ActionBase):
    type: Literal["create_task"] = "create_task"
    title: str = Field(
        default="AI Generated Task", validation_alias=AliasChoices("title", "task_title")
    )
    description: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("description", "task_description")
    )
    task_type: str = "follow_up"
    priority: str = "medium"
    due_at: OptionalUtcDatetime = None
    suggested_channel: Optional[str] = None
    suggested_content: Optional[str] = None
    reason: Optional[str] = None


class UpdateLifecycleAction(_ActionBase):
    type: Literal["update_lifecycle"] = "update_lifecycle"
    lifecycle_stage: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("lifecycle_stage", "stage")
    )


class TagContactAction(_ActionBase):
    type: Literal["tag_contact"] = "tag_contact"
    tags: List[str] = Field(default_factory=list)
    tag: Optional[str] = Field(default=None, validation_alias=AliasChoices("tag", "tag_name"))

    @field_validator("tags", mode="before")
    @classmethod
    def _tags_list(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, str):
            return [value]
        return value

    def all_tags(self) -> List[str]:
        tags = [t for t in self.tags if t]
        if self.tag and self.tag not in tags:
            tags.append(self.tag)
        return tags


class UpdateScoreAction(_ActionBase):
    type: Literal["update_score"] = "update_score"
    score_type: Optional[str] = None
    score_value: float = Field(default=0, validation_alias=AliasChoices("score_value", "value"))
    operation: Literal["set", "add", "subtract"] = "set"

    @field_validator("score_value", mode="before")
    @classmethod
    def _value_default(cls, value: Any) -> Any:
        return 0 if value is None else value


class AlliedIndustryAction(_ActionBase):
    type: Literal["allied_industry_trigger"] = "allied_industry_trigger"
    allied_industry_id: Optional[str] = None


class SendNotificationAction(_ActionBase):
    type: Literal["send_notification"] = "send_notification"
    notification_type: Optional[str] = None
    channel: Optional[str] = None
    message: Optional[str] = None


ACTION_MODELS = (
    CreateTaskAction,
    UpdateLifecycleAction,
    TagContactAction,
    UpdateScoreAction,
    AlliedIndustryAction,
    SendNotificationAction,
)

Action = Annotated[Union[ACTION_MODELS], Field(discriminator="type")]

_action_adapter: TypeAdapter = TypeAdapter(Action)

ACTION_TYPES = {model.model_fields["type"].default for model in ACTION_MODELS}


def action_type_of(raw: Dict[str, Any]) -> Optional[str]:
    """Resolve the type tag of a stored action (``type`` or ``action_type``, top-level or nested)."""
    if not isinstance(raw, dict):
        return None
    config = raw.get("config") if isinstance(raw.get("config"), dict) else {}
    action_type = (
        raw.get("type")
        or raw.get("action_type")
        or config.get("type")
        or config.get("action_type")
    )
    if not action_type:
        return None
    return ACTION_TYPE_ALIASES.get(action_type, action_type)


def parse_action(raw: Dict[str, Any]):
    """Merge nested config into the top level and validate into an ``Action``."""
    action_type = action_type_of(raw)
    if not action_type:
        raise ValidationError("action.type is required")
    if action_type not in ACTION_TYPES:
        raise UnknownActionError(f"Unknown action type: {action_type}")

    config = raw.get("config") if isinstance(raw.get("config"), dict) else {}
    merged = {**config, **{k: v for k, v in raw.items() if k != "config"}}
    merged.pop("action_type", None)
    merged["type"] = action_type
    try:
        return _action_adapter.validate_python(merged)
    except PydanticValidationError as exc:
        raise ValidationError(f"Invalid {action_type} action: {exc.errors()[0]['msg']}") from exc


class ExecuteActionRequest(BaseModel):
    """Payload of POST /actions/execute."""

    contact_id: str
    trigger_id: str
    trigger_name: Optional[str] = None
    action: Dict[str, Any]
    matched_conditions: Any = None


class ActionResult(BaseModel):
    """Outcome returned to callers of the executor."""

    success: bool
    action_type: Optional[str] = None
    result: Dict[str, Any] = Field(default_factory=dict)
    error: Optional[str] = None
    execution_id: Optional[str] = None
