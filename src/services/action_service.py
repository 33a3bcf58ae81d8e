"""
Action execution.

Applies one typed action to the record store. ``execute`` is the trigger
path: it always writes exactly one ``crm_trigger_executions`` row and turns
any failure into a failed result. ``apply`` is the raw path shared with the
flow runner: it raises and writes no audit row.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Optional

from models.action import (
    ActionResult,
    AlliedIndustryAction,
    CreateTaskAction,
    SendNotificationAction,
    TagContactAction,
    UpdateLifecycleAction,
    UpdateScoreAction,
    action_type_of,
    parse_action,
)
from models.contact import LifecycleStage
from models.scoring import SCORE_FIELDS
from services.store import Store
from utils.clock import utcnow
from utils.error_handling import NotFoundError, ValidationError
from utils.logging_config import get_logger
from utils.validators import ensure_present

logger = get_logger(__name__)

TASK_DUE = timedelta(hours=24)
CROSS_SELL_DUE = timedelta(hours=48)

# Flow configs name the contact column ("engagement_score") instead of the type.
SCORE_COLUMNS = {column: score_type for score_type, column in SCORE_FIELDS.items()}


@dataclass
class ActionSource:
    """Who asked for the action; drives audit tags and default wording."""

    kind: str = "trigger"  # trigger | flow
    id: Optional[str] = None
    name: Optional[str] = None

    @property
    def triggered_by(self) -> str:
        return f"{self.kind}_automation"

    def default_reason(self) -> str:
        if self.kind == "flow":
            return f"Triggered by flow step {self.name or self.id}"
        return f"Triggered by rule {self.name or self.id}"


class ActionExecutor:
    """Dispatches each action model to its handler."""

    def __init__(self, store: Store, clock: Callable[[], datetime] = utcnow):
        self.store = store
        self.clock = clock
        self._handlers: Dict[type, Callable[[str, Any, ActionSource], Dict[str, Any]]] = {
            CreateTaskAction: self._create_task,
            UpdateLifecycleAction: self._update_lifecycle,
            TagContactAction: self._tag_contact,
            UpdateScoreAction: self._update_score,
            AlliedIndustryAction: self._allied_industry,
            SendNotificationAction: self._send_notification,
        }

    @property
    def handled_types(self):
        return set(self._handlers)

    def apply(
        self, contact_id: str, raw_action: Dict[str, Any], source: Optional[ActionSource] = None
    ) -> Dict[str, Any]:
        """Validate and apply an action; raises on any failure."""
        action = parse_action(raw_action)
        handler = self._handlers[type(action)]
        try:
            return handler(contact_id, action, source or ActionSource())
        finally:
            self.store.invalidate_contact(contact_id)

    def execute(
        self,
        contact_id: str,
        trigger_id: str,
        trigger_name: Optional[str],
        action: Dict[str, Any],
        matched_conditions: Any = None,
    ) -> ActionResult:
        ensure_present(contact_id, "contact_id")
        ensure_present(trigger_id, "trigger_id")
        action_type = action_type_of(action or {})
        if not action_type:
            raise ValidationError("action.type is required")

        source = ActionSource(kind="trigger", id=trigger_id, name=trigger_name)
        result: Dict[str, Any] = {}
        error: Optional[str] = None

        with self.store.locks.hold(contact_id):
            try:
                result = self.apply(contact_id, action, source)
            except Exception as exc:
                error = str(exc) or type(exc).__name__
                logger.warning(
                    "Action failed",
                    extra={
                        "contact_id": contact_id,
                        "trigger_id": trigger_id,
                        "action_type": action_type,
                        "error": error,
                    },
                )

            execution_id = self.store.triggers.record_execution(
                trigger_id=trigger_id,
                contact_id=contact_id,
                status="failed" if error else "success",
                matched_conditions=matched_conditions,
                actions_executed={**action, "result": result},
                error_message=error,
            )

        if error is None:
            logger.info(
                "Action executed",
                extra={"contact_id": contact_id, "trigger_id": trigger_id, "action_type": action_type},
            )
        return ActionResult(
            success=error is None,
            action_type=action_type,
            result=result,
            error=error,
            execution_id=execution_id,
        )

    def _create_task(
        self, contact_id: str, action: CreateTaskAction, source: ActionSource
    ) -> Dict[str, Any]:
        self._require_contact(contact_id)
        task = self.store.tasks.create(
            contact_id,
            title=action.title or "AI Generated Task",
            description=action.description,
            task_type=action.task_type,
            priority=action.priority,
            due_at=action.due_at or self.clock() + TASK_DUE,
            suggested_channel=action.suggested_channel,
            suggested_content=action.suggested_content,
            ai_generated=True,
            ai_reason=action.reason or source.default_reason(),
        )
        return {"task_id": task["id"]}

    def _update_lifecycle(
        self, contact_id: str, action: UpdateLifecycleAction, source: ActionSource
    ) -> Dict[str, Any]:
        stage = action.lifecycle_stage
        if not stage:
            raise ValidationError("lifecycle_stage is required")
        if stage not in LifecycleStage.values():
            raise ValidationError(f"Invalid lifecycle stage: {stage}")
        self.store.contacts.update_fields(contact_id, {"lifecycle_stage": stage})
        return {"new_stage": stage}

    def _tag_contact(
        self, contact_id: str, action: TagContactAction, source: ActionSource
    ) -> Dict[str, Any]:
        tags = action.all_tags()
        if not tags:
            raise ValidationError("tags are required")
        merged = self.store.contacts.add_tags(contact_id, tags)
        return {"added_tags": tags, "total_tags": len(merged)}

    def _update_score(
        self, contact_id: str, action: UpdateScoreAction, source: ActionSource
    ) -> Dict[str, Any]:
        if not action.score_type:
            raise ValidationError("score_type is required")
        score_type = SCORE_COLUMNS.get(action.score_type, action.score_type)
        column = SCORE_FIELDS.get(score_type)
        if column is None:
            raise ValidationError(f"Invalid score type: {action.score_type}")
        new_value = self.store.contacts.adjust_score(
            contact_id, column, action.operation, action.score_value
        )
        self.store.scores.record(
            contact_id,
            score_type,
            new_value,
            factors={"operation": action.operation, "amount": action.score_value},
            triggered_by=source.triggered_by,
        )
        return {"score_type": score_type, "new_value": new_value}

    def _allied_industry(
        self, contact_id: str, action: AlliedIndustryAction, source: ActionSource
    ) -> Dict[str, Any]:
        if not action.allied_industry_id:
            raise ValidationError("allied_industry_id is required")
        allied = self.store.industries.get_relationship(action.allied_industry_id)
        if allied is None:
            raise NotFoundError("Allied industry not found")
        self._require_contact(contact_id)

        partner = allied.get("partner_display_name") or allied.get("partner_name")
        task = self.store.tasks.create(
            contact_id,
            title=f"Allied Industry: {partner or 'Partner Outreach'}",
            description="Cross-sell opportunity identified for allied industry",
            task_type="cross_sell",
            priority="high",
            due_at=self.clock() + CROSS_SELL_DUE,
            ai_generated=True,
            ai_reason=f"Allied industry trigger: {allied.get('relationship_type') or 'partnership'}",
        )
        return {"task_id": task["id"], "allied_industry": partner}

    def _send_notification(
        self, contact_id: str, action: SendNotificationAction, source: ActionSource
    ) -> Dict[str, Any]:
        self._require_contact(contact_id)
        record = self.store.notifications.enqueue(
            contact_id,
            notification_type=action.notification_type,
            channel=action.channel,
            message=action.message,
            trigger_id=source.id if source.kind == "trigger" else None,
        )
        result = {
            "notification_id": record["id"],
            "notification_type": action.notification_type,
            "channel": action.channel,
            "status": "queued",
        }
        if self.store.notification_queue is not None:
            try:
                result["message_id"] = self.store.notification_queue.publish(record)
            except Exception:
                # The outbox must not keep a "queued" row nobody will deliver.
                self.store.notifications.mark_failed(record["id"])
                raise
        return result

    def _require_contact(self, contact_id: str) -> None:
        if self.store.contacts.get(contact_id) is None:
            raise NotFoundError("Contact not found")
