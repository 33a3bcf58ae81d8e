"""
Trigger evaluation.

Decides which actions should fire for a contact and an event. Evaluation is a
pure decision: it reads triggers, the execution audit, the contact and its
variables, and never writes.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional

from models.trigger import SelectedAction, Trigger, TriggerEvaluation, TriggerEvent
from services.conditions import EvaluationContext, evaluate_condition
from services.store import Store
from utils.cache_service import LRUCache
from utils.clock import utcnow
from utils.error_handling import NotFoundError, ValidationError
from utils.logging_config import get_logger
from utils.validators import ensure_present

logger = get_logger(__name__)

TRIGGER_EVENTS = {event.value for event in TriggerEvent}


class TriggerEvaluator:
    """Applies cooldown, execution cap and condition tree per active trigger."""

    def __init__(
        self,
        store: Store,
        clock: Callable[[], datetime] = utcnow,
        cache: Optional[LRUCache] = None,
    ):
        self.store = store
        self.clock = clock
        self.cache = cache or LRUCache(
            max_size=16, ttl_seconds=store.settings.trigger_cache_ttl_seconds
        )

    def _active_triggers(self, trigger_event: str) -> List[Trigger]:
        cache_key = f"triggers:{trigger_event}"
        cached = self.cache.get(cache_key)
        if cached is not None:
            return cached
        active = self.store.triggers.active_for_event(trigger_event)
        self.cache.set(cache_key, active)
        return active

    def _skip_reason(self, trigger: Trigger, contact_id: str, now: datetime) -> Optional[str]:
        if trigger.cooldown_minutes and trigger.cooldown_minutes > 0:
            since = now - timedelta(minutes=trigger.cooldown_minutes)
            if self.store.triggers.has_execution_since(trigger.id, contact_id, since):
                return "cooldown"
        if trigger.max_executions_per_contact is not None:
            count = self.store.triggers.count_executions(trigger.id, contact_id)
            if count >= trigger.max_executions_per_contact:
                return "max_executions"
        return None

    def evaluate(
        self,
        contact_id: str,
        trigger_event: str,
        event_data: Optional[Dict[str, Any]] = None,
    ) -> TriggerEvaluation:
        ensure_present(contact_id, "contact_id")
        ensure_present(trigger_event, "trigger_event")
        if trigger_event not in TRIGGER_EVENTS:
            raise ValidationError(f"Unsupported trigger_event: {trigger_event}")

        contact = self.store.contacts.get(contact_id)
        if contact is None:
            raise NotFoundError("Contact not found")

        ctx = EvaluationContext(
            contact=contact.as_fields(),
            variables=self.store.variables.current_values(contact_id),
            event=event_data or {},
        )
        now = self.clock()
        triggers = self._active_triggers(trigger_event)
        selected: List[SelectedAction] = []

        for trigger in triggers:
            reason = self._skip_reason(trigger, contact_id, now)
            if reason:
                logger.info(
                    "Trigger skipped",
                    extra={"trigger_id": trigger.id, "contact_id": contact_id, "reason": reason},
                )
                continue

            matched, snapshot = evaluate_condition(trigger.condition_tree(), ctx)
            if not matched:
                continue

            logger.info(
                "Trigger matched",
                extra={
                    "trigger_id": trigger.id,
                    "trigger_name": trigger.name,
                    "contact_id": contact_id,
                },
            )
            for action in trigger.actions:
                selected.append(
                    SelectedAction(
                        trigger_id=trigger.id,
                        trigger_name=trigger.name,
                        action=action,
                        matched_conditions=snapshot,
                    )
                )

        return TriggerEvaluation(
            contact_id=contact_id,
            trigger_event=trigger_event,
            triggers_evaluated=len(triggers),
            actions_to_execute=selected,
        )
