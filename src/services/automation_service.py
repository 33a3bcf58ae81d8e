"""
Score -> evaluate -> execute chaining.

Composes the scoring, trigger and action services in-process. Failures in the
trigger/action stages never undo a score computation: they are logged and the
batch carries on.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from models.action import ActionResult
from models.scoring import ComputeScoresRequest, ScoreBatchResult
from models.trigger import TriggerEvent
from services.action_service import ActionExecutor
from services.scoring_service import ScoringService
from services.store import Store
from services.trigger_service import TriggerEvaluator
from utils.logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class AutomationOutcome:
    """What one evaluate + execute pass did for a contact."""

    triggers_evaluated: int = 0
    triggers_fired: int = 0
    tasks_created: int = 0
    results: List[ActionResult] = field(default_factory=list)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "triggers_evaluated": self.triggers_evaluated,
            "triggers_fired": self.triggers_fired,
            "tasks_created": self.tasks_created,
            "actions": [result.model_dump() for result in self.results],
        }


class AutomationService:
    """Entry point used by the compute_scores and ingestion handlers."""

    def __init__(
        self,
        store: Store,
        scoring: Optional[ScoringService] = None,
        evaluator: Optional[TriggerEvaluator] = None,
        executor: Optional[ActionExecutor] = None,
    ):
        self.store = store
        self.scoring = scoring or ScoringService(store)
        self.evaluator = evaluator or TriggerEvaluator(store)
        self.executor = executor or ActionExecutor(store)

    def process_contact(
        self,
        contact_id: str,
        trigger_event: str,
        event_data: Optional[Dict[str, Any]] = None,
    ) -> AutomationOutcome:
        """Evaluate triggers for one event and execute every selected action."""
        outcome = AutomationOutcome()
        with self.store.locks.hold(contact_id):
            evaluation = self.evaluator.evaluate(contact_id, trigger_event, event_data)
            outcome.triggers_evaluated = evaluation.triggers_evaluated
            fired = set()
            for selected in evaluation.actions_to_execute:
                result = self.executor.execute(
                    contact_id=contact_id,
                    trigger_id=selected.trigger_id,
                    trigger_name=selected.trigger_name,
                    action=selected.action,
                    matched_conditions=selected.matched_conditions,
                )
                outcome.results.append(result)
                if result.success:
                    fired.add(selected.trigger_id)
                    if result.result.get("task_id"):
                        outcome.tasks_created += 1
            outcome.triggers_fired = len(fired)
        return outcome

    def compute_scores(self, request: ComputeScoresRequest) -> ScoreBatchResult:
        if request.contact_id:
            contact_ids = [request.contact_id]
        else:
            contact_ids = self.store.contacts.list_ids(self.store.settings.score_batch_limit)

        logger.info("Computing scores", extra={"contacts": len(contact_ids)})
        batch = ScoreBatchResult()
        for contact_id in contact_ids:
            try:
                with self.store.locks.hold(contact_id):
                    computation = self.scoring.compute_scores(contact_id)
                    batch.processed += 1
                    if self.store.settings.chain_score_triggers:
                        self._chain_score_change(contact_id, computation.event_payload(), batch)
            except Exception as exc:
                message = f"Error computing scores for {contact_id}: {exc}"
                logger.error(message, extra={"contact_id": contact_id})
                batch.errors.append(message)
        return batch

    def _chain_score_change(
        self, contact_id: str, payload: Dict[str, Any], batch: ScoreBatchResult
    ) -> None:
        try:
            outcome = self.process_contact(contact_id, TriggerEvent.SCORE_CHANGE.value, payload)
        except Exception:
            logger.exception("score_change automation failed", extra={"contact_id": contact_id})
            return
        batch.triggers_fired += outcome.triggers_fired
        batch.tasks_created += outcome.tasks_created
