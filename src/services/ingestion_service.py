"""
Interaction ingestion.

Resolves (or creates) the contact, appends the interaction with its upstream
annotations, stores extracted variables and bumps the contact's counters.
When ``AUTO_PROCESS_INGESTED`` is on, scoring and ``new_interaction``
triggers run right after.
"""

from __future__ import annotations

from typing import Any, Dict, Optional, Tuple

from models.contact import Contact, IngestInteractionRequest, IngestionResult
from models.trigger import TriggerEvent
from services.automation_service import AutomationService
from services.store import Store
from utils.error_handling import NotFoundError
from utils.logging_config import get_logger

logger = get_logger(__name__)


class IngestionService:
    def __init__(self, store: Store, automation: Optional[AutomationService] = None):
        self.store = store
        self._automation = automation

    @property
    def automation(self) -> AutomationService:
        if self._automation is None:
            self._automation = AutomationService(self.store)
        return self._automation

    def _resolve_contact(self, request: IngestInteractionRequest) -> Tuple[Contact, bool]:
        contacts = self.store.contacts
        if request.contact_id:
            contact = contacts.get(request.contact_id)
            if contact is None:
                raise NotFoundError("Contact not found")
            return contact, False

        contact = None
        if request.phone:
            contact = contacts.find_by_phone(request.phone)
        if contact is None and request.email:
            contact = contacts.find_by_email(request.email)
        if contact is not None:
            return contact, False

        updates = request.contact_updates
        contact = contacts.create(
            phone=request.phone,
            email=request.email,
            full_name=updates.full_name if updates else None,
            company_name=updates.company_name if updates else None,
            user_type=(updates.user_type if updates else None) or "general",
            primary_industry=updates.primary_industry if updates else None,
            source=request.channel,
        )
        logger.info("Created contact", extra={"contact_id": contact.id, "source": request.channel})
        return contact, True

    def ingest(self, request: IngestInteractionRequest) -> IngestionResult:
        contact, is_new = self._resolve_contact(request)

        with self.store.locks.hold(contact.id):
            interaction = self.store.interactions.append(
                contact.id,
                channel=request.channel,
                direction=request.direction.value,
                summary=request.summary,
                raw_content={"text": request.content},
                sentiment=request.sentiment.value if request.sentiment else None,
                sentiment_score=request.sentiment_score,
                intent_detected=list(request.intents),
                entities_extracted=dict(request.entities),
                duration_seconds=request.duration_seconds,
                recording_url=request.recording_url,
                source_type=request.source_type,
                source_id=request.source_id,
                occurred_at=request.occurred_at,
            )

            for variable in request.variables:
                self.store.variables.set_current(
                    contact.id,
                    variable.name,
                    variable.value,
                    variable_type=variable.type,
                    confidence=variable.confidence,
                    source_channel=request.channel,
                    source_interaction_id=interaction.id,
                )

            if request.contact_updates and not is_new:
                fields = request.contact_updates.model_dump(exclude_none=True)
                self.store.contacts.update_fields(contact.id, fields)

            self.store.contacts.increment_interactions(
                contact.id, interaction.occurred_at, request.channel
            )
            self.store.invalidate_contact(contact.id)

            automation = None
            if self.store.settings.auto_process_ingested:
                automation = self._run_automation(contact.id, request, interaction.id)

        logger.info(
            "Interaction ingested",
            extra={
                "contact_id": contact.id,
                "interaction_id": interaction.id,
                "is_new_contact": is_new,
                "variables": len(request.variables),
            },
        )
        return IngestionResult(
            contact_id=contact.id,
            interaction_id=interaction.id,
            is_new_contact=is_new,
            variables_extracted=len(request.variables),
            automation=automation,
        )

    def _run_automation(
        self, contact_id: str, request: IngestInteractionRequest, interaction_id: str
    ) -> Optional[Dict[str, Any]]:
        event_data = {
            "interaction_id": interaction_id,
            "channel": request.channel,
            "direction": request.direction.value,
            "sentiment": request.sentiment.value if request.sentiment else None,
            "intents": list(request.intents),
        }
        try:
            computation = self.automation.scoring.compute_scores(contact_id)
            outcome = self.automation.process_contact(
                contact_id, TriggerEvent.NEW_INTERACTION.value, event_data
            )
        except Exception:
            logger.exception("Post-ingestion automation failed", extra={"contact_id": contact_id})
            return None
        return {"scores": computation.scores.model_dump(), **outcome.as_dict()}
