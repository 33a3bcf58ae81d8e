"""Handler for POST /triggers/evaluate."""

from typing import Optional

from models.trigger import EvaluateTriggersRequest
from utils.error_handling import api_handler, json_response, parse_json_body

# Lazy-loaded service to avoid import-time DB connections
_trigger_evaluator: Optional["TriggerEvaluator"] = None


def _get_trigger_evaluator():
    """Lazy-load TriggerEvaluator."""
    global _trigger_evaluator
    if _trigger_evaluator is None:
        from services.store import get_store
        from services.trigger_service import TriggerEvaluator
        _trigger_evaluator = TriggerEvaluator(get_store())
    return _trigger_evaluator


@api_handler
def lambda_handler(event, context):
    """Return the actions that should fire for a contact and event."""
    request = EvaluateTriggersRequest.model_validate(parse_json_body(event))
    evaluation = _get_trigger_evaluator().evaluate(
        request.contact_id, request.trigger_event, request.event_data
    )
    return json_response(200, {"success": True, **evaluation.model_dump(mode="json")})
