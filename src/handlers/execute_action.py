"""Handler for POST /actions/execute."""

from typing import Optional

from models.action import ExecuteActionRequest
from utils.error_handling import api_handler, json_response, parse_json_body
from utils.validators import ensure_present

# Lazy-loaded service to avoid import-time DB connections
_action_executor: Optional["ActionExecutor"] = None


def _get_action_executor():
    """Lazy-load ActionExecutor."""
    global _action_executor
    if _action_executor is None:
        from services.action_service import ActionExecutor
        from services.store import get_store
        _action_executor = ActionExecutor(get_store())
    return _action_executor


@api_handler
def lambda_handler(event, context):
    """Execute one action; failures come back as ``success: false``, not as errors."""
    payload = parse_json_body(event)
    for field in ("contact_id", "trigger_id", "action"):
        ensure_present(payload.get(field), field)
    request = ExecuteActionRequest.model_validate(payload)
    result = _get_action_executor().execute(
        contact_id=request.contact_id,
        trigger_id=request.trigger_id,
        trigger_name=request.trigger_name,
        action=request.action,
        matched_conditions=request.matched_conditions,
    )
    return json_response(200, result.model_dump(mode="json"))
