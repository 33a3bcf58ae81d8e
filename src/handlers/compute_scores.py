"""Handler for POST /scores/compute and the nightly scoring schedule."""

from typing import Optional

from models.scoring import ComputeScoresRequest
from utils.error_handling import api_handler, json_response, parse_json_body
from utils.logging_config import get_logger

logger = get_logger(__name__)

# Lazy-loaded service to avoid import-time DB connections
_automation_service: Optional["AutomationService"] = None


def _get_automation_service():
    """Lazy-load AutomationService."""
    global _automation_service
    if _automation_service is None:
        from services.automation_service import AutomationService
        from services.store import get_store
        _automation_service = AutomationService(get_store())
    return _automation_service


@api_handler
def lambda_handler(event, context):
    """Recompute scores for one contact or for the whole batch."""
    request = ComputeScoresRequest.model_validate(parse_json_body(event))
    results = _get_automation_service().compute_scores(request)
    logger.info(
        "Scores computed",
        extra={"processed": results.processed, "errors": len(results.errors)},
    )
    return json_response(200, {"success": True, "results": results.model_dump()})


def scheduled_handler(event, context):
    """EventBridge schedule target: recompute every contact."""
    results = _get_automation_service().compute_scores(ComputeScoresRequest(compute_all=True))
    logger.info(
        "Scheduled score run finished",
        extra={
            "processed": results.processed,
            "triggers_fired": results.triggers_fired,
            "errors": len(results.errors),
        },
    )
    return results.model_dump()
