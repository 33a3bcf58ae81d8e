"""Handler for POST /flows/run."""

from typing import Optional

from models.flow import RunFlowRequest
from utils.error_handling import api_handler, json_response, parse_json_body

# Lazy-loaded service to avoid import-time DB connections
_flow_runner: Optional["FlowRunner"] = None


def _get_flow_runner():
    """Lazy-load FlowRunner."""
    global _flow_runner
    if _flow_runner is None:
        from services.flow_service import FlowRunner
        from services.store import get_store
        _flow_runner = FlowRunner(get_store())
    return _flow_runner


@api_handler
def lambda_handler(event, context):
    """Run a flow for a contact right now."""
    request = RunFlowRequest.model_validate(parse_json_body(event))
    result = _get_flow_runner().run(
        request.contact_id, request.flow_id, request.contact_flow_id
    )
    return json_response(200, result.model_dump(mode="json"))
