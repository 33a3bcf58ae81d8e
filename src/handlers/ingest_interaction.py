"""
Interaction ingestion handler.

Records one interaction (with its upstream annotations) and returns the
resolved contact. Scoring and trigger evaluation only run inline when
AUTO_PROCESS_INGESTED is enabled.
"""

from __future__ import annotations

import uuid
from typing import Optional

from models.contact import IngestInteractionRequest
from utils.error_handling import api_handler, json_response, parse_json_body
from utils.logging_config import get_logger

logger = get_logger(__name__)

# Lazy-loaded service to avoid import-time DB connections
_ingestion_service: Optional["IngestionService"] = None


def _get_ingestion_service():
    """Lazy-load IngestionService."""
    global _ingestion_service
    if _ingestion_service is None:
        from services.ingestion_service import IngestionService
        from services.store import get_store
        _ingestion_service = IngestionService(get_store())
    return _ingestion_service


@api_handler
def lambda_handler(event, context):
    """Handle POST /interactions."""
    correlation_id = str(uuid.uuid4())
    request = IngestInteractionRequest.model_validate(parse_json_body(event))
    result = _get_ingestion_service().ingest(request)
    logger.info(
        "Interaction accepted",
        extra={"correlation_id": correlation_id, "contact_id": result.contact_id},
    )
    return json_response(
        200,
        {"success": True, "correlation_id": correlation_id, **result.model_dump(mode="json")},
    )
