"""Handler for GET /contacts/{id}."""

from typing import Optional

from utils.error_handling import api_handler, json_response
from utils.logging_config import get_logger

logger = get_logger(__name__)

# Lazy-loaded service to avoid import-time DB connections
_contact_service: Optional["ContactService"] = None


def _get_contact_service():
    """Lazy-load ContactService."""
    global _contact_service
    if _contact_service is None:
        from services.contact_service import ContactService
        from services.store import get_store
        _contact_service = ContactService(get_store())
    return _contact_service


def _contact_id_from(event) -> Optional[str]:
    path_params = event.get("pathParameters") or {}
    if path_params.get("id"):
        return path_params["id"]
    path = event.get("requestContext", {}).get("http", {}).get("path", "")
    parts = [part for part in path.split("/") if part]
    if len(parts) >= 2 and parts[0] == "contacts":
        return parts[1]
    return None


@api_handler
def lambda_handler(event, context):
    """Return a 360-degree contact snapshot."""
    contact_id = _contact_id_from(event)
    if not contact_id:
        return json_response(400, {"error": "contact id is required", "status": "error"})

    view = _get_contact_service().get_contact_360(contact_id)
    logger.info("Contact 360 served", extra={"contact_id": contact_id})
    return {
        "statusCode": 200,
        "headers": {"Content-Type": "application/json"},
        "body": view.model_dump_json(),
    }
