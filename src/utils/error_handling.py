"""Custom exceptions and helpers for consistent error responses."""

import base64
import functools
import json
from typing import Any, Callable, Dict

from pydantic import ValidationError as PydanticValidationError

from utils.logging_config import get_logger

logger = get_logger(__name__)


class AppError(Exception):
    """Base class for application errors."""

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


class NotFoundError(AppError):
    """Raised when a contact, flow or relationship is missing."""

    def __init__(self, message: str = "Resource not found"):
        super().__init__(message, status_code=404)


class ValidationError(AppError):
    """Raised when input validation fails."""

    def __init__(self, message: str = "Invalid input"):
        super().__init__(message, status_code=400)


class UnknownActionError(ValidationError):
    """Raised when an action payload names a type nobody handles."""


class StoreNotConfiguredError(AppError):
    """Raised when neither DATABASE_URL nor DB_SECRET_ARN resolves."""

    def __init__(self, message: str = "Record store is not configured"):
        super().__init__(message, status_code=503)


def json_response(status: int, body: Dict[str, Any]) -> Dict[str, Any]:
    """Format a JSON API Gateway HTTP API response."""
    return {
        "statusCode": status,
        "headers": {"Content-Type": "application/json"},
        "body": json.dumps(body, default=str),
    }


def to_response(error: AppError) -> Dict[str, Any]:
    """Convert an AppError into a Lambda proxy integration response."""
    return json_response(
        error.status_code, {"error": str(error), "status": "error"}
    )


def parse_json_body(event: Dict[str, Any]) -> Dict[str, Any]:
    """Decode the request body of an HTTP API event."""
    raw = event.get("body") or "{}"
    if event.get("isBase64Encoded"):
        raw = base64.b64decode(raw).decode()
    try:
        body = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValidationError(f"Invalid JSON body: {exc.msg}") from exc
    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object")
    return body


def api_handler(func: Callable) -> Callable:
    """
    Wrap a Lambda handler with the shared error policy.

    Request-shape failures answer 400, ``AppError`` its own status, anything
    else 500 with the stack trace logged.
    """

    @functools.wraps(func)
    def wrapper(event, context):
        try:
            return func(event, context)
        except PydanticValidationError as exc:
            errors = exc.errors()
            message = errors[0]["msg"] if errors else "Invalid request"
            return json_response(400, {"error": message, "status": "error"})
        except AppError as exc:
            return to_response(exc)
        except Exception as exc:
            logger.exception("Unhandled error", extra={"handler": func.__module__})
            return json_response(500, {"error": str(exc), "status": "error"})

    return wrapper
