"""
Single entrypoint Lambda that routes HTTP API requests to thin handler modules.

Why one Lambda?
- Keeps warm caches (trigger definitions, contact views) across routes.
- One connection pool per container instead of one per route.
"""

from typing import Callable, Tuple

from . import (
    compute_scores,
    contact_360,
    evaluate_triggers,
    execute_action,
    health_check,
    ingest_interaction,
    run_flow,
)
from utils.error_handling import json_response


def lambda_handler(event, context):
    """
    Entry point invoked by API Gateway HTTP API.

    The event contains the HTTP method and path; we route it to the correct
    handler while keeping shared setup (logging, error handling) centralized.
    """
    method = event.get("requestContext", {}).get("http", {}).get("method", "")
    path = event.get("requestContext", {}).get("http", {}).get("path", "")
    route_key = f"{method.upper()} {path.rstrip('/') or '/'}"

    # Exact routes first, then prefixes for path parameters.
    route_table: Tuple[Tuple[str, Callable], ...] = (
        ("GET /health", health_check.lambda_handler),
        ("POST /scores/compute", compute_scores.lambda_handler),
        ("POST /triggers/evaluate", evaluate_triggers.lambda_handler),
        ("POST /actions/execute", execute_action.lambda_handler),
        ("POST /flows/run", run_flow.lambda_handler),
        ("POST /interactions", ingest_interaction.lambda_handler),
    )
    prefix_table: Tuple[Tuple[str, Callable], ...] = (
        ("GET /contacts/", contact_360.lambda_handler),
    )

    for key, handler in route_table:
        if route_key == key:
            return handler(event, context)
    for prefix, handler in prefix_table:
        if route_key.startswith(prefix):
            return handler(event, context)

    return json_response(404, {"message": "Route not found", "route": route_key})
