"""
Runtime settings for the automation engine Lambdas.

Mirrors the deployment ``Settings`` dataclass: plain defaults, overridden from
environment variables by ``from_environment``.
"""

from dataclasses import dataclass
import os
from typing import Optional


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    return int(raw)


@dataclass
class EngineSettings:
    """Knobs for scoring, trigger evaluation and the record store."""

    environment: str = "dev"

    # Scoring
    score_batch_limit: int = 1000
    interaction_window: int = 20

    # Chaining policy between stages
    chain_score_triggers: bool = True
    auto_process_ingested: bool = False

    # Caches (seconds, 0 disables)
    trigger_cache_ttl_seconds: int = 0
    contact_cache_ttl_seconds: int = 30

    # Record store
    store_timeout_ms: int = 5000
    interactions_backend: str = "sql"  # sql | dynamodb
    interactions_table: str = "crm-interactions"

    # Notifications outbox -> SQS (optional)
    notifications_queue_url: Optional[str] = None

    @classmethod
    def from_environment(cls) -> "EngineSettings":
        """Load settings from environment variables."""
        return cls(
            environment=os.environ.get("ENVIRONMENT", "dev"),
            score_batch_limit=_env_int("SCORE_BATCH_LIMIT", 1000),
            interaction_window=_env_int("INTERACTION_WINDOW", 20),
            chain_score_triggers=_env_bool("CHAIN_SCORE_TRIGGERS", True),
            auto_process_ingested=_env_bool("AUTO_PROCESS_INGESTED", False),
            trigger_cache_ttl_seconds=_env_int("TRIGGER_CACHE_TTL_SECONDS", 0),
            contact_cache_ttl_seconds=_env_int("CONTACT_CACHE_TTL_SECONDS", 30),
            store_timeout_ms=_env_int("STORE_TIMEOUT_MS", 5000),
            interactions_backend=os.environ.get("INTERACTIONS_BACKEND", "sql").lower(),
            interactions_table=os.environ.get("INTERACTIONS_TABLE", "crm-interactions"),
            notifications_queue_url=os.environ.get("NOTIFICATIONS_QUEUE_URL") or None,
        )
