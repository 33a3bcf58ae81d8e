"""
Record store wiring.

Builds the pooled SQLAlchemy engine (from ``DATABASE_URL`` or an RDS secret in
Secrets Manager) and bundles the repositories every service works against.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from typing import Any, Optional

import boto3
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.pool import QueuePool

from repositories.contact_repo import ContactRepository
from repositories.dynamodb_repo import DynamoDbRepository
from repositories.flow_repo import FlowRepository
from repositories.industry_repo import IndustryRepository
from repositories.interaction_repo import InteractionRepository
from repositories.locks import ContactLockManager
from repositories.notification_repo import NotificationRepository
from repositories.score_repo import ScoreRepository
from repositories.sqs_repo import NotificationQueue
from repositories.task_repo import TaskRepository
from repositories.trigger_repo import TriggerRepository
from repositories.variable_repo import VariableRepository
from utils.cache_service import LRUCache
from utils.error_handling import StoreNotConfiguredError
from utils.logging_config import get_logger
from utils.settings import EngineSettings

logger = get_logger(__name__)

# Connection pooling for Lambda reuse.
_engine: Optional[Engine] = None
_store: Optional[Store] = None


def get_db_engine(settings: Optional[EngineSettings] = None) -> Engine:
    """Get or create SQLAlchemy engine with connection pooling."""
    global _engine
    if _engine is None:
        settings = settings or EngineSettings.from_environment()
        db_url = os.environ.get("DATABASE_URL")
        if not db_url:
            secret_arn = os.environ.get("DB_SECRET_ARN")
            if secret_arn:
                db_url = _secret_to_db_url(secret_arn)
        if not db_url:
            raise StoreNotConfiguredError()

        connect_args = {}
        if db_url.startswith("postgresql"):
            connect_args["options"] = f"-c statement_timeout={settings.store_timeout_ms}"
        _engine = create_engine(
            db_url,
            poolclass=QueuePool,
            pool_size=1,
            max_overflow=2,
            pool_pre_ping=True,
            pool_recycle=300,
            connect_args=connect_args,
        )
    return _engine


def reset_engine() -> None:
    """Drop the cached engine and store (tests, credential rotation)."""
    global _engine, _store
    _store = None
    if _engine is not None:
        _engine.dispose()
    _engine = None


def _secret_to_db_url(secret_arn: str) -> Optional[str]:
    """Build a SQLAlchemy URL from an RDS secret."""
    try:
        sm = boto3.client("secretsmanager")
        secret = json.loads(sm.get_secret_value(SecretId=secret_arn)["SecretString"])
    except Exception as exc:
        logger.warning("Failed to load DB secret", extra={"error": str(exc)})
        return None
    host = secret.get("host")
    port = secret.get("port", 5432)
    username = secret.get("username")
    password = secret.get("password")
    dbname = secret.get("dbname", "postgres")
    if not (host and username and password):
        return None
    return f"postgresql+psycopg2://{username}:{password}@{host}:{port}/{dbname}"


@dataclass
class Store:
    """Every repository the engine touches, sharing one engine."""

    engine: Engine
    settings: EngineSettings = field(default_factory=EngineSettings)
    interactions: Any = None
    notification_queue: Optional[NotificationQueue] = None

    def __post_init__(self) -> None:
        self.contacts = ContactRepository(self.engine)
        self.variables = VariableRepository(self.engine)
        self.scores = ScoreRepository(self.engine)
        self.triggers = TriggerRepository(self.engine)
        self.tasks = TaskRepository(self.engine)
        self.industries = IndustryRepository(self.engine)
        self.flows = FlowRepository(self.engine)
        self.notifications = NotificationRepository(self.engine)
        self.locks = ContactLockManager(self.engine)
        # 360 views, shared so every writer in the process can drop stale ones.
        self.contact_views = LRUCache(
            max_size=100, ttl_seconds=self.settings.contact_cache_ttl_seconds
        )
        if self.interactions is None:
            if self.settings.interactions_backend == "dynamodb":
                self.interactions = DynamoDbRepository(self.settings.interactions_table)
            else:
                self.interactions = InteractionRepository(self.engine)
        if self.notification_queue is None and self.settings.notifications_queue_url:
            self.notification_queue = NotificationQueue(self.settings.notifications_queue_url)

    def invalidate_contact(self, contact_id: str) -> None:
        """Forget the cached 360 view after a write to the contact."""
        self.contact_views.delete(f"contact360:{contact_id}")

    @classmethod
    def from_environment(cls) -> "Store":
        settings = EngineSettings.from_environment()
        return cls(engine=get_db_engine(settings), settings=settings)


def get_store() -> Store:
    """Process-wide store shared by every handler of a warm Lambda."""
    global _store
    if _store is None:
        _store = Store.from_environment()
    return _store
