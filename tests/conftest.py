"""
Pytest configuration to ensure paths are set up correctly for tests.

This allows imports like `from handlers import health_check` to work
when running tests, simulating the Lambda environment where code
is deployed from the src/ directory. It also provides an in-memory SQLite
record store with the full schema plus small seeding helpers.
"""

import os
import sys
from datetime import timedelta
from pathlib import Path

import boto3
import pytest


def _ensure_paths_on_sys_path() -> None:
    """Add repository root AND src/ to sys.path if missing.

    The src/ directory is added to simulate Lambda's import behavior,
    where Code.from_asset("src") makes src/ the root of the package.
    """
    repo_root = Path(__file__).resolve().parents[1]
    src_root = repo_root / "src"

    # Add repo root first (for imports like infrastructure.*)
    root_str = str(repo_root)
    if root_str not in sys.path:
        sys.path.insert(0, root_str)

    # Add src/ for Lambda-style imports (from handlers import ...)
    src_str = str(src_root)
    if src_str not in sys.path:
        sys.path.insert(0, src_str)


_ensure_paths_on_sys_path()

# Ensure boto3 has offline-friendly defaults so tests do not require AWS access.
os.environ.setdefault("AWS_REGION", "eu-west-2")
os.environ.setdefault("AWS_DEFAULT_REGION", "eu-west-2")
os.environ.setdefault("AWS_ACCESS_KEY_ID", "test")
os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "test")
os.environ.setdefault("AWS_SESSION_TOKEN", "test")
os.environ.setdefault("ENVIRONMENT", "dev")

# Lambda environment variables used by handlers
os.environ.setdefault("DB_SECRET_ARN", "arn:aws:secretsmanager:eu-west-2:123456789:secret:test")
os.environ.setdefault("INTERACTIONS_TABLE", "test-interactions-table")

# Create a default boto3 session so resources/clients do not error during import.
boto3.setup_default_session(region_name="eu-west-2")

from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from repositories.schema import metadata  # noqa: E402
from services.store import Store  # noqa: E402
from utils.clock import utcnow  # noqa: E402
from utils.settings import EngineSettings  # noqa: E402


@pytest.fixture
def engine():
    """Fresh in-memory SQLite database with every CRM table."""
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def settings():
    # Caches off so every test sees its own writes.
    return EngineSettings(trigger_cache_ttl_seconds=0, contact_cache_ttl_seconds=0)


@pytest.fixture
def store(engine, settings):
    return Store(engine=engine, settings=settings)


@pytest.fixture
def make_contact(store):
    def _make(**fields):
        defaults = {"full_name": "Asha Rao", "email": "asha@example.com"}
        defaults.update(fields)
        return store.contacts.create(**defaults)

    return _make


@pytest.fixture
def add_interaction(store):
    def _add(contact_id, days_ago=0.0, **fields):
        values = {
            "channel": "whatsapp",
            "direction": "inbound",
            "occurred_at": utcnow() - timedelta(days=days_ago),
        }
        values.update(fields)
        return store.interactions.append(contact_id, **values)

    return _add


@pytest.fixture
def make_trigger(store):
    from repositories.schema import new_id, triggers

    def _make(**fields):
        values = {
            "id": new_id(),
            "name": "High intent follow-up",
            "trigger_event": "score_change",
            "conditions": None,
            "actions": [{"type": "create_task", "title": "Call back"}],
            "priority": 0,
            "cooldown_minutes": 0,
            "max_executions_per_contact": None,
            "is_active": True,
            "created_at": utcnow(),
        }
        values.update(fields)
        store.triggers.execute(triggers.insert().values(**values))
        return values["id"]

    return _make
