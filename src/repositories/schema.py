"""
SQLAlchemy Core table metadata for the CRM record store.

Production runs on PostgreSQL; unit tests create the same tables on an
in-memory SQLite engine. Ids are UUID strings generated by the engine.
"""

import uuid

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Float,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    text,
)

from utils.clock import utcnow

metadata = MetaData()


def new_id() -> str:
    return str(uuid.uuid4())


def _id_column() -> Column:
    return Column("id", String(36), primary_key=True, default=new_id)


def _created_at() -> Column:
    return Column("created_at", DateTime(timezone=True), nullable=False, default=utcnow)


contacts = Table(
    "crm_contacts",
    metadata,
    _id_column(),
    Column("full_name", String(255)),
    Column("company_name", String(255)),
    Column("phone", String(64), index=True),
    Column("email", String(255), index=True),
    Column("user_type", String(64), default="general"),
    Column("primary_industry", String(128)),
    Column("lifecycle_stage", String(32), nullable=False, default="lead"),
    Column("source", String(64)),
    Column("intent_score", Integer, nullable=False, default=0),
    Column("urgency_score", Integer, nullable=False, default=0),
    Column("engagement_score", Integer, nullable=False, default=0),
    Column("churn_risk", Integer, nullable=False, default=0),
    Column("ltv_prediction", Float, nullable=False, default=0),
    Column("total_interactions", Integer, nullable=False, default=0),
    Column("last_interaction_at", DateTime(timezone=True)),
    Column("last_channel", String(64)),
    Column("tags", JSON),
    _created_at(),
    Column("updated_at", DateTime(timezone=True), default=utcnow, onupdate=utcnow),
)

interactions = Table(
    "crm_interactions",
    metadata,
    _id_column(),
    Column("contact_id", String(36), nullable=False),
    Column("channel", String(64), nullable=False),
    Column("direction", String(16), nullable=False),
    Column("summary", Text),
    Column("raw_content", JSON),
    Column("sentiment", String(16)),
    Column("sentiment_score", Float),
    Column("intent_detected", JSON),
    Column("entities_extracted", JSON),
    Column("duration_seconds", Integer),
    Column("recording_url", Text),
    Column("source_type", String(64)),
    Column("source_id", String(255)),
    Column("occurred_at", DateTime(timezone=True), nullable=False, default=utcnow),
    Index("ix_crm_interactions_contact_occurred", "contact_id", "occurred_at"),
)

variables = Table(
    "crm_variables",
    metadata,
    _id_column(),
    Column("contact_id", String(36), nullable=False),
    Column("variable_name", String(128), nullable=False),
    Column("variable_value", Text, nullable=False),
    Column("variable_type", String(32), nullable=False, default="text"),
    Column("confidence", Float, nullable=False, default=0.8),
    Column("source_channel", String(64)),
    Column("source_interaction_id", String(36)),
    Column("is_current", Boolean, nullable=False, default=True),
    _created_at(),
    # At most one current value per (contact, name).
    Index(
        "uq_crm_variables_current",
        "contact_id",
        "variable_name",
        unique=True,
        postgresql_where=text("is_current"),
        sqlite_where=text("is_current = 1"),
    ),
)

scores = Table(
    "crm_scores",
    metadata,
    _id_column(),
    Column("contact_id", String(36), nullable=False, index=True),
    Column("score_type", String(32), nullable=False),
    Column("score_value", Float, nullable=False),
    Column("score_factors", JSON),
    Column("triggered_by", String(64), nullable=False, default="manual"),
    Column("computed_at", DateTime(timezone=True), nullable=False, default=utcnow),
)

triggers = Table(
    "crm_triggers",
    metadata,
    _id_column(),
    Column("name", String(255), nullable=False),
    Column("description", Text),
    Column("trigger_event", String(64), nullable=False),
    Column("conditions", JSON),
    Column("actions", JSON),
    Column("priority", Integer, nullable=False, default=0),
    Column("cooldown_minutes", Integer, nullable=False, default=0),
    Column("max_executions_per_contact", Integer),
    Column("is_active", Boolean, nullable=False, default=True),
    _created_at(),
)

trigger_executions = Table(
    "crm_trigger_executions",
    metadata,
    _id_column(),
    Column("trigger_id", String(36), nullable=False),
    Column("contact_id", String(36), nullable=False),
    Column("execution_status", String(16), nullable=False),
    Column("matched_conditions", JSON),
    Column("actions_executed", JSON),
    Column("error_message", Text),
    Column("executed_at", DateTime(timezone=True), nullable=False, default=utcnow),
    Index("ix_crm_trigger_executions_lookup", "trigger_id", "contact_id", "executed_at"),
)

tasks = Table(
    "crm_tasks",
    metadata,
    _id_column(),
    Column("contact_id", String(36), nullable=False, index=True),
    Column("title", String(255), nullable=False),
    Column("description", Text),
    Column("task_type", String(64), nullable=False, default="follow_up"),
    Column("priority", String(16), nullable=False, default="medium"),
    Column("status", String(16), nullable=False, default="pending"),
    Column("due_at", DateTime(timezone=True)),
    Column("suggested_channel", String(64)),
    Column("suggested_content", Text),
    Column("ai_generated", Boolean, nullable=False, default=False),
    Column("ai_reason", Text),
    _created_at(),
)

industry_nodes = Table(
    "crm_industry_nodes",
    metadata,
    _id_column(),
    Column("name", String(128), nullable=False, unique=True),
    Column("display_name", String(255)),
    Column("description", Text),
)

allied_industries = Table(
    "crm_allied_industries",
    metadata,
    _id_column(),
    Column("primary_industry_id", String(36), nullable=False),
    Column("allied_industry_id", String(36), nullable=False),
    Column("relationship_type", String(64)),
    Column("relationship_strength", Float),
    Column("trigger_stage", String(32)),
)

notifications = Table(
    "crm_notifications",
    metadata,
    _id_column(),
    Column("contact_id", String(36), nullable=False, index=True),
    Column("trigger_id", String(36)),
    Column("notification_type", String(64)),
    Column("channel", String(64)),
    Column("message", Text),
    Column("status", String(16), nullable=False, default="queued"),
    _created_at(),
)

flows = Table(
    "crm_agentic_flows",
    metadata,
    _id_column(),
    Column("name", String(255), nullable=False),
    Column("description", Text),
    Column("is_active", Boolean, nullable=False, default=True),
    _created_at(),
)

flow_nodes = Table(
    "crm_flow_nodes",
    metadata,
    _id_column(),
    Column("flow_id", String(36), nullable=False, index=True),
    Column("node_type", String(32), nullable=False),
    Column("label", String(255)),
    Column("config", JSON),
    Column("position_x", Float),
    Column("position_y", Float),
    _created_at(),
)

flow_edges = Table(
    "crm_flow_edges",
    metadata,
    _id_column(),
    Column("flow_id", String(36), nullable=False, index=True),
    Column("source_node_id", String(36), nullable=False),
    Column("target_node_id", String(36), nullable=False),
    Column("label", String(255)),
    Column("condition", JSON),
)

flow_executions = Table(
    "crm_flow_executions",
    metadata,
    _id_column(),
    Column("flow_id", String(36), nullable=False),
    Column("contact_id", String(36), nullable=False),
    Column("contact_flow_id", String(36)),
    Column("status", String(16), nullable=False, default="running"),
    Column("triggered_by", String(32), nullable=False, default="manual"),
    Column("nodes_executed", JSON),
    Column("error_message", Text),
    Column("started_at", DateTime(timezone=True), nullable=False, default=utcnow),
    Column("completed_at", DateTime(timezone=True)),
)

contact_flows = Table(
    "crm_contact_flows",
    metadata,
    _id_column(),
    Column("contact_id", String(36), nullable=False),
    Column("flow_id", String(36), nullable=False),
    Column("is_enabled", Boolean, nullable=False, default=True),
    Column("priority", Integer, nullable=False, default=0),
    Column("execution_count", Integer, nullable=False, default=0),
    Column("last_executed_at", DateTime(timezone=True)),
)
