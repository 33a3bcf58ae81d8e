"""Flow graph models (nodes, edges, executions)."""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from models.common import OptionalUtcDatetime


class NodeType(str, Enum):
    TRIGGER = "trigger"
    ACTION = "action"
    CONDITION = "condition"
    DELAY = "delay"
    AI = "ai"


class FlowStatus(str, Enum):
    """running -> completed | failed."""

    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class NodeStatus(str, Enum):
    COMPLETED = "completed"
    SKIPPED = "skipped"
    FAILED = "failed"


class Flow(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    is_active: bool = True


class FlowNode(BaseModel):
    """A node; ``position_*`` only matter to the canvas."""

    id: str
    flow_id: str
    node_type: str
    label: Optional[str] = None
    config: Dict[str, Any] = Field(default_factory=dict)
    position_x: Optional[float] = None
    position_y: Optional[float] = None

    @field_validator("config", mode="before")
    @classmethod
    def _config_default(cls, value: Any) -> Any:
        return value or {}

    @property
    def display_name(self) -> str:
        return self.label or self.id


class FlowEdge(BaseModel):
    id: str
    flow_id: str
    source_node_id: str
    target_node_id: str
    label: Optional[str] = None
    condition: Optional[Dict[str, Any]] = None


class NodeOutcome(BaseModel):
    """One entry of the execution trace."""

    node_id: str
    node_type: str
    label: Optional[str] = None
    status: NodeStatus
    executed_at: OptionalUtcDatetime = None
    result: Optional[Dict[str, Any]] = None
    error: Optional[str] = None


class FlowExecution(BaseModel):
    id: str
    flow_id: str
    contact_id: str
    contact_flow_id: Optional[str] = None
    status: FlowStatus
    triggered_by: str = "manual"
    nodes_executed: List[NodeOutcome] = Field(default_factory=list)
    error_message: Optional[str] = None
    started_at: OptionalUtcDatetime = None
    completed_at: OptionalUtcDatetime = None

    @field_validator("nodes_executed", mode="before")
    @classmethod
    def _nodes_default(cls, value: Any) -> Any:
        return value or []


class ContactFlow(BaseModel):
    """Assignment of a flow to a contact."""

    id: str
    contact_id: str
    flow_id: str
    is_enabled: bool = True
    priority: int = 0
    execution_count: int = 0
    last_executed_at: OptionalUtcDatetime = None


class RunFlowRequest(BaseModel):
    """Payload of POST /flows/run."""

    contact_id: str
    flow_id: str
    contact_flow_id: Optional[str] = None


class FlowRunResult(BaseModel):
    success: bool
    execution_id: Optional[str] = None
    status: FlowStatus
    nodes_executed: int = 0
    error: Optional[str] = None
