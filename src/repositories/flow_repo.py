"""Flow graphs, flow executions and contact-flow assignments."""

from typing import Any, Dict, List, Optional

from sqlalchemy import select, update

from models.flow import ContactFlow, Flow, FlowEdge, FlowExecution, FlowNode, FlowStatus
from repositories.postgres_repo import PostgresRepository
from repositories.schema import (
    contact_flows,
    flow_edges,
    flow_executions,
    flow_nodes,
    flows,
    new_id,
)
from utils.clock import utcnow


class FlowRepository(PostgresRepository):
    def get_flow(self, flow_id: str) -> Optional[Flow]:
        row = self.fetch_one(select(flows).where(flows.c.id == flow_id))
        return Flow.model_validate(row) if row else None

    def nodes(self, flow_id: str) -> List[FlowNode]:
        rows = self.fetch_all(
            select(flow_nodes)
            .where(flow_nodes.c.flow_id == flow_id)
            .order_by(flow_nodes.c.created_at, flow_nodes.c.id)
        )
        return [FlowNode.model_validate(row) for row in rows]

    def edges(self, flow_id: str) -> List[FlowEdge]:
        rows = self.fetch_all(select(flow_edges).where(flow_edges.c.flow_id == flow_id))
        return [FlowEdge.model_validate(row) for row in rows]

    def start_execution(
        self,
        flow_id: str,
        contact_id: str,
        contact_flow_id: Optional[str] = None,
        triggered_by: str = "manual",
    ) -> str:
        execution_id = new_id()
        self.execute(
            flow_executions.insert().values(
                id=execution_id,
                flow_id=flow_id,
                contact_id=contact_id,
                contact_flow_id=contact_flow_id,
                status=FlowStatus.RUNNING.value,
                triggered_by=triggered_by,
                nodes_executed=[],
                started_at=utcnow(),
            )
        )
        return execution_id

    def finish_execution(
        self,
        execution_id: str,
        status: FlowStatus,
        nodes_executed: List[Dict[str, Any]],
        error_message: Optional[str] = None,
    ) -> None:
        self.execute(
            update(flow_executions)
            .where(flow_executions.c.id == execution_id)
            .values(
                status=status.value,
                nodes_executed=nodes_executed,
                error_message=error_message,
                completed_at=utcnow(),
            )
        )

    def get_execution(self, execution_id: str) -> Optional[FlowExecution]:
        row = self.fetch_one(select(flow_executions).where(flow_executions.c.id == execution_id))
        return FlowExecution.model_validate(row) if row else None

    def assign(self, contact_id: str, flow_id: str, priority: int = 0) -> str:
        assignment_id = new_id()
        self.execute(
            contact_flows.insert().values(
                id=assignment_id,
                contact_id=contact_id,
                flow_id=flow_id,
                priority=priority,
                is_enabled=True,
                execution_count=0,
            )
        )
        return assignment_id

    def get_assignment(self, assignment_id: str) -> Optional[ContactFlow]:
        row = self.fetch_one(select(contact_flows).where(contact_flows.c.id == assignment_id))
        return ContactFlow.model_validate(row) if row else None

    def record_run(self, assignment_id: str) -> None:
        """Bump the assignment's run counter and last-run time."""
        self.execute(
            update(contact_flows)
            .where(contact_flows.c.id == assignment_id)
            .values(
                execution_count=contact_flows.c.execution_count + 1,
                last_executed_at=utcnow(),
            )
        )
