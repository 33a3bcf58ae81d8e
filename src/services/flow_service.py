"""
Manual flow runs.

Walks a flow graph breadth-first from its trigger node, running each node at
most once. The first failing node stops the run; the execution record keeps
the per-node trace either way.
"""

from __future__ import annotations

from collections import deque
from datetime import datetime, timedelta
from typing import Any, Callable, Deque, Dict, List, Optional, Tuple

from models.contact import Contact
from models.flow import FlowNode, FlowRunResult, FlowStatus, NodeOutcome, NodeStatus, NodeType
from models.trigger import LeafCondition
from services.action_service import ActionExecutor, ActionSource
from services.conditions import EvaluationContext, evaluate_leaf
from services.store import Store
from utils.clock import utcnow
from utils.error_handling import NotFoundError, ValidationError
from utils.logging_config import get_logger
from utils.validators import ensure_present

logger = get_logger(__name__)

DELAY_UNITS = {"minutes": 1, "hours": 60, "days": 1440}


def delay_of(config: Dict[str, Any]) -> timedelta:
    """Delay configured on a node (``delay_minutes/hours/days`` or ``duration`` + ``unit``)."""
    minutes = 0.0
    for unit, factor in DELAY_UNITS.items():
        value = config.get(f"delay_{unit}")
        if value:
            minutes += float(value) * factor
    if config.get("duration"):
        unit = str(config.get("unit") or "minutes").lower()
        minutes += float(config["duration"]) * DELAY_UNITS.get(unit, 1)
    return timedelta(minutes=minutes)


class FlowRunner:
    """Runs a flow for one contact on demand."""

    def __init__(
        self,
        store: Store,
        executor: Optional[ActionExecutor] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.clock = clock
        self.executor = executor or ActionExecutor(store, clock=clock)
        self._node_handlers: Dict[NodeType, Callable[[FlowNode, Contact], Tuple[NodeStatus, Dict[str, Any]]]] = {
            NodeType.TRIGGER: self._run_trigger,
            NodeType.ACTION: self._run_action,
            NodeType.CONDITION: self._run_condition,
            NodeType.DELAY: self._run_delay,
            NodeType.AI: self._run_ai,
        }

    def run(
        self,
        contact_id: str,
        flow_id: str,
        contact_flow_id: Optional[str] = None,
        triggered_by: str = "manual",
    ) -> FlowRunResult:
        ensure_present(contact_id, "contact_id")
        ensure_present(flow_id, "flow_id")

        execution_id = self.store.flows.start_execution(
            flow_id, contact_id, contact_flow_id, triggered_by
        )
        log_extra = {"flow_id": flow_id, "contact_id": contact_id, "execution_id": execution_id}

        if self.store.flows.get_flow(flow_id) is None:
            self.store.flows.finish_execution(execution_id, FlowStatus.FAILED, [], "Flow not found")
            raise NotFoundError("Flow not found")
        contact = self.store.contacts.get(contact_id)
        if contact is None:
            self.store.flows.finish_execution(
                execution_id, FlowStatus.FAILED, [], "Contact not found"
            )
            raise NotFoundError("Contact not found")

        nodes = self.store.flows.nodes(flow_id)
        edges = self.store.flows.edges(flow_id)
        logger.info(
            "Flow run started", extra={**log_extra, "nodes": len(nodes), "edges": len(edges)}
        )

        with self.store.locks.hold(contact_id):
            trace, error = self._traverse(nodes, edges, contact)

        status = FlowStatus.FAILED if error else FlowStatus.COMPLETED
        self.store.flows.finish_execution(
            execution_id,
            status,
            [outcome.model_dump(mode="json") for outcome in trace],
            error,
        )
        if status is FlowStatus.COMPLETED and contact_flow_id:
            self.store.flows.record_run(contact_flow_id)

        logger.info(
            "Flow run finished",
            extra={**log_extra, "status": status.value, "nodes_executed": len(trace)},
        )
        return FlowRunResult(
            success=error is None,
            execution_id=execution_id,
            status=status,
            nodes_executed=len(trace),
            error=error,
        )

    def _traverse(self, nodes, edges, contact: Contact) -> Tuple[List[NodeOutcome], Optional[str]]:
        if not nodes:
            return [], None

        by_id = {node.id: node for node in nodes}
        outgoing: Dict[str, List[str]] = {}
        for edge in edges:
            outgoing.setdefault(edge.source_node_id, []).append(edge.target_node_id)

        start = next((n for n in nodes if n.node_type == NodeType.TRIGGER.value), nodes[0])
        queue: Deque[FlowNode] = deque([start])
        visited = set()
        trace: List[NodeOutcome] = []

        while queue:
            node = queue.popleft()
            if node.id in visited:
                continue
            visited.add(node.id)

            try:
                status, result = self._run_node(node, contact)
            except Exception as exc:
                message = str(exc) or type(exc).__name__
                trace.append(
                    NodeOutcome(
                        node_id=node.id,
                        node_type=node.node_type,
                        label=node.label,
                        status=NodeStatus.FAILED,
                        executed_at=self.clock(),
                        error=message,
                    )
                )
                logger.warning(
                    "Flow node failed",
                    extra={"node_id": node.id, "contact_id": contact.id, "error": message},
                )
                return trace, f'Node "{node.display_name}" failed: {message}'

            trace.append(
                NodeOutcome(
                    node_id=node.id,
                    node_type=node.node_type,
                    label=node.label,
                    status=status,
                    executed_at=self.clock(),
                    result=result,
                )
            )
            if node.node_type == NodeType.ACTION.value:
                contact = self.store.contacts.get(contact.id) or contact

            for target_id in outgoing.get(node.id, []):
                target = by_id.get(target_id)
                if target is not None and target.id not in visited:
                    queue.append(target)

        return trace, None

    def _run_node(self, node: FlowNode, contact: Contact) -> Tuple[NodeStatus, Dict[str, Any]]:
        try:
            node_type = NodeType(node.node_type)
        except ValueError:
            raise ValidationError(f"Unknown node type: {node.node_type}") from None
        return self._node_handlers[node_type](node, contact)

    def _run_trigger(self, node: FlowNode, contact: Contact):
        return NodeStatus.COMPLETED, {"triggered": True}

    def _run_action(self, node: FlowNode, contact: Contact):
        source = ActionSource(kind="flow", id=node.id, name=node.display_name)
        return NodeStatus.COMPLETED, self.executor.apply(contact.id, node.config, source)

    def _run_condition(self, node: FlowNode, contact: Contact):
        field = node.config.get("field")
        operator = node.config.get("operator")
        if not field or not operator:
            return NodeStatus.COMPLETED, {"evaluated": True, "passed": True}
        leaf = LeafCondition(field=str(field), operator=str(operator), value=node.config.get("value"))
        passed = evaluate_leaf(leaf, EvaluationContext(contact=contact.as_fields()))
        return NodeStatus.COMPLETED, {"evaluated": True, "passed": passed}

    def _run_delay(self, node: FlowNode, contact: Contact):
        resume_at = self.clock() + delay_of(node.config)
        return NodeStatus.SKIPPED, {
            "skipped": True,
            "reason": "Delays are skipped in manual runs",
            "resume_at": resume_at.isoformat(),
        }

    def _run_ai(self, node: FlowNode, contact: Contact):
        return NodeStatus.COMPLETED, {"ai_processed": True, "note": "AI processing simulated"}
