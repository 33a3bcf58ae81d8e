"""Pydantic models for API payloads and stored records."""

from models.action import (  # noqa: F401
    Action,
    ActionResult,
    ExecuteActionRequest,
    parse_action,
)
from models.contact import (  # noqa: F401
    Contact,
    Direction,
    IngestInteractionRequest,
    IngestionResult,
    Interaction,
    LifecycleStage,
    Variable,
)
from models.customer import Contact360  # noqa: F401
from models.flow import (  # noqa: F401
    FlowEdge,
    FlowNode,
    FlowRunResult,
    FlowStatus,
    NodeType,
    RunFlowRequest,
)
from models.scoring import (  # noqa: F401
    ComputeScoresRequest,
    ScoreBatchResult,
    ScoreComputation,
    ScoreSet,
    ScoreType,
)
from models.trigger import (  # noqa: F401
    EvaluateTriggersRequest,
    SelectedAction,
    Trigger,
    TriggerEvaluation,
    TriggerEvent,
)
