"""
Pydantic model validation tests.

Ensures all models validate correctly and reject invalid data.
No AWS connection required.

Run with: pytest tests/unit/test_models.py -v
"""

import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest
from pydantic import ValidationError

# Add src to path to simulate Lambda environment
SRC_PATH = Path(__file__).parent.parent.parent / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))


class TestContact:
    """Test Contact model defaults."""

    def test_nulls_become_defaults(self):
        from models.contact import Contact

        contact = Contact(id="c-1", tags=None, intent_score=None, ltv_prediction=None)
        assert contact.tags == []
        assert contact.intent_score == 0
        assert contact.ltv_prediction == 0

    def test_naive_datetimes_are_utc(self):
        from models.contact import Contact

        contact = Contact(id="c-1", last_interaction_at=datetime(2026, 1, 1, 12, 0))
        assert contact.last_interaction_at.tzinfo == timezone.utc

    def test_as_fields_is_json_friendly(self):
        from models.contact import Contact

        fields = Contact(id="c-1", created_at=datetime(2026, 1, 1, tzinfo=timezone.utc)).as_fields()
        assert isinstance(fields["created_at"], str)
        assert fields["lifecycle_stage"] == "lead"


class TestIngestInteractionRequest:
    """Test ingestion payload validation."""

    def test_valid_request(self):
        from models.contact import IngestInteractionRequest

        request = IngestInteractionRequest(
            email="a@example.com", channel=" email ", direction="outbound", content="Hello"
        )
        assert request.channel == "email"
        assert request.intents == []

    def test_direction_must_be_known(self):
        from models.contact import IngestInteractionRequest

        with pytest.raises(ValidationError):
            IngestInteractionRequest(phone="1", channel="sms", direction="sideways", content="x")

    def test_sentiment_score_bounds(self):
        from models.contact import IngestInteractionRequest

        with pytest.raises(ValidationError):
            IngestInteractionRequest(
                phone="1", channel="sms", direction="inbound", content="x", sentiment_score=1.5
            )

    def test_variables_are_stringified(self):
        from models.contact import ExtractedVariable

        variable = ExtractedVariable(name=" budget ", value=1200000)
        assert variable.name == "budget"
        assert variable.value == "1200000"


class TestScoreModels:
    def test_score_set_bounds(self):
        from models.scoring import ScoreSet

        with pytest.raises(ValidationError):
            ScoreSet(intent=101, urgency=0, engagement=0, churn_risk=0, ltv=0)

    def test_event_payload_includes_deltas(self):
        from models.scoring import ScoreComputation, ScoreSet

        computation = ScoreComputation(
            contact_id="c-1",
            scores=ScoreSet(intent=60, urgency=20, engagement=10, churn_risk=5, ltv=0),
            previous=ScoreSet(intent=40, urgency=20, engagement=10, churn_risk=5, ltv=0),
        )
        payload = computation.event_payload()
        assert payload["intent_score_delta"] == 20
        assert payload["previous_intent_score"] == 40
        assert payload["changed_scores"] == ["intent"]

    def test_first_computation_changes_everything(self):
        from models.scoring import ScoreComputation, ScoreSet

        computation = ScoreComputation(
            contact_id="c-1",
            scores=ScoreSet(intent=0, urgency=0, engagement=0, churn_risk=0, ltv=0),
        )
        assert computation.changed_scores() == ["intent", "urgency", "engagement", "churn_risk", "ltv"]


class TestTrigger:
    def test_single_action_is_wrapped(self):
        from models.trigger import Trigger

        trigger = Trigger(id="t", name="n", trigger_event="manual", actions={"type": "create_task"})
        assert trigger.actions == [{"type": "create_task"}]

    def test_null_actions_and_priority(self):
        from models.trigger import Trigger

        trigger = Trigger(id="t", name="n", trigger_event="manual", actions=None, priority=None)
        assert trigger.actions == []
        assert trigger.priority == 0

    def test_operator_aliases(self):
        from models.trigger import Operator, normalize_operator

        assert normalize_operator("GTE") is Operator.GREATER_THAN_OR_EQUAL
        assert normalize_operator("not_in") is Operator.NOT_IN
        assert normalize_operator("between") is None


class TestActions:
    def test_add_tag_alias(self):
        from models.action import TagContactAction, parse_action

        action = parse_action({"type": "add_tag", "tag_name": "vip"})
        assert isinstance(action, TagContactAction)
        assert action.all_tags() == ["vip"]

    def test_task_title_alias(self):
        from models.action import parse_action

        action = parse_action({"action_type": "create_task", "config": {"task_title": "Ring them"}})
        assert action.title == "Ring them"

    def test_invalid_operation(self):
        from models.action import parse_action
        from utils.error_handling import ValidationError as AppValidationError

        with pytest.raises(AppValidationError):
            parse_action({"type": "update_score", "score_type": "intent", "operation": "multiply"})


class TestFlowModels:
    def test_display_name_falls_back_to_id(self):
        from models.flow import FlowNode

        assert FlowNode(id="n-1", flow_id="f", node_type="ai").display_name == "n-1"
        assert FlowNode(id="n-1", flow_id="f", node_type="ai", label="Draft").display_name == "Draft"

    def test_null_config(self):
        from models.flow import FlowNode

        assert FlowNode(id="n", flow_id="f", node_type="delay", config=None).config == {}

    def test_run_request_requires_ids(self):
        from models.flow import RunFlowRequest

        with pytest.raises(ValidationError):
            RunFlowRequest(contact_id="c")
