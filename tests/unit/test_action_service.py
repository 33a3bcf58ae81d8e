"""
Action executor: one handler per action type, audited through trigger executions.
"""
from unittest.mock import MagicMock

import pytest

from models.action import ACTION_MODELS, UpdateScoreAction, parse_action
from repositories.schema import allied_industries, industry_nodes
from services.action_service import ActionExecutor, ActionSource
from utils.error_handling import UnknownActionError, ValidationError


@pytest.fixture
def executor(store):
    return ActionExecutor(store)


@pytest.fixture
def allied_relationship(store):
    store.industries.execute(
        industry_nodes.insert().values(id="ind-re", name="real_estate", display_name="Real Estate")
    )
    store.industries.execute(
        industry_nodes.insert().values(id="ind-ins", name="insurance", display_name="Home Insurance")
    )
    store.industries.execute(
        allied_industries.insert().values(
            id="rel-1",
            primary_industry_id="ind-re",
            allied_industry_id="ind-ins",
            relationship_type="complementary",
            relationship_strength=0.9,
            trigger_stage="customer",
        )
    )
    return "rel-1"


def test_every_action_model_has_a_handler(executor):
    assert executor.handled_types == set(ACTION_MODELS)


def test_parse_action_merges_nested_config():
    action = parse_action({"action_type": "update_score", "config": {"score_type": "intent", "value": 5}})
    assert isinstance(action, UpdateScoreAction)
    assert action.score_value == 5


def test_parse_action_unknown_type():
    with pytest.raises(UnknownActionError):
        parse_action({"type": "teleport"})


def test_create_task_records_success(store, executor, make_contact):
    contact = make_contact()

    result = executor.execute(
        contact.id,
        "trig-1",
        "Hot lead",
        {"type": "create_task", "title": "Call now", "priority": "high"},
        matched_conditions=[{"field": "intent_score", "operator": "gt", "value": 70}],
    )

    assert result.success is True
    tasks = store.tasks.for_contact(contact.id)
    assert len(tasks) == 1
    assert tasks[0]["id"] == result.result["task_id"]
    assert tasks[0]["priority"] == "high"
    assert tasks[0]["ai_generated"] is True
    assert tasks[0]["ai_reason"] == "Triggered by rule Hot lead"

    [execution] = store.triggers.executions_for(contact.id)
    assert execution["id"] == result.execution_id
    assert execution["execution_status"] == "success"
    assert execution["actions_executed"]["result"] == {"task_id": result.result["task_id"]}
    assert execution["matched_conditions"][0]["field"] == "intent_score"


def test_update_lifecycle(store, executor, make_contact):
    contact = make_contact()

    result = executor.execute(contact.id, "trig-1", None, {"type": "update_lifecycle", "stage": "qualified"})

    assert result.result == {"new_stage": "qualified"}
    assert store.contacts.get(contact.id).lifecycle_stage == "qualified"


def test_invalid_lifecycle_stage_is_recorded_as_failure(store, executor, make_contact):
    contact = make_contact()

    result = executor.execute(
        contact.id, "trig-1", None, {"type": "update_lifecycle", "lifecycle_stage": "vip"}
    )

    assert result.success is False
    assert "Invalid lifecycle stage" in result.error
    assert store.contacts.get(contact.id).lifecycle_stage == "lead"
    [execution] = store.triggers.executions_for(contact.id)
    assert execution["execution_status"] == "failed"
    assert execution["error_message"] == result.error


def test_tag_contact_unions_tags(store, executor, make_contact):
    contact = make_contact(tags=["vip"])

    result = executor.execute(
        contact.id, "trig-1", None, {"type": "tag_contact", "tags": ["vip", "investor"]}
    )

    assert result.result["total_tags"] == 2
    assert store.contacts.get(contact.id).tags == ["vip", "investor"]


def test_tag_contact_requires_tags(executor, make_contact):
    contact = make_contact()
    result = executor.execute(contact.id, "trig-1", None, {"type": "tag_contact"})
    assert result.success is False
    assert result.error == "tags are required"


@pytest.mark.parametrize(
    "operation,amount,expected",
    [("set", 150, 100), ("add", 15, 55), ("subtract", 60, 0)],
)
def test_update_score_is_clamped_and_recorded(store, executor, make_contact, operation, amount, expected):
    contact = make_contact(intent_score=40)

    result = executor.execute(
        contact.id,
        "trig-1",
        None,
        {"type": "update_score", "score_type": "intent", "operation": operation, "score_value": amount},
    )

    assert result.result == {"score_type": "intent", "new_value": expected}
    assert store.contacts.get(contact.id).intent_score == expected
    [row] = store.scores.history(contact.id)
    assert row["triggered_by"] == "trigger_automation"
    assert row["score_value"] == expected


def test_update_score_accepts_column_name(store, executor, make_contact):
    contact = make_contact()
    result = executor.apply(
        contact.id,
        {"type": "update_score", "score_type": "engagement_score", "operation": "add", "value": 10},
        ActionSource(kind="flow", id="node-1", name="Boost"),
    )
    assert result == {"score_type": "engagement", "new_value": 10}
    assert store.scores.history(contact.id)[0]["triggered_by"] == "flow_automation"


def test_update_score_rejects_unknown_type(executor, make_contact):
    contact = make_contact()
    result = executor.execute(contact.id, "trig-1", None, {"type": "update_score", "score_type": "karma"})
    assert result.success is False
    assert "Invalid score type" in result.error


def test_allied_industry_creates_cross_sell_task(store, executor, make_contact, allied_relationship):
    contact = make_contact(primary_industry="real_estate")

    result = executor.execute(
        contact.id,
        "trig-1",
        None,
        {"type": "allied_industry_trigger", "allied_industry_id": allied_relationship},
    )

    assert result.success is True
    assert result.result["allied_industry"] == "Home Insurance"
    [task] = store.tasks.for_contact(contact.id)
    assert task["title"] == "Allied Industry: Home Insurance"
    assert task["task_type"] == "cross_sell"
    assert task["priority"] == "high"


def test_allied_industry_missing_relationship_fails(store, executor, make_contact):
    contact = make_contact()
    result = executor.execute(
        contact.id, "trig-1", None, {"type": "allied_industry_trigger", "allied_industry_id": "nope"}
    )
    assert result.success is False
    assert result.error == "Allied industry not found"
    assert store.tasks.for_contact(contact.id) == []


def test_send_notification_queues_outbox_row(store, executor, make_contact):
    contact = make_contact()

    result = executor.execute(
        contact.id,
        "trig-1",
        None,
        {"type": "send_notification", "config": {"channel": "email", "message": "Hot lead!"}},
    )

    assert result.result["status"] == "queued"
    [notification] = store.notifications.for_contact(contact.id)
    assert notification["id"] == result.result["notification_id"]
    assert notification["trigger_id"] == "trig-1"
    assert notification["message"] == "Hot lead!"


def test_send_notification_publishes_to_queue(store, executor, make_contact):
    contact = make_contact()
    queue = MagicMock()
    queue.publish.return_value = "msg-123"
    store.notification_queue = queue

    result = executor.execute(
        contact.id, "trig-1", None, {"type": "send_notification", "channel": "slack", "message": "hi"}
    )

    assert result.result["message_id"] == "msg-123"
    published = queue.publish.call_args[0][0]
    assert published["channel"] == "slack"
    assert published["contact_id"] == contact.id


def test_send_notification_publish_failure_marks_outbox_failed(store, executor, make_contact):
    contact = make_contact()
    queue = MagicMock()
    queue.publish.side_effect = RuntimeError("sqs down")
    store.notification_queue = queue

    result = executor.execute(
        contact.id, "trig-1", None, {"type": "send_notification", "channel": "email", "message": "hi"}
    )

    assert result.success is False
    assert result.error == "sqs down"
    [notification] = store.notifications.for_contact(contact.id)
    assert notification["status"] == "failed"
    [execution] = store.triggers.executions_for(contact.id)
    assert execution["status"] == "failed"


def test_unknown_action_type_is_recorded_as_failure(store, executor, make_contact):
    contact = make_contact()

    result = executor.execute(contact.id, "trig-1", None, {"type": "teleport"})

    assert result.success is False
    assert result.error == "Unknown action type: teleport"
    [execution] = store.triggers.executions_for(contact.id)
    assert execution["execution_status"] == "failed"


def test_missing_action_type_writes_nothing(store, executor, make_contact):
    contact = make_contact()
    with pytest.raises(ValidationError):
        executor.execute(contact.id, "trig-1", None, {"title": "no type"})
    assert store.triggers.executions_for(contact.id) == []


def test_missing_contact_is_recorded_as_failure(store, executor):
    result = executor.execute("ghost", "trig-1", None, {"type": "create_task"})
    assert result.success is False
    assert result.error == "Contact not found"
    assert len(store.triggers.executions_for("ghost")) == 1


def test_failures_count_towards_cooldown(store, executor, make_contact, make_trigger):
    from services.trigger_service import TriggerEvaluator

    contact = make_contact()
    trigger_id = make_trigger(cooldown_minutes=30, actions=[{"type": "teleport"}])

    executor.execute(contact.id, trigger_id, "broken", {"type": "teleport"})

    assert TriggerEvaluator(store).evaluate(contact.id, "score_change").actions_to_execute == []
