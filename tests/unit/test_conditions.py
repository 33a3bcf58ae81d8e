"""
Condition tree evaluation: operators, namespaces and combinators.
"""
import pytest

from models.trigger import (
    AllCondition,
    AnyCondition,
    LeafCondition,
    UnrecognizedCondition,
    parse_condition,
)
from services.conditions import EvaluationContext, evaluate_condition, evaluate_leaf, resolve_field


@pytest.fixture
def ctx():
    return EvaluationContext(
        contact={
            "intent_score": 75,
            "lifecycle_stage": "lead",
            "company_name": "Acme Realty",
            "tags": ["VIP", "investor"],
            "email": None,
        },
        variables={"budget": "1,200,000", "timeline": "this month"},
        event={"changed_scores": ["intent"], "interaction": {"channel": "whatsapp"}},
    )


@pytest.mark.parametrize(
    "field,operator,value,expected",
    [
        ("intent_score", "gt", 70, True),
        ("intent_score", "greater_than", 80, False),
        ("intent_score", "gte", 75, True),
        ("intent_score", "lt", 75, False),
        ("intent_score", "lte", "75", True),
        ("intent_score", "equals", "75", True),
        ("intent_score", "neq", 75, False),
        ("company_name", "contains", "REALTY", True),
        ("company_name", "not_contains", "realty", False),
        ("tags", "contains", "vip", True),
        ("lifecycle_stage", "in", ["lead", "qualified"], True),
        ("lifecycle_stage", "not_in", ["customer"], True),
        ("lifecycle_stage", "in", "lead", False),
        ("budget", "exists", None, True),
        ("missing_field", "exists", None, False),
        ("email", "not_exists", None, True),
        ("company_name", "gt", 5, False),
    ],
)
def test_operator_table(ctx, field, operator, value, expected):
    leaf = LeafCondition(field=field, operator=operator, value=value)
    assert evaluate_leaf(leaf, ctx) is expected


def test_unknown_operator_never_matches(ctx):
    assert evaluate_leaf(LeafCondition(field="intent_score", operator="between", value=1), ctx) is False


def test_namespaced_fields(ctx):
    assert resolve_field("contact.intent_score", ctx) == 75
    assert resolve_field("variable.timeline", ctx) == "this month"
    assert resolve_field("event.interaction.channel", ctx) == "whatsapp"
    assert resolve_field("event.interaction.missing", ctx) is None


def test_unprefixed_field_prefers_contact_then_variables(ctx):
    ctx.variables["lifecycle_stage"] = "shadowed"
    assert resolve_field("lifecycle_stage", ctx) == "lead"
    assert resolve_field("budget", ctx) == "1,200,000"


def test_parse_condition_shapes():
    assert parse_condition(None) is None
    assert parse_condition({}) is None
    assert isinstance(parse_condition([{"field": "a", "operator": "eq", "value": 1}]), AllCondition)
    assert isinstance(parse_condition({"any": []}), AnyCondition)
    assert isinstance(parse_condition({"field": "a", "operator": "eq"}), LeafCondition)
    assert isinstance(parse_condition({"weird": True}), UnrecognizedCondition)
    assert isinstance(parse_condition("intent > 5"), UnrecognizedCondition)


def test_empty_tree_matches_with_empty_snapshot(ctx):
    assert evaluate_condition(None, ctx) == (True, [])


def test_all_collects_snapshot(ctx):
    tree = parse_condition(
        {
            "all": [
                {"field": "intent_score", "operator": "gt", "value": 70},
                {"field": "variable.budget", "operator": "exists"},
            ]
        }
    )
    matched, snapshot = evaluate_condition(tree, ctx)
    assert matched is True
    assert [leaf["field"] for leaf in snapshot] == ["intent_score", "variable.budget"]


def test_all_fails_on_one_miss(ctx):
    tree = parse_condition(
        [
            {"field": "intent_score", "operator": "gt", "value": 70},
            {"field": "lifecycle_stage", "operator": "eq", "value": "customer"},
        ]
    )
    assert evaluate_condition(tree, ctx) == (False, [])


def test_nested_any_inside_all(ctx):
    tree = parse_condition(
        {
            "all": [
                {"field": "event.changed_scores", "operator": "contains", "value": "intent"},
                {
                    "any": [
                        {"field": "lifecycle_stage", "operator": "eq", "value": "customer"},
                        {"field": "tags", "operator": "contains", "value": "investor"},
                    ]
                },
            ]
        }
    )
    matched, snapshot = evaluate_condition(tree, ctx)
    assert matched is True
    assert snapshot[-1]["value"] == "investor"


def test_unrecognized_shape_is_non_matching(ctx):
    assert evaluate_condition(parse_condition({"weird": True}), ctx) == (False, [])
