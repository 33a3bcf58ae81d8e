"""
Condition tree evaluation.

Fields resolve against three namespaces: ``contact.*`` (the contact record),
``variable.*`` (current extracted variables) and ``event.*`` (the event
payload, dotted paths allowed). Unprefixed fields try the contact first, then
the variables.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from models.trigger import (
    AllCondition,
    AnyCondition,
    Condition,
    LeafCondition,
    Operator,
    UnrecognizedCondition,
    normalize_operator,
)
from utils.logging_config import get_logger

logger = get_logger(__name__)

_MISSING = object()


@dataclass
class EvaluationContext:
    contact: Dict[str, Any]
    variables: Dict[str, Any] = field(default_factory=dict)
    event: Dict[str, Any] = field(default_factory=dict)


def _dig(source: Any, path: str) -> Any:
    current = source
    for part in path.split("."):
        if isinstance(current, dict) and part in current:
            current = current[part]
        else:
            return _MISSING
    return current


def resolve_field(name: str, ctx: EvaluationContext) -> Any:
    """Return the field value, or None when it is absent from every namespace."""
    prefix, _, rest = name.partition(".")
    if rest:
        if prefix == "contact":
            value = _dig(ctx.contact, rest)
        elif prefix in ("variable", "variables"):
            value = ctx.variables.get(rest, _MISSING)
        elif prefix == "event":
            value = _dig(ctx.event, rest)
        else:
            value = _dig(ctx.contact, name)
        return None if value is _MISSING else value

    if ctx.contact.get(name) is not None:
        return ctx.contact[name]
    return ctx.variables.get(name)


def _to_number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        return float(value)
    try:
        return float(str(value).strip())
    except ValueError:
        return None


def _loose_equals(actual: Any, expected: Any) -> bool:
    if actual == expected:
        return True
    left, right = _to_number(actual), _to_number(expected)
    if left is not None and right is not None:
        return left == right
    if actual is None or expected is None:
        return False
    return str(actual) == str(expected)


def _contains(actual: Any, needle: Any) -> bool:
    if actual is None or needle is None:
        return False
    target = str(needle).lower()
    if isinstance(actual, (list, tuple, set)):
        return any(target in str(item).lower() for item in actual)
    return target in str(actual).lower()


def _membership(actual: Any, expected: Any) -> bool:
    if not isinstance(expected, (list, tuple, set)):
        return False
    return any(_loose_equals(actual, option) for option in expected)


def _compare(actual: Any, expected: Any, operator: Operator) -> bool:
    left, right = _to_number(actual), _to_number(expected)
    if left is None or right is None:
        return False
    if operator is Operator.GREATER_THAN:
        return left > right
    if operator is Operator.LESS_THAN:
        return left < right
    if operator is Operator.GREATER_THAN_OR_EQUAL:
        return left >= right
    return left <= right


def apply_operator(operator: Operator, actual: Any, expected: Any) -> bool:
    if operator is Operator.EQUALS:
        return _loose_equals(actual, expected)
    if operator is Operator.NOT_EQUALS:
        return not _loose_equals(actual, expected)
    if operator in (
        Operator.GREATER_THAN,
        Operator.LESS_THAN,
        Operator.GREATER_THAN_OR_EQUAL,
        Operator.LESS_THAN_OR_EQUAL,
    ):
        return _compare(actual, expected, operator)
    if operator is Operator.CONTAINS:
        return _contains(actual, expected)
    if operator is Operator.NOT_CONTAINS:
        return not _contains(actual, expected)
    if operator is Operator.IN:
        return _membership(actual, expected)
    if operator is Operator.NOT_IN:
        return not _membership(actual, expected)
    if operator is Operator.EXISTS:
        return actual is not None
    return actual is None


def evaluate_leaf(leaf: LeafCondition, ctx: EvaluationContext) -> bool:
    operator = normalize_operator(leaf.operator)
    if operator is None:
        logger.warning(
            "Unknown condition operator", extra={"operator": leaf.operator, "field": leaf.field}
        )
        return False
    return apply_operator(operator, resolve_field(leaf.field, ctx), leaf.value)


def _evaluate(condition: Condition, ctx: EvaluationContext, matched: List[Dict[str, Any]]) -> bool:
    if isinstance(condition, LeafCondition):
        if evaluate_leaf(condition, ctx):
            matched.append(condition.snapshot())
            return True
        return False
    if isinstance(condition, AllCondition):
        return all(_evaluate(child, ctx, matched) for child in condition.conditions)
    if isinstance(condition, AnyCondition):
        return any(_evaluate(child, ctx, matched) for child in condition.conditions)
    if isinstance(condition, UnrecognizedCondition):
        logger.warning("Unrecognized condition shape", extra={"condition": condition.raw})
        return False
    raise TypeError(f"Unhandled condition node: {type(condition).__name__}")


def evaluate_condition(
    condition: Optional[Condition], ctx: EvaluationContext
) -> Tuple[bool, List[Dict[str, Any]]]:
    """
    Evaluate a condition tree.

    Returns ``(matched, snapshot)`` where snapshot lists the leaves that held.
    An absent tree matches with an empty snapshot; ``All`` stops at the first
    miss and ``Any`` at the first hit.
    """
    if condition is None:
        return True, []
    matched: List[Dict[str, Any]] = []
    ok = _evaluate(condition, ctx, matched)
    return ok, (matched if ok else [])
