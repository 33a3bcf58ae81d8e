"""Lightweight validation helpers shared by services."""

from typing import Any

from utils.error_handling import ValidationError


def ensure_present(value: Any, field: str) -> None:
    """Raise ValidationError if value is falsy."""
    if value in (None, "", []):
        raise ValidationError(f"{field} is required")


def clamp_score(value: float, lower: int = 0, upper: int = 100) -> int:
    """Clamp a heuristic score into its bounded range and round it."""
    return int(round(min(upper, max(lower, value))))
