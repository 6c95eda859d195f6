"""
Effort and impact estimates for remediation items.

Effort is in person-hours, rounded half-up and kept between 1 and 40.
"""
import math
from typing import Dict

from a11y_engine.features.audit.schemas.issue import Complexity, IssueSeverity

MIN_EFFORT_HOURS = 1
MAX_EFFORT_HOURS = 40

BASE_EFFORT_HOURS: Dict[str, int] = {"critical": 8, "major": 4, "minor": 2}

COMPLEXITY_SURCHARGE: Dict[str, float] = {"low": 0.0, "medium": 0.5, "high": 1.0}

# +15% of base for each of the first 5 scopes, +5% for each one after that
SCOPE_SURCHARGE_FIRST = 0.15
SCOPE_SURCHARGE_REST = 0.05
SCOPE_SURCHARGE_THRESHOLD = 5

IMPACT_BASE: Dict[str, int] = {"critical": 100, "major": 70, "minor": 40}
IMPACT_SCOPE_BONUS_CAP = 20

QUICK_WIN_MAX_OCCURRENCES = 5


def _value(enum_or_str) -> str:
    return getattr(enum_or_str, "value", enum_or_str)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def scope_surcharge(base: float, scopes: int) -> float:
    scopes = max(0, scopes)
    first = min(scopes, SCOPE_SURCHARGE_THRESHOLD)
    rest = max(0, scopes - SCOPE_SURCHARGE_THRESHOLD)
    return first * SCOPE_SURCHARGE_FIRST * base + rest * SCOPE_SURCHARGE_REST * base


def occurrence_surcharge(base: float, occurrences: int) -> float:
    if occurrences > 10:
        return 0.2 * base
    if occurrences > 5:
        return 0.3 * base
    return 0.1 * max(0, occurrences) * base


def estimate_effort(severity, complexity, occurrences: int, scopes: int) -> int:
    base = BASE_EFFORT_HOURS.get(_value(severity), BASE_EFFORT_HOURS["minor"])
    total = (
        base
        + base * COMPLEXITY_SURCHARGE.get(_value(complexity), COMPLEXITY_SURCHARGE["medium"])
        + scope_surcharge(base, scopes)
        + occurrence_surcharge(base, occurrences)
    )
    return max(MIN_EFFORT_HOURS, min(MAX_EFFORT_HOURS, _round_half_up(total)))


def estimate_impact(severity, scopes: int) -> int:
    base = IMPACT_BASE.get(_value(severity), IMPACT_BASE["minor"])
    return min(100, base + min(IMPACT_SCOPE_BONUS_CAP, 2 * max(0, scopes)))


def is_quick_win(severity, complexity, occurrences: int) -> bool:
    """Critical, low-complexity, and seen on at most a handful of elements."""
    return (
        _value(severity) == IssueSeverity.critical.value
        and _value(complexity) == Complexity.low.value
        and occurrences <= QUICK_WIN_MAX_OCCURRENCES
    )
