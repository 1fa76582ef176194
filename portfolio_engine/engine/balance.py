"""Balance Scorer — allocation drift against a target, graded 0-100.

Drift follows the usual allocation convention: half the sum of absolute
per-category deviations, so a shift from one category to another is only
counted once. The score is piecewise linear in drift, lenient near perfect
balance and steep once concentration gets severe:

    drift <= 5        100 - 2*drift          (90-100)
    5 < drift <= 10   90 - 3*(drift - 5)     (75-90)
    10 < drift <= 15  75 - 3*(drift - 10)    (60-75)
    drift > 15        max(0, 60 - 4*(drift - 15))
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Mapping, Optional

from portfolio_engine.exceptions import MalformedInputError
from portfolio_engine.models.category import Category, equal_split, label, parse_category

# Recommendation thresholds (percentage points / percent share)
DEVIATION_THRESHOLD = 10.0
CONCENTRATION_THRESHOLD = 50.0
MISSING_THRESHOLD = 5.0
TARGET_SUM_TOLERANCE = 0.01

# (min rounded score, grade, status), highest band first
GRADE_BANDS = (
    (90.0, "A", "Excellent Balance"),
    (75.0, "B", "Good Balance"),
    (60.0, "C", "Needs Attention"),
    (0.0, "D", "Rebalancing Required"),
)


class RecommendationType:
    CONCENTRATION_RISK = "concentration_risk"
    OVERWEIGHT = "overweight"
    UNDERWEIGHT = "underweight"
    MISSING_CATEGORY = "missing_category"


@dataclass
class CategoryDeviation:
    category: Category
    actual: float
    target: float
    deviation: float


@dataclass
class Recommendation:
    type: str
    category: Category
    message: str
    adjustment: float = 0.0   # percentage points to add (negative = reduce)

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "category": self.category.value,
            "message": self.message,
            "adjustment": self.adjustment,
        }


@dataclass
class BalanceScore:
    score: float
    drift: float
    grade: str
    status: str
    deviations: list[CategoryDeviation] = field(default_factory=list)
    recommendations: list[Recommendation] = field(default_factory=list)
    last_calculated: Optional[datetime] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "score": self.score,
            "drift": self.drift,
            "grade": self.grade,
            "status": self.status,
            "deviations": [
                {
                    "category": d.category.value,
                    "actual": d.actual,
                    "target": d.target,
                    "deviation": d.deviation,
                }
                for d in self.deviations
            ],
            "recommendations": [r.to_dict() for r in self.recommendations],
            "lastCalculated": self.last_calculated.isoformat() if self.last_calculated else None,
        }


# ═══════════════════════════════════════════════════════════════════════════
# Allocation validation
# ═══════════════════════════════════════════════════════════════════════════

def normalize_allocation(allocation: Mapping[Any, Any], name: str = "allocation") -> dict[Category, float]:
    """Key an allocation by Category, filling absent categories with 0.

    Unknown category keys and non-numeric or negative values are rejected.
    """
    result = {c: 0.0 for c in Category}
    for key, value in allocation.items():
        category = parse_category(key)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise MalformedInputError(f"{name}[{category.value}] must be a number, got {value!r}")
        if value < 0 or value != value:
            raise MalformedInputError(f"{name}[{category.value}] must be non-negative, got {value}")
        result[category] = float(value)
    return result


def validate_target(target: Optional[Mapping[Any, Any]]) -> dict[Category, float]:
    """Return a complete target allocation; equal split when ``target`` is None."""
    if target is None:
        return equal_split()
    normalized = normalize_allocation(target, "target")
    total = sum(normalized.values())
    if abs(total - 100.0) > TARGET_SUM_TOLERANCE:
        raise MalformedInputError(f"Target allocation must sum to 100, got {total:g}")
    return normalized


# ═══════════════════════════════════════════════════════════════════════════
# Scoring
# ═══════════════════════════════════════════════════════════════════════════

def round_half_up(value: float, places: int = 1) -> float:
    """Round with halves going up (builtin ``round`` sends them to even)."""
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(repr(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def _whole(value: float) -> int:
    return int(round_half_up(value, 0))


def drift_penalty_score(drift: float) -> float:
    """Un-rounded score for a given drift."""
    if drift <= 5:
        return 100 - drift * 2
    if drift <= 10:
        return 90 - (drift - 5) * 3
    if drift <= 15:
        return 75 - (drift - 10) * 3
    return max(0.0, 60 - (drift - 15) * 4)


def grade_for(score: float) -> tuple[str, str]:
    for floor, grade, status in GRADE_BANDS:
        if score >= floor:
            return grade, status
    return GRADE_BANDS[-1][1], GRADE_BANDS[-1][2]


def _recommendations(deviations: list[CategoryDeviation]) -> list[Recommendation]:
    recommendations: list[Recommendation] = []

    # First max wins ties, in category order
    top = max(deviations, key=lambda d: d.actual)
    if top.actual > CONCENTRATION_THRESHOLD:
        recommendations.append(Recommendation(
            type=RecommendationType.CONCENTRATION_RISK,
            category=top.category,
            message=(
                f"High concentration risk: {_whole(top.actual)}% in {label(top.category)}. "
                "Diversify across perspectives for better balance."
            ),
            adjustment=top.target - top.actual,
        ))

    problem_areas = sorted(
        (d for d in deviations if d.deviation > DEVIATION_THRESHOLD),
        key=lambda d: d.deviation,
        reverse=True,
    )
    for area in problem_areas:
        diff = area.actual - area.target
        if diff > 0:
            rec_type, verb = RecommendationType.OVERWEIGHT, "Reduce"
        else:
            rec_type, verb = RecommendationType.UNDERWEIGHT, "Increase"
        recommendations.append(Recommendation(
            type=rec_type,
            category=area.category,
            message=(
                f"{verb} {label(area.category)} time by {_whole(abs(diff))}% "
                f"(currently {_whole(area.actual)}%, target {_whole(area.target)}%)"
            ),
            adjustment=-diff,
        ))

    for missing in (d for d in deviations if d.actual < MISSING_THRESHOLD):
        recommendations.append(Recommendation(
            type=RecommendationType.MISSING_CATEGORY,
            category=missing.category,
            message=(
                f"Consider adding {label(missing.category)} activities "
                f"(currently {_whole(missing.actual)}%)"
            ),
            adjustment=missing.target - missing.actual,
        ))

    return recommendations


def score(
    actual: Mapping[Any, Any],
    target: Optional[Mapping[Any, Any]] = None,
    now: Optional[datetime] = None,
) -> BalanceScore:
    """Score an actual allocation (percent per category) against a target."""
    actual_alloc = normalize_allocation(actual, "actual")
    target_alloc = validate_target(target)

    deviations = [
        CategoryDeviation(
            category=c,
            actual=actual_alloc[c],
            target=target_alloc[c],
            deviation=abs(actual_alloc[c] - target_alloc[c]),
        )
        for c in Category
    ]
    drift = sum(d.deviation for d in deviations) / 2
    rounded = round_half_up(drift_penalty_score(drift))
    grade, status = grade_for(rounded)

    return BalanceScore(
        score=rounded,
        drift=round_half_up(drift),
        grade=grade,
        status=status,
        deviations=deviations,
        recommendations=_recommendations(deviations),
        last_calculated=now or datetime.now(timezone.utc),
    )
