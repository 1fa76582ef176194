"""Tests for portfolio_engine.engine.balance — drift, piecewise score, grades, recommendations."""

import pytest
from datetime import datetime, timezone

from portfolio_engine.engine.balance import (
    RecommendationType,
    drift_penalty_score,
    grade_for,
    normalize_allocation,
    round_half_up,
    score,
    validate_target,
)
from portfolio_engine.exceptions import MalformedInputError
from portfolio_engine.models.category import Category


def shifted(drift):
    """Equal split with ``drift`` points moved from contributor to builder."""
    return {"builder": 25 + drift, "contributor": 25 - drift, "integrator": 25, "experimenter": 25}


# ═══════════════════════════════════════════════════════════════════════════
# Piecewise Score
# ═══════════════════════════════════════════════════════════════════════════


class TestScore:
    def test_perfect_balance(self):
        result = score({"builder": 25, "contributor": 25, "integrator": 25, "experimenter": 25})
        assert result.score == 100.0
        assert result.drift == 0.0
        assert result.grade == "A"
        assert result.status == "Excellent Balance"

    def test_default_target_is_equal_split(self):
        assert score(shifted(0)).score == 100.0
        assert all(d.target == 25.0 for d in score(shifted(0)).deviations)

    def test_heavy_concentration_scores_zero(self):
        result = score({"builder": 60, "contributor": 10, "integrator": 10, "experimenter": 20})
        assert result.drift == 35.0
        assert result.score == 0.0
        assert result.grade == "D"
        assert result.status == "Rebalancing Required"

    @pytest.mark.parametrize("drift,expected,grade", [
        (2.5, 95.0, "A"),
        (5, 90.0, "A"),
        (7.5, 82.5, "B"),
        (10, 75.0, "B"),
        (12.5, 67.5, "C"),
        (15, 60.0, "C"),
        (20, 40.0, "D"),
        (25, 20.0, "D"),
    ])
    def test_piecewise_bands(self, drift, expected, grade):
        result = score(shifted(drift))
        assert result.drift == drift
        assert result.score == pytest.approx(expected)
        assert result.grade == grade

    def test_score_monotonic_in_drift(self):
        scores = [drift_penalty_score(d / 4) for d in range(0, 400)]
        assert all(a >= b for a, b in zip(scores, scores[1:]))
        assert all(0 <= s <= 100 for s in scores)

    def test_score_never_rises_as_one_category_grows(self):
        scores = []
        for step in range(76):
            rest = (75 - step) / 3
            actual = {"builder": 25 + step, "contributor": rest, "integrator": rest, "experimenter": rest}
            scores.append(score(actual).score)
        assert all(a >= b for a, b in zip(scores, scores[1:]))
        assert scores[0] == 100.0
        assert scores[-1] == 0.0

    def test_halves_round_up(self):
        result = score({"builder": 25.25, "contributor": 24.75, "integrator": 25, "experimenter": 25})
        assert result.drift == 0.3
        assert result.score == 99.5

    @pytest.mark.parametrize("value,places,expected", [
        (0.25, 1, 0.3),
        (0.35, 1, 0.4),
        (93.333, 1, 93.3),
        (2.5, 0, 3.0),
    ])
    def test_round_half_up(self, value, places, expected):
        assert round_half_up(value, places) == expected

    def test_score_uses_unrounded_drift(self):
        result = score(shifted(10 / 3))
        assert result.drift == 3.3
        assert result.score == 93.3

    def test_missing_actual_keys_count_as_zero(self):
        result = score({"builder": 100})
        assert result.drift == 75.0
        assert result.score == 0.0

    def test_custom_target(self):
        target = {"builder": 40, "contributor": 20, "integrator": 20, "experimenter": 20}
        assert score(target, target).score == 100.0

    def test_category_keys_accepted(self):
        result = score({c: 25 for c in Category})
        assert result.score == 100.0

    def test_last_calculated(self):
        now = datetime(2026, 2, 15, 12, tzinfo=timezone.utc)
        assert score(shifted(0), now=now).last_calculated == now


class TestGrades:
    @pytest.mark.parametrize("value,grade,status", [
        (100.0, "A", "Excellent Balance"),
        (90.0, "A", "Excellent Balance"),
        (89.9, "B", "Good Balance"),
        (75.0, "B", "Good Balance"),
        (74.9, "C", "Needs Attention"),
        (60.0, "C", "Needs Attention"),
        (59.9, "D", "Rebalancing Required"),
        (0.0, "D", "Rebalancing Required"),
    ])
    def test_grade_table(self, value, grade, status):
        assert grade_for(value) == (grade, status)


# ═══════════════════════════════════════════════════════════════════════════
# Allocation Validation
# ═══════════════════════════════════════════════════════════════════════════


class TestValidation:
    def test_target_must_sum_to_100(self):
        with pytest.raises(MalformedInputError, match="sum to 100"):
            validate_target({"builder": 30, "contributor": 30, "integrator": 30})

    def test_target_within_tolerance(self):
        target = validate_target({"builder": 33.334, "contributor": 33.333, "integrator": 33.333})
        assert target[Category.EXPERIMENTER] == 0.0

    def test_unknown_category_rejected(self):
        with pytest.raises(MalformedInputError, match="Unknown category"):
            score({"builder": 50, "wizard": 50})

    def test_unknown_target_key_rejected(self):
        with pytest.raises(MalformedInputError):
            score(shifted(0), {"builder": 50, "wizard": 50})

    @pytest.mark.parametrize("value", [-5, "25", None, True, float("nan")])
    def test_bad_values_rejected(self, value):
        with pytest.raises(MalformedInputError):
            normalize_allocation({"builder": value})


# ═══════════════════════════════════════════════════════════════════════════
# Recommendations
# ═══════════════════════════════════════════════════════════════════════════


class TestRecommendations:
    def test_balanced_has_none(self):
        assert score(shifted(0)).recommendations == []

    def test_concentration_first_then_by_deviation(self):
        result = score({"builder": 70, "contributor": 10, "integrator": 10, "experimenter": 10})
        recs = result.recommendations
        assert [r.type for r in recs] == [
            RecommendationType.CONCENTRATION_RISK,
            RecommendationType.OVERWEIGHT,
            RecommendationType.UNDERWEIGHT,
            RecommendationType.UNDERWEIGHT,
            RecommendationType.UNDERWEIGHT,
        ]
        assert recs[0].category is Category.BUILDER
        assert recs[0].adjustment == -45
        assert "70% in Builder" in recs[0].message
        assert [r.category for r in recs[2:]] == [
            Category.CONTRIBUTOR, Category.INTEGRATOR, Category.EXPERIMENTER,
        ]
        assert recs[2].adjustment == 15

    def test_missing_category_last(self):
        result = score({"builder": 50, "contributor": 30, "integrator": 20, "experimenter": 0})
        recs = result.recommendations
        assert [(r.type, r.category) for r in recs] == [
            (RecommendationType.OVERWEIGHT, Category.BUILDER),
            (RecommendationType.UNDERWEIGHT, Category.EXPERIMENTER),
            (RecommendationType.MISSING_CATEGORY, Category.EXPERIMENTER),
        ]
        assert recs[0].message == "Reduce Builder time by 25% (currently 50%, target 25%)"
        assert recs[1].message == "Increase Experimenter time by 25% (currently 0%, target 25%)"
        assert recs[2].adjustment == 25

    def test_exactly_fifty_is_not_concentration(self):
        result = score({"builder": 50, "contributor": 50})
        assert RecommendationType.CONCENTRATION_RISK not in {r.type for r in result.recommendations}

    def test_to_dict(self):
        d = score({"builder": 70, "contributor": 10, "integrator": 10, "experimenter": 10}).to_dict()
        assert d["grade"] == "D"
        assert d["recommendations"][0]["category"] == "builder"
        assert d["deviations"][0] == {"category": "builder", "actual": 70.0, "target": 25.0, "deviation": 45.0}
