import math

import pytest

from econ_engine.analytics.estimation import (
    expert_judgment,
    function_points,
    parametric_effort,
    pert_estimate,
    regression_estimate,
)
from econ_engine.models.inputs import ComplexityTier, FunctionPointProfile, ProjectType
from econ_engine.utils.exceptions import DegenerateInputError, InvalidInputError
from tests.fixtures.sample_inputs import EXPERT_ESTIMATES, FUNCTION_POINT_COUNTS, HISTORICAL_PROJECTS


# =========================
# PARAMETRIC
# =========================

def test_parametric_organic_matches_model():
    result = parametric_effort(10, "organic")
    effort = 2.4 * 10 ** 1.05
    schedule = 2.5 * effort ** 0.38
    assert result.project_type is ProjectType.ORGANIC
    assert result.effort == pytest.approx(effort)
    assert result.schedule == pytest.approx(schedule)
    assert result.average_team_size == pytest.approx(effort / schedule)
    assert result.cost == pytest.approx(effort * 8000)
    assert result.productivity == pytest.approx(10 / effort)


@pytest.mark.parametrize("project_type", ["organic", "semidetached", "embedded"])
def test_parametric_effort_monotone_in_size(project_type):
    efforts = [parametric_effort(kloc, project_type).effort for kloc in (1, 5, 20, 100)]
    assert efforts == sorted(efforts)
    assert len(set(efforts)) == len(efforts)


def test_parametric_mode_ordering():
    """Same size: embedded > semidetached > organic."""
    organic = parametric_effort(50, ProjectType.ORGANIC).effort
    semi = parametric_effort(50, ProjectType.SEMIDETACHED).effort
    embedded = parametric_effort(50, ProjectType.EMBEDDED).effort
    assert organic < semi < embedded


def test_parametric_team_size_echo():
    result = parametric_effort(10, "Organic", team_size=4)
    assert result.team_size == 4
    assert result.staffing_ratio == pytest.approx(4 / result.average_team_size)


@pytest.mark.parametrize("kloc", [0, -1, float("nan"), "ten", None])
def test_parametric_rejects_bad_size(kloc):
    with pytest.raises(InvalidInputError):
        parametric_effort(kloc)


def test_parametric_rejects_unknown_type():
    with pytest.raises(InvalidInputError) as excinfo:
        parametric_effort(10, "agile")
    assert excinfo.value.field == "project_type"


def test_parametric_rejects_bad_team_size():
    with pytest.raises(InvalidInputError):
        parametric_effort(10, team_size=0)


# =========================
# FUNCTION POINTS
# =========================

def test_function_points_average_profile():
    result = function_points(FUNCTION_POINT_COUNTS)
    # 10*4 + 5*5 + 4*4 + 2*10 + 1*7
    assert result.unadjusted_fp == 108
    assert result.adjusted_fp == pytest.approx(108)
    assert result.total_hours == pytest.approx(1620)
    assert result.total_cost == pytest.approx(1620 * 75)
    assert result.development_days == pytest.approx(202.5)
    assert result.breakdown["internal_logical_files"].total == 20


def test_function_points_tcf_scales_linearly():
    base = function_points(FUNCTION_POINT_COUNTS)
    scaled = function_points(FUNCTION_POINT_COUNTS, technical_complexity_factor=1.2)
    assert scaled.adjusted_fp == pytest.approx(base.unadjusted_fp * 1.2)


def test_function_points_complex_weights():
    profile = FunctionPointProfile(external_inputs=1, complexity=ComplexityTier.COMPLEX)
    assert function_points(profile).unadjusted_fp == 6


def test_function_points_empty_profile_is_zero():
    result = function_points({})
    assert result.unadjusted_fp == 0
    assert result.total_cost == 0


@pytest.mark.parametrize("counts", [{"external_inputs": -1}, {"external_outputs": 2.5}])
def test_function_points_rejects_bad_counts(counts):
    with pytest.raises(InvalidInputError):
        function_points(counts)


def test_function_points_rejects_nonpositive_tcf():
    with pytest.raises(InvalidInputError):
        function_points(FUNCTION_POINT_COUNTS, technical_complexity_factor=0)


# =========================
# EXPERT JUDGMENT
# =========================

def test_pert_formula():
    assert pert_estimate(1, 2, 9) == pytest.approx(3.0)


def test_expert_outlier_filtered():
    result = expert_judgment(EXPERT_ESTIMATES)
    assert result.mean == pytest.approx(14)
    assert result.std_dev == pytest.approx(12)
    assert 50 not in result.filtered
    assert result.adjusted_mean == pytest.approx(10)
    assert not result.used_fallback
    assert result.pert_estimate == pytest.approx((10 + 4 * 10 + 50) / 6)
    assert result.confidence_low == pytest.approx(10 - 12)
    assert result.confidence_high == pytest.approx(10 + 12)


def test_expert_single_estimate():
    result = expert_judgment([7])
    assert result.std_dev == 0
    assert result.filtered == (7.0,)
    assert result.adjusted_mean == 7


def test_expert_rejects_empty():
    with pytest.raises(InvalidInputError):
        expert_judgment([])


# =========================
# REGRESSION
# =========================

def test_regression_exact_line():
    result = regression_estimate(HISTORICAL_PROJECTS, 4)
    assert result.slope == pytest.approx(2)
    assert result.intercept == pytest.approx(0, abs=1e-12)
    assert result.predicted_effort == pytest.approx(8)
    assert result.correlation == pytest.approx(1)
    assert result.r_squared == pytest.approx(1)
    assert result.standard_error == pytest.approx(0, abs=1e-9)
    assert result.equation == "Effort = 0.00 + 2.00 × Size"


def test_regression_two_points_has_zero_error():
    result = regression_estimate([(1, 1), (2, 3)], 3)
    assert result.slope == pytest.approx(2)
    assert result.intercept == pytest.approx(-1)
    assert result.predicted_effort == pytest.approx(5)
    assert result.standard_error == 0.0
    assert result.confidence_lower == result.confidence_upper


def test_regression_noisy_fit():
    history = [(1, 3), (2, 4), (3, 8), (4, 9)]
    result = regression_estimate(history, 5)
    assert 0 < result.r_squared < 1
    assert result.standard_error > 0
    assert result.confidence_lower < result.predicted_effort < result.confidence_upper
    band = result.predicted_effort - result.confidence_lower
    assert band == pytest.approx(1.96 * result.standard_error)
    assert math.isfinite(result.correlation)


def test_regression_rejects_single_point():
    with pytest.raises(InvalidInputError):
        regression_estimate([(1, 2)], 3)


def test_regression_rejects_constant_size():
    with pytest.raises(DegenerateInputError):
        regression_estimate([(2, 1), (2, 5), (2, 9)], 3)


def test_regression_rejects_malformed_point():
    with pytest.raises(InvalidInputError):
        regression_estimate([{"size": 1}, {"size": 2, "effort": 3}], 3)
