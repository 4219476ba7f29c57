from dataclasses import replace

import numpy as np
import pytest

from econ_engine.analytics.financial import (
    calculate_discounted_payback,
    calculate_irr,
    calculate_npv,
    calculate_payback,
    calculate_roi,
    comprehensive_analysis,
    npv_at_rate,
    rate_sensitivity,
)
from econ_engine.config.constants import DEFAULT_CONFIG
from econ_engine.models.inputs import CashFlowSeries
from econ_engine.utils.exceptions import ConvergenceWarning, InvalidInputError
from tests.fixtures.sample_inputs import PROJECT_FLOWS, PROJECT_INVESTMENT, PROJECT_RATE


# =========================
# ROI / NPV
# =========================

def test_roi_percent():
    result = calculate_roi(1000, 1500)
    assert result.roi_pct == pytest.approx(50)
    assert result.net_profit == pytest.approx(500)
    assert result.interpretation == "Profitable"


def test_roi_rejects_zero_investment():
    with pytest.raises(InvalidInputError):
        calculate_roi(0, 100)


def test_npv_break_even_single_period():
    result = calculate_npv(1000, [1100], 0.10)
    assert result.npv == pytest.approx(0, abs=1e-9)
    assert result.discounted_flows[0].discounted_value == pytest.approx(1000)


def test_npv_zero_rate_is_undiscounted_sum():
    assert calculate_npv(1000, [500, 500, 500], 0.0).npv == pytest.approx(500)


def test_npv_decreases_with_rate_for_positive_flows(project_series):
    npvs = [calculate_npv(project_series, discount_rate=r).npv for r in (0.0, 0.05, 0.1, 0.2, 0.4)]
    assert all(a > b for a, b in zip(npvs, npvs[1:]))


def test_npv_accepts_series_and_raw_arguments(project_series):
    assert calculate_npv(project_series).npv == pytest.approx(
        calculate_npv(PROJECT_INVESTMENT, PROJECT_FLOWS, PROJECT_RATE).npv
    )


@pytest.mark.parametrize(
    "initial, flows, rate",
    [(1000, [], 0.1), (1000, [100], -0.1), (-5, [100], 0.1), (1000, [float("inf")], 0.1)],
)
def test_npv_rejects_invalid_inputs(initial, flows, rate):
    with pytest.raises(InvalidInputError):
        calculate_npv(initial, flows, rate)


# =========================
# IRR
# =========================

def test_irr_single_period_exact():
    result = calculate_irr(1000, [1100])
    assert result.converged
    assert result.method == "newton"
    assert result.irr == pytest.approx(0.10, abs=1e-6)
    assert result.irr_pct == pytest.approx(10, abs=1e-4)


def test_irr_residual_within_tolerance():
    result = calculate_irr(PROJECT_INVESTMENT, PROJECT_FLOWS)
    assert result.converged
    assert result.warning is None
    assert abs(result.residual) < 1e-4
    assert abs(npv_at_rate(result.irr, PROJECT_INVESTMENT, PROJECT_FLOWS)) < 1e-4
    assert result.irr > PROJECT_RATE


def test_irr_falls_back_to_bracketing():
    config = replace(DEFAULT_CONFIG, financial=replace(DEFAULT_CONFIG.financial, irr_max_iterations=1))
    result = calculate_irr(1000, [1300], config=config)
    assert result.converged
    assert result.method == "bisection"
    assert result.irr == pytest.approx(0.30, abs=1e-9)


def test_irr_without_root_reports_warning():
    """Every flow negative: NPV < 0 at any rate, so no root exists."""
    result = calculate_irr(1000, [-100, -100])
    assert not result.converged
    assert isinstance(result.warning, ConvergenceWarning)
    assert result.warning.iterations == result.iterations
    assert np.isfinite(result.residual)
    assert "warning" in result.to_dict()
    assert result.to_dict()["warning"]["residual"] == pytest.approx(result.residual)


def test_irr_without_fallback_keeps_newton_iterate():
    config = replace(
        DEFAULT_CONFIG,
        financial=replace(DEFAULT_CONFIG.financial, irr_max_iterations=1, irr_bracket_fallback=False),
    )
    result = calculate_irr(1000, [1300], config=config)
    assert not result.converged
    assert result.method == "newton"
    assert result.warning is not None


# =========================
# PAYBACK
# =========================

def test_simple_payback_exact_periods():
    result = calculate_payback(100, [50, 50, 50])
    assert result.payback_period == pytest.approx(2.0)
    assert result.whole_periods == 2
    assert result.months == 0
    assert [p.cumulative for p in result.cumulative_series] == [-50, 0, 50]


def test_simple_payback_fractional():
    result = calculate_payback(PROJECT_INVESTMENT, PROJECT_FLOWS)
    # -70000, -30000, +20000: 2 + 30000 / 50000
    assert result.payback_period == pytest.approx(2.6)
    assert result.months == 7


def test_payback_never_recovered():
    result = calculate_payback(1000, [100, 100])
    assert result.payback_period is None
    assert not result.is_determinate
    assert result.interpretation == "Investment not recoverable within given period"
    assert result.to_dict()["payback_period"] is None


def test_payback_zero_investment_is_immediate():
    assert calculate_payback(0, [10, 10]).payback_period == 0.0


def test_discounted_payback_not_shorter_than_simple(project_series):
    simple = calculate_payback(project_series)
    discounted = calculate_discounted_payback(project_series)
    assert discounted.discounted
    assert discounted.payback_period >= simple.payback_period


def test_discounted_payback_zero_rate_equals_simple():
    simple = calculate_payback(100, [30, 30, 60])
    discounted = calculate_discounted_payback(100, [30, 30, 60], 0.0)
    assert discounted.payback_period == pytest.approx(simple.payback_period)


# =========================
# COMPREHENSIVE
# =========================

def test_comprehensive_top_score():
    result = comprehensive_analysis(PROJECT_INVESTMENT, PROJECT_FLOWS, PROJECT_RATE, project_name="Portal")
    assert result.project_name == "Portal"
    assert result.roi.roi_pct == pytest.approx(80)
    assert result.npv.npv > 0
    assert result.irr.irr > PROJECT_RATE
    assert result.payback.payback_period == pytest.approx(2.6)
    assert result.recommendation.score == 7
    assert result.recommendation.max_score == 7
    assert result.recommendation.band == "Highly Recommended"
    assert result.net_profit == pytest.approx(80000)
    assert result.project_duration == 4
    assert result.average_period_flow == pytest.approx(45000)


def test_comprehensive_losing_project():
    result = comprehensive_analysis(100000, [10000, 10000, 10000], 0.10)
    assert result.recommendation.score == 0
    assert result.recommendation.band == "Not Recommended"
    assert result.payback.payback_period is None
    assert "Negative NPV" in result.recommendation.reasons


def test_comprehensive_score_bounds_and_json(project_series):
    result = comprehensive_analysis(project_series)
    assert 0 <= result.recommendation.score <= result.recommendation.max_score
    data = result.to_dict()
    assert data["kind"] == "comprehensive"
    assert data["irr"]["kind"] == "irr"


def test_comprehensive_requires_positive_investment():
    with pytest.raises(InvalidInputError):
        comprehensive_analysis(0, [100, 200], 0.1)


def test_comprehensive_custom_scoring_policy():
    scoring = replace(DEFAULT_CONFIG.financial.scoring, roi_threshold_pct=100.0)
    config = replace(DEFAULT_CONFIG, financial=replace(DEFAULT_CONFIG.financial, scoring=scoring))
    result = comprehensive_analysis(PROJECT_INVESTMENT, PROJECT_FLOWS, PROJECT_RATE, config=config)
    assert result.recommendation.score == 5
    assert result.recommendation.band == "Recommended"


# =========================
# RATE SENSITIVITY
# =========================

def test_rate_sensitivity_grid(project_series):
    result = rate_sensitivity(project_series, rate_range=(0.0, 0.2, 0.05))
    rates = [p.value for p in result.points]
    assert rates == pytest.approx([0.0, 0.05, 0.10, 0.15, 0.20])
    npvs = [p.npv for p in result.points]
    assert all(a > b for a, b in zip(npvs, npvs[1:]))
    assert result.points[2].npv == pytest.approx(result.base.npv)


def test_rate_sensitivity_cash_flow_multipliers(project_series):
    result = rate_sensitivity(project_series, cash_flow_multipliers=(0.8, 1.0, 1.2))
    frame = result.to_frame()
    assert list(frame["parameter"].unique()) == ["cash_flow_multiplier"]
    assert len(frame) == 3
    assert frame["roi_pct"].iloc[1] == pytest.approx(80)


def test_rate_sensitivity_rejects_bad_step(project_series):
    with pytest.raises(InvalidInputError):
        rate_sensitivity(project_series, rate_range=(0.0, 0.2, 0.0))


def test_cash_flow_series_is_immutable():
    series = CashFlowSeries(100, [10, 20], 0.1)
    assert series.period_flows == (10.0, 20.0)
    with pytest.raises(Exception):
        series.discount_rate = 0.2
