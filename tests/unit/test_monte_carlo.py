from dataclasses import replace

import numpy as np
import pytest

from econ_engine.analytics.risk import compile_formula, monte_carlo_simulation, simulate_outcomes
from econ_engine.analytics.risk.distributions import sample_triangular, standard_normal
from econ_engine.config.constants import DEFAULT_CONFIG
from econ_engine.utils.exceptions import FormulaEvaluationError, InvalidInputError

NORMAL_X = {"x": {"distribution": "normal", "parameters": {"mean": 0.0, "std_dev": 1.0}}}


def _sentinel_config():
    return replace(DEFAULT_CONFIG, risk=replace(DEFAULT_CONFIG.risk, formula_error_policy="sentinel"))


# =========================
# SAMPLING
# =========================

def test_standard_normal_moments():
    rng = np.random.default_rng(7)
    z = standard_normal(rng, 200_000)
    assert abs(z.mean()) < 0.02
    assert abs(z.std() - 1) < 0.02


def test_triangular_within_bounds():
    rng = np.random.default_rng(3)
    samples = sample_triangular(rng, 10_000, 2.0, 3.0, 7.0)
    assert samples.min() >= 2.0
    assert samples.max() <= 7.0
    assert samples.mean() == pytest.approx(4.0, abs=0.1)


def test_normal_mean_and_std_from_simulation():
    result = monte_carlo_simulation(NORMAL_X, iterations=50_000, formula="x", seed=42)
    assert abs(result.statistics.mean) < 0.05
    assert abs(result.statistics.std_dev - 1) < 0.05
    assert result.statistics.variance == pytest.approx(result.statistics.std_dev ** 2)


def test_uniform_outcomes_stay_in_range():
    variables = {"u": {"distribution": "uniform", "parameters": {"min": 0, "max": 10}}}
    result = monte_carlo_simulation(variables, iterations=20_000, formula="u", seed=1)
    assert result.statistics.minimum >= 0
    assert result.statistics.maximum <= 10
    assert result.statistics.mean == pytest.approx(5, abs=0.2)


def test_triangular_mode_at_minimum():
    variables = {"t": {"distribution": "triangular", "parameters": {"min": 0, "mode": 0, "max": 1}}}
    result = monte_carlo_simulation(variables, iterations=20_000, formula="t", seed=5)
    assert result.statistics.mean == pytest.approx(1 / 3, abs=0.02)


# =========================
# REPRODUCIBILITY
# =========================

def test_same_seed_same_result(profit_variables):
    a = monte_carlo_simulation(profit_variables, iterations=5000, seed=123)
    b = monte_carlo_simulation(profit_variables, iterations=5000, seed=123)
    assert a.to_dict() == b.to_dict()


def test_parallel_chunks_are_reproducible(profit_variables):
    a = simulate_outcomes(profit_variables, 10_000, "revenue - costs", seed=9, workers=4)
    b = simulate_outcomes(profit_variables, 10_000, "revenue - costs", seed=9, workers=4)
    assert len(a) == 10_000
    np.testing.assert_array_equal(a, b)


def test_parallel_statistics_agree_with_serial(profit_variables):
    serial = monte_carlo_simulation(profit_variables, iterations=40_000, seed=11)
    parallel = monte_carlo_simulation(profit_variables, iterations=40_000, seed=11, workers=4)
    assert parallel.valid_trials == 40_000
    assert parallel.statistics.mean == pytest.approx(serial.statistics.mean, abs=0.3)


def test_more_workers_than_trials():
    outcomes = simulate_outcomes(NORMAL_X, 100, "x", seed=0, workers=300)
    assert len(outcomes) == 100


# =========================
# SUMMARY STATISTICS
# =========================

def test_order_statistics_are_consistent(profit_variables):
    result = monte_carlo_simulation(profit_variables, iterations=10_000, seed=2)
    s = result.statistics
    assert s.minimum <= result.ci_lower <= s.median <= result.ci_upper <= s.maximum
    assert result.conditional_value_at_risk <= result.value_at_risk
    assert 0 <= result.probability_of_loss <= 1
    values = [result.percentiles[k] for k in ("p5", "p10", "p25", "p50", "p75", "p90", "p95")]
    assert values == sorted(values)
    assert result.percentiles["p5"] == result.value_at_risk


def test_histogram_covers_every_trial(profit_variables):
    result = monte_carlo_simulation(profit_variables, iterations=10_000, seed=4)
    assert len(result.histogram) == 20
    assert sum(b.count for b in result.histogram) == result.valid_trials
    assert sum(b.frequency for b in result.histogram) == pytest.approx(100)
    assert result.histogram[0].lower == pytest.approx(result.statistics.minimum)
    assert result.histogram[-1].upper == pytest.approx(result.statistics.maximum)


def test_constant_outcome_lands_in_last_bin():
    variables = {"c": {"distribution": "uniform", "parameters": {"min": 5, "max": 5}}}
    result = monte_carlo_simulation(variables, iterations=100, formula="c", seed=0)
    assert result.statistics.std_dev == 0
    assert result.histogram[-1].count == 100
    assert result.ci_lower == result.ci_upper == 5


def test_formula_with_constants_and_functions():
    result = monte_carlo_simulation(
        NORMAL_X, iterations=1000, formula="max(abs(x), 0) * 0 + 2 * pi", seed=0
    )
    assert result.statistics.mean == pytest.approx(2 * np.pi)


def test_confidence_interval_narrows_with_lower_confidence(profit_variables):
    wide = monte_carlo_simulation(profit_variables, iterations=10_000, seed=8, confidence_level=0.99)
    narrow = monte_carlo_simulation(profit_variables, iterations=10_000, seed=8, confidence_level=0.5)
    assert (narrow.ci_upper - narrow.ci_lower) < (wide.ci_upper - wide.ci_lower)


# =========================
# VALIDATION AND FORMULA ERRORS
# =========================

@pytest.mark.parametrize("iterations", [0, 99, 100_001, 2.5])
def test_iterations_out_of_bounds(iterations):
    with pytest.raises(InvalidInputError):
        monte_carlo_simulation(NORMAL_X, iterations=iterations, formula="x")


@pytest.mark.parametrize("confidence", [0, 1, 1.5, -0.1])
def test_confidence_out_of_bounds(confidence):
    with pytest.raises(InvalidInputError):
        monte_carlo_simulation(NORMAL_X, iterations=100, formula="x", confidence_level=confidence)


def test_missing_distribution_parameter():
    with pytest.raises(InvalidInputError) as excinfo:
        monte_carlo_simulation({"x": {"distribution": "normal", "parameters": {"mean": 0}}}, iterations=100, formula="x")
    assert "std_dev" in excinfo.value.field


def test_empty_variables_rejected():
    with pytest.raises(InvalidInputError):
        monte_carlo_simulation({}, iterations=100, formula="1")


@pytest.mark.parametrize(
    "formula",
    ["y + 1", "__import__('os').getcwd()", "x.real", "x[0]", "x if x else 0", "x < 1", "'a'", "lambda: 1", "min(x)"],
)
def test_disallowed_formulas(formula):
    with pytest.raises(FormulaEvaluationError):
        compile_formula(formula, ["x"])


def test_unknown_variable_fails_before_sampling():
    with pytest.raises(FormulaEvaluationError) as excinfo:
        monte_carlo_simulation(NORMAL_X, iterations=100, formula="x + revenue")
    assert "revenue" in excinfo.value.reason


def test_non_finite_outcome_aborts_by_default():
    variables = {"u": {"distribution": "uniform", "parameters": {"min": -1, "max": 1}}}
    with pytest.raises(FormulaEvaluationError):
        monte_carlo_simulation(variables, iterations=1000, formula="log(u)", seed=0)


def test_sentinel_policy_counts_failed_trials():
    variables = {"u": {"distribution": "uniform", "parameters": {"min": -1, "max": 1}}}
    result = monte_carlo_simulation(variables, iterations=2000, formula="sqrt(u)", seed=0, config=_sentinel_config())
    assert result.failed_trials > 0
    assert result.valid_trials + result.failed_trials == 2000
    assert result.statistics.minimum >= 0
    assert np.isfinite(result.statistics.mean)


def test_sentinel_outcomes_marked_nan():
    variables = {"u": {"distribution": "uniform", "parameters": {"min": -1, "max": 1}}}
    outcomes = simulate_outcomes(variables, 500, "1 / (u - u)", seed=0, config=_sentinel_config())
    assert np.isnan(outcomes).all()


def test_sentinel_with_no_valid_trials_raises():
    variables = {"u": {"distribution": "uniform", "parameters": {"min": 1, "max": 2}}}
    with pytest.raises(FormulaEvaluationError):
        monte_carlo_simulation(variables, iterations=100, formula="u / 0", config=_sentinel_config())


@pytest.mark.slow
def test_maximum_iterations_normal():
    result = monte_carlo_simulation(NORMAL_X, iterations=100_000, formula="x", seed=2024)
    assert abs(result.statistics.mean) < 0.02
    assert result.percentiles["p50"] == pytest.approx(0, abs=0.02)
