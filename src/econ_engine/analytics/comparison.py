"""
Result Comparison
=================
Aggregate statistics across heterogeneous estimation or scenario results.

Inputs may be result records or plain mappings (e.g. decoded JSON). Records
are dispatched on their ``kind``; mappings are read by field name, accepting
both snake_case and camelCase keys.
"""

from typing import Any, Iterable, List, Mapping, Optional, Sequence, Tuple

from econ_engine.config.constants import DEFAULT_CONFIG, EngineConfig
from econ_engine.models.results import (
    AggregateStatistics,
    ComparisonResult,
    ComprehensiveAnalysis,
    DecisionTreeResult,
    ExpertEstimate,
    FunctionPointEstimate,
    MonteCarloResult,
    NPVResult,
    ParametricEstimate,
    RegressionEstimate,
    ScenarioAnalysisResult,
    ScenarioComparisonResult,
    ScenarioOutcome,
    SensitivityResult,
)
from econ_engine.utils.exceptions import InvalidInputError
from econ_engine.utils.stats import describe


def _first(data: Mapping[str, Any], *keys: str) -> Optional[float]:
    for key in keys:
        value = data.get(key)
        if value is not None and not isinstance(value, bool):
            try:
                return float(value)
            except (TypeError, ValueError):
                raise InvalidInputError("Expected a number", field=key, value=value) from None
    return None


def _aggregate(metric: str, values: Sequence[float]) -> Optional[AggregateStatistics]:
    if not values:
        return None
    stats = describe(values)
    return AggregateStatistics(
        metric=metric,
        count=len(values),
        mean=stats["mean"],
        median=stats["median"],
        std_dev=stats["std_dev"],
        minimum=stats["min"],
        maximum=stats["max"],
        spread=stats["spread"],
    )


def _require_items(results: Any, field: str) -> List[Any]:
    if results is None:
        raise InvalidInputError("At least one result is required for comparison", field=field)
    items = list(results)
    if not items:
        raise InvalidInputError("At least one result is required for comparison", field=field)
    return items


# =========================
# ESTIMATIONS
# =========================

def _estimation_values(result: Any, hours_per_day: float) -> Tuple[str, Optional[float], Optional[float]]:
    """(kind, effort, cost) for one estimation result."""
    if isinstance(result, ParametricEstimate):
        return result.kind, result.effort, result.cost
    if isinstance(result, FunctionPointEstimate):
        return result.kind, result.total_hours / hours_per_day, result.total_cost
    if isinstance(result, ExpertEstimate):
        return result.kind, result.adjusted_mean, None
    if isinstance(result, RegressionEstimate):
        return result.kind, result.predicted_effort, None

    if not isinstance(result, Mapping):
        raise InvalidInputError(
            "Unsupported estimation result", field="results", value=type(result).__name__
        )
    kind = str(result.get("kind", result.get("type", "unknown")))
    effort = _first(result, "effort", "predicted_effort", "predictedEffort", "adjusted_mean", "adjustedMean")
    if effort is None:
        hours = _first(result, "total_hours", "totalHours")
        if hours is not None:
            effort = hours / hours_per_day
    cost = _first(result, "total_cost", "totalCost", "cost")
    return kind, effort, cost


def compare_estimations(
    results: Iterable[Any],
    config: Optional[EngineConfig] = None,
) -> ComparisonResult:
    """
    Effort and cost statistics across estimation results.

    Effort per kind:
    - parametric: effort (person-months)
    - regression: predicted effort
    - expert judgment: outlier-filtered mean
    - function points: total hours / hours_per_day

    Results with no cost figure are left out of the cost statistics.

    Raises:
        InvalidInputError: empty input, unsupported item
    """
    cfg = (config or DEFAULT_CONFIG).estimation
    items = _require_items(results, "results")

    kinds, efforts, costs = [], [], []
    for result in items:
        kind, effort, cost = _estimation_values(result, cfg.hours_per_day)
        kinds.append(kind)
        if effort is not None:
            efforts.append(effort)
        if cost is not None:
            costs.append(cost)

    return ComparisonResult(
        n_results=len(items),
        kinds=tuple(kinds),
        effort=_aggregate("effort", efforts),
        cost=_aggregate("cost", costs),
    )


# =========================
# SCENARIOS
# =========================

def _scenario_value(result: Any) -> Tuple[str, float]:
    if isinstance(result, NPVResult):
        return result.kind, result.npv
    if isinstance(result, ComprehensiveAnalysis):
        return result.kind, result.npv.npv
    if isinstance(result, MonteCarloResult):
        return result.kind, result.statistics.mean
    if isinstance(result, DecisionTreeResult):
        return result.kind, result.expected_value
    if isinstance(result, SensitivityResult):
        return result.kind, result.base_npv
    if isinstance(result, ScenarioOutcome):
        return "scenario", result.npv
    if isinstance(result, ScenarioAnalysisResult):
        if result.expected_npv is None:
            raise InvalidInputError(
                "Scenario analysis has no expected NPV (probabilities do not sum to 1)",
                field="results",
            )
        return result.kind, result.expected_npv

    if not isinstance(result, Mapping):
        raise InvalidInputError("Unsupported scenario result", field="results", value=type(result).__name__)
    kind = str(result.get("kind", result.get("type", "unknown")))
    value = _first(result, "npv", "expected_value", "expectedValue", "mean")
    if value is None and isinstance(result.get("statistics"), Mapping):
        value = _first(result["statistics"], "mean")
    if value is None:
        raise InvalidInputError("Result has no NPV or mean to compare", field="results", value=dict(result))
    return kind, value


def compare_scenarios(results: Iterable[Any]) -> ScenarioComparisonResult:
    """
    Statistics across NPV-like outcomes: NPV, Monte Carlo mean, decision
    tree expected value, scenario expected NPV.

    Raises:
        InvalidInputError: empty input, item without a comparable value
    """
    items = _require_items(results, "results")
    kinds, values = [], []
    for result in items:
        kind, value = _scenario_value(result)
        kinds.append(kind)
        values.append(value)

    return ScenarioComparisonResult(
        n_results=len(items),
        kinds=tuple(kinds),
        value=_aggregate("value", values),
        values=tuple(values),
    )
