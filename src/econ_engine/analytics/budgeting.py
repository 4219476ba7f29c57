"""
Budgeting
=========
Budget planning and control for a project:

- create_budget_plan: split a total budget into category lines
- budget_variance_analysis: planned vs actual per category
- budget_forecast: projected spend from the current burn rate
- budget_optimization: priority-driven cuts or increases per category
- budget_performance_metrics: historical accuracy, trend and benchmark rank

Amounts keep full precision; percentages are percent points (12.5 = 12.5%).
Plans may be passed as BudgetPlan records or as the mapping shape
{total_budget, categories, project_name, ...} used by the transport layer.
"""

import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np

from econ_engine.config.constants import DEFAULT_CONFIG, BudgetConfig, EngineConfig
from econ_engine.models.inputs import (
    BudgetPriority,
    ForecastTrend,
    OptimizationGoal,
    coerce_enum,
    require_finite,
)
from econ_engine.models.results import (
    BenchmarkComparison,
    BudgetForecastResult,
    BudgetLine,
    BudgetOptimizationResult,
    BudgetPerformanceResult,
    BudgetPlan,
    BudgetTrend,
    BudgetVarianceResult,
    CategoryOptimization,
    CategoryVariance,
    PeriodAccuracy,
)
from econ_engine.utils.exceptions import InvalidInputError
from econ_engine.utils.stats import ols_fit

logger = logging.getLogger(__name__)

DEFAULT_PROJECT_NAME = "Unnamed Project"

# camelCase keys accepted from the transport layer
_KEY_ALIASES = {
    "projectName": "project_name",
    "totalBudget": "total_budget",
    "budgetBreakdown": "categories",
    "plannedAmount": "planned_amount",
    "variancePercentage": "variance_percentage",
    "industryAverage": "industry_average",
    "maxIncrease": "max_increase",
}

_BENCHMARK_RANKS = (("p90", "top-10%"), ("p75", "top-25%"), ("p50", "median"), ("p25", "bottom-25%"))


def _snake(data: Mapping[str, Any]) -> Dict[str, Any]:
    return {_KEY_ALIASES.get(key, key): value for key, value in data.items()}


def _require_sequence(items: Any, field_name: str, allow_empty: bool = False) -> List[Any]:
    if items is None or isinstance(items, (str, bytes, Mapping)):
        raise InvalidInputError("Expected a list", field=field_name, value=items)
    try:
        items = list(items)
    except TypeError:
        raise InvalidInputError("Expected a list", field=field_name, value=items) from None
    if not items and not allow_empty:
        raise InvalidInputError("At least one entry is required", field=field_name)
    return items


def _require_mapping(item: Any, field_name: str) -> Dict[str, Any]:
    if not isinstance(item, Mapping):
        raise InvalidInputError("Entry must be a mapping", field=field_name, value=item)
    return _snake(item)


def _require_name(data: Mapping[str, Any], key: str, field_name: str) -> str:
    name = data.get(key)
    if not isinstance(name, str) or not name.strip():
        raise InvalidInputError(f"Entry needs a non-empty '{key}'", field=field_name, value=name)
    return name.strip()


def _positive(value: Any, field_name: str) -> float:
    number = require_finite(value, field_name)
    if number <= 0:
        raise InvalidInputError("Value must be greater than 0", field=field_name, value=number)
    return number


def _non_negative(value: Any, field_name: str) -> float:
    number = require_finite(value, field_name)
    if number < 0:
        raise InvalidInputError("Value cannot be negative", field=field_name, value=number)
    return number


def _pct(part: float, whole: float) -> float:
    return part / whole * 100 if whole > 0 else 0.0


# ================================================================================
# PLAN
# ================================================================================

def _budget_line(raw: Any, index: int, total_budget: float) -> BudgetLine:
    field_name = f"categories[{index}]"
    data = _require_mapping(raw, field_name)
    name = _require_name(data, "name", f"{field_name}.name")

    amount = data.get("amount", data.get("planned_amount"))
    if amount is not None:
        amount = _non_negative(amount, f"{field_name}.amount")
    elif data.get("percentage") is not None:
        percentage = _non_negative(data["percentage"], f"{field_name}.percentage")
        amount = total_budget * percentage / 100
    else:
        raise InvalidInputError("Category needs an 'amount' or a 'percentage'", field=field_name, value=dict(raw))

    return BudgetLine(
        name=name,
        planned_amount=amount,
        percentage=amount / total_budget * 100,
        description=str(data.get("description") or ""),
        type=str(data.get("type") or "expense"),
    )


def create_budget_plan(
    total_budget: float,
    categories: Sequence[Mapping[str, Any]],
    project_name: str = DEFAULT_PROJECT_NAME,
    timeframe: str = "annual",
    currency: str = "USD",
) -> BudgetPlan:
    """
    Allocate a total budget to categories.

    Each category gives either an absolute ``amount`` or a ``percentage``
    of the total; an explicit amount wins when both are present.
    Over-allocation is allowed and shows up as a negative unallocated
    budget.

    Raises:
        InvalidInputError: total <= 0, no categories, category without
            name or amount/percentage, duplicate category names
    """
    total = _positive(total_budget, "total_budget")
    raw_categories = _require_sequence(categories, "categories")

    lines = tuple(_budget_line(raw, i, total) for i, raw in enumerate(raw_categories))

    # variance matching is case-insensitive, names must be unique on that basis
    seen = set()
    for line in lines:
        key = line.name.lower()
        if key in seen:
            raise InvalidInputError("Duplicate budget category", field="categories", value=line.name)
        seen.add(key)

    allocated = sum(line.planned_amount for line in lines)
    if allocated > total:
        logger.warning(f"Budget categories allocate {allocated:.2f} of a {total:.2f} total budget")

    return BudgetPlan(
        project_name=project_name or DEFAULT_PROJECT_NAME,
        total_budget=total,
        allocated_budget=allocated,
        unallocated_budget=total - allocated,
        allocation_percentage=allocated / total * 100,
        currency=currency,
        timeframe=timeframe or "annual",
        lines=lines,
    )


def _as_plan(budget_plan: Union[BudgetPlan, Mapping[str, Any]]) -> BudgetPlan:
    if isinstance(budget_plan, BudgetPlan):
        return budget_plan
    if not isinstance(budget_plan, Mapping):
        raise InvalidInputError("Budget plan must be a BudgetPlan or a mapping", field="budget_plan", value=budget_plan)
    data = _snake(budget_plan)
    return create_budget_plan(
        total_budget=data.get("total_budget"),
        categories=data.get("categories", data.get("lines")),
        project_name=data.get("project_name") or DEFAULT_PROJECT_NAME,
        timeframe=data.get("timeframe") or "annual",
        currency=data.get("currency") or "USD",
    )


def _budget_header(budget_plan: Any) -> Tuple[str, float]:
    """(project name, total budget) from a plan, a plan mapping or a bare total."""
    if isinstance(budget_plan, BudgetPlan):
        return budget_plan.project_name, budget_plan.total_budget
    if isinstance(budget_plan, Mapping):
        data = _snake(budget_plan)
        return data.get("project_name") or DEFAULT_PROJECT_NAME, _positive(data.get("total_budget"), "total_budget")
    return DEFAULT_PROJECT_NAME, _positive(budget_plan, "total_budget")


# ================================================================================
# VARIANCE
# ================================================================================

def budget_variance_analysis(
    budget_plan: Union[BudgetPlan, Mapping[str, Any]],
    actual_expenses: Sequence[Mapping[str, Any]],
    config: Optional[EngineConfig] = None,
) -> BudgetVarianceResult:
    """
    Compare actual spending with the plan, per category and in total.

    Actuals are matched to plan lines by case-insensitive name; several
    actual entries for one category are summed. Actuals with no plan line
    count towards the total and are listed as unplanned.

    Raises:
        InvalidInputError: invalid plan, actual entry without name or with
            a non-numeric amount
    """
    cfg = (config or DEFAULT_CONFIG).budgeting
    plan = _as_plan(budget_plan)
    entries = _require_sequence(actual_expenses, "actual_expenses", allow_empty=True)

    actual_by_name: Dict[str, float] = {}
    display_names: Dict[str, str] = {}
    for i, raw in enumerate(entries):
        data = _require_mapping(raw, f"actual_expenses[{i}]")
        name = _require_name(data, "name", f"actual_expenses[{i}].name")
        amount = require_finite(data.get("amount"), f"actual_expenses[{i}].amount")
        key = name.lower()
        actual_by_name[key] = actual_by_name.get(key, 0.0) + amount
        display_names.setdefault(key, name)

    categories = []
    for line in plan.lines:
        actual = actual_by_name.get(line.name.lower(), 0.0)
        variance = actual - line.planned_amount
        variance_pct = _pct(variance, line.planned_amount)
        if variance > 0:
            status = "over"
        elif variance < 0:
            status = "under"
        else:
            status = "on-track"
        categories.append(CategoryVariance(
            category=line.name,
            planned_amount=line.planned_amount,
            actual_amount=actual,
            variance=variance,
            variance_percentage=variance_pct,
            status=status,
            significant=abs(variance_pct) > cfg.significant_variance_pct,
        ))

    planned_names = {line.name.lower() for line in plan.lines}
    unplanned = tuple(display_names[key] for key in actual_by_name if key not in planned_names)

    total_actual = sum(actual_by_name.values())
    total_variance = total_actual - plan.total_budget
    return BudgetVarianceResult(
        project_name=plan.project_name,
        total_planned=plan.total_budget,
        total_actual=total_actual,
        total_variance=total_variance,
        total_variance_percentage=total_variance / plan.total_budget * 100,
        budget_utilization=total_actual / plan.total_budget * 100,
        categories=tuple(categories),
        unplanned_categories=unplanned,
    )


# ================================================================================
# FORECAST
# ================================================================================

def _forecast_recommendation(projected_variance_pct: float, cfg: BudgetConfig) -> str:
    if projected_variance_pct > cfg.overrun_significant_pct:
        return "Significant budget overrun projected. Consider reducing scope or securing additional funding."
    if projected_variance_pct > cfg.overrun_minor_pct:
        return "Minor budget overrun projected. Monitor spending closely and optimize where possible."
    if projected_variance_pct < cfg.underspend_significant_pct:
        return "Significant under-spending projected. Consider reallocating budget or expanding scope."
    return "Budget tracking well. Continue current spending patterns."


def budget_forecast(
    budget_plan: Union[BudgetPlan, Mapping[str, Any], float],
    spent_to_date: float,
    time_elapsed: float,
    total_timeframe: float,
    trend: Union[str, ForecastTrend] = ForecastTrend.LINEAR,
    config: Optional[EngineConfig] = None,
) -> BudgetForecastResult:
    """
    Project total spend from the burn rate so far.

    projected = (spent / elapsed) * timeframe * trend factor, where the
    factor is 1 for linear and the configured accelerating/decelerating
    factors otherwise. ``budget_plan`` may also be the bare total budget.

    Raises:
        InvalidInputError: total budget <= 0, negative spending,
            elapsed or timeframe <= 0, unknown trend
    """
    cfg = (config or DEFAULT_CONFIG).budgeting
    project_name, total_budget = _budget_header(budget_plan)
    spent = _non_negative(spent_to_date, "spent_to_date")
    elapsed = _positive(time_elapsed, "time_elapsed")
    timeframe = _positive(total_timeframe, "total_timeframe")
    trend = coerce_enum(ForecastTrend, trend, "trend")

    factors = {
        ForecastTrend.LINEAR: 1.0,
        ForecastTrend.ACCELERATING: cfg.accelerating_factor,
        ForecastTrend.DECELERATING: cfg.decelerating_factor,
    }
    burn_rate = spent / elapsed
    projected = burn_rate * timeframe * factors[trend]
    projected_variance = projected - total_budget
    projected_variance_pct = projected_variance / total_budget * 100

    remaining_budget = total_budget - spent
    remaining_time = timeframe - elapsed
    if remaining_time <= 0:
        logger.debug(f"Forecast after the end of the timeframe ({elapsed} of {timeframe})")

    return BudgetForecastResult(
        project_name=project_name,
        total_budget=total_budget,
        spent_to_date=spent,
        time_elapsed=elapsed,
        total_timeframe=timeframe,
        progress_percentage=elapsed / timeframe * 100,
        budget_utilized=spent / total_budget * 100,
        burn_rate=burn_rate,
        trend=trend,
        projected_total=projected,
        projected_variance=projected_variance,
        projected_variance_percentage=projected_variance_pct,
        remaining_budget=remaining_budget,
        remaining_time=remaining_time,
        required_burn_rate=remaining_budget / remaining_time if remaining_time > 0 else 0.0,
        recommendation=_forecast_recommendation(projected_variance_pct, cfg),
    )


# ================================================================================
# OPTIMIZATION
# ================================================================================

def _by_category(entries: Any, field_name: str, known: Mapping[str, str]) -> Dict[str, Any]:
    """
    Key per-category settings by lower-cased category name.

    Accepts {category: value} or [{category: ..., <settings>}, ...].
    """
    if entries is None:
        return {}
    if isinstance(entries, Mapping):
        pairs = list(entries.items())
    else:
        pairs = []
        for i, raw in enumerate(_require_sequence(entries, field_name, allow_empty=True)):
            data = _require_mapping(raw, f"{field_name}[{i}]")
            pairs.append((_require_name(data, "category", f"{field_name}[{i}].category"), data))

    result = {}
    for category, value in pairs:
        key = str(category).lower()
        if key not in known:
            raise InvalidInputError("Unknown budget category", field=field_name, value=category)
        result[key] = value
    return result


def _optimization_reasoning(action: str, savings: float) -> str:
    if action == "reduce":
        return f"Low priority category - recommended for {abs(savings):.2f} reduction"
    if action == "slight-reduce":
        return "Medium priority category - minor optimization opportunity"
    if action == "increase":
        return "High priority category - investment recommended for value maximization"
    return "No optimization recommended for this category"


def budget_optimization(
    budget_plan: Union[BudgetPlan, Mapping[str, Any]],
    priorities: Optional[Any] = None,
    constraints: Optional[Any] = None,
    goal: Union[str, OptimizationGoal] = OptimizationGoal.COST_REDUCTION,
    config: Optional[EngineConfig] = None,
) -> BudgetOptimizationResult:
    """
    Suggest per-category budget changes from priorities and constraints.

    cost-reduction: low priority lines are cut by ``low_priority_cut``,
    medium ones by ``medium_priority_cut``; ``fixed`` lines never change.
    value-maximization: high priority lines grow by the constraint's
    ``max_increase`` (``default_max_increase`` without a constraint); a
    fixed line, or a constraint without a positive cap, stays unchanged.
    Categories without a priority are medium.

    Savings are measured against the allocated budget (sum of lines).

    Raises:
        InvalidInputError: invalid plan, unknown category or priority,
            negative max_increase, unknown goal
    """
    cfg = (config or DEFAULT_CONFIG).budgeting
    plan = _as_plan(budget_plan)
    goal = coerce_enum(OptimizationGoal, goal, "goal")

    known = {line.name.lower(): line.name for line in plan.lines}
    raw_priorities = _by_category(priorities, "priorities", known)
    priority_of = {}
    for key, value in raw_priorities.items():
        if isinstance(value, Mapping):
            value = value.get("priority")
        priority_of[key] = coerce_enum(BudgetPriority, value, f"priorities.{known[key]}")

    constraint_of = {}
    for key, value in _by_category(constraints, "constraints", known).items():
        data = _require_mapping(value, f"constraints.{known[key]}")
        cap = data.get("max_increase")
        constraint_of[key] = {
            "fixed": bool(data.get("fixed", False)),
            "max_increase": None if cap is None else _non_negative(cap, f"constraints.{known[key]}.max_increase"),
        }

    categories = []
    for line in plan.lines:
        key = line.name.lower()
        priority = priority_of.get(key, BudgetPriority.MEDIUM)
        constraint = constraint_of.get(key)
        fixed = constraint is not None and constraint["fixed"]

        optimized = line.planned_amount
        action = "no-change"
        if goal is OptimizationGoal.COST_REDUCTION and not fixed:
            if priority is BudgetPriority.LOW:
                optimized = line.planned_amount * (1 - cfg.low_priority_cut)
                action = "reduce"
            elif priority is BudgetPriority.MEDIUM:
                optimized = line.planned_amount * (1 - cfg.medium_priority_cut)
                action = "slight-reduce"
        elif goal is OptimizationGoal.VALUE_MAXIMIZATION and priority is BudgetPriority.HIGH and not fixed:
            cap = cfg.default_max_increase if constraint is None else (constraint["max_increase"] or 0.0)
            if cap > 0:
                optimized = line.planned_amount * (1 + cap)
                action = "increase"

        savings = line.planned_amount - optimized
        categories.append(CategoryOptimization(
            category=line.name,
            original_amount=line.planned_amount,
            optimized_amount=optimized,
            savings=savings,
            savings_percentage=_pct(savings, line.planned_amount),
            priority=priority,
            action=action,
            reasoning=_optimization_reasoning(action, savings),
        ))

    recommendations = []
    for item in categories:
        if item.savings > 0:
            recommendations.append(f"Consider reducing {item.category} budget by {item.savings_percentage:.1f}%")
        elif item.savings < 0:
            recommendations.append(f"Consider increasing {item.category} budget for better value")

    original = plan.allocated_budget
    optimized_total = sum(item.optimized_amount for item in categories)
    return BudgetOptimizationResult(
        project_name=plan.project_name,
        goal=goal,
        original_budget=original,
        optimized_budget=optimized_total,
        total_savings=original - optimized_total,
        savings_percentage=_pct(original - optimized_total, original),
        categories=tuple(categories),
        recommendations=tuple(recommendations[: cfg.max_recommendations]),
    )


# ================================================================================
# PERFORMANCE
# ================================================================================

def _budget_trend(variances: Sequence[float], cfg: BudgetConfig) -> BudgetTrend:
    """Slope of variance % over period index; rising variance is worsening."""
    if len(variances) < 2:
        return BudgetTrend(trend="insufficient-data", slope=0.0)
    slope, _ = ols_fit(np.arange(len(variances), dtype=float), variances)
    if slope > cfg.trend_slope_threshold:
        trend = "worsening"
    elif slope > -cfg.trend_slope_threshold:
        trend = "stable"
    else:
        trend = "improving"
    return BudgetTrend(trend=trend, slope=slope)


def _benchmark(average_accuracy: float, benchmark: Any) -> BenchmarkComparison:
    data = _require_mapping(benchmark, "benchmark")
    industry_average = require_finite(data.get("industry_average", 0.0), "benchmark.industry_average")

    ranking = "unknown"
    percentiles = data.get("percentiles")
    if percentiles:
        if not isinstance(percentiles, Mapping):
            raise InvalidInputError("Benchmark percentiles must be a mapping", field="benchmark.percentiles")
        ranking = "bottom-10%"
        for key, label in _BENCHMARK_RANKS:
            threshold = require_finite(percentiles.get(key), f"benchmark.percentiles.{key}")
            if average_accuracy >= threshold:
                ranking = label
                break

    return BenchmarkComparison(
        industry_average=industry_average,
        performance_vs_benchmark=average_accuracy - industry_average,
        ranking=ranking,
    )


def budget_performance_metrics(
    history: Sequence[Mapping[str, Any]],
    benchmark: Optional[Mapping[str, Any]] = None,
    timeframe: str = "monthly",
    config: Optional[EngineConfig] = None,
) -> BudgetPerformanceResult:
    """
    Budget accuracy over past periods.

    Accuracy per period is max(0, 100 - |variance %|). The trend is the OLS
    slope of the signed variance % over period index. With a benchmark
    {industry_average, percentiles: {p25, p50, p75, p90}} the average
    accuracy is compared and ranked.

    Raises:
        InvalidInputError: empty history, period without variance_percentage,
            incomplete benchmark percentiles
    """
    cfg = (config or DEFAULT_CONFIG).budgeting
    entries = _require_sequence(history, "history")

    periods = []
    for i, raw in enumerate(entries):
        data = _require_mapping(raw, f"history[{i}]")
        variance = require_finite(data.get("variance_percentage"), f"history[{i}].variance_percentage")
        periods.append(PeriodAccuracy(
            period=str(data.get("period", i + 1)),
            variance_percentage=variance,
            accuracy=max(0.0, 100 - abs(variance)),
        ))

    average_accuracy = sum(p.accuracy for p in periods) / len(periods)
    trend = _budget_trend([p.variance_percentage for p in periods], cfg)

    recommendations = []
    if average_accuracy < cfg.accuracy_floor_pct:
        recommendations.append("Budget accuracy is below acceptable levels. Review estimation methods.")
    if trend.trend == "worsening":
        recommendations.append("Budget performance is declining. Implement corrective measures.")
    if average_accuracy > cfg.accuracy_excellent_pct:
        recommendations.append("Excellent budget performance. Document and share best practices.")

    return BudgetPerformanceResult(
        timeframe=timeframe,
        periods=tuple(periods),
        average_accuracy=average_accuracy,
        # max/min keep the first period on ties
        best_period=max(periods, key=lambda p: p.accuracy),
        worst_period=min(periods, key=lambda p: p.accuracy),
        trend=trend,
        benchmark=None if benchmark is None else _benchmark(average_accuracy, benchmark),
        recommendations=tuple(recommendations),
    )
