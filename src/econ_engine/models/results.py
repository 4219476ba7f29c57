"""
Result Records
==============
Typed output records, one variant per operation.

Every record carries a ``kind`` tag so heterogeneous lists (e.g. the input
of compare_estimations) can be dispatched without guessing at field names.
Numeric fields keep full double precision: rounding is a presentation
concern and belongs to the caller.
"""

import json
import math
from dataclasses import dataclass, field, fields, is_dataclass
from enum import Enum
from typing import Any, ClassVar, Dict, Optional, Tuple

import pandas as pd

from econ_engine.models.inputs import (
    BudgetPriority,
    ComplexityTier,
    ForecastTrend,
    OptimizationGoal,
    ProjectType,
)
from econ_engine.utils.exceptions import ConvergenceWarning


def _plain(value: Any) -> Any:
    """Recursively convert records, enums and tuples into JSON-ready values."""
    if isinstance(value, ResultRecord):
        # nested results keep their kind tag and derived fields
        return value.to_dict()
    if is_dataclass(value) and not isinstance(value, type):
        return {f.name: _plain(getattr(value, f.name)) for f in fields(value)}
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, ConvergenceWarning):
        return value.to_dict()
    if isinstance(value, dict):
        return {str(k.value if isinstance(k, Enum) else k): _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    if isinstance(value, float) and not math.isfinite(value):
        return None
    return value


class ResultRecord:
    """Mixin giving every result a kind tag plus dict/JSON export."""

    kind: ClassVar[str] = "result"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary (JSON-serializable, non-finite floats -> None)."""
        data = {f.name: _plain(getattr(self, f.name)) for f in fields(self)}
        data["kind"] = self.kind
        return data

    def to_json(self, indent: Optional[int] = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)


# ================================================================================
# ESTIMATION RESULTS
# ================================================================================

@dataclass(frozen=True)
class ParametricEstimate(ResultRecord):
    """Effort / schedule / cost from the parametric (COCOMO-style) model."""
    kind: ClassVar[str] = "parametric"

    project_type: ProjectType
    kloc: float
    effort: float              # person-months
    schedule: float            # months
    average_team_size: float
    cost: float
    productivity: float        # KLOC per person-month
    cost_per_person_month: float
    team_size: Optional[int] = None
    staffing_ratio: Optional[float] = None  # planned team / model team


@dataclass(frozen=True)
class CategoryBreakdown:
    count: int
    weight: float
    total: float


@dataclass(frozen=True)
class FunctionPointEstimate(ResultRecord):
    """Function-point sizing with derived hours and cost."""
    kind: ClassVar[str] = "function_points"

    complexity: ComplexityTier
    unadjusted_fp: float
    technical_complexity_factor: float
    adjusted_fp: float
    total_hours: float
    total_cost: float
    development_days: float
    hourly_rate: float
    breakdown: Dict[str, CategoryBreakdown] = field(default_factory=dict)


@dataclass(frozen=True)
class ExpertEstimate(ResultRecord):
    """Delphi aggregation of independent expert estimates plus PERT."""
    kind: ClassVar[str] = "expert_judgment"

    n_experts: int
    estimates: Tuple[float, ...]
    mean: float
    median: float
    std_dev: float
    minimum: float
    maximum: float
    filtered: Tuple[float, ...]
    adjusted_mean: float
    used_fallback: bool         # filtered set was empty, unfiltered mean used
    pert_estimate: float
    confidence_low: float
    confidence_high: float


@dataclass(frozen=True)
class RegressionEstimate(ResultRecord):
    """Ordinary least squares effort = intercept + slope * size."""
    kind: ClassVar[str] = "regression"

    slope: float
    intercept: float
    project_size: float
    predicted_effort: float
    correlation: float
    r_squared: float
    standard_error: float
    confidence_lower: float
    confidence_upper: float
    n_points: int

    @property
    def equation(self) -> str:
        return f"Effort = {self.intercept:.2f} + {self.slope:.2f} × Size"


# ================================================================================
# FINANCIAL RESULTS
# ================================================================================

@dataclass(frozen=True)
class ROIResult(ResultRecord):
    kind: ClassVar[str] = "roi"

    total_investment: float
    total_return: float
    net_profit: float
    roi_pct: float

    @property
    def interpretation(self) -> str:
        if self.roi_pct > 0:
            return "Profitable"
        if self.roi_pct < 0:
            return "Loss"
        return "Break-even"

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["interpretation"] = self.interpretation
        return data


@dataclass(frozen=True)
class DiscountedFlow:
    period: int
    cash_flow: float
    discounted_value: float


@dataclass(frozen=True)
class NPVResult(ResultRecord):
    kind: ClassVar[str] = "npv"

    initial_investment: float
    discount_rate: float
    present_value: float
    npv: float
    discounted_flows: Tuple[DiscountedFlow, ...] = ()

    @property
    def interpretation(self) -> str:
        if self.npv > 0:
            return "Accept Project"
        if self.npv < 0:
            return "Reject Project"
        return "Indifferent"

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["interpretation"] = self.interpretation
        return data


@dataclass(frozen=True)
class IRRResult(ResultRecord):
    """
    Internal rate of return plus the evidence needed to trust it.

    ``residual`` is the NPV evaluated at ``irr``: callers must inspect it
    (or ``converged``/``warning``) before acting on the rate.
    """
    kind: ClassVar[str] = "irr"

    initial_investment: float
    cash_flows: Tuple[float, ...]
    irr: float                   # decimal, 0.12 = 12%
    residual: float
    iterations: int
    converged: bool
    method: str                  # "newton" | "bisection"
    warning: Optional[ConvergenceWarning] = None

    @property
    def irr_pct(self) -> float:
        return self.irr * 100

    @property
    def interpretation(self) -> str:
        return "Positive return" if self.irr > 0 else "Negative return"

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["irr_pct"] = self.irr_pct
        data["interpretation"] = self.interpretation
        return data


@dataclass(frozen=True)
class CumulativePoint:
    period: int
    cash_flow: float
    counted_flow: float          # discounted when the walk is discounted
    cumulative: float


@dataclass(frozen=True)
class PaybackResult(ResultRecord):
    """Simple or discounted payback; ``payback_period`` None = indeterminate."""
    kind: ClassVar[str] = "payback"

    discounted: bool
    initial_investment: float
    discount_rate: float
    payback_period: Optional[float]
    cumulative_series: Tuple[CumulativePoint, ...] = ()

    @property
    def is_determinate(self) -> bool:
        return self.payback_period is not None

    @property
    def whole_periods(self) -> Optional[int]:
        return None if self.payback_period is None else int(math.floor(self.payback_period))

    @property
    def months(self) -> Optional[int]:
        """Fractional period expressed in months (periods read as years)."""
        if self.payback_period is None:
            return None
        return int(round((self.payback_period % 1) * 12))

    @property
    def interpretation(self) -> str:
        prefix = "Discounted investment" if self.discounted else "Investment"
        if self.is_determinate:
            return f"{prefix} recoverable"
        return f"{prefix} not recoverable within given period"

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["whole_periods"] = self.whole_periods
        data["months"] = self.months
        data["interpretation"] = self.interpretation
        return data


@dataclass(frozen=True)
class RecommendationScore:
    score: int
    max_score: int
    band: str
    reasons: Tuple[str, ...]


@dataclass(frozen=True)
class ComprehensiveAnalysis(ResultRecord):
    kind: ClassVar[str] = "comprehensive"

    project_name: str
    roi: ROIResult
    npv: NPVResult
    irr: IRRResult
    payback: PaybackResult
    discounted_payback: PaybackResult
    recommendation: RecommendationScore
    net_profit: float
    project_duration: int
    average_period_flow: float


@dataclass(frozen=True)
class RateSensitivityPoint:
    parameter: str               # "discount_rate" | "cash_flow_multiplier"
    value: float
    npv: float
    roi_pct: Optional[float] = None


@dataclass(frozen=True)
class RateSensitivityResult(ResultRecord):
    kind: ClassVar[str] = "rate_sensitivity"

    base: NPVResult
    points: Tuple[RateSensitivityPoint, ...]

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame([_plain(p) for p in self.points], columns=["parameter", "value", "npv", "roi_pct"])


# ================================================================================
# RISK RESULTS
# ================================================================================

@dataclass(frozen=True)
class SensitivityPoint:
    variable: str
    value: float
    percent_change: float
    npv: float


@dataclass(frozen=True)
class VariableSensitivity:
    variable: str
    coefficient: float           # NPV change per 1% change in the variable


@dataclass(frozen=True)
class SensitivityResult(ResultRecord):
    """One-at-a-time sensitivity with variables ranked by |coefficient|."""
    kind: ClassVar[str] = "sensitivity"

    base_scenario: Dict[str, float]
    base_npv: float
    points: Tuple[SensitivityPoint, ...]
    ranking: Tuple[VariableSensitivity, ...]

    @property
    def coefficients(self) -> Dict[str, float]:
        return {item.variable: item.coefficient for item in self.ranking}

    def to_frame(self) -> pd.DataFrame:
        """Sampled points as a DataFrame (one row per evaluation)."""
        return pd.DataFrame(
            [_plain(p) for p in self.points],
            columns=["variable", "value", "percent_change", "npv"],
        )

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["coefficients"] = self.coefficients
        return data


@dataclass(frozen=True)
class NodeEvaluation:
    index: int
    name: str
    node_kind: str
    expected_value: float
    chosen_child: Optional[int] = None   # decision nodes only


@dataclass(frozen=True)
class DecisionTreeResult(ResultRecord):
    kind: ClassVar[str] = "decision_tree"

    expected_value: float
    best_path: Tuple[str, ...]
    recommendation: Optional[str]
    nodes: Tuple[NodeEvaluation, ...]


@dataclass(frozen=True)
class HistogramBin:
    bin: int
    lower: float
    upper: float
    count: int
    frequency: float             # percent of valid outcomes


@dataclass(frozen=True)
class MonteCarloStatistics:
    mean: float
    median: float
    std_dev: float
    variance: float
    minimum: float
    maximum: float


@dataclass(frozen=True)
class MonteCarloResult(ResultRecord):
    """
    Summary of a Monte Carlo run.

    ``failed_trials`` is non-zero only under the "sentinel" formula-error
    policy; those trials are excluded from every statistic below.
    """
    kind: ClassVar[str] = "monte_carlo"

    formula: str
    iterations: int
    valid_trials: int
    failed_trials: int
    statistics: MonteCarloStatistics
    confidence_level: float
    ci_lower: float
    ci_upper: float
    probability_of_loss: float   # fraction in [0, 1]
    value_at_risk: float
    conditional_value_at_risk: float
    percentiles: Dict[str, float]
    histogram: Tuple[HistogramBin, ...]
    seed: Optional[int] = None


@dataclass(frozen=True)
class ScenarioOutcome:
    name: str
    npv: float
    probability: Optional[float] = None


@dataclass(frozen=True)
class ScenarioAnalysisResult(ResultRecord):
    kind: ClassVar[str] = "scenario_analysis"

    scenarios: Tuple[ScenarioOutcome, ...]
    expected_npv: Optional[float]
    worst_case: float
    best_case: float
    range: float


@dataclass(frozen=True)
class AssessedRisk:
    name: str
    impact: float
    probability: float
    score: float
    level: str                   # "High" | "Medium" | "Low"
    action: str
    priority: str
    suggestion: str


@dataclass(frozen=True)
class RiskMatrixResult(ResultRecord):
    kind: ClassVar[str] = "risk_matrix"

    risks: Tuple[AssessedRisk, ...]
    high_count: int
    medium_count: int
    low_count: int
    total_score: float
    average_score: float


# ================================================================================
# BUDGETING RESULTS
# ================================================================================

@dataclass(frozen=True)
class BudgetLine:
    name: str
    planned_amount: float
    percentage: float            # share of the total budget, in percent
    description: str = ""
    type: str = "expense"


@dataclass(frozen=True)
class BudgetPlan(ResultRecord):
    """Total budget split into category lines."""
    kind: ClassVar[str] = "budget_plan"

    project_name: str
    total_budget: float
    allocated_budget: float
    unallocated_budget: float    # negative when categories over-allocate
    allocation_percentage: float
    currency: str
    timeframe: str
    lines: Tuple[BudgetLine, ...]

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(
            [_plain(line) for line in self.lines],
            columns=["name", "planned_amount", "percentage", "description", "type"],
        )


@dataclass(frozen=True)
class CategoryVariance:
    category: str
    planned_amount: float
    actual_amount: float
    variance: float              # actual - planned
    variance_percentage: float
    status: str                  # over | under | on-track
    significant: bool


@dataclass(frozen=True)
class BudgetVarianceResult(ResultRecord):
    kind: ClassVar[str] = "budget_variance"

    project_name: str
    total_planned: float
    total_actual: float
    total_variance: float
    total_variance_percentage: float
    budget_utilization: float    # actual / planned, in percent
    categories: Tuple[CategoryVariance, ...]
    unplanned_categories: Tuple[str, ...] = ()

    @property
    def overall_status(self) -> str:
        if self.total_variance > 0:
            return "over-budget"
        if self.total_variance < 0:
            return "under-budget"
        return "on-budget"

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["overall_status"] = self.overall_status
        return data

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame([_plain(c) for c in self.categories])


@dataclass(frozen=True)
class BudgetForecastResult(ResultRecord):
    """Spend projection at the current burn rate, adjusted by trend."""
    kind: ClassVar[str] = "budget_forecast"

    project_name: str
    total_budget: float
    spent_to_date: float
    time_elapsed: float
    total_timeframe: float
    progress_percentage: float
    budget_utilized: float
    burn_rate: float
    trend: ForecastTrend
    projected_total: float
    projected_variance: float
    projected_variance_percentage: float
    remaining_budget: float
    remaining_time: float
    required_burn_rate: float    # 0 once the timeframe is exhausted
    recommendation: str


@dataclass(frozen=True)
class CategoryOptimization:
    category: str
    original_amount: float
    optimized_amount: float
    savings: float               # negative for an increase
    savings_percentage: float
    priority: BudgetPriority
    action: str                  # reduce | slight-reduce | increase | no-change
    reasoning: str


@dataclass(frozen=True)
class BudgetOptimizationResult(ResultRecord):
    kind: ClassVar[str] = "budget_optimization"

    project_name: str
    goal: OptimizationGoal
    original_budget: float
    optimized_budget: float
    total_savings: float
    savings_percentage: float
    categories: Tuple[CategoryOptimization, ...]
    recommendations: Tuple[str, ...]


@dataclass(frozen=True)
class PeriodAccuracy:
    period: str
    variance_percentage: float
    accuracy: float              # max(0, 100 - |variance %|)


@dataclass(frozen=True)
class BudgetTrend:
    trend: str                   # improving | stable | worsening | insufficient-data
    slope: float


@dataclass(frozen=True)
class BenchmarkComparison:
    industry_average: float
    performance_vs_benchmark: float
    ranking: str


@dataclass(frozen=True)
class BudgetPerformanceResult(ResultRecord):
    kind: ClassVar[str] = "budget_performance"

    timeframe: str
    periods: Tuple[PeriodAccuracy, ...]
    average_accuracy: float
    best_period: PeriodAccuracy
    worst_period: PeriodAccuracy
    trend: BudgetTrend
    benchmark: Optional[BenchmarkComparison]
    recommendations: Tuple[str, ...]


# ================================================================================
# COMPARISON
# ================================================================================

@dataclass(frozen=True)
class AggregateStatistics:
    metric: str
    count: int
    mean: float
    median: float
    std_dev: float
    minimum: float
    maximum: float
    spread: float


@dataclass(frozen=True)
class ComparisonResult(ResultRecord):
    kind: ClassVar[str] = "comparison"

    n_results: int
    kinds: Tuple[str, ...]
    effort: Optional[AggregateStatistics]
    cost: Optional[AggregateStatistics]


@dataclass(frozen=True)
class ScenarioComparisonResult(ResultRecord):
    """NPV-like values (NPV, Monte Carlo mean, tree EV) aggregated across results."""
    kind: ClassVar[str] = "scenario_comparison"

    n_results: int
    kinds: Tuple[str, ...]
    value: AggregateStatistics
    values: Tuple[float, ...]
