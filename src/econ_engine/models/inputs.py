"""
Input Records
=============
Immutable value records callers hand to the computation core.

Sostituisce i dict non tipizzati del livello di trasporto con strutture
validate: each record checks its own invariant on construction and raises
InvalidInputError, so operations never start on a half-valid input.
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple, Type, TypeVar

from econ_engine.utils.exceptions import InvalidInputError


# ================================================================================
# ENUMS
# ================================================================================

class ProjectType(str, Enum):
    """Development mode selecting the parametric constant set."""
    ORGANIC = "organic"
    SEMIDETACHED = "semidetached"
    EMBEDDED = "embedded"


class ComplexityTier(str, Enum):
    """Function-point weighting tier."""
    SIMPLE = "simple"
    AVERAGE = "average"
    COMPLEX = "complex"


class Distribution(str, Enum):
    """Probability distributions supported by the Monte Carlo sampler."""
    NORMAL = "normal"
    UNIFORM = "uniform"
    TRIANGULAR = "triangular"


class ForecastTrend(str, Enum):
    """Spending trend assumed by the budget forecast."""
    LINEAR = "linear"
    ACCELERATING = "accelerating"
    DECELERATING = "decelerating"


class OptimizationGoal(str, Enum):
    COST_REDUCTION = "cost-reduction"
    VALUE_MAXIMIZATION = "value-maximization"


class BudgetPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


# Ordine fisso delle cinque categorie di function point
FUNCTION_POINT_CATEGORIES: Tuple[str, ...] = (
    "external_inputs",
    "external_outputs",
    "external_inquiries",
    "internal_logical_files",
    "external_interface_files",
)


E = TypeVar("E", bound=Enum)


def coerce_enum(enum_cls: Type[E], value: Any, field_name: str) -> E:
    """Accept an enum member or its (case-insensitive) string value."""
    if isinstance(value, enum_cls):
        return value
    if isinstance(value, str):
        try:
            return enum_cls(value.strip().lower())
        except ValueError:
            pass
    allowed = ", ".join(m.value for m in enum_cls)
    raise InvalidInputError(
        f"Unknown {enum_cls.__name__}; expected one of: {allowed}",
        field=field_name,
        value=value,
    )


def require_finite(value: Any, field_name: str) -> float:
    """Convert to float, rejecting None, NaN, infinities and non-numbers."""
    if isinstance(value, bool):
        raise InvalidInputError("Expected a number, got a boolean", field=field_name, value=value)
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise InvalidInputError("Expected a number", field=field_name, value=value) from None
    if not math.isfinite(number):
        raise InvalidInputError("Value must be finite", field=field_name, value=value)
    return number


# ================================================================================
# SIZE AND PROJECT PROFILE
# ================================================================================

@dataclass(frozen=True)
class SizeEstimate:
    """Project size in thousands of source lines (KLOC)."""
    source_size_kloc: float

    def __post_init__(self):
        kloc = require_finite(self.source_size_kloc, "source_size_kloc")
        if kloc <= 0:
            raise InvalidInputError("KLOC must be greater than 0", field="source_size_kloc", value=kloc)
        object.__setattr__(self, "source_size_kloc", kloc)


@dataclass(frozen=True)
class FunctionPointProfile:
    """
    Counts of the five function-point categories plus a complexity tier.

    All counts must be non-negative integers. An all-zero profile is valid
    (it simply sizes to zero points).
    """
    external_inputs: int = 0
    external_outputs: int = 0
    external_inquiries: int = 0
    internal_logical_files: int = 0
    external_interface_files: int = 0
    complexity: ComplexityTier = ComplexityTier.AVERAGE

    def __post_init__(self):
        for name in FUNCTION_POINT_CATEGORIES:
            raw = getattr(self, name)
            count = require_finite(raw, name)
            if count < 0:
                raise InvalidInputError("Function point counts cannot be negative", field=name, value=raw)
            if count != int(count):
                raise InvalidInputError("Function point counts must be whole numbers", field=name, value=raw)
            object.__setattr__(self, name, int(count))
        object.__setattr__(self, "complexity", coerce_enum(ComplexityTier, self.complexity, "complexity"))

    @property
    def counts(self) -> Dict[str, int]:
        return {name: getattr(self, name) for name in FUNCTION_POINT_CATEGORIES}

    @property
    def is_empty(self) -> bool:
        return not any(self.counts.values())

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "FunctionPointProfile":
        """Build from a mapping, ignoring keys that are not categories."""
        kwargs = {name: data.get(name, 0) for name in FUNCTION_POINT_CATEGORIES}
        kwargs["complexity"] = data.get("complexity", ComplexityTier.AVERAGE)
        return cls(**kwargs)


@dataclass(frozen=True)
class ProjectProfile:
    """Project type plus an optional planned team size."""
    project_type: ProjectType = ProjectType.ORGANIC
    team_size: Optional[int] = None

    def __post_init__(self):
        object.__setattr__(self, "project_type", coerce_enum(ProjectType, self.project_type, "project_type"))
        if self.team_size is not None:
            size = require_finite(self.team_size, "team_size")
            if size < 1 or size != int(size):
                raise InvalidInputError("team_size must be an integer >= 1", field="team_size", value=self.team_size)
            object.__setattr__(self, "team_size", int(size))


# ================================================================================
# CASH FLOWS
# ================================================================================

@dataclass(frozen=True)
class CashFlowSeries:
    """
    Initial outlay at time zero followed by ordered period flows.

    Index i of period_flows is period i+1. At least one period flow is
    required; the discount rate is a decimal (0.10 = 10%).
    """
    initial_investment: float
    period_flows: Tuple[float, ...]
    discount_rate: float = 0.0

    def __post_init__(self):
        initial = require_finite(self.initial_investment, "initial_investment")
        if initial < 0:
            raise InvalidInputError(
                "Initial investment cannot be negative", field="initial_investment", value=initial
            )
        if self.period_flows is None or len(self.period_flows) == 0:
            raise InvalidInputError("Cash flows array cannot be empty", field="period_flows", value=self.period_flows)
        flows = tuple(require_finite(v, f"period_flows[{i}]") for i, v in enumerate(self.period_flows))
        rate = require_finite(self.discount_rate, "discount_rate")
        if rate < 0:
            raise InvalidInputError("Discount rate cannot be negative", field="discount_rate", value=rate)
        object.__setattr__(self, "initial_investment", initial)
        object.__setattr__(self, "period_flows", flows)
        object.__setattr__(self, "discount_rate", rate)

    @property
    def n_periods(self) -> int:
        return len(self.period_flows)

    @property
    def total_return(self) -> float:
        return float(math.fsum(self.period_flows))


# ================================================================================
# RANDOM VARIABLES
# ================================================================================

_REQUIRED_PARAMETERS = {
    Distribution.NORMAL: ("mean", "std_dev"),
    Distribution.UNIFORM: ("min", "max"),
    Distribution.TRIANGULAR: ("min", "mode", "max"),
}

# camelCase aliases used by the transport layer
_PARAMETER_ALIASES = {"stdDev": "std_dev", "std": "std_dev"}


@dataclass(frozen=True)
class RandomVariableSpec:
    """
    A distribution plus its parameters.

    - normal: mean, std_dev (>= 0)
    - uniform: min <= max
    - triangular: min <= mode <= max, with min < max
    """
    distribution: Distribution
    parameters: Mapping[str, float] = field(default_factory=dict)

    def __post_init__(self):
        dist = coerce_enum(Distribution, self.distribution, "distribution")
        raw = {_PARAMETER_ALIASES.get(k, k): v for k, v in dict(self.parameters or {}).items()}
        params = {}
        for name in _REQUIRED_PARAMETERS[dist]:
            if name not in raw:
                raise InvalidInputError(
                    f"Missing parameter '{name}' for {dist.value} distribution",
                    field=f"parameters.{name}",
                )
            params[name] = require_finite(raw[name], f"parameters.{name}")

        if dist is Distribution.NORMAL and params["std_dev"] < 0:
            raise InvalidInputError("std_dev cannot be negative", field="parameters.std_dev", value=params["std_dev"])
        if dist is Distribution.UNIFORM and params["min"] > params["max"]:
            raise InvalidInputError("min must not exceed max", field="parameters", value=params)
        if dist is Distribution.TRIANGULAR:
            if not params["min"] <= params["mode"] <= params["max"] or params["min"] == params["max"]:
                raise InvalidInputError(
                    "Triangular parameters require min <= mode <= max and min < max",
                    field="parameters",
                    value=params,
                )

        object.__setattr__(self, "distribution", dist)
        object.__setattr__(self, "parameters", params)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "RandomVariableSpec":
        if isinstance(data, cls):
            return data
        if not isinstance(data, Mapping) or "distribution" not in data:
            raise InvalidInputError("Variable spec needs a 'distribution' key", field="distribution", value=data)
        return cls(distribution=data["distribution"], parameters=data.get("parameters", {}))
