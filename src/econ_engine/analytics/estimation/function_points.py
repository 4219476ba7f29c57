"""
Function Point Sizing
=====================
Unadjusted points from the five IFPUG categories, scaled by a technical
complexity factor, then converted to hours and cost.
"""

from typing import Any, Mapping, Optional, Union

from econ_engine.config.constants import DEFAULT_CONFIG, EngineConfig
from econ_engine.models.inputs import FUNCTION_POINT_CATEGORIES, FunctionPointProfile, require_finite
from econ_engine.models.results import CategoryBreakdown, FunctionPointEstimate
from econ_engine.utils.exceptions import InvalidInputError


def function_points(
    profile: Union[FunctionPointProfile, Mapping[str, Any]],
    technical_complexity_factor: Optional[float] = None,
    config: Optional[EngineConfig] = None,
) -> FunctionPointEstimate:
    """
    Size a project in function points.

    Args:
        profile: FunctionPointProfile or mapping with the five counts and
            an optional ``complexity`` key
        technical_complexity_factor: Override for the TCF (> 0); defaults
            to the configured value (1.0)
        config: Engine configuration

    Raises:
        InvalidInputError: negative or fractional count, TCF <= 0
    """
    cfg = (config or DEFAULT_CONFIG).estimation
    if not isinstance(profile, FunctionPointProfile):
        profile = FunctionPointProfile.from_mapping(profile)

    tcf = cfg.technical_complexity_factor if technical_complexity_factor is None else technical_complexity_factor
    tcf = require_finite(tcf, "technical_complexity_factor")
    if tcf <= 0:
        raise InvalidInputError(
            "Technical complexity factor must be greater than 0",
            field="technical_complexity_factor",
            value=tcf,
        )

    weights = cfg.function_point_weights[profile.complexity]
    breakdown = {}
    for category in FUNCTION_POINT_CATEGORIES:
        count = getattr(profile, category)
        weight = weights[category]
        breakdown[category] = CategoryBreakdown(count=count, weight=weight, total=count * weight)

    ufp = sum(item.total for item in breakdown.values())
    afp = ufp * tcf
    total_hours = afp * cfg.hours_per_function_point

    return FunctionPointEstimate(
        complexity=profile.complexity,
        unadjusted_fp=float(ufp),
        technical_complexity_factor=tcf,
        adjusted_fp=afp,
        total_hours=total_hours,
        total_cost=total_hours * cfg.hourly_rate,
        development_days=total_hours / cfg.hours_per_day,
        hourly_rate=cfg.hourly_rate,
        breakdown=breakdown,
    )
