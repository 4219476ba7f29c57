"""
Investment Analysis
===================
Comprehensive analysis (all metrics + recommendation score) and the
discount-rate / cash-flow sensitivity sweep.
"""

import math
from typing import Iterable, Optional, Sequence, Tuple

import numpy as np

from econ_engine.analytics.financial.metrics import (
    calculate_discounted_payback,
    calculate_irr,
    calculate_npv,
    calculate_payback,
    calculate_roi,
)
from econ_engine.config.constants import DEFAULT_CONFIG, EngineConfig, ScoringPolicy
from econ_engine.models.inputs import CashFlowSeries, require_finite
from econ_engine.models.results import (
    ComprehensiveAnalysis,
    IRRResult,
    NPVResult,
    PaybackResult,
    RateSensitivityPoint,
    RateSensitivityResult,
    RecommendationScore,
    ROIResult,
)
from econ_engine.utils.exceptions import InvalidInputError


def score_investment(
    roi: ROIResult,
    npv: NPVResult,
    irr: IRRResult,
    payback: PaybackResult,
    discount_rate: float,
    policy: ScoringPolicy,
) -> RecommendationScore:
    """
    Heuristic recommendation score.

    Default policy: NPV > 0 +2, ROI > 15% +2, IRR > discount rate +2,
    payback <= 3 periods +1. A non-converged IRR earns no points.
    """
    npv_ok = npv.npv > 0
    roi_ok = roi.roi_pct > policy.roi_threshold_pct
    irr_ok = irr.converged and irr.irr > discount_rate
    payback_ok = payback.is_determinate and payback.payback_period <= policy.payback_threshold_periods

    score = (
        (policy.npv_positive_points if npv_ok else 0)
        + (policy.roi_points if roi_ok else 0)
        + (policy.irr_points if irr_ok else 0)
        + (policy.payback_points if payback_ok else 0)
    )
    reasons = (
        "Positive NPV" if npv_ok else "Negative NPV",
        "High ROI" if roi_ok else "Low ROI",
        "IRR exceeds discount rate" if irr_ok else "IRR below discount rate",
        "Quick payback" if payback_ok else "Slow payback",
    )
    return RecommendationScore(
        score=score,
        max_score=policy.max_score,
        band=policy.band_for(score),
        reasons=reasons,
    )


def comprehensive_analysis(
    initial_investment: float,
    cash_flows: Optional[Sequence[float]] = None,
    discount_rate: Optional[float] = None,
    project_name: str = "Unnamed Project",
    config: Optional[EngineConfig] = None,
) -> ComprehensiveAnalysis:
    """
    Run ROI, NPV, IRR, payback and discounted payback and score the project.

    ROI uses the undiscounted sum of period flows as total return.

    Raises:
        InvalidInputError: investment <= 0, empty flows, negative rate
    """
    cfg = config or DEFAULT_CONFIG
    if isinstance(initial_investment, CashFlowSeries):
        series = initial_investment
        if discount_rate is not None:
            series = CashFlowSeries(series.initial_investment, series.period_flows, discount_rate)
    else:
        rate = cfg.financial.default_discount_rate if discount_rate is None else discount_rate
        series = CashFlowSeries(
            initial_investment,
            tuple(cash_flows) if cash_flows is not None else (),
            rate,
        )

    # Validate everything up front: ROI requires a strictly positive outlay
    if series.initial_investment <= 0:
        raise InvalidInputError(
            "Initial investment must be greater than 0",
            field="initial_investment",
            value=series.initial_investment,
        )

    total_return = series.total_return
    roi = calculate_roi(series.initial_investment, total_return)
    npv = calculate_npv(series)
    irr = calculate_irr(series, config=cfg)
    payback = calculate_payback(series)
    discounted_payback = calculate_discounted_payback(series)

    recommendation = score_investment(
        roi, npv, irr, payback, series.discount_rate, cfg.financial.scoring
    )

    return ComprehensiveAnalysis(
        project_name=project_name,
        roi=roi,
        npv=npv,
        irr=irr,
        payback=payback,
        discounted_payback=discounted_payback,
        recommendation=recommendation,
        net_profit=total_return - series.initial_investment,
        project_duration=series.n_periods,
        average_period_flow=total_return / series.n_periods,
    )


def _rate_grid(min_rate: float, max_rate: float, step: float) -> np.ndarray:
    """Inclusive grid min, min+step, ..., <= max without float drift."""
    count = int(math.floor((max_rate - min_rate) / step + 1e-9)) + 1
    return min_rate + step * np.arange(count)


def rate_sensitivity(
    series: CashFlowSeries,
    rate_range: Optional[Tuple[float, float, float]] = None,
    cash_flow_multipliers: Optional[Iterable[float]] = None,
) -> RateSensitivityResult:
    """
    NPV across a discount-rate range and across scaled cash flows.

    Args:
        series: Base case
        rate_range: (min, max, step), inclusive of max when reached exactly
        cash_flow_multipliers: e.g. (0.8, 1.0, 1.2); NPV and ROI per value

    Raises:
        InvalidInputError: step <= 0, min > max, negative rates
    """
    points = []

    if rate_range is not None:
        min_rate, max_rate, step = (require_finite(v, "rate_range") for v in rate_range)
        if step <= 0:
            raise InvalidInputError("Rate step must be greater than 0", field="rate_range.step", value=step)
        if min_rate > max_rate:
            raise InvalidInputError("Rate range min exceeds max", field="rate_range", value=rate_range)
        if min_rate < 0:
            raise InvalidInputError("Discount rate cannot be negative", field="rate_range.min", value=min_rate)
        for rate in _rate_grid(min_rate, max_rate, step):
            result = calculate_npv(series, discount_rate=float(rate))
            points.append(RateSensitivityPoint(parameter="discount_rate", value=float(rate), npv=result.npv))

    if cash_flow_multipliers is not None:
        multipliers = [require_finite(m, "cash_flow_multipliers") for m in cash_flow_multipliers]
        for multiplier in multipliers:
            scaled = tuple(flow * multiplier for flow in series.period_flows)
            npv = calculate_npv(series.initial_investment, scaled, series.discount_rate)
            roi_pct = None
            if series.initial_investment > 0:
                roi_pct = calculate_roi(series.initial_investment, math.fsum(scaled)).roi_pct
            points.append(
                RateSensitivityPoint(parameter="cash_flow_multiplier", value=multiplier, npv=npv.npv, roi_pct=roi_pct)
            )

    return RateSensitivityResult(base=calculate_npv(series), points=tuple(points))
