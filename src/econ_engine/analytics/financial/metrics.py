"""
Financial Metrics Module
========================
ROI, NPV, IRR and (discounted) payback over cash-flow series.

Conventions:
- Rates are decimals (0.10 = 10%); ROI is reported in percent
- Period flow i (0-based) is received at the end of period i+1
- The initial investment is an outlay at t = 0
"""

import logging
import math
from typing import Optional, Sequence, Tuple, Union

import numpy as np
from scipy.optimize import brentq

from econ_engine.config.constants import DEFAULT_CONFIG, EngineConfig
from econ_engine.models.inputs import CashFlowSeries, require_finite
from econ_engine.models.results import (
    CumulativePoint,
    DiscountedFlow,
    IRRResult,
    NPVResult,
    PaybackResult,
    ROIResult,
)
from econ_engine.utils.exceptions import ConvergenceWarning, InvalidInputError

logger = logging.getLogger(__name__)

SeriesLike = Union[CashFlowSeries, float]


def _as_series(
    initial_investment: SeriesLike,
    cash_flows: Optional[Sequence[float]],
    discount_rate: Optional[float],
) -> CashFlowSeries:
    """Accept either a CashFlowSeries or the three raw arguments."""
    if isinstance(initial_investment, CashFlowSeries):
        if discount_rate is None:
            return initial_investment
        return CashFlowSeries(initial_investment.initial_investment, initial_investment.period_flows, discount_rate)
    return CashFlowSeries(
        initial_investment=initial_investment,
        period_flows=tuple(cash_flows) if cash_flows is not None else (),
        discount_rate=0.0 if discount_rate is None else discount_rate,
    )


def discount_factors(rate: float, n_periods: int) -> np.ndarray:
    """(1 + rate)^-t for t = 1..n"""
    periods = np.arange(1, n_periods + 1, dtype=float)
    return (1.0 + rate) ** -periods


def npv_at_rate(rate: float, initial_investment: float, flows: Sequence[float]) -> float:
    """NPV(rate) = sum(flow_t / (1+rate)^t) - initial"""
    values = np.asarray(flows, dtype=float)
    return float(np.sum(values * discount_factors(rate, len(values))) - initial_investment)


def _npv_derivative(rate: float, flows: Sequence[float]) -> float:
    """dNPV/drate = -sum(t * flow_t / (1+rate)^(t+1))"""
    values = np.asarray(flows, dtype=float)
    periods = np.arange(1, len(values) + 1, dtype=float)
    return float(-np.sum(periods * values * (1.0 + rate) ** -(periods + 1)))


# =========================
# ROI
# =========================

def calculate_roi(total_investment: float, total_return: float) -> ROIResult:
    """
    ROI = (total_return - total_investment) / total_investment, in percent.

    Raises:
        InvalidInputError: investment <= 0
    """
    investment = require_finite(total_investment, "total_investment")
    returned = require_finite(total_return, "total_return")
    if investment <= 0:
        raise InvalidInputError("Total investment must be greater than 0", field="total_investment", value=investment)

    net_profit = returned - investment
    return ROIResult(
        total_investment=investment,
        total_return=returned,
        net_profit=net_profit,
        roi_pct=net_profit / investment * 100,
    )


# =========================
# NPV
# =========================

def calculate_npv(
    initial_investment: SeriesLike,
    cash_flows: Optional[Sequence[float]] = None,
    discount_rate: Optional[float] = None,
) -> NPVResult:
    """
    Net present value of a cash-flow series.

    Raises:
        InvalidInputError: empty flows, negative rate, negative investment
    """
    series = _as_series(initial_investment, cash_flows, discount_rate)
    factors = discount_factors(series.discount_rate, series.n_periods)
    discounted = np.asarray(series.period_flows) * factors
    present_value = float(np.sum(discounted))

    return NPVResult(
        initial_investment=series.initial_investment,
        discount_rate=series.discount_rate,
        present_value=present_value,
        npv=present_value - series.initial_investment,
        discounted_flows=tuple(
            DiscountedFlow(period=t + 1, cash_flow=flow, discounted_value=float(value))
            for t, (flow, value) in enumerate(zip(series.period_flows, discounted))
        ),
    )


# =========================
# IRR
# =========================

def _newton_irr(
    initial: float,
    flows: Tuple[float, ...],
    seed: float,
    reseed: float,
    tolerance: float,
    max_iterations: int,
) -> Tuple[float, int, bool]:
    """
    Newton-Raphson on NPV(rate) = 0.

    Returns (rate, iterations, converged). When |dNPV| < tolerance the
    iteration restarts once from ``reseed``; a second flat derivative, a
    rate at or below -100% or a non-finite value stops the iteration.
    """
    rate = seed
    reseeded = False
    for iteration in range(1, max_iterations + 1):
        npv = npv_at_rate(rate, initial, flows)
        if not math.isfinite(npv):
            return rate, iteration, False
        if abs(npv) < tolerance:
            return rate, iteration, True

        dnpv = _npv_derivative(rate, flows)
        if abs(dnpv) < tolerance:
            if reseeded:
                return rate, iteration, False
            logger.debug(f"IRR derivative vanished at rate={rate:.6f}; reseeding at {reseed}")
            rate = reseed
            reseeded = True
            continue

        step = npv / dnpv
        next_rate = rate - step
        if not math.isfinite(next_rate) or next_rate <= -1.0:
            return rate, iteration, False
        # Rate stopped moving: NPV residual is at floating-point resolution
        if abs(step) <= 1e-12 * max(1.0, abs(rate)):
            return next_rate, iteration, True
        rate = next_rate

    return rate, max_iterations, abs(npv_at_rate(rate, initial, flows)) < tolerance


def _bracketed_irr(initial: float, flows: Tuple[float, ...], grid: Sequence[float]) -> Optional[float]:
    """Find the first sign change of NPV on the grid and solve it with Brent's method."""
    points = sorted(r for r in grid if r > -1.0)
    values = [npv_at_rate(r, initial, flows) for r in points]
    for (lo, f_lo), (hi, f_hi) in zip(zip(points, values), zip(points[1:], values[1:])):
        if not (math.isfinite(f_lo) and math.isfinite(f_hi)):
            continue
        if f_lo == 0.0:
            return lo
        if f_lo * f_hi < 0:
            return float(brentq(npv_at_rate, lo, hi, args=(initial, flows), xtol=1e-12, maxiter=200))
    if values and values[-1] == 0.0:
        return points[-1]
    return None


def calculate_irr(
    initial_investment: SeriesLike,
    cash_flows: Optional[Sequence[float]] = None,
    config: Optional[EngineConfig] = None,
) -> IRRResult:
    """
    Internal rate of return via Newton-Raphson with a bracketing fallback.

    Strategy:
    1. Newton from 0.10 (tolerance 1e-4 on |NPV|, max 100 iterations);
       a vanishing derivative triggers one restart from 0.05.
    2. If Newton did not converge, scan a fixed rate grid for a sign change
       of NPV and solve that bracket with scipy's brentq.
    3. If neither converges, return the last Newton iterate with a
       ConvergenceWarning attached. Never raises on non-convergence:
       ``residual`` (NPV at the returned rate) is always reported.

    Cash-flow patterns with several sign changes can have multiple real
    roots; the result is then the root nearest the seed (Newton) or the
    lowest bracketed root (fallback).

    Raises:
        InvalidInputError: empty cash flows, negative investment
    """
    cfg = (config or DEFAULT_CONFIG).financial
    series = _as_series(initial_investment, cash_flows, None)
    initial, flows = series.initial_investment, series.period_flows

    rate, iterations, converged = _newton_irr(
        initial,
        flows,
        seed=cfg.irr_seed,
        reseed=cfg.irr_reseed,
        tolerance=cfg.irr_tolerance,
        max_iterations=cfg.irr_max_iterations,
    )
    method = "newton"

    if not converged and cfg.irr_bracket_fallback:
        root = _bracketed_irr(initial, flows, cfg.irr_bracket_grid)
        if root is not None:
            logger.debug(f"IRR Newton failed after {iterations} iterations; bracketed root {root:.6f}")
            rate, converged, method = root, True, "bisection"

    residual = npv_at_rate(rate, initial, flows)
    warning = None
    if not converged:
        warning = ConvergenceWarning(
            f"IRR did not converge after {iterations} iterations (residual NPV {residual:.6g})",
            residual=residual,
            iterations=iterations,
        )
        logger.warning(str(warning))

    return IRRResult(
        initial_investment=initial,
        cash_flows=flows,
        irr=float(rate),
        residual=residual,
        iterations=iterations,
        converged=converged,
        method=method,
        warning=warning,
    )


# =========================
# PAYBACK
# =========================

def _payback(series: CashFlowSeries, discounted: bool) -> PaybackResult:
    """
    Walk the cumulative (optionally discounted) flow from -initial.

    At the first period i where the cumulative turns non-negative:
        payback = (i - 1) + |cumulative_(i-1)| / flow_i
    Never reaching zero leaves the payback indeterminate (None).
    """
    rate = series.discount_rate if discounted else 0.0
    counted = np.asarray(series.period_flows) * discount_factors(rate, series.n_periods)

    cumulative = -series.initial_investment
    payback_period = 0.0 if series.initial_investment == 0 else None
    points = []
    for index, (flow, value) in enumerate(zip(series.period_flows, counted)):
        previous = cumulative
        cumulative = previous + float(value)
        points.append(CumulativePoint(period=index + 1, cash_flow=flow, counted_flow=float(value), cumulative=cumulative))
        if payback_period is None and previous < 0 <= cumulative:
            payback_period = index + abs(previous) / float(value)

    return PaybackResult(
        discounted=discounted,
        initial_investment=series.initial_investment,
        discount_rate=rate,
        payback_period=payback_period,
        cumulative_series=tuple(points),
    )


def calculate_payback(
    initial_investment: SeriesLike,
    cash_flows: Optional[Sequence[float]] = None,
) -> PaybackResult:
    """Simple (undiscounted) payback period."""
    return _payback(_as_series(initial_investment, cash_flows, None), discounted=False)


def calculate_discounted_payback(
    initial_investment: SeriesLike,
    cash_flows: Optional[Sequence[float]] = None,
    discount_rate: Optional[float] = None,
) -> PaybackResult:
    """Payback period on flows discounted at ``discount_rate``."""
    return _payback(_as_series(initial_investment, cash_flows, discount_rate), discounted=True)
