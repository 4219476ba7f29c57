"""
Regression-Based Estimation
===========================
Ordinary least squares effort = intercept + slope * size over historical
projects, with goodness of fit and a normal-approximation prediction band.
"""

import logging
import math
from typing import Any, Mapping, Optional, Sequence, Tuple, Union

import numpy as np

from econ_engine.config.constants import DEFAULT_CONFIG, EngineConfig
from econ_engine.models.inputs import require_finite
from econ_engine.models.results import RegressionEstimate
from econ_engine.utils.exceptions import DegenerateInputError, InvalidInputError
from econ_engine.utils.stats import ols_fit, pearson_r

logger = logging.getLogger(__name__)

HistoricalPoint = Union[Tuple[float, float], Mapping[str, Any]]


def _unpack(point: HistoricalPoint, index: int) -> Tuple[float, float]:
    if isinstance(point, Mapping):
        if "size" not in point or "effort" not in point:
            raise InvalidInputError(
                "Historical data points need 'size' and 'effort'",
                field=f"historical[{index}]",
                value=dict(point),
            )
        size, effort = point["size"], point["effort"]
    else:
        try:
            size, effort = point
        except (TypeError, ValueError):
            raise InvalidInputError(
                "Historical data points must be (size, effort) pairs",
                field=f"historical[{index}]",
                value=point,
            ) from None
    return (
        require_finite(size, f"historical[{index}].size"),
        require_finite(effort, f"historical[{index}].effort"),
    )


def regression_estimate(
    historical: Sequence[HistoricalPoint],
    project_size: float,
    config: Optional[EngineConfig] = None,
) -> RegressionEstimate:
    """
    Fit OLS on (size, effort) history and predict effort for project_size.

    Standard error of estimate = sqrt(RSS / (n - 2)). With exactly two
    points there are no residual degrees of freedom: the error is 0.0 when
    the fit is exact (always the case for a line through two points).

    Raises:
        InvalidInputError: fewer than 2 points, malformed point
        DegenerateInputError: all sizes equal (slope undefined)
    """
    cfg = (config or DEFAULT_CONFIG).estimation
    if historical is None or len(historical) < 2:
        raise InvalidInputError(
            "At least 2 historical data points are required",
            field="historical",
            value=None if historical is None else len(historical),
        )
    target = require_finite(project_size, "project_size")

    points = [_unpack(p, i) for i, p in enumerate(historical)]
    sizes = np.array([p[0] for p in points])
    efforts = np.array([p[1] for p in points])
    n = len(points)

    try:
        slope, intercept = ols_fit(sizes, efforts)
    except ZeroDivisionError:
        raise DegenerateInputError(
            "Size values have zero variance; regression slope is undefined",
            field="historical.size",
            details={"n_points": n, "size": float(sizes[0])},
        ) from None

    predicted = intercept + slope * target
    r = pearson_r(sizes, efforts)

    residuals = efforts - (intercept + slope * sizes)
    rss = float(np.sum(residuals ** 2))
    if n > 2:
        standard_error = math.sqrt(rss / (n - 2))
    else:
        standard_error = 0.0 if math.isclose(rss, 0.0, abs_tol=1e-12) else float("nan")

    if target < sizes.min() or target > sizes.max():
        logger.debug(f"Regression extrapolating: size {target} outside [{sizes.min()}, {sizes.max()}]")

    band = cfg.confidence_z * standard_error
    return RegressionEstimate(
        slope=slope,
        intercept=intercept,
        project_size=target,
        predicted_effort=predicted,
        correlation=r,
        r_squared=r * r,
        standard_error=standard_error,
        confidence_lower=predicted - band,
        confidence_upper=predicted + band,
        n_points=n,
    )
