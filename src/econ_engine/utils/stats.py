"""
Descriptive Statistics Helpers
==============================
Shared mean / median / population std / OLS helpers used by the estimation,
risk and comparison modules.
"""

from typing import Dict, Sequence, Tuple

import numpy as np


def describe(values: Sequence[float]) -> Dict[str, float]:
    """
    Mean, median, population standard deviation, min, max and spread.

    Population std (ddof=0): the inputs are treated as the whole set of
    estimates, not as a sample from a larger population.
    """
    arr = np.asarray(values, dtype=float)
    if arr.size == 0:
        return {"mean": 0.0, "median": 0.0, "std_dev": 0.0, "min": 0.0, "max": 0.0, "spread": 0.0}
    lo = float(arr.min())
    hi = float(arr.max())
    return {
        "mean": float(arr.mean()),
        "median": float(np.median(arr)),
        "std_dev": float(arr.std(ddof=0)),
        "min": lo,
        "max": hi,
        "spread": hi - lo,
    }


def ols_fit(x: Sequence[float], y: Sequence[float]) -> Tuple[float, float]:
    """
    Calcola (slope, intercept) della retta ai minimi quadrati.

    Uses the normal-equation form n·Σxy − Σx·Σy over n·Σx² − (Σx)².
    Raises ZeroDivisionError when x has zero variance; callers map it to
    their own error kind.
    """
    xs = np.asarray(x, dtype=float)
    ys = np.asarray(y, dtype=float)
    n = xs.size
    sum_x = xs.sum()
    sum_y = ys.sum()
    denominator = n * (xs * xs).sum() - sum_x * sum_x
    # Relative check: a denominator of pure rounding noise is zero variance
    if denominator == 0 or np.ptp(xs) == 0:
        raise ZeroDivisionError("x values have zero variance")
    slope = (n * (xs * ys).sum() - sum_x * sum_y) / denominator
    intercept = (sum_y - slope * sum_x) / n
    return float(slope), float(intercept)


def pearson_r(x: Sequence[float], y: Sequence[float]) -> float:
    """Pearson correlation; 0.0 when either side has zero variance."""
    xs = np.asarray(x, dtype=float)
    ys = np.asarray(y, dtype=float)
    n = xs.size
    numerator = n * (xs * ys).sum() - xs.sum() * ys.sum()
    product = (n * (xs * xs).sum() - xs.sum() ** 2) * (n * (ys * ys).sum() - ys.sum() ** 2)
    if not product > 0:
        return 0.0
    return float(np.clip(numerator / np.sqrt(product), -1.0, 1.0))
