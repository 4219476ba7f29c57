"""
Expert Judgment (Delphi) Aggregation
====================================
Combines independent expert estimates: descriptive statistics, a 2-sigma
outlier filter and a PERT three-point estimate.
"""

from typing import Optional, Sequence

import numpy as np

from econ_engine.config.constants import DEFAULT_CONFIG, EngineConfig
from econ_engine.models.inputs import require_finite
from econ_engine.models.results import ExpertEstimate
from econ_engine.utils.exceptions import InvalidInputError
from econ_engine.utils.stats import describe


def pert_estimate(optimistic: float, most_likely: float, pessimistic: float) -> float:
    """PERT = (O + 4M + P) / 6"""
    return (optimistic + 4 * most_likely + pessimistic) / 6


def expert_judgment(
    estimates: Sequence[float],
    config: Optional[EngineConfig] = None,
) -> ExpertEstimate:
    """
    Aggregate expert estimates.

    Outlier filter: drop x with |x - mean| > k·std (k = outlier_sigma, 2 by
    default) and recompute the mean. If the filter empties the set the
    unfiltered mean is used and ``used_fallback`` is set.

    PERT uses min/max of the estimates as optimistic/pessimistic and the
    median as most likely.

    Raises:
        InvalidInputError: empty sequence or non-finite estimate
    """
    cfg = (config or DEFAULT_CONFIG).estimation
    if estimates is None or len(estimates) == 0:
        raise InvalidInputError("At least one estimate is required", field="estimates", value=estimates)

    values = tuple(require_finite(v, f"estimates[{i}]") for i, v in enumerate(estimates))
    stats = describe(values)
    mean = stats["mean"]
    std_dev = stats["std_dev"]

    arr = np.asarray(values, dtype=float)
    filtered = tuple(float(v) for v in arr[np.abs(arr - mean) <= cfg.outlier_sigma * std_dev])
    used_fallback = len(filtered) == 0
    adjusted_mean = mean if used_fallback else float(np.mean(filtered))

    return ExpertEstimate(
        n_experts=len(values),
        estimates=values,
        mean=mean,
        median=stats["median"],
        std_dev=std_dev,
        minimum=stats["min"],
        maximum=stats["max"],
        filtered=filtered,
        adjusted_mean=adjusted_mean,
        used_fallback=used_fallback,
        pert_estimate=pert_estimate(stats["min"], stats["median"], stats["max"]),
        confidence_low=adjusted_mean - std_dev,
        confidence_high=adjusted_mean + std_dev,
    )
