"""
Monte Carlo Simulation
======================
Sample declared random variables, evaluate an outcome formula per trial and
summarize the outcome distribution.

Reproducibility:
- ``seed`` feeds a numpy SeedSequence; each worker chunk gets its own
  spawned child sequence (PCG64), so chunks never share a stream
- the same (seed, iterations, workers) always yields identical results;
  changing ``workers`` changes the chunking and therefore the draws

Order statistics on the sorted valid outcomes (n of them):
- median      = sorted[n // 2]
- CI          = [sorted[floor(n * a/2)], sorted[floor(n * (1 - a/2))]], a = 1 - confidence
- VaR (5%)    = sorted[floor(n * 0.05)]
- CVaR        = mean of outcomes <= VaR
- percentiles = sorted[floor(n * p / 100)]
Every index is clamped to n - 1.
"""

import logging
import math
from concurrent.futures import ThreadPoolExecutor
from typing import Any, List, Mapping, Optional, Tuple

import numpy as np

from econ_engine.analytics.risk.distributions import draw
from econ_engine.analytics.risk.formula import Formula, compile_formula
from econ_engine.config.constants import DEFAULT_CONFIG, EngineConfig, RiskConfig
from econ_engine.models.inputs import RandomVariableSpec
from econ_engine.models.results import HistogramBin, MonteCarloResult, MonteCarloStatistics
from econ_engine.utils.exceptions import FormulaEvaluationError, InvalidInputError
from econ_engine.utils.logger import log_performance

logger = logging.getLogger(__name__)


def _parse_variables(variables: Mapping[str, Any]) -> Mapping[str, RandomVariableSpec]:
    if not isinstance(variables, Mapping) or not variables:
        raise InvalidInputError("At least one random variable is required", field="variables")
    specs = {}
    for name, spec in variables.items():
        if not isinstance(name, str) or not name.isidentifier():
            raise InvalidInputError("Variable names must be identifiers", field="variables", value=name)
        try:
            specs[name] = RandomVariableSpec.from_mapping(spec)
        except InvalidInputError as e:
            field = f"variables.{name}" if e.field is None else f"variables.{name}.{e.field}"
            raise InvalidInputError(e.reason, field=field, value=e.value) from None
    return specs


def _chunk_sizes(iterations: int, workers: int) -> List[int]:
    base, extra = divmod(iterations, workers)
    return [base + (1 if i < extra else 0) for i in range(workers) if base or i < extra]


def _run_chunk(
    specs: Mapping[str, RandomVariableSpec],
    formula: Formula,
    size: int,
    seed_seq: np.random.SeedSequence,
) -> np.ndarray:
    rng = np.random.Generator(np.random.PCG64(seed_seq))
    # Declaration order fixes the draw order within a chunk
    samples = {name: draw(spec, rng, size) for name, spec in specs.items()}
    outcomes = formula.evaluate(samples)
    return np.broadcast_to(outcomes, (size,)).astype(float)


def simulate_outcomes(
    variables: Mapping[str, Any],
    iterations: int,
    formula: str,
    seed: Optional[int] = None,
    workers: int = 1,
    config: Optional[EngineConfig] = None,
) -> np.ndarray:
    """
    Raw per-trial outcomes, one element per trial, in chunk order.

    Under the "abort" policy a non-finite outcome raises; under "sentinel"
    it is replaced by the configured sentinel value (NaN by default).

    Raises:
        InvalidInputError: bad variables, iterations out of bounds, workers < 1
        FormulaEvaluationError: invalid formula, or a failing trial on abort
    """
    cfg = (config or DEFAULT_CONFIG).risk
    specs = _parse_variables(variables)
    _check_iterations(iterations, cfg)
    if not isinstance(workers, int) or isinstance(workers, bool) or workers < 1:
        raise InvalidInputError("workers must be an integer >= 1", field="workers", value=workers)
    compiled = compile_formula(formula, specs)

    sizes = _chunk_sizes(iterations, workers)
    children = np.random.SeedSequence(seed).spawn(len(sizes))

    if len(sizes) == 1:
        chunks = [_run_chunk(specs, compiled, sizes[0], children[0])]
    else:
        with ThreadPoolExecutor(max_workers=len(sizes)) as pool:
            chunks = list(pool.map(lambda job: _run_chunk(specs, compiled, *job), zip(sizes, children)))

    outcomes = np.concatenate(chunks)
    failed = ~np.isfinite(outcomes)
    if failed.any():
        first = int(np.argmax(failed))
        if cfg.formula_error_policy == "abort":
            raise FormulaEvaluationError(
                "Formula produced a non-finite outcome",
                formula=formula,
                details={"trial": first, "failed_trials": int(failed.sum())},
            )
        logger.debug(f"{int(failed.sum())} of {iterations} trials failed; recorded as sentinel")
        outcomes = outcomes.copy()
        outcomes[failed] = cfg.sentinel
    return outcomes


def _check_iterations(iterations: Any, cfg: RiskConfig) -> None:
    if not isinstance(iterations, int) or isinstance(iterations, bool):
        raise InvalidInputError("iterations must be an integer", field="iterations", value=iterations)
    if not cfg.min_iterations <= iterations <= cfg.max_iterations:
        raise InvalidInputError(
            f"iterations must be between {cfg.min_iterations} and {cfg.max_iterations}",
            field="iterations",
            value=iterations,
        )


def _order_stat(ordered: np.ndarray, fraction: float) -> float:
    n = len(ordered)
    return float(ordered[min(int(math.floor(n * fraction)), n - 1)])


def _histogram(ordered: np.ndarray, bins: int) -> Tuple[HistogramBin, ...]:
    """
    Equal-width bins over [min, max]; the last bin is closed on the right.
    A zero-width range places every outcome in the last bin.
    """
    n = len(ordered)
    low, high = float(ordered[0]), float(ordered[-1])
    width = (high - low) / bins
    if width == 0:
        counts = np.zeros(bins, dtype=int)
        counts[-1] = n
    else:
        counts, _ = np.histogram(ordered, bins=bins, range=(low, high))
    return tuple(
        HistogramBin(
            bin=i,
            lower=low + i * width,
            upper=low + (i + 1) * width,
            count=int(count),
            frequency=int(count) / n * 100,
        )
        for i, count in enumerate(counts)
    )


@log_performance(logger)
def monte_carlo_simulation(
    variables: Mapping[str, Any],
    iterations: int = 10000,
    formula: str = "revenue - costs",
    confidence_level: float = 0.95,
    seed: Optional[int] = None,
    workers: int = 1,
    config: Optional[EngineConfig] = None,
) -> MonteCarloResult:
    """
    Run a Monte Carlo simulation and summarize the outcomes.

    Args:
        variables: {name: {"distribution": ..., "parameters": {...}}}
        iterations: Number of trials (100..100,000 by default)
        formula: Outcome expression over the declared variable names
        confidence_level: For the order-statistic interval, in (0, 1)
        seed: Seed for reproducible runs; None draws fresh OS entropy
        workers: Number of chunks sampled concurrently
        config: Engine configuration

    Raises:
        InvalidInputError: see simulate_outcomes; confidence outside (0, 1)
        FormulaEvaluationError: invalid formula; failing trial on "abort";
            no valid trials left on "sentinel"
    """
    cfg = (config or DEFAULT_CONFIG).risk
    if isinstance(confidence_level, bool) or not isinstance(confidence_level, (int, float)) \
            or not 0 < confidence_level < 1:
        raise InvalidInputError("Confidence level must be in (0, 1)", field="confidence_level", value=confidence_level)

    outcomes = simulate_outcomes(variables, iterations, formula, seed=seed, workers=workers, config=config)

    valid = outcomes[np.isfinite(outcomes)]
    n = len(valid)
    if n == 0:
        raise FormulaEvaluationError("No trial produced a finite outcome", formula=formula)

    ordered = np.sort(valid)
    alpha = 1.0 - confidence_level
    mean = float(np.mean(ordered))
    variance = float(np.var(ordered))

    value_at_risk = _order_stat(ordered, cfg.var_level)
    tail = ordered[ordered <= value_at_risk]

    statistics = MonteCarloStatistics(
        mean=mean,
        median=float(ordered[n // 2]),
        std_dev=math.sqrt(variance),
        variance=variance,
        minimum=float(ordered[0]),
        maximum=float(ordered[-1]),
    )

    return MonteCarloResult(
        formula=formula,
        iterations=iterations,
        valid_trials=n,
        failed_trials=iterations - n,
        statistics=statistics,
        confidence_level=float(confidence_level),
        ci_lower=_order_stat(ordered, alpha / 2),
        ci_upper=_order_stat(ordered, 1 - alpha / 2),
        probability_of_loss=float(np.count_nonzero(ordered < 0)) / n,
        value_at_risk=value_at_risk,
        conditional_value_at_risk=float(np.mean(tail)),
        percentiles={f"p{p}": _order_stat(ordered, p / 100) for p in cfg.percentiles},
        histogram=_histogram(ordered, cfg.histogram_bins),
        seed=seed,
    )
