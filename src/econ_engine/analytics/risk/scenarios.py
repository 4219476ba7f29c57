"""
Scenario Scoring
================
Scenario NPV (revenue/costs/rate/periods), probability-weighted scenario
analysis and the impact x probability risk matrix.
"""

from typing import Any, Dict, Mapping, Optional, Sequence

import numpy as np

from econ_engine.analytics.financial.metrics import npv_at_rate
from econ_engine.config.constants import DEFAULT_CONFIG, EngineConfig
from econ_engine.models.inputs import require_finite
from econ_engine.models.results import (
    AssessedRisk,
    RiskMatrixResult,
    ScenarioAnalysisResult,
    ScenarioOutcome,
)
from econ_engine.utils.exceptions import InvalidInputError

# camelCase keys accepted from the transport layer
_SCENARIO_ALIASES = {"discountRate": "discount_rate"}

_RECOMMENDATIONS = {
    "High": ("Immediate mitigation required", "High", "Develop detailed mitigation plan and monitor closely"),
    "Medium": ("Mitigation plan needed", "Medium", "Create contingency plan and regular monitoring"),
    "Low": ("Monitor", "Low", "Regular review and basic monitoring"),
}


def normalize_scenario(scenario: Mapping[str, Any], config: Optional[EngineConfig] = None) -> Dict[str, float]:
    """
    Validate a scenario and fill defaults.

    Required: revenue, costs. Optional: discount_rate (>= 0), periods
    (integer >= 1). Extra numeric keys are kept so formulas and sensitivity
    ranges may refer to them.
    """
    cfg = (config or DEFAULT_CONFIG).risk
    if not isinstance(scenario, Mapping):
        raise InvalidInputError("Scenario must be a mapping", field="scenario", value=scenario)
    data = {_SCENARIO_ALIASES.get(k, k): v for k, v in scenario.items()}

    for key in ("revenue", "costs"):
        if key not in data:
            raise InvalidInputError(f"Scenario is missing '{key}'", field=key)

    normalized = {}
    for key, value in data.items():
        if key in ("name", "probability"):
            continue
        normalized[key] = require_finite(value, key)
    normalized.setdefault("discount_rate", cfg.scenario_discount_rate)
    normalized.setdefault("periods", cfg.scenario_periods)

    if normalized["discount_rate"] < 0:
        raise InvalidInputError("Discount rate cannot be negative", field="discount_rate", value=normalized["discount_rate"])
    periods = normalized["periods"]
    if periods < 1 or periods != int(periods):
        raise InvalidInputError("periods must be an integer >= 1", field="periods", value=periods)
    normalized["periods"] = int(periods)
    return normalized


def scenario_npv(scenario: Mapping[str, Any], config: Optional[EngineConfig] = None) -> float:
    """
    NPV = -costs + sum_{t=1..periods} (revenue - costs) / (1 + rate)^t

    Costs are the outlay at t = 0 and also recur every period.
    """
    s = normalize_scenario(scenario, config)
    net_flow = s["revenue"] - s["costs"]
    return npv_at_rate(s["discount_rate"], s["costs"], [net_flow] * s["periods"])


def scenario_analysis(
    scenarios: Sequence[Mapping[str, Any]],
    config: Optional[EngineConfig] = None,
) -> ScenarioAnalysisResult:
    """
    Score each scenario; expected NPV only when probabilities sum to ~1.

    Raises:
        InvalidInputError: empty list, malformed scenario, negative probability
    """
    cfg = config or DEFAULT_CONFIG
    if not scenarios:
        raise InvalidInputError("At least one scenario is required", field="scenarios")

    outcomes = []
    for index, scenario in enumerate(scenarios):
        if not isinstance(scenario, Mapping):
            raise InvalidInputError("Scenario must be a mapping", field=f"scenarios[{index}]", value=scenario)
        probability = scenario.get("probability")
        if probability is not None:
            probability = require_finite(probability, f"scenarios[{index}].probability")
            if not 0 <= probability <= 1:
                raise InvalidInputError(
                    "Probability must be within [0, 1]", field=f"scenarios[{index}].probability", value=probability
                )
        outcomes.append(
            ScenarioOutcome(
                name=str(scenario.get("name", f"Scenario {index + 1}")),
                npv=scenario_npv(scenario, cfg),
                probability=probability,
            )
        )

    expected_npv = None
    probabilities = [o.probability or 0.0 for o in outcomes]
    if abs(sum(probabilities) - 1) < cfg.risk.probability_tolerance:
        expected_npv = float(sum(o.npv * p for o, p in zip(outcomes, probabilities)))

    npvs = np.array([o.npv for o in outcomes])
    worst, best = float(npvs.min()), float(npvs.max())
    return ScenarioAnalysisResult(
        scenarios=tuple(outcomes),
        expected_npv=expected_npv,
        worst_case=worst,
        best_case=best,
        range=best - worst,
    )


def risk_assessment_matrix(
    risks: Sequence[Mapping[str, Any]],
    config: Optional[EngineConfig] = None,
) -> RiskMatrixResult:
    """
    Score = impact x probability; High >= 0.75, Medium >= 0.35, else Low.

    Risks are returned sorted by score, highest first.
    """
    cfg = (config or DEFAULT_CONFIG).risk
    if not risks:
        raise InvalidInputError("At least one risk is required", field="risks")

    assessed = []
    for index, risk in enumerate(risks):
        if not isinstance(risk, Mapping):
            raise InvalidInputError("Risk must be a mapping", field=f"risks[{index}]", value=risk)
        impact = require_finite(risk.get("impact"), f"risks[{index}].impact")
        probability = require_finite(risk.get("probability"), f"risks[{index}].probability")
        if not 0 <= probability <= 1:
            raise InvalidInputError(
                "Probability must be within [0, 1]", field=f"risks[{index}].probability", value=probability
            )
        score = impact * probability
        if score >= cfg.risk_matrix_high:
            level = "High"
        elif score >= cfg.risk_matrix_medium:
            level = "Medium"
        else:
            level = "Low"
        action, priority, suggestion = _RECOMMENDATIONS[level]
        assessed.append(
            AssessedRisk(
                name=str(risk.get("name", f"Risk {index + 1}")),
                impact=impact,
                probability=probability,
                score=score,
                level=level,
                action=action,
                priority=priority,
                suggestion=suggestion,
            )
        )

    assessed.sort(key=lambda r: r.score, reverse=True)
    total = float(sum(r.score for r in assessed))
    return RiskMatrixResult(
        risks=tuple(assessed),
        high_count=sum(1 for r in assessed if r.level == "High"),
        medium_count=sum(1 for r in assessed if r.level == "Medium"),
        low_count=sum(1 for r in assessed if r.level == "Low"),
        total_score=total,
        average_score=total / len(assessed),
    )
