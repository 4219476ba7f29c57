"""
Sensitivity Analysis
====================
One-at-a-time (not full factorial) sweep of scenario variables.

For each variable: evaluate scenario NPV at ``steps`` evenly spaced values
in [min, max] with every other variable at its base value, then regress NPV
on percent change from base. The slope is the tornado coefficient (NPV
change per 1% change in the variable). Percent change is measured on the
swept value even where the evaluated value is floored (``periods``).
"""

from typing import Any, Mapping, Optional

import numpy as np

from econ_engine.analytics.risk.scenarios import normalize_scenario, scenario_npv
from econ_engine.config.constants import DEFAULT_CONFIG, EngineConfig
from econ_engine.models.inputs import require_finite
from econ_engine.models.results import SensitivityPoint, SensitivityResult, VariableSensitivity
from econ_engine.utils.exceptions import InvalidInputError
from econ_engine.utils.stats import ols_fit

_WHOLE_PERIOD_VARIABLES = ("periods",)


def _parse_range(variable: str, spec: Any):
    if isinstance(spec, Mapping):
        missing = [k for k in ("min", "max", "steps") if k not in spec]
        if missing:
            raise InvalidInputError(f"Range for '{variable}' is missing {missing}", field=variable, value=dict(spec))
        lo, hi, steps = spec["min"], spec["max"], spec["steps"]
    else:
        try:
            lo, hi, steps = spec
        except (TypeError, ValueError):
            raise InvalidInputError("Range must be {min, max, steps}", field=variable, value=spec) from None

    lo = require_finite(lo, f"{variable}.min")
    hi = require_finite(hi, f"{variable}.max")
    steps = require_finite(steps, f"{variable}.steps")
    if steps < 2 or steps != int(steps):
        raise InvalidInputError("steps must be an integer >= 2", field=f"{variable}.steps", value=steps)
    if lo >= hi:
        raise InvalidInputError("Range min must be below max", field=variable, value=(lo, hi))
    return lo, hi, int(steps)


def sensitivity_analysis(
    base_scenario: Mapping[str, Any],
    variable_ranges: Mapping[str, Any],
    config: Optional[EngineConfig] = None,
) -> SensitivityResult:
    """
    Rank scenario variables by their impact on NPV.

    Args:
        base_scenario: revenue, costs, optional discount_rate / periods
        variable_ranges: {variable: {min, max, steps}}
        config: Engine configuration

    Raises:
        InvalidInputError: empty ranges, unknown variable, base value 0
            (percent change undefined), steps < 2, min >= max, or any swept
            scenario that is itself invalid (e.g. periods below 1)
    """
    base = normalize_scenario(base_scenario, config)
    if not variable_ranges:
        raise InvalidInputError("At least one variable range is required", field="variable_ranges")

    # Validate every range and every swept scenario before any evaluation
    grids = {}
    for variable, spec in variable_ranges.items():
        if variable not in base:
            raise InvalidInputError("Variable not present in base scenario", field=variable, value=sorted(base))
        if base[variable] == 0:
            raise InvalidInputError(
                "Base value is 0; percent change is undefined", field=variable, value=base[variable]
            )
        lo, hi, steps = _parse_range(variable, spec)
        values = np.linspace(lo, hi, steps)
        scenarios = []
        for value in values:
            scenario = dict(base)
            # periods conta solo i periodi interi completati
            scenario[variable] = float(np.floor(value)) if variable in _WHOLE_PERIOD_VARIABLES else float(value)
            scenarios.append(normalize_scenario(scenario, config))
        grids[variable] = (values, scenarios)

    points = []
    coefficients = []
    for variable, (values, scenarios) in grids.items():
        percent_changes = (values - base[variable]) / base[variable] * 100
        npvs = []
        for value, pct, scenario in zip(values, percent_changes, scenarios):
            npv = scenario_npv(scenario, config)
            npvs.append(npv)
            points.append(SensitivityPoint(variable=variable, value=float(value), percent_change=float(pct), npv=npv))
        slope, _ = ols_fit(percent_changes, npvs)
        coefficients.append(VariableSensitivity(variable=variable, coefficient=slope))

    # sorted() is stable: ties keep declaration order
    ranking = tuple(sorted(coefficients, key=lambda item: abs(item.coefficient), reverse=True))

    return SensitivityResult(
        base_scenario=base,
        base_npv=scenario_npv(base, config or DEFAULT_CONFIG),
        points=tuple(points),
        ranking=ranking,
    )
