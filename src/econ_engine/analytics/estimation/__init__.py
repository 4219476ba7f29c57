"""
Estimation Submodule
====================
Size, effort and cost estimation models.

Modules:
- parametric: COCOMO-style effort/schedule from KLOC
- function_points: IFPUG function-point sizing
- expert: Delphi aggregation + PERT three-point estimate
- regression: OLS effort model over historical projects
"""

from econ_engine.analytics.estimation.parametric import parametric_effort
from econ_engine.analytics.estimation.function_points import function_points
from econ_engine.analytics.estimation.expert import expert_judgment, pert_estimate
from econ_engine.analytics.estimation.regression import regression_estimate


__all__ = [
    'parametric_effort',
    'function_points',
    'expert_judgment',
    'pert_estimate',
    'regression_estimate',
]
