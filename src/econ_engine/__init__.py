"""
Project Economics Engine
========================
Computation core for software-project economics: effort and cost
estimation, investment metrics and risk analysis.

Main Components:
    - analytics.estimation: parametric, function points, expert, regression
    - analytics.financial: ROI, NPV, IRR, payback, comprehensive analysis
    - analytics.risk: sensitivity, decision trees, Monte Carlo, scenarios
    - analytics.budgeting: budget plan, variance, forecast, optimization
    - analytics.comparison: statistics across results
    - config: Constants and thresholds, file overrides
    - models: Input and result records
    - utils: Logging, exceptions, statistics helpers

Every operation is a pure function returning an immutable result record.
The package logs through the standard ``logging`` module but installs no
handler: configure logging (e.g. utils.logger.setup_logger) to see output.

Example:
    >>> from econ_engine import comprehensive_analysis
    >>> result = comprehensive_analysis(100000, [30000, 40000, 50000, 60000], 0.10)
    >>> result.recommendation.band
"""

import logging

from econ_engine.analytics.budgeting import (
    budget_forecast,
    budget_optimization,
    budget_performance_metrics,
    budget_variance_analysis,
    create_budget_plan,
)
from econ_engine.analytics.comparison import compare_estimations, compare_scenarios
from econ_engine.analytics.estimation import (
    expert_judgment,
    function_points,
    parametric_effort,
    pert_estimate,
    regression_estimate,
)
from econ_engine.analytics.financial import (
    calculate_discounted_payback,
    calculate_irr,
    calculate_npv,
    calculate_payback,
    calculate_roi,
    comprehensive_analysis,
    rate_sensitivity,
)
from econ_engine.analytics.risk import (
    DecisionTree,
    evaluate_decision_tree,
    monte_carlo_simulation,
    risk_assessment_matrix,
    scenario_analysis,
    sensitivity_analysis,
)
from econ_engine.config.constants import DEFAULT_CONFIG, EngineConfig
from econ_engine.models.inputs import (
    CashFlowSeries,
    FunctionPointProfile,
    RandomVariableSpec,
)
from econ_engine.utils.exceptions import (
    ConvergenceWarning,
    DegenerateInputError,
    EconEngineError,
    FormulaEvaluationError,
    InvalidInputError,
    MalformedTreeError,
)

__version__ = "1.0.0"

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    # Estimation
    'parametric_effort',
    'function_points',
    'expert_judgment',
    'pert_estimate',
    'regression_estimate',
    # Financial
    'calculate_roi',
    'calculate_npv',
    'calculate_irr',
    'calculate_payback',
    'calculate_discounted_payback',
    'comprehensive_analysis',
    'rate_sensitivity',
    # Risk
    'DecisionTree',
    'evaluate_decision_tree',
    'monte_carlo_simulation',
    'risk_assessment_matrix',
    'scenario_analysis',
    'sensitivity_analysis',
    # Budgeting
    'create_budget_plan',
    'budget_variance_analysis',
    'budget_forecast',
    'budget_optimization',
    'budget_performance_metrics',
    # Comparison
    'compare_estimations',
    'compare_scenarios',
    # Config and records
    'DEFAULT_CONFIG',
    'EngineConfig',
    'CashFlowSeries',
    'FunctionPointProfile',
    'RandomVariableSpec',
    # Errors
    'EconEngineError',
    'InvalidInputError',
    'DegenerateInputError',
    'MalformedTreeError',
    'FormulaEvaluationError',
    'ConvergenceWarning',
]
