"""
Risk Analysis Engine
====================
Sensitivity sweeps, decision trees, Monte Carlo, scenarios and risk matrix.
"""

from econ_engine.analytics.risk.decision_tree import (
    DecisionTree,
    NodeKind,
    TreeNode,
    evaluate_decision_tree,
)
from econ_engine.analytics.risk.formula import Formula, compile_formula
from econ_engine.analytics.risk.monte_carlo import monte_carlo_simulation, simulate_outcomes
from econ_engine.analytics.risk.scenarios import (
    normalize_scenario,
    risk_assessment_matrix,
    scenario_analysis,
    scenario_npv,
)
from econ_engine.analytics.risk.sensitivity import sensitivity_analysis

__all__ = [
    "DecisionTree",
    "NodeKind",
    "TreeNode",
    "evaluate_decision_tree",
    "Formula",
    "compile_formula",
    "monte_carlo_simulation",
    "simulate_outcomes",
    "normalize_scenario",
    "risk_assessment_matrix",
    "scenario_analysis",
    "scenario_npv",
    "sensitivity_analysis",
]
