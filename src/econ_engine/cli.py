"""
Command-Line Interface
======================
Run one engine operation on a JSON/YAML parameter file and print the
result record as JSON.

Usage:
    econ-engine comprehensive --input params.json
    econ-engine monte-carlo --input mc.yaml --config engine.yaml -v

Exit codes: 0 success, 1 engine error (printed as JSON on stdout),
2 usage or file error.
"""

import argparse
import inspect
import json
import logging
import os
import sys
from typing import Any, Callable, Dict, List, Mapping, Optional

from econ_engine import __version__
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
    regression_estimate,
)
from econ_engine.analytics.financial import (
    calculate_discounted_payback,
    calculate_irr,
    calculate_npv,
    calculate_payback,
    calculate_roi,
    comprehensive_analysis,
)
from econ_engine.analytics.risk import (
    evaluate_decision_tree,
    monte_carlo_simulation,
    risk_assessment_matrix,
    scenario_analysis,
    sensitivity_analysis,
)
from econ_engine.config.constants import DEFAULT_CONFIG
from econ_engine.config.loader import build_engine_config, load_config_file
from econ_engine.utils.exceptions import EconEngineError
from econ_engine.utils.logger import setup_logger

# operation -> (callable, accepts config)
OPERATIONS: Dict[str, Any] = {
    "parametric": (parametric_effort, True),
    "function-points": (function_points, True),
    "expert": (expert_judgment, True),
    "regression": (regression_estimate, True),
    "roi": (calculate_roi, False),
    "npv": (calculate_npv, False),
    "irr": (calculate_irr, True),
    "payback": (calculate_payback, False),
    "discounted-payback": (calculate_discounted_payback, False),
    "comprehensive": (comprehensive_analysis, True),
    "sensitivity": (sensitivity_analysis, True),
    "decision-tree": (evaluate_decision_tree, True),
    "monte-carlo": (monte_carlo_simulation, True),
    "scenarios": (scenario_analysis, True),
    "risk-matrix": (risk_assessment_matrix, True),
    "budget-plan": (create_budget_plan, False),
    "budget-variance": (budget_variance_analysis, True),
    "budget-forecast": (budget_forecast, True),
    "budget-optimization": (budget_optimization, True),
    "budget-performance": (budget_performance_metrics, True),
    "compare-estimations": (compare_estimations, True),
    "compare-scenarios": (compare_scenarios, False),
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="econ-engine",
        description="Software project economics: estimation, financial metrics, risk analysis",
    )
    parser.add_argument("operation", choices=sorted(OPERATIONS), help="Operation to run")
    parser.add_argument("--input", required=True, help="Path to JSON/YAML file with the operation's arguments")
    parser.add_argument("--config", default=None, help="Path to JSON/YAML engine config overrides")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log DEBUG messages to the console")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def _bind(operation: str, params: Mapping[str, Any], config=None):
    """Resolve the operation and check ``params`` against its signature."""
    func, takes_config = OPERATIONS[operation]
    if not isinstance(params, Mapping):
        raise TypeError(f"parameters must be a mapping, got {type(params).__name__}")
    kwargs = dict(params)
    if takes_config:
        kwargs["config"] = config or DEFAULT_CONFIG
    inspect.signature(func).bind(**kwargs)
    return func, kwargs


def run_operation(operation: str, params: Dict[str, Any], config=None):
    """Dispatch an operation by CLI name with keyword arguments from ``params``."""
    func, kwargs = _bind(operation, params, config)
    return func(**kwargs)


def main(argv: Optional[List[str]] = None, out: Callable[[str], None] = print) -> int:
    args = build_parser().parse_args(argv)

    # stdout carries the JSON result; log records go to stderr
    logger = setup_logger(
        "econ_engine",
        console_level=logging.DEBUG if args.verbose else logging.WARNING,
        stream=sys.stderr,
    )

    try:
        params = load_config_file(args.input)
        config_path = args.config or os.environ.get("ECON_ENGINE_CONFIG_PATH")
        config = DEFAULT_CONFIG
        if config_path:
            config = build_engine_config(load_config_file(config_path))
            logger.info(f"Using external config: {config_path}")
    except (OSError, ValueError, RuntimeError) as exc:
        logger.error(str(exc))
        return 2

    try:
        func, kwargs = _bind(args.operation, params, config)
    except TypeError as exc:
        # unexpected/missing keyword in the input file
        logger.error(f"Invalid arguments for '{args.operation}': {exc}")
        return 2

    try:
        result = func(**kwargs)
    except EconEngineError as exc:
        out(json.dumps({"error": exc.to_dict()}, indent=2, default=str))
        return 1

    out(result.to_json())
    return 0


if __name__ == "__main__":
    sys.exit(main())
