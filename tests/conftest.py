import logging

import pytest

from econ_engine.analytics.budgeting import create_budget_plan
from econ_engine.analytics.risk import evaluate_decision_tree
from econ_engine.config.constants import DEFAULT_CONFIG
from econ_engine.models.inputs import CashFlowSeries
from tests.fixtures.sample_inputs import (
    BASE_SCENARIO,
    BUDGET_CATEGORIES,
    BUDGET_TOTAL,
    PROFIT_VARIABLES,
    PROJECT_FLOWS,
    PROJECT_INVESTMENT,
    PROJECT_RATE,
    launch_tree,
)


def pytest_configure(config):
    config.addinivalue_line("markers", "slow: large Monte Carlo runs (100k trials)")


def pytest_addoption(parser):
    parser.addoption("--runslow", action="store_true", default=False, help="enable tests marked slow")


def pytest_collection_modifyitems(config, items):
    if config.getoption("--runslow"):
        return
    skip_slow = pytest.mark.skip(reason="skipping slow tests; use --runslow to enable")
    for item in items:
        if "slow" in item.keywords:
            item.add_marker(skip_slow)


@pytest.fixture(autouse=True)
def _reset_engine_logger():
    # the CLI tests attach handlers to the package logger
    logger = logging.getLogger("econ_engine")
    handlers, level = list(logger.handlers), logger.level
    yield
    logger.handlers[:] = handlers
    logger.setLevel(level)


@pytest.fixture
def engine_config():
    return DEFAULT_CONFIG


@pytest.fixture
def project_series():
    return CashFlowSeries(PROJECT_INVESTMENT, PROJECT_FLOWS, PROJECT_RATE)


@pytest.fixture
def base_scenario():
    return dict(BASE_SCENARIO)


@pytest.fixture
def launch_tree_mapping():
    return launch_tree()


@pytest.fixture
def launch_tree_result(launch_tree_mapping):
    return evaluate_decision_tree(launch_tree_mapping)


@pytest.fixture
def profit_variables():
    return {name: dict(spec) for name, spec in PROFIT_VARIABLES.items()}


@pytest.fixture
def budget_plan():
    return create_budget_plan(BUDGET_TOTAL, BUDGET_CATEGORIES, project_name="Billing revamp")
