"""
Engine configuration: documented constants, thresholds and the file loader.
"""

from econ_engine.config.constants import (
    DEFAULT_CONFIG,
    BudgetConfig,
    EngineConfig,
    EstimationConfig,
    FinancialConfig,
    RiskConfig,
    ScoringPolicy,
)
from econ_engine.config.loader import build_engine_config, load_config_file

__all__ = [
    'DEFAULT_CONFIG',
    'BudgetConfig',
    'EngineConfig',
    'EstimationConfig',
    'FinancialConfig',
    'RiskConfig',
    'ScoringPolicy',
    'build_engine_config',
    'load_config_file',
]
