"""
Financial Submodule
===================
Time-value-of-money metrics over cash-flow series.

Modules:
- metrics: ROI, NPV, IRR (Newton + bracketing fallback), payback
- analysis: Comprehensive scoring, rate/cash-flow sensitivity sweep
"""

from econ_engine.analytics.financial.metrics import (
    calculate_roi,
    calculate_npv,
    calculate_irr,
    calculate_payback,
    calculate_discounted_payback,
    npv_at_rate,
    discount_factors,
)
from econ_engine.analytics.financial.analysis import (
    comprehensive_analysis,
    rate_sensitivity,
    score_investment,
)


__all__ = [
    'calculate_roi',
    'calculate_npv',
    'calculate_irr',
    'calculate_payback',
    'calculate_discounted_payback',
    'npv_at_rate',
    'discount_factors',
    'comprehensive_analysis',
    'rate_sensitivity',
    'score_investment',
]
