# Constant Documentation and Sources
# ==================================
# Every empirical coefficient, pay rate and policy threshold the engine uses
# lives here, grouped into immutable configuration records that are passed
# into each operation.

"""
ENGINE CONFIGURATION WITH SOURCES
=================================

Nothing in the computation core reads a module-level mutable global: each
operation takes an optional ``config`` argument and falls back to
DEFAULT_CONFIG. Override by building a new record with dataclasses.replace()
or via econ_engine.config.loader.

METHODOLOGY:
- Each constant group records its source type and citation
- Policy thresholds (recommendation scoring) are flagged as POLICY: they
  are conventions, not laws of finance, and are expected to be tuned
"""

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Dict, Mapping, Tuple

from econ_engine.models.inputs import ComplexityTier, ProjectType


class ConstantSource(Enum):
    """Classification of constant sources by reliability."""
    ACADEMIC = "Academic model calibration"
    INDUSTRY = "Industry standard/convention"
    POLICY = "Policy choice - configurable, requires justification"


@dataclass(frozen=True)
class DocumentedConstant:
    """A constant group with provenance."""
    name: str
    source_type: ConstantSource
    source_citation: str
    notes: str = ""


# ================================================================================
# PARAMETRIC EFFORT MODEL
# ================================================================================

@dataclass(frozen=True)
class ParametricConstants:
    """effort = a * KLOC^b ; schedule = c * effort^d"""
    a: float
    b: float
    c: float
    d: float


PARAMETRIC_CONSTANTS: Mapping[ProjectType, ParametricConstants] = MappingProxyType({
    ProjectType.ORGANIC: ParametricConstants(a=2.4, b=1.05, c=2.5, d=0.38),
    ProjectType.SEMIDETACHED: ParametricConstants(a=3.0, b=1.12, c=2.5, d=0.35),
    ProjectType.EMBEDDED: ParametricConstants(a=3.6, b=1.20, c=2.5, d=0.32),
})

PARAMETRIC_SOURCE = DocumentedConstant(
    name="Basic COCOMO coefficients",
    source_type=ConstantSource.ACADEMIC,
    source_citation="Boehm (1981) 'Software Engineering Economics', basic model",
    notes="""
    b > 1 for every mode: effort grows super-linearly with size.
    d < 1 for every mode: schedule grows sub-linearly with effort.
    """,
)


# ================================================================================
# FUNCTION POINTS
# ================================================================================

# Pesi IFPUG per categoria (EI, EO, EQ, ILF, EIF)
FUNCTION_POINT_WEIGHTS: Mapping[ComplexityTier, Mapping[str, float]] = MappingProxyType({
    ComplexityTier.SIMPLE: MappingProxyType({
        "external_inputs": 3,
        "external_outputs": 4,
        "external_inquiries": 3,
        "internal_logical_files": 7,
        "external_interface_files": 5,
    }),
    ComplexityTier.AVERAGE: MappingProxyType({
        "external_inputs": 4,
        "external_outputs": 5,
        "external_inquiries": 4,
        "internal_logical_files": 10,
        "external_interface_files": 7,
    }),
    ComplexityTier.COMPLEX: MappingProxyType({
        "external_inputs": 6,
        "external_outputs": 7,
        "external_inquiries": 6,
        "internal_logical_files": 15,
        "external_interface_files": 10,
    }),
})

FUNCTION_POINT_SOURCE = DocumentedConstant(
    name="IFPUG complexity weights",
    source_type=ConstantSource.INDUSTRY,
    source_citation="IFPUG Function Point Counting Practices Manual",
    notes="Technical complexity factor typically ranges 0.65-1.35; 1.0 = neutral.",
)


@dataclass(frozen=True)
class EstimationConfig:
    """Constants for the estimation model library."""
    parametric_constants: Mapping[ProjectType, ParametricConstants] = field(
        default_factory=lambda: PARAMETRIC_CONSTANTS
    )
    cost_per_person_month: float = 8000.0
    function_point_weights: Mapping[ComplexityTier, Mapping[str, float]] = field(
        default_factory=lambda: FUNCTION_POINT_WEIGHTS
    )
    technical_complexity_factor: float = 1.0
    hours_per_function_point: float = 15.0
    hourly_rate: float = 75.0
    hours_per_day: float = 8.0
    outlier_sigma: float = 2.0       # expert estimates beyond k·std are dropped
    confidence_z: float = 1.96       # 95% two-sided normal quantile


# ================================================================================
# FINANCIAL METRICS
# ================================================================================

@dataclass(frozen=True)
class ScoringPolicy:
    """
    Recommendation score for comprehensive analysis (0..max_score).

    POLICY constants: the thresholds are conventions, tune them per
    organisation. Bands are checked from the highest minimum score down.
    """
    npv_positive_points: int = 2
    roi_points: int = 2
    roi_threshold_pct: float = 15.0
    irr_points: int = 2
    payback_points: int = 1
    payback_threshold_periods: float = 3.0
    bands: Tuple[Tuple[int, str], ...] = (
        (6, "Highly Recommended"),
        (4, "Recommended"),
        (2, "Consider with Caution"),
    )
    fallback_band: str = "Not Recommended"

    @property
    def max_score(self) -> int:
        return self.npv_positive_points + self.roi_points + self.irr_points + self.payback_points

    def band_for(self, score: int) -> str:
        for minimum, label in sorted(self.bands, key=lambda item: item[0], reverse=True):
            if score >= minimum:
                return label
        return self.fallback_band


SCORING_SOURCE = DocumentedConstant(
    name="Investment recommendation score",
    source_type=ConstantSource.POLICY,
    source_citation="Internal heuristic: NPV>0 +2, ROI>15% +2, IRR>rate +2, payback<=3 +1",
    notes="Not a law of finance. Replace the ScoringPolicy record to change it.",
)


@dataclass(frozen=True)
class FinancialConfig:
    """Root finder settings and scoring policy for the financial solver."""
    irr_seed: float = 0.10
    irr_reseed: float = 0.05
    irr_tolerance: float = 1e-4
    irr_max_iterations: int = 100
    irr_bracket_fallback: bool = True
    # Griglia per la ricerca del cambio di segno (fallback bisezione)
    irr_bracket_grid: Tuple[float, ...] = (
        -0.99, -0.9, -0.75, -0.5, -0.25, -0.1, 0.0, 0.05, 0.1, 0.2, 0.35,
        0.5, 0.75, 1.0, 1.5, 2.0, 3.0, 5.0, 10.0,
    )
    default_discount_rate: float = 0.10
    scoring: ScoringPolicy = field(default_factory=ScoringPolicy)


# ================================================================================
# RISK ENGINE
# ================================================================================

FORMULA_ERROR_POLICIES = ("abort", "sentinel")


@dataclass(frozen=True)
class RiskConfig:
    """Monte Carlo bounds, reporting layout and risk-matrix thresholds."""
    min_iterations: int = 100
    max_iterations: int = 100_000
    histogram_bins: int = 20
    var_level: float = 0.05
    percentiles: Tuple[int, ...] = (5, 10, 25, 50, 75, 90, 95)
    formula_error_policy: str = "abort"
    sentinel: float = float("nan")
    scenario_periods: int = 5
    scenario_discount_rate: float = 0.10
    probability_tolerance: float = 0.01
    risk_matrix_high: float = 0.75
    risk_matrix_medium: float = 0.35


# ================================================================================
# BUDGETING
# ================================================================================

@dataclass(frozen=True)
class BudgetConfig:
    """
    Variance bands, forecast trend factors and optimization cuts.

    POLICY constants, like the scoring policy: percentages are in percent
    points, cuts and increases are fractions of the planned amount.
    """
    significant_variance_pct: float = 10.0     # |variance %| above this is "significant"
    accelerating_factor: float = 1.2
    decelerating_factor: float = 0.8
    overrun_significant_pct: float = 10.0
    overrun_minor_pct: float = 5.0
    underspend_significant_pct: float = -10.0
    low_priority_cut: float = 0.15
    medium_priority_cut: float = 0.05
    default_max_increase: float = 0.10
    max_recommendations: int = 5
    trend_slope_threshold: float = 1.0         # variance % points per period
    accuracy_floor_pct: float = 70.0
    accuracy_excellent_pct: float = 90.0


BUDGET_SOURCE = DocumentedConstant(
    name="Budget control thresholds",
    source_type=ConstantSource.POLICY,
    source_citation="Internal heuristic: 10% variance band, +/-20% trend factors, 15%/5% priority cuts",
    notes="Tune per organisation by replacing the BudgetConfig record.",
)


# ================================================================================
# ENGINE CONFIG
# ================================================================================

@dataclass(frozen=True)
class EngineConfig:
    estimation: EstimationConfig = field(default_factory=EstimationConfig)
    financial: FinancialConfig = field(default_factory=FinancialConfig)
    risk: RiskConfig = field(default_factory=RiskConfig)
    budgeting: BudgetConfig = field(default_factory=BudgetConfig)


DEFAULT_CONFIG = EngineConfig()


def get_all_sources() -> Dict[str, DocumentedConstant]:
    """Get all documented constant groups."""
    return {
        "parametric": PARAMETRIC_SOURCE,
        "function_points": FUNCTION_POINT_SOURCE,
        "scoring": SCORING_SOURCE,
        "budgeting": BUDGET_SOURCE,
    }


def get_constant_report() -> str:
    """Generate a plain-text report of constant provenance."""
    report = ["# Constant Provenance Report", "=" * 50, ""]

    for source in get_all_sources().values():
        report.append(f"## {source.name}")
        report.append(f"Source: {source.source_type.value}")
        report.append(f"Citation: {source.source_citation}")
        if source.notes:
            report.append(f"Notes: {' '.join(source.notes.split())}")
        report.append("")

    return "\n".join(report)
