"""
Exception Hierarchy for the Computation Core
=============================================
Every failure the engine reports belongs to one of a small set of kinds.

Validation always runs BEFORE any computation, so a raised exception means
no partial result exists. Nothing here is retried internally: callers (the
routing layer) translate these into user-facing messages.

IRR non-convergence is the one caveat that is NOT raised: it travels as a
ConvergenceWarning attached to the result, together with the residual NPV.
"""

from typing import Any, Optional


# =============================================================================
# BASE EXCEPTION HIERARCHY
# =============================================================================

class EconEngineError(Exception):
    """
    Base exception for the computation core.

    All engine exceptions inherit from this to allow catching every
    computation failure with a single except clause.

    Args:
        reason: Human-readable explanation
        field: Name of the offending input (if any)
        value: Offending value (if any)
        details: Extra structured context for the caller
    """

    kind = "ENGINE_ERROR"

    def __init__(
        self,
        reason: str,
        field: Optional[str] = None,
        value: Any = None,
        details: Optional[dict] = None,
    ):
        self.reason = reason
        self.field = field
        self.value = value
        self.details = details or {}

        msg_parts = [f"{self.kind}: {reason}"]
        if field is not None:
            msg_parts.append(f"   • field: {field}")
        if value is not None:
            msg_parts.append(f"   • value: {value!r}")
        for key, item in self.details.items():
            msg_parts.append(f"   • {key}: {item}")

        super().__init__("\n".join(msg_parts))

    def to_dict(self) -> dict:
        """Export to a plain mapping for the transport layer."""
        return {
            "kind": self.kind,
            "reason": self.reason,
            "field": self.field,
            "value": self.value,
            "details": dict(self.details),
        }


class InvalidInputError(EconEngineError, ValueError):
    """
    Raised for out-of-range or missing required values.

    Examples: size <= 0, empty required sequence, negative function-point
    count, negative discount rate, non-normalized probabilities.
    """

    kind = "INVALID_INPUT"


class DegenerateInputError(EconEngineError, ArithmeticError):
    """
    Raised when the operation is mathematically undefined for the input.

    Example: regression over sizes with zero variance (slope denominator 0).
    """

    kind = "DEGENERATE_INPUT"


class MalformedTreeError(InvalidInputError):
    """
    Raised when a decision tree violates its structural invariant.

    - decision/chance nodes must have at least one child
    - terminal nodes must carry a value and no children
    - every node has exactly one parent (no sharing, no cycles)
    """

    kind = "MALFORMED_TREE"

    def __init__(self, reason: str, node: Optional[str] = None, details: Optional[dict] = None):
        self.node = node
        super().__init__(reason, field="node" if node is not None else None, value=node, details=details)


class FormulaEvaluationError(EconEngineError):
    """
    Raised when a Monte Carlo formula cannot be evaluated.

    Covers references to undeclared variables, disallowed syntax and
    non-finite outcomes (under the default "abort" policy).
    """

    kind = "FORMULA_EVALUATION"

    def __init__(
        self,
        reason: str,
        formula: Optional[str] = None,
        details: Optional[dict] = None,
    ):
        self.formula = formula
        super().__init__(reason, field="formula" if formula is not None else None, value=formula, details=details)


# =============================================================================
# NON-FATAL CAVEATS
# =============================================================================

class ConvergenceWarning(UserWarning):
    """
    IRR root finder did not converge within tolerance.

    Never raised by the engine: an instance is attached to IRRResult.warning
    so callers can decide whether a "close enough" rate is still actionable.
    """

    def __init__(self, message: str, residual: float, iterations: int):
        self.residual = residual
        self.iterations = iterations
        super().__init__(message)

    def to_dict(self) -> dict:
        return {
            "message": str(self),
            "residual": self.residual,
            "iterations": self.iterations,
        }
