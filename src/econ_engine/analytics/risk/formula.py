"""
Outcome Formulas
================
Restricted arithmetic expressions evaluated over sampled variables.

Formulas are parsed once with ``ast`` and validated before any sampling,
so an unknown name or disallowed construct fails fast. Nothing is ever
passed to ``eval``: the validated tree is walked directly over numpy
arrays, one array element per trial.

Allowed:
  - Numeric literals
  - Declared variable names, plus the constants ``pi`` and ``e``
  - Binary: + - * / ** %
  - Unary: + -
  - Functions: abs, min, max, sqrt, exp, log (positional arguments)

Rejected: everything else (attributes, subscripts, comparisons, lambdas,
keyword arguments, strings, undeclared names).
"""

import ast
import operator
from typing import Dict, Iterable, Mapping

import numpy as np

from econ_engine.utils.exceptions import FormulaEvaluationError

_BINARY_OPERATORS = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.Pow: operator.pow,
    ast.Mod: operator.mod,
}

_UNARY_OPERATORS = {
    ast.UAdd: operator.pos,
    ast.USub: operator.neg,
}


def _variadic(ufunc):
    def apply(*args):
        if len(args) < 2:
            raise TypeError(f"{ufunc.__name__} needs at least 2 arguments")
        result = args[0]
        for arg in args[1:]:
            result = ufunc(result, arg)
        return result
    return apply


# name -> (callable, allowed argument counts; None = 2 or more)
ALLOWED_FUNCTIONS = {
    "abs": (np.abs, {1}),
    "sqrt": (np.sqrt, {1}),
    "exp": (np.exp, {1}),
    "log": (np.log, {1}),
    "min": (_variadic(np.minimum), None),
    "max": (_variadic(np.maximum), None),
}

ALLOWED_CONSTANTS: Dict[str, float] = {"pi": float(np.pi), "e": float(np.e)}


class Formula:
    """A validated outcome formula bound to a fixed set of variable names."""

    def __init__(self, expression: str, variables: Iterable[str]):
        if not isinstance(expression, str) or not expression.strip():
            raise FormulaEvaluationError("Formula must be a non-empty string", formula=expression)
        self.expression = expression
        self.variables = frozenset(variables)

        try:
            tree = ast.parse(expression.strip(), mode="eval")
        except SyntaxError as e:
            raise FormulaEvaluationError(f"Syntax error: {e.msg}", formula=expression) from None

        self._body = tree.body
        self._validate(self._body)

    def __repr__(self):
        return f"Formula({self.expression!r})"

    def _fail(self, message: str, node: ast.AST) -> None:
        raise FormulaEvaluationError(
            message,
            formula=self.expression,
            details={"node": type(node).__name__, "col": getattr(node, "col_offset", 0)},
        )

    def _validate(self, node: ast.AST) -> None:
        if isinstance(node, ast.Constant):
            if isinstance(node.value, bool) or not isinstance(node.value, (int, float)):
                self._fail(f"Disallowed literal: {node.value!r}", node)

        elif isinstance(node, ast.Name):
            if node.id not in self.variables and node.id not in ALLOWED_CONSTANTS:
                raise FormulaEvaluationError(
                    f"Unknown variable '{node.id}'",
                    formula=self.expression,
                    details={"declared": sorted(self.variables)},
                )

        elif isinstance(node, ast.BinOp):
            if type(node.op) not in _BINARY_OPERATORS:
                self._fail(f"Disallowed binary operator: {type(node.op).__name__}", node)
            self._validate(node.left)
            self._validate(node.right)

        elif isinstance(node, ast.UnaryOp):
            if type(node.op) not in _UNARY_OPERATORS:
                self._fail(f"Disallowed unary operator: {type(node.op).__name__}", node)
            self._validate(node.operand)

        elif isinstance(node, ast.Call):
            if not isinstance(node.func, ast.Name) or node.func.id not in ALLOWED_FUNCTIONS:
                self._fail("Disallowed function call", node)
            if node.keywords:
                self._fail(f"Keyword arguments not allowed in {node.func.id}()", node)
            _, arities = ALLOWED_FUNCTIONS[node.func.id]
            n_args = len(node.args)
            if (arities is None and n_args < 2) or (arities is not None and n_args not in arities):
                self._fail(f"Wrong number of arguments for {node.func.id}()", node)
            for arg in node.args:
                if isinstance(arg, ast.Starred):
                    self._fail("Starred arguments not allowed", arg)
                self._validate(arg)

        else:
            self._fail(f"Disallowed expression: {type(node).__name__}", node)

    def evaluate(self, samples: Mapping[str, np.ndarray]) -> np.ndarray:
        """
        Evaluate over aligned sample arrays (one element per trial).

        Non-finite results (division by zero, log of a negative, overflow)
        are returned as inf/nan; the caller applies the error policy.
        """
        with np.errstate(all="ignore"):
            return np.asarray(self._eval(self._body, samples), dtype=float)

    def _eval(self, node: ast.AST, samples: Mapping[str, np.ndarray]):
        if isinstance(node, ast.Constant):
            return float(node.value)
        if isinstance(node, ast.Name):
            if node.id in self.variables:
                return samples[node.id]
            return ALLOWED_CONSTANTS[node.id]
        if isinstance(node, ast.BinOp):
            left = np.asarray(self._eval(node.left, samples), dtype=float)
            right = np.asarray(self._eval(node.right, samples), dtype=float)
            return _BINARY_OPERATORS[type(node.op)](left, right)
        if isinstance(node, ast.UnaryOp):
            return _UNARY_OPERATORS[type(node.op)](self._eval(node.operand, samples))
        # ast.Call: validated above
        func, _ = ALLOWED_FUNCTIONS[node.func.id]
        return func(*(self._eval(arg, samples) for arg in node.args))


def compile_formula(expression: str, variables: Iterable[str]) -> Formula:
    """Parse and validate; raises FormulaEvaluationError on any problem."""
    return Formula(expression, variables)
