"""
mathfunc_checker.solver
=======================

Constraint oracle backed by the Z3 theorem prover.

The rules ask three kinds of question about an argument under the
current path state:

``is_arithmetic_type(token)``
    static type query, answered from Cppcheck's ValueType.

``compare(state, value, op, constant)``  → :class:`Tri`
    is ``value <op> constant`` provable (``TRUE``), refutable
    (``FALSE``) or neither (``UNKNOWN``) under the path condition?

``split(state, value)``  → :class:`SplitOutcome`
    the dual assumption: are both ``value != 0`` and ``value == 0``
    still satisfiable under the path condition?

Soundness contract
------------------
A relation is reported ``TRUE`` only when Z3 answers UNSAT for its
negation.  A Z3 ``unknown`` (timeout, non-linear arithmetic) is never
turned into a definite answer: comparisons degrade to ``UNKNOWN`` and
a split branch counts as reachable.

Modelling
---------
Integer-typed inputs are unbounded ``Int`` constants, floating inputs
are ``Real`` constants (mathematical semantics, no overflow or NaN).
Integer ``/`` and ``%`` follow C: the quotient truncates toward zero
and the remainder takes the sign of the dividend.  Unsigned wrap-around
is handled before translation (see :mod:`mathfunc_checker.host`).
Sub-expressions Z3 cannot express (``%`` on reals, ...) become fresh
opaque ``Real`` constants keyed by their text, so the same expression
always maps to the same constant.
"""

from __future__ import annotations

import enum
import logging
import math
from fractions import Fraction
from typing import Any, Dict, Iterable, Optional, Protocol, Tuple

import z3

from .symbolic import (
    COMPARISON_OPS,
    Number,
    SymBinOp,
    SymConst,
    SymExpr,
    SymState,
    SymUnaryOp,
    SymVar,
    negate,
    relation,
)
from .value_types import is_arithmetic_type, is_integer_type

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_MS = 2000


# ===================================================================
# RESULT TYPES
# ===================================================================

class SolverResult(enum.Enum):
    """Result of an SMT satisfiability check."""
    SAT = "sat"
    UNSAT = "unsat"
    UNKNOWN = "unknown"


class Tri(enum.Enum):
    """Tri-state outcome of comparing a value against a threshold."""
    TRUE = "true"
    FALSE = "false"
    UNKNOWN = "unknown"

    @classmethod
    def of(cls, flag: bool) -> "Tri":
        return cls.TRUE if flag else cls.FALSE


class SplitOutcome(enum.Enum):
    """Reachability of a value's two truth assignments on the current path.

    ``UNCONSTRAINED`` covers the cases where there is nothing to split:
    the value is undefined/unknown, or neither branch is feasible.
    """
    BOTH_REACHABLE = "both"
    ONLY_TRUE_REACHABLE = "true-only"
    ONLY_FALSE_REACHABLE = "false-only"
    UNCONSTRAINED = "unconstrained"


# ===================================================================
# ORACLE INTERFACE
# ===================================================================

class ConstraintOracle(Protocol):
    """What the rule module needs from the host's value/constraint layer."""

    def is_arithmetic_type(self, token: Any) -> bool: ...

    def is_integer_type(self, token: Any) -> bool: ...

    def compare(self, state: SymState, value: SymExpr, op: str,
                constant: Number) -> Tri: ...

    def split(self, state: SymState, value: SymExpr) -> SplitOutcome: ...

    def is_feasible(self, state: SymState) -> bool: ...


# ===================================================================
# Z3 BACKEND
# ===================================================================

class Z3Backend:
    """Translate :mod:`mathfunc_checker.symbolic` terms to Z3 and check them.

    Parameters
    ----------
    timeout_ms : int
        Per-query Z3 timeout in milliseconds.
    """

    def __init__(self, timeout_ms: int = DEFAULT_TIMEOUT_MS) -> None:
        self.timeout_ms = timeout_ms
        self._cache: Dict[Tuple[SymExpr, ...], SolverResult] = {}

    def check_sat(self, constraints: Iterable[SymExpr]) -> SolverResult:
        key = tuple(constraints)
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        solver = z3.Solver()
        solver.set("timeout", int(self.timeout_ms))
        var_cache: Dict[str, Any] = {}
        for constraint in key:
            solver.add(self.to_z3_bool(constraint, var_cache))

        answer = solver.check()
        if answer == z3.sat:
            result = SolverResult.SAT
        elif answer == z3.unsat:
            result = SolverResult.UNSAT
        else:
            logger.debug("z3 returned unknown (%s) for %d constraints",
                         solver.reason_unknown(), len(key))
            result = SolverResult.UNKNOWN
        self._cache[key] = result
        return result

    # ── term translation ─────────────────────────────────────────────

    def to_z3_bool(self, expr: SymExpr, var_cache: Dict[str, Any]) -> Any:
        if isinstance(expr, SymBinOp):
            if expr.op in COMPARISON_OPS:
                lhs = self.to_z3_term(expr.left, var_cache)
                rhs = self.to_z3_term(expr.right, var_cache)
                return _z3_compare(expr.op, lhs, rhs)
            if expr.op == "&&":
                return z3.And(self.to_z3_bool(expr.left, var_cache),
                              self.to_z3_bool(expr.right, var_cache))
            if expr.op == "||":
                return z3.Or(self.to_z3_bool(expr.left, var_cache),
                             self.to_z3_bool(expr.right, var_cache))
        if isinstance(expr, SymUnaryOp) and expr.op == "!":
            return z3.Not(self.to_z3_bool(expr.operand, var_cache))
        if isinstance(expr, SymConst):
            return z3.BoolVal(bool(expr.value))
        return self.to_z3_term(expr, var_cache) != 0

    def to_z3_term(self, expr: SymExpr, var_cache: Dict[str, Any]) -> Any:
        if isinstance(expr, SymConst):
            if isinstance(expr.value, float):
                if not math.isfinite(expr.value):
                    return self._opaque(expr, var_cache)
                exact = Fraction(expr.value)
                return z3.RealVal(f"{exact.numerator}/{exact.denominator}")
            return z3.IntVal(int(expr.value))

        if isinstance(expr, SymVar):
            term = var_cache.get(expr.name)
            if term is None:
                if expr.ctype.is_floating:
                    term = z3.Real(expr.name)
                else:
                    term = z3.Int(expr.name)
                var_cache[expr.name] = term
            return term

        if expr.is_boolean:
            return z3.If(self.to_z3_bool(expr, var_cache),
                         z3.IntVal(1), z3.IntVal(0))

        if isinstance(expr, SymUnaryOp) and expr.op == "-":
            return -self.to_z3_term(expr.operand, var_cache)

        if isinstance(expr, SymBinOp):
            lhs = self.to_z3_term(expr.left, var_cache)
            rhs = self.to_z3_term(expr.right, var_cache)
            if expr.op == "+":
                return lhs + rhs
            if expr.op == "-":
                return lhs - rhs
            if expr.op == "*":
                return lhs * rhs
            if expr.op == "/":
                if z3.is_int(lhs) and z3.is_int(rhs):
                    return _c_int_div(lhs, rhs)
                return lhs / rhs
            if expr.op == "%" and z3.is_int(lhs) and z3.is_int(rhs):
                return lhs - rhs * _c_int_div(lhs, rhs)

        return self._opaque(expr, var_cache)

    def _opaque(self, expr: SymExpr, var_cache: Dict[str, Any]) -> Any:
        name = f"__opaque_{expr}__"
        term = var_cache.get(name)
        if term is None:
            term = z3.Real(name)
            var_cache[name] = term
        return term


def _c_int_div(lhs: Any, rhs: Any) -> Any:
    """C99 integer division, truncating toward zero.

    Z3's integer ``/`` is Euclidean, so ``-1 / 2`` would be ``-1``
    instead of ``0``.  The quotient is built from divisions of
    non-negative dividends, where both agree.
    """
    return z3.If(
        lhs >= 0,
        z3.If(rhs > 0, lhs / rhs, -(lhs / -rhs)),
        z3.If(rhs > 0, -((-lhs) / rhs), (-lhs) / (-rhs)),
    )


def _z3_compare(op: str, lhs: Any, rhs: Any) -> Any:
    if op == "<":
        return lhs < rhs
    if op == "<=":
        return lhs <= rhs
    if op == ">":
        return lhs > rhs
    if op == ">=":
        return lhs >= rhs
    if op == "==":
        return lhs == rhs
    return lhs != rhs


# ===================================================================
# ORACLE
# ===================================================================

class Z3ConstraintOracle:
    """:class:`ConstraintOracle` implementation over :class:`Z3Backend`."""

    def __init__(self, backend: Optional[Z3Backend] = None) -> None:
        self.backend = backend or Z3Backend()

    def is_arithmetic_type(self, token: Any) -> bool:
        return is_arithmetic_type(token)

    def is_integer_type(self, token: Any) -> bool:
        return is_integer_type(token)

    def is_feasible(self, state: SymState) -> bool:
        pc = state.path_condition.constraints
        return self.backend.check_sat(pc) != SolverResult.UNSAT

    def compare(self, state: SymState, value: SymExpr, op: str,
                constant: Number) -> Tri:
        if not value.is_defined:
            return Tri.UNKNOWN
        predicate = relation(op, value, constant).simplify()
        if predicate.is_concrete:
            return Tri.of(bool(predicate.concrete_value))

        pc = state.path_condition.constraints
        if self.backend.check_sat(pc + (negate(predicate),)) == SolverResult.UNSAT:
            return Tri.TRUE
        if self.backend.check_sat(pc + (predicate,)) == SolverResult.UNSAT:
            return Tri.FALSE
        return Tri.UNKNOWN

    def split(self, state: SymState, value: SymExpr) -> SplitOutcome:
        if not value.is_defined:
            return SplitOutcome.UNCONSTRAINED
        truth: SymExpr = value if value.is_boolean else relation("!=", value, 0)
        truth = truth.simplify()

        pc = state.path_condition.constraints
        true_ok = self._reachable(pc, truth)
        false_ok = self._reachable(pc, negate(truth))
        if true_ok and false_ok:
            return SplitOutcome.BOTH_REACHABLE
        if true_ok:
            return SplitOutcome.ONLY_TRUE_REACHABLE
        if false_ok:
            return SplitOutcome.ONLY_FALSE_REACHABLE
        return SplitOutcome.UNCONSTRAINED

    def _reachable(self, pc: Tuple[SymExpr, ...], assumption: SymExpr) -> bool:
        if assumption.is_concrete:
            return bool(assumption.concrete_value) and \
                self.backend.check_sat(pc) != SolverResult.UNSAT
        return self.backend.check_sat(pc + (assumption,)) != SolverResult.UNSAT

