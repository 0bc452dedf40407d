# tests/test_solver.py
"""
Tests for the Z3-backed constraint oracle.
"""

import pytest

from mathfunc_checker.solver import (
    SolverResult,
    SplitOutcome,
    Tri,
    Z3Backend,
    Z3ConstraintOracle,
)
from mathfunc_checker.symbolic import (
    PathCondition,
    SymBinOp,
    SymConst,
    SymState,
    SymUndefined,
    SymUnknown,
    SymVar,
    relation,
)
from mathfunc_checker.value_types import CType

X = SymVar("x", CType.DOUBLE)
N = SymVar("n", CType.INT)


def state_with(*constraints):
    return SymState(PathCondition().extend(constraints))


@pytest.fixture
def oracle():
    return Z3ConstraintOracle()


class TestZ3Backend:

    def test_sat_unsat(self):
        backend = Z3Backend()
        assert backend.check_sat([relation(">", X, 0)]) == SolverResult.SAT
        assert backend.check_sat([relation(">", X, 0), relation("<", X, 0)]) == SolverResult.UNSAT

    def test_integer_variables_are_integral(self):
        backend = Z3Backend()
        between = [relation(">", N, 0), relation("<", N, 1)]
        assert backend.check_sat(between) == SolverResult.UNSAT
        real_between = [relation(">", X, 0), relation("<", X, 1)]
        assert backend.check_sat(real_between) == SolverResult.SAT

    def test_float_constants_exact(self):
        backend = Z3Backend()
        assert backend.check_sat([relation("==", X, 1e-300)]) == SolverResult.SAT
        assert backend.check_sat([relation("<", SymConst(0.1), SymConst(0.2))]) == SolverResult.SAT

    def test_results_cached(self):
        backend = Z3Backend()
        constraints = (relation(">", X, 0),)
        backend.check_sat(constraints)
        assert backend._cache[constraints] == SolverResult.SAT

    def test_mixed_int_real(self):
        backend = Z3Backend()
        assert backend.check_sat([relation("<", N, 0.5), relation(">", N, 0)]) == SolverResult.UNSAT


class TestCompare:

    def test_proven_true(self, oracle):
        assert oracle.compare(state_with(relation(">=", X, 3)), X, ">=", 0) is Tri.TRUE

    def test_proven_false(self, oracle):
        assert oracle.compare(state_with(relation("<", X, -1)), X, ">=", 0) is Tri.FALSE

    def test_unknown(self, oracle):
        assert oracle.compare(SymState(), X, "<", 0) is Tri.UNKNOWN

    def test_concrete_values(self, oracle):
        assert oracle.compare(SymState(), SymConst(-1), "<", 0) is Tri.TRUE
        assert oracle.compare(SymState(), SymConst(2.5), ">=", 1) is Tri.TRUE
        assert oracle.compare(SymState(), SymConst(0), ">=", 1) is Tri.FALSE

    def test_undefined_values_unknown(self, oracle):
        assert oracle.compare(SymState(), SymUndefined(), "<", 0) is Tri.UNKNOWN
        assert oracle.compare(SymState(), SymUnknown(), ">=", 0) is Tri.UNKNOWN

    def test_expression_value(self, oracle):
        expr = SymBinOp("*", X, X)
        # non-linear: z3 may or may not prove it, but never claims the opposite
        assert oracle.compare(SymState(), expr, "<", 0) in (Tri.FALSE, Tri.UNKNOWN)


class TestIntegerDivision:

    def test_quotient_truncates_toward_zero(self, oracle):
        state = state_with(relation("==", N, -7))
        assert oracle.compare(state, SymBinOp("/", N, SymConst(2)), ">=", -3) is Tri.TRUE
        assert oracle.compare(state, SymBinOp("/", SymConst(7), SymConst(-2)), ">=", -3) is Tri.TRUE

    def test_small_negative_dividend_gives_zero(self, oracle):
        state = state_with(relation(">", N, -2), relation("<", N, 0))
        assert oracle.compare(state, SymBinOp("/", N, SymConst(2)), ">=", 0) is Tri.TRUE

    def test_remainder_takes_sign_of_dividend(self, oracle):
        state = state_with(relation("==", N, -7))
        assert oracle.compare(state, SymBinOp("%", N, SymConst(2)), "<", 0) is Tri.TRUE

    def test_remainder_of_negative_may_be_negative(self, oracle):
        state = state_with(relation("<", N, 0))
        rem = SymBinOp("%", N, SymConst(2))
        assert oracle.compare(state, rem, "<", 0) is Tri.UNKNOWN
        assert oracle.compare(state, rem, ">=", 1) is Tri.FALSE
        assert oracle.split(state, rem) is SplitOutcome.BOTH_REACHABLE

    def test_real_division_unchanged(self, oracle):
        state = state_with(relation("==", X, -1))
        assert oracle.compare(state, SymBinOp("/", X, SymConst(2)), "<", 0) is Tri.TRUE


class TestSplit:

    def test_unconstrained_value_both(self, oracle):
        assert oracle.split(SymState(), X) is SplitOutcome.BOTH_REACHABLE

    def test_nonzero_only_true(self, oracle):
        assert oracle.split(state_with(relation(">", X, 0)), X) is SplitOutcome.ONLY_TRUE_REACHABLE

    def test_zero_only_false(self, oracle):
        assert oracle.split(state_with(relation("==", X, 0)), X) is SplitOutcome.ONLY_FALSE_REACHABLE

    def test_concrete(self, oracle):
        assert oracle.split(SymState(), SymConst(3)) is SplitOutcome.ONLY_TRUE_REACHABLE
        assert oracle.split(SymState(), SymConst(0)) is SplitOutcome.ONLY_FALSE_REACHABLE

    def test_undefined_unconstrained(self, oracle):
        assert oracle.split(SymState(), SymUndefined()) is SplitOutcome.UNCONSTRAINED

    def test_infeasible_state_unconstrained(self, oracle):
        state = state_with(relation(">", X, 0), relation("<", X, 0))
        assert oracle.split(state, X) is SplitOutcome.UNCONSTRAINED

    def test_boolean_value_split_on_itself(self, oracle):
        cond = relation("<", X, 0)
        assert oracle.split(state_with(cond), cond) is SplitOutcome.ONLY_TRUE_REACHABLE


class TestFeasibility:

    def test_feasible(self, oracle):
        assert oracle.is_feasible(state_with(relation(">", X, 0)))

    def test_infeasible(self, oracle):
        assert not oracle.is_feasible(state_with(relation(">", X, 0), relation("<", X, 0)))

    def test_timeout_is_a_host_setting(self):
        oracle = Z3ConstraintOracle(Z3Backend(timeout_ms=50))
        assert oracle.backend.timeout_ms == 50
