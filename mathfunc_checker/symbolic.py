"""
mathfunc_checker.symbolic
=========================

Symbolic values and path conditions.

A *symbolic value* stands in for a runtime value that is not known
concretely.  Along an explored path the analysis accumulates a *path
condition*, a conjunction of boolean constraints over those values,
which the solver uses to prove or refute facts about call arguments.

Expression language
-------------------
::

    as ::= n                      SymConst    (int or float literal)
         | α                      SymVar      (typed symbolic input)
         | as₁ op as₂             SymBinOp    (+ - * / % < <= > >= == != && ||)
         | op as                  SymUnaryOp  (- !)
         | ⊥                      SymUndefined (uninitialised read)
         | ?                      SymUnknown  (not representable)

Only the first four are *defined* values.  The rules abstain whenever
an argument is ``SymUndefined`` or ``SymUnknown``: the solver has
nothing to reason about.

Everything here is immutable; states are shared freely between
evaluations.
"""

from __future__ import annotations

import operator
from dataclasses import dataclass, field
from typing import Callable, Dict, FrozenSet, Optional, Tuple, Union

from .value_types import CType

Number = Union[int, float]

COMPARISON_OPS: FrozenSet[str] = frozenset({"<", "<=", ">", ">=", "==", "!="})
LOGICAL_OPS: FrozenSet[str] = frozenset({"&&", "||"})
ARITHMETIC_OPS: FrozenSet[str] = frozenset({"+", "-", "*", "/", "%"})


# ===================================================================
# SYMBOLIC EXPRESSION AST
# ===================================================================

class SymExpr:
    """Base class for symbolic expressions."""

    @property
    def children(self) -> Tuple["SymExpr", ...]:
        return ()

    @property
    def is_concrete(self) -> bool:
        return False

    @property
    def concrete_value(self) -> Optional[Number]:
        return None

    @property
    def is_defined(self) -> bool:
        """``False`` when any part of the expression is undefined or unknown."""
        return all(child.is_defined for child in self.children)

    @property
    def is_boolean(self) -> bool:
        """Does this expression denote a truth value (comparison/logical)?"""
        return False

    def simplify(self) -> "SymExpr":
        return _simplify_expr(self)


@dataclass(frozen=True)
class SymConst(SymExpr):
    """A concrete integer or floating constant."""
    value: Number

    @property
    def is_concrete(self) -> bool:
        return True

    @property
    def concrete_value(self) -> Optional[Number]:
        return self.value

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class SymVar(SymExpr):
    """A symbolic input, typed so the solver can pick Int or Real."""
    name: str
    ctype: CType = CType.INT

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class SymBinOp(SymExpr):
    op: str
    left: SymExpr
    right: SymExpr

    @property
    def children(self) -> Tuple[SymExpr, ...]:
        return (self.left, self.right)

    @property
    def is_boolean(self) -> bool:
        return self.op in COMPARISON_OPS or self.op in LOGICAL_OPS

    def __str__(self) -> str:
        return f"({self.left} {self.op} {self.right})"


@dataclass(frozen=True)
class SymUnaryOp(SymExpr):
    op: str
    operand: SymExpr

    @property
    def children(self) -> Tuple[SymExpr, ...]:
        return (self.operand,)

    @property
    def is_boolean(self) -> bool:
        return self.op == "!"

    def __str__(self) -> str:
        return f"({self.op}{self.operand})"


@dataclass(frozen=True)
class SymUndefined(SymExpr):
    """The value of an uninitialised read."""
    origin: str = ""

    @property
    def is_defined(self) -> bool:
        return False

    def __str__(self) -> str:
        return "undef"


@dataclass(frozen=True)
class SymUnknown(SymExpr):
    """A value the expression builder cannot represent."""
    origin: str = ""

    @property
    def is_defined(self) -> bool:
        return False

    def __str__(self) -> str:
        return "unknown"


# ===================================================================
# CONCRETE EVALUATION & SIMPLIFICATION
# ===================================================================

def _c_div(a: Number, b: Number) -> Optional[Number]:
    if b == 0:
        return None
    if isinstance(a, int) and isinstance(b, int):
        q = abs(a) // abs(b)
        return q if (a >= 0) == (b >= 0) else -q
    return a / b


def _c_mod(a: Number, b: Number) -> Optional[Number]:
    if b == 0 or not (isinstance(a, int) and isinstance(b, int)):
        return None
    return a - b * _c_div(a, b)  # type: ignore[operator]


_BINOPS: Dict[str, Callable[[Number, Number], Optional[Number]]] = {
    "+": operator.add,
    "-": operator.sub,
    "*": operator.mul,
    "/": _c_div,
    "%": _c_mod,
    "<": lambda a, b: int(a < b),
    "<=": lambda a, b: int(a <= b),
    ">": lambda a, b: int(a > b),
    ">=": lambda a, b: int(a >= b),
    "==": lambda a, b: int(a == b),
    "!=": lambda a, b: int(a != b),
    "&&": lambda a, b: int(bool(a) and bool(b)),
    "||": lambda a, b: int(bool(a) or bool(b)),
}


def _eval_binop(op: str, a: Number, b: Number) -> Optional[Number]:
    fn = _BINOPS.get(op)
    if fn is None:
        return None
    try:
        return fn(a, b)
    except (ArithmeticError, TypeError):
        return None


def _eval_unaryop(op: str, a: Number) -> Optional[Number]:
    if op == "-":
        return -a
    if op == "!":
        return int(not a)
    return None


def _simplify_expr(expr: SymExpr) -> SymExpr:
    """Constant folding plus the handful of identities the builder relies on.

    Rules applied:

    1. Constant folding: ``3 + 4 → 7``, ``-(1) → -1``
    2. Identity: ``x + 0 → x``, ``x * 1 → x``, ``x - 0 → x``
    3. Double negation: ``--x → x``, ``!!x → x``
    """
    if isinstance(expr, SymUnaryOp):
        inner = _simplify_expr(expr.operand)
        if inner.is_concrete:
            value = _eval_unaryop(expr.op, inner.concrete_value)  # type: ignore[arg-type]
            if value is not None:
                return SymConst(value)
        if isinstance(inner, SymUnaryOp) and inner.op == expr.op and expr.op in ("-", "!"):
            return inner.operand
        if inner is expr.operand:
            return expr
        return SymUnaryOp(expr.op, inner)

    if isinstance(expr, SymBinOp):
        left = _simplify_expr(expr.left)
        right = _simplify_expr(expr.right)
        op = expr.op
        if left.is_concrete and right.is_concrete:
            value = _eval_binop(op, left.concrete_value, right.concrete_value)  # type: ignore[arg-type]
            if value is not None:
                return SymConst(value)
        if op in ("+", "-") and right.is_concrete and right.concrete_value == 0:
            return left
        if op == "+" and left.is_concrete and left.concrete_value == 0:
            return right
        if op == "*" and right.is_concrete and right.concrete_value == 1:
            return left
        if op == "*" and left.is_concrete and left.concrete_value == 1:
            return right
        if left is expr.left and right is expr.right:
            return expr
        return SymBinOp(op, left, right)

    return expr


_COMPARISON_NEGATION: Dict[str, str] = {
    "<": ">=",
    "<=": ">",
    ">": "<=",
    ">=": "<",
    "==": "!=",
    "!=": "==",
}


def negate(expr: SymExpr) -> SymExpr:
    """Logical negation of a symbolic boolean expression."""
    if isinstance(expr, SymUnaryOp) and expr.op == "!":
        return expr.operand
    if isinstance(expr, SymBinOp) and expr.op in _COMPARISON_NEGATION:
        return SymBinOp(_COMPARISON_NEGATION[expr.op], expr.left, expr.right)
    if isinstance(expr, SymConst):
        return SymConst(int(not expr.value))
    return SymUnaryOp("!", expr)


def relation(op: str, lhs: SymExpr, rhs: Union[SymExpr, Number]) -> SymExpr:
    """Build ``lhs <op> rhs``; bare numbers become constants."""
    if not isinstance(rhs, SymExpr):
        rhs = SymConst(rhs)
    return SymBinOp(op, lhs, rhs)


# ===================================================================
# PATH CONDITION (GUARD)
# ===================================================================

@dataclass(frozen=True)
class PathCondition:
    """An immutable conjunction of symbolic boolean constraints.

    ``add`` returns a new condition; trivially true constraints are
    dropped, a trivially false one is kept so the solver sees the
    contradiction.
    """
    constraints: Tuple[SymExpr, ...] = ()

    def add(self, constraint: SymExpr) -> "PathCondition":
        simplified = constraint.simplify()
        if not simplified.is_defined:
            return self
        if simplified.is_concrete and simplified.concrete_value:
            return self
        if simplified in self.constraints:
            return self
        return PathCondition(self.constraints + (simplified,))

    def extend(self, constraints) -> "PathCondition":
        pc = self
        for c in constraints:
            pc = pc.add(c)
        return pc

    def __str__(self) -> str:
        if not self.constraints:
            return "true"
        return " ∧ ".join(str(c) for c in self.constraints)


@dataclass(frozen=True)
class SymState:
    """Immutable path-sensitive state handed to every rule evaluation.

    Attributes
    ----------
    path_condition : constraints known to hold on the explored path
    values         : symbolic value of each expression token, keyed by
                     the token's ``Id``
    """
    path_condition: PathCondition = field(default_factory=PathCondition)
    values: Tuple[Tuple[str, SymExpr], ...] = ()

    def value_of(self, token_id: str) -> SymExpr:
        for key, value in self.values:
            if key == token_id:
                return value
        return SymUnknown(origin=token_id)

    def bind(self, token_id: str, value: SymExpr) -> "SymState":
        kept = tuple((k, v) for k, v in self.values if k != token_id)
        return SymState(self.path_condition, kept + ((token_id, value),))

    def assume(self, constraint: SymExpr) -> "SymState":
        return SymState(self.path_condition.add(constraint), self.values)

    def __str__(self) -> str:
        bound = ", ".join(f"{k}: {v}" for k, v in self.values)
        return f"SymState(values={{{bound}}}, guard={self.path_condition})"
