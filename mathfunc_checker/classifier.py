"""
mathfunc_checker/classifier.py
══════════════════════════════

Per-argument classification against the thresholds the rules use.

For one argument the classifier answers:

  * ``arithmetic`` — is the static type arithmetic?
  * ``ge_zero``    — ``x >= 0``  as a :class:`~mathfunc_checker.solver.Tri`
  * ``lt_zero``    — ``x < 0``
  * ``ge_one``     — ``x >= 1``  (pow's base only)

Comparisons are evaluated lazily and at most once each, so a decision
table that stops at its first matching row never pays for the rows
after it.  A non-arithmetic argument answers ``UNKNOWN`` to everything
and callers are expected to abstain.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import cached_property
from typing import Any

from .host import CallSiteContext, SourceRange, source_range_of
from .solver import Tri
from .symbolic import SymExpr


@dataclass(frozen=True)
class ArgumentSlot:
    """One call argument and its symbolic value under the examined state."""
    token: Any
    value: SymExpr

    @property
    def source_range(self) -> SourceRange:
        return source_range_of(self.token)

    @classmethod
    def of(cls, token: Any, ctx: CallSiteContext) -> "ArgumentSlot":
        return cls(token, ctx.value_of(token))


@dataclass(frozen=True)
class ArgumentClass:
    slot: ArgumentSlot
    ctx: CallSiteContext

    @cached_property
    def arithmetic(self) -> bool:
        return self.ctx.oracle.is_arithmetic_type(self.slot.token)

    @cached_property
    def integer(self) -> bool:
        return self.ctx.oracle.is_integer_type(self.slot.token)

    @cached_property
    def ge_zero(self) -> Tri:
        return self._compare(">=", 0)

    @cached_property
    def lt_zero(self) -> Tri:
        return self._compare("<", 0)

    @cached_property
    def ge_one(self) -> Tri:
        return self._compare(">=", 1)

    def _compare(self, op: str, constant: int) -> Tri:
        if not self.arithmetic:
            return Tri.UNKNOWN
        return self.ctx.oracle.compare(self.ctx.state, self.slot.value, op, constant)


class ArgumentClassifier:
    """Builds :class:`ArgumentClass` views; holds no state of its own."""

    def classify(self, token: Any, ctx: CallSiteContext) -> ArgumentClass:
        return ArgumentClass(ArgumentSlot.of(token, ctx), ctx)
