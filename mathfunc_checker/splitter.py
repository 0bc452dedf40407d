"""
mathfunc_checker/splitter.py
════════════════════════════

Dual-assumption split: tells a *possible* violation apart from mere
lack of proof.

The classifier can only say "not provable".  The splitter asks the
solver whether the argument's truth value (``x != 0``) is still open on
the current path, i.e. whether assuming it true and assuming it false
are both satisfiable.  Only ``BOTH_REACHABLE`` licenses a
possible-violation finding.  An argument without a defined symbolic
value (uninitialised read, unrepresentable expression) yields
``UNCONSTRAINED`` and the rule abstains.
"""

from __future__ import annotations

import logging

from .classifier import ArgumentClass
from .solver import SplitOutcome

logger = logging.getLogger(__name__)


class ConstraintSplitter:

    def split(self, arg: ArgumentClass) -> SplitOutcome:
        value = arg.slot.value
        if not value.is_defined:
            logger.debug("no defined value for '%s'; nothing to split",
                         getattr(arg.slot.token, "str", "?"))
            return SplitOutcome.UNCONSTRAINED
        return arg.ctx.oracle.split(arg.ctx.state, value)

    def both_reachable(self, arg: ArgumentClass) -> bool:
        return self.split(arg) == SplitOutcome.BOTH_REACHABLE
