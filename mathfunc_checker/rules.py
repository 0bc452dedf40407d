"""
mathfunc_checker/rules.py
═════════════════════════

Decision tables for the tracked math functions.

Each :class:`TrackedFunction` owns one ordered tuple of :class:`Rule`
rows.  The engine walks the rows top to bottom and stops at the first
row whose predicate holds:

  * a row with a ``kind`` produces exactly one finding, anchored at
    the argument named by ``anchor``;
  * a row without a ``kind`` is a terminating "no finding" (the call
    is safe, or the rule abstains).

Falling off the end of a table is also "no finding", so one evaluation
yields at most one finding.

sqrt(x)
───────
  ========================  ========================  ==========
  predicate                 outcome                   anchor
  ========================  ========================  ==========
  x not arithmetic          abstain
  x >= 0 proven             safe
  x < 0 proven              SQRT_NEGATIVE_ARGUMENT    x
  x undefined               abstain
  x split both ways         SQRT_MAYBE_NEGATIVE       x
  ========================  ========================  ==========

pow(x, y)
─────────
  ============================================  ====================  ======
  predicate                                     outcome               anchor
  ============================================  ====================  ======
  x or y not arithmetic                         abstain
  x >= 1 proven                                 safe
  y < 0 proven, x < 0 and x >= 1 not proven     POW_POLE_ERROR        x
  x < 0 proven, y not of integer type           POW_DOMAIN_ERROR      x
  x undefined                                   abstain
  x split both ways                             POW_ARG_X_UNDEFINED   x
  y undefined                                   abstain
  y split both ways                             POW_ARG_Y_UNDEFINED   x
  ============================================  ====================  ======

``POW_ARG_Y_UNDEFINED`` is anchored at the first argument, and the pole
row only requires ``x`` to be outside the proven-negative and
proven-at-least-one regions; both are kept exactly as shipped.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Callable, Mapping, Optional, Tuple

from .call_filter import CallSite, TrackedFunction, match_call_site
from .classifier import ArgumentClass, ArgumentClassifier
from .host import CallSiteContext
from .reporter import Reporter, ViolationKind, ViolationRecord
from .solver import Tri
from .splitter import ConstraintSplitter

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CallFacts:
    """Classified arguments of one call, as seen by the predicates."""
    site: CallSite
    args: Tuple[ArgumentClass, ...]
    splitter: ConstraintSplitter

    @property
    def x(self) -> ArgumentClass:
        return self.args[0]

    @property
    def y(self) -> ArgumentClass:
        return self.args[1]

    def ambiguous(self, arg: ArgumentClass) -> bool:
        return self.splitter.both_reachable(arg)


Predicate = Callable[[CallFacts], bool]


@dataclass(frozen=True)
class Rule:
    name: str
    predicate: Predicate
    kind: Optional[ViolationKind] = None
    anchor: int = 0


@dataclass(frozen=True)
class Finding:
    rule: Rule
    kind: ViolationKind
    anchor: Any


SQRT_RULES: Tuple[Rule, ...] = (
    Rule("not-arithmetic",
         lambda f: not f.x.arithmetic),
    Rule("non-negative",
         lambda f: f.x.ge_zero is Tri.TRUE),
    Rule("negative",
         lambda f: f.x.lt_zero is Tri.TRUE,
         ViolationKind.SQRT_NEGATIVE_ARGUMENT),
    Rule("undefined",
         lambda f: not f.x.slot.value.is_defined),
    Rule("maybe-negative",
         lambda f: f.ambiguous(f.x),
         ViolationKind.SQRT_MAYBE_NEGATIVE),
)

POW_RULES: Tuple[Rule, ...] = (
    Rule("not-arithmetic",
         lambda f: not (f.x.arithmetic and f.y.arithmetic)),
    Rule("base-at-least-one",
         lambda f: f.x.ge_one is Tri.TRUE),
    Rule("pole",
         lambda f: (f.y.lt_zero is Tri.TRUE
                    and f.x.lt_zero is not Tri.TRUE
                    and f.x.ge_one is not Tri.TRUE),
         ViolationKind.POW_POLE_ERROR),
    Rule("domain",
         lambda f: f.x.lt_zero is Tri.TRUE and not f.y.integer,
         ViolationKind.POW_DOMAIN_ERROR),
    Rule("base-undefined",
         lambda f: not f.x.slot.value.is_defined),
    Rule("base-ambiguous",
         lambda f: f.ambiguous(f.x),
         ViolationKind.POW_ARG_X_UNDEFINED),
    Rule("exponent-undefined",
         lambda f: not f.y.slot.value.is_defined),
    Rule("exponent-ambiguous",
         lambda f: f.ambiguous(f.y),
         ViolationKind.POW_ARG_Y_UNDEFINED),
)

DECISION_TABLES: Mapping[TrackedFunction, Tuple[Rule, ...]] = MappingProxyType({
    TrackedFunction.SQRT: SQRT_RULES,
    TrackedFunction.POW: POW_RULES,
})


class RuleEngine:
    """
    Evaluates the decision table of a call site and reports the result.

    Parameters
    ----------
    classifier : ArgumentClassifier
    splitter   : ConstraintSplitter
    reporter   : Reporter
    """

    def __init__(
        self,
        classifier: Optional[ArgumentClassifier] = None,
        splitter: Optional[ConstraintSplitter] = None,
        reporter: Optional[Reporter] = None,
    ) -> None:
        self.classifier = classifier or ArgumentClassifier()
        self.splitter = splitter or ConstraintSplitter()
        self.reporter = reporter or Reporter()

    def facts(self, site: CallSite, ctx: CallSiteContext) -> CallFacts:
        args = tuple(
            self.classifier.classify(tok, ctx)
            for tok in site.arguments[:site.function.arity]
        )
        return CallFacts(site, args, self.splitter)

    def evaluate(self, site: CallSite, ctx: CallSiteContext) -> Optional[Finding]:
        """First matching row of the site's table, as a finding or ``None``."""
        facts = self.facts(site, ctx)
        for rule in DECISION_TABLES[site.function]:
            if not rule.predicate(facts):
                continue
            if rule.kind is None:
                logger.debug("%s at line %s: '%s', no finding", site.function.value,
                             getattr(site.call_token, "linenr", "?"), rule.name)
                return None
            return Finding(rule, rule.kind, site.arguments[rule.anchor])
        return None

    def check(self, call_tok: Any, ctx: CallSiteContext) -> Optional[ViolationRecord]:
        """Filter, evaluate and report one call expression."""
        site = match_call_site(call_tok)
        if site is None:
            return None
        finding = self.evaluate(site, ctx)
        if finding is None:
            return None
        return self.reporter.report(finding.kind, finding.anchor, ctx)
