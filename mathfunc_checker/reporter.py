"""
mathfunc_checker/reporter.py
════════════════════════════

Violation kinds, their fixed identities, and the step that turns a
rule decision into a report.

Every kind has exactly one :class:`KindIdentity`.  The identities are
built once at import into :data:`KIND_REGISTRY`, a read-only mapping;
reporting looks an identity up and never constructs one.

A report is only forwarded when the host hands back a terminal marker
for the current state.  No marker means the path was pruned, and the
report is dropped without a trace beyond a debug log line.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Mapping, Optional

from .errors import MathCheckError
from .host import CallSiteContext, SourceRange, source_range_of
from .symbolic import SymState

logger = logging.getLogger(__name__)

CATEGORY = "Math func input args error"

CWE_INCORRECT_CALCULATION = 682
CWE_DIVIDE_BY_ZERO = 369


class ViolationKind(enum.Enum):
    SQRT_NEGATIVE_ARGUMENT = enum.auto()
    SQRT_MAYBE_NEGATIVE = enum.auto()
    POW_POLE_ERROR = enum.auto()
    POW_DOMAIN_ERROR = enum.auto()
    POW_ARG_X_UNDEFINED = enum.auto()
    POW_ARG_Y_UNDEFINED = enum.auto()

    @property
    def identity(self) -> "KindIdentity":
        return KIND_REGISTRY[self]


@dataclass(frozen=True)
class KindIdentity:
    """
    Fixed identity of a violation kind.

    Attributes
    ----------
    kind        : the ViolationKind this identity belongs to
    error_id    : cppcheck errorId, stable across releases
    description : the message shown to the user
    category    : category label shared by all kinds
    definite    : True when the violation is proven on the path,
                  False when it is merely reachable
    cwe         : CWE number
    """
    kind: ViolationKind
    error_id: str
    description: str
    category: str
    definite: bool
    cwe: int

    @property
    def severity(self) -> str:
        return "error" if self.definite else "warning"


def _build_registry() -> Mapping[ViolationKind, KindIdentity]:
    rows = (
        (ViolationKind.SQRT_NEGATIVE_ARGUMENT, "sqrtNegativeArgument",
         "Function argument is negative, domain error",
         True, CWE_INCORRECT_CALCULATION),
        (ViolationKind.SQRT_MAYBE_NEGATIVE, "sqrtMaybeNegative",
         "Undefined function argument, could be negative",
         False, CWE_INCORRECT_CALCULATION),
        (ViolationKind.POW_POLE_ERROR, "powPoleError",
         "Pole error: if first argument is 0, second argument must be positive",
         True, CWE_DIVIDE_BY_ZERO),
        (ViolationKind.POW_DOMAIN_ERROR, "powDomainError",
         "Domain error: if first argument is less than 0, second argument must be an integer",
         True, CWE_INCORRECT_CALCULATION),
        (ViolationKind.POW_ARG_X_UNDEFINED, "powArgXUndefined",
         "First pow argument is undefined, could cause domain or range error",
         False, CWE_INCORRECT_CALCULATION),
        (ViolationKind.POW_ARG_Y_UNDEFINED, "powArgYUndefined",
         "Second pow argument is undefined, could cause domain or range error",
         False, CWE_INCORRECT_CALCULATION),
    )
    table = {
        kind: KindIdentity(kind, error_id, description, CATEGORY, definite, cwe)
        for kind, error_id, description, definite, cwe in rows
    }
    _require_complete(table)
    return MappingProxyType(table)


def _require_complete(table: Mapping[ViolationKind, KindIdentity]) -> None:
    missing = set(ViolationKind) - set(table)
    if missing:
        names = ", ".join(sorted(kind.name for kind in missing))
        raise MathCheckError(f"violation kinds without identity: {names}")


KIND_REGISTRY: Mapping[ViolationKind, KindIdentity] = _build_registry()

KINDS_BY_ERROR_ID: Mapping[str, KindIdentity] = MappingProxyType({
    identity.error_id: identity for identity in KIND_REGISTRY.values()
})


@dataclass(frozen=True)
class ViolationRecord:
    kind: ViolationKind
    source_range: SourceRange
    state: SymState

    @property
    def identity(self) -> KindIdentity:
        return KIND_REGISTRY[self.kind]


class Reporter:
    """Forwards violation records to the host's diagnostic sink."""

    def report(self, kind: ViolationKind, anchor: Any,
               ctx: CallSiteContext) -> Optional[ViolationRecord]:
        """
        Report ``kind`` anchored at the argument expression ``anchor``.

        Returns the forwarded record, or ``None`` when the host gave no
        terminal marker and the report was dropped.
        """
        record = ViolationRecord(kind, source_range_of(anchor), ctx.state)
        marker = ctx.generate_error_node(record.state)
        if marker is None:
            logger.debug("%s at %s dropped: no terminal marker",
                         record.identity.error_id, record.source_range)
            return None
        identity = record.identity
        ctx.emit_report(identity, identity.description, identity.category,
                        record.source_range)
        return record
