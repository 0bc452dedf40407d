"""
mathfunc_checker/call_filter.py
═══════════════════════════════

Decides which call expressions the math-function rules look at.

A call is in scope when all of the following hold:

  1. the callee is a plain identifier: no ``ns::`` / ``::`` qualifier,
     no member access, not a call through a variable (function
     pointer);
  2. if Cppcheck resolved a declaration for it, that declaration is a
     free function (``Function.type == "Function"``) whose enclosing
     scope is neither a class/struct/union nor a namespace;
  3. the identifier is exactly one of the names in
     :data:`TRACKED_FUNCTIONS`.

Calls to library functions whose headers were not part of the dump have
no resolved declaration.  For ``pow`` and ``sqrt`` such a plain, unbound
identifier counts as a resolved callee: it names the implicit C library
declaration.  A callee is unresolved, and the call is skipped, when
there is no name to resolve at all, as with calls through function
pointers or computed callee expressions.

The match is deliberately narrow: ``powf``, ``sqrtl``, ``std::pow``
and friends are not tracked.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Mapping, Optional, Tuple

from .host import call_arguments

logger = logging.getLogger(__name__)


class TrackedFunction(enum.Enum):
    """The closed set of functions with checked preconditions."""
    POW = "pow"
    SQRT = "sqrt"

    @property
    def arity(self) -> int:
        return _ARITY[self]


_ARITY = {
    TrackedFunction.POW: 2,
    TrackedFunction.SQRT: 1,
}

TRACKED_FUNCTIONS: Mapping[str, TrackedFunction] = MappingProxyType({
    fn.value: fn for fn in TrackedFunction
})

_MEMBER_SCOPES = frozenset({"Class", "Struct", "Union"})
_QUALIFIERS = frozenset({"::", ".", "->"})


@dataclass(frozen=True)
class CallSite:
    """An in-scope call: which function, and its argument expressions."""
    function: TrackedFunction
    call_token: Any
    name_token: Any
    arguments: Tuple[Any, ...]


def _tok_str(tok: Any) -> str:
    return getattr(tok, "str", "") or ""


def _has_var_id(tok: Any) -> bool:
    vid = getattr(tok, "varId", None)
    try:
        return vid is not None and int(vid) != 0
    except (TypeError, ValueError):
        return False


def _enclosing_kind(func: Any) -> str:
    scope = getattr(func, "nestedIn", None)
    return getattr(scope, "type", "") or ""


def resolve_callee(call_tok: Any) -> Optional[Any]:
    """Return the callee name token if it denotes a plain free function."""
    name_tok = getattr(call_tok, "astOperand1", None)
    if name_tok is None or not getattr(name_tok, "isName", False):
        return None
    if _tok_str(getattr(name_tok, "previous", None)) in _QUALIFIERS:
        return None
    if _has_var_id(name_tok) or getattr(name_tok, "variable", None) is not None:
        return None

    func = getattr(name_tok, "function", None)
    if func is None:
        return name_tok
    if (getattr(func, "type", "Function") or "Function") != "Function":
        return None
    enclosing = _enclosing_kind(func)
    if enclosing == "Namespace" or enclosing in _MEMBER_SCOPES:
        return None
    return name_tok


def match_call_site(call_tok: Any) -> Optional[CallSite]:
    """Route a call expression to a :class:`TrackedFunction`, or ``None``."""
    name_tok = resolve_callee(call_tok)
    if name_tok is None:
        return None
    function = TRACKED_FUNCTIONS.get(_tok_str(name_tok))
    if function is None:
        return None

    arguments = tuple(call_arguments(call_tok))
    if len(arguments) < function.arity:
        logger.debug("%s call at line %s has %d argument(s); skipped",
                     function.value, getattr(call_tok, "linenr", "?"), len(arguments))
        return None
    return CallSite(function, call_tok, name_tok, arguments)
