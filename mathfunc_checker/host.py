"""
mathfunc_checker/host.py
════════════════════════

Cppcheck-backed host for path-sensitive call-site rules.

The math-function rules are written against a small host interface
(path state, constraint oracle, terminal markers, diagnostic sink).
This module implements that interface on top of a ``cppcheck --dump``
configuration so the rules run as an ordinary Cppcheck addon.

Architecture
────────────

  ┌──────────────────────────────────────────────────────────────┐
  │                        AnalysisHost                          │
  │   walks cfg.tokenlist, fires pre-call callbacks per call     │
  │                                                              │
  │  ┌────────────────────┐      ┌────────────────────────────┐  │
  │  │  PathStateBuilder  │─────▶│  SymState (immutable)      │  │
  │  │  enclosing guards  │      │  path condition + argument │  │
  │  │  early-exit guards │      │  values keyed by token Id  │  │
  │  │  type axioms       │      └─────────────┬──────────────┘  │
  │  └─────────┬──────────┘                    │                 │
  │            │ SymExprBuilder                │                 │
  │            ▼                               ▼                 │
  │     cppcheck AST tokens          CallSiteContext ──▶ rule    │
  │                                  (state, oracle, host)       │
  └──────────────────────────────────────────────────────────────┘

How a call's state is derived
─────────────────────────────
The state a call is reached under is approximated from the structure
around it, not by full path enumeration:

  * ``if (c) { ... call ... }``            contributes ``c``
  * ``if (c) {...} else { ... call ... }`` contributes ``!c``
  * ``while (c) { ... call ... }``         contributes ``c``
  * ``if (c) return;  ...  call``          contributes ``!c``
    (any ``return``/``break``/``continue``/``goto``/``exit()`` in the
    ``if`` body, and no ``else``)

A guard is dropped when a variable it mentions may be written between
the guard and the call (assignment, ``++``/``--``, address taken).
For ``while`` guards the whole loop body counts.

Unsigned variables get ``v >= 0``; ``bool`` variables ``0 <= v <= 1``.
Arithmetic and casts whose result type is unsigned wrap: constants are
reduced modulo 2**N, anything else becomes an opaque unsigned symbol.
ValueFlow *known* values replace an expression by its constant; a
known *uninit* value makes a variable read undefined.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from functools import cached_property
from typing import Any, Callable, Dict, Iterator, List, Optional, Protocol, Set

from .solver import ConstraintOracle
from .symbolic import (
    ARITHMETIC_OPS,
    COMPARISON_OPS,
    LOGICAL_OPS,
    SymBinOp,
    SymConst,
    SymExpr,
    SymState,
    SymUnaryOp,
    SymUndefined,
    SymUnknown,
    SymVar,
    negate,
    relation,
)
from .value_types import CType, ctype_of_token, ctype_of_variable

logger = logging.getLogger(__name__)


# ═════════════════════════════════════════════════════════════════════════
#  PART 1 — SOURCE LOCATIONS
# ═════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class SourceLocation:
    """A specific point in source code."""
    file: str = ""
    line: int = 0
    column: int = 0

    def __str__(self) -> str:
        if self.column:
            return f"{self.file}:{self.line}:{self.column}"
        return f"{self.file}:{self.line}"


@dataclass(frozen=True)
class SourceRange:
    """Extent of an expression: first token start to last token end."""
    begin: SourceLocation = field(default_factory=SourceLocation)
    end: SourceLocation = field(default_factory=SourceLocation)

    def __str__(self) -> str:
        if self.begin == self.end or self.begin.line != self.end.line:
            return str(self.begin)
        return f"{self.begin}-{self.end.column}"


def _tok_str(tok: Any) -> str:
    return getattr(tok, "str", "") or ""


def _tok_file(tok: Any) -> str:
    return getattr(tok, "file", "") or ""


def _tok_line(tok: Any) -> int:
    return getattr(tok, "linenr", 0) or 0


def _tok_col(tok: Any) -> int:
    return getattr(tok, "column", 0) or 0


def _tok_id(tok: Any) -> str:
    return str(getattr(tok, "Id", "") or id(tok))


def _tok_loc(tok: Any) -> SourceLocation:
    return SourceLocation(file=_tok_file(tok), line=_tok_line(tok), column=_tok_col(tok))


def _iter_ast(tok: Any) -> Iterator[Any]:
    """Pre-order walk of the AST rooted at ``tok``."""
    stack = [tok]
    while stack:
        t = stack.pop()
        if t is None:
            continue
        yield t
        stack.append(getattr(t, "astOperand2", None))
        stack.append(getattr(t, "astOperand1", None))


def source_range_of(tok: Any) -> SourceRange:
    """Source range covered by the expression rooted at ``tok``."""
    nodes = [t for t in _iter_ast(tok) if _tok_line(t)]
    if not nodes:
        return SourceRange(_tok_loc(tok), _tok_loc(tok))
    first = min(nodes, key=lambda t: (_tok_line(t), _tok_col(t)))
    last = max(nodes, key=lambda t: (_tok_line(t), _tok_col(t)))
    end = SourceLocation(
        file=_tok_file(last),
        line=_tok_line(last),
        column=_tok_col(last) + max(len(_tok_str(last)) - 1, 0),
    )
    return SourceRange(_tok_loc(first), end)


def call_arguments(call_tok: Any) -> List[Any]:
    """Argument expression roots of a call ``(`` token, left to right."""
    result: List[Any] = []

    def flatten(tok: Any) -> None:
        if tok is None:
            return
        if _tok_str(tok) == ",":
            flatten(getattr(tok, "astOperand1", None))
            flatten(getattr(tok, "astOperand2", None))
        else:
            result.append(tok)

    flatten(getattr(call_tok, "astOperand2", None))
    return result


# ═════════════════════════════════════════════════════════════════════════
#  PART 2 — SYMBOLIC EXPRESSIONS FROM CPPCHECK TOKENS
# ═════════════════════════════════════════════════════════════════════════

_KEYWORD_CALLS = frozenset({"if", "while", "for", "switch", "return", "sizeof", "catch"})


def _known_number(tok: Any) -> Optional[SymConst]:
    """Constant from a ValueFlow value of kind ``known``, if any."""
    for v in getattr(tok, "values", None) or []:
        if getattr(v, "valueKind", "") != "known":
            continue
        if getattr(v, "uninit", None):
            continue
        fv = getattr(v, "floatValue", None)
        if fv is not None:
            try:
                return SymConst(float(fv))
            except (TypeError, ValueError):
                pass
        iv = getattr(v, "intvalue", None)
        if iv is not None:
            try:
                return SymConst(int(iv))
            except (TypeError, ValueError):
                pass
    return None


def _known_uninit(tok: Any) -> bool:
    return any(
        getattr(v, "valueKind", "") == "known" and getattr(v, "uninit", None)
        for v in getattr(tok, "values", None) or []
    )


def parse_number(text: str) -> Optional[SymConst]:
    """Parse a C numeric literal; floats stay floats."""
    s = text.strip()
    try:
        if s[:2] in ("0x", "0X") and not any(c in s for c in ".pP"):
            return SymConst(int(s[2:].rstrip("uUlL"), 16))
        if s[:2] in ("0b", "0B"):
            return SymConst(int(s[2:].rstrip("uUlL"), 2))
        if any(c in s for c in ".eE") and not s[:2] in ("0x", "0X"):
            return SymConst(float(s.rstrip("fFlL")))
        cleaned = s.rstrip("uUlL")
        if len(cleaned) > 1 and cleaned.startswith("0") and cleaned.isdigit():
            return SymConst(int(cleaned, 8))
        return SymConst(int(cleaned))
    except ValueError:
        return None


class SymExprBuilder:
    """Builds symbolic expressions from Cppcheck AST tokens.

    Variables map to :class:`SymVar` named ``v<varId>``; every variable
    seen is remembered in :attr:`variables` so the state builder can
    add type axioms for it.  Sub-expressions the rules cannot reason
    about (calls, subscripts, member access, dereferences, ternaries)
    become fresh, unconstrained but *defined* symbols.
    """

    def __init__(self) -> None:
        self.variables: Dict[str, SymVar] = {}

    def build(self, tok: Any) -> SymExpr:
        if tok is None:
            return SymUnknown(origin="missing")

        text = _tok_str(tok)

        if getattr(tok, "isNumber", False):
            return parse_number(text) or SymUnknown(origin=text)

        if len(text) == 3 and text[0] == text[-1] == "'":
            return SymConst(ord(text[1]))

        if getattr(tok, "isName", False):
            return self._build_name(tok)

        known = _known_number(tok)
        if known is not None:
            return known

        op1 = getattr(tok, "astOperand1", None)
        op2 = getattr(tok, "astOperand2", None)

        if text == "(" and getattr(tok, "isCast", False):
            return self._wrap(tok, self.build(op2 if op1 is None else op1))

        if op1 is not None and op2 is None and text in ("-", "+", "!"):
            inner = self.build(op1)
            if text == "+":
                return inner
            if text == "!":
                return SymUnaryOp(text, inner).simplify()
            return self._wrap(tok, SymUnaryOp(text, inner).simplify())

        if op1 is not None and op2 is not None:
            if text in ARITHMETIC_OPS:
                return self._wrap(tok, SymBinOp(text, self.build(op1), self.build(op2)).simplify())
            if text in COMPARISON_OPS or text in LOGICAL_OPS:
                return SymBinOp(text, self.build(op1), self.build(op2)).simplify()
            if text == "=":
                return self.build(op2)
            if text == ",":
                return self.build(op2)

        return self._opaque(tok)

    def _build_name(self, tok: Any) -> SymExpr:
        text = _tok_str(tok)
        var = getattr(tok, "variable", None)
        var_id = getattr(tok, "varId", None)
        if var is not None or (var_id and str(var_id) != "0"):
            if _known_uninit(tok):
                return SymUndefined(origin=text)
            known = _known_number(tok)
            if known is not None:
                return known
            ctype = ctype_of_variable(var)
            if ctype == CType.UNKNOWN:
                ctype = ctype_of_token(tok)
            name = f"v{getattr(var, 'Id', None) or var_id or text}"
            sym = self.variables.get(name)
            if sym is None:
                sym = SymVar(name, ctype)
                self.variables[name] = sym
            return sym

        if text == "true":
            return SymConst(1)
        if text == "false":
            return SymConst(0)
        known = _known_number(tok)
        if known is not None:
            return known
        return SymUnknown(origin=text)

    def _wrap(self, tok: Any, expr: SymExpr) -> SymExpr:
        """Apply C unsigned conversion to a result whose static type is unsigned.

        Constants are reduced modulo 2**N.  Anything else that could
        wrap becomes an opaque unsigned symbol, so it still gets the
        ``>= 0`` axiom but is never proven negative.
        """
        ctype = ctype_of_token(tok)
        if not ctype.is_unsigned or not expr.is_defined:
            return expr
        if isinstance(expr, SymVar) and expr.ctype.is_unsigned and expr.ctype.bits <= ctype.bits:
            return expr
        value = expr.concrete_value
        if isinstance(value, int):
            if ctype == CType.BOOL:
                return SymConst(int(value != 0))
            return SymConst(value % (1 << ctype.bits))
        return self._opaque(tok, ctype)

    def _opaque(self, tok: Any, ctype: Optional[CType] = None) -> SymExpr:
        if ctype is None:
            ctype = ctype_of_token(tok)
        if not ctype.is_arithmetic:
            ctype = CType.DOUBLE
        name = f"__expr_{_tok_id(tok)}__"
        sym = self.variables.get(name)
        if sym is None:
            sym = SymVar(name, ctype)
            self.variables[name] = sym
        return sym


# ═════════════════════════════════════════════════════════════════════════
#  PART 3 — PATH STATE BUILDER
# ═════════════════════════════════════════════════════════════════════════

_JUMP_KEYWORDS = frozenset({"return", "break", "continue", "goto"})
_NORETURN_CALLS = frozenset({"exit", "abort", "_Exit", "quick_exit"})
_INCDEC = frozenset({"++", "--"})


@dataclass(frozen=True)
class _Guard:
    condition: Any      # condition AST root
    holds: bool         # True: condition holds; False: its negation holds
    start: Any          # first token of the region the guard must survive
    end: Any            # last token of that region


class PathStateBuilder:
    """Derives the :class:`SymState` under which a call site is reached.

    Parameters
    ----------
    cfg : cppcheckdata.Configuration
    """

    def __init__(self, cfg: Any) -> None:
        self.cfg = cfg
        self._order: Dict[int, int] = {
            id(tok): i for i, tok in enumerate(getattr(cfg, "tokenlist", []) or [])
        }
        self._scopes: List[Any] = list(getattr(cfg, "scopes", []) or [])

    def build(self, call_tok: Any) -> SymState:
        builder = SymExprBuilder()
        state = SymState()

        for arg in call_arguments(call_tok):
            state = state.bind(_tok_id(arg), builder.build(arg))

        pc = state.path_condition
        for guard in self.guards_for(call_tok):
            cond = builder.build(guard.condition)
            if not cond.is_defined:
                continue
            truth = cond if cond.is_boolean else relation("!=", cond, 0)
            pc = pc.add(truth if guard.holds else negate(truth))

        pc = pc.extend(self._type_axioms(builder.variables.values()))
        return SymState(pc, state.values)

    # ── guards ───────────────────────────────────────────────────────

    def guards_for(self, call_tok: Any) -> List[_Guard]:
        guards: List[_Guard] = []
        scope = getattr(call_tok, "scope", None)
        while scope is not None:
            guard = self._scope_guard(scope, call_tok)
            if guard is not None:
                guards.append(guard)
            guards.extend(self._early_exit_guards(scope, call_tok))
            if getattr(scope, "type", "") in ("Function", "Global"):
                break
            scope = getattr(scope, "nestedIn", None)
        return [g for g in guards if not self._may_modify(g)]

    def _scope_guard(self, scope: Any, call_tok: Any) -> Optional[_Guard]:
        kind = getattr(scope, "type", "")
        body_start = getattr(scope, "bodyStart", None)
        if body_start is None:
            return None
        if kind in ("If", "While"):
            open_paren = _condition_paren(getattr(body_start, "previous", None))
            if open_paren is None:
                return None
            end = getattr(scope, "bodyEnd", None) if kind == "While" else call_tok
            return _Guard(_paren_condition(open_paren), True, open_paren, end)
        if kind == "Else":
            else_tok = getattr(body_start, "previous", None)
            if _tok_str(else_tok) != "else":
                return None
            if_end = getattr(else_tok, "previous", None)
            if_start = getattr(if_end, "link", None) if _tok_str(if_end) == "}" else None
            open_paren = _condition_paren(getattr(if_start, "previous", None))
            if open_paren is None:
                return None
            return _Guard(_paren_condition(open_paren), False, open_paren, call_tok)
        return None

    def _early_exit_guards(self, scope: Any, call_tok: Any) -> List[_Guard]:
        call_pos = self._order.get(id(call_tok))
        if call_pos is None:
            return []
        result: List[_Guard] = []
        for inner in self._scopes:
            if getattr(inner, "nestedIn", None) is not scope:
                continue
            if getattr(inner, "type", "") != "If":
                continue
            body_end = getattr(inner, "bodyEnd", None)
            end_pos = self._order.get(id(body_end))
            if end_pos is None or end_pos >= call_pos:
                continue
            if _tok_str(getattr(body_end, "next", None)) == "else":
                continue
            if not self._jumps_away(inner):
                continue
            open_paren = _condition_paren(
                getattr(getattr(inner, "bodyStart", None), "previous", None)
            )
            if open_paren is None:
                continue
            result.append(_Guard(_paren_condition(open_paren), False, open_paren, call_tok))
        return result

    def _jumps_away(self, if_scope: Any) -> bool:
        for tok in _tokens_between(getattr(if_scope, "bodyStart", None),
                                   getattr(if_scope, "bodyEnd", None)):
            if getattr(tok, "scope", None) is not if_scope:
                continue
            text = _tok_str(tok)
            if text in _JUMP_KEYWORDS:
                return True
            if text in _NORETURN_CALLS and _tok_str(getattr(tok, "next", None)) == "(":
                return True
        return False

    # ── invalidation ─────────────────────────────────────────────────

    def _may_modify(self, guard: _Guard) -> bool:
        var_ids = _var_ids_in(guard.condition)
        if not var_ids:
            return False
        for tok in _tokens_between(guard.start, guard.end):
            vid = _safe_vid(getattr(tok, "varId", None))
            if vid is None or vid not in var_ids:
                continue
            if _is_written(tok):
                logger.debug("guard at line %d dropped: variable '%s' written at line %d",
                             _tok_line(guard.start), _tok_str(tok), _tok_line(tok))
                return True
        return False

    @staticmethod
    def _type_axioms(variables) -> List[SymExpr]:
        axioms: List[SymExpr] = []
        for var in variables:
            if var.ctype.is_unsigned:
                axioms.append(relation(">=", var, 0))
            if var.ctype == CType.BOOL:
                axioms.append(relation("<=", var, 1))
        return axioms


def _condition_paren(close_paren: Any) -> Optional[Any]:
    """Given the ``)`` before a body ``{``, return the matching ``(``."""
    if _tok_str(close_paren) != ")":
        return None
    open_paren = getattr(close_paren, "link", None)
    if _tok_str(open_paren) != "(":
        return None
    return open_paren


def _paren_condition(open_paren: Any) -> Any:
    op2 = getattr(open_paren, "astOperand2", None)
    if op2 is not None:
        return op2
    return getattr(open_paren, "astOperand1", None)


def _tokens_between(start: Any, end: Any) -> Iterator[Any]:
    """Yield tokens from ``start`` through ``end`` following ``.next``."""
    tok = start
    while tok is not None:
        yield tok
        if tok is end:
            return
        tok = getattr(tok, "next", None)


def _safe_vid(vid: Any) -> Optional[int]:
    if vid is None:
        return None
    try:
        v = int(vid)
        return v if v != 0 else None
    except (ValueError, TypeError):
        return None


def _var_ids_in(cond: Any) -> Set[int]:
    ids: Set[int] = set()
    for tok in _iter_ast(cond):
        vid = _safe_vid(getattr(tok, "varId", None))
        if vid is not None:
            ids.add(vid)
    return ids


def _is_written(tok: Any) -> bool:
    parent = getattr(tok, "astParent", None)
    if parent is None:
        return False
    if getattr(parent, "isAssignmentOp", False) and getattr(parent, "astOperand1", None) is tok:
        return True
    text = _tok_str(parent)
    if text in _INCDEC:
        return True
    return text == "&" and getattr(parent, "astOperand2", None) is None


# ═════════════════════════════════════════════════════════════════════════
#  PART 4 — PER-CALL CONTEXT AND THE HOST
# ═════════════════════════════════════════════════════════════════════════

class DiagnosticSink(Protocol):
    """Receives findings; owns rendering and deduplication."""

    def emit_report(self, identity: Any, message: str, category: str,
                    source_range: SourceRange) -> None: ...


@dataclass(frozen=True)
class TerminalMarker:
    """Marks the analysed path as ending in an error at ``call_token``."""
    call_token: Any
    state: SymState


PreCallCallback = Callable[[Any, "CallSiteContext"], None]


@dataclass(frozen=True)
class CallSiteContext:
    """Everything one rule evaluation may consult, fixed for its duration.

    The state is derived on first access so that calls rejected by the
    call-site filter never pay for guard collection.
    """
    call_token: Any
    host: "AnalysisHost"

    @cached_property
    def state(self) -> SymState:
        return self.host.state_builder.build(self.call_token)

    @property
    def oracle(self) -> ConstraintOracle:
        return self.host.oracle

    def value_of(self, tok: Any) -> SymExpr:
        return self.state.value_of(_tok_id(tok))

    def generate_error_node(self, state: Optional[SymState] = None) -> Optional[TerminalMarker]:
        return self.host.generate_error_node(self.call_token, state or self.state)

    def emit_report(self, identity: Any, message: str, category: str,
                    source_range: SourceRange) -> None:
        self.host.emit_report(identity, message, category, source_range)


class AnalysisHost:
    """Drives registered pre-call callbacks over one Cppcheck configuration.

    Parameters
    ----------
    cfg    : cppcheckdata.Configuration
    oracle : constraint oracle answering comparisons and splits
    sink   : where findings go
    """

    def __init__(self, cfg: Any, oracle: ConstraintOracle, sink: DiagnosticSink) -> None:
        self.cfg = cfg
        self.oracle = oracle
        self.sink = sink
        self.state_builder = PathStateBuilder(cfg)
        self._pre_call: List[PreCallCallback] = []
        self.calls_visited = 0

    def register_pre_call(self, callback: PreCallCallback) -> None:
        self._pre_call.append(callback)

    def run(self) -> None:
        for tok in getattr(self.cfg, "tokenlist", []) or []:
            if not is_call_expression(tok):
                continue
            self.calls_visited += 1
            ctx = CallSiteContext(tok, self)
            for callback in self._pre_call:
                callback(tok, ctx)

    def generate_error_node(self, call_tok: Any, state: SymState) -> Optional[TerminalMarker]:
        if not self.oracle.is_feasible(state):
            return None
        return TerminalMarker(call_tok, state)

    def emit_report(self, identity: Any, message: str, category: str,
                    source_range: SourceRange) -> None:
        self.sink.emit_report(identity, message, category, source_range)


def is_call_expression(tok: Any) -> bool:
    """``(`` token of a function call expression (not a cast or keyword)."""
    if _tok_str(tok) != "(" or getattr(tok, "isCast", False):
        return False
    callee = getattr(tok, "astOperand1", None)
    if callee is None:
        return False
    prev = getattr(tok, "previous", None)
    if not getattr(prev, "isName", False):
        return False
    return _tok_str(prev) not in _KEYWORD_CALLS and _tok_str(callee) not in _KEYWORD_CALLS
