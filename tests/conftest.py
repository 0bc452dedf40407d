# tests/conftest.py
"""
Shared fixtures: mock cppcheckdata objects and a small builder that lays
out the token list, scopes and AST of C snippets the way
``cppcheck --dump`` does.

    snip = Snippet()
    x = snip.param("x", "double")
    with snip.if_((">=", x, 0)):
        call = snip.call_stmt("sqrt", x)
    cfg = snip.cfg()
"""

import itertools
from contextlib import contextmanager
from typing import Any, Dict, List

import pytest

from mathfunc_checker.solver import SplitOutcome, Tri
from mathfunc_checker.symbolic import SymState, SymUndefined, SymVar


# ═════════════════════════════════════════════════════════════════════════
#  MOCK CPPCHECKDATA OBJECTS
# ═════════════════════════════════════════════════════════════════════════

_ids = itertools.count(1)


class MockValueType:
    def __init__(self, type="int", sign="signed", pointer=0):
        self.type = type
        self.sign = sign if type not in ("float", "double", "long double", "bool") else None
        self.pointer = pointer


class MockValue:
    def __init__(self, intvalue=None, floatValue=None, valueKind="known", uninit=False):
        self.intvalue = intvalue
        self.floatValue = floatValue
        self.valueKind = valueKind
        self.uninit = uninit


class MockScope:
    def __init__(self, type, nestedIn=None, className=""):
        self.Id = str(next(_ids))
        self.type = type
        self.className = className
        self.nestedIn = nestedIn
        self.bodyStart = None
        self.bodyEnd = None


class MockFunction:
    def __init__(self, name, type="Function", nestedIn=None):
        self.Id = str(next(_ids))
        self.name = name
        self.type = type
        self.nestedIn = nestedIn


class MockVariable:
    def __init__(self, name, value_type):
        self.Id = str(next(_ids))
        self.name = name
        self.nameToken = MockToken(name, isName=True, valueType=value_type)
        self.nameToken.variable = self
        self.nameToken.varId = self.Id


class MockToken:
    def __init__(self, s, **kw):
        self.Id = str(next(_ids))
        self.str = s
        self.next = None
        self.previous = None
        self.link = None
        self.scope = None
        self.isName = False
        self.isNumber = False
        self.isCast = False
        self.isAssignmentOp = False
        self.varId = 0
        self.variable = None
        self.function = None
        self.valueType = None
        self.values = []
        self.astParent = None
        self.astOperand1 = None
        self.astOperand2 = None
        self.file = "test.c"
        self.linenr = 1
        self.column = 1
        for key, value in kw.items():
            setattr(self, key, value)

    def __repr__(self):
        return f"<MockToken {self.str!r} line {self.linenr}>"


class MockSuppression:
    def __init__(self, errorId, fileName="", lineNumber=0):
        self.errorId = errorId
        self.fileName = fileName
        self.lineNumber = lineNumber


class MockConfiguration:
    def __init__(self, tokenlist=None, scopes=None, functions=None, variables=None):
        self.tokenlist = tokenlist or []
        self.scopes = scopes or []
        self.functions = functions or []
        self.variables = variables or []


class MockDump:
    def __init__(self, configurations, suppressions=None):
        self.configurations = configurations
        self.suppressions = suppressions or []


# ═════════════════════════════════════════════════════════════════════════
#  SNIPPET BUILDER
# ═════════════════════════════════════════════════════════════════════════

_FLOAT_TYPES = ("float", "double", "long double")


class Snippet:
    """
    Builds the dump of a single function body.

    Expressions are nested tuples: ``(op, lhs, rhs)`` for binary
    operators, ``("-", operand)`` for unary minus, ``("call", name, args)``
    for nested calls.  Variables are :class:`MockVariable` objects,
    numbers are Python ints/floats or literal strings.
    """

    def __init__(self, name="f"):
        self.tokens: List[MockToken] = []
        self.global_scope = MockScope("Global")
        self.func_scope = MockScope("Function", nestedIn=self.global_scope)
        self.scopes: List[MockScope] = [self.global_scope, self.func_scope]
        self.variables: List[MockVariable] = []
        self.functions: Dict[str, MockFunction] = {}
        self._scope = self.global_scope
        self.line = 1
        self.column = 1

        self._tok("void", isName=True)
        self._tok(name, isName=True)
        self._tok("(")
        self._tok(")")
        self._open(self.func_scope)

    # ── low level ────────────────────────────────────────────────────

    def _tok(self, s, **kw) -> MockToken:
        tok = MockToken(s, linenr=self.line, column=self.column, scope=self._scope, **kw)
        if self.tokens:
            tok.previous = self.tokens[-1]
            self.tokens[-1].next = tok
        self.tokens.append(tok)
        self.column += len(s) + 1
        return tok

    def _newline(self):
        self.line += 1
        self.column = 1

    def _open(self, scope):
        brace = self._tok("{")
        scope.bodyStart = brace
        self._scope = scope
        brace.scope = scope
        self._newline()
        return brace

    def _close(self, scope):
        brace = self._tok("}")
        brace.scope = scope
        scope.bodyEnd = brace
        brace.link = scope.bodyStart
        scope.bodyStart.link = brace
        self._scope = scope.nestedIn
        self._newline()
        return brace

    # ── declarations ─────────────────────────────────────────────────

    def param(self, name, type="int", sign="signed", pointer=0) -> MockVariable:
        var = MockVariable(name, MockValueType(type, sign, pointer))
        self.variables.append(var)
        return var

    def declare_function(self, name, type="Function", nestedIn=None) -> MockFunction:
        func = MockFunction(name, type=type, nestedIn=nestedIn or self.global_scope)
        self.functions[name] = func
        return func

    # ── expressions ──────────────────────────────────────────────────

    def expr(self, node) -> MockToken:
        if isinstance(node, MockVariable):
            vt = node.nameToken.valueType
            return self._tok(node.name, isName=True, varId=node.Id, variable=node,
                             valueType=vt)
        if isinstance(node, bool):
            return self._tok("true" if node else "false", isName=True,
                             valueType=MockValueType("bool"))
        if isinstance(node, (int, float, str)):
            text = node if isinstance(node, str) else repr(node)
            is_float = isinstance(node, float) or any(c in text for c in ".eE")
            vt = MockValueType("double" if is_float else "int")
            return self._tok(text, isNumber=True, valueType=vt)
        if node[0] == "call":
            return self.call(node[1], *node[2])
        if node[0] == "cast":
            paren = self._tok("(", isCast=True, valueType=MockValueType(node[1]))
            self._tok(node[1], isName=True)
            close = self._tok(")")
            paren.link, close.link = close, paren
            inner = self.expr(node[2])
            self._link(paren, inner)
            return paren
        if len(node) == 2:
            op_tok = self._tok(node[0])
            inner = self.expr(node[1])
            self._link(op_tok, inner)
            op_tok.valueType = _result_type(node[0], inner, None)
            return op_tok
        op, lhs, rhs = node
        left = self.expr(lhs)
        op_tok = self._tok(op, isAssignmentOp=op in ("=", "+=", "-=", "*=", "/="))
        right = self.expr(rhs)
        self._link(op_tok, left, right)
        op_tok.valueType = _result_type(op, left, right)
        return op_tok

    @staticmethod
    def _link(parent, op1, op2=None):
        parent.astOperand1 = op1
        op1.astParent = parent
        if op2 is not None:
            parent.astOperand2 = op2
            op2.astParent = parent

    def call(self, name, *args, qualifier=None, result_type="double") -> MockToken:
        """Emit ``name(args...)`` and return its ``(`` token."""
        if qualifier is not None:
            if qualifier:
                self._tok(qualifier, isName=True)
            self._tok("::")
        name_tok = self._tok(name, isName=True, function=self.functions.get(name))
        paren = self._tok("(", valueType=MockValueType(result_type))
        tree = None
        for i, arg in enumerate(args):
            comma = self._tok(",") if i else None
            root = self.expr(arg)
            if comma is None:
                tree = root
            else:
                self._link(comma, tree, root)
                tree = comma
        close = self._tok(")")
        paren.link, close.link = close, paren
        self._link(paren, name_tok, tree)
        return paren

    # ── statements ───────────────────────────────────────────────────

    def call_stmt(self, name, *args, **kw) -> MockToken:
        paren = self.call(name, *args, **kw)
        self._tok(";")
        self._newline()
        return paren

    def assign(self, var, node) -> MockToken:
        tok = self.expr(("=", var, node))
        self._tok(";")
        self._newline()
        return tok

    def increment(self, var) -> MockToken:
        name = self.expr(var)
        op = self._tok("++")
        self._link(op, name)
        self._tok(";")
        self._newline()
        return op

    def return_(self):
        self._tok("return", isName=True)
        self._tok(";")
        self._newline()

    def jump(self, keyword, label=None):
        """``break;``, ``continue;`` or ``goto label;``."""
        self._tok(keyword, isName=True)
        if label is not None:
            self._tok(label, isName=True)
        self._tok(";")
        self._newline()

    def _condition(self, keyword, cond):
        kw_tok = self._tok(keyword, isName=True)
        paren = self._tok("(")
        root = self.expr(cond)
        close = self._tok(")")
        paren.link, close.link = close, paren
        self._link(paren, kw_tok, root)
        return root

    @contextmanager
    def if_(self, cond):
        scope = MockScope("If", nestedIn=self._scope)
        self.scopes.append(scope)
        self._condition("if", cond)
        self._open(scope)
        yield scope
        self._close(scope)

    @contextmanager
    def else_(self):
        scope = MockScope("Else", nestedIn=self._scope)
        self.scopes.append(scope)
        # the previous "}" and the "else" share a line in the usual layout
        self.line -= 1
        self._tok("else", isName=True)
        self._open(scope)
        yield scope
        self._close(scope)

    @contextmanager
    def while_(self, cond):
        scope = MockScope("While", nestedIn=self._scope)
        self.scopes.append(scope)
        self._condition("while", cond)
        self._open(scope)
        yield scope
        self._close(scope)

    @contextmanager
    def switch_(self, cond):
        scope = MockScope("Switch", nestedIn=self._scope)
        self.scopes.append(scope)
        self._condition("switch", cond)
        self._open(scope)
        yield scope
        self._close(scope)

    # ── result ───────────────────────────────────────────────────────

    def cfg(self) -> MockConfiguration:
        if self._scope is self.func_scope:
            self._close(self.func_scope)
        return MockConfiguration(
            tokenlist=self.tokens,
            scopes=self.scopes,
            functions=list(self.functions.values()),
            variables=self.variables,
        )


def _result_type(op, left, right):
    if op in ("<", "<=", ">", ">=", "==", "!=", "&&", "||", "!"):
        return MockValueType("bool")
    types = [t.valueType for t in (left, right) if t is not None and t.valueType]
    for vt in types:
        if vt.type in _FLOAT_TYPES:
            return MockValueType(vt.type)
    return types[0] if types else MockValueType("int")


def with_known_value(tok, intvalue=None, floatValue=None, uninit=False):
    tok.values = [MockValue(intvalue=intvalue, floatValue=floatValue, uninit=uninit)]
    return tok


# ═════════════════════════════════════════════════════════════════════════
#  STUB ORACLE / CONTEXT FOR TABLE-LEVEL TESTS
# ═════════════════════════════════════════════════════════════════════════

class StubOracle:
    """
    Answers every query from per-argument facts set by the test.

    Each argument token's symbolic value is ``SymVar("a<Id>")``; the
    facts are keyed by that name.
    """

    def __init__(self):
        self.facts: Dict[str, Dict[str, Any]] = {}
        self.feasible = True
        self.compare_calls: List[tuple] = []
        self.split_calls: List[str] = []

    def set(self, tok, arithmetic=True, integer=False, ge0=Tri.UNKNOWN, lt0=Tri.UNKNOWN,
            ge1=Tri.UNKNOWN, split=SplitOutcome.BOTH_REACHABLE):
        self.facts[f"a{tok.Id}"] = {
            "arithmetic": arithmetic,
            "integer": integer,
            (">=", 0): ge0,
            ("<", 0): lt0,
            (">=", 1): ge1,
            "split": split,
        }

    def _facts_for_token(self, tok):
        return self.facts[f"a{tok.Id}"]

    def is_arithmetic_type(self, token):
        return self._facts_for_token(token)["arithmetic"]

    def is_integer_type(self, token):
        return self._facts_for_token(token)["integer"]

    def compare(self, state, value, op, constant):
        if not value.is_defined:
            return Tri.UNKNOWN
        self.compare_calls.append((value.name, op, constant))
        return self.facts[value.name][(op, constant)]

    def split(self, state, value):
        self.split_calls.append(value.name)
        return self.facts[value.name]["split"]

    def is_feasible(self, state):
        return self.feasible


class StubContext:
    """Stands in for CallSiteContext when the oracle is a StubOracle."""

    def __init__(self, call_token, oracle, undefined=()):
        self.call_token = call_token
        self.oracle = oracle
        self.state = SymState()
        self.undefined = {t.Id for t in undefined}
        self.reports: List[tuple] = []

    def value_of(self, tok):
        if tok.Id in self.undefined:
            return SymUndefined(origin=tok.str)
        return SymVar(f"a{tok.Id}")

    def generate_error_node(self, state=None):
        if not self.oracle.is_feasible(state):
            return None
        return object()

    def emit_report(self, identity, message, category, source_range):
        self.reports.append((identity, message, category, source_range))


class RecordingSink:
    def __init__(self):
        self.reports: List[tuple] = []

    def emit_report(self, identity, message, category, source_range):
        self.reports.append((identity, message, category, source_range))

    @property
    def error_ids(self):
        return [r[0].error_id for r in self.reports]


@pytest.fixture
def snippet():
    return Snippet()


@pytest.fixture
def stub_oracle():
    return StubOracle()


@pytest.fixture
def sink():
    return RecordingSink()
