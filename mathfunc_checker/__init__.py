"""
mathfunc_checker — pow()/sqrt() argument checks for Cppcheck dumps
==================================================================

A Cppcheck addon that inspects every call to ``pow`` and ``sqrt`` and
flags arguments that violate, or may violate, the functions'
mathematical preconditions: a negative square-root input, a pole
(``pow(0, y)`` with ``y < 0``) or a domain error (negative base with a
non-integer exponent).  Value constraints along the path to the call
are collected from the surrounding code and decided with Z3.

Core modules
------------
call_filter
    Which call expressions are in scope.
classifier
    Tri-state comparison of an argument against 0 and 1.
splitter
    Dual-assumption split of an argument's truth value.
rules
    Ordered decision tables for ``sqrt`` and ``pow``.
reporter
    Violation kinds and their immutable identity registry.
host
    Path states, call-site contexts and the analysis host over a dump.
solver
    Z3-backed constraint oracle.
checkers
    Checker framework, runner and addon entry point.

Quick start
-----------
::

    cppcheck --dump file.c
    python -m mathfunc_checker file.c.dump --output gcc

Package layout
--------------
::

    mathfunc_checker/
    ├── __init__.py            ← this file
    ├── __main__.py
    ├── call_filter.py
    ├── checkers.py
    ├── classifier.py
    ├── errors.py
    ├── host.py
    ├── reporter.py
    ├── rules.py
    ├── solver.py
    ├── splitter.py
    ├── symbolic.py
    └── value_types.py
"""

from __future__ import annotations

import logging
from typing import List

# ---------------------------------------------------------------------------
# Package metadata
# ---------------------------------------------------------------------------

__version__ = "0.1.0"
__author__ = "cppcheck-mathfunc-checker contributors"
__license__ = "MIT"

logging.getLogger(__name__).addHandler(logging.NullHandler())

from .call_filter import TRACKED_FUNCTIONS, CallSite, TrackedFunction, match_call_site  # noqa: E402
from .checkers import (  # noqa: E402
    CheckerRunner,
    CheckerRunResults,
    Diagnostic,
    MathFuncParamChecker,
    run_addon,
)
from .errors import ConfigurationError, DumpFileError, MathCheckError  # noqa: E402
from .reporter import KIND_REGISTRY, KindIdentity, ViolationKind, ViolationRecord  # noqa: E402
from .rules import RuleEngine  # noqa: E402
from .solver import SplitOutcome, Tri, Z3ConstraintOracle  # noqa: E402

__all__: List[str] = [
    "__version__",
    "TRACKED_FUNCTIONS",
    "CallSite",
    "TrackedFunction",
    "match_call_site",
    "CheckerRunner",
    "CheckerRunResults",
    "Diagnostic",
    "MathFuncParamChecker",
    "run_addon",
    "ConfigurationError",
    "DumpFileError",
    "MathCheckError",
    "KIND_REGISTRY",
    "KindIdentity",
    "ViolationKind",
    "ViolationRecord",
    "RuleEngine",
    "SplitOutcome",
    "Tri",
    "Z3ConstraintOracle",
]
