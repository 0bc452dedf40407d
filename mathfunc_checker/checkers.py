"""
mathfunc_checker/checkers.py
════════════════════════════

Checker framework and Cppcheck addon entry point.

This is the "last mile" module: it runs the math-function rules over
the configurations of a ``cppcheck --dump`` file and turns their
reports into CWE-tagged, cppcheck-addon-compatible diagnostics.

Architecture
────────────

  ┌─────────────────────────────────────────────────────────┐
  │                    CheckerRunner                        │
  │  ┌───────────────────────────────────────────────────┐  │
  │  │              MathFuncParamChecker                 │  │
  │  │   AnalysisHost ──▶ RuleEngine ──▶ Reporter        │  │
  │  │        │               │             │            │  │
  │  │   PathStateBuilder  Z3ConstraintOracle  sink      │  │
  │  └──────────────────────────┬────────────────────────┘  │
  │                             │                           │
  │  ┌──────────────────────────▼────────────────────────┐  │
  │  │           SuppressionManager                      │  │
  │  │  // cppcheck-suppress  │  file-level  │  global   │  │
  │  └──────────────────────────┬────────────────────────┘  │
  │                             │                           │
  │  ┌──────────────────────────▼────────────────────────┐  │
  │  │   Diagnostic Formatter (JSON / GCC / summary)     │  │
  │  └───────────────────────────────────────────────────┘  │
  └─────────────────────────────────────────────────────────┘

Each Checker follows a four-phase lifecycle:

  1. **configure()**        — read options, build the oracle
  2. **collect_evidence()** — walk call sites, gather reports
  3. **diagnose()**         — turn reports into diagnostics
  4. **report()**           — emit Diagnostics (filtered by suppressions)

Usage as a Cppcheck addon::

    cppcheck --dump file.c
    python -m mathfunc_checker file.c.dump
"""

from __future__ import annotations

import json
import logging
import os
import sys
import time
from abc import ABC, abstractmethod
from collections import defaultdict
from dataclasses import dataclass, field
from enum import Enum, auto
from fnmatch import fnmatch
from typing import (
    Any,
    ClassVar,
    Dict,
    FrozenSet,
    Iterable,
    List,
    Optional,
    Sequence,
    Set,
    Tuple,
    Type,
)

from termcolor import colored

from . import __version__
from .errors import ConfigurationError, DumpFileError
from .host import AnalysisHost, CallSiteContext, SourceLocation, SourceRange
from .reporter import KIND_REGISTRY, KindIdentity
from .rules import RuleEngine
from .solver import DEFAULT_TIMEOUT_MS, Z3Backend, Z3ConstraintOracle

logger = logging.getLogger(__name__)

ADDON_NAME = "mathfunc"


# ═════════════════════════════════════════════════════════════════════════
#  PART 1 — DIAGNOSTIC MODEL
# ═════════════════════════════════════════════════════════════════════════

class DiagnosticSeverity(Enum):
    """cppcheck-compatible severity levels."""
    ERROR = "error"
    WARNING = "warning"
    STYLE = "style"
    PERFORMANCE = "performance"
    PORTABILITY = "portability"
    INFORMATION = "information"


_SEVERITY_COLORS = {
    DiagnosticSeverity.ERROR: "red",
    DiagnosticSeverity.WARNING: "yellow",
    DiagnosticSeverity.INFORMATION: "cyan",
}


class Confidence(Enum):
    """
    How certain we are that the diagnostic is a true positive.

    HIGH   — the violation is proven under the path condition
    MEDIUM — the violating value is reachable but not forced
    """
    HIGH = auto()
    MEDIUM = auto()


@dataclass(frozen=True)
class Diagnostic:
    """
    A single diagnostic finding.

    Designed for direct serialization to cppcheck's JSON addon protocol.

    Attributes
    ----------
    error_id     : Unique identifier (e.g., "sqrtNegativeArgument")
    message      : Human-readable description
    severity     : DiagnosticSeverity
    location     : Primary source location
    confidence   : Confidence level
    cwe          : CWE identifier (0 = none)
    checker_name : Name of the checker that produced this
    addon        : Addon name for cppcheck protocol
    extra        : Category label
    """
    error_id: str
    message: str
    severity: DiagnosticSeverity
    location: SourceLocation
    confidence: Confidence = Confidence.MEDIUM
    cwe: int = 0
    checker_name: str = ""
    addon: str = ADDON_NAME
    extra: str = ""

    def to_cppcheck_json(self) -> Dict[str, Any]:
        """Serialize to cppcheck's JSON addon output format."""
        result: Dict[str, Any] = {
            "file": self.location.file,
            "linenr": self.location.line,
            "column": self.location.column,
            "severity": self.severity.value,
            "message": self.message,
            "addon": self.addon,
            "errorId": self.error_id,
            "extra": self.extra,
        }
        if self.cwe:
            result["cwe"] = self.cwe
        return result

    def to_json_str(self) -> str:
        """Single-line JSON string for cppcheck addon stdout."""
        return json.dumps(self.to_cppcheck_json())

    def to_gcc_format(self, color: bool = False) -> str:
        """GCC-style diagnostic string: file:line:col: severity: message."""
        sev = self.severity.value
        if color:
            sev = colored(sev, _SEVERITY_COLORS.get(self.severity), attrs=["bold"])
        return f"{self.location}: {sev}: {self.message} [{self.error_id}]"


# ═════════════════════════════════════════════════════════════════════════
#  PART 2 — SUPPRESSION MANAGER
# ═════════════════════════════════════════════════════════════════════════

class SuppressionManager:
    """
    Manages diagnostic suppressions from multiple sources.

    Sources:
      1. Inline comments:  ``// cppcheck-suppress errorId``
         (cppcheck records these in the dump's ``<suppressions>``)
      2. File-level suppressions (passed programmatically)
      3. Global suppressions (command-line)

    Usage
    -----
    >>> sm = SuppressionManager()
    >>> sm.load_inline_suppressions(cfg)
    >>> sm.add_file_suppression("sqrtMaybeNegative", "legacy/*.c")
    >>> sm.add_global_suppression("powArgYUndefined")
    >>> if not sm.is_suppressed(diagnostic):
    ...     emit(diagnostic)
    """

    def __init__(self) -> None:
        # {(file, line)} → set of error_ids suppressed at that location
        self._inline: Dict[Tuple[str, int], Set[str]] = defaultdict(set)
        # file pattern → set of error_ids
        self._file_level: Dict[str, Set[str]] = defaultdict(set)
        self._global: Set[str] = set()

    def load_inline_suppressions(self, source: Any) -> None:
        """Read the suppressions cppcheck parsed into the dump."""
        for supp in getattr(source, "suppressions", None) or []:
            error_id = getattr(supp, "errorId", None)
            file = getattr(supp, "fileName", "") or ""
            line = int(getattr(supp, "lineNumber", 0) or 0)
            if not error_id:
                continue
            if file and line:
                self._inline[(file, line)].add(error_id)
            elif file:
                self._file_level[file].add(error_id)
            else:
                self._global.add(error_id)

    def add_file_suppression(self, error_id: str, file_pattern: str) -> None:
        """Suppress ``error_id`` in files matching ``file_pattern``."""
        self._file_level[file_pattern].add(error_id)

    def add_global_suppression(self, error_id: str) -> None:
        """Globally suppress ``error_id``."""
        self._global.add(error_id)

    def is_suppressed(self, diag: Diagnostic) -> bool:
        eid = diag.error_id
        if eid in self._global or "*" in self._global:
            return True

        loc = diag.location

        # exact line, or the line before for a preceding-line comment
        for line_offset in (0, 1):
            suppressed_ids = self._inline.get((loc.file, loc.line - line_offset), set())
            if eid in suppressed_ids or "*" in suppressed_ids:
                return True

        for pattern, ids in self._file_level.items():
            if eid not in ids and "*" not in ids:
                continue
            if pattern == loc.file or loc.file.endswith(pattern) or fnmatch(loc.file, pattern):
                return True

        return False

    def filter_diagnostics(
        self, diagnostics: Iterable[Diagnostic]
    ) -> List[Diagnostic]:
        """Return only non-suppressed diagnostics."""
        return [d for d in diagnostics if not self.is_suppressed(d)]


# ═════════════════════════════════════════════════════════════════════════
#  PART 3 — CHECKER BASE CLASS
# ═════════════════════════════════════════════════════════════════════════

class Checker(ABC):
    """
    Abstract base class for all checkers.

    Lifecycle
    ─────────
      1. ``configure(ctx)``        — receive context, declare needs
      2. ``collect_evidence(ctx)`` — run or consume analyses
      3. ``diagnose(ctx)``         — correlate evidence into diagnostics
      4. ``report(ctx)``           — yield final diagnostics

    Subclass Contract
    ─────────────────
      - Override ``name``, ``description``, ``error_ids``
      - Implement ``collect_evidence()`` and ``diagnose()``
      - Optionally override ``configure()`` and ``should_register()``
    """

    name: ClassVar[str] = "base-checker"
    description: ClassVar[str] = ""
    error_ids: ClassVar[FrozenSet[str]] = frozenset()
    default_severity: ClassVar[DiagnosticSeverity] = DiagnosticSeverity.WARNING
    cwe_ids: ClassVar[Dict[str, int]] = {}  # error_id → CWE number

    def __init__(self) -> None:
        self._diagnostics: List[Diagnostic] = []

    @classmethod
    def should_register(cls) -> bool:
        """Whether the registry should offer this checker at all."""
        return True

    @property
    def diagnostics(self) -> List[Diagnostic]:
        return list(self._diagnostics)

    def configure(self, ctx: CheckerContext) -> None:
        """Called before evidence collection.  Default does nothing."""

    @abstractmethod
    def collect_evidence(self, ctx: CheckerContext) -> None:
        ...

    @abstractmethod
    def diagnose(self, ctx: CheckerContext) -> None:
        """Append diagnostics to ``self._diagnostics``."""
        ...

    def report(self, ctx: CheckerContext) -> List[Diagnostic]:
        """Return final diagnostics, filtered by suppressions."""
        return ctx.suppressions.filter_diagnostics(self._diagnostics)

    def _emit(
        self,
        error_id: str,
        message: str,
        location: SourceLocation,
        severity: Optional[DiagnosticSeverity] = None,
        confidence: Confidence = Confidence.MEDIUM,
        extra: str = "",
    ) -> None:
        """Helper to create and store a diagnostic."""
        self._diagnostics.append(Diagnostic(
            error_id=error_id,
            message=message,
            severity=severity or self.default_severity,
            location=location,
            confidence=confidence,
            cwe=self.cwe_ids.get(error_id, 0),
            checker_name=self.name,
            extra=extra,
        ))

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} '{self.name}'>"


@dataclass
class CheckerContext:
    """
    Shared context passed to every checker during execution.

    Attributes
    ----------
    cfg          : cppcheckdata.Configuration
    suppressions : SuppressionManager
    options      : user-provided options dict (``solver_timeout_ms``)
    stats        : mutable dict for timing / counting statistics
    """
    cfg: Any
    suppressions: SuppressionManager = field(default_factory=SuppressionManager)
    options: Dict[str, Any] = field(default_factory=dict)
    stats: Dict[str, Any] = field(default_factory=dict)

    def get_option(self, key: str, default: Any = None) -> Any:
        return self.options.get(key, default)

    @property
    def solver_timeout_ms(self) -> int:
        raw = self.get_option("solver_timeout_ms", DEFAULT_TIMEOUT_MS)
        try:
            value = int(raw)
        except (TypeError, ValueError):
            raise ConfigurationError(f"solver_timeout_ms must be an integer, got {raw!r}")
        if value <= 0:
            raise ConfigurationError(f"solver_timeout_ms must be positive, got {value}")
        return value


# ═════════════════════════════════════════════════════════════════════════
#  PART 4 — CHECKER REGISTRY
# ═════════════════════════════════════════════════════════════════════════

class CheckerRegistry:
    """
    Registry of available checkers with discovery and filtering.

    Usage
    -----
    >>> registry = CheckerRegistry()
    >>> registry.register(MathFuncParamChecker)
    >>> checkers = registry.get_enabled()
    >>> checkers = registry.filter_by_error_id("powPoleError")
    """

    def __init__(self) -> None:
        self._checkers: Dict[str, Type[Checker]] = {}
        self._disabled: Set[str] = set()

    def register(self, checker_cls: Type[Checker]) -> None:
        """Register a checker class unless it declines registration."""
        if not checker_cls.should_register():
            logger.debug("checker '%s' declined registration", checker_cls.name)
            return
        self._checkers[checker_cls.name] = checker_cls

    def disable(self, name: str) -> None:
        self._disabled.add(name)

    def enable(self, name: str) -> None:
        self._disabled.discard(name)

    def get_enabled(self) -> List[Type[Checker]]:
        """Return only enabled checker classes."""
        return [
            cls for name, cls in self._checkers.items()
            if name not in self._disabled
        ]

    def get_by_name(self, name: str) -> Optional[Type[Checker]]:
        return self._checkers.get(name)

    def filter_by_error_id(self, error_id: str) -> List[Type[Checker]]:
        """Return checkers that can produce the given error_id."""
        return [
            cls for cls in self._checkers.values()
            if error_id in cls.error_ids
        ]

    @property
    def names(self) -> List[str]:
        return sorted(self._checkers.keys())


# ═════════════════════════════════════════════════════════════════════════
#  PART 5 — MATH FUNCTION PARAMETER CHECKER
# ═════════════════════════════════════════════════════════════════════════

class MathFuncParamChecker(Checker):
    """
    Detects ``sqrt`` and ``pow`` calls whose arguments may violate the
    functions' domain.

    Registers one pre-call callback with the analysis host; the host
    derives each call's path state and the rule engine decides.  This
    class is also the host's diagnostic sink, and it keeps one report
    per (errorId, location).

    CWE-682: Incorrect Calculation (domain errors)
    CWE-369: Divide By Zero (pow pole error)
    """

    name: ClassVar[str] = "math-func-params"
    description: ClassVar[str] = "Domain/pole errors in pow() and sqrt() arguments"
    error_ids: ClassVar[FrozenSet[str]] = frozenset(
        identity.error_id for identity in KIND_REGISTRY.values()
    )
    default_severity: ClassVar[DiagnosticSeverity] = DiagnosticSeverity.WARNING
    cwe_ids: ClassVar[Dict[str, int]] = {
        identity.error_id: identity.cwe for identity in KIND_REGISTRY.values()
    }

    def __init__(self) -> None:
        super().__init__()
        self._engine = RuleEngine()
        self._oracle: Optional[Z3ConstraintOracle] = None
        self._reports: List[Tuple[KindIdentity, str, str, SourceRange]] = []
        self._seen: Set[Tuple[str, SourceLocation]] = set()

    def configure(self, ctx: CheckerContext) -> None:
        self._oracle = Z3ConstraintOracle(Z3Backend(timeout_ms=ctx.solver_timeout_ms))

    def collect_evidence(self, ctx: CheckerContext) -> None:
        if self._oracle is None:
            self.configure(ctx)
        host = AnalysisHost(ctx.cfg, self._oracle, sink=self)
        host.register_pre_call(self.check_pre_call)
        host.run()
        ctx.stats[f"{self.name}_calls"] = ctx.stats.get(f"{self.name}_calls", 0) + host.calls_visited

    def check_pre_call(self, call_tok: Any, call_ctx: CallSiteContext) -> None:
        self._engine.check(call_tok, call_ctx)

    # ── DiagnosticSink ───────────────────────────────────────────────

    def emit_report(self, identity: KindIdentity, message: str, category: str,
                    source_range: SourceRange) -> None:
        key = (identity.error_id, source_range.begin)
        if key in self._seen:
            return
        self._seen.add(key)
        self._reports.append((identity, message, category, source_range))

    def diagnose(self, ctx: CheckerContext) -> None:
        for identity, message, category, source_range in self._reports:
            self._emit(
                error_id=identity.error_id,
                message=message,
                location=source_range.begin,
                severity=DiagnosticSeverity.ERROR if identity.definite else DiagnosticSeverity.WARNING,
                confidence=Confidence.HIGH if identity.definite else Confidence.MEDIUM,
                extra=category,
            )


# ═════════════════════════════════════════════════════════════════════════
#  PART 6 — CHECKER RUNNER
# ═════════════════════════════════════════════════════════════════════════

_DEFAULT_REGISTRY = CheckerRegistry()
_DEFAULT_REGISTRY.register(MathFuncParamChecker)


@dataclass
class CheckerRunResults:
    """
    Aggregate results from running a suite of checkers.

    Attributes
    ----------
    diagnostics            : All diagnostics from all checkers
    diagnostics_by_checker : Diagnostics grouped by checker name
    stats                  : Timing and counting statistics
    checker_names          : Names of checkers that were run
    """
    diagnostics: List[Diagnostic] = field(default_factory=list)
    diagnostics_by_checker: Dict[str, List[Diagnostic]] = field(
        default_factory=lambda: defaultdict(list)
    )
    stats: Dict[str, Any] = field(default_factory=dict)
    checker_names: List[str] = field(default_factory=list)

    @property
    def error_count(self) -> int:
        return sum(
            1 for d in self.diagnostics
            if d.severity == DiagnosticSeverity.ERROR
        )

    @property
    def warning_count(self) -> int:
        return sum(
            1 for d in self.diagnostics
            if d.severity == DiagnosticSeverity.WARNING
        )

    @property
    def total_count(self) -> int:
        return len(self.diagnostics)

    def by_error_id(self, error_id: str) -> List[Diagnostic]:
        return [d for d in self.diagnostics if d.error_id == error_id]

    def to_json_lines(self) -> str:
        """Format all diagnostics as cppcheck JSON addon output."""
        return "\n".join(d.to_json_str() for d in self.diagnostics)

    def to_gcc_format(self, color: bool = False) -> str:
        return "\n".join(d.to_gcc_format(color=color) for d in self.diagnostics)

    def summary(self, color: bool = False) -> str:
        """Human-readable summary."""
        errors = f"{self.error_count} errors"
        warnings = f"{self.warning_count} warnings"
        if color:
            errors = colored(errors, "red" if self.error_count else "green")
            warnings = colored(warnings, "yellow" if self.warning_count else "green")
        lines = [
            f"Checker run complete: {self.total_count} diagnostics "
            f"({errors}, {warnings})",
        ]
        for name in self.checker_names:
            count = len(self.diagnostics_by_checker.get(name, []))
            elapsed = self.stats.get(f"{name}_elapsed_ms", 0)
            lines.append(f"  {name}: {count} findings ({elapsed:.1f}ms)")
        return "\n".join(lines)


class CheckerRunner:
    """
    Runs a suite of checkers against a cppcheck Configuration.

    Usage
    -----
    >>> runner = CheckerRunner(options={"solver_timeout_ms": 500})
    >>> results = runner.run(cfg)
    >>> print(results.summary())

    Parameters for constructor
    ─────────────────────────
    registry    : CheckerRegistry — source of checker classes
    suppressions: SuppressionManager — pre-loaded suppression rules
    options     : dict — checker configuration
    """

    def __init__(
        self,
        registry: Optional[CheckerRegistry] = None,
        suppressions: Optional[SuppressionManager] = None,
        options: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.registry = registry or _DEFAULT_REGISTRY
        self.suppressions = suppressions or SuppressionManager()
        self.options = options or {}

    def run(
        self,
        cfg: Any,
        checkers: Optional[Sequence[str]] = None,
    ) -> CheckerRunResults:
        """
        Run checkers against a single Configuration.

        Parameters
        ----------
        cfg      : cppcheckdata.Configuration
        checkers : list of checker names to run (None = all enabled)
        """
        results = CheckerRunResults()

        ctx = CheckerContext(
            cfg=cfg,
            suppressions=self.suppressions,
            options=self.options,
        )

        if checkers is not None:
            checker_classes: List[Type[Checker]] = []
            for name in checkers:
                cls = self.registry.get_by_name(name)
                if cls is None:
                    logger.warning("unknown checker '%s' ignored", name)
                    continue
                checker_classes.append(cls)
        else:
            checker_classes = self.registry.get_enabled()

        for cls in checker_classes:
            checker = cls()
            checker_name = cls.name
            results.checker_names.append(checker_name)

            t0 = time.monotonic()
            try:
                checker.configure(ctx)
                checker.collect_evidence(ctx)
                checker.diagnose(ctx)
                diags = checker.report(ctx)
            except Exception as exc:
                # Graceful degradation: report the failure, don't crash
                logger.exception("checker '%s' failed", checker_name)
                diags = [Diagnostic(
                    error_id="checkerInternalError",
                    message=f"Checker '{checker_name}' failed: {exc}",
                    severity=DiagnosticSeverity.INFORMATION,
                    location=SourceLocation(),
                    checker_name=checker_name,
                )]
            elapsed_ms = (time.monotonic() - t0) * 1000.0

            results.diagnostics.extend(diags)
            results.diagnostics_by_checker[checker_name] = diags
            results.stats[f"{checker_name}_elapsed_ms"] = elapsed_ms
            logger.info("%s: %d findings in %.1fms", checker_name, len(diags), elapsed_ms)

        results.stats.update(ctx.stats)
        return results

    def run_all_configurations(
        self,
        data: Any,
        checkers: Optional[Sequence[str]] = None,
    ) -> CheckerRunResults:
        """
        Run checkers across all configurations in a CppcheckData dump.

        Parameters
        ----------
        data     : cppcheckdata.CppcheckData (result of parsedump())
        checkers : list of checker names (None = all enabled)
        """
        self.suppressions.load_inline_suppressions(data)
        combined = CheckerRunResults()
        for cfg in getattr(data, "configurations", None) or []:
            partial = self.run(cfg, checkers=checkers)
            combined.diagnostics.extend(partial.diagnostics)
            for name, diags in partial.diagnostics_by_checker.items():
                combined.diagnostics_by_checker[name].extend(diags)
            for key, val in partial.stats.items():
                combined.stats[key] = combined.stats.get(key, 0) + val
            for name in partial.checker_names:
                if name not in combined.checker_names:
                    combined.checker_names.append(name)
        return combined


# ═════════════════════════════════════════════════════════════════════════
#  PART 7 — CONVENIENCE ENTRY POINT FOR CPPCHECK ADDONS
# ═════════════════════════════════════════════════════════════════════════

def load_dump(dump_file: str) -> Any:
    """Parse a dump file with Cppcheck's own ``cppcheckdata`` module."""
    from cppcheckdata import parsedump  # type: ignore[import-untyped]

    if not os.path.isfile(dump_file):
        raise DumpFileError(f"dump file not found: {dump_file}")
    return parsedump(dump_file)


def run_addon(
    dump_file: str,
    checkers: Optional[Sequence[str]] = None,
    output: str = "json",
    suppress: Optional[Sequence[str]] = None,
    solver_timeout_ms: int = DEFAULT_TIMEOUT_MS,
) -> int:
    """
    Run the checker suite as a cppcheck addon entry point.

    Parameters
    ----------
    dump_file         : Path to the .dump file from ``cppcheck --dump``
    checkers          : Checker names to run (None = all)
    output            : "json" for cppcheck protocol, "gcc" for GCC-style,
                        "summary" for counts only
    suppress          : Error IDs to globally suppress
    solver_timeout_ms : Per-query Z3 timeout

    Returns
    -------
    Exit code (0 = no errors, 1 = errors found or no dump file,
    2 = cppcheckdata not importable)
    """
    try:
        data = load_dump(dump_file)
    except ImportError:
        sys.stderr.write("ERROR: cppcheckdata module not found "
                         "(add <cppcheck>/addons to PYTHONPATH)\n")
        return 2
    except DumpFileError as exc:
        sys.stderr.write(f"ERROR: {exc}\n")
        return 1

    sm = SuppressionManager()
    for eid in suppress or ():
        sm.add_global_suppression(eid)

    runner = CheckerRunner(suppressions=sm, options={"solver_timeout_ms": solver_timeout_ms})
    results = runner.run_all_configurations(data, checkers=checkers)

    color = sys.stdout.isatty()
    if output == "json":
        text = results.to_json_lines()
    elif output == "gcc":
        text = results.to_gcc_format(color=color)
    else:
        text = results.summary(color=color)
    if text:
        sys.stdout.write(text + "\n")

    return 1 if results.error_count > 0 else 0


# ═════════════════════════════════════════════════════════════════════════
#  PART 8 — MODULE MAIN (addon entry point)
# ═════════════════════════════════════════════════════════════════════════

def build_parser():
    import argparse

    parser = argparse.ArgumentParser(
        description="Domain and pole error checks for pow() and sqrt() calls",
        prog="mathfunc-check",
    )
    parser.add_argument("dump_file", nargs="?", help="Path to .dump file")
    parser.add_argument(
        "--checkers", nargs="*", default=None,
        help="Checker names to run (default: all)",
    )
    parser.add_argument(
        "--output", choices=["json", "gcc", "summary"],
        default="json", help="Output format",
    )
    parser.add_argument(
        "--suppress", nargs="*", default=None,
        help="Error IDs to suppress",
    )
    parser.add_argument(
        "--solver-timeout", type=int, default=DEFAULT_TIMEOUT_MS, metavar="MS",
        help="Per-query Z3 timeout in milliseconds (default: %(default)s)",
    )
    parser.add_argument(
        "--list-checkers", action="store_true",
        help="List available checkers and exit",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def list_checkers(registry: CheckerRegistry = _DEFAULT_REGISTRY) -> str:
    lines: List[str] = []
    for name in registry.names:
        cls = registry.get_by_name(name)
        ids = ", ".join(sorted(cls.error_ids))
        cwes = ", ".join(f"CWE-{v}" for v in sorted(set(cls.cwe_ids.values())))
        lines.append(f"  {name:25s} {cls.description}")
        lines.append(f"  {'':25s} IDs: {ids}")
        lines.append(f"  {'':25s} CWEs: {cwes}")
        lines.append("")
    return "\n".join(lines)


def _main(argv: Optional[Sequence[str]] = None) -> None:
    """CLI entry point for ``python -m mathfunc_checker``."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        stream=sys.stderr,
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.list_checkers:
        sys.stdout.write(list_checkers() + "\n")
        return

    if not args.dump_file:
        parser.error("the following arguments are required: dump_file")
    if args.solver_timeout <= 0:
        parser.error("--solver-timeout must be positive")

    exit_code = run_addon(
        dump_file=args.dump_file,
        checkers=args.checkers,
        output=args.output,
        suppress=args.suppress,
        solver_timeout_ms=args.solver_timeout,
    )
    sys.exit(exit_code)


if __name__ == "__main__":
    _main()


__all__ = [
    "Diagnostic",
    "DiagnosticSeverity",
    "Confidence",
    "SuppressionManager",
    "Checker",
    "CheckerContext",
    "CheckerRegistry",
    "MathFuncParamChecker",
    "CheckerRunner",
    "CheckerRunResults",
    "load_dump",
    "run_addon",
]
