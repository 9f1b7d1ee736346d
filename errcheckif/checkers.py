"""
errcheckif/checkers.py
══════════════════════

From engine findings to reportable diagnostics.

Flow
────

    SourceUnit ──► CheckerRunner.run
                     │  for each registered checker class, a fresh instance:
                     │    configure         settle the AnalyzerConfig
                     │    collect_evidence  analyze_unit -> [Finding]
                     │    diagnose          Finding -> Diagnostic
                     │    report            drop what SuppressionManager silences
                     ▼
               CheckerRunResults ──► JSON lines │ gcc lines │ summary

Diagnostics use the field names of cppcheck's addon protocol, so the
JSON output can be consumed by the same tooling.  A checker that raises
is turned into a ``checkerInternalError`` diagnostic and the run goes on.
"""

from __future__ import annotations

import json
import logging
import threading
import time
from abc import ABC, abstractmethod
from collections import defaultdict
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from fnmatch import fnmatch
from typing import (
    Any,
    ClassVar,
    Collection,
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

from .analyzer import Finding, FindingKind, analyze_unit
from .ast_nodes import Loc, SourceUnit
from .config import AnalyzerConfig
from .resolver import AnnotatedResolver, BindingResolver

logger = logging.getLogger(__name__)

INTERNAL_ERROR_ID = "checkerInternalError"


# ═════════════════════════════════════════════════════════════════════════
#  PART 1 - DIAGNOSTICS
# ═════════════════════════════════════════════════════════════════════════

class DiagnosticSeverity(Enum):
    """Severity names as cppcheck spells them."""
    ERROR = "error"
    WARNING = "warning"
    STYLE = "style"
    INFORMATION = "information"


class Confidence(Enum):
    """
    HIGH   - the error value never reaches a variable
    MEDIUM - bound, but no check found where the scanner looks
    """
    HIGH = "high"
    MEDIUM = "medium"


@dataclass(frozen=True)
class SourceLocation:
    """Where a diagnostic points.  Column 0 means "whole line"."""
    file: str = ""
    line: int = 0
    column: int = 0

    @classmethod
    def from_loc(cls, loc: Loc) -> SourceLocation:
        return cls(loc.file, loc.line, loc.col)

    def __str__(self) -> str:
        parts = [self.file, str(self.line)]
        if self.column:
            parts.append(str(self.column))
        return ":".join(parts)


@dataclass(frozen=True)
class Diagnostic:
    """
    One reportable problem.

    Attributes
    ----------
    error_id     : stable identifier used for suppression ("errIgnored", ...)
    message      : text shown to the user
    severity     : DiagnosticSeverity
    location     : SourceLocation
    confidence   : Confidence
    cwe          : CWE number, 0 when none applies
    checker_name : producing checker
    addon        : addon name written to the JSON output
    extra        : callee of the offending call, when known
    symbol       : variable the diagnostic is about
    """
    error_id: str
    message: str
    severity: DiagnosticSeverity
    location: SourceLocation
    confidence: Confidence = Confidence.MEDIUM
    cwe: int = 0
    checker_name: str = ""
    addon: str = "errcheckif"
    extra: str = ""
    symbol: str = ""

    def to_json(self) -> Dict[str, Any]:
        """The cppcheck addon record plus ``confidence``, and ``symbol`` and
        ``cwe`` when set."""
        loc = self.location
        record: Dict[str, Any] = dict(
            file=loc.file,
            linenr=loc.line,
            column=loc.column,
            severity=self.severity.value,
            message=self.message,
            addon=self.addon,
            errorId=self.error_id,
            extra=self.extra,
            confidence=self.confidence.value,
        )
        if self.symbol:
            record["symbol"] = self.symbol
        if self.cwe:
            record["cwe"] = self.cwe
        return record

    def to_json_str(self) -> str:
        return json.dumps(self.to_json())

    def to_gcc_format(self) -> str:
        """``file:line[:col]: severity: message [errorId]``"""
        return f"{self.location}: {self.severity.value}: {self.message} [{self.error_id}]"


# ═════════════════════════════════════════════════════════════════════════
#  PART 2 - SUPPRESSIONS
# ═════════════════════════════════════════════════════════════════════════

def _covers(ids: Collection[str], error_id: str) -> bool:
    return error_id in ids or "*" in ids


def _path_matches(path: str, pattern: str) -> bool:
    return path == pattern or path.endswith("/" + pattern) or fnmatch(path, pattern)


class SuppressionManager:
    """
    Decides which diagnostics are silenced.

    An error id (or ``*`` for all of them) can be silenced everywhere, in
    files matching a path pattern, or at one line of one file.  Line
    suppressions come from the front-end and also cover the line that
    follows the marker.  A front-end suppression without a line silences
    the id in that unit only, matched by exact file name.

    >>> sm = SuppressionManager()
    >>> sm.add_global_suppression("errMergeNotChecked")
    >>> sm.add_file_suppression("errIgnored", "*/generated/*.go")
    >>> kept = sm.filter_diagnostics(results.diagnostics)
    """

    def __init__(self) -> None:
        self._everywhere: Set[str] = set()
        self._by_pattern: Dict[str, Set[str]] = defaultdict(set)
        self._by_unit: Dict[str, Set[str]] = defaultdict(set)
        self._by_line: Dict[Tuple[str, int], Set[str]] = defaultdict(set)
        self._lock = threading.Lock()

    def add_global_suppression(self, error_id: str) -> None:
        self._everywhere.add(error_id)

    def add_file_suppression(self, error_id: str, file_pattern: str) -> None:
        self._by_pattern[file_pattern].add(error_id)

    def load_inline_suppressions(self, unit: SourceUnit) -> None:
        with self._lock:
            for supp in unit.suppressions:
                if supp.line:
                    self._by_line[(unit.file, supp.line)].add(supp.error_id)
                else:
                    self._by_unit[unit.file].add(supp.error_id)

    def is_suppressed(self, diag: Diagnostic) -> bool:
        eid, loc = diag.error_id, diag.location
        if _covers(self._everywhere, eid):
            return True
        with self._lock:
            if _covers(self._by_unit.get(loc.file, ()), eid):
                return True
            for line in (loc.line, loc.line - 1):
                if _covers(self._by_line.get((loc.file, line), ()), eid):
                    return True
        return any(
            _covers(ids, eid) and _path_matches(loc.file, pattern)
            for pattern, ids in self._by_pattern.items()
        )

    def filter_diagnostics(self, diagnostics: Iterable[Diagnostic]) -> List[Diagnostic]:
        return [d for d in diagnostics if not self.is_suppressed(d)]


# ═════════════════════════════════════════════════════════════════════════
#  PART 3 - CHECKER BASE CLASS
# ═════════════════════════════════════════════════════════════════════════

@dataclass
class CheckerContext:
    """
    What a checker sees of the run.

    Attributes
    ----------
    unit         : source unit being checked
    resolver     : binding and type queries for ``unit``
    config       : run-wide analyzer policy
    suppressions : shared SuppressionManager
    options      : per-run overrides, keyed like AnalyzerConfig fields
    stats        : counters a checker may add to
    """
    unit: SourceUnit
    resolver: BindingResolver
    config: AnalyzerConfig = field(default_factory=AnalyzerConfig)
    suppressions: SuppressionManager = field(default_factory=SuppressionManager)
    options: Dict[str, Any] = field(default_factory=dict)
    stats: Dict[str, Any] = field(default_factory=dict)

    def get_option(self, key: str, default: Any = None) -> Any:
        return self.options.get(key, default)


class Checker(ABC):
    """
    A producer of diagnostics.

    The runner creates one instance per unit and calls ``configure``,
    ``collect_evidence``, ``diagnose`` and ``report`` in that order.
    Subclasses set ``name``, ``error_ids`` and ``cwe_ids`` and implement
    the two abstract phases; ``_emit`` records a diagnostic.
    """

    name: ClassVar[str] = "checker"
    description: ClassVar[str] = ""
    error_ids: ClassVar[FrozenSet[str]] = frozenset()
    cwe_ids: ClassVar[Dict[str, int]] = {}
    severity: ClassVar[DiagnosticSeverity] = DiagnosticSeverity.WARNING

    def __init__(self) -> None:
        self._emitted: List[Diagnostic] = []

    @property
    def diagnostics(self) -> List[Diagnostic]:
        return list(self._emitted)

    def configure(self, ctx: CheckerContext) -> None:
        pass

    @abstractmethod
    def collect_evidence(self, ctx: CheckerContext) -> None:
        ...

    @abstractmethod
    def diagnose(self, ctx: CheckerContext) -> None:
        ...

    def report(self, ctx: CheckerContext) -> List[Diagnostic]:
        return ctx.suppressions.filter_diagnostics(self._emitted)

    def _emit(self, error_id: str, message: str, loc: Loc, *,
              confidence: Confidence = Confidence.MEDIUM,
              extra: str = "", symbol: str = "") -> None:
        self._emitted.append(Diagnostic(
            error_id=error_id,
            message=message,
            severity=self.severity,
            location=SourceLocation.from_loc(loc),
            confidence=confidence,
            cwe=self.cwe_ids.get(error_id, 0),
            checker_name=self.name,
            extra=extra,
            symbol=symbol,
        ))


# ═════════════════════════════════════════════════════════════════════════
#  PART 4 - CHECKER REGISTRY
# ═════════════════════════════════════════════════════════════════════════

class CheckerRegistry:
    """Checker classes by name."""

    def __init__(self) -> None:
        self._classes: Dict[str, Type[Checker]] = {}

    def register(self, checker_cls: Type[Checker]) -> None:
        self._classes[checker_cls.name] = checker_cls

    def get_by_name(self, name: str) -> Optional[Type[Checker]]:
        return self._classes.get(name)

    def get_all(self) -> List[Type[Checker]]:
        return list(self._classes.values())

    @property
    def names(self) -> List[str]:
        return sorted(self._classes)


# ═════════════════════════════════════════════════════════════════════════
#  PART 5 - ERRCHECKIF CHECKER
# ═════════════════════════════════════════════════════════════════════════

_ERROR_IDS = {
    FindingKind.IGNORED: "errIgnored",
    FindingKind.UNCHECKED: "errNotChecked",
    FindingKind.MERGE_UNCHECKED: "errMergeNotChecked",
}


class ErrCheckIfChecker(Checker):
    """
    Reports error values that are discarded, or bound and then neither
    checked nor returned.

    Detects:
      - ``_ = f()`` / ``x, _ := g()`` where the discarded result is an error
      - ``err := f()`` with no ``if err != nil`` / ``return err`` following
      - ``err`` re-bound before the previous value was checked
      - if/else arms that both leave the same error pending

    CWE-391: Unchecked Error Condition
    CWE-252: Unchecked Return Value
    """

    name: ClassVar[str] = "errcheckif"
    description: ClassVar[str] = "Error values must be checked or propagated"
    error_ids: ClassVar[FrozenSet[str]] = frozenset(_ERROR_IDS.values())
    cwe_ids: ClassVar[Dict[str, int]] = {
        "errIgnored": 391,
        "errNotChecked": 252,
        "errMergeNotChecked": 252,
    }

    def __init__(self) -> None:
        super().__init__()
        self._config = AnalyzerConfig()
        self._findings: List[Finding] = []

    def configure(self, ctx: CheckerContext) -> None:
        self._config = ctx.config.with_options(ctx.options) if ctx.options else ctx.config
        for warning in self._config.validate():
            logger.warning("%s: %s", self.name, warning)

    def collect_evidence(self, ctx: CheckerContext) -> None:
        self._findings = analyze_unit(ctx.unit, ctx.resolver, self._config)
        key = f"{self.name}_findings"
        ctx.stats[key] = ctx.stats.get(key, 0) + len(self._findings)

    def diagnose(self, ctx: CheckerContext) -> None:
        for finding in self._findings:
            ignored = finding.kind is FindingKind.IGNORED
            self._emit(
                _ERROR_IDS[finding.kind],
                finding.message,
                finding.loc,
                confidence=Confidence.HIGH if ignored else Confidence.MEDIUM,
                extra=finding.callee,
                symbol=finding.name,
            )


_DEFAULT_REGISTRY = CheckerRegistry()
_DEFAULT_REGISTRY.register(ErrCheckIfChecker)


def default_registry() -> CheckerRegistry:
    return _DEFAULT_REGISTRY


# ═════════════════════════════════════════════════════════════════════════
#  PART 6 - RUNNER
# ═════════════════════════════════════════════════════════════════════════

@dataclass
class CheckerRunResults:
    """
    Diagnostics of one or more units, in unit order.

    Attributes
    ----------
    diagnostics            : everything reported, suppressions applied
    diagnostics_by_checker : the same, keyed by checker name
    stats                  : ``<checker>_elapsed_ms`` and checker counters
    checker_names          : checkers that ran, first-run order
    units                  : number of units covered
    """
    diagnostics: List[Diagnostic] = field(default_factory=list)
    diagnostics_by_checker: Dict[str, List[Diagnostic]] = field(
        default_factory=lambda: defaultdict(list)
    )
    stats: Dict[str, Any] = field(default_factory=dict)
    checker_names: List[str] = field(default_factory=list)
    units: int = 0

    @property
    def total_count(self) -> int:
        return len(self.diagnostics)

    def count(self, severity: DiagnosticSeverity) -> int:
        return sum(1 for d in self.diagnostics if d.severity is severity)

    def by_error_id(self, error_id: str) -> List[Diagnostic]:
        return [d for d in self.diagnostics if d.error_id == error_id]

    def add(self, checker_name: str, diags: List[Diagnostic]) -> None:
        if checker_name not in self.checker_names:
            self.checker_names.append(checker_name)
        self.diagnostics.extend(diags)
        self.diagnostics_by_checker[checker_name].extend(diags)

    def merge(self, other: CheckerRunResults) -> None:
        for name in other.checker_names:
            self.add(name, other.diagnostics_by_checker.get(name, []))
        for key, value in other.stats.items():
            self.stats[key] = self.stats.get(key, 0) + value
        self.units += other.units

    def to_json_lines(self) -> str:
        return "\n".join(d.to_json_str() for d in self.diagnostics)

    def to_gcc_format(self) -> str:
        return "\n".join(d.to_gcc_format() for d in self.diagnostics)

    def summary(self) -> str:
        lines = [f"{self.total_count} diagnostics in {self.units} units"]
        for severity in DiagnosticSeverity:
            n = self.count(severity)
            if n:
                lines.append(f"  {severity.value}: {n}")
        for name in self.checker_names:
            reported = len(self.diagnostics_by_checker.get(name, []))
            elapsed = self.stats.get(f"{name}_elapsed_ms", 0.0)
            lines.append(f"  [{name}] {reported} reported in {elapsed:.1f}ms")
        return "\n".join(lines)


class CheckerRunner:
    """
    Runs checkers over source units.

    >>> runner = CheckerRunner(config=AnalyzerConfig(jobs=4))
    >>> results = runner.run_units(units)
    >>> print(results.summary())

    Parameters
    ----------
    registry     : where checker classes are looked up (default registry
                   when omitted)
    suppressions : shared SuppressionManager; each unit's own
                   suppressions are loaded into it as the unit is run
    config       : analyzer policy handed to every checker
    options      : per-run overrides applied by each checker
    """

    def __init__(
        self,
        registry: Optional[CheckerRegistry] = None,
        suppressions: Optional[SuppressionManager] = None,
        config: Optional[AnalyzerConfig] = None,
        options: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.registry = registry or _DEFAULT_REGISTRY
        self.suppressions = suppressions or SuppressionManager()
        self.config = config or AnalyzerConfig()
        self.options = options or {}

    def _select(self, names: Optional[Sequence[str]]) -> List[Type[Checker]]:
        if names is None:
            return self.registry.get_all()
        selected = []
        for name in names:
            cls = self.registry.get_by_name(name)
            if cls is None:
                logger.warning("Unknown checker '%s' ignored", name)
            else:
                selected.append(cls)
        return selected

    def _run_checker(self, cls: Type[Checker], ctx: CheckerContext) -> List[Diagnostic]:
        checker = cls()
        try:
            checker.configure(ctx)
            checker.collect_evidence(ctx)
            checker.diagnose(ctx)
            return checker.report(ctx)
        except Exception as exc:
            logger.exception("Checker '%s' failed on %s", cls.name, ctx.unit.file)
            return [Diagnostic(
                error_id=INTERNAL_ERROR_ID,
                message=f"Checker '{cls.name}' failed: {exc}",
                severity=DiagnosticSeverity.INFORMATION,
                location=SourceLocation(file=ctx.unit.file),
                checker_name=cls.name,
            )]

    def run(
        self,
        unit: SourceUnit,
        checkers: Optional[Sequence[str]] = None,
        resolver: Optional[BindingResolver] = None,
    ) -> CheckerRunResults:
        """
        Check one unit.

        Parameters
        ----------
        unit     : SourceUnit
        checkers : names of the checkers to run (None = every registered one)
        resolver : binding/type queries (default: read from ``unit``)
        """
        self.suppressions.load_inline_suppressions(unit)
        ctx = CheckerContext(
            unit=unit,
            resolver=resolver or AnnotatedResolver.for_unit(unit),
            config=self.config,
            suppressions=self.suppressions,
            options=self.options,
        )
        results = CheckerRunResults(units=1)
        for cls in self._select(checkers):
            t0 = time.monotonic()
            diags = self._run_checker(cls, ctx)
            elapsed_ms = (time.monotonic() - t0) * 1000.0
            logger.info("%s: %s took %.1fms (%d diagnostics)",
                        unit.file, cls.name, elapsed_ms, len(diags))
            results.add(cls.name, diags)
            results.stats[f"{cls.name}_elapsed_ms"] = elapsed_ms
        results.stats.update(ctx.stats)
        return results

    def run_units(
        self,
        units: Sequence[SourceUnit],
        checkers: Optional[Sequence[str]] = None,
        jobs: Optional[int] = None,
    ) -> CheckerRunResults:
        """Check several units, ``jobs`` of them at a time.

        The combined results follow the order of ``units``.
        """
        jobs = jobs or self.config.jobs

        def one(unit: SourceUnit) -> CheckerRunResults:
            return self.run(unit, checkers=checkers)

        if jobs > 1 and len(units) > 1:
            with ThreadPoolExecutor(max_workers=jobs) as pool:
                partials = list(pool.map(one, units))
        else:
            partials = [one(u) for u in units]

        combined = CheckerRunResults()
        for partial in partials:
            combined.merge(partial)
        return combined


__all__ = [
    "INTERNAL_ERROR_ID",
    "Diagnostic",
    "DiagnosticSeverity",
    "Confidence",
    "SourceLocation",
    "SuppressionManager",
    "Checker",
    "CheckerContext",
    "CheckerRegistry",
    "ErrCheckIfChecker",
    "default_registry",
    "CheckerRunResults",
    "CheckerRunner",
]
