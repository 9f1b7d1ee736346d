# tests/test_checkers.py
"""
Tests for the checker framework: diagnostics, suppressions, registry,
the errcheckif checker and the runner.
"""

import json
from typing import ClassVar
from unittest.mock import MagicMock

import pytest

from errcheckif.ast_nodes import SourceUnit, Suppression
from errcheckif.checkers import (
    Checker,
    CheckerContext,
    CheckerRegistry,
    CheckerRunner,
    CheckerRunResults,
    Confidence,
    Diagnostic,
    DiagnosticSeverity,
    ErrCheckIfChecker,
    SourceLocation,
    SuppressionManager,
    default_registry,
)
from errcheckif.config import AnalyzerConfig
from errcheckif.notation import parse_unit
from errcheckif.resolver import AnnotatedResolver
from tests.conftest import JOINT_DISCARDS, MERGE_PRINTED, PRINT_THEN_REBIND, program


def _diag(error_id="errNotChecked", file="a.go", line=3, column=0, **kw):
    return Diagnostic(
        error_id=error_id,
        message="error 'err' is not checked or returned",
        severity=kw.pop("severity", DiagnosticSeverity.WARNING),
        location=SourceLocation(file=file, line=line, column=column),
        **kw,
    )


class TestDiagnostic:

    def test_json(self):
        diag = _diag(column=5, cwe=252, symbol="err", extra="fail")
        data = diag.to_json()
        assert data == {
            "file": "a.go",
            "linenr": 3,
            "column": 5,
            "severity": "warning",
            "message": "error 'err' is not checked or returned",
            "addon": "errcheckif",
            "errorId": "errNotChecked",
            "extra": "fail",
            "confidence": "medium",
            "symbol": "err",
            "cwe": 252,
        }
        assert json.loads(diag.to_json_str()) == data

    def test_json_omits_empty_optional_keys(self):
        data = _diag(confidence=Confidence.HIGH).to_json()
        assert "cwe" not in data and "symbol" not in data
        assert data["confidence"] == "high"

    def test_gcc_format(self):
        assert _diag(column=5).to_gcc_format() == (
            "a.go:3:5: warning: error 'err' is not checked or returned [errNotChecked]"
        )
        assert _diag().to_gcc_format().startswith("a.go:3: warning:")


class TestSuppressionManager:

    def test_global(self):
        sm = SuppressionManager()
        sm.add_global_suppression("errNotChecked")
        assert sm.is_suppressed(_diag())
        assert not sm.is_suppressed(_diag("errIgnored"))

    def test_global_wildcard(self):
        sm = SuppressionManager()
        sm.add_global_suppression("*")
        assert sm.is_suppressed(_diag("errIgnored"))

    @pytest.mark.parametrize("pattern, suppressed", [
        ("a.go", True),
        ("pkg/a.go", False),
        ("*.go", True),
        ("b.go", False),
    ])
    def test_file_pattern(self, pattern, suppressed):
        sm = SuppressionManager()
        sm.add_file_suppression("errNotChecked", pattern)
        assert sm.is_suppressed(_diag()) is suppressed

    def test_file_pattern_suffix(self):
        sm = SuppressionManager()
        sm.add_file_suppression("errNotChecked", "gen/a.go")
        assert sm.is_suppressed(_diag(file="src/gen/a.go"))

    def test_inline_same_and_previous_line(self):
        unit = SourceUnit("a.go", suppressions=[Suppression("errNotChecked", 2)])
        sm = SuppressionManager()
        sm.load_inline_suppressions(unit)
        assert sm.is_suppressed(_diag(line=2))
        assert sm.is_suppressed(_diag(line=3))
        assert not sm.is_suppressed(_diag(line=4))
        assert not sm.is_suppressed(_diag(line=2, file="b.go"))

    def test_inline_without_line_covers_file(self):
        unit = SourceUnit("a.go", suppressions=[Suppression("errNotChecked")])
        sm = SuppressionManager()
        sm.load_inline_suppressions(unit)
        assert sm.is_suppressed(_diag(line=40))

    @pytest.mark.parametrize("other", ["pkg/a.go", "b.go", "a.go.bak"])
    def test_inline_without_line_stays_in_its_unit(self, other):
        unit = SourceUnit("a.go", suppressions=[Suppression("errNotChecked")])
        sm = SuppressionManager()
        sm.load_inline_suppressions(unit)
        assert not sm.is_suppressed(_diag(file=other))

    def test_filter(self):
        sm = SuppressionManager()
        sm.add_global_suppression("errIgnored")
        kept = sm.filter_diagnostics([_diag(), _diag("errIgnored")])
        assert [d.error_id for d in kept] == ["errNotChecked"]


class TestRegistry:

    def test_default_registry(self):
        registry = default_registry()
        assert registry.names == ["errcheckif"]
        assert registry.get_by_name("errcheckif") is ErrCheckIfChecker
        assert registry.get_by_name("missing") is None

    def test_register(self):
        registry = CheckerRegistry()
        assert registry.get_all() == []
        registry.register(ErrCheckIfChecker)
        registry.register(_Exploding)
        assert registry.names == ["errcheckif", "exploding"]
        assert registry.get_all() == [ErrCheckIfChecker, _Exploding]


class TestErrCheckIfChecker:

    def _run(self, text, **kw):
        return CheckerRunner(**kw).run(parse_unit(text))

    def test_unchecked_diagnostics(self):
        results = self._run(PRINT_THEN_REBIND)
        assert [(d.error_id, d.location.line) for d in results.diagnostics] == [
            ("errNotChecked", 2),
            ("errNotChecked", 4),
        ]
        diag = results.diagnostics[0]
        assert diag.cwe == 252
        assert diag.confidence is Confidence.MEDIUM
        assert diag.severity is DiagnosticSeverity.WARNING
        assert diag.symbol == "err" and diag.extra == "mightFail"
        assert diag.location.file == "demo.go"
        assert diag.checker_name == "errcheckif"

    def test_ignored_diagnostics(self):
        results = self._run(JOINT_DISCARDS)
        assert {d.error_id for d in results.diagnostics} == {"errIgnored"}
        assert all(d.cwe == 391 and d.confidence is Confidence.HIGH
                   for d in results.diagnostics)
        assert [d.extra for d in results.diagnostics] == ["mightFail", "fail"]

    def test_merge_diagnostic(self):
        results = self._run(MERGE_PRINTED)
        assert [(d.error_id, d.location.line) for d in results.diagnostics] == [
            ("errMergeNotChecked", 3),
        ]

    def test_options_override_config(self):
        results = self._run(JOINT_DISCARDS, options={"report_joint_discard": False})
        assert results.diagnostics == []

    def test_config_policy(self):
        results = self._run(JOINT_DISCARDS, config=AnalyzerConfig(report_joint_discard=False))
        assert results.diagnostics == []

    def test_inline_suppression_from_unit(self):
        text = program("""
          (func f ()
            (:= (v err) (mightFail))
            (expr (fmt.Println err)))
        """, extra="(suppress errNotChecked 2)")
        assert self._run(text).diagnostics == []

    def test_stats(self):
        results = self._run(PRINT_THEN_REBIND)
        assert "errcheckif_elapsed_ms" in results.stats
        assert results.stats["errcheckif_findings"] == 2
        assert results.checker_names == ["errcheckif"]


class _Exploding(Checker):
    name: ClassVar[str] = "exploding"

    def collect_evidence(self, ctx):
        raise RuntimeError("boom")

    def diagnose(self, ctx):
        pass


class TestCheckerRunner:

    def test_internal_error_becomes_diagnostic(self):
        registry = CheckerRegistry()
        registry.register(_Exploding)
        registry.register(ErrCheckIfChecker)
        results = CheckerRunner(registry=registry).run(parse_unit(PRINT_THEN_REBIND))
        crash = results.by_error_id("checkerInternalError")
        assert len(crash) == 1
        assert crash[0].severity is DiagnosticSeverity.INFORMATION
        assert "boom" in crash[0].message
        assert crash[0].location.file == "demo.go"
        # the other checker still ran
        assert len(results.by_error_id("errNotChecked")) == 2

    def test_explicit_resolver(self):
        unit = parse_unit(PRINT_THEN_REBIND)
        resolver = MagicMock(wraps=AnnotatedResolver.for_unit(unit))
        results = CheckerRunner().run(unit, resolver=resolver)
        assert results.total_count == 2
        assert resolver.result_types.called
        assert resolver.satisfies_failure_capability.called

    def test_selected_checkers(self):
        runner = CheckerRunner()
        unit = parse_unit(PRINT_THEN_REBIND)
        assert runner.run(unit, checkers=["no-such-checker"]).diagnostics == []
        assert runner.run(unit, checkers=["errcheckif"]).total_count == 2

    @pytest.mark.parametrize("jobs", [1, 3])
    def test_run_units_keeps_input_order(self, jobs):
        units = [
            parse_unit(PRINT_THEN_REBIND.replace('"demo.go"', f'"u{i}.go"'))
            for i in range(4)
        ]
        results = CheckerRunner().run_units(units, jobs=jobs)
        assert results.units == 4
        files = [d.location.file for d in results.diagnostics]
        assert files == ["u0.go", "u0.go", "u1.go", "u1.go",
                         "u2.go", "u2.go", "u3.go", "u3.go"]
        assert len(results.by_error_id("errNotChecked")) == 8

    @pytest.mark.parametrize("jobs", [1, 2])
    def test_unit_suppression_does_not_reach_other_units(self, jobs):
        body = """
          (func f ()
            (:= (v err) (mightFail))
            (expr (fmt.Println err)))
        """
        units = [
            parse_unit(program(body, file="x.go", extra="(suppress errNotChecked)")),
            parse_unit(program(body, file="pkg/x.go")),
        ]
        results = CheckerRunner().run_units(units, jobs=jobs)
        assert [(d.error_id, d.location.file) for d in results.diagnostics] == [
            ("errNotChecked", "pkg/x.go"),
        ]


class TestCheckerContext:

    def test_get_option(self):
        unit = SourceUnit("a.go")
        ctx = CheckerContext(unit, AnnotatedResolver.for_unit(unit), options={"jobs": 2})
        assert ctx.get_option("jobs") == 2
        assert ctx.get_option("missing", "fallback") == "fallback"


class TestCheckerRunResults:

    def test_counts_and_summary(self):
        results = CheckerRunResults(
            diagnostics=[_diag(), _diag(severity=DiagnosticSeverity.ERROR)],
            checker_names=["errcheckif"],
            units=1,
        )
        results.diagnostics_by_checker["errcheckif"].extend(results.diagnostics)
        assert results.total_count == 2
        assert results.count(DiagnosticSeverity.ERROR) == 1
        assert results.count(DiagnosticSeverity.STYLE) == 0
        summary = results.summary().splitlines()
        assert summary[0] == "2 diagnostics in 1 units"
        assert "  error: 1" in summary and "  warning: 1" in summary
        assert summary[-1] == "  [errcheckif] 2 reported in 0.0ms"

    def test_renderers(self):
        results = CheckerRunResults(diagnostics=[_diag(), _diag(line=4)])
        assert len(results.to_json_lines().splitlines()) == 2
        assert results.to_gcc_format().splitlines()[1].startswith("a.go:4:")
