# tests/conftest.py
"""
Shared fixtures and program sources for the errcheckif test-suite.

Programs are written in the S-expression notation of
``errcheckif.notation``.  Line numbers are synthetic: the function header
is line 1 and every statement (including ``block`` forms) takes the next
line in source order.
"""

from __future__ import annotations

from typing import List, Optional, Tuple

import pytest

from errcheckif.analyzer import Finding, FindingKind, analyze_unit
from errcheckif.ast_nodes import (
    AssignStmt,
    FuncDecl,
    IfStmt,
    SourceUnit,
)
from errcheckif.ast_helper import NodeIndex, iter_preorder
from errcheckif.config import AnalyzerConfig
from errcheckif.context import AnalysisEnv
from errcheckif.notation import parse_unit
from errcheckif.resolver import AnnotatedResolver, Binding


# ---------------------------------------------------------------------------
# Call signatures shared by most programs
# ---------------------------------------------------------------------------

SIGS = """
  (sig mightFail string error)
  (sig fail error)
  (sig rterr error)
  (sig tfail error)
  (sig os.Open *os.File error)
  (sig errors.New error)
  (sig strconv.Itoa string)
  (sig newMyErr *MyErr)
  (sig newPlain *Plain)
"""

TYPES = """
  (type *MyErr (Error "func() string"))
  (type *Plain (String "func() string"))
"""


def program(*funcs: str, file: str = "demo.go", extra: str = "") -> str:
    """Wrap function forms into a unit with the shared signatures."""
    return f'(unit "{file}" {SIGS} {TYPES} {extra} {" ".join(funcs)})'


# ---------------------------------------------------------------------------
# Programs from the reference corpus
# ---------------------------------------------------------------------------

# err printed but never checked, then overwritten
PRINT_THEN_REBIND = program("""
  (func test ()
    (:= (_ err) (mightFail))
    (expr (fmt.Println err))
    (= (_ err) (mightFail))
    (= (_ err) (mightFail))
    (if (!= err nil) (block (expr (panic err)))))
""")

# `_, _ = mightFail()` and `_ = fail()`
JOINT_DISCARDS = program("""
  (func test ()
    (= (_ _) (mightFail))
    (= (_) (fail)))
""")

# `v, _ := mightFail()`: a discard mixed with a captured result
MIXED_DISCARD = program("""
  (func test ()
    (:= (v _) (mightFail))
    (expr (fmt.Println v)))
""")

CHECK_FORMS = program("""
  (func checks ()
    (:= (f err) (os.Open "non-existent-file.txt"))
    (if (errors.Is err os.ErrNotExist) (block (expr (fmt.Println "missing"))))
    (defer (f.Close))
    (= (_ err) (mightFail))
    (if (== err nil) (block))
    (= (_ err) (mightFail))
    (if (errors.As err (& os.ErrNotExist)) (block))
    (= (_ err) (mightFail))
    (if (&& (!= err nil) (!= err http.ErrServerClosed)) (block))
    (= (_ err) (mightFail))
    (if (or (!= err nil) (!= err http.ErrServerClosed)) (block))
    (= (_ err) (mightFail))
    (if (paren (!= nil err)) (block)))
""")

IF_INIT_FORMS = program("""
  (func inits ()
    (if (init (= (_ err) (mightFail))) (!= err nil) (block))
    (if (init (= (_ err) (mightFail))) (== err nil) (block))
    (if (init (= (_ err) (mightFail))) (errors.Is err os.ErrNotExist) (block))
    (if (init (= (_ err) (mightFail))) (errors.As err (& os.ErrNotExist)) (block)))
""")

SELECT_AND_SWITCH = program("""
  (func arms ()
    (:= (ctx) (context.Background))
    (select
      (case (<- (ctx.Done))
        (:= (_ e1) (mightFail))
        (if (!= e1 nil) (block))))
    (:= (t) 1)
    (switch t
      (case (1)
        (:= (_ e2) (mightFail))
        (if (!= e2 nil) (block)))
      (case default
        (:= (_ e3) (mightFail)))))
""")

# both goroutine bodies end with an unchecked assignment
GOROUTINES = program("""
  (func launches ()
    (go (call (func ()
      (var terr error)
      (defer (call (func () (if (!= terr nil) (block)))))
      (= (terr) (fail)))))
    (var terr#outer error)
    (go (call (func ()
      (= (terr#outer) (fail)))))
    (if (!= terr#outer nil) (block)))
""")

PROPAGATION = program("""
  (func error_propagation (string error)
    (:= (fail err) (mightFail))
    (return fail err))
""", """
  (func test_naked_return ((err error))
    (= (err) (errors.New "123"))
    (return))
""")

# err A is overwritten inside the conditional before being checked
CROSS = program("""
  (func test_cross ()
    (:= (err) (fail))
    (if cond
      (block
        (= (err) (fail))
        (if (!= err nil) (block (return)))))
    (expr (fmt.Println err)))
""")


def if_else_program(name: str, tail: str) -> str:
    """``var err error; if cond {err = rterr()} else {_, err = os.Open(..)}``
    followed by ``tail``."""
    return program(f"""
      (func {name} ()
        (var err error)
        (if cond
          (block (= (err) (rterr)))
          (block (= (_ err) (os.Open "test.txt"))))
        {tail})
    """)


MERGE_CHECKED = {
    "neq": if_else_program("ttest01", "(if (!= err nil) (block))"),
    "eq": if_else_program("ttest02", "(if (== err nil) (block))"),
    "is": if_else_program("ttest03", "(if (errors.Is err os.ErrNotExist) (block))"),
    "as": if_else_program("ttest04", "(if (errors.As err os.ErrNotExist) (block))"),
}

MERGE_PRINTED = if_else_program("ftest01", "(expr (fmt.Println err))")

MERGE_CHECKED_BEFORE = program("""
  (func ftest02 ()
    (:= (err) (rterr))
    (if (!= err nil) (block))
    (if cond
      (block (= (err) (rterr)))
      (block (= (_ err) (os.Open "test.txt")))))
""")

TEST_UNIT = program("""
  (func Test1 ()
    (:= (err) (tfail))
    (expr (fmt.Println err)))
""", """
  (func Test01 ()
    (var err error)
    (if (< 1 2)
      (block (= (err) (tfail)))
      (block (= (_ err) (os.Open "test.txt"))))
    (expr (fmt.Println err)))
""", file="try_test.go")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def run(text: str, config: Optional[AnalyzerConfig] = None) -> List[Finding]:
    """Parse a notation program and return its findings."""
    unit = parse_unit(text)
    return analyze_unit(unit, AnnotatedResolver.for_unit(unit), config)


def summarize(findings: List[Finding]) -> List[Tuple[FindingKind, str, int]]:
    return [(f.kind, f.name, f.loc.line) for f in findings]


def only_func(text: str) -> Tuple[SourceUnit, FuncDecl]:
    unit = parse_unit(text)
    assert len(unit.funcs) == 1
    return unit, unit.funcs[0]


def make_env(unit: SourceUnit, func: FuncDecl,
             config: Optional[AnalyzerConfig] = None) -> AnalysisEnv:
    return AnalysisEnv(
        function=func,
        resolver=AnnotatedResolver.for_unit(unit),
        config=config or AnalyzerConfig(),
        index=NodeIndex(func),
    )


def assignments(func: FuncDecl) -> List[AssignStmt]:
    return [n for n in iter_preorder(func.body) if isinstance(n, AssignStmt)]


def if_stmts(func: FuncDecl) -> List[IfStmt]:
    return [n for n in iter_preorder(func.body) if isinstance(n, IfStmt)]


def binding(identity: str) -> Binding:
    return Binding(identity, identity.partition("#")[0])


@pytest.fixture
def env_for():
    """Build an ``AnalysisEnv`` for the single function of a program."""
    def _build(text: str, config: Optional[AnalyzerConfig] = None):
        unit, func = only_func(text)
        return make_env(unit, func, config), func
    return _build
