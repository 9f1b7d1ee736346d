"""
Candidate discovery.

An assignment ``lhs... = call(...)`` produces one ``Candidate`` per result
position whose declared type satisfies the failure capability and whose
target is a simple identifier.  Targets that are fields or index
expressions are not tracked.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional

from .ast_nodes import AssignStmt, CallExpr, Expr, Ident, OtherExpr, SelectorExpr
from .context import AnalysisEnv
from .resolver import Binding

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Candidate:
    """
    A failure-bearing result position of one assignment.

    Attributes
    ----------
    assign     : the assignment statement
    call       : its single right-hand call
    position   : result index in the callee's signature
    target     : left-hand identifier receiving the result
    binding    : tracked variable, ``None`` for a discard placeholder
    joint      : every left-hand target of the assignment is a discard
    """
    assign: AssignStmt
    call: CallExpr
    position: int
    target: Ident
    binding: Optional[Binding]
    joint: bool


def callee_name(call: CallExpr) -> str:
    """Best-effort display name of a call's callee (``pkg.Func``)."""
    return _expr_name(call.func)


def _expr_name(expr: Expr) -> str:
    if isinstance(expr, Ident):
        return expr.name
    if isinstance(expr, SelectorExpr):
        return f"{_expr_name(expr.x)}.{expr.sel}"
    if isinstance(expr, OtherExpr) and expr.kind == "paren" and len(expr.children) == 1:
        return _expr_name(expr.children[0])
    return "<func>"


def iter_candidates(env: AnalysisEnv, assign: AssignStmt) -> List[Candidate]:
    """Failure-bearing result positions of ``assign``, in result order."""
    if len(assign.rhs) != 1 or not isinstance(assign.rhs[0], CallExpr):
        return []
    call = assign.rhs[0]
    results = env.resolver.result_types(call)
    if results is None:
        logger.debug("%s: call to %s has no resolved signature, skipped",
                     call.loc, callee_name(call))
        return []

    joint = all(isinstance(t, Ident) and t.is_blank for t in assign.lhs)
    found: List[Candidate] = []
    for pos, type_name in enumerate(results):
        if pos >= len(assign.lhs):
            break
        if not env.resolver.satisfies_failure_capability(type_name):
            continue
        target = assign.lhs[pos]
        if not isinstance(target, Ident):
            continue
        if target.is_blank:
            found.append(Candidate(assign, call, pos, target, None, joint))
            continue
        identity = env.identity_of(target)
        if identity is None:
            logger.debug("%s: '%s' has no resolved identity, skipped", target.loc, target.name)
            continue
        found.append(Candidate(assign, call, pos, target,
                               Binding(identity, target.name, target), joint))
    return found


def failure_bindings(env: AnalysisEnv, assign: AssignStmt) -> List[Binding]:
    """Tracked (non-discard) bindings introduced by ``assign``."""
    return [c.binding for c in iter_candidates(env, assign) if c.binding is not None]
