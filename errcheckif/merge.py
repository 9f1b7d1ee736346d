"""
errcheckif/merge.py
═══════════════════

Branch-Merge Analyzer for two-way conditionals::

    if cond {
        err = a()
    } else {
        _, err = b()
    }
    if err != nil { ... }

When both arms end with the same variable still unhandled, the
conditional as a whole owes one check of that variable, searched for in
the statements that follow the conditional.  Chained ``else if`` arms do
not take part.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional

from .ast_helper import iter_preorder
from .ast_nodes import AssignStmt, Block, IfStmt
from .candidates import failure_bindings
from .context import AnalysisEnv
from .resolver import Binding
from .scanner import scan_forward


@dataclass(frozen=True)
class MergeObligation:
    """One check owed by ``conditional`` for ``binding``."""
    conditional: IfStmt
    binding: Binding


def last_unhandled_in_arm(env: AnalysisEnv, arm: Block) -> Optional[Binding]:
    """
    The most recently introduced failure binding of ``arm`` that has no
    handler in the remainder of the arm.  Later unhandled candidates
    supersede earlier ones.
    """
    last: Optional[Binding] = None
    for pos, stmt in enumerate(arm.stmts):
        if not isinstance(stmt, AssignStmt):
            continue
        for binding in failure_bindings(env, stmt):
            if scan_forward(env, arm.stmts, pos + 1, binding) is not True:
                last = binding
    return last


def merge_obligation(env: AnalysisEnv, cond: IfStmt) -> Optional[MergeObligation]:
    """The merged obligation of ``cond``, or ``None`` if the arms disagree,
    one arm has nothing pending, or ``cond`` is not a plain two-way
    conditional sitting directly in a statement sequence."""
    if not isinstance(cond.else_, Block):
        return None
    if env.index.enclosing_sequence(cond) is None:
        return None
    then_last = last_unhandled_in_arm(env, cond.body)
    if then_last is None:
        return None
    else_last = last_unhandled_in_arm(env, cond.else_)
    if else_last is None or else_last.identity != then_last.identity:
        return None
    return MergeObligation(cond, then_last)


def collect_merge_obligations(env: AnalysisEnv) -> Dict[IfStmt, MergeObligation]:
    """Merge obligations of every conditional in the function body."""
    found: Dict[IfStmt, MergeObligation] = {}
    for node in iter_preorder(env.function.body, enter_func_lits=False):
        if isinstance(node, IfStmt):
            obligation = merge_obligation(env, node)
            if obligation is not None:
                found[node] = obligation
    return found


def is_merge_handled(env: AnalysisEnv, obligation: MergeObligation) -> bool:
    """Scan the enclosing sequence after the conditional for a handler."""
    located = env.index.enclosing_sequence(obligation.conditional)
    if located is None:
        return False
    seq, pos = located
    return scan_forward(env, seq.stmts, pos + 1, obligation.binding) is True
