"""
errcheckif/scanner.py
═════════════════════

Sequence Scanner: forward search for a handler of a binding.

Starting right after the statement that introduced the binding, each
following sibling is examined in order:

  1. a handler for the binding           -> handled
  2. any nested re-binding of the same   -> unhandled (old value overwritten)
     variable anywhere inside it
  3. otherwise                           -> keep going

Reaching the end of the sequence means unhandled.  The scan never climbs
into an outer sequence; the one exception is an ``if`` initializer, which
is checked by the condition it initializes.
"""

from __future__ import annotations

import logging
from typing import Optional, Sequence

from .ast_helper import iter_preorder
from .ast_nodes import AssignStmt, Stmt
from .conditions import is_check_of
from .context import AnalysisEnv
from .handlers import is_handler
from .resolver import Binding

logger = logging.getLogger(__name__)


def contains_rebinding(env: AnalysisEnv, stmt: Stmt, target: Binding) -> bool:
    """True if an assignment to ``target`` appears anywhere inside ``stmt``."""
    for node in iter_preorder(stmt):
        if isinstance(node, AssignStmt) and any(env.refers_to(lhs, target) for lhs in node.lhs):
            return True
    return False


def scan_forward(env: AnalysisEnv, stmts: Sequence[Stmt], start: int,
                 target: Binding) -> Optional[bool]:
    """
    Scan ``stmts[start:]`` for ``target``.

    Returns
    -------
    True  if a handler is found first,
    False if a re-binding is found first,
    None  if the sequence is exhausted with neither.
    """
    for stmt in stmts[start:]:
        if is_handler(env, stmt, target):
            return True
        if contains_rebinding(env, stmt, target):
            logger.debug("%s: '%s' re-bound before being checked", stmt.loc, target.name)
            return False
    return None


def is_handled_forward(env: AnalysisEnv, target: Binding, owner: Stmt) -> bool:
    """Is the binding introduced by ``owner`` provably handled?"""
    if_stmt = env.index.initializer_of(owner)
    if if_stmt is not None:
        return is_check_of(env, if_stmt.cond, target)

    located = env.index.enclosing_sequence(owner)
    if located is None:
        return False
    seq, pos = located
    return scan_forward(env, seq.stmts, pos + 1, target) is True
