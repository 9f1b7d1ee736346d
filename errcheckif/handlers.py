"""Handler Classifier: does a single statement discharge a binding?"""

from __future__ import annotations

from .ast_nodes import IfStmt, ReturnStmt, Stmt
from .conditions import is_check_of
from .context import AnalysisEnv
from .resolver import Binding


def is_handler(env: AnalysisEnv, stmt: Stmt, target: Binding) -> bool:
    """
    True if ``stmt`` handles ``target``:

    - an ``if`` whose condition is a check of ``target``;
    - a ``return`` that lists ``target`` among its results;
    - a bare ``return`` in a function that declares ``target`` as a named
      result slot (a bare return yields every named result).
    """
    if isinstance(stmt, IfStmt):
        return is_check_of(env, stmt.cond, target)

    if isinstance(stmt, ReturnStmt):
        if any(env.refers_to(r, target) for r in stmt.results):
            return True
        if not stmt.results:
            func = env.index.enclosing_function(stmt) or env.function
            return any(
                slot.name is not None and target.same_variable(slot.obj)
                for slot in func.results
            )
    return False
