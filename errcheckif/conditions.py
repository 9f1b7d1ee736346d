"""
errcheckif/conditions.py
════════════════════════

Condition Evaluator: does a boolean expression inspect a binding?

Accepted shapes, recursively:

  a && b, a || b      either operand is a check
  err != nil          (and ``nil != err``, ``err == nil``, ``nil == err``)
  errors.Is(err, ..)  the configured two-part comparison procedures,
  errors.As(err, ..)  with the binding as first argument

Parentheses (``OtherExpr`` of kind ``paren``) are looked through.  The
evaluator is pure: the same (condition, target) pair always gives the
same answer.
"""

from __future__ import annotations

from .ast_nodes import BinOp, BinaryExpr, CallExpr, Expr, Ident, OtherExpr, SelectorExpr
from .context import AnalysisEnv
from .resolver import Binding


def _unparen(expr: Expr) -> Expr:
    while isinstance(expr, OtherExpr) and expr.kind == "paren" and len(expr.children) == 1:
        expr = expr.children[0]
    return expr


def is_check_of(env: AnalysisEnv, cond: Expr, target: Binding) -> bool:
    """Return True if ``cond`` constitutes a check of ``target``."""
    cond = _unparen(cond)

    if isinstance(cond, BinaryExpr):
        if cond.op in (BinOp.AND, BinOp.OR):
            # any short-circuit-reachable operand is enough
            return is_check_of(env, cond.x, target) or is_check_of(env, cond.y, target)
        if cond.op in (BinOp.EQ, BinOp.NEQ):
            x, y = _unparen(cond.x), _unparen(cond.y)
            nil = env.resolver.is_nil_literal
            return (env.refers_to(x, target) and nil(y)) or (nil(x) and env.refers_to(y, target))
        return False

    if isinstance(cond, CallExpr):
        return _is_comparison_call(env, cond, target)

    return False


def _is_comparison_call(env: AnalysisEnv, call: CallExpr, target: Binding) -> bool:
    callee = _unparen(call.func)
    if not isinstance(callee, SelectorExpr) or not isinstance(callee.x, Ident):
        return False
    if not env.config.is_comparison_procedure(callee.x.name, callee.sel):
        return False
    return bool(call.args) and env.refers_to(_unparen(call.args[0]), target)
