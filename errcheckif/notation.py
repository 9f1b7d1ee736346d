"""errcheckif/notation.py - S-expression notation -> syntax tree.

Converts the output of ``sexpdata.loads`` (nested Python lists,
:class:`sexpdata.Symbol`, strings, numbers) into the nodes of
:mod:`errcheckif.ast_nodes`.  The notation lets programs be written by hand
(test fixtures, bug reproductions) without running the Go front-end.

Design principles
-----------------
* **Head-symbol dispatch** - every list ``(tag ...)`` in statement position
  is dispatched on ``tag`` to a dedicated ``_parse_<tag>`` helper.
* **Fail-fast** - ``NotationError`` is raised on any unexpected shape;
  nothing is silently ignored.
* **Synthetic positions** - the notation has no source positions, so every
  function and statement is given the next line number in source order.

Surface syntax
--------------
::

    (unit "file.go"
      (test)                               ;; mark as a test unit
      (sig NAME TYPE...)                   ;; call signature results
      (type NAME (METHOD "SIGNATURE")...)  ;; method set of a named type
      (suppress ERROR-ID LINE)             ;; inline suppression
      (func NAME (RESULT...) STMT...))

    RESULT  := TYPE | (NAME TYPE)
    STMT    := (:= (LHS...) RHS...) | (= (LHS...) RHS...)
             | (if [(init STMT)] COND (block STMT...) [(block ...) | (if ...)])
             | (block STMT...) | (return EXPR...) | (expr EXPR)
             | (switch [TAG] (case (EXPR...) | default STMT...)...)
             | (select (case STMT | default STMT...)...)
             | (for STMT...) | (go EXPR) | (defer EXPR) | (var NAME TYPE [EXPR])
    EXPR    := nil | _ | NAME | NAME#TAG | PKG.NAME | number | "string"
             | (== A B) | (!= A B) | (&& A B) | (|| A B) | (and A B) | (or A B)
             | (OP A [B])                  ;; any other operator, opaque
             | (paren EXPR) | (index A B)
             | (func (RESULT...) STMT...)  ;; function literal
             | (call CALLEE ARG...) | (CALLEE-SYMBOL ARG...)

``NAME#TAG`` gives an explicit identity token; a plain ``NAME`` uses its
name as identity.  Call results come from the ``sig`` declarations; calls
without one are left unresolved.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

import sexpdata
from sexpdata import Symbol

from .ast_nodes import (
    AssignStmt,
    BinOp,
    BinaryExpr,
    Block,
    CallExpr,
    CaseClause,
    CommClause,
    Expr,
    ExprStmt,
    FuncDecl,
    FuncLit,
    Ident,
    IfStmt,
    Loc,
    NilLit,
    OtherExpr,
    OtherStmt,
    ResultSlot,
    ReturnStmt,
    SelectorExpr,
    SourceUnit,
    Stmt,
    Suppression,
)
from .errors import NotationError

__all__ = ["parse_unit", "parse_file", "parse_func"]

# Type alias for raw sexpdata output
Sexp = Any  # Union[list, Symbol, str, int, float]

_OPERATOR_ALIASES = {"and": "&&", "or": "||"}
_UNARY_OPERATORS = frozenset({"!", "&", "*", "-", "^", "<-"})


# ═══════════════════════════════════════════════════════════════════════
#  Helpers
# ═══════════════════════════════════════════════════════════════════════

def _is_sym(s: Sexp) -> bool:
    return isinstance(s, Symbol)


def _sym_name(s: Sexp) -> str:
    """Extract the string name from a ``sexpdata.Symbol``, or raise."""
    if not isinstance(s, Symbol):
        raise NotationError(f"expected symbol, got {type(s).__name__}: {s!r}")
    value = getattr(s, "value", None)
    return str(value()) if callable(value) else str(s)


def _head(s: Sexp) -> Optional[str]:
    """Head symbol name of a list form ``(tag ...)``, or ``None``."""
    if isinstance(s, list) and s and _is_sym(s[0]):
        return _sym_name(s[0])
    return None


def _expect_list(s: Sexp, *, min_len: int = 0, tag: Optional[str] = None) -> list:
    """Assert that *s* is a list, optionally with a minimum length and head tag."""
    if not isinstance(s, list):
        raise NotationError(
            f"expected list{f' ({tag} ...)' if tag else ''}, got {s!r}"
        )
    if len(s) < min_len:
        raise NotationError(f"form too short: expected at least {min_len} elements: {s!r}")
    if tag is not None and _head(s) != tag:
        raise NotationError(f"expected ({tag} ...), got {s!r}")
    return s


def _as_str(s: Sexp) -> str:
    """Coerce *s* to a Python ``str``; accepts Symbol or string literal."""
    if _is_sym(s):
        return _sym_name(s)
    if isinstance(s, str):
        return s
    raise NotationError(f"expected string or symbol, got {s!r}")


def _split_identity(text: str) -> Tuple[str, str]:
    """``err#2`` -> (``err``, ``err#2``); ``err`` -> (``err``, ``err``)."""
    name, sep, _tag = text.partition("#")
    return name, (text if sep else name)


def _register(table: dict, *tags: str):
    """Decorator: register a parser function under each of *tags*."""
    def deco(fn):
        for tag in tags:
            table[tag] = fn
        return fn
    return deco


_STMT_DISPATCH: Dict[str, Callable[[_Builder, list], Stmt]] = {}
_UNIT_ITEM_DISPATCH: Dict[str, Callable[[_Builder, list, SourceUnit], None]] = {}


# ═══════════════════════════════════════════════════════════════════════
#  Builder
# ═══════════════════════════════════════════════════════════════════════

class _Builder:
    """Parsing state for one unit: file name, line counter, signatures."""

    def __init__(self, filename: str) -> None:
        self.filename = filename
        self.line = 0
        self.sigs: Dict[str, Tuple[str, ...]] = {}

    def next_loc(self) -> Loc:
        self.line += 1
        return Loc(self.filename, self.line, 0)

    # ── results ──────────────────────────────────────────────────

    def results(self, s: Sexp) -> Tuple[ResultSlot, ...]:
        slots: List[ResultSlot] = []
        for item in _expect_list(s):
            if _is_sym(item):
                slots.append(ResultSlot(type=_sym_name(item)))
            else:
                pair = _expect_list(item, min_len=2)
                name, identity = _split_identity(_sym_name(pair[0]))
                slots.append(ResultSlot(type=_as_str(pair[1]), name=name, obj=identity))
        return tuple(slots)

    # ── statements ───────────────────────────────────────────────

    def stmt(self, s: Sexp) -> Stmt:
        tag = _head(s)
        parser = _STMT_DISPATCH.get(tag) if tag is not None else None
        if parser is None:
            raise NotationError(f"unknown statement form: {s!r}")
        return parser(self, s)

    def stmts(self, forms: List[Sexp]) -> List[Stmt]:
        return [self.stmt(f) for f in forms]

    def block(self, s: Sexp) -> Block:
        lst = _expect_list(s, min_len=1, tag="block")
        loc = self.next_loc()
        return Block(self.stmts(lst[1:]), loc)

    # ── expressions ──────────────────────────────────────────────

    def expr(self, s: Sexp, loc: Loc) -> Expr:
        if _is_sym(s):
            return self._symbol_expr(_sym_name(s), loc)
        if isinstance(s, (str, int, float)):
            return OtherExpr("literal", (), loc)
        lst = _expect_list(s, min_len=1)
        tag = _head(lst)
        args = lst[1:]

        if tag is None:
            # ((func ...) args...) style: the head is itself an expression
            return self._call(self.expr(lst[0], loc), args, None, loc)

        op_text = _OPERATOR_ALIASES.get(tag, tag)
        op = BinOp.from_token(op_text)
        if op is not None:
            if len(args) != 2:
                raise NotationError(f"operator {tag} takes two operands: {s!r}")
            return BinaryExpr(op, self.expr(args[0], loc), self.expr(args[1], loc), loc)
        if tag == "paren":
            return OtherExpr("paren", (self.expr(_single(s, args), loc),), loc)
        if tag == "index":
            return OtherExpr("index", tuple(self.expr(a, loc) for a in args), loc)
        if tag == "func":
            _expect_list(lst, min_len=2)
            return FuncLit(self.results(args[0]), Block(self.stmts(args[1:]), loc), loc)
        if tag == "call":
            _expect_list(lst, min_len=2)
            callee = args[0]
            key = _sym_name(callee) if _is_sym(callee) else None
            return self._call(self.expr(callee, loc), args[1:], key, loc)
        if tag in _UNARY_OPERATORS and len(args) == 1:
            return OtherExpr(f"unary:{tag}", (self.expr(args[0], loc),), loc)
        if not tag[0].isalpha() and tag[0] != "_" and len(args) == 2:
            return OtherExpr(f"binary:{tag}",
                             (self.expr(args[0], loc), self.expr(args[1], loc)), loc)
        return self._call(self._symbol_expr(tag, loc), args, tag, loc)

    def _call(self, callee: Expr, args: List[Sexp], key: Optional[str], loc: Loc) -> CallExpr:
        results = self.sigs.get(_split_identity(key)[0]) if key is not None else None
        return CallExpr(callee, tuple(self.expr(a, loc) for a in args), results, loc)

    def _symbol_expr(self, text: str, loc: Loc) -> Expr:
        if text == "nil":
            return NilLit(loc)
        if text == "_":
            return Ident("_", None, loc)
        if "." in text.strip("."):
            qualifier, _, sel = text.rpartition(".")
            return SelectorExpr(self._symbol_expr(qualifier, loc), sel, loc)
        name, identity = _split_identity(text)
        return Ident(name, identity, loc)


def _single(form: Sexp, args: list) -> Sexp:
    if len(args) != 1:
        raise NotationError(f"expected exactly one operand: {form!r}")
    return args[0]


# ═══════════════════════════════════════════════════════════════════════
#  Statement parsers
# ═══════════════════════════════════════════════════════════════════════

@_register(_STMT_DISPATCH, ":=", "=")
def _parse_assign(b: _Builder, s: list) -> AssignStmt:
    _expect_list(s, min_len=3)
    loc = b.next_loc()
    lhs = tuple(b.expr(t, loc) for t in _expect_list(s[1], min_len=1))
    rhs = tuple(b.expr(e, loc) for e in s[2:])
    return AssignStmt(lhs, rhs, define=_head(s) == ":=", loc=loc)


@_register(_STMT_DISPATCH, "if")
def _parse_if(b: _Builder, s: list) -> IfStmt:
    _expect_list(s, min_len=3)
    loc = b.next_loc()
    rest = s[1:]
    init: Optional[Stmt] = None
    if _head(rest[0]) == "init":
        init = b.stmt(_single(rest[0], rest[0][1:]))
        rest = rest[1:]
    if len(rest) not in (2, 3):
        raise NotationError(f"if expects COND THEN [ELSE]: {s!r}")
    cond = b.expr(rest[0], loc)
    body = b.block(rest[1])
    else_: Union[Block, IfStmt, None] = None
    if len(rest) == 3:
        tag = _head(rest[2])
        if tag == "block":
            else_ = b.block(rest[2])
        elif tag == "if":
            else_ = _parse_if(b, rest[2])
        else:
            raise NotationError(f"else must be (block ...) or (if ...): {rest[2]!r}")
    return IfStmt(cond, body, else_, init, loc)


@_register(_STMT_DISPATCH, "block")
def _parse_block(b: _Builder, s: list) -> Block:
    return b.block(s)


@_register(_STMT_DISPATCH, "return")
def _parse_return(b: _Builder, s: list) -> ReturnStmt:
    loc = b.next_loc()
    return ReturnStmt(tuple(b.expr(e, loc) for e in s[1:]), loc)


@_register(_STMT_DISPATCH, "expr")
def _parse_expr_stmt(b: _Builder, s: list) -> ExprStmt:
    loc = b.next_loc()
    return ExprStmt(b.expr(_single(s, s[1:]), loc), loc)


@_register(_STMT_DISPATCH, "switch")
def _parse_switch(b: _Builder, s: list) -> OtherStmt:
    loc = b.next_loc()
    children: List[Any] = []
    for item in s[1:]:
        if _head(item) == "case":
            lst = _expect_list(item, min_len=2)
            case_loc = b.next_loc()
            exprs: Tuple[Expr, ...] = ()
            if not (_is_sym(lst[1]) and _sym_name(lst[1]) == "default"):
                exprs = tuple(b.expr(e, case_loc) for e in _expect_list(lst[1]))
            children.append(CaseClause(exprs, b.stmts(lst[2:]), case_loc))
        else:
            children.append(b.expr(item, loc))
    return OtherStmt("switch", tuple(children), loc)


@_register(_STMT_DISPATCH, "select")
def _parse_select(b: _Builder, s: list) -> OtherStmt:
    loc = b.next_loc()
    clauses: List[CommClause] = []
    for item in s[1:]:
        lst = _expect_list(item, min_len=2, tag="case")
        case_loc = b.next_loc()
        comm: Optional[Stmt] = None
        if not (_is_sym(lst[1]) and _sym_name(lst[1]) == "default"):
            if _head(lst[1]) in _STMT_DISPATCH:
                comm = b.stmt(lst[1])
            else:
                comm = ExprStmt(b.expr(lst[1], case_loc), case_loc)
        clauses.append(CommClause(comm, b.stmts(lst[2:]), case_loc))
    return OtherStmt("select", tuple(clauses), loc)


@_register(_STMT_DISPATCH, "for")
def _parse_for(b: _Builder, s: list) -> OtherStmt:
    loc = b.next_loc()
    return OtherStmt("for", (Block(b.stmts(s[1:]), loc),), loc)


@_register(_STMT_DISPATCH, "go", "defer")
def _parse_go_defer(b: _Builder, s: list) -> OtherStmt:
    loc = b.next_loc()
    return OtherStmt(_head(s), (b.expr(_single(s, s[1:]), loc),), loc)


@_register(_STMT_DISPATCH, "var")
def _parse_var(b: _Builder, s: list) -> OtherStmt:
    _expect_list(s, min_len=3)
    loc = b.next_loc()
    name, identity = _split_identity(_sym_name(s[1]))
    children: List[Any] = [Ident(name, identity, loc)]
    children.extend(b.expr(e, loc) for e in s[3:])
    return OtherStmt("var", tuple(children), loc)


# ═══════════════════════════════════════════════════════════════════════
#  Unit items
# ═══════════════════════════════════════════════════════════════════════

@_register(_UNIT_ITEM_DISPATCH, "sig")
def _parse_sig(b: _Builder, s: list, unit: SourceUnit) -> None:
    lst = _expect_list(s, min_len=2)
    b.sigs[_sym_name(lst[1])] = tuple(_as_str(t) for t in lst[2:])


@_register(_UNIT_ITEM_DISPATCH, "type")
def _parse_type(b: _Builder, s: list, unit: SourceUnit) -> None:
    lst = _expect_list(s, min_len=2)
    methods: Dict[str, str] = {}
    for m in lst[2:]:
        pair = _expect_list(m, min_len=2)
        methods[_as_str(pair[0])] = _as_str(pair[1])
    unit.types[_as_str(lst[1])] = methods


@_register(_UNIT_ITEM_DISPATCH, "suppress")
def _parse_suppress(b: _Builder, s: list, unit: SourceUnit) -> None:
    lst = _expect_list(s, min_len=2)
    line = lst[2] if len(lst) > 2 else 0
    if not isinstance(line, int):
        raise NotationError(f"suppression line must be an integer: {s!r}")
    unit.suppressions.append(Suppression(_as_str(lst[1]), line))


@_register(_UNIT_ITEM_DISPATCH, "test")
def _parse_test_marker(b: _Builder, s: list, unit: SourceUnit) -> None:
    unit.is_test = True


@_register(_UNIT_ITEM_DISPATCH, "func")
def _parse_func_item(b: _Builder, s: list, unit: SourceUnit) -> None:
    unit.funcs.append(_parse_func_decl(b, s))


def _parse_func_decl(b: _Builder, s: Sexp) -> FuncDecl:
    lst = _expect_list(s, min_len=3, tag="func")
    loc = b.next_loc()
    name = _sym_name(lst[1])
    results = b.results(lst[2])
    return FuncDecl(name, results, Block(b.stmts(lst[3:]), loc), loc)


# ═══════════════════════════════════════════════════════════════════════
#  Public API
# ═══════════════════════════════════════════════════════════════════════

def _loads(text: str) -> Sexp:
    # keep nil / t / false as plain symbols
    try:
        return sexpdata.loads(text, nil=None, true=None, false=None)
    except Exception as exc:
        raise NotationError(f"S-expression syntax error: {exc}") from exc


def parse_unit(text: str, filename: Optional[str] = None) -> SourceUnit:
    """Parse ``(unit "file" ITEM...)`` into a ``SourceUnit``.

    >>> unit = parse_unit('(unit "a.go" (sig f error) (func g () (:= (err) (f))))')
    >>> unit.funcs[0].name
    'g'
    """
    lst = _expect_list(_loads(text), min_len=2, tag="unit")
    file = filename or _as_str(lst[1])
    b = _Builder(file)
    unit = SourceUnit(file=file)
    # signatures and types first so that calls resolve regardless of order
    items = lst[2:]
    for item in sorted(items, key=lambda it: _head(it) == "func"):
        tag = _head(item)
        parser = _UNIT_ITEM_DISPATCH.get(tag) if tag is not None else None
        if parser is None:
            raise NotationError(f"unknown unit item: {item!r}")
        parser(b, item, unit)
    return unit


def parse_func(text: str, sigs: Optional[Dict[str, Tuple[str, ...]]] = None,
               filename: str = "<string>") -> FuncDecl:
    """Parse a single ``(func NAME (RESULT...) STMT...)`` form."""
    b = _Builder(filename)
    b.sigs.update(sigs or {})
    return _parse_func_decl(b, _loads(text))


def parse_file(path: Union[str, Path]) -> SourceUnit:
    """Read and parse a notation file."""
    p = Path(path)
    try:
        text = p.read_text(encoding="utf-8")
    except OSError as exc:
        raise NotationError(f"cannot read {p}: {exc}") from exc
    return parse_unit(text, filename=None)
