"""
errcheckif/dump.py
══════════════════

Loader for the JSON documents written by the Go front-end.

The front-end does the parsing and type checking; it writes one document
per source unit with identities and call signatures already resolved::

    {"file": "pkg/x.go", "test": false,
     "types": {"*MyErr": {"methods": {"Error": "func() string"}}},
     "suppressions": [{"errorId": "errIgnored", "line": 12}],
     "funcs": [{"name": "f", "pos": [3, 1],
                "results": [{"name": "err", "id": 7, "type": "error"}],
                "body": [ <node>, ... ]}]}

Every node is an object with a ``"kind"`` tag.  Statement kinds are
``block if return assign case comm expr other``; expression kinds are
``ident nil selector binary call funclit other``.  A node without
``"pos"`` takes the position of its parent.

Usage
-----
>>> unit = parse_dump("build/x.go.json")
>>> for func in unit.funcs:
...     print(func.name)
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Callable, Dict, Hashable, List, Mapping, Optional, Tuple, Union

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
    Node,
    OtherExpr,
    OtherStmt,
    ResultSlot,
    ReturnStmt,
    SelectorExpr,
    SourceUnit,
    Stmt,
    Suppression,
)
from .errors import DumpFormatError

logger = logging.getLogger(__name__)

__all__ = ["load_dump", "loads_dump", "parse_dump"]

_StmtParser = Callable[["_Reader", Mapping[str, Any], Loc], Stmt]
_ExprParser = Callable[["_Reader", Mapping[str, Any], Loc], Expr]

_STMT_KINDS: Dict[str, _StmtParser] = {}
_EXPR_KINDS: Dict[str, _ExprParser] = {}


def _register(table: dict, kind: str):
    def deco(fn):
        table[kind] = fn
        return fn
    return deco


# ═══════════════════════════════════════════════════════════════════════
#  Field access
# ═══════════════════════════════════════════════════════════════════════

def _obj(data: Any, what: str, loc: Optional[Loc] = None) -> Mapping[str, Any]:
    if not isinstance(data, Mapping):
        raise DumpFormatError(f"{what} must be an object, got {type(data).__name__}", loc)
    return data


def _list(data: Mapping[str, Any], key: str, loc: Loc, required: bool = False) -> List[Any]:
    value = data.get(key)
    if value is None:
        if required:
            raise DumpFormatError(f"missing '{key}'", loc)
        return []
    if not isinstance(value, list):
        raise DumpFormatError(f"'{key}' must be a list", loc)
    return value


def _str(data: Mapping[str, Any], key: str, loc: Loc) -> str:
    value = data.get(key)
    if not isinstance(value, str):
        raise DumpFormatError(f"'{key}' must be a string", loc)
    return value


def _identity(data: Mapping[str, Any], loc: Loc) -> Optional[Hashable]:
    value = data.get("id")
    if value is None or isinstance(value, (int, str)):
        return value
    raise DumpFormatError(f"identity must be an integer or string, got {value!r}", loc)


# ═══════════════════════════════════════════════════════════════════════
#  Reader
# ═══════════════════════════════════════════════════════════════════════

class _Reader:
    """Builds nodes for one unit; carries its file name for positions."""

    def __init__(self, file: str) -> None:
        self.file = file

    def loc(self, data: Mapping[str, Any], parent: Loc) -> Loc:
        pos = data.get("pos")
        if pos is None:
            return parent
        if (not isinstance(pos, list) or not 1 <= len(pos) <= 2
                or not all(isinstance(p, int) for p in pos)):
            raise DumpFormatError(f"'pos' must be [line, col], got {pos!r}", parent)
        return Loc(self.file, pos[0], pos[1] if len(pos) > 1 else 0)

    def stmt(self, data: Any, parent: Loc) -> Stmt:
        node = _obj(data, "statement", parent)
        loc = self.loc(node, parent)
        kind = node.get("kind")
        parser = _STMT_KINDS.get(kind)
        if parser is None:
            raise DumpFormatError(f"unknown statement kind {kind!r}", loc)
        return parser(self, node, loc)

    def stmts(self, items: List[Any], parent: Loc) -> List[Stmt]:
        return [self.stmt(s, parent) for s in items]

    def expr(self, data: Any, parent: Loc) -> Expr:
        node = _obj(data, "expression", parent)
        loc = self.loc(node, parent)
        kind = node.get("kind")
        parser = _EXPR_KINDS.get(kind)
        if parser is None:
            raise DumpFormatError(f"unknown expression kind {kind!r}", loc)
        return parser(self, node, loc)

    def exprs(self, items: List[Any], parent: Loc) -> Tuple[Expr, ...]:
        return tuple(self.expr(e, parent) for e in items)

    def any_node(self, data: Any, parent: Loc) -> Node:
        """Child of an opaque node: statement kinds win over expression kinds."""
        node = _obj(data, "node", parent)
        kind = node.get("kind")
        if kind in _STMT_KINDS and kind != "other":
            return self.stmt(node, parent)
        if kind in _EXPR_KINDS:
            return self.expr(node, parent)
        return self.stmt(node, parent)

    def block(self, data: Any, parent: Loc) -> Block:
        """A block object, or a bare list of statements."""
        if isinstance(data, list):
            return Block(self.stmts(data, parent), parent)
        node = _obj(data, "block", parent)
        if node.get("kind") != "block":
            raise DumpFormatError(f"expected a block, got kind {node.get('kind')!r}", parent)
        loc = self.loc(node, parent)
        return Block(self.stmts(_list(node, "stmts", loc), loc), loc)

    def results(self, items: List[Any], parent: Loc) -> Tuple[ResultSlot, ...]:
        slots = []
        for item in items:
            slot = _obj(item, "result", parent)
            slots.append(ResultSlot(
                type=_str(slot, "type", parent),
                name=slot.get("name"),
                obj=_identity(slot, parent),
            ))
        return tuple(slots)

    def func(self, data: Any, parent: Loc) -> FuncDecl:
        node = _obj(data, "function", parent)
        loc = self.loc(node, parent)
        return FuncDecl(
            name=_str(node, "name", loc),
            results=self.results(_list(node, "results", loc), loc),
            body=Block(self.stmts(_list(node, "body", loc), loc), loc),
            loc=loc,
        )


# ── statements ───────────────────────────────────────────────────────

@_register(_STMT_KINDS, "block")
def _block(r: _Reader, node: Mapping[str, Any], loc: Loc) -> Stmt:
    return Block(r.stmts(_list(node, "stmts", loc), loc), loc)


@_register(_STMT_KINDS, "if")
def _if(r: _Reader, node: Mapping[str, Any], loc: Loc) -> Stmt:
    if "cond" not in node or "body" not in node:
        raise DumpFormatError("'if' needs 'cond' and 'body'", loc)
    init = r.stmt(node["init"], loc) if node.get("init") is not None else None
    else_: Union[Block, IfStmt, None] = None
    raw_else = node.get("else")
    if raw_else is not None:
        if isinstance(raw_else, Mapping) and raw_else.get("kind") == "if":
            else_ = _if(r, raw_else, r.loc(raw_else, loc))
        else:
            else_ = r.block(raw_else, loc)
    return IfStmt(r.expr(node["cond"], loc), r.block(node["body"], loc), else_, init, loc)


@_register(_STMT_KINDS, "return")
def _return(r: _Reader, node: Mapping[str, Any], loc: Loc) -> Stmt:
    return ReturnStmt(r.exprs(_list(node, "results", loc), loc), loc)


@_register(_STMT_KINDS, "assign")
def _assign(r: _Reader, node: Mapping[str, Any], loc: Loc) -> Stmt:
    return AssignStmt(
        lhs=r.exprs(_list(node, "lhs", loc, required=True), loc),
        rhs=r.exprs(_list(node, "rhs", loc, required=True), loc),
        define=bool(node.get("define", False)),
        loc=loc,
    )


@_register(_STMT_KINDS, "case")
def _case(r: _Reader, node: Mapping[str, Any], loc: Loc) -> Stmt:
    return CaseClause(r.exprs(_list(node, "exprs", loc), loc),
                      r.stmts(_list(node, "stmts", loc), loc), loc)


@_register(_STMT_KINDS, "comm")
def _comm(r: _Reader, node: Mapping[str, Any], loc: Loc) -> Stmt:
    comm = r.stmt(node["comm"], loc) if node.get("comm") is not None else None
    return CommClause(comm, r.stmts(_list(node, "stmts", loc), loc), loc)


@_register(_STMT_KINDS, "expr")
def _expr_stmt(r: _Reader, node: Mapping[str, Any], loc: Loc) -> Stmt:
    if "expr" not in node:
        raise DumpFormatError("'expr' statement needs 'expr'", loc)
    return ExprStmt(r.expr(node["expr"], loc), loc)


@_register(_STMT_KINDS, "other")
def _other_stmt(r: _Reader, node: Mapping[str, Any], loc: Loc) -> Stmt:
    children = tuple(r.any_node(c, loc) for c in _list(node, "children", loc))
    return OtherStmt(str(node.get("name", "other")), children, loc)


# ── expressions ──────────────────────────────────────────────────────

@_register(_EXPR_KINDS, "ident")
def _ident(r: _Reader, node: Mapping[str, Any], loc: Loc) -> Expr:
    return Ident(_str(node, "name", loc), _identity(node, loc), loc)


@_register(_EXPR_KINDS, "nil")
def _nil(r: _Reader, node: Mapping[str, Any], loc: Loc) -> Expr:
    return NilLit(loc)


@_register(_EXPR_KINDS, "selector")
def _selector(r: _Reader, node: Mapping[str, Any], loc: Loc) -> Expr:
    if "x" not in node:
        raise DumpFormatError("'selector' needs 'x'", loc)
    return SelectorExpr(r.expr(node["x"], loc), _str(node, "sel", loc), loc)


@_register(_EXPR_KINDS, "binary")
def _binary(r: _Reader, node: Mapping[str, Any], loc: Loc) -> Expr:
    if "x" not in node or "y" not in node:
        raise DumpFormatError("'binary' needs 'x' and 'y'", loc)
    op_text = _str(node, "op", loc)
    x, y = r.expr(node["x"], loc), r.expr(node["y"], loc)
    op = BinOp.from_token(op_text)
    if op is None:
        return OtherExpr(f"binary:{op_text}", (x, y), loc)
    return BinaryExpr(op, x, y, loc)


@_register(_EXPR_KINDS, "call")
def _call(r: _Reader, node: Mapping[str, Any], loc: Loc) -> Expr:
    if "func" not in node:
        raise DumpFormatError("'call' needs 'func'", loc)
    results = node.get("results")
    if results is not None:
        if not isinstance(results, list) or not all(isinstance(t, str) for t in results):
            raise DumpFormatError("call 'results' must be a list of type names", loc)
        results = tuple(results)
    return CallExpr(r.expr(node["func"], loc), r.exprs(_list(node, "args", loc), loc),
                    results, loc)


@_register(_EXPR_KINDS, "funclit")
def _funclit(r: _Reader, node: Mapping[str, Any], loc: Loc) -> Expr:
    return FuncLit(r.results(_list(node, "results", loc), loc),
                   r.block(node.get("body", []), loc), loc)


@_register(_EXPR_KINDS, "other")
def _other_expr(r: _Reader, node: Mapping[str, Any], loc: Loc) -> Expr:
    children = tuple(r.any_node(c, loc) for c in _list(node, "children", loc))
    return OtherExpr(str(node.get("name", "other")), children, loc)


# ═══════════════════════════════════════════════════════════════════════
#  Public API
# ═══════════════════════════════════════════════════════════════════════

def load_dump(data: Any) -> SourceUnit:
    """Build a ``SourceUnit`` from an already-decoded dump document.

    Raises
    ------
    DumpFormatError
        If the document is structurally malformed.
    """
    doc = _obj(data, "dump document")
    file = doc.get("file")
    if not isinstance(file, str) or not file:
        raise DumpFormatError("dump document needs a non-empty 'file'")
    top = Loc(file, 0, 0)
    reader = _Reader(file)

    types: Dict[str, Dict[str, str]] = {}
    for name, info in _obj(doc.get("types") or {}, "'types'", top).items():
        methods = _obj(_obj(info, f"type {name!r}", top).get("methods") or {},
                       f"methods of {name!r}", top)
        types[name] = {str(m): str(sig) for m, sig in methods.items()}

    suppressions = []
    for item in _list(doc, "suppressions", top):
        supp = _obj(item, "suppression", top)
        line = supp.get("line", 0)
        if not isinstance(line, int):
            raise DumpFormatError("suppression 'line' must be an integer", top)
        suppressions.append(Suppression(_str(supp, "errorId", top), line))

    unit = SourceUnit(
        file=file,
        funcs=[reader.func(f, top) for f in _list(doc, "funcs", top)],
        types=types,
        is_test=bool(doc.get("test", False)),
        suppressions=suppressions,
    )
    logger.debug("Loaded %s: %d functions, %d types", file, len(unit.funcs), len(types))
    return unit


def loads_dump(text: str) -> SourceUnit:
    """Decode a dump from a JSON string."""
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise DumpFormatError(f"invalid JSON: {exc}") from exc
    return load_dump(data)


def parse_dump(path: Union[str, Path]) -> SourceUnit:
    """Read and decode a dump file."""
    p = Path(path)
    try:
        text = p.read_text(encoding="utf-8")
    except OSError as exc:
        raise DumpFormatError(f"cannot read {p}: {exc}") from exc
    return loads_dump(text)
