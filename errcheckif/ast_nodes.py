# errcheckif/ast_nodes.py
"""
Syntax tree consumed by the errcheckif engine.

The external front-end (a Go parser plus type checker) lowers each source
unit into these nodes.  The node set is closed and deliberately small:
anything the engine does not reason about is carried as ``OtherStmt`` /
``OtherExpr`` so that it can still be walked for nested assignments.

Every node carries a ``Loc`` for diagnostics.  Nodes compare by object
identity (``eq=False``), which lets them be used directly as keys in
parent maps and caches.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Hashable, List, Optional, Tuple, Union


# ── Source Location ──────────────────────────────────────────────

@dataclass(frozen=True)
class Loc:
    """Source location for diagnostics."""
    file: str = "<unknown>"
    line: int = 0
    col: int = 0

    def __str__(self):
        return f"{self.file}:{self.line}:{self.col}"


# ── Enums ────────────────────────────────────────────────────────

class BinOp(Enum):
    AND = "&&"
    OR = "||"
    EQ = "=="
    NEQ = "!="

    @classmethod
    def from_token(cls, text: str) -> Optional[BinOp]:
        """Map an operator spelling to a ``BinOp``; ``None`` if not modelled."""
        for op in cls:
            if op.value == text:
                return op
        return None


BLANK = "_"


# ── Expressions ──────────────────────────────────────────────────

@dataclass(eq=False)
class Ident:
    """An identifier occurrence.

    ``obj`` is the identity token assigned by the front-end's binding
    resolution.  Two occurrences denote the same variable iff their tokens
    compare equal.  The discard placeholder ``_`` and unresolved names carry
    ``None``.
    """
    name: str
    obj: Optional[Hashable] = None
    loc: Loc = field(default_factory=Loc)

    @property
    def is_blank(self) -> bool:
        return self.name == BLANK


@dataclass(eq=False)
class NilLit:
    loc: Loc = field(default_factory=Loc)


@dataclass(eq=False)
class SelectorExpr:
    """Qualified reference ``x.sel`` (package member, field or method)."""
    x: Expr
    sel: str
    loc: Loc = field(default_factory=Loc)


@dataclass(eq=False)
class BinaryExpr:
    op: BinOp
    x: Expr
    y: Expr
    loc: Loc = field(default_factory=Loc)


@dataclass(eq=False)
class CallExpr:
    """A call.

    ``results`` lists the declared result types of the callee's signature
    as resolved by the front-end, or ``None`` when the callee could not be
    typed.
    """
    func: Expr
    args: Tuple[Expr, ...] = ()
    results: Optional[Tuple[str, ...]] = None
    loc: Loc = field(default_factory=Loc)


@dataclass(eq=False)
class FuncLit:
    """Function literal (closure).  Analysed as a self-contained body."""
    results: Tuple[ResultSlot, ...] = ()
    body: Block = field(default_factory=lambda: Block())
    loc: Loc = field(default_factory=Loc)


@dataclass(eq=False)
class OtherExpr:
    """Any expression the engine treats as opaque (literals, unary ops,
    index expressions, parentheses, ...).  ``kind`` is informational;
    ``children`` are walked for nested function literals."""
    kind: str = "other"
    children: Tuple[Node, ...] = ()
    loc: Loc = field(default_factory=Loc)


Expr = Union[Ident, NilLit, SelectorExpr, BinaryExpr, CallExpr, FuncLit, OtherExpr]


# ── Statements ───────────────────────────────────────────────────

@dataclass(eq=False)
class Block:
    stmts: List[Stmt] = field(default_factory=list)
    loc: Loc = field(default_factory=Loc)


@dataclass(eq=False)
class IfStmt:
    """Conditional.  ``else_`` is a plain ``Block``, a chained ``IfStmt``
    (``else if``) or ``None``."""
    cond: Expr
    body: Block = field(default_factory=Block)
    else_: Optional[Union[Block, IfStmt]] = None
    init: Optional[Stmt] = None
    loc: Loc = field(default_factory=Loc)


@dataclass(eq=False)
class ReturnStmt:
    results: Tuple[Expr, ...] = ()
    loc: Loc = field(default_factory=Loc)


@dataclass(eq=False)
class AssignStmt:
    """``lhs... = rhs...`` or, with ``define``, ``lhs... := rhs...``."""
    lhs: Tuple[Expr, ...]
    rhs: Tuple[Expr, ...]
    define: bool = False
    loc: Loc = field(default_factory=Loc)


@dataclass(eq=False)
class CaseClause:
    """One arm of a ``switch``.  Its body is a statement sequence."""
    exprs: Tuple[Expr, ...] = ()
    stmts: List[Stmt] = field(default_factory=list)
    loc: Loc = field(default_factory=Loc)


@dataclass(eq=False)
class CommClause:
    """One arm of a ``select``.  Its body is a statement sequence."""
    comm: Optional[Stmt] = None
    stmts: List[Stmt] = field(default_factory=list)
    loc: Loc = field(default_factory=Loc)


@dataclass(eq=False)
class ExprStmt:
    expr: Expr
    loc: Loc = field(default_factory=Loc)


@dataclass(eq=False)
class OtherStmt:
    """Statements with no handling semantics of their own (``switch`` and
    ``select`` headers, loops, ``go``, ``defer``, declarations, labels).
    ``children`` keep the nested structure reachable."""
    kind: str = "other"
    children: Tuple[Node, ...] = ()
    loc: Loc = field(default_factory=Loc)


Stmt = Union[Block, IfStmt, ReturnStmt, AssignStmt, CaseClause, CommClause,
             ExprStmt, OtherStmt]

# Nodes whose ``stmts`` form an ordered statement sequence.  The scanner
# treats all three identically.
SEQUENCE_TYPES = (Block, CaseClause, CommClause)
Sequence = Union[Block, CaseClause, CommClause]


# ── Declarations ─────────────────────────────────────────────────

@dataclass(frozen=True)
class ResultSlot:
    """A declared result position.  Named slots carry the identity token
    of the implicitly declared variable."""
    type: str
    name: Optional[str] = None
    obj: Optional[Hashable] = None


@dataclass(eq=False)
class FuncDecl:
    name: str
    results: Tuple[ResultSlot, ...] = ()
    body: Block = field(default_factory=Block)
    loc: Loc = field(default_factory=Loc)


FuncNode = Union[FuncDecl, FuncLit]


@dataclass(frozen=True)
class Suppression:
    """Inline suppression recorded by the front-end."""
    error_id: str
    line: int = 0


@dataclass(eq=False)
class SourceUnit:
    """One source file as produced by the front-end.

    ``types`` maps type names to their method sets (method name ->
    signature string), for the types the unit's calls return.
    """
    file: str
    funcs: List[FuncDecl] = field(default_factory=list)
    types: Dict[str, Dict[str, str]] = field(default_factory=dict)
    is_test: bool = False
    suppressions: List[Suppression] = field(default_factory=list)

    def is_test_unit(self, suffix: str = "_test.go") -> bool:
        return self.is_test or (bool(suffix) and self.file.endswith(suffix))


Node = Union[Expr, Stmt, FuncDecl]
