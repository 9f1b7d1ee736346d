#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
errcheckif/ast_helper.py
════════════════════════

Traversal and structural queries over the errcheckif syntax tree.

    ┌─────────────────────────────────────────────────────────────────┐
    │  Traversal                                                      │
    │    • Child iteration for every node kind                        │
    │    • Pre-order walks, optionally stopping at function literals  │
    ├─────────────────────────────────────────────────────────────────┤
    │  NodeIndex                                                      │
    │    • Parent map for one function body                           │
    │    • Enclosing statement-sequence chain (innermost first)       │
    │    • Enclosing function, if-initializer and if/else arm lookup  │
    └─────────────────────────────────────────────────────────────────┘

Design Principles
─────────────────
1. **Non-invasive**: never modifies nodes; all operations are read-only.

2. **Defensive**: unknown objects have no children and no parent; queries
   return ``None`` / empty iterators rather than raising.

Usage Example
─────────────
    from errcheckif.ast_helper import NodeIndex, iter_preorder

    index = NodeIndex(func)
    for node in iter_preorder(func.body, enter_func_lits=False):
        if isinstance(node, AssignStmt):
            chain = index.enclosing_sequences(node)
"""

from __future__ import annotations

from typing import Dict, Iterator, List, Optional, Tuple

from .ast_nodes import (
    AssignStmt,
    BinaryExpr,
    Block,
    CallExpr,
    CaseClause,
    CommClause,
    ExprStmt,
    FuncDecl,
    FuncLit,
    FuncNode,
    IfStmt,
    Node,
    OtherExpr,
    OtherStmt,
    ReturnStmt,
    SEQUENCE_TYPES,
    SelectorExpr,
    Sequence,
)


# ═══════════════════════════════════════════════════════════════════════════
#  PART 1 - CHILD ITERATION
# ═══════════════════════════════════════════════════════════════════════════

def iter_children(node: Node) -> Iterator[Node]:
    """
    Yield the direct children of a node in source order.

    Args:
        node: Any statement, expression or function node

    Yields:
        Child nodes; ``None`` slots are skipped
    """
    if isinstance(node, (Block, CaseClause, CommClause)):
        if isinstance(node, CaseClause):
            yield from node.exprs
        elif isinstance(node, CommClause) and node.comm is not None:
            yield node.comm
        yield from node.stmts
    elif isinstance(node, IfStmt):
        if node.init is not None:
            yield node.init
        yield node.cond
        yield node.body
        if node.else_ is not None:
            yield node.else_
    elif isinstance(node, ReturnStmt):
        yield from node.results
    elif isinstance(node, AssignStmt):
        yield from node.lhs
        yield from node.rhs
    elif isinstance(node, ExprStmt):
        yield node.expr
    elif isinstance(node, (OtherStmt, OtherExpr)):
        yield from (c for c in node.children if c is not None)
    elif isinstance(node, BinaryExpr):
        yield node.x
        yield node.y
    elif isinstance(node, CallExpr):
        yield node.func
        yield from node.args
    elif isinstance(node, SelectorExpr):
        yield node.x
    elif isinstance(node, (FuncDecl, FuncLit)):
        yield node.body
    # Ident, NilLit and foreign objects are leaves


def iter_preorder(root: Node, *, enter_func_lits: bool = True) -> Iterator[Node]:
    """
    Iterate over a subtree in pre-order (node before its children).

    Args:
        root: Subtree root
        enter_func_lits: When False, function literals below ``root`` are
            yielded but their bodies are not entered.  Use this to stay
            inside one function scope.

    Yields:
        Nodes in pre-order sequence
    """
    if root is None:
        return
    stack: List[Node] = [root]
    while stack:
        node = stack.pop()
        yield node
        if not enter_func_lits and isinstance(node, FuncLit) and node is not root:
            continue
        # Push in reverse so the first child is processed first (LIFO)
        stack.extend(reversed(list(iter_children(node))))


def iter_func_lits(root: Node) -> Iterator[FuncLit]:
    """Yield every function literal nested anywhere below ``root``."""
    for node in iter_preorder(root):
        if isinstance(node, FuncLit) and node is not root:
            yield node


# ═══════════════════════════════════════════════════════════════════════════
#  PART 2 - NODE INDEX
# ═══════════════════════════════════════════════════════════════════════════

class NodeIndex:
    """
    Parent map over one function (including nested function literals).

    Answers the structural questions the engine asks about a statement:
    which sequence holds it and at what position, which function it
    belongs to, whether it is the initializer of an ``if``, and whether
    it sits in one arm of an ``if``/``else``.

    Usage
    -----
    >>> index = NodeIndex(func)
    >>> seq, pos = index.enclosing_sequence(stmt)
    >>> fn = index.enclosing_function(stmt)
    """

    def __init__(self, root: FuncNode) -> None:
        self.root = root
        self._parent: Dict[Node, Node] = {}
        for node in iter_preorder(root):
            for child in iter_children(node):
                self._parent[child] = node

    def parent(self, node: Node) -> Optional[Node]:
        return self._parent.get(node)

    def iter_ancestors(self, node: Node) -> Iterator[Node]:
        """Yield ancestors from the immediate parent up to the root."""
        current = self._parent.get(node)
        while current is not None:
            yield current
            current = self._parent.get(current)

    def enclosing_function(self, node: Node) -> Optional[FuncNode]:
        """The innermost ``FuncDecl`` / ``FuncLit`` containing ``node``."""
        for anc in self.iter_ancestors(node):
            if isinstance(anc, (FuncDecl, FuncLit)):
                return anc
        return None

    def enclosing_sequences(self, node: Node) -> List[Tuple[Sequence, int]]:
        """
        Chain of statement sequences around ``node``, innermost first.

        Each entry is ``(sequence, position)`` where ``position`` is the
        index, within that sequence, of the statement that contains (or is)
        ``node``.  The chain stops at the enclosing function boundary.
        """
        chain: List[Tuple[Sequence, int]] = []
        child = node
        for anc in self.iter_ancestors(node):
            if isinstance(anc, SEQUENCE_TYPES):
                for pos, stmt in enumerate(anc.stmts):
                    if stmt is child:
                        chain.append((anc, pos))
                        break
            if isinstance(anc, (FuncDecl, FuncLit)):
                break
            child = anc
        return chain

    def enclosing_sequence(self, stmt: Node) -> Optional[Tuple[Sequence, int]]:
        """
        The sequence that holds ``stmt`` as a direct element, with its
        position, or ``None`` when ``stmt`` is not a direct element of any
        sequence (an ``if`` initializer, a loop post statement, ...).
        """
        chain = self.enclosing_sequences(stmt)
        if not chain:
            return None
        seq, pos = chain[0]
        if seq.stmts[pos] is not stmt:
            return None
        return seq, pos

    def initializer_of(self, stmt: Node) -> Optional[IfStmt]:
        """The ``if`` whose initializer clause is exactly ``stmt``."""
        parent = self._parent.get(stmt)
        if isinstance(parent, IfStmt) and parent.init is stmt:
            return parent
        return None

    def arm_of(self, stmt: Node) -> Optional[Tuple[IfStmt, Block]]:
        """
        If ``stmt`` is a direct statement of the then-block or of a plain
        else-block of an ``if``, return ``(if_stmt, arm_block)``.
        """
        block = self._parent.get(stmt)
        if not isinstance(block, Block) or stmt not in block.stmts:
            return None
        owner = self._parent.get(block)
        if isinstance(owner, IfStmt) and (owner.body is block or owner.else_ is block):
            return owner, block
        return None
