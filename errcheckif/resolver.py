"""
errcheckif/resolver.py
══════════════════════

Binding resolution and type queries consumed by the engine.

The engine never infers types or resolves scopes itself.  It asks a
``BindingResolver`` four questions:

  identity_of(ident)               which declared variable is this?
  result_types(call)               what does this call return?
  satisfies_failure_capability(t)  is ``t`` an error-like type?
  is_nil_literal(expr)             is this the predeclared ``nil``?

``AnnotatedResolver`` answers them from what the front-end recorded on
the nodes (identity tokens, call signatures) plus the unit's type table.

The failure capability itself (a type has ``Error() string``) is a
process-wide descriptor created once by ``failure_capability()``.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Dict, Hashable, Mapping, Optional, Protocol, Tuple

from .ast_nodes import CallExpr, Ident, NilLit, SourceUnit

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════
#  Failure capability (process-wide, initialised once)
# ═══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class FailureCapability:
    """The minimal "failure" contract: a single descriptive method."""
    method: str = "Error"
    signature: str = "func() string"

    def is_satisfied_by(self, info: TypeInfo) -> bool:
        return info.methods.get(self.method) == self.signature


_CAPABILITY: Optional[FailureCapability] = None
_CAPABILITY_LOCK = threading.Lock()


def failure_capability() -> FailureCapability:
    """Return the shared ``FailureCapability`` descriptor, creating it on
    first use.  Safe to call from concurrently running analyses."""
    global _CAPABILITY
    if _CAPABILITY is None:
        with _CAPABILITY_LOCK:
            if _CAPABILITY is None:
                _CAPABILITY = FailureCapability()
                logger.debug("failure capability initialised: %s", _CAPABILITY)
    return _CAPABILITY


# ═══════════════════════════════════════════════════════════════════════
#  Types
# ═══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class TypeInfo:
    """A named type and its method set (method name -> signature)."""
    name: str
    methods: Mapping[str, str] = field(default_factory=dict)


BUILTIN_TYPES: Dict[str, TypeInfo] = {
    "error": TypeInfo("error", {"Error": "func() string"}),
}


class TypeTable:
    """Type name -> ``TypeInfo`` lookup, seeded with the builtin types."""

    def __init__(self, types: Optional[Mapping[str, Mapping[str, str]]] = None) -> None:
        self._types: Dict[str, TypeInfo] = dict(BUILTIN_TYPES)
        for name, methods in (types or {}).items():
            self._types[name] = TypeInfo(name, dict(methods))

    def lookup(self, name: str) -> Optional[TypeInfo]:
        return self._types.get(name)

    def __contains__(self, name: str) -> bool:
        return name in self._types

    def __len__(self) -> int:
        return len(self._types)


# ═══════════════════════════════════════════════════════════════════════
#  Bindings
# ═══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Binding:
    """A tracked variable: its identity token plus the occurrence that
    introduced it.  Equality is by identity token only."""
    identity: Hashable
    name: str
    ident: Optional[Ident] = field(default=None, compare=False, hash=False)

    def same_variable(self, other: Optional[Hashable]) -> bool:
        return other is not None and other == self.identity


# ═══════════════════════════════════════════════════════════════════════
#  Resolver contract
# ═══════════════════════════════════════════════════════════════════════

class BindingResolver(Protocol):
    """What the engine needs from the front-end."""

    def identity_of(self, expr: object) -> Optional[Hashable]:
        ...

    def type_of(self, expr: object) -> Optional[str]:
        ...

    def result_types(self, call: CallExpr) -> Optional[Tuple[str, ...]]:
        ...

    def satisfies_failure_capability(self, type_name: str) -> bool:
        ...

    def is_nil_literal(self, expr: object) -> bool:
        ...


class AnnotatedResolver:
    """
    Resolver backed by front-end annotations.

    Identities come from ``Ident.obj``, call signatures from
    ``CallExpr.results``.  Types unknown to the table never satisfy the
    failure capability, so an untyped program yields fewer candidates
    rather than an error.

    Usage
    -----
    >>> resolver = AnnotatedResolver.for_unit(unit)
    >>> resolver.satisfies_failure_capability("error")
    True
    """

    def __init__(self, types: Optional[TypeTable] = None) -> None:
        self.types = types or TypeTable()
        self._capability = failure_capability()

    @classmethod
    def for_unit(cls, unit: SourceUnit) -> AnnotatedResolver:
        return cls(TypeTable(unit.types))

    def identity_of(self, expr: object) -> Optional[Hashable]:
        if not isinstance(expr, Ident) or expr.is_blank:
            return None
        return expr.obj

    def type_of(self, expr: object) -> Optional[str]:
        """Type name of a single-valued call, ``None`` when unknown or
        multi-valued."""
        if isinstance(expr, CallExpr) and expr.results is not None and len(expr.results) == 1:
            return expr.results[0]
        return None

    def result_types(self, call: CallExpr) -> Optional[Tuple[str, ...]]:
        if call.results is None:
            return None
        return tuple(call.results)

    def satisfies_failure_capability(self, type_name: str) -> bool:
        info = self.types.lookup(type_name)
        if info is None:
            return False
        return self._capability.is_satisfied_by(info)

    def is_nil_literal(self, expr: object) -> bool:
        if isinstance(expr, NilLit):
            return True
        # the predeclared nil identifier has no identity token of its own
        return isinstance(expr, Ident) and expr.name == "nil" and expr.obj is None
