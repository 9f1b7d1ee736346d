"""Per-function analysis environment shared by the engine stages."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Hashable, Optional

from .ast_helper import NodeIndex
from .ast_nodes import FuncNode
from .config import AnalyzerConfig
from .resolver import Binding, BindingResolver


@dataclass(frozen=True)
class AnalysisEnv:
    """
    Everything the engine consults while analysing one function body.

    Attributes
    ----------
    function : the FuncDecl / FuncLit being analysed
    resolver : front-end binding and type queries
    config   : policy flags
    index    : parent map covering ``function``
    """
    function: FuncNode
    resolver: BindingResolver
    config: AnalyzerConfig
    index: NodeIndex

    def identity_of(self, expr: object) -> Optional[Hashable]:
        return self.resolver.identity_of(expr)

    def refers_to(self, expr: object, target: Binding) -> bool:
        """True if ``expr`` is an identifier denoting ``target``."""
        return target.same_variable(self.resolver.identity_of(expr))
