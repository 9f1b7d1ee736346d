"""
errcheckif/analyzer.py
══════════════════════

Call-Site Driver: the engine's entry point.

For every assignment in a function body whose right-hand side is a
single call, each failure-bearing result position is classified:

  target is ``_``                     -> IGNORED (joint discards subject
                                         to ``report_joint_discard``)
  binding covered by an if/else merge -> left to the merge obligation
  otherwise                           -> forward scan; UNCHECKED if it fails

Each two-way conditional whose arms leave the same variable pending
produces at most one MERGE_UNCHECKED finding, anchored at the conditional.

Function literals are analysed as self-contained bodies by
``analyze_unit``; nothing relates a closure's bindings to checks in the
scope that launches it.

Usage
-----
>>> resolver = AnnotatedResolver.for_unit(unit)
>>> for finding in analyze_unit(unit, resolver):
...     print(finding.loc, finding.message)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional

from .ast_helper import NodeIndex, iter_func_lits, iter_preorder
from .ast_nodes import AssignStmt, FuncNode, IfStmt, Loc, SourceUnit
from .candidates import Candidate, callee_name, iter_candidates
from .config import AnalyzerConfig
from .context import AnalysisEnv
from .merge import MergeObligation, collect_merge_obligations, is_merge_handled
from .resolver import BindingResolver
from .scanner import is_handled_forward

logger = logging.getLogger(__name__)


class FindingKind(Enum):
    IGNORED = "ignored"
    UNCHECKED = "not checked or returned"
    MERGE_UNCHECKED = "assigned in if-else block is not checked"


@dataclass(frozen=True)
class Finding:
    """One engine result: where, what kind, which variable."""
    kind: FindingKind
    name: str
    loc: Loc
    callee: str = ""

    @property
    def message(self) -> str:
        if self.kind is FindingKind.IGNORED:
            return f"error returned by '{self.callee}' is ignored"
        if self.kind is FindingKind.MERGE_UNCHECKED:
            return f"error '{self.name}' {self.kind.value}"
        return f"error '{self.name}' is {self.kind.value}"


def analyze(func: FuncNode, resolver: BindingResolver,
            config: Optional[AnalyzerConfig] = None,
            index: Optional[NodeIndex] = None) -> List[Finding]:
    """
    Analyse one function body (nested function literals excluded).

    Parameters
    ----------
    func     : FuncDecl or FuncLit
    resolver : front-end binding/type queries
    config   : policy flags (defaults apply when omitted)
    index    : a NodeIndex already covering ``func``, to share between
               a declaration and its nested literals

    Returns
    -------
    Findings in source order.
    """
    env = AnalysisEnv(
        function=func,
        resolver=resolver,
        config=config or AnalyzerConfig(),
        index=index or NodeIndex(func),
    )
    merges = collect_merge_obligations(env)

    findings: List[Finding] = []
    for node in iter_preorder(func.body, enter_func_lits=False):
        if isinstance(node, AssignStmt):
            for cand in iter_candidates(env, node):
                finding = _classify(env, cand, merges)
                if finding is not None:
                    findings.append(finding)
        elif isinstance(node, IfStmt) and node in merges:
            obligation = merges[node]
            if not is_merge_handled(env, obligation):
                findings.append(Finding(FindingKind.MERGE_UNCHECKED,
                                        obligation.binding.name, node.loc))
    return findings


def _classify(env: AnalysisEnv, cand: Candidate,
              merges: Dict[IfStmt, MergeObligation]) -> Optional[Finding]:
    if cand.binding is None:
        if cand.joint and not env.config.report_joint_discard:
            return None
        return Finding(FindingKind.IGNORED, cand.target.name, cand.target.loc,
                       callee_name(cand.call))

    arm = env.index.arm_of(cand.assign)
    if arm is not None:
        obligation = merges.get(arm[0])
        if obligation is not None and obligation.binding.identity == cand.binding.identity:
            logger.debug("%s: '%s' deferred to if/else merge", cand.target.loc, cand.binding.name)
            return None

    if is_handled_forward(env, cand.binding, cand.assign):
        return None
    return Finding(FindingKind.UNCHECKED, cand.binding.name, cand.target.loc,
                   callee_name(cand.call))


def analyze_unit(unit: SourceUnit, resolver: BindingResolver,
                 config: Optional[AnalyzerConfig] = None) -> List[Finding]:
    """Analyse every function of a unit and every function literal in it.

    Test units are skipped entirely when ``config.skip_test_units`` is set.
    """
    config = config or AnalyzerConfig()
    if config.skip_test_units and unit.is_test_unit(config.test_file_suffix):
        logger.info("Skipping test unit %s", unit.file)
        return []

    findings: List[Finding] = []
    for func in unit.funcs:
        index = NodeIndex(func)
        findings.extend(analyze(func, resolver, config, index))
        for lit in iter_func_lits(func):
            findings.extend(analyze(lit, resolver, config, index))
    findings.sort(key=lambda f: (f.loc.line, f.loc.col))
    return findings
