"""
errcheckif - Check-Reachability Analysis for Error Values
=========================================================

Reports error values that are discarded, or bound to a variable and then
neither checked (``if err != nil``, ``errors.Is(err, ...)``) nor returned
before the variable is overwritten or goes out of reach.

Core modules
------------
ast_nodes
    Syntax tree node set produced by the front-end.
resolver
    Binding/type queries and the failure capability (``Error() string``).
analyzer
    Call-site driver; ``analyze`` and ``analyze_unit`` return findings.
checkers
    Diagnostics, suppressions, the checker lifecycle and the runner.
config
    ``AnalyzerConfig`` policy flags.
dump
    Loader for the Go front-end's JSON dumps.

Addon modules
-------------
notation
    S-expression notation for hand-written programs (needs ``sexpdata``).

Quick start
-----------
>>> from errcheckif import parse_dump, CheckerRunner
>>> results = CheckerRunner().run(parse_dump("build/x.go.json"))
>>> print(results.to_gcc_format())
"""

from __future__ import annotations

import importlib
import logging
import sys
import warnings
from typing import TYPE_CHECKING, List

# ---------------------------------------------------------------------------
# Package metadata
# ---------------------------------------------------------------------------

__version__ = "0.1.0"
__license__ = "MIT"
__all__: List[str] = []          # populated incrementally below

_log = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Internal registry: (module_name, list_of_names_to_import)
#
#   CORE  - always imported; failure is fatal
#   ADDON - imported eagerly but failure only warns (package still usable)
# ---------------------------------------------------------------------------

_CORE_MODULES = {
    "errors": [
        "ErrCheckIfError",
        "DumpFormatError",
        "NotationError",
        "ConfigError",
    ],
    "ast_nodes": [
        "Loc",
        "SourceUnit",
        "FuncDecl",
        "FuncLit",
    ],
    "resolver": [
        "AnnotatedResolver",
        "BindingResolver",
        "TypeTable",
        "failure_capability",
    ],
    "config": [
        "AnalyzerConfig",
    ],
    "analyzer": [
        "Finding",
        "FindingKind",
        "analyze",
        "analyze_unit",
    ],
    "checkers": [
        "Diagnostic",
        "DiagnosticSeverity",
        "SuppressionManager",
        "ErrCheckIfChecker",
        "CheckerRunner",
        "CheckerRunResults",
    ],
    "dump": [
        "load_dump",
        "parse_dump",
    ],
}

_ADDON_MODULES = {
    "notation": [
        "parse_unit",
        "parse_file",
        "parse_func",
    ],
}

# ---------------------------------------------------------------------------
# Import helper
# ---------------------------------------------------------------------------

def _import_names(
    module_rel_name: str,
    names: List[str],
    *,
    fatal: bool = True,
) -> None:
    """Import *names* from a submodule and bind them in the package namespace.

    Parameters
    ----------
    module_rel_name:
        Module name relative to this package (e.g. ``"analyzer"``).
    names:
        Public symbols to re-export.
    fatal:
        If ``True``, an ``ImportError`` propagates.  If ``False``, a warning
        is issued and the names are skipped (addon tier).
    """
    fq_name = f"{__name__}.{module_rel_name}"
    try:
        mod = importlib.import_module(fq_name)
    except ImportError as exc:
        if fatal:
            raise ImportError(
                f"errcheckif: required submodule '{module_rel_name}' "
                f"failed to import: {exc}"
            ) from exc
        warnings.warn(
            f"errcheckif: optional submodule '{module_rel_name}' could not be "
            f"imported ({exc}); related symbols will be unavailable.",
            ImportWarning,
            stacklevel=2,
        )
        _log.debug("Skipped optional module %s: %s", module_rel_name, exc)
        return

    current_module = sys.modules[__name__]
    for name in names:
        obj = getattr(mod, name, None)
        if obj is None:
            msg = f"errcheckif.{module_rel_name} does not export '{name}'"
            if fatal:
                raise AttributeError(msg)
            _log.warning(msg)
            continue
        setattr(current_module, name, obj)
        __all__.append(name)

    setattr(current_module, module_rel_name, mod)
    if module_rel_name not in __all__:
        __all__.append(module_rel_name)


for _mod, _names in _CORE_MODULES.items():
    _import_names(_mod, _names, fatal=True)

for _mod, _names in _ADDON_MODULES.items():
    _import_names(_mod, _names, fatal=False)

del _mod, _names


def list_submodules() -> List[str]:
    """Return the names of all re-exporting submodules (core + addon)."""
    return sorted(set(_CORE_MODULES) | set(_ADDON_MODULES))


__all__ += ["list_submodules", "__version__"]

if TYPE_CHECKING:
    from .analyzer import (
        Finding as Finding,
        FindingKind as FindingKind,
        analyze as analyze,
        analyze_unit as analyze_unit,
    )
    from .checkers import (
        CheckerRunner as CheckerRunner,
        CheckerRunResults as CheckerRunResults,
        Diagnostic as Diagnostic,
        DiagnosticSeverity as DiagnosticSeverity,
        ErrCheckIfChecker as ErrCheckIfChecker,
        SuppressionManager as SuppressionManager,
    )
    from .config import AnalyzerConfig as AnalyzerConfig
    from .dump import load_dump as load_dump, parse_dump as parse_dump
    from .notation import (
        parse_file as parse_file,
        parse_func as parse_func,
        parse_unit as parse_unit,
    )
    from .resolver import AnnotatedResolver as AnnotatedResolver
