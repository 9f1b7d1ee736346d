"""
errcheckif/config.py
════════════════════

Tuning knobs for an errcheckif run.

``AnalyzerConfig`` is immutable; build one from keyword arguments, from an
options mapping (``CheckerContext.options``) or from a JSON file::

    {"report_joint_discard": false, "skip_test_units": true, "jobs": 4}
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, FrozenSet, List, Mapping, Union

from .errors import ConfigError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AnalyzerConfig:
    """Policy flags for the engine, the driver and the runner."""

    # Report an assignment whose every target is ``_`` as "ignored".
    report_joint_discard: bool = True
    # Skip source units the front-end marks as test fixtures.
    skip_test_units: bool = True
    test_file_suffix: str = "_test.go"
    # Recognised comparison procedures: <package>.<procedure>(err, ...)
    comparison_package: str = "errors"
    comparison_procedures: FrozenSet[str] = field(
        default_factory=lambda: frozenset({"Is", "As"})
    )
    # Chained else-if arms never take part in the branch-merge rule.
    merge_else_if: bool = False
    # Units analysed in parallel by the runner.
    jobs: int = 1

    def validate(self) -> List[str]:
        """Return a list of validation warnings (empty if valid)."""
        warnings: List[str] = []
        if self.jobs <= 0:
            warnings.append("jobs must be positive")
        if not self.comparison_procedures:
            warnings.append("no comparison procedures configured")
        if self.merge_else_if:
            warnings.append("merge_else_if is not supported and is ignored")
        return warnings

    def is_comparison_procedure(self, package: str, name: str) -> bool:
        return package == self.comparison_package and name in self.comparison_procedures

    @classmethod
    def from_mapping(cls, options: Mapping[str, Any]) -> AnalyzerConfig:
        """
        Build a config from a plain mapping.

        Raises
        ------
        ConfigError
            On unknown keys or values of the wrong type.
        """
        return cls().with_options(options)

    @classmethod
    def load(cls, path: Union[str, Path]) -> AnalyzerConfig:
        """Read a JSON configuration file."""
        p = Path(path)
        try:
            raw = json.loads(p.read_text(encoding="utf-8"))
        except OSError as exc:
            raise ConfigError(f"cannot read configuration file {p}: {exc}") from exc
        except json.JSONDecodeError as exc:
            raise ConfigError(f"invalid JSON in {p}: {exc}") from exc
        if not isinstance(raw, dict):
            raise ConfigError(f"{p}: top-level value must be an object")
        logger.info("Loaded configuration from %s", p)
        return cls.from_mapping(raw)

    def with_options(self, options: Mapping[str, Any]) -> AnalyzerConfig:
        """Copy with every key of ``options`` applied, validated as in
        ``from_mapping``."""
        known = {f.name: f for f in fields(self)}
        kwargs: Dict[str, Any] = {}
        for key, value in options.items():
            if key not in known:
                raise ConfigError(f"unknown configuration key '{key}'")
            kwargs[key] = _coerce(key, value, known[key].default)
        return replace(self, **kwargs)

    def merged(self, **overrides: Any) -> AnalyzerConfig:
        """Copy with the non-``None`` overrides applied."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})


def _coerce(key: str, value: Any, default: Any) -> Any:
    if key == "comparison_procedures":
        if isinstance(value, str) or not isinstance(value, (list, tuple, set, frozenset)):
            raise ConfigError(f"'{key}' must be a list of names")
        return frozenset(str(v) for v in value)
    expected = type(default)
    # bool is an int subclass; keep them apart
    if expected is int and (isinstance(value, bool) or not isinstance(value, int)):
        raise ConfigError(f"'{key}' must be an integer, got {value!r}")
    if not isinstance(value, expected):
        raise ConfigError(
            f"'{key}' must be of type {expected.__name__}, got {type(value).__name__}"
        )
    return value
