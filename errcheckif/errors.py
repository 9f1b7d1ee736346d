# errcheckif/errors.py
"""
Error types raised by errcheckif's outer surfaces.

Error Hierarchy:
────────────────
  ErrCheckIfError (base)
  ├── DumpFormatError   - front-end dump is not a valid unit document
  ├── NotationError     - S-expression program text cannot be mapped to nodes
  └── ConfigError       - bad configuration key, value or file

Error Codes:
────────────
Each class carries a code of the form ECI-XXXX:
  - 1000-1999: front-end input (dump, notation)
  - 2000-2999: configuration

The analysis engine itself never raises: an unresolvable node is treated
as "not a candidate" and skipped.
"""

from __future__ import annotations

from typing import ClassVar, Optional

from .ast_nodes import Loc


class ErrCheckIfError(Exception):
    """Base class for every error raised by errcheckif."""

    code: ClassVar[str] = "ECI-0000"

    def __init__(self, message: str, loc: Optional[Loc] = None) -> None:
        super().__init__(message)
        self.message = message
        self.loc = loc

    def __str__(self) -> str:
        if self.loc is not None:
            return f"{self.loc}: {self.message}"
        return self.message


class DumpFormatError(ErrCheckIfError):
    """The front-end dump does not describe a valid source unit."""

    code: ClassVar[str] = "ECI-1001"


class NotationError(ErrCheckIfError):
    """An S-expression program cannot be mapped to syntax tree nodes."""

    code: ClassVar[str] = "ECI-1101"


class ConfigError(ErrCheckIfError):
    """Invalid configuration."""

    code: ClassVar[str] = "ECI-2001"
