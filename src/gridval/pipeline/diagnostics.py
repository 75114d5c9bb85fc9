"""Diagnostic sink for check runs.

Checks and the engine report skips, geometric mismatches, unusable
thresholds and written results here. Every call is logged through the
``gridval.diagnostics`` logger and kept as a record, so a run without
result files can be told apart from a run that never happened.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

import pandas as pd

__all__ = ['Diagnostic', 'Diagnostics']

logger = logging.getLogger("gridval.diagnostics")


@dataclass(frozen=True)
class Diagnostic:
    level: str
    message: str
    scope: Optional[str] = None
    source: Optional[str] = None
    indent: int = 0


class Diagnostics:
    """Collects and logs run diagnostics.

    No level aborts a run; errors are recorded and logged like the rest.

    Example usage::

        diagnostics = Diagnostics()
        diagnostics.warning("Missing surface level, check skipped", scope="OLF")
        diagnostics.count("warning")  # -> 1
    """

    _LEVELS = {
        "debug": logging.DEBUG,
        "info": logging.INFO,
        "warning": logging.WARNING,
        "error": logging.ERROR,
    }

    def __init__(self, log: Optional[logging.Logger] = None):
        self._log = log or logger
        self._records: List[Diagnostic] = []

    def _emit(self, level: str, message: str, scope: Optional[str],
              source: Optional[str], indent: int) -> Diagnostic:
        record = Diagnostic(level, message, scope, source, indent)
        self._records.append(record)

        prefix = "  " * indent
        if scope:
            prefix += f"[{scope}] "
        if source:
            prefix += f"{source}: "
        self._log.log(self._LEVELS[level], "%s%s", prefix, message)
        return record

    def debug(self, message: str, scope: Optional[str] = None,
              source: Optional[str] = None, indent: int = 0) -> Diagnostic:
        return self._emit("debug", message, scope, source, indent)

    def info(self, message: str, scope: Optional[str] = None,
             source: Optional[str] = None, indent: int = 0) -> Diagnostic:
        return self._emit("info", message, scope, source, indent)

    def warning(self, message: str, scope: Optional[str] = None,
                source: Optional[str] = None, indent: int = 0) -> Diagnostic:
        return self._emit("warning", message, scope, source, indent)

    def error(self, message: str, scope: Optional[str] = None,
              source: Optional[str] = None, indent: int = 0) -> Diagnostic:
        return self._emit("error", message, scope, source, indent)

    def records(self, level: Optional[str] = None,
                scope: Optional[str] = None) -> List[Diagnostic]:
        return [r for r in self._records
                if (level is None or r.level == level) and (scope is None or r.scope == scope)]

    def count(self, level: Optional[str] = None) -> int:
        return len(self.records(level))

    def to_dataframe(self) -> pd.DataFrame:
        """All records as a DataFrame with columns level, scope, source, message, indent."""
        return pd.DataFrame(
            [(r.level, r.scope, r.source, r.message, r.indent) for r in self._records],
            columns=["level", "scope", "source", "message", "indent"],
        )

    def __len__(self) -> int:
        return len(self._records)
