"""Severity-tagged finding definitions.

Each check declares its findings once, in two independent catalogs: one
for errors and one for warnings. A catalog hands out power-of-two codes in
declaration order so that a result cell can carry several findings at once
as a bitmask. Code zero is reserved for "no finding".
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterator, List, Optional

from matplotlib.colors import is_color_like

__all__ = ['Severity', 'Finding', 'FindingCatalog', 'MAX_FINDINGS']

# Result cells are uint32; bit 31 stays unused so codes also fit signed 32-bit readers
MAX_FINDINGS = 31

DEFAULT_COLORS = {
    "error": ["gold", "orange", "red", "darkred", "purple", "magenta", "brown", "navy"],
    "warning": ["orange", "red", "darkorange", "yellow", "olive", "teal", "cyan", "gray"],
}


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"


@dataclass(frozen=True)
class Finding:
    """One diagnostic condition a check can raise at a cell.

    Attributes
    ----------
    code : int
        Power-of-two code, unique within its catalog.
    severity : Severity
        Error (data inconsistent by definition) or warning (outside a
        configured acceptable range).
    label : str
        Short label used in legends and diagnostics.
    description : str
        Long description.
    color : str
        Any matplotlib colour specification.
    """

    code: int
    severity: Severity
    label: str
    description: str = ""
    color: str = "red"


class FindingCatalog:
    """Ordered set of findings of one severity.

    Parameters
    ----------
    severity : Severity or str
        Severity of every finding in the catalog.

    Raises
    ------
    ValueError
        From :meth:`define` when more than ``MAX_FINDINGS`` findings are
        declared, or when a colour is not a valid matplotlib colour.
    """

    def __init__(self, severity: Severity | str):
        self.severity = Severity(severity)
        self._findings: List[Finding] = []

    def define(self, label: str, description: str = "",
               color: Optional[str] = None) -> Finding:
        """Declare the next finding and allocate its code."""
        index = len(self._findings)
        if index >= MAX_FINDINGS:
            raise ValueError(
                f"A {self.severity.value} catalog holds at most {MAX_FINDINGS} findings"
            )
        if color is None:
            palette = DEFAULT_COLORS[self.severity.value]
            color = palette[index % len(palette)]
        if not is_color_like(color):
            raise ValueError(f"Invalid color for finding '{label}': {color!r}")

        finding = Finding(1 << index, self.severity, label, description or label, color)
        self._findings.append(finding)
        return finding

    @property
    def findings(self) -> List[Finding]:
        return list(self._findings)

    def by_code(self, code: int) -> Optional[Finding]:
        for finding in self._findings:
            if finding.code == code:
                return finding
        return None

    def decode(self, value: int) -> List[Finding]:
        """Findings whose bits are set in ``value``."""
        return [f for f in self._findings if int(value) & f.code]

    def labels(self) -> Dict[int, str]:
        return {f.code: f.label for f in self._findings}

    def __iter__(self) -> Iterator[Finding]:
        return iter(self._findings)

    def __len__(self) -> int:
        return len(self._findings)
