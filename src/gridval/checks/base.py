"""Check capability interface and per-cell primitives.

Every check is a thin policy on top of the engine. It declares its
findings, says which grids make up one iteration unit, and judges one cell
at a time. The engine owns everything else: bounds, de-duplication,
upscaling, iteration, the generic presence predicate, result layers and
failure wrapping.

Capabilities a check provides:

- ``define_findings()``: declare error and warning findings
- ``resolve_inputs(ctx)``: False skips the whole check (with a diagnostic)
- ``resolve_thresholds(ctx, resolver)``: resolve configured limits once per run
- ``unit_grids(ctx, unit)``: grids of one unit, None skips the unit
- ``evaluate_cell(cell, grids, errors, warnings)``: record findings at one cell
- ``finalize(ctx)``: release check-level state
"""

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import ClassVar, Dict, Iterator, List, Optional

from gridval.checks.findings import Finding, FindingCatalog, Severity
from gridval.grid.grid import Grid
from gridval.grid.upscaler import UpscaleMethod

__all__ = [
    'Check',
    'CheckFailure',
    'Cell',
    'IterationUnit',
    'UnitGrids',
    'outside_range',
    'presence_inconsistent',
]


class CheckFailure(RuntimeError):
    """Unexpected failure inside a check run.

    Carries the check name and, when known, the iteration unit. The
    original exception is chained as ``__cause__``.
    """

    def __init__(self, check_name: str, unit: Optional["IterationUnit"] = None,
                 cause: Optional[BaseException] = None):
        self.check_name = check_name
        self.unit = unit
        self.cause = cause
        where = f" at {unit}" if unit is not None else ""
        super().__init__(f"Check {check_name} failed{where}: {cause!r}")


@dataclass(frozen=True)
class IterationUnit:
    """One pass of the engine: an entry (layer or system) in a period, both 1-based."""
    entry: int
    period: int

    def __str__(self) -> str:
        return f"L{self.entry} P{self.period}"


@dataclass
class UnitGrids:
    """Grids of one iteration unit.

    Attributes
    ----------
    parts : dict
        Co-located grids that together define the entry (e.g. factor and
        angle). They are subject to the presence predicate and are the
        identity of the unit for de-duplication.
    reference : str
        Part whose cell size and extent drive the unit.
    comparisons : dict
        Other grids read alongside (surface level, another dataset). They
        are upscaled to the reference cell size; None means unavailable.
    label : str, optional
        Extra label for result file names.
    upscale_method : UpscaleMethod, optional
        Overrides the check's upscale method for this unit.
    """

    parts: Dict[str, Optional[Grid]]
    reference: str
    comparisons: Dict[str, Optional[Grid]] = field(default_factory=dict)
    label: Optional[str] = None
    upscale_method: Optional[UpscaleMethod] = None

    @property
    def reference_grid(self) -> Optional[Grid]:
        return self.parts.get(self.reference)

    def missing_parts(self) -> List[str]:
        return [name for name, grid in self.parts.items() if grid is None]

    def combination(self) -> List[Grid]:
        """Grids identifying this unit for de-duplication."""
        grids = [g for g in self.parts.values() if g is not None]
        grids.extend(g for g in self.comparisons.values() if g is not None)
        return grids


@dataclass
class Cell:
    """Values read at one iteration cell.

    ``values`` holds parts and reconciled comparisons with no-data mapped
    to NaN; ``raw`` holds the same values unmasked. ``thresholds`` holds
    NaN for undefined limits, so any comparison against them is False.
    """

    x: float
    y: float
    values: Dict[str, float]
    thresholds: Dict[str, float]
    raw: Dict[str, float] = field(default_factory=dict)

    def __getitem__(self, name: str) -> float:
        return self.values.get(name, math.nan)

    def has(self, name: str) -> bool:
        return not math.isnan(self.values.get(name, math.nan))

    def threshold(self, name: str) -> float:
        return self.thresholds.get(name, math.nan)


def outside_range(value: float, low: float, high: float) -> bool:
    """True if ``value`` is below ``low`` or above ``high``.

    NaN on any side never counts as outside.
    """
    return value < low or value > high


def presence_inconsistent(parts: Dict[str, Optional[Grid]], cell: Cell) -> bool:
    """True if the co-located parts are only partly present at the cell.

    Constant parts are always present and are taken out of the count, so
    a constant part next to a no-data hole is not an inconsistency.
    """
    present = sum(1 for name in parts if cell.has(name))
    if present == len(parts):
        return False
    constants = sum(1 for grid in parts.values() if grid is not None and grid.is_constant)
    return present - constants > 0


class Check(ABC):
    """Base of all checks.

    Subclasses set ``name``, ``description``, ``dataset`` and
    ``settings_model``, and implement the abstract capabilities.

    Parameters
    ----------
    settings : CheckSettings, optional
        Frozen settings; defaults of ``settings_model`` when omitted.
    """

    name: ClassVar[str]
    description: ClassVar[str] = ""
    dataset: ClassVar[str]
    settings_model: ClassVar[type]

    def __init__(self, settings=None):
        self.settings = settings if settings is not None else self.settings_model()
        self.errors = FindingCatalog(Severity.ERROR)
        self.warnings = FindingCatalog(Severity.WARNING)
        self.inconsistent_finding: Optional[Finding] = None
        self.define_findings()

    @property
    def active(self) -> bool:
        return self.settings.active

    @property
    def upscale_method(self) -> UpscaleMethod:
        return UpscaleMethod(self.settings.upscale_method)

    @abstractmethod
    def define_findings(self) -> None:
        """Declare findings in ``self.errors`` and ``self.warnings``."""

    def resolve_inputs(self, ctx) -> bool:
        """Return False (after a diagnostic) when the governing dataset is unavailable."""
        if not ctx.datasets.is_active(self.dataset):
            ctx.diagnostics.warning(f"Dataset {self.dataset} missing or inactive, check skipped",
                                    scope=self.name)
            return False
        return True

    @abstractmethod
    def resolve_thresholds(self, ctx, resolver) -> Dict[str, Optional[Grid]]:
        """Resolve the check's limits; None marks an undefined limit."""

    def first_entry(self, ctx) -> int:
        return 1

    def units(self, ctx) -> Iterator[IterationUnit]:
        """Iteration units inside the run bounds and the available data."""
        for period in ctx.periods():
            for entry in ctx.entries(self.dataset, period, first=self.first_entry(ctx)):
                yield IterationUnit(entry, period)

    @abstractmethod
    def unit_grids(self, ctx, unit: IterationUnit) -> Optional[UnitGrids]:
        """Grids of one unit, or None to skip it."""

    @abstractmethod
    def evaluate_cell(self, cell: Cell, grids: UnitGrids, errors, warnings) -> None:
        """Record findings for one cell on the error and warning layers."""

    def finalize(self, ctx) -> None:
        pass

    def __repr__(self) -> str:
        return f"{type(self).__name__}(active={self.active})"
