"""Check engine: the per-check invocation loop.

For one check, the engine resolves inputs and thresholds, then walks the
iteration units (entry x period) inside the caller's bounds. Per unit it
skips missing and already-checked grid combinations, upscales comparison
grids to the reference resolution, iterates the common cells, applies the
presence predicate and the check's cell predicate, and writes the error
and warning layers that received findings. Findings that change a cell are
also counted in the run summary layers when the context holds them.

Failure semantics: expected conditions (inactive dataset, missing grids,
empty overlap, unusable threshold) are diagnosed and skipped. Anything
else raised inside a check run surfaces as :class:`CheckFailure` carrying
the check name and unit. :meth:`CheckEngine.run_checks` catches those per
check so the remaining checks still run.
"""

import logging
import math
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from gridval.checks.base import (
    Cell, Check, CheckFailure, IterationUnit, UnitGrids, presence_inconsistent,
)
from gridval.checks.findings import Severity
from gridval.checks.result_layer import ResultLayer
from gridval.checks.summary import SummaryLayers
from gridval.checks.thresholds import ThresholdResolver
from gridval.grid.extent import Extent
from gridval.grid.grid import Grid
from gridval.grid.iterator import CellIterator
from gridval.grid.upscaler import GridUpscaler, UpscaleMethod
from gridval.pipeline.diagnostics import Diagnostics

__all__ = ['CheckContext', 'CheckEngine', 'CheckRunSummary', 'CheckedCombinations', 'UnitScope']

logger = logging.getLogger(__name__)


@dataclass
class CheckContext:
    """Everything a check run needs from its surroundings.

    Attributes
    ----------
    datasets : DatasetAccessor
        Model grids.
    output_dir : Path
        Results root; each check writes to its own subdirectory.
    diagnostics : Diagnostics
        Diagnostic sink.
    registry : CheckRegistry, optional
        Source of other checks' settings snapshots.
    result_registry : ResultRegistry, optional
        Receives written result files.
    min_entry, max_entry, min_period, max_period : int
        Inclusive run bounds (1-based).
    extent : Extent, optional
        Region restricting every check.
    level_error_margin : float
        Tolerance of level comparisons.
    complevel : int
        zlib level of result files.
    summary_layers : SummaryLayers, optional
        Run-wide finding counts per severity.
    """

    datasets: object
    output_dir: Path
    diagnostics: Diagnostics = field(default_factory=Diagnostics)
    registry: object = None
    result_registry: object = None
    min_entry: int = 1
    max_entry: int = 999
    min_period: int = 1
    max_period: int = 999
    extent: Optional[Extent] = None
    level_error_margin: float = 0.005
    complevel: int = 4
    summary_layers: Optional[SummaryLayers] = None

    @classmethod
    def from_config(cls, config, datasets, output_dir: Path, diagnostics=None,
                    registry=None, result_registry=None,
                    summary_layers=None) -> "CheckContext":
        engine = config.engine
        return cls(
            datasets=datasets,
            output_dir=Path(output_dir),
            diagnostics=diagnostics or Diagnostics(),
            registry=registry,
            result_registry=result_registry,
            min_entry=engine.min_entry,
            max_entry=engine.max_entry,
            min_period=engine.min_period,
            max_period=engine.max_period,
            extent=Extent(*engine.extent) if engine.extent is not None else None,
            level_error_margin=engine.level_error_margin,
            complevel=config.output.complevel,
            summary_layers=summary_layers,
        )

    def periods(self) -> range:
        return range(self.min_period, min(self.max_period, self.datasets.period_count) + 1)

    def entries(self, kind: str, period: int, first: int = 1) -> range:
        count = self.datasets.entry_count(kind, period)
        return range(max(self.min_entry, first), min(self.max_entry, count) + 1)


@dataclass
class CheckRunSummary:
    """Outcome of one check run."""
    check: str
    units_evaluated: int = 0
    units_skipped: int = 0
    units_duplicate: int = 0
    result_files: List[Path] = field(default_factory=list)
    findings: Counter = field(default_factory=Counter)
    skipped: bool = False
    failed: Optional[str] = None


class CheckedCombinations:
    """Grid combinations already evaluated in one check run, compared by identity."""

    def __init__(self):
        self._keys = set()
        # Keeps the grids alive so their ids cannot be reused
        self._grids: List[Grid] = []

    @staticmethod
    def _key(grids: Iterable[Grid]) -> frozenset:
        return frozenset(id(g) for g in grids)

    def __contains__(self, grids) -> bool:
        return self._key(grids) in self._keys

    def add(self, grids: Iterable[Grid]) -> bool:
        """Record a combination; False if it was already recorded."""
        grids = list(grids)
        key = self._key(grids)
        if key in self._keys:
            return False
        self._keys.add(key)
        self._grids.extend(grids)
        return True

    def __len__(self) -> int:
        return len(self._keys)


class UnitScope:
    """Owns the upscalers and result layers of one iteration unit.

    Everything it owns is released when the ``with`` block ends.
    """

    def __init__(self, method: UpscaleMethod, scale_extent: Optional[Extent] = None):
        self.method = method
        self.scale_extent = scale_extent
        self._upscalers: List[GridUpscaler] = []
        self._layers: List[ResultLayer] = []

    def reconcile(self, grid: Optional[Grid], cellsize: float,
                  align_extent: Optional[Extent] = None) -> Optional[Grid]:
        upscaler = GridUpscaler(grid, self.method, self.scale_extent)
        self._upscalers.append(upscaler)
        return upscaler.retrieve(cellsize, align_extent)

    def track(self, layer: ResultLayer) -> ResultLayer:
        self._layers.append(layer)
        return layer

    def __enter__(self) -> "UnitScope":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        for upscaler in self._upscalers:
            upscaler.release()
        for layer in self._layers:
            layer.release()
        self._upscalers.clear()
        self._layers.clear()


def _read(grid: Optional[Grid], x: float, y: float):
    if grid is None:
        return math.nan, math.nan
    raw = grid.value_at(x, y)
    return raw, (math.nan if grid.is_nodata(raw) else raw)


class CheckEngine:
    """Runs checks against a model.

    Parameters
    ----------
    context : CheckContext
        Datasets, bounds, sinks and output location.

    Example usage::

        engine = CheckEngine(CheckContext(datasets=model, output_dir=out))
        summaries = engine.run_checks(registry.checks)
    """

    def __init__(self, context: CheckContext):
        self.ctx = context

    def run_checks(self, checks: Iterable[Check]) -> List[CheckRunSummary]:
        """Run checks one after another; a failing check does not stop the rest."""
        summaries = []
        for check in checks:
            try:
                summaries.append(self.run_check(check))
            except CheckFailure as e:
                logger.error("%s", e, exc_info=e.cause)
                self.ctx.diagnostics.error(str(e), scope=e.check_name)
                summaries.append(CheckRunSummary(check=check.name, failed=str(e)))
        return summaries

    def run_check(self, check: Check) -> CheckRunSummary:
        """Run one check over all units inside the bounds.

        Raises
        ------
        CheckFailure
            For any unexpected exception raised during the run.
        """
        ctx = self.ctx
        summary = CheckRunSummary(check=check.name)
        unit = None

        try:
            if not check.active:
                ctx.diagnostics.info("Check inactive, skipped", scope=check.name)
                summary.skipped = True
                return summary

            ctx.diagnostics.info(f"Checking {check.description or check.name}", scope=check.name)
            if not check.resolve_inputs(ctx):
                summary.skipped = True
                return summary

            with ThresholdResolver(diagnostics=ctx.diagnostics, check_name=check.name) as resolver:
                thresholds = check.resolve_thresholds(ctx, resolver)
                checked = CheckedCombinations()
                for unit in check.units(ctx):
                    self._run_unit(check, unit, thresholds, checked, summary)
                unit = None
                check.finalize(ctx)
        except CheckFailure:
            raise
        except Exception as e:
            raise CheckFailure(check.name, unit, e) from e

        ctx.diagnostics.info(
            f"Done: {summary.units_evaluated} evaluated, {summary.units_duplicate} already checked, "
            f"{summary.units_skipped} skipped, {len(summary.result_files)} result files",
            scope=check.name,
        )
        return summary

    def _run_unit(self, check: Check, unit: IterationUnit,
                  thresholds: Dict[str, Optional[Grid]],
                  checked: CheckedCombinations, summary: CheckRunSummary) -> None:
        ctx = self.ctx
        diag = ctx.diagnostics
        source = f"{check.dataset} {unit}"

        grids = check.unit_grids(ctx, unit)
        if grids is None:
            summary.units_skipped += 1
            return

        missing = grids.missing_parts()
        if missing:
            diag.warning(f"Missing {', '.join(missing)}, unit skipped",
                         scope=check.name, source=source, indent=1)
            summary.units_skipped += 1
            return

        if not checked.add(grids.combination()):
            diag.info("Files have been checked already", scope=check.name, source=source, indent=1)
            summary.units_duplicate += 1
            return

        spatial = [g for g in grids.parts.values() if not g.is_constant]
        spatial.sort(key=lambda g: g is not grids.reference_grid)
        if not spatial:
            diag.info("Only constant values, nothing to check", scope=check.name,
                      source=source, indent=1)
            summary.units_skipped += 1
            return
        reference = spatial[0]

        diag.info("Checking", scope=check.name, source=source, indent=1)
        method = grids.upscale_method or check.upscale_method

        with UnitScope(method) as scope:
            comparisons = {
                name: scope.reconcile(grid, reference.cellsize, reference.extent)
                for name, grid in grids.comparisons.items()
            }

            # One iteration cell per reference cell
            iterator = CellIterator(ctx.extent, step=reference.cellsize,
                                    align_extent=reference.extent)
            iterator.add_grids(grids.parts.values())
            iterator.add_grids(comparisons.values())
            iterator.check_extent(diag, scope=check.name, indent=2,
                                  extra_grids=thresholds.values())
            if iterator.is_empty():
                diag.info("No overlapping cells, nothing to check", scope=check.name,
                          source=source, indent=1)
                summary.units_skipped += 1
                return

            layers = {}
            run_summary = ctx.summary_layers
            for severity, catalog in ((Severity.ERROR, check.errors),
                                      (Severity.WARNING, check.warnings)):
                layer = scope.track(ResultLayer(
                    check.name, check.dataset, severity, catalog,
                    iterator.intersection, iterator.step, unit=unit, label=grids.label,
                    summary=run_summary[severity] if run_summary is not None else None,
                ))
                layer.add_source_files(grids.parts.values())
                layer.add_source_files(grids.comparisons.values())
                layers[severity] = layer
            errors, warnings = layers[Severity.ERROR], layers[Severity.WARNING]

            readers = dict(grids.parts)
            readers.update(comparisons)
            for x, y in iterator:
                raw, values = {}, {}
                for name, grid in readers.items():
                    raw[name], values[name] = _read(grid, x, y)
                limits = {name: _read(grid, x, y)[1] for name, grid in thresholds.items()}
                cell = Cell(x, y, values, limits, raw)

                if check.inconsistent_finding is not None and presence_inconsistent(grids.parts, cell):
                    errors.add_finding(x, y, check.inconsistent_finding)
                check.evaluate_cell(cell, grids, errors, warnings)

            for layer in (errors, warnings):
                layer.compress_legend()
                path = layer.write_result_file(ctx.output_dir, registry=ctx.result_registry,
                                               diagnostics=diag, complevel=ctx.complevel)
                if path is not None:
                    summary.result_files.append(path)
                    summary.findings.update(layer.finding_counts)

        summary.units_evaluated += 1
