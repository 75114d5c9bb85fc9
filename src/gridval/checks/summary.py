"""Run-wide summary of findings per severity.

A :class:`SummaryLayer` counts, per cell, the findings of one severity
recorded over all checks and units of a run. Result layers report every
finding that changes one of their cells, so a cell flagged by two checks,
or by two findings of one check, counts two.

The summary grid is fixed to the run extent when one is configured and
findings outside it are not counted. Without a run extent it grows with
the result layers that are created. Its cell size is the cell size of the
first result layer (or ``min_cellsize`` when that is larger); findings of
layers at another resolution are counted in the summary cell holding their
cell centre.
"""

import json
import logging
from collections import Counter
from pathlib import Path
from typing import Dict, List, Optional

import numpy as np

from gridval.checks.findings import Severity
from gridval.contracts import assert_result_layer
from gridval.grid.extent import Extent
from gridval.grid.grid import Grid
from gridval.grid.io import write_grid

__all__ = ['SummaryLayer', 'SummaryLayers']

logger = logging.getLogger(__name__)

SUMMARY_DIRNAME = "summary"
SUMMARY_VARIABLE = "count"


class SummaryLayer:
    """Finding counts of one severity over a whole run.

    Parameters
    ----------
    severity : Severity or str
        Severity counted by this layer.
    extent : Extent, optional
        Run extent. Fixes the summary region when given.
    min_cellsize : float
        Lower bound of the summary cell size.
    """

    def __init__(self, severity: Severity | str, extent: Optional[Extent] = None,
                 min_cellsize: float = 0.0):
        self.severity = Severity(severity)
        self.run_extent = extent
        self.min_cellsize = float(min_cellsize)
        self.extent: Optional[Extent] = None
        self.cellsize: Optional[float] = None
        self.values = np.zeros((0, 0), dtype=np.uint32)
        self.check_counts: Counter = Counter()
        self.summary_path: Optional[Path] = None

    def _allocate(self, extent: Extent) -> None:
        nrows = int(round(extent.height / self.cellsize))
        ncols = int(round(extent.width / self.cellsize))
        values = np.zeros((nrows, ncols), dtype=np.uint32)
        assert_result_layer(values, extent, self.cellsize)

        if self.extent is not None:
            row = int(round((extent.ymax - self.extent.ymax) / self.cellsize))
            col = int(round((self.extent.xmin - extent.xmin) / self.cellsize))
            old_rows, old_cols = self.values.shape
            values[row:row + old_rows, col:col + old_cols] = self.values
        self.extent = extent
        self.values = values

    def cover(self, extent: Extent, cellsize: float) -> None:
        """Make room for a result layer over ``extent`` at ``cellsize``."""
        if self.cellsize is None:
            self.cellsize = max(float(cellsize), self.min_cellsize)
            if self.run_extent is not None:
                self._allocate(self.run_extent.snap_outward(self.cellsize))
            else:
                self._allocate(extent.snap_outward(self.cellsize))
            return

        if self.run_extent is not None:
            return
        wanted = self.extent.union(extent).snap_outward(
            self.cellsize, origin=(self.extent.xmin, self.extent.ymax))
        if wanted != self.extent:
            self._allocate(wanted)
            logger.debug("Summary %ss grown to %s", self.severity.value, wanted)

    def add(self, x: float, y: float, check_name: str) -> bool:
        """Count one finding at ``(x, y)``; False when the point lies outside the summary."""
        if self.extent is None or not self.extent.contains(x, y):
            return False
        col = min(int((x - self.extent.xmin) // self.cellsize), self.values.shape[1] - 1)
        row = min(int((self.extent.ymax - y) // self.cellsize), self.values.shape[0] - 1)
        self.values[row, col] += 1
        self.check_counts[check_name] += 1
        return True

    @property
    def total(self) -> int:
        return int(self.values.sum())

    @property
    def result_count(self) -> int:
        """Number of cells with at least one finding."""
        return int(np.count_nonzero(self.values))

    def count_at(self, x: float, y: float) -> int:
        if self.extent is None or not self.extent.contains(x, y):
            return 0
        col = min(int((x - self.extent.xmin) // self.cellsize), self.values.shape[1] - 1)
        row = min(int((self.extent.ymax - y) // self.cellsize), self.values.shape[0] - 1)
        return int(self.values[row, col])

    @property
    def grid(self) -> Grid:
        return Grid(self.values, self.extent, self.cellsize, nodata=0,
                    name=f"summary_{self.severity.value}s")

    def file_name(self) -> str:
        return f"summary_{self.severity.value}s.nc"

    def write(self, output_dir: Path | str, registry=None, diagnostics=None,
              complevel: int = 4) -> Optional[Path]:
        """Persist the counts if any finding was recorded.

        Files go to ``<output_dir>/summary/summary_<severity>s.nc`` and are
        registered under the check name ``SUMMARY``.
        """
        if self.total == 0:
            return None

        attrs = {
            "severity": self.severity.value,
            "total": self.total,
            "check_counts": json.dumps(dict(self.check_counts)),
        }
        path = Path(output_dir) / SUMMARY_DIRNAME / self.file_name()
        write_grid(self.grid, path, attrs=attrs, complevel=complevel, variable=SUMMARY_VARIABLE)
        self.summary_path = path

        logger.info("Wrote %s (%d %ss in %d cells)", path.name, self.total,
                    self.severity.value, self.result_count)
        if diagnostics is not None:
            diagnostics.info(f"{self.total} {self.severity.value}s in {self.result_count} cells",
                             scope="SUMMARY", source=path.name)
        if registry is not None:
            registry.register_result(
                path,
                check_name="SUMMARY",
                dataset="SUMMARY",
                severity=self.severity.value,
                result_count=self.result_count,
                findings=dict(self.check_counts),
            )
        return path

    def release(self) -> None:
        self.values = np.zeros((0, 0), dtype=np.uint32)
        self.extent = None
        self.cellsize = None

    def __repr__(self) -> str:
        return f"SummaryLayer({self.severity.value}, total={self.total})"


class SummaryLayers:
    """One :class:`SummaryLayer` per severity.

    Example usage::

        summaries = SummaryLayers(extent=run_extent)
        ctx = CheckContext(datasets=model, output_dir=out, summary_layers=summaries)
        CheckEngine(ctx).run_checks(checks)
        paths = summaries.write(out, registry=result_registry)
    """

    def __init__(self, extent: Optional[Extent] = None, min_cellsize: float = 0.0):
        self._layers: Dict[Severity, SummaryLayer] = {
            severity: SummaryLayer(severity, extent, min_cellsize) for severity in Severity
        }

    def __getitem__(self, severity: Severity | str) -> SummaryLayer:
        return self._layers[Severity(severity)]

    def totals(self) -> Dict[str, int]:
        return {severity.value: layer.total for severity, layer in self._layers.items()}

    def write(self, output_dir: Path | str, registry=None, diagnostics=None,
              complevel: int = 4) -> List[Path]:
        paths = []
        for layer in self._layers.values():
            path = layer.write(output_dir, registry=registry, diagnostics=diagnostics,
                               complevel=complevel)
            if path is not None:
                paths.append(path)
        return paths

    def release(self) -> None:
        for layer in self._layers.values():
            layer.release()
