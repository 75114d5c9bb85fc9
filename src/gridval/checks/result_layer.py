"""Per-unit result layers accumulating finding codes.

A :class:`ResultLayer` is created by the engine for one severity of one
iteration unit of one check. It starts at zero, collects finding codes by
bitwise OR while the iterator visits cells, and is written to disk only
when at least one finding was recorded. Clean units leave no file behind.
"""

import json
import logging
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

import numpy as np

from gridval.checks.findings import Finding, FindingCatalog, Severity
from gridval.contracts import assert_result_layer, require
from gridval.grid.extent import Extent
from gridval.grid.grid import Grid
from gridval.grid.io import write_grid

__all__ = ['ResultLayer', 'Legend', 'LegendClass', 'COMBINED_RESULT_LABEL']

logger = logging.getLogger(__name__)

COMBINED_RESULT_LABEL = "Combined result"
COMBINED_RESULT_COLOR = "dimgray"


@dataclass(frozen=True)
class LegendClass:
    """One rendered class: the codes it covers, its label and colour."""
    codes: Tuple[int, ...]
    label: str
    color: str


@dataclass
class Legend:
    """Legend of a result layer.

    Zero ("no finding") is background and never a class.
    """

    title: str
    classes: List[LegendClass] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.classes)

    def colors(self) -> List[str]:
        return [c.color for c in self.classes]

    def labels(self) -> List[str]:
        return [c.label for c in self.classes]

    def class_index(self, values: np.ndarray) -> np.ndarray:
        """Map result codes to class positions, -1 for background or unknown codes."""
        values = np.asarray(values)
        index = np.full(values.shape, -1, dtype=int)
        for position, legend_class in enumerate(self.classes):
            index[np.isin(values, legend_class.codes)] = position
        return index

    def to_attrs(self) -> dict:
        payload = [{"codes": list(c.codes), "label": c.label, "color": c.color}
                   for c in self.classes]
        return {"legend_title": self.title, "legend": json.dumps(payload)}

    @classmethod
    def from_attrs(cls, attrs: dict) -> "Legend":
        payload = json.loads(attrs.get("legend", "[]"))
        classes = [LegendClass(tuple(int(c) for c in item["codes"]), item["label"], item["color"])
                   for item in payload]
        return cls(title=str(attrs.get("legend_title", "")), classes=classes)


class ResultLayer:
    """Bitmask grid of findings for one severity of one iteration unit.

    Parameters
    ----------
    check_name : str
        Name of the owning check, e.g. ``"ANI"``.
    dataset : str
        Dataset kind the unit belongs to.
    severity : Severity or str
        Severity of the findings accepted by this layer.
    catalog : FindingCatalog
        Catalog of the same severity.
    extent : Extent
        Iteration region of the unit.
    cellsize : float
        Iteration step of the unit.
    unit : IterationUnit, optional
        Entry and period of the unit, used for the file name.
    label : str, optional
        Extra file-name label (e.g. a compared dataset).
    summary : SummaryLayer, optional
        Run summary counting every finding that changes a cell.

    Raises
    ------
    ContractViolation
        If the catalog severity differs from the layer severity.
    """

    def __init__(self, check_name: str, dataset: str, severity: Severity | str,
                 catalog: FindingCatalog, extent: Extent, cellsize: float,
                 unit=None, label: Optional[str] = None, summary=None):
        self.severity = Severity(severity)
        require(
            catalog.severity == self.severity,
            f"Result layer contract violated: {catalog.severity.value} catalog "
            f"on {self.severity.value} layer"
        )
        self.check_name = check_name
        self.dataset = dataset
        self.catalog = catalog
        self.extent = extent
        self.cellsize = float(cellsize)
        self.unit = unit
        self.label = label
        self.summary = summary

        nrows = int(round(extent.height / cellsize))
        ncols = int(round(extent.width / cellsize))
        self.values = np.zeros((nrows, ncols), dtype=np.uint32)
        assert_result_layer(self.values, extent, cellsize)
        if summary is not None:
            summary.cover(extent, self.cellsize)

        self.has_results = False
        self.finding_counts: Counter = Counter()
        self._sources: List[Grid] = []
        self.legend: Optional[Legend] = None
        self.result_path: Optional[Path] = None

    def _cell(self, x: float, y: float) -> Tuple[int, int]:
        require(
            self.extent.contains(x, y),
            f"Result layer contract violated: ({x:g}, {y:g}) outside {self.extent}"
        )
        col = min(int((x - self.extent.xmin) // self.cellsize), self.values.shape[1] - 1)
        row = min(int((self.extent.ymax - y) // self.cellsize), self.values.shape[0] - 1)
        return row, col

    def add_finding(self, x: float, y: float, finding: Finding) -> bool:
        """OR the finding's code into the cell at ``(x, y)``.

        Returns
        -------
        bool
            True if the cell changed; False if the bit was already set.
        """
        require(
            finding.severity == self.severity,
            f"Result layer contract violated: {finding.severity.value} finding "
            f"'{finding.label}' on {self.severity.value} layer"
        )
        row, col = self._cell(x, y)
        self.has_results = True
        current = int(self.values[row, col])
        if current & finding.code:
            return False
        self.values[row, col] = current | finding.code
        self.finding_counts[finding.label] += 1
        if self.summary is not None:
            self.summary.add(x, y, self.check_name)
        return True

    def value_at(self, x: float, y: float) -> int:
        return int(self.values[self._cell(x, y)])

    def has_finding(self, x: float, y: float, finding: Finding) -> bool:
        return bool(self.value_at(x, y) & finding.code)

    @property
    def result_count(self) -> int:
        """Number of cells carrying at least one finding."""
        return int(np.count_nonzero(self.values))

    def add_source_file(self, grid: Optional[Grid]) -> None:
        """Record a contributing grid; duplicates (by identity) and constants are ignored."""
        if grid is None or grid.is_constant:
            return
        if any(grid is known for known in self._sources):
            return
        self._sources.append(grid)

    def add_source_files(self, grids: Iterable[Optional[Grid]]) -> None:
        for grid in grids:
            self.add_source_file(grid)

    @property
    def source_files(self) -> List[Grid]:
        return list(self._sources)

    def compress_legend(self, label: str = COMBINED_RESULT_LABEL) -> Legend:
        """Build the legend from the codes present in the layer.

        Each single-finding code present keeps its declared colour. All
        multi-bit combinations present share one combined class, so the
        legend never exceeds ``len(catalog) + 1`` classes.
        """
        present = [int(v) for v in np.unique(self.values) if v != 0]
        singles, combined = [], []
        for code in present:
            finding = self.catalog.by_code(code)
            if finding is not None:
                singles.append(LegendClass((code,), finding.label, finding.color))
            else:
                combined.append(code)

        classes = singles
        if combined:
            classes.append(LegendClass(tuple(combined), label, COMBINED_RESULT_COLOR))
        self.legend = Legend(title=f"{self.check_name} {self.severity.value}s", classes=classes)
        return self.legend

    def file_name(self) -> str:
        parts = [self.dataset]
        if self.unit is not None:
            parts.append(f"L{self.unit.entry}")
        if self.label:
            parts.append(self.label)
        parts.append(f"{self.severity.value}s")
        if self.unit is not None:
            parts.append(f"P{self.unit.period}")
        return "_".join(parts) + ".nc"

    @property
    def grid(self) -> Grid:
        return Grid(self.values, self.extent, self.cellsize, nodata=0,
                    name=f"{self.check_name.lower()}_{self.severity.value}s")

    def write_result_file(self, output_dir: Path | str, registry=None,
                          diagnostics=None, complevel: int = 4) -> Optional[Path]:
        """Persist the layer if it holds any finding.

        Parameters
        ----------
        output_dir : Path or str
            Results root; files go to ``<output_dir>/<check_name>/``.
        registry : ResultRegistry, optional
            Registry receiving the path and its source provenance.
        diagnostics : Diagnostics, optional
            Sink for a summary message per written file.
        complevel : int
            zlib compression level.

        Returns
        -------
        Path or None
            Written file, or None for a layer without findings.
        """
        if not self.has_results:
            return None
        if self.legend is None:
            self.compress_legend()

        attrs = dict(self.legend.to_attrs())
        attrs.update({
            "check": self.check_name,
            "dataset": self.dataset,
            "severity": self.severity.value,
            "finding_codes": json.dumps(self.catalog.labels()),
            "sources": json.dumps([str(g.path or g.name) for g in self._sources]),
        })
        path = Path(output_dir) / self.check_name / self.file_name()
        write_grid(self.grid, path, attrs=attrs, complevel=complevel, variable="result")
        self.result_path = path

        counts = ", ".join(f"{label}: {n}" for label, n in self.finding_counts.items())
        logger.info("Wrote %s (%d cells; %s)", path.name, self.result_count, counts)
        if diagnostics is not None:
            diagnostics.info(f"{self.result_count} cells with {self.severity.value}s ({counts})",
                             scope=self.check_name, source=path.name, indent=1)
        if registry is not None:
            registry.register_result(
                path,
                check_name=self.check_name,
                dataset=self.dataset,
                severity=self.severity.value,
                entry=self.unit.entry if self.unit is not None else None,
                period=self.unit.period if self.unit is not None else None,
                label=self.label,
                result_count=self.result_count,
                findings=dict(self.finding_counts),
                sources=[g.path or g.name for g in self._sources],
            )
        return path

    def release(self) -> None:
        self._sources.clear()
        self.values = np.zeros((0, 0), dtype=np.uint32)

    def __repr__(self) -> str:
        return (f"ResultLayer({self.check_name}, {self.dataset}, {self.severity.value}, "
                f"results={self.result_count})")
