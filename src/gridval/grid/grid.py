"""In-memory raster grids.

A :class:`Grid` is a uniformly spaced 2-D field with an extent, a cell size
and a no-data sentinel. Every consumer in the engine reads grids by world
coordinate, so grids of different resolution stay aligned without sharing
an index space.

A :class:`ConstantGrid` stands in for a quantity that was configured as a
single number. It has no extent, no cell size and never reads as no-data.
"""

import math
from pathlib import Path
from typing import Optional, Tuple

import numpy as np
import xarray as xr

from gridval.contracts import assert_grid
from gridval.grid.extent import Extent

__all__ = ['Grid', 'ConstantGrid']


class Grid:
    """Uniform 2-D raster with no-data sentinel.

    Parameters
    ----------
    values : np.ndarray
        Cell values with shape ``(nrows, ncols)``. Row 0 is the northern
        row, so row index grows with decreasing Y.
    extent : Extent
        Bounding box. Width and height must be multiples of ``cellsize``.
    cellsize : float
        Uniform X/Y step.
    nodata : float, optional
        No-data sentinel. NaN is allowed (default).
    name : str, optional
        Display name used in diagnostics.
    path : Path or str, optional
        Source file, if the grid was read from disk.

    Raises
    ------
    ContractViolation
        If the array does not match the extent and cell size.
    """

    is_constant = False

    def __init__(self, values: np.ndarray, extent: Extent, cellsize: float,
                 nodata: float = np.nan, name: Optional[str] = None,
                 path: Optional[Path | str] = None):
        values = np.asarray(values)
        assert_grid(values, extent, cellsize)
        self.values = values
        self.extent = extent
        self.cellsize = float(cellsize)
        self.nodata = float(nodata)
        self.path = Path(path) if path is not None else None
        self.name = name or (self.path.stem if self.path is not None else "grid")

    @property
    def shape(self) -> Tuple[int, int]:
        return self.values.shape

    @property
    def nrows(self) -> int:
        return self.values.shape[0]

    @property
    def ncols(self) -> int:
        return self.values.shape[1]

    @property
    def x_centers(self) -> np.ndarray:
        return self.extent.xmin + (np.arange(self.ncols) + 0.5) * self.cellsize

    @property
    def y_centers(self) -> np.ndarray:
        return self.extent.ymax - (np.arange(self.nrows) + 0.5) * self.cellsize

    def is_nodata(self, value: float) -> bool:
        """Return True if ``value`` equals the sentinel (NaN-aware)."""
        if math.isnan(value):
            return True
        return value == self.nodata

    def nodata_mask(self) -> np.ndarray:
        """Boolean array marking no-data cells."""
        if np.issubdtype(self.values.dtype, np.floating):
            mask = np.isnan(self.values)
        else:
            mask = np.zeros(self.shape, dtype=bool)
        if not math.isnan(self.nodata):
            mask |= self.values == self.nodata
        return mask

    def row_col(self, x: float, y: float) -> Optional[Tuple[int, int]]:
        """Return ``(row, col)`` of the cell containing the point, or None outside."""
        if not self.extent.contains(x, y):
            return None
        col = int((x - self.extent.xmin) // self.cellsize)
        row = int((self.extent.ymax - y) // self.cellsize)
        # Guard against float rounding on the last row/column
        return min(row, self.nrows - 1), min(col, self.ncols - 1)

    def cell_center(self, row: int, col: int) -> Tuple[float, float]:
        return (
            self.extent.xmin + (col + 0.5) * self.cellsize,
            self.extent.ymax - (row + 0.5) * self.cellsize,
        )

    def value_at(self, x: float, y: float) -> float:
        """Value of the cell containing ``(x, y)``, or ``nodata`` outside the grid."""
        rc = self.row_col(x, y)
        if rc is None:
            return self.nodata
        return float(self.values[rc])

    def to_dataarray(self, name: Optional[str] = None) -> xr.DataArray:
        """Wrap the grid as an ``xarray.DataArray`` on cell-centre coordinates."""
        return xr.DataArray(
            self.values,
            dims=("y", "x"),
            coords={"y": self.y_centers, "x": self.x_centers},
            name=name or self.name,
            attrs={"nodata": self.nodata, "cellsize": self.cellsize},
        )

    def __repr__(self) -> str:
        return (f"Grid(name={self.name!r}, shape={self.shape}, extent={self.extent}, "
                f"cellsize={self.cellsize:g}, nodata={self.nodata:g})")


class ConstantGrid(Grid):
    """Grid with one value everywhere and no stored data.

    Constant grids have no extent and no cell size: they never restrict
    the iteration region and are excluded from presence bookkeeping.
    """

    is_constant = True

    def __init__(self, value: float, name: Optional[str] = None):
        self.value = float(value)
        self.values = None
        self.extent = None
        self.cellsize = None
        self.nodata = np.nan
        self.path = None
        self.name = name or f"constant {self.value:g}"

    @property
    def shape(self):
        return None

    def is_nodata(self, value: float) -> bool:
        return False

    def row_col(self, x: float, y: float):
        return None

    def value_at(self, x: float, y: float) -> float:
        return self.value

    def to_dataarray(self, name: Optional[str] = None) -> xr.DataArray:
        raise TypeError("A constant grid has no spatial layout")

    def __repr__(self) -> str:
        return f"ConstantGrid({self.value:g})"
