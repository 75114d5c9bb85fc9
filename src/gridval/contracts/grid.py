"""Grid and result-layer contracts.

Enforces that every spatial grid handed to the iterator, the upscaler or
a result layer has an array that matches its extent and cell size.
"""

import numpy as np

from gridval.contracts.base import require

# Fraction of a cell tolerated when matching extents to cell multiples
CELL_TOLERANCE = 1e-6


def _cell_count(length: float, cellsize: float) -> float:
    return length / cellsize


def assert_grid(values: np.ndarray, extent, cellsize: float) -> None:
    """Enforce the spatial grid contract.

    Parameters
    ----------
    values : np.ndarray
        Cell values, row 0 is the northern row.
    extent : Extent
        Bounding box of the grid.
    cellsize : float
        Uniform X/Y step.

    Raises
    ------
    ContractViolation
        If the array is not 2-D, the cell size is not positive, or the
        extent is not an integer multiple of the cell size matching the
        array shape.
    """
    require(
        cellsize is not None and cellsize > 0,
        f"Grid contract violated: cell size must be positive, got {cellsize}"
    )
    require(
        values.ndim == 2,
        f"Grid contract violated: values have {values.ndim} dims, expected 2"
    )

    ncols = _cell_count(extent.width, cellsize)
    nrows = _cell_count(extent.height, cellsize)
    require(
        abs(ncols - round(ncols)) <= CELL_TOLERANCE
        and abs(nrows - round(nrows)) <= CELL_TOLERANCE,
        f"Grid contract violated: extent {extent} is not a multiple of cell size {cellsize}"
    )
    require(
        values.shape == (int(round(nrows)), int(round(ncols))),
        f"Grid contract violated: shape {values.shape} does not match extent "
        f"({int(round(nrows))}, {int(round(ncols))})"
    )


def assert_result_layer(values: np.ndarray, extent, cellsize: float) -> None:
    """Enforce the result-layer contract.

    Result cells are unsigned 32-bit bitmasks laid out like any other grid.

    Raises
    ------
    ContractViolation
        If the dtype is not uint32 or the grid contract fails.
    """
    require(
        values.dtype == np.uint32,
        f"Result layer contract violated: dtype {values.dtype}, expected uint32"
    )
    assert_grid(values, extent, cellsize)
