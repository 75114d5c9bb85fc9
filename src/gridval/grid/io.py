"""Read and write grids as netCDF files.

Grid files hold a single 2-D variable on ``(y, x)`` cell-centre coordinates.
The no-data sentinel is stored as the ``nodata`` attribute (and as
``_FillValue``), the cell size as ``cellsize``. Extra attributes, such as
a result layer's legend, travel with the variable.

:class:`GridLoader` caches grids by resolved path so that two dataset
entries pointing at the same file share one :class:`Grid` object. The
check engine relies on that identity to skip grid combinations it has
already evaluated.
"""

import logging
from pathlib import Path
from typing import Dict, Optional

import numpy as np
import xarray as xr

from gridval.grid.extent import Extent
from gridval.grid.grid import Grid

__all__ = ['GridLoader', 'read_grid', 'write_grid']

logger = logging.getLogger(__name__)


def _pick_variable(ds: xr.Dataset, variable: Optional[str]) -> str:
    if variable is not None:
        if variable not in ds.data_vars:
            raise KeyError(f"Variable '{variable}' not found, available: {list(ds.data_vars)}")
        return variable
    for name, da in ds.data_vars.items():
        if da.dims == ("y", "x"):
            return name
    raise ValueError(f"No 2-D (y, x) variable found, available: {list(ds.data_vars)}")


def _cellsize(coord: np.ndarray, attrs: dict) -> float:
    if "cellsize" in attrs:
        return float(attrs["cellsize"])
    if coord.size < 2:
        raise ValueError("Cannot infer cell size from a single coordinate without 'cellsize' attribute")
    return float(abs(coord[1] - coord[0]))


def read_grid(path: Path | str, variable: Optional[str] = None) -> Grid:
    """Read a grid from a netCDF file.

    Parameters
    ----------
    path : Path or str
        netCDF file.
    variable : str, optional
        Variable to read. Defaults to the first ``(y, x)`` variable.

    Returns
    -------
    Grid
        Grid with rows ordered north to south.

    Raises
    ------
    FileNotFoundError
        If the file does not exist.
    ValueError
        If the file holds no usable 2-D variable.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Grid file not found: {path}")

    with xr.open_dataset(path, mask_and_scale=False) as ds:
        name = _pick_variable(ds, variable)
        da = ds[name].load()

    x = np.asarray(da["x"].values, dtype=float)
    y = np.asarray(da["y"].values, dtype=float)
    values = np.asarray(da.values)
    if y.size > 1 and y[1] > y[0]:
        # Stored south to north
        y = y[::-1]
        values = values[::-1, :]

    cellsize = _cellsize(x if x.size > 1 else y, da.attrs)
    nodata = da.attrs.get("nodata", da.attrs.get("_FillValue", np.nan))
    half = cellsize / 2.0
    extent = Extent(x[0] - half, y[-1] - half, x[-1] + half, y[0] + half)

    logger.debug("Read grid %s: shape=%s, cellsize=%g", path.name, values.shape, cellsize)
    return Grid(values, extent, cellsize, nodata=float(nodata), name=path.stem, path=path)


def write_grid(grid: Grid, path: Path | str, attrs: Optional[dict] = None,
               complevel: int = 4, variable: Optional[str] = None) -> Path:
    """Write a grid to a compressed netCDF file.

    Parameters
    ----------
    grid : Grid
        Spatial grid to write. Constant grids cannot be written.
    path : Path or str
        Output file; parent directories are created.
    attrs : dict, optional
        Extra variable attributes (strings and numbers).
    complevel : int
        zlib compression level.
    variable : str, optional
        Variable name, defaults to the grid name.

    Returns
    -------
    Path
        The written file.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    name = variable or grid.name
    da = grid.to_dataarray(name=name)
    if attrs:
        da.attrs.update(attrs)
    # _FillValue is carried by encoding, not attrs
    da.attrs.pop("_FillValue", None)

    fill = grid.nodata
    if np.isnan(fill) and not np.issubdtype(grid.values.dtype, np.floating):
        fill = None
    encoding = {name: {"zlib": True, "complevel": complevel, "_FillValue": fill}}
    da.to_dataset().to_netcdf(path, mode="w", engine="netcdf4", format="NETCDF4",
                              encoding=encoding)
    logger.debug("Wrote grid %s", path)
    return path


class GridLoader:
    """Path-cached grid reader.

    Repeated loads of the same file return the same :class:`Grid` object
    until the entry is released.

    Example usage::

        loader = GridLoader()
        top = loader.load("model/top_l1.nc")
        assert loader.load("model/./top_l1.nc") is top
        loader.clear()
    """

    def __init__(self):
        self._cache: Dict[Path, Grid] = {}

    def load(self, path: Path | str, variable: Optional[str] = None) -> Grid:
        key = Path(path).expanduser().resolve()
        grid = self._cache.get(key)
        if grid is None:
            grid = read_grid(key, variable=variable)
            self._cache[key] = grid
            logger.debug("Cached grid %s (%d cached)", key.name, len(self._cache))
        return grid

    def release(self, path: Path | str) -> None:
        self._cache.pop(Path(path).expanduser().resolve(), None)

    def clear(self) -> None:
        self._cache.clear()

    def __contains__(self, path) -> bool:
        return Path(path).expanduser().resolve() in self._cache

    def __len__(self) -> int:
        return len(self._cache)
