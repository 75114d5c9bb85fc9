"""Resolution reconciliation (upscaling) of grids.

Checks compare grids of different resolution. Before a comparison grid is
read alongside the reference grid of a check, it is upscaled to the
reference cell size with an aggregation method chosen per check to bias
towards detection: ``minimum`` keeps a single low fine cell visible inside
a coarse cell, ``maximum`` does the same for high values.

Aggregation rule: every source cell whose centre falls inside a target cell
contributes to it, no-data cells never contribute, and a target cell without
contributions is no-data.
"""

import logging
from enum import Enum
from typing import Dict, Optional, Tuple

import numpy as np

from gridval.grid.extent import Extent
from gridval.grid.grid import Grid

__all__ = ['UpscaleMethod', 'GridUpscaler', 'upscale']

logger = logging.getLogger(__name__)

# Fraction of a cell accepted as float noise when snapping extents
SNAP_TOLERANCE = 1e-6


class UpscaleMethod(str, Enum):
    """Aggregation applied to source cells inside one target cell."""
    MINIMUM = "minimum"
    MAXIMUM = "maximum"
    MEAN = "mean"


def _target_extent(source: Extent, cellsize: float,
                   align: Optional[Extent] = None) -> Extent:
    """Snap ``source`` outward to whole target cells.

    The grid lines are anchored on the upper-left corner of ``align`` when
    given, otherwise on the upper-left corner of ``source``.
    """
    origin = (align.xmin, align.ymax) if align is not None else None
    return source.snap_outward(cellsize, SNAP_TOLERANCE, origin)


def _aggregate(source: Grid, target: Extent, cellsize: float,
               method: UpscaleMethod, clip: Optional[Extent] = None) -> np.ndarray:
    nrows = int(round(target.height / cellsize))
    ncols = int(round(target.width / cellsize))
    size = nrows * ncols

    xs, ys = np.meshgrid(source.x_centers, source.y_centers)
    values = source.values.astype(float).ravel()
    valid = ~source.nodata_mask().ravel()

    cols = np.floor((xs.ravel() - target.xmin) / cellsize).astype(int)
    rows = np.floor((target.ymax - ys.ravel()) / cellsize).astype(int)
    keep = valid & (cols >= 0) & (cols < ncols) & (rows >= 0) & (rows < nrows)
    if clip is not None:
        x, y = xs.ravel(), ys.ravel()
        keep &= (x >= clip.xmin) & (x < clip.xmax) & (y > clip.ymin) & (y <= clip.ymax)

    flat = rows[keep] * ncols + cols[keep]
    contrib = values[keep]
    counts = np.bincount(flat, minlength=size)

    if method == UpscaleMethod.MINIMUM:
        out = np.full(size, np.inf)
        np.minimum.at(out, flat, contrib)
    elif method == UpscaleMethod.MAXIMUM:
        out = np.full(size, -np.inf)
        np.maximum.at(out, flat, contrib)
    elif method == UpscaleMethod.MEAN:
        out = np.zeros(size)
        np.add.at(out, flat, contrib)
        out = out / np.maximum(counts, 1)
    else:
        raise ValueError(f"Unknown upscale method: {method}")

    out[counts == 0] = source.nodata
    return out.reshape(nrows, ncols)


def upscale(grid: Optional[Grid], cellsize: float, method: UpscaleMethod | str,
            align_extent: Optional[Extent] = None,
            scale_extent: Optional[Extent] = None) -> Optional[Grid]:
    """Upscale a grid once, without caching.

    Parameters
    ----------
    grid : Grid or None
        Source grid. None propagates as None.
    cellsize : float
        Target cell size.
    method : UpscaleMethod or str
        Aggregation method.
    align_extent : Extent, optional
        Extent whose upper-left corner anchors the target grid lines.
    scale_extent : Extent, optional
        Region to restrict the source to before upscaling.

    Returns
    -------
    Grid or None
        The source itself when it is constant or already at (or coarser
        than) ``cellsize``; otherwise a new grid.
    """
    if grid is None:
        return None
    if grid.is_constant or cellsize <= grid.cellsize * (1 + SNAP_TOLERANCE):
        return grid

    method = UpscaleMethod(method)
    source_extent = grid.extent
    if scale_extent is not None:
        source_extent = source_extent.intersect(scale_extent)
        if source_extent is None or source_extent.is_empty:
            logger.warning("Grid %s does not overlap scale extent %s", grid.name, scale_extent)
            return None

    target = _target_extent(source_extent, cellsize, align_extent)
    values = _aggregate(grid, target, cellsize, method,
                        clip=source_extent if scale_extent is not None else None)
    logger.debug("Upscaled %s from %g to %g (%s): %s -> %s",
                 grid.name, grid.cellsize, cellsize, method.value, grid.shape, values.shape)
    return Grid(values, target, cellsize, nodata=grid.nodata,
                name=f"{grid.name}_{method.value}_{cellsize:g}")


class GridUpscaler:
    """Caching upscaler bound to one source grid.

    Results are cached per ``(cellsize, target extent)`` until
    :meth:`release`. The upscaler is a context manager so the owner of an
    iteration unit can scope the cache to that unit.

    Parameters
    ----------
    source : Grid or None
        Grid to upscale. A None source yields None for every request.
    method : UpscaleMethod or str
        Aggregation method.
    scale_extent : Extent, optional
        Region the source is clipped to before upscaling.

    Example usage::

        with GridUpscaler(surface_level, UpscaleMethod.MINIMUM) as upscaler:
            coarse = upscaler.retrieve(250.0, align_extent=reference.extent)
    """

    def __init__(self, source: Optional[Grid], method: UpscaleMethod | str,
                 scale_extent: Optional[Extent] = None):
        self.source = source
        self.method = UpscaleMethod(method)
        self.scale_extent = scale_extent
        self._cache: Dict[Tuple[float, Extent], Grid] = {}

    def retrieve(self, cellsize: float, align_extent: Optional[Extent] = None) -> Optional[Grid]:
        """Return the source at ``cellsize``, computing it at most once."""
        source = self.source
        if source is None:
            return None
        if source.is_constant or cellsize <= source.cellsize * (1 + SNAP_TOLERANCE):
            return source

        source_extent = source.extent
        if self.scale_extent is not None:
            source_extent = source_extent.intersect(self.scale_extent)
            if source_extent is None or source_extent.is_empty:
                return None
        key = (float(cellsize), _target_extent(source_extent, cellsize, align_extent))

        cached = self._cache.get(key)
        if cached is not None:
            return cached
        grid = upscale(source, cellsize, self.method, align_extent, self.scale_extent)
        if grid is not None:
            self._cache[key] = grid
        return grid

    def release(self) -> None:
        self._cache.clear()

    def __len__(self) -> int:
        return len(self._cache)

    def __enter__(self) -> "GridUpscaler":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()
