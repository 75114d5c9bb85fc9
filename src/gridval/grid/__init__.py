"""Grid primitives: extents, grids, grid I/O, upscaling and cell iteration."""

from gridval.grid.extent import Extent
from gridval.grid.grid import Grid, ConstantGrid
from gridval.grid.io import GridLoader, read_grid, write_grid
from gridval.grid.upscaler import GridUpscaler, UpscaleMethod, upscale
from gridval.grid.iterator import CellIterator

__all__ = [
    "Extent",
    "Grid",
    "ConstantGrid",
    "GridLoader",
    "read_grid",
    "write_grid",
    "GridUpscaler",
    "UpscaleMethod",
    "upscale",
    "CellIterator",
]
