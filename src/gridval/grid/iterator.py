"""Synchronized cell iteration over several grids.

A :class:`CellIterator` walks the intersection of all registered grids at
one step size and reads every grid by world coordinate. The step is the
coarsest cell size unless the caller fixes it, as the engine does with the
cell size of the grid under check. Grids that were upscaled individually
therefore stay aligned no matter how their own rows and columns are laid
out.
"""

import logging
import math
from typing import Iterable, Iterator, List, Optional, Tuple

from gridval.grid.extent import Extent
from gridval.grid.grid import Grid

__all__ = ['CellIterator']

logger = logging.getLogger(__name__)


class CellIterator:
    """Cursor over the common cells of a set of grids.

    **Registration**

    Grids are added with :meth:`add_grid`. ``None`` entries stand for
    unavailable inputs and are accepted silently. Constant grids are read
    like any other grid but never restrict the iteration region.

    **Region**

    The region is the intersection of the extents of all spatial grids and
    the optional requested extent, shrunk to whole cells of the step size.
    The step is ``step`` when given, otherwise the coarsest cell size among
    the spatial grids. With ``align_extent`` the region is also moved onto
    the cell lines of that extent, so every visited cell centre is a cell
    centre of the aligned grid. When less than one cell remains the
    iterator is empty and visits nothing.

    **Order**

    Row-major: Y descending (north to south), then X ascending. The cursor
    sits on cell centres.

    Parameters
    ----------
    extent : Extent, optional
        Requested extent restricting the iteration region.
    step : float, optional
        Fixed step size. Coarser grids are then read at every step.
    align_extent : Extent, optional
        Extent whose upper-left corner anchors the cell lines.

    Example usage::

        iterator = CellIterator(run_extent)
        iterator.add_grids([factor, angle, kd])
        iterator.check_extent(diagnostics, scope="ANI")
        for x, y in iterator:
            factor_value = iterator.get_value(factor)
    """

    def __init__(self, extent: Optional[Extent] = None, step: Optional[float] = None,
                 align_extent: Optional[Extent] = None):
        self.requested_extent = extent
        self.requested_step = step
        self.align_extent = align_extent
        self._grids: List[Optional[Grid]] = []
        self._intersection: Optional[Extent] = None
        self._computed = False
        self.step: Optional[float] = None
        self.row = 0
        self.col = 0
        self.nrows = 0
        self.ncols = 0

    def add_grid(self, grid: Optional[Grid]) -> None:
        self._grids.append(grid)
        self._computed = False

    def add_grids(self, grids: Iterable[Optional[Grid]]) -> None:
        for grid in grids:
            self.add_grid(grid)

    @property
    def grids(self) -> List[Grid]:
        """Registered, non-null grids."""
        return [g for g in self._grids if g is not None]

    @property
    def spatial_grids(self) -> List[Grid]:
        return [g for g in self._grids if g is not None and not g.is_constant]

    def check_extent(self, diagnostics=None, scope: Optional[str] = None,
                     indent: int = 0, extra_grids: Iterable[Optional[Grid]] = ()) -> bool:
        """Report cell-size and extent mismatches among the spatial grids.

        Mismatches are warnings only; iteration proceeds on the intersection.

        Parameters
        ----------
        diagnostics : Diagnostics, optional
            Sink for the warnings. Falls back to this module's logger.
        scope : str, optional
            Scope label for the diagnostics (usually the check name).
        indent : int
            Indentation level of the diagnostics.
        extra_grids : iterable of Grid, optional
            Grids compared as well without restricting the iteration
            region, such as threshold grids.

        Returns
        -------
        bool
            True when all spatial grids share cell size and extent.
        """
        spatial = self.spatial_grids
        if not spatial:
            return True
        spatial += [g for g in extra_grids if g is not None and not g.is_constant]

        first = spatial[0]
        consistent = True
        for grid in spatial[1:]:
            if not math.isclose(grid.cellsize, first.cellsize):
                consistent = False
                self._report(diagnostics, scope, grid.name, indent,
                             f"Cell size {grid.cellsize:g} differs from {first.name} ({first.cellsize:g})")
            if grid.extent != first.extent:
                consistent = False
                self._report(diagnostics, scope, grid.name, indent,
                             f"Extent {grid.extent} differs from {first.name} ({first.extent}), "
                             "checking the intersection only")
        return consistent

    @staticmethod
    def _report(diagnostics, scope, source, indent, message):
        if diagnostics is not None:
            diagnostics.warning(message, scope=scope, source=source, indent=indent)
        else:
            logger.warning("%s: %s", source, message)

    def compute_intersection(self) -> Optional[Extent]:
        """Compute and return the iteration region (None when empty).

        Raises
        ------
        ValueError
            If no spatial grid was registered.
        """
        spatial = self.spatial_grids
        if not spatial:
            raise ValueError("CellIterator needs at least one non-null, non-constant grid")

        self.step = self.requested_step or max(g.cellsize for g in spatial)
        region: Optional[Extent] = self.requested_extent
        for grid in spatial:
            region = grid.extent if region is None else region.intersect(grid.extent)
            if region is None:
                break

        origin = None
        if self.align_extent is not None:
            origin = (self.align_extent.xmin, self.align_extent.ymax)
        self._intersection = (region.snap_inward(self.step, origin=origin)
                              if region is not None else None)
        if self._intersection is None:
            self.nrows = self.ncols = 0
        else:
            self.nrows = int(round(self._intersection.height / self.step))
            self.ncols = int(round(self._intersection.width / self.step))
        self._computed = True
        self.reset()
        return self._intersection

    @property
    def intersection(self) -> Optional[Extent]:
        if not self._computed:
            self.compute_intersection()
        return self._intersection

    def is_empty(self) -> bool:
        return self.intersection is None

    @property
    def cell_count(self) -> int:
        if self.is_empty():
            return 0
        return self.nrows * self.ncols

    def reset(self) -> None:
        self.row = 0
        self.col = 0

    def advance(self) -> None:
        self.col += 1
        if self.col >= self.ncols:
            self.col = 0
            self.row += 1

    def is_inside_extent(self) -> bool:
        if self.is_empty():
            return False
        return 0 <= self.row < self.nrows and 0 <= self.col < self.ncols

    @property
    def x(self) -> float:
        return self.intersection.xmin + (self.col + 0.5) * self.step

    @property
    def y(self) -> float:
        return self.intersection.ymax - (self.row + 0.5) * self.step

    def get_value(self, grid: Optional[Grid]) -> float:
        """Value of ``grid`` at the cursor.

        Returns the grid's no-data sentinel outside its own extent and NaN
        for a null grid.
        """
        if grid is None:
            return math.nan
        return grid.value_at(self.x, self.y)

    def __iter__(self) -> Iterator[Tuple[float, float]]:
        if not self._computed:
            self.compute_intersection()
        self.reset()
        while self.is_inside_extent():
            yield self.x, self.y
            self.advance()
