"""Axis-aligned bounding boxes in model coordinates."""

import math
from dataclasses import dataclass
from typing import Optional, Tuple

__all__ = ['Extent']


@dataclass(frozen=True)
class Extent:
    """Axis-aligned rectangle ``(xmin, ymin, xmax, ymax)``.

    Extents are combined by intersection (the region every grid covers,
    used for iteration) or union (the region any grid covers, used for
    reporting).

    Raises
    ------
    ValueError
        If ``xmin > xmax`` or ``ymin > ymax``.
    """

    xmin: float
    ymin: float
    xmax: float
    ymax: float

    def __post_init__(self):
        if self.xmin > self.xmax or self.ymin > self.ymax:
            raise ValueError(
                f"Invalid extent ({self.xmin}, {self.ymin}, {self.xmax}, {self.ymax}): "
                "min must not exceed max"
            )

    @property
    def width(self) -> float:
        return self.xmax - self.xmin

    @property
    def height(self) -> float:
        return self.ymax - self.ymin

    @property
    def is_empty(self) -> bool:
        return self.width <= 0 or self.height <= 0

    def as_tuple(self) -> tuple:
        return (self.xmin, self.ymin, self.xmax, self.ymax)

    def contains(self, x: float, y: float) -> bool:
        """Return True if the point lies inside; max edges are exclusive."""
        return self.xmin <= x < self.xmax and self.ymin < y <= self.ymax

    def intersect(self, other: "Extent") -> Optional["Extent"]:
        """Return the overlapping region, or None when the extents are disjoint."""
        xmin = max(self.xmin, other.xmin)
        ymin = max(self.ymin, other.ymin)
        xmax = min(self.xmax, other.xmax)
        ymax = min(self.ymax, other.ymax)
        if xmin > xmax or ymin > ymax:
            return None
        return Extent(xmin, ymin, xmax, ymax)

    def union(self, other: "Extent") -> "Extent":
        return Extent(
            min(self.xmin, other.xmin),
            min(self.ymin, other.ymin),
            max(self.xmax, other.xmax),
            max(self.ymax, other.ymax),
        )

    def snap_inward(self, cellsize: float, tolerance: float = 1e-6,
                    origin: Optional[Tuple[float, float]] = None) -> Optional["Extent"]:
        """Shrink the extent to a whole number of cells from its upper-left corner.

        Parameters
        ----------
        cellsize : float
            Cell size to snap to.
        tolerance : float
            Fraction of a cell accepted as rounding noise.
        origin : (float, float), optional
            A grid-line crossing ``(x, y)``. When given, the upper-left
            corner is first moved inward onto the grid lines through it.

        Returns
        -------
        Extent or None
            Snapped extent, or None when less than one full cell fits in
            either direction.
        """
        xmin, ymax = self.xmin, self.ymax
        if origin is not None:
            ox, oy = origin
            xmin = ox + math.ceil((xmin - ox) / cellsize - tolerance) * cellsize
            ymax = oy - math.ceil((oy - ymax) / cellsize - tolerance) * cellsize
        ncols = math.floor((self.xmax - xmin) / cellsize + tolerance)
        nrows = math.floor((ymax - self.ymin) / cellsize + tolerance)
        if ncols < 1 or nrows < 1:
            return None
        return Extent(
            xmin,
            ymax - nrows * cellsize,
            xmin + ncols * cellsize,
            ymax,
        )

    def snap_outward(self, cellsize: float, tolerance: float = 1e-6,
                     origin: Optional[Tuple[float, float]] = None) -> "Extent":
        """Grow the extent to whole cells on the grid lines through ``origin``.

        ``origin`` defaults to the upper-left corner of the extent itself.
        """
        ox, oy = origin if origin is not None else (self.xmin, self.ymax)
        return Extent(
            ox + math.floor((self.xmin - ox) / cellsize + tolerance) * cellsize,
            oy - math.ceil((oy - self.ymin) / cellsize - tolerance) * cellsize,
            ox + math.ceil((self.xmax - ox) / cellsize - tolerance) * cellsize,
            oy - math.floor((oy - self.ymax) / cellsize + tolerance) * cellsize,
        )

    def __str__(self) -> str:
        return f"({self.xmin:g}, {self.ymin:g}, {self.xmax:g}, {self.ymax:g})"
