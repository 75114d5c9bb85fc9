"""Quicklook rendering of result layers.

Renders one result file to an image: each legend class in its declared
colour on a white background, with a patch legend beside the map.
"""

import logging
from pathlib import Path
from typing import Optional, Tuple

import numpy as np
import xarray as xr
import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt
from matplotlib.colors import ListedColormap
from matplotlib.patches import Patch

from gridval.checks.result_layer import Legend
from gridval.grid.io import read_grid

__all__ = ['ResultPlotter']

logger = logging.getLogger(__name__)

RESULT_VARIABLE = "result"


class ResultPlotter:
    """Renders result layers written by the check engine.

    The legend is read back from the file attributes, so a plot shows
    exactly the classes the layer was written with: one per single finding
    present and at most one combined class.

    Example usage::

        plotter = ResultPlotter(dpi=150)
        png = plotter.plot_result_file("results/ANI/ANI_L1_errors_P1.nc")
    """

    def __init__(self, dpi: int = 150, figsize: Tuple[float, float] = (8.0, 8.0),
                 output_format: str = "png"):
        self.dpi = dpi
        self.figsize = tuple(figsize)
        self.output_format = output_format
        logger.debug("ResultPlotter initialized (format=%s, dpi=%d)", output_format, dpi)

    @staticmethod
    def _read_attrs(nc_path: Path) -> dict:
        with xr.open_dataset(nc_path, mask_and_scale=False) as ds:
            if RESULT_VARIABLE not in ds.data_vars:
                raise ValueError(f"{nc_path.name} is not a result file (no '{RESULT_VARIABLE}' variable)")
            return dict(ds[RESULT_VARIABLE].attrs)

    def plot_result_file(self, nc_path: Path | str, output_path: Optional[Path | str] = None) -> Path:
        """Render a result file.

        Parameters
        ----------
        nc_path : Path or str
            Result layer written by ``ResultLayer.write_result_file``.
        output_path : Path or str, optional
            Image file. Defaults to the result file with the image extension.

        Returns
        -------
        Path
            The written image.

        Raises
        ------
        ValueError
            If the file is not a result file or carries no legend.
        """
        nc_path = Path(nc_path)
        attrs = self._read_attrs(nc_path)
        legend = Legend.from_attrs(attrs)
        if len(legend) == 0:
            raise ValueError(f"{nc_path.name} carries no legend")

        grid = read_grid(nc_path, variable=RESULT_VARIABLE)
        index = np.ma.masked_less(legend.class_index(grid.values), 0)

        fig, ax = plt.subplots(figsize=self.figsize, dpi=self.dpi)
        try:
            e = grid.extent
            ax.imshow(
                index,
                cmap=ListedColormap(legend.colors()),
                vmin=-0.5,
                vmax=len(legend) - 0.5,
                extent=(e.xmin, e.xmax, e.ymin, e.ymax),
                origin="upper",
                interpolation="nearest",
            )
            handles = [Patch(facecolor=c.color, edgecolor="black", label=c.label)
                       for c in legend.classes]
            ax.legend(handles=handles, title=legend.title, loc="upper left",
                      bbox_to_anchor=(1.02, 1.0), fontsize="small", frameon=False)
            ax.set_title(nc_path.stem)
            ax.set_xlabel("x")
            ax.set_ylabel("y")
            ax.set_aspect("equal")

            if output_path is None:
                output_path = nc_path.with_suffix(f".{self.output_format}")
            output_path = Path(output_path)
            output_path.parent.mkdir(parents=True, exist_ok=True)
            fig.savefig(output_path, bbox_inches="tight")
        finally:
            plt.close(fig)

        logger.info("Plot saved: %s", output_path)
        return output_path
