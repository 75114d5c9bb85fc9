"""Anisotropy (ANI) check.

An anisotropy entry is defined by a factor in [0, 1] and an angle in
[0, 360] degrees. Both must be present or absent together. Values outside
those domains are errors; values outside the configured region range are
warnings, unless the same value is already a domain error. Where a kD
grid is available, anisotropy without a kD value is an error.
"""

import logging
import math
from typing import Dict, Optional

from gridval.checks.base import Cell, Check, UnitGrids, outside_range
from gridval.grid.grid import Grid
from gridval.schemas.checks import ANISettings

__all__ = ['ANICheck']

logger = logging.getLogger(__name__)

ANGLE_DOMAIN = (0.0, 360.0)
FACTOR_DOMAIN = (0.0, 1.0)


class ANICheck(Check):
    """Anisotropy factor and angle check."""

    name = "ANI"
    description = "Anisotropy factors and angles"
    dataset = "ANI"
    settings_model = ANISettings

    # Optional transmissivity dataset read alongside
    kd_dataset = "KDW"

    def define_findings(self):
        self.zero_nodata = self.errors.define(
            "NoData defined as zero", "ANI file with NoData value 0 reading 0", "gold")
        self.inconsistent_finding = self.errors.define(
            "Inconsistent ANI-files", "Factor and angle not defined at the same cells", "orange")
        self.invalid_angle = self.errors.define(
            "Invalid ANI-angle", "Angle outside [0, 360]", "red")
        self.invalid_factor = self.errors.define(
            "Invalid ANI-factor", "Factor outside [0, 1]", "darkred")
        self.missing_kd = self.errors.define(
            "Missing kD-value", "Anisotropy defined where kD is missing", "purple")

        self.angle_range = self.warnings.define(
            "ANI-angle outside defined range", "Angle outside the configured region range", "orange")
        self.factor_range = self.warnings.define(
            "ANI-factor outside defined range", "Factor outside the configured region range", "red")

    def resolve_thresholds(self, ctx, resolver) -> Dict[str, Optional[Grid]]:
        s = self.settings
        return {
            "min_angle": resolver.resolve(s.min_angle, "min_angle"),
            "max_angle": resolver.resolve(s.max_angle, "max_angle"),
            "min_factor": resolver.resolve(s.min_factor, "min_factor"),
            "max_factor": resolver.resolve(s.max_factor, "max_factor"),
        }

    def unit_grids(self, ctx, unit) -> Optional[UnitGrids]:
        datasets = ctx.datasets
        parts = {
            "factor": datasets.get_grid(self.dataset, unit.entry, "factor", unit.period),
            "angle": datasets.get_grid(self.dataset, unit.entry, "angle", unit.period),
        }
        comparisons = {}
        if datasets.is_active(self.kd_dataset):
            comparisons["kd"] = datasets.get_grid(self.kd_dataset, unit.entry, "value", unit.period)
        return UnitGrids(parts=parts, reference="factor", comparisons=comparisons)

    def evaluate_cell(self, cell: Cell, grids: UnitGrids, errors, warnings) -> None:
        x, y = cell.x, cell.y
        factor, angle = cell["factor"], cell["angle"]

        if self.settings.zero_nodata_is_error:
            for name in ("factor", "angle"):
                grid = grids.parts[name]
                if not grid.is_constant and grid.nodata == 0 and cell.raw.get(name) == 0:
                    errors.add_finding(x, y, self.zero_nodata)

        if cell.has("angle"):
            if outside_range(angle, *ANGLE_DOMAIN):
                errors.add_finding(x, y, self.invalid_angle)
            elif outside_range(angle, cell.threshold("min_angle"), cell.threshold("max_angle")):
                warnings.add_finding(x, y, self.angle_range)

        if cell.has("factor"):
            if outside_range(factor, *FACTOR_DOMAIN):
                errors.add_finding(x, y, self.invalid_factor)
            elif outside_range(factor, cell.threshold("min_factor"), cell.threshold("max_factor")):
                warnings.add_finding(x, y, self.factor_range)

        kd = grids.comparisons.get("kd")
        if kd is not None and cell.has("factor") and cell.has("angle") and math.isnan(cell["kd"]):
            errors.add_finding(x, y, self.missing_kd)
