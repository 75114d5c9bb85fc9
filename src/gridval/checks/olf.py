"""Overland-flow level (OLF) check.

Compares the OLF level with the surface level. An OLF level below the
surface is an error, split by whether it lies less or more than
``distance_below_surface`` below it. A level outside the configured range
is a warning.

When the OLF dataset is inactive and ``use_drn_level_as_olf`` is set, the
level of drainage entry 1 is checked as OLF level instead.
"""

import logging
import math
from typing import Dict, Optional

from gridval.checks.base import Cell, Check, IterationUnit, UnitGrids, outside_range
from gridval.grid.grid import Grid
from gridval.schemas.checks import OLFSettings

__all__ = ['OLFCheck']

logger = logging.getLogger(__name__)


class OLFCheck(Check):
    """Overland-flow level against surface level."""

    name = "OLF"
    description = "Overland-flow levels"
    dataset = "OLF"
    settings_model = OLFSettings

    drn_dataset = "DRN"

    def __init__(self, settings=None):
        super().__init__(settings)
        self._source = self.dataset

    def define_findings(self):
        d = self.settings.distance_below_surface
        self.less_below = self.errors.define(
            f"OLF < {d}m below surface level",
            f"The OLF level is less than {d} m below the surface level", "orange")
        self.more_below = self.errors.define(
            f"OLF >= {d}m below surface level",
            f"The OLF level is {d} m or more below the surface level", "darkred")
        self.range_warning = self.warnings.define(
            "Level outside the expected range",
            f"OLF level outside [{self.settings.min_level}, {self.settings.max_level}]", "orange")

    def resolve_inputs(self, ctx) -> bool:
        datasets = ctx.datasets
        if datasets.is_active(self.dataset):
            self._source = self.dataset
        elif self.settings.use_drn_level_as_olf and datasets.is_active(self.drn_dataset):
            ctx.diagnostics.warning("OLF dataset not active, using DRN entry 1 level as OLF level",
                                    scope=self.name, indent=1)
            self._source = self.drn_dataset
        else:
            ctx.diagnostics.warning(f"Dataset {self.dataset} missing or inactive, check skipped",
                                    scope=self.name)
            return False

        if datasets.surface_level is None:
            ctx.diagnostics.warning("No surface level defined, check skipped", scope=self.name)
            return False
        return True

    def resolve_thresholds(self, ctx, resolver) -> Dict[str, Optional[Grid]]:
        s = self.settings
        self.margin = ctx.level_error_margin
        return {
            "distance": resolver.resolve(s.distance_below_surface, "distance_below_surface"),
            "min_level": resolver.resolve(s.min_level, "min_level"),
            "max_level": resolver.resolve(s.max_level, "max_level"),
        }

    def units(self, ctx):
        for period in ctx.periods():
            if self._source == self.drn_dataset:
                entries = ctx.entries(self.drn_dataset, period)
                entries = [1] if 1 in entries else []
            else:
                entries = ctx.entries(self.dataset, period)
            for entry in entries:
                yield IterationUnit(entry, period)

    def unit_grids(self, ctx, unit) -> Optional[UnitGrids]:
        level = ctx.datasets.get_grid(self._source, unit.entry, "level", unit.period)
        return UnitGrids(
            parts={"level": level},
            reference="level",
            comparisons={"surface": ctx.datasets.surface_level},
        )

    def evaluate_cell(self, cell: Cell, grids: UnitGrids, errors, warnings) -> None:
        if not cell.has("level"):
            return
        level = cell["level"]

        if cell.has("surface"):
            depth = cell["surface"] - level
            distance = cell.threshold("distance")
            if depth > self.margin and not math.isnan(distance):
                if depth < distance:
                    errors.add_finding(cell.x, cell.y, self.less_below)
                else:
                    errors.add_finding(cell.x, cell.y, self.more_below)

        if outside_range(level, cell.threshold("min_level"), cell.threshold("max_level")):
            warnings.add_finding(cell.x, cell.y, self.range_warning)
