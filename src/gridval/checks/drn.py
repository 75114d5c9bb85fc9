"""Drainage (DRN) check.

A drainage entry is defined by a conductance and a level, present or
absent together. Negative conductance and a level above the OLF level are
errors. Conductance or level outside the configured ranges, and a level
above the surface level, are warnings.

The OLF settings are read from the registry: when OLF takes its level from
drainage entry 1, that entry is not checked against itself and DRN
checking starts at entry 2.
"""

import logging
from typing import Dict, Optional

from gridval.checks.base import Cell, Check, UnitGrids, outside_range
from gridval.grid.grid import Grid
from gridval.schemas.checks import DRNSettings

__all__ = ['DRNCheck']

logger = logging.getLogger(__name__)


class DRNCheck(Check):
    """Drainage conductance and level check."""

    name = "DRN"
    description = "Drainage conductances and levels"
    dataset = "DRN"
    settings_model = DRNSettings

    olf_dataset = "OLF"

    def __init__(self, settings=None):
        super().__init__(settings)
        self._olf = None
        self._drn_level_is_olf = False
        self._surface_nodata_reported = False
        self._diagnostics = None

    def define_findings(self):
        self.inconsistent_finding = self.errors.define(
            "Inconsistent DRN-files", "Conductance and level not defined at the same cells", "gold")
        self.above_olf = self.errors.define(
            "Level above OLF", "Drainage level above the OLF level", "red")
        self.negative_conductance = self.errors.define(
            "Unexpected negative conductance", "Conductance below zero", "darkred")

        self.conductance_range = self.warnings.define(
            "Conductance outside range", "Conductance outside the configured range", "orange")
        self.level_range = self.warnings.define(
            "Level outside range", "Drainage level outside the configured range", "red")
        self.above_surface = self.warnings.define(
            "Level above surface level", "Drainage level above the surface level", "purple")

    def resolve_inputs(self, ctx) -> bool:
        if not super().resolve_inputs(ctx):
            return False

        datasets = ctx.datasets
        self._diagnostics = ctx.diagnostics
        self._olf = None
        self._drn_level_is_olf = False
        self._surface_nodata_reported = False

        if datasets.is_active(self.olf_dataset):
            self._olf = datasets.get_grid(self.olf_dataset, 1, "level", ctx.min_period)
        else:
            olf_settings = ctx.registry.settings_snapshot("OLF") if ctx.registry is not None else None
            if olf_settings is not None and olf_settings.use_drn_level_as_olf:
                ctx.diagnostics.info("OLF uses DRN entry 1 level, DRN entry 1 is skipped",
                                     scope=self.name, indent=1)
                self._drn_level_is_olf = True
                self._olf = datasets.get_grid(self.dataset, 1, "level", ctx.min_period)
            else:
                ctx.diagnostics.warning("No OLF level defined, OLF comparison skipped",
                                        scope=self.name, indent=1)

        if datasets.surface_level is None:
            ctx.diagnostics.warning("No surface level defined, surface level comparison skipped",
                                    scope=self.name, indent=1)
        return True

    def first_entry(self, ctx) -> int:
        return 2 if self._drn_level_is_olf else 1

    def resolve_thresholds(self, ctx, resolver) -> Dict[str, Optional[Grid]]:
        s = self.settings
        self.margin = ctx.level_error_margin
        return {
            "min_level": resolver.resolve(s.min_level, "min_level"),
            "max_level": resolver.resolve(s.max_level, "max_level"),
            "min_conductance": resolver.resolve(s.min_conductance, "min_conductance"),
            "max_conductance": resolver.resolve(s.max_conductance, "max_conductance"),
        }

    def unit_grids(self, ctx, unit) -> Optional[UnitGrids]:
        datasets = ctx.datasets
        parts = {
            "conductance": datasets.get_grid(self.dataset, unit.entry, "conductance", unit.period),
            "level": datasets.get_grid(self.dataset, unit.entry, "level", unit.period),
        }
        return UnitGrids(
            parts=parts,
            reference="level",
            comparisons={"surface": datasets.surface_level, "olf": self._olf},
        )

    def evaluate_cell(self, cell: Cell, grids: UnitGrids, errors, warnings) -> None:
        x, y = cell.x, cell.y

        if cell.has("level"):
            level = cell["level"]
            if outside_range(level, cell.threshold("min_level"), cell.threshold("max_level")):
                warnings.add_finding(x, y, self.level_range)

            if cell.has("surface"):
                if level > cell["surface"] + self.margin:
                    warnings.add_finding(x, y, self.above_surface)
            elif grids.comparisons.get("surface") is not None and not self._surface_nodata_reported:
                self._surface_nodata_reported = True
                self._diagnostics.warning("Surface level has no data at one or more DRN cells, "
                                          "surface level comparison skipped there",
                                          scope=self.name, indent=2)

            if cell.has("olf") and level > cell["olf"] + self.margin:
                errors.add_finding(x, y, self.above_olf)

        if cell.has("conductance"):
            conductance = cell["conductance"]
            if conductance < 0:
                errors.add_finding(x, y, self.negative_conductance)
            elif outside_range(conductance, cell.threshold("min_conductance"),
                               cell.threshold("max_conductance")):
                warnings.add_finding(x, y, self.conductance_range)
