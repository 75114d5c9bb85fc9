"""Tests for the check engine loop: bounds, de-duplication, skips and failures."""

import math

import numpy as np
import pytest

from gridval.checks.ani import ANICheck
from gridval.checks.base import CheckFailure, Cell, UnitGrids, presence_inconsistent
from gridval.checks.drn import DRNCheck
from gridval.checks.engine import CheckedCombinations
from gridval.checks.findings import Severity
from gridval.checks.summary import SummaryLayers
from gridval.grid.grid import ConstantGrid
from gridval.schemas.checks import ANISettings
from tests.helpers.fake_grid import make_grid, write_fake_grid

pytestmark = [pytest.mark.unit, pytest.mark.pipeline]

nan = math.nan


def inconsistent_entry():
    return {
        "factor": make_grid([[0.5, nan], [0.5, 0.5]], name="factor"),
        "angle": make_grid([[30, 30], [nan, 30]], name="angle"),
    }


class ExplodingCheck(ANICheck):
    name = "BOOM"

    def evaluate_cell(self, cell, grids, errors, warnings):
        raise RuntimeError("boom")


class TestPresencePredicate:

    def test_all_present_is_consistent(self):
        parts = {"a": make_grid([[1]]), "b": make_grid([[1]])}
        cell = Cell(0.5, 0.5, {"a": 1.0, "b": 2.0}, {})
        assert not presence_inconsistent(parts, cell)

    def test_partly_present_is_inconsistent(self):
        parts = {"a": make_grid([[1]]), "b": make_grid([[1]])}
        cell = Cell(0.5, 0.5, {"a": 1.0, "b": nan}, {})
        assert presence_inconsistent(parts, cell)

    def test_constant_next_to_hole_is_consistent(self):
        parts = {"a": make_grid([[1]]), "b": ConstantGrid(3)}
        cell = Cell(0.5, 0.5, {"a": nan, "b": 3.0}, {})
        assert not presence_inconsistent(parts, cell)


class TestCheckedCombinations:

    def test_identity_not_equality(self):
        a, b = make_grid([[1]]), make_grid([[1]])
        checked = CheckedCombinations()
        assert checked.add([a])
        assert not checked.add([a])
        assert checked.add([b])
        assert [a] in checked
        assert len(checked) == 2

    def test_order_does_not_matter(self):
        a, b = make_grid([[1]]), make_grid([[2]])
        checked = CheckedCombinations()
        checked.add([a, b])
        assert not checked.add([b, a])


class TestCheckEngine:

    def test_two_by_two_inconsistency(self, make_engine, results_dir):
        engine = make_engine({"ANI": {1: [inconsistent_entry()]}})
        summary = engine.run_check(ANICheck())

        assert summary.units_evaluated == 1
        assert dict(summary.findings) == {"Inconsistent ANI-files": 2}
        assert summary.result_files == [results_dir / "ANI" / "ANI_L1_errors_P1.nc"]

    def test_reused_period_checked_once(self, make_engine, diagnostics):
        engine = make_engine({"ANI": {1: [inconsistent_entry()]}}, period_count=2)
        summary = engine.run_check(ANICheck())

        assert summary.units_evaluated == 1
        assert summary.units_duplicate == 1
        already = [r for r in diagnostics.records("info")
                   if r.message == "Files have been checked already"]
        assert len(already) == 1
        assert already[0].source == "ANI L1 P2"
        assert len(summary.result_files) == 1

    def test_entry_bounds(self, make_engine):
        engine = make_engine({"ANI": {1: [inconsistent_entry(), inconsistent_entry()]}},
                             min_entry=2, max_entry=2)
        summary = engine.run_check(ANICheck())

        assert summary.units_evaluated == 1
        assert [p.name for p in summary.result_files] == ["ANI_L2_errors_P1.nc"]

    def test_period_bounds(self, make_engine):
        engine = make_engine({"ANI": {1: [inconsistent_entry()], 2: [inconsistent_entry()]}},
                             period_count=3, min_period=2, max_period=2)
        summary = engine.run_check(ANICheck())

        assert [p.name for p in summary.result_files] == ["ANI_L1_errors_P2.nc"]

    def test_missing_part_skips_unit(self, make_engine, diagnostics):
        engine = make_engine({"ANI": {1: [{"factor": make_grid([[0.5]])}]}})
        summary = engine.run_check(ANICheck())

        assert summary.units_skipped == 1
        assert any("Missing angle" in r.message for r in diagnostics.records("warning"))

    def test_constant_only_unit_skipped(self, make_engine):
        engine = make_engine({"ANI": {1: [{"factor": 0.5, "angle": 30}]}})
        summary = engine.run_check(ANICheck())

        assert summary.units_skipped == 1
        assert summary.result_files == []

    def test_empty_intersection_skips_unit(self, make_engine, diagnostics):
        entry = {"factor": make_grid([[0.5]]), "angle": make_grid([[30]], xmin=5)}
        engine = make_engine({"ANI": {1: [entry]}})
        summary = engine.run_check(ANICheck())

        assert summary.units_skipped == 1
        assert summary.result_files == []
        assert any("No overlapping cells" in r.message for r in diagnostics.records("info"))

    def test_inactive_check_skipped(self, make_engine):
        engine = make_engine({"ANI": {1: [inconsistent_entry()]}})
        summary = engine.run_check(ANICheck(ANISettings(active=False)))
        assert summary.skipped
        assert summary.units_evaluated == 0

    def test_inactive_dataset_skipped(self, make_engine, diagnostics):
        engine = make_engine({})
        summary = engine.run_check(ANICheck())
        assert summary.skipped
        assert diagnostics.count("warning") == 1

    def test_failure_wrapped_with_check_and_unit(self, make_engine):
        engine = make_engine({"ANI": {1: [inconsistent_entry()]}})
        with pytest.raises(CheckFailure, match="Check BOOM failed at L1 P1") as excinfo:
            engine.run_check(ExplodingCheck())
        assert isinstance(excinfo.value.__cause__, RuntimeError)
        assert excinfo.value.check_name == "BOOM"

    def test_failing_check_does_not_stop_others(self, make_engine, diagnostics):
        engine = make_engine({"ANI": {1: [inconsistent_entry()]}})
        summaries = engine.run_checks([ExplodingCheck(), ANICheck()])

        assert summaries[0].failed is not None
        assert summaries[1].failed is None
        assert summaries[1].units_evaluated == 1
        assert diagnostics.count("error") == 1

    def test_results_registered(self, make_engine, result_registry):
        engine = make_engine({"ANI": {1: [inconsistent_entry()]}})
        summary = engine.run_check(ANICheck())

        df = result_registry.get_results(check_name="ANI")
        assert len(df) == 1
        assert df.iloc[0]["result_count"] == 2
        assert sorted(result_registry.get_sources(summary.result_files[0])) == ["angle", "factor"]

    def test_fine_comparison_upscaled_to_reference(self, make_engine):
        # kD at cell size 0.5: the north-west reference cell covers one valid kD cell
        kd = make_grid(np.array([
            [nan, 1, 1, 1],
            [nan, nan, 1, 1],
            [nan, nan, 1, 1],
            [nan, nan, 1, 1],
        ]), cellsize=0.5)
        entry = {"factor": make_grid([[0.5, 0.5], [0.5, 0.5]]),
                 "angle": make_grid([[30, 30], [30, 30]])}
        engine = make_engine({"ANI": {1: [entry]}, "KDW": {1: [{"value": kd}]}})
        summary = engine.run_check(ANICheck())

        # Maximum keeps the single valid fine cell; only the south-west cell lacks kD
        assert dict(summary.findings) == {"Missing kD-value": 1}

    def test_coarse_comparison_keeps_reference_resolution(self, make_engine):
        # Surface level at cell size 2 over a DRN entry at cell size 1
        entry = {"conductance": make_grid(np.full((2, 2), -1.0)),
                 "level": make_grid(np.full((2, 2), 5.0))}
        engine = make_engine({"DRN": {1: [entry]}}, surface_level=make_grid([[10]], cellsize=2))
        summary = engine.run_check(DRNCheck())

        assert dict(summary.findings) == {"Unexpected negative conductance": 4}

    def test_reference_part_drives_resolution(self, make_engine):
        # Conductance comes first among the DRN parts but level is the reference
        entry = {"conductance": make_grid([[-1]], cellsize=2),
                 "level": make_grid(np.full((2, 2), 5.0))}
        engine = make_engine({"DRN": {1: [entry]}})
        summary = engine.run_check(DRNCheck())

        assert dict(summary.findings) == {"Unexpected negative conductance": 4}

    def test_threshold_grid_mismatch_reported(self, make_engine, diagnostics, tmp_path):
        path = write_fake_grid(tmp_path / "max_factor.nc", [[1.0]], cellsize=2)
        engine = make_engine({"ANI": {1: [{"factor": make_grid(np.full((2, 2), 0.5)),
                                           "angle": make_grid(np.full((2, 2), 30.0))}]}})
        summary = engine.run_check(ANICheck(ANISettings(max_factor=str(path))))

        assert summary.units_evaluated == 1
        reported = [r for r in diagnostics.records("warning", scope="ANI")
                    if r.source == "max_factor"]
        assert any("Cell size 2 differs" in r.message for r in reported)

    def test_summary_counts_across_units_and_checks(self, make_engine):
        first = {"factor": make_grid([[1.5, 0.5]]), "angle": make_grid([[30, 30]])}
        second = {"factor": make_grid([[1.5, 1.5]]), "angle": make_grid([[30, 30]])}
        drn = {"conductance": make_grid([[-1, 1]]), "level": make_grid([[5, 5]])}
        engine = make_engine({"ANI": {1: [first, second]}, "DRN": {1: [drn]}})
        engine.ctx.summary_layers = SummaryLayers()
        engine.run_checks([ANICheck(), DRNCheck()])

        errors = engine.ctx.summary_layers[Severity.ERROR]
        assert errors.count_at(0.5, 0.5) == 3
        assert errors.count_at(1.5, 0.5) == 1
        assert dict(errors.check_counts) == {"ANI": 3, "DRN": 1}
