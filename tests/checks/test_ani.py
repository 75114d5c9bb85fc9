import math

import numpy as np
import pytest

from gridval.checks.ani import ANICheck
from gridval.grid.io import read_grid
from gridval.schemas.checks import ANISettings
from tests.helpers.fake_grid import make_grid, write_fake_grid

pytestmark = pytest.mark.unit

nan = math.nan


def run(make_engine, factor, angle, settings=None, **datasets):
    data = {"ANI": {1: [{"factor": factor, "angle": angle}]}}
    data.update(datasets)
    return make_engine(data).run_check(ANICheck(settings))


class TestANICheck:

    def test_inconsistent_definition_only(self, make_engine):
        summary = run(make_engine,
                      make_grid([[0.5, nan], [0.5, 0.5]]),
                      make_grid([[30, 30], [nan, 30]]))

        assert dict(summary.findings) == {"Inconsistent ANI-files": 2}
        assert len(summary.result_files) == 1
        layer = read_grid(summary.result_files[0], variable="result")
        assert int(np.count_nonzero(layer.values)) == 2

    def test_constant_angle_does_not_make_holes_inconsistent(self, make_engine):
        summary = run(make_engine, make_grid([[0.5, nan], [0.5, 0.5]]), 30.0)
        assert summary.units_evaluated == 1
        assert summary.result_files == []

    def test_domain_errors(self, make_engine):
        summary = run(make_engine,
                      make_grid([[1.5, 0.5]]),
                      make_grid([[30, 400]]))
        assert dict(summary.findings) == {"Invalid ANI-factor": 1, "Invalid ANI-angle": 1}

    def test_range_warning_not_repeated_for_domain_error(self, make_engine):
        settings = ANISettings(max_factor=0.8)
        summary = run(make_engine, make_grid([[0.9, 1.2]]), make_grid([[30, 30]]), settings)
        assert dict(summary.findings) == {"ANI-factor outside defined range": 1,
                                          "Invalid ANI-factor": 1}
        assert sorted(p.name for p in summary.result_files) == [
            "ANI_L1_errors_P1.nc", "ANI_L1_warnings_P1.nc"]

    def test_undefined_limit_skips_comparison(self, make_engine):
        settings = ANISettings(min_angle=None, max_angle=None)
        summary = run(make_engine, make_grid([[0.5]]), make_grid([[350]]), settings)
        assert summary.result_files == []

    def test_spatial_threshold_grid(self, make_engine, tmp_path):
        path = write_fake_grid(tmp_path / "max_factor.nc", [[0.4, 1.0], [1.0, 1.0]])
        settings = ANISettings(max_factor=str(path))
        summary = run(make_engine, make_grid(np.full((2, 2), 0.5)),
                      make_grid(np.full((2, 2), 30.0)), settings)
        assert dict(summary.findings) == {"ANI-factor outside defined range": 1}

    def test_zero_nodata(self, make_engine):
        factor = make_grid([[0.0, 0.5]], nodata=0)
        summary = run(make_engine, factor, make_grid([[30, 30]]))
        assert summary.findings["NoData defined as zero"] == 1

    def test_zero_nodata_check_can_be_disabled(self, make_engine):
        factor = make_grid([[0.0, 0.5]], nodata=0)
        summary = run(make_engine, factor, 30.0, ANISettings(zero_nodata_is_error=False))
        assert "NoData defined as zero" not in summary.findings

    def test_missing_kd(self, make_engine):
        kd = make_grid([[nan, 10]])
        summary = run(make_engine, make_grid([[0.5, 0.5]]), make_grid([[30, 30]]),
                      KDW={1: [{"value": kd}]})
        assert dict(summary.findings) == {"Missing kD-value": 1}
