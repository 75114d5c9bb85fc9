import json

import pytest
import xarray as xr

from gridval.checks.base import IterationUnit
from gridval.checks.findings import FindingCatalog, Severity
from gridval.checks.result_layer import COMBINED_RESULT_LABEL, Legend, ResultLayer
from gridval.contracts import ContractViolation
from gridval.grid.extent import Extent
from gridval.grid.grid import ConstantGrid
from tests.helpers.fake_grid import make_grid

pytestmark = pytest.mark.unit


@pytest.fixture
def catalog():
    catalog = FindingCatalog(Severity.ERROR)
    catalog.define("first", color="gold")
    catalog.define("second", color="red")
    catalog.define("third", color="purple")
    return catalog


@pytest.fixture
def layer(catalog):
    return ResultLayer("ANI", "ANI", Severity.ERROR, catalog, Extent(0, 0, 3, 2), 1.0,
                       unit=IterationUnit(1, 2))


class TestResultLayer:

    def test_add_finding_is_idempotent(self, layer, catalog):
        first = catalog.findings[0]
        assert layer.add_finding(0.5, 1.5, first) is True
        assert layer.add_finding(0.5, 1.5, first) is False
        assert layer.value_at(0.5, 1.5) == first.code
        assert layer.finding_counts["first"] == 1
        assert layer.result_count == 1

    def test_findings_combine_as_bitmask(self, layer, catalog):
        first, second, _ = catalog.findings
        layer.add_finding(1.5, 0.5, first)
        layer.add_finding(1.5, 0.5, second)
        assert layer.value_at(1.5, 0.5) == 3
        assert layer.has_finding(1.5, 0.5, second)

    def test_severity_mismatch(self, layer):
        warning = FindingCatalog("warning").define("range")
        with pytest.raises(ContractViolation, match="warning finding"):
            layer.add_finding(0.5, 0.5, warning)

    def test_catalog_severity_mismatch(self):
        with pytest.raises(ContractViolation, match="catalog"):
            ResultLayer("ANI", "ANI", "error", FindingCatalog("warning"), Extent(0, 0, 1, 1), 1.0)

    def test_point_outside_extent(self, layer, catalog):
        with pytest.raises(ContractViolation, match="outside"):
            layer.add_finding(10, 10, catalog.findings[0])

    def test_file_name(self, layer):
        assert layer.file_name() == "ANI_L1_errors_P2.nc"
        layer.label = "KDW"
        assert layer.file_name() == "ANI_L1_KDW_errors_P2.nc"

    def test_source_files_dedup_by_identity(self, layer):
        grid = make_grid([[1]])
        layer.add_source_files([grid, grid, None, ConstantGrid(1), make_grid([[1]])])
        assert len(layer.source_files) == 2


class TestLegend:

    def test_singles_keep_color_and_combined_shares_one_class(self, layer, catalog):
        first, second, third = catalog.findings
        layer.add_finding(0.5, 1.5, first)
        layer.add_finding(1.5, 1.5, second)
        layer.add_finding(2.5, 1.5, first)
        layer.add_finding(2.5, 1.5, second)
        layer.add_finding(0.5, 0.5, second)
        layer.add_finding(0.5, 0.5, third)

        legend = layer.compress_legend()
        assert [c.label for c in legend.classes] == ["first", "second", COMBINED_RESULT_LABEL]
        assert legend.classes[0].color == "gold"
        assert set(legend.classes[-1].codes) == {3, 6}
        assert len(legend) <= len(catalog) + 1

    def test_background_is_not_a_class(self, layer, catalog):
        layer.add_finding(0.5, 0.5, catalog.findings[2])
        legend = layer.compress_legend()
        index = legend.class_index(layer.values)
        assert index[1, 0] == 0
        assert index[0, 0] == -1

    def test_attrs_round_trip(self):
        legend = Legend("ANI errors")
        assert Legend.from_attrs(legend.to_attrs()) == legend


class TestWriteResultFile:

    def test_clean_layer_writes_nothing(self, layer, tmp_path, result_registry):
        assert layer.write_result_file(tmp_path, registry=result_registry) is None
        assert not (tmp_path / "ANI").exists()
        assert result_registry.get_statistics()["total"] == 0

    def test_written_file_and_registry(self, layer, catalog, tmp_path, result_registry):
        layer.add_source_file(make_grid([[1]], name="factor"))
        layer.add_finding(0.5, 1.5, catalog.findings[1])
        path = layer.write_result_file(tmp_path, registry=result_registry)

        assert path == tmp_path / "ANI" / "ANI_L1_errors_P2.nc"
        with xr.open_dataset(path, mask_and_scale=False) as ds:
            da = ds["result"]
            assert str(da.dtype) == "uint32"
            assert int(da.values[0, 0]) == 2
            assert da.attrs["severity"] == "error"
            assert json.loads(da.attrs["legend"])[0]["label"] == "second"

        record = result_registry.get_result(path)
        assert record["result_count"] == 1
        assert record["findings"] == {"second": 1}
        assert record["entry"] == 1 and record["period"] == 2
