import numpy as np
import pytest
import xarray as xr

from gridval.grid.extent import Extent
from gridval.grid.io import GridLoader, read_grid, write_grid
from tests.helpers.fake_grid import make_grid, write_fake_grid

pytestmark = pytest.mark.unit


class TestReadWrite:

    def test_round_trip_preserves_geometry(self, tmp_path):
        grid = make_grid([[1, 2, 3], [4, 5, 6]], xmin=100, ymax=50, cellsize=25, nodata=-9999)
        path = write_grid(grid, tmp_path / "sub" / "level.nc")

        back = read_grid(path)
        assert back.extent == Extent(100, 0, 175, 50)
        assert back.cellsize == 25
        assert back.nodata == -9999
        assert back.values.tolist() == grid.values.tolist()
        assert back.path == path
        assert back.name == "level"

    def test_south_to_north_file_is_flipped(self, tmp_path):
        path = tmp_path / "flipped.nc"
        da = xr.DataArray(
            np.array([[1.0, 2.0], [3.0, 4.0]]),
            dims=("y", "x"),
            coords={"y": [0.5, 1.5], "x": [0.5, 1.5]},
            name="value",
        )
        da.to_dataset().to_netcdf(path)

        grid = read_grid(path)
        # Row 0 stored at y=0.5 is the southern row
        assert grid.value_at(0.5, 0.5) == 1
        assert grid.value_at(0.5, 1.5) == 3

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError, match="not found"):
            read_grid(tmp_path / "nope.nc")

    def test_unknown_variable(self, tmp_path):
        path = write_fake_grid(tmp_path / "g.nc", [[1]])
        with pytest.raises(KeyError, match="not found"):
            read_grid(path, variable="other")

    def test_extra_attrs_are_written(self, tmp_path):
        path = write_grid(make_grid([[1]]), tmp_path / "a.nc", attrs={"check": "ANI"},
                          variable="result")
        with xr.open_dataset(path) as ds:
            assert ds["result"].attrs["check"] == "ANI"


class TestGridLoader:

    def test_same_path_same_object(self, tmp_path):
        path = write_fake_grid(tmp_path / "g.nc", [[1, 2]])
        loader = GridLoader()
        first = loader.load(path)
        assert loader.load(tmp_path / "." / "g.nc") is first
        assert path in loader
        assert len(loader) == 1

    def test_release_drops_entry(self, tmp_path):
        path = write_fake_grid(tmp_path / "g.nc", [[1, 2]])
        loader = GridLoader()
        first = loader.load(path)
        loader.release(path)
        assert path not in loader
        assert loader.load(path) is not first
