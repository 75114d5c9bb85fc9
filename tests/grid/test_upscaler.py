import math

import numpy as np
import pytest

from gridval.grid.extent import Extent
from gridval.grid.grid import ConstantGrid
from gridval.grid.upscaler import GridUpscaler, UpscaleMethod, upscale
from tests.helpers.fake_grid import make_grid

pytestmark = pytest.mark.unit


@pytest.fixture
def half_empty():
    """2x2 source at cell size 1 holding {1, 3, no-data, no-data}."""
    return make_grid([[1, 3], [np.nan, np.nan]])


class TestUpscale:

    @pytest.mark.parametrize("method,expected", [
        (UpscaleMethod.MINIMUM, 1.0),
        (UpscaleMethod.MAXIMUM, 3.0),
        (UpscaleMethod.MEAN, 2.0),
    ])
    def test_nodata_does_not_contribute(self, half_empty, method, expected):
        result = upscale(half_empty, 2.0, method)
        assert result.shape == (1, 1)
        assert result.values[0, 0] == expected

    def test_all_nodata_target_is_nodata(self):
        source = make_grid([[1, 2, np.nan, np.nan], [3, 4, np.nan, np.nan]])
        result = upscale(source, 2.0, "maximum")
        assert result.values[0, 0] == 4
        assert math.isnan(result.values[0, 1])

    def test_sentinel_nodata_kept(self):
        source = make_grid([[-9999, -9999], [-9999, -9999]], nodata=-9999)
        result = upscale(source, 2.0, "minimum")
        assert result.values[0, 0] == -9999
        assert result.is_nodata(result.values[0, 0])

    def test_same_or_finer_returns_source(self, half_empty):
        assert upscale(half_empty, 1.0, "mean") is half_empty
        assert upscale(half_empty, 0.5, "mean") is half_empty

    def test_none_and_constant_pass_through(self):
        constant = ConstantGrid(4)
        assert upscale(None, 2.0, "mean") is None
        assert upscale(constant, 2.0, "mean") is constant

    def test_aligned_to_reference_corner(self):
        source = make_grid(np.ones((4, 4)), xmin=1, ymax=4)
        result = upscale(source, 2.0, "maximum", align_extent=Extent(0, 0, 6, 4))
        assert result.extent == Extent(0, 0, 6, 4)
        assert result.values.tolist() == [[1, 1, 1], [1, 1, 1]]

    def test_scale_extent_clips_source(self):
        source = make_grid([[1, 5], [1, 5]])
        result = upscale(source, 2.0, "maximum", scale_extent=Extent(0, 0, 1, 2))
        assert result.values[0, 0] == 1


class TestGridUpscaler:

    def test_cached_per_cellsize(self, half_empty):
        upscaler = GridUpscaler(half_empty, UpscaleMethod.MEAN)
        first = upscaler.retrieve(2.0)
        assert upscaler.retrieve(2.0) is first
        assert len(upscaler) == 1

    def test_release_clears_cache(self, half_empty):
        with GridUpscaler(half_empty, "minimum") as upscaler:
            upscaler.retrieve(2.0)
            assert len(upscaler) == 1
        assert len(upscaler) == 0

    def test_none_source(self):
        assert GridUpscaler(None, "maximum").retrieve(10.0) is None

    def test_invalid_method(self, half_empty):
        with pytest.raises(ValueError):
            GridUpscaler(half_empty, "median")
