"""
Unit tests for map algebra scoring.
"""

import numpy as np
import pytest

from geomarketing.models import GridSpec, RasterStack
from geomarketing.suitability import sum_layers, suitable_mask, summarize

nan = np.nan


@pytest.fixture
def stack():
    spec = GridSpec(0, 200, 100, 2, 2, "EPSG:3035")
    return RasterStack(spec, {
        "pop": np.array([[8000.0, 127.0], [375.0, 3000.0]]),
        "women": np.array([[3.0, 2.0], [nan, 0.0]]),
        "mean_age": np.array([[3.0, 3.0], [3.0, 0.0]]),
        "hh_size": np.array([[3.0, 3.0], [3.0, 1.0]]),
        "poi": np.array([[3.0, 1.0], [3.0, nan]]),
    })


class TestSumLayers:
    """Cellwise sums."""

    def test_excluded_band_is_ignored(self, stack):
        score = sum_layers(stack, exclude=["pop"])
        assert score[0, 0] == 12.0
        assert score[0, 1] == 9.0

    def test_missing_anywhere_is_missing(self, stack):
        score = sum_layers(stack, exclude=["pop"])
        assert np.isnan(score[1, 0])
        assert np.isnan(score[1, 1])

    def test_nothing_to_sum(self, stack):
        with pytest.raises(ValueError):
            sum_layers(stack, exclude=stack.names)


class TestSuitableMask:
    """Thresholding the score."""

    def test_strictly_above(self, stack):
        score = sum_layers(stack, exclude=["pop"])
        mask = suitable_mask(score, 9)
        assert mask.dtype == bool
        np.testing.assert_array_equal(mask, [[True, False], [False, False]])

    def test_summary(self, stack):
        score = sum_layers(stack, exclude=["pop"])
        stats = summarize(score, suitable_mask(score, 9))
        assert stats["scored_cells"] == 2
        assert stats["suitable_cells"] == 1
        assert stats["max_score"] == 12.0
        assert stats["mean_score"] == 10.5
