"""
Unit tests for lookup-table reclassification.
"""

import numpy as np
import pytest

from geomarketing.config import RCL_AGE, RCL_HH, RCL_POP, RCL_WOMEN
from geomarketing.models import GridSpec, RasterStack
from geomarketing.reclassify import reclassify, reclassify_stack


class TestReclassify:
    """Single band reclassification."""

    def test_population_classes_to_inhabitants(self):
        out = reclassify(np.array([1, 2, 3, 4, 5, 6], dtype=float), RCL_POP)
        np.testing.assert_array_equal(out, [127, 375, 1250, 3000, 6000, 8000])

    def test_ranges_are_inclusive(self):
        out = reclassify(np.array([1, 2, 3, 4, 5], dtype=float), RCL_WOMEN)
        np.testing.assert_array_equal(out, [3, 2, 1, 0, 0])

    def test_age_and_household_tables(self):
        vals = np.array([1, 2, 3, 5], dtype=float)
        np.testing.assert_array_equal(reclassify(vals, RCL_AGE), [3, 0, 0, 0])
        np.testing.assert_array_equal(reclassify(vals, RCL_HH), [3, 2, 1, 0])

    def test_nan_stays_nan(self):
        out = reclassify(np.array([np.nan, 1.0]), RCL_POP)
        assert np.isnan(out[0]) and out[1] == 127

    def test_unmatched_values_are_kept(self):
        out = reclassify(np.array([7.0, 1.0]), RCL_POP)
        np.testing.assert_array_equal(out, [7.0, 127.0])

    def test_unmatched_values_use_others(self):
        out = reclassify(np.array([7.0, 1.0, np.nan]), RCL_POP, others=-1)
        assert out[0] == -1 and out[1] == 127 and np.isnan(out[2])

    def test_first_matching_row_wins(self):
        out = reclassify(np.array([2.0]), [(1, 3, 10), (2, 2, 20)])
        assert out[0] == 10

    def test_output_not_chained(self):
        # a value produced by one row is not matched again by a later row
        out = reclassify(np.array([1.0, 2.0]), [(1, 1, 2), (2, 2, 9)])
        np.testing.assert_array_equal(out, [2, 9])

    def test_bad_table_raises(self):
        with pytest.raises(ValueError):
            reclassify(np.array([1.0]), [(1, 2)])
        with pytest.raises(ValueError):
            reclassify(np.array([1.0]), [(3, 2, 1)])


class TestReclassifyStack:
    """Per-band tables."""

    def test_bands_without_table_pass_through(self):
        spec = GridSpec(0, 100, 100, 1, 1, "EPSG:3035")
        stack = RasterStack(spec, {"pop": np.array([[2.0]]), "other": np.array([[4.0]])})
        out = reclassify_stack(stack, {"pop": RCL_POP})
        assert out["pop"][0, 0] == 375
        assert out["other"][0, 0] == 4.0
        assert stack["pop"][0, 0] == 2.0
