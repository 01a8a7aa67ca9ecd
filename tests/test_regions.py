"""
Unit tests for metro region detection.
"""

import numpy as np
import pytest

from geomarketing.models import GridSpec
from geomarketing.regions import label_patches, metro_regions, regions_to_geojson

nan = np.nan
CELL = 20000.0


@pytest.fixture
def coarse():
    spec = GridSpec(west=4000000.0, north=3400000.0, res=CELL, W=5, H=5, crs="EPSG:3035")
    band = np.full((5, 5), nan)
    band[0, 0] = 600000.0
    band[1, 1] = 700000.0      # diagonal neighbour of (0, 0)
    band[3, 3] = 800000.0
    band[3, 4] = 900000.0
    return band, spec


class TestLabelPatches:
    """8-connected labelling."""

    def test_diagonal_cells_join(self, coarse):
        band, _ = coarse
        labels, n = label_patches(band)
        assert n == 2
        assert labels[0, 0] == labels[1, 1] == 1
        assert labels[3, 3] == labels[3, 4] == 2
        assert labels[2, 2] == 0

    def test_empty_band(self):
        labels, n = label_patches(np.full((3, 3), nan))
        assert n == 0
        assert not labels.any()


class TestMetroRegions:
    """Polygons, centroids and populations per patch."""

    def test_one_region_per_patch(self, coarse):
        band, spec = coarse
        regions = metro_regions(band, spec)
        assert [r.id for r in regions] == [1, 2]

    def test_population_sums(self, coarse):
        band, spec = coarse
        regions = metro_regions(band, spec)
        assert regions[0].population == pytest.approx(1300000.0)
        assert regions[1].population == pytest.approx(1700000.0)

    def test_parts_are_unioned(self, coarse):
        band, spec = coarse
        regions = metro_regions(band, spec)
        assert regions[0].geometry.area == pytest.approx(2 * CELL * CELL)
        assert regions[1].geometry.geom_type == "Polygon"
        assert regions[1].geometry.area == pytest.approx(2 * CELL * CELL)

    def test_centroid_of_adjacent_cells(self, coarse):
        band, spec = coarse
        reg = metro_regions(band, spec)[1]
        x, y = reg.centroid_xy
        assert x == pytest.approx(spec.west + 4 * CELL)
        assert y == pytest.approx(spec.north - 3.5 * CELL)

    def test_centroid_lonlat_in_europe(self, coarse):
        band, spec = coarse
        for reg in metro_regions(band, spec):
            lon, lat = reg.centroid_lonlat
            assert -10 < lon < 30
            assert 40 < lat < 65

    def test_no_dense_cells(self, coarse):
        _, spec = coarse
        assert metro_regions(np.full((5, 5), nan), spec) == []

    def test_shape_mismatch(self, coarse):
        _, spec = coarse
        with pytest.raises(ValueError):
            metro_regions(np.zeros((2, 2)), spec)


class TestRegionsToGeojson:
    """Export as lon/lat features."""

    def test_feature_collection(self, coarse):
        band, spec = coarse
        regions = metro_regions(band, spec)
        regions[1].name = "Leipzig"
        fc = regions_to_geojson(regions, spec.crs)
        assert fc["type"] == "FeatureCollection"
        assert len(fc["features"]) == 2
        props = fc["features"][1]["properties"]
        assert props["name"] == "Leipzig"
        assert props["population"] == pytest.approx(1700000.0)
        ring = fc["features"][1]["geometry"]["coordinates"][0]
        lon, lat = ring[0]
        assert -10 < lon < 30 and 40 < lat < 65
