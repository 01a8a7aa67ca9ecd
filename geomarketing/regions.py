# regions.py
# ----------------
# Metropolitan regions from the coarse population raster.
#
# Dense cells are labelled as 8-connected patches, each patch is vectorized
# and its parts unioned into one geometry. The centroid of the largest part
# is what gets reverse-geocoded later.
# region Imports
import logging
from collections import defaultdict
from typing import List

import numpy as np
from pyproj import Transformer
from rasterio.features import shapes
from scipy import ndimage
from shapely.geometry import mapping, shape
from shapely.ops import transform, unary_union
from shapely.validation import make_valid

from .models import GridSpec, Region
# endregion

logger = logging.getLogger(__name__)

EIGHT_NEIGHBOURS = np.ones((3, 3), dtype=bool)


# region Patches
def label_patches(band: np.ndarray):
    """Label 8-connected groups of non-missing cells; 0 is background."""
    labels, n = ndimage.label(np.isfinite(band), structure=EIGHT_NEIGHBOURS)
    return labels.astype(np.int32), int(n)


def _largest_part(geom):
    if hasattr(geom, "geoms"):
        polys = [g for g in geom.geoms if g.geom_type == "Polygon"] or list(geom.geoms)
        return max(polys, key=lambda g: g.area)
    return geom
# endregion


# region Polygons
def metro_regions(band: np.ndarray, spec: GridSpec) -> List[Region]:
    if band.shape != spec.shape:
        raise ValueError(f"Band shape {band.shape} does not match grid {spec.shape}")

    labels, n = label_patches(band)
    if n == 0:
        logger.warning("No cells above the density threshold; no regions found")
        return []

    parts = defaultdict(list)
    for geom, value in shapes(labels, mask=labels > 0, connectivity=8, transform=spec.transform):
        # diagonal neighbours come back as self-touching rings
        parts[int(value)].append(make_valid(shape(geom)))

    pops = ndimage.sum(np.nan_to_num(band, nan=0.0), labels, index=np.arange(1, n + 1))
    to_wgs84 = Transformer.from_crs(spec.crs, "EPSG:4326", always_xy=True)

    regions = []
    for label in range(1, n + 1):
        geom = unary_union(parts[label])
        c = _largest_part(geom).centroid
        lon, lat = to_wgs84.transform(c.x, c.y)
        regions.append(
            Region(
                id=label,
                geometry=geom,
                centroid_xy=(float(c.x), float(c.y)),
                centroid_lonlat=(float(lon), float(lat)),
                population=float(pops[label - 1]),
            )
        )
    logger.info("Found %d metropolitan regions", len(regions))
    return regions
# endregion


# region GeoJSON
def regions_to_geojson(regions: List[Region], crs: str) -> dict:
    """FeatureCollection in lon/lat."""
    to_wgs84 = Transformer.from_crs(crs, "EPSG:4326", always_xy=True)

    def project(geom):
        return transform(to_wgs84.transform, geom)

    feats = []
    for reg in regions:
        lon, lat = reg.centroid_lonlat
        feats.append({
            "type": "Feature",
            "properties": {
                "id": reg.id,
                "name": reg.name,
                "population": reg.population,
                "centroid_lon": lon,
                "centroid_lat": lat,
            },
            "geometry": mapping(project(reg.geometry)),
        })
    return {"type": "FeatureCollection", "features": feats}
# endregion
