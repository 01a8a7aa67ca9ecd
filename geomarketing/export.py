# region Imports
from __future__ import annotations
import json
import logging
import os
from typing import List

import numpy as np
import pandas as pd
import rasterio

from .models import GridSpec, RasterStack, Region
from .regions import regions_to_geojson
# endregion

logger = logging.getLogger(__name__)


def _ensure_dir(path: str) -> None:
    d = os.path.dirname(os.path.abspath(path))
    os.makedirs(d, exist_ok=True)


# region Rasters
def write_stack(stack: RasterStack, path: str) -> str:
    """Multi-band float32 GeoTIFF, NaN as nodata, band names as descriptions."""
    if not stack.bands:
        raise ValueError("Refusing to write an empty stack")
    _ensure_dir(path)
    spec = stack.spec
    profile = {
        "driver": "GTiff",
        "height": spec.H,
        "width": spec.W,
        "count": len(stack.bands),
        "dtype": "float32",
        "crs": spec.crs,
        "transform": spec.transform,
        "nodata": np.nan,
        "compress": "deflate",
    }
    with rasterio.open(path, "w", **profile) as dst:
        for i, (name, arr) in enumerate(stack.bands.items(), start=1):
            dst.write(arr.astype(np.float32), i)
            dst.set_band_description(i, name)
    logger.info("Wrote %d bands to %s", len(stack.bands), path)
    return path


def write_mask(mask: np.ndarray, spec: GridSpec, path: str) -> str:
    _ensure_dir(path)
    with rasterio.open(
        path, "w", driver="GTiff", height=spec.H, width=spec.W, count=1,
        dtype="uint8", crs=spec.crs, transform=spec.transform,
        compress="deflate",
    ) as dst:
        dst.write(mask.astype(np.uint8), 1)
        dst.set_band_description(1, "suitable")
    logger.info("Wrote %d suitable cells to %s", int(mask.sum()), path)
    return path


def read_stack(path: str) -> RasterStack:
    with rasterio.open(path) as ds:
        t = ds.transform
        if abs(abs(t.a) - abs(t.e)) > 1e-9 or t.b != 0 or t.d != 0:
            raise ValueError(f"{path}: only north-up square-pixel grids are supported")
        spec = GridSpec(
            west=t.c, north=t.f, res=abs(t.a), W=ds.width, H=ds.height,
            crs=ds.crs.to_string() if ds.crs else "",
        )
        bands = {}
        for i in range(1, ds.count + 1):
            name = ds.descriptions[i - 1] or f"band{i}"
            arr = ds.read(i).astype(np.float64)
            if ds.nodatavals[i - 1] is not None and not np.isnan(ds.nodatavals[i - 1]):
                arr[arr == ds.nodatavals[i - 1]] = np.nan
            bands[name] = arr
    return RasterStack(spec, bands)
# endregion


# region Vectors / Tables
def write_regions(regions: List[Region], crs: str, path: str) -> str:
    _ensure_dir(path)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(regions_to_geojson(regions, crs), f, ensure_ascii=False, indent=2)
    logger.info("Wrote %d regions to %s", len(regions), path)
    return path


def write_shops(shops: pd.DataFrame, path: str) -> str:
    _ensure_dir(path)
    shops.to_csv(path, index=False)
    logger.info("Wrote %d shops to %s", len(shops), path)
    return path
# endregion
