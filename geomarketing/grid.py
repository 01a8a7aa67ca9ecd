# region Imports
import numpy as np
import pandas as pd
from rasterio.enums import MergeAlg
from rasterio.features import rasterize

from .models import GridSpec, RasterStack
# endregion


# region Grid Geometry
def _min_step(v: np.ndarray) -> float:
    u = np.unique(v[np.isfinite(v)])
    if u.size < 2:
        return np.nan
    d = np.diff(u)
    d = d[d > 0]
    return float(d.min()) if d.size else np.nan


def grid_from_xyz(x, y, crs: str) -> GridSpec:
    """Grid whose cell centres sit on the given x/y coordinates."""
    x = np.asarray(x, dtype=np.float64)
    y = np.asarray(y, dtype=np.float64)
    if x.size == 0:
        raise ValueError("Cannot build a grid from zero points")

    steps = [s for s in (_min_step(x), _min_step(y)) if np.isfinite(s)]
    if not steps:
        raise ValueError("Cannot infer resolution from a single coordinate")
    res = min(steps)

    xmin, xmax = float(np.nanmin(x)), float(np.nanmax(x))
    ymin, ymax = float(np.nanmin(y)), float(np.nanmax(y))
    W = int(round((xmax - xmin) / res)) + 1
    H = int(round((ymax - ymin) / res)) + 1
    return GridSpec(west=xmin - res / 2, north=ymax + res / 2, res=res, W=W, H=H, crs=crs)
# endregion


# region Index Helpers
def xy_to_rc(spec: GridSpec, x, y):
    x = np.asarray(x, dtype=np.float64)
    y = np.asarray(y, dtype=np.float64)
    c = np.floor((x - spec.west) / spec.res).astype(np.int64)
    r = np.floor((spec.north - y) / spec.res).astype(np.int64)
    return r, c


def rc_to_xy(spec: GridSpec, r, c):
    x = spec.west + (np.asarray(c) + 0.5) * spec.res
    y = spec.north - (np.asarray(r) + 0.5) * spec.res
    return x, y
# endregion


# region Rasterization
def rasterize_table(df: pd.DataFrame, spec: GridSpec, columns, x_col="x", y_col="y") -> RasterStack:
    r, c = xy_to_rc(spec, df[x_col].to_numpy(), df[y_col].to_numpy())
    inside = (r >= 0) & (r < spec.H) & (c >= 0) & (c < spec.W)
    r, c = r[inside], c[inside]

    bands = {}
    for col in columns:
        arr = np.full(spec.shape, np.nan, dtype=np.float64)
        arr[r, c] = pd.to_numeric(df[col], errors="coerce").to_numpy(dtype=np.float64)[inside]
        bands[col] = arr
    return RasterStack(spec, bands)


def rasterize_points(xs, ys, spec: GridSpec) -> np.ndarray:
    """Number of points per cell; cells without points are NaN."""
    xs = np.asarray(xs, dtype=np.float64)
    ys = np.asarray(ys, dtype=np.float64)
    ok = np.isfinite(xs) & np.isfinite(ys)
    if not ok.any():
        return np.full(spec.shape, np.nan, dtype=np.float64)

    shapes = (
        ({"type": "Point", "coordinates": (float(x), float(y))}, 1)
        for x, y in zip(xs[ok], ys[ok])
    )
    counts = rasterize(
        shapes,
        out_shape=spec.shape,
        transform=spec.transform,
        fill=0,
        merge_alg=MergeAlg.add,
        dtype="int32",
    ).astype(np.float64)
    counts[counts == 0] = np.nan
    return counts
# endregion
