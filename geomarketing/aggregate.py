# region Imports
from typing import Tuple

import numpy as np

from .models import GridSpec
# endregion


# region Block Aggregation
def aggregate_sum(band: np.ndarray, spec: GridSpec, fact: int) -> Tuple[np.ndarray, GridSpec]:
    """Sum fact x fact blocks ignoring NaN; ragged edge blocks are kept."""
    fact = int(fact)
    if fact < 1:
        raise ValueError("Aggregation factor must be >= 1")
    if band.shape != spec.shape:
        raise ValueError(f"Band shape {band.shape} does not match grid {spec.shape}")

    H, W = band.shape
    H2, W2 = -(-H // fact), -(-W // fact)
    padded = np.full((H2 * fact, W2 * fact), np.nan, dtype=np.float64)
    padded[:H, :W] = band

    blocks = padded.reshape(H2, fact, W2, fact)
    valid = np.isfinite(blocks).any(axis=(1, 3))
    sums = np.nansum(blocks, axis=(1, 3))
    out = np.where(valid, sums, np.nan)

    coarse = GridSpec(
        west=spec.west, north=spec.north, res=spec.res * fact, W=W2, H=H2, crs=spec.crs
    )
    return out, coarse


def threshold(band: np.ndarray, minimum: float) -> np.ndarray:
    """Keep values strictly above minimum; everything else becomes NaN."""
    with np.errstate(invalid="ignore"):
        keep = band > minimum
    return np.where(keep, band, np.nan)
# endregion
