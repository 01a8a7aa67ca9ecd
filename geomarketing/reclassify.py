# region Imports
import logging
from typing import Dict, Optional, Sequence, Tuple

import numpy as np

from .models import RasterStack
# endregion

logger = logging.getLogger(__name__)

Table = Sequence[Tuple[float, float, float]]


# region Band Reclassification
def reclassify(band: np.ndarray, table: Table, others: Optional[float] = None) -> np.ndarray:
    """
    Map values through (from, to, becomes) rows.

    Intervals are closed on both ends and the first matching row wins.
    Finite values matched by no row are kept, or set to `others` if given.
    NaN stays NaN.
    """
    rcl = np.asarray(table, dtype=np.float64)
    if rcl.ndim != 2 or rcl.shape[1] != 3:
        raise ValueError("Reclassification table needs rows of (from, to, becomes)")
    if np.any(rcl[:, 0] > rcl[:, 1]):
        raise ValueError("Reclassification row has from > to")

    src = np.asarray(band, dtype=np.float64)
    out = src.copy() if others is None else np.where(np.isnan(src), np.nan, float(others))
    done = np.isnan(src)
    for lo, hi, becomes in rcl:
        hit = ~done & (src >= lo) & (src <= hi)
        out[hit] = becomes
        done |= hit
    return out


def reclassify_stack(stack: RasterStack, tables: Dict[str, Table]) -> RasterStack:
    bands = {}
    for name, arr in stack.bands.items():
        if name in tables:
            bands[name] = reclassify(arr, tables[name])
            logger.debug("Reclassified %s with %d rows", name, len(tables[name]))
        else:
            bands[name] = arr
    return RasterStack(stack.spec, bands)
# endregion
