# breaks.py
# ----------------
# Fisher natural breaks (exact, dynamic programming) and break-based
# classification.
#
# The optimisation runs over the sorted unique values weighted by their
# frequency, which is exact and keeps count rasters (few distinct values,
# millions of cells) cheap. Above MAX_UNIQUE distinct values a reproducible
# random sample is classified instead.
# region Imports
import logging
from typing import Optional

import numpy as np
# endregion

logger = logging.getLogger(__name__)

MAX_UNIQUE = 3000


# region Helpers
def _weighted_unique(values: np.ndarray):
    v, w = np.unique(values, return_counts=True)
    return v.astype(np.float64), w.astype(np.float64)


def _sample(values: np.ndarray, size: int, seed: int) -> np.ndarray:
    rng = np.random.default_rng(seed)
    picked = rng.choice(values, size=min(size, values.size), replace=False)
    # keep the extremes so the outer breaks match the data
    return np.concatenate([picked, [values.min(), values.max()]])
# endregion


# region Fisher-Jenks
def fisher_jenks_breaks(values, k: int, *, max_unique: int = MAX_UNIQUE, seed: int = 0) -> np.ndarray:
    """
    Breaks [min, u_1, ..., u_{k-1}, max] minimising the within-class sum of
    squared deviations, where u_i is the largest value of class i.

    With k or fewer distinct values, the distinct values themselves are the
    breaks (a single value v gives [v, v]).
    """
    if k < 1:
        raise ValueError("k must be >= 1")
    x = np.asarray(values, dtype=np.float64).ravel()
    x = x[np.isfinite(x)]
    if x.size == 0:
        raise ValueError("No finite values to classify")

    v, w = _weighted_unique(x)
    if v.size > max_unique:
        size = max(max_unique - 2, k)
        logger.debug("Sampling %d of %d values for natural breaks", size, x.size)
        v, w = _weighted_unique(_sample(x, size, seed))

    m = v.size
    if m == 1:
        return np.array([v[0], v[0]])
    if m <= k:
        return v

    cw = np.concatenate([[0.0], np.cumsum(w)])
    c1 = np.concatenate([[0.0], np.cumsum(w * v)])
    c2 = np.concatenate([[0.0], np.cumsum(w * v * v)])

    def ssd(i, j):
        # values v[i:j]; i may be an array
        n = cw[j] - cw[i]
        s = c1[j] - c1[i]
        return (c2[j] - c2[i]) - s * s / n

    # cost[j]: best cost of splitting v[:j] into the current number of classes
    cost = np.full(m + 1, np.inf)
    cost[1:] = ssd(0, np.arange(1, m + 1))
    back = np.zeros((k, m + 1), dtype=np.int64)

    for c in range(1, k):
        new = np.full(m + 1, np.inf)
        for j in range(c + 1, m + 1):
            i = np.arange(c, j)
            cand = cost[i] + ssd(i, j)
            best = int(np.argmin(cand))
            new[j] = cand[best]
            back[c, j] = i[best]
        cost = new

    splits = []
    j = m
    for c in range(k - 1, 0, -1):
        j = back[c, j]
        splits.append(j)
    splits.reverse()

    uppers = [v[s - 1] for s in splits]
    return np.array([v[0]] + uppers + [v[-1]], dtype=np.float64)
# endregion


# region Classification
def classify_by_breaks(band, breaks) -> np.ndarray:
    """
    Class index 0..n-2 for n breaks. The first interval is [b0, b1], the
    others (b_i, b_i+1]. Values outside the breaks and NaN become NaN.
    """
    b = np.asarray(breaks, dtype=np.float64)
    if b.ndim != 1 or b.size < 2:
        raise ValueError("Need at least two breaks")
    if np.any(np.diff(b) <= 0):
        raise ValueError("Breaks must be strictly increasing")

    arr = np.asarray(band, dtype=np.float64)
    out = np.full(arr.shape, np.nan, dtype=np.float64)
    ok = np.isfinite(arr) & (arr >= b[0]) & (arr <= b[-1])
    idx = np.searchsorted(b, arr[ok], side="left") - 1
    out[ok] = np.clip(idx, 0, b.size - 2)
    return out


def poi_classes(band: np.ndarray, k: int, *, seed: int = 0) -> Optional[np.ndarray]:
    """
    Classify POI counts into k natural-breaks classes (0..k-1).

    Breaks are rounded to whole counts and the top break raised by one so
    the maximum is always covered. Returns None if the band has no data.
    """
    finite = band[np.isfinite(band)]
    if finite.size == 0:
        return None
    brks = np.round(fisher_jenks_breaks(finite, k, seed=seed))
    brks[-1] += 1
    brks = np.unique(brks)
    if brks.size < 2:
        brks = np.array([brks[0], brks[0] + 1])
    logger.info("POI class breaks: %s", ", ".join(f"{b:g}" for b in brks))
    return classify_by_breaks(band, brks)
# endregion
