# region Imports
from typing import Dict, Iterable

import numpy as np

from .models import RasterStack
# endregion


# region Map Algebra
def sum_layers(stack: RasterStack, exclude: Iterable[str] = ()) -> np.ndarray:
    """Cellwise sum of the remaining bands; NaN in any band gives NaN."""
    names = [n for n in stack.names if n not in set(exclude)]
    if not names:
        raise ValueError("No bands left to sum")
    total = np.zeros(stack.spec.shape, dtype=np.float64)
    for name in names:
        total = total + stack[name]
    return total


def suitable_mask(score: np.ndarray, minimum: float) -> np.ndarray:
    with np.errstate(invalid="ignore"):
        return np.isfinite(score) & (score > minimum)


def summarize(score: np.ndarray, mask: np.ndarray) -> Dict[str, float]:
    finite = score[np.isfinite(score)]
    return {
        "scored_cells": int(finite.size),
        "suitable_cells": int(mask.sum()),
        "max_score": float(finite.max()) if finite.size else float("nan"),
        "mean_score": float(finite.mean()) if finite.size else float("nan"),
    }
# endregion
