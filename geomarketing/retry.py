# region Imports
import logging
import random
import time
from typing import Any, Callable, Optional, Tuple, Type

import requests
from geopy.exc import GeopyError
# endregion

logger = logging.getLogger(__name__)

RETRYABLE: Tuple[Type[BaseException], ...] = (requests.RequestException, GeopyError)


# region Helpers
def _is_empty(result: Any) -> bool:
    if result is None:
        return True
    if hasattr(result, "empty"):
        return bool(result.empty)
    try:
        return len(result) == 0
    except TypeError:
        return False


def polite_sleep(delay: Tuple[float, float], sleep=time.sleep, rng=random) -> float:
    lo, hi = delay
    secs = rng.uniform(lo, hi) if hi > 0 else 0.0
    if secs > 0:
        sleep(secs)
    return secs
# endregion


# region Retry Loop
def call_with_retries(
    fn: Callable[[], Any],
    *,
    attempts: int = 3,
    delay: Tuple[float, float] = (5.0, 10.0),
    is_empty: Callable[[Any], bool] = _is_empty,
    label: str = "request",
    sleep=time.sleep,
    rng=random,
    retry_on: Tuple[Type[BaseException], ...] = RETRYABLE,
) -> Optional[Any]:
    """
    Call fn until it returns a non-empty result, at most `attempts` times.

    A random delay drawn from `delay` precedes every call. Exceptions listed
    in `retry_on` count as a failed attempt. When all attempts fail the last
    result (possibly None) is returned as "no data".
    """
    if attempts < 1:
        raise ValueError("attempts must be >= 1")

    result = None
    for i in range(1, attempts + 1):
        polite_sleep(delay, sleep=sleep, rng=rng)
        try:
            result = fn()
        except retry_on as e:
            logger.debug("%s: attempt %d/%d failed: %s", label, i, attempts, e)
            result = None
            continue
        if not is_empty(result):
            return result
        logger.debug("%s: attempt %d/%d returned no data", label, i, attempts)

    logger.warning("%s: no data after %d attempts", label, attempts)
    return result
# endregion
