# region Imports
import logging
import random
import time
import unicodedata
from dataclasses import replace
from typing import Dict, List, Optional

from geopy.geocoders import Nominatim
from tqdm import tqdm

from .config import PipelineConfig
from .models import Region
from .retry import call_with_retries
# endregion

logger = logging.getLogger(__name__)

UMLAUTS = {"ä": "ae", "ö": "oe", "ü": "ue", "Ä": "Ae", "Ö": "Oe", "Ü": "Ue", "ß": "ss"}
PLACE_KEYS = ("city", "town", "village", "municipality")


def make_geocoder(user_agent: str, timeout: float = 15.0) -> Nominatim:
    return Nominatim(user_agent=user_agent, timeout=timeout)


# region Reverse Lookup
def reverse_geocode(
    lon: float,
    lat: float,
    geocoder,
    *,
    attempts: int = 3,
    delay=(5.0, 10.0),
    sleep=time.sleep,
    rng=random,
) -> Optional[dict]:
    """Address dict for a lon/lat point, or None when every attempt failed."""
    def lookup():
        loc = geocoder.reverse((lat, lon), exactly_one=True, addressdetails=True, zoom=10)
        if loc is None:
            return None
        return (loc.raw or {}).get("address") or None

    return call_with_retries(
        lookup,
        attempts=attempts,
        delay=delay,
        label=f"reverse geocode ({lon:.4f}, {lat:.4f})",
        sleep=sleep,
        rng=rng,
    )
# endregion


# region Names
def place_name(address: Optional[dict]) -> Optional[str]:
    if not address:
        return None
    for key in PLACE_KEYS:
        if address.get(key):
            return str(address[key])
    return None


def normalize_name(name: Optional[str], overrides: Optional[Dict[str, str]] = None) -> Optional[str]:
    """Apply overrides, then spell umlauts and other accents in ASCII."""
    if name is None:
        return None
    name = (overrides or {}).get(name, name)
    name = "".join(UMLAUTS.get(ch, ch) for ch in name)
    name = unicodedata.normalize("NFKD", name).encode("ascii", "ignore").decode("ascii")
    return " ".join(name.split()) or None


def name_regions(
    regions: List[Region],
    geocoder,
    cfg: PipelineConfig,
    *,
    sleep=time.sleep,
    rng=random,
) -> List[Region]:
    named = []
    for reg in tqdm(regions, desc="Reverse geocoding", leave=False):
        lon, lat = reg.centroid_lonlat
        address = reverse_geocode(
            lon, lat, geocoder,
            attempts=cfg.max_attempts, delay=cfg.sleep_range, sleep=sleep, rng=rng,
        )
        name = normalize_name(place_name(address), cfg.name_overrides)
        if name is None:
            logger.warning("Region %d at (%.4f, %.4f) has no place name", reg.id, lon, lat)
        else:
            logger.info("Region %d -> %s", reg.id, name)
        named.append(replace(reg, name=name))
    return named
# endregion
