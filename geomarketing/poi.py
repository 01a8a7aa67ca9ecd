# poi.py
"""Shop locations from OpenStreetMap via the Overpass API."""
# region Imports
import logging
import random
import time
from typing import Iterable, Optional, Tuple

import pandas as pd
import requests
from tqdm import tqdm

from .config import PipelineConfig
from .retry import call_with_retries
# endregion

logger = logging.getLogger(__name__)

POI_COLUMNS = ["osm_id", "lon", "lat", "shop", "region"]

BBox = Tuple[float, float, float, float]   # south, west, north, east


def empty_pois() -> pd.DataFrame:
    return pd.DataFrame(columns=POI_COLUMNS)


# region Area Lookup
def area_bbox(name: str, geocoder) -> Optional[BBox]:
    """Bounding box of a named place as (south, west, north, east)."""
    loc = geocoder.geocode(name, exactly_one=True)
    if loc is None:
        return None
    bb = (loc.raw or {}).get("boundingbox")
    if not bb or len(bb) != 4:
        return None
    south, north, west, east = (float(v) for v in bb)
    return (south, west, north, east)
# endregion


# region Overpass
def build_shop_query(bbox: BBox, key: str = "shop", timeout: int = 300) -> str:
    south, west, north, east = bbox
    return (
        f"[out:json][timeout:{int(timeout)}];\n"
        f'node["{key}"]({south},{west},{north},{east});\n'
        "out;"
    )


def parse_elements(data: dict, key: str = "shop", region: Optional[str] = None) -> pd.DataFrame:
    """Overpass nodes as a POI table; a node without the key tag has an NA category."""
    rows = []
    for el in data.get("elements") or []:
        if el.get("type") != "node":
            continue
        lat, lon = el.get("lat"), el.get("lon")
        if lat is None or lon is None:
            continue
        tags = el.get("tags") or {}
        rows.append({
            "osm_id": int(el["id"]),
            "lon": float(lon),
            "lat": float(lat),
            "shop": tags.get(key),
            "region": region,
        })
    if not rows:
        return empty_pois()
    return pd.DataFrame(rows, columns=POI_COLUMNS)


def query_overpass(query: str, session: requests.Session, url: str, timeout: float) -> dict:
    r = session.post(url, data={"data": query}, timeout=timeout)
    r.raise_for_status()
    return r.json()
# endregion


# region Download
def fetch_shops(
    name: str,
    session: requests.Session,
    geocoder,
    cfg: PipelineConfig,
    *,
    sleep=time.sleep,
    rng=random,
) -> pd.DataFrame:
    bbox = call_with_retries(
        lambda: area_bbox(name, geocoder),
        attempts=cfg.max_attempts, delay=cfg.sleep_range,
        label=f"bounding box of {name}", sleep=sleep, rng=rng,
    )
    if bbox is None:
        return empty_pois()

    query = build_shop_query(bbox, key=cfg.poi_key, timeout=cfg.overpass_timeout)

    def fetch():
        data = query_overpass(query, session, cfg.overpass_url, timeout=cfg.overpass_timeout + 30)
        return parse_elements(data, key=cfg.poi_key, region=name)

    shops = call_with_retries(
        fetch,
        attempts=cfg.max_attempts, delay=cfg.sleep_range,
        label=f"shops of {name}", sleep=sleep, rng=rng,
    )
    return shops if shops is not None else empty_pois()


def download_shops(
    names: Iterable[Optional[str]],
    session: requests.Session,
    geocoder,
    cfg: PipelineConfig,
    *,
    sleep=time.sleep,
    rng=random,
) -> pd.DataFrame:
    unique = list(dict.fromkeys(n for n in names if n))
    frames = []
    for name in tqdm(unique, desc="Shops", leave=False):
        logger.info("Downloading shops of: %s", name)
        df = fetch_shops(name, session, geocoder, cfg, sleep=sleep, rng=rng)
        if df.empty:
            continue
        logger.info("%s: %d shops", name, len(df))
        frames.append(df)

    if not frames:
        logger.warning("No shops downloaded for any region")
        return empty_pois()
    out = pd.concat(frames, ignore_index=True)
    return out.drop_duplicates(subset="osm_id").reset_index(drop=True)
# endregion
