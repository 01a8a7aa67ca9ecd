# pipeline.py
"""
Bike-shop location analysis for Germany, end to end.

    census -> reclassified weights -> metro regions -> names -> shops
           -> POI classes -> summed score -> suitability mask

Each step is a plain function so it can run (and be tested) on its own;
`run` chains them and writes every intermediate product to disk.
"""
# region Imports
from __future__ import annotations
import logging
import os
import random
import time
from typing import List, Optional, Tuple

import numpy as np
import pandas as pd
import requests
from pyproj import Transformer

from .aggregate import aggregate_sum, threshold
from .breaks import poi_classes
from .census import clean_census, download_census, read_census
from .config import CLASS_COLUMNS, PipelineConfig
from .export import write_mask, write_regions, write_shops, write_stack
from .geocode import make_geocoder, name_regions
from .grid import grid_from_xyz, rasterize_points, rasterize_table
from .models import PipelineResult, RasterStack, Region
from .poi import download_shops
from .reclassify import reclassify_stack
from .regions import metro_regions
from .suitability import sum_layers, suitable_mask, summarize
# endregion

logger = logging.getLogger(__name__)


# region Steps
def load_census(cfg: PipelineConfig) -> pd.DataFrame:
    csv_path = cfg.census_csv or download_census(cfg.census_url, cfg.data_dir)
    return clean_census(read_census(csv_path))


def build_reclass(census: pd.DataFrame, cfg: PipelineConfig) -> RasterStack:
    spec = grid_from_xyz(census["x"], census["y"], cfg.grid_crs)
    logger.info("Census grid: %d x %d cells at %g m", spec.W, spec.H, spec.res)
    input_ras = rasterize_table(census, spec, CLASS_COLUMNS)
    return reclassify_stack(input_ras, cfg.reclass_tables())


def find_metros(reclass: RasterStack, cfg: PipelineConfig) -> Tuple[RasterStack, List[Region]]:
    pop_agg, coarse = aggregate_sum(reclass["pop"], reclass.spec, cfg.agg_fact)
    pop_agg = threshold(pop_agg, cfg.metro_min_pop)
    logger.info(
        "%d coarse cells above %g inhabitants",
        int(np.isfinite(pop_agg).sum()), cfg.metro_min_pop,
    )
    regions = metro_regions(pop_agg, coarse)
    return RasterStack(coarse, {"pop": pop_agg}), regions


def poi_layer(shops: pd.DataFrame, reclass: RasterStack, cfg: PipelineConfig) -> np.ndarray:
    spec = reclass.spec
    if shops.empty:
        logger.warning("No shops; POI layer is empty")
        return np.full(spec.shape, np.nan)

    to_grid = Transformer.from_crs("EPSG:4326", spec.crs, always_xy=True)
    xs, ys = to_grid.transform(shops["lon"].to_numpy(float), shops["lat"].to_numpy(float))
    counts = rasterize_points(xs, ys, spec)
    classes = poi_classes(counts, cfg.poi_classes)
    if classes is None:
        logger.warning("No shops fall inside the census grid")
        return np.full(spec.shape, np.nan)
    return classes


def score_layers(reclass: RasterStack, poi: np.ndarray, cfg: PipelineConfig):
    layers = reclass.without("pop").with_band("poi", poi)
    score = sum_layers(layers)
    mask = suitable_mask(score, cfg.suitable_min_score)
    return layers, score, mask
# endregion


# region Run
def run(
    cfg: PipelineConfig,
    *,
    geocoder=None,
    session: Optional[requests.Session] = None,
    sleep=time.sleep,
    rng=random,
) -> PipelineResult:
    t0 = time.time()
    os.makedirs(cfg.output_dir, exist_ok=True)

    census = load_census(cfg)
    reclass = build_reclass(census, cfg)
    del census

    metro_pop, regions = find_metros(reclass, cfg)

    geocoder = geocoder or make_geocoder(cfg.user_agent)
    regions = name_regions(regions, geocoder, cfg, sleep=sleep, rng=rng)

    own_session = session is None
    session = session or requests.Session()
    session.headers.setdefault("User-Agent", cfg.user_agent)
    try:
        shops = download_shops(
            [r.name for r in regions], session, geocoder, cfg, sleep=sleep, rng=rng
        )
    finally:
        if own_session:
            session.close()

    poi = poi_layer(shops, reclass, cfg)
    layers, score, mask = score_layers(reclass, poi, cfg)

    stats = summarize(score, mask)
    logger.info(
        "Scored %d cells, %d suitable (score > %g), max %.1f",
        stats["scored_cells"], stats["suitable_cells"], cfg.suitable_min_score, stats["max_score"],
    )

    out = cfg.output_dir
    outputs = {
        "layers": write_stack(layers.with_band("score", score), os.path.join(out, "score_layers.tif")),
        "metro_pop": write_stack(metro_pop, os.path.join(out, "metro_pop.tif")),
        "regions": write_regions(regions, metro_pop.spec.crs, os.path.join(out, "metros.geojson")),
        "shops": write_shops(shops, os.path.join(out, "shops.csv")),
        "suitable": write_mask(mask, reclass.spec, os.path.join(out, "suitable.tif")),
    }
    logger.info("Done in %.1f s", time.time() - t0)

    return PipelineResult(
        reclass=reclass,
        metro_pop=metro_pop,
        regions=regions,
        shops=shops,
        score=score,
        suitable=mask,
        outputs=outputs,
    )
# endregion
