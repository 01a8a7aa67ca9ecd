# config.py
# region Imports
import json
from dataclasses import dataclass, field, fields
from typing import Dict, List, Optional, Tuple
# endregion

# region Census Source
CENSUS_URL = (
    "https://www.zensus2011.de/SharedDocs/Downloads/DE/Pressemitteilung/"
    "DemografischeGrunddaten/csv_Zensus_KlassenGitter.zip"
    "?__blob=publicationFile&v=8"
)
CENSUS_ZIP_NAME = "csv_Zensus_KlassenGitter.zip"
CENSUS_SEP = ";"

# raw column -> tidy column; all but the coordinates are 1 km class codes
CENSUS_COLUMNS = {
    "x_mp_1km": "x",
    "y_mp_1km": "y",
    "Einwohner": "pop",
    "Frauen_A": "women",
    "Alter_D": "mean_age",
    "HHGroesse_D": "hh_size",
}
CLASS_COLUMNS = ["pop", "women", "mean_age", "hh_size"]

# -1: unknown, -9: withheld for privacy
SENTINELS = (-1, -9)

GRID_CRS = "EPSG:3035"
# endregion

# region Reclassification Tables
# rows are (from, to, becomes), both ends inclusive
RCL_POP = [
    (1, 1, 127),
    (2, 2, 375),
    (3, 3, 1250),
    (4, 4, 3000),
    (5, 5, 6000),
    (6, 6, 8000),
]
RCL_WOMEN = [(1, 1, 3), (2, 2, 2), (3, 3, 1), (4, 5, 0)]
RCL_AGE = [(1, 1, 3), (2, 2, 0), (3, 5, 0)]
RCL_HH = list(RCL_WOMEN)
# endregion

# region Metro Detection
AGG_FACT = 20              # 1 km -> 20 km cells
METRO_MIN_POP = 500_000
# endregion

# region External Services
USER_AGENT = "geomarketing-location-analysis"
OVERPASS_URL = "https://overpass-api.de/api/interpreter"
OVERPASS_TIMEOUT = 300
MAX_ATTEMPTS = 3
SLEEP_RANGE = (5.0, 10.0)  # seconds between calls to third-party services

# reverse geocoding sometimes lands in a suburb
NAME_OVERRIDES = {"Velbert": "Düsseldorf", "Wülfrath": "Düsseldorf"}
# endregion

# region Scoring
POI_KEY = "shop"
POI_CLASSES = 4
SUITABLE_MIN_SCORE = 9
# endregion


# region Pipeline Config
@dataclass
class PipelineConfig:
    census_url: str = CENSUS_URL
    census_csv: Optional[str] = None
    data_dir: str = "data"
    output_dir: str = "output"
    grid_crs: str = GRID_CRS
    rcl_pop: List[Tuple[float, float, float]] = field(default_factory=lambda: list(RCL_POP))
    rcl_women: List[Tuple[float, float, float]] = field(default_factory=lambda: list(RCL_WOMEN))
    rcl_age: List[Tuple[float, float, float]] = field(default_factory=lambda: list(RCL_AGE))
    rcl_hh: List[Tuple[float, float, float]] = field(default_factory=lambda: list(RCL_HH))
    agg_fact: int = AGG_FACT
    metro_min_pop: float = METRO_MIN_POP
    user_agent: str = USER_AGENT
    overpass_url: str = OVERPASS_URL
    overpass_timeout: int = OVERPASS_TIMEOUT
    max_attempts: int = MAX_ATTEMPTS
    sleep_range: Tuple[float, float] = SLEEP_RANGE
    name_overrides: Dict[str, str] = field(default_factory=lambda: dict(NAME_OVERRIDES))
    poi_key: str = POI_KEY
    poi_classes: int = POI_CLASSES
    suitable_min_score: float = SUITABLE_MIN_SCORE

    def reclass_tables(self) -> Dict[str, List[Tuple[float, float, float]]]:
        return {
            "pop": self.rcl_pop,
            "women": self.rcl_women,
            "mean_age": self.rcl_age,
            "hh_size": self.rcl_hh,
        }


def load_config(path: Optional[str] = None, **overrides) -> PipelineConfig:
    """Defaults, then JSON file values, then keyword overrides (None is ignored)."""
    values = {}
    if path:
        with open(path, "r", encoding="utf-8") as f:
            values.update(json.load(f))
    values.update({k: v for k, v in overrides.items() if v is not None})

    known = {f.name for f in fields(PipelineConfig)}
    unknown = sorted(set(values) - known)
    if unknown:
        raise ValueError(f"Unknown config keys: {', '.join(unknown)}")

    for key in ("rcl_pop", "rcl_women", "rcl_age", "rcl_hh"):
        if key in values:
            values[key] = [tuple(row) for row in values[key]]
    if "sleep_range" in values:
        lo, hi = values["sleep_range"]
        values["sleep_range"] = (float(lo), float(hi))
    return PipelineConfig(**values)
# endregion
