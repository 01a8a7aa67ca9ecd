# models.py
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

import numpy as np
import pandas as pd
from rasterio.transform import from_origin


@dataclass(frozen=True)
class GridSpec:
    west: float
    north: float
    res: float
    W: int
    H: int
    crs: str

    @property
    def transform(self):
        return from_origin(self.west, self.north, self.res, self.res)

    @property
    def shape(self) -> Tuple[int, int]:
        return (self.H, self.W)

    @property
    def bounds(self) -> Tuple[float, float, float, float]:
        return (
            self.west,
            self.north - self.H * self.res,
            self.west + self.W * self.res,
            self.north,
        )


@dataclass
class RasterStack:
    spec: GridSpec
    bands: Dict[str, np.ndarray] = field(default_factory=dict)   # name -> (H,W) float

    def __post_init__(self):
        for name, arr in self.bands.items():
            if arr.shape != self.spec.shape:
                raise ValueError(
                    f"Band {name!r} has shape {arr.shape}, grid is {self.spec.shape}"
                )

    @property
    def names(self) -> List[str]:
        return list(self.bands)

    def __getitem__(self, name: str) -> np.ndarray:
        return self.bands[name]

    def with_band(self, name: str, arr: np.ndarray) -> "RasterStack":
        bands = dict(self.bands)
        bands[name] = arr
        return RasterStack(self.spec, bands)

    def without(self, *names: str) -> "RasterStack":
        return RasterStack(self.spec, {k: v for k, v in self.bands.items() if k not in names})


@dataclass
class Region:
    id: int
    geometry: object                  # shapely (Multi)Polygon, grid CRS
    centroid_xy: Tuple[float, float]  # largest part, grid CRS
    centroid_lonlat: Tuple[float, float]
    population: float = 0.0
    name: Optional[str] = None


@dataclass
class PipelineResult:
    reclass: RasterStack
    metro_pop: RasterStack
    regions: List[Region]
    shops: pd.DataFrame
    score: np.ndarray
    suitable: np.ndarray
    outputs: Dict[str, str] = field(default_factory=dict)
