"""
Shared fixtures: a tiny synthetic census grid and offline stand-ins for
the geocoder and the Overpass HTTP session.
"""

import pandas as pd
import pytest
import requests
from pyproj import Transformer

# LAEA Europe origin sits at 52N 10E; cells here are in central Germany
X0 = 4321500.0
Y0 = 3210500.0
RES = 1000.0


class FakeLocation:
    def __init__(self, raw):
        self.raw = raw


class FakeGeocoder:
    """Replays queued results; Exception instances are raised."""

    def __init__(self, reverse=None, geocode=None):
        self.reverse_results = list(reverse or [])
        self.geocode_results = list(geocode or [])
        self.reverse_calls = []
        self.geocode_calls = []

    @staticmethod
    def _next(queue):
        item = queue.pop(0) if queue else None
        if isinstance(item, Exception):
            raise item
        return item

    def reverse(self, query, **kwargs):
        self.reverse_calls.append(query)
        return self._next(self.reverse_results)

    def geocode(self, query, **kwargs):
        self.geocode_calls.append(query)
        return self._next(self.geocode_results)


class FakeResponse:
    def __init__(self, payload, status=200):
        self.payload = payload
        self.status_code = status

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        return self.payload


class FakeSession:
    def __init__(self, responses=None):
        self.responses = list(responses or [])
        self.headers = {}
        self.posts = []

    def post(self, url, data=None, timeout=None):
        self.posts.append((url, data))
        item = self.responses.pop(0) if self.responses else FakeResponse({"elements": []})
        if isinstance(item, Exception):
            raise item
        return item


class FirstRng:
    """Always picks the lower end of a uniform range."""

    def uniform(self, lo, hi):
        return lo


@pytest.fixture
def no_sleep():
    calls = []
    return calls.append, calls


@pytest.fixture
def raw_census():
    """4 x 4 cells of the 1 km class grid, one with sentinels."""
    rows = []
    for i in range(4):
        for j in range(4):
            rows.append({
                "Gitter_ID_1km": f"1kmN{3210 + j}E{4321 + i}",
                "x_mp_1km": X0 + RES * i,
                "y_mp_1km": Y0 + RES * j,
                "Einwohner": 6,
                "Frauen_A": 1,
                "Alter_D": 1,
                "unter18_A": 2,
                "HHGroesse_D": 1,
            })
    rows[12]["Einwohner"] = -1     # i=3, j=0
    rows[12]["Frauen_A"] = -9
    return pd.DataFrame(rows)


@pytest.fixture
def census_csv(tmp_path, raw_census):
    path = tmp_path / "Zensus_Klassen_Merkmale.csv"
    raw_census.to_csv(path, sep=";", index=False)
    return str(path)


def cell_lonlat(i, j):
    to_wgs84 = Transformer.from_crs("EPSG:3035", "EPSG:4326", always_xy=True)
    return to_wgs84.transform(X0 + RES * i, Y0 + RES * j)
