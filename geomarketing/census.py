# census.py
"""Download, read and clean the German 2011 census 1 km class grid."""
# region Imports
import logging
import os
import zipfile

import numpy as np
import pandas as pd
import requests

from .config import CENSUS_COLUMNS, CENSUS_SEP, CENSUS_ZIP_NAME, CLASS_COLUMNS, SENTINELS
# endregion

logger = logging.getLogger(__name__)


# region Download
def download_census(url: str, dest_dir: str, timeout: float = 60.0) -> str:
    """
    Fetch the census ZIP into dest_dir (once) and extract its CSV.

    Returns the path of the extracted CSV. HTTP errors propagate.
    """
    os.makedirs(dest_dir, exist_ok=True)
    zip_path = os.path.join(dest_dir, CENSUS_ZIP_NAME)

    if os.path.exists(zip_path):
        logger.info("Using cached census archive %s", zip_path)
    else:
        logger.info("Downloading census grid from %s", url)
        with requests.get(url, stream=True, timeout=timeout) as r:
            r.raise_for_status()
            tmp_path = zip_path + ".part"
            with open(tmp_path, "wb") as f:
                for chunk in r.iter_content(chunk_size=1 << 20):
                    if chunk:
                        f.write(chunk)
        os.replace(tmp_path, zip_path)

    with zipfile.ZipFile(zip_path) as zf:
        csv_names = [n for n in zf.namelist() if n.lower().endswith(".csv")]
        if not csv_names:
            raise ValueError(f"No CSV file inside {zip_path}")
        name = csv_names[0]
        csv_path = os.path.join(dest_dir, os.path.basename(name))
        size = zf.getinfo(name).file_size
        if os.path.exists(csv_path) and os.path.getsize(csv_path) == size:
            logger.info("Using extracted census CSV %s", csv_path)
            return csv_path

        # a partial CSV never lands under the final name
        tmp_path = csv_path + ".part"
        with zf.open(name) as src, open(tmp_path, "wb") as dst:
            while True:
                block = src.read(1 << 20)
                if not block:
                    break
                dst.write(block)
        os.replace(tmp_path, csv_path)
    return csv_path
# endregion


# region Read / Clean
def read_census(path: str) -> pd.DataFrame:
    header = pd.read_csv(path, sep=CENSUS_SEP, nrows=0, encoding="latin-1")
    missing = [c for c in CENSUS_COLUMNS if c not in header.columns]
    if missing:
        raise ValueError(f"Census CSV {path} lacks columns: {', '.join(missing)}")

    df = pd.read_csv(
        path,
        sep=CENSUS_SEP,
        usecols=list(CENSUS_COLUMNS),
        encoding="latin-1",
    )
    df = df.rename(columns=CENSUS_COLUMNS)[list(CENSUS_COLUMNS.values())]
    logger.info("Read %d census cells from %s", len(df), path)
    return df


def clean_census(df: pd.DataFrame) -> pd.DataFrame:
    """Sentinel classes become NaN; coordinates are untouched."""
    if df.empty:
        raise ValueError("Census table is empty")
    out = df.copy()
    for col in CLASS_COLUMNS:
        vals = pd.to_numeric(out[col], errors="coerce").astype(float)
        out[col] = vals.where(~vals.isin(SENTINELS), np.nan)
    n_unknown = int(out[CLASS_COLUMNS].isna().to_numpy().sum())
    logger.debug("Marked %d class values as unknown", n_unknown)
    return out
# endregion
