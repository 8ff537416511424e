# /// script
# dependencies = ["pandas", "openpyxl"]
# ///

"""Loader for the USDA Food Access Research Atlas tract table."""

from __future__ import annotations

import logging
import os
from typing import Iterable, Mapping

import pandas as pd

from errors import DataIntegrity, SchemaMismatch
from utils import geoid_prefix, normalize_tract_id

logger = logging.getLogger(__name__)


def _read_table(path: str, tract_column: str) -> pd.DataFrame:
    if path.endswith(".xlsx"):
        return pd.read_excel(path, dtype={tract_column: str})
    return pd.read_csv(path, dtype={tract_column: str}, low_memory=False)


def load_food_access(
    path: str,
    *,
    tract_column: str = "CensusTract",
    flag_column: str = "LA1and10",
    poverty_column: str = "PovertyRate",
    region: Mapping[str, str] | None = None,
    passthrough: Iterable[str] | None = None,
) -> pd.DataFrame:
    """Read the food access table and return it keyed by ``tract_id``.

    The tract, flag and poverty columns are renamed to ``tract_id``,
    ``low_access_flag`` and ``poverty_rate``. When *region* is given only
    tracts in that state+county are kept. *passthrough* restricts which of the
    remaining columns are carried along; ``None`` keeps all of them.
    """

    if not os.path.exists(path):
        raise FileNotFoundError(f"Food access file not found: {path}")

    df = _read_table(path, tract_column)
    df = df.rename(columns={col: str(col).strip() for col in df.columns})

    required = [tract_column, flag_column, poverty_column]
    missing = [col for col in required if col not in df.columns]
    if missing:
        raise SchemaMismatch(f"{path} is missing required columns", step="food_access", keys=missing)

    if passthrough is not None:
        extra = list(passthrough)
        absent = [col for col in extra if col not in df.columns]
        if absent:
            raise SchemaMismatch(f"{path} is missing passthrough columns", step="food_access", keys=absent)
        df = df[required + [col for col in extra if col not in required]]

    df = df.rename(
        columns={
            tract_column: "tract_id",
            flag_column: "low_access_flag",
            poverty_column: "poverty_rate",
        }
    )
    df["tract_id"] = normalize_tract_id(df["tract_id"], step="food_access")

    if region is not None:
        prefix = geoid_prefix(region["state_fips"], region["county_fips"])
        in_region = df["tract_id"].astype(str).str.zfill(11).str.startswith(prefix)
        df = df.loc[in_region]
        logger.info(f"Kept {len(df)} food access rows for {prefix}")

    flag = pd.to_numeric(df["low_access_flag"], errors="coerce")
    bad_flag = ~flag.isin([0, 1])
    if bad_flag.any():
        raise DataIntegrity(
            f"{flag_column} must be 0 or 1",
            step="food_access",
            keys=df.loc[bad_flag, "tract_id"].tolist(),
        )

    poverty = pd.to_numeric(df["poverty_rate"], errors="coerce")
    bad_poverty = poverty.notna() & ((poverty < 0) | (poverty > 100))
    if bad_poverty.any():
        raise DataIntegrity(
            f"{poverty_column} must be between 0 and 100",
            step="food_access",
            keys=df.loc[bad_poverty, "tract_id"].tolist(),
        )

    df = df.assign(low_access_flag=flag.astype("int64"), poverty_rate=poverty.astype("float64"))
    logger.info(f"Loaded {len(df)} food access records from {path}")
    return df.reset_index(drop=True)


if __name__ == "__main__":
    from utils import load_config

    config = load_config()
    fa_config = config["food_access"]
    df = load_food_access(
        config["file_paths"]["food_access"],
        tract_column=fa_config["tract_column"],
        flag_column=fa_config["flag_column"],
        poverty_column=fa_config["poverty_column"],
        region=config["region"],
        passthrough=fa_config.get("passthrough"),
    )
    print(f"{len(df)} tracts, {int(df.low_access_flag.sum())} flagged low access")
