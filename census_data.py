# /// script
# dependencies = ["census", "pandas", "geopandas", "pygris"]
# ///

"""Tract level race/ethnicity counts and boundaries for one county."""

from __future__ import annotations

import logging
import os
from typing import Any, Mapping

import geopandas as gpd
import pandas as pd
import pygris
from census import Census
from census.core import CensusException, UnsupportedYearException

from errors import DataIntegrity, DataUnavailable, SchemaMismatch
from utils import geoid_prefix

logger = logging.getLogger(__name__)

# B03002: HISPANIC OR LATINO ORIGIN BY RACE
race_variables = {
    "B03002_001E": "total_pop",
    "B03002_003E": "white",
    "B03002_004E": "black",
    "B03002_005E": "aian",
    "B03002_006E": "asian",
    "B03002_007E": "nhpi",
    "B03002_008E": "other_race",
    "B03002_009E": "two_or_more",
    "B03002_012E": "hispanic",
}

COUNT_COLUMNS = list(race_variables.values())


def census_client(api_key: str | None = None, year: int = 2019) -> Census:
    """Build a ``census`` client, reading the key from ``CENSUS_API_KEY`` if not given."""
    if api_key is None:
        api_key = os.getenv("CENSUS_API_KEY")
    if not api_key:
        raise ValueError("CENSUS_API_KEY environment variable not found")
    return Census(api_key, year=year)


def fetch_race_counts(
    client: Any,
    state_fips: str,
    county_fips: str,
    *,
    year: int | None = None,
    variant: str = "acs5",
) -> pd.DataFrame:
    """Return one row per tract with ``GEOID``, ``NAME`` and the raw B03002 counts."""

    endpoint = getattr(client, variant, None)
    if endpoint is None:
        raise DataUnavailable(f"Unknown survey variant {variant!r}", step="demographics")

    geo = {"for": "tract:*", "in": f"state:{state_fips} county:{county_fips}"}
    try:
        rows = endpoint.get(("NAME", *race_variables.keys()), geo, year=year)
    except UnsupportedYearException as error:
        raise DataUnavailable(
            f"No {variant} data published for {year}: {error}", step="demographics"
        ) from error
    except CensusException as error:
        raise DataUnavailable(
            f"Census API request failed for state {state_fips} county {county_fips}: {error}",
            step="demographics",
        ) from error

    if not rows:
        raise DataUnavailable(
            f"Census API returned no tracts for state {state_fips} county {county_fips}",
            step="demographics",
        )

    df = pd.DataFrame(rows)
    missing = [col for col in ("state", "county", "tract", *race_variables) if col not in df.columns]
    if missing:
        raise SchemaMismatch("Census response is missing columns", step="demographics", keys=missing)

    df = df.rename(columns=race_variables)
    for col in COUNT_COLUMNS:
        df[col] = pd.to_numeric(df[col], errors="coerce")

    df["GEOID"] = df["state"].astype(str) + df["county"].astype(str) + df["tract"].astype(str)
    logger.info(f"Fetched {variant} race counts for {len(df)} tracts in {state_fips}{county_fips}")
    return df[["GEOID", "NAME", *COUNT_COLUMNS]]


def fetch_tract_geometry(state_fips: str, county_fips: str, year: int) -> gpd.GeoDataFrame:
    """Return cartographic boundary polygons for the county's tracts."""
    tracts: gpd.GeoDataFrame = pygris.tracts(state=state_fips, county=county_fips, year=year, cb=True)
    if "GEOID" not in tracts.columns:
        raise SchemaMismatch("Tract boundaries are missing GEOID", step="demographics", keys=["GEOID"])
    return tracts[["GEOID", "geometry"]]


def demographics_cache_path(
    cache_path: str | None,
    region: Mapping[str, str],
    year: int,
    variant: str = "acs5",
) -> str | None:
    """Return *cache_path* with the county, survey variant and year in the file name."""
    if not cache_path:
        return None
    root, ext = os.path.splitext(cache_path)
    prefix = geoid_prefix(region["state_fips"], region["county_fips"])
    return f"{root}_{prefix}_{variant}{year}{ext or '.pkl'}"


def load_demographics(
    client: Any,
    region: Mapping[str, str],
    year: int,
    *,
    variant: str = "acs5",
    cache_path: str | None = None,
) -> gpd.GeoDataFrame:
    """Return race counts joined to tract geometry.

    Pulls are cached per county, variant and year next to ``cache_path``
    (``data/acs_race.pkl`` becomes ``data/acs_race_48201_acs5_2019.pkl``).
    An existing cache file is read instead of calling the API.
    """

    state_fips, county_fips = region["state_fips"], region["county_fips"]
    cache_file = demographics_cache_path(cache_path, region, year, variant)

    if cache_file and os.path.exists(cache_file):
        logger.info(f"Using cached ACS demographics: {cache_file}")
        tracts = pd.read_pickle(cache_file)
        if not isinstance(tracts, gpd.GeoDataFrame):
            tracts = gpd.GeoDataFrame(tracts, geometry="geometry")
        prefix = geoid_prefix(state_fips, county_fips)
        foreign = ~tracts["GEOID"].astype(str).str.startswith(prefix)
        if foreign.any():
            raise DataIntegrity(
                f"cached demographics in {cache_file} include tracts outside {prefix}",
                step="demographics",
                keys=tracts.loc[foreign, "GEOID"].tolist(),
            )
        return tracts

    counts = fetch_race_counts(client, state_fips, county_fips, year=year, variant=variant)
    shapes = fetch_tract_geometry(state_fips, county_fips, year)

    tracts = shapes.merge(counts, on="GEOID", how="right")
    tracts = gpd.GeoDataFrame(tracts, geometry="geometry", crs=shapes.crs)
    tracts = tracts.sort_values("GEOID").reset_index(drop=True)
    without_shape = int(tracts.geometry.isna().sum())
    if without_shape:
        logger.warning(f"{without_shape} tracts have no boundary polygon for {year}")

    if cache_file:
        cache_dir = os.path.dirname(cache_file)
        if cache_dir:
            os.makedirs(cache_dir, exist_ok=True)
        tracts.to_pickle(cache_file)
        logger.info(f"Saved ACS demographics to {cache_file}")

    return tracts


if __name__ == "__main__":
    from utils import load_config

    config = load_config()
    survey = config["survey"]
    client = census_client(year=survey["year"])
    df = load_demographics(
        client,
        config["region"],
        survey["year"],
        variant=survey.get("variant", "acs5"),
        cache_path=config["file_paths"]["acs"],
    )
    print(f"Loaded {len(df)} tracts for {config['region'].get('name', 'region')}")
