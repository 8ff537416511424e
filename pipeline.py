"""Run the food desert analysis end to end for one county."""

from __future__ import annotations

import argparse
import logging
import os
import sys
from typing import Any, Mapping, NamedTuple

import geopandas as gpd
import pandas as pd

from analysis import (
    aggregate_by_category,
    aggregate_by_subgroup,
    enrich_tracts,
    join_food_access,
    scatter_data,
)
from census_data import census_client, demographics_cache_path, load_demographics
from charts import (
    category_bar_chart,
    poverty_scatter,
    save_static_chart,
    subgroup_bar_chart,
    write_interactive,
)
from errors import PipelineError
from fa_data import load_food_access
from utils import load_config, merge_config_defaults

logger = logging.getLogger(__name__)

DEFAULT_CONFIG: dict[str, Any] = {
    "region": {"state_fips": "48", "county_fips": "201", "name": "Harris County, Texas"},
    "survey": {"year": 2019, "variant": "acs5"},
    "food_access": {
        "tract_column": "CensusTract",
        "flag_column": "LA1and10",
        "poverty_column": "PovertyRate",
        "passthrough": None,
    },
    "file_paths": {
        "acs": "data/acs_race.pkl",
        "food_access": "data/FoodAccessResearchAtlasData2019.csv",
        "output_dir": "output",
    },
    "charts": {"colors": {"food_desert": "#d62728", "not_food_desert": "#1f77b4"}},
    "map_display": {"height": 800, "map_style": "carto-positron", "zoom": 9, "opacity": 0.6},
    "fontsize": 12,
    "log_level": "INFO",
}

SUMMARY_FLOAT_FORMAT = "%.6f"


class PipelineResult(NamedTuple):
    tracts: gpd.GeoDataFrame
    by_category: pd.DataFrame
    by_subgroup: pd.DataFrame
    scatter: pd.DataFrame


def run_pipeline(demographics: pd.DataFrame, food_access: pd.DataFrame) -> PipelineResult:
    """Enrich, join and aggregate already loaded inputs."""
    enriched = enrich_tracts(demographics)
    joined = join_food_access(enriched, food_access)
    by_category = aggregate_by_category(joined)
    by_subgroup = aggregate_by_subgroup(joined)
    logger.info(
        f"Summarised {int(by_category['total_tracts'].sum())} matched tracts "
        f"across {len(by_category)} categories"
    )
    return PipelineResult(joined, by_category, by_subgroup, scatter_data(joined))


def load_inputs(config: Mapping[str, Any], client: Any = None) -> tuple[gpd.GeoDataFrame, pd.DataFrame]:
    """Load the demographic and food access tables described by *config*."""
    survey = config["survey"]
    paths = config["file_paths"]
    cache_path = paths.get("acs")
    cache_file = demographics_cache_path(cache_path, config["region"], survey["year"], survey.get("variant", "acs5"))

    if client is None and not (cache_file and os.path.exists(cache_file)):
        client = census_client(year=survey["year"])

    demographics = load_demographics(
        client,
        config["region"],
        survey["year"],
        variant=survey.get("variant", "acs5"),
        cache_path=cache_path,
    )

    fa_config = config["food_access"]
    food_access = load_food_access(
        paths["food_access"],
        tract_column=fa_config["tract_column"],
        flag_column=fa_config["flag_column"],
        poverty_column=fa_config["poverty_column"],
        region=config["region"],
        passthrough=fa_config.get("passthrough"),
    )
    return demographics, food_access


def write_outputs(result: PipelineResult, output_dir: str, config: Mapping[str, Any] | None = None) -> dict[str, str]:
    """Write summary CSVs and charts to *output_dir* and return the paths by name."""
    os.makedirs(output_dir, exist_ok=True)
    chart_config = (config or {}).get("charts")
    paths = {
        "by_category": os.path.join(output_dir, "by_category.csv"),
        "by_subgroup": os.path.join(output_dir, "by_subgroup.csv"),
    }

    result.by_category.to_csv(paths["by_category"], index=False, float_format=SUMMARY_FLOAT_FORMAT)
    result.by_subgroup.to_csv(paths["by_subgroup"], index=False, float_format=SUMMARY_FLOAT_FORMAT)

    paths["category_chart"] = write_interactive(
        category_bar_chart(result.by_category, chart_config),
        os.path.join(output_dir, "category_chart.html"),
    )
    paths["subgroup_chart"] = write_interactive(
        subgroup_bar_chart(result.by_subgroup, chart_config),
        os.path.join(output_dir, "subgroup_chart.html"),
    )
    paths["poverty_scatter"] = write_interactive(
        poverty_scatter(result.scatter, chart_config),
        os.path.join(output_dir, "poverty_scatter.html"),
    )
    paths["subgroup_png"] = save_static_chart(
        result.by_subgroup,
        os.path.join(output_dir, "subgroup_chart.png"),
        chart_config,
    )
    for name, path in paths.items():
        logger.info(f"Wrote {name}: {path}")
    return paths


def build_config(config_path: str | None) -> dict[str, Any]:
    config = load_config(config_path) if config_path else {}
    merge_config_defaults(config, DEFAULT_CONFIG)
    return config


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--config", help="Path to the JSON configuration file (default: config.json if present)")
    args = parser.parse_args(argv)

    config_path = args.config
    if config_path is None and os.path.exists("config.json"):
        config_path = "config.json"
    if config_path is not None and not os.path.exists(config_path):
        print(f"Error: config file not found: {config_path}", file=sys.stderr)
        return 1
    config = build_config(config_path)
    logging.basicConfig(
        level=config["log_level"],
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        demographics, food_access = load_inputs(config)
        result = run_pipeline(demographics, food_access)
        write_outputs(result, config["file_paths"]["output_dir"], config)
    except (PipelineError, FileNotFoundError, ValueError) as error:
        logger.error(f"Pipeline failed: {error}")
        print(f"Error: {error}", file=sys.stderr)
        return 1

    print(result.by_category.to_string(index=False))
    print()
    print(result.by_subgroup.to_string(index=False))
    return 0


if __name__ == "__main__":
    sys.exit(main())
