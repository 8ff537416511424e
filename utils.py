"""Shared utilities for the pipeline and the Streamlit dashboard."""

from __future__ import annotations

from collections.abc import Mapping
from copy import deepcopy
import json
from typing import Any

import pandas as pd
import streamlit as st

from errors import DataIntegrity


def load_config(config_path: str = "config.json") -> dict[str, Any]:
    """Load the JSON configuration file from *config_path*."""
    with open(config_path, "r", encoding="utf-8") as config_file:
        return json.load(config_file)


def merge_config_defaults(target: dict[str, Any], defaults: Mapping) -> None:
    """Populate missing keys in *target* using values from *defaults*.

    This helper performs a deep merge so nested dictionaries are handled
    recursively. Existing keys in ``target`` are preserved.
    """

    for key, value in defaults.items():
        if key not in target:
            target[key] = deepcopy(value)
            continue

        existing = target[key]
        if isinstance(existing, Mapping) and isinstance(value, Mapping):
            merge_config_defaults(existing, value)


def initialize_session_config(defaults: Mapping | None = None) -> dict[str, Any]:
    """Ensure ``st.session_state['config']`` exists and is populated.

    Parameters
    ----------
    defaults:
        Mapping that provides default values. If ``None`` the defaults are
        loaded from ``config.json``.
    """

    if defaults is None:
        defaults = load_config()

    if "config" not in st.session_state:
        st.session_state["config"] = deepcopy(defaults)
    else:
        merge_config_defaults(st.session_state["config"], defaults)

    return st.session_state["config"]


def update_session_config(updates: Mapping[str, Any] | None = None, **kwargs: Any) -> dict[str, Any]:
    """Apply shallow updates to ``st.session_state['config']``.

    ``updates`` may be any mapping. Additional keyword arguments are merged on
    top to provide a convenient call-site API. The updated configuration object
    is returned for convenience.
    """

    if "config" not in st.session_state:
        raise RuntimeError("Session config has not been initialised")

    config = st.session_state["config"]
    merged_updates: dict[str, Any] = {}
    if updates:
        merged_updates.update(updates)
    merged_updates.update(kwargs)

    for key, value in merged_updates.items():
        config[key] = value

    return config


def normalize_tract_id(values: pd.Series, *, step: str = "join") -> pd.Series:
    """Return *values* as integer tract ids with no leading zeros.

    Accepts GEOID strings (``"48201100000"``), numbers read from a spreadsheet
    (``48201100000.0``) and lightly formatted ids (``"48-201-100000"``).
    Anything else raises :class:`DataIntegrity`.
    """

    text = values.astype(str).str.strip()
    text = text.str.replace(r"\.0+$", "", regex=True)
    text = text.str.replace(r"[\s\-]", "", regex=True)

    invalid = ~text.str.fullmatch(r"\d+")
    if invalid.any():
        raise DataIntegrity(
            "tract ids must be numeric",
            step=step,
            keys=values[invalid].tolist(),
        )

    return text.astype("int64").rename(values.name)


def geoid_prefix(state_fips: str, county_fips: str) -> str:
    """Return the 5 digit state+county prefix of the tract GEOIDs in a county."""
    return str(state_fips).zfill(2) + str(county_fips).zfill(3)
