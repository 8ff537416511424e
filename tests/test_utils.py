import json

import pandas as pd
import pytest
import streamlit as st

from errors import DataIntegrity
from utils import (
    geoid_prefix,
    initialize_session_config,
    load_config,
    merge_config_defaults,
    normalize_tract_id,
    update_session_config,
)


def setup_function():
    """Reset Streamlit session state before each test."""

    st.session_state.clear()


def test_merge_config_defaults_handles_nested_dicts():
    target = {"a": {"b": 1}, "c": 3}
    defaults = {"a": {"b": 2, "d": 4}, "e": 5}

    merge_config_defaults(target, defaults)

    assert target["a"]["b"] == 1  # existing values are preserved
    assert target["a"]["d"] == 4
    assert target["e"] == 5


def test_load_config_reads_json(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"region": {"state_fips": "37"}}))

    assert load_config(str(path)) == {"region": {"state_fips": "37"}}


def test_update_session_config_requires_initialisation():
    with pytest.raises(RuntimeError):
        update_session_config({"map_layer": "access_status"})


def test_session_config_round_trip():
    initialize_session_config({"map_display": {"opacity": 0.6}, "map_layer": "majority_category"})

    config = update_session_config(map_layer="access_status")

    assert config["map_layer"] == "access_status"
    assert st.session_state["config"]["map_display"]["opacity"] == 0.6


def test_normalize_tract_id_strips_formatting_and_leading_zeros():
    values = pd.Series(["01001020100", " 48201100000 ", "48201100000.0", "48-201-222100"], name="CensusTract")

    result = normalize_tract_id(values)

    assert result.tolist() == [1001020100, 48201100000, 48201100000, 48201222100]
    assert result.name == "CensusTract"


def test_normalize_tract_id_accepts_numbers():
    result = normalize_tract_id(pd.Series([48201100000, 1001020100.0]))

    assert result.tolist() == [48201100000, 1001020100]


def test_normalize_tract_id_rejects_non_numeric():
    with pytest.raises(DataIntegrity) as excinfo:
        normalize_tract_id(pd.Series(["48201100000", "Tract 1", None]))

    keys = excinfo.value.keys
    assert keys[0] == "Tract 1"
    assert pd.isna(keys[1])


def test_geoid_prefix_pads_fips():
    assert geoid_prefix("1", "1") == "01001"
    assert geoid_prefix("48", "201") == "48201"
