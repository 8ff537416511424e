import pandas as pd
import pytest

from errors import DataIntegrity, SchemaMismatch
from fa_data import load_food_access

HARRIS = {"state_fips": "48", "county_fips": "201"}


def _write_atlas(tmp_path, rows, name="atlas.csv"):
    path = tmp_path / name
    pd.DataFrame(rows).to_csv(path, index=False)
    return str(path)


def _atlas_rows():
    return {
        "CensusTract": ["48201100000", "48201222100", "48157670100", "01001020100"],
        "State": ["Texas", "Texas", "Texas", "Alabama"],
        "LA1and10": [1, 0, 1, 0],
        "PovertyRate": [31.2, 8.5, None, 15.0],
        "Urban": [1, 1, 0, 0],
    }


def test_load_food_access_renames_and_normalizes(tmp_path):
    path = _write_atlas(tmp_path, _atlas_rows())

    df = load_food_access(path)

    assert {"tract_id", "low_access_flag", "poverty_rate", "State", "Urban"}.issubset(df.columns)
    assert df["tract_id"].tolist() == [48201100000, 48201222100, 48157670100, 1001020100]
    assert df["low_access_flag"].dtype == "int64"
    assert pd.isna(df.loc[2, "poverty_rate"])


def test_load_food_access_filters_region(tmp_path):
    path = _write_atlas(tmp_path, _atlas_rows())

    df = load_food_access(path, region=HARRIS)

    assert df["tract_id"].tolist() == [48201100000, 48201222100]


def test_load_food_access_region_handles_dropped_leading_zero(tmp_path):
    path = _write_atlas(tmp_path, _atlas_rows())

    df = load_food_access(path, region={"state_fips": "01", "county_fips": "001"})

    assert df["tract_id"].tolist() == [1001020100]


def test_load_food_access_restricts_passthrough(tmp_path):
    path = _write_atlas(tmp_path, _atlas_rows())

    df = load_food_access(path, passthrough=["Urban"])

    assert df.columns.tolist() == ["tract_id", "low_access_flag", "poverty_rate", "Urban"]


def test_load_food_access_custom_columns(tmp_path):
    rows = _atlas_rows()
    rows["LILATracts_1And10"] = rows.pop("LA1and10")
    path = _write_atlas(tmp_path, rows)

    df = load_food_access(path, flag_column="LILATracts_1And10", region=HARRIS)

    assert df["low_access_flag"].tolist() == [1, 0]


def test_load_food_access_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_food_access(str(tmp_path / "missing.csv"))


def test_load_food_access_missing_columns(tmp_path):
    rows = _atlas_rows()
    del rows["LA1and10"]
    path = _write_atlas(tmp_path, rows)

    with pytest.raises(SchemaMismatch) as excinfo:
        load_food_access(path)

    assert excinfo.value.keys == ["LA1and10"]
    assert excinfo.value.step == "food_access"


def test_load_food_access_missing_passthrough(tmp_path):
    path = _write_atlas(tmp_path, _atlas_rows())

    with pytest.raises(SchemaMismatch):
        load_food_access(path, passthrough=["MedianFamilyIncome"])


def test_load_food_access_rejects_non_binary_flag(tmp_path):
    rows = _atlas_rows()
    rows["LA1and10"] = [1, 2, 0, None]
    path = _write_atlas(tmp_path, rows)

    with pytest.raises(DataIntegrity) as excinfo:
        load_food_access(path)

    assert excinfo.value.keys == [48201222100, 1001020100]


def test_load_food_access_rejects_out_of_range_poverty(tmp_path):
    rows = _atlas_rows()
    rows["PovertyRate"] = [31.2, 108.0, None, 15.0]
    path = _write_atlas(tmp_path, rows)

    with pytest.raises(DataIntegrity, match="PovertyRate"):
        load_food_access(path)


def test_load_food_access_trims_header_whitespace(tmp_path):
    path = tmp_path / "atlas.csv"
    path.write_text(" CensusTract , LA1and10 , PovertyRate \n48201100000,1,20.0\n")

    df = load_food_access(str(path))

    assert df.loc[0, "tract_id"] == 48201100000
    assert df.loc[0, "low_access_flag"] == 1
