"""Tract classification, food access join and summary tables."""

from __future__ import annotations

import logging

import numpy as np
import pandas as pd

from errors import ArithmeticUndefined, DataIntegrity, SchemaMismatch
from utils import normalize_tract_id

logger = logging.getLogger(__name__)

RAW_COUNT_COLUMNS = [
    "total_pop",
    "white",
    "black",
    "aian",
    "asian",
    "nhpi",
    "other_race",
    "two_or_more",
    "hispanic",
]

# Combined groups are built from two raw census groups each.
COMBINED_GROUPS = {
    "aapi": ("asian", "nhpi"),
    "multiracial": ("other_race", "two_or_more"),
}

# Analysis groups in classification precedence order.
GROUPS = [
    ("white", "White"),
    ("black", "Black"),
    ("aapi", "AAPI"),
    ("aian", "AIAN"),
    ("multiracial", "Multiracial"),
    ("hispanic", "Hispanic/Latino"),
]
GROUP_COLUMNS = [column for column, _ in GROUPS]
SHARE_COLUMNS = [f"{column}_pct" for column in GROUP_COLUMNS]

MAJORITY_THRESHOLD = 0.5
DIVERSE_LABEL = "Racially Diverse"

CATEGORY_RULES = [
    (lambda df: df["white_pct"] > MAJORITY_THRESHOLD, "Majority White"),
    (lambda df: df["black_pct"] > MAJORITY_THRESHOLD, "Majority Black"),
    (lambda df: df["aapi_pct"] > MAJORITY_THRESHOLD, "Majority AAPI"),
    (lambda df: df["aian_pct"] > MAJORITY_THRESHOLD, "Majority AIAN"),
    (lambda df: df["multiracial_pct"] > MAJORITY_THRESHOLD, "Majority Multiracial"),
    (lambda df: df["hispanic_pct"] > MAJORITY_THRESHOLD, "Majority Hispanic"),
]
CATEGORY_ORDER = [label for _, label in CATEGORY_RULES] + [DIVERSE_LABEL]


def _tract_keys(df: pd.DataFrame, mask: pd.Series) -> list:
    key = "GEOID" if "GEOID" in df.columns else "tract_id"
    if key in df.columns:
        return df.loc[mask, key].tolist()
    return df.index[mask].tolist()


def validate_counts(tracts: pd.DataFrame) -> None:
    """Raise if any raw count is absent, missing or negative."""

    missing_columns = [col for col in RAW_COUNT_COLUMNS if col not in tracts.columns]
    if missing_columns:
        raise SchemaMismatch("tract table is missing count columns", step="enrich", keys=missing_columns)

    for col in RAW_COUNT_COLUMNS:
        values = pd.to_numeric(tracts[col], errors="coerce")
        missing = values.isna()
        if missing.any():
            raise DataIntegrity(f"missing {col} counts", step="enrich", keys=_tract_keys(tracts, missing))
        negative = values < 0
        if negative.any():
            raise DataIntegrity(f"negative {col} counts", step="enrich", keys=_tract_keys(tracts, negative))


def combine_groups(tracts: pd.DataFrame) -> pd.DataFrame:
    """Return a copy with the two-part groups summed into single columns."""
    combined = tracts.copy()
    for target, (left, right) in COMBINED_GROUPS.items():
        combined[target] = combined[left] + combined[right]
    return combined


def share(counts: pd.Series, totals: pd.Series) -> pd.Series:
    """Return ``counts / totals``, refusing zero or negative denominators."""
    undefined = ~(totals > 0)
    if undefined.any():
        raise ArithmeticUndefined(
            f"cannot compute {counts.name} share without population",
            step="enrich",
            keys=totals.index[undefined].tolist(),
        )
    return counts / totals


def compute_group_shares(tracts: pd.DataFrame) -> pd.DataFrame:
    """Add ``<group>_pct`` columns (fractions of ``total_pop``) for each analysis group."""

    shares = tracts.copy()
    for column in GROUP_COLUMNS:
        over = shares[column] > shares["total_pop"]
        if over.any():
            raise DataIntegrity(
                f"{column} count exceeds total population",
                step="enrich",
                keys=_tract_keys(shares, over),
            )
        shares[f"{column}_pct"] = share(shares[column], shares["total_pop"])
    return shares


def classify_majority(shares: pd.DataFrame) -> pd.Series:
    """Label each tract with the first group whose share exceeds one half.

    Rules are evaluated top to bottom, so a tract where both the White and
    Black shares exceed the threshold is labelled ``Majority White``.
    """

    conditions = [rule(shares).to_numpy() for rule, _ in CATEGORY_RULES]
    labels = [label for _, label in CATEGORY_RULES]
    return pd.Series(
        np.select(conditions, labels, default=DIVERSE_LABEL),
        index=shares.index,
        name="majority_category",
    )


def enrich_tracts(tracts: pd.DataFrame) -> pd.DataFrame:
    """Drop unpopulated tracts, derive group shares and assign majority categories."""

    validate_counts(tracts)
    counts = tracts.copy()
    for col in RAW_COUNT_COLUMNS:
        counts[col] = pd.to_numeric(counts[col]).astype("int64")

    populated = counts.loc[counts["total_pop"] > 0]
    dropped = len(counts) - len(populated)
    if dropped:
        logger.info(f"Excluded {dropped} tracts with zero population")

    enriched = compute_group_shares(combine_groups(populated))
    enriched["majority_category"] = classify_majority(enriched)
    logger.info(f"Classified {len(enriched)} tracts")
    return enriched.reset_index(drop=True)


def join_food_access(tracts: pd.DataFrame, food_access: pd.DataFrame) -> pd.DataFrame:
    """Left join food access records onto the enriched tracts by ``tract_id``.

    Every tract appears exactly once in the result. Tracts without a food
    access record keep null ``low_access_flag`` and ``poverty_rate``.
    """

    if "tract_id" not in food_access.columns:
        raise SchemaMismatch("food access table has no tract_id", step="join", keys=["tract_id"])

    left = tracts.copy()
    source = "tract_id" if "tract_id" in left.columns else "GEOID"
    if source not in left.columns:
        raise SchemaMismatch("tract table has no GEOID or tract_id", step="join", keys=["GEOID"])
    left["tract_id"] = normalize_tract_id(left[source], step="join")

    right = food_access.copy()
    right["tract_id"] = normalize_tract_id(right["tract_id"], step="join")

    for name, frame in (("tract", left), ("food access", right)):
        duplicated = frame["tract_id"].duplicated(keep=False)
        if duplicated.any():
            raise DataIntegrity(
                f"duplicate tract ids in {name} table",
                step="join",
                keys=sorted(frame.loc[duplicated, "tract_id"].unique().tolist()),
            )

    joined = left.merge(right, on="tract_id", how="left", suffixes=("", "_fa"), validate="one_to_one")

    unmatched = joined["low_access_flag"].isna()
    if unmatched.any():
        logger.warning(
            f"{int(unmatched.sum())} tracts have no food access record: "
            f"{joined.loc[unmatched, 'tract_id'].tolist()[:10]}"
        )
    return joined


def _matched(joined: pd.DataFrame) -> pd.DataFrame:
    return joined.loc[joined["low_access_flag"].notna()]


def aggregate_by_category(joined: pd.DataFrame) -> pd.DataFrame:
    """Count food desert tracts per majority category."""

    matched = _matched(joined)
    grouped = matched.groupby("majority_category")["low_access_flag"]
    summary = pd.DataFrame(
        {
            "count_food_desert": grouped.sum().astype("int64"),
            "total_tracts": grouped.size().astype("int64"),
        }
    )
    summary = summary.reindex([label for label in CATEGORY_ORDER if label in summary.index])
    summary["pct_food_desert"] = summary["count_food_desert"] / summary["total_tracts"]
    return summary.rename_axis("majority_category").reset_index()


def aggregate_by_subgroup(joined: pd.DataFrame) -> pd.DataFrame:
    """Population of each group living in and out of food desert tracts."""

    matched = pd.DataFrame(_matched(joined)[["low_access_flag", *GROUP_COLUMNS]])
    matched = matched.astype({"low_access_flag": "int64"})
    long = matched.melt(
        id_vars=["low_access_flag"],
        value_vars=GROUP_COLUMNS,
        var_name="column",
        value_name="population",
    )
    totals = long.pivot_table(
        index="column",
        columns="low_access_flag",
        values="population",
        aggfunc="sum",
        fill_value=0,
    ).reindex(index=GROUP_COLUMNS, columns=[0, 1], fill_value=0)

    labels = dict(GROUPS)
    summary = pd.DataFrame(
        {
            "group": [labels[column] for column in GROUP_COLUMNS],
            "food_desert": totals[1].astype("int64").to_numpy(),
            "not_food_desert": totals[0].astype("int64").to_numpy(),
        }
    )
    summary["total_pop"] = summary["food_desert"] + summary["not_food_desert"]

    empty = summary["total_pop"] <= 0
    if empty.any():
        raise ArithmeticUndefined(
            "group has no population in matched tracts",
            step="aggregate",
            keys=summary.loc[empty, "group"].tolist(),
        )
    summary["per_food_desert"] = summary["food_desert"] / summary["total_pop"]
    return summary.sort_values("per_food_desert", ascending=False, kind="mergesort").reset_index(drop=True)


def scatter_data(joined: pd.DataFrame) -> pd.DataFrame:
    """Per tract white share, poverty rate and access flag with no missing values."""
    columns = ["tract_id", "white_pct", "poverty_rate", "low_access_flag"]
    points = joined[columns].dropna()
    return points.astype({"low_access_flag": "int64"}).reset_index(drop=True)
