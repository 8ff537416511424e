"""Plotly and matplotlib charts for the food desert summaries."""

from __future__ import annotations

from typing import Any, Mapping

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt
import pandas as pd
import plotly.express as px
import plotly.graph_objects as go

_DEFAULT_COLORS = {"food_desert": "#d62728", "not_food_desert": "#1f77b4"}


def _colors(config: Mapping[str, Any] | None) -> dict[str, str]:
    if not config:
        return dict(_DEFAULT_COLORS)
    return {**_DEFAULT_COLORS, **config.get("colors", {})}


def category_bar_chart(by_category: pd.DataFrame, config: Mapping[str, Any] | None = None) -> go.Figure:
    """Share of tracts in each majority category that are food deserts."""
    plot_df = by_category.assign(pct=by_category["pct_food_desert"] * 100)
    fig = px.bar(
        plot_df,
        x="majority_category",
        y="pct",
        text="total_tracts",
        color_discrete_sequence=[_colors(config)["food_desert"]],
        labels={
            "majority_category": "Tract Majority",
            "pct": "% of Tracts Low Access",
            "total_tracts": "Tracts",
        },
        hover_data={"count_food_desert": True, "total_tracts": True},
    )
    fig.update_traces(texttemplate="n=%{text}", textposition="outside")
    fig.update_layout(title="Food Desert Tracts by Majority Group", yaxis_range=[0, 100])
    return fig


def subgroup_bar_chart(by_subgroup: pd.DataFrame, config: Mapping[str, Any] | None = None) -> go.Figure:
    """Stacked population of each group in and out of food desert tracts."""
    colors = _colors(config)
    long = by_subgroup.melt(
        id_vars=["group", "per_food_desert"],
        value_vars=["food_desert", "not_food_desert"],
        var_name="status",
        value_name="population",
    )
    long["status"] = long["status"].map(
        {"food_desert": "Food Desert", "not_food_desert": "Not Food Desert"}
    )
    fig = px.bar(
        long,
        x="group",
        y="population",
        color="status",
        barmode="stack",
        category_orders={"group": by_subgroup["group"].tolist()},
        color_discrete_map={
            "Food Desert": colors["food_desert"],
            "Not Food Desert": colors["not_food_desert"],
        },
        labels={"group": "Group", "population": "Population", "status": ""},
        hover_data={"per_food_desert": ":.1%"},
    )
    fig.update_layout(title="Population Living in Food Desert Tracts")
    return fig


def poverty_scatter(points: pd.DataFrame, config: Mapping[str, Any] | None = None) -> go.Figure:
    """Poverty rate against white share, coloured by low access flag."""
    colors = _colors(config)
    plot_df = points.assign(
        white=points["white_pct"] * 100,
        access=points["low_access_flag"].map({1: "Low Access", 0: "Not Low Access"}),
    )
    fig = px.scatter(
        plot_df,
        x="white",
        y="poverty_rate",
        color="access",
        color_discrete_map={
            "Low Access": colors["food_desert"],
            "Not Low Access": colors["not_food_desert"],
        },
        hover_data={"tract_id": True},
        labels={"white": "% White", "poverty_rate": "Poverty Rate (%)", "access": ""},
    )
    fig.update_layout(title="Poverty Rate vs. White Share by Tract")
    return fig


def write_interactive(fig: go.Figure, path: str) -> str:
    fig.write_html(path, include_plotlyjs="cdn")
    return path


def save_static_chart(by_subgroup: pd.DataFrame, path: str, config: Mapping[str, Any] | None = None) -> str:
    """Write a PNG bar chart of the share of each group living in food deserts."""
    colors = _colors(config)
    fig, ax = plt.subplots(figsize=(10, 6))
    try:
        ax.bar(by_subgroup["group"], by_subgroup["per_food_desert"] * 100, color=colors["food_desert"], alpha=0.8)
        ax.set_ylabel("% of Group in Food Desert Tracts")
        ax.set_xlabel("Group")
        ax.set_title("Share of Each Group Living in Food Desert Tracts")
        ax.set_ylim(0, 100)
        for x, value in enumerate(by_subgroup["per_food_desert"] * 100):
            ax.annotate(f"{value:.1f}%", (x, value), ha="center", va="bottom")
        fig.tight_layout()
        fig.savefig(path, dpi=150)
    finally:
        plt.close(fig)
    return path
