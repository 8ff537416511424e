import pandas as pd
import plotly.graph_objects as go
import pytest

from charts import (
    category_bar_chart,
    poverty_scatter,
    save_static_chart,
    subgroup_bar_chart,
    write_interactive,
)


def _by_category():
    return pd.DataFrame(
        {
            "majority_category": ["Majority White", "Majority Black", "Racially Diverse"],
            "count_food_desert": [10, 30, 50],
            "total_tracts": [200, 70, 206],
            "pct_food_desert": [0.05, 30 / 70, 50 / 206],
        }
    )


def _by_subgroup():
    return pd.DataFrame(
        {
            "group": ["Black", "Hispanic/Latino", "White"],
            "food_desert": [400, 900, 300],
            "not_food_desert": [600, 2100, 2700],
            "total_pop": [1000, 3000, 3000],
            "per_food_desert": [0.4, 0.3, 0.1],
        }
    )


def test_category_bar_chart_plots_percentages():
    fig = category_bar_chart(_by_category())

    assert isinstance(fig, go.Figure)
    assert list(fig.data[0].x) == ["Majority White", "Majority Black", "Racially Diverse"]
    assert fig.data[0].y[0] == pytest.approx(5.0)


def test_subgroup_bar_chart_stacks_both_statuses():
    fig = subgroup_bar_chart(_by_subgroup(), {"colors": {"food_desert": "#000000"}})

    names = [trace.name for trace in fig.data]
    assert names == ["Food Desert", "Not Food Desert"]
    assert fig.data[0].marker.color == "#000000"
    assert fig.layout.barmode == "stack"


def test_poverty_scatter_colours_by_access():
    points = pd.DataFrame(
        {
            "tract_id": [1, 2, 3],
            "white_pct": [0.1, 0.5, 0.9],
            "poverty_rate": [30.0, 15.0, 5.0],
            "low_access_flag": [1, 0, 0],
        }
    )

    fig = poverty_scatter(points)

    assert sorted(trace.name for trace in fig.data) == ["Low Access", "Not Low Access"]
    low = next(trace for trace in fig.data if trace.name == "Low Access")
    assert list(low.x) == pytest.approx([10.0])


def test_write_interactive_and_static(tmp_path):
    html_path = write_interactive(category_bar_chart(_by_category()), str(tmp_path / "chart.html"))
    png_path = save_static_chart(_by_subgroup(), str(tmp_path / "chart.png"))

    html = (tmp_path / "chart.html").read_text()
    assert "<html" in html
    assert "plotly" in html
    assert (tmp_path / "chart.png").read_bytes().startswith(b"\x89PNG")
    assert html_path.endswith("chart.html") and png_path.endswith("chart.png")
