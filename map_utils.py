import geopandas as gpd
import pandas as pd
import plotly.express as px

from analysis import CATEGORY_ORDER, GROUPS


def access_status(flag):
    if pd.isna(flag):
        return "No Food Access Record"
    return "Low Access" if int(flag) == 1 else "Not Low Access"


def map_hovertext(row):
    # Main header with tract and category
    s = f"<b>{row['NAME']}</b><br>" if pd.notna(row.get("NAME")) else f"<b>Tract {row['tract_id']}</b><br>"
    s += f"<i>{row['majority_category']}</i><br>"
    s += "-------------------<br>"

    s += f"<b style='color:#00FFFF'>Food Access:</b> {access_status(row.get('low_access_flag'))}<br>"
    if pd.notna(row.get("poverty_rate")):
        s += f"<b style='color:#00FFFF'>Poverty Rate:</b> {row['poverty_rate']:.1f}%<br>"
    s += f"<b style='color:#00FFFF'>Population:</b> {int(row['total_pop']):,}<br>"

    # Group shares, largest first, zero shares omitted
    shares = sorted(
        ((label, row.get(f"{column}_pct", 0)) for column, label in GROUPS),
        key=lambda item: item[1],
        reverse=True,
    )
    if any(value > 0 for _, value in shares):
        s += "<br>"
        for label, value in shares:
            if value > 0:
                s += f"<b style='color:#FFFF00'>{label}:</b> {value:.1%}<br>"

    return s


def _prepare_base_map(df, col, config):
    """Prepare the base choropleth map with tract data."""
    projected = df.geometry.to_crs("EPSG:3857")
    centroids = projected.centroid
    centroids = gpd.GeoSeries(centroids, crs=projected.crs).to_crs("EPSG:4326")

    df = df.copy()
    df["custom_hover"] = df.apply(map_hovertext, axis=1)
    df["access_status"] = df["low_access_flag"].apply(access_status)

    map_config = config["map_display"]
    category_orders = {"majority_category": CATEGORY_ORDER}
    map_visualization_options = {
        "height": map_config["height"],
        "map_style": map_config["map_style"],
        "zoom": map_config["zoom"],
        "center": {"lat": centroids.y.mean(), "lon": centroids.x.mean()},
        "opacity": map_config["opacity"],
        "category_orders": category_orders,
        "hover_data": {"custom_hover": True},
    }
    colors = map_config.get("category_colors")
    if colors:
        map_visualization_options["color_discrete_map"] = colors

    fig = px.choropleth_map(
        df,
        geojson=df.geometry,
        locations=df.index,
        color=col,
        **map_visualization_options,
    )

    fig.update_traces(hovertemplate="%{customdata[0]}<extra></extra>")
    fig.update_layout(
        hoverlabel=dict(
            bgcolor="black", font_size=16, font_family="Arial", font_color="white"
        )
    )

    return fig, centroids


def _configure_map_layout(fig, config, legend_title):
    """Configure the final map layout."""
    fig.update_layout(
        margin={"r": 0, "t": 0, "l": 0, "b": 0},
        legend_title_text=legend_title,
        legend=dict(
            orientation="h",
            yanchor="bottom",
            y=-0.1,
            xanchor="center",
            x=0.5,
            bordercolor="black",
            borderwidth=1,
        ),
        legend_font=dict(size=config["fontsize"] * 1.8),
    )
    return fig


def make_map(df: gpd.GeoDataFrame, col: str, config: dict):
    """Choropleth of joined tracts coloured by *col* (``majority_category`` or ``access_status``)."""
    mappable = df.loc[df.geometry.notna()]
    fig, _ = _prepare_base_map(mappable, col, config)
    legend_title = "Tract Majority" if col == "majority_category" else "Food Access"
    fig = _configure_map_layout(fig, config, legend_title)
    return fig
