"""Food desert dashboard for the census tracts of one county."""

from __future__ import annotations

import os

import streamlit as st

from census_data import census_client, demographics_cache_path
from charts import category_bar_chart, poverty_scatter, subgroup_bar_chart
from errors import PipelineError
from map_utils import make_map
from pipeline import DEFAULT_CONFIG, PipelineResult, load_inputs, run_pipeline
from utils import initialize_session_config, load_config, merge_config_defaults, update_session_config


def _render_help_popover(config: dict) -> None:
    """Render the title and a popover describing how tracts are classified."""

    info, title, *_ = st.columns([0.1, 2], gap="small", vertical_alignment="bottom")
    title.title(f"Food Deserts in {config['region'].get('name', 'the County')}")

    with info.popover("", icon=":material/question_mark:", use_container_width=False):
        st.markdown(
            """
            #### Majority Category
            Each tract is labelled with the first group whose share of the
            population is above 50%, checked in the order White, Black,
            AAPI, AIAN, Multiracial, Hispanic/Latino. Tracts with no such
            group are **Racially Diverse**.

            #### Food Desert
            A tract is a food desert when the Food Access Research Atlas flags
            it as low access. Tracts without an Atlas record are shown on the
            map but left out of the summaries.
            """
        )


@st.cache_data
def _load_result(config: dict) -> PipelineResult:
    client = None
    survey = config["survey"]
    cache_file = demographics_cache_path(
        config["file_paths"].get("acs"), config["region"], survey["year"], survey.get("variant", "acs5")
    )
    if not (cache_file and os.path.exists(cache_file)):
        client = census_client(st.secrets["CENSUS_API_KEY"], year=config["survey"]["year"])
    demographics, food_access = load_inputs(config, client=client)
    return run_pipeline(demographics, food_access)


def _render_sidebar(config: dict) -> str:
    with st.sidebar:
        st.header("Map Layer")
        layer = st.radio(
            "Colour tracts by",
            options=["majority_category", "access_status"],
            format_func=lambda value: "Majority Category" if value == "majority_category" else "Food Access",
            index=0 if config.get("map_layer", "majority_category") == "majority_category" else 1,
        )
        opacity = st.slider("Map Opacity", 0.1, 1.0, config["map_display"]["opacity"], step=0.05, key="mo")

    update_session_config(
        map_layer=layer,
        map_display=dict(config["map_display"], opacity=opacity),
    )
    return layer


def main() -> None:
    """Application entry point."""

    st.set_page_config(layout="wide")
    config_defaults = load_config()
    merge_config_defaults(config_defaults, DEFAULT_CONFIG)
    config = initialize_session_config(config_defaults)

    _render_help_popover(config)
    layer = _render_sidebar(config)

    try:
        result = _load_result(config_defaults)
    except (PipelineError, FileNotFoundError, ValueError) as error:
        st.error(f"Error processing data: {error}")
        st.stop()

    chart_config = config.get("charts")
    map_tab, category_tab, subgroup_tab = st.tabs(["Map", "By Majority Category", "By Group"])
    with map_tab:
        st.plotly_chart(make_map(result.tracts, layer, config), use_container_width=True)
    with category_tab:
        st.dataframe(result.by_category, hide_index=True)
        st.plotly_chart(category_bar_chart(result.by_category, chart_config), use_container_width=True)
        st.plotly_chart(poverty_scatter(result.scatter, chart_config), use_container_width=True)
    with subgroup_tab:
        st.dataframe(result.by_subgroup, hide_index=True)
        st.plotly_chart(subgroup_bar_chart(result.by_subgroup, chart_config), use_container_width=True)


if __name__ == "__main__":
    main()
